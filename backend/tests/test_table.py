import random
import threading

import pytest

from buzzboard.services.games import get_game_table, get_store
from buzzboard.services.games.board import Category, Game, new_game
from buzzboard.services.games.broadcast import BroadcastDispatcher
from buzzboard.services.games.errors import InvalidTransition
from buzzboard.services.games.state_machine import (
    activate_buzzer,
    buzz,
    join,
    judge_correct,
    select_question,
    start_game,
)
from buzzboard.services.games.table import GameTable, SnapshotWriter

PLAYERS = 16


class RecordingWriter(SnapshotWriter):

    def __init__(self, app, store):
        super().__init__(app, store)
        self.versions = []

    def submit(self, game_id, version, record):
        self.versions.append(version)


class RecordingDispatcher(BroadcastDispatcher):

    def __init__(self):
        super().__init__()
        self.queue_lengths = []

    def publish(self, game, queue_changed=False):
        if queue_changed:
            self.queue_lengths.append(len(game.buzzer_queue))


def _run_together(target, arg_lists):
    barrier = threading.Barrier(len(arg_lists))

    def _worker(*args):
        barrier.wait()
        target(*args)

    threads = [threading.Thread(target=_worker, args=args) for args in arg_lists]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    assert not any(t.is_alive() for t in threads)


@pytest.fixture()
def race_table(flask_app):
    store = get_store()
    writer = RecordingWriter(flask_app, store)
    dispatcher = RecordingDispatcher()
    table = GameTable(flask_app, store, dispatcher=dispatcher, writer=writer)
    game = Game(id='race', access_code='RACE23',
                categories=[Category.blank([100, 200, 300, 400, 500], name='Science')])
    players = [join(game, f'P{i}') for i in range(PLAYERS)]
    start_game(game)
    question = game.categories[0].questions[2]
    select_question(game, game.categories[0].id, question.id)
    activate_buzzer(game)
    table.add(game)
    return table, writer, dispatcher, players, question


def test_concurrent_buzzes_are_serialized(race_table):
    table, writer, dispatcher, players, _ = race_table
    timestamps = random.Random(7).sample(range(1000, 100000), PLAYERS)
    errors = []

    def buzz_in(player, ts):
        try:
            table.apply('race', buzz, player.id, ts)
        except Exception as exc:
            errors.append(exc)

    _run_together(buzz_in, list(zip(players, timestamps)))

    assert errors == []
    queue = table.queue_snapshot('race')
    assert len({e['playerId'] for e in queue}) == PLAYERS
    assert [e['rank'] for e in queue] == list(range(1, PLAYERS + 1))
    assert [e['timestamp'] for e in queue] == sorted(timestamps)
    # One version per mutation, handed over in commit order
    assert writer.versions == list(range(1, PLAYERS + 2))
    assert dispatcher.queue_lengths == list(range(1, PLAYERS + 1))


def test_concurrent_repeat_buzzes_are_all_rejected(race_table):
    table, _, _, players, _ = race_table
    for i, player in enumerate(players):
        table.apply('race', buzz, player.id, i)
    rejected = []

    def buzz_again(player):
        try:
            table.apply('race', buzz, player.id, 0)
        except InvalidTransition:
            rejected.append(player.id)

    _run_together(buzz_again, [(p,) for p in players])

    assert len(rejected) == PLAYERS
    assert [e['playerId'] for e in table.queue_snapshot('race')] == [p.id for p in players]


def test_racing_judgements_award_points_once(race_table):
    table, _, _, players, question = race_table
    winner = players[0]
    table.apply('race', buzz, winner.id, 1)
    outcomes = []

    def judge():
        try:
            table.apply('race', judge_correct, winner.id)
            outcomes.append('awarded')
        except InvalidTransition:
            outcomes.append('rejected')

    _run_together(judge, [() for _ in range(8)])

    assert sorted(outcomes) == ['awarded'] + ['rejected'] * 7
    state = table.snapshot('race')
    assert next(p for p in state['players'] if p['id'] == winner.id)['score'] == question.points
    assert state['phase'] == 'playing'
    answered = [q['id'] for c in state['categories'] for q in c['questions'] if q['answered']]
    assert answered == [question.id]


def test_delete_during_inflight_write_stays_deleted(flask_app, monkeypatch):
    store = get_store()
    table = get_game_table()
    game = new_game('DLT234')
    table.add(game)
    writer = table.writer
    real_write = writer._write

    def delete_first(game_id, version, record):
        # The drain has already taken the snapshot when the delete lands
        table.delete(game_id)
        return real_write(game_id, version, record)

    monkeypatch.setattr(writer, '_write', delete_first)
    table.apply(game.id, join, 'Ann')

    assert store.get_game(game.id) is None
    assert store.list_games() == []
    assert writer.last_written(game.id) == 0


def test_forget_waits_for_write_in_flight(flask_app):
    store = get_store()
    table = get_game_table()
    game = new_game('WAIT23')
    table.add(game)
    writer = table.writer
    write_started = threading.Event()
    release_write = threading.Event()
    real_put = store.put_game

    def slow_put(record):
        write_started.set()
        release_write.wait(timeout=5)
        real_put(record)

    store.put_game = slow_put
    try:
        record = game.to_record()
        record['name'] = 'late write'
        drain = threading.Thread(target=writer._write, args=(game.id, 99, record))
        drain.start()
        assert write_started.wait(timeout=5)

        forgotten = threading.Event()
        deleter = threading.Thread(target=lambda: (writer.forget(game.id), forgotten.set()))
        deleter.start()
        assert not forgotten.wait(timeout=0.2)
        release_write.set()
        drain.join(timeout=5)
        deleter.join(timeout=5)
        assert forgotten.is_set()
    finally:
        store.put_game = real_put


def test_delete_releases_bookkeeping(flask_app):
    table = get_game_table()
    game = new_game('PRN234')
    table.add(game)
    table.apply(game.id, join, 'Ann')
    table.delete(game.id)
    assert game.id not in table._locks
    assert game.id not in table.writer._deleted
    assert game.id not in table.writer._write_locks


def test_unknown_game_leaves_no_lock_behind(flask_app):
    table = get_game_table()
    with pytest.raises(LookupError):
        table.snapshot('missing')
    assert 'missing' not in table._locks
