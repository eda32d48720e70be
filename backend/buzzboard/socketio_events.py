from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from buzzboard import socketio
from buzzboard.services.games import get_game_table, get_sessions
from buzzboard.services.games import state_machine as sm
from buzzboard.services.games.broadcast import NAMESPACE, room_for
from buzzboard.services.games.errors import GameNotFound, InvalidTransition, NotFound
from buzzboard.services.games.scheduler import schedule_buzzer_window


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _game_id(data) -> str:
    return (data or {}).get('gameId') or ''


def _subscribe(game_id: str) -> bool:
    """Join the game's room and send the current snapshot to this socket only."""
    try:
        snapshot = get_game_table().snapshot(game_id)
    except GameNotFound:
        return False
    join_room(room_for(game_id))
    emit('game-update', snapshot)
    return True


def _moderate(event: str, game_id: str, transition, *args):
    """Apply a transition, ignoring events whose precondition no longer holds.

    Races between a slow client and a fast moderator are expected; the next
    full snapshot resynchronizes everyone.
    """
    try:
        return get_game_table().apply(game_id, transition, *args)
    except (InvalidTransition, NotFound) as exc:
        current_app.logger.debug(f"[ignored] event={event} game={game_id} reason={exc}")
        return None


def _arm_buzzer(game):
    generation = sm.activate_buzzer(game)
    question_id = game.current_question.id if game.current_question else None
    return generation, question_id


def handle_connect(auth=None):
    game_id = request.args.get('gameId')
    if not game_id and isinstance(auth, dict):
        game_id = auth.get('gameId')
    if game_id:
        _subscribe(game_id)


def handle_watch_game(data):
    game_id = _game_id(data)
    if not game_id:
        emit('error', {'message': 'gameId is required'})
        return
    if not _subscribe(game_id):
        emit('error', {'message': 'Game not found'})


def handle_leave_game(data):
    game_id = _game_id(data)
    if game_id:
        leave_room(room_for(game_id))


def handle_join_game(data):
    data = data or {}
    game_id = _game_id(data)
    if not game_id:
        emit('error', {'message': 'gameId is required'})
        return
    join_room(room_for(game_id))
    try:
        player = get_game_table().apply(
            game_id,
            sm.join,
            data.get('playerName'),
            data.get('sessionToken'),
            current_app.config.get('ALLOW_NAME_RECONNECT', True),
        )
    except GameNotFound:
        leave_room(room_for(game_id))
        emit('error', {'message': 'Game not found'})
        return
    except InvalidTransition as exc:
        session = get_sessions().get(_get_sid())
        if not session or session.game_id != game_id:
            leave_room(room_for(game_id))
        emit('error', {'message': str(exc)})
        return
    get_sessions().bind(_get_sid(), game_id, player.id)
    current_app.logger.info(f"[join] game={game_id} player={player.id} name={player.name!r}")
    emit('player-id', player.id)
    emit('session-token', player.session_token)


def handle_buzz(data):
    session = get_sessions().get(_get_sid())
    if not session:
        return
    game_id = _game_id(data) or session.game_id
    if game_id != session.game_id:
        return
    _moderate('buzz', game_id, sm.buzz, session.player_id, (data or {}).get('timestamp'))


def handle_select_question(data):
    data = data or {}
    _moderate('select-question', _game_id(data), sm.select_question,
              data.get('categoryId'), data.get('questionId'))


def handle_activate_buzzer(data):
    game_id = _game_id(data)
    armed = _moderate('activate-buzzer', game_id, _arm_buzzer)
    if armed:
        generation, question_id = armed
        schedule_buzzer_window(current_app._get_current_object(), get_game_table(),
                               game_id, question_id, generation)


def handle_deactivate_buzzer(data):
    _moderate('deactivate-buzzer', _game_id(data), sm.deactivate_buzzer)


def handle_answer_correct(data):
    _moderate('answer-correct', _game_id(data), sm.judge_correct, (data or {}).get('playerId'))


def handle_answer_wrong(data):
    _moderate('answer-wrong', _game_id(data), sm.judge_wrong, (data or {}).get('playerId'))


def handle_skip_question(data):
    _moderate('skip-question', _game_id(data), sm.skip_question)


def handle_start_game(data):
    _moderate('start-game', _game_id(data), sm.start_game)


def handle_end_game(data):
    _moderate('end-game', _game_id(data), sm.end_game)


def handle_reset_game(data):
    _moderate('reset-game', _game_id(data), sm.reset_game)


def handle_disconnect(reason=None):
    sessions = get_sessions()
    session = sessions.release(_get_sid())
    if not session:
        return
    # Same player still connected from another socket
    if sessions.sids_for_player(session.game_id, session.player_id):
        return
    if _moderate('disconnect', session.game_id, sm.disconnect, session.player_id):
        current_app.logger.info(f"[disconnect] game={session.game_id} player={session.player_id}")


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register Socket.IO event handlers on the game namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('watch-game', handle_watch_game, namespace=namespace)
    socketio.on_event('leave-game', handle_leave_game, namespace=namespace)
    socketio.on_event('join-game', handle_join_game, namespace=namespace)
    socketio.on_event('buzz', handle_buzz, namespace=namespace)
    socketio.on_event('select-question', handle_select_question, namespace=namespace)
    socketio.on_event('activate-buzzer', handle_activate_buzzer, namespace=namespace)
    socketio.on_event('deactivate-buzzer', handle_deactivate_buzzer, namespace=namespace)
    socketio.on_event('answer-correct', handle_answer_correct, namespace=namespace)
    socketio.on_event('answer-wrong', handle_answer_wrong, namespace=namespace)
    socketio.on_event('skip-question', handle_skip_question, namespace=namespace)
    socketio.on_event('start-game', handle_start_game, namespace=namespace)
    socketio.on_event('end-game', handle_end_game, namespace=namespace)
    socketio.on_event('reset-game', handle_reset_game, namespace=namespace)
