"""The authoritative in-memory table of live games.

One RLock per game serializes every mutation of that game; different games
never contend. The durable store is read once per game (on first access)
and then only written to, behind the in-memory state, by SnapshotWriter.
"""
import threading
from contextlib import nullcontext
from typing import Any, Callable, Dict, List, Optional, Set

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from buzzboard import db, socketio
from .board import Game
from .broadcast import BroadcastDispatcher
from .errors import GameNotFound


class SnapshotWriter:
    """Write-behind persistence, newest snapshot wins.

    At most one drain runs per game at a time and it only ever writes a
    version newer than the last one written, so an old snapshot can never
    overwrite a newer one. With PERSIST_SYNC the drain runs inline.

    Store writes for a game hold that game's write lock, and ``forget``
    takes the same lock, so a game deleted mid-drain is never written back.
    """

    def __init__(self, app, store):
        self._app = app
        self._store = store
        self._lock = threading.Lock()
        self._pending: Dict[str, tuple] = {}
        self._written: Dict[str, int] = {}
        self._draining: Set[str] = set()
        self._deleted: Set[str] = set()
        self._write_locks: Dict[str, threading.RLock] = {}

    def _write_lock_for(self, game_id: str) -> threading.RLock:
        with self._lock:
            lock = self._write_locks.get(game_id)
            if lock is None:
                lock = self._write_locks[game_id] = threading.RLock()
            return lock

    def submit(self, game_id: str, version: int, record: Dict[str, Any]) -> None:
        with self._lock:
            if game_id in self._deleted:
                return
            current = self._pending.get(game_id)
            if current is None or current[0] < version:
                self._pending[game_id] = (version, record)
            if game_id in self._draining:
                return
            self._draining.add(game_id)
        if self._app.config.get('PERSIST_SYNC'):
            self._drain(game_id)
        else:
            socketio.start_background_task(self._drain, game_id)

    def forget(self, game_id: str) -> None:
        """Drop a game's pending snapshot and wait out any write in flight.

        Once this returns nothing more is written for ``game_id``.
        """
        with self._write_lock_for(game_id):
            with self._lock:
                self._pending.pop(game_id, None)
                self._written.pop(game_id, None)
                self._write_locks.pop(game_id, None)
                if game_id in self._draining:
                    # The running drain clears the mark when it exits
                    self._deleted.add(game_id)

    def last_written(self, game_id: str) -> int:
        with self._lock:
            return self._written.get(game_id, 0)

    def _drain(self, game_id: str) -> None:
        while True:
            with self._lock:
                item = self._pending.pop(game_id, None)
                if item is None or game_id in self._deleted:
                    if game_id in self._deleted:
                        self._deleted.discard(game_id)
                        self._write_locks.pop(game_id, None)
                    self._draining.discard(game_id)
                    return
                if item[0] <= self._written.get(game_id, 0):
                    continue
            version, record = item
            if not self._write(game_id, version, record):
                continue
            with self._lock:
                if game_id in self._deleted:
                    continue
                self._written[game_id] = max(version, self._written.get(game_id, 0))
            self._app.logger.debug(f"[persist] game={game_id} version={version}")

    def _write(self, game_id: str, version: int, record: Dict[str, Any]) -> bool:
        # Inline writes reuse the caller's app context (and its session)
        if has_app_context() and current_app._get_current_object() is self._app:
            ctx = nullcontext()
        else:
            ctx = self._app.app_context()
        with self._write_lock_for(game_id), ctx:
            with self._lock:
                if game_id in self._deleted:
                    return False
            try:
                self._store.put_game(record)
            except SQLAlchemyError:
                db.session.rollback()
                self._app.logger.exception(f"[persist-fail] game={game_id} version={version}")
                return False
        return True


class GameTable:

    def __init__(self, app, store, dispatcher: Optional[BroadcastDispatcher] = None,
                 writer: Optional[SnapshotWriter] = None):
        self._app = app
        self._store = store
        self._dispatcher = dispatcher or BroadcastDispatcher()
        self._writer = writer or SnapshotWriter(app, store)
        self._games: Dict[str, Game] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._versions: Dict[str, int] = {}
        self._guard = threading.Lock()

    @property
    def writer(self) -> SnapshotWriter:
        return self._writer

    def lock_for(self, game_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(game_id)
            if lock is None:
                lock = self._locks[game_id] = threading.RLock()
            return lock

    def _load(self, game_id: str) -> Game:
        game = self._games.get(game_id)
        if game is not None:
            return game
        record = self._store.get_game(game_id) if game_id else None
        if record is None:
            with self._guard:
                self._locks.pop(game_id, None)
            raise GameNotFound(game_id)
        game = Game.from_dict(record)
        with self._guard:
            self._games[game_id] = game
        return game

    def _commit(self, game: Game, queue_changed: bool = False) -> None:
        version = self._versions.get(game.id, 0) + 1
        self._versions[game.id] = version
        self._writer.submit(game.id, version, game.to_record())
        self._dispatcher.publish(game, queue_changed=queue_changed)

    def version(self, game_id: str) -> int:
        return self._versions.get(game_id, 0)

    def apply(self, game_id: str, transition: Callable[..., Any], *args, **kwargs) -> Any:
        """Run ``transition(game, *args)`` under the game's lock.

        On success the new state is queued for persistence and broadcast
        before the lock is released. Domain errors propagate untouched and
        leave nothing persisted or broadcast.
        """
        with self.lock_for(game_id):
            game = self._load(game_id)
            queue_before = game.queue_dicts()
            result = transition(game, *args, **kwargs)
            self._commit(game, queue_changed=queue_before != game.queue_dicts())
            return result

    def add(self, game: Game) -> Game:
        with self.lock_for(game.id):
            with self._guard:
                self._games[game.id] = game
            self._commit(game)
        current_app.logger.info(f"[create] game={game.id} code={game.access_code}")
        return game

    def snapshot(self, game_id: str) -> Dict[str, Any]:
        with self.lock_for(game_id):
            return self._load(game_id).to_dict()

    def queue_snapshot(self, game_id: str) -> List[Dict[str, Any]]:
        with self.lock_for(game_id):
            return self._load(game_id).queue_dicts()

    def delete(self, game_id: str) -> None:
        with self.lock_for(game_id):
            self._load(game_id)
            with self._guard:
                self._games.pop(game_id, None)
            self._versions.pop(game_id, None)
            self._writer.forget(game_id)
            self._store.delete_game(game_id)
            self._dispatcher.game_deleted(game_id)
            with self._guard:
                self._locks.pop(game_id, None)
        current_app.logger.info(f"[delete] game={game_id}")

    def find_by_access_code(self, code: str) -> Game:
        wanted = (code or '').strip().upper()
        with self._guard:
            live = next((g for g in self._games.values() if g.access_code.upper() == wanted), None)
        if live is not None:
            return live
        record = self._store.get_game_by_access_code(wanted) if wanted else None
        if record is None:
            raise GameNotFound(code)
        with self.lock_for(record['id']):
            return self._load(record['id'])

    def access_code_taken(self, code: str) -> bool:
        wanted = code.upper()
        with self._guard:
            if any(g.access_code.upper() == wanted for g in self._games.values()):
                return True
        return self._store.access_code_exists(wanted)

    def all_snapshots(self) -> List[Dict[str, Any]]:
        """Every known game, live state preferred over stored state."""
        stored = self._store.list_games()
        seen = set()
        result = []
        for record in stored:
            seen.add(record['id'])
            if record['id'] in self._games:
                result.append(self.snapshot(record['id']))
            else:
                result.append(Game.from_dict(record).to_dict())
        with self._guard:
            unwritten = [gid for gid in self._games if gid not in seen]
        for gid in unwritten:
            try:
                result.append(self.snapshot(gid))
            except GameNotFound:
                continue
        return result
