import threading
from typing import Dict, List, NamedTuple, Optional


class Session(NamedTuple):
    game_id: str
    player_id: str


class SessionRegistry:
    """Live connection (Socket.IO sid) -> the player it speaks for.

    Identity is whatever the last successful join said; a connection that
    joins again under another name simply points at the new player.
    """

    def __init__(self):
        self._by_sid: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def bind(self, sid: str, game_id: str, player_id: str) -> Session:
        session = Session(game_id, player_id)
        with self._lock:
            self._by_sid[sid] = session
        return session

    def get(self, sid: str) -> Optional[Session]:
        with self._lock:
            return self._by_sid.get(sid)

    def release(self, sid: str) -> Optional[Session]:
        with self._lock:
            return self._by_sid.pop(sid, None)

    def sids_for_player(self, game_id: str, player_id: str) -> List[str]:
        with self._lock:
            return [sid for sid, s in self._by_sid.items() if s == (game_id, player_id)]

    def __len__(self):
        with self._lock:
            return len(self._by_sid)
