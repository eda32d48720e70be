from buzzboard import socketio

NAMESPACE = '/ws'


def room_for(game_id: str) -> str:
    return f"game:{game_id}"


class BroadcastDispatcher:
    """Fans full snapshots out to everyone in a game's room.

    Called by the game table while it still holds the game's lock, so the
    order subscribers see matches the order mutations happened in.
    """

    def __init__(self, namespace: str = NAMESPACE):
        self.namespace = namespace

    def publish(self, game, queue_changed: bool = False) -> None:
        room = room_for(game.id)
        socketio.emit('game-update', game.to_dict(), to=room, namespace=self.namespace)
        if queue_changed:
            socketio.emit('buzzer-queue', game.queue_dicts(), to=room, namespace=self.namespace)

    def game_deleted(self, game_id: str) -> None:
        socketio.emit('game-deleted', {'gameId': game_id}, to=room_for(game_id), namespace=self.namespace)
