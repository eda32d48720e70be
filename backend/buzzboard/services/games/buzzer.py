from typing import List

from .board import BuzzerEvent, Game, PHASE_QUESTION
from .errors import DuplicateSubmission, InvalidTransition, PlayerNotFound


def rerank(queue: List[BuzzerEvent]) -> List[BuzzerEvent]:
    """Sort ascending by client timestamp and number ranks 1..N.

    ``list.sort`` is stable, so equal timestamps keep arrival order.
    """
    queue.sort(key=lambda b: b.timestamp)
    for idx, entry in enumerate(queue, start=1):
        entry.rank = idx
    return queue


def has_buzzed(game: Game, player_id: str) -> bool:
    return any(b.player_id == player_id for b in game.buzzer_queue)


def submit_buzz(game: Game, player_id: str, client_timestamp: float) -> BuzzerEvent:
    """Queue a buzz ordered by the client-reported timestamp.

    Server arrival order is skewed by each client's latency, so the client's
    own clock is used instead. Raises InvalidTransition when the buzzer is not
    accepting and DuplicateSubmission when the player is already queued.
    """
    if game.phase != PHASE_QUESTION or not game.buzzer_active:
        raise InvalidTransition(f"buzzer closed for game {game.id}")
    player = game.find_player(player_id)
    if not player:
        raise PlayerNotFound(player_id)
    if has_buzzed(game, player_id):
        raise DuplicateSubmission(f"player {player_id} already buzzed")
    if isinstance(client_timestamp, bool) or not isinstance(client_timestamp, (int, float)):
        raise InvalidTransition(f"bad buzz timestamp {client_timestamp!r}")

    entry = BuzzerEvent(player_id=player.id, player_name=player.name, timestamp=client_timestamp)
    game.buzzer_queue.append(entry)
    rerank(game.buzzer_queue)
    return entry


def remove_from_queue(game: Game, player_id: str) -> bool:
    """Drop a player's entry and close the gap in the ranks."""
    before = len(game.buzzer_queue)
    game.buzzer_queue = [b for b in game.buzzer_queue if b.player_id != player_id]
    rerank(game.buzzer_queue)
    return len(game.buzzer_queue) != before


def clear_queue(game: Game) -> None:
    game.buzzer_queue = []
