"""Game phase transitions.

Each function mutates a Game in place and either returns normally (the
mutation happened and must be persisted and broadcast) or raises an
InvalidTransition / NotFound subclass (nothing changed). Callers hold the
game's lock; nothing here does I/O.

    lobby -> playing -> question -> playing -> ... -> finished
"""
import secrets
from typing import Any, Dict, List, Optional

from .board import (
    Category,
    Game,
    GameSettings,
    Player,
    PHASE_FINISHED,
    PHASE_LOBBY,
    PHASE_PLAYING,
    PHASE_QUESTION,
    new_id,
)
from .buzzer import clear_queue, remove_from_queue, submit_buzz
from .errors import (
    BoardFull,
    CategoryNotFound,
    InvalidTransition,
    PlayerNotFound,
    QuestionNotFound,
)


def _require_live_question(game: Game) -> None:
    if game.phase != PHASE_QUESTION or not game.current_question:
        raise InvalidTransition(f"no live question in game {game.id}")


def _require_player(game: Game, player_id: str) -> Player:
    player = game.find_player(player_id)
    if not player:
        raise PlayerNotFound(player_id)
    return player


def _mark_answered(game: Game, question_id: str) -> None:
    # Matched by id across the whole board
    for question in game.iter_questions():
        if question.id == question_id:
            question.answered = True


def _close_question(game: Game) -> None:
    game.phase = PHASE_PLAYING
    game.current_question = None
    game.current_category = None
    game.buzzer_active = False
    game.buzzer_generation += 1
    clear_queue(game)


def join(game: Game, name: str, session_token: Optional[str] = None,
         allow_name_reconnect: bool = True) -> Player:
    """Attach a player to the game, reconnecting when possible.

    A known session token wins; otherwise, when allowed, an exact name match
    is treated as the same person. New players start at 0 and receive a
    fresh token.
    """
    if name is not None and not isinstance(name, str):
        raise InvalidTransition('playerName must be a string')
    name = (name or '').strip()
    if not name:
        raise InvalidTransition('playerName is required')

    player = game.find_player_by_token(session_token)
    if player is None and allow_name_reconnect:
        player = game.find_player_by_name(name)
    if player is not None:
        player.connected = True
        if not player.session_token:
            player.session_token = secrets.token_urlsafe(24)
        return player

    player = Player(id=new_id(), name=name, score=0, connected=True,
                    session_token=secrets.token_urlsafe(24))
    game.players.append(player)
    return player


def disconnect(game: Game, player_id: str) -> Player:
    player = _require_player(game, player_id)
    player.connected = False
    return player


def start_game(game: Game) -> None:
    if game.phase != PHASE_LOBBY:
        raise InvalidTransition(f"game {game.id} is not in the lobby")
    game.phase = PHASE_PLAYING


def end_game(game: Game) -> None:
    if game.phase == PHASE_FINISHED:
        raise InvalidTransition(f"game {game.id} already finished")
    _close_question(game)
    game.phase = PHASE_FINISHED


def reset_game(game: Game) -> None:
    """Back to the lobby with a clean board. The only way to un-answer a question."""
    _close_question(game)
    game.phase = PHASE_LOBBY
    for player in game.players:
        player.score = 0
    for question in game.iter_questions():
        question.answered = False


def select_question(game: Game, category_id: str, question_id: str) -> None:
    if game.phase == PHASE_LOBBY:
        raise InvalidTransition(f"game {game.id} has not started")
    if game.phase == PHASE_FINISHED:
        raise InvalidTransition(f"game {game.id} is finished")
    category = game.find_category(category_id)
    if not category:
        raise CategoryNotFound(category_id)
    question = category.find_question(question_id)
    if not question:
        raise QuestionNotFound(question_id)
    if question.answered:
        raise InvalidTransition(f"question {question_id} already answered")

    game.current_category = category
    game.current_question = question
    game.phase = PHASE_QUESTION
    game.buzzer_active = False
    game.buzzer_generation += 1
    clear_queue(game)


def activate_buzzer(game: Game) -> int:
    """Arm the buzzer with an empty queue. Returns the new buzzer generation."""
    game.buzzer_active = True
    game.buzzer_generation += 1
    clear_queue(game)
    return game.buzzer_generation


def deactivate_buzzer(game: Game) -> None:
    game.buzzer_active = False


def close_buzzer_window(game: Game, question_id: str, generation: int) -> None:
    """Timer expiry for a buzzer window armed at ``generation``.

    Any later activation or question change bumps the generation, which turns
    a stale expiry into an InvalidTransition.
    """
    if (not game.current_question or game.current_question.id != question_id
            or game.buzzer_generation != generation or not game.buzzer_active):
        raise InvalidTransition(f"stale buzzer window for game {game.id}")
    game.buzzer_active = False


def buzz(game: Game, player_id: str, timestamp) -> None:
    submit_buzz(game, player_id, timestamp)


def judge_correct(game: Game, player_id: str) -> Player:
    _require_live_question(game)
    player = _require_player(game, player_id)
    player.score += game.current_question.points
    _mark_answered(game, game.current_question.id)
    _close_question(game)
    return player


def judge_wrong(game: Game, player_id: str) -> Player:
    """Penalize (if allowed) and drop the player from the queue.

    The question stays live so the moderator can move on to the next-ranked
    buzz without re-selecting it.
    """
    _require_live_question(game)
    player = _require_player(game, player_id)
    if game.settings.allow_negative:
        player.score -= game.current_question.points
    remove_from_queue(game, player_id)
    return player


def skip_question(game: Game) -> None:
    _require_live_question(game)
    _mark_answered(game, game.current_question.id)
    _close_question(game)


def adjust_score(game: Game, player_id: str, adjustment: int) -> Player:
    player = _require_player(game, player_id)
    player.score += int(adjustment)
    return player


def remove_player(game: Game, player_id: str) -> None:
    player = _require_player(game, player_id)
    game.players.remove(player)
    remove_from_queue(game, player_id)


def add_category(game: Game, max_categories: int, point_values: List[int],
                 name: str = 'New Category') -> Category:
    if len(game.categories) >= max_categories:
        raise BoardFull(f"game {game.id} already has {max_categories} categories")
    category = Category.blank(point_values, name=name)
    game.categories.append(category)
    return category


def delete_category(game: Game, category_id: str) -> None:
    category = game.find_category(category_id)
    if not category:
        raise CategoryNotFound(category_id)
    if game.current_category is category:
        raise InvalidTransition(f"category {category_id} holds the live question")
    game.categories.remove(category)


def update_board(game: Game, updates: Dict[str, Any], max_categories: int,
                 point_values: Optional[List[int]] = None) -> None:
    """Apply moderator edits: name, settings and the category list.

    The board cannot be replaced while a question is live, since the live
    question must stay linked to its board entry. Every category must carry
    one question per point tier.
    """
    if 'categories' in updates:
        if game.phase == PHASE_QUESTION:
            raise InvalidTransition(f"cannot edit the board of game {game.id} during a question")
        categories = [Category.from_dict(c).check_tiers(point_values)
                      for c in updates.get('categories') or []]
        if len(categories) > max_categories:
            raise BoardFull(f"at most {max_categories} categories")
        game.categories = categories
    if 'name' in updates and updates['name']:
        game.name = str(updates['name'])
    if 'settings' in updates:
        game.settings = GameSettings.from_dict(updates['settings'], defaults=game.settings)
