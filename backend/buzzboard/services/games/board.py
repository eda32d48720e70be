"""Board and game aggregate types.

These are plain in-memory objects. ``to_dict`` produces the camelCase wire
snapshot broadcast to clients; ``to_record`` adds the private fields the
store needs (session tokens). ``from_dict`` accepts either shape.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import uuid

from .errors import InvalidPayload

PHASE_LOBBY = 'lobby'
PHASE_PLAYING = 'playing'
PHASE_QUESTION = 'question'
PHASE_FINISHED = 'finished'
PHASES = (PHASE_LOBBY, PHASE_PLAYING, PHASE_QUESTION, PHASE_FINISHED)

MEDIA_TYPES = ('image', 'audio', 'video')
DEFAULT_POINT_VALUES = [100, 200, 300, 400, 500]


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_int(value, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidPayload(f"{field_name} must be an integer, got {value!r}")


@dataclass
class MediaAttachment:
    type: str
    url: str
    filename: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'url': self.url, 'filename': self.filename}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['MediaAttachment']:
        if not data or not data.get('url'):
            return None
        media_type = data.get('type')
        if media_type not in MEDIA_TYPES:
            raise InvalidPayload(f"Unsupported media type: {media_type!r}")
        return cls(type=media_type, url=data['url'], filename=data.get('filename') or '')


@dataclass
class Question:
    id: str
    question: str
    answer: str
    points: int
    answered: bool = False
    daily_double: bool = False
    media: Optional[MediaAttachment] = None
    answer_media: Optional[MediaAttachment] = None

    def to_dict(self, include_state: bool = True) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'question': self.question,
            'answer': self.answer,
            'points': self.points,
            'dailyDouble': self.daily_double,
            'media': self.media.to_dict() if self.media else None,
            'answerMedia': self.answer_media.to_dict() if self.answer_media else None,
        }
        if include_state:
            data['answered'] = self.answered
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        return cls(
            id=data.get('id') or new_id(),
            question=data.get('question') or '',
            answer=data.get('answer') or '',
            points=_as_int(data.get('points') or 0, 'points'),
            answered=bool(data.get('answered', False)),
            daily_double=bool(data.get('dailyDouble', False)),
            media=MediaAttachment.from_dict(data.get('media')),
            answer_media=MediaAttachment.from_dict(data.get('answerMedia')),
        )

    def copy_fresh(self) -> 'Question':
        """Same content under a new id, unanswered."""
        return Question(
            id=new_id(),
            question=self.question,
            answer=self.answer,
            points=self.points,
            answered=False,
            daily_double=self.daily_double,
            media=self.media,
            answer_media=self.answer_media,
        )


@dataclass
class Category:
    id: str
    name: str
    questions: List[Question] = field(default_factory=list)

    def find_question(self, question_id: str) -> Optional[Question]:
        return next((q for q in self.questions if q.id == question_id), None)

    def to_dict(self, include_state: bool = True) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'questions': [q.to_dict(include_state) for q in self.questions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Category':
        return cls(
            id=data.get('id') or new_id(),
            name=data.get('name') or 'New Category',
            questions=[Question.from_dict(q) for q in data.get('questions') or []],
        )

    @classmethod
    def blank(cls, point_values: Optional[List[int]] = None, name: str = 'New Category') -> 'Category':
        """One empty question per point tier."""
        tiers = point_values or DEFAULT_POINT_VALUES
        return cls(
            id=new_id(),
            name=name,
            questions=[Question(id=new_id(), question='', answer='', points=p) for p in tiers],
        )

    def copy_fresh(self) -> 'Category':
        return Category(id=new_id(), name=self.name, questions=[q.copy_fresh() for q in self.questions])

    def check_tiers(self, point_values: Optional[List[int]] = None) -> 'Category':
        """Require exactly one question per point tier."""
        tiers = sorted(point_values or DEFAULT_POINT_VALUES)
        points = sorted(q.points for q in self.questions)
        if points != tiers:
            raise InvalidPayload(f"Category {self.name!r} needs one question per tier {tiers}, got {points}")
        return self


@dataclass
class Player:
    id: str
    name: str
    score: int = 0
    connected: bool = True
    session_token: Optional[str] = None

    def to_dict(self, include_private: bool = False) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'connected': self.connected,
        }
        if include_private:
            data['sessionToken'] = self.session_token
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Player':
        return cls(
            id=data['id'],
            name=data.get('name') or '',
            score=int(data.get('score') or 0),
            connected=bool(data.get('connected', False)),
            session_token=data.get('sessionToken'),
        )


@dataclass
class BuzzerEvent:
    player_id: str
    player_name: str
    timestamp: float
    rank: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'playerId': self.player_id,
            'playerName': self.player_name,
            'timestamp': self.timestamp,
            'rank': self.rank,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BuzzerEvent':
        return cls(
            player_id=data['playerId'],
            player_name=data.get('playerName') or '',
            timestamp=data['timestamp'],
            rank=int(data.get('rank') or 0),
        )


@dataclass
class GameSettings:
    allow_negative: bool = True
    buzzer_lockout_ms: int = 250
    show_answer_to_all: bool = True
    daily_double_count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'allowNegative': self.allow_negative,
            'buzzerLockoutMs': self.buzzer_lockout_ms,
            'showAnswerToAll': self.show_answer_to_all,
            'dailyDoubleCount': self.daily_double_count,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], defaults: Optional['GameSettings'] = None) -> 'GameSettings':
        base = defaults or cls()
        data = data or {}
        return cls(
            allow_negative=bool(data.get('allowNegative', base.allow_negative)),
            buzzer_lockout_ms=_as_int(data.get('buzzerLockoutMs', base.buzzer_lockout_ms), 'buzzerLockoutMs'),
            show_answer_to_all=bool(data.get('showAnswerToAll', base.show_answer_to_all)),
            daily_double_count=_as_int(data.get('dailyDoubleCount', base.daily_double_count), 'dailyDoubleCount'),
        )


@dataclass
class Game:
    id: str
    access_code: str
    name: str = 'New Game'
    categories: List[Category] = field(default_factory=list)
    players: List[Player] = field(default_factory=list)
    current_category: Optional[Category] = None
    current_question: Optional[Question] = None
    buzzer_active: bool = False
    buzzer_queue: List[BuzzerEvent] = field(default_factory=list)
    phase: str = PHASE_LOBBY
    created_at: str = field(default_factory=utcnow_iso)
    settings: GameSettings = field(default_factory=GameSettings)
    # Bumped whenever the buzzer is (re)armed or the current question is cleared.
    # Not part of the snapshot.
    buzzer_generation: int = 0

    def find_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def find_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def find_player_by_name(self, name: str) -> Optional[Player]:
        return next((p for p in self.players if p.name == name), None)

    def find_player_by_token(self, token: str) -> Optional[Player]:
        if not token:
            return None
        return next((p for p in self.players if p.session_token == token), None)

    def iter_questions(self):
        for category in self.categories:
            for question in category.questions:
                yield question

    def queue_dicts(self) -> List[Dict[str, Any]]:
        return [b.to_dict() for b in self.buzzer_queue]

    def to_dict(self, include_private: bool = False) -> Dict[str, Any]:
        return {
            'id': self.id,
            'accessCode': self.access_code,
            'name': self.name,
            'categories': [c.to_dict() for c in self.categories],
            'players': [p.to_dict(include_private=include_private) for p in self.players],
            'currentQuestion': self.current_question.to_dict() if self.current_question else None,
            'currentCategory': self.current_category.to_dict() if self.current_category else None,
            'buzzerActive': self.buzzer_active,
            'buzzerQueue': self.queue_dicts(),
            'phase': self.phase,
            'createdAt': self.created_at,
            'settings': self.settings.to_dict(),
        }

    def to_record(self) -> Dict[str, Any]:
        return self.to_dict(include_private=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Game':
        categories = [Category.from_dict(c) for c in data.get('categories') or []]
        game = cls(
            id=data['id'],
            access_code=data['accessCode'],
            name=data.get('name') or 'New Game',
            categories=categories,
            players=[Player.from_dict(p) for p in data.get('players') or []],
            buzzer_active=bool(data.get('buzzerActive', False)),
            buzzer_queue=[BuzzerEvent.from_dict(b) for b in data.get('buzzerQueue') or []],
            phase=data.get('phase') if data.get('phase') in PHASES else PHASE_LOBBY,
            created_at=data.get('createdAt') or utcnow_iso(),
            settings=GameSettings.from_dict(data.get('settings')),
        )
        # Re-link the live question to the board copy so answered flags stay shared
        current_q = data.get('currentQuestion')
        current_c = data.get('currentCategory')
        if current_c:
            game.current_category = game.find_category(current_c.get('id')) or Category.from_dict(current_c)
        if current_q:
            linked = None
            if game.current_category:
                linked = game.current_category.find_question(current_q.get('id'))
            game.current_question = linked or Question.from_dict(current_q)
        return game


@dataclass
class GameTemplate:
    id: str
    name: str = 'New Template'
    categories: List[Category] = field(default_factory=list)
    created_at: str = field(default_factory=utcnow_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'categories': [c.to_dict(include_state=False) for c in self.categories],
            'createdAt': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameTemplate':
        return cls(
            id=data.get('id') or new_id(),
            name=data.get('name') or 'New Template',
            categories=[Category.from_dict(c) for c in data.get('categories') or []],
            created_at=data.get('createdAt') or utcnow_iso(),
        )


def new_game(access_code: str, name: Optional[str] = None, settings: Optional[GameSettings] = None,
             template: Optional[GameTemplate] = None) -> Game:
    """Create a lobby-phase game, optionally cloning a template's board.

    Template categories and questions are copied with fresh ids and every
    question starts unanswered; the template itself is never referenced again.
    """
    categories = [c.copy_fresh() for c in template.categories] if template else []
    return Game(
        id=new_id(),
        access_code=access_code,
        name=name or 'New Game',
        categories=categories,
        settings=settings or GameSettings(),
    )
