"""Durable game/template store backed by SQLAlchemy.

Records are plain dicts in the wire shape (``Game.to_record()`` /
``GameTemplate.to_dict()``); the store knows nothing about game rules.
"""
import random
from typing import Any, Callable, Dict, List, Optional

from buzzboard import db
from buzzboard.models import GameRecord, TemplateRecord
from buzzboard.services.games.errors import AccessCodeExhausted

# No 0/O or 1/I
ACCESS_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'


def generate_access_code(exists: Callable[[str], bool], length: int = 6, max_attempts: int = 20,
                         fallback_length: int = 8, rng: Optional[random.Random] = None) -> str:
    """Generate a code that ``exists`` does not know about.

    Tries ``max_attempts`` codes of ``length`` characters, then the same
    number at ``fallback_length``, then gives up.
    """
    rng = rng or random.SystemRandom()
    for size in (length, fallback_length):
        for _ in range(max_attempts):
            code = ''.join(rng.choice(ACCESS_CODE_ALPHABET) for _ in range(size))
            if not exists(code):
                return code
    raise AccessCodeExhausted(f"no free access code after {2 * max_attempts} attempts")


def _fresh(query):
    # Rows may have been rewritten by another app context's session
    return query.execution_options(populate_existing=True)


class GameRecordStore:

    # ---- games ----
    def get_game(self, game_id: str) -> Optional[Dict[str, Any]]:
        row = db.session.get(GameRecord, game_id, populate_existing=True)
        return row.to_dict() if row else None

    def get_game_by_access_code(self, code: str) -> Optional[Dict[str, Any]]:
        if not code:
            return None
        row = _fresh(GameRecord.query.filter_by(access_code=code.strip().upper())).first()
        return row.to_dict() if row else None

    def access_code_exists(self, code: str) -> bool:
        return GameRecord.query.filter_by(access_code=code.upper()).first() is not None

    def list_games(self) -> List[Dict[str, Any]]:
        return [row.to_dict() for row in _fresh(GameRecord.query.order_by(GameRecord.created_at)).all()]

    def put_game(self, record: Dict[str, Any]) -> None:
        row = db.session.get(GameRecord, record['id'], populate_existing=True)
        if row is None:
            row = GameRecord(id=record['id'])
            db.session.add(row)
        row.apply(record)
        db.session.commit()

    def delete_game(self, game_id: str) -> bool:
        row = db.session.get(GameRecord, game_id, populate_existing=True)
        if row is None:
            return False
        db.session.delete(row)
        db.session.commit()
        return True

    # ---- templates ----
    def get_template(self, template_id: str) -> Optional[Dict[str, Any]]:
        row = db.session.get(TemplateRecord, template_id, populate_existing=True)
        return row.to_dict() if row else None

    def list_templates(self) -> List[Dict[str, Any]]:
        return [row.to_dict() for row in _fresh(TemplateRecord.query.order_by(TemplateRecord.created_at)).all()]

    def put_template(self, record: Dict[str, Any]) -> None:
        row = db.session.get(TemplateRecord, record['id'], populate_existing=True)
        if row is None:
            row = TemplateRecord(id=record['id'])
            db.session.add(row)
        row.apply(record)
        db.session.commit()

    def delete_template(self, template_id: str) -> bool:
        row = db.session.get(TemplateRecord, template_id, populate_existing=True)
        if row is None:
            return False
        db.session.delete(row)
        db.session.commit()
        return True
