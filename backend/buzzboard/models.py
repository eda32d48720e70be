from buzzboard import db
from datetime import datetime, timezone
import json


def _utcnow():
    return datetime.now(timezone.utc)


class GameRecord(db.Model):
    """Durable copy of a game snapshot. The payload is the full record JSON."""
    __tablename__ = 'game_record'
    id = db.Column(db.String(36), primary_key=True)
    access_code = db.Column(db.String(16), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False, default='New Game')
    phase = db.Column(db.String(16), nullable=False, default='lobby')
    payload = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return json.loads(self.payload)

    def apply(self, record):
        self.access_code = record['accessCode'].upper()
        self.name = record.get('name') or 'New Game'
        self.phase = record.get('phase') or 'lobby'
        self.payload = json.dumps(record)


class TemplateRecord(db.Model):
    __tablename__ = 'game_template'
    id = db.Column(db.String(36), primary_key=True)
    name = db.Column(db.String(128), nullable=False, default='New Template')
    payload = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return json.loads(self.payload)

    def apply(self, record):
        self.name = record.get('name') or 'New Template'
        self.payload = json.dumps(record)
