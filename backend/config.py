import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///buzzboard.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173'
    ).split(',') if o.strip()]
    # Access codes: unambiguous alphabet, bounded retries then a longer code
    ACCESS_CODE_LENGTH = int(os.environ.get('ACCESS_CODE_LENGTH', '6'))
    ACCESS_CODE_MAX_ATTEMPTS = int(os.environ.get('ACCESS_CODE_MAX_ATTEMPTS', '20'))
    ACCESS_CODE_FALLBACK_LENGTH = int(os.environ.get('ACCESS_CODE_FALLBACK_LENGTH', '8'))
    # Board shape
    MAX_CATEGORIES = int(os.environ.get('MAX_CATEGORIES', '6'))
    POINT_VALUES = [int(v) for v in os.environ.get('POINT_VALUES', '100,200,300,400,500').split(',')]
    # Reconnect by display name when no session token is presented
    ALLOW_NAME_RECONNECT = os.environ.get('ALLOW_NAME_RECONNECT', '1') not in ('0', 'false', 'False')
    # Optional: close the buzzer this many seconds after activation. 0 disables.
    BUZZER_WINDOW_SEC = float(os.environ.get('BUZZER_WINDOW_SEC', '0'))
    # Write snapshots inline instead of on a background task
    PERSIST_SYNC = os.environ.get('PERSIST_SYNC', '0') in ('1', 'true', 'True')
    # Defaults for new games
    DEFAULT_ALLOW_NEGATIVE = os.environ.get('DEFAULT_ALLOW_NEGATIVE', '1') not in ('0', 'false', 'False')
    DEFAULT_BUZZER_LOCKOUT_MS = int(os.environ.get('DEFAULT_BUZZER_LOCKOUT_MS', '250'))
    DEFAULT_DAILY_DOUBLE_COUNT = int(os.environ.get('DEFAULT_DAILY_DOUBLE_COUNT', '1'))
