from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Per-app live state: authoritative game table, connection sessions, durable store
    from buzzboard.store import GameRecordStore
    from buzzboard.services.games.sessions import SessionRegistry
    from buzzboard.services.games.table import GameTable
    store = GameRecordStore()
    flask_app.extensions['buzzboard'] = {
        'store': store,
        'table': GameTable(flask_app, store),
        'sessions': SessionRegistry(),
    }

    # Import and register blueprints here
    from buzzboard.main import main
    flask_app.register_blueprint(main)

    from buzzboard.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from buzzboard.api.templates import templates
    flask_app.register_blueprint(templates, url_prefix='/api/templates')

    # Register Socket.IO event handlers
    from buzzboard.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with a sample template."""
        from buzzboard.services.games.board import Category, GameTemplate, Question, new_id
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            points = flask_app.config.get('POINT_VALUES') or [100, 200, 300, 400, 500]
            science = Category(id=new_id(), name='Science', questions=[
                Question(id=new_id(), question=f'Science clue for {p}', answer=f'Science answer {p}', points=p)
                for p in points
            ])
            template = GameTemplate(id=new_id(), name='Sample Board', categories=[science])
            store.put_template(template.to_dict())
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
