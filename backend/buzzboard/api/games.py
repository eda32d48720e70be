from flask import Blueprint, jsonify, request, current_app
from buzzboard.services.games import get_game_table, get_store
from buzzboard.services.games import state_machine as sm
from buzzboard.services.games.board import GameSettings, GameTemplate, PHASE_FINISHED, new_game
from buzzboard.services.games.errors import GameNotFound, TemplateNotFound
from buzzboard.store import generate_access_code


games = Blueprint('games', __name__)


def _default_settings() -> GameSettings:
    cfg = current_app.config
    return GameSettings(
        allow_negative=bool(cfg.get('DEFAULT_ALLOW_NEGATIVE', True)),
        buzzer_lockout_ms=int(cfg.get('DEFAULT_BUZZER_LOCKOUT_MS', 250)),
        daily_double_count=int(cfg.get('DEFAULT_DAILY_DOUBLE_COUNT', 1)),
    )


def _new_access_code(table) -> str:
    cfg = current_app.config
    return generate_access_code(
        table.access_code_taken,
        length=int(cfg.get('ACCESS_CODE_LENGTH', 6)),
        max_attempts=int(cfg.get('ACCESS_CODE_MAX_ATTEMPTS', 20)),
        fallback_length=int(cfg.get('ACCESS_CODE_FALLBACK_LENGTH', 8)),
    )


@games.route('', methods=['GET'])
def list_games():
    return jsonify(get_game_table().all_snapshots())


@games.route('', methods=['POST'])
def create_game():
    """
    Creates a lobby-phase game, optionally cloned from a template.
    """
    data = request.get_json(silent=True) or {}
    template = None
    template_id = data.get('templateId')
    if template_id:
        record = get_store().get_template(template_id)
        if record is None:
            raise TemplateNotFound(template_id)
        template = GameTemplate.from_dict(record)

    table = get_game_table()
    settings = GameSettings.from_dict(data.get('settings'), defaults=_default_settings())
    game = new_game(_new_access_code(table), name=data.get('name'), settings=settings, template=template)
    table.add(game)
    return jsonify(game.to_dict()), 201


@games.route('/join', methods=['GET'])
def join_by_code():
    """
    Resolves a human access code to a game id.
    """
    code = request.args.get('code')
    if not code:
        return jsonify({'error': 'Access code required'}), 400
    try:
        game = get_game_table().find_by_access_code(code)
    except GameNotFound:
        return jsonify({'error': 'Game not found'}), 404
    if game.phase == PHASE_FINISHED:
        return jsonify({'error': 'Game has ended'}), 400
    return jsonify({'gameId': game.id})


@games.route('/<string:game_id>', methods=['GET'])
def get_game(game_id):
    return jsonify(get_game_table().snapshot(game_id))


@games.route('/<string:game_id>', methods=['PUT'])
def update_game(game_id):
    """
    Edits the board: name, settings and categories.
    """
    data = request.get_json(silent=True) or {}
    max_categories = int(current_app.config.get('MAX_CATEGORIES', 6))
    point_values = list(current_app.config.get('POINT_VALUES') or [])
    table = get_game_table()
    table.apply(game_id, sm.update_board, data, max_categories, point_values)
    return jsonify(table.snapshot(game_id))


@games.route('/<string:game_id>', methods=['DELETE'])
def delete_game(game_id):
    get_game_table().delete(game_id)
    return jsonify({'success': True})


def _transition(game_id, transition, *args):
    table = get_game_table()
    table.apply(game_id, transition, *args)
    return jsonify(table.snapshot(game_id))


@games.route('/<string:game_id>/start', methods=['POST'])
def start_game(game_id):
    return _transition(game_id, sm.start_game)


@games.route('/<string:game_id>/end', methods=['POST'])
def end_game(game_id):
    return _transition(game_id, sm.end_game)


@games.route('/<string:game_id>/reset', methods=['POST'])
def reset_game(game_id):
    return _transition(game_id, sm.reset_game)


@games.route('/<string:game_id>/categories', methods=['POST'])
def add_category(game_id):
    """
    Appends a blank category with one empty question per point tier.
    """
    data = request.get_json(silent=True) or {}
    cfg = current_app.config
    category = get_game_table().apply(
        game_id,
        sm.add_category,
        int(cfg.get('MAX_CATEGORIES', 6)),
        list(cfg.get('POINT_VALUES') or []),
        data.get('name') or 'New Category',
    )
    return jsonify(category.to_dict()), 201


@games.route('/<string:game_id>/categories/<string:category_id>', methods=['DELETE'])
def delete_category(game_id, category_id):
    return _transition(game_id, sm.delete_category, category_id)


@games.route('/<string:game_id>/players/<string:player_id>/score', methods=['POST'])
def adjust_score(game_id, player_id):
    data = request.get_json(silent=True) or {}
    try:
        adjustment = int(data.get('adjustment'))
    except (TypeError, ValueError):
        return jsonify({'error': 'adjustment must be an integer'}), 400
    return _transition(game_id, sm.adjust_score, player_id, adjustment)


@games.route('/<string:game_id>/players/<string:player_id>', methods=['DELETE'])
def remove_player(game_id, player_id):
    return _transition(game_id, sm.remove_player, player_id)
