from flask import Blueprint, jsonify, request, current_app
from buzzboard.services.games import get_store
from buzzboard.services.games.board import GameTemplate, new_id
from buzzboard.services.games.errors import BoardFull, TemplateNotFound


templates = Blueprint('templates', __name__)


def _checked(template: GameTemplate) -> GameTemplate:
    max_categories = int(current_app.config.get('MAX_CATEGORIES', 6))
    if len(template.categories) > max_categories:
        raise BoardFull(f"at most {max_categories} categories")
    point_values = list(current_app.config.get('POINT_VALUES') or [])
    for category in template.categories:
        category.check_tiers(point_values)
    return template


@templates.route('', methods=['GET'])
def list_templates():
    return jsonify(get_store().list_templates())


@templates.route('', methods=['POST'])
def create_template():
    data = request.get_json(silent=True) or {}
    template = _checked(GameTemplate.from_dict({
        'id': new_id(),
        'name': data.get('name'),
        'categories': data.get('categories') or [],
    }))
    get_store().put_template(template.to_dict())
    return jsonify(template.to_dict()), 201


@templates.route('/<string:template_id>', methods=['GET'])
def get_template(template_id):
    record = get_store().get_template(template_id)
    if record is None:
        raise TemplateNotFound(template_id)
    return jsonify(record)


@templates.route('/<string:template_id>', methods=['PUT'])
def update_template(template_id):
    data = request.get_json(silent=True) or {}
    store = get_store()
    existing = store.get_template(template_id)
    if existing is None:
        raise TemplateNotFound(template_id)
    merged = {**existing, **data, 'id': template_id, 'createdAt': existing.get('createdAt')}
    template = _checked(GameTemplate.from_dict(merged))
    store.put_template(template.to_dict())
    return jsonify(template.to_dict())


@templates.route('/<string:template_id>', methods=['DELETE'])
def delete_template(template_id):
    if not get_store().delete_template(template_id):
        raise TemplateNotFound(template_id)
    return jsonify({'success': True})
