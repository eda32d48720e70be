from flask import Blueprint, jsonify, current_app
from buzzboard.services.games.errors import (
    AccessCodeExhausted,
    InvalidPayload,
    InvalidTransition,
    NotFound,
)

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Buzzboard trivia server!'})

@main.route('/health')
def health_check():
    return jsonify({'status': 'ok', 'service': 'buzzboard'})

# ---- Domain errors -> JSON responses ----

@main.app_errorhandler(NotFound)
def handle_not_found(exc):
    return jsonify({'error': exc.message}), 404

@main.app_errorhandler(InvalidTransition)
def handle_invalid_transition(exc):
    current_app.logger.info(f"[rejected] {exc}")
    return jsonify({'error': str(exc)}), 400

@main.app_errorhandler(InvalidPayload)
def handle_invalid_payload(exc):
    return jsonify({'error': str(exc)}), 400

@main.app_errorhandler(AccessCodeExhausted)
def handle_access_code_exhausted(exc):
    current_app.logger.error(f"[access-code] {exc}")
    return jsonify({'error': 'Could not allocate an access code, try again'}), 503
