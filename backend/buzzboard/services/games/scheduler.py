from typing import Set, Tuple

from buzzboard import socketio
from .errors import GameNotFound, InvalidTransition
from .state_machine import close_buzzer_window


_scheduled_windows: Set[Tuple[str, str, int]] = set()


def schedule_buzzer_window(app, table, game_id: str, question_id: str, generation: int) -> bool:
    """Close the buzzer BUZZER_WINDOW_SEC after it was armed.

    - No-ops when the window is 0 or in TESTING (unless ENABLE_SCHEDULER_IN_TESTS)
    - One timer per (game, question, buzzer generation)
    - Re-arming the buzzer or leaving the question bumps the generation, so
      the timer aborts when it wakes
    """
    delay = float(app.config.get('BUZZER_WINDOW_SEC', 0) or 0)
    if delay <= 0:
        return False
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return False
    if not question_id:
        return False

    key = (game_id, question_id, generation)
    if key in _scheduled_windows:
        app.logger.info(f"[timer-skip] game={game_id} question={question_id} gen={generation} already scheduled")
        return False
    _scheduled_windows.add(key)
    app.logger.info(f"[timer-set] game={game_id} question={question_id} gen={generation} window={delay}s")

    def _worker():
        socketio.sleep(delay)
        _scheduled_windows.discard(key)
        with app.app_context():
            try:
                table.apply(game_id, close_buzzer_window, question_id, generation)
            except (InvalidTransition, GameNotFound):
                app.logger.info(f"[timer-abort] game={game_id} question={question_id} gen={generation} stale")
                return
            app.logger.info(f"[timer-fire] game={game_id} question={question_id} buzzer closed")

    socketio.start_background_task(_worker)
    return True
