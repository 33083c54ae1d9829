from flask_socketio import join_room, leave_room, emit
from scoregate import socketio

LEADERBOARD_ROOM = 'leaderboard'


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_leaderboard(data=None):
    join_room(LEADERBOARD_ROOM)
    emit('joined', {'room': LEADERBOARD_ROOM})


def handle_leave_leaderboard(data=None):
    leave_room(LEADERBOARD_ROOM)
    emit('left', {'room': LEADERBOARD_ROOM})


def handle_ping(data):
    emit('pong', data or {})


def broadcast_score_accepted(result) -> None:
    """Push an accepted submission to everyone watching the leaderboard."""
    record = result.record
    socketio.emit('leaderboard_update', {
        'playerIdentity': record.player_identity,
        'highestScore': record.highest_score,
        'lastScore': record.last_score,
        'isNewHighScore': result.is_new_high_score,
    }, to=LEADERBOARD_ROOM, namespace='/ws')


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'join_leaderboard': handle_join_leaderboard,
        'leave_leaderboard': handle_leave_leaderboard,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
