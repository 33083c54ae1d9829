from flask import Blueprint, jsonify, request

from scoregate import get_protocol
from scoregate.services.integrity import InputError, PlayTrace
from scoregate.services.integrity.validator import is_finite

game = Blueprint('game', __name__)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_trace(raw) -> PlayTrace:
    if not isinstance(raw, dict):
        raise InputError()
    seed = raw.get('seed')
    events = raw.get('inputEvents')
    elapsed = raw.get('elapsedMillis')
    cleared = raw.get('obstaclesCleared')
    if not isinstance(seed, str) or not isinstance(events, list):
        raise InputError()
    if not all(_is_number(t) and is_finite(t) for t in events):
        raise InputError('Input events must be finite numeric timestamps')
    if not _is_number(elapsed) or not is_finite(elapsed) or not _is_int(cleared):
        raise InputError()
    return PlayTrace.build(seed, events, elapsed, cleared)


@game.route('/start', methods=['POST'])
def start_session():
    """Issue a session token and the seed the client lays out obstacles with."""
    data = request.get_json(silent=True) or {}
    session = get_protocol().start(data.get('playerIdentity'))
    return jsonify({'token': session.token, 'seed': session.seed})


@game.route('/submit', methods=['POST'])
def submit_score():
    data = request.get_json(silent=True) or {}
    token = data.get('token')
    player_identity = data.get('playerIdentity')
    device_id = data.get('playerDeviceId')
    score = data.get('score')
    raw_trace = data.get('trace')

    if not all([token, player_identity, device_id, raw_trace]) or not _is_number(score):
        raise InputError()
    if not isinstance(token, str) or not isinstance(player_identity, str) or not isinstance(device_id, str):
        raise InputError()
    if not _is_int(score) or score < 0:
        raise InputError('Invalid score')

    result = get_protocol().submit(
        token,
        score,
        _parse_trace(raw_trace),
        player_identity=player_identity,
        device_id=device_id,
    )
    return jsonify({'accepted': result.accepted, 'isNewHighScore': result.is_new_high_score})
