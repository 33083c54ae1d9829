from flask import Blueprint, jsonify, request

from scoregate import get_protocol
from scoregate.services.integrity import InputError

leaderboard = Blueprint('leaderboard', __name__)


@leaderboard.route('/leaderboard', methods=['GET'])
def get_leaderboard():
    """Top players by highest score, ranked from 1."""
    limit = request.args.get('limit', type=int)
    if limit is not None and limit < 0:
        raise InputError('limit must be non-negative')
    records = get_protocol().top(limit)
    return jsonify([
        {'rank': i, 'playerIdentity': r.player_identity, 'highestScore': r.highest_score}
        for i, r in enumerate(records, start=1)
    ])


@leaderboard.route('/user/score', methods=['GET'])
def get_user_score():
    player_identity = request.args.get('playerIdentity')
    return jsonify({'highestScore': get_protocol().highest_score(player_identity)})
