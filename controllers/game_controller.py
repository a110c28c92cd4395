from flask import Blueprint, request, jsonify, current_app, g

from controllers.decorators import token_required
from services.game_service import GameService
from services.utils import parse_int

game_bp = Blueprint('games', __name__)


@game_bp.route('/games', methods=['POST'])
@token_required
def host_game():
    data = request.get_json(silent=True) or {}
    game = GameService.host_game(g.current_user.id, data)
    return jsonify({
        'success': True,
        'message': 'Game hosted successfully',
        'game': game.to_dict(),
    }), 201


@game_bp.route('/games/<game_id>', methods=['GET'])
@token_required
def get_game(game_id):
    game = GameService.get_game(game_id)
    return jsonify({'success': True, 'game': game.to_dict()}), 200


@game_bp.route('/games/<game_id>/join', methods=['POST'])
@token_required
def request_join(game_id):
    game = GameService.request_join(game_id, g.current_user.id)
    return jsonify({
        'success': True,
        'message': 'Join request sent',
        'game': game.to_dict(),
    }), 200


@game_bp.route('/games/<game_id>/requests/<user_id>/approve', methods=['POST'])
@token_required
def approve_join(game_id, user_id):
    game = GameService.approve_join(game_id, g.current_user.id, parse_int(user_id, 'userId'))
    return jsonify({
        'success': True,
        'message': 'Player approved',
        'game': game.to_dict(),
    }), 200


@game_bp.route('/games/<game_id>/requests/<user_id>/reject', methods=['POST'])
@token_required
def reject_join(game_id, user_id):
    game = GameService.reject_join(game_id, g.current_user.id, parse_int(user_id, 'userId'))
    return jsonify({
        'success': True,
        'message': 'Join request rejected',
        'game': game.to_dict(),
    }), 200


@game_bp.route('/games/<game_id>/leave', methods=['POST'])
@token_required
def leave_game(game_id):
    game = GameService.leave_game(game_id, g.current_user.id)
    return jsonify({
        'success': True,
        'message': 'You have left the game',
        'status': game.status,
    }), 200


@game_bp.route('/games/<game_id>/cancel', methods=['POST'])
@token_required
def cancel_game(game_id):
    GameService.cancel_game(game_id, g.current_user.id)
    current_app.logger.debug(f"Cancel request for game {game_id} completed")
    return jsonify({'success': True, 'message': 'Game cancelled successfully'}), 200
