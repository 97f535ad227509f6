"""
Player API Endpoints

Signup, lookup, profile binding, address binding, ledger and check-in history,
leaderboard and rank.
"""

from flask import Blueprint, request, jsonify

from ..models.player import Chain
from ..services.checkin_service import CheckinService
from ..services.identity_service import IdentityService
from ..services.player_service import PlayerService
from ..utils.errors import ErrorCode, bad_request, exception_response, result_error_response
from ..utils.exceptions import RewardsError

players_bp = Blueprint('players', __name__)


@players_bp.errorhandler(RewardsError)
def handle_rewards_error(error):
    return exception_response(error)


@players_bp.route('/player', methods=['POST'])
def signup():
    """
    Register a wallet.

    Body: {chain?, walletAddress, email?, username?}
    """
    data = request.get_json(silent=True)
    if not data:
        return bad_request('No data provided')

    wallet_address = data.get('walletAddress')
    if not wallet_address:
        return bad_request('Wallet address is required', ErrorCode.MISSING_FIELD)

    result = PlayerService().signup(
        data.get('chain') or Chain.EVM.value,
        wallet_address,
        email=data.get('email') or None,
        username=data.get('username'),
    )

    if not result.get('success'):
        return result_error_response(result)

    return jsonify(result), 201 if result['created'] else 200


@players_bp.route('/player', methods=['GET'])
def get_player():
    """Look up a player by wallet. Query: walletAddress, chain (default evm)."""
    wallet_address = request.args.get('walletAddress') or request.args.get('address')
    if not wallet_address:
        return bad_request('Wallet address is required', ErrorCode.MISSING_FIELD)

    result = PlayerService().get_player(request.args.get('chain') or Chain.EVM.value, wallet_address)
    if not result.get('success'):
        return result_error_response(result)

    return jsonify(result)


@players_bp.route('/player/rank', methods=['GET'])
def get_rank():
    """Leaderboard rank for a wallet. Query: walletAddress, chain (default evm)."""
    wallet_address = request.args.get('walletAddress') or request.args.get('address')
    if not wallet_address:
        return bad_request('Wallet address is required', ErrorCode.MISSING_FIELD)

    result = PlayerService().get_rank(request.args.get('chain') or Chain.EVM.value, wallet_address)
    if not result.get('success'):
        return result_error_response(result)

    return jsonify(result)


@players_bp.route('/player/<int:player_id>/profile', methods=['PATCH'])
def update_profile(player_id):
    """Bind an email and/or set a username. Body: {email?, username?}"""
    data = request.get_json(silent=True)
    if not data:
        return bad_request('No data provided')

    result = PlayerService().update_profile(player_id, data)
    if not result.get('success'):
        return result_error_response(result)

    return jsonify(result)


@players_bp.route('/player/<int:player_id>/addresses', methods=['POST'])
def bind_address(player_id):
    """Link another chain's wallet. Body: {chain, walletAddress}"""
    data = request.get_json(silent=True)
    if not data:
        return bad_request('No data provided')

    if not data.get('chain') or not data.get('walletAddress'):
        return bad_request('chain and walletAddress are required', ErrorCode.MISSING_FIELD)

    player = IdentityService().bind_address(player_id, data['chain'], data['walletAddress'])

    return jsonify({
        'success': True,
        'player': player.to_dict(),
    })


@players_bp.route('/player/<int:player_id>/ledger', methods=['GET'])
def get_ledger(player_id):
    """Balance and ledger entries, newest first."""
    limit = min(request.args.get('limit', 50, type=int), 200)
    offset = max(request.args.get('offset', 0, type=int), 0)

    result = PlayerService().get_ledger(player_id, limit=limit, offset=offset)
    if not result.get('success'):
        return result_error_response(result)

    return jsonify(result)


@players_bp.route('/player/<int:player_id>/checkins', methods=['GET'])
def recent_checkins(player_id):
    """Most recent check-ins for a player."""
    limit = min(request.args.get('limit', 20, type=int), 100)

    player = IdentityService().get_player(player_id)
    events = CheckinService().recent_checkins(player.id, limit=max(limit, 1))

    return jsonify({
        'success': True,
        'player_id': player.id,
        'checkins': [e.to_dict() for e in events],
    })


@players_bp.route('/leaderboard', methods=['GET'])
def leaderboard():
    """
    Players ranked by balance.

    Query: limit (default 50, max 100), offset, page (1-based, overrides
    offset), playerId (stats for one player instead of the list)
    """
    service = PlayerService()

    player_id = request.args.get('playerId', type=int)
    if player_id is not None:
        result = service.get_player_stats(player_id)
        if not result.get('success'):
            return result_error_response(result)
        return jsonify(result)

    limit = max(min(request.args.get('limit', 50, type=int), 100), 1)
    offset = max(request.args.get('offset', 0, type=int), 0)

    page = request.args.get('page', type=int)
    if page is not None:
        if page < 1:
            return bad_request('page must be at least 1')
        offset = (page - 1) * limit

    return jsonify(service.leaderboard(limit=limit, offset=offset))
