"""
Check-in API Endpoints

Player-facing check-in and today's check-in status.
"""

from flask import Blueprint, request, jsonify

from ..models.player import Chain
from ..schemas import parse_checkin_request
from ..services.checkin_service import CheckinService
from ..utils.errors import ErrorCode, bad_request, exception_response, result_error_response
from ..utils.exceptions import RewardsError

checkin_bp = Blueprint('checkin', __name__)


@checkin_bp.errorhandler(RewardsError)
def handle_rewards_error(error):
    return exception_response(error)


@checkin_bp.route('/checkin', methods=['POST'])
def check_in():
    """
    Check in at a checkpoint.

    Body: {walletAddress, email?, checkpoint} (EVM) or
          {chain, walletAddress, email?, checkpoint}
    """
    data = request.get_json(silent=True)
    if data is None:
        return bad_request('Request body must be JSON')

    checkin = parse_checkin_request(data)

    result = CheckinService().check_in(
        checkin.chain,
        checkin.wallet_address,
        checkin.checkpoint,
        email=checkin.email,
    )

    if not result.get('success'):
        return result_error_response(result)

    return jsonify({
        'success': True,
        'data': {
            'player': result['player'],
            'pointsAwarded': result['pointsAwarded'],
            'pointsEarnedToday': result['pointsEarnedToday'],
            'dailyRewardClaimed': result['dailyRewardClaimed'],
            'streakDayIndex': result['streakDayIndex'],
            'checkpointActivityId': result['checkpointActivityId'],
        },
        'message': result['message'],
    })


@checkin_bp.route('/checkin-status', methods=['GET'])
def checkin_status():
    """
    Today's check-in state for a wallet.

    Query: address (required), checkpoint (required), chain (default evm)
    """
    address = request.args.get('address') or request.args.get('walletAddress')
    checkpoint = request.args.get('checkpoint')
    chain = request.args.get('chain') or Chain.EVM.value

    if not address:
        return bad_request('Address parameter is required', ErrorCode.MISSING_FIELD)
    if not checkpoint:
        return bad_request('Checkpoint parameter is required', ErrorCode.MISSING_FIELD)

    result = CheckinService().checkin_status(chain, address, checkpoint)
    if not result.get('success'):
        return result_error_response(result)

    data = {k: v for k, v in result.items() if k != 'success'}
    return jsonify({'success': True, 'data': data})
