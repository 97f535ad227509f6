"""
Admin API Endpoints

Bulk points upload, pending points visibility and checkpoint management.
All routes require an admin email in the X-User-Email header.
"""

from flask import Blueprint, request, jsonify, g, Response, current_app

from ..middleware.admin_auth import require_admin
from ..services.bulk_award_service import BulkAwardService, CSV_TEMPLATE, parse_csv
from ..services.checkpoint_service import CheckpointService
from ..services.pending_points_service import PendingPointsService
from ..utils.errors import ErrorCode, bad_request, exception_response
from ..utils.exceptions import RewardsError

admin_bp = Blueprint('admin', __name__)


@admin_bp.errorhandler(RewardsError)
def handle_rewards_error(error):
    return exception_response(error)


def _paging(default_limit: int, max_limit: int = 500):
    limit = request.args.get('limit', default_limit, type=int)
    offset = request.args.get('offset', 0, type=int)
    return max(min(limit, max_limit), 1), max(offset, 0)


# ==================== Points upload ====================

@admin_bp.route('/points-upload', methods=['POST'])
@require_admin
def upload_points():
    """
    Award points from a CSV file (multipart field "file").

    Columns: email, reason, points
    """
    if 'file' not in request.files:
        return bad_request('No file provided', ErrorCode.MISSING_FIELD)

    file = request.files['file']
    if not file.filename or not file.filename.lower().endswith('.csv'):
        return bad_request('File must be a CSV')

    try:
        content = file.read().decode('utf-8')
    except UnicodeDecodeError:
        return bad_request('CSV file must be UTF-8 encoded')

    rows = parse_csv(content)

    current_app.logger.info(f"Points upload of {len(rows)} rows by {g.admin_email}")
    result = BulkAwardService().process_upload(rows, g.admin_email)

    return jsonify(result)


@admin_bp.route('/points-upload', methods=['GET'])
@require_admin
def upload_history():
    """Per-batch summaries and recent upload rows."""
    limit, offset = _paging(50)
    return jsonify(BulkAwardService().upload_history(limit=limit, offset=offset))


@admin_bp.route('/points-upload/template', methods=['GET'])
@require_admin
def upload_template():
    """Example CSV for admins to fill in."""
    return Response(
        CSV_TEMPLATE,
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename=points_upload_template.csv'},
    )


# ==================== Pending points ====================

@admin_bp.route('/pending-points', methods=['GET'])
@require_admin
def list_pending_points():
    """
    Pending grants and the per-email summary.

    Query: showAwarded (true/false), limit (default 100), offset,
    email (only that email's unawarded grants)
    """
    service = PendingPointsService()

    if request.args.get('email'):
        return jsonify(service.get_pending_for_email(request.args['email']))

    limit, offset = _paging(100)
    show_awarded = request.args.get('showAwarded', 'false').lower() == 'true'

    entries = service.list_entries(show_awarded=show_awarded, limit=limit, offset=offset)

    return jsonify({
        'success': True,
        'pendingPoints': [e.to_dict() for e in entries],
        'summary': service.summary_by_email(),
        'stats': service.get_stats(),
    })


# ==================== Checkpoints ====================

@admin_bp.route('/checkpoints', methods=['GET'])
@require_admin
def list_checkpoints():
    """All checkpoints, including inactive ones."""
    checkpoints = CheckpointService().get_checkpoints(include_inactive=True)
    return jsonify({
        'success': True,
        'checkpoints': [c.to_dict() for c in checkpoints],
    })


@admin_bp.route('/checkpoints', methods=['POST'])
@require_admin
def create_checkpoint():
    """Create a checkpoint. Body: {name, description?, chain_type?, points_value?}"""
    data = request.get_json(silent=True)
    if not data:
        return bad_request('No data provided')

    checkpoint = CheckpointService().create_checkpoint(data)
    current_app.logger.info(f"Checkpoint {checkpoint.id} created by {g.admin_email}")

    return jsonify({'success': True, 'checkpoint': checkpoint.to_dict()}), 201


@admin_bp.route('/checkpoints/<int:checkpoint_id>', methods=['GET'])
@require_admin
def get_checkpoint(checkpoint_id):
    checkpoint = CheckpointService().get_checkpoint(checkpoint_id)
    return jsonify({'success': True, 'checkpoint': checkpoint.to_dict()})


@admin_bp.route('/checkpoints/<int:checkpoint_id>', methods=['PATCH'])
@require_admin
def update_checkpoint(checkpoint_id):
    """Update name, description, chain_type, points_value or is_active."""
    data = request.get_json(silent=True)
    if not data:
        return bad_request('No data provided')

    checkpoint = CheckpointService().update_checkpoint(checkpoint_id, data)
    return jsonify({'success': True, 'checkpoint': checkpoint.to_dict()})
