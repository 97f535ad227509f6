"""
Bulk Award Processor.

Turns an admin CSV of (email, reason, points) rows into ledger credits for
known players and pending grants for unknown emails. Each row runs in its own
transaction: a bad row is reported and the batch continues.
"""

import csv
import io
import uuid
from datetime import datetime
from typing import Optional, Dict, Any, List

from flask import current_app
from sqlalchemy import func, case
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.ledger import LedgerSource
from ..models.upload_record import UploadRecord, UploadStatus
from ..utils.exceptions import RewardsError, ValidationError, PlayerNotFoundError
from ..utils.validators import normalize_email, positive_int, sanitize_string
from .identity_service import IdentityService
from .ledger_service import LedgerService
from .pending_points_service import PendingPointsService

REQUIRED_COLUMNS = ('email', 'reason', 'points')
CANDIDATE_DELIMITERS = (',', ';', '\t')

USER_NOT_FOUND_MESSAGE = 'User not found - saved as pending points for future signup'
MISSING_FIELDS_MESSAGE = 'Missing required fields (email, reason, or points)'

CSV_TEMPLATE = (
    'email,reason,points\n'
    'visitor@example.com,Attended opening night,100\n'
    'member@example.com,Volunteered at workshop,250\n'
)


def detect_delimiter(header_line: str) -> str:
    """Most frequent candidate delimiter in the header (comma on a tie)."""
    counts = {d: header_line.count(d) for d in CANDIDATE_DELIMITERS}
    best = max(CANDIDATE_DELIMITERS, key=lambda d: counts[d])
    return best if counts[best] > 0 else ','


def parse_csv(text: str) -> List[Dict[str, str]]:
    """
    Parse upload text into row dicts with email, reason and points keys.

    Header names are matched case-insensitively. Values stay raw strings so
    each row is validated on its own during processing.

    Raises:
        ValidationError: Empty file, missing columns, or too many rows
    """
    if text is None:
        raise ValidationError('CSV file is empty or invalid', field='file')

    text = text.lstrip('\ufeff')
    first_line = next((line for line in text.splitlines() if line.strip()), None)
    if first_line is None:
        raise ValidationError('CSV file is empty or invalid', field='file')

    # Quoted values may span lines, so the reader gets the whole text
    reader = csv.reader(io.StringIO(text), delimiter=detect_delimiter(first_line))
    header = next((values for values in reader if any(v.strip() for v in values)), [])
    header = [h.strip().lower() for h in header]
    if not all(col in header for col in REQUIRED_COLUMNS):
        raise ValidationError(
            'CSV must have columns: "email", "reason", and "points"', field='file'
        )
    positions = {col: header.index(col) for col in REQUIRED_COLUMNS}

    rows = []
    for values in reader:
        if not any(v.strip() for v in values):
            continue
        row = {}
        for col, idx in positions.items():
            row[col] = values[idx].strip() if idx < len(values) else ''
        rows.append(row)

    if not rows:
        raise ValidationError('CSV file is empty or invalid', field='file')

    max_rows = current_app.config.get('MAX_UPLOAD_ROWS', 5000)
    if len(rows) > max_rows:
        raise ValidationError(
            f'CSV has {len(rows)} rows; the maximum per upload is {max_rows}', field='file'
        )

    return rows


class BulkAwardService:
    """Processes admin point uploads row by row."""

    def __init__(
        self,
        identity: Optional[IdentityService] = None,
        ledger: Optional[LedgerService] = None,
        pending: Optional[PendingPointsService] = None,
    ):
        self.ledger = ledger or LedgerService()
        self.pending = pending or PendingPointsService(self.ledger)
        self.identity = identity or IdentityService(self.pending)

    def process_upload(self, rows: List[Dict[str, Any]], uploaded_by_email: str) -> Dict[str, Any]:
        """
        Apply every row and return the itemized report.

        Returns:
            Dict with batchId, per-row results and the summary counts
        """
        batch_id = str(uuid.uuid4())
        results = []

        for row_number, row in enumerate(rows, start=2):  # row 1 is the header
            result = self._process_row(row, uploaded_by_email, batch_id)
            result['row'] = row_number
            results.append(result)

        successful = [r for r in results if r['status'] == UploadStatus.SUCCESS.value]
        summary = {
            'total': len(results),
            'successful': len(successful),
            'failed': sum(1 for r in results if r['status'] == UploadStatus.FAILED.value),
            'user_not_found': sum(
                1 for r in results if r['status'] == UploadStatus.USER_NOT_FOUND.value
            ),
            'total_points_awarded': sum(r['points'] for r in successful),
        }

        current_app.logger.info(
            f"Points upload {batch_id} by {uploaded_by_email}: {summary['successful']} awarded, "
            f"{summary['user_not_found']} pending, {summary['failed']} failed"
        )

        return {
            'success': True,
            'batchId': batch_id,
            'results': results,
            'summary': summary,
        }

    def _process_row(self, row: Dict[str, Any], uploaded_by_email: str, batch_id: str) -> Dict[str, Any]:
        raw_email = row.get('email')
        raw_reason = row.get('reason')
        raw_points = row.get('points')

        display_email = sanitize_string(raw_email)
        reason = sanitize_string(raw_reason, 500)

        if not display_email or not reason or raw_points is None or str(raw_points).strip() == '':
            return self._record(
                batch_id, uploaded_by_email, display_email or 'unknown', 0, reason or '',
                UploadStatus.FAILED, MISSING_FIELDS_MESSAGE,
            )

        try:
            email = normalize_email(raw_email)
            points = positive_int(raw_points)
        except RewardsError as e:
            return self._record(
                batch_id, uploaded_by_email, display_email, 0, reason,
                UploadStatus.FAILED, e.message,
            )

        try:
            try:
                player = self.identity.resolve_by_email(email)
            except PlayerNotFoundError:
                self.pending.enqueue(
                    email, points, reason,
                    uploaded_by_email=uploaded_by_email,
                    upload_batch_id=batch_id,
                    commit=False,
                )
                return self._record(
                    batch_id, uploaded_by_email, email, points, reason,
                    UploadStatus.USER_NOT_FOUND, USER_NOT_FOUND_MESSAGE,
                )

            self.ledger.credit(
                player.id,
                points,
                f'Admin upload: {reason}',
                LedgerSource.BULK_UPLOAD,
                created_by=uploaded_by_email,
                reference_id=batch_id,
                commit=False,
            )
            return self._record(
                batch_id, uploaded_by_email, email, points, reason,
                UploadStatus.SUCCESS, None, player_id=player.id,
            )

        except (SQLAlchemyError, RewardsError) as e:
            db.session.rollback()
            message = e.message if isinstance(e, RewardsError) else str(e.__cause__ or e)
            current_app.logger.error(f"Points upload row for {email} failed: {message}")
            return self._record(
                batch_id, uploaded_by_email, email, points, reason,
                UploadStatus.FAILED, message,
            )

    def _record(
        self,
        batch_id: str,
        uploaded_by_email: str,
        email: str,
        points: int,
        reason: str,
        status: UploadStatus,
        error: Optional[str],
        player_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Write the row's UploadRecord and commit the row's transaction."""
        record = UploadRecord(
            email=email,
            points_awarded=points,
            reason=reason,
            status=status.value,
            error_message=error,
            player_id=player_id,
            upload_batch_id=batch_id,
            uploaded_by_email=uploaded_by_email,
            created_at=datetime.utcnow(),
        )
        db.session.add(record)
        db.session.commit()

        result = {
            'email': email,
            'points': points,
            'reason': reason,
            'status': status.value,
        }
        if error:
            result['error'] = error
        if player_id is not None:
            result['player_id'] = player_id
        return result

    # ==================== History ====================

    def upload_history(self, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        """Per-batch summaries (newest first) and the most recent rows."""
        batches = (
            db.session.query(
                UploadRecord.upload_batch_id,
                UploadRecord.uploaded_by_email,
                func.min(UploadRecord.created_at).label('uploaded_at'),
                func.count(UploadRecord.id),
                func.sum(case((UploadRecord.status == UploadStatus.SUCCESS.value, 1), else_=0)),
                func.sum(case((UploadRecord.status == UploadStatus.FAILED.value, 1), else_=0)),
                func.sum(case((UploadRecord.status == UploadStatus.USER_NOT_FOUND.value, 1), else_=0)),
                func.sum(case(
                    (UploadRecord.status == UploadStatus.SUCCESS.value, UploadRecord.points_awarded),
                    else_=0,
                )),
            )
            .group_by(UploadRecord.upload_batch_id, UploadRecord.uploaded_by_email)
            .order_by(func.min(UploadRecord.created_at).desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

        recent = (
            UploadRecord.query
            .order_by(UploadRecord.created_at.desc(), UploadRecord.id.desc())
            .limit(100)
            .all()
        )

        return {
            'success': True,
            'batches': [
                {
                    'upload_batch_id': batch_id,
                    'uploaded_by_email': uploaded_by,
                    'uploaded_at': uploaded_at.isoformat() if uploaded_at else None,
                    'total_rows': total,
                    'successful': int(ok or 0),
                    'failed': int(failed or 0),
                    'user_not_found': int(missing or 0),
                    'total_points_awarded': int(points or 0),
                }
                for batch_id, uploaded_by, uploaded_at, total, ok, failed, missing, points in batches
            ],
            'recentUploads': [r.to_dict() for r in recent],
        }
