"""
Pending Points Service

Holds point grants addressed to an email that has no player yet, and
reconciles them into the points ledger when the email is bound to a player
(signup, profile edit, or a check-in that carries the email).

Exactly-once crediting: each row is claimed with a conditional update
(awarded = false -> true). Only the caller whose update actually changed the
row credits the ledger, so concurrent or repeated reconciliations of the same
email never double-award.
"""

from datetime import datetime
from typing import Optional, Dict, Any, List

from flask import current_app
from sqlalchemy import update, func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.ledger import LedgerSource
from ..models.pending_points import PendingPointsEntry
from ..models.player import Player
from ..utils.exceptions import NotFoundError, InvariantViolationError, ValidationError
from ..utils.validators import normalize_email, positive_int, sanitize_string
from .ledger_service import LedgerService


class PendingPointsService:
    """Service for parked (pending) point grants."""

    def __init__(self, ledger: Optional[LedgerService] = None):
        self.ledger = ledger or LedgerService()

    def enqueue(
        self,
        email: str,
        points,
        reason: str,
        uploaded_by_email: Optional[str] = None,
        upload_batch_id: Optional[str] = None,
        commit: bool = True,
    ) -> PendingPointsEntry:
        """
        Park a grant for an unbound email.

        Returns:
            The new PendingPointsEntry (awarded=False)
        """
        email = normalize_email(email)
        points = positive_int(points)
        reason = sanitize_string(reason, 500)
        if not reason:
            raise ValidationError('A reason is required', field='reason')

        entry = PendingPointsEntry(
            email=email,
            points=points,
            reason=reason,
            uploaded_by_email=uploaded_by_email,
            upload_batch_id=upload_batch_id,
            awarded=False,
            created_at=datetime.utcnow(),
        )
        db.session.add(entry)

        if commit:
            db.session.commit()
        else:
            db.session.flush()

        current_app.logger.info(f"Pending points parked: {points} pts for {email}")
        return entry

    def _claim(self, entry_id: int, player_id: int) -> bool:
        """Flip one row to awarded. True only if this call changed it."""
        result = db.session.execute(
            update(PendingPointsEntry)
            .where(
                PendingPointsEntry.id == entry_id,
                PendingPointsEntry.awarded.is_(False),
            )
            .values(
                awarded=True,
                awarded_at=datetime.utcnow(),
                awarded_player_id=player_id,
            )
        )
        return result.rowcount == 1

    def reconcile(self, email: str, player_id: int, commit: bool = True) -> Dict[str, Any]:
        """
        Credit all unawarded pending grants for an email to a player.

        Safe to call any number of times; rows already awarded are skipped.

        Args:
            email: The email that was just bound
            player_id: The player it was bound to
            commit: Commit (False when part of a binding transaction)

        Returns:
            Dict with claimed entry count and points
        """
        email = normalize_email(email)

        entries = (
            PendingPointsEntry.query
            .filter_by(email=email, awarded=False)
            .order_by(PendingPointsEntry.created_at, PendingPointsEntry.id)
            .all()
        )

        claimed: List[PendingPointsEntry] = []
        skipped = 0

        try:
            for entry in entries:
                if not self._claim(entry.id, player_id):
                    skipped += 1
                    current_app.logger.warning(
                        f"Pending entry {entry.id} for {email} was awarded by another "
                        f"reconciliation; skipping"
                    )
                    continue

                self.ledger.credit(
                    player_id,
                    entry.points,
                    entry.reason,
                    LedgerSource.PENDING_RECONCILIATION,
                    created_by=entry.uploaded_by_email,
                    reference_id=f'pending:{entry.id}',
                    commit=False,
                )
                claimed.append(entry)

            if commit:
                db.session.commit()
            else:
                db.session.flush()
        except SQLAlchemyError as e:
            if commit:
                db.session.rollback()
            current_app.logger.error(f"Pending reconciliation failed for {email}: {e}")
            raise

        total_claimed = sum(e.points for e in claimed)
        if claimed:
            current_app.logger.info(
                f"Reconciled {len(claimed)} pending grants ({total_claimed} pts) "
                f"for {email} into player {player_id}"
            )

        return {
            'success': True,
            'email': email,
            'player_id': player_id,
            'claimed_entries': len(claimed),
            'claimed_points': total_claimed,
            'skipped': skipped,
            'entry_ids': [e.id for e in claimed],
        }

    def award_entry(self, entry_id: int, player_id: int) -> Dict[str, Any]:
        """
        Award one specific pending entry.

        Raises:
            NotFoundError: Unknown entry
            InvariantViolationError: Entry already awarded
        """
        entry = db.session.get(PendingPointsEntry, entry_id)
        if entry is None:
            raise NotFoundError('Pending points entry', entry_id)

        if entry.awarded or not self._claim(entry.id, player_id):
            message = (
                f"Pending entry {entry_id} is already awarded "
                f"(player {entry.awarded_player_id}); refusing to credit again"
            )
            current_app.logger.error(message)
            db.session.rollback()
            raise InvariantViolationError(message)

        ledger_entry = self.ledger.credit(
            player_id,
            entry.points,
            entry.reason,
            LedgerSource.PENDING_RECONCILIATION,
            created_by=entry.uploaded_by_email,
            reference_id=f'pending:{entry.id}',
            commit=True,
        )

        return {
            'success': True,
            'entry': entry.to_dict(),
            'ledger_entry': ledger_entry.to_dict(),
        }

    # ==================== Admin queries ====================

    def list_entries(self, show_awarded: bool = False, limit: int = 100, offset: int = 0) -> List[PendingPointsEntry]:
        """Pending entries, newest first. Awarded rows only if show_awarded."""
        query = PendingPointsEntry.query
        if not show_awarded:
            query = query.filter(PendingPointsEntry.awarded.is_(False))
        return (
            query.order_by(PendingPointsEntry.created_at.desc(), PendingPointsEntry.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def get_pending_for_email(self, email: str) -> Dict[str, Any]:
        """Unawarded entries for one email."""
        email = normalize_email(email)
        entries = PendingPointsEntry.query.filter_by(email=email, awarded=False).all()
        return {
            'success': True,
            'email': email,
            'total_points': sum(e.points for e in entries),
            'entries': [e.to_dict() for e in entries],
        }

    def summary_by_email(self) -> List[Dict[str, Any]]:
        """Per-email aggregate over unawarded rows only."""
        rows = (
            db.session.query(
                PendingPointsEntry.email,
                func.count(PendingPointsEntry.id),
                func.sum(PendingPointsEntry.points),
                func.min(PendingPointsEntry.created_at),
            )
            .filter(PendingPointsEntry.awarded.is_(False))
            .group_by(PendingPointsEntry.email)
            .order_by(func.sum(PendingPointsEntry.points).desc(), PendingPointsEntry.email)
            .all()
        )
        return [
            {
                'email': email,
                'pending_count': count,
                'total_pending_points': int(total or 0),
                'oldest_pending': oldest.isoformat() if oldest else None,
            }
            for email, count, total, oldest in rows
        ]

    def get_stats(self) -> Dict[str, Any]:
        """Overall pending points statistics."""
        pending_count = PendingPointsEntry.query.filter_by(awarded=False).count()
        awarded_count = PendingPointsEntry.query.filter_by(awarded=True).count()

        pending_total = db.session.query(
            func.sum(PendingPointsEntry.points)
        ).filter(PendingPointsEntry.awarded.is_(False)).scalar() or 0

        unique_emails = db.session.query(
            func.count(func.distinct(PendingPointsEntry.email))
        ).filter(PendingPointsEntry.awarded.is_(False)).scalar() or 0

        return {
            'pending_entries': pending_count,
            'pending_total_points': int(pending_total),
            'unique_emails': unique_emails,
            'awarded_entries': awarded_count,
        }

    def reconcile_bound_emails(self) -> Dict[str, Any]:
        """
        Sweep: reconcile pending rows whose email is now bound to a player.

        Binding already reconciles synchronously; this only picks up grants
        parked while a binding was in flight.
        """
        pairs = (
            db.session.query(PendingPointsEntry.email, Player.id)
            .join(Player, Player.email == PendingPointsEntry.email)
            .filter(PendingPointsEntry.awarded.is_(False))
            .distinct()
            .all()
        )

        players = 0
        points = 0
        for email, player_id in pairs:
            result = self.reconcile(email, player_id)
            if result['claimed_entries']:
                players += 1
                points += result['claimed_points']

        return {
            'success': True,
            'emails_checked': len(pairs),
            'players_credited': players,
            'points_credited': points,
        }
