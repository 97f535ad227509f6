"""
Points Ledger Service.

The ledger is the single source of truth for balances:
- Every grant is an append-only LedgerEntry
- Player.total_points caches the sum of the player's entries
- The cache is changed ONLY here, with a transactional increment
  (total_points = total_points + :amount) under a row lock on the player,
  in the same transaction that inserts the entry

Other components (check-in engine, pending reconciliation, bulk uploads,
profile rewards) call credit(); none of them touch total_points directly.
Callers that need the credit inside a larger transaction pass commit=False
and commit themselves.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any

from flask import current_app
from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.player import Player
from ..models.ledger import LedgerEntry, LedgerSource
from ..utils.exceptions import ValidationError, PlayerNotFoundError


class LedgerService:
    """
    Append-only points ledger with a strictly consistent balance cache.

    Usage:
        ledger = LedgerService()
        entry = ledger.credit(player_id, 100, 'Gallery visit', LedgerSource.CHECKIN)
        balance = ledger.get_balance(player_id)
    """

    # ==================== Writes ====================

    def credit(
        self,
        player_id: int,
        amount: int,
        reason: str,
        source,
        created_by: Optional[str] = None,
        reference_id: Optional[str] = None,
        commit: bool = True,
    ) -> LedgerEntry:
        """
        Grant points to a player.

        Args:
            player_id: Player to credit
            amount: Positive integer number of points
            reason: Human-readable reason
            source: LedgerSource (or its string value)
            created_by: Admin email for manual grants
            reference_id: Batch id / pending entry id / checkpoint reference
            commit: Commit the transaction (False = flush only, caller commits)

        Returns:
            The created LedgerEntry

        Raises:
            ValidationError: Non-positive or non-integer amount, unknown source
            PlayerNotFoundError: No such player
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError('Points amount must be a positive integer', field='amount')

        try:
            source_value = LedgerSource(source).value
        except ValueError:
            raise ValidationError(f'Unknown ledger source: {source}', field='source')

        if not reason or not str(reason).strip():
            raise ValidationError('A reason is required for every credit', field='reason')

        # Serialize credits per player: concurrent callers queue on this lock
        player = db.session.execute(
            select(Player).where(Player.id == player_id).with_for_update()
        ).scalar_one_or_none()
        if player is None:
            raise PlayerNotFoundError(player_id)

        entry = LedgerEntry(
            player_id=player_id,
            amount=amount,
            reason=str(reason).strip()[:500],
            source=source_value,
            reference_id=reference_id,
            created_by=created_by,
            created_at=datetime.utcnow(),
        )
        db.session.add(entry)

        db.session.execute(
            update(Player)
            .where(Player.id == player_id)
            .values(
                total_points=Player.total_points + amount,
                updated_at=datetime.utcnow(),
            )
        )

        try:
            if commit:
                db.session.commit()
            else:
                db.session.flush()
        except SQLAlchemyError as e:
            if commit:
                db.session.rollback()
            current_app.logger.error(f"Ledger credit failed for player {player_id}: {e}")
            raise

        current_app.logger.info(
            f"Points credited: player {player_id} +{amount} pts from {source_value}"
            f"{f' by {created_by}' if created_by else ''}"
        )
        return entry

    # ==================== Reads ====================

    def get_balance(self, player_id: int) -> int:
        """Current balance (the cached counter, equal to the ledger sum)."""
        balance = db.session.execute(
            select(Player.total_points).where(Player.id == player_id)
        ).scalar_one_or_none()
        if balance is None:
            raise PlayerNotFoundError(player_id)
        return balance

    def ledger_sum(self, player_id: int) -> int:
        """Sum of all ledger entries for a player."""
        return db.session.execute(
            select(func.coalesce(func.sum(LedgerEntry.amount), 0))
            .where(LedgerEntry.player_id == player_id)
        ).scalar_one()

    def history(self, player_id: int, limit: int = 50, offset: int = 0) -> List[LedgerEntry]:
        """Ledger entries for a player, newest first."""
        return (
            LedgerEntry.query
            .filter_by(player_id=player_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def breakdown_by_source(self, player_id: int) -> Dict[str, int]:
        """Points earned per source for a player."""
        rows = (
            db.session.query(LedgerEntry.source, func.sum(LedgerEntry.amount))
            .filter(LedgerEntry.player_id == player_id)
            .group_by(LedgerEntry.source)
            .all()
        )
        return {source: int(total or 0) for source, total in rows}

    # ==================== Invariant checks ====================

    def verify_balance(self, player_id: int) -> Dict[str, Any]:
        """Compare the cached balance with the ledger sum for one player."""
        cached = self.get_balance(player_id)
        total = self.ledger_sum(player_id)
        return {
            'player_id': player_id,
            'cached': cached,
            'ledger_sum': total,
            'drift': cached - total,
            'consistent': cached == total,
        }

    def audit_balances(self, fix: bool = False) -> List[Dict[str, Any]]:
        """
        Check the balance invariant for every player.

        Args:
            fix: Rewrite drifted caches from the ledger sum

        Returns:
            List of drift reports (empty when every player is consistent)
        """
        sums = (
            select(LedgerEntry.player_id, func.sum(LedgerEntry.amount).label('total'))
            .group_by(LedgerEntry.player_id)
            .subquery()
        )
        rows = db.session.execute(
            select(Player.id, Player.total_points, func.coalesce(sums.c.total, 0))
            .outerjoin(sums, sums.c.player_id == Player.id)
            .order_by(Player.id)
        ).all()

        drifted = []
        for player_id, cached, total in rows:
            if cached == total:
                continue
            report = {
                'player_id': player_id,
                'cached': cached,
                'ledger_sum': int(total),
                'drift': cached - int(total),
                'consistent': False,
            }
            current_app.logger.error(
                f"Balance drift for player {player_id}: cached={cached} ledger_sum={total}"
            )
            drifted.append(report)

        if fix and drifted:
            for report in drifted:
                db.session.execute(
                    update(Player)
                    .where(Player.id == report['player_id'])
                    .values(total_points=report['ledger_sum'])
                )
            db.session.commit()
            current_app.logger.warning(f"Repaired balance cache for {len(drifted)} players")

        return drifted


ledger_service = LedgerService()
