"""
Checkpoint Check-in Engine.

One call per check-in attempt. Per (player, calendar day) the state is
Counted(n) with n <= DAILY_CHECKPOINT_LIMIT; any further attempt that day is
rejected with the daily-limit message and writes nothing.

Every counted attempt writes a CheckinEvent and its LedgerEntry in one
transaction. Re-visiting a checkpoint on the same day counts again toward the
cap; there is no per-checkpoint-per-day key.
"""

from datetime import datetime
from typing import Optional, Dict, Any, List

from flask import current_app
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.checkpoint import Checkpoint, CheckinEvent
from ..models.ledger import LedgerSource
from ..models.player import Chain, Player
from ..utils.dates import reference_date, week_start
from ..utils.errors import ErrorCode, error_code_for
from ..utils.exceptions import RewardsError, DailyLimitExceededError, PlayerNotFoundError
from .checkpoint_service import CheckpointService
from .identity_service import IdentityService, normalize_chain, validate_address
from .ledger_service import LedgerService
from .streak_service import describe_streak, streak_day_index, streak_points

# Shown in the success message; EVM is the default wallet and is not named
CHAIN_MESSAGE_PREFIX = {
    Chain.EVM.value: '',
    Chain.SOLANA.value: 'Solana ',
    Chain.STELLAR.value: 'Stellar ',
    Chain.APTOS.value: 'Aptos ',
}


class CheckinService:
    """Service for checkpoint check-ins."""

    def __init__(
        self,
        identity: Optional[IdentityService] = None,
        ledger: Optional[LedgerService] = None,
        checkpoints: Optional[CheckpointService] = None,
    ):
        self.ledger = ledger or LedgerService()
        self.identity = identity or IdentityService()
        self.checkpoints = checkpoints or CheckpointService()

    # ==================== Check-in ====================

    def check_in(
        self,
        chain,
        wallet_address: str,
        checkpoint,
        email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Process one check-in attempt.

        Args:
            chain: Wallet chain tag (evm, solana, stellar, aptos)
            wallet_address: Wallet as sent by the client
            checkpoint: Checkpoint id or name
            email: Optional email, bound opportunistically
            now: Attempt time (default: current UTC time)

        Returns:
            Result dict. On failure: success=False, error, code, and
            rateLimited=True for the daily cap.
        """
        try:
            chain = normalize_chain(chain)
            wallet_address = validate_address(chain, wallet_address)
            target = self.checkpoints.get_checkpoint(checkpoint)
            if not target.is_active:
                return {
                    'success': False,
                    'error': f'Checkpoint {target.name} is not active',
                    'code': ErrorCode.INVALID_STATUS.value,
                }

            player, created = self.identity.get_or_create_player(chain, wallet_address, email)
            today = reference_date(now)
            event = self._record_checkin(player.id, target, chain, wallet_address, today)

        except DailyLimitExceededError as e:
            current_app.logger.info(
                f"Daily check-in cap reached for {chain}:{wallet_address} ({e.limit}/day)"
            )
            return {
                'success': False,
                'error': e.message,
                'code': ErrorCode.LIMIT_EXCEEDED.value,
                'rateLimited': True,
            }
        except RewardsError as e:
            return {
                'success': False,
                'error': e.message,
                'code': error_code_for(e).value,
            }
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Check-in failed for {chain}:{wallet_address}: {e}")
            return {
                'success': False,
                'error': 'Failed to record check-in',
                'code': ErrorCode.DATABASE_ERROR.value,
            }

        points_today = self._points_earned_on(player.id, today)
        prefix = CHAIN_MESSAGE_PREFIX.get(chain, '')

        return {
            'success': True,
            'message': f'Nice! You earned {event.points_awarded} points for this {prefix}checkpoint.',
            'playerCreated': created,
            'pointsAwarded': event.points_awarded,
            'pointsEarnedToday': points_today,
            'dailyRewardClaimed': points_today > 0,
            'streakDayIndex': event.streak_day_index,
            'checkpointActivityId': event.id,
            'player': player.to_dict(),
        }

    def _record_checkin(
        self,
        player_id: int,
        checkpoint: Checkpoint,
        chain: str,
        wallet_address: str,
        today,
    ) -> CheckinEvent:
        """
        Count, score and write one check-in in a single transaction.

        Raises:
            DailyLimitExceededError: Cap reached (nothing written)
        """
        limit = current_app.config['DAILY_CHECKPOINT_LIMIT']

        # Concurrent attempts for one player queue here, so the count is exact
        locked = db.session.execute(
            select(Player.id).where(Player.id == player_id).with_for_update()
        ).scalar_one_or_none()
        if locked is None:
            raise PlayerNotFoundError(player_id)

        count = CheckinEvent.query.filter_by(player_id=player_id, occurred_on=today).count()
        if count >= limit:
            db.session.rollback()
            raise DailyLimitExceededError(limit)

        index = streak_day_index(self._checkin_days_this_week(player_id, today), today)
        points = streak_points(
            checkpoint.points_value,
            index,
            base_floor=current_app.config['STREAK_BASE_POINTS'],
        )

        try:
            entry = self.ledger.credit(
                player_id,
                points,
                f'Check-in at {checkpoint.name}',
                LedgerSource.CHECKIN,
                reference_id=f'checkpoint:{checkpoint.id}',
                commit=False,
            )

            event = CheckinEvent(
                player_id=player_id,
                checkpoint_id=checkpoint.id,
                ledger_entry_id=entry.id,
                occurred_on=today,
                points_awarded=points,
                streak_day_index=index,
                chain=chain,
                wallet_address=wallet_address,
                created_at=datetime.utcnow(),
            )
            db.session.add(event)
            db.session.commit()
        except (SQLAlchemyError, RewardsError):
            db.session.rollback()
            raise

        current_app.logger.info(
            f"Check-in #{count + 1} today for player {player_id} at checkpoint "
            f"{checkpoint.id}: {points} pts (streak day {index})"
        )
        return event

    # ==================== Queries ====================

    def _checkin_days_this_week(self, player_id: int, today) -> List:
        rows = (
            db.session.query(CheckinEvent.occurred_on)
            .filter(
                CheckinEvent.player_id == player_id,
                CheckinEvent.occurred_on >= week_start(today),
                CheckinEvent.occurred_on < today,
            )
            .distinct()
            .all()
        )
        return [row[0] for row in rows]

    def _points_earned_on(self, player_id: int, day) -> int:
        total = db.session.query(
            func.coalesce(func.sum(CheckinEvent.points_awarded), 0)
        ).filter(
            CheckinEvent.player_id == player_id,
            CheckinEvent.occurred_on == day,
        ).scalar()
        return int(total or 0)

    def checkin_status(
        self,
        chain,
        wallet_address: str,
        checkpoint=None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Read-only view of today's check-in state for a wallet.

        An unknown wallet is reported as a fresh player (nothing checked in).
        """
        limit = current_app.config['DAILY_CHECKPOINT_LIMIT']
        try:
            chain = normalize_chain(chain)
            target = self.checkpoints.get_checkpoint(checkpoint) if checkpoint is not None else None
            player = self.identity.find_by_address(chain, wallet_address)
        except RewardsError as e:
            return {
                'success': False,
                'error': e.message,
                'code': error_code_for(e).value,
            }

        today = reference_date(now)

        if player is None:
            return {
                'success': True,
                'hasCheckedIn': False,
                'checkpointCheckinToday': False,
                'dailyRewardClaimed': False,
                'pointsEarnedToday': 0,
                'checkinsToday': 0,
                'checkinsRemainingToday': limit,
                'streakDayIndex': streak_day_index([], today),
                'player': None,
            }

        events_today = CheckinEvent.query.filter_by(player_id=player.id, occurred_on=today)
        count = events_today.count()
        at_checkpoint = False
        has_checked_in = count > 0
        if target is not None:
            at_checkpoint = events_today.filter_by(checkpoint_id=target.id).count() > 0
            # Ever, not just today
            has_checked_in = CheckinEvent.query.filter_by(
                player_id=player.id, checkpoint_id=target.id
            ).first() is not None

        points_today = self._points_earned_on(player.id, today)
        streak = describe_streak(
            self._checkin_days_this_week(player.id, today),
            today,
            points_value=target.points_value if target is not None else None,
            base_floor=current_app.config['STREAK_BASE_POINTS'],
        )

        return {
            'success': True,
            'hasCheckedIn': has_checked_in,
            'checkpointCheckinToday': at_checkpoint,
            'dailyRewardClaimed': points_today > 0,
            'pointsEarnedToday': points_today,
            'checkinsToday': count,
            'checkinsRemainingToday': max(limit - count, 0),
            'streakDayIndex': streak['streakDayIndex'],
            'streak': streak,
            'player': player.to_dict(),
        }

    def recent_checkins(self, player_id: int, limit: int = 20) -> List[CheckinEvent]:
        return (
            CheckinEvent.query
            .filter_by(player_id=player_id)
            .order_by(CheckinEvent.created_at.desc(), CheckinEvent.id.desc())
            .limit(limit)
            .all()
        )
