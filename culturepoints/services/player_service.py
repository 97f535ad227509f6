"""
Player signup and profile management.

Email binding always goes through IdentityService.bind_email so that pending
points are reconciled in the binding transaction. Filling a profile field for
the first time earns PROFILE_FIELD_POINTS, once per field per player.
"""

from typing import Optional, Dict, Any

from flask import current_app
from sqlalchemy import and_, func, or_
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.checkpoint import CheckinEvent
from ..models.ledger import LedgerEntry, LedgerSource
from ..models.player import Chain, Player
from ..utils.errors import ErrorCode, error_code_for
from ..utils.exceptions import RewardsError, ValidationError
from ..utils.validators import sanitize_string
from .identity_service import IdentityService
from .ledger_service import LedgerService

USERNAME_MAX_LENGTH = 30

# Field -> ledger reference used to award it only once
PROFILE_FIELDS = {
    'email': 'profile_field_email',
    'username': 'profile_field_username',
}

PROFILE_FIELD_LABELS = {
    'email': 'Added Email',
    'username': 'Added Username',
}


class PlayerService:
    """Service for player accounts."""

    def __init__(self, identity: Optional[IdentityService] = None, ledger: Optional[LedgerService] = None):
        self.ledger = ledger or LedgerService()
        self.identity = identity or IdentityService()

    def _clean_username(self, raw) -> Optional[str]:
        if raw is None:
            return None
        if not isinstance(raw, str):
            raise ValidationError('Username must be a string', field='username')
        username = raw.strip().lstrip('@').strip()
        if not username:
            return None
        if len(username) > USERNAME_MAX_LENGTH:
            raise ValidationError(
                f'Username cannot exceed {USERNAME_MAX_LENGTH} characters', field='username'
            )
        return username

    def signup(self, chain, wallet_address: str, email=None, username=None) -> Dict[str, Any]:
        """
        Register a wallet (idempotent for a known wallet).

        A supplied email is bound and its pending points reconciled. Profile
        points are only earned through update_profile.

        Returns:
            Result dict with the player and whether it was created
        """
        try:
            username = self._clean_username(username)
            player, created = self.identity.get_or_create_player(chain, wallet_address, email)

            if username and not player.username:
                player.username = username
                db.session.commit()

        except RewardsError as e:
            return {'success': False, 'error': e.message, 'code': error_code_for(e).value}
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Signup failed for {chain}:{wallet_address}: {e}")
            return {
                'success': False,
                'error': 'Failed to register player',
                'code': ErrorCode.DATABASE_ERROR.value,
            }

        return {
            'success': True,
            'created': created,
            'player': player.to_dict(),
        }

    def update_profile(self, player_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update email and/or username.

        A new email is bound (reconciling pending points). Each field filled
        for the first time earns profile points.
        """
        try:
            player = self.identity.get_player(player_id)
            reconciliation = None
            changes = {}

            if data.get('email'):
                had_email = bool(player.email)
                bound = self.identity.bind_email(player.id, data['email'])
                reconciliation = bound['reconciliation']
                if not had_email:
                    changes['email'] = player.email

            if 'username' in data:
                username = self._clean_username(data.get('username'))
                if username:
                    if not player.username:
                        changes['username'] = username
                    else:
                        player.username = username
                        db.session.commit()

            awarded = self._apply_profile(player, changes) if changes else []

        except RewardsError as e:
            return {'success': False, 'error': e.message, 'code': error_code_for(e).value}
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Profile update failed for player {player_id}: {e}")
            return {
                'success': False,
                'error': 'Failed to update profile',
                'code': ErrorCode.DATABASE_ERROR.value,
            }

        return {
            'success': True,
            'player': player.to_dict(),
            'pointsAwarded': awarded,
            'pendingPointsClaimed': reconciliation['claimed_points'] if reconciliation else 0,
        }

    def _apply_profile(self, player, fields: Dict[str, str]) -> list:
        """Set newly filled fields and award first-time profile points."""
        points = current_app.config['PROFILE_FIELD_POINTS']
        awarded = []

        for field, value in fields.items():
            if field == 'username':
                player.username = value

            reference = PROFILE_FIELDS[field]
            already = LedgerEntry.query.filter_by(
                player_id=player.id,
                source=LedgerSource.PROFILE_FIELD.value,
                reference_id=reference,
            ).first()
            if already:
                continue

            entry = self.ledger.credit(
                player.id,
                points,
                PROFILE_FIELD_LABELS[field],
                LedgerSource.PROFILE_FIELD,
                reference_id=reference,
                commit=False,
            )
            awarded.append({'field': field, 'points': points, 'ledger_entry_id': entry.id})

        db.session.commit()
        return awarded

    def get_player(self, chain, wallet_address: str) -> Dict[str, Any]:
        try:
            player = self.identity.resolve_by_address(chain, wallet_address)
        except RewardsError as e:
            return {'success': False, 'error': e.message, 'code': error_code_for(e).value}
        return {'success': True, 'player': player.to_dict()}

    def get_ledger(self, player_id: int, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        """Balance, per-source breakdown and recent entries."""
        try:
            player = self.identity.get_player(player_id)
        except RewardsError as e:
            return {'success': False, 'error': e.message, 'code': error_code_for(e).value}

        entries = self.ledger.history(player.id, limit=limit, offset=offset)
        return {
            'success': True,
            'player_id': player.id,
            'balance': player.total_points or 0,
            'breakdown': self.ledger.breakdown_by_source(player.id),
            'entries': [e.to_dict() for e in entries],
        }

    # ==================== Leaderboard ====================

    def _points_column(self):
        return func.coalesce(Player.total_points, 0)

    def _position(self, player: Player) -> int:
        """1-based position in leaderboard order (points desc, then id asc)."""
        points = player.total_points or 0
        ahead = Player.query.filter(or_(
            self._points_column() > points,
            and_(self._points_column() == points, Player.id < player.id),
        )).count()
        return ahead + 1

    def _checkin_counts(self, player_ids) -> Dict[int, int]:
        if not player_ids:
            return {}
        rows = (
            db.session.query(CheckinEvent.player_id, func.count(CheckinEvent.id))
            .filter(CheckinEvent.player_id.in_(player_ids))
            .group_by(CheckinEvent.player_id)
            .all()
        )
        return {player_id: count for player_id, count in rows}

    def leaderboard(self, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        """
        Players ordered by balance, highest first.

        Equal balances are ordered by player id, so the earliest signup ranks
        higher and every player has a distinct rank.

        Returns:
            Result dict with the page of entries and pagination details
        """
        players = (
            Player.query
            .order_by(self._points_column().desc(), Player.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        checkins = self._checkin_counts([p.id for p in players])
        total = Player.query.count()

        entries = [{
            'player_id': player.id,
            'username': player.username,
            'wallet_address': player.address_for(Chain.EVM.value),
            'addresses': {addr.chain: addr.address for addr in player.addresses},
            'total_points': player.total_points or 0,
            'total_checkins': checkins.get(player.id, 0),
            'rank': offset + index + 1,
        } for index, player in enumerate(players)]

        return {
            'success': True,
            'leaderboard': entries,
            'totalPlayers': len(entries),
            'pagination': {
                'page': offset // limit + 1,
                'limit': limit,
                'total': total,
                'totalPages': (total + limit - 1) // limit,
            },
        }

    def get_rank(self, chain, wallet_address: str) -> Dict[str, Any]:
        """Leaderboard rank for a wallet; rank is None when the wallet is unknown."""
        try:
            player = self.identity.find_by_address(chain, wallet_address)
        except RewardsError as e:
            return {'success': False, 'error': e.message, 'code': error_code_for(e).value}

        if player is None:
            return {'success': True, 'rank': None, 'total_points': 0}

        return {
            'success': True,
            'player_id': player.id,
            'rank': self._position(player),
            'total_points': player.total_points or 0,
        }

    def get_player_stats(self, player_id: int) -> Dict[str, Any]:
        """Player, rank and check-in count for the leaderboard detail view."""
        try:
            player = self.identity.get_player(player_id)
        except RewardsError as e:
            return {'success': False, 'error': e.message, 'code': error_code_for(e).value}

        return {
            'success': True,
            'playerStats': {
                'player': player.to_dict(),
                'rank': self._position(player),
                'totalCheckins': self._checkin_counts([player.id]).get(player.id, 0),
                'totalPoints': player.total_points or 0,
            },
        }
