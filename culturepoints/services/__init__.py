"""
Business logic services for the CulturePoints rewards engine.
"""
from .ledger_service import LedgerService, ledger_service
from .pending_points_service import PendingPointsService
from .identity_service import IdentityService, validate_address, normalize_chain
from .streak_service import streak_day_index, streak_multiplier, streak_points
from .checkpoint_service import CheckpointService
from .checkin_service import CheckinService
from .bulk_award_service import BulkAwardService, parse_csv, CSV_TEMPLATE
from .player_service import PlayerService

__all__ = [
    'LedgerService',
    'ledger_service',
    'PendingPointsService',
    'IdentityService',
    'validate_address',
    'normalize_chain',
    'streak_day_index',
    'streak_multiplier',
    'streak_points',
    'CheckpointService',
    'CheckinService',
    'BulkAwardService',
    'parse_csv',
    'CSV_TEMPLATE',
    'PlayerService',
]
