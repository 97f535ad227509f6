"""
Database models for the CulturePoints rewards engine.
"""
from .player import Chain, Player, PlayerAddress
from .checkpoint import Checkpoint, CheckinEvent
from .ledger import LedgerEntry, LedgerSource
from .pending_points import PendingPointsEntry
from .upload_record import UploadRecord, UploadStatus

__all__ = [
    # Identity
    'Chain',
    'Player',
    'PlayerAddress',
    # Check-ins
    'Checkpoint',
    'CheckinEvent',
    # Ledger
    'LedgerEntry',
    'LedgerSource',
    # Pending points & uploads
    'PendingPointsEntry',
    'UploadRecord',
    'UploadStatus',
]
