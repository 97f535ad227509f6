"""
Points ledger model.
"""
from datetime import datetime
from enum import Enum

from ..extensions import db


class LedgerSource(str, Enum):
    """What granted the points."""
    CHECKIN = 'checkin'                                # Checkpoint check-in
    BULK_UPLOAD = 'bulk_upload'                        # Admin CSV upload
    PENDING_RECONCILIATION = 'pending_reconciliation'  # Parked grant claimed on email binding
    PROFILE_FIELD = 'profile_field'                    # First-time profile field completion

    @classmethod
    def values(cls):
        return [s.value for s in cls]


class LedgerEntry(db.Model):
    """
    Append-only points grant. Never updated or deleted.

    The sum of a player's entries is their balance; Player.total_points
    caches it.
    """
    __tablename__ = 'ledger_entries'

    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=False)

    amount = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(500), nullable=False)
    source = db.Column(db.String(50), nullable=False)

    # Batch id, pending entry id, checkpoint id... depending on source
    reference_id = db.Column(db.String(100))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    created_by = db.Column(db.String(255))  # admin email, NULL for system grants

    # Relationships
    player = db.relationship('Player', backref=db.backref('ledger_entries', lazy='dynamic'))

    __table_args__ = (
        db.CheckConstraint('amount > 0', name='ck_ledger_entries_amount_positive'),
        db.Index('ix_ledger_entries_player_created', 'player_id', 'created_at'),
    )

    def __repr__(self):
        return f'<LedgerEntry {self.id}: +{self.amount} for player {self.player_id} ({self.source})>'

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'amount': self.amount,
            'reason': self.reason,
            'source': self.source,
            'reference_id': self.reference_id,
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
