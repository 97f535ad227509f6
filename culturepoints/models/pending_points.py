"""
Pending Points Model

Stores points granted to an email that has no player yet. The grant is
credited to the player's ledger when that email is bound to a player.
"""

from datetime import datetime

from ..extensions import db


class PendingPointsEntry(db.Model):
    """
    Points parked for an unbound email.

    `awarded` flips from False to True exactly once, during reconciliation,
    and is never reverted. Rows are never deleted.
    """
    __tablename__ = 'pending_points'

    id = db.Column(db.Integer, primary_key=True)

    # Target identification
    email = db.Column(db.String(255), nullable=False)

    # Grant
    points = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(500), nullable=False)
    uploaded_by_email = db.Column(db.String(255))
    upload_batch_id = db.Column(db.String(36))

    # Status
    awarded = db.Column(db.Boolean, nullable=False, default=False)
    awarded_at = db.Column(db.DateTime)
    awarded_player_id = db.Column(db.Integer, db.ForeignKey('players.id'))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_pending_points_email_awarded', 'email', 'awarded'),
        db.CheckConstraint('points > 0', name='ck_pending_points_points_positive'),
    )

    def __repr__(self):
        return f'<PendingPointsEntry {self.id}: {self.points} pts for {self.email}>'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'points': self.points,
            'reason': self.reason,
            'uploaded_by_email': self.uploaded_by_email,
            'upload_batch_id': self.upload_batch_id,
            'awarded': self.awarded,
            'awarded_at': self.awarded_at.isoformat() if self.awarded_at else None,
            'awarded_player_id': self.awarded_player_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
