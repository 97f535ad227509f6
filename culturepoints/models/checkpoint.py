"""
Checkpoint and CheckinEvent models.
"""
from datetime import datetime

from ..extensions import db


class Checkpoint(db.Model):
    """
    A physical or virtual place that can be checked into.

    chain_type only drives the default wallet UI; players from any chain may
    check in.
    """
    __tablename__ = 'checkpoints'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.String(1000))
    chain_type = db.Column(db.String(20), nullable=False, default='evm')

    # Base reward before the streak multiplier
    points_value = db.Column(db.Integer, nullable=False, default=100)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Checkpoint {self.id}: {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'chain_type': self.chain_type,
            'points_value': self.points_value,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class CheckinEvent(db.Model):
    """
    Append-only record of one counted check-in.

    Always written in the same transaction as its LedgerEntry. There is no
    uniqueness on (player, checkpoint, day): every counted visit goes toward
    the daily cap.
    """
    __tablename__ = 'checkin_events'

    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=False)
    checkpoint_id = db.Column(db.Integer, db.ForeignKey('checkpoints.id'), nullable=False)
    ledger_entry_id = db.Column(db.Integer, db.ForeignKey('ledger_entries.id'), nullable=False)

    # Calendar day in the reference timezone
    occurred_on = db.Column(db.Date, nullable=False)
    points_awarded = db.Column(db.Integer, nullable=False)
    streak_day_index = db.Column(db.Integer, nullable=False, default=0)

    # Which wallet made the attempt
    chain = db.Column(db.String(20), nullable=False)
    wallet_address = db.Column(db.String(100))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    player = db.relationship('Player', backref=db.backref('checkin_events', lazy='dynamic'))
    checkpoint = db.relationship('Checkpoint')
    ledger_entry = db.relationship('LedgerEntry')

    __table_args__ = (
        db.Index('ix_checkin_events_player_day', 'player_id', 'occurred_on'),
    )

    def __repr__(self):
        return f'<CheckinEvent {self.id}: player {self.player_id} @ {self.checkpoint_id} on {self.occurred_on}>'

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'checkpoint_id': self.checkpoint_id,
            'checkpoint': self.checkpoint.name if self.checkpoint else None,
            'occurred_on': self.occurred_on.isoformat() if self.occurred_on else None,
            'points_awarded': self.points_awarded,
            'streak_day_index': self.streak_day_index,
            'chain': self.chain,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
