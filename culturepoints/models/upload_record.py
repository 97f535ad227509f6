"""
Bulk upload audit records.
"""
from datetime import datetime
from enum import Enum

from ..extensions import db


class UploadStatus(str, Enum):
    """Outcome of one CSV row."""
    SUCCESS = 'success'
    FAILED = 'failed'
    USER_NOT_FOUND = 'user_not_found'  # parked as pending points, not an error


class UploadRecord(db.Model):
    """One processed CSV row. Written once, never mutated."""
    __tablename__ = 'points_uploads'

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255))
    points_awarded = db.Column(db.Integer)
    reason = db.Column(db.String(500))
    status = db.Column(db.String(20), nullable=False)
    error_message = db.Column(db.String(500))

    player_id = db.Column(db.Integer, db.ForeignKey('players.id'))
    upload_batch_id = db.Column(db.String(36), index=True)
    uploaded_by_email = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<UploadRecord {self.id}: {self.email} {self.status}>'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'points_awarded': self.points_awarded,
            'reason': self.reason,
            'status': self.status,
            'error': self.error_message,
            'player_id': self.player_id,
            'upload_batch_id': self.upload_batch_id,
            'uploaded_by_email': self.uploaded_by_email,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
