"""
Checkpoint catalogue management.
"""

from typing import Optional, Dict, Any, List

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.checkpoint import Checkpoint
from ..models.player import Chain
from ..utils.exceptions import CheckpointNotFoundError, ValidationError, ConflictError
from ..utils.validators import positive_int, sanitize_string


class CheckpointService:
    """Create, look up and update checkpoints."""

    DEFAULT_CHECKPOINTS = [
        {
            'name': 'Main Gallery',
            'description': 'Permanent collection, ground floor',
            'chain_type': 'evm',
            'points_value': 100,
        },
        {
            'name': 'Sculpture Garden',
            'description': 'Outdoor installation walk',
            'chain_type': 'solana',
            'points_value': 100,
        },
        {
            'name': 'Artist Talk',
            'description': 'Weekly live conversation series',
            'chain_type': 'stellar',
            'points_value': 150,
        },
        {
            'name': 'Digital Archive',
            'description': 'Virtual exhibition room',
            'chain_type': 'aptos',
            'points_value': 50,
        },
    ]

    UPDATABLE_FIELDS = ('name', 'description', 'chain_type', 'points_value', 'is_active')

    def get_checkpoints(self, include_inactive: bool = False) -> List[Checkpoint]:
        query = Checkpoint.query
        if not include_inactive:
            query = query.filter_by(is_active=True)
        return query.order_by(Checkpoint.id).all()

    def get_checkpoint(self, ref) -> Checkpoint:
        """
        Look up a checkpoint by numeric id or by name.

        Raises:
            CheckpointNotFoundError: No match
        """
        if ref is None or isinstance(ref, bool) or (isinstance(ref, str) and not ref.strip()):
            raise ValidationError('Checkpoint is required', field='checkpoint')

        checkpoint = None
        if isinstance(ref, int) or (isinstance(ref, str) and ref.strip().isdigit()):
            checkpoint = db.session.get(Checkpoint, int(ref))

        if checkpoint is None and isinstance(ref, str):
            checkpoint = Checkpoint.query.filter_by(name=ref.strip()).first()

        if checkpoint is None:
            raise CheckpointNotFoundError(ref)
        return checkpoint

    def _clean(self, data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        cleaned = {}

        if 'name' in data or not partial:
            name = sanitize_string(data.get('name'))
            if not name:
                raise ValidationError('Checkpoint name is required', field='name')
            cleaned['name'] = name

        if 'description' in data:
            cleaned['description'] = sanitize_string(data.get('description'), 1000)

        if 'chain_type' in data or not partial:
            chain_type = (data.get('chain_type') or Chain.EVM.value)
            if not isinstance(chain_type, str) or chain_type.strip().lower() not in Chain.values():
                raise ValidationError(
                    f"chain_type must be one of: {', '.join(Chain.values())}", field='chain_type'
                )
            cleaned['chain_type'] = chain_type.strip().lower()

        if 'points_value' in data or not partial:
            raw = data.get('points_value', current_app.config['DEFAULT_CHECKPOINT_POINTS'])
            points = positive_int(raw, field='points_value')
            maximum = current_app.config['MAX_CHECKPOINT_POINTS']
            if points > maximum:
                raise ValidationError(
                    f'points_value cannot exceed {maximum}', field='points_value'
                )
            cleaned['points_value'] = points

        if 'is_active' in data:
            if not isinstance(data['is_active'], bool):
                raise ValidationError('is_active must be a boolean', field='is_active')
            cleaned['is_active'] = data['is_active']

        return cleaned

    def create_checkpoint(self, data: Dict[str, Any]) -> Checkpoint:
        """Create a new checkpoint."""
        cleaned = self._clean(data)
        checkpoint = Checkpoint(**cleaned)
        db.session.add(checkpoint)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(f"A checkpoint named '{cleaned['name']}' already exists")

        current_app.logger.info(f"Created checkpoint {checkpoint.id}: {checkpoint.name}")
        return checkpoint

    def update_checkpoint(self, checkpoint_id: int, data: Dict[str, Any]) -> Checkpoint:
        """Update a checkpoint. Only known fields are applied."""
        checkpoint = self.get_checkpoint(checkpoint_id)
        cleaned = self._clean(
            {k: v for k, v in data.items() if k in self.UPDATABLE_FIELDS},
            partial=True,
        )

        for key, value in cleaned.items():
            setattr(checkpoint, key, value)

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(f"A checkpoint named '{cleaned.get('name')}' already exists")

        return checkpoint

    def seed_defaults(self) -> Dict[str, Any]:
        """Create the default checkpoint set (existing names are skipped)."""
        created = 0
        for checkpoint_data in self.DEFAULT_CHECKPOINTS:
            existing = Checkpoint.query.filter_by(name=checkpoint_data['name']).first()
            if not existing:
                db.session.add(Checkpoint(**checkpoint_data))
                created += 1

        db.session.commit()
        return {'checkpoints_created': created}
