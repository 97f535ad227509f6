"""
Player and PlayerAddress models.

A Player is the canonical identity. Wallets from any supported chain and an
optional email all resolve to exactly one Player.
"""
from datetime import datetime
from enum import Enum

from ..extensions import db


class Chain(str, Enum):
    """Supported wallet address schemes."""
    EVM = 'evm'
    SOLANA = 'solana'
    STELLAR = 'stellar'
    APTOS = 'aptos'

    @classmethod
    def values(cls):
        return [c.value for c in cls]


class Player(db.Model):
    """
    Canonical player identity.

    total_points is a cache of the ledger sum. It is only ever changed by
    LedgerService.credit() with a transactional increment.
    """
    __tablename__ = 'players'

    id = db.Column(db.Integer, primary_key=True)

    # Contact / profile (email unique across all players)
    email = db.Column(db.String(255), unique=True, index=True)
    username = db.Column(db.String(30))

    # Materialized balance
    total_points = db.Column(db.Integer, nullable=False, default=0)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    addresses = db.relationship(
        'PlayerAddress', backref='player', lazy='selectin',
        cascade='all, delete-orphan', order_by='PlayerAddress.id'
    )

    __table_args__ = (
        db.CheckConstraint('total_points >= 0', name='ck_players_total_points_non_negative'),
    )

    def __repr__(self):
        return f'<Player {self.id}: {self.total_points} pts>'

    def address_for(self, chain: str):
        """Bound address for a chain, or None."""
        for addr in self.addresses:
            if addr.chain == chain:
                return addr.address
        return None

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'username': self.username,
            'total_points': self.total_points or 0,
            'addresses': {addr.chain: addr.address for addr in self.addresses},
            # Legacy field: the EVM wallet was the original identity handle
            'wallet_address': self.address_for(Chain.EVM.value),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class PlayerAddress(db.Model):
    """A wallet address bound to a player, one per chain."""
    __tablename__ = 'player_addresses'

    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=False, index=True)

    chain = db.Column(db.String(20), nullable=False)    # evm, solana, stellar, aptos
    address = db.Column(db.String(100), nullable=False)  # normalized form

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Enforced at write time so concurrent signups cannot split an identity
    __table_args__ = (
        db.UniqueConstraint('chain', 'address', name='uq_player_address_chain_address'),
        db.UniqueConstraint('player_id', 'chain', name='uq_player_address_player_chain'),
    )

    def __repr__(self):
        return f'<PlayerAddress {self.chain}:{self.address}>'

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'chain': self.chain,
            'address': self.address,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
