"""
Identity Resolver.

Maps a chain-tagged wallet address or an email to the one canonical Player.
Owns the per-chain address format rules:

- evm:     0x + 40 hex chars, stored lower-cased
- solana:  base58 alphabet (no 0, O, I, l), 32-44 chars
- stellar: G + 55 chars of [A-Z0-9], uppercase only
- aptos:   0x + 64 hex chars, stored lower-cased

Uniqueness of (chain, address) and of email is enforced by database
constraints. A concurrent signup that loses the race gets an IntegrityError,
rolls back and re-reads the winning row.

Binding an email to a player reconciles that email's pending points in the
same transaction.
"""

import re
from typing import Optional, Dict, Any, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.player import Chain, Player, PlayerAddress
from ..utils.exceptions import FormatError, ConflictError, PlayerNotFoundError
from ..utils.validators import normalize_email
from .pending_points_service import PendingPointsService


ADDRESS_PATTERNS = {
    Chain.EVM.value: re.compile(r'^0x[a-fA-F0-9]{40}$'),
    Chain.SOLANA.value: re.compile(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$'),
    Chain.STELLAR.value: re.compile(r'^G[A-Z0-9]{55}$'),
    Chain.APTOS.value: re.compile(r'^0x[a-fA-F0-9]{64}$'),
}

# Hex-encoded chains are case-insensitive
CASE_INSENSITIVE_CHAINS = {Chain.EVM.value, Chain.APTOS.value}

CHAIN_DISPLAY_NAMES = {
    Chain.EVM.value: 'EVM',
    Chain.SOLANA.value: 'Solana',
    Chain.STELLAR.value: 'Stellar',
    Chain.APTOS.value: 'Aptos',
}


def normalize_chain(chain) -> str:
    """Validate a chain tag."""
    value = chain.value if isinstance(chain, Chain) else chain
    if not isinstance(value, str) or value.strip().lower() not in ADDRESS_PATTERNS:
        raise FormatError(f'Unsupported chain type: {chain}', field='chain')
    return value.strip().lower()


def validate_address(chain, raw) -> str:
    """
    Validate a wallet address against its chain's format.

    Returns:
        Normalized address (lower-cased for evm/aptos, unchanged otherwise)

    Raises:
        FormatError: Unknown chain or malformed address
    """
    chain = normalize_chain(chain)
    if not isinstance(raw, str) or not raw.strip():
        raise FormatError('Wallet address is required', field='walletAddress')

    address = raw.strip()
    if not ADDRESS_PATTERNS[chain].fullmatch(address):
        raise FormatError(
            f'Invalid {CHAIN_DISPLAY_NAMES[chain]} wallet address format',
            field='walletAddress'
        )

    if chain in CASE_INSENSITIVE_CHAINS:
        return address.lower()
    return address


class IdentityService:
    """Resolve, create and bind player identities."""

    def __init__(self, pending: Optional[PendingPointsService] = None):
        self.pending = pending or PendingPointsService()

    # ==================== Lookups ====================

    def find_by_address(self, chain, address) -> Optional[Player]:
        chain = normalize_chain(chain)
        address = validate_address(chain, address)
        return (
            Player.query
            .join(PlayerAddress, PlayerAddress.player_id == Player.id)
            .filter(PlayerAddress.chain == chain, PlayerAddress.address == address)
            .first()
        )

    def find_by_email(self, email) -> Optional[Player]:
        return Player.query.filter_by(email=normalize_email(email)).first()

    def resolve_by_address(self, chain, address) -> Player:
        """Player owning (chain, address). Raises PlayerNotFoundError."""
        player = self.find_by_address(chain, address)
        if player is None:
            raise PlayerNotFoundError(f'{normalize_chain(chain)}:{address}')
        return player

    def resolve_by_email(self, email) -> Player:
        """Player owning the email. Raises PlayerNotFoundError."""
        player = self.find_by_email(email)
        if player is None:
            raise PlayerNotFoundError(normalize_email(email))
        return player

    def get_player(self, player_id: int) -> Player:
        player = db.session.get(Player, player_id)
        if player is None:
            raise PlayerNotFoundError(player_id)
        return player

    # ==================== Binding ====================

    def bind_address(self, player_id: int, chain, address, commit: bool = True) -> Player:
        """
        Bind a wallet address to a player.

        Re-binding the address the player already owns is a no-op.

        Raises:
            FormatError: Malformed address
            ConflictError: Address owned by another player, or the player
                already has a different address on this chain
        """
        chain = normalize_chain(chain)
        address = validate_address(chain, address)
        player = self.get_player(player_id)

        existing = PlayerAddress.query.filter_by(chain=chain, address=address).first()
        if existing is not None:
            if existing.player_id == player.id:
                return player
            raise ConflictError(
                f'{CHAIN_DISPLAY_NAMES[chain]} address is already bound to another player'
            )

        current = player.address_for(chain)
        if current is not None:
            raise ConflictError(
                f'Player already has a different {CHAIN_DISPLAY_NAMES[chain]} address bound'
            )

        player.addresses.append(PlayerAddress(chain=chain, address=address))

        try:
            if commit:
                db.session.commit()
            else:
                db.session.flush()
        except IntegrityError:
            db.session.rollback()
            # Lost a race: accept it if the winner is this same player
            winner = PlayerAddress.query.filter_by(chain=chain, address=address).first()
            if winner is not None and winner.player_id == player_id:
                return self.get_player(player_id)
            raise ConflictError(
                f'{CHAIN_DISPLAY_NAMES[chain]} address is already bound to another player'
            )

        current_app.logger.info(f"Bound {chain} address {address} to player {player.id}")
        return player

    def bind_email(self, player_id: int, email) -> Dict[str, Any]:
        """
        Bind an email to a player and reconcile its pending points atomically.

        Returns:
            Dict with the player and the reconciliation result

        Raises:
            FormatError: Malformed email
            ConflictError: Email belongs to another player
        """
        email = normalize_email(email)
        player = self.get_player(player_id)

        owner = Player.query.filter_by(email=email).first()
        if owner is not None and owner.id != player.id:
            raise ConflictError('Email is already bound to another player')

        newly_bound = player.email != email
        player.email = email

        try:
            db.session.flush()
            reconciliation = self.pending.reconcile(email, player.id, commit=False)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError('Email is already bound to another player')

        if newly_bound:
            current_app.logger.info(f"Bound email {email} to player {player.id}")

        return {
            'player': player,
            'newly_bound': newly_bound,
            'reconciliation': reconciliation,
        }

    # ==================== Create-on-first-seen ====================

    def get_or_create_player(self, chain, address, email=None) -> Tuple[Player, bool]:
        """
        Resolve the player for a wallet, creating one on first sight.

        - Known address: that player.
        - Unknown address, email owned by a player with no address on this
          chain: the address is linked to that player (cross-chain account).
        - Otherwise: a new player.

        A supplied email is bound if the player has none yet and nobody else
        owns it; binding reconciles pending points.

        Returns:
            (player, created)
        """
        chain = normalize_chain(chain)
        address = validate_address(chain, address)
        email = normalize_email(email) if email else None

        player = self.find_by_address(chain, address)
        if player is not None:
            self._bind_email_opportunistically(player, email)
            return player, False

        email_owner = self.find_by_email(email) if email else None
        if email_owner is not None and email_owner.address_for(chain) is None:
            player = self.bind_address(email_owner.id, chain, address)
            current_app.logger.info(
                f"Linked {chain} address {address} to existing player {player.id} via email"
            )
            return player, False

        # Email stays unbound if someone else already owns it
        bind_email = email if email_owner is None else None
        player = Player(email=bind_email, total_points=0)
        player.addresses.append(PlayerAddress(chain=chain, address=address))
        db.session.add(player)

        try:
            db.session.flush()
            if bind_email:
                self.pending.reconcile(bind_email, player.id, commit=False)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            # Concurrent first check-in with the same wallet won the race
            winner = self.find_by_address(chain, address)
            if winner is None:
                raise ConflictError('Could not register wallet: address or email was claimed concurrently')
            self._bind_email_opportunistically(winner, email)
            return winner, False

        current_app.logger.info(f"Created player {player.id} for {chain} address {address}")
        return player, True

    def _bind_email_opportunistically(self, player: Player, email: Optional[str]) -> None:
        if not email:
            return
        if player.email == email:
            return
        if player.email:
            current_app.logger.info(
                f"Player {player.id} already has an email; ignoring {email} from request"
            )
            return
        try:
            self.bind_email(player.id, email)
        except ConflictError:
            current_app.logger.warning(
                f"Email {email} belongs to another player; not binding to player {player.id}"
            )
