"""
Check-in request bodies.

Two shapes are accepted on POST /api/checkin:

    {"walletAddress": ..., "email"?: ..., "checkpoint": ...}            legacy, EVM
    {"chain": ..., "walletAddress": ..., "email"?: ..., "checkpoint": ...}

`chain` is the discriminant. A body that carries `chain` is validated as the
multi-chain shape only, never retried as the legacy one.
"""
from dataclasses import dataclass
from typing import Optional, Union

from .models.player import Chain
from .services.identity_service import normalize_chain, validate_address
from .utils.exceptions import ValidationError
from .utils.validators import normalize_email


@dataclass(frozen=True)
class LegacyCheckinRequest:
    wallet_address: str
    checkpoint: Union[int, str]
    email: Optional[str] = None

    @property
    def chain(self) -> str:
        return Chain.EVM.value


@dataclass(frozen=True)
class ChainCheckinRequest:
    chain: str
    wallet_address: str
    checkpoint: Union[int, str]
    email: Optional[str] = None


CheckinRequest = Union[LegacyCheckinRequest, ChainCheckinRequest]


def _checkpoint_ref(body: dict) -> Union[int, str]:
    ref = body.get('checkpoint')
    if ref is None or isinstance(ref, bool) or isinstance(ref, (dict, list)):
        raise ValidationError('Checkpoint is required', field='checkpoint')
    if isinstance(ref, str):
        ref = ref.strip()
        if not ref:
            raise ValidationError('Checkpoint is required', field='checkpoint')
    return ref


def _optional_email(body: dict) -> Optional[str]:
    email = body.get('email')
    if email is None or (isinstance(email, str) and not email.strip()):
        return None
    return normalize_email(email)


def parse_checkin_request(body) -> CheckinRequest:
    """
    Validate a check-in body into one of the two request variants.

    Raises:
        ValidationError: Not an object, or checkpoint missing
        FormatError: Bad chain, wallet address or email
    """
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object')

    checkpoint = _checkpoint_ref(body)
    email = _optional_email(body)

    if 'chain' in body:
        chain = normalize_chain(body.get('chain'))
        return ChainCheckinRequest(
            chain=chain,
            wallet_address=validate_address(chain, body.get('walletAddress')),
            checkpoint=checkpoint,
            email=email,
        )

    return LegacyCheckinRequest(
        wallet_address=validate_address(Chain.EVM.value, body.get('walletAddress')),
        checkpoint=checkpoint,
        email=email,
    )
