"""
Shared pytest fixtures.

Each test gets a fresh in-memory database. The app context stays pushed for
the whole test, so service calls, the test client and the fixtures all share
one SQLAlchemy session.
"""
import pytest

from culturepoints import create_app
from culturepoints.extensions import db as _db
from culturepoints.models import Checkpoint, Player, PlayerAddress

ADMIN_EMAIL = 'admin@culturepoints.test'

EVM_ADDRESS = '0x' + 'ab12' * 10
SOLANA_ADDRESS = '7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU'
STELLAR_ADDRESS = 'GBRPYHIL2CI3FNQ4BXLFMNDLFJUNPU2HY3ZMFSHONUCEOASW7QC7OX2H'
APTOS_ADDRESS = '0x' + 'cd34' * 16


@pytest.fixture
def app():
    """Application with a pushed app context and empty tables."""
    app = create_app('testing')
    ctx = app.app_context()
    ctx.push()
    _db.create_all()

    yield app

    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return {'X-User-Email': ADMIN_EMAIL}


@pytest.fixture
def sample_player(db):
    """Player with an EVM wallet and an email, zero balance."""
    player = Player(email='player@example.com', username='visitor', total_points=0)
    player.addresses.append(PlayerAddress(chain='evm', address=EVM_ADDRESS))
    db.session.add(player)
    db.session.commit()
    return player


@pytest.fixture
def sample_checkpoint(db):
    """Active checkpoint worth 100 points."""
    checkpoint = Checkpoint(
        name='Main Gallery',
        description='Permanent collection',
        chain_type='evm',
        points_value=100,
        is_active=True,
    )
    db.session.add(checkpoint)
    db.session.commit()
    return checkpoint


def make_checkpoint(db, name, points_value=100, is_active=True):
    checkpoint = Checkpoint(name=name, chain_type='evm', points_value=points_value, is_active=is_active)
    db.session.add(checkpoint)
    db.session.commit()
    return checkpoint


def evm_address(n: int) -> str:
    """Distinct valid EVM address per integer."""
    return '0x' + format(n, '040x')
