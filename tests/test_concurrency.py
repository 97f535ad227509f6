"""
Ledger and reconciliation behaviour under concurrent callers.

These tests use a file-backed SQLite database so that every thread gets its
own app context, session and connection, the way request threads do.
"""
import threading

import pytest

from culturepoints import create_app
from culturepoints.extensions import db as _db
from culturepoints.models import LedgerEntry, PendingPointsEntry, Player, PlayerAddress
from culturepoints.services.identity_service import IdentityService
from culturepoints.services.ledger_service import LedgerService
from culturepoints.services.pending_points_service import PendingPointsService

from conftest import EVM_ADDRESS, evm_address

THREADS = 8


@pytest.fixture
def file_app(tmp_path):
    """Application on a fresh SQLite file, with no app context pushed."""
    app = create_app('testing', test_config={
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'culturepoints.db'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {
            'pool_size': THREADS,
            'connect_args': {'timeout': 30, 'check_same_thread': False},
        },
    })
    with app.app_context():
        _db.create_all()

    yield app

    with app.app_context():
        _db.session.remove()
        _db.drop_all()
        _db.engine.dispose()


def run_in_threads(app, work, count=THREADS):
    """
    Run work(n) in `count` threads, each in its own app context.

    Returns (results, errors) in completion order.
    """
    results, errors = [], []
    barrier = threading.Barrier(count)

    def worker(n):
        with app.app_context():
            try:
                barrier.wait()
                results.append(work(n))
            except Exception as e:
                errors.append(e)
            finally:
                _db.session.remove()

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results, errors


def seed_player(app, email=None) -> int:
    with app.app_context():
        player = Player(email=email, total_points=0)
        player.addresses.append(PlayerAddress(chain='evm', address=EVM_ADDRESS))
        _db.session.add(player)
        _db.session.commit()
        return player.id


def seed_pending(app, email, count, points=100):
    with app.app_context():
        service = PendingPointsService()
        for i in range(count):
            service.enqueue(email, points, f'Grant {i}')


class TestConcurrentCredits:

    def test_no_lost_updates(self, file_app):
        player_id = seed_player(file_app)

        def work(n):
            ledger = LedgerService()
            for i in range(5):
                ledger.credit(player_id, 3, f'Visit {n}.{i}', 'checkin')

        _, errors = run_in_threads(file_app, work)

        assert errors == []
        with file_app.app_context():
            ledger = LedgerService()
            assert ledger.get_balance(player_id) == THREADS * 5 * 3
            assert ledger.ledger_sum(player_id) == ledger.get_balance(player_id)
            assert LedgerEntry.query.count() == THREADS * 5


class TestConcurrentReconcile:

    def test_each_pending_entry_credited_once(self, file_app):
        player_id = seed_player(file_app, email='new@x.com')
        seed_pending(file_app, 'new@x.com', 5)

        def work(n):
            result = PendingPointsService().reconcile('new@x.com', player_id)
            LedgerService().credit(player_id, 7, f'Visit {n}', 'checkin')
            return result

        results, errors = run_in_threads(file_app, work)

        assert errors == []
        assert sum(r['claimed_entries'] for r in results) == 5
        assert sum(r['claimed_points'] for r in results) == 500

        with file_app.app_context():
            ledger = LedgerService()
            assert ledger.get_balance(player_id) == 500 + THREADS * 7
            assert ledger.ledger_sum(player_id) == ledger.get_balance(player_id)

            reconciled = LedgerEntry.query.filter_by(source='pending_reconciliation').all()
            pending_ids = {e.id for e in PendingPointsEntry.query.all()}
            assert len(reconciled) == 5
            assert {e.reference_id for e in reconciled} == {f'pending:{i}' for i in pending_ids}
            assert PendingPointsEntry.query.filter_by(awarded=False).count() == 0
            assert {e.awarded_player_id for e in PendingPointsEntry.query.all()} == {player_id}

    def test_balance_independent_of_caller_count(self, file_app):
        player_id = seed_player(file_app, email='new@x.com')
        seed_pending(file_app, 'new@x.com', 3, points=40)

        _, errors = run_in_threads(
            file_app, lambda n: PendingPointsService().reconcile('new@x.com', player_id), count=3
        )

        assert errors == []
        with file_app.app_context():
            assert LedgerService().get_balance(player_id) == 120
            assert LedgerEntry.query.count() == 3


class TestConcurrentSignup:

    def test_same_wallet_creates_one_player(self, file_app):
        seed_pending(file_app, 'race@x.com', 2, points=25)
        address = evm_address(7)

        def work(n):
            player, created = IdentityService().get_or_create_player('evm', address, 'race@x.com')
            return player.id, created

        results, errors = run_in_threads(file_app, work)

        assert errors == []
        assert len({player_id for player_id, _ in results}) == 1
        assert sum(1 for _, created in results if created) == 1

        with file_app.app_context():
            assert Player.query.count() == 1
            player = Player.query.one()
            assert player.email == 'race@x.com'
            assert LedgerService().get_balance(player.id) == 50
            assert LedgerService().ledger_sum(player.id) == 50
