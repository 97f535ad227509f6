"""
Tests for the Pending Points Ledger.

- enqueue validation
- Exactly-once reconciliation, however many times it is triggered
- award_entry refuses to re-award
- Admin aggregates
"""
import pytest

from culturepoints.models import LedgerEntry, PendingPointsEntry, Player
from culturepoints.services.ledger_service import LedgerService
from culturepoints.services.pending_points_service import PendingPointsService
from culturepoints.utils.exceptions import (
    FormatError,
    ValidationError,
    InvariantViolationError,
    NotFoundError,
)


class TestEnqueue:

    def test_enqueue_normalizes_email(self, app):
        entry = PendingPointsService().enqueue(
            '  New@X.com ', 100, 'Opening night', uploaded_by_email='admin@culturepoints.test'
        )

        assert entry.id is not None
        assert entry.email == 'new@x.com'
        assert entry.points == 100
        assert entry.awarded is False
        assert entry.awarded_at is None

    def test_enqueue_accepts_numeric_string(self, app):
        assert PendingPointsService().enqueue('a@x.com', '75', 'Tour').points == 75

    @pytest.mark.parametrize('points', [0, -5, '1.5', 'abc', None])
    def test_enqueue_rejects_bad_points(self, app, points):
        with pytest.raises(ValidationError):
            PendingPointsService().enqueue('a@x.com', points, 'Tour')

    def test_enqueue_rejects_bad_email(self, app):
        with pytest.raises(FormatError):
            PendingPointsService().enqueue('not-an-email', 10, 'Tour')

    def test_enqueue_requires_reason(self, app):
        with pytest.raises(ValidationError):
            PendingPointsService().enqueue('a@x.com', 10, '  ')


class TestReconcile:

    def test_reconcile_credits_each_entry_once(self, app, sample_player):
        service = PendingPointsService()
        service.enqueue('player@example.com', 100, 'Festival')
        service.enqueue('player@example.com', 50, 'Workshop')

        result = service.reconcile('player@example.com', sample_player.id)

        assert result['claimed_entries'] == 2
        assert result['claimed_points'] == 150
        entries = LedgerEntry.query.filter_by(player_id=sample_player.id).all()
        assert sorted(e.amount for e in entries) == [50, 100]
        assert all(e.source == 'pending_reconciliation' for e in entries)

    def test_repeated_reconcile_is_idempotent(self, app, sample_player):
        service = PendingPointsService()
        service.enqueue('player@example.com', 100, 'Festival')

        for _ in range(5):
            service.reconcile('player@example.com', sample_player.id)

        assert LedgerService().get_balance(sample_player.id) == 100
        assert LedgerEntry.query.count() == 1

    def test_marks_entries_awarded(self, app, sample_player):
        service = PendingPointsService()
        entry = service.enqueue('player@example.com', 100, 'Festival')

        service.reconcile('player@example.com', sample_player.id)

        assert entry.awarded is True
        assert entry.awarded_player_id == sample_player.id
        assert entry.awarded_at is not None

    def test_other_emails_untouched(self, app, sample_player):
        service = PendingPointsService()
        service.enqueue('someone-else@example.com', 100, 'Festival')

        result = service.reconcile('player@example.com', sample_player.id)

        assert result['claimed_entries'] == 0
        assert PendingPointsEntry.query.filter_by(awarded=False).count() == 1

    def test_row_claimed_elsewhere_is_skipped(self, app, db, sample_player):
        """Simulate a concurrent reconciler winning the conditional update."""
        service = PendingPointsService()
        service.enqueue('player@example.com', 100, 'Festival')
        service.enqueue('player@example.com', 30, 'Tour')

        original_claim = service._claim
        calls = []

        def racing_claim(entry_id, player_id):
            calls.append(entry_id)
            if len(calls) == 1:
                # The other reconciler gets there first
                assert original_claim(entry_id, player_id) is True
                return False
            return original_claim(entry_id, player_id)

        service._claim = racing_claim
        result = service.reconcile('player@example.com', sample_player.id)

        assert result['skipped'] == 1
        assert result['claimed_entries'] == 1
        assert LedgerEntry.query.count() == 1


class TestAwardEntry:

    def test_award_entry(self, app, sample_player):
        service = PendingPointsService()
        entry = service.enqueue('player@example.com', 100, 'Festival')

        result = service.award_entry(entry.id, sample_player.id)

        assert result['success'] is True
        assert result['entry']['awarded'] is True
        assert LedgerService().get_balance(sample_player.id) == 100

    def test_re_award_raises(self, app, sample_player):
        service = PendingPointsService()
        entry = service.enqueue('player@example.com', 100, 'Festival')
        service.award_entry(entry.id, sample_player.id)

        with pytest.raises(InvariantViolationError):
            service.award_entry(entry.id, sample_player.id)

        assert LedgerService().get_balance(sample_player.id) == 100

    def test_unknown_entry(self, app, sample_player):
        with pytest.raises(NotFoundError):
            PendingPointsService().award_entry(777, sample_player.id)


class TestAdminQueries:

    def test_summary_groups_unawarded_only(self, app, sample_player):
        service = PendingPointsService()
        service.enqueue('a@x.com', 100, 'One')
        service.enqueue('a@x.com', 20, 'Two')
        service.enqueue('b@x.com', 50, 'Three')
        service.enqueue('player@example.com', 999, 'Claimed')
        service.reconcile('player@example.com', sample_player.id)

        summary = service.summary_by_email()

        assert [row['email'] for row in summary] == ['a@x.com', 'b@x.com']
        assert summary[0]['pending_count'] == 2
        assert summary[0]['total_pending_points'] == 120
        assert summary[0]['oldest_pending'] is not None

    def test_list_entries_hides_awarded_by_default(self, app, sample_player):
        service = PendingPointsService()
        service.enqueue('a@x.com', 100, 'One')
        service.enqueue('player@example.com', 10, 'Claimed')
        service.reconcile('player@example.com', sample_player.id)

        assert len(service.list_entries()) == 1
        assert len(service.list_entries(show_awarded=True)) == 2

    def test_stats(self, app):
        service = PendingPointsService()
        service.enqueue('a@x.com', 100, 'One')
        service.enqueue('b@x.com', 25, 'Two')

        assert service.get_stats() == {
            'pending_entries': 2,
            'pending_total_points': 125,
            'unique_emails': 2,
            'awarded_entries': 0,
        }

    def test_reconcile_bound_emails_sweep(self, app, db):
        service = PendingPointsService()
        service.enqueue('bound@x.com', 80, 'Festival')
        service.enqueue('unbound@x.com', 10, 'Tour')

        # Email bound without going through the resolver
        player = Player(email='bound@x.com', total_points=0)
        db.session.add(player)
        db.session.commit()

        result = service.reconcile_bound_emails()

        assert result['players_credited'] == 1
        assert result['points_credited'] == 80
        assert player.total_points == 80
        assert service.reconcile_bound_emails()['points_credited'] == 0
