"""
Tests for the pure status reducer and the lifecycle ordering.

No database, gateway or ledger is involved: payments are plain stand-ins.
"""

import itertools
from types import SimpleNamespace

import pytest

from payments.state_machines import PaymentStatus, PaymentType
from projects.models import ProjectStatus
from projects.services import advance, derive_status


def payment(payment_type, status=PaymentStatus.SUCCEEDED):
    return SimpleNamespace(payment_type=payment_type, status=status)


class TestDeriveStatus:
    def test_no_payments_is_confirmed(self):
        assert derive_status([]) == ProjectStatus.CONFIRMED

    def test_succeeded_initial_is_in_progress(self):
        assert derive_status([payment(PaymentType.INITIAL)]) == ProjectStatus.IN_PROGRESS

    def test_succeeded_final_is_completed(self):
        assert derive_status([payment(PaymentType.FINAL)]) == ProjectStatus.COMPLETED

    def test_final_wins_over_initial_in_any_order(self):
        payments = [payment(PaymentType.INITIAL), payment(PaymentType.FINAL)]

        assert derive_status(payments) == ProjectStatus.COMPLETED
        assert derive_status(list(reversed(payments))) == ProjectStatus.COMPLETED

    def test_maintenance_alone_is_confirmed(self):
        assert derive_status([payment(PaymentType.MAINTENANCE)]) == ProjectStatus.CONFIRMED

    @pytest.mark.parametrize(
        "status",
        [PaymentStatus.PENDING, PaymentStatus.FAILED, PaymentStatus.CANCELED],
    )
    def test_ignores_payments_that_did_not_succeed(self, status):
        payments = [
            payment(PaymentType.INITIAL),
            payment(PaymentType.FINAL, status=status),
        ]

        assert derive_status(payments) == ProjectStatus.IN_PROGRESS

    def test_accepts_a_generator(self):
        assert derive_status(p for p in [payment(PaymentType.INITIAL)]) == (
            ProjectStatus.IN_PROGRESS
        )


class TestAdvance:
    def test_moves_forward(self):
        assert advance(ProjectStatus.CONFIRMED, ProjectStatus.IN_PROGRESS) == (
            ProjectStatus.IN_PROGRESS
        )

    def test_never_leaves_completed(self):
        for status in ProjectStatus.values:
            assert advance(ProjectStatus.COMPLETED, status) == ProjectStatus.COMPLETED

    def test_does_not_regress_in_progress(self):
        assert advance(ProjectStatus.IN_PROGRESS, ProjectStatus.CONFIRMED) == (
            ProjectStatus.IN_PROGRESS
        )

    def test_keeps_manual_statuses_past_the_derived_one(self):
        """Admin-set statuses like review are not pulled back to in_progress."""
        assert advance(ProjectStatus.REVIEW, ProjectStatus.IN_PROGRESS) == (
            ProjectStatus.REVIEW
        )

    def test_result_is_the_later_status_for_every_pair(self):
        for current, derived in itertools.product(ProjectStatus.values, repeat=2):
            result = advance(current, derived)
            assert result in (current, derived)
            assert ProjectStatus.rank(result) == max(
                ProjectStatus.rank(current), ProjectStatus.rank(derived)
            )

    def test_unknown_stored_status_is_replaced(self):
        assert ProjectStatus.rank("on_hold") == -1
        assert advance("on_hold", ProjectStatus.CONFIRMED) == ProjectStatus.CONFIRMED
