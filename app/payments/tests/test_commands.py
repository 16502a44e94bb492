"""
Tests for the settle_pending_payments management command.
"""

from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from payments.models import Payment
from payments.state_machines import PaymentStatus
from projects.models import Project, ProjectStatus


def run(*args):
    out = StringIO()
    call_command("settle_pending_payments", *args, stdout=out)
    return out.getvalue()


class TestSettlePendingPayments:
    def test_refuses_without_confirmation(self, pending_payment):
        with pytest.raises(CommandError, match="--yes-i-understand"):
            run()

        assert Payment.objects.get(pk=pending_payment.pk).status == PaymentStatus.PENDING

    def test_dry_run_lists_without_changes(self, pending_payment):
        output = run("--dry-run")

        assert "DRY RUN" in output
        assert str(pending_payment.pk) in output
        assert "1 pending payment(s)" in output
        assert Payment.objects.get(pk=pending_payment.pk).status == PaymentStatus.PENDING

    def test_settles_and_resolves(self, pending_payment, failed_payment, project):
        output = run("--yes-i-understand")

        assert "Settled 1 payment(s), resolved 1 project(s)" in output
        assert Payment.objects.get(pk=pending_payment.pk).status == PaymentStatus.SUCCEEDED
        assert Payment.objects.get(pk=failed_payment.pk).status == PaymentStatus.FAILED
        assert Project.objects.get(pk=project.pk).status == ProjectStatus.IN_PROGRESS

    def test_nothing_pending(self, db):
        assert "No pending payments" in run("--yes-i-understand")
