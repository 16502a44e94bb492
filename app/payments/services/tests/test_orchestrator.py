"""
Tests for PaymentOrchestrator.

Tests cover:
- InitiatePaymentParams validation
- Payment type and amount selection per plan
- Intent creation and pending payment recording
- Reuse of open intents
- Error handling
"""

from unittest.mock import MagicMock, patch

import pytest

from payments.adapters import IntentResult
from payments.exceptions import GatewayUnavailable
from payments.models import Payment
from payments.pricing import PricingCalculator
from payments.services import InitiatePaymentParams, PaymentOrchestrator
from payments.state_machines import PaymentPlan, PaymentStatus, PaymentType
from payments.tests.factories import PaymentFactory


def intent_result(gateway_intent_id="pi_new_001", status="requires_payment_method", **kwargs):
    return IntentResult(
        gateway_intent_id=gateway_intent_id,
        status=status,
        amount=kwargs.pop("amount", 3449),
        currency="cad",
        client_secret=kwargs.pop("client_secret", f"{gateway_intent_id}_secret"),
        **kwargs,
    )


@pytest.fixture
def gateway():
    """Replace the orchestrator's gateway client with a mock."""
    mock = MagicMock()
    mock.create_intent.return_value = intent_result()
    with patch.object(PaymentOrchestrator, "gateway", mock):
        yield mock


# =============================================================================
# InitiatePaymentParams Tests
# =============================================================================


class TestInitiatePaymentParams:
    def test_defaults_currency(self, project, settings):
        settings.PAYMENTS_DEFAULT_CURRENCY = "cad"

        params = InitiatePaymentParams(
            project=project, amount_cents=3449, payment_type=PaymentType.INITIAL
        )

        assert params.currency == "cad"
        assert params.metadata is None

    @pytest.mark.parametrize("amount", [0, -100])
    def test_amount_must_be_positive(self, project, amount):
        with pytest.raises(ValueError, match="amount_cents must be positive"):
            InitiatePaymentParams(
                project=project, amount_cents=amount, payment_type=PaymentType.INITIAL
            )

    def test_unknown_payment_type(self, project):
        with pytest.raises(ValueError, match="Unknown payment type"):
            InitiatePaymentParams(project=project, amount_cents=100, payment_type="deposit")


# =============================================================================
# Payment Type Selection Tests
# =============================================================================


class TestPaymentTypeFor:
    def test_full_plan_is_a_single_final_payment(self):
        breakdown = PricingCalculator.calculate(10000, PaymentPlan.FULL)

        assert PaymentOrchestrator.payment_type_for(PaymentPlan.FULL, breakdown) == (
            PaymentType.FINAL,
            9500,
        )

    def test_split_plan_starts_with_initial(self):
        breakdown = PricingCalculator.calculate(10000, PaymentPlan.SPLIT)

        assert PaymentOrchestrator.payment_type_for(PaymentPlan.SPLIT, breakdown) == (
            PaymentType.INITIAL,
            3000,
        )

    def test_explicit_final_charges_the_remainder(self):
        breakdown = PricingCalculator.calculate(10000, PaymentPlan.MONTHLY)

        assert PaymentOrchestrator.payment_type_for(
            PaymentPlan.MONTHLY, breakdown, PaymentType.FINAL
        ) == (PaymentType.FINAL, 6667)

    def test_maintenance_charges_the_total(self):
        breakdown = PricingCalculator.calculate(10000, PaymentPlan.SPLIT)

        assert PaymentOrchestrator.payment_type_for(
            PaymentPlan.SPLIT, breakdown, PaymentType.MAINTENANCE
        ) == (PaymentType.MAINTENANCE, 10000)


# =============================================================================
# initiate_project_payment Tests
# =============================================================================


class TestInitiateProjectPayment:
    def test_split_plan_records_pending_initial_payment(self, project, gateway):
        """
        Given a $100.00 project on the split plan
        When the client starts paying
        Then 30% of the tax-inclusive total is charged as the initial payment
        """
        result = PaymentOrchestrator.initiate_project_payment(project, PaymentPlan.SPLIT)

        assert result.success
        payment = result.data.payment
        assert payment.status == PaymentStatus.PENDING
        assert payment.payment_type == PaymentType.INITIAL
        assert payment.amount_cents == 3449
        assert payment.gateway_intent_id == "pi_new_001"
        assert result.data.client_secret == "pi_new_001_secret"
        assert result.data.breakdown.total == 11498
        assert result.data.reused is False

    def test_intent_metadata(self, project, gateway):
        PaymentOrchestrator.initiate_project_payment(project, PaymentPlan.SPLIT)

        kwargs = gateway.create_intent.call_args.kwargs
        assert kwargs["amount_cents"] == 3449
        assert kwargs["project_id"] == project.pk
        assert kwargs["client_id"] == project.client_id
        assert kwargs["payment_type"] == PaymentType.INITIAL
        assert kwargs["metadata"] == {
            "payment_option": "split",
            "project_title": project.title,
            "total_amount": 11498,
            "discount": 0,
        }

    def test_unknown_plan(self, project, gateway):
        result = PaymentOrchestrator.initiate_project_payment(project, "weekly")

        assert not result.success
        assert result.error_code == "INVALID_PARAMETERS"
        gateway.create_intent.assert_not_called()

    def test_nothing_due_for_free_project(self, project, gateway):
        project.base_price_cents = 0

        result = PaymentOrchestrator.initiate_project_payment(project, PaymentPlan.FULL)

        assert not result.success
        assert result.error_code == "NOTHING_DUE"
        gateway.create_intent.assert_not_called()


# =============================================================================
# initiate_payment Tests
# =============================================================================


class TestInitiatePayment:
    def params(self, project, amount_cents=3449):
        return InitiatePaymentParams(
            project=project,
            amount_cents=amount_cents,
            payment_type=PaymentType.INITIAL,
            currency="cad",
        )

    def test_idempotency_key_is_deterministic(self, project, gateway):
        PaymentOrchestrator.initiate_payment(self.params(project))
        first_key = gateway.create_intent.call_args.kwargs["idempotency_key"]
        Payment.objects.all().delete()

        PaymentOrchestrator.initiate_payment(self.params(project))
        second_key = gateway.create_intent.call_args.kwargs["idempotency_key"]

        assert first_key == second_key
        assert first_key.startswith(f"create_intent:{project.pk}:initial:3449:1:")

    def test_reuses_open_intent(self, project, gateway):
        existing = PaymentFactory(
            project=project, amount_cents=3449, gateway_intent_id="pi_open_001"
        )
        gateway.retrieve_intent.return_value = intent_result("pi_open_001")

        result = PaymentOrchestrator.initiate_payment(self.params(project))

        assert result.success
        assert result.data.reused is True
        assert result.data.payment.pk == existing.pk
        assert result.data.client_secret == "pi_open_001_secret"
        gateway.create_intent.assert_not_called()

    def test_canceled_intent_is_replaced_with_new_key(self, project, gateway):
        PaymentFactory(project=project, amount_cents=3449, gateway_intent_id="pi_old_001")
        gateway.retrieve_intent.return_value = intent_result("pi_old_001", status="canceled")

        result = PaymentOrchestrator.initiate_payment(self.params(project))

        assert result.success
        assert result.data.payment.gateway_intent_id == "pi_new_001"
        old = Payment.objects.get(gateway_intent_id="pi_old_001")
        assert old.status == PaymentStatus.CANCELED
        key = gateway.create_intent.call_args.kwargs["idempotency_key"]
        assert f":3449:2:" in key

    def test_processing_intent_blocks_new_charge(self, project, gateway):
        PaymentFactory(project=project, amount_cents=3449, gateway_intent_id="pi_busy_001")
        gateway.retrieve_intent.return_value = intent_result(
            "pi_busy_001", status="processing"
        )

        result = PaymentOrchestrator.initiate_payment(self.params(project))

        assert not result.success
        assert result.error_code == "PAYMENT_IN_PROGRESS"
        gateway.create_intent.assert_not_called()

    def test_unreadable_open_intent_is_not_duplicated(self, project, gateway):
        PaymentFactory(project=project, amount_cents=3449, gateway_intent_id="pi_lost_001")
        gateway.retrieve_intent.side_effect = GatewayUnavailable("timeout")

        result = PaymentOrchestrator.initiate_payment(self.params(project))

        assert not result.success
        assert result.error_code == "GATEWAY_UNAVAILABLE"
        gateway.create_intent.assert_not_called()
        assert list(
            Payment.objects.filter(project=project).values_list(
                "gateway_intent_id", flat=True
            )
        ) == ["pi_lost_001"]

    def test_gateway_unavailable(self, project, gateway):
        gateway.create_intent.side_effect = GatewayUnavailable(
            "Could not connect to Stripe. Please retry.",
            gateway_code="api_connection_error",
        )

        result = PaymentOrchestrator.initiate_payment(self.params(project))

        assert not result.success
        assert result.error_code == "GATEWAY_UNAVAILABLE"
        assert not Payment.objects.filter(project=project).exists()

    def test_intent_recorded_for_other_project(self, project, gateway):
        PaymentFactory(gateway_intent_id="pi_new_001", amount_cents=999)

        result = PaymentOrchestrator.initiate_payment(self.params(project))

        assert not result.success
        assert result.error_code == "INTENT_ALREADY_RECORDED"

    def test_unexpected_error(self, project, gateway):
        gateway.create_intent.side_effect = RuntimeError("boom")

        result = PaymentOrchestrator.initiate_payment(self.params(project))

        assert not result.success
        assert result.error_code == "PAYMENT_INITIATION_ERROR"
