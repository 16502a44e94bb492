"""
Payment amount calculation for project payment plans.

All amounts are integers in the smallest currency unit (cents). Percentages
are applied with Decimal arithmetic and a single ROUND_HALF_UP step, so no
float ever touches a currency amount.

Plans:
    full:    5% discount, everything due now
    split:   30% now, 70% deferred to the final payment
    monthly: one third now, the remainder deferred
    other:   everything due now, no discount (one-shot final/maintenance)

Usage:
    from payments.pricing import PricingCalculator

    breakdown = PricingCalculator.calculate(10000, "split")
    breakdown.amount_due_now   # 3000
    breakdown.amount_deferred  # 7000

    total = PricingCalculator.total_with_tax(project.base_price_cents)
    PricingCalculator.format_amount(9500, "cad")  # "$95.00"
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from django.conf import settings

from payments.state_machines import PaymentPlan

if TYPE_CHECKING:
    from collections.abc import Mapping


FULL_PAYMENT_DISCOUNT_RATE = Decimal("0.05")
SPLIT_INITIAL_RATE = Decimal("0.30")
MONTHLY_INSTALLMENTS = 3

# en-CA display prefixes; unknown currencies fall back to the ISO code
CURRENCY_PREFIXES = {
    "cad": "$",
    "usd": "US$",
    "eur": "€",
    "gbp": "£",
}


@dataclass(frozen=True)
class PaymentBreakdown:
    """
    Result of splitting a total across a payment plan.

    Attributes:
        total: Tax-inclusive project total the breakdown was computed from
        amount_due_now: Charged by the first payment
        amount_deferred: Left for a later final payment (0 when none)
        discount: Amount waived (only the full plan discounts)
        monthly_amount: Installment size for the monthly plan, else None
    """

    total: int
    amount_due_now: int
    amount_deferred: int
    discount: int = 0
    monthly_amount: int | None = None

    @property
    def has_deferred_payment(self) -> bool:
        return self.amount_deferred > 0


def round_half_up(value: Decimal) -> int:
    """Round a Decimal to the nearest integer, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PricingCalculator:
    """
    Pure amount calculations. No I/O, no side effects, no error cases.
    """

    @staticmethod
    def calculate(total_amount: int, plan: str | None) -> PaymentBreakdown:
        """
        Split a tax-inclusive total according to a payment plan.

        Unrecognized plans (including None) charge the full amount now.

        Args:
            total_amount: Total in cents, already tax-inclusive
            plan: Payment plan selector (full, split, monthly, anything else)

        Returns:
            PaymentBreakdown with all amounts in cents

        Example:
            PricingCalculator.calculate(10000, "full")
            # PaymentBreakdown(total=10000, amount_due_now=9500,
            #                  amount_deferred=0, discount=500)
        """
        total = int(total_amount)

        if plan == PaymentPlan.FULL:
            discount = round_half_up(Decimal(total) * FULL_PAYMENT_DISCOUNT_RATE)
            return PaymentBreakdown(
                total=total,
                amount_due_now=total - discount,
                amount_deferred=0,
                discount=discount,
            )

        if plan == PaymentPlan.SPLIT:
            initial = round_half_up(Decimal(total) * SPLIT_INITIAL_RATE)
            return PaymentBreakdown(
                total=total,
                amount_due_now=initial,
                amount_deferred=total - initial,
            )

        if plan == PaymentPlan.MONTHLY:
            installment = round_half_up(Decimal(total) / MONTHLY_INSTALLMENTS)
            return PaymentBreakdown(
                total=total,
                amount_due_now=installment,
                amount_deferred=total - installment,
                monthly_amount=installment,
            )

        return PaymentBreakdown(total=total, amount_due_now=total, amount_deferred=0)

    @staticmethod
    def total_with_tax(
        base_price_cents: int,
        rates: Mapping[str, str | Decimal] | None = None,
    ) -> int:
        """
        Add sales taxes to a pre-tax price.

        Rates default to settings.PROJECT_TAX_RATES (GST 5% + QST 9.975%).
        The combined tax is rounded once.

        Example:
            PricingCalculator.total_with_tax(10000)  # 11498
        """
        if rates is None:
            rates = settings.PROJECT_TAX_RATES
        combined_rate = sum((Decimal(str(rate)) for rate in rates.values()), Decimal("0"))
        tax = round_half_up(Decimal(int(base_price_cents)) * combined_rate)
        return int(base_price_cents) + tax

    @staticmethod
    def format_amount(amount_cents: int, currency: str = "cad") -> str:
        """
        Format cents for display, en-CA style.

        Example:
            PricingCalculator.format_amount(123456, "cad")  # "$1,234.56"
            PricingCalculator.format_amount(500, "usd")     # "US$5.00"
        """
        code = (currency or "cad").lower()
        prefix = CURRENCY_PREFIXES.get(code, f"{code.upper()} ")
        value = Decimal(int(amount_cents)) / 100
        sign = "-" if value < 0 else ""
        return f"{sign}{prefix}{abs(value):,.2f}"


calculate_payment_amounts = PricingCalculator.calculate
