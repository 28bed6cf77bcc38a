"""Refund and compensation outcomes for session cancellations and no-shows."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from mentorly.config import settings
from mentorly.enums import RefundTier

CENT = Decimal("0.01")
ZERO = Decimal("0")


def round_money(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class RefundOutcome:
    tier: RefundTier
    refund_amount: Decimal
    compensation_amount: Decimal
    currency: str
    policy_basis: str = ""

    @property
    def total_credit(self) -> Decimal:
        return self.refund_amount + self.compensation_amount

    def to_payload(self) -> dict[str, object]:
        return {
            "tier": self.tier.value,
            "refund_amount": str(round_money(self.refund_amount)),
            "compensation_amount": str(round_money(self.compensation_amount)),
            "currency": self.currency,
            "policy_basis": self.policy_basis,
        }


def _amount(total: Optional[Decimal]) -> Decimal:
    return Decimal(total or 0)


def for_mentee_cancellation(total: Decimal, currency: str, tier: RefundTier) -> RefundOutcome:
    paid = _amount(total)
    if tier == RefundTier.FULL:
        refund = paid
        basis = f">{settings.FULL_REFUND_HOURS}h before session: full refund"
    elif tier == RefundTier.PARTIAL_50:
        refund = paid * Decimal(settings.PARTIAL_REFUND_RATE)
        basis = (
            f"{settings.PARTIAL_REFUND_HOURS}-{settings.FULL_REFUND_HOURS}h before session: "
            "partial refund"
        )
    elif tier == RefundTier.NONE:
        refund = ZERO
        basis = f"<={settings.PARTIAL_REFUND_HOURS}h before session: no refund"
    else:
        raise ValueError(f"Tier {tier.value} does not apply to mentee cancellations")
    return RefundOutcome(tier, refund, ZERO, currency, basis)


def for_mentor_cancellation(total: Decimal, currency: str) -> RefundOutcome:
    paid = _amount(total)
    return RefundOutcome(
        RefundTier.FULL,
        paid,
        paid * Decimal(settings.MENTOR_CANCELLATION_COMPENSATION_RATE),
        currency,
        "Mentor cancellation: full refund plus compensation regardless of timing",
    )


def for_rejection(total: Decimal, currency: str) -> RefundOutcome:
    return RefundOutcome(
        RefundTier.FULL,
        _amount(total),
        ZERO,
        currency,
        "Rejected by mentor: full refund",
    )


def for_mentor_no_show(total: Decimal, currency: str) -> RefundOutcome:
    paid = _amount(total)
    return RefundOutcome(
        RefundTier.FULL_PLUS_COMPENSATION,
        paid,
        paid * Decimal(settings.NO_SHOW_COMPENSATION_RATE),
        currency,
        "Mentor no-show: full refund plus compensation",
    )


def for_mentee_no_show(total: Decimal, currency: str) -> RefundOutcome:
    return RefundOutcome(
        RefundTier.NONE,
        ZERO,
        ZERO,
        currency,
        "Mentee no-show: no refund",
    )
