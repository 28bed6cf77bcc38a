# mentorly/services/payment_service.py
"""
Payment Intents - Business Logic Service

Records the money movements a booking or a terminal transition implies
(hold at booking, refund and compensation on cancellation or no-show,
capture on completion). Amounts are rounded half-up to cents here, at the
point of emission.

Nothing in this module commits: intents are written in the same database
transaction as the session change that caused them. Every emitter is keyed
by (session id, intent type) so a retried request never emits twice.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from mentorly import models
from mentorly.crud import payment as payment_crud
from mentorly.models.payment import TransactionType, TransactionStatus
from mentorly.services.refund_policy import RefundOutcome, round_money

logger = logging.getLogger(__name__)


def _emit(
    db: Session,
    session: models.Session,
    amount: Decimal,
    transaction_type: TransactionType,
    description: str,
) -> Optional[models.PaymentTransaction]:
    amount = round_money(amount)
    if amount <= 0:
        return None

    existing = payment_crud.find_completed_transaction(db, session.id, transaction_type)
    if existing:
        logger.info(
            "Skipping duplicate %s intent for session %s (transaction_id=%s)",
            transaction_type.value,
            session.id,
            existing.id,
        )
        return existing

    transaction = payment_crud.create_transaction(
        db=db,
        session_id=session.id,
        payer_id=session.mentee_id,
        amount=amount,
        currency=session.currency,
        transaction_type=transaction_type,
        description=description,
    )
    payment_crud.update_transaction_status(db, transaction.id, TransactionStatus.COMPLETED)
    logger.info(
        "Emitted %s intent of %s %s for session %s",
        transaction_type.value,
        amount,
        session.currency,
        session.id,
    )
    return transaction


def hold_payment(db: Session, session: models.Session) -> Optional[models.PaymentTransaction]:
    """Hold the amount due at booking. Free sessions hold nothing."""
    return _emit(
        db,
        session,
        Decimal(session.total_amount or 0),
        TransactionType.HOLD,
        f"Booking hold - Session ID: {session.id}",
    )


def apply_refund_outcome(
    db: Session,
    session: models.Session,
    outcome: RefundOutcome,
) -> List[models.PaymentTransaction]:
    """Emit the refund and compensation intents described by ``outcome``."""
    emitted = []
    refund = _emit(
        db,
        session,
        outcome.refund_amount,
        TransactionType.REFUND,
        f"{outcome.tier.value} refund - Session ID: {session.id}",
    )
    if refund is not None:
        emitted.append(refund)

    compensation = _emit(
        db,
        session,
        outcome.compensation_amount,
        TransactionType.COMPENSATION,
        f"Compensation - Session ID: {session.id}",
    )
    if compensation is not None:
        emitted.append(compensation)
    return emitted


def capture_payment(db: Session, session: models.Session) -> Optional[models.PaymentTransaction]:
    """Release the held amount to the mentor once the session completed."""
    return _emit(
        db,
        session,
        Decimal(session.total_amount or 0),
        TransactionType.CAPTURE,
        f"Session completed - Session ID: {session.id}",
    )
