# mentorly/crud/payment.py
"""
Payment intent CRUD operations.

Rows are intents for the external payment processor; nothing here moves money.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy import func

from mentorly import models
from mentorly.models.payment import TransactionType, TransactionStatus


def create_transaction(
    db: Session,
    session_id: int,
    payer_id: Optional[int],
    amount: Decimal,
    currency: str,
    transaction_type: TransactionType,
    description: Optional[str] = None
) -> models.PaymentTransaction:
    """
    Create a new payment intent record in INITIATED status.

    Args:
        db: Database session
        session_id: Session the intent belongs to
        payer_id: Mentee paying (or being paid back)
        amount: Amount in major units, already rounded
        currency: ISO currency code
        transaction_type: HOLD, REFUND, COMPENSATION or CAPTURE
        description: Optional description

    Returns:
        Created PaymentTransaction object
    """
    transaction = models.PaymentTransaction(
        session_id=session_id,
        payer_id=payer_id,
        amount=amount,
        currency=currency,
        type=transaction_type,
        status=TransactionStatus.INITIATED,
        description=description
    )
    db.add(transaction)
    db.flush()  # Get transaction ID
    return transaction


def update_transaction_status(
    db: Session,
    transaction_id: int,
    status: TransactionStatus
) -> models.PaymentTransaction:
    transaction = db.query(models.PaymentTransaction).filter(
        models.PaymentTransaction.id == transaction_id
    ).first()

    if not transaction:
        raise ValueError(f"Transaction with ID {transaction_id} not found")

    transaction.status = status
    return transaction


def get_session_transactions(
    db: Session,
    session_id: int
) -> List[models.PaymentTransaction]:
    return db.query(models.PaymentTransaction).filter(
        models.PaymentTransaction.session_id == session_id
    ).order_by(models.PaymentTransaction.id).all()


def find_completed_transaction(
    db: Session,
    session_id: int,
    transaction_type: TransactionType
) -> Optional[models.PaymentTransaction]:
    """
    Return the completed intent of a type for a session, if any.
    Used to keep retries keyed by session id idempotent.
    """
    return db.query(models.PaymentTransaction).filter(
        models.PaymentTransaction.session_id == session_id,
        models.PaymentTransaction.type == transaction_type,
        models.PaymentTransaction.status == TransactionStatus.COMPLETED
    ).first()


def get_session_net_amount(db: Session, session_id: int) -> Decimal:
    """Held/captured amount minus refunds and compensations for a session."""
    rows = db.query(
        models.PaymentTransaction.type,
        func.sum(models.PaymentTransaction.amount)
    ).filter(
        models.PaymentTransaction.session_id == session_id,
        models.PaymentTransaction.status == TransactionStatus.COMPLETED
    ).group_by(models.PaymentTransaction.type).all()

    totals = {tx_type: Decimal(str(amount or 0)) for tx_type, amount in rows}
    return (
        totals.get(TransactionType.HOLD, Decimal(0))
        - totals.get(TransactionType.REFUND, Decimal(0))
        - totals.get(TransactionType.COMPENSATION, Decimal(0))
    )
