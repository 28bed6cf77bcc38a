# mentorly/models/payment.py
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, TIMESTAMP, Enum, func
from sqlalchemy.orm import relationship
from mentorly.database import Base
import enum


class TransactionType(str, enum.Enum):
    HOLD = "hold"
    REFUND = "refund"
    COMPENSATION = "compensation"
    CAPTURE = "capture"


class TransactionStatus(str, enum.Enum):
    INITIATED = "initiated"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentTransaction(Base):
    """Payment intent emitted by the engine; money movement happens elsewhere."""

    __tablename__ = "payment_transactions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="SET NULL"), nullable=True, index=True)
    payer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    type = Column(Enum(TransactionType), nullable=False)
    status = Column(Enum(TransactionStatus), default=TransactionStatus.INITIATED, nullable=False)
    description = Column(String(255))
    timestamp = Column(TIMESTAMP, server_default=func.now())

    session = relationship("Session", back_populates="transactions")
