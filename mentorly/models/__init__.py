# mentorly/models/__init__.py
# Import models in dependency order
from .user import User, MentorProfile
from .availability import AvailabilityRule
from .session import Session
from .payment import PaymentTransaction, TransactionType, TransactionStatus
from .notification import Notification

__all__ = [
    "User",
    "MentorProfile",
    "AvailabilityRule",
    "Session",
    "PaymentTransaction",
    "TransactionType",
    "TransactionStatus",
    "Notification",
]
