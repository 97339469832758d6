"""ORM model package."""

from shiftledger.models.entities import Expense, PayType, Schedule, User

__all__ = [
    "Expense",
    "PayType",
    "Schedule",
    "User",
]
