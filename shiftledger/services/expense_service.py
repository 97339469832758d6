"""Application service for owner-scoped expense records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from shiftledger.core.auth import RequestUserContext
from shiftledger.core.clock import Clock, utc_now
from shiftledger.core.errors import NotFound, ValidationError
from shiftledger.models.entities import Expense
from shiftledger.repositories.tracker_repository import TrackerRepository
from shiftledger.services.pay import to_amount
from shiftledger.services.receipts import ReceiptStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExpenseData:
    date: date
    vendor: str
    amount: Decimal
    category: str | None = None
    receipt_ref: str | None = None
    notes: str | None = None


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def clean_expense_fields(data: ExpenseData) -> ExpenseData:
    """Return ``data`` with ``amount`` quantized to 0.01; ``ValidationError`` when invalid."""

    amount = to_amount(data.amount)
    errors = []
    if not data.vendor or not data.vendor.strip():
        errors.append({"field": "vendor", "message": "vendor is required."})
    if amount is None or amount <= Decimal("0"):
        errors.append({"field": "amount", "message": "amount must be at least 0.01 and fit in 12 digits."})
    if errors:
        raise ValidationError(errors)
    return replace(data, amount=amount)


class ExpenseService:
    """Expense CRUD; stale receipts are released only after the change commits."""

    def __init__(self, db: Session, *, receipts: ReceiptStore, clock: Clock = utc_now) -> None:
        self.db = db
        self.repo = TrackerRepository(db)
        self.receipts = receipts
        self.clock = clock

    @staticmethod
    def serialize_expense(row: Expense) -> dict[str, object]:
        return {
            "id": str(row.id),
            "date": row.date.isoformat(),
            "vendor": row.vendor,
            "category": row.category,
            "amount": str(row.amount),
            "receipt_ref": row.receipt_ref,
            "notes": row.notes,
        }

    def _get_owned(self, *, context: RequestUserContext, expense_id: UUID) -> Expense:
        row = self.repo.get_expense(context.user_id, expense_id)
        if row is None:
            raise NotFound("Expense not found.")
        return row

    def _release(self, ref: str | None) -> None:
        if ref:
            self.receipts.release(ref)

    def list_expenses(
        self,
        *,
        context: RequestUserContext,
        from_day: date | None = None,
        to_day: date | None = None,
    ) -> list[Expense]:
        if from_day is not None and to_day is not None and from_day > to_day:
            raise ValidationError("start_date must be on or before end_date.")
        return self.repo.list_expenses(context.user_id, from_day=from_day, to_day=to_day)

    def get_expense(self, *, context: RequestUserContext, expense_id: UUID) -> Expense:
        return self._get_owned(context=context, expense_id=expense_id)

    def create_expense(self, *, context: RequestUserContext, data: ExpenseData) -> Expense:
        data = clean_expense_fields(data)
        now = self.clock()
        row = self.repo.add_expense(
            Expense(
                owner_id=context.user_id,
                date=data.date,
                vendor=data.vendor.strip(),
                category=_clean_text(data.category),
                amount=data.amount,
                receipt_ref=_clean_text(data.receipt_ref),
                notes=_clean_text(data.notes),
                created_at=now,
                updated_at=now,
            )
        )
        self.db.commit()
        self.db.refresh(row)
        return row

    def update_expense(self, *, context: RequestUserContext, expense_id: UUID, data: ExpenseData) -> Expense:
        data = clean_expense_fields(data)
        row = self._get_owned(context=context, expense_id=expense_id)

        previous_ref = row.receipt_ref
        row.date = data.date
        row.vendor = data.vendor.strip()
        row.category = _clean_text(data.category)
        row.amount = data.amount
        row.receipt_ref = _clean_text(data.receipt_ref)
        row.notes = _clean_text(data.notes)
        row.updated_at = self.clock()

        self.db.commit()
        self.db.refresh(row)

        if previous_ref and previous_ref != row.receipt_ref:
            self._release(previous_ref)
        return row

    def delete_expense(self, *, context: RequestUserContext, expense_id: UUID) -> None:
        row = self._get_owned(context=context, expense_id=expense_id)
        receipt_ref = row.receipt_ref
        self.repo.delete_expense(row)
        self.db.commit()

        self._release(receipt_ref)
        logger.info("Deleted expense %s for user %s", expense_id, context.user_id)
