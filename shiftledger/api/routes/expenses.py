"""Expense endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from shiftledger.core.auth import RequestUserContext, get_current_user_context
from shiftledger.core.clock import Clock, get_clock
from shiftledger.db.dependencies import get_db_session
from shiftledger.services.expense_service import ExpenseData, ExpenseService
from shiftledger.services.receipts import ReceiptStore, get_receipt_store

router = APIRouter(prefix="/expenses", tags=["expenses"])


class ExpenseWritePayload(BaseModel):
    date: date
    vendor: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(gt=0)
    category: str | None = Field(default=None, max_length=64)
    receipt_ref: str | None = Field(default=None, max_length=1024)
    notes: str | None = Field(default=None, max_length=2000)

    def to_data(self) -> ExpenseData:
        return ExpenseData(
            date=self.date,
            vendor=self.vendor,
            amount=self.amount,
            category=self.category,
            receipt_ref=self.receipt_ref,
            notes=self.notes,
        )


def _service(db: Session, receipts: ReceiptStore, clock: Clock) -> ExpenseService:
    return ExpenseService(db, receipts=receipts, clock=clock)


@router.get("")
def list_expenses(
    start_date: date | None = None,
    end_date: date | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    receipts: ReceiptStore = Depends(get_receipt_store),
    clock: Clock = Depends(get_clock),
) -> dict[str, list[object]]:
    service = _service(db, receipts, clock)
    items = service.list_expenses(context=context, from_day=start_date, to_day=end_date)
    return {"items": [service.serialize_expense(row) for row in items]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_expense(
    payload: ExpenseWritePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    receipts: ReceiptStore = Depends(get_receipt_store),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    service = _service(db, receipts, clock)
    return service.serialize_expense(service.create_expense(context=context, data=payload.to_data()))


@router.get("/{expense_id}")
def get_expense(
    expense_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    receipts: ReceiptStore = Depends(get_receipt_store),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    service = _service(db, receipts, clock)
    return service.serialize_expense(service.get_expense(context=context, expense_id=expense_id))


@router.put("/{expense_id}")
def update_expense(
    expense_id: UUID,
    payload: ExpenseWritePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    receipts: ReceiptStore = Depends(get_receipt_store),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    service = _service(db, receipts, clock)
    row = service.update_expense(context=context, expense_id=expense_id, data=payload.to_data())
    return service.serialize_expense(row)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    receipts: ReceiptStore = Depends(get_receipt_store),
    clock: Clock = Depends(get_clock),
) -> Response:
    _service(db, receipts, clock).delete_expense(context=context, expense_id=expense_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
