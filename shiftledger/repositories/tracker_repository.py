"""Repository helpers for schedules and expenses.

Every query takes an ``owner_id`` and filters on it; there is no unscoped
accessor.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from shiftledger.models.entities import Expense, Schedule


class TrackerRepository:
    """Persistence operations used by schedule, expense and reporting services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Schedules ----------
    def list_schedules(
        self,
        owner_id: UUID,
        *,
        from_day: date | None = None,
        to_day: date | None = None,
        future_only: bool = False,
    ) -> list[Schedule]:
        conditions = [Schedule.owner_id == owner_id]
        if from_day is not None:
            conditions.append(Schedule.date >= from_day)
        if to_day is not None:
            conditions.append(Schedule.date <= to_day)
        if future_only:
            conditions.append(Schedule.is_future.is_(True))

        return self.db.scalars(
            select(Schedule)
            .where(and_(*conditions))
            .order_by(Schedule.date.asc(), Schedule.created_at.asc())
        ).all()

    def get_schedule(self, owner_id: UUID, schedule_id: UUID) -> Schedule | None:
        return self.db.scalar(
            select(Schedule).where(and_(Schedule.id == schedule_id, Schedule.owner_id == owner_id))
        )

    def add_schedule(self, schedule: Schedule) -> Schedule:
        self.db.add(schedule)
        self.db.flush()
        return schedule

    def add_schedules(self, schedules: list[Schedule]) -> list[Schedule]:
        self.db.add_all(schedules)
        self.db.flush()
        return schedules

    def delete_schedule(self, schedule: Schedule) -> None:
        self.db.delete(schedule)
        self.db.flush()

    # ---------- Expenses ----------
    def list_expenses(
        self,
        owner_id: UUID,
        *,
        from_day: date | None = None,
        to_day: date | None = None,
    ) -> list[Expense]:
        conditions = [Expense.owner_id == owner_id]
        if from_day is not None:
            conditions.append(Expense.date >= from_day)
        if to_day is not None:
            conditions.append(Expense.date <= to_day)

        return self.db.scalars(
            select(Expense)
            .where(and_(*conditions))
            .order_by(Expense.date.asc(), Expense.created_at.asc())
        ).all()

    def get_expense(self, owner_id: UUID, expense_id: UUID) -> Expense | None:
        return self.db.scalar(
            select(Expense).where(and_(Expense.id == expense_id, Expense.owner_id == owner_id))
        )

    def add_expense(self, expense: Expense) -> Expense:
        self.db.add(expense)
        self.db.flush()
        return expense

    def delete_expense(self, expense: Expense) -> None:
        self.db.delete(expense)
        self.db.flush()
