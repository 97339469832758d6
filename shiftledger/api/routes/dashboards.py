"""Dashboard endpoints for period KPIs and all-time totals."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shiftledger.core.auth import RequestUserContext, get_current_user_context
from shiftledger.core.clock import Clock, get_clock
from shiftledger.db.dependencies import get_db_session
from shiftledger.services.aggregation_service import AggregationService
from shiftledger.services.periods import resolve_period

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


def _service(db: Session) -> AggregationService:
    return AggregationService(db)


@router.get("")
def get_dashboard(
    period: str = "week",
    start_date: str | None = None,
    end_date: str | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    resolved = resolve_period(period, now=clock(), start_date=start_date, end_date=end_date)
    return _service(db).dashboard(context=context, period=resolved)


@router.get("/summary")
def get_summary(
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).summary(context=context)
