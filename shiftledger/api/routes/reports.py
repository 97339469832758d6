"""Report download endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from shiftledger.core.auth import RequestUserContext, get_current_user_context
from shiftledger.core.clock import Clock, get_clock
from shiftledger.db.dependencies import get_db_session
from shiftledger.services.report_service import ExportFilePayload, ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


class ReportRequestPayload(BaseModel):
    report_type: str = Field(min_length=1, max_length=32)
    format: str = Field(min_length=1, max_length=16)
    period: str = Field(min_length=1, max_length=32)
    start_date: date | None = None
    end_date: date | None = None


def _service(db: Session, clock: Clock) -> ReportService:
    return ReportService(db, clock=clock)


def _file_response(exported: ExportFilePayload) -> Response:
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


@router.post("/generate")
def generate_report(
    payload: ReportRequestPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> Response:
    exported = _service(db, clock).generate(
        context=context,
        report_type=payload.report_type,
        format_name=payload.format,
        period=payload.period,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    return _file_response(exported)


@router.get("/quick-export")
def quick_export(
    preset: str = Query(...),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> Response:
    return _file_response(_service(db, clock).quick_export(context=context, preset=preset))
