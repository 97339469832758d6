"""Schedule endpoints: CRUD, weekly repeat and spreadsheet import."""

from __future__ import annotations

import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import UUID

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from shiftledger.core.auth import RequestUserContext, get_current_user_context
from shiftledger.core.clock import Clock, get_clock
from shiftledger.core.config import get_settings
from shiftledger.core.errors import FileTooLarge, ValidationError
from shiftledger.db.dependencies import get_db_session
from shiftledger.models.entities import PayType
from shiftledger.services.import_service import SUPPORTED_EXTENSIONS, ScheduleImportService
from shiftledger.services.schedule_service import ScheduleData, ScheduleService
from shiftledger.services.upload_sessions import UploadSessionStore, get_upload_session_store

router = APIRouter(prefix="/schedules", tags=["schedules"])

UPLOAD_CHUNK_BYTES = 1024 * 1024


class ScheduleWritePayload(BaseModel):
    date: date
    pay_type: PayType = PayType.HOURLY
    hours: Decimal | None = None
    hourly_rate: Decimal | None = None
    monthly_salary: Decimal | None = None
    tag: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=2000)

    def to_data(self) -> ScheduleData:
        return ScheduleData(
            date=self.date,
            pay_type=self.pay_type,
            hours=self.hours,
            hourly_rate=self.hourly_rate,
            monthly_salary=self.monthly_salary,
            tag=self.tag,
            notes=self.notes,
        )


class WeeklyRepeatPayload(ScheduleWritePayload):
    repeat_days: list[str] = Field(min_length=1, max_length=7)


class ConfirmUploadPayload(BaseModel):
    upload_id: str = Field(min_length=1, max_length=128)
    rows_to_import: list[int] = Field(default_factory=list)


def _schedule_service(db: Session, clock: Clock) -> ScheduleService:
    return ScheduleService(db, clock=clock)


def _save_upload(file: UploadFile) -> Path:
    """Stream the upload into the configured upload directory and return the file path."""

    settings = get_settings()
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise ValidationError("File type not supported. Only .xlsx and .csv are allowed.")

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(dir=upload_dir, prefix="schedule-", suffix=suffix, delete=False) as handle:
        path = Path(handle.name)
        written = 0
        try:
            while chunk := file.file.read(UPLOAD_CHUNK_BYTES):
                written += len(chunk)
                if written > settings.upload_max_bytes:
                    raise FileTooLarge(f"File exceeds the {settings.upload_max_bytes} byte limit.")
                handle.write(chunk)
        except Exception:
            handle.close()
            path.unlink(missing_ok=True)
            raise
    return path


@router.get("")
def list_schedules(
    upcoming: bool = False,
    start_date: date | None = None,
    end_date: date | None = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, list[object]]:
    service = _schedule_service(db, clock)
    items = service.list_schedules(context=context, upcoming=upcoming, from_day=start_date, to_day=end_date)
    return {"items": [service.serialize_schedule(row) for row in items]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_schedule(
    payload: ScheduleWritePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    service = _schedule_service(db, clock)
    row = service.create_schedule(context=context, data=payload.to_data())
    return service.serialize_schedule(row)


@router.post("/repeat", status_code=status.HTTP_201_CREATED)
def create_weekly_repeat(
    payload: WeeklyRepeatPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    service = _schedule_service(db, clock)
    rows = service.create_weekly_repeat(context=context, data=payload.to_data(), repeat_days=payload.repeat_days)
    return {"created": len(rows), "items": [service.serialize_schedule(row) for row in rows]}


@router.post("/upload")
def upload_schedules(
    file: UploadFile = File(...),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    store: UploadSessionStore = Depends(get_upload_session_store),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    path = _save_upload(file)
    service = ScheduleImportService(db, store=store, clock=clock)
    return service.stage_upload(context=context, path=path, filename=file.filename)


@router.post("/confirm-upload", status_code=status.HTTP_201_CREATED)
def confirm_upload(
    payload: ConfirmUploadPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    store: UploadSessionStore = Depends(get_upload_session_store),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    service = ScheduleImportService(db, store=store, clock=clock)
    return service.confirm_upload(
        context=context,
        upload_id=payload.upload_id,
        rows_to_import=payload.rows_to_import,
    )


@router.get("/template")
def download_template() -> Response:
    exported = ScheduleImportService.build_template()
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


@router.get("/{schedule_id}")
def get_schedule(
    schedule_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    service = _schedule_service(db, clock)
    return service.serialize_schedule(service.get_schedule(context=context, schedule_id=schedule_id))


@router.put("/{schedule_id}")
def update_schedule(
    schedule_id: UUID,
    payload: ScheduleWritePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> dict[str, object]:
    service = _schedule_service(db, clock)
    row = service.update_schedule(context=context, schedule_id=schedule_id, data=payload.to_data())
    return service.serialize_schedule(row)


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(
    schedule_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
) -> Response:
    _schedule_service(db, clock).delete_schedule(context=context, schedule_id=schedule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
