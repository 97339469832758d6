"""Bulk schedule import: parse, validate, stage, confirm.

Uploads go through two phases. ``stage_upload`` parses a spreadsheet that the
HTTP layer has already written to disk, validates every row on its own, keeps
the valid rows in the upload session store and returns a preview.
``confirm_upload`` persists the rows the user picked from that preview in a
single transaction and consumes the session.
"""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Any

from openpyxl import Workbook, load_workbook
from sqlalchemy.orm import Session

from shiftledger.core.auth import RequestUserContext
from shiftledger.core.clock import Clock, utc_now
from shiftledger.core.config import get_settings
from shiftledger.core.errors import EmptyFile, MissingColumns, NoRowsSelected, SessionExpired, ValidationError
from shiftledger.models.entities import PayType
from shiftledger.repositories.tracker_repository import TrackerRepository
from shiftledger.services.pay import MAX_HOURS, HourlyTerms, pay_for_terms, to_amount
from shiftledger.services.report_service import XLSX_MEDIA_TYPE, ExportFilePayload
from shiftledger.services.schedule_service import ScheduleData, ScheduleService, weekday_label
from shiftledger.services.upload_sessions import StagedRow, UploadSessionStore

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("date", "hours", "hourly_rate")
OPTIONAL_COLUMNS = ("tag", "notes")
TEMPLATE_COLUMNS = REQUIRED_COLUMNS + OPTIONAL_COLUMNS
SUPPORTED_EXTENSIONS = (".csv", ".xlsx")

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TAG_MAX_LENGTH = 255
NOTES_MAX_LENGTH = 2000

ERROR_DATE = "Missing/invalid date"
ERROR_HOURS = "Invalid hours"
ERROR_RATE = "Invalid rate"
ERROR_TAG = f"Tag longer than {TAG_MAX_LENGTH} characters"
ERROR_NOTES = f"Notes longer than {NOTES_MAX_LENGTH} characters"


@dataclass(slots=True)
class ImportRowResult:
    row_number: int
    raw: dict[str, Any]
    date: date | None = None
    hours: Decimal | None = None
    hourly_rate: Decimal | None = None
    tag: str | None = None
    notes: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_staged(self) -> StagedRow:
        return StagedRow(
            row_number=self.row_number,
            date=self.date,
            hours=self.hours,
            hourly_rate=self.hourly_rate,
            tag=self.tag,
            notes=self.notes,
        )

    def serialize(self) -> dict[str, object]:
        def display(parsed: object, raw_value: Any) -> object:
            if parsed is not None:
                return parsed.isoformat() if isinstance(parsed, date) else str(parsed)
            return _cell_text(raw_value)

        calculated = pay_for_terms(HourlyTerms(hours=self.hours, rate=self.hourly_rate)) if self.is_valid else None
        return {
            "row": self.row_number,
            "date": display(self.date, self.raw.get("date")),
            "hours": display(self.hours, self.raw.get("hours")),
            "hourly_rate": display(self.hourly_rate, self.raw.get("hourly_rate")),
            "tag": self.tag,
            "notes": self.notes,
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "day": weekday_label(self.date) if self.date is not None else None,
            "calculated_pay": str(calculated) if calculated is not None else None,
        }


def _cell_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _is_blank(values: list[Any]) -> bool:
    return all(_cell_text(value) is None for value in values)


def read_sheet_rows(path: Path) -> list[list[Any]]:
    """Return every row of the first sheet as a list of cell values."""

    suffix = path.suffix.lower()
    if suffix == ".csv":
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            return [list(row) for row in csv.reader(handle)]
    if suffix == ".xlsx":
        workbook = load_workbook(filename=path, read_only=True, data_only=True)
        try:
            sheet = workbook.worksheets[0]
            return [list(row) for row in sheet.iter_rows(values_only=True)]
        finally:
            workbook.close()
    raise ValidationError("File type not supported. Only .xlsx and .csv are allowed.")


def parse_cell_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _cell_text(value)
    if text is None or not DATE_PATTERN.match(text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def validate_row(row_number: int, raw: dict[str, Any]) -> ImportRowResult:
    result = ImportRowResult(
        row_number=row_number,
        raw=raw,
        tag=_cell_text(raw.get("tag")),
        notes=_cell_text(raw.get("notes")),
    )

    result.date = parse_cell_date(raw.get("date"))
    if result.date is None:
        result.errors.append(ERROR_DATE)

    # Quantized to the column scale before the range check.
    hours = to_amount(_cell_text(raw.get("hours")))
    if hours is None or hours <= 0 or hours > MAX_HOURS:
        result.errors.append(ERROR_HOURS)
    else:
        result.hours = hours

    rate = to_amount(_cell_text(raw.get("hourly_rate")))
    if rate is None or rate < 0:
        result.errors.append(ERROR_RATE)
    else:
        result.hourly_rate = rate

    if result.tag is not None and len(result.tag) > TAG_MAX_LENGTH:
        result.errors.append(ERROR_TAG)
    if result.notes is not None and len(result.notes) > NOTES_MAX_LENGTH:
        result.errors.append(ERROR_NOTES)

    return result


def validate_sheet(rows: list[list[Any]]) -> list[ImportRowResult]:
    """Validate a parsed sheet whose first row is the header.

    Raises ``MissingColumns``/``EmptyFile`` for structural problems; row-level
    problems are reported on each result instead.
    """

    non_blank = [(index, values) for index, values in enumerate(rows, start=1) if not _is_blank(values)]
    if not non_blank:
        raise EmptyFile()

    _, header_values = non_blank[0]
    header = [(_cell_text(value) or "").lower() for value in header_values]
    missing = [column for column in REQUIRED_COLUMNS if column not in header]
    if missing:
        raise MissingColumns(missing)

    data_rows = non_blank[1:]
    if not data_rows:
        raise EmptyFile()

    positions = {column: header.index(column) for column in TEMPLATE_COLUMNS if column in header}
    results: list[ImportRowResult] = []
    for row_number, values in data_rows:
        raw = {
            column: values[position] if position < len(values) else None
            for column, position in positions.items()
        }
        results.append(validate_row(row_number, raw))
    return results


class ScheduleImportService:
    """Two-phase spreadsheet import into the caller's schedules."""

    def __init__(self, db: Session, *, store: UploadSessionStore, clock: Clock = utc_now) -> None:
        self.db = db
        self.repo = TrackerRepository(db)
        self.store = store
        self.clock = clock
        self.settings = get_settings()

    def stage_upload(
        self,
        *,
        context: RequestUserContext,
        path: Path,
        filename: str | None = None,
    ) -> dict[str, object]:
        try:
            results = validate_sheet(read_sheet_rows(path))
        finally:
            path.unlink(missing_ok=True)

        preview = [result.serialize() for result in results[: self.settings.upload_preview_rows]]
        valid_rows = [result.to_staged() for result in results if result.is_valid]
        session = self.store.create(owner_id=context.user_id, rows=valid_rows, source_filename=filename)
        invalid_count = len(results) - len(valid_rows)
        logger.info(
            "Staged upload %s (%s) for user %s: %d valid, %d invalid rows",
            session.upload_id,
            filename or "unnamed",
            context.user_id,
            len(valid_rows),
            invalid_count,
        )

        return {
            "upload_id": session.upload_id,
            "expires_at": session.expires_at.isoformat(),
            "total_rows": len(results),
            "valid": len(valid_rows),
            "invalid": invalid_count,
            "preview": preview,
        }

    def confirm_upload(
        self,
        *,
        context: RequestUserContext,
        upload_id: str,
        rows_to_import: list[int],
    ) -> dict[str, object]:
        session = self.store.take(upload_id)
        if session is None:
            raise SessionExpired()
        if session.owner_id != context.user_id:
            self.store.restore(session)
            raise SessionExpired()

        selected = set(rows_to_import)
        chosen = [row for row in session.rows if row.row_number in selected]
        if not chosen:
            self.store.restore(session)
            raise NoRowsSelected()

        builder = ScheduleService(self.db, clock=self.clock)
        schedules = [
            builder.build_schedule(
                owner_id=context.user_id,
                data=ScheduleData(
                    date=row.date,
                    pay_type=PayType.HOURLY,
                    hours=row.hours,
                    hourly_rate=row.hourly_rate,
                    tag=row.tag,
                    notes=row.notes,
                ),
            )
            for row in chosen
        ]

        try:
            self.repo.add_schedules(schedules)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.store.restore(session)
            raise

        logger.info("Imported %d schedules from upload %s", len(schedules), upload_id)
        return {
            "imported": len(schedules),
            "message": f"Successfully imported {len(schedules)} schedules.",
        }

    @staticmethod
    def build_template() -> ExportFilePayload:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "schedules"
        sheet.append(list(TEMPLATE_COLUMNS))
        sheet.append(
            [
                "YYYY-MM-DD (e.g. 2025-01-20)",
                "Hours worked, more than 0 and at most 24",
                "Pay per hour, 0 or more",
                "Optional label",
                "Optional notes",
            ]
        )
        sheet.append(["2025-01-20", 8, 15, "Morning shift", None])
        sheet.append(["2025-01-22", 6.5, 18.5, "Evening shift", "Covered for a colleague"])

        output = BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type=XLSX_MEDIA_TYPE,
            filename="schedule_template.xlsx",
            content=output.getvalue(),
        )
