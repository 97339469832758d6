"""Report datasets and CSV/XLSX/PDF rendering."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from io import BytesIO

from sqlalchemy.orm import Session

from shiftledger.core.auth import RequestUserContext
from shiftledger.core.clock import Clock, utc_now
from shiftledger.core.errors import ValidationError
from shiftledger.models.entities import Expense, Schedule
from shiftledger.services.aggregation_service import UNCATEGORIZED, AggregationService, compute_totals
from shiftledger.services.pay import calculate_pay
from shiftledger.services.periods import PeriodToken, ResolvedPeriod, resolve_period

logger = logging.getLogger(__name__)

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

SCHEDULE_COLUMNS = ("date", "day", "hours", "hourly_rate", "tag", "calculated_income")
EXPENSE_COLUMNS = ("date", "vendor", "category", "amount", "notes")
TOTALS_COLUMNS = ("total_income", "total_expenses", "net")


class ReportType(str, Enum):
    SCHEDULE = "schedule"
    EXPENSES = "expenses"
    COMBINED = "combined"


class ReportFormat(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"
    PDF = "pdf"


@dataclass(frozen=True, slots=True)
class QuickExportPreset:
    report_type: ReportType
    period: PeriodToken
    format: ReportFormat


QUICK_EXPORT_PRESETS: dict[str, QuickExportPreset] = {
    "weekly-summary": QuickExportPreset(ReportType.COMBINED, PeriodToken.WEEK, ReportFormat.XLSX),
    "monthly-overview": QuickExportPreset(ReportType.COMBINED, PeriodToken.MONTH, ReportFormat.XLSX),
    "expense-analysis": QuickExportPreset(ReportType.EXPENSES, PeriodToken.MONTH, ReportFormat.XLSX),
}


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


@dataclass(slots=True)
class ReportSection:
    title: str
    columns: tuple[str, ...]
    rows: list[list[str]] = field(default_factory=list)


def _text(value: object) -> str:
    return "" if value is None else str(value)


def schedule_row(row: Schedule) -> list[str]:
    return [
        row.date.isoformat(),
        row.day_of_week,
        _text(row.hours),
        _text(row.hourly_rate),
        _text(row.tag),
        str(calculate_pay(row)),
    ]


def expense_row(row: Expense) -> list[str]:
    return [
        row.date.isoformat(),
        row.vendor,
        row.category or UNCATEGORIZED,
        str(row.amount),
        _text(row.notes),
    ]


def _parse_choice(enum_cls: type[Enum], value: str, field_name: str) -> Enum:
    try:
        return enum_cls(value.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}.") from exc


def render_csv(sections: list[ReportSection]) -> bytes:
    sio = io.StringIO()
    writer = csv.writer(sio)
    for index, section in enumerate(sections):
        if index:
            writer.writerow([])
        writer.writerow(section.columns)
        writer.writerows(section.rows)
    return sio.getvalue().encode("utf-8")


def render_xlsx(sections: list[ReportSection]) -> bytes:
    from openpyxl import Workbook

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "report"
    for index, section in enumerate(sections):
        if index:
            sheet.append([])
        sheet.append(list(section.columns))
        for row in section.rows:
            sheet.append(row)

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


def _latin1(text: str) -> str:
    # Core PDF fonts only cover latin-1.
    return text.encode("latin-1", "replace").decode("latin-1")


def render_pdf(sections: list[ReportSection], *, title: str, subtitle: str) -> bytes:
    from fpdf import FPDF
    from fpdf.enums import XPos, YPos

    pdf = FPDF(orientation="L", unit="mm", format="A4")
    pdf.set_auto_page_break(auto=True, margin=12)
    pdf.add_page()

    pdf.set_text_color(15, 23, 42)
    pdf.set_font("Helvetica", style="B", size=14)
    pdf.cell(0, 8, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", size=10)
    pdf.set_text_color(107, 114, 128)
    pdf.cell(0, 6, _latin1(subtitle), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(3)

    for section in sections:
        col_width = pdf.epw / len(section.columns)

        def fit(text: str) -> str:
            text = _latin1(text)
            while text and pdf.get_string_width(text) > col_width - 2:
                text = text[:-1]
            return text

        pdf.set_text_color(15, 23, 42)
        pdf.set_font("Helvetica", style="B", size=11)
        pdf.cell(0, 7, _latin1(section.title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

        pdf.set_fill_color(249, 243, 233)
        pdf.set_draw_color(230, 230, 230)
        pdf.set_font("Helvetica", style="B", size=8)
        for column in section.columns:
            pdf.cell(col_width, 6, fit(column), border=1, fill=True)
        pdf.ln(6)

        pdf.set_font("Helvetica", size=8)
        for row in section.rows:
            for value in row:
                pdf.cell(col_width, 6, fit(value), border=1)
            pdf.ln(6)
        pdf.ln(4)

    return bytes(pdf.output())


class ReportService:
    """Assembles report datasets for one owner and renders them."""

    def __init__(self, db: Session, *, clock: Clock = utc_now) -> None:
        self.db = db
        self.clock = clock
        self.aggregation = AggregationService(db)

    def build_sections(
        self,
        *,
        context: RequestUserContext,
        report_type: ReportType,
        period: ResolvedPeriod,
    ) -> list[ReportSection]:
        schedules, expenses = self.aggregation.records_in_period(context.user_id, period)
        sections: list[ReportSection] = []

        if report_type in (ReportType.SCHEDULE, ReportType.COMBINED):
            sections.append(
                ReportSection(
                    title="Schedules",
                    columns=SCHEDULE_COLUMNS,
                    rows=[schedule_row(row) for row in schedules],
                )
            )
        if report_type in (ReportType.EXPENSES, ReportType.COMBINED):
            sections.append(
                ReportSection(
                    title="Expenses",
                    columns=EXPENSE_COLUMNS,
                    rows=[expense_row(row) for row in expenses],
                )
            )
        if report_type is ReportType.COMBINED:
            totals = compute_totals(schedules, expenses)
            sections.append(
                ReportSection(
                    title="Totals",
                    columns=TOTALS_COLUMNS,
                    rows=[[str(totals.total_income), str(totals.total_expenses), str(totals.net_profit)]],
                )
            )
        return sections

    def render(
        self,
        *,
        context: RequestUserContext,
        report_type: ReportType,
        report_format: ReportFormat,
        period: ResolvedPeriod,
    ) -> ExportFilePayload:
        sections = self.build_sections(context=context, report_type=report_type, period=period)
        base_filename = (
            f"report_{report_type.value}_{period.token.value}_"
            f"{period.first_day.isoformat()}_to_{period.last_day.isoformat()}"
        )

        renderers: dict[ReportFormat, tuple[str, Callable[[], bytes]]] = {
            ReportFormat.CSV: (CSV_MEDIA_TYPE, lambda: render_csv(sections)),
            ReportFormat.XLSX: (XLSX_MEDIA_TYPE, lambda: render_xlsx(sections)),
            ReportFormat.PDF: (
                PDF_MEDIA_TYPE,
                lambda: render_pdf(
                    sections,
                    title=f"{report_type.value.capitalize()} report",
                    subtitle=f"{period.first_day.isoformat()} to {period.last_day.isoformat()}",
                ),
            ),
        }
        media_type, renderer = renderers[report_format]
        content = renderer()

        logger.info(
            "Generated %s %s report for user %s (%d rows)",
            report_format.value,
            report_type.value,
            context.user_id,
            sum(len(section.rows) for section in sections),
        )
        return ExportFilePayload(
            media_type=media_type,
            filename=f"{base_filename}.{report_format.value}",
            content=content,
        )

    def generate(
        self,
        *,
        context: RequestUserContext,
        report_type: str,
        format_name: str,
        period: str,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> ExportFilePayload:
        parsed_type = _parse_choice(ReportType, report_type, "report_type")
        parsed_format = _parse_choice(ReportFormat, format_name, "format")
        resolved = resolve_period(period, now=self.clock(), start_date=start_date, end_date=end_date)
        return self.render(
            context=context,
            report_type=parsed_type,
            report_format=parsed_format,
            period=resolved,
        )

    def quick_export(self, *, context: RequestUserContext, preset: str) -> ExportFilePayload:
        choice = QUICK_EXPORT_PRESETS.get(preset.strip().lower())
        if choice is None:
            raise ValidationError(f"preset must be one of: {', '.join(QUICK_EXPORT_PRESETS)}.")
        return self.render(
            context=context,
            report_type=choice.report_type,
            report_format=choice.format,
            period=resolve_period(choice.period, now=self.clock()),
        )
