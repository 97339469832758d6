from __future__ import annotations

import csv
import io
from io import BytesIO

from fastapi.testclient import TestClient
from openpyxl import load_workbook

from shiftledger.core.auth import create_access_token


def _headers(subject: str = "user-alice") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject=subject)}"}


def _seed(client: TestClient, headers: dict[str, str]) -> None:
    for payload in (
        {"date": "2025-01-22", "hours": "6", "hourly_rate": "20", "tag": "Evening"},
        {"date": "2025-01-20", "hours": "8", "hourly_rate": "15", "tag": "Morning"},
        {"date": "2025-01-21", "pay_type": "monthly", "monthly_salary": "2000"},
    ):
        assert client.post("/api/v1/schedules", headers=headers, json=payload).status_code == 201
    for payload in (
        {"date": "2025-01-21", "vendor": "Market", "amount": "50", "category": "Food"},
        {"date": "2025-01-23", "vendor": "Metro", "amount": "2.75"},
    ):
        assert client.post("/api/v1/expenses", headers=headers, json=payload).status_code == 201


def _generate(client: TestClient, headers: dict[str, str], **payload: str):
    return client.post("/api/v1/reports/generate", headers=headers, json=payload)


def _csv_rows(content: bytes) -> list[list[str]]:
    return list(csv.reader(io.StringIO(content.decode("utf-8"))))


def test_schedule_csv_report(client: TestClient) -> None:
    headers = _headers()
    _seed(client, headers)

    response = _generate(client, headers, report_type="schedule", format="csv", period="week")

    assert response.status_code == 200
    assert response.headers["content-type"] == "text/csv; charset=utf-8"
    assert (
        'filename="report_schedule_week_2025-01-20_to_2025-01-26.csv"'
        in response.headers["content-disposition"]
    )
    rows = _csv_rows(response.content)
    assert rows[0] == ["date", "day", "hours", "hourly_rate", "tag", "calculated_income"]
    assert rows[1] == ["2025-01-20", "Monday", "8.00", "15.00", "Morning", "120.00"]
    assert rows[2] == ["2025-01-21", "Tuesday", "", "", "", "500.00"]
    assert rows[3] == ["2025-01-22", "Wednesday", "6.00", "20.00", "Evening", "120.00"]


def test_combined_csv_report_has_sections_and_totals(client: TestClient) -> None:
    headers = _headers()
    _seed(client, headers)

    response = _generate(client, headers, report_type="combined", format="csv", period="week")

    rows = _csv_rows(response.content)
    expense_header = rows.index(["date", "vendor", "category", "amount", "notes"])
    assert rows[expense_header - 1] == []
    assert rows[expense_header + 1] == ["2025-01-21", "Market", "Food", "50.00", ""]
    assert rows[expense_header + 2] == ["2025-01-23", "Metro", "Uncategorized", "2.75", ""]
    assert rows[-2] == ["total_income", "total_expenses", "net"]
    assert rows[-1] == ["240.00", "52.75", "187.25"]


def test_empty_period_report_has_headers_only(client: TestClient) -> None:
    response = _generate(
        client,
        _headers(),
        report_type="expenses",
        format="csv",
        period="custom",
        start_date="2024-01-01",
        end_date="2024-01-31",
    )

    assert response.status_code == 200
    assert _csv_rows(response.content) == [["date", "vendor", "category", "amount", "notes"]]
    assert "report_expenses_custom_2024-01-01_to_2024-01-31.csv" in response.headers["content-disposition"]


def test_xlsx_report(client: TestClient) -> None:
    headers = _headers()
    _seed(client, headers)

    response = _generate(client, headers, report_type="expenses", format="xlsx", period="month")

    assert response.status_code == 200
    assert response.headers["content-type"] == (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    workbook = load_workbook(BytesIO(response.content))
    assert workbook.sheetnames == ["report"]
    rows = list(workbook["report"].iter_rows(values_only=True))
    assert rows[0] == ("date", "vendor", "category", "amount", "notes")
    assert len(rows) == 3


def test_pdf_report(client: TestClient) -> None:
    headers = _headers()
    _seed(client, headers)

    response = _generate(client, headers, report_type="combined", format="pdf", period="week")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


def test_unknown_report_type_and_format(client: TestClient) -> None:
    headers = _headers()

    bad_type = _generate(client, headers, report_type="payroll", format="csv", period="week")
    bad_format = _generate(client, headers, report_type="schedule", format="docx", period="week")

    assert bad_type.status_code == 400
    assert bad_type.json()["code"] == "VAL_001"
    assert bad_format.status_code == 400


def test_custom_report_with_inverted_range(client: TestClient) -> None:
    response = _generate(
        client,
        _headers(),
        report_type="schedule",
        format="csv",
        period="custom",
        start_date="2025-02-01",
        end_date="2025-01-01",
    )

    assert response.status_code == 400
    assert response.json()["code"] == "RANGE_001"


def test_missing_report_fields_are_rejected(client: TestClient) -> None:
    response = client.post("/api/v1/reports/generate", headers=_headers(), json={"report_type": "schedule"})

    assert response.status_code == 400
    fields = {item["field"] for item in response.json()["detail"]}
    assert {"format", "period"} <= fields


def test_quick_export_presets(client: TestClient) -> None:
    headers = _headers()
    _seed(client, headers)

    weekly = client.get("/api/v1/reports/quick-export", headers=headers, params={"preset": "weekly-summary"})
    monthly = client.get("/api/v1/reports/quick-export", headers=headers, params={"preset": "monthly-overview"})
    expenses = client.get("/api/v1/reports/quick-export", headers=headers, params={"preset": "expense-analysis"})

    assert weekly.status_code == 200
    assert "report_combined_week_2025-01-20_to_2025-01-26.xlsx" in weekly.headers["content-disposition"]
    assert "report_combined_month_2025-01-01_to_2025-01-31.xlsx" in monthly.headers["content-disposition"]
    assert "report_expenses_month_2025-01-01_to_2025-01-31.xlsx" in expenses.headers["content-disposition"]

    unknown = client.get("/api/v1/reports/quick-export", headers=headers, params={"preset": "yearly"})
    assert unknown.status_code == 400
