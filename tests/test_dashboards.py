from __future__ import annotations

from fastapi.testclient import TestClient

from shiftledger.core.auth import create_access_token


def _headers(subject: str = "user-alice", email: str = "alice@test.local") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject=subject, email=email)}"}


def _create_hourly(client: TestClient, headers: dict[str, str], day: str, hours: str, rate: str) -> None:
    response = client.post(
        "/api/v1/schedules",
        headers=headers,
        json={"date": day, "pay_type": "hourly", "hours": hours, "hourly_rate": rate},
    )
    assert response.status_code == 201


def _create_expense(
    client: TestClient,
    headers: dict[str, str],
    day: str,
    amount: str,
    category: str | None = None,
) -> None:
    response = client.post(
        "/api/v1/expenses",
        headers=headers,
        json={"date": day, "vendor": "Corner Shop", "amount": amount, "category": category},
    )
    assert response.status_code == 201


def test_week_dashboard_kpis_and_charts(client: TestClient) -> None:
    headers = _headers()
    _create_hourly(client, headers, "2025-01-20", "8", "15")
    _create_hourly(client, headers, "2025-01-22", "6", "20")
    _create_expense(client, headers, "2025-01-21", "50", "Food")

    response = client.get("/api/v1/dashboards", headers=headers, params={"period": "week"})

    assert response.status_code == 200
    body = response.json()
    assert body["period"]["period"] == "week"
    assert body["period"]["first_day"] == "2025-01-20"
    assert body["period"]["last_day"] == "2025-01-26"
    assert body["kpis"] == {
        "total_income": "240.00",
        "monthly_income": "0.00",
        "total_expenses": "50.00",
        "net_profit": "190.00",
    }

    by_day = {item["day"]: item["income"] for item in body["charts"]["income_by_weekday"]}
    assert list(by_day) == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    assert by_day["Mon"] == "120.00"
    assert by_day["Wed"] == "120.00"
    assert by_day["Tue"] == "0.00"

    assert body["charts"]["expenses_by_category"] == [{"category": "Food", "amount": "50.00"}]
    assert body["charts"]["weekly_trend"] == [{"week": "Week 1", "income": "240.00", "expenses": "50.00"}]


def test_empty_period_reports_zeros(client: TestClient) -> None:
    response = client.get("/api/v1/dashboards", headers=_headers(), params={"period": "month"})

    assert response.status_code == 200
    body = response.json()
    assert body["kpis"]["total_income"] == "0.00"
    assert body["kpis"]["total_expenses"] == "0.00"
    assert body["kpis"]["net_profit"] == "0.00"
    assert body["charts"]["expenses_by_category"] == []
    assert len(body["charts"]["weekly_trend"]) == 5


def test_week_boundaries_include_monday_and_exclude_next_monday(client: TestClient) -> None:
    headers = _headers()
    _create_hourly(client, headers, "2025-01-19", "1", "100")
    _create_hourly(client, headers, "2025-01-20", "2", "10")
    _create_hourly(client, headers, "2025-01-26", "3", "10")
    _create_hourly(client, headers, "2025-01-27", "4", "100")

    body = client.get("/api/v1/dashboards", headers=headers, params={"period": "week"}).json()

    assert body["kpis"]["total_income"] == "50.00"


def test_monthly_schedules_feed_monthly_income_only(client: TestClient) -> None:
    headers = _headers()
    _create_hourly(client, headers, "2025-01-20", "4", "10")
    response = client.post(
        "/api/v1/schedules",
        headers=headers,
        json={"date": "2025-01-21", "pay_type": "monthly", "monthly_salary": "2000"},
    )
    assert response.status_code == 201

    body = client.get("/api/v1/dashboards", headers=headers).json()

    assert body["kpis"]["total_income"] == "40.00"
    assert body["kpis"]["monthly_income"] == "500.00"
    assert body["kpis"]["net_profit"] == "40.00"


def test_uncategorized_expenses_are_grouped(client: TestClient) -> None:
    headers = _headers()
    _create_expense(client, headers, "2025-01-21", "10", None)
    _create_expense(client, headers, "2025-01-22", "5.5", None)
    _create_expense(client, headers, "2025-01-22", "3", "Transportation")

    body = client.get("/api/v1/dashboards", headers=headers).json()

    assert body["charts"]["expenses_by_category"] == [
        {"category": "Transportation", "amount": "3.00"},
        {"category": "Uncategorized", "amount": "15.50"},
    ]


def test_dashboard_is_scoped_to_owner(client: TestClient) -> None:
    _create_hourly(client, _headers("user-alice", "alice@test.local"), "2025-01-20", "8", "15")
    _create_expense(client, _headers("user-bob", "bob@test.local"), "2025-01-20", "30", "Food")

    alice = client.get("/api/v1/dashboards", headers=_headers("user-alice", "alice@test.local")).json()
    bob = client.get("/api/v1/dashboards", headers=_headers("user-bob", "bob@test.local")).json()

    assert alice["kpis"]["total_income"] == "120.00"
    assert alice["kpis"]["total_expenses"] == "0.00"
    assert bob["kpis"]["total_income"] == "0.00"
    assert bob["kpis"]["total_expenses"] == "30.00"


def test_repeated_dashboard_requests_are_identical(client: TestClient) -> None:
    headers = _headers()
    _create_hourly(client, headers, "2025-01-20", "8", "15")

    first = client.get("/api/v1/dashboards", headers=headers, params={"period": "last4weeks"})
    second = client.get("/api/v1/dashboards", headers=headers, params={"period": "last4weeks"})

    assert first.status_code == 200
    assert first.json() == second.json()


def test_custom_range_and_invalid_range(client: TestClient) -> None:
    headers = _headers()
    _create_hourly(client, headers, "2025-01-05", "2", "10")
    _create_hourly(client, headers, "2025-01-20", "8", "15")

    response = client.get(
        "/api/v1/dashboards",
        headers=headers,
        params={"period": "custom", "start_date": "2025-01-01", "end_date": "2025-01-05"},
    )
    assert response.status_code == 200
    assert response.json()["kpis"]["total_income"] == "20.00"

    invalid = client.get(
        "/api/v1/dashboards",
        headers=headers,
        params={"period": "custom", "start_date": "2025-02-01", "end_date": "2025-01-01"},
    )
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "RANGE_001"
    assert invalid.headers["X-Error-Code"] == "RANGE_001"


def test_summary_covers_all_time(client: TestClient) -> None:
    headers = _headers()
    _create_hourly(client, headers, "2024-06-03", "5", "10")
    _create_hourly(client, headers, "2025-01-20", "8", "15")
    _create_expense(client, headers, "2024-07-01", "20", "Utilities")

    response = client.get("/api/v1/dashboards/summary", headers=headers)

    assert response.status_code == 200
    assert response.json() == {
        "summary": {
            "total_income": "170.00",
            "monthly_income": "0.00",
            "total_expenses": "20.00",
            "net_profit": "150.00",
        }
    }
