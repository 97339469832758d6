from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from shiftledger.core.errors import InvalidRange
from shiftledger.services.pay import HourlyTerms, MonthlyTerms, calculate_pay, pay_terms, to_amount
from shiftledger.services.periods import PeriodToken, add_months, resolve_period


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_hourly_pay_multiplies_hours_by_rate() -> None:
    record = SimpleNamespace(pay_type="hourly", hours=Decimal("8"), hourly_rate=Decimal("15"))

    assert pay_terms(record) == HourlyTerms(hours=Decimal("8"), rate=Decimal("15"))
    assert calculate_pay(record) == Decimal("120.00")


def test_monthly_pay_is_salary_over_four() -> None:
    record = SimpleNamespace(pay_type="monthly", monthly_salary=Decimal("3000"))

    assert pay_terms(record) == MonthlyTerms(salary=Decimal("3000"))
    assert calculate_pay(record) == Decimal("750.00")


@pytest.mark.parametrize(
    "record",
    [
        SimpleNamespace(pay_type="hourly", hours=None, hourly_rate=Decimal("15")),
        SimpleNamespace(pay_type="hourly", hours="eight", hourly_rate=Decimal("15")),
        SimpleNamespace(pay_type="hourly", hours="NaN", hourly_rate="10"),
        SimpleNamespace(pay_type="monthly", monthly_salary=None),
        SimpleNamespace(pay_type="weekly", hours=Decimal("8"), hourly_rate=Decimal("15")),
        SimpleNamespace(pay_type="hourly", hours=Decimal("8"), hourly_rate=Decimal("1e30")),
        SimpleNamespace(pay_type="monthly", monthly_salary=Decimal("1e40")),
    ],
)
def test_malformed_records_pay_zero(record: SimpleNamespace) -> None:
    assert calculate_pay(record) == Decimal("0.00")


def test_missing_pay_type_defaults_to_hourly() -> None:
    record = SimpleNamespace(hours="6.5", hourly_rate="18.5")

    assert calculate_pay(record) == Decimal("120.25")


def test_week_starts_monday_and_spans_seven_days() -> None:
    # Sunday belongs to the week that started the previous Monday.
    resolved = resolve_period("week", now=_utc(2025, 1, 26, 23, 30))

    assert resolved.token is PeriodToken.WEEK
    assert resolved.start == _utc(2025, 1, 20)
    assert resolved.end == _utc(2025, 1, 27)
    assert resolved.first_day == date(2025, 1, 20)
    assert resolved.last_day == date(2025, 1, 26)
    assert resolved.contains(date(2025, 1, 20))
    assert not resolved.contains(date(2025, 1, 27))


def test_month_spans_first_to_first_of_next_month() -> None:
    resolved = resolve_period("month", now=_utc(2024, 12, 15, 8))

    assert resolved.start == _utc(2024, 12, 1)
    assert resolved.end == _utc(2025, 1, 1)
    assert resolved.last_day == date(2024, 12, 31)


def test_last_four_weeks_ends_now() -> None:
    now = _utc(2025, 3, 10, 14, 15)
    resolved = resolve_period("last4weeks", now=now)

    assert resolved.start == _utc(2025, 2, 10)
    assert resolved.end == now


def test_custom_range_has_inclusive_end() -> None:
    resolved = resolve_period(
        "custom",
        now=_utc(2025, 1, 22),
        start_date="2025-01-01",
        end_date="2025-01-31",
    )

    assert resolved.inclusive_end is True
    assert resolved.end == datetime(2025, 1, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)
    assert resolved.contains(date(2025, 1, 31))
    assert resolved.serialize()["last_day"] == "2025-01-31"


@pytest.mark.parametrize(
    ("period", "start_date", "end_date"),
    [
        ("custom", "2025-02-01", "2025-01-01"),
        ("custom", "2025-01-01", None),
        ("custom", "01/02/2025", "2025-02-01"),
        ("custom", "2025-02-30", "2025-03-01"),
        ("quarter", None, None),
    ],
)
def test_invalid_ranges_are_rejected(period: str, start_date: str | None, end_date: str | None) -> None:
    with pytest.raises(InvalidRange):
        resolve_period(period, now=_utc(2025, 1, 22), start_date=start_date, end_date=end_date)


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2024, 12, 15), 1) == date(2025, 1, 15)


def test_to_amount_quantizes_and_bounds_values() -> None:
    assert to_amount("6.505") == Decimal("6.50")
    assert to_amount("0.001") == Decimal("0.00")
    assert to_amount("9999999999.99") == Decimal("9999999999.99")
    assert to_amount("10000000000") is None
    assert to_amount("1e30") is None
    assert to_amount("abc") is None
