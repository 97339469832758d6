"""Pay calculation for schedule records.

A schedule is first reduced to its pay terms, a small tagged variant
(:class:`HourlyTerms` or :class:`MonthlyTerms`), and the amount is computed
from the variant. Both persisted rows and staged import rows go through the
same path, so the dashboard, reports and upload preview agree.

Monthly salaries are spread as ``salary / 4``: a fixed four-week month, with
no calendar-aware proration. Months with 4.3 or 4.4 weeks are therefore
slightly under-counted when weekly figures are summed over a whole month.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, Overflow
from typing import Any

from shiftledger.models.entities import PayType

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")
WEEKS_PER_MONTH = Decimal("4")
MAX_HOURS = Decimal("24")
# Largest value a Numeric(12, 2) column holds.
MAX_AMOUNT = Decimal("9999999999.99")


def q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def to_amount(value: Any) -> Decimal | None:
    """Coerce to a 0.01-quantized ``Decimal`` that fits a money column; ``None`` otherwise."""

    number = to_decimal(value)
    if number is None:
        return None
    try:
        number = q2(number)
    except InvalidOperation:
        return None
    if abs(number) > MAX_AMOUNT:
        return None
    return number


@dataclass(frozen=True, slots=True)
class HourlyTerms:
    hours: Decimal | None
    rate: Decimal | None


@dataclass(frozen=True, slots=True)
class MonthlyTerms:
    salary: Decimal | None


PayTerms = HourlyTerms | MonthlyTerms


def to_decimal(value: Any) -> Decimal | None:
    """Coerce a numeric-looking value to ``Decimal``; ``None`` when it is not a finite number."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not number.is_finite():
        return None
    return number


def pay_terms(record: Any) -> PayTerms | None:
    """Map a schedule-like object onto its pay variant, or ``None`` for an unknown pay type."""

    raw_type = getattr(record, "pay_type", PayType.HOURLY)
    try:
        pay_type = PayType(raw_type)
    except ValueError:
        return None

    if pay_type is PayType.HOURLY:
        return HourlyTerms(
            hours=to_decimal(getattr(record, "hours", None)),
            rate=to_decimal(getattr(record, "hourly_rate", None)),
        )
    return MonthlyTerms(salary=to_decimal(getattr(record, "monthly_salary", None)))


def pay_for_terms(terms: PayTerms | None) -> Decimal:
    try:
        return _pay_for_terms(terms)
    except (InvalidOperation, Overflow):
        return ZERO


def _pay_for_terms(terms: PayTerms | None) -> Decimal:
    if isinstance(terms, HourlyTerms):
        if terms.hours is None or terms.rate is None:
            return ZERO
        return q2(max(terms.hours * terms.rate, ZERO))
    if isinstance(terms, MonthlyTerms):
        if terms.salary is None:
            return ZERO
        return q2(max(terms.salary / WEEKS_PER_MONTH, ZERO))
    return ZERO


def calculate_pay(record: Any) -> Decimal:
    """Monetary amount earned by one schedule record. Never raises."""

    return pay_for_terms(pay_terms(record))


def is_hourly(record: Any) -> bool:
    return isinstance(pay_terms(record), HourlyTerms)


def is_monthly(record: Any) -> bool:
    return isinstance(pay_terms(record), MonthlyTerms)
