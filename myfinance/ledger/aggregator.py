"""
Ledger Aggregation

Pure functions that turn an unordered list of FinancialRecord into the
shapes the ledger screens need: day groups, currency totals, category
breakdowns and month series.

GUARANTEES:
- No function mutates its input or keeps state between calls
- Amounts in different currencies are never mixed or converted
- Day-keys are "YYYY-MM-DD" strings; their lexical order IS their
  chronological order, so sorting never parses dates
"""

import calendar
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Sequence

from myfinance.ledger.currency import to_decimal
from myfinance.models.records import (
    Currency,
    FinancialRecord,
    FlowKind,
    LedgerTotals,
    RecordScope,
)


class RangePreset(str, Enum):
    """Date ranges offered when filtering or exporting the ledger."""
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    CUSTOM = "custom"


def day_key(value) -> str:
    """Canonical YYYY-MM-DD key for a date or datetime."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def group_by_day(records: Iterable, date_field: str = "occurred_on") -> dict[str, list]:
    """
    Group records by calendar day.

    Works for anything with a date attribute; billing history groups on
    "recorded_on". Only days present in the input get an entry, and
    records inside a day are ordered by ascending id.
    """
    groups: dict[str, list] = defaultdict(list)
    for record in records:
        groups[day_key(getattr(record, date_field))].append(record)

    return {
        key: sorted(items, key=lambda r: str(r.id))
        for key, items in groups.items()
    }


def sort_day_keys(keys: Iterable[str]) -> list[str]:
    """Most recent day first."""
    return sorted(keys, reverse=True)


def totals(records: Iterable[FinancialRecord], currency) -> LedgerTotals:
    """
    Sum inflow and outflow for one currency.

    Records in any other currency are skipped, not converted.
    """
    currency = Currency(currency)
    inflow = Decimal("0")
    outflow = Decimal("0")

    for record in records:
        if record.currency != currency:
            continue
        amount = to_decimal(record.amount)
        if record.kind == FlowKind.INFLOW:
            inflow += amount
        else:
            outflow += amount

    return LedgerTotals(inflow=inflow, outflow=outflow)


def net(ledger_totals: LedgerTotals) -> Decimal:
    return ledger_totals.inflow - ledger_totals.outflow


def totals_by_currency(records: Iterable[FinancialRecord]) -> dict[Currency, LedgerTotals]:
    """Totals for every supported currency, zeros where nothing was recorded."""
    records = list(records)
    return {currency: totals(records, currency) for currency in Currency}


def records_on(records: Iterable[FinancialRecord], day: date) -> list[FinancialRecord]:
    return [r for r in records if r.occurred_on == day]


def filter_by_scope(
    records: Iterable[FinancialRecord],
    scope: Optional[RecordScope] = None,
) -> list[FinancialRecord]:
    """Personal or shared records; None keeps everything."""
    if scope is None:
        return list(records)
    scope = RecordScope(scope)
    return [r for r in records if r.scope == scope]


def filter_by_range(
    records: Iterable[FinancialRecord],
    start: date,
    end: date,
) -> list[FinancialRecord]:
    """Records with start <= occurred_on <= end."""
    return [r for r in records if start <= r.occurred_on <= end]


def _one_month_before(day: date) -> date:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    # March 31 -> February 28/29
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def range_for_preset(
    preset,
    today: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> tuple[date, date]:
    """
    Resolve a RangePreset to an inclusive (start, end) pair.

    WEEK covers the last seven days, MONTH reaches back one calendar
    month. CUSTOM requires both bounds.
    """
    preset = RangePreset(preset)

    if preset == RangePreset.TODAY:
        return today, today
    if preset == RangePreset.WEEK:
        return today - timedelta(days=7), today
    if preset == RangePreset.MONTH:
        return _one_month_before(today), today

    if start is None or end is None:
        raise ValueError("Custom range needs both a start and an end date")
    if end < start:
        raise ValueError("Custom range end cannot be before its start")
    return start, end


def breakdown_by_category(
    records: Iterable[FinancialRecord],
    currency,
    kind: FlowKind = FlowKind.OUTFLOW,
) -> dict[str, Decimal]:
    """
    Sum per category for one currency and direction.

    Largest category first; ties broken by name.
    """
    currency = Currency(currency)
    kind = FlowKind(kind)
    sums: dict[str, Decimal] = defaultdict(Decimal)

    for record in records:
        if record.currency == currency and record.kind == kind:
            sums[record.category] += to_decimal(record.amount)

    ordered = sorted(sums.items(), key=lambda item: (-item[1], item[0]))
    return dict(ordered)


def monthly_totals(
    records: Sequence[FinancialRecord],
    currency,
) -> dict[str, LedgerTotals]:
    """
    Per-month totals keyed YYYY-MM, oldest month first.

    Only months with at least one record in the currency appear.
    """
    currency = Currency(currency)
    by_month: dict[str, list[FinancialRecord]] = defaultdict(list)
    for record in records:
        if record.currency == currency:
            by_month[record.occurred_on.strftime("%Y-%m")].append(record)

    return {
        month: totals(by_month[month], currency)
        for month in sorted(by_month)
    }
