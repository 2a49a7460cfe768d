"""Ledger aggregation package."""

from myfinance.ledger.aggregator import (
    RangePreset,
    breakdown_by_category,
    day_key,
    filter_by_range,
    filter_by_scope,
    group_by_day,
    monthly_totals,
    net,
    range_for_preset,
    records_on,
    sort_day_keys,
    totals,
    totals_by_currency,
)
from myfinance.ledger.currency import (
    InvalidAmountError,
    format_amount,
    quantize,
    to_decimal,
)

__all__ = [
    "InvalidAmountError",
    "RangePreset",
    "breakdown_by_category",
    "day_key",
    "filter_by_range",
    "filter_by_scope",
    "format_amount",
    "group_by_day",
    "monthly_totals",
    "net",
    "quantize",
    "range_for_preset",
    "records_on",
    "sort_day_keys",
    "to_decimal",
    "totals",
    "totals_by_currency",
]
