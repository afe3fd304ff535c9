"""Utility helpers shared by extractors, transformers and loaders."""

from .coerce import as_dict, as_list, dicts, dig, to_number_or_none, to_str_or_none
from .dates import days_in_month, local_now, local_today, month_name, parse_day, utc_timestamp

__all__ = [
    "as_dict",
    "as_list",
    "dicts",
    "dig",
    "to_number_or_none",
    "to_str_or_none",
    "days_in_month",
    "local_now",
    "local_today",
    "month_name",
    "parse_day",
    "utc_timestamp",
]
