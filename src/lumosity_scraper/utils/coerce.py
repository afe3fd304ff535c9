"""Defaulting lookups and coercion for loosely shaped API payloads."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

_MISSING = object()


def dig(obj: Any, *path: Any, default: Any = None) -> Any:
    """Walk a nested dict/list structure without ever raising.

    Each step uses a mapping key (str) or a list index (int). Any missing
    key, out-of-range index or wrong container type yields ``default``.

    Examples:
        dig({"me": {"id": 1}}, "me", "id") -> 1
        dig({"me": None}, "me", "id") -> None
        dig({"a": [1, 2]}, "a", 5, default=0) -> 0
    """
    current = obj
    for key in path:
        if isinstance(current, dict):
            current = current.get(key, _MISSING)
        elif isinstance(current, list) and isinstance(key, int) and not isinstance(key, bool):
            current = current[key] if -len(current) <= key < len(current) else _MISSING
        else:
            return default
        if current is _MISSING:
            return default
    return default if current is None else current


def as_dict(x: Any) -> Dict[str, Any]:
    """Return ``x`` if it is a dict, otherwise an empty dict."""
    return x if isinstance(x, dict) else {}


def as_list(x: Any) -> List[Any]:
    """Return ``x`` if it is a list, otherwise an empty list."""
    return x if isinstance(x, list) else []


def dicts(x: Any) -> List[Dict[str, Any]]:
    """Dict items of a list, dropping anything that is not a mapping."""
    return [item for item in as_list(x) if isinstance(item, dict)]


def to_number_or_none(x: Any) -> Optional[float | int]:
    """Keep ints and floats as they are; parse numeric strings; else None.

    Booleans are not numbers here.
    """
    if isinstance(x, bool) or x is None:
        return None
    if isinstance(x, (int, float)):
        if isinstance(x, float) and (x != x or x in (float("inf"), float("-inf"))):
            return None
        return x
    if isinstance(x, str):
        s = x.replace(",", "").strip()
        if not s:
            return None
        try:
            value = float(s)
        except ValueError:
            return None
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value) if value.is_integer() and "." not in s else value
    return None


def to_int_or_zero(x: Any) -> int:
    """Counter coercion: numeric values truncate to int, anything else is 0."""
    value = to_number_or_none(x)
    return int(value) if value is not None else 0


def to_number_or_zero(x: Any) -> float | int:
    value = to_number_or_none(x)
    return value if value is not None else 0


def to_str_or_none(x: Any) -> Optional[str]:
    """Strings are stripped; numbers are rendered; empty or other types give None."""
    if isinstance(x, bool) or x is None:
        return None
    if isinstance(x, str):
        s = x.strip()
        return s or None
    if isinstance(x, (int, float)):
        return str(x)
    return None


def to_bool(x: Any) -> bool:
    """Truthiness with the common string spellings of false respected."""
    if isinstance(x, str):
        return x.strip().lower() not in {"", "false", "0", "no", "n", "off"}
    return bool(x)


def to_bool_or_none(x: Any) -> Optional[bool]:
    if x is None:
        return None
    return to_bool(x)


def gap_or_zero(later: Any, earlier: Any) -> float | int:
    """``later - earlier`` when both are truthy numbers, else 0."""
    a = to_number_or_none(later)
    b = to_number_or_none(earlier)
    if not a or not b:
        return 0
    return a - b
