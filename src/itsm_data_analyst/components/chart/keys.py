"""
Key resolution for chart rendering.

Each renderer needs to pick fields out of the first data record (the numeric
series, the category label, the scatter axes). Resolution is an ordered list
of typed predicates evaluated in sequence; the first match wins and "no match"
is an explicit None so the caller decides the literal fallback.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

KeyPredicate = Callable[[str], bool]

# Literal fallbacks when no field qualifies
PIE_VALUE_FALLBACK = "value"
PIE_NAME_FALLBACK = "segment"
SCATTER_X_FALLBACK = "x"
SCATTER_Y_FALLBACK = "y"

PIE_VALUE_HINTS = ("value", "count", "total")
PIE_NAME_HINTS = ("name", "label", "segment", "type", "category")


def is_number(value: Any) -> bool:
    """True for ints and floats. Booleans are not treated as numbers."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def first_match(keys: Iterable[str], *predicates: KeyPredicate) -> Optional[str]:
    """
    Evaluate predicates in order and return the first key matching one.

    Predicates are tried one at a time across all keys, so an earlier
    predicate always beats a later one regardless of key order.
    """
    key_list = list(keys)
    for predicate in predicates:
        for key in key_list:
            if predicate(key):
                return key
    return None


def value_is(record: Mapping[str, Any], check: Callable[[Any], bool]) -> KeyPredicate:
    return lambda key: check(record.get(key))


def name_contains(*fragments: str) -> KeyPredicate:
    lowered = tuple(f.lower() for f in fragments)
    return lambda key: any(fragment in key.lower() for fragment in lowered)


def numeric_keys(record: Mapping[str, Any]) -> List[str]:
    return [key for key, value in record.items() if is_number(value)]


# ---------------------------------------------------------------------------
# Per-renderer resolution
# ---------------------------------------------------------------------------

def resolve_bar_value_key(
    record: Mapping[str, Any],
    x_axis_key: Optional[str],
    series_keys: Sequence[str],
) -> Optional[str]:
    """
    Plotted key for single-series bar charts.

    First numeric field that is not the x-axis, else the first chartConfig key.
    Returns None only when neither exists.
    """
    key = first_match(
        record.keys(),
        lambda k: k != x_axis_key and is_number(record.get(k)),
    )
    if key is not None:
        return key
    return series_keys[0] if series_keys else None


@dataclass(frozen=True)
class PieKeys:
    name_key: str
    value_key: str


def resolve_pie_keys(record: Mapping[str, Any]) -> PieKeys:
    value_key = first_match(
        record.keys(),
        value_is(record, is_number),
        name_contains(*PIE_VALUE_HINTS),
    )
    if value_key is None:
        value_key = PIE_VALUE_FALLBACK

    name_key = first_match(
        record.keys(),
        lambda k: k != value_key and is_string(record.get(k)),
        name_contains(*PIE_NAME_HINTS),
    )
    if name_key is None:
        name_key = PIE_NAME_FALLBACK

    return PieKeys(name_key=name_key, value_key=value_key)


@dataclass(frozen=True)
class ScatterKeys:
    x_key: str
    y_key: str


def resolve_scatter_keys(
    record: Mapping[str, Any],
    x_axis_key: Optional[str],
    y_axis_key: Optional[str],
) -> ScatterKeys:
    """
    Scatter axes: configured keys win only when they name numeric fields.

    y falls back to the second numeric field, then to the same field as x
    when there is only one.
    """
    numeric = numeric_keys(record)
    x_wanted = x_axis_key or SCATTER_X_FALLBACK
    y_wanted = y_axis_key or SCATTER_Y_FALLBACK

    if x_wanted in numeric:
        x_key = x_wanted
    elif numeric:
        x_key = numeric[0]
    else:
        x_key = SCATTER_X_FALLBACK

    if y_wanted in numeric:
        y_key = y_wanted
    elif len(numeric) > 1:
        y_key = numeric[1]
    elif numeric:
        y_key = numeric[0]
    else:
        y_key = SCATTER_Y_FALLBACK

    return ScatterKeys(x_key=x_key, y_key=y_key)


def first_record(data: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    return data[0] if data else {}
