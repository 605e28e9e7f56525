"""Derive canonical per-year arrays from loosely stored input values.

Stored inputs arrive either as one row per year, as a single value or array
applied to the whole horizon, or as a ``{year: value}`` mapping.  Whatever
the shape, :func:`extract_pattern` yields exactly one number per horizon
year.  Absent or unreadable data becomes ``0``; gaps are surfaced separately
by :func:`completeness_report` rather than raised.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from engine.statements.inputs import (
    ARRAY_FIELDS,
    FLAG_FIELDS,
    SCALAR_FIELDS,
    InputValidationError,
    normalize_flag,
    parse_number_loose,
    unwrap,
)

logger = logging.getLogger(__name__)


def _number(value: Any, key: str = "") -> float:
    if key in FLAG_FIELDS:
        return float(normalize_flag(value))
    try:
        return parse_number_loose(value)
    except InputValidationError:
        logger.warning("Unreadable value %r for %s treated as 0", value, key or "input")
        return 0.0


def _row_value(row: Mapping[str, Any]) -> Any:
    for name in ("input_value", "value"):
        if name in row:
            return row[name]
    return None


def extract_pattern(raw: Any, years: Sequence[int], key: str = "") -> list[float]:
    """Return a per-year array of length ``len(years)`` for one input.

    Parameters
    ----------
    raw : Any
        One of: ``None``; a scalar (optionally ``{"value": X}``-wrapped),
        broadcast to every year; a list of numbers, aligned from the first
        year; a list of row mappings with ``year`` and ``input_value`` keys;
        or a ``{year: value}`` mapping.
    years : sequence of int
        The model horizon.
    """
    n = len(years)
    index = {int(y): i for i, y in enumerate(years)}
    out = [0.0] * n

    if isinstance(raw, Mapping) and "value" not in raw:
        # {year: value}
        for year, value in raw.items():
            try:
                i = index.get(int(year))
            except (TypeError, ValueError):
                continue
            if i is not None:
                out[i] = _number(value, key)
        return out

    raw = unwrap(raw)
    if raw is None:
        return out

    if isinstance(raw, (list, tuple)):
        if raw and all(isinstance(item, Mapping) and "year" in item for item in raw):
            for row in raw:
                i = index.get(int(_number(row["year"])))
                if i is not None:
                    out[i] = _number(_row_value(row), key)
            return out
        for i, value in enumerate(raw[:n]):
            out[i] = _number(value, key)
        return out

    value = _number(raw, key)
    return [value] * n


def group_input_rows(rows: Iterable[Mapping[str, Any]], years: Sequence[int]) -> dict[str, Any]:
    """Fold stored input rows into one loose mapping keyed by input key.

    Rows carry ``input_key``, ``year`` (``None`` for horizon-wide values) and
    ``input_value``.  Array fields become per-year arrays via
    :func:`extract_pattern`; scalar fields keep their raw stored value for the
    boundary normaliser.  Unknown keys are passed through untouched.
    """
    by_key: dict[str, list[Mapping[str, Any]]] = {}
    for row in rows:
        by_key.setdefault(row["input_key"], []).append(row)

    data: dict[str, Any] = {"years": list(years)}
    for key, key_rows in by_key.items():
        per_year = [r for r in key_rows if r.get("year") is not None]
        horizon_wide = [r for r in key_rows if r.get("year") is None]
        if key in ARRAY_FIELDS:
            if per_year:
                data[key] = extract_pattern(
                    [{"year": r["year"], "input_value": r.get("input_value")} for r in per_year],
                    years,
                    key,
                )
            elif horizon_wide:
                data[key] = extract_pattern(horizon_wide[-1].get("input_value"), years, key)
        elif horizon_wide:
            data[key] = unwrap(horizon_wide[-1].get("input_value"))
        else:
            data[key] = unwrap(per_year[-1].get("input_value"))
    return data


def align_arrays(data: Mapping[str, Any], years: Sequence[int]) -> dict[str, Any]:
    """Copy of *data* with every present array field reshaped by :func:`extract_pattern`."""
    aligned = dict(data)
    for key in ARRAY_FIELDS:
        if key in aligned:
            aligned[key] = extract_pattern(aligned[key], years, key)
    return aligned


def completeness_report(data: Mapping[str, Any], years: Sequence[int]) -> dict[str, Any]:
    """Report missing or zero-only inputs that the zero-default would hide.

    Returns
    -------
    dict
        ``missing_arrays``: array fields absent altogether;
        ``zero_arrays``: array fields present but all zero;
        ``short_arrays``: ``{key: missing_year_count}`` for plain arrays
        shorter than the horizon; ``missing_scalars``: scalar fields absent;
        ``complete``: ``True`` when every list above is empty.
    """
    n = len(years)
    missing_arrays: list[str] = []
    zero_arrays: list[str] = []
    short_arrays: dict[str, int] = {}

    for key in ARRAY_FIELDS:
        raw = unwrap(data.get(key))
        if raw is None:
            missing_arrays.append(key)
            continue
        if isinstance(raw, (list, tuple)) and not any(isinstance(v, Mapping) for v in raw):
            if len(raw) < n:
                short_arrays[key] = n - len(raw)
        if not any(extract_pattern(data.get(key), years, key)):
            zero_arrays.append(key)

    missing_scalars = [
        key for key in SCALAR_FIELDS
        if unwrap(data.get(key)) is None and key not in ("finance_rate", "reinvestment_rate")
    ]

    return {
        "missing_arrays": missing_arrays,
        "zero_arrays": zero_arrays,
        "short_arrays": short_arrays,
        "missing_scalars": missing_scalars,
        "complete": not (missing_arrays or zero_arrays or short_arrays or missing_scalars),
    }
