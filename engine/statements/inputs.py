"""Strictly-typed model inputs and boundary normalisation.

Everything entering the statement engine passes through this module.  Loose
UI or database values (strings with ``$`` and ``,``, percentages, booleans,
``{"value": X}`` wrappers) are converted here into a frozen
:class:`ModelInputs`, so the core never sees schema looseness.

Sign convention: costs and outflows are stored as negative numbers, inflows
(equity, debt draws, pre-purchase payments) as positive numbers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from typing import Any


class InputValidationError(ValueError):
    """Raised when a boundary value cannot be coerced into a model input."""


# ======================================================================
# Field classification
# ======================================================================

#: Per-year arrays that must hold costs (<= 0).
OUTFLOW_FIELDS: tuple[str, ...] = (
    "feasibility_costs",
    "pdd_costs",
    "mrv_costs",
    "staff_costs",
    "depreciation",
    "capex",
)

#: Per-year arrays that hold inflows or volumes (>= 0).
INFLOW_FIELDS: tuple[str, ...] = (
    "credits_generated",
    "price_per_credit",
    "equity_injection",
    "debt_draw",
    "purchase_amount",
)

FLAG_FIELDS: tuple[str, ...] = ("issuance_flag",)

ARRAY_FIELDS: tuple[str, ...] = INFLOW_FIELDS + OUTFLOW_FIELDS + FLAG_FIELDS

#: Scalar rates expressed as decimals in [0, 1].
RATE_FIELDS: tuple[str, ...] = (
    "cogs_rate",
    "income_tax_rate",
    "ar_rate",
    "ap_rate",
    "interest_rate",
    "purchase_share",
    "discount_rate",
)

INTEGER_FIELDS: tuple[str, ...] = ("debt_duration_years", "depreciation_years")

AMOUNT_FIELDS: tuple[str, ...] = ("initial_equity_t0",)

OPTIONAL_RATE_FIELDS: tuple[str, ...] = ("finance_rate", "reinvestment_rate")

SCALAR_FIELDS: tuple[str, ...] = (
    RATE_FIELDS + INTEGER_FIELDS + AMOUNT_FIELDS + OPTIONAL_RATE_FIELDS
)


# ======================================================================
# Model inputs
# ======================================================================

@dataclass(frozen=True)
class ModelInputs:
    """Complete, normalised inputs for one model run.

    Every array field has exactly ``len(years)`` entries; construct through
    :func:`model_inputs_from_dict` or :meth:`with_overrides` to get padding.
    """

    years: tuple[int, ...]

    # Operational
    credits_generated: tuple[float, ...] = field(default_factory=tuple)
    price_per_credit: tuple[float, ...] = field(default_factory=tuple)
    issuance_flag: tuple[float, ...] = field(default_factory=tuple)

    # Expenses (negative)
    feasibility_costs: tuple[float, ...] = field(default_factory=tuple)
    pdd_costs: tuple[float, ...] = field(default_factory=tuple)
    mrv_costs: tuple[float, ...] = field(default_factory=tuple)
    staff_costs: tuple[float, ...] = field(default_factory=tuple)
    depreciation: tuple[float, ...] = field(default_factory=tuple)
    capex: tuple[float, ...] = field(default_factory=tuple)

    # Financing (positive)
    equity_injection: tuple[float, ...] = field(default_factory=tuple)
    debt_draw: tuple[float, ...] = field(default_factory=tuple)
    purchase_amount: tuple[float, ...] = field(default_factory=tuple)

    # Scalars
    cogs_rate: float = 0.0
    income_tax_rate: float = 0.0
    ar_rate: float = 0.0
    ap_rate: float = 0.0
    interest_rate: float = 0.0
    purchase_share: float = 0.0
    discount_rate: float = 0.0
    debt_duration_years: int = 0
    depreciation_years: int = 0
    initial_equity_t0: float = 0.0
    finance_rate: float | None = None
    reinvestment_rate: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "years", tuple(int(y) for y in self.years))
        n = len(self.years)
        for name in ARRAY_FIELDS:
            object.__setattr__(self, name, _fit(getattr(self, name), n))

    @property
    def horizon(self) -> int:
        return len(self.years)

    def value(self, name: str, t: int) -> float:
        """Per-year value of *name* at index *t* (0 outside the horizon)."""
        values = getattr(self, name)
        if 0 <= t < len(values):
            return float(values[t])
        return 0.0

    def with_overrides(self, **changes: Any) -> "ModelInputs":
        """Return a copy with *changes* applied; arrays are refit to the horizon."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[f.name] = list(value) if isinstance(value, tuple) else value
        return out


def _fit(values: Any, n: int) -> tuple[float, ...]:
    """Right-pad with zeros or truncate *values* to length *n*."""
    seq = [float(v) for v in (values or ())][:n]
    seq.extend([0.0] * (n - len(seq)))
    return tuple(seq)


# ======================================================================
# Loose value coercion
# ======================================================================

_STRIP_RE = re.compile(r"[,\s$]")


def unwrap(value: Any) -> Any:
    """Unwrap the ``{"value": X}`` storage wrapper used by persisted inputs."""
    while isinstance(value, dict) and "value" in value:
        value = value["value"]
    return value


def parse_number_loose(value: Any) -> float:
    """Parse ``"$1,200"``, ``" 5 "``, ``3`` or ``None`` into a float.

    ``None`` and empty strings become ``0.0``; anything else that is not a
    number raises :class:`InputValidationError`.
    """
    value = unwrap(value)
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _STRIP_RE.sub("", str(value))
    if cleaned == "":
        return 0.0
    try:
        return float(cleaned)
    except ValueError as exc:
        raise InputValidationError(f'Invalid number: "{value}"') from exc


def normalize_outflow(value: Any) -> float:
    """Costs and outflows are always negative for the engine."""
    return -abs(parse_number_loose(value))


def normalize_inflow(value: Any) -> float:
    return abs(parse_number_loose(value))


def normalize_rate(value: Any) -> float:
    """Accept ``5``, ``"5"``, ``"5%"`` or ``0.05`` and return ``0.05``."""
    value = unwrap(value)
    if isinstance(value, str) and value.strip().endswith("%"):
        raw = parse_number_loose(value.strip()[:-1])
        rate = raw / 100.0
    else:
        raw = parse_number_loose(value)
        rate = raw / 100.0 if raw > 1 else raw
    if rate < 0 or rate > 1:
        raise InputValidationError(f"Rate must be between 0 and 1 (got {value!r}).")
    return rate


def normalize_flag(value: Any) -> int:
    """Checkbox / boolean / ``"true"`` / ``1`` -> 1, everything else -> 0."""
    value = unwrap(value)
    if isinstance(value, bool):
        return 1 if value else 0
    if value in (1, 1.0, "1"):
        return 1
    return 1 if str(value).strip().lower() == "true" else 0


def _normalize_array(name: str, values: Any, n: int) -> tuple[float, ...]:
    values = unwrap(values)
    if values is None:
        values = []
    elif not isinstance(values, (list, tuple)):
        values = [values] * n

    if name in OUTFLOW_FIELDS:
        conv = normalize_outflow
    elif name in FLAG_FIELDS:
        conv = normalize_flag
    else:
        conv = normalize_inflow
    return _fit([conv(v) for v in values], n)


def parse_years(raw: Any) -> tuple[int, ...]:
    """Validate a horizon: non-empty, consecutive, ascending."""
    raw_years = unwrap(raw)
    if not raw_years:
        raise InputValidationError("years must contain at least one entry.")
    try:
        years = tuple(int(parse_number_loose(y)) for y in raw_years)
    except InputValidationError as exc:
        raise InputValidationError(f"Invalid years: {exc}") from exc
    if any(b - a != 1 for a, b in zip(years, years[1:])):
        raise InputValidationError("years must be consecutive and ascending.")
    return years


def model_inputs_from_dict(data: dict[str, Any]) -> ModelInputs:
    """Build a strict :class:`ModelInputs` from a loosely-typed mapping.

    Missing arrays are zero-filled and short arrays are right-padded, which
    mirrors the silent zero-default policy of the stored inputs.  Use
    :func:`engine.patterns.extractor.completeness_report` to surface gaps.
    """
    years = parse_years(data.get("years"))
    n = len(years)
    kwargs: dict[str, Any] = {"years": years}

    for name in ARRAY_FIELDS:
        kwargs[name] = _normalize_array(name, data.get(name), n)

    for name in RATE_FIELDS:
        kwargs[name] = normalize_rate(data.get(name, 0))

    for name in OPTIONAL_RATE_FIELDS:
        raw = unwrap(data.get(name))
        kwargs[name] = None if raw is None else normalize_rate(raw)

    for name in INTEGER_FIELDS:
        count = int(parse_number_loose(data.get(name, 0)))
        if count < 0:
            raise InputValidationError(f"{name} must be >= 0.")
        kwargs[name] = count

    kwargs["initial_equity_t0"] = abs(parse_number_loose(data.get("initial_equity_t0", 0)))

    return ModelInputs(**kwargs)
