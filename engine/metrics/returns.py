"""Discounted cash-flow return metrics.

NPV, IRR, MIRR, simple and discounted payback and cumulative NPV over an
arbitrary cash-flow series where index 0 is the pre-horizon (t0) flow.
Every function returns ``None`` for "not applicable" instead of raising or
producing ``NaN``/``inf``.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Sequence

from scipy.optimize import brentq

logger = logging.getLogger(__name__)


# ======================================================================
# Constants
# ======================================================================

IRR_LOWER_BOUND: float = -0.9999
IRR_UPPER_BOUND: float = 10.0
IRR_MAX_ITER: int = 500


# ======================================================================
# Internal helpers
# ======================================================================

def _discount_factor(rate: float, year: int) -> float:
    """Return ``1 / (1 + rate) ** year``."""
    return 1.0 / (1.0 + rate) ** year


def _finite(value: float) -> float | None:
    return value if math.isfinite(value) else None


def _finite_bracket_end(
    f: Callable[[float], float],
    rate: float,
    step: Callable[[float], float],
    max_steps: int = 20,
) -> tuple[float, float | None]:
    """Pull a bracket end toward zero until *f* is finite there.

    Long horizons make ``(1 + r) ** t`` underflow near -100 % and overflow
    at large rates; the search interval shrinks instead of giving up.
    """
    for _ in range(max_steps):
        try:
            value = f(rate)
        except (OverflowError, ZeroDivisionError):
            value = math.inf
        if math.isfinite(value):
            return rate, value
        rate = step(rate)
    return rate, None


# ======================================================================
# NPV / IRR / MIRR
# ======================================================================

def npv(rate: float, cash_flows: Sequence[float]) -> float:
    """Net present value with year 0 undiscounted.

    ``npv(0, cf) == sum(cf)``.
    """
    return sum(cf * _discount_factor(rate, t) for t, cf in enumerate(cash_flows))


def irr(cash_flows: Sequence[float]) -> float | None:
    """Compute IRR using Brent's method.

    Parameters
    ----------
    cash_flows : sequence of float
        Cash flows starting at year 0 through year N.

    Returns
    -------
    float or None
        Internal rate of return, or ``None`` when the series never changes
        sign or no root is bracketed in [-99.99 %, +1000 %].
    """
    flows = [float(cf) for cf in cash_flows]
    if not any(cf > 0 for cf in flows) or not any(cf < 0 for cf in flows):
        return None

    def npv_at_rate(r: float) -> float:
        return npv(r, flows)

    lower, lo = _finite_bracket_end(npv_at_rate, IRR_LOWER_BOUND, lambda r: -1.0 + (1.0 + r) * 10.0)
    upper, hi = _finite_bracket_end(npv_at_rate, IRR_UPPER_BOUND, lambda r: r / 2.0)
    if lo is None or hi is None or lo * hi > 0:
        logger.debug("IRR not bracketed for %d cash flows", len(flows))
        return None

    try:
        rate = brentq(npv_at_rate, lower, upper, xtol=1e-10, maxiter=IRR_MAX_ITER)
    except (ValueError, RuntimeError, OverflowError, ZeroDivisionError):
        logger.debug("IRR search did not converge")
        return None
    return _finite(float(rate))


def mirr(
    cash_flows: Sequence[float],
    finance_rate: float,
    reinvestment_rate: float,
) -> float | None:
    """Modified IRR.

    Negative flows are discounted to t0 at *finance_rate*; positive flows are
    compounded to the horizon at *reinvestment_rate*.  Returns ``None`` when
    the series lacks either a negative or a positive flow.
    """
    flows = [float(cf) for cf in cash_flows]
    n = len(flows) - 1
    if n < 1:
        return None

    pv_negative = sum(
        cf * _discount_factor(finance_rate, t) for t, cf in enumerate(flows) if cf < 0
    )
    fv_positive = sum(
        cf * (1.0 + reinvestment_rate) ** (n - t) for t, cf in enumerate(flows) if cf > 0
    )
    if pv_negative >= 0 or fv_positive <= 0:
        return None
    return _finite((fv_positive / -pv_negative) ** (1.0 / n) - 1.0)


# ======================================================================
# Payback
# ======================================================================

def _interpolated_payback(flows: Sequence[float]) -> float | None:
    cumulative = 0.0
    for t, cf in enumerate(flows):
        previous = cumulative
        cumulative += cf
        # Only a deficit turning non-negative counts as payback.
        if previous < 0 and cumulative >= 0:
            # Fraction of year t needed to cover the remaining shortfall.
            return (t - 1) + (-previous / cf if cf else 0.0)
    return None


def payback(cash_flows: Sequence[float]) -> float | None:
    """Years until a cumulative deficit turns non-negative, interpolated.

    ``None`` when the cumulative flow is never negative or the horizon ends
    before the investment is recovered.
    """
    return _interpolated_payback([float(cf) for cf in cash_flows])


def discounted_payback(rate: float, cash_flows: Sequence[float]) -> float | None:
    """Like :func:`payback` but on discounted flows."""
    discounted = [float(cf) * _discount_factor(rate, t) for t, cf in enumerate(cash_flows)]
    return _interpolated_payback(discounted)


def cumulative_npv(rate: float, cash_flows: Sequence[float]) -> list[float]:
    """Running sum of discounted flows (same length as *cash_flows*)."""
    out: list[float] = []
    running = 0.0
    for t, cf in enumerate(cash_flows):
        running += float(cf) * _discount_factor(rate, t)
        out.append(running)
    return out


# ======================================================================
# Aggregate
# ======================================================================

def return_metrics(
    cash_flows: Sequence[float],
    discount_rate: float,
    finance_rate: float | None = None,
    reinvestment_rate: float | None = None,
) -> dict:
    """Bundle every return metric for one cash-flow series.

    Missing finance/reinvestment rates fall back to *discount_rate*.
    """
    flows = [float(cf) for cf in cash_flows]
    fin = discount_rate if finance_rate is None else finance_rate
    reinv = discount_rate if reinvestment_rate is None else reinvestment_rate
    return {
        "cash_flows": flows,
        "npv": npv(discount_rate, flows),
        "irr": irr(flows),
        "mirr": mirr(flows, fin, reinv),
        "payback": payback(flows),
        "discounted_payback": discounted_payback(discount_rate, flows),
        "cumulative_npv": cumulative_npv(discount_rate, flows),
    }
