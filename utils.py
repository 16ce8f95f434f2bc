# utils.py
import math
import numpy as np
from typing import List, Sequence, Dict, Any
import functools

from parameters import SimulationSummary

IRR_TOLERANCE = 1e-6
IRR_MAX_ITERATIONS = 100
# Newton-Raphson rate updates are clamped to this range
NEWTON_RATE_BOUNDS = (-0.99, 10.0)
# Bisection search bracket
BISECTION_BOUNDS = (-0.99, 5.0)


# Net present value of a year-indexed cash-flow series (index 0 = time 0)
def npv(rate: float, cash_flows: Sequence[float]) -> float:
    flows = np.asarray(cash_flows, dtype=float)
    periods = np.arange(len(flows))
    return float(np.sum(flows / (1.0 + rate) ** periods))


# Derivative of npv() with respect to the rate
def _npv_derivative(rate: float, cash_flows: Sequence[float]) -> float:
    flows = np.asarray(cash_flows, dtype=float)
    periods = np.arange(len(flows))
    return float(np.sum(-periods * flows / (1.0 + rate) ** (periods + 1)))


def calculate_irr(cash_flows: Sequence[float], guess: float = 0.1) -> float:
    """
    Internal rate of return of a year-indexed cash-flow series.

    Newton-Raphson from `guess`, clamping every update to NEWTON_RATE_BOUNDS.
    If it does not converge, or the derivative vanishes, falls back to
    bisection_irr().

    Args:
        cash_flows: Amounts per year, negative for calls, positive for distributions
        guess: Starting rate for Newton-Raphson

    Returns:
        The rate, or nan when no root exists in the search range
    """
    low_bound, high_bound = NEWTON_RATE_BOUNDS
    rate = guess

    for _ in range(IRR_MAX_ITERATIONS):
        value = npv(rate, cash_flows)
        if abs(value) < IRR_TOLERANCE:
            return rate

        slope = _npv_derivative(rate, cash_flows)
        if abs(slope) < IRR_TOLERANCE:
            break

        rate = min(high_bound, max(low_bound, rate - value / slope))

    return bisection_irr(cash_flows)


def bisection_irr(cash_flows: Sequence[float]) -> float:
    """Bisection over BISECTION_BOUNDS. Returns nan if NPV has the same sign at both ends."""
    low, high = BISECTION_BOUNDS
    npv_low = npv(low, cash_flows)
    npv_high = npv(high, cash_flows)

    if npv_low * npv_high > 0:
        return math.nan

    for _ in range(IRR_MAX_ITERATIONS):
        mid = (low + high) / 2
        npv_mid = npv(mid, cash_flows)

        if abs(npv_mid) < IRR_TOLERANCE:
            return mid

        if npv_low * npv_mid < 0:
            high = mid
        else:
            low = mid

    return (low + high) / 2


# JavaScript-style rounding: halves always go up (Python's round() goes to even)
def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def percentile(values: Sequence[float], p: float) -> float:
    """
    p-th percentile (0-100) with linear interpolation between the two order
    statistics bracketing rank p/100 * (n - 1) (R type 7, numpy's default).
    """
    if len(values) == 0:
        raise ValueError("percentile() requires at least one value")
    return float(np.percentile(np.asarray(values, dtype=float), p))


def calculate_summary(values: Sequence[float]) -> SimulationSummary:
    """Mean, min, max and the 10/25/50/75/90th percentiles of a sample."""
    data = np.asarray(values, dtype=float)
    if data.size == 0:
        raise ValueError("calculate_summary() requires at least one value")

    p10, p25, p50, p75, p90 = np.percentile(data, [10, 25, 50, 75, 90])
    return SimulationSummary(
        mean=float(data.mean()),
        p10=float(p10),
        p25=float(p25),
        p50=float(p50),
        p75=float(p75),
        p90=float(p90),
        min=float(data.min()),
        max=float(data.max()),
    )


def get_nested_value(data: Dict[str, Any], path: List[str]) -> Any:
    try:
        return functools.reduce(lambda acc, key: acc[key] if isinstance(acc, dict) else getattr(acc, key), path, data)
    except (KeyError, AttributeError):
        return None


def set_nested_value(data: Dict[str, Any], path: List[str], value: Any):
    for key in path[:-1]:
        data = data[key] if isinstance(data, dict) else getattr(data, key)

    final_key = path[-1]
    if isinstance(data, dict):
        data[final_key] = value
    else:
        setattr(data, final_key, value)
