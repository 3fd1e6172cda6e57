"""Quantile-based scaling and percentile helpers."""

import math
from collections.abc import Callable, Sequence
from typing import Any

from memboard.models.schemas import Quantiles

# Output values at each breakpoint of the piecewise curve
P50_LEVEL = 0.4
P75_LEVEL = 0.7
P90_LEVEL = 0.9


def clamp01(value: float | None) -> float:
    """Clamp to [0, 1]. None and NaN map to 0."""
    if value is None or math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return math.floor(value + 0.5)


def linear_scale(value: float, full: float) -> float:
    """Linear credit reaching 1.0 at ``full``."""
    if full <= 0:
        return 0.0
    return clamp01(value / full)


def _valid_breakpoints(quantiles: Quantiles | None) -> tuple[float, float, float] | None:
    if quantiles is None:
        return None
    p50, p75, p90 = quantiles.p50, quantiles.p75, quantiles.p90
    if p50 is None or p75 is None or p90 is None:
        return None
    if not (0 < p50 <= p75 <= p90):
        return None
    return p50, p75, p90


def _interpolate(value: float, lo: float, hi: float, out_lo: float, out_hi: float) -> float:
    if hi <= lo:
        return out_hi
    return out_lo + (value - lo) / (hi - lo) * (out_hi - out_lo)


def scale_by_quantiles(value: float, quantiles: Quantiles | None) -> float | None:
    """Map a heavy-tailed metric to [0, 1] using distribution breakpoints.

    The curve is linear up to p50 (0.4), p75 (0.7) and p90 (0.9), then
    saturates towards 1.0 without reaching it:

        0.9 + 0.1 * (1 - exp(-(value - p90) / p90))

    Args:
        value: Raw metric (tx count, average log followers, ...).
        quantiles: p50/p75/p90 of the population.

    Returns:
        Scaled value, or None when the quantiles are missing or invalid
        and the caller should fall back to a linear threshold.
    """
    breakpoints = _valid_breakpoints(quantiles)
    if breakpoints is None:
        return None
    if value is None or not math.isfinite(value) or value <= 0:
        return 0.0

    p50, p75, p90 = breakpoints
    if value <= p50:
        return _interpolate(value, 0.0, p50, 0.0, P50_LEVEL)
    if value <= p75:
        return _interpolate(value, p50, p75, P50_LEVEL, P75_LEVEL)
    if value <= p90:
        return _interpolate(value, p75, p90, P75_LEVEL, P90_LEVEL)
    return P90_LEVEL + (1 - P90_LEVEL) * (1 - math.exp(-(value - p90) / p90))


def scale_or_linear(value: float, quantiles: Quantiles | None, full: float) -> float:
    """Quantile-scale when stats are available, else linear against ``full``."""
    scaled = scale_by_quantiles(value, quantiles)
    if scaled is None:
        return linear_scale(value, full)
    return scaled


def _percentile(sorted_values: Sequence[float], fraction: float) -> float:
    position = (len(sorted_values) - 1) * fraction
    lower = math.floor(position)
    upper = math.ceil(position)
    if lower == upper:
        return sorted_values[lower]
    weight = position - lower
    return sorted_values[lower] * (1 - weight) + sorted_values[upper] * weight


def compute_quantiles(values: Sequence[float]) -> Quantiles | None:
    """Derive p50/p75/p90 breakpoints from an observed population.

    Non-positive and non-finite values are ignored since the scaler maps
    them to zero anyway. Returns None for fewer than two usable values.
    """
    usable = sorted(v for v in values if v is not None and math.isfinite(v) and v > 0)
    if len(usable) < 2:
        return None
    return Quantiles(
        p50=_percentile(usable, 0.50),
        p75=_percentile(usable, 0.75),
        p90=_percentile(usable, 0.90),
    )


def calculate_percentiles(
    items: list[dict[str, Any]],
    key: Callable[[dict[str, Any]], float],
    field: str = "percentile",
) -> list[dict[str, Any]]:
    """Assign rank percentiles to a list of scored items.

    Args:
        items: Dicts to annotate in place.
        key: Extracts the score to rank by.
        field: Name of the percentile field to write.

    Returns:
        The same items, each with ``field`` set.
    """
    ranked = sorted(items, key=key)
    n = len(ranked)
    for i, item in enumerate(ranked):
        item[field] = round((i + 1) / n * 100, 1)
    return items
