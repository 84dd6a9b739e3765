from typing import Optional, Sequence, Tuple
import math


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def interpolate_piecewise(value: float, anchors: Sequence[Tuple[float, float]], clamp_low: float = 0.0, clamp_high: float = 100.0) -> float:
    """Piecewise linear interpolation. Anchors are sorted by value.

    This engine function is deliberately small and deterministic so it can be
    unit-tested independently of the calculators.
    """
    if not anchors:
        return 0.0
    pts = sorted(anchors, key=lambda x: x[0])
    if value <= pts[0][0]:
        return clamp(pts[0][1], clamp_low, clamp_high)
    if value >= pts[-1][0]:
        return clamp(pts[-1][1], clamp_low, clamp_high)
    for i in range(1, len(pts)):
        x0, y0 = pts[i - 1]
        x1, y1 = pts[i]
        if x0 <= value <= x1:
            if x1 == x0:
                return clamp(y1, clamp_low, clamp_high)
            t = (value - x0) / (x1 - x0)
            return clamp(y0 + t * (y1 - y0), clamp_low, clamp_high)
    return clamp(pts[-1][1], clamp_low, clamp_high)


def exponential_decay_weight(days_since: float, half_life_days: Optional[float]) -> float:
    """Compute exponential decay weight from days since observation to now.

    weight = 0.5 ** (days_since / half_life_days). Infinite age (unknown
    timestamp) decays to 0.0; negative age (clock skew) counts as fresh.
    If half_life_days is None or <= 0, weight is 1.0.
    """
    if not half_life_days or half_life_days <= 0:
        return 1.0
    if math.isinf(days_since):
        return 0.0
    return pow(0.5, max(0.0, float(days_since)) / float(half_life_days))


def weighted_mean(pairs: Sequence[Tuple[float, float]]) -> Optional[float]:
    """Mean of (weight, value) pairs renormalized over the given weights; None if no weight."""
    total = math.fsum(w for w, _ in pairs)
    if total <= 0:
        return None
    return math.fsum(w * v for w, v in pairs) / total
