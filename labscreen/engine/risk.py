import math

from .models import RiskScore


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def score_risk(value: float, lower: float, upper: float) -> RiskScore:
    """
    Distance of ``value`` outside [lower, upper] as a percentage of the band width.

    The result is clamped to 0..100. A zero-width band scores 100 for any value
    other than the bound itself, and 0 for the bound.
    """
    if value < lower:
        label, deviation = "Low", lower - value
    elif value > upper:
        label, deviation = "High", value - upper
    else:
        label, deviation = "Normal", 0.0

    width = upper - lower
    if width == 0:
        percentage = 0 if value == lower else 100
    else:
        percentage = _round_half_up(100 * deviation / width)
    return RiskScore(percentage=max(0, min(100, percentage)), label=label)
