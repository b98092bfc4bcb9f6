"""
Factor scoring for IPS policy factors.

Maps one observed value plus its factor rule to a 0-100 sub-score,
independent of the factor's weight. A value exactly on target scores 70;
beating the target earns up to 100, missing it decays toward 0.
"""

import logging
import math
import numbers

from ips_scoring.exceptions import InvalidObservationError
from ips_scoring.policy import (
    MAX_RATING,
    MIN_RATING,
    ComparisonRule,
    FactorType,
    NamedCurve,
    PolicyFactor,
)

logger = logging.getLogger(__name__)

TARGET_SCORE = 70.0
MAX_SCORE = 100.0

RATING_LABELS = {1: "Poor", 2: "Below Average", 3: "Average", 4: "Good", 5: "Excellent"}


def _clamp(score: float, low: float = 0.0, high: float = MAX_SCORE) -> float:
    return max(low, min(high, score))


def _denominator(target: float) -> float:
    """Relative-distance denominator; guards zero and negative targets."""
    return max(target, 1.0)


def score_gte(value: float, target: float) -> float:
    """
    Higher is better.

    At or above target: 70 rising to 100 with the relative excess.
    Below target: ``value / target * 70``.
    """
    if value >= target:
        return _clamp(TARGET_SCORE + 30 * (value - target) / _denominator(target))
    if target <= 0:
        # value / target flips sign for non-positive targets; decay linearly instead.
        return _clamp(TARGET_SCORE - TARGET_SCORE * (target - value) / max(abs(target), 1.0))
    return _clamp((value / target) * TARGET_SCORE)


def score_lte(value: float, target: float) -> float:
    """Lower is better. Mirrors score_gte around the target."""
    if value <= target:
        return _clamp(TARGET_SCORE + 30 * (target - value) / _denominator(target))
    return _clamp(TARGET_SCORE - TARGET_SCORE * (value - target) / _denominator(target))


def score_eq(value: float, target: float) -> float:
    """Closer is better, stepped on relative distance."""
    d = abs(value - target) / _denominator(target)
    if d <= 0.05:
        return 100.0
    if d <= 0.10:
        return 90.0
    if d <= 0.20:
        return 75.0
    if d <= 0.50:
        return 50.0
    return _clamp(50 - 50 * d)


def score_range(value: float, target: float, target_max: float) -> float:
    """
    Inside [target, target_max]: 100 at the midpoint, 70 at either bound.
    Outside: decays from 70 with relative distance beyond the nearest bound.
    """
    if target <= value <= target_max:
        range_size = target_max - target
        if range_size == 0:
            return 100.0
        position = (value - target) / range_size
        return _clamp(TARGET_SCORE + 30 * (1 - 2 * abs(position - 0.5)))
    if value < target:
        distance = (target - value) / _denominator(target)
    else:
        distance = (value - target_max) / _denominator(target_max)
    return _clamp(TARGET_SCORE - TARGET_SCORE * distance)


def score_qualitative(rating: float, target: float) -> float:
    """Score a 1-5 rating against a 1-5 target rating."""
    if rating >= target:
        span = MAX_RATING - target
        if span <= 0:
            return 85.0
        return _clamp(TARGET_SCORE + 30 * min(rating - target, span) / span)
    return _clamp((rating / target) * TARGET_SCORE)


def apply_named_curve(curve: NamedCurve, value: float) -> float:
    """Normalize a raw feature through a named curve, scaled to 0-100."""
    if curve == NamedCurve.IV_RANK:
        normalized = value
    elif curve in (NamedCurve.TERM_SLOPE, NamedCurve.PUT_SKEW):
        normalized = value * 0.5 + 0.5
    elif curve == NamedCurve.DTE_MODE:
        normalized = (14 - abs(value - 10)) / 14
    elif curve == NamedCurve.VOLUME_OI_RATIO:
        normalized = value
    else:
        raise ValueError(f"Unknown curve: {curve}")
    return _clamp(normalized, 0.0, 1.0) * MAX_SCORE


def validate_observation(value: float, factor: PolicyFactor) -> float:
    """
    Check that an observation can be scored against ``factor``.

    Raises:
        InvalidObservationError: For non-numeric or non-finite values, and
            for qualitative ratings outside the integer 1-5 scale.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidObservationError(factor.factor_id, value, "must be a number")
    if not math.isfinite(value):
        raise InvalidObservationError(factor.factor_id, value, "must be finite")
    if factor.factor_type == FactorType.QUALITATIVE:
        if value != int(value) or not MIN_RATING <= value <= MAX_RATING:
            raise InvalidObservationError(
                factor.factor_id, value, f"rating must be an integer {MIN_RATING}-{MAX_RATING}"
            )
    return float(value)


def score_factor(observation: float, factor: PolicyFactor) -> float:
    """
    Score one observation against its policy factor.

    Args:
        observation: The factor's resolved value (never None; missing values
            are handled by the aggregator).
        factor: The factor definition.

    Returns:
        Sub-score in [0, 100].

    Raises:
        InvalidObservationError: If the observation cannot be scored.
    """
    value = validate_observation(observation, factor)

    if factor.factor_type == FactorType.QUALITATIVE:
        return score_qualitative(value, factor.target)

    if factor.curve is not None:
        return apply_named_curve(factor.curve, value)

    if factor.rule == ComparisonRule.GTE:
        return score_gte(value, factor.target)
    if factor.rule == ComparisonRule.LTE:
        return score_lte(value, factor.target)
    if factor.rule == ComparisonRule.EQ:
        return score_eq(value, factor.target)
    if factor.rule == ComparisonRule.RANGE:
        return score_range(value, factor.target, factor.target_max)

    raise ValueError(f"Unsupported comparison rule: {factor.rule}")


def relative_distance(value: float, factor: PolicyFactor) -> float:
    """
    Normalized distance between ``value`` and the factor's target.

    Zero means the target is met; the scale matches the relative distances
    used by the scoring curves. Factors scored through a named curve measure
    the curve score's shortfall from 70.
    """
    target = factor.target

    if factor.factor_type == FactorType.QUALITATIVE:
        return max(0.0, target - value) / target

    if factor.curve is not None:
        return max(0.0, TARGET_SCORE - apply_named_curve(factor.curve, value)) / TARGET_SCORE

    if factor.rule == ComparisonRule.GTE:
        return max(0.0, target - value) / _denominator(target)
    if factor.rule == ComparisonRule.LTE:
        return max(0.0, value - target) / _denominator(target)
    if factor.rule == ComparisonRule.EQ:
        return abs(value - target) / _denominator(target)
    if factor.rule == ComparisonRule.RANGE:
        if value < target:
            return (target - value) / _denominator(target)
        if value > factor.target_max:
            return (value - factor.target_max) / _denominator(factor.target_max)
        return 0.0

    raise ValueError(f"Unsupported comparison rule: {factor.rule}")


def _format_number(value: float) -> str:
    return f"{value:g}"


def describe_target(factor: PolicyFactor) -> str:
    """Human-readable target, e.g. '≥ 15' or '30 – 45'."""
    if factor.factor_type == FactorType.QUALITATIVE:
        rating = int(factor.target)
        return f"Minimum {RATING_LABELS[rating]} ({rating}/5)"

    if factor.curve is not None:
        return f"{factor.curve.value} curve ≥ {TARGET_SCORE:g}"

    target = _format_number(factor.target)
    if factor.rule == ComparisonRule.GTE:
        return f"≥ {target}"
    if factor.rule == ComparisonRule.LTE:
        return f"≤ {target}"
    if factor.rule == ComparisonRule.EQ:
        return f"= {target}"
    return f"{target} – {_format_number(factor.target_max)}"
