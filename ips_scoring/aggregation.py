"""
Aggregation and classification of factor scores.

The final score is a true weighted average over the factors that were
actually observed, so missing data does not silently depress it. How much
of the policy was observed is reported separately as weight coverage.
"""

import logging
import math
import numbers
from typing import Iterable, List, Mapping, Optional, Union

from ips_scoring.config import SeverityThresholds
from ips_scoring.factor_scoring import (
    TARGET_SCORE,
    describe_target,
    relative_distance,
    score_factor,
)
from ips_scoring.models import CandidateSpread, FactorVerdict, ScoreResult, Severity, Tier
from ips_scoring.policy import Policy, PolicyFactor
from ips_scoring.risk_scoring import score_composite

logger = logging.getLogger(__name__)

Observations = Mapping[str, Optional[float]]

COMPOSITE_FACTOR_ID = "composite_risk"
COMPOSITE_FACTOR_NAME = "Composite Risk Score"

GRADE_THRESHOLDS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))
COMPLIANCE_THRESHOLDS = (
    (85, "Excellent"),
    (75, "Good"),
    (65, "Acceptable"),
    (50, "Below Target"),
)
TIER_THRESHOLDS = ((90, Tier.ELITE), (75, Tier.QUALITY), (60, Tier.SPECULATIVE))


def grade_for(score: float) -> str:
    """Letter grade A-F."""
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def compliance_for(score: float) -> str:
    """Compliance label."""
    for threshold, label in COMPLIANCE_THRESHOLDS:
        if score >= threshold:
            return label
    return "Poor"


def tier_for(score: float) -> str:
    """Dashboard tier."""
    for threshold, tier in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return Tier.BELOW_THRESHOLD


def classify_severity(distance: Optional[float], thresholds: SeverityThresholds) -> str:
    """Map a normalized distance-to-target onto a severity label."""
    if distance is None:
        return Severity.MISSING
    if distance <= thresholds.pass_threshold:
        return Severity.PASS
    if distance <= thresholds.minor_threshold:
        return Severity.MINOR_MISS
    return Severity.MAJOR_MISS


def is_missing(value: Optional[float]) -> bool:
    """None and NaN both mean the observation is unavailable."""
    return value is None or (
        isinstance(value, numbers.Real) and not isinstance(value, bool) and math.isnan(value)
    )


def evaluate_factor(
    factor: PolicyFactor,
    observation: Optional[float],
    thresholds: SeverityThresholds,
) -> FactorVerdict:
    """
    Build the verdict for one factor.

    Raises:
        InvalidObservationError: If a present observation cannot be scored.
    """
    target = describe_target(factor)

    if is_missing(observation):
        return FactorVerdict(
            factor_id=factor.factor_id,
            name=factor.name,
            value=None,
            sub_score=None,
            weight=factor.weight,
            target=target,
            severity=Severity.MISSING,
        )

    sub_score = score_factor(observation, factor)
    distance = relative_distance(float(observation), factor)

    logger.debug(f"Factor {factor.factor_id}: value={observation} score={sub_score:.2f}")

    return FactorVerdict(
        factor_id=factor.factor_id,
        name=factor.name,
        value=float(observation),
        sub_score=sub_score,
        weight=factor.weight,
        target=target,
        severity=classify_severity(distance, thresholds),
        distance=distance,
    )


def composite_verdict(composite: int, weight: float, thresholds: SeverityThresholds) -> FactorVerdict:
    """Verdict for the composite risk score treated as one more factor."""
    distance = max(0.0, TARGET_SCORE - composite) / TARGET_SCORE
    return FactorVerdict(
        factor_id=COMPOSITE_FACTOR_ID,
        name=COMPOSITE_FACTOR_NAME,
        value=float(composite),
        sub_score=float(composite),
        weight=weight,
        target=f"≥ {TARGET_SCORE:g}",
        severity=classify_severity(distance, thresholds),
        distance=distance,
    )


def _as_policy(policy: Union[Policy, Iterable[PolicyFactor]]) -> Policy:
    if isinstance(policy, Policy):
        return policy
    return Policy(policy_id="adhoc", name="Ad-hoc policy", factors=tuple(policy))


def aggregate(
    verdicts: List[FactorVerdict],
    total_configured_weight: float,
    composite: Optional[int] = None,
) -> ScoreResult:
    """
    Combine verdicts into a ScoreResult.

    Summation follows the order of ``verdicts`` so results are
    bit-reproducible for a given policy.
    """
    total_weighted_score = 0.0
    total_available_weight = 0.0
    for verdict in verdicts:
        if verdict.is_missing:
            continue
        total_weighted_score += verdict.weighted_score
        total_available_weight += verdict.weight

    if total_available_weight > 0:
        final_score = total_weighted_score / total_available_weight
    else:
        final_score = 0.0
    final_score = max(0.0, min(100.0, final_score))

    if total_configured_weight > 0:
        weight_coverage = total_available_weight / total_configured_weight
    else:
        weight_coverage = 0.0

    return ScoreResult(
        score=final_score,
        grade=grade_for(final_score),
        compliance=compliance_for(final_score),
        tier=tier_for(final_score),
        weight_coverage=weight_coverage,
        verdicts=tuple(verdicts),
        total_weighted_score=total_weighted_score,
        total_available_weight=total_available_weight,
        total_configured_weight=total_configured_weight,
        composite_score=composite,
    )


def evaluate(
    candidate: Optional[CandidateSpread],
    policy: Union[Policy, Iterable[PolicyFactor]],
    observations: Observations,
) -> ScoreResult:
    """
    Evaluate a candidate against a policy.

    Args:
        candidate: The candidate spread. Only used when the policy weights
            the composite risk score; may be None otherwise.
        policy: A Policy, or a plain sequence of PolicyFactor.
        observations: Mapping of factor id to observed value. Absent keys,
            None and NaN are all treated as missing.

    Returns:
        ScoreResult

    Raises:
        InvalidObservationError: If an observation cannot be scored.
        InvalidCandidateError: If the composite score is required and the
            candidate cannot be scored.
        ValueError: If the composite score is required but no candidate
            was given.
    """
    policy = _as_policy(policy)
    thresholds = policy.severity

    verdicts = [
        evaluate_factor(factor, observations.get(factor.factor_id), thresholds)
        for factor in policy.enabled_factors
    ]

    composite = None
    if policy.composite_weight is not None:
        if candidate is None:
            raise ValueError(f"Policy '{policy.policy_id}' weights the composite score; a candidate is required")
        composite = score_composite(candidate)
        verdicts.append(composite_verdict(composite, policy.composite_weight, thresholds))

    result = aggregate(verdicts, policy.total_weight, composite)

    if not policy.enabled_factors and policy.composite_weight is None:
        logger.warning(f"Policy '{policy.policy_id}' has no enabled factors; result is not evaluable")

    return result
