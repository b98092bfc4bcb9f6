"""
Composite risk-adjusted scoring for credit spreads.

Combines a spread's financial geometry (credit, width, probability of
profit, days to expiration) into a single 0-100 quality score:

    composite = 0.35 * rr_score
              + 0.25 * capital_efficiency_score
              + 0.20 * prob_weighted_score
              + 0.15 * ev_score
              + 0.05 * sharpe_score

Each component is clamped to [0, 100] before weighting, so the composite
always lands in [0, 100].
"""

import logging
import math
from dataclasses import dataclass

from ips_scoring.config import COMPOSITE_WEIGHTS, RISK_FREE_RATE, CompositeWeights
from ips_scoring.exceptions import InvalidCandidateError
from ips_scoring.models import CandidateSpread

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365
TIE_MARGIN = 3


@dataclass(frozen=True)
class RiskAdjustedScore:
    """
    Composite score with every component and the metrics behind it.

    Component scores are 0-100; the composite is rounded to an integer.
    """
    composite: int
    risk_reward_score: float
    capital_efficiency_score: float
    prob_weighted_score: float
    expected_value_score: float
    sharpe_score: float

    roi_pct: float
    annualized_roi: float
    expected_value: float
    expected_value_per_dollar: float
    sharpe_like_ratio: float
    kelly_fraction: float
    ruin_adjusted_roi: float
    probability_of_profit: float
    rank_explanation: str

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "composite": self.composite,
            "risk_reward_score": round(self.risk_reward_score, 2),
            "capital_efficiency_score": round(self.capital_efficiency_score, 2),
            "prob_weighted_score": round(self.prob_weighted_score, 2),
            "expected_value_score": round(self.expected_value_score, 2),
            "sharpe_score": round(self.sharpe_score, 2),
            "roi_pct": round(self.roi_pct, 2),
            "annualized_roi": round(self.annualized_roi, 2),
            "expected_value": round(self.expected_value, 4),
            "expected_value_per_dollar": round(self.expected_value_per_dollar, 4),
            "sharpe_like_ratio": round(self.sharpe_like_ratio, 4),
            "kelly_fraction": round(self.kelly_fraction, 4),
            "ruin_adjusted_roi": round(self.ruin_adjusted_roi, 2),
            "rank_explanation": self.rank_explanation,
        }


@dataclass(frozen=True)
class TradeComparison:
    """Result of comparing two risk-adjusted scores."""
    winner: str  # 'A', 'B' or 'tie'
    reason: str
    score_diff: float


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def validate_inputs(
    max_profit: float,
    max_loss: float,
    probability_of_profit: float,
    days_to_expiration: int,
    candidate_id: str = "<metrics>",
) -> None:
    """
    Reject inputs the composite formula cannot divide by.

    Raises:
        InvalidCandidateError: If max loss, max profit or DTE is not
            positive, or the probability lies outside [0, 1].
    """
    if max_loss <= 0:
        raise InvalidCandidateError(candidate_id, f"max_loss must be positive, got {max_loss}")
    if max_profit <= 0:
        raise InvalidCandidateError(candidate_id, f"max_profit must be positive, got {max_profit}")
    if days_to_expiration <= 0:
        raise InvalidCandidateError(
            candidate_id, f"days_to_expiration must be positive, got {days_to_expiration}"
        )
    if not 0 <= probability_of_profit <= 1:
        raise InvalidCandidateError(
            candidate_id,
            f"probability_of_profit must be between 0 and 1, got {probability_of_profit}",
        )


def calculate_risk_adjusted_score(
    max_profit: float,
    max_loss: float,
    probability_of_profit: float,
    days_to_expiration: int,
    weights: CompositeWeights = COMPOSITE_WEIGHTS,
    candidate_id: str = "<metrics>",
) -> RiskAdjustedScore:
    """
    Calculate the composite risk-adjusted score and its components.

    Args:
        max_profit: Maximum profit (credit received)
        max_loss: Maximum loss (width minus credit)
        probability_of_profit: Estimated probability of profit (0-1)
        days_to_expiration: Days until expiration
        weights: Component weights
        candidate_id: Identifier used in validation errors

    Returns:
        RiskAdjustedScore
    """
    validate_inputs(max_profit, max_loss, probability_of_profit, days_to_expiration, candidate_id)

    p = probability_of_profit
    q = 1 - p

    # 1. Risk/reward
    roi_pct = (max_profit / max_loss) * 100
    rr_score = _clamp(roi_pct)

    # 2. Capital efficiency: 200% annualized ROI scores 100
    annualized_roi = roi_pct * (DAYS_PER_YEAR / days_to_expiration)
    capital_efficiency_score = _clamp(annualized_roi / 2)

    # 3. Probability-weighted return
    prob_weighted = p * roi_pct
    prob_weighted_score = _clamp(prob_weighted * 1.5)

    # 4. Expected value per dollar at risk: 0.10 EV/$ scores 50
    expected_value = p * max_profit - q * max_loss
    ev_per_dollar = expected_value / max_loss
    ev_score = _clamp(50 + (ev_per_dollar - 0.10) * 250)

    # 5. Sharpe-like ratio with max loss share as the volatility proxy
    excess_return = ev_per_dollar - RISK_FREE_RATE * (days_to_expiration / DAYS_PER_YEAR)
    volatility_proxy = max_loss / (max_loss + max_profit)
    sharpe_like = excess_return / volatility_proxy
    sharpe_score = _clamp(50 + sharpe_like * 50)

    composite = (
        weights.risk_reward_weight * rr_score
        + weights.capital_efficiency_weight * capital_efficiency_score
        + weights.prob_weighted_weight * prob_weighted_score
        + weights.expected_value_weight * ev_score
        + weights.sharpe_weight * sharpe_score
    )

    odds = max_profit / max_loss
    kelly_fraction = max(0.0, (p * odds - q) / odds)
    ruin_adjusted_roi = roi_pct * min(1.0, odds)

    explanation = generate_rank_explanation(
        ev_score=ev_score,
        capital_efficiency_score=capital_efficiency_score,
        expected_value_per_dollar=ev_per_dollar,
        probability_of_profit=p,
        kelly_fraction=kelly_fraction,
    )

    return RiskAdjustedScore(
        composite=_round_half_up(_clamp(composite)),
        risk_reward_score=rr_score,
        capital_efficiency_score=capital_efficiency_score,
        prob_weighted_score=prob_weighted_score,
        expected_value_score=ev_score,
        sharpe_score=sharpe_score,
        roi_pct=roi_pct,
        annualized_roi=annualized_roi,
        expected_value=expected_value,
        expected_value_per_dollar=ev_per_dollar,
        sharpe_like_ratio=sharpe_like,
        kelly_fraction=kelly_fraction,
        ruin_adjusted_roi=ruin_adjusted_roi,
        probability_of_profit=p,
        rank_explanation=explanation,
    )


def score_candidate(candidate: CandidateSpread) -> RiskAdjustedScore:
    """Full risk-adjusted breakdown for a candidate spread."""
    return calculate_risk_adjusted_score(
        max_profit=candidate.max_profit,
        max_loss=candidate.max_loss,
        probability_of_profit=candidate.probability_of_profit,
        days_to_expiration=candidate.days_to_expiration,
        candidate_id=candidate.candidate_id,
    )


def score_composite(candidate: CandidateSpread) -> int:
    """
    Composite risk-adjusted score (0-100) for a candidate spread.

    Raises:
        InvalidCandidateError: If the candidate cannot be scored.
    """
    score = score_candidate(candidate)
    logger.debug(f"Composite score for {candidate.candidate_id}: {score.composite}")
    return score.composite


def generate_rank_explanation(
    ev_score: float,
    capital_efficiency_score: float,
    expected_value_per_dollar: float,
    probability_of_profit: float,
    kelly_fraction: float,
) -> str:
    """Explain in plain words why a trade ranks well or poorly."""
    strengths = []
    weaknesses = []

    if ev_score >= 80:
        strengths.append(
            f"Excellent expected value (${expected_value_per_dollar:.2f} per $1 at risk)"
        )
    elif ev_score < 50:
        weaknesses.append(
            f"Low expected value (${expected_value_per_dollar:.2f} per $1 at risk)"
        )

    if probability_of_profit >= 0.75:
        strengths.append(f"High win probability ({probability_of_profit * 100:.0f}%)")
    elif probability_of_profit < 0.65:
        weaknesses.append(f"Lower win probability ({probability_of_profit * 100:.0f}%)")

    if capital_efficiency_score >= 80:
        strengths.append("Efficient use of capital")
    elif capital_efficiency_score < 50:
        weaknesses.append("Capital-intensive setup")

    if kelly_fraction >= 0.15:
        strengths.append(f"Strong edge ({kelly_fraction * 100:.0f}% Kelly)")
    elif kelly_fraction < 0.05:
        weaknesses.append("Minimal statistical edge")

    if strengths and not weaknesses:
        return f"{'. '.join(strengths)}."
    if strengths:
        return f"{'. '.join(strengths)}. However: {', '.join(weaknesses)}."
    if weaknesses:
        return f"{'. '.join(weaknesses)}."
    return "Balanced risk/reward profile."


def compare_trades(trade_a: RiskAdjustedScore, trade_b: RiskAdjustedScore) -> TradeComparison:
    """
    Compare two trades and explain which is better.

    Composite scores within 3 points of each other are a tie.
    """
    diff = trade_a.composite - trade_b.composite

    if abs(diff) < TIE_MARGIN:
        return TradeComparison(
            winner="tie",
            reason="Trades are roughly equivalent in risk-adjusted terms",
            score_diff=float(diff),
        )

    winner = "A" if diff > 0 else "B"
    better, worse = (trade_a, trade_b) if winner == "A" else (trade_b, trade_a)

    reasons = []
    if abs(better.expected_value_per_dollar - worse.expected_value_per_dollar) > 0.05:
        reasons.append(
            f"better expected value (${better.expected_value_per_dollar:.2f} vs "
            f"${worse.expected_value_per_dollar:.2f} per $1)"
        )
    if abs(better.kelly_fraction - worse.kelly_fraction) > 0.05:
        reasons.append(
            f"stronger statistical edge ({better.kelly_fraction * 100:.0f}% vs "
            f"{worse.kelly_fraction * 100:.0f}% Kelly)"
        )
    if abs(better.capital_efficiency_score - worse.capital_efficiency_score) > 15:
        reasons.append("more capital efficient")

    if reasons:
        reason = f"Trade {winner} is better due to {' and '.join(reasons)}"
    else:
        reason = f"Trade {winner} has a higher overall risk-adjusted score"

    return TradeComparison(winner=winner, reason=reason, score_diff=float(abs(diff)))
