"""
Ranking system for evaluated candidates.

Sorts evaluated candidates, applies diversification caps and formats
ranking reports.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from ips_scoring.models import CandidateSpread, ScoreResult, Tier
from ips_scoring.risk_scoring import RiskAdjustedScore

logger = logging.getLogger(__name__)

TIER_ORDER = (Tier.ELITE, Tier.QUALITY, Tier.SPECULATIVE, Tier.BELOW_THRESHOLD)


@dataclass(frozen=True)
class EvaluatedCandidate:
    """A candidate with its policy evaluation and risk-adjusted breakdown."""

    candidate: CandidateSpread
    result: ScoreResult
    risk: Optional[RiskAdjustedScore] = None
    sector: Optional[str] = None

    @property
    def composite(self) -> int:
        if self.risk is not None:
            return self.risk.composite
        if self.result.composite_score is not None:
            return self.result.composite_score
        return 0


@dataclass(frozen=True)
class RankedCandidate:
    """An evaluated candidate with its rank."""

    evaluated: EvaluatedCandidate
    rank: int

    @property
    def candidate(self) -> CandidateSpread:
        return self.evaluated.candidate

    @property
    def result(self) -> ScoreResult:
        return self.evaluated.result

    @property
    def final_score(self) -> float:
        """Convenience accessor for the policy score."""
        return self.result.score

    def summary(self) -> str:
        """Return a human-readable summary of the trade."""
        c = self.candidate
        r = self.result
        return (
            f"Rank #{self.rank} | IPS Score: {r.score:.1f} ({r.grade}, {r.compliance}) | "
            f"Tier: {r.tier}\n"
            f"{c.symbol} {c.strategy} exp {c.expiration} ({c.days_to_expiration} DTE)\n"
            f"Sell {c.short_leg.strike:g} / Buy {c.long_leg.strike:g} "
            f"(${c.credit:.2f} credit, {c.width:g} wide)\n"
            f"Max Profit: ${c.max_profit:.2f} | Max Loss: ${c.max_loss:.2f} | "
            f"PoP: {c.probability_of_profit * 100:.0f}% | "
            f"Composite: {self.evaluated.composite} | "
            f"Coverage: {r.weight_coverage * 100:.0f}%"
        )

    def to_json_dict(self) -> dict:
        """Return JSON-serializable dictionary."""
        data = {
            "rank": self.rank,
            "candidate": self.candidate.to_dict(),
            "evaluation": self.result.to_dict(),
        }
        if self.evaluated.risk is not None:
            data["risk"] = self.evaluated.risk.to_dict()
        return data


def rank_candidates(
    evaluated: list[EvaluatedCandidate],
    top_n: Optional[int] = None,
    min_score: Optional[float] = None,
) -> list[RankedCandidate]:
    """
    Rank evaluated candidates by policy score, then composite score.

    Args:
        evaluated: Evaluated candidates
        top_n: Number of top candidates to return (all if None)
        min_score: Optional minimum policy score

    Returns:
        RankedCandidate list, best first
    """
    if min_score is not None:
        evaluated = [e for e in evaluated if e.result.score >= min_score]

    sorted_candidates = sorted(
        evaluated,
        key=lambda e: (
            -e.result.score,
            -e.composite,
            e.candidate.sort_key,
        ),
    )

    if top_n is not None:
        sorted_candidates = sorted_candidates[:top_n]

    ranked = [
        RankedCandidate(evaluated=e, rank=i)
        for i, e in enumerate(sorted_candidates, start=1)
    ]

    logger.info(f"Ranked {len(ranked)} candidates from {len(evaluated)} evaluated")

    return ranked


def calculate_diversity_score(
    selected: list[EvaluatedCandidate],
    current: EvaluatedCandidate,
) -> float:
    """
    Score (0-100) how much ``current`` diversifies an existing selection.

    Repeated sectors cost 10 points each (max 30), repeated symbols 20
    (max 40) and repeated strategies 5 (max 20).
    """
    if not selected:
        return 100.0

    sector_count = sum(
        1 for e in selected
        if current.sector is not None and e.sector == current.sector
    )
    symbol_count = sum(1 for e in selected if e.candidate.symbol == current.candidate.symbol)
    strategy_count = sum(
        1 for e in selected if e.candidate.strategy == current.candidate.strategy
    )

    sector_penalty = min(30, sector_count * 10)
    symbol_penalty = min(40, symbol_count * 20)
    strategy_penalty = min(20, strategy_count * 5)

    return float(max(0, 100 - sector_penalty - symbol_penalty - strategy_penalty))


def apply_diversification_filters(
    evaluated: list[EvaluatedCandidate],
    max_per_sector: int = 3,
    max_per_symbol: int = 2,
    max_per_strategy: int = 10,
) -> list[EvaluatedCandidate]:
    """
    Keep candidates in order while capping concentration.

    Candidates without a sector are counted under 'Unknown'.
    """
    selected = []
    sector_counts: dict[str, int] = {}
    symbol_counts: dict[str, int] = {}
    strategy_counts: dict[str, int] = {}

    for e in evaluated:
        sector = e.sector or "Unknown"
        symbol = e.candidate.symbol
        strategy = e.candidate.strategy

        sector_ok = sector_counts.get(sector, 0) < max_per_sector
        symbol_ok = symbol_counts.get(symbol, 0) < max_per_symbol
        strategy_ok = strategy_counts.get(strategy, 0) < max_per_strategy

        if sector_ok and symbol_ok and strategy_ok:
            selected.append(e)
            sector_counts[sector] = sector_counts.get(sector, 0) + 1
            symbol_counts[symbol] = symbol_counts.get(symbol, 0) + 1
            strategy_counts[strategy] = strategy_counts.get(strategy, 0) + 1
        else:
            logger.debug(
                f"Diversification filtered {e.candidate.candidate_id}: "
                f"sector_ok={sector_ok} symbol_ok={symbol_ok} strategy_ok={strategy_ok}"
            )

    return selected


def group_by_tier(ranked: list[RankedCandidate]) -> dict[str, list[RankedCandidate]]:
    """
    Group ranked candidates by tier, preserving rank order within each tier.

    Every tier is present in the result, possibly empty.
    """
    groups: dict[str, list[RankedCandidate]] = {tier: [] for tier in TIER_ORDER}
    for rc in ranked:
        groups[rc.result.tier].append(rc)
    return groups


def format_ranking_report(
    ranked: list[RankedCandidate],
    symbol: str,
    underlying_price: float,
    policy_name: str = "",
) -> str:
    """
    Format a human-readable ranking report.

    Args:
        ranked: Ranked candidates
        symbol: Underlying symbol
        underlying_price: Current price
        policy_name: Name of the policy used

    Returns:
        Formatted report string
    """
    if not ranked:
        return f"No spread candidates found for {symbol}"

    lines = [
        "=" * 70,
        "IPS CANDIDATE EVALUATION",
        f"Symbol: {symbol} | Price: ${underlying_price:.2f}"
        + (f" | Policy: {policy_name}" if policy_name else ""),
        "=" * 70,
        "",
    ]

    for rc in ranked:
        lines.append("-" * 70)
        lines.append(rc.summary())
        lines.append("")
        lines.append("Factor Breakdown:")
        for v in rc.result.verdicts:
            value = "n/a" if v.value is None else f"{v.value:g}"
            score = "  -  " if v.sub_score is None else f"{v.sub_score:5.1f}"
            lines.append(
                f"  {v.name:<28} {value:>10}  target {v.target:<14} "
                f"score {score}  w={v.weight:g}  [{v.severity}]"
            )
        if rc.evaluated.risk is not None:
            lines.append(f"  {rc.evaluated.risk.rank_explanation}")
        lines.append("")

    lines.append("=" * 70)
    lines.append(f"Total candidates ranked: {len(ranked)}")
    lines.append("=" * 70)

    return "\n".join(lines)


def to_dataframe(ranked: list[RankedCandidate]) -> pd.DataFrame:
    """One row per ranked candidate, suitable for display or export."""
    rows = []
    for rc in ranked:
        c = rc.candidate
        r = rc.result
        rows.append({
            "rank": rc.rank,
            "symbol": c.symbol,
            "strategy": c.strategy,
            "expiration": c.expiration.isoformat(),
            "dte": c.days_to_expiration,
            "short_strike": c.short_leg.strike,
            "long_strike": c.long_leg.strike,
            "width": c.width,
            "credit": round(c.credit, 2),
            "max_profit": round(c.max_profit, 2),
            "max_loss": round(c.max_loss, 2),
            "pop": round(c.probability_of_profit, 4),
            "composite": rc.evaluated.composite,
            "ips_score": round(r.score, 2),
            "grade": r.grade,
            "compliance": r.compliance,
            "tier": r.tier,
            "weight_coverage": round(r.weight_coverage, 4),
            "passed": len(r.passed),
            "minor_misses": len(r.minor_misses),
            "major_misses": len(r.major_misses),
            "missing": len(r.missing),
        })
    return pd.DataFrame(rows)


def format_csv_output(ranked: list[RankedCandidate]) -> str:
    """Format ranking results as CSV."""
    return to_dataframe(ranked).to_csv(index=False)
