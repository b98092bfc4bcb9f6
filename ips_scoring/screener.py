"""
Main screener module for IPS candidate evaluation.

Provides both a class-based API and a simple function interface.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterable, Mapping, Optional

from ips_scoring.aggregation import evaluate
from ips_scoring.config import GeneratorFilters
from ips_scoring.discovery import generate_candidates
from ips_scoring.exceptions import InvalidCandidateError, ValidationError
from ips_scoring.models import CandidateSpread, OptionLeg
from ips_scoring.observations import Observations, candidate_observations, merge_observations
from ips_scoring.policy import Policy
from ips_scoring.ranking import (
    EvaluatedCandidate,
    RankedCandidate,
    apply_diversification_filters,
    format_csv_output,
    format_ranking_report,
    rank_candidates,
)
from ips_scoring.risk_scoring import RiskAdjustedScore, score_candidate

logger = logging.getLogger(__name__)

ObservationResolver = Callable[[CandidateSpread], Mapping[str, Optional[float]]]


@dataclass(frozen=True)
class EvaluationFailure:
    """A candidate whose evaluation raised a validation error."""

    candidate: CandidateSpread
    error: str

    def to_dict(self) -> dict:
        return {"candidate_id": self.candidate.candidate_id, "error": self.error}


def static_resolver(external: Optional[Mapping[str, Optional[float]]] = None) -> ObservationResolver:
    """
    Resolver combining candidate-derived values with one fixed external mapping.

    External values win over derived ones when both are present.
    """
    external = dict(external or {})

    def resolve(candidate: CandidateSpread) -> Observations:
        return merge_observations(candidate_observations(candidate), external)

    return resolve


def _risk_breakdown(candidate: CandidateSpread) -> Optional[RiskAdjustedScore]:
    try:
        return score_candidate(candidate)
    except InvalidCandidateError as e:
        logger.debug(f"No risk breakdown for {candidate.candidate_id}: {e}")
        return None


def evaluate_candidate(
    candidate: CandidateSpread,
    policy: Policy,
    resolver: ObservationResolver,
    sector: Optional[str] = None,
) -> EvaluatedCandidate:
    """
    Evaluate one candidate against a policy.

    Raises:
        ValidationError: If an observation or the candidate cannot be scored.
    """
    observations = resolver(candidate)
    result = evaluate(candidate, policy, observations)
    return EvaluatedCandidate(
        candidate=candidate,
        result=result,
        risk=_risk_breakdown(candidate),
        sector=sector,
    )


def evaluate_batch(
    candidates: Iterable[CandidateSpread],
    policy: Policy,
    resolver: Optional[ObservationResolver] = None,
    max_workers: Optional[int] = None,
    sector: Optional[str] = None,
) -> tuple[list[EvaluatedCandidate], list[EvaluationFailure]]:
    """
    Evaluate many candidates, optionally in parallel.

    Results come back in ``CandidateSpread.sort_key`` order regardless of
    completion order.
    A validation error in one candidate is recorded as a failure and never
    aborts the batch.

    Args:
        candidates: Candidates to evaluate
        policy: Policy to evaluate against
        resolver: Maps a candidate to its observations
            (default: candidate-derived values only)
        max_workers: Thread pool size; None or 1 evaluates sequentially
        sector: Sector tag applied to every evaluated candidate

    Returns:
        Tuple of (evaluated, failures)
    """
    if resolver is None:
        resolver = static_resolver()

    ordered = sorted(candidates, key=lambda c: c.sort_key)
    outcomes: dict[int, object] = {}

    def run(candidate: CandidateSpread):
        try:
            return evaluate_candidate(candidate, policy, resolver, sector)
        except ValidationError as e:
            logger.warning(f"Evaluation failed for {candidate.candidate_id}: {e}")
            return EvaluationFailure(candidate=candidate, error=str(e))

    if max_workers is None or max_workers <= 1:
        for index, candidate in enumerate(ordered):
            outcomes[index] = run(candidate)
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {
                executor.submit(run, candidate): index
                for index, candidate in enumerate(ordered)
            }
            for future in as_completed(future_to_index):
                outcomes[future_to_index[future]] = future.result()

    evaluated = []
    failures = []
    for index in range(len(ordered)):
        outcome = outcomes[index]
        if isinstance(outcome, EvaluationFailure):
            failures.append(outcome)
        else:
            evaluated.append(outcome)

    logger.info(f"Evaluated {len(evaluated)} candidates ({len(failures)} failures)")
    return evaluated, failures


@dataclass
class ScreenerResult:
    """Result from screening operation."""

    symbol: str
    underlying_price: float
    policy: Policy
    ranked_candidates: list[RankedCandidate]
    total_candidates: int
    failures: list[EvaluationFailure] = field(default_factory=list)

    def to_report(self) -> str:
        """Generate human-readable report."""
        report = format_ranking_report(
            self.ranked_candidates,
            self.symbol,
            self.underlying_price,
            self.policy.name,
        )
        if self.failures:
            lines = [report, "", f"Failed evaluations: {len(self.failures)}"]
            lines.extend(f"  {f.candidate.candidate_id}: {f.error}" for f in self.failures)
            report = "\n".join(lines)
        return report

    def to_csv(self) -> str:
        """Generate CSV output."""
        return format_csv_output(self.ranked_candidates)

    def to_json_dict(self) -> dict:
        """Return JSON-serializable dictionary."""
        return {
            "symbol": self.symbol,
            "underlying_price": self.underlying_price,
            "policy": {"id": self.policy.policy_id, "name": self.policy.name},
            "total_candidates": self.total_candidates,
            "candidates": [rc.to_json_dict() for rc in self.ranked_candidates],
            "failures": [f.to_dict() for f in self.failures],
        }


@dataclass
class CandidateScreener:
    """
    Screener for credit-spread candidates against an IPS policy.

    Example usage:
        screener = CandidateScreener(policy=policy, symbol="SPY")
        result = screener.screen(legs, underlying_price=500.0)
        print(result.to_report())
    """

    policy: Policy
    symbol: str = ""
    side: str = "put"
    filters: GeneratorFilters = field(default_factory=GeneratorFilters)
    external_observations: Mapping[str, Optional[float]] = field(default_factory=dict)
    resolver: Optional[ObservationResolver] = None
    sector: Optional[str] = None
    max_workers: Optional[int] = None
    diversify: bool = False

    def __post_init__(self) -> None:
        """Build the default resolver if not provided."""
        if self.resolver is None:
            self.resolver = static_resolver(self.external_observations)

    def screen(
        self,
        legs: Iterable[OptionLeg],
        underlying_price: float,
        as_of: Optional[date] = None,
        top_n: Optional[int] = None,
        min_score: Optional[float] = None,
    ) -> ScreenerResult:
        """
        Run the screening process.

        Args:
            legs: Option-chain rows
            underlying_price: Current underlying price
            as_of: Valuation date (default: today)
            top_n: Number of top results to return (all if None)
            min_score: Optional minimum policy score

        Returns:
            ScreenerResult with ranked candidates
        """
        logger.info(f"Starting screen for {self.symbol or 'underlying'} with policy '{self.policy.policy_id}'")

        candidates = generate_candidates(
            legs,
            underlying_price,
            self.side,
            filters=self.filters,
            symbol=self.symbol,
            as_of=as_of,
        )

        if not candidates:
            logger.warning("No candidates passed the generator filters")
            return ScreenerResult(
                symbol=self.symbol,
                underlying_price=underlying_price,
                policy=self.policy,
                ranked_candidates=[],
                total_candidates=0,
            )

        evaluated, failures = evaluate_batch(
            candidates,
            self.policy,
            resolver=self.resolver,
            max_workers=self.max_workers,
            sector=self.sector,
        )

        ranked = rank_candidates(evaluated, min_score=min_score)
        if self.diversify:
            kept = apply_diversification_filters([rc.evaluated for rc in ranked])
            ranked = rank_candidates(kept)
        if top_n is not None:
            ranked = ranked[:top_n]

        return ScreenerResult(
            symbol=self.symbol,
            underlying_price=underlying_price,
            policy=self.policy,
            ranked_candidates=ranked,
            total_candidates=len(candidates),
            failures=failures,
        )


def screen_candidates(
    legs: Iterable[OptionLeg],
    underlying_price: float,
    policy: Policy,
    side: str = "put",
    symbol: str = "",
    filters: Optional[GeneratorFilters] = None,
    observations: Optional[Mapping[str, Optional[float]]] = None,
    as_of: Optional[date] = None,
    top_n: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> ScreenerResult:
    """
    Simple function interface to generate, evaluate and rank candidates.

    Args:
        legs: Option-chain rows
        underlying_price: Current underlying price
        policy: IPS policy
        side: 'put' or 'call'
        symbol: Underlying symbol
        filters: Generator filters (defaults if None)
        observations: External factor values applied to every candidate
        as_of: Valuation date (default: today)
        top_n: Number of top results to return (all if None)
        max_workers: Thread pool size for evaluation

    Returns:
        ScreenerResult with ranked candidates

    Example:
        from ips_scoring import load_chain_csv, load_policy_file, screen_candidates

        legs = load_chain_csv("spy_chain.csv")
        policy = load_policy_file("policy.yaml")
        result = screen_candidates(legs, 500.0, policy, symbol="SPY", top_n=5)
        print(result.to_report())
    """
    screener = CandidateScreener(
        policy=policy,
        symbol=symbol,
        side=side,
        filters=filters if filters is not None else GeneratorFilters(),
        external_observations=observations or {},
        max_workers=max_workers,
    )
    return screener.screen(legs, underlying_price, as_of=as_of, top_n=top_n)
