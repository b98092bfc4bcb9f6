"""
IPS Trade Candidate Evaluation & Scoring Engine

Generates vertical credit-spread candidates from an option chain, scores each
against a weighted Investment Policy Statement (IPS) and a composite
risk-adjusted measure, and ranks them with grades, tiers and per-factor
diagnostics.

Usage as library:
    from ips_scoring import load_chain_csv, load_policy_file, screen_candidates

    legs = load_chain_csv("spy_chain.csv")
    policy = load_policy_file("policy.yaml")
    result = screen_candidates(legs, 500.0, policy, symbol="SPY", top_n=5)
    print(result.to_report())

    # Or evaluate a single candidate
    from ips_scoring import evaluate, candidate_observations

    score = evaluate(candidate, policy, candidate_observations(candidate))
    print(score.score, score.grade, score.weight_coverage)

Usage as CLI:
    python -m ips_scoring spy_chain.csv --policy policy.yaml --price 500
    python -m ips_scoring spy_chain.csv --policy policy.yaml --price 500 --top 5
    python -m ips_scoring spy_chain.csv --policy policy.yaml --price 500 --csv results.csv
"""

from ips_scoring.aggregation import evaluate
from ips_scoring.chain_loader import legs_from_dataframe, load_chain_csv
from ips_scoring.config import CompositeWeights, GeneratorFilters, SeverityThresholds
from ips_scoring.discovery import generate_candidates
from ips_scoring.factor_scoring import score_factor
from ips_scoring.models import (
    CandidateSpread,
    FactorVerdict,
    OptionLeg,
    ScoreResult,
    Severity,
    Tier,
)
from ips_scoring.observations import candidate_observations, merge_observations
from ips_scoring.policy import (
    ComparisonRule,
    FactorType,
    NamedCurve,
    Policy,
    PolicyBuilder,
    PolicyFactor,
    load_policy_file,
)
from ips_scoring.ranking import EvaluatedCandidate, RankedCandidate
from ips_scoring.risk_scoring import RiskAdjustedScore, score_candidate, score_composite
from ips_scoring.screener import CandidateScreener, ScreenerResult, screen_candidates

__version__ = "1.0.0"

__all__ = [
    "CompositeWeights",
    "GeneratorFilters",
    "SeverityThresholds",
    "OptionLeg",
    "CandidateSpread",
    "FactorVerdict",
    "ScoreResult",
    "Severity",
    "Tier",
    "ComparisonRule",
    "FactorType",
    "NamedCurve",
    "Policy",
    "PolicyBuilder",
    "PolicyFactor",
    "load_policy_file",
    "generate_candidates",
    "score_factor",
    "score_composite",
    "score_candidate",
    "RiskAdjustedScore",
    "evaluate",
    "candidate_observations",
    "merge_observations",
    "load_chain_csv",
    "legs_from_dataframe",
    "EvaluatedCandidate",
    "RankedCandidate",
    "screen_candidates",
    "CandidateScreener",
    "ScreenerResult",
]
