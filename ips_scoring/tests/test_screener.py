"""Tests for the screener and batch evaluation."""

import json
from dataclasses import replace

import pytest

from conftest import AS_OF, make_leg
from ips_scoring.discovery import generate_candidates
from ips_scoring.observations import candidate_observations
from ips_scoring.policy import PolicyBuilder
from ips_scoring.screener import (
    CandidateScreener,
    evaluate_batch,
    screen_candidates,
    static_resolver,
)


@pytest.fixture
def policy():
    return (
        PolicyBuilder("pcs", "Put Credit Spread Income")
        .add_factor("credit_to_width", "Credit / Width", 0.4, "gte", 0.10)
        .add_factor("short_delta", "Short Delta", 0.3, "lte", 0.20)
        .add_factor("iv_rank", "IV Rank", 0.3, "gte", 50, curve="iv_rank")
        .with_composite(0.2)
        .build()
    )


@pytest.fixture
def candidates(put_chain):
    return generate_candidates(put_chain, 500.0, "put", symbol="SPY", as_of=AS_OF)


def failing_resolver(candidate):
    """Resolver that produces an unscorable value for the 470 short put."""
    observations = candidate_observations(candidate)
    if candidate.short_leg.strike == 470:
        observations["credit_to_width"] = "n/a"
    return observations


class TestStaticResolver:
    """Tests for static_resolver."""

    def test_external_values_win(self, candidates):
        resolve = static_resolver({"iv_rank": 0.6, "credit": 9.99})
        candidate = next(iter(candidates))

        observations = resolve(candidate)

        assert observations["iv_rank"] == 0.6
        assert observations["credit"] == 9.99
        assert observations["width"] == candidate.width


class TestEvaluateBatch:
    """Tests for evaluate_batch."""

    def test_evaluates_all(self, candidates, policy):
        evaluated, failures = evaluate_batch(candidates, policy)

        assert len(evaluated) == 2
        assert failures == []
        assert all(e.risk is not None for e in evaluated)

    def test_ordered_by_candidate_id(self, candidates, policy):
        evaluated, _ = evaluate_batch(candidates, policy)
        ids = [e.candidate.candidate_id for e in evaluated]

        assert ids == sorted(ids)

    def test_missing_factor_lowers_coverage(self, candidates, policy):
        evaluated, _ = evaluate_batch(candidates, policy)

        for e in evaluated:
            assert e.result.weight_coverage == pytest.approx(0.9 / 1.2)
            assert [v.factor_id for v in e.result.missing] == ["iv_rank"]

    def test_failure_does_not_abort_batch(self, candidates, policy):
        evaluated, failures = evaluate_batch(candidates, policy, resolver=failing_resolver)

        assert [e.candidate.short_leg.strike for e in evaluated] == [465]
        assert len(failures) == 1
        assert failures[0].candidate.short_leg.strike == 470
        assert "credit_to_width" in failures[0].error

    def test_parallel_matches_sequential(self, candidates, policy):
        sequential = evaluate_batch(candidates, policy, resolver=failing_resolver)
        parallel = evaluate_batch(candidates, policy, resolver=failing_resolver, max_workers=4)

        assert parallel == sequential

    def test_duplicate_strikes_evaluated_separately(self, policy):
        """The same strikes listed under two roots keep their own results."""
        legs = []
        for root in ("SPX", "SPXW"):
            legs.append(replace(make_leg(470, bid=2.00, ask=2.10, delta=-0.20), contract_symbol=f"{root}-470"))
            legs.append(replace(make_leg(462, bid=1.20, ask=1.30, delta=-0.09), contract_symbol=f"{root}-462"))
        candidates = generate_candidates(legs, 500.0, "put", symbol="SPX", as_of=AS_OF)

        sequential, _ = evaluate_batch(candidates, policy)
        parallel, failures = evaluate_batch(candidates, policy, max_workers=4)

        assert len(candidates) == 4
        assert failures == []
        assert {e.candidate for e in parallel} == set(candidates)
        assert len({e.candidate.candidate_id for e in parallel}) == 4
        assert parallel == sequential

    def test_sector_tag(self, candidates, policy):
        evaluated, _ = evaluate_batch(candidates, policy, sector="Index")

        assert all(e.sector == "Index" for e in evaluated)


class TestCandidateScreener:
    """Tests for CandidateScreener."""

    def test_screen(self, put_chain, policy):
        screener = CandidateScreener(
            policy=policy,
            symbol="SPY",
            external_observations={"iv_rank": 0.65},
        )

        result = screener.screen(put_chain, 500.0, as_of=AS_OF)

        assert result.total_candidates == 2
        assert len(result.ranked_candidates) == 2
        assert result.ranked_candidates[0].rank == 1
        assert result.ranked_candidates[0].final_score >= result.ranked_candidates[1].final_score
        assert all(rc.result.weight_coverage == pytest.approx(1.0) for rc in result.ranked_candidates)

    def test_top_n(self, put_chain, policy):
        result = CandidateScreener(policy=policy).screen(put_chain, 500.0, as_of=AS_OF, top_n=1)

        assert len(result.ranked_candidates) == 1
        assert result.total_candidates == 2

    def test_diversify(self, put_chain, policy):
        screener = CandidateScreener(policy=policy, symbol="SPY", diversify=True)

        result = screener.screen(put_chain, 500.0, as_of=AS_OF)

        assert len(result.ranked_candidates) == 2

    def test_no_candidates(self, put_chain, policy):
        result = CandidateScreener(policy=policy, side="call").screen(
            put_chain, 600.0, as_of=AS_OF
        )

        assert result.total_candidates == 0
        assert result.ranked_candidates == []
        assert "No spread candidates found" in result.to_report()

    def test_failures_reported(self, put_chain, policy):
        screener = CandidateScreener(policy=policy, symbol="SPY", resolver=failing_resolver)

        result = screener.screen(put_chain, 500.0, as_of=AS_OF)

        assert len(result.ranked_candidates) == 1
        assert "Failed evaluations: 1" in result.to_report()


class TestScreenCandidates:
    """Tests for the function interface."""

    def test_outputs(self, put_chain, policy):
        result = screen_candidates(
            put_chain, 500.0, policy, symbol="SPY", observations={"iv_rank": 0.65}, as_of=AS_OF
        )

        report = result.to_report()
        assert "Policy: Put Credit Spread Income" in report
        assert "Credit / Width" in report

        csv = result.to_csv()
        assert csv.startswith("rank,symbol")

        data = json.loads(json.dumps(result.to_json_dict()))
        assert data["policy"]["id"] == "pcs"
        assert len(data["candidates"]) == 2
        assert data["candidates"][0]["evaluation"]["composite_score"] is not None
        assert data["failures"] == []
