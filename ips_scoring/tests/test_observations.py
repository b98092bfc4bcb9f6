"""Tests for candidate-derived and external observations."""

import pytest

from conftest import make_spread
from ips_scoring.exceptions import InvalidObservationError
from ips_scoring.observations import (
    candidate_observations,
    load_observations_file,
    merge_observations,
)
from ips_scoring.risk_scoring import score_composite


class TestCandidateObservations:
    """Tests for candidate_observations."""

    def test_values(self):
        spread = make_spread()
        obs = candidate_observations(spread)

        assert obs["short_delta"] == pytest.approx(0.20)
        assert obs["credit"] == pytest.approx(0.70)
        assert obs["width"] == pytest.approx(8.0)
        assert obs["credit_to_width"] == pytest.approx(0.0875)
        assert obs["probability_of_profit"] == pytest.approx(0.80)
        assert obs["dte"] == 28.0
        assert obs["short_iv"] == pytest.approx(0.25)
        assert obs["short_open_interest"] == 500.0
        assert obs["bid_ask_spread"] == pytest.approx(0.10)
        assert obs["otm_pct"] == pytest.approx(0.06)

    def test_composite_included(self):
        spread = make_spread()

        assert candidate_observations(spread)["composite_risk"] == float(score_composite(spread))
        assert "composite_risk" not in candidate_observations(spread, include_composite=False)

    def test_absent_greeks_are_none(self):
        obs = candidate_observations(make_spread())

        assert obs["short_theta"] is None
        assert obs["short_vega"] is None


class TestMergeObservations:
    """Tests for merge_observations."""

    def test_later_sources_win(self):
        merged = merge_observations({"iv_rank": 40, "dte": 30}, {"iv_rank": 55})

        assert merged == {"iv_rank": 55, "dte": 30}

    def test_none_does_not_overwrite(self):
        merged = merge_observations({"iv_rank": 40}, {"iv_rank": None, "skew": None})

        assert merged == {"iv_rank": 40, "skew": None}

    def test_empty(self):
        assert merge_observations() == {}


class TestLoadObservationsFile:
    """Tests for observation files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "obs.yaml"
        path.write_text("iv_rank: 62\nput_skew: 0.3\nearnings_days: null\n")

        assert load_observations_file(path) == {
            "iv_rank": 62.0,
            "put_skew": 0.3,
            "earnings_days": None,
        }

    def test_json(self, tmp_path):
        path = tmp_path / "obs.json"
        path.write_text('{"iv_rank": 62, "term_slope": -0.1}')

        assert load_observations_file(path) == {"iv_rank": 62.0, "term_slope": -0.1}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "obs.yaml"
        path.write_text("")

        assert load_observations_file(path) == {}

    def test_non_numeric_value(self, tmp_path):
        path = tmp_path / "obs.yaml"
        path.write_text("iv_rank: high\n")

        with pytest.raises(InvalidObservationError, match="iv_rank"):
            load_observations_file(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "obs.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ValueError, match="expected a mapping"):
            load_observations_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_observations_file(tmp_path / "missing.yaml")
