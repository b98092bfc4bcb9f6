"""Tests for configuration classes."""

import math

import pytest

from ips_scoring.config import (
    COMPOSITE_WEIGHTS,
    CompositeWeights,
    GeneratorFilters,
    SeverityThresholds,
)


class TestGeneratorFilters:
    """Tests for GeneratorFilters dataclass."""

    def test_default_filters(self):
        """Test default filter values."""
        filters = GeneratorFilters()

        assert filters.min_dte == 7
        assert filters.max_dte == 45
        assert filters.min_delta == 0.10
        assert filters.max_delta == 0.30
        assert filters.min_open_interest == 100
        assert filters.min_bid == 0.05
        assert filters.otm_pct == 0.05
        assert filters.min_width == 5.0
        assert filters.max_width == 10.0

    def test_custom_filters(self):
        """Test custom filter values."""
        filters = GeneratorFilters(min_dte=14, max_dte=30, min_delta=0.15, max_delta=0.25)

        assert filters.min_dte == 14
        assert filters.max_dte == 30
        assert filters.min_delta == 0.15
        assert filters.max_delta == 0.25

    def test_invalid_dte_range(self):
        """Test that invalid DTE range raises error."""
        with pytest.raises(ValueError, match="max_dte must be >= min_dte"):
            GeneratorFilters(min_dte=30, max_dte=10)

        with pytest.raises(ValueError, match="min_dte must be non-negative"):
            GeneratorFilters(min_dte=-1)

    def test_invalid_delta_band(self):
        """Test delta band validation."""
        with pytest.raises(ValueError, match="min_delta must be between 0 and 1"):
            GeneratorFilters(min_delta=-0.1)

        with pytest.raises(ValueError, match="max_delta must be between 0 and 1"):
            GeneratorFilters(max_delta=1.5)

        with pytest.raises(ValueError, match="max_delta must be >= min_delta"):
            GeneratorFilters(min_delta=0.3, max_delta=0.2)

    def test_invalid_liquidity(self):
        """Test liquidity threshold validation."""
        with pytest.raises(ValueError, match="min_open_interest must be non-negative"):
            GeneratorFilters(min_open_interest=-5)

        with pytest.raises(ValueError, match="min_bid must be non-negative"):
            GeneratorFilters(min_bid=-0.01)

    def test_invalid_widths(self):
        """Test width bound validation."""
        with pytest.raises(ValueError, match="max_width must be > min_width"):
            GeneratorFilters(min_width=10, max_width=10)

        with pytest.raises(ValueError, match="min_width must be non-negative"):
            GeneratorFilters(min_width=-1)

    def test_invalid_otm_pct(self):
        with pytest.raises(ValueError, match="otm_pct must be between 0 and 1"):
            GeneratorFilters(otm_pct=1.0)


class TestCompositeWeights:
    """Tests for CompositeWeights."""

    def test_default_weights(self):
        """Test the fixed composite weights."""
        assert COMPOSITE_WEIGHTS.as_tuple() == (0.35, 0.25, 0.20, 0.15, 0.05)

    def test_weights_sum_to_one(self):
        """Weights sum to exactly 1.0."""
        assert math.fsum(COMPOSITE_WEIGHTS.as_tuple()) == 1.0

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError, match="must sum to 1.0"):
            CompositeWeights(risk_reward_weight=0.5)

    def test_weights_must_be_non_negative(self):
        with pytest.raises(ValueError, match="non-negative"):
            CompositeWeights(
                risk_reward_weight=0.45,
                capital_efficiency_weight=0.25,
                prob_weighted_weight=0.20,
                expected_value_weight=0.15,
                sharpe_weight=-0.05,
            )

    def test_weights_are_frozen(self):
        with pytest.raises(AttributeError):
            COMPOSITE_WEIGHTS.sharpe_weight = 0.5


class TestSeverityThresholds:
    """Tests for SeverityThresholds."""

    def test_defaults(self):
        thresholds = SeverityThresholds()

        assert thresholds.pass_threshold == 0.0
        assert thresholds.minor_threshold == 0.10

    def test_invalid_thresholds(self):
        with pytest.raises(ValueError, match="pass_threshold must be non-negative"):
            SeverityThresholds(pass_threshold=-0.1)

        with pytest.raises(ValueError, match="minor_threshold must be >= pass_threshold"):
            SeverityThresholds(pass_threshold=0.2, minor_threshold=0.1)
