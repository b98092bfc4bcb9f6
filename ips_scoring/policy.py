"""
Investment Policy Statement (IPS) definitions and YAML loading.

A policy is an ordered, immutable set of weighted factors. It is validated
once when built, so scoring never has to second-guess a rule.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ips_scoring.config import SeverityThresholds
from ips_scoring.exceptions import (
    InvalidFactorError,
    InvalidPolicyError,
    PolicyFileError,
    PolicyFileNotFoundError,
)

logger = logging.getLogger(__name__)


class ComparisonRule(str, Enum):
    """How an observed value is compared with a factor's target."""
    GTE = "gte"
    LTE = "lte"
    EQ = "eq"
    RANGE = "range"


class FactorType(str, Enum):
    """Quantitative factors are raw numbers; qualitative ones are 1-5 ratings."""
    QUANTITATIVE = "quantitative"
    QUALITATIVE = "qualitative"


class NamedCurve(str, Enum):
    """Normalization curves that replace the comparison-rule curve."""
    IV_RANK = "iv_rank"
    TERM_SLOPE = "term_slope"
    PUT_SKEW = "put_skew"
    DTE_MODE = "dte_mode"
    VOLUME_OI_RATIO = "volume_oi_ratio"


MIN_RATING = 1
MAX_RATING = 5


@dataclass(frozen=True)
class PolicyFactor:
    """
    A named, weighted evaluation rule.

    Attributes:
        factor_id: Key used to look up the factor's observation
        name: Display name
        weight: Non-negative weight (weights need not sum to 1)
        rule: Comparison rule
        target: Target value (lower bound for ``range``)
        target_max: Upper bound, required for ``range``
        factor_type: Quantitative or qualitative (1-5 rating)
        curve: Optional named normalization curve
        enabled: Disabled factors are ignored by the aggregator
    """
    factor_id: str
    name: str
    weight: float
    rule: ComparisonRule
    target: float
    target_max: Optional[float] = None
    factor_type: FactorType = FactorType.QUANTITATIVE
    curve: Optional[NamedCurve] = None
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.factor_id or not isinstance(self.factor_id, str):
            raise InvalidFactorError(str(self.factor_id), "factor id must be a non-empty string")
        try:
            object.__setattr__(self, "rule", ComparisonRule(self.rule))
            object.__setattr__(self, "factor_type", FactorType(self.factor_type))
            if self.curve is not None:
                object.__setattr__(self, "curve", NamedCurve(self.curve))
        except ValueError as e:
            raise InvalidFactorError(self.factor_id, str(e))

        if not isinstance(self.weight, (int, float)) or not math.isfinite(self.weight):
            raise InvalidFactorError(self.factor_id, f"weight must be a finite number, got {self.weight}")
        if self.weight < 0:
            raise InvalidFactorError(self.factor_id, f"weight must be non-negative, got {self.weight}")
        if not isinstance(self.target, (int, float)) or not math.isfinite(self.target):
            raise InvalidFactorError(self.factor_id, f"target must be a finite number, got {self.target}")

        if self.rule == ComparisonRule.RANGE:
            if self.target_max is None:
                raise InvalidFactorError(self.factor_id, "range rule requires target_max")
            if self.target > self.target_max:
                raise InvalidFactorError(
                    self.factor_id,
                    f"target ({self.target}) must be <= target_max ({self.target_max})",
                )

        if self.factor_type == FactorType.QUALITATIVE:
            if self.target != int(self.target) or not MIN_RATING <= self.target <= MAX_RATING:
                raise InvalidFactorError(
                    self.factor_id,
                    f"qualitative target must be an integer rating {MIN_RATING}-{MAX_RATING}, got {self.target}",
                )
            if self.rule != ComparisonRule.GTE:
                raise InvalidFactorError(self.factor_id, "qualitative factors use the gte rule")
            if self.curve is not None:
                raise InvalidFactorError(self.factor_id, "qualitative factors cannot use a named curve")

        if self.target <= 0 and self.rule != ComparisonRule.RANGE and self.curve is None:
            # Scoring divides by max(target, 1) here; not validated for non-positive targets.
            logger.warning(
                f"Factor '{self.factor_id}' has non-positive target {self.target}; "
                f"relative distances use max(target, 1)"
            )


@dataclass(frozen=True)
class Policy:
    """
    An immutable, validated Investment Policy Statement.

    ``composite_weight``, when set, adds the composite risk-adjusted score as
    one more weighted factor.
    """
    policy_id: str
    name: str
    factors: tuple[PolicyFactor, ...]
    composite_weight: Optional[float] = None
    severity: SeverityThresholds = field(default_factory=SeverityThresholds)

    def __post_init__(self) -> None:
        object.__setattr__(self, "factors", tuple(self.factors))
        seen = set()
        for factor in self.factors:
            if factor.factor_id in seen:
                raise InvalidPolicyError(self.policy_id, f"duplicate factor id '{factor.factor_id}'")
            seen.add(factor.factor_id)
        if self.composite_weight is not None and self.composite_weight < 0:
            raise InvalidPolicyError(self.policy_id, "composite_weight must be non-negative")

    @property
    def enabled_factors(self) -> tuple[PolicyFactor, ...]:
        return tuple(f for f in self.factors if f.enabled)

    @property
    def total_weight(self) -> float:
        """Configured weight of all enabled factors (and the composite, if any)."""
        total = 0.0
        for factor in self.enabled_factors:
            total += factor.weight
        if self.composite_weight is not None:
            total += self.composite_weight
        return total

    def get_factor(self, factor_id: str) -> Optional[PolicyFactor]:
        for factor in self.factors:
            if factor.factor_id == factor_id:
                return factor
        return None

    def __repr__(self) -> str:
        return f"Policy({self.policy_id}, factors={len(self.factors)}, enabled={len(self.enabled_factors)})"


class PolicyBuilder:
    """
    Accumulates factor definitions and produces a validated ``Policy``.

    Example:
        policy = (
            PolicyBuilder("pcs", "Put Credit Spreads")
            .add_factor("iv_rank", "IV Rank", 0.4, "gte", 50)
            .add_factor("dte", "DTE", 0.2, "range", 30, target_max=45)
            .build()
        )
    """

    def __init__(self, policy_id: str, name: Optional[str] = None) -> None:
        self.policy_id = policy_id
        self.name = name or policy_id
        self._factors: List[PolicyFactor] = []
        self._composite_weight: Optional[float] = None
        self._severity = SeverityThresholds()

    def add_factor(
        self,
        factor_id: str,
        name: str,
        weight: float,
        rule: Union[str, ComparisonRule],
        target: float,
        target_max: Optional[float] = None,
        factor_type: Union[str, FactorType] = FactorType.QUANTITATIVE,
        curve: Optional[Union[str, NamedCurve]] = None,
        enabled: bool = True,
    ) -> "PolicyBuilder":
        self._factors.append(PolicyFactor(
            factor_id=factor_id,
            name=name,
            weight=weight,
            rule=rule,
            target=target,
            target_max=target_max,
            factor_type=factor_type,
            curve=curve,
            enabled=enabled,
        ))
        return self

    def add(self, factor: PolicyFactor) -> "PolicyBuilder":
        self._factors.append(factor)
        return self

    def with_composite(self, weight: float) -> "PolicyBuilder":
        self._composite_weight = weight
        return self

    def with_severity(self, pass_threshold: float, minor_threshold: float) -> "PolicyBuilder":
        try:
            self._severity = SeverityThresholds(pass_threshold, minor_threshold)
        except ValueError as e:
            raise InvalidPolicyError(self.policy_id, str(e))
        return self

    def build(self) -> Policy:
        return Policy(
            policy_id=self.policy_id,
            name=self.name,
            factors=tuple(self._factors),
            composite_weight=self._composite_weight,
            severity=self._severity,
        )


def factor_from_dict(factor_dict: Dict[str, Any], policy_id: str) -> PolicyFactor:
    """
    Validate and create a PolicyFactor from a dictionary.

    Args:
        factor_dict: Dictionary containing the factor definition.
        policy_id: Id of the parent policy (for error messages).

    Returns:
        Validated PolicyFactor.

    Raises:
        InvalidFactorError: If the factor is invalid.
    """
    if not isinstance(factor_dict, dict):
        raise InvalidFactorError(f"in policy '{policy_id}'", "factor must be a mapping")

    required_fields = {"id", "weight", "rule", "target"}
    missing = required_fields - set(factor_dict.keys())
    if missing:
        raise InvalidFactorError(
            str(factor_dict.get("id", f"in policy '{policy_id}'")),
            f"missing required fields: {', '.join(sorted(missing))}",
        )

    factor_id = str(factor_dict["id"])
    weight = factor_dict["weight"]
    target = factor_dict["target"]
    target_max = factor_dict.get("target_max")

    for label, value in (("weight", weight), ("target", target), ("target_max", target_max)):
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
            raise InvalidFactorError(factor_id, f"{label} must be a number, got {value!r}")

    return PolicyFactor(
        factor_id=factor_id,
        name=str(factor_dict.get("name") or factor_id),
        weight=float(weight),
        rule=str(factor_dict["rule"]).lower(),
        target=float(target),
        target_max=float(target_max) if target_max is not None else None,
        factor_type=str(factor_dict.get("type", FactorType.QUANTITATIVE.value)).lower(),
        curve=factor_dict.get("curve"),
        enabled=bool(factor_dict.get("enabled", True)),
    )


def policy_from_dict(content: Dict[str, Any], source: str = "<dict>") -> Policy:
    """
    Build a Policy from the parsed ``policy:`` mapping of a policy file.

    Raises:
        PolicyFileError: If the structure is wrong.
        InvalidFactorError, InvalidPolicyError: If a definition is invalid.
    """
    if not content or not isinstance(content, dict):
        raise PolicyFileError(source, "file is empty")
    if "policy" not in content:
        raise PolicyFileError(source, "missing 'policy' key")

    policy_dict = content["policy"]
    if not isinstance(policy_dict, dict):
        raise PolicyFileError(source, "'policy' must be a mapping")

    policy_id = policy_dict.get("id")
    if not policy_id:
        raise PolicyFileError(source, "policy id must be a non-empty string")
    policy_id = str(policy_id)

    factors_list = policy_dict.get("factors", [])
    if not isinstance(factors_list, list):
        raise PolicyFileError(source, "'factors' must be a list")

    builder = PolicyBuilder(policy_id, policy_dict.get("name"))
    for factor_dict in factors_list:
        builder.add(factor_from_dict(factor_dict, policy_id))

    composite_weight = policy_dict.get("composite_weight")
    if composite_weight is not None:
        builder.with_composite(float(composite_weight))

    severity = policy_dict.get("severity")
    if severity is not None:
        if not isinstance(severity, dict):
            raise PolicyFileError(source, "'severity' must be a mapping")
        defaults = SeverityThresholds()
        builder.with_severity(
            float(severity.get("pass_threshold", defaults.pass_threshold)),
            float(severity.get("minor_threshold", defaults.minor_threshold)),
        )

    policy = builder.build()
    logger.debug(f"Loaded {policy!r} from {source}")
    return policy


def load_policy_file(file_path: Union[str, Path]) -> Policy:
    """
    Load a policy from a YAML file.

    Args:
        file_path: Path to the YAML policy file.

    Returns:
        Validated Policy.

    Raises:
        PolicyFileNotFoundError: If the file does not exist.
        PolicyFileError: If the YAML is invalid or the structure is wrong.
    """
    path = Path(file_path)
    if not path.exists():
        raise PolicyFileNotFoundError(str(file_path))

    try:
        with open(path, "r") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise PolicyFileError(str(file_path), f"YAML parsing error: {e}")

    return policy_from_dict(content, str(file_path))
