"""
Custom exceptions for the IPS scoring engine.

Validation errors abort only the evaluation they occur in. Missing data is
never an exception: it is represented explicitly (``missing`` severity,
empty candidate sets, zero weight coverage).
"""

from typing import Any


class ScoringError(Exception):
    """Base exception for all scoring-engine errors."""

    pass


class ValidationError(ScoringError):
    """Exception raised when an engine input is malformed."""

    pass


class InvalidLegError(ValidationError):
    """Exception raised when an option leg carries an impossible value."""

    def __init__(self, field_name: str, value: Any, reason: str = "") -> None:
        self.field_name = field_name
        self.value = value
        message = f"Invalid option leg field '{field_name}': {value}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidCandidateError(ValidationError):
    """Exception raised when a candidate spread violates its invariants."""

    def __init__(self, candidate_id: str, reason: str = "") -> None:
        self.candidate_id = candidate_id
        message = f"Invalid candidate spread: {candidate_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidFactorError(ValidationError):
    """Exception raised when a policy factor definition is invalid."""

    def __init__(self, factor_id: str, reason: str = "") -> None:
        self.factor_id = factor_id
        message = f"Invalid policy factor: {factor_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidObservationError(ValidationError):
    """Exception raised when an observed factor value cannot be scored."""

    def __init__(self, factor_id: str, value: Any, reason: str = "") -> None:
        self.factor_id = factor_id
        self.value = value
        message = f"Invalid observation for factor '{factor_id}': {value}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidPolicyError(ValidationError):
    """Exception raised when a policy as a whole is inconsistent."""

    def __init__(self, policy_id: str, reason: str = "") -> None:
        self.policy_id = policy_id
        message = f"Invalid policy: {policy_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class PolicyFileError(ScoringError):
    """Exception raised when a policy YAML file cannot be loaded."""

    def __init__(self, file_path: str, details: str = "") -> None:
        self.file_path = file_path
        message = f"Invalid policy file: {file_path}"
        if details:
            message += f": {details}"
        super().__init__(message)


class PolicyFileNotFoundError(PolicyFileError):
    """Exception raised when a policy file does not exist."""

    def __init__(self, file_path: str) -> None:
        super().__init__(file_path, "file not found")
