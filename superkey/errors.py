"""Exception hierarchy for forge and teardown operations."""

from __future__ import annotations

from typing import Optional


class SuperkeyError(Exception):
    """Base class for all superkey errors."""


class ConfigError(SuperkeyError):
    """Raised when configuration values are missing or invalid."""


class RequestValidationError(SuperkeyError):
    """Raised when a create request message cannot be parsed."""


class UnsupportedProviderError(SuperkeyError):
    """Raised when no provider exists for the requested vendor."""


class UnresolvedSubstitutionError(SuperkeyError):
    """Raised when a placeholder has no value and the policy is strict."""

    def __init__(self, placeholder: str, reason: str) -> None:
        super().__init__(f"Cannot resolve placeholder {placeholder}: {reason}")
        self.placeholder = placeholder
        self.reason = reason


class ResourceClientError(SuperkeyError):
    """A remote create/bind/destroy call failed.

    Attributes:
        operation: Client operation that failed (e.g. "create_role")
        code: AWS error code, "Unknown" when not available
        message: Human-readable error message
    """

    def __init__(self, operation: str, code: str, message: str) -> None:
        super().__init__(f"{operation} failed: {code} - {message}")
        self.operation = operation
        self.code = code
        self.message = message


class StepFailedError(SuperkeyError):
    """A forge step failed; the remaining steps were not interpreted."""

    def __init__(self, step_name: str, cause: Exception) -> None:
        super().__init__(f"Step '{step_name}' failed: {cause}")
        self.step_name = step_name
        self.cause = cause


class TeardownError(SuperkeyError):
    """One compensating action failed during teardown."""

    def __init__(self, step_name: str, resource: Optional[str], cause: Exception) -> None:
        super().__init__(f"Failed to tear down {step_name} ({resource}): {cause}")
        self.step_name = step_name
        self.resource = resource
        self.cause = cause


class StepDependencyError(SuperkeyError):
    """A step needs the output of a step that has not completed."""

    def __init__(self, step_name: str, missing: str) -> None:
        super().__init__(f"Step '{step_name}' requires completed step '{missing}'")
        self.step_name = step_name
        self.missing = missing
