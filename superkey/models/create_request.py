"""Create request model.

Caller-supplied description of the resources to forge for one application.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from superkey.errors import RequestValidationError

ACCOUNT_SUBSTITUTION = "get_account"


class SubstitutionSource(Enum):
    """Where a placeholder's value comes from."""

    ACCOUNT = "account"
    STEP_OUTPUT = "step_output"


@dataclass(frozen=True)
class Substitution:
    """A single placeholder replacement rule.

    Attributes:
        placeholder: Literal token to replace in the step payload
        source: Kind of value used for the replacement
        step_name: Name of the prior step whose output is used (STEP_OUTPUT only)
    """

    placeholder: str
    source: SubstitutionSource
    step_name: Optional[str] = None

    @classmethod
    def parse(cls, placeholder: str, value: str) -> Substitution:
        """Build a substitution from its wire form.

        ``get_account`` selects the request's account; any other value names
        the prior step whose output fills the placeholder.
        """
        if not isinstance(value, str) or not value:
            raise RequestValidationError(f"Substitution for {placeholder} must be a non-empty string")

        if value == ACCOUNT_SUBSTITUTION:
            return cls(placeholder=placeholder, source=SubstitutionSource.ACCOUNT)

        return cls(placeholder=placeholder, source=SubstitutionSource.STEP_OUTPUT, step_name=value)

    def to_wire(self) -> str:
        if self.source == SubstitutionSource.ACCOUNT:
            return ACCOUNT_SUBSTITUTION
        return self.step_name or ""


@dataclass(frozen=True)
class Step:
    """One unit of work in a create request.

    Attributes:
        name: Step kind discriminator (e.g. "s3", "policy", "role", "bind_role")
        payload: Vendor-specific resource definition, may contain placeholders
        substitutions: Placeholder token -> substitution rule
    """

    name: str
    payload: str = ""
    substitutions: Mapping[str, Substitution] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Step:
        if not isinstance(data, Mapping):
            raise RequestValidationError("Every step must be a mapping")

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise RequestValidationError("Every step requires a non-empty 'name'")

        payload = data.get("payload") or ""
        if not isinstance(payload, str):
            raise RequestValidationError(f"Payload of step '{name}' must be a string")

        raw_subs = data.get("substitutions") or {}
        if not isinstance(raw_subs, Mapping):
            raise RequestValidationError(f"Substitutions of step '{name}' must be a mapping")

        substitutions = {token: Substitution.parse(token, value) for token, value in raw_subs.items()}
        return cls(name=name, payload=payload, substitutions=substitutions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "payload": self.payload,
            "substitutions": {token: sub.to_wire() for token, sub in self.substitutions.items()},
        }


@dataclass(frozen=True)
class CreateRequest:
    """Request to forge the resources of one application.

    Immutable once handed to a provider. Steps are interpreted in the given
    order; later steps may reference outputs of earlier ones.

    Attributes:
        application_type: Application type path (e.g. "/insights/platform/cost-management")
        steps: Ordered steps to interpret
        extra: Request-scoped data usable by substitutions (e.g. "account")
        provider: Vendor name selecting the provider (default: "amazon")
        tenant_id: Tenant the request belongs to (optional)
        source_id: Source the forged credentials are attached to (optional)
    """

    application_type: str
    steps: tuple[Step, ...] = ()
    extra: Mapping[str, str] = field(default_factory=dict)
    provider: str = "amazon"
    tenant_id: Optional[str] = None
    source_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CreateRequest:
        """Parse a create request message.

        Args:
            data: Decoded message with ``application_type``, ``superkey_steps``
                and ``extra`` keys

        Returns:
            CreateRequest instance

        Raises:
            RequestValidationError: If required fields are missing or malformed
        """
        if not isinstance(data, Mapping):
            raise RequestValidationError("Create request must be a mapping")

        application_type = data.get("application_type")
        if not isinstance(application_type, str) or not application_type:
            raise RequestValidationError("Create request requires 'application_type'")

        raw_steps = data.get("superkey_steps") or []
        if not isinstance(raw_steps, list):
            raise RequestValidationError("'superkey_steps' must be a list")

        extra = data.get("extra") or {}
        if not isinstance(extra, Mapping):
            raise RequestValidationError("'extra' must be a mapping")

        return cls(
            application_type=application_type,
            steps=tuple(Step.from_dict(step) for step in raw_steps),
            extra={str(key): str(value) for key, value in extra.items()},
            provider=data.get("provider") or "amazon",
            tenant_id=_optional_str(data.get("tenant_id")),
            source_id=_optional_str(data.get("source_id")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "application_type": self.application_type,
            "superkey_steps": [step.to_dict() for step in self.steps],
            "extra": dict(self.extra),
            "provider": self.provider,
            "tenant_id": self.tenant_id,
            "source_id": self.source_id,
        }


def _optional_str(value: Any) -> Optional[str]:
    # ids arrive as numbers from some producers
    if value is None:
        return None
    return str(value)
