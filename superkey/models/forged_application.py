"""Forged application model.

The step ledger of a single forge attempt: which steps completed and what each
of them produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from superkey.models.create_request import CreateRequest


class StepKind(Enum):
    """Step kinds with a built-in handler, valued by their wire name."""

    S3 = "s3"
    POLICY = "policy"
    ROLE = "role"
    BIND_ROLE = "bind_role"

    @classmethod
    def lookup(cls, name: Union[str, StepKind]) -> Optional[StepKind]:
        """Return the kind for a step name, or None when it has no handler."""
        if isinstance(name, StepKind):
            return name
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass(frozen=True)
class StepOutput:
    """Outputs recorded for a completed step.

    Attributes:
        output: Primary identifier (bucket name, policy ARN, role name); empty
            for steps that only record completion
        arn: Secondary ARN, set by steps that produce one besides ``output``
    """

    output: str = ""
    arn: Optional[str] = None

    def to_dict(self) -> dict[str, str]:
        data = {"output": self.output}
        if self.arn is not None:
            data["arn"] = self.arn
        return data


@dataclass
class ForgedApplication:
    """Step ledger for one forge attempt.

    Created fresh per forge call and owned exclusively by it; returned to the
    caller (complete or partial) and later handed back for teardown. A ledger
    must never be shared between concurrent operations.

    Invariant: ``steps_completed[kind]`` exists if and only if the remote
    creation call for that step succeeded. Entries are only removed by a
    successful teardown of that step.

    Attributes:
        request: Originating create request (read-only)
        guid: Random identifier making resource names unique
        steps_completed: Completed step kind -> recorded outputs
        result_username: Identity handed downstream (set after all steps)
        result_password: Secret handed downstream, provider specific
        result_extra: Extra identity data, provider specific
    """

    request: CreateRequest
    guid: str
    steps_completed: dict[StepKind, StepOutput] = field(default_factory=dict)
    result_username: Optional[str] = None
    result_password: Optional[str] = None
    result_extra: Optional[str] = None

    def mark_completed(self, kind: StepKind, output: StepOutput) -> None:
        self.steps_completed[kind] = output

    def mark_compensated(self, kind: StepKind) -> None:
        self.steps_completed.pop(kind, None)

    def is_completed(self, kind: Union[str, StepKind]) -> bool:
        resolved = StepKind.lookup(kind)
        return resolved is not None and resolved in self.steps_completed

    def output_of(self, kind: Union[str, StepKind]) -> Optional[StepOutput]:
        """Return the recorded outputs of a step, or None if it did not complete."""
        resolved = StepKind.lookup(kind)
        if resolved is None:
            return None
        return self.steps_completed.get(resolved)

    def create_payload(
        self,
        username: Optional[str],
        password: Optional[str] = None,
        extra: Optional[str] = None,
    ) -> None:
        """Set the final identity fields once all steps have finished."""
        self.result_username = username
        self.result_password = password
        self.result_extra = extra

    def auth_payload(self) -> dict[str, Any]:
        """Identity payload consumed by the credential layer."""
        return {
            "source_id": self.request.source_id,
            "tenant_id": self.request.tenant_id,
            "username": self.result_username,
            "password": self.result_password,
            "extra": self.result_extra,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize the ledger so it can be handed back for teardown later."""
        return {
            "guid": self.guid,
            "request": self.request.to_dict(),
            "steps_completed": {kind.value: output.to_dict() for kind, output in self.steps_completed.items()},
            "result": {
                "username": self.result_username,
                "password": self.result_password,
                "extra": self.result_extra,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ForgedApplication:
        """Rebuild a ledger from ``to_dict`` output.

        Raises:
            ValueError: If the guid is missing or a step kind is unknown
        """
        guid = data.get("guid")
        if not guid:
            raise ValueError("Ledger is missing its guid")

        steps_completed: dict[StepKind, StepOutput] = {}
        for name, outputs in (data.get("steps_completed") or {}).items():
            kind = StepKind.lookup(name)
            if kind is None:
                raise ValueError(f"Unknown step kind in ledger: {name}")
            outputs = outputs or {}
            steps_completed[kind] = StepOutput(output=outputs.get("output", ""), arn=outputs.get("arn"))

        result = data.get("result") or {}
        return cls(
            request=CreateRequest.from_dict(data.get("request") or {}),
            guid=str(guid),
            steps_completed=steps_completed,
            result_username=result.get("username"),
            result_password=result.get("password"),
            result_extra=result.get("extra"),
        )
