"""Step handlers for the Amazon provider.

Each built-in step kind has one handler that knows how to create its resource
and how to compensate for it. Steps without a handler fall through to
``UnsupportedStep``, a no-op kept for forward compatibility.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from superkey.aws.client import RemoteResourceClient
from superkey.errors import StepDependencyError
from superkey.forge.naming import ResourceNamer
from superkey.forge.templater import MissingValuePolicy, substitute
from superkey.models.create_request import Step
from superkey.models.forged_application import ForgedApplication, StepKind, StepOutput

logger = logging.getLogger(__name__)


class StepHandler(ABC):
    """Abstract base class for step handlers.

    Each handler should:
    1. Name the step kind it handles
    2. Create its resource in ``apply`` and return the outputs to record
    3. Destroy that resource in ``compensate``, raising on failure
    """

    def __init__(
        self,
        client: RemoteResourceClient,
        namer: ResourceNamer,
        missing_value_policy: MissingValuePolicy = MissingValuePolicy.EMPTY,
    ) -> None:
        self.client = client
        self.namer = namer
        self.missing_value_policy = missing_value_policy

    @property
    @abstractmethod
    def kind(self) -> Optional[StepKind]:
        """Step kind handled, None for the unsupported-step fallback."""
        pass

    @abstractmethod
    def apply(self, ledger: ForgedApplication, step: Step) -> Optional[StepOutput]:
        """Create the step's resource.

        Args:
            ledger: Ledger of the current forge attempt
            step: Step from the create request

        Returns:
            Outputs to record as completed, None if nothing was done
        """
        pass

    @abstractmethod
    def compensate(self, ledger: ForgedApplication) -> None:
        """Undo a completed step, raising if the remote call fails."""
        pass

    def describe(self, ledger: ForgedApplication) -> Optional[str]:
        """Identifier of the resource this step created, for log messages."""
        outputs = ledger.output_of(self.kind) if self.kind else None
        return outputs.output if outputs else None

    def _resource_name(self, ledger: ForgedApplication, label: str) -> str:
        return self.namer.resource_name(ledger.request.application_type, label, ledger.guid)

    def _render(self, ledger: ForgedApplication, step: Step) -> str:
        if not step.payload:
            return step.payload
        return substitute(step.payload, ledger, step.substitutions, self.missing_value_policy)


class S3BucketStep(StepHandler):
    """Creates the storage bucket other steps may reference."""

    @property
    def kind(self) -> StepKind:
        return StepKind.S3

    def apply(self, ledger: ForgedApplication, step: Step) -> StepOutput:
        name = self._resource_name(ledger, "bucket")
        logger.info(f"Creating S3 bucket: {name}")

        self.client.create_s3_bucket(name)

        logger.info(f"Successfully created S3 bucket {name}")
        return StepOutput(output=name)

    def compensate(self, ledger: ForgedApplication) -> None:
        bucket = ledger.output_of(StepKind.S3).output
        self.client.destroy_s3_bucket(bucket)
        logger.info(f"Destroyed S3 bucket {bucket}")


class PolicyStep(StepHandler):
    """Creates an IAM policy from the step payload."""

    @property
    def kind(self) -> StepKind:
        return StepKind.POLICY

    def apply(self, ledger: ForgedApplication, step: Step) -> StepOutput:
        name = self._resource_name(ledger, "policy")
        payload = self._render(ledger, step)
        logger.info(f"Creating policy {name}")

        arn = self.client.create_policy(name, payload)

        logger.info(f"Successfully created policy {name}")
        return StepOutput(output=arn)

    def compensate(self, ledger: ForgedApplication) -> None:
        policy_arn = ledger.output_of(StepKind.POLICY).output
        self.client.destroy_policy(policy_arn)
        logger.info(f"Destroyed policy {policy_arn}")


class RoleStep(StepHandler):
    """Creates the assumable IAM role.

    Records the role name as output and its ARN separately; the ARN is the
    identity handed to the credential layer.
    """

    @property
    def kind(self) -> StepKind:
        return StepKind.ROLE

    def apply(self, ledger: ForgedApplication, step: Step) -> StepOutput:
        name = self._resource_name(ledger, "role")
        payload = self._render(ledger, step)
        logger.info(f"Creating role {name}")

        role_arn = self.client.create_role(name, payload)

        logger.info(f"Successfully created role {name}")
        return StepOutput(output=name, arn=role_arn)

    def compensate(self, ledger: ForgedApplication) -> None:
        role_name = ledger.output_of(StepKind.ROLE).output
        self.client.destroy_role(role_name)
        logger.info(f"Destroyed role {role_name}")


class BindRoleStep(StepHandler):
    """Attaches the forged policy to the forged role.

    Depends on the policy and role steps having completed earlier in the same
    request. Records completion only.
    """

    @property
    def kind(self) -> StepKind:
        return StepKind.BIND_ROLE

    def apply(self, ledger: ForgedApplication, step: Step) -> StepOutput:
        policy_arn, role_name = self._bound_pair(ledger)
        logger.info(f"Binding role {role_name} with policy arn {policy_arn}")

        self.client.bind_policy_to_role(policy_arn, role_name)

        logger.info(f"Successfully bound role {role_name} to policy {policy_arn}")
        return StepOutput()

    def compensate(self, ledger: ForgedApplication) -> None:
        policy_arn, role_name = self._bound_pair(ledger)
        self.client.unbind_policy_from_role(policy_arn, role_name)
        logger.info(f"Un-bound policy {policy_arn} from role {role_name}")

    def describe(self, ledger: ForgedApplication) -> Optional[str]:
        policy = ledger.output_of(StepKind.POLICY)
        role = ledger.output_of(StepKind.ROLE)
        return f"{policy.output if policy else '?'} -> {role.output if role else '?'}"

    def _bound_pair(self, ledger: ForgedApplication) -> tuple[str, str]:
        policy = ledger.output_of(StepKind.POLICY)
        if policy is None:
            raise StepDependencyError(StepKind.BIND_ROLE.value, StepKind.POLICY.value)

        role = ledger.output_of(StepKind.ROLE)
        if role is None:
            raise StepDependencyError(StepKind.BIND_ROLE.value, StepKind.ROLE.value)

        return policy.output, role.output


class UnsupportedStep(StepHandler):
    """Fallback for step names without a handler; does nothing."""

    @property
    def kind(self) -> None:
        return None

    def apply(self, ledger: ForgedApplication, step: Step) -> None:
        logger.warning(f"{step.name} not implemented yet, skipping")
        return None

    def compensate(self, ledger: ForgedApplication) -> None:
        return None


HANDLER_CLASSES: dict[StepKind, type[StepHandler]] = {
    StepKind.S3: S3BucketStep,
    StepKind.POLICY: PolicyStep,
    StepKind.ROLE: RoleStep,
    StepKind.BIND_ROLE: BindRoleStep,
}

# Creation order; later kinds may depend on earlier ones
FORGE_ORDER: tuple[StepKind, ...] = (
    StepKind.S3,
    StepKind.POLICY,
    StepKind.ROLE,
    StepKind.BIND_ROLE,
)

COMPENSATION_ORDER: tuple[StepKind, ...] = tuple(reversed(FORGE_ORDER))
