"""Providers: forge and teardown of an application's cloud resources.

A provider interprets the steps of a create request in order, recording each
completed step in a ForgedApplication ledger, and can later walk that ledger
in reverse to destroy what was created.
"""

from __future__ import annotations

import logging
import posixpath
from abc import ABC, abstractmethod
from typing import Optional

from superkey.aws.client import RemoteResourceClient
from superkey.errors import StepFailedError, TeardownError, UnsupportedProviderError
from superkey.forge.naming import ResourceNamer
from superkey.forge.steps import COMPENSATION_ORDER, HANDLER_CLASSES, StepHandler, UnsupportedStep
from superkey.forge.templater import MissingValuePolicy
from superkey.models.create_request import CreateRequest
from superkey.models.forged_application import ForgedApplication, StepKind

logger = logging.getLogger(__name__)


class Provider(ABC):
    """Capability set every cloud vendor implements."""

    @abstractmethod
    def forge_application(self, request: CreateRequest) -> tuple[ForgedApplication, Optional[StepFailedError]]:
        """Create the resources a request describes.

        Returns:
            Tuple of (ledger, error). On failure the ledger holds every step
            completed before the failing one; tearing it down is the
            caller's responsibility.
        """
        pass

    @abstractmethod
    def tear_down(self, ledger: ForgedApplication) -> list[TeardownError]:
        """Destroy every resource recorded in a ledger, best effort.

        Returns:
            One error per failed compensating action (empty on success)
        """
        pass


class AmazonProvider(Provider):
    """Provider for AWS: S3 bucket, IAM policy, IAM role and their binding.

    Attributes:
        client: Remote resource client issuing the AWS calls
        namer: Resource namer (guid generation and naming)
        handlers: Step kind -> handler
    """

    def __init__(
        self,
        client: RemoteResourceClient,
        namer: Optional[ResourceNamer] = None,
        missing_value_policy: MissingValuePolicy = MissingValuePolicy.EMPTY,
    ) -> None:
        self.client = client
        self.namer = namer or ResourceNamer()
        self.handlers: dict[StepKind, StepHandler] = {
            kind: handler_class(client, self.namer, missing_value_policy)
            for kind, handler_class in HANDLER_CLASSES.items()
        }
        self._unsupported = UnsupportedStep(client, self.namer, missing_value_policy)

    def handler_for(self, step_name: str) -> StepHandler:
        kind = StepKind.lookup(step_name)
        if kind is None:
            return self._unsupported
        return self.handlers[kind]

    def forge_application(self, request: CreateRequest) -> tuple[ForgedApplication, Optional[StepFailedError]]:
        ledger = ForgedApplication(request=request, guid=self.namer.new_guid())
        logger.info(f"Forging {request.application_type} with guid {ledger.guid}")

        for step in request.steps:
            handler = self.handler_for(step.name)

            try:
                outputs = handler.apply(ledger, step)
            except Exception as e:
                logger.error(
                    f"Step {step.name} failed for {request.application_type} "
                    f"(guid {ledger.guid}), aborting remaining steps: {e}"
                )
                return ledger, StepFailedError(step.name, e)

            if outputs is not None and handler.kind is not None:
                ledger.mark_completed(handler.kind, outputs)

        # The role ARN is the identity the credential layer assumes
        role = ledger.output_of(StepKind.ROLE)
        username = role.arn if role else None
        ledger.create_payload(username, None, posixpath.basename(request.application_type))

        logger.info(f"Forged {request.application_type} with guid {ledger.guid}")
        return ledger, None

    def tear_down(self, ledger: ForgedApplication) -> list[TeardownError]:
        errors: list[TeardownError] = []

        for kind in COMPENSATION_ORDER:
            if not ledger.is_completed(kind):
                continue

            handler = self.handlers[kind]
            resource = handler.describe(ledger)

            try:
                handler.compensate(ledger)
            except Exception as e:
                logger.warning(f"Failed to tear down {kind.value} {resource}: {e}")
                errors.append(TeardownError(kind.value, resource, e))
                continue

            ledger.mark_compensated(kind)

        if errors:
            logger.warning(f"Teardown of guid {ledger.guid} left {len(errors)} resource(s) behind")
        else:
            logger.info(f"Tore down guid {ledger.guid}")

        return errors


PROVIDERS: dict[str, type[AmazonProvider]] = {
    "amazon": AmazonProvider,
}


def get_provider(
    name: str,
    client: RemoteResourceClient,
    namer: Optional[ResourceNamer] = None,
    missing_value_policy: MissingValuePolicy = MissingValuePolicy.EMPTY,
) -> Provider:
    """Return the provider for a vendor name.

    Raises:
        UnsupportedProviderError: If no provider exists for the vendor
    """
    provider_class = PROVIDERS.get(name.lower())
    if provider_class is None:
        raise UnsupportedProviderError(f"No provider for vendor '{name}'")
    return provider_class(client, namer=namer, missing_value_policy=missing_value_policy)
