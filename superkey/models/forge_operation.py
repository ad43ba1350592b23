"""Forge operation model.

Summary of one forge or teardown run, as written to the audit log.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from superkey.errors import StepFailedError, TeardownError
from superkey.models.forged_application import ForgedApplication, StepKind


class OperationMode(Enum):
    """Kind of operation."""

    FORGE = "forge"
    TEARDOWN = "teardown"


class OperationStatus(Enum):
    """Operation outcome."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class ForgeOperation:
    """Forge or teardown operation entity.

    Status rules:
        forge: completed (no error), partial (error after some steps
        completed), failed (error before any step completed)
        teardown: completed (no error), partial (some compensations failed),
        failed (every compensation failed)

    Attributes:
        operation_id: Unique identifier for the operation
        mode: forge or teardown
        status: Operation outcome
        guid: Ledger guid the operation worked on
        application_type: Application type of the originating request
        timestamp: When the operation finished (UTC)
        steps: Step kinds completed (forge) or compensated (teardown)
        errors: Error messages, in the order they occurred
        source_id: Source of the originating request (optional)
    """

    operation_id: str
    mode: OperationMode
    status: OperationStatus
    guid: str
    application_type: str
    timestamp: datetime
    steps: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    source_id: Optional[str] = None

    @classmethod
    def from_forge(cls, ledger: ForgedApplication, error: Optional[StepFailedError]) -> ForgeOperation:
        steps = [kind.value for kind in ledger.steps_completed]

        if error is None:
            status = OperationStatus.COMPLETED
        elif steps:
            status = OperationStatus.PARTIAL
        else:
            status = OperationStatus.FAILED

        return cls._build(OperationMode.FORGE, status, ledger, steps, [str(error)] if error else [])

    @classmethod
    def from_teardown(
        cls,
        ledger: ForgedApplication,
        attempted: list[StepKind],
        errors: list[TeardownError],
    ) -> ForgeOperation:
        """Summarize a teardown.

        Args:
            ledger: Ledger after teardown
            attempted: Step kinds that were completed before teardown started
            errors: Errors returned by the teardown
        """
        compensated = [kind.value for kind in attempted if not ledger.is_completed(kind)]

        if not errors:
            status = OperationStatus.COMPLETED
        elif compensated:
            status = OperationStatus.PARTIAL
        else:
            status = OperationStatus.FAILED

        return cls._build(OperationMode.TEARDOWN, status, ledger, compensated, [str(e) for e in errors])

    @classmethod
    def _build(
        cls,
        mode: OperationMode,
        status: OperationStatus,
        ledger: ForgedApplication,
        steps: list[str],
        errors: list[str],
    ) -> ForgeOperation:
        return cls(
            operation_id=f"op_{uuid.uuid4()}",
            mode=mode,
            status=status,
            guid=ledger.guid,
            application_type=ledger.request.application_type,
            timestamp=datetime.utcnow(),
            steps=steps,
            errors=errors,
            source_id=ledger.request.source_id,
        )
