"""Tests for ForgeOperation summaries."""

from __future__ import annotations

from superkey.errors import ResourceClientError, StepFailedError, TeardownError
from superkey.models.forge_operation import ForgeOperation, OperationMode, OperationStatus
from superkey.models.forged_application import StepKind
from tests.fixtures.ledgers import create_ledger


def _client_error() -> ResourceClientError:
    return ResourceClientError("create_role", "AccessDenied", "denied")


class TestForgeOperationFromForge:
    def test_success_is_completed(self) -> None:
        operation = ForgeOperation.from_forge(create_ledger(), None)

        assert operation.mode == OperationMode.FORGE
        assert operation.status == OperationStatus.COMPLETED
        assert operation.steps == ["s3", "policy", "role", "bind_role"]
        assert operation.errors == []
        assert operation.guid == "abc"
        assert operation.source_id == "42"
        assert operation.operation_id.startswith("op_")

    def test_failure_after_progress_is_partial(self) -> None:
        error = StepFailedError("role", _client_error())

        operation = ForgeOperation.from_forge(create_ledger([StepKind.S3]), error)

        assert operation.status == OperationStatus.PARTIAL
        assert operation.steps == ["s3"]
        assert "role" in operation.errors[0]

    def test_failure_on_first_step_is_failed(self) -> None:
        operation = ForgeOperation.from_forge(create_ledger([]), StepFailedError("s3", _client_error()))

        assert operation.status == OperationStatus.FAILED


class TestForgeOperationFromTeardown:
    def test_clean_teardown_is_completed(self) -> None:
        ledger = create_ledger([])

        operation = ForgeOperation.from_teardown(ledger, [StepKind.S3, StepKind.POLICY], [])

        assert operation.mode == OperationMode.TEARDOWN
        assert operation.status == OperationStatus.COMPLETED
        assert operation.steps == ["s3", "policy"]

    def test_some_failures_is_partial(self) -> None:
        ledger = create_ledger([StepKind.POLICY])
        errors = [TeardownError("policy", "arn", _client_error())]

        operation = ForgeOperation.from_teardown(ledger, [StepKind.S3, StepKind.POLICY], errors)

        assert operation.status == OperationStatus.PARTIAL
        assert operation.steps == ["s3"]
        assert len(operation.errors) == 1

    def test_all_failures_is_failed(self) -> None:
        ledger = create_ledger([StepKind.S3])
        errors = [TeardownError("s3", "bucket", _client_error())]

        operation = ForgeOperation.from_teardown(ledger, [StepKind.S3], errors)

        assert operation.status == OperationStatus.FAILED
        assert operation.steps == []
