"""Tests for AmazonProvider forge and teardown.

A recording client stands in for AWS so the order and arguments of every
remote call can be asserted.
"""

from __future__ import annotations

import pytest

from superkey.errors import (
    ResourceClientError,
    StepDependencyError,
    StepFailedError,
    UnresolvedSubstitutionError,
    UnsupportedProviderError,
)
from superkey.forge.provider import AmazonProvider, get_provider
from superkey.forge.templater import MissingValuePolicy
from superkey.models.create_request import CreateRequest
from superkey.models.forged_application import StepKind
from tests.fixtures.ledgers import (
    ACCOUNT,
    GUID,
    RecordingClient,
    create_ledger,
    create_namer,
    create_request,
)

BUCKET = f"redhat-cost-management-bucket-{GUID}"
POLICY = f"redhat-cost-management-policy-{GUID}"
ROLE = f"redhat-cost-management-role-{GUID}"
POLICY_ARN = f"arn:aws:iam::{ACCOUNT}:policy/{POLICY}"
ROLE_ARN = f"arn:aws:iam::{ACCOUNT}:role/{ROLE}"


def _provider(client: RecordingClient, **kwargs) -> AmazonProvider:
    return AmazonProvider(client, namer=create_namer(), **kwargs)


class TestForgeApplication:
    """Test suite for forge_application."""

    def test_all_steps_succeed(self) -> None:
        client = RecordingClient()

        ledger, error = _provider(client).forge_application(create_request())

        assert error is None
        assert ledger.guid == GUID
        assert set(ledger.steps_completed) == {StepKind.S3, StepKind.POLICY, StepKind.ROLE, StepKind.BIND_ROLE}
        assert client.operations == ["create_s3_bucket", "create_policy", "create_role", "bind_policy_to_role"]

    def test_records_outputs_per_step(self) -> None:
        ledger, _ = _provider(RecordingClient()).forge_application(create_request())

        assert ledger.output_of(StepKind.S3).output == BUCKET
        assert ledger.output_of(StepKind.POLICY).output == POLICY_ARN
        assert ledger.output_of(StepKind.ROLE).output == ROLE
        assert ledger.output_of(StepKind.ROLE).arn == ROLE_ARN
        assert ledger.output_of(StepKind.BIND_ROLE).output == ""

    def test_username_is_role_arn(self) -> None:
        ledger, _ = _provider(RecordingClient()).forge_application(create_request())

        assert ledger.result_username == ledger.output_of(StepKind.ROLE).arn
        assert ledger.result_password is None
        assert ledger.result_extra == "cost-management"

    def test_payloads_are_substituted(self) -> None:
        client = RecordingClient()

        _provider(client).forge_application(create_request())

        _, (policy_name, policy_doc) = client.calls[1]
        _, (role_name, role_doc) = client.calls[2]
        assert policy_name == POLICY
        assert f"arn:aws:s3:::{BUCKET}/*" in policy_doc
        assert "S3BUCKET" not in policy_doc
        assert role_name == ROLE
        assert f"arn:aws:iam::{ACCOUNT}:root" in role_doc

    def test_bind_uses_recorded_policy_and_role(self) -> None:
        client = RecordingClient()

        _provider(client).forge_application(create_request())

        assert client.calls[3] == ("bind_policy_to_role", (POLICY_ARN, ROLE))

    def test_only_recognized_steps_are_recorded(self) -> None:
        client = RecordingClient()
        request = create_request(["s3", "sqs", "policy"])

        ledger, error = _provider(client).forge_application(request)

        assert error is None
        assert set(ledger.steps_completed) == {StepKind.S3, StepKind.POLICY}
        assert client.operations == ["create_s3_bucket", "create_policy"]

    def test_unrecognized_step_is_not_an_error(self) -> None:
        client = RecordingClient()

        ledger, error = _provider(client).forge_application(create_request(["lambda"]))

        assert error is None
        assert ledger.steps_completed == {}
        assert client.calls == []

    @pytest.mark.parametrize(
        "failing_operation, failing_step, completed",
        [
            ("create_s3_bucket", "s3", set()),
            ("create_policy", "policy", {StepKind.S3}),
            ("create_role", "role", {StepKind.S3, StepKind.POLICY}),
            ("bind_policy_to_role", "bind_role", {StepKind.S3, StepKind.POLICY, StepKind.ROLE}),
        ],
    )
    def test_failure_stops_at_failing_step(self, failing_operation, failing_step, completed) -> None:
        client = RecordingClient(fail_on=[failing_operation])

        ledger, error = _provider(client).forge_application(create_request())

        assert isinstance(error, StepFailedError)
        assert error.step_name == failing_step
        assert isinstance(error.cause, ResourceClientError)
        assert set(ledger.steps_completed) == completed
        assert client.operations[-1] == failing_operation

    def test_failure_leaves_identity_unset(self) -> None:
        ledger, error = _provider(RecordingClient(fail_on=["create_role"])).forge_application(create_request())

        assert error is not None
        assert ledger.result_username is None

    def test_failure_does_not_tear_down(self) -> None:
        client = RecordingClient(fail_on=["create_role"])

        _provider(client).forge_application(create_request())

        assert not any(op.startswith(("destroy", "unbind")) for op in client.operations)

    def test_bind_without_role_fails(self) -> None:
        client = RecordingClient()

        ledger, error = _provider(client).forge_application(create_request(["policy", "bind_role"]))

        assert isinstance(error.cause, StepDependencyError)
        assert set(ledger.steps_completed) == {StepKind.POLICY}
        assert "bind_policy_to_role" not in client.operations

    def test_strict_policy_fails_step_before_remote_call(self) -> None:
        client = RecordingClient()
        provider = _provider(client, missing_value_policy=MissingValuePolicy.STRICT)

        # policy references the s3 step, which is not part of this request
        ledger, error = provider.forge_application(create_request(["policy"]))

        assert isinstance(error.cause, UnresolvedSubstitutionError)
        assert ledger.steps_completed == {}
        assert client.calls == []

    def test_each_forge_gets_a_fresh_ledger(self) -> None:
        provider = AmazonProvider(RecordingClient())
        request = create_request(["s3"])

        first, _ = provider.forge_application(request)
        second, _ = provider.forge_application(request)

        assert first is not second
        assert first.guid != second.guid
        assert first.request is request

    def test_empty_request(self) -> None:
        request = CreateRequest(application_type="/app/foo")

        ledger, error = _provider(RecordingClient()).forge_application(request)

        assert error is None
        assert ledger.steps_completed == {}
        assert ledger.result_username is None


class TestTearDown:
    """Test suite for tear_down."""

    def test_empty_ledger_makes_no_calls(self) -> None:
        client = RecordingClient()

        errors = _provider(client).tear_down(create_ledger([]))

        assert errors == []
        assert client.calls == []

    def test_reverse_dependency_order(self) -> None:
        client = RecordingClient()

        errors = _provider(client).tear_down(create_ledger())

        assert errors == []
        assert client.operations[0] == "unbind_policy_from_role"
        assert set(client.operations[1:3]) == {"destroy_policy", "destroy_role"}
        assert client.operations[3] == "destroy_s3_bucket"

    def test_uses_recorded_identifiers(self) -> None:
        client = RecordingClient()
        ledger = create_ledger()
        policy_arn = ledger.output_of(StepKind.POLICY).output
        role_name = ledger.output_of(StepKind.ROLE).output
        bucket = ledger.output_of(StepKind.S3).output

        _provider(client).tear_down(ledger)

        assert ("unbind_policy_from_role", (policy_arn, role_name)) in client.calls
        assert ("destroy_policy", (policy_arn,)) in client.calls
        assert ("destroy_role", (role_name,)) in client.calls
        assert ("destroy_s3_bucket", (bucket,)) in client.calls

    def test_only_completed_steps_are_compensated(self) -> None:
        client = RecordingClient()

        _provider(client).tear_down(create_ledger([StepKind.S3, StepKind.POLICY]))

        assert client.operations == ["destroy_policy", "destroy_s3_bucket"]

    def test_successful_teardown_empties_ledger(self) -> None:
        ledger = create_ledger()

        _provider(RecordingClient()).tear_down(ledger)

        assert ledger.steps_completed == {}

    def test_failures_are_collected_not_short_circuited(self) -> None:
        client = RecordingClient(fail_on=["destroy_policy", "destroy_s3_bucket"])
        ledger = create_ledger([StepKind.S3, StepKind.POLICY, StepKind.ROLE])

        errors = _provider(client).tear_down(ledger)

        assert len(errors) == 2
        assert {error.step_name for error in errors} == {"policy", "s3"}
        assert client.operations == ["destroy_role", "destroy_policy", "destroy_s3_bucket"]

    def test_failed_steps_stay_in_ledger(self) -> None:
        client = RecordingClient(fail_on=["destroy_policy", "destroy_s3_bucket"])
        ledger = create_ledger([StepKind.S3, StepKind.POLICY, StepKind.ROLE])

        _provider(client).tear_down(ledger)

        assert set(ledger.steps_completed) == {StepKind.S3, StepKind.POLICY}

    def test_every_failure_still_returns(self) -> None:
        client = RecordingClient(
            fail_on=["unbind_policy_from_role", "destroy_policy", "destroy_role", "destroy_s3_bucket"]
        )

        errors = _provider(client).tear_down(create_ledger())

        assert len(errors) == 4
        assert len(client.calls) == 4

    def test_retrying_teardown_only_touches_leftovers(self) -> None:
        ledger = create_ledger([StepKind.S3, StepKind.ROLE])
        _provider(RecordingClient(fail_on=["destroy_s3_bucket"])).tear_down(ledger)

        client = RecordingClient()
        errors = _provider(client).tear_down(ledger)

        assert errors == []
        assert client.operations == ["destroy_s3_bucket"]

    def test_teardown_error_names_resource(self) -> None:
        client = RecordingClient(fail_on=["destroy_s3_bucket"])
        ledger = create_ledger([StepKind.S3])
        bucket = ledger.output_of(StepKind.S3).output

        errors = _provider(client).tear_down(ledger)

        assert errors[0].resource == bucket
        assert bucket in str(errors[0])


class TestForgeThenTearDown:
    def test_partial_forge_can_be_torn_down(self) -> None:
        client = RecordingClient(fail_on=["create_role"])
        provider = _provider(client)

        ledger, error = provider.forge_application(create_request())
        errors = provider.tear_down(ledger)

        assert error is not None
        assert errors == []
        assert client.operations == [
            "create_s3_bucket",
            "create_policy",
            "create_role",
            "destroy_policy",
            "destroy_s3_bucket",
        ]


class TestGetProvider:
    def test_amazon(self) -> None:
        assert isinstance(get_provider("amazon", RecordingClient()), AmazonProvider)

    def test_vendor_name_is_case_insensitive(self) -> None:
        assert isinstance(get_provider("Amazon", RecordingClient()), AmazonProvider)

    def test_unknown_vendor(self) -> None:
        with pytest.raises(UnsupportedProviderError, match="azure"):
            get_provider("azure", RecordingClient())
