"""AWS resource client.

Issues the create/bind/destroy calls a forge or teardown needs against S3 and
IAM. Every call is attempted exactly once; retry policy belongs to whoever
re-issues the whole forge or teardown.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from superkey.errors import ResourceClientError

logger = logging.getLogger(__name__)

# Error codes meaning the resource to destroy is already gone
ALREADY_DELETED_CODES = ("NoSuchEntity", "NoSuchBucket", "NoSuchEntityException")


class RemoteResourceClient(Protocol):
    """Capability set consumed by providers."""

    def create_s3_bucket(self, name: str) -> None: ...

    def create_policy(self, name: str, document: str) -> str: ...

    def create_role(self, name: str, document: str) -> str: ...

    def bind_policy_to_role(self, policy_arn: str, role_name: str) -> None: ...

    def unbind_policy_from_role(self, policy_arn: str, role_name: str) -> None: ...

    def destroy_policy(self, policy_arn: str) -> None: ...

    def destroy_role(self, role_name: str) -> None: ...

    def destroy_s3_bucket(self, name: str) -> None: ...


def create_boto_client(
    service_name: str,
    region_name: Optional[str] = None,
    profile_name: Optional[str] = None,
) -> Any:
    """Create a boto3 client, using a named profile when one is given."""
    session = boto3.Session(profile_name=profile_name) if profile_name else boto3.Session()
    return session.client(service_name, region_name=region_name)


class AmazonClient:
    """boto3 implementation of RemoteResourceClient.

    Attributes:
        region: AWS region for S3 buckets (IAM is global)
        aws_profile: AWS profile name (optional)
    """

    def __init__(self, region: str = "us-east-1", aws_profile: Optional[str] = None) -> None:
        self.region = region
        self.aws_profile = aws_profile
        self._clients: dict[str, Any] = {}

    def _client(self, service: str) -> Any:
        if service not in self._clients:
            self._clients[service] = create_boto_client(
                service_name=service,
                region_name=self.region,
                profile_name=self.aws_profile,
            )
        return self._clients[service]

    def create_s3_bucket(self, name: str) -> None:
        params: dict[str, Any] = {"Bucket": name}
        # us-east-1 rejects an explicit location constraint
        if self.region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}

        self._call("create_bucket", self._client("s3").create_bucket, **params)

    def create_policy(self, name: str, document: str) -> str:
        response = self._call(
            "create_policy",
            self._client("iam").create_policy,
            PolicyName=name,
            PolicyDocument=document,
        )
        return response["Policy"]["Arn"]

    def create_role(self, name: str, document: str) -> str:
        response = self._call(
            "create_role",
            self._client("iam").create_role,
            RoleName=name,
            AssumeRolePolicyDocument=document,
        )
        return response["Role"]["Arn"]

    def bind_policy_to_role(self, policy_arn: str, role_name: str) -> None:
        self._call(
            "attach_role_policy",
            self._client("iam").attach_role_policy,
            RoleName=role_name,
            PolicyArn=policy_arn,
        )

    def unbind_policy_from_role(self, policy_arn: str, role_name: str) -> None:
        self._destroy(
            "detach_role_policy",
            self._client("iam").detach_role_policy,
            RoleName=role_name,
            PolicyArn=policy_arn,
        )

    def destroy_policy(self, policy_arn: str) -> None:
        self._destroy("delete_policy", self._client("iam").delete_policy, PolicyArn=policy_arn)

    def destroy_role(self, role_name: str) -> None:
        self._destroy("delete_role", self._client("iam").delete_role, RoleName=role_name)

    def destroy_s3_bucket(self, name: str) -> None:
        self._destroy("delete_bucket", self._client("s3").delete_bucket, Bucket=name)

    def _destroy(self, operation: str, method: Callable[..., Any], **params: Any) -> None:
        try:
            self._call(operation, method, **params)
        except ResourceClientError as e:
            if e.code in ALREADY_DELETED_CODES:
                logger.info(f"{operation}: resource already deleted ({params})")
                return
            raise

    def _call(self, operation: str, method: Callable[..., Any], **params: Any) -> Any:
        """Invoke a boto3 method, translating botocore errors.

        Raises:
            ResourceClientError: If the call fails for any AWS or transport reason
        """
        try:
            return method(**params)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            error_message = e.response.get("Error", {}).get("Message", str(e))
            logger.debug(f"{operation} failed: {error_code} - {error_message}")
            raise ResourceClientError(operation, error_code, error_message) from e
        except BotoCoreError as e:
            raise ResourceClientError(operation, type(e).__name__, str(e)) from e
