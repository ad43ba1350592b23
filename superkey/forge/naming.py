"""Resource name generation."""

from __future__ import annotations

import posixpath
import secrets
from typing import Callable

DEFAULT_PREFIX = "redhat"
GUID_BYTES = 8

RandomSource = Callable[[int], bytes]


def short_name(application_type: str, prefix: str = DEFAULT_PREFIX) -> str:
    """Derive a vendor-prefixed label from an application type.

    Only the last path segment of the application type is kept, so
    ``/insights/platform/cost-management`` becomes ``redhat-cost-management``.
    """
    base = posixpath.basename(application_type.rstrip("/")) or application_type.strip("/")
    return f"{prefix}-{base}"


def generate_id(random_source: RandomSource = secrets.token_bytes) -> str:
    """Return a 16 character hex identifier (64 random bits)."""
    return random_source(GUID_BYTES).hex()


class ResourceNamer:
    """Builds unique resource names for one provider.

    Attributes:
        prefix: Vendor prefix used by short names
        random_source: Callable returning n random bytes, cryptographically strong
            outside of tests
    """

    def __init__(self, prefix: str = DEFAULT_PREFIX, random_source: RandomSource = secrets.token_bytes) -> None:
        self.prefix = prefix
        self.random_source = random_source

    def new_guid(self) -> str:
        return generate_id(self.random_source)

    def resource_name(self, application_type: str, label: str, guid: str) -> str:
        """Name of the form ``<short name>-<label>-<guid>``."""
        return f"{short_name(application_type, self.prefix)}-{label}-{guid}"
