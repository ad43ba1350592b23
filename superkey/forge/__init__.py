"""Forge and teardown of application resources.

This module interprets create requests step by step and compensates for the
created resources in reverse order when asked to tear them down.

Classes:
    AmazonProvider: Step interpreter and compensator for AWS
    ResourceNamer: Guid generation and resource naming
    AuditStorage: Audit log storage and retrieval
"""

from __future__ import annotations

from superkey.forge.audit import AuditStorage
from superkey.forge.naming import ResourceNamer
from superkey.forge.provider import AmazonProvider, Provider, get_provider
from superkey.forge.templater import MissingValuePolicy, substitute

__all__ = [
    "AmazonProvider",
    "Provider",
    "get_provider",
    "ResourceNamer",
    "AuditStorage",
    "MissingValuePolicy",
    "substitute",
]
