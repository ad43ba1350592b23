"""Placeholder substitution in step payloads.

Substitution is purely textual: every literal occurrence of a placeholder is
replaced, nothing is escaped and replaced values are not substituted again.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Mapping, Optional

from superkey.errors import UnresolvedSubstitutionError
from superkey.models.create_request import Substitution, SubstitutionSource
from superkey.models.forged_application import ForgedApplication

logger = logging.getLogger(__name__)


class MissingValuePolicy(Enum):
    """What to do with a placeholder whose value cannot be resolved."""

    EMPTY = "empty"
    KEEP = "keep"
    STRICT = "strict"


def resolve(substitution: Substitution, ledger: ForgedApplication) -> Optional[str]:
    """Look up the value of a substitution, None when it is unavailable."""
    if substitution.source == SubstitutionSource.ACCOUNT:
        return ledger.request.extra.get("account")

    outputs = ledger.output_of(substitution.step_name or "")
    if outputs is None or not outputs.output:
        return None
    return outputs.output


def substitute(
    payload: str,
    ledger: ForgedApplication,
    substitutions: Mapping[str, Substitution],
    policy: MissingValuePolicy = MissingValuePolicy.EMPTY,
) -> str:
    """Replace placeholders in a payload with request data or prior outputs.

    Args:
        payload: Step payload template
        ledger: Ledger of the current forge attempt
        substitutions: Placeholder token -> substitution rule
        policy: Handling of unresolvable placeholders

    Returns:
        Payload with every placeholder occurrence replaced

    Raises:
        UnresolvedSubstitutionError: If a value is missing and policy is STRICT
    """
    values: dict[str, str] = {}
    for placeholder, substitution in substitutions.items():
        value = resolve(substitution, ledger)

        if value is None:
            reason = _missing_reason(substitution, ledger)
            if policy == MissingValuePolicy.STRICT:
                raise UnresolvedSubstitutionError(placeholder, reason)
            if policy == MissingValuePolicy.KEEP:
                logger.warning(f"Leaving placeholder {placeholder} untouched: {reason}")
                continue
            logger.warning(f"Substituting empty value for {placeholder}: {reason}")
            value = ""

        values[placeholder] = value

    # Single pass, longest token first, so replaced text is never rescanned
    tokens = sorted((p for p in values if p), key=len, reverse=True)
    if not tokens:
        return payload
    pattern = re.compile("|".join(re.escape(token) for token in tokens))
    return pattern.sub(lambda match: values[match.group(0)], payload)


def _missing_reason(substitution: Substitution, ledger: ForgedApplication) -> str:
    if substitution.source == SubstitutionSource.ACCOUNT:
        return "request has no 'account' in extra"
    if ledger.is_completed(substitution.step_name or ""):
        return f"step '{substitution.step_name}' recorded no output"
    return f"step '{substitution.step_name}' has not completed"
