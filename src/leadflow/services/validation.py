# src/leadflow/services/validation.py

import re
from typing import Any
from uuid import UUID

from leadflow.domain.errors import InvalidLeadIdError

# canonical 8-4-4-4-12 hex form only; braces, urn: prefixes and bare hex are rejected
_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def parse_lead_id(value: Any) -> UUID:
    """
    Validate a caller-supplied lead identifier.

    Accepts a UUID instance or its canonical string form. Anything else
    raises InvalidLeadIdError before any storage is touched.
    """
    if isinstance(value, UUID):
        return value
    if value is None:
        raise InvalidLeadIdError("lead_id is required")
    if not isinstance(value, str):
        raise InvalidLeadIdError("lead_id must be a string")

    s = value.strip()
    if not _UUID_RE.match(s):
        raise InvalidLeadIdError("Invalid lead_id format. Must be a valid UUID")
    return UUID(s)
