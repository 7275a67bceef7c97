# src/leadflow/domain/errors.py
from __future__ import annotations


class LeadflowError(Exception):
    """Base class for errors raised by the automation core."""


class InvalidLeadIdError(LeadflowError, ValueError):
    """Malformed lead identifier; rejected before any read."""


class LeadNotFoundError(LeadflowError, LookupError):
    def __init__(self, lead_id) -> None:
        super().__init__(f"Lead not found: {lead_id}")
        self.lead_id = lead_id


class MatchNotFoundError(LeadflowError, LookupError):
    def __init__(self, match_id) -> None:
        super().__init__(f"Match not found: {match_id}")
        self.match_id = match_id


class LeadNotEligibleError(LeadflowError):
    """The lead is not in the state an automated transition requires."""

    def __init__(self, lead_id, status: str, expected: str) -> None:
        super().__init__(f"Lead {lead_id} has status '{status}', expected '{expected}'")
        self.lead_id = lead_id
        self.status = status
        self.expected = expected
