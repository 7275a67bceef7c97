# src/leadflow/domain/escalation.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal

BucketName = Literal["terminal", "slow", "medium", "fast"]


@dataclass(frozen=True)
class EscalationBucket:
    name: BucketName
    min_days: int
    # None means the bucket terminates the lead instead of rescheduling
    interval_days: int | None

    @property
    def is_terminal(self) -> bool:
        return self.interval_days is None


# Ordered high threshold first; the first bucket whose min_days is reached wins.
DEFAULT_BUCKETS: tuple[EscalationBucket, ...] = (
    EscalationBucket("terminal", 45, None),
    EscalationBucket("slow", 31, 7),
    EscalationBucket("medium", 15, 5),
    EscalationBucket("fast", 0, 3),
)


def _naive_utc(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        return ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def reference_time(last_contacted_at: datetime | None, created_at: datetime) -> datetime:
    return last_contacted_at if last_contacted_at is not None else created_at


def elapsed_days(reference: datetime, now: datetime) -> int:
    """
    Whole days between reference and now, floored.

    A reference in the future (clock skew, bad import) counts as day 0.
    """
    delta = _naive_utc(now) - _naive_utc(reference)
    return max(0, delta // timedelta(days=1))


def bucket_for(days: int, buckets: tuple[EscalationBucket, ...] = DEFAULT_BUCKETS) -> EscalationBucket:
    for b in buckets:
        if days >= b.min_days:
            return b
    # table always ends at 0 and days is never negative
    raise ValueError(f"no escalation bucket covers {days} days")
