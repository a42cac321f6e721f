"""
Access report for a condominium over a period.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Final, Iterable, Optional

from core.access.workflow import REQUESTS_COLLECTION
from core.errors import InvalidRequest
from core.models import AccessRequest, AccessStatus
from core.store.base import Condition, DocumentStore, Operator, SortSpec


TOP_LIMIT: Final[int] = 10
DEFAULT_PERIOD_DAYS: Final[int] = 30

# Statuses that count as an approved visit
APPROVED_STATUSES: Final[tuple[AccessStatus, ...]] = (
    AccessStatus.AUTHORIZED,
    AccessStatus.ENTERED,
    AccessStatus.COMPLETED,
)


def time_of_day_bucket(hour: int) -> str:
    """morning 6-12h, afternoon 12-18h, evening 18-22h, night otherwise."""
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    if 18 <= hour < 22:
        return "evening"
    return "night"


@dataclass
class AccessReport:
    """Aggregated access statistics for one condo."""

    condo_id: str
    start: datetime
    end: datetime
    total_requests: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_day: dict[str, int] = field(default_factory=dict)
    by_time_of_day: dict[str, int] = field(default_factory=dict)
    top_drivers: list[tuple[str, int]] = field(default_factory=list)
    top_units: list[tuple[str, int]] = field(default_factory=list)

    @property
    def approval_rate(self) -> float:
        if not self.total_requests:
            return 0.0
        approved = sum(self.by_status.get(s.value, 0) for s in APPROVED_STATUSES)
        return round(approved / self.total_requests * 100, 1)

    @property
    def denial_rate(self) -> float:
        if not self.total_requests:
            return 0.0
        denied = self.by_status.get(AccessStatus.DENIED.value, 0)
        return round(denied / self.total_requests * 100, 1)

    def to_dict(self) -> dict:
        return {
            "condo_id": self.condo_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "total_requests": self.total_requests,
            "by_status": self.by_status,
            "by_day": self.by_day,
            "by_time_of_day": self.by_time_of_day,
            "top_drivers": [{"name": n, "count": c} for n, c in self.top_drivers],
            "top_units": [{"unit": u, "count": c} for u, c in self.top_units],
            "approval_rate": self.approval_rate,
            "denial_rate": self.denial_rate,
        }


def report_period(
    start: Optional[date] = None,
    end: Optional[date] = None,
    today: Optional[date] = None,
) -> tuple[datetime, datetime]:
    """
    UTC bounds for a day range, both days inclusive.

    Defaults to the last 30 days ending ``today``.
    """
    end = end or today or datetime.now(timezone.utc).date()
    start = start or end - timedelta(days=DEFAULT_PERIOD_DAYS - 1)
    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end, time.max, tzinfo=timezone.utc),
    )


def _top(counter: Counter) -> list[tuple[str, int]]:
    # Ties broken by name for deterministic output
    return sorted(counter.items(), key=lambda item: (-item[1], item[0]))[:TOP_LIMIT]


def build_access_report(
    condo_id: str,
    requests: Iterable[AccessRequest],
    start: datetime,
    end: datetime,
) -> AccessReport:
    """Aggregate already-loaded requests into an AccessReport."""
    by_status = {status.value: 0 for status in AccessStatus}
    by_time = {"morning": 0, "afternoon": 0, "evening": 0, "night": 0}
    by_day: Counter = Counter()
    drivers: Counter = Counter()
    units: Counter = Counter()
    total = 0

    for request in requests:
        total += 1
        by_status[request.status.value] += 1
        if request.created_at is not None:
            by_day[request.created_at.date().isoformat()] += 1
            by_time[time_of_day_bucket(request.created_at.hour)] += 1
        if request.driver_name:
            drivers[request.driver_name] += 1
        if request.unit:
            units[f"{request.unit}-{request.block}" if request.block else request.unit] += 1

    return AccessReport(
        condo_id=condo_id,
        start=start,
        end=end,
        total_requests=total,
        by_status=by_status,
        by_day=dict(sorted(by_day.items())),
        by_time_of_day=by_time,
        top_drivers=_top(drivers),
        top_units=_top(units),
    )


async def generate_access_report(
    store: DocumentStore,
    condo_id: str,
    start: datetime,
    end: datetime,
) -> AccessReport:
    """
    Query a condo's requests created in ``[start, end]`` and aggregate them.

    Raises:
        InvalidRequest: If ``end`` is before ``start``
    """
    if end < start:
        raise InvalidRequest("end must not be before start")

    records = await store.query(
        REQUESTS_COLLECTION,
        [
            Condition("condo_id", Operator.EQ, condo_id),
            Condition("created_at", Operator.GTE, start),
            Condition("created_at", Operator.LTE, end),
        ],
        sort=SortSpec("created_at", descending=True),
    )
    return build_access_report(condo_id, (AccessRequest.from_dict(r) for r in records), start, end)
