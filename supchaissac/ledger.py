"""School-wide hour quotas per session type."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Iterable, Mapping

from .holidays import in_school_year
from .records import CONSUMED_STATUSES, QUOTA_TYPES, SessionRecord


@dataclass(frozen=True)
class LedgerEntry:
    type: str
    budget_hours: float
    consumed_hours: float
    session_count: int
    percentage: float
    school_year: str | None = None

    @property
    def remaining_hours(self) -> float:
        return max(0.0, self.budget_hours - self.consumed_hours)

    def as_dict(self) -> dict[str, object]:
        data = asdict(self)
        data["remaining_hours"] = self.remaining_hours
        return data


def is_consumed(record: SessionRecord) -> bool:
    return record.status in CONSUMED_STATUSES


def recompute(
    sessions: Iterable[SessionRecord],
    budgets: Mapping[str, float] | None = None,
    school_year: str | None = None,
) -> list[LedgerEntry]:
    """Rebuild the ledger from the full session set.

    Only ``VALIDATED`` and ``PAID`` sessions consume budget. Each counts for
    its ``hours`` weight, which is 1 unless an AUTRE session was converted
    with an explicit number of hours; ``original_type`` plays no part. A
    missing budget is zero.
    """

    budgets = budgets or {}
    consumed: dict[str, float] = defaultdict(float)
    counts: dict[str, int] = defaultdict(int)
    for record in sessions:
        if record.type not in QUOTA_TYPES or not is_consumed(record):
            continue
        if school_year is not None and not in_school_year(record.date, school_year):
            continue
        consumed[record.type] += record.hours
        counts[record.type] += 1

    entries = []
    for session_type in QUOTA_TYPES:
        budget = budgets.get(session_type) or 0
        used = consumed[session_type]
        percentage = min(100.0, used / budget * 100) if budget > 0 else 0.0
        entries.append(
            LedgerEntry(
                type=session_type,
                budget_hours=budget,
                consumed_hours=used,
                session_count=counts[session_type],
                percentage=round(percentage, 1),
                school_year=school_year,
            )
        )
    return entries


def consumed_hours(entries: Iterable[LedgerEntry]) -> dict[str, float]:
    return {entry.type: entry.consumed_hours for entry in entries}
