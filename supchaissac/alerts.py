"""Secretariat alerts for sessions that stay too long in a queue."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from .records import SessionRecord


AWAITING_REVIEW = frozenset({"PENDING_REVIEW", "PENDING_DOCUMENTS"})


def pending_too_long(
    sessions: Iterable[SessionRecord], now: datetime, days: int = 7
) -> list[SessionRecord]:
    threshold = now - timedelta(days=days)
    return [
        record
        for record in sessions
        if record.status in AWAITING_REVIEW and record.created_at < threshold
    ]


def validated_not_paid(
    sessions: Iterable[SessionRecord], now: datetime, days: int = 14
) -> list[SessionRecord]:
    threshold = now - timedelta(days=days)
    return [
        record
        for record in sessions
        if record.status == "VALIDATED" and record.created_at < threshold
    ]


@dataclass(frozen=True)
class AlertReport:
    pending_too_long: list[SessionRecord]
    validated_not_paid: list[SessionRecord]

    @property
    def total(self) -> int:
        return len(self.pending_too_long) + len(self.validated_not_paid)


def build_report(
    sessions: Iterable[SessionRecord],
    now: datetime,
    *,
    pending_days: int = 7,
    unpaid_days: int = 14,
) -> AlertReport:
    sessions = list(sessions)
    return AlertReport(
        pending_too_long=pending_too_long(sessions, now, pending_days),
        validated_not_paid=validated_not_paid(sessions, now, unpaid_days),
    )
