"""PACTE contract accounting.

A teacher under PACTE commits to a number of Devoirs Faits and RCD hours for
the year. Hours done before the application was in use are typed in by the
secretariat (``completed_hours_*``); the rest is counted from the declared
sessions, one session counting as one hour.

Unlike the quota ledger, the teacher-facing progress counts every declared
session whatever its status. Both rules are kept on purpose, see
:func:`supchaissac.ledger.recompute`.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass, replace
from typing import Iterable

from .errors import ValidationError
from .holidays import in_school_year
from .records import SessionRecord


PACTE_TYPES = ("DEVOIRS_FAITS", "RCD")


@dataclass(frozen=True)
class PacteContract:
    teacher_id: int
    teacher_name: str = ""
    in_pacte: bool = False
    hours_df: int = 0
    hours_rcd: int = 0
    completed_hours_df: int = 0
    completed_hours_rcd: int = 0

    def toggled(
        self,
        in_pacte: bool,
        *,
        hours_df: int | None = None,
        hours_rcd: int | None = None,
    ) -> "PacteContract":
        """Switch PACTE on or off.

        Targets and completed hours survive a deactivation so that turning
        PACTE back on restores them. Explicit targets only apply on activation.
        """

        if not in_pacte:
            return replace(self, in_pacte=False)
        return replace(
            self,
            in_pacte=True,
            hours_df=whole_hours(hours_df, self.hours_df, "hours_df"),
            hours_rcd=whole_hours(hours_rcd, self.hours_rcd, "hours_rcd"),
        )

    def updated(self, **values: int | bool | None) -> "PacteContract":
        changes: dict[str, object] = {}
        for key, value in values.items():
            if value is None:
                continue
            if key == "in_pacte":
                changes[key] = bool(value)
            elif key in {"hours_df", "hours_rcd", "completed_hours_df", "completed_hours_rcd"}:
                changes[key] = whole_hours(value, 0, key)
            else:
                raise ValidationError(f"Champ de contrat inconnu : {key!r}.")
        return replace(self, **changes)


@dataclass(frozen=True)
class ContractView:
    teacher_id: int
    teacher_name: str
    in_pacte: bool
    hours_df: int
    hours_rcd: int
    completed_hours_df: int
    completed_hours_rcd: int
    sessions_df: int
    sessions_rcd: int
    realized_df: int
    realized_rcd: int
    total_contract: int
    total_realized: int
    remaining: int
    progress: int

    def as_dict(self) -> dict[str, object]:
        return asdict(self)


def realized_session_counts(
    teacher_id: int,
    sessions: Iterable[SessionRecord],
    school_year: str | None = None,
) -> Counter:
    counts: Counter = Counter()
    for record in sessions:
        if record.teacher_id != teacher_id or record.type not in PACTE_TYPES:
            continue
        if school_year is not None and not in_school_year(record.date, school_year):
            continue
        counts[record.type] += 1
    return counts


def recompute(
    contract: PacteContract,
    sessions: Iterable[SessionRecord],
    school_year: str | None = None,
) -> ContractView:
    counts = realized_session_counts(contract.teacher_id, sessions, school_year)
    sessions_df = counts["DEVOIRS_FAITS"]
    sessions_rcd = counts["RCD"]
    realized_df = contract.completed_hours_df + sessions_df
    realized_rcd = contract.completed_hours_rcd + sessions_rcd
    total_contract = contract.hours_df + contract.hours_rcd
    total_realized = realized_df + realized_rcd
    if total_contract > 0:
        progress = min(100, round(total_realized / total_contract * 100))
    else:
        progress = 0
    return ContractView(
        teacher_id=contract.teacher_id,
        teacher_name=contract.teacher_name,
        in_pacte=contract.in_pacte,
        hours_df=contract.hours_df,
        hours_rcd=contract.hours_rcd,
        completed_hours_df=contract.completed_hours_df,
        completed_hours_rcd=contract.completed_hours_rcd,
        sessions_df=sessions_df,
        sessions_rcd=sessions_rcd,
        realized_df=realized_df,
        realized_rcd=realized_rcd,
        total_contract=total_contract,
        total_realized=total_realized,
        remaining=max(0, total_contract - total_realized),
        progress=progress,
    )


@dataclass(frozen=True)
class PacteStatistics:
    total_teachers: int
    teachers_with_pacte: int
    teachers_without_pacte: int
    pacte_percentage: int
    sessions_with_pacte: int
    sessions_without_pacte: int
    pacte_by_type: dict[str, int]
    non_pacte_by_type: dict[str, int]

    def as_dict(self) -> dict[str, object]:
        return asdict(self)


def pacte_statistics(
    contracts: Iterable[PacteContract], sessions: Iterable[SessionRecord]
) -> PacteStatistics:
    """Split teachers and their sessions by PACTE membership.

    Teachers whose PACTE is switched off count as "without PACTE" even if
    they still carry contract hours.
    """

    contracts = list(contracts)
    pacte_ids = {contract.teacher_id for contract in contracts if contract.in_pacte}
    with_pacte: Counter = Counter()
    without_pacte: Counter = Counter()
    for record in sessions:
        bucket = with_pacte if record.teacher_id in pacte_ids else without_pacte
        bucket[record.type] += 1

    total = len(contracts)
    return PacteStatistics(
        total_teachers=total,
        teachers_with_pacte=len(pacte_ids),
        teachers_without_pacte=total - len(pacte_ids),
        pacte_percentage=round(len(pacte_ids) / total * 100) if total else 0,
        sessions_with_pacte=sum(with_pacte.values()),
        sessions_without_pacte=sum(without_pacte.values()),
        pacte_by_type={key: with_pacte[key] for key in ("RCD", "DEVOIRS_FAITS", "HSE")},
        non_pacte_by_type={key: without_pacte[key] for key in ("RCD", "DEVOIRS_FAITS", "HSE")},
    )


def whole_hours(value: object, default: int, name: str) -> int:
    if value is None:
        return default
    try:
        hours = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} doit être un nombre d'heures entier.") from exc
    if isinstance(value, bool) or not hours.is_integer():
        raise ValidationError(f"{name} doit être un nombre d'heures entier.", value=value)
    hours = int(hours)
    if hours < 0:
        raise ValidationError(f"{name} ne peut pas être négatif.")
    return hours
