"""Role-scoped operations on sessions, quotas and PACTE contracts.

The three dashboards (teacher, secretariat, principal) all go through these
functions; none of them carries its own copy of the workflow rules.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Mapping

from . import alerts, ledger, pacte
from .batch import BatchResult, BatchTransitionCoordinator
from .errors import ForbiddenError, NotFoundError, ValidationError
from .extensions import db
from .holidays import blocked_reason, school_year_for
from .models import HourQuota, User
from .records import (
    QUOTA_TYPES,
    SessionRecord,
    parse_session_date,
    utcnow,
    validate_payload,
    validate_time_slot,
)
from .store import SessionStore
from .transitions import (
    PRINCIPAL,
    SECRETARIAT,
    Actor,
    ConversionRequest,
    StatusTransitionEngine,
)


logger = logging.getLogger(__name__)


@dataclass
class WorkflowSettings:
    edit_window_minutes: int = 60
    block_holidays: bool = True
    sla_pending_days: int = 7
    sla_unpaid_days: int = 14

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "WorkflowSettings":
        return cls(
            edit_window_minutes=config.get("EDIT_WINDOW_MINUTES", 60),
            block_holidays=config.get("BLOCK_HOLIDAYS", True),
            sla_pending_days=config.get("SLA_PENDING_DAYS", 7),
            sla_unpaid_days=config.get("SLA_UNPAID_DAYS", 14),
        )


@dataclass
class SessionService:
    store: SessionStore
    actor: Actor
    settings: WorkflowSettings = field(default_factory=WorkflowSettings)
    clock: Callable[[], datetime] = utcnow

    def __post_init__(self) -> None:
        self.engine = StatusTransitionEngine(clock=self.clock)
        self.coordinator = BatchTransitionCoordinator(self.engine, self.store)

    # Enseignant ---------------------------------------------------------

    def create_session(self, payload: Mapping[str, Any]) -> SessionRecord:
        self._require_teacher()
        values = dict(payload)
        session_date = parse_session_date(values.pop("date", None))
        self._check_open_day(session_date)
        record = SessionRecord.declare(
            teacher_id=self.actor.user_id,
            teacher_name=self.actor.name or "",
            date=session_date,
            time_slot=values.pop("time_slot", None),
            type=values.pop("type", None),
            created_at=self.clock(),
            **values,
        )
        stored = self.store.add(record)
        logger.info(
            "Session %s declared: %s %s %s by teacher %s",
            stored.id,
            stored.type,
            stored.date,
            stored.time_slot,
            stored.teacher_id,
        )
        return stored

    def update_session(self, session_id: int, payload: Mapping[str, Any]) -> SessionRecord:
        """Let a teacher fix a declaration still waiting for review."""

        self._require_teacher()
        current = self.get_session(session_id)
        if current.status != "PENDING_REVIEW":
            raise ForbiddenError(
                "Seules les sessions en attente de vérification peuvent être modifiées.",
                status=current.status,
            )
        elapsed = self.clock() - current.created_at
        if elapsed > timedelta(minutes=self.settings.edit_window_minutes):
            raise ForbiddenError(
                f"Délai de modification dépassé ({self.settings.edit_window_minutes} minutes)."
            )

        values = dict(payload)
        session_date = parse_session_date(values.pop("date", current.date))
        self._check_open_day(session_date)
        time_slot = validate_time_slot(values.pop("time_slot", current.time_slot))
        session_type = values.pop("type", current.type)
        cleaned = validate_payload(session_type, values)
        updated = current.with_changes(
            date=session_date,
            time_slot=time_slot,
            type=session_type,
            student_count=cleaned.pop("student_count", None),
            students_list=cleaned.pop("students_list", ()),
            updated_at=self.clock(),
            updated_by=self.actor.label,
            **cleaned,
        )
        return self.store.replace(updated, expected_status=current.status)

    # Lecture -------------------------------------------------------------

    def get_session(self, session_id: int) -> SessionRecord:
        record = self.store.get(session_id)
        if self.actor.role == "TEACHER" and record.teacher_id != self.actor.user_id:
            # Un enseignant ne voit pas les sessions des autres
            raise NotFoundError(session_id=session_id)
        return record

    def list_sessions(self, teacher_id: int | None = None) -> list[SessionRecord]:
        if self.actor.role == "TEACHER":
            teacher_id = self.actor.user_id
        return self.store.all(teacher_id=teacher_id)

    def available_actions(self, record: SessionRecord) -> list[str]:
        return self.engine.available_actions(record, self.actor)

    # Secrétariat / direction ----------------------------------------------

    def transition(
        self,
        session_id: int,
        action: str,
        *,
        comment: str | None = None,
        conversion: ConversionRequest | None = None,
    ) -> SessionRecord:
        return self.coordinator.apply_one(
            session_id, action, self.actor, comment=comment, conversion=conversion
        )

    def batch(
        self, session_ids: Iterable[int], action: str, *, comment: str | None = None
    ) -> BatchResult:
        return self.coordinator.run(session_ids, action, self.actor, comment=comment)

    def delete_session(self, session_id: int) -> None:
        if self.actor.has_role(PRINCIPAL):
            self.coordinator.delete_one(session_id, self.actor)
            return
        if self.actor.role != "TEACHER":
            raise ForbiddenError("Suppression réservée à la direction.")
        record = self.get_session(session_id)
        if record.status != "PENDING_REVIEW":
            raise ForbiddenError(
                "Seules les sessions en attente de vérification peuvent être supprimées.",
                status=record.status,
            )
        self.store.delete(session_id)
        logger.info("Session %s withdrawn by teacher %s", session_id, self.actor.user_id)

    def alert_report(self) -> alerts.AlertReport:
        self._require_staff()
        return alerts.build_report(
            self.store.all(),
            self.clock(),
            pending_days=self.settings.sla_pending_days,
            unpaid_days=self.settings.sla_unpaid_days,
        )

    # Helpers -------------------------------------------------------------

    def _require_teacher(self) -> None:
        if self.actor.role != "TEACHER" or self.actor.user_id is None:
            raise ForbiddenError("Action réservée aux enseignants.")

    def _require_staff(self) -> None:
        if not (self.actor.has_role(SECRETARIAT) or self.actor.has_role(PRINCIPAL)):
            raise ForbiddenError()

    def _check_open_day(self, session_date: date) -> None:
        if not self.settings.block_holidays:
            return
        reason = blocked_reason(session_date)
        if reason:
            raise ValidationError(
                f"Impossible de déclarer une session le {session_date.isoformat()} : {reason}.",
                date=session_date.isoformat(),
            )


# Quotas ----------------------------------------------------------------------


def require_principal(actor: Actor) -> None:
    if not actor.has_role(PRINCIPAL):
        raise ForbiddenError("Les budgets sont réservés à la direction.")


def quota_ledger(store: SessionStore, school_year: str | None = None) -> list[ledger.LedgerEntry]:
    school_year = school_year or school_year_for(utcnow().date())
    return ledger.recompute(store.all(), HourQuota.budgets_for(school_year), school_year)


def set_budgets(
    actor: Actor, budgets: Mapping[str, Any], school_year: str | None = None
) -> dict[str, int]:
    require_principal(actor)
    school_year = school_year or school_year_for(utcnow().date())
    cleaned: dict[str, int] = {}
    for session_type, hours in budgets.items():
        if session_type not in QUOTA_TYPES:
            raise ValidationError(f"Type de quota inconnu : {session_type!r}.")
        if hours is None:
            raise ValidationError(f"Budget manquant pour {session_type}.")
        cleaned[session_type] = pacte.whole_hours(hours, 0, f"Le budget {session_type}")

    for session_type, hours in cleaned.items():
        quota = HourQuota.query.filter_by(type=session_type, school_year=school_year).first()
        if quota is None:
            quota = HourQuota(type=session_type, school_year=school_year)
            db.session.add(quota)
        quota.budget_hours = hours
        quota.updated_by = actor.label
        logger.info("Budget %s %s set to %sh by %s", session_type, school_year, hours, actor.label)
    db.session.commit()
    return HourQuota.budgets_for(school_year)


# PACTE -----------------------------------------------------------------------


def _require_secretariat(actor: Actor) -> None:
    if not (actor.has_role(SECRETARIAT) or actor.has_role(PRINCIPAL)):
        raise ForbiddenError("Les contrats PACTE sont gérés par le secrétariat.")


def _teacher(teacher_id: int) -> User:
    teacher = db.session.get(User, teacher_id)
    if teacher is None or teacher.role != "TEACHER":
        raise NotFoundError("Enseignant non trouvé.", teacher_id=teacher_id)
    return teacher


def contract_view(
    store: SessionStore, actor: Actor, teacher_id: int, school_year: str | None = None
) -> pacte.ContractView:
    if actor.role == "TEACHER" and actor.user_id != teacher_id:
        raise ForbiddenError("Accès autorisé uniquement à vos propres données.")
    if actor.role != "TEACHER":
        _require_secretariat(actor)
    teacher = _teacher(teacher_id)
    return pacte.recompute(
        teacher.to_contract(), store.all(teacher_id=teacher_id), school_year
    )


def contract_views(
    store: SessionStore, actor: Actor, school_year: str | None = None
) -> list[pacte.ContractView]:
    _require_secretariat(actor)
    teachers = User.query.filter_by(role="TEACHER").order_by(User.name).all()
    sessions = store.all()
    return [pacte.recompute(teacher.to_contract(), sessions, school_year) for teacher in teachers]


def update_contract(actor: Actor, teacher_id: int, **values: Any) -> pacte.PacteContract:
    _require_secretariat(actor)
    teacher = _teacher(teacher_id)
    contract = teacher.to_contract().updated(**values)
    teacher.apply_contract(contract)
    db.session.commit()
    logger.info(
        "PACTE contract of teacher %s updated by %s: DF=%sh RCD=%sh",
        teacher_id,
        actor.label,
        contract.hours_df,
        contract.hours_rcd,
    )
    return contract


def set_pacte_status(
    actor: Actor,
    teacher_id: int,
    in_pacte: bool,
    *,
    hours_df: int | None = None,
    hours_rcd: int | None = None,
    default_hours: int = 0,
) -> pacte.PacteContract:
    """Switch PACTE on or off for a teacher.

    ``default_hours`` only seeds a contract that has never had targets: it is
    split between Devoirs Faits and RCD when no explicit target is given.
    """

    _require_secretariat(actor)
    teacher = _teacher(teacher_id)
    current = teacher.to_contract()
    fresh = current.hours_df == 0 and current.hours_rcd == 0
    if in_pacte and fresh and hours_df is None and hours_rcd is None and default_hours > 0:
        hours_df = default_hours // 2
        hours_rcd = default_hours - hours_df
    contract = current.toggled(in_pacte, hours_df=hours_df, hours_rcd=hours_rcd)
    teacher.apply_contract(contract)
    db.session.commit()
    logger.info("PACTE status of teacher %s set to %s by %s", teacher_id, in_pacte, actor.label)
    return contract


def pacte_statistics(store: SessionStore, actor: Actor) -> pacte.PacteStatistics:
    _require_secretariat(actor)
    teachers = User.query.filter_by(role="TEACHER").all()
    return pacte.pacte_statistics([teacher.to_contract() for teacher in teachers], store.all())
