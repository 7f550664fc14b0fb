"""Session status state machine.

A session is declared by a teacher in ``PENDING_REVIEW``. The secretariat
either transmits it to the principal or asks the teacher for documents; the
principal validates or rejects it; the secretariat finally marks validated
sessions as sent for payment. Every decision can be undone by the principal:
``cancel`` sends a validated or rejected session back to ``PENDING_VALIDATION``
and ``unpay`` sends a paid session back to ``VALIDATED``.

Validation may convert the session type. The conversion is a tagged value
(:class:`NoConversion`, :class:`ToType`, :class:`ToHSE`) rather than loose
request flags. The engine never mutates the record it receives: it returns a
new :class:`~supchaissac.records.SessionRecord` or raises, so a refused action
leaves the stored record untouched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Union

from .errors import (
    ConversionRequiredError,
    ForbiddenError,
    IllegalTransitionError,
    ValidationError,
)
from .records import (
    CONVERSION_TARGETS,
    HSE_CONVERTIBLE_TYPES,
    SessionRecord,
    utcnow,
)


logger = logging.getLogger(__name__)


ROLES = ("TEACHER", "SECRETARY", "PRINCIPAL", "ADMIN")
SECRETARIAT = "SECRETARY"
PRINCIPAL = "PRINCIPAL"

# Rôle exigé par une action -> rôles acceptés
ROLE_GRANTS = {
    SECRETARIAT: frozenset({"SECRETARY", "ADMIN"}),
    PRINCIPAL: frozenset({"PRINCIPAL", "ADMIN"}),
}

HOURS_STEP = 0.5
MIN_CONVERSION_HOURS = 0.5
DEFAULT_CONVERSION_HOURS = 1.0


@dataclass(frozen=True)
class Actor:
    role: str
    user_id: int | None = None
    name: str | None = None

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        if self.user_id is not None:
            return f"{self.role}#{self.user_id}"
        return self.role

    def has_role(self, required: str) -> bool:
        return self.role in ROLE_GRANTS.get(required, frozenset({required}))


@dataclass(frozen=True)
class NoConversion:
    """Validate the session under its declared type."""


@dataclass(frozen=True)
class ToType:
    """Classify an ``AUTRE`` session as ``target`` worth ``hours`` hours."""

    target: str
    hours: float = DEFAULT_CONVERSION_HOURS


@dataclass(frozen=True)
class ToHSE:
    """Pay an RCD or Devoirs Faits session as an HSE hour instead."""


ConversionRequest = Union[NoConversion, ToType, ToHSE]


@dataclass(frozen=True)
class Transition:
    action: str
    sources: frozenset[str]
    target: str
    actor: str


TRANSITIONS: dict[str, Transition] = {
    transition.action: transition
    for transition in (
        Transition(
            "transmit",
            frozenset({"PENDING_REVIEW", "PENDING_DOCUMENTS"}),
            "PENDING_VALIDATION",
            SECRETARIAT,
        ),
        Transition(
            "request-info",
            frozenset({"PENDING_REVIEW"}),
            "PENDING_DOCUMENTS",
            SECRETARIAT,
        ),
        Transition("validate", frozenset({"PENDING_VALIDATION"}), "VALIDATED", PRINCIPAL),
        Transition("reject", frozenset({"PENDING_VALIDATION"}), "REJECTED", PRINCIPAL),
        Transition("mark-paid", frozenset({"VALIDATED"}), "PAID", SECRETARIAT),
        Transition("unpay", frozenset({"PAID"}), "VALIDATED", PRINCIPAL),
        Transition(
            "cancel",
            frozenset({"VALIDATED", "REJECTED"}),
            "PENDING_VALIDATION",
            PRINCIPAL,
        ),
    )
}
ACTIONS = tuple(TRANSITIONS)


def lookup(action: str) -> Transition:
    try:
        return TRANSITIONS[action]
    except KeyError:
        raise ValidationError(f"Action inconnue : {action!r}.", action=action) from None


def check_hours(hours: float) -> float:
    try:
        hours = float(hours)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Nombre d'heures invalide : {hours!r}.") from exc
    if hours < MIN_CONVERSION_HOURS or not (hours / HOURS_STEP).is_integer():
        raise ValidationError(
            "Le nombre d'heures doit être un multiple de 0,5 et au moins 0,5.",
            hours=hours,
        )
    return hours


class StatusTransitionEngine:
    """Validate and apply one action on one session record."""

    def __init__(self, clock: Callable[[], object] = utcnow) -> None:
        self._clock = clock

    def authorize(self, action: str, actor: Actor) -> Transition:
        transition = lookup(action)
        if not actor.has_role(transition.actor):
            raise ForbiddenError(
                f"L'action {action} est réservée au rôle {transition.actor}.",
                action=action,
                role=actor.role,
            )
        return transition

    def can_apply(self, record: SessionRecord, action: str) -> bool:
        transition = TRANSITIONS.get(action)
        return transition is not None and record.status in transition.sources

    def available_actions(self, record: SessionRecord, actor: Actor | None = None) -> list[str]:
        return [
            transition.action
            for transition in TRANSITIONS.values()
            if record.status in transition.sources
            and (actor is None or actor.has_role(transition.actor))
        ]

    def apply(
        self,
        record: SessionRecord,
        action: str,
        actor: Actor,
        *,
        comment: str | None = None,
        conversion: ConversionRequest | None = None,
    ) -> SessionRecord:
        transition = self.authorize(action, actor)
        if record.status not in transition.sources:
            logger.warning(
                "Refused %s on session %s: status %s (actor %s)",
                action,
                record.id,
                record.status,
                actor.label,
            )
            raise IllegalTransitionError(
                f"Impossible d'appliquer {action} à une session {record.status}.",
                session_id=record.id,
                action=action,
                status=record.status,
            )

        conversion = conversion or NoConversion()
        if action != "validate" and not isinstance(conversion, NoConversion):
            raise ValidationError("Une conversion n'est possible qu'à la validation.")

        if comment is not None and not isinstance(comment, str):
            raise ValidationError("Le commentaire doit être un texte.")
        comment = comment.strip() if comment else None
        changes: dict[str, object] = {
            "status": transition.target,
            "updated_at": self._clock(),
            "updated_by": actor.label,
        }

        if action == "request-info":
            if not comment:
                raise ValidationError("Précisez les informations demandées à l'enseignant.")
            changes["review_comments"] = comment
        elif action == "validate":
            changes.update(self._conversion_changes(record, conversion))
            if comment:
                changes["validation_comments"] = comment
        elif action == "reject":
            if comment:
                changes["rejection_reason"] = comment
        elif action == "cancel":
            changes["validation_comments"] = None
            changes["rejection_reason"] = None

        updated = record.with_changes(**changes)
        logger.info(
            "Session %s: %s %s -> %s by %s",
            record.id,
            action,
            record.status,
            updated.status,
            actor.label,
        )
        if updated.type != record.type:
            logger.info(
                "Session %s converted %s -> %s (%sh)",
                record.id,
                record.type,
                updated.type,
                updated.hours,
            )
        return updated

    def _conversion_changes(
        self, record: SessionRecord, conversion: ConversionRequest
    ) -> dict[str, object]:
        if record.type == "AUTRE":
            if isinstance(conversion, ToHSE):
                raise ValidationError(
                    "Une session AUTRE se convertit en choisissant un type et un nombre d'heures."
                )
            if not isinstance(conversion, ToType):
                raise ConversionRequiredError(session_id=record.id)
            if conversion.target not in CONVERSION_TARGETS:
                raise ValidationError(
                    f"Type de conversion invalide : {conversion.target!r}.",
                    target=conversion.target,
                )
            return {
                "type": conversion.target,
                "original_type": record.original_type or record.type,
                "hours": check_hours(conversion.hours),
            }

        if isinstance(conversion, ToType):
            raise ValidationError("Seules les sessions AUTRE peuvent changer de type ainsi.")
        if isinstance(conversion, ToHSE):
            if record.type not in HSE_CONVERTIBLE_TYPES:
                raise ValidationError(
                    f"Une session {record.type} ne peut pas être convertie en HSE."
                )
            return {"type": "HSE", "original_type": record.original_type or record.type}
        return {}


def conversion_from_payload(payload: dict[str, object]) -> ConversionRequest:
    """Read the conversion variant from an API body.

    Accepts ``{"conversion": {"kind": "to_type", "target": ..., "hours": ...}}``
    or ``{"conversion": {"kind": "to_hse"}}``; anything else means no
    conversion.
    """

    raw = payload.get("conversion")
    if not raw:
        return NoConversion()
    if not isinstance(raw, dict):
        raise ValidationError("Le champ conversion doit être un objet.")
    kind = raw.get("kind")
    if kind == "to_type":
        target = raw.get("target")
        if not target:
            raise ValidationError("La conversion doit préciser un type cible.")
        return ToType(str(target), raw.get("hours", DEFAULT_CONVERSION_HOURS))  # type: ignore[arg-type]
    if kind == "to_hse":
        return ToHSE()
    if kind in (None, "none"):
        return NoConversion()
    raise ValidationError(f"Type de conversion inconnu : {kind!r}.")
