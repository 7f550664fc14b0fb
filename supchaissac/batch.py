"""Apply one action to many sessions, each one on its own.

A secretariat clearing its queue must not be blocked by one bad record, so a
batch is not atomic: every item is read, checked and written independently,
and the caller gets one outcome per id. Only a malformed request (no ids,
unknown action) raises.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .errors import ForbiddenError, ValidationError, WorkflowError
from .records import SessionRecord
from .store import SessionStore
from .transitions import (
    PRINCIPAL,
    Actor,
    ConversionRequest,
    StatusTransitionEngine,
)


logger = logging.getLogger(__name__)


BATCH_ACTIONS = ("transmit", "validate", "reject", "mark-paid", "delete")
# Les sessions AUTRE exigent un choix de conversion individuel
INDIVIDUAL_ONLY = {"validate": {"AUTRE"}, "reject": {"AUTRE"}}

APPLIED = "applied"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class BatchOutcome:
    session_id: int
    outcome: str
    record: SessionRecord | None = None
    reason: str | None = None
    error: WorkflowError | None = None

    def as_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"session_id": self.session_id, "outcome": self.outcome}
        if self.outcome == APPLIED and self.record is not None:
            data["status"] = self.record.status
        if self.reason:
            data["reason"] = self.reason
        if self.error is not None:
            data["error"] = type(self.error).__name__
            data["message"] = self.error.message
        return data


@dataclass(frozen=True)
class BatchResult:
    action: str
    outcomes: dict[int, BatchOutcome]

    def ids(self, outcome: str) -> list[int]:
        return [key for key, value in self.outcomes.items() if value.outcome == outcome]

    @property
    def applied(self) -> list[int]:
        return self.ids(APPLIED)

    @property
    def skipped(self) -> list[int]:
        return self.ids(SKIPPED)

    @property
    def failed(self) -> list[int]:
        return self.ids(FAILED)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    def as_dict(self) -> dict[str, object]:
        return {
            "action": self.action,
            "applied": len(self.applied),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
            "outcomes": [outcome.as_dict() for outcome in self.outcomes.values()],
        }


class BatchTransitionCoordinator:
    def __init__(self, engine: StatusTransitionEngine, store: SessionStore) -> None:
        self.engine = engine
        self.store = store

    def apply_one(
        self,
        session_id: int,
        action: str,
        actor: Actor,
        *,
        comment: str | None = None,
        conversion: ConversionRequest | None = None,
    ) -> SessionRecord:
        """Read, transition and write back one session."""

        self.engine.authorize(action, actor)
        current = self.store.get(session_id)
        updated = self.engine.apply(
            current, action, actor, comment=comment, conversion=conversion
        )
        return self.store.replace(updated, expected_status=current.status)

    def delete_one(self, session_id: int, actor: Actor) -> None:
        if not actor.has_role(PRINCIPAL):
            raise ForbiddenError("La suppression définitive est réservée à la direction.")
        self.store.get(session_id)
        self.store.delete(session_id)
        logger.info("Session %s deleted by %s", session_id, actor.label)

    def run(
        self,
        session_ids: Iterable[int],
        action: str,
        actor: Actor,
        *,
        comment: str | None = None,
    ) -> BatchResult:
        ids = list(dict.fromkeys(session_ids))
        if not ids:
            raise ValidationError("Aucune session sélectionnée.")
        if action not in BATCH_ACTIONS:
            raise ValidationError(f"Action groupée inconnue : {action!r}.", action=action)
        if comment is not None and not isinstance(comment, str):
            raise ValidationError("Le commentaire doit être un texte.")

        outcomes: dict[int, BatchOutcome] = {}
        excluded_types = INDIVIDUAL_ONLY.get(action, set())
        for session_id in ids:
            outcomes[session_id] = self._run_item(
                session_id, action, actor, comment, excluded_types
            )

        result = BatchResult(action=action, outcomes=outcomes)
        logger.info(
            "Batch %s by %s: %s applied, %s skipped, %s failed",
            action,
            actor.label,
            len(result.applied),
            len(result.skipped),
            len(result.failed),
        )
        return result

    def _run_item(
        self,
        session_id: int,
        action: str,
        actor: Actor,
        comment: str | None,
        excluded_types: set[str],
    ) -> BatchOutcome:
        try:
            if action != "delete":
                self.engine.authorize(action, actor)
            if excluded_types:
                current = self.store.get(session_id)
                if current.type in excluded_types:
                    return BatchOutcome(
                        session_id,
                        SKIPPED,
                        reason=f"Une session {current.type} se traite individuellement.",
                    )
            if action == "delete":
                self.delete_one(session_id, actor)
                return BatchOutcome(session_id, APPLIED)
            updated = self.apply_one(session_id, action, actor, comment=comment)
        except WorkflowError as exc:
            logger.warning("Batch %s failed for session %s: %s", action, session_id, exc.message)
            return BatchOutcome(session_id, FAILED, error=exc)
        return BatchOutcome(session_id, APPLIED, record=updated)
