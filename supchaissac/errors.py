"""Error taxonomy shared by the workflow engine, the store and the API.

Every error is a local, recoverable condition. Each one carries a message that
can be shown to the user as-is and the HTTP status the API layer answers with.
"""
from __future__ import annotations


class WorkflowError(Exception):
    """Base class for the session workflow errors."""

    status_code = 400
    default_message = "Une erreur est survenue."

    def __init__(self, message: str | None = None, **details: object) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "error": type(self).__name__,
            "message": self.message,
        }
        if self.details:
            payload["details"] = {key: str(value) for key, value in self.details.items()}
        return payload


class ValidationError(WorkflowError):
    """Malformed input to a creation or an operation."""

    default_message = "Données invalides."


class IllegalTransitionError(WorkflowError):
    """The action is not available from the current status."""

    status_code = 409
    default_message = "Action impossible dans le statut actuel."


class ConversionRequiredError(WorkflowError):
    """An AUTRE session was validated without a conversion target."""

    status_code = 422
    default_message = "Une session AUTRE doit être convertie pour être validée."


class ForbiddenError(WorkflowError):
    status_code = 403
    default_message = "Permissions insuffisantes."


class NotFoundError(WorkflowError):
    status_code = 404
    default_message = "Session non trouvée."


class ConflictError(WorkflowError):
    """The record changed between the read and the write."""

    status_code = 409
    default_message = "La session a été modifiée entre-temps."
