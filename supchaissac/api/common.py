"""Request helpers shared by the namespaces."""
from __future__ import annotations

from flask import current_app, request

from ..errors import ForbiddenError, ValidationError
from ..extensions import db
from ..holidays import school_year_bounds
from ..models import User
from ..services import SessionService, WorkflowSettings
from ..store import SqlSessionStore
from ..transitions import ROLES, Actor


def current_actor() -> Actor:
    """Read the caller identity set by the authentication proxy."""

    role = (request.headers.get("X-User-Role") or "").strip().upper()
    if role not in ROLES:
        raise ForbiddenError("Authentification requise.")
    raw_id = request.headers.get("X-User-Id")
    user_id = None
    if raw_id:
        try:
            user_id = int(raw_id)
        except ValueError as exc:
            raise ValidationError("En-tête X-User-Id invalide.") from exc
    name = request.headers.get("X-User-Name")
    if not name and user_id is not None:
        user = db.session.get(User, user_id)
        name = user.display_name if user else None
    return Actor(role=role, user_id=user_id, name=name)


def session_store() -> SqlSessionStore:
    return SqlSessionStore()


def session_service() -> SessionService:
    return SessionService(
        session_store(),
        current_actor(),
        WorkflowSettings.from_config(current_app.config),
    )


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Le corps de la requête doit être un objet JSON.")
    return payload


def school_year_arg(raw: str | None) -> str | None:
    if not raw:
        return None
    try:
        school_year_bounds(raw)
    except ValueError as exc:
        raise ValidationError(f"Année scolaire invalide : {raw!r}.") from exc
    return raw
