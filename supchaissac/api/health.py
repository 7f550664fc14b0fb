"""Liveness probe used by the reverse proxy."""
from __future__ import annotations

from flask import current_app
from flask_restx import Namespace, Resource
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db


ns = Namespace("health", description="Service and database status")


@ns.route("")
class HealthResource(Resource):
    def get(self) -> dict[str, str]:
        """Report whether the session database answers."""
        try:
            db.session.execute(text("SELECT 1"))
            database = "ok"
        except SQLAlchemyError as exc:  # pragma: no cover - depends on the database server
            db.session.rollback()
            current_app.logger.warning("Database health check failed: %s", exc)
            database = "error"
        return {
            "status": "ok",
            "database": database,
            "version": current_app.config.get("API_VERSION", "0.1.0"),
        }
