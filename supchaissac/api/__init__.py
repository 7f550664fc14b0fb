"""REST API definition using Flask-RESTX."""
from __future__ import annotations

from typing import Any, Mapping

from flask import Blueprint, current_app
from flask_restx import Api

from ..errors import WorkflowError
from .health import ns as health_ns
from .pacte import ns as pacte_ns
from .quotas import ns as quotas_ns
from .sessions import ns as sessions_ns


def register_namespaces(api: Api) -> None:
    """Register all API namespaces."""
    api.add_namespace(health_ns, path="/health")
    api.add_namespace(sessions_ns, path="/sessions")
    api.add_namespace(quotas_ns, path="/quotas")
    api.add_namespace(pacte_ns, path="/pacte")


def build_api(blueprint: Blueprint, config: Mapping[str, Any]) -> Api:
    api = Api(
        blueprint,
        version=config.get("API_VERSION", "0.1.0"),
        title=config.get("API_TITLE", "SupChaissac API"),
        description="Déclaration, validation et mise en paiement des heures RCD, Devoirs Faits et HSE",
        doc="/docs",
    )
    register_namespaces(api)

    @api.errorhandler(WorkflowError)
    def handle_workflow_error(error: WorkflowError) -> tuple[dict[str, object], int]:
        current_app.logger.info("%s: %s", type(error).__name__, error.message)
        return error.as_payload(), error.status_code

    return api
