"""School-wide hour quotas."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from ..errors import ValidationError
from ..records import QUOTA_TYPES
from ..services import quota_ledger, require_principal, set_budgets
from .common import current_actor, json_body, school_year_arg, session_store


ns = Namespace("quotas", description="Budgets and consumption per session type")

ledger_entry_model = ns.model(
    "QuotaEntry",
    {
        "type": fields.String(enum=list(QUOTA_TYPES)),
        "budget_hours": fields.Float,
        "consumed_hours": fields.Float,
        "remaining_hours": fields.Float,
        "session_count": fields.Integer,
        "percentage": fields.Float,
        "school_year": fields.String,
    },
)

budget_model = ns.model(
    "QuotaBudget",
    {
        "type": fields.String(required=True, enum=list(QUOTA_TYPES)),
        "budget_hours": fields.Integer(required=True, min=0),
    },
)

budget_update_model = ns.model(
    "QuotaBudgetUpdate",
    {
        "school_year": fields.String(description="Ex. 2024-2025"),
        "quotas": fields.List(fields.Nested(budget_model), required=True),
    },
)


def _budgets(payload: dict[str, Any]) -> dict[str, Any]:
    quotas = payload.get("quotas")
    if isinstance(quotas, dict):
        return quotas
    if not isinstance(quotas, list):
        raise ValidationError("quotas doit être une liste de budgets.")
    budgets: dict[str, Any] = {}
    for item in quotas:
        if not isinstance(item, dict) or "type" not in item:
            raise ValidationError("Chaque budget doit préciser son type.")
        budgets[item["type"]] = item.get("budget_hours")
    return budgets


@ns.route("")
class QuotaResource(Resource):
    """Read the ledger or set the budgets of a school year."""

    @ns.param("school_year", "School year, defaults to the current one")
    @ns.marshal_list_with(ledger_entry_model)
    def get(self) -> list[dict[str, object]]:
        require_principal(current_actor())
        school_year = school_year_arg(request.args.get("school_year"))
        return [entry.as_dict() for entry in quota_ledger(session_store(), school_year)]

    @ns.expect(budget_update_model)
    @ns.marshal_list_with(ledger_entry_model)
    def put(self) -> list[dict[str, object]]:
        actor = current_actor()
        payload = json_body()
        school_year = school_year_arg(payload.get("school_year"))
        set_budgets(actor, _budgets(payload), school_year)
        return [entry.as_dict() for entry in quota_ledger(session_store(), school_year)]
