"""PACTE contracts and statistics."""
from __future__ import annotations

from typing import Any

from flask import current_app, request
from flask_restx import Namespace, Resource, fields

from ..errors import ValidationError
from ..services import (
    contract_view,
    contract_views,
    pacte_statistics,
    set_pacte_status,
    update_contract,
)
from .common import current_actor, json_body, school_year_arg, session_store


ns = Namespace("pacte", description="PACTE contracts of teachers")

contract_view_model = ns.model(
    "PacteContractView",
    {
        "teacher_id": fields.Integer,
        "teacher_name": fields.String,
        "in_pacte": fields.Boolean,
        "hours_df": fields.Integer,
        "hours_rcd": fields.Integer,
        "completed_hours_df": fields.Integer,
        "completed_hours_rcd": fields.Integer,
        "sessions_df": fields.Integer,
        "sessions_rcd": fields.Integer,
        "realized_df": fields.Integer,
        "realized_rcd": fields.Integer,
        "total_contract": fields.Integer,
        "total_realized": fields.Integer,
        "remaining": fields.Integer,
        "progress": fields.Integer(description="Percentage, capped at 100"),
    },
)

contract_update_model = ns.model(
    "PacteContractUpdate",
    {
        "hours_df": fields.Integer(min=0),
        "hours_rcd": fields.Integer(min=0),
        "completed_hours_df": fields.Integer(min=0),
        "completed_hours_rcd": fields.Integer(min=0),
    },
)

status_model = ns.model(
    "PacteStatus",
    {
        "in_pacte": fields.Boolean(required=True),
        "hours_df": fields.Integer(min=0),
        "hours_rcd": fields.Integer(min=0),
    },
)

statistics_model = ns.model(
    "PacteStatistics",
    {
        "total_teachers": fields.Integer,
        "teachers_with_pacte": fields.Integer,
        "teachers_without_pacte": fields.Integer,
        "pacte_percentage": fields.Integer,
        "sessions_with_pacte": fields.Integer,
        "sessions_without_pacte": fields.Integer,
        "pacte_by_type": fields.Raw,
        "non_pacte_by_type": fields.Raw,
    },
)

CONTRACT_FIELDS = ("hours_df", "hours_rcd", "completed_hours_df", "completed_hours_rcd")


def _contract_payload(payload: dict[str, Any]) -> dict[str, Any]:
    unknown = set(payload) - set(CONTRACT_FIELDS)
    if unknown:
        raise ValidationError("Champs inattendus : " + ", ".join(sorted(unknown)))
    return {key: payload.get(key) for key in CONTRACT_FIELDS}


@ns.route("/teachers")
class PacteTeacherList(Resource):
    """Contract progress of every teacher."""

    @ns.param("school_year", "Only count sessions dated in this school year")
    @ns.marshal_list_with(contract_view_model)
    def get(self) -> list[dict[str, object]]:
        school_year = school_year_arg(request.args.get("school_year"))
        views = contract_views(session_store(), current_actor(), school_year)
        return [view.as_dict() for view in views]


@ns.route("/teachers/<int:teacher_id>")
@ns.param("teacher_id", "Teacher unique identifier")
class PacteTeacherResource(Resource):
    """Contract progress of one teacher."""

    @ns.param("school_year", "Only count sessions dated in this school year")
    @ns.marshal_with(contract_view_model)
    def get(self, teacher_id: int) -> dict[str, object]:
        school_year = school_year_arg(request.args.get("school_year"))
        view = contract_view(session_store(), current_actor(), teacher_id, school_year)
        return view.as_dict()


@ns.route("/teachers/<int:teacher_id>/contract")
@ns.param("teacher_id", "Teacher unique identifier")
class PacteContractResource(Resource):
    @ns.expect(contract_update_model)
    @ns.marshal_with(contract_view_model)
    def patch(self, teacher_id: int) -> dict[str, object]:
        """Update contract targets and hours completed outside the application."""
        actor = current_actor()
        update_contract(actor, teacher_id, **_contract_payload(json_body()))
        return contract_view(session_store(), actor, teacher_id).as_dict()


@ns.route("/teachers/<int:teacher_id>/status")
@ns.param("teacher_id", "Teacher unique identifier")
class PacteStatusResource(Resource):
    @ns.expect(status_model)
    @ns.marshal_with(contract_view_model)
    def patch(self, teacher_id: int) -> dict[str, object]:
        """Switch PACTE on or off for a teacher."""
        actor = current_actor()
        payload = json_body()
        in_pacte = payload.get("in_pacte")
        if not isinstance(in_pacte, bool):
            raise ValidationError("in_pacte doit être un booléen.")
        set_pacte_status(
            actor,
            teacher_id,
            in_pacte,
            hours_df=payload.get("hours_df"),
            hours_rcd=payload.get("hours_rcd"),
            default_hours=current_app.config.get("PACTE_DEFAULT_HOURS", 0),
        )
        return contract_view(session_store(), actor, teacher_id).as_dict()


@ns.route("/statistics")
class PacteStatisticsResource(Resource):
    @ns.marshal_with(statistics_model)
    def get(self) -> dict[str, object]:
        """Teachers and sessions split by PACTE membership."""
        return pacte_statistics(session_store(), current_actor()).as_dict()
