"""Session endpoints shared by the teacher, secretariat and principal surfaces."""
from __future__ import annotations

from typing import Any

from flask import request
from flask_restx import Namespace, Resource, fields

from ..errors import ValidationError
from ..records import SESSION_STATUSES, SESSION_TYPES, TIME_SLOTS, SessionRecord
from ..transitions import ACTIONS, conversion_from_payload
from .common import json_body, session_service


ns = Namespace("sessions", description="Declaration and review of sessions")

student_model = ns.model(
    "Student",
    {
        "last_name": fields.String(required=True),
        "first_name": fields.String(required=True),
        "class_name": fields.String,
    },
)

session_model = ns.model(
    "Session",
    {
        "id": fields.Integer(readonly=True),
        "teacher_id": fields.Integer(readonly=True),
        "teacher_name": fields.String(readonly=True),
        "date": fields.String(required=True, description="YYYY-MM-DD"),
        "time_slot": fields.String(required=True, enum=list(TIME_SLOTS)),
        "type": fields.String(required=True, enum=list(SESSION_TYPES)),
        "original_type": fields.String(readonly=True),
        "status": fields.String(readonly=True, enum=list(SESSION_STATUSES)),
        "hours": fields.Float(readonly=True),
        "class_name": fields.String,
        "replaced_teacher_prefix": fields.String(enum=["M.", "Mme"]),
        "replaced_teacher_last_name": fields.String,
        "replaced_teacher_first_name": fields.String,
        "replaced_teacher": fields.String(readonly=True),
        "subject": fields.String,
        "grade_level": fields.String,
        "student_count": fields.Integer(min=1),
        "students_list": fields.List(fields.Nested(student_model)),
        "description": fields.String,
        "comment": fields.String,
        "review_comments": fields.String(readonly=True),
        "validation_comments": fields.String(readonly=True),
        "rejection_reason": fields.String(readonly=True),
        "created_at": fields.String(readonly=True),
        "updated_at": fields.String(readonly=True),
        "updated_by": fields.String(readonly=True),
        "has_attachment": fields.Boolean(readonly=True),
        "attachment_verified": fields.Boolean(readonly=True),
        "actions": fields.List(fields.String, readonly=True),
    },
)

conversion_model = ns.model(
    "Conversion",
    {
        "kind": fields.String(required=True, enum=["to_type", "to_hse"]),
        "target": fields.String(enum=["RCD", "DEVOIRS_FAITS", "HSE"]),
        "hours": fields.Float(default=1, min=0.5),
    },
)

transition_model = ns.model(
    "Transition",
    {
        "action": fields.String(required=True, enum=list(ACTIONS)),
        "comment": fields.String,
        "conversion": fields.Nested(conversion_model, allow_null=True),
    },
)

batch_model = ns.model(
    "BatchTransition",
    {
        "ids": fields.List(fields.Integer, required=True),
        "action": fields.String(
            required=True, enum=["transmit", "validate", "reject", "mark-paid", "delete"]
        ),
        "comment": fields.String,
    },
)


def serialize_session(record: SessionRecord, actions: list[str] | None = None) -> dict[str, Any]:
    data = record.as_dict()
    data["actions"] = actions or []
    return data


def _session_ids(raw: Any) -> list[int]:
    if not isinstance(raw, list):
        raise ValidationError("ids doit être une liste d'identifiants.")
    try:
        return [int(item) for item in raw]
    except (TypeError, ValueError) as exc:
        raise ValidationError("ids doit être une liste d'identifiants.") from exc


@ns.route("")
class SessionList(Resource):
    """List and declare sessions."""

    @ns.param("teacher_id", "Restrict to one teacher (staff only)")
    @ns.marshal_list_with(session_model)
    def get(self) -> list[dict[str, Any]]:
        service = session_service()
        teacher_id = request.args.get("teacher_id", type=int)
        return [
            serialize_session(record, service.available_actions(record))
            for record in service.list_sessions(teacher_id)
        ]

    @ns.expect(session_model)
    @ns.marshal_with(session_model, code=201)
    def post(self) -> tuple[dict[str, Any], int]:
        service = session_service()
        record = service.create_session(json_body())
        return serialize_session(record, service.available_actions(record)), 201


@ns.route("/<int:session_id>")
@ns.param("session_id", "Session unique identifier")
class SessionResource(Resource):
    """Retrieve, edit or delete a session."""

    @ns.marshal_with(session_model)
    def get(self, session_id: int) -> dict[str, Any]:
        service = session_service()
        record = service.get_session(session_id)
        return serialize_session(record, service.available_actions(record))

    @ns.expect(session_model)
    @ns.marshal_with(session_model)
    def put(self, session_id: int) -> dict[str, Any]:
        service = session_service()
        record = service.update_session(session_id, json_body())
        return serialize_session(record, service.available_actions(record))

    def delete(self, session_id: int) -> tuple[str, int]:
        session_service().delete_session(session_id)
        return "", 204


@ns.route("/<int:session_id>/transition")
@ns.param("session_id", "Session unique identifier")
class SessionTransition(Resource):
    """Apply a secretariat or principal action to one session."""

    @ns.expect(transition_model)
    @ns.marshal_with(session_model)
    def post(self, session_id: int) -> dict[str, Any]:
        service = session_service()
        payload = json_body()
        action = payload.get("action")
        if not action:
            raise ValidationError("L'action est obligatoire.")
        record = service.transition(
            session_id,
            action,
            comment=payload.get("comment"),
            conversion=conversion_from_payload(payload),
        )
        return serialize_session(record, service.available_actions(record))


@ns.route("/batch")
class SessionBatch(Resource):
    """Apply one action to several sessions; each one succeeds or fails alone."""

    @ns.expect(batch_model)
    def post(self) -> dict[str, object]:
        service = session_service()
        payload = json_body()
        result = service.batch(
            _session_ids(payload.get("ids")),
            payload.get("action") or "",
            comment=payload.get("comment"),
        )
        return result.as_dict()


@ns.route("/alerts")
class SessionAlerts(Resource):
    """Sessions waiting too long for review or for payment."""

    def get(self) -> dict[str, object]:
        report = session_service().alert_report()
        return {
            "pending_too_long": [record.as_dict() for record in report.pending_too_long],
            "validated_not_paid": [record.as_dict() for record in report.validated_not_paid],
            "total": report.total,
        }
