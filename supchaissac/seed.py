from __future__ import annotations

from datetime import date, timedelta

from .extensions import db
from .models import HourQuota, Session, User
from .records import SessionRecord, utcnow


DEMO_SCHOOL_YEAR = "2025-2026"


def _demo_users() -> list[User]:
    return [
        User(
            username="teacher1@example.com",
            name="Sophie MARTIN",
            first_name="Sophie",
            last_name="MARTIN",
            civilite="Mme",
            subject="Mathématiques",
            role="TEACHER",
            in_pacte=True,
            pacte_hours_df=10,
            pacte_hours_rcd=8,
            pacte_hours_completed_df=2,
        ),
        User(
            username="teacher2@example.com",
            name="Marie PETIT",
            first_name="Marie",
            last_name="PETIT",
            civilite="Mme",
            subject="Français",
            role="TEACHER",
        ),
        User(
            username="teacher3@example.com",
            name="Pierre GARCIA",
            first_name="Pierre",
            last_name="GARCIA",
            civilite="M.",
            subject="SVT",
            role="TEACHER",
            in_pacte=True,
            pacte_hours_df=9,
            pacte_hours_rcd=9,
            pacte_hours_completed_rcd=6,
        ),
        User(
            username="secretary@example.com",
            name="Laure MARTIN",
            first_name="Laure",
            last_name="MARTIN",
            civilite="Mme",
            role="SECRETARY",
        ),
        User(
            username="principal@example.com",
            name="Jean DUPONT",
            first_name="Jean",
            last_name="DUPONT",
            civilite="M.",
            role="PRINCIPAL",
        ),
    ]


def _demo_sessions(teachers: list[User]) -> list[SessionRecord]:
    sophie, marie, pierre = teachers
    created = utcnow() - timedelta(days=10)
    records = [
        SessionRecord.declare(
            teacher_id=sophie.id,
            teacher_name=sophie.display_name,
            date=date(2025, 9, 15),
            time_slot="M2",
            type="RCD",
            created_at=created,
            class_name="6A",
            replaced_teacher="M. DUPONT Jean",
            subject="Mathématiques",
        ),
        SessionRecord.declare(
            teacher_id=sophie.id,
            teacher_name=sophie.display_name,
            date=date(2025, 9, 16),
            time_slot="S3",
            type="DEVOIRS_FAITS",
            created_at=created,
            grade_level="6e",
            student_count=3,
            students_list=[
                {"last_name": "BERNARD", "first_name": "Lucas", "class_name": "6A"},
                {"last_name": "ROUX", "first_name": "Emma", "class_name": "6B"},
                {"last_name": "FAURE", "first_name": "Nathan", "class_name": "6A"},
            ],
        ),
        SessionRecord.declare(
            teacher_id=marie.id,
            teacher_name=marie.display_name,
            date=date(2025, 9, 17),
            time_slot="M3",
            type="AUTRE",
            created_at=created,
            description="Accompagnement de la sortie pédagogique au musée",
        ),
        SessionRecord.declare(
            teacher_id=pierre.id,
            teacher_name=pierre.display_name,
            date=date(2025, 9, 18),
            time_slot="S1",
            type="RCD",
            created_at=created,
            class_name="4B",
            replaced_teacher="Mme LEROY Claire",
            subject="SVT",
        ),
    ]
    # Quelques sessions déjà avancées dans le circuit
    records[1] = records[1].with_changes(status="PENDING_VALIDATION", updated_by="Laure MARTIN")
    records[3] = records[3].with_changes(status="VALIDATED", updated_by="Jean DUPONT")
    return records


def seed_data() -> int:
    """Insert demo users, budgets and sessions; return the number of sessions created."""

    if User.query.first():
        return 0

    users = _demo_users()
    db.session.add_all(users)
    db.session.flush()

    if not HourQuota.query.filter_by(school_year=DEMO_SCHOOL_YEAR).first():
        db.session.add_all(
            [
                HourQuota(type="HSE", budget_hours=120, school_year=DEMO_SCHOOL_YEAR),
                HourQuota(type="DEVOIRS_FAITS", budget_hours=200, school_year=DEMO_SCHOOL_YEAR),
                HourQuota(type="RCD", budget_hours=150, school_year=DEMO_SCHOOL_YEAR),
            ]
        )

    teachers = [user for user in users if user.role == "TEACHER"]
    records = _demo_sessions(teachers)
    db.session.add_all([Session.from_record(record) for record in records])
    db.session.commit()
    return len(records)
