from __future__ import annotations

import datetime as dt
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .extensions import db
from .pacte import PacteContract
from .records import SessionRecord, StudentEntry, utcnow


USER_ROLE_CHOICES = ("TEACHER", "SECRETARY", "PRINCIPAL", "ADMIN")


class TimeStampedModel:
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, onupdate=utcnow)


class User(db.Model, TimeStampedModel):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(120))
    last_name: Mapped[Optional[str]] = mapped_column(String(120))
    civilite: Mapped[Optional[str]] = mapped_column(String(5))
    subject: Mapped[Optional[str]] = mapped_column(String(120))
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="TEACHER")

    # Contrat PACTE, géré par le secrétariat
    in_pacte: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pacte_hours_df: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pacte_hours_rcd: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pacte_hours_completed_df: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pacte_hours_completed_rcd: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    sessions: Mapped[List["Session"]] = relationship(back_populates="teacher")

    __table_args__ = (
        CheckConstraint(
            "role IN ('TEACHER', 'SECRETARY', 'PRINCIPAL', 'ADMIN')", name="ck_user_role"
        ),
    )

    @property
    def display_name(self) -> str:
        if self.first_name or self.last_name:
            return f"{self.first_name or ''} {self.last_name or self.name}".strip()
        return self.name

    def to_contract(self) -> PacteContract:
        return PacteContract(
            teacher_id=self.id,
            teacher_name=self.display_name,
            in_pacte=bool(self.in_pacte),
            hours_df=self.pacte_hours_df or 0,
            hours_rcd=self.pacte_hours_rcd or 0,
            completed_hours_df=self.pacte_hours_completed_df or 0,
            completed_hours_rcd=self.pacte_hours_completed_rcd or 0,
        )

    def apply_contract(self, contract: PacteContract) -> None:
        self.in_pacte = contract.in_pacte
        self.pacte_hours_df = contract.hours_df
        self.pacte_hours_rcd = contract.hours_rcd
        self.pacte_hours_completed_df = contract.completed_hours_df
        self.pacte_hours_completed_rcd = contract.completed_hours_rcd

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<User {self.username} ({self.role})>"


class Session(db.Model):
    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time_slot: Mapped[str] = mapped_column(String(2), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    original_type: Mapped[Optional[str]] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default="PENDING_REVIEW", index=True
    )
    hours: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)

    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    teacher_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    class_name: Mapped[Optional[str]] = mapped_column(String(20))
    replaced_teacher_prefix: Mapped[Optional[str]] = mapped_column(String(5))
    replaced_teacher_last_name: Mapped[Optional[str]] = mapped_column(String(120))
    replaced_teacher_first_name: Mapped[Optional[str]] = mapped_column(String(120))
    subject: Mapped[Optional[str]] = mapped_column(String(120))

    grade_level: Mapped[Optional[str]] = mapped_column(String(10))
    student_count: Mapped[Optional[int]] = mapped_column(Integer)
    students_list: Mapped[Optional[list]] = mapped_column(JSON)

    description: Mapped[Optional[str]] = mapped_column(Text)

    comment: Mapped[Optional[str]] = mapped_column(Text)
    review_comments: Mapped[Optional[str]] = mapped_column(Text)
    validation_comments: Mapped[Optional[str]] = mapped_column(Text)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime)
    updated_by: Mapped[Optional[str]] = mapped_column(String(255))

    teacher: Mapped[User] = relationship(back_populates="sessions")
    attachments: Mapped[List["Attachment"]] = relationship(
        back_populates="session", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("hours > 0", name="ck_session_hours_positive"),
    )

    # Colonnes recopiées depuis un SessionRecord lors d'une écriture
    WRITABLE_COLUMNS = (
        "date",
        "time_slot",
        "type",
        "original_type",
        "status",
        "hours",
        "class_name",
        "replaced_teacher_prefix",
        "replaced_teacher_last_name",
        "replaced_teacher_first_name",
        "subject",
        "grade_level",
        "student_count",
        "description",
        "comment",
        "review_comments",
        "validation_comments",
        "rejection_reason",
        "updated_at",
        "updated_by",
    )

    @classmethod
    def from_record(cls, record: SessionRecord) -> "Session":
        row = cls(
            teacher_id=record.teacher_id,
            teacher_name=record.teacher_name,
            created_at=record.created_at,
        )
        row.apply_record(record)
        return row

    @staticmethod
    def column_values(record: SessionRecord) -> dict[str, object]:
        values: dict[str, object] = {
            column: getattr(record, column) for column in Session.WRITABLE_COLUMNS
        }
        values["students_list"] = [
            {
                "last_name": student.last_name,
                "first_name": student.first_name,
                "class_name": student.class_name,
            }
            for student in record.students_list
        ] or None
        return values

    def apply_record(self, record: SessionRecord) -> None:
        for column, value in self.column_values(record).items():
            setattr(self, column, value)

    def to_record(self) -> SessionRecord:
        return SessionRecord(
            id=self.id,
            teacher_id=self.teacher_id,
            teacher_name=self.teacher_name,
            date=self.date,
            time_slot=self.time_slot,
            type=self.type,
            original_type=self.original_type,
            status=self.status,
            hours=self.hours if self.hours is not None else 1.0,
            class_name=self.class_name,
            replaced_teacher_prefix=self.replaced_teacher_prefix,
            replaced_teacher_last_name=self.replaced_teacher_last_name,
            replaced_teacher_first_name=self.replaced_teacher_first_name,
            subject=self.subject,
            grade_level=self.grade_level,
            student_count=self.student_count,
            students_list=tuple(
                StudentEntry.from_payload(item) for item in self.students_list or ()
            ),
            description=self.description,
            comment=self.comment,
            review_comments=self.review_comments,
            validation_comments=self.validation_comments,
            rejection_reason=self.rejection_reason,
            created_at=self.created_at,
            updated_at=self.updated_at,
            updated_by=self.updated_by,
            has_attachment=bool(self.attachments),
            attachment_verified=any(item.is_verified for item in self.attachments),
        )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Session {self.id} {self.type} {self.date} {self.time_slot} {self.status}>"


class Attachment(db.Model):
    """File metadata only; the content lives in the object storage."""

    __tablename__ = "attachments"

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(120), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    url: Mapped[Optional[str]] = mapped_column(Text)
    uploaded_by: Mapped[str] = mapped_column(String(255), nullable=False)
    uploaded_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    session: Mapped[Session] = relationship(back_populates="attachments")


class HourQuota(db.Model, TimeStampedModel):
    """Annual hour budget of the school for one session type."""

    __tablename__ = "hour_quotas"

    id: Mapped[int] = mapped_column(primary_key=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    budget_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    school_year: Mapped[str] = mapped_column(String(9), nullable=False)
    updated_by: Mapped[Optional[str]] = mapped_column(String(255))

    __table_args__ = (
        UniqueConstraint("type", "school_year", name="uq_hour_quota_type_year"),
        CheckConstraint("budget_hours >= 0", name="ck_hour_quota_positive"),
    )

    @classmethod
    def budgets_for(cls, school_year: str) -> dict[str, int]:
        rows = cls.query.filter_by(school_year=school_year).all()
        return {row.type: row.budget_hours for row in rows}
