"""Initial SupChaissac schema."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=True),
        sa.Column("last_name", sa.String(length=120), nullable=True),
        sa.Column("civilite", sa.String(length=5), nullable=True),
        sa.Column("subject", sa.String(length=120), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("in_pacte", sa.Boolean(), nullable=False),
        sa.Column("pacte_hours_df", sa.Integer(), nullable=False),
        sa.Column("pacte_hours_rcd", sa.Integer(), nullable=False),
        sa.Column("pacte_hours_completed_df", sa.Integer(), nullable=False),
        sa.Column("pacte_hours_completed_rcd", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "role IN ('TEACHER', 'SECRETARY', 'PRINCIPAL', 'ADMIN')", name="ck_user_role"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )

    op.create_table(
        "sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time_slot", sa.String(length=2), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("original_type", sa.String(length=20), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("hours", sa.Float(), nullable=False),
        sa.Column("teacher_id", sa.Integer(), nullable=False),
        sa.Column("teacher_name", sa.String(length=255), nullable=False),
        sa.Column("class_name", sa.String(length=20), nullable=True),
        sa.Column("replaced_teacher_prefix", sa.String(length=5), nullable=True),
        sa.Column("replaced_teacher_last_name", sa.String(length=120), nullable=True),
        sa.Column("replaced_teacher_first_name", sa.String(length=120), nullable=True),
        sa.Column("subject", sa.String(length=120), nullable=True),
        sa.Column("grade_level", sa.String(length=10), nullable=True),
        sa.Column("student_count", sa.Integer(), nullable=True),
        sa.Column("students_list", sa.JSON(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("review_comments", sa.Text(), nullable=True),
        sa.Column("validation_comments", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
        sa.CheckConstraint("hours > 0", name="ck_session_hours_positive"),
        sa.ForeignKeyConstraint(["teacher_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sessions_teacher_id", "sessions", ["teacher_id"])
    op.create_index("ix_sessions_status", "sessions", ["status"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("original_name", sa.String(length=255), nullable=False),
        sa.Column("mime_type", sa.String(length=120), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("uploaded_by", sa.String(length=255), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["sessions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "hour_quotas",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("budget_hours", sa.Integer(), nullable=False),
        sa.Column("school_year", sa.String(length=9), nullable=False),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("budget_hours >= 0", name="ck_hour_quota_positive"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("type", "school_year", name="uq_hour_quota_type_year"),
    )


def downgrade() -> None:
    op.drop_table("hour_quotas")
    op.drop_table("attachments")
    op.drop_index("ix_sessions_status", table_name="sessions")
    op.drop_index("ix_sessions_teacher_id", table_name="sessions")
    op.drop_table("sessions")
    op.drop_table("users")
