"""completion schema

Revision ID: 3b1f0c9d2a7e
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f0c9d2a7e"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

UUID = postgresql.UUID(as_uuid=True)


def upgrade() -> None:
    # --- catalog ---
    op.create_table(
        "courses",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
    )
    op.create_table(
        "course_modules",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
    )
    op.create_index("ix_course_modules_course_id", "course_modules", ["course_id"])
    op.create_table(
        "course_sessions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("module_id", UUID, sa.ForeignKey("course_modules.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
    )
    op.create_index("ix_course_sessions_module_id", "course_sessions", ["module_id"])
    op.create_table(
        "course_content",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("session_id", UUID, sa.ForeignKey("course_sessions.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("type", sa.String(length=32), nullable=False, server_default="video"),
    )
    op.create_index("ix_course_content_session_id", "course_content", ["session_id"])

    # --- roster ---
    op.create_table(
        "classes",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("institution_id", UUID, nullable=False),
        sa.Column("class_name", sa.String(length=255), nullable=False),
    )
    op.create_table(
        "students",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, nullable=True),
        sa.Column("institution_id", UUID, nullable=False),
        sa.Column("class_id", UUID, sa.ForeignKey("classes.id"), nullable=False),
        sa.Column("student_name", sa.String(length=255), nullable=False),
        sa.Column("roll_number", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
    )
    op.create_index("ix_students_class_id", "students", ["class_id"])
    op.create_table(
        "class_course_assignments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("class_id", UUID, sa.ForeignKey("classes.id"), nullable=False),
        sa.Column("course_id", UUID, sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("institution_id", UUID, nullable=False),
    )

    # --- completion ---
    op.create_table(
        "student_content_completions",
        sa.Column("student_id", UUID, sa.ForeignKey("students.id"), primary_key=True),
        sa.Column(
            "content_id", UUID, sa.ForeignKey("course_content.id"), primary_key=True
        ),
        sa.Column(
            "class_assignment_id",
            UUID,
            sa.ForeignKey("class_course_assignments.id"),
            primary_key=True,
        ),
        sa.Column("watch_percentage", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("completed_at", sa.Integer(), nullable=False),
    )
    op.create_index(
        "ix_completions_assignment_content",
        "student_content_completions",
        ["class_assignment_id", "content_id"],
    )

    # --- timetable and attendance ---
    op.create_table(
        "institution_periods",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("institution_id", UUID, nullable=False),
        sa.Column("label", sa.String(length=64), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("is_break", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index(
        "ix_institution_periods_institution_id", "institution_periods", ["institution_id"]
    )
    op.create_table(
        "institution_timetable_assignments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("class_id", UUID, sa.ForeignKey("classes.id"), nullable=False),
        sa.Column("institution_id", UUID, nullable=False),
        sa.Column("day", sa.String(length=16), nullable=False),
        sa.Column(
            "period_id", UUID, sa.ForeignKey("institution_periods.id"), nullable=True
        ),
        sa.Column("subject", sa.String(length=500), nullable=False),
        sa.Column("class_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("teacher_id", UUID, nullable=True),
        sa.Column("teacher_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column(
            "is_placeholder", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
    )
    op.create_index(
        "ix_timetable_class_day", "institution_timetable_assignments", ["class_id", "day"]
    )
    op.create_table(
        "class_session_attendance",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "timetable_assignment_id",
            UUID,
            sa.ForeignKey("institution_timetable_assignments.id"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("class_id", UUID, nullable=False),
        sa.Column("institution_id", UUID, nullable=False),
        sa.Column("officer_id", UUID, nullable=True),
        sa.Column("period_label", sa.String(length=500), nullable=False),
        sa.Column("subject", sa.String(length=500), nullable=False),
        sa.Column(
            "attendance_records",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("total_students", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("students_present", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("students_absent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("students_late", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "is_session_completed", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("completed_by", UUID, nullable=True),
        sa.Column("completed_at", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.Integer(), nullable=True),
        sa.UniqueConstraint("timetable_assignment_id", "date"),
    )

    # --- credentials ---
    op.create_table(
        "certificate_templates",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "student_certificates",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("student_id", UUID, nullable=False),
        sa.Column(
            "template_id", UUID, sa.ForeignKey("certificate_templates.id"), nullable=False
        ),
        sa.Column("activity_type", sa.String(length=32), nullable=False),
        sa.Column("activity_id", UUID, nullable=False),
        sa.Column("activity_name", sa.String(length=1000), nullable=False),
        sa.Column("institution_id", UUID, nullable=True),
        sa.Column("verification_code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("issued_at", sa.Integer(), nullable=False),
        sa.UniqueConstraint(
            "student_id",
            "activity_type",
            "activity_id",
            name="uq_student_certificates_activity",
        ),
    )
    op.create_table(
        "student_xp_transactions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("student_id", UUID, nullable=False),
        sa.Column("institution_id", UUID, nullable=True),
        sa.Column("activity_type", sa.String(length=64), nullable=False),
        sa.Column("activity_id", UUID, nullable=False),
        sa.Column("points_earned", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.UniqueConstraint(
            "student_id", "activity_type", "activity_id", name="uq_student_xp_activity"
        ),
    )


def downgrade() -> None:
    op.drop_table("student_xp_transactions")
    op.drop_table("student_certificates")
    op.drop_table("certificate_templates")
    op.drop_table("class_session_attendance")
    op.drop_index("ix_timetable_class_day", table_name="institution_timetable_assignments")
    op.drop_table("institution_timetable_assignments")
    op.drop_index(
        "ix_institution_periods_institution_id", table_name="institution_periods"
    )
    op.drop_table("institution_periods")
    op.drop_index(
        "ix_completions_assignment_content", table_name="student_content_completions"
    )
    op.drop_table("student_content_completions")
    op.drop_table("class_course_assignments")
    op.drop_index("ix_students_class_id", table_name="students")
    op.drop_table("students")
    op.drop_table("classes")
    op.drop_index("ix_course_content_session_id", table_name="course_content")
    op.drop_table("course_content")
    op.drop_index("ix_course_sessions_module_id", table_name="course_sessions")
    op.drop_table("course_sessions")
    op.drop_index("ix_course_modules_course_id", table_name="course_modules")
    op.drop_table("course_modules")
    op.drop_table("courses")
