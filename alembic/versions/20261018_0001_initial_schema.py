"""initial schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


project_status = postgresql.ENUM(
    "planned", "in_progress", "on_hold", "cancelled", "complete", name="project_status", create_type=False
)
phase_status = postgresql.ENUM(
    "planned", "in_progress", "complete", "on_hold", "cancelled", name="phase_status", create_type=False
)
task_status = postgresql.ENUM("todo", "in_progress", "complete", name="task_status", create_type=False)
team_role = postgresql.ENUM("manager", "team_leader", "team_member", name="team_role", create_type=False)
assignment_role = postgresql.ENUM("team_leader", "team_member", name="assignment_role", create_type=False)


def upgrade() -> None:
    project_status.create(op.get_bind(), checkfirst=True)
    phase_status.create(op.get_bind(), checkfirst=True)
    task_status.create(op.get_bind(), checkfirst=True)
    team_role.create(op.get_bind(), checkfirst=True)
    assignment_role.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "team_members",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("role", team_role, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("contract_code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("status", project_status, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("estimated_end_date", sa.Date(), nullable=False),
        sa.Column("modification_allowed_times", sa.Integer(), nullable=False, server_default=sa.text("3")),
        sa.Column("modification_days_per_time", sa.Integer(), nullable=False, server_default=sa.text("5")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("estimated_end_date > start_date", name="ck_projects_date_range"),
        sa.CheckConstraint("modification_allowed_times >= 0", name="ck_projects_modification_allowed_non_negative"),
        sa.CheckConstraint("modification_days_per_time >= 0", name="ck_projects_modification_days_non_negative"),
        sa.CheckConstraint("version >= 1", name="ck_projects_version_positive"),
    )
    op.create_unique_constraint("uq_projects_contract_code", "projects", ["contract_code"])

    op.create_table(
        "phases",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phase_order", sa.Integer(), nullable=False),
        sa.Column("status", phase_status, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("end_date IS NULL OR end_date > start_date", name="ck_phases_date_range"),
        sa.CheckConstraint("version >= 1", name="ck_phases_version_positive"),
    )
    op.create_index("ix_phases_project_id", "phases", ["project_id"])

    op.create_table(
        "tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("phase_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("phases.id"), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("status", task_status, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column(
            "assigned_team_member_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("team_members.id"),
            nullable=True,
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("duration_days >= 0", name="ck_tasks_duration_non_negative"),
        sa.CheckConstraint(
            "end_date IS NULL OR start_date IS NULL OR end_date > start_date",
            name="ck_tasks_date_range",
        ),
        sa.CheckConstraint("version >= 1", name="ck_tasks_version_positive"),
    )
    op.create_index("ix_tasks_phase_id", "tasks", ["phase_id"])

    op.create_table(
        "assignments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("phase_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("phases.id"), nullable=False),
        sa.Column(
            "team_member_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("team_members.id"),
            nullable=False,
        ),
        sa.Column("role", assignment_role, nullable=False),
        sa.Column("working_percentage", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "working_percentage >= 0 AND working_percentage <= 100",
            name="ck_assignments_working_percentage_range",
        ),
        sa.CheckConstraint("end_date IS NULL OR end_date > start_date", name="ck_assignments_date_range"),
    )
    op.create_index("ix_assignments_phase_id", "assignments", ["phase_id"])
    op.create_index("ix_assignments_team_member_id", "assignments", ["team_member_id"])

    op.create_table(
        "project_modifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("days_used", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("number >= 1", name="ck_project_modifications_number_positive"),
        sa.CheckConstraint("days_used >= 0", name="ck_project_modifications_days_non_negative"),
    )
    op.create_index("ix_project_modifications_project_id", "project_modifications", ["project_id"])
    op.create_unique_constraint(
        "uq_project_modifications_project_number", "project_modifications", ["project_id", "number"]
    )


def downgrade() -> None:
    op.drop_constraint(
        "uq_project_modifications_project_number", "project_modifications", type_="unique"
    )
    op.drop_index("ix_project_modifications_project_id", table_name="project_modifications")
    op.drop_table("project_modifications")

    op.drop_index("ix_assignments_team_member_id", table_name="assignments")
    op.drop_index("ix_assignments_phase_id", table_name="assignments")
    op.drop_table("assignments")

    op.drop_index("ix_tasks_phase_id", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_phases_project_id", table_name="phases")
    op.drop_table("phases")

    op.drop_constraint("uq_projects_contract_code", "projects", type_="unique")
    op.drop_table("projects")

    op.drop_table("team_members")

    assignment_role.drop(op.get_bind(), checkfirst=True)
    team_role.drop(op.get_bind(), checkfirst=True)
    task_status.drop(op.get_bind(), checkfirst=True)
    phase_status.drop(op.get_bind(), checkfirst=True)
    project_status.drop(op.get_bind(), checkfirst=True)
