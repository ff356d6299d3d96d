"""Initial schema: developers, projects, batches, candidates, sweep runs, contact grants

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    # 1. Developers
    op.create_table(
        "developers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("display_name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("level", sqlmodel.sql.sqltypes.AutoString(length=10), nullable=False),
        sa.Column("skills", JSONType, nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "availability",
            sqlmodel.sql.sqltypes.AutoString(length=20),
            nullable=False,
            server_default="available",
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_developers_email", "developers", ["email"], unique=True)
    op.create_index("ix_developers_level", "developers", ["level"], unique=False)

    # 2. Projects
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("client_email", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(length=200), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(length=5000), nullable=True),
        sa.Column("skills_required", JSONType, nullable=False),
        sa.Column(
            "status", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False, server_default="open"
        ),
        sa.Column("current_batch_id", sa.Uuid(), nullable=True),
        sa.Column("accepted_candidate_id", sa.Uuid(), nullable=True),
        sa.Column("assigned_developer_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["assigned_developer_id"], ["developers.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_client_id", "projects", ["client_id"], unique=False)
    op.create_index("ix_projects_status", "projects", ["status"], unique=False)

    # 3. Batches
    op.create_table(
        "batches",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("batch_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "status", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False, server_default="active"
        ),
        sa.Column(
            "batch_type",
            sqlmodel.sql.sqltypes.AutoString(length=20),
            nullable=False,
            server_default="auto_rotation",
        ),
        sa.Column("no_expire", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("level_mix", JSONType, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_batches_project_id", "batches", ["project_id"], unique=False)
    op.create_index("ix_batches_project_status", "batches", ["project_id", "status"], unique=False)

    # 4. Candidates
    op.create_table(
        "candidates",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("batch_id", sa.Uuid(), nullable=False),
        sa.Column("developer_id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("level", sqlmodel.sql.sqltypes.AutoString(length=10), nullable=False),
        sa.Column(
            "source",
            sqlmodel.sql.sqltypes.AutoString(length=20),
            nullable=False,
            server_default="AUTO_ROTATION",
        ),
        sa.Column(
            "response_status",
            sqlmodel.sql.sqltypes.AutoString(length=20),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("assigned_at", sa.DateTime(), nullable=False),
        sa.Column("acceptance_deadline", sa.DateTime(), nullable=True),
        sa.Column("responded_at", sa.DateTime(), nullable=True),
        sa.Column("expired_at", sa.DateTime(), nullable=True),
        sa.Column("invalidated_at", sa.DateTime(), nullable=True),
        sa.Column("is_first_accepted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("message", sqlmodel.sql.sqltypes.AutoString(length=300), nullable=True),
        sa.ForeignKeyConstraint(["batch_id"], ["batches.id"]),
        sa.ForeignKeyConstraint(["developer_id"], ["developers.id"]),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_candidates_project_id", "candidates", ["project_id"], unique=False)
    op.create_index(
        "ix_candidates_batch_status", "candidates", ["batch_id", "response_status"], unique=False
    )
    op.create_index(
        "ix_candidates_status_deadline",
        "candidates",
        ["response_status", "acceptance_deadline"],
        unique=False,
    )
    op.create_index(
        "ix_candidates_developer_status",
        "candidates",
        ["developer_id", "response_status"],
        unique=False,
    )
    # At most one first-accepted candidate per project
    op.create_index(
        "uq_candidates_first_accepted_per_project",
        "candidates",
        ["project_id"],
        unique=True,
        postgresql_where=sa.text("is_first_accepted"),
        sqlite_where=sa.text("is_first_accepted = 1"),
    )

    # 5. Sweep runs
    op.create_table(
        "sweep_runs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job", sqlmodel.sql.sqltypes.AutoString(length=50), nullable=False),
        sa.Column(
            "status", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False, server_default="started"
        ),
        sa.Column("expired_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("refreshed_batches", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failed_batches", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("details", JSONType, nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("finished_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sweep_runs_job", "sweep_runs", ["job"], unique=False)
    op.create_index("ix_sweep_runs_started_at", "sweep_runs", ["started_at"], unique=False)

    # 6. Contact grants
    op.create_table(
        "contact_grants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("developer_id", sa.Uuid(), nullable=False),
        sa.Column(
            "reason",
            sqlmodel.sql.sqltypes.AutoString(length=50),
            nullable=False,
            server_default="ACCEPTED_PROJECT",
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
        sa.ForeignKeyConstraint(["developer_id"], ["developers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "developer_id", name="uq_contact_grants_project_developer"),
    )
    op.create_index("ix_contact_grants_project_id", "contact_grants", ["project_id"], unique=False)
    op.create_index("ix_contact_grants_client_id", "contact_grants", ["client_id"], unique=False)


def downgrade() -> None:
    op.drop_table("contact_grants")
    op.drop_table("sweep_runs")
    op.drop_index("uq_candidates_first_accepted_per_project", table_name="candidates")
    op.drop_table("candidates")
    op.drop_table("batches")
    op.drop_table("projects")
    op.drop_table("developers")
