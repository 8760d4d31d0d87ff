"""Initial schema: tenants, principals, invitation tokens, follow-up assignments

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

ACTIVE_FOLLOWUP = sa.text("status IN ('pending', 'contacted', 'in_progress')")


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("deactivated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tenants_name", "tenants", ["name"], unique=False)

    op.create_table(
        "principals",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("role", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False),
        sa.Column(
            "explicit_grants",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("assigned_staff_id", sa.Uuid(), nullable=True),
        sa.Column("status", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False),
        sa.Column("full_name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column("group_id", sa.Uuid(), nullable=True),
        sa.Column("invitation_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["assigned_staff_id"], ["principals.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_principals_tenant_id", "principals", ["tenant_id"], unique=False)
    op.create_index("ix_principals_role", "principals", ["role"], unique=False)
    op.create_index(
        "ix_principals_assigned_staff_id", "principals", ["assigned_staff_id"], unique=False
    )
    op.create_index("ix_principals_invitation_id", "principals", ["invitation_id"], unique=False)

    op.create_table(
        "invitation_tokens",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("code", sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.Column("target_role", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False),
        sa.Column("target_group_id", sa.Uuid(), nullable=True),
        sa.Column("default_staff_id", sa.Uuid(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=False),
        sa.Column("current_uses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("deactivated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("current_uses >= 0", name="ck_invitation_tokens_uses_nonnegative"),
        sa.CheckConstraint("current_uses <= max_uses", name="ck_invitation_tokens_uses_bounded"),
        sa.CheckConstraint("max_uses >= 1", name="ck_invitation_tokens_max_uses_positive"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["default_staff_id"], ["principals.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["principals.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invitation_tokens_code", "invitation_tokens", ["code"], unique=True)
    op.create_index(
        "ix_invitation_tokens_tenant_id", "invitation_tokens", ["tenant_id"], unique=False
    )
    op.create_index(
        "ix_invitation_tokens_created_by", "invitation_tokens", ["created_by"], unique=False
    )

    op.create_table(
        "followup_assignments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("guest_id", sa.Uuid(), nullable=False),
        sa.Column("staff_id", sa.Uuid(), nullable=False),
        sa.Column("status", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False),
        sa.Column("last_contacted_at", sa.DateTime(), nullable=True),
        sa.Column("next_contact_at", sa.DateTime(), nullable=True),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(length=2000), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["guest_id"], ["principals.id"]),
        sa.ForeignKeyConstraint(["staff_id"], ["principals.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_followup_assignments_tenant_id", "followup_assignments", ["tenant_id"], unique=False
    )
    op.create_index(
        "ix_followup_assignments_guest_id", "followup_assignments", ["guest_id"], unique=False
    )
    op.create_index(
        "ix_followup_assignments_tenant_staff",
        "followup_assignments",
        ["tenant_id", "staff_id"],
        unique=False,
    )
    # At most one open assignment per guest
    op.create_index(
        "uq_followup_assignments_active_guest",
        "followup_assignments",
        ["guest_id"],
        unique=True,
        postgresql_where=ACTIVE_FOLLOWUP,
        sqlite_where=ACTIVE_FOLLOWUP,
    )


def downgrade() -> None:
    op.drop_index("uq_followup_assignments_active_guest", table_name="followup_assignments")
    op.drop_index("ix_followup_assignments_tenant_staff", table_name="followup_assignments")
    op.drop_index("ix_followup_assignments_guest_id", table_name="followup_assignments")
    op.drop_index("ix_followup_assignments_tenant_id", table_name="followup_assignments")
    op.drop_table("followup_assignments")

    op.drop_index("ix_invitation_tokens_created_by", table_name="invitation_tokens")
    op.drop_index("ix_invitation_tokens_tenant_id", table_name="invitation_tokens")
    op.drop_index("ix_invitation_tokens_code", table_name="invitation_tokens")
    op.drop_table("invitation_tokens")

    op.drop_index("ix_principals_invitation_id", table_name="principals")
    op.drop_index("ix_principals_assigned_staff_id", table_name="principals")
    op.drop_index("ix_principals_role", table_name="principals")
    op.drop_index("ix_principals_tenant_id", table_name="principals")
    op.drop_table("principals")

    op.drop_index("ix_tenants_name", table_name="tenants")
    op.drop_table("tenants")
