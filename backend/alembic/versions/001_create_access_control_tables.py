"""Create access control tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates profiles, invites, promotion_records, deleted_data,
       suspension_records, audit_log and documents.
How:   Generic column types (String ids, JSON, timezone-aware timestamps) so
       the same schema runs on PostgreSQL and SQLite.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── profiles ──────────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        sa.Column("uid", sa.String(128), nullable=False, comment="Identity provider subject id"),
        sa.Column("email", sa.String(320), nullable=False, server_default=sa.text("''")),
        sa.Column("display_name", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "roles",
            sa.JSON(),
            nullable=False,
            comment="Role set: parent, teacher, admin, admin_readonly, super_admin",
        ),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'active'"),
            comment="Account status: active, suspended, pending",
        ),
        sa.Column("suspended_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("suspension_reason", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("uid"),
    )
    op.create_index("idx_profiles_email", "profiles", ["email"])
    op.create_index("idx_profiles_status", "profiles", ["status"])

    # ── invites ───────────────────────────────────────────────────────────
    op.create_table(
        "invites",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("token", sa.String(128), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, comment="Target email, lower-cased"),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'pending'"),
            comment="pending, accepted, revoked",
        ),
        sa.Column("created_by", sa.String(128), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("accepted_by", sa.String(128), nullable=True),
        sa.Column("accepted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("revoked_by", sa.String(128), nullable=True),
        sa.Column("revoked_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    # Unique: token lookup must resolve to at most one invite
    op.create_index("idx_invites_token", "invites", ["token"], unique=True)
    op.create_index(
        "idx_invites_status_created",
        "invites",
        ["status", sa.text("created_at DESC")],
    )

    # ── promotion_records ─────────────────────────────────────────────────
    op.create_table(
        "promotion_records",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=False, server_default=sa.text("''")),
        sa.Column("action", sa.String(16), nullable=False, comment="promote or demote"),
        sa.Column("previous_roles", sa.JSON(), nullable=False),
        sa.Column("new_roles", sa.JSON(), nullable=False),
        sa.Column("performed_by", sa.String(128), nullable=False),
        sa.Column(
            "performed_by_email", sa.String(320), nullable=False, server_default=sa.text("''")
        ),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_promotions_created_at", "promotion_records", [sa.text("created_at DESC")]
    )
    op.create_index("idx_promotions_user_id", "promotion_records", ["user_id"])

    # ── deleted_data ──────────────────────────────────────────────────────
    op.create_table(
        "deleted_data",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("collection", sa.String(128), nullable=False),
        sa.Column("document_id", sa.String(256), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column(
            "snapshot_version", sa.Integer(), nullable=False, server_default=sa.text("1")
        ),
        sa.Column("deleted_by", sa.String(128), nullable=False),
        sa.Column(
            "deleted_by_email", sa.String(320), nullable=False, server_default=sa.text("''")
        ),
        sa.Column(
            "deleted_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "expires_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            comment="End of the retention period",
        ),
        sa.Column("restored", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("restored_by", sa.String(128), nullable=True),
        sa.Column("restored_by_email", sa.String(320), nullable=True),
        sa.Column("restored_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_deleted_data_collection", "deleted_data", ["collection"])
    op.create_index(
        "idx_deleted_data_deleted_at", "deleted_data", [sa.text("deleted_at DESC")]
    )

    # ── suspension_records ────────────────────────────────────────────────
    op.create_table(
        "suspension_records",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=False, server_default=sa.text("''")),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(16), nullable=False, comment="temporary or permanent"),
        sa.Column("suspended_by", sa.String(128), nullable=False),
        sa.Column(
            "suspended_by_email", sa.String(320), nullable=False, server_default=sa.text("''")
        ),
        sa.Column(
            "suspended_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("lifted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("lifted_by", sa.String(128), nullable=True),
        sa.Column("lift_reason", sa.Text(), nullable=True),
        sa.Column("lifted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_suspensions_user_id", "suspension_records", ["user_id"])
    op.create_index("idx_suspensions_lifted", "suspension_records", ["lifted"])

    # ── audit_log ─────────────────────────────────────────────────────────
    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("actor_id", sa.String(128), nullable=False),
        sa.Column("actor_email", sa.String(320), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "actor_role", sa.String(32), nullable=False, server_default=sa.text("'super_admin'")
        ),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("resource", sa.String(64), nullable=False),
        sa.Column("resource_id", sa.String(256), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column(
            "severity",
            sa.String(16),
            nullable=False,
            server_default=sa.text("'info'"),
            comment="info, warning, critical",
        ),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_audit_log_created_at", "audit_log", [sa.text("created_at DESC")])
    op.create_index("idx_audit_log_actor_id", "audit_log", ["actor_id"])
    op.create_index("idx_audit_log_action", "audit_log", ["action"])

    # ── documents ─────────────────────────────────────────────────────────
    op.create_table(
        "documents",
        sa.Column("collection", sa.String(128), nullable=False),
        sa.Column("doc_id", sa.String(256), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("collection", "doc_id"),
    )


def downgrade() -> None:
    """Drop every table. All access-control history is lost."""
    op.drop_table("documents")

    op.drop_index("idx_audit_log_action", table_name="audit_log")
    op.drop_index("idx_audit_log_actor_id", table_name="audit_log")
    op.drop_index("idx_audit_log_created_at", table_name="audit_log")
    op.drop_table("audit_log")

    op.drop_index("idx_suspensions_lifted", table_name="suspension_records")
    op.drop_index("idx_suspensions_user_id", table_name="suspension_records")
    op.drop_table("suspension_records")

    op.drop_index("idx_deleted_data_deleted_at", table_name="deleted_data")
    op.drop_index("idx_deleted_data_collection", table_name="deleted_data")
    op.drop_table("deleted_data")

    op.drop_index("idx_promotions_user_id", table_name="promotion_records")
    op.drop_index("idx_promotions_created_at", table_name="promotion_records")
    op.drop_table("promotion_records")

    op.drop_index("idx_invites_status_created", table_name="invites")
    op.drop_index("idx_invites_token", table_name="invites")
    op.drop_table("invites")

    op.drop_index("idx_profiles_status", table_name="profiles")
    op.drop_index("idx_profiles_email", table_name="profiles")
    op.drop_table("profiles")
