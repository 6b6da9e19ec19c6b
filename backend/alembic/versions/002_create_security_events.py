"""Create security events table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 12:00:00.000000+00:00

What:  Adds security_events (failed logins, rate-limit rejections,
       authorization denials) with its resolution columns.

Rollback: downgrade() drops the table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "security_events",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column(
            "type",
            sa.String(32),
            nullable=False,
            comment="login_failed, rate_limit_exceeded, unauthorized_access, suspicious_activity",
        ),
        sa.Column("user_id", sa.String(128), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=False, server_default=sa.text("''")),
        sa.Column("user_agent", sa.String(512), nullable=False, server_default=sa.text("''")),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolved_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("resolved_by", sa.String(128), nullable=True),
        sa.Column("resolution", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_security_events_created_at", "security_events", [sa.text("created_at DESC")]
    )
    op.create_index(
        "idx_security_events_type_created", "security_events", ["type", "created_at"]
    )
    op.create_index("idx_security_events_resolved", "security_events", ["resolved"])


def downgrade() -> None:
    op.drop_index("idx_security_events_resolved", table_name="security_events")
    op.drop_index("idx_security_events_type_created", table_name="security_events")
    op.drop_index("idx_security_events_created_at", table_name="security_events")
    op.drop_table("security_events")
