"""Create otp_sessions table for pending credentials."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "3b7e1c9d2a40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create per-session identity and pending credential storage."""
    op.create_table(
        "otp_sessions",
        sa.Column("session_id", sa.String(length=128), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("phone", sa.String(length=64), nullable=False),
        sa.Column("pending_credential", sa.Text(), nullable=True),
        sa.Column("issued_at", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )


def downgrade() -> None:
    """Remove per-session credential storage."""
    op.drop_table("otp_sessions")
