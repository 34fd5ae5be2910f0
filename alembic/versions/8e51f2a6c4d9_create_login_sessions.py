"""Create login session table for login alert confirmation."""

import sqlalchemy as sa

from alembic import op

revision = "8e51f2a6c4d9"
down_revision = "3a9d41c0b7e2"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create login session storage keyed by alert id."""
    op.create_table(
        "login_sessions",
        sa.Column("alert_id", sa.String(length=64), primary_key=True),
        sa.Column("owner_identity", sa.String(length=32), nullable=False),
        sa.Column("context_json", sa.Text(), nullable=False),
        sa.Column(
            "status",
            sa.String(length=16),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column("resolution", sa.String(length=16), nullable=True),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.Integer(), nullable=False),
        sa.Column("resolved_at", sa.Integer(), nullable=True),
        sa.Column("message_id", sa.BigInteger(), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'denied')",
            name="ck_login_sessions_status",
        ),
    )
    op.create_index(
        "ix_login_sessions_owner_identity_status",
        "login_sessions",
        ["owner_identity", "status"],
    )


def downgrade() -> None:
    """Drop login session storage."""
    op.drop_index(
        "ix_login_sessions_owner_identity_status",
        table_name="login_sessions",
    )
    op.drop_table("login_sessions")
