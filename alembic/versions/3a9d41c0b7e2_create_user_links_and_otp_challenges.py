"""Create user links and OTP challenge tables."""

import sqlalchemy as sa

from alembic import op

revision = "3a9d41c0b7e2"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create identity link and single-active OTP challenge storage."""
    op.create_table(
        "user_links",
        sa.Column("identity", sa.String(length=32), primary_key=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=True),
        sa.Column(
            "link_status",
            sa.String(length=16),
            nullable=False,
            server_default=sa.text("'unlinked'"),
        ),
        sa.Column("registered_at", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "link_status IN ('unlinked', 'linked', 'blocked')",
            name="ck_user_links_link_status",
        ),
    )

    op.create_table(
        "otp_challenges",
        sa.Column("identity", sa.String(length=32), primary_key=True),
        sa.Column("code_digest", sa.String(length=64), nullable=False),
        sa.Column("purpose", sa.String(length=255), nullable=False),
        sa.Column("context_json", sa.Text(), nullable=False),
        sa.Column("issued_at", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.Integer(), nullable=False),
    )


def downgrade() -> None:
    """Drop identity link and OTP challenge storage."""
    op.drop_table("otp_challenges")
    op.drop_table("user_links")
