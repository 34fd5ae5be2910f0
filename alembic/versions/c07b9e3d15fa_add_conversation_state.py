"""Add per-identity conversation state with expiry."""

import sqlalchemy as sa

from alembic import op

revision = "c07b9e3d15fa"
down_revision = "8e51f2a6c4d9"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create conversation step storage."""
    op.create_table(
        "conversation_state",
        sa.Column("identity", sa.String(length=32), primary_key=True),
        sa.Column("step", sa.String(length=64), nullable=False),
        sa.Column("data_json", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.Integer(), nullable=False),
    )


def downgrade() -> None:
    """Drop conversation step storage."""
    op.drop_table("conversation_state")
