"""Count failed guesses against each OTP challenge."""

import sqlalchemy as sa

from alembic import op

revision = "d4e8a1f37b20"
down_revision = "c07b9e3d15fa"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Add the failed-attempt counter."""
    with op.batch_alter_table("otp_challenges") as batch_op:
        batch_op.add_column(
            sa.Column(
                "attempts",
                sa.Integer(),
                nullable=False,
                server_default=sa.text("0"),
            ),
        )


def downgrade() -> None:
    """Drop the failed-attempt counter."""
    with op.batch_alter_table("otp_challenges") as batch_op:
        batch_op.drop_column("attempts")
