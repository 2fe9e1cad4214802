"""Create the guests table.

Revision ID: 001_guests
Revises:
Create Date: 2026-10-19

One row per invited guest: identity, bearer code, RSVP answer, check-in
state and the public path of the QR invitation.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_guests"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "guests",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("unique_code", sa.String(32), nullable=False),
        # NULL until the guest answers
        sa.Column("attending", sa.Boolean(), nullable=True),
        sa.Column("guests_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "needs_accommodation",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("personal_welcome_message", sa.Text(), nullable=False),
        sa.Column(
            "has_checked_in",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("check_in_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("qr_code_url", sa.String(255), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "guests_count >= 0 AND guests_count <= 10",
            name="ck_guests_guests_count_range",
        ),
        sa.UniqueConstraint("email", name="uq_guests_email"),
        sa.UniqueConstraint("unique_code", name="uq_guests_unique_code"),
    )
    op.create_index("idx_guests_created_at", "guests", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_guests_created_at", table_name="guests")
    op.drop_table("guests")
