"""users and contests tables

Revision ID: 5a1c2e7d9b04
Revises:
Create Date: 2025-07-20 10:12:44.218304

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5a1c2e7d9b04'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("uid", sa.String(128), nullable=False),
        sa.Column(
            "role",
            sa.Enum("user", "admin", name="userrole"),
            nullable=False,
            server_default="user",
        ),
        # Legacy credential column; never written or read by the API
        sa.Column("password", sa.Text, nullable=True),
        sa.Column("profile", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_updated", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.UniqueConstraint("uid", name="uq_users_uid"),
        sa.CheckConstraint("jsonb_typeof(profile) = 'object'", name="ck_users_profile_object"),
    )

    op.create_table(
        "contests",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("vanity", sa.String(255), nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("host", sa.String(64), nullable=False),
        sa.Column("duration", sa.Integer, nullable=False),  # minutes
        sa.Column("start_time_unix", sa.BigInteger, nullable=False),
        sa.Column("url", sa.Text, nullable=True),
        sa.UniqueConstraint("vanity", name="uq_contests_vanity"),
        sa.Index("ix_contests_start_time_unix", "start_time_unix"),
    )


def downgrade() -> None:
    op.drop_table("contests")
    op.drop_table("users")
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
