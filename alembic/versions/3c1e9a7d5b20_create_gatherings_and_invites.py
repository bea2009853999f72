"""create gatherings and invites

Revision ID: 3c1e9a7d5b20
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import mysql

revision: str = "3c1e9a7d5b20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MEMBER_TABLES = (
    ("gathering_hosts", "user_id"),
    ("gathering_acceptors", "user_id"),
    ("gathering_posts", "post_id"),
)


def upgrade() -> None:
    op.create_table(
        "gatherings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("uuid", sa.String(26), nullable=False, unique=True),
        # Binary collation on MySQL keeps the (creator, title) constraint case-sensitive.
        sa.Column(
            "title",
            sa.String(255).with_variant(mysql.VARCHAR(255, collation="utf8mb4_bin"), "mysql"),
            nullable=False,
        ),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("creator", sa.String(64), nullable=False),
        sa.Column("canceled", sa.Boolean, nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.DateTime,
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime,
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.UniqueConstraint("creator", "title", name="uq_gathering_creator_title"),
    )
    op.create_index("ix_gatherings_updated_at", "gatherings", ["updated_at"])

    for table, column in MEMBER_TABLES:
        op.create_table(
            table,
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column(
                "gathering_id",
                sa.Integer,
                sa.ForeignKey("gatherings.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(column, sa.String(64), nullable=False),
            sa.Column(
                "created_at",
                sa.DateTime,
                nullable=False,
                server_default=sa.func.current_timestamp(),
            ),
            sa.UniqueConstraint("gathering_id", column, name=f"uq_{table}"),
        )
        op.create_index(f"ix_{table}_{column}", table, [column])

    op.create_table(
        "invites",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("uuid", sa.String(26), nullable=False, unique=True),
        sa.Column(
            "gathering_id",
            sa.Integer,
            sa.ForeignKey("gatherings.id"),
            nullable=False,
        ),
        sa.Column("from_user", sa.String(64), nullable=False),
        sa.Column("to_user", sa.String(64), nullable=False),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "created_at",
            sa.DateTime,
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        # One current record per (gathering, invitee); transitions pop before inserting.
        sa.UniqueConstraint("gathering_id", "to_user", name="uq_invites_gathering_to"),
    )
    op.create_index("ix_invites_to_user", "invites", ["to_user"])


def downgrade() -> None:
    op.drop_index("ix_invites_to_user", table_name="invites")
    op.drop_table("invites")
    for table, column in reversed(MEMBER_TABLES):
        op.drop_index(f"ix_{table}_{column}", table_name=table)
        op.drop_table(table)
    op.drop_index("ix_gatherings_updated_at", table_name="gatherings")
    op.drop_table("gatherings")
