"""initial ledger schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "groups",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False, server_default="split"),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("type in ('split','budget')", name="groups_type_check"),
    )

    op.create_table(
        "group_members",
        sa.Column("group_id", sa.Text(), sa.ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("member_id", sa.Text(), primary_key=True),
    )

    op.create_table(
        "group_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("group_id", sa.Text(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("payer", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("split_with", postgresql.ARRAY(sa.Text()), nullable=False, server_default="{}"),
        sa.Column("category", sa.Text(), nullable=False, server_default=""),
        sa.Column("description", sa.Text()),
        sa.Column("is_settlement", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("settlement_id", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("amount <> 0", name="group_transactions_amount_check"),
    )

    op.create_table(
        "settled_debts",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("group_id", sa.Text(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("from_member", sa.Text(), nullable=False),
        sa.Column("to_member", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("settled_by", sa.Text()),
        sa.CheckConstraint("amount > 0", name="settled_debts_amount_check"),
    )

    op.create_index("idx_group_transactions_group", "group_transactions", ["group_id"])
    op.create_index("idx_settled_debts_group", "settled_debts", ["group_id"])


def downgrade() -> None:
    op.drop_index("idx_settled_debts_group", table_name="settled_debts")
    op.drop_index("idx_group_transactions_group", table_name="group_transactions")

    op.drop_table("settled_debts")
    op.drop_table("group_transactions")
    op.drop_table("group_members")
    op.drop_table("groups")
