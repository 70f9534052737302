"""add card payment flags to transactions

Revision ID: 202602031500
Revises: 202601100900
Create Date: 2026-02-03 15:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "202602031500"
down_revision = "202601100900"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("transactions") as batch:
        batch.add_column(
            sa.Column(
                "is_card_payment",
                sa.Boolean(),
                nullable=False,
                server_default=sa.false(),
            )
        )
        batch.add_column(
            sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.true())
        )
    op.create_index(
        "ix_transactions_user_unpaid_card",
        "transactions",
        ["user_id", "is_card_payment", "is_paid"],
    )


def downgrade() -> None:
    op.drop_index("ix_transactions_user_unpaid_card", table_name="transactions")
    with op.batch_alter_table("transactions") as batch:
        batch.drop_column("is_paid")
        batch.drop_column("is_card_payment")
