"""ledger tables

Revision ID: 5c1e9a4b7d20
Revises:
Create Date: 2026-10-18 09:12:44.310518

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e9a4b7d20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the delegation ledger tables."""
    op.create_table(
        "ledger_account",
        sa.Column("address", sa.LargeBinary(length=32), nullable=False),
        sa.Column("program_id", sa.LargeBinary(length=32), nullable=False),
        sa.Column("lamports", sa.BigInteger(), nullable=False),
        sa.Column("data", sa.LargeBinary(), nullable=False),
        sa.PrimaryKeyConstraint("address"),
    )
    op.create_table(
        "ledger_balance",
        sa.Column("address", sa.LargeBinary(length=32), nullable=False),
        sa.Column("lamports", sa.BigInteger(), nullable=False),
        sa.Column("sequence", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("address"),
    )
    op.create_table(
        "ledger_transaction",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("signature", sa.LargeBinary(length=64), nullable=False),
        sa.Column("signer", sa.LargeBinary(length=32), nullable=False),
        sa.Column("program_id", sa.LargeBinary(length=32), nullable=False),
        sa.Column("account", sa.LargeBinary(length=32), nullable=False),
        sa.Column("instruction", sa.Text(), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("signature"),
    )
    op.create_index(
        "ix_ledger_transaction_signer", "ledger_transaction", ["signer"], unique=False
    )


def downgrade() -> None:
    """Drop the delegation ledger tables."""
    op.drop_index("ix_ledger_transaction_signer", table_name="ledger_transaction")
    op.drop_table("ledger_transaction")
    op.drop_table("ledger_balance")
    op.drop_table("ledger_account")
