"""SQLAlchemy models backing the delegation ledger."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, LargeBinary, Text
from sqlalchemy.orm import Mapped, mapped_column

from wallet_bridge.db.session import Base
from wallet_bridge.db.time import utcnow


class LedgerAccount(Base):
    """Program-owned account holding raw record bytes at a derived address."""

    __tablename__ = "ledger_account"

    address: Mapped[bytes] = mapped_column(LargeBinary(32), primary_key=True)
    program_id: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
    lamports: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)


class LedgerBalance(Base):
    """Spendable balance and transaction sequence for a wallet."""

    __tablename__ = "ledger_balance"

    address: Mapped[bytes] = mapped_column(LargeBinary(32), primary_key=True)
    lamports: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    # Next sequence number a signed transaction from this wallet must carry.
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class LedgerTransaction(Base):
    """Append-only log of applied transactions."""

    __tablename__ = "ledger_transaction"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    signature: Mapped[bytes] = mapped_column(LargeBinary(64), unique=True, nullable=False)
    signer: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False, index=True)
    program_id: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
    account: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
    instruction: Mapped[str] = mapped_column(Text, nullable=False)
    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
