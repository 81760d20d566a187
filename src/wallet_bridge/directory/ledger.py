"""Tamper-evident account ledger used by the delegation directory.

Programs own accounts at derived addresses; wallets hold balances and sign
transactions. :meth:`Ledger.submit` verifies the signature, then runs the
target program's handler inside one database transaction under a process
lock, so transactions are totally ordered and either apply completely or not
at all.
"""

from __future__ import annotations

import logging
import struct
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Protocol

from sqlalchemy.orm import Session, sessionmaker

from wallet_bridge.core.errors import (
    InsufficientFunds,
    InvalidSignature,
    NotFound,
    StaleTransaction,
    WalletBridgeError,
)
from wallet_bridge.db.time import unix_now
from wallet_bridge.models import LedgerAccount, LedgerBalance, LedgerTransaction
from wallet_bridge.services.crypto import verify

logger = logging.getLogger(__name__)

ACCOUNT_STORAGE_OVERHEAD = 128
EXEMPTION_THRESHOLD_YEARS = 2

_U64 = struct.Struct("<Q")


@dataclass(frozen=True)
class Transaction:
    """A single-instruction transaction against one program account."""

    program_id: bytes
    signer: bytes
    account: bytes
    instruction: bytes
    sequence: int
    signature: bytes = b""

    def message(self) -> bytes:
        """Return the exact bytes the signer must sign."""
        return b"".join(
            (
                self.program_id,
                self.account,
                self.signer,
                _U64.pack(self.sequence),
                self.instruction,
            )
        )

    def with_signature(self, signature: bytes) -> Transaction:
        return Transaction(
            program_id=self.program_id,
            signer=self.signer,
            account=self.account,
            instruction=self.instruction,
            sequence=self.sequence,
            signature=signature,
        )


@dataclass(frozen=True)
class AccountInfo:
    """Detached snapshot of a ledger account."""

    address: bytes
    program_id: bytes
    lamports: int
    data: bytes


class Program(Protocol):
    """On-ledger program invoked for transactions addressed to its id."""

    def process(self, ctx: InstructionContext, instruction: bytes) -> str:
        """Apply ``instruction`` and return the instruction name for the log."""
        ...


class InstructionContext:
    """Account access granted to a program while it handles one transaction."""

    def __init__(
        self,
        session: Session,
        ledger: Ledger,
        transaction: Transaction,
        now: int,
    ) -> None:
        self._session = session
        self._ledger = ledger
        self.transaction = transaction
        self.now = now

    @property
    def signer(self) -> bytes:
        return self.transaction.signer

    @property
    def account_address(self) -> bytes:
        return self.transaction.account

    @property
    def program_id(self) -> bytes:
        return self.transaction.program_id

    def load_account(self) -> LedgerAccount | None:
        return self._session.get(LedgerAccount, self.account_address)

    def create_account(self, data: bytes, space: int) -> LedgerAccount:
        """Allocate the target account, paying rent from the signer."""
        rent = self._ledger.minimum_balance(space)
        payer = self._ledger.balance_row(self._session, self.signer)
        if payer.lamports < rent:
            raise InsufficientFunds(
                f"Record rent is {rent} lamports, signer holds {payer.lamports}"
            )
        payer.lamports -= rent
        account = LedgerAccount(
            address=self.account_address,
            program_id=self.program_id,
            lamports=rent,
            data=data.ljust(space, b"\x00"),
        )
        self._session.add(account)
        return account

    def write_account(self, account: LedgerAccount, data: bytes) -> None:
        space = len(account.data)
        if len(data) > space:
            raise ValueError("Account data exceeds allocated space")
        account.data = data.ljust(space, b"\x00")

    def close_account(self, account: LedgerAccount, recipient: bytes) -> int:
        """Delete the account and credit its lamports to ``recipient``."""
        refund = account.lamports
        receiver = self._ledger.balance_row(self._session, recipient)
        receiver.lamports += refund
        self._session.delete(account)
        return refund


class Ledger:
    """SQLAlchemy-backed ledger holding program accounts and wallet balances."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        lamports_per_byte_year: int = 3480,
        clock: Callable[[], int] = unix_now,
    ) -> None:
        self._session_factory = session_factory
        self.lamports_per_byte_year = lamports_per_byte_year
        self._clock = clock
        self._programs: dict[bytes, Program] = {}
        self._lock = Lock()

    def register_program(self, program_id: bytes, program: Program) -> None:
        self._programs[bytes(program_id)] = program

    def minimum_balance(self, space: int) -> int:
        """Return the rent-exempt deposit for an account of ``space`` bytes."""
        return (
            (ACCOUNT_STORAGE_OVERHEAD + space)
            * self.lamports_per_byte_year
            * EXEMPTION_THRESHOLD_YEARS
        )

    @staticmethod
    def balance_row(session: Session, address: bytes) -> LedgerBalance:
        """Return the balance row for ``address``, creating an empty one if needed."""
        row = session.get(LedgerBalance, address)
        if row is None:
            row = LedgerBalance(address=address, lamports=0, sequence=0)
            session.add(row)
            session.flush()
        return row

    def airdrop(self, address: bytes, lamports: int) -> int:
        """Credit ``lamports`` to ``address`` and return the new balance."""
        if lamports < 0:
            raise ValueError("Airdrop amount must be non-negative")
        with self._lock, self._session_factory() as session:
            row = self.balance_row(session, address)
            row.lamports += lamports
            balance = row.lamports
            session.commit()
            return balance

    def top_up(self, address: bytes, target: int) -> tuple[int, int]:
        """Credit ``address`` up to ``target`` lamports.

        Returns:
            Tuple of (lamports_credited, new_balance)
        """
        if target < 0:
            raise ValueError("Top-up target must be non-negative")
        with self._lock, self._session_factory() as session:
            row = self.balance_row(session, address)
            credited = max(0, target - row.lamports)
            row.lamports += credited
            balance = row.lamports
            session.commit()
        if credited:
            logger.info("Faucet credited %d lamports", credited)
        return credited, balance

    def balance(self, address: bytes) -> int:
        with self._session_factory() as session:
            row = session.get(LedgerBalance, address)
            return row.lamports if row else 0

    def next_sequence(self, address: bytes) -> int:
        with self._session_factory() as session:
            row = session.get(LedgerBalance, address)
            return row.sequence if row else 0

    def get_account(self, address: bytes) -> AccountInfo | None:
        with self._session_factory() as session:
            account = session.get(LedgerAccount, address)
            if account is None:
                return None
            return AccountInfo(
                address=account.address,
                program_id=account.program_id,
                lamports=account.lamports,
                data=bytes(account.data),
            )

    def submit(self, transaction: Transaction) -> int:
        """Verify and apply ``transaction``; return its log id.

        Raises:
            InvalidSignature: The signer did not sign this transaction
            StaleTransaction: The sequence number is not the signer's next one
            NotFound: No program is registered under ``program_id``
            WalletBridgeError: Any failure raised by the program handler
        """
        if not verify(transaction.signer, transaction.message(), transaction.signature):
            raise InvalidSignature("Transaction signature does not match signer")

        program = self._programs.get(bytes(transaction.program_id))
        if program is None:
            raise NotFound("No program is deployed at this address")

        with self._lock, self._session_factory() as session:
            try:
                signer_row = self.balance_row(session, transaction.signer)
                if transaction.sequence != signer_row.sequence:
                    raise StaleTransaction(
                        f"Expected sequence {signer_row.sequence}, got {transaction.sequence}"
                    )

                ctx = InstructionContext(session, self, transaction, self._clock())
                name = program.process(ctx, transaction.instruction)

                signer_row.sequence += 1
                entry = LedgerTransaction(
                    signature=transaction.signature,
                    signer=transaction.signer,
                    program_id=transaction.program_id,
                    account=transaction.account,
                    instruction=name,
                )
                session.add(entry)
                session.commit()
            except WalletBridgeError as err:
                session.rollback()
                logger.info("Ledger transaction rejected: %s", err.kind)
                raise
            except Exception:
                session.rollback()
                logger.error("Ledger transaction failed unexpectedly", exc_info=True)
                raise
            logger.debug("Applied %s transaction %d", name, entry.id)
            return entry.id
