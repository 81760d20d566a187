"""Client-side helpers for building and submitting directory transactions."""

from __future__ import annotations

from typing import Protocol

from wallet_bridge.directory.codec import (
    DelegationRecord,
    encode_register_instruction,
    encode_unregister_instruction,
)
from wallet_bridge.directory.ledger import Ledger, Transaction
from wallet_bridge.directory.program import DelegationProgram, validate_endpoint
from wallet_bridge.identity.encoding import encode_address
from wallet_bridge.services.crypto import CryptoService


class WalletSigner(Protocol):
    """A wallet that can sign messages and sign-and-submit transactions."""

    @property
    def public_key(self) -> bytes: ...

    def sign_message(self, message: bytes) -> bytes: ...

    def sign_and_submit(self, ledger: Ledger, transaction: Transaction) -> int: ...


class KeypairWallet:
    """Wallet backed by a raw Ed25519 seed held in memory."""

    def __init__(self, seed: bytes) -> None:
        self._seed = bytes(seed)
        self._public_key = CryptoService.public_key_from_seed(self._seed)

    @classmethod
    def generate(cls) -> KeypairWallet:
        seed, _ = CryptoService.generate_keypair()
        return cls(seed)

    @property
    def public_key(self) -> bytes:
        return self._public_key

    @property
    def address(self) -> str:
        return encode_address(self._public_key)

    def sign_message(self, message: bytes) -> bytes:
        return CryptoService.sign_message(self._seed, message)

    def sign_and_submit(self, ledger: Ledger, transaction: Transaction) -> int:
        signed = transaction.with_signature(self.sign_message(transaction.message()))
        return ledger.submit(signed)


class DirectoryClient:
    """Register, remove and look up homeserver delegations on a ledger."""

    def __init__(self, ledger: Ledger, program: DelegationProgram) -> None:
        self.ledger = ledger
        self.program = program

    def record_address(self, owner: bytes) -> bytes:
        address, _ = self.program.record_address(owner)
        return address

    def build_transaction(self, signer: bytes, instruction: bytes) -> Transaction:
        return Transaction(
            program_id=self.program.program_id,
            signer=signer,
            account=self.record_address(signer),
            instruction=instruction,
            sequence=self.ledger.next_sequence(signer),
        )

    def register(self, wallet: WalletSigner, endpoint: str) -> int:
        """Create or update ``wallet``'s delegation; returns the transaction id."""
        validate_endpoint(endpoint)
        transaction = self.build_transaction(
            wallet.public_key, encode_register_instruction(endpoint)
        )
        return wallet.sign_and_submit(self.ledger, transaction)

    def unregister(self, wallet: WalletSigner) -> int:
        transaction = self.build_transaction(wallet.public_key, encode_unregister_instruction())
        return wallet.sign_and_submit(self.ledger, transaction)

    def fetch(self, owner_address: str) -> DelegationRecord:
        return self.program.fetch(owner_address)

    def lookup(self, owner_address: str) -> str:
        return self.program.lookup(owner_address)
