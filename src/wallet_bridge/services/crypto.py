"""Cryptographic services for Wallet Bridge."""

from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

PUBKEY_LENGTH_BYTES = 32
SIGNATURE_LENGTH_BYTES = 64
SEED_LENGTH_BYTES = 32


def verify(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Verify an Ed25519 signature over raw bytes.

    Args:
        public_key: Raw 32-byte Ed25519 public key
        message: Exact bytes that were signed
        signature: Raw 64-byte signature

    Returns:
        True if the signature is valid, False for any malformed or forged input
    """
    if len(public_key) != PUBKEY_LENGTH_BYTES or len(signature) != SIGNATURE_LENGTH_BYTES:
        return False
    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, message)
        return True
    except (InvalidSignature, ValueError):
        return False


class CryptoService:
    """Service handling cryptographic operations."""

    @staticmethod
    def verify_signature_bytes(pubkey_bytes: bytes, message: bytes, signature: bytes) -> bool:
        """Verify an Ed25519 signature over raw bytes."""
        return verify(pubkey_bytes, message, signature)

    @staticmethod
    def generate_keypair() -> tuple[bytes, bytes]:
        """Generate a new Ed25519 key pair.

        Returns:
            Tuple of (seed_bytes, public_key_bytes)
        """
        private_key = Ed25519PrivateKey.generate()
        seed = private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return seed, public

    @staticmethod
    def public_key_from_seed(seed: bytes) -> bytes:
        """Derive the raw public key for a 32-byte seed."""
        private_key = CryptoService._load_private_key(seed)
        return private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    @staticmethod
    def sign_message(seed: bytes, message: bytes) -> bytes:
        """Sign a message with an Ed25519 private key seed.

        Solana-style 64-byte keypairs (seed followed by public key) are accepted too.

        Args:
            seed: Raw 32-byte seed or 64-byte keypair
            message: Message to sign

        Returns:
            Raw signature bytes
        """
        return CryptoService._load_private_key(seed).sign(message)

    @staticmethod
    def _load_private_key(seed: bytes) -> Ed25519PrivateKey:
        if len(seed) == SEED_LENGTH_BYTES * 2:
            seed = seed[:SEED_LENGTH_BYTES]
        try:
            return Ed25519PrivateKey.from_private_bytes(seed)
        except ValueError as err:
            raise ValueError(f"Invalid private key: {err}") from err
