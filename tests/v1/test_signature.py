# tests/v1/test_signature.py
"""Tests for Ed25519 verification helpers."""

from __future__ import annotations

import pytest
from nacl.signing import SigningKey

from wallet_bridge.services.crypto import CryptoService, verify

MESSAGE = b"Sign in to example.org\n\nNonce: 00ff"


def _flip_bit(data: bytes, index: int) -> bytes:
    mutated = bytearray(data)
    mutated[index // 8] ^= 1 << (index % 8)
    return bytes(mutated)


def test_verify_accepts_nacl_signature(signing_key: SigningKey) -> None:
    signature = signing_key.sign(MESSAGE).signature
    assert verify(signing_key.verify_key.encode(), MESSAGE, signature) is True


@pytest.mark.parametrize("bit", [0, 7, 255, 511])
def test_verify_rejects_flipped_signature_bit(signing_key: SigningKey, bit: int) -> None:
    signature = signing_key.sign(MESSAGE).signature
    assert verify(signing_key.verify_key.encode(), MESSAGE, _flip_bit(signature, bit)) is False


@pytest.mark.parametrize("bit", [0, 9, 100])
def test_verify_rejects_flipped_message_bit(signing_key: SigningKey, bit: int) -> None:
    signature = signing_key.sign(MESSAGE).signature
    assert verify(signing_key.verify_key.encode(), _flip_bit(MESSAGE, bit), signature) is False


def test_verify_rejects_other_key(signing_key: SigningKey) -> None:
    signature = signing_key.sign(MESSAGE).signature
    other = SigningKey.generate().verify_key.encode()
    assert verify(other, MESSAGE, signature) is False


@pytest.mark.parametrize(
    ("pubkey_length", "signature_length"),
    [(31, 64), (33, 64), (32, 63), (32, 65), (0, 0)],
)
def test_verify_rejects_wrong_lengths(pubkey_length: int, signature_length: int) -> None:
    assert verify(b"\x01" * pubkey_length, MESSAGE, b"\x02" * signature_length) is False


def test_sign_message_matches_nacl() -> None:
    seed, public = CryptoService.generate_keypair()
    nacl_key = SigningKey(seed)

    assert nacl_key.verify_key.encode() == public
    assert CryptoService.sign_message(seed, MESSAGE) == nacl_key.sign(MESSAGE).signature


def test_sign_message_accepts_full_keypair() -> None:
    seed, public = CryptoService.generate_keypair()
    keypair = seed + public

    signature = CryptoService.sign_message(keypair, MESSAGE)
    assert CryptoService.verify_signature_bytes(public, MESSAGE, signature)


def test_public_key_from_seed() -> None:
    seed, public = CryptoService.generate_keypair()
    assert CryptoService.public_key_from_seed(seed) == public


def test_invalid_seed_raises() -> None:
    with pytest.raises(ValueError):
        CryptoService.sign_message(b"short", MESSAGE)
