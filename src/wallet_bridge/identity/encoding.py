"""Conversions between wallet addresses and Matrix-safe localparts.

Wallet addresses are base58 strings. Base58 is case-sensitive, while Matrix
localparts are lowercase-only, so lowercasing an address would fold distinct
keys onto the same user. The localpart is therefore the lowercase hex form of
the raw 32-byte key behind a short namespace tag; the base58 address is kept
for display.
"""

from __future__ import annotations

import re

import base58

from wallet_bridge.core.errors import MalformedAddress, MalformedIdentifier, UnknownNamespace

PUBKEY_LENGTH_BYTES = 32
LOCALPART_NAMESPACE = "sol_"

_HEX_LOCALPART = re.compile(r"^[0-9a-f]{64}$")
_BASE58_CHARS = frozenset(base58.BITCOIN_ALPHABET.decode("ascii"))


def is_base58(value: str) -> bool:
    """Return True if every character of ``value`` is in the Bitcoin base58 alphabet."""
    return all(character in _BASE58_CHARS for character in value)


def decode_address(address: str) -> bytes:
    """Decode a base58 address into exactly 32 raw key bytes."""
    if not is_base58(address):
        raise MalformedAddress("Address contains characters outside the base58 alphabet")
    try:
        raw = base58.b58decode(address)
    except ValueError as err:
        raise MalformedAddress(f"Invalid base58 address: {err}") from err
    if len(raw) != PUBKEY_LENGTH_BYTES:
        raise MalformedAddress(
            f"Address must decode to exactly {PUBKEY_LENGTH_BYTES} bytes, got {len(raw)}"
        )
    return raw


def encode_address(public_key: bytes) -> str:
    """Encode 32 raw key bytes as a base58 address."""
    if len(public_key) != PUBKEY_LENGTH_BYTES:
        raise MalformedAddress(f"Public keys must be {PUBKEY_LENGTH_BYTES} bytes")
    return base58.b58encode(public_key).decode("ascii")


def address_to_localpart(address: str) -> str:
    """Return the namespaced hex localpart for a base58 address."""
    return LOCALPART_NAMESPACE + decode_address(address).hex()


def localpart_to_address(localpart: str) -> str:
    """Invert :func:`address_to_localpart`."""
    if not localpart.startswith(LOCALPART_NAMESPACE):
        raise UnknownNamespace(f"Localpart must start with {LOCALPART_NAMESPACE!r}")
    hex_part = localpart[len(LOCALPART_NAMESPACE):]
    if not _HEX_LOCALPART.match(hex_part):
        raise MalformedIdentifier()
    return encode_address(bytes.fromhex(hex_part))


def user_id_for(address: str, server_name: str) -> str:
    """Build the full Matrix user ID for a wallet on ``server_name``."""
    return f"@{address_to_localpart(address)}:{server_name}"
