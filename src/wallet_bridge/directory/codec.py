"""Binary layout of delegation records and directory instructions.

Account data::

    [8-byte discriminator][32-byte owner][u32 LE length][UTF-8 endpoint]
    [i64 LE updated_at][u8 bump]

Instruction data is an 8-byte discriminator followed by borsh-encoded
arguments. Discriminators are the first eight bytes of a SHA-256 over a
namespaced name, which keeps the layout compatible with Anchor programs.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass
from typing import Any

from wallet_bridge.core.errors import (
    InvalidUtf8,
    RecordTypeMismatch,
    TruncatedBuffer,
    UnknownInstruction,
)

DISCRIMINATOR_LENGTH = 8
PUBKEY_LENGTH = 32
LENGTH_PREFIX = 4
TIMESTAMP_LENGTH = 8
BUMP_LENGTH = 1
MAX_ENDPOINT_LENGTH = 253

MIN_RECORD_LENGTH = DISCRIMINATOR_LENGTH + PUBKEY_LENGTH + LENGTH_PREFIX

_U32 = struct.Struct("<I")
_I64 = struct.Struct("<q")


def _discriminator(namespace: str, name: str) -> bytes:
    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:DISCRIMINATOR_LENGTH]


DELEGATION_DISCRIMINATOR = _discriminator("account", "Delegation")
REGISTER_DISCRIMINATOR = _discriminator("global", "register")
UNREGISTER_DISCRIMINATOR = _discriminator("global", "unregister")


@dataclass(frozen=True)
class DelegationRecord:
    """A wallet's homeserver delegation as stored on the ledger."""

    owner: bytes
    endpoint: str
    updated_at: int
    bump: int


def encode_string(value: str) -> bytes:
    """Encode ``value`` as a u32 little-endian byte count plus UTF-8 bytes."""
    raw = value.encode("utf-8")
    return _U32.pack(len(raw)) + raw


def decode_string(buffer: bytes, offset: int = 0) -> tuple[str, int]:
    """Decode a length-prefixed string at ``offset``.

    Returns:
        Tuple of (value, bytes_consumed)
    """
    if len(buffer) - offset < LENGTH_PREFIX:
        raise TruncatedBuffer("Buffer too short for a string length prefix")
    (length,) = _U32.unpack_from(buffer, offset)
    start = offset + LENGTH_PREFIX
    end = start + length
    if end > len(buffer):
        raise TruncatedBuffer(
            f"String declares {length} bytes but only {len(buffer) - start} remain"
        )
    try:
        value = bytes(buffer[start:end]).decode("utf-8")
    except UnicodeDecodeError as err:
        raise InvalidUtf8(f"String field is not valid UTF-8: {err}") from err
    return value, LENGTH_PREFIX + length


def encode_record(record: DelegationRecord) -> bytes:
    if len(record.owner) != PUBKEY_LENGTH:
        raise ValueError("Owner must be a 32-byte public key")
    if not 0 <= record.bump <= 255:
        raise ValueError("Bump must fit in one byte")
    return b"".join(
        (
            DELEGATION_DISCRIMINATOR,
            record.owner,
            encode_string(record.endpoint),
            _I64.pack(record.updated_at),
            bytes([record.bump]),
        )
    )


def decode_record(buffer: bytes) -> DelegationRecord:
    """Decode account data produced by :func:`encode_record`.

    Trailing bytes are ignored, since accounts are allocated at their maximum
    size and may be longer than the current record.
    """
    if len(buffer) < MIN_RECORD_LENGTH:
        raise TruncatedBuffer(
            f"Record needs at least {MIN_RECORD_LENGTH} bytes, got {len(buffer)}"
        )
    if bytes(buffer[:DISCRIMINATOR_LENGTH]) != DELEGATION_DISCRIMINATOR:
        raise RecordTypeMismatch()

    offset = DISCRIMINATOR_LENGTH
    owner = bytes(buffer[offset:offset + PUBKEY_LENGTH])
    offset += PUBKEY_LENGTH

    endpoint, consumed = decode_string(buffer, offset)
    offset += consumed

    if len(buffer) < offset + TIMESTAMP_LENGTH + BUMP_LENGTH:
        raise TruncatedBuffer("Record ends before timestamp and bump")
    (updated_at,) = _I64.unpack_from(buffer, offset)
    offset += TIMESTAMP_LENGTH
    bump = buffer[offset]

    return DelegationRecord(owner=owner, endpoint=endpoint, updated_at=updated_at, bump=bump)


def record_space(max_endpoint_length: int = MAX_ENDPOINT_LENGTH) -> int:
    """Return the fixed account size reserved for a delegation record."""
    return (
        DISCRIMINATOR_LENGTH
        + PUBKEY_LENGTH
        + LENGTH_PREFIX
        + max_endpoint_length
        + TIMESTAMP_LENGTH
        + BUMP_LENGTH
    )


def encode_register_instruction(endpoint: str) -> bytes:
    return REGISTER_DISCRIMINATOR + encode_string(endpoint)


def encode_unregister_instruction() -> bytes:
    return UNREGISTER_DISCRIMINATOR


def decode_instruction(data: bytes) -> tuple[str, dict[str, Any]]:
    """Split instruction data into its name and decoded arguments."""
    if len(data) < DISCRIMINATOR_LENGTH:
        raise TruncatedBuffer("Instruction data shorter than its discriminator")
    discriminator = bytes(data[:DISCRIMINATOR_LENGTH])
    if discriminator == REGISTER_DISCRIMINATOR:
        endpoint, _ = decode_string(data, DISCRIMINATOR_LENGTH)
        return "register", {"endpoint": endpoint}
    if discriminator == UNREGISTER_DISCRIMINATOR:
        return "unregister", {}
    raise UnknownInstruction()
