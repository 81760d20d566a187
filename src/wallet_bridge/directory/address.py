"""Deterministic record addresses for the delegation directory.

A record address is a program-derived address: a SHA-256 digest of the seeds,
a one-byte bump, the program id and a fixed marker, chosen so that it is *not*
a valid Ed25519 point and therefore has no private key. Anyone holding the
owner key can recompute it, so no index is stored.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from functools import lru_cache

MAX_SEED_LENGTH = 32
MAX_SEEDS = 16
PDA_MARKER = b"ProgramDerivedAddress"
DELEGATION_SEED = b"delegation"

# Curve25519 field parameters, see RFC 8032 section 5.1.
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P
_SQRT_M1 = pow(2, (_P - 1) // 4, _P)


class AddressDerivationError(ValueError):
    """Raised when no off-curve address exists for the given seeds."""


def is_on_curve(candidate: bytes) -> bool:
    """Return True if ``candidate`` decompresses to a point on edwards25519."""
    if len(candidate) != 32:
        return False
    y = int.from_bytes(candidate, "little") & ((1 << 255) - 1)
    y %= _P

    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P

    x = pow(x2, (_P + 3) // 8, _P)
    if (x * x - x2) % _P == 0:
        return True
    x = x * _SQRT_M1 % _P
    return (x * x - x2) % _P == 0


def create_program_address(seeds: Sequence[bytes], program_id: bytes) -> bytes:
    """Hash ``seeds`` into an address owned by ``program_id``.

    Raises:
        AddressDerivationError: The seeds are too long or the digest lands on the curve
    """
    if len(seeds) > MAX_SEEDS:
        raise AddressDerivationError("Too many seeds")
    hasher = hashlib.sha256()
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            raise AddressDerivationError("Seed exceeds 32 bytes")
        hasher.update(seed)
    hasher.update(program_id)
    hasher.update(PDA_MARKER)
    digest = hasher.digest()
    if is_on_curve(digest):
        raise AddressDerivationError("Derived address is on the curve")
    return digest


@lru_cache(maxsize=4096)
def _find(seeds: tuple[bytes, ...], program_id: bytes) -> tuple[bytes, int]:
    for bump in range(255, -1, -1):
        try:
            return create_program_address((*seeds, bytes([bump])), program_id), bump
        except AddressDerivationError:
            continue
    raise AddressDerivationError("Unable to find a viable program address bump")


def find_program_address(seeds: Sequence[bytes], program_id: bytes) -> tuple[bytes, int]:
    """Return the first off-curve address searching bumps from 255 downwards."""
    return _find(tuple(bytes(seed) for seed in seeds), bytes(program_id))


def delegation_address(owner: bytes, program_id: bytes) -> tuple[bytes, int]:
    """Return ``(record_address, bump)`` for ``owner``'s delegation record."""
    return find_program_address((DELEGATION_SEED, owner), program_id)
