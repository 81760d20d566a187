"""Single-use login challenges for wallet signature authentication.

Each challenge moves ``issued -> consumed`` or ``issued -> expired`` and never
back. Expiry is detected lazily in :meth:`NonceStore.consume` and eagerly when
the store runs out of room.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, replace
from threading import Lock
from typing import Final

from wallet_bridge.core.errors import NonceAlreadyUsed, NonceExpired, NonceNotFound

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS: Final[int] = 300
DEFAULT_MAX_ENTRIES: Final[int] = 10_000
NONCE_NUM_BYTES: Final[int] = 32  # 256 bits, 64 hex characters

SIGN_MESSAGE_TEMPLATE: Final[str] = (
    "Sign in to {server_name}\n\n"
    "Nonce: {nonce}\n\n"
    "This signature will not trigger a blockchain transaction or cost any fees."
)

Clock = Callable[[], float]


def format_sign_message(server_name: str, nonce: str) -> str:
    """Return the human-readable text a wallet must sign for ``nonce``."""
    return SIGN_MESSAGE_TEMPLATE.format(server_name=server_name, nonce=nonce)


@dataclass(frozen=True)
class Challenge:
    """A nonce issued to one wallet address."""

    identity: str
    nonce: str
    issued_at: float
    expires_at: float
    message: str
    consumed: bool = False

    @property
    def message_bytes(self) -> bytes:
        return self.message.encode("utf-8")

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def expires_in(self, now: float) -> int:
        return max(0, int(self.expires_at - now))


class NonceStore:
    """Process-local registry of outstanding challenges keyed by ``(identity, nonce)``.

    ``issue``, ``consume`` and ``prune`` all run under one lock, so two
    concurrent consumes of the same nonce cannot both succeed and an eviction
    pass never races a consume.
    """

    def __init__(
        self,
        server_name: str,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Clock = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.server_name = server_name
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[tuple[str, str], Challenge] = OrderedDict()
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def issue(self, identity: str) -> Challenge:
        """Create and store a fresh challenge for ``identity``."""
        with self._lock:
            now = self._clock()
            if len(self._entries) >= self.max_entries:
                self._make_room(now)

            nonce = secrets.token_hex(NONCE_NUM_BYTES)
            while (identity, nonce) in self._entries:  # pragma: no cover - 2**-256
                nonce = secrets.token_hex(NONCE_NUM_BYTES)

            challenge = Challenge(
                identity=identity,
                nonce=nonce,
                issued_at=now,
                expires_at=now + self.ttl_seconds,
                message=format_sign_message(self.server_name, nonce),
            )
            self._entries[(identity, nonce)] = challenge
            return challenge

    def consume(self, identity: str, nonce: str) -> Challenge:
        """Mark a challenge as used and return it.

        Raises:
            NonceNotFound: No challenge with this nonce was issued to ``identity``
            NonceExpired: The challenge outlived its TTL
            NonceAlreadyUsed: The challenge was consumed before
        """
        key = (identity, nonce.strip().lower())
        with self._lock:
            challenge = self._entries.get(key)
            if challenge is None:
                raise NonceNotFound()
            if challenge.is_expired(self._clock()):
                raise NonceExpired()
            if challenge.consumed:
                raise NonceAlreadyUsed()

            consumed = replace(challenge, consumed=True)
            self._entries[key] = consumed
            return consumed

    def peek(self, identity: str, nonce: str) -> Challenge | None:
        """Return the stored challenge without changing its state."""
        with self._lock:
            return self._entries.get((identity, nonce))

    def prune(self) -> int:
        """Drop every expired challenge and return how many were removed."""
        with self._lock:
            return self._prune_expired(self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _prune_expired(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Pruned %d expired challenges", len(expired))
        return len(expired)

    def _make_room(self, now: float) -> None:
        self._prune_expired(now)
        evicted = 0
        # Insertion order is issue order, so the head is always the oldest.
        while len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)
            evicted += 1
        if evicted:
            logger.warning(
                "Nonce store at capacity (%d); evicted %d live challenges",
                self.max_entries,
                evicted,
            )
