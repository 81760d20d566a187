"""Wallet login flow: challenge, proof, session.

The orchestrator keeps no per-request state of its own; the only thing that
survives between ``request_challenge`` and ``submit_proof`` is the entry in
the injected :class:`NonceStore`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import base58

from wallet_bridge.core.errors import (
    AuthenticationFailed,
    FeatureDisabled,
    InvalidSignature,
    NonceAlreadyUsed,
    NonceExpired,
    NonceNotFound,
)
from wallet_bridge.identity.encoding import (
    address_to_localpart,
    decode_address,
    encode_address,
    is_base58,
)
from wallet_bridge.services.crypto import SIGNATURE_LENGTH_BYTES, verify
from wallet_bridge.services.homeserver import SessionGrant, SessionProvider
from wallet_bridge.services.nonce_store import NonceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChallengeGrant:
    """What a client needs to sign in: the nonce and the exact text to sign."""

    nonce: str
    message: str
    expires_in_seconds: int


@dataclass(frozen=True)
class VerifiedWallet:
    """A wallet whose signature over a live challenge checked out."""

    address: str
    public_key: bytes
    localpart: str


def _decode_signature(signature: str) -> bytes:
    if not is_base58(signature):
        raise InvalidSignature("Signature contains characters outside the base58 alphabet")
    try:
        raw = base58.b58decode(signature)
    except ValueError as err:
        raise InvalidSignature("Invalid base58 signature") from err
    if len(raw) != SIGNATURE_LENGTH_BYTES:
        raise InvalidSignature(f"Signature must be exactly {SIGNATURE_LENGTH_BYTES} bytes")
    return raw


class LoginOrchestrator:
    """Ties the nonce store, the signature check and session minting together."""

    def __init__(
        self,
        nonce_store: NonceStore,
        session_provider: SessionProvider,
        *,
        enabled: bool = True,
    ) -> None:
        self.nonce_store = nonce_store
        self.session_provider = session_provider
        self.enabled = enabled

    def _ensure_enabled(self) -> None:
        if not self.enabled:
            raise FeatureDisabled()

    def request_challenge(self, address: str) -> ChallengeGrant:
        """Issue a challenge for ``address`` (a base58 public key)."""
        self._ensure_enabled()
        public_key = decode_address(address)
        identity = encode_address(public_key)
        challenge = self.nonce_store.issue(identity)
        return ChallengeGrant(
            nonce=challenge.nonce,
            message=challenge.message,
            expires_in_seconds=self.nonce_store.ttl_seconds,
        )

    def submit_proof(self, address: str, signature: str, nonce: str) -> VerifiedWallet:
        """Check a signed challenge.

        The nonce is consumed before the signature is checked, so a bad
        signature still burns it.

        Raises:
            AuthenticationFailed: The nonce is unknown, expired or already used
            InvalidSignature: The signature does not match the challenge text
        """
        self._ensure_enabled()
        public_key = decode_address(address)
        identity = encode_address(public_key)
        signature_bytes = _decode_signature(signature)

        try:
            challenge = self.nonce_store.consume(identity, nonce)
        except (NonceNotFound, NonceExpired, NonceAlreadyUsed) as err:
            logger.warning("Rejected wallet login for %s: %s", identity, err.kind)
            raise AuthenticationFailed() from err

        if not verify(public_key, challenge.message_bytes, signature_bytes):
            logger.warning("Wallet signature verification failed for %s", identity)
            raise InvalidSignature()

        localpart = address_to_localpart(identity)
        logger.info("Wallet auth verified: %s (localpart: %s)", identity, localpart)
        return VerifiedWallet(address=identity, public_key=public_key, localpart=localpart)

    async def mint_session(
        self,
        verified: VerifiedWallet,
        *,
        device_id: str | None = None,
        initial_device_display_name: str | None = None,
    ) -> SessionGrant:
        """Ask the session provider to log the verified wallet in."""
        return await self.session_provider.login(
            verified.localpart,
            display_name=verified.address,
            device_id=device_id,
            initial_device_display_name=initial_device_display_name,
        )

    async def login(
        self,
        address: str,
        signature: str,
        nonce: str,
        *,
        device_id: str | None = None,
        initial_device_display_name: str | None = None,
    ) -> SessionGrant:
        verified = self.submit_proof(address, signature, nonce)
        return await self.mint_session(
            verified,
            device_id=device_id,
            initial_device_display_name=initial_device_display_name,
        )
