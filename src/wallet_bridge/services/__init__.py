"""Business logic services for the Wallet Bridge application."""

from .crypto import CryptoService, verify
from .homeserver import HomeserverClient, LocalSessionProvider, SessionGrant, SessionProvider
from .login import ChallengeGrant, LoginOrchestrator, VerifiedWallet
from .nonce_store import Challenge, NonceStore

__all__ = [
    "Challenge",
    "ChallengeGrant",
    "CryptoService",
    "HomeserverClient",
    "LocalSessionProvider",
    "LoginOrchestrator",
    "NonceStore",
    "SessionGrant",
    "SessionProvider",
    "VerifiedWallet",
    "verify",
]
