"""Error taxonomy shared by the login bridge and the delegation directory.

Every failure a caller can observe is a :class:`WalletBridgeError` carrying a
stable ``kind`` tag. The HTTP layer renders ``kind`` together with a
Matrix-style ``errcode`` so clients can branch on either.
"""

from __future__ import annotations

from fastapi import status


class WalletBridgeError(Exception):
    """Base class for all recoverable, per-request failures."""

    kind: str = "Unknown"
    errcode: str = "M_UNKNOWN"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"errcode": self.errcode, "error": self.message, "kind": self.kind}


# --- Input shape -------------------------------------------------------------------


class MalformedAddress(WalletBridgeError):
    """Raised when a base58 address is not a 32-byte public key."""

    kind = "MalformedAddress"
    errcode = "M_INVALID_PARAM"
    default_message = "Address must be a base58-encoded 32-byte public key"


class MalformedIdentifier(WalletBridgeError):
    """Raised when a localpart does not carry exactly 64 lowercase hex characters."""

    kind = "MalformedIdentifier"
    errcode = "M_INVALID_USERNAME"
    default_message = "Identifier must hold 64 lowercase hex characters"


class UnknownNamespace(WalletBridgeError):
    """Raised when a localpart was not produced by the identity encoder."""

    kind = "UnknownNamespace"
    errcode = "M_INVALID_USERNAME"
    default_message = "Identifier is outside the wallet namespace"


class MissingParam(WalletBridgeError):
    kind = "MissingParam"
    errcode = "M_MISSING_PARAM"
    default_message = "Missing required wallet auth field"


class UnsupportedLoginType(WalletBridgeError):
    kind = "UnsupportedLoginType"
    errcode = "M_UNKNOWN"
    default_message = "Unsupported login type"


# --- Challenge lifecycle -----------------------------------------------------------


class NonceNotFound(WalletBridgeError):
    kind = "NonceNotFound"
    errcode = "M_FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Nonce not found"


class NonceExpired(WalletBridgeError):
    kind = "NonceExpired"
    errcode = "M_FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Nonce has expired"


class NonceAlreadyUsed(WalletBridgeError):
    kind = "NonceAlreadyUsed"
    errcode = "M_FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Nonce has already been used"


class AuthenticationFailed(WalletBridgeError):
    """Generic login failure that hides which replay check tripped."""

    kind = "AuthenticationFailed"
    errcode = "M_FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Authentication failed"


class InvalidSignature(WalletBridgeError):
    kind = "InvalidSignature"
    errcode = "M_FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Signature verification failed"


class FeatureDisabled(WalletBridgeError):
    kind = "FeatureDisabled"
    errcode = "M_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Wallet authentication is not enabled on this server"


class SessionProviderError(WalletBridgeError):
    """Raised when the external messaging server cannot mint a session."""

    kind = "SessionProviderError"
    errcode = "M_UNKNOWN"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Session provider unavailable"


# --- Delegation directory ----------------------------------------------------------


class EmptyEndpoint(WalletBridgeError):
    kind = "EmptyEndpoint"
    errcode = "M_INVALID_PARAM"
    default_message = "Homeserver endpoint cannot be empty"


class InvalidEndpoint(WalletBridgeError):
    kind = "InvalidEndpoint"
    errcode = "M_INVALID_PARAM"
    default_message = (
        "Homeserver endpoint is not a valid hostname "
        "(must contain a dot, no spaces or protocol prefix)"
    )


class Unauthorized(WalletBridgeError):
    kind = "Unauthorized"
    errcode = "M_FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Signer does not own this record"


class NotFound(WalletBridgeError):
    kind = "NotFound"
    errcode = "M_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "No delegation record exists for this owner"


class InsufficientFunds(WalletBridgeError):
    kind = "InsufficientFunds"
    errcode = "M_LIMIT_EXCEEDED"
    default_message = "Signer balance does not cover the record rent"


class StaleTransaction(WalletBridgeError):
    """Raised when a transaction's sequence number was already spent."""

    kind = "StaleTransaction"
    errcode = "M_FORBIDDEN"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Transaction sequence is stale"


# --- Wire codec --------------------------------------------------------------------


class CodecError(WalletBridgeError):
    kind = "CodecError"
    errcode = "M_BAD_JSON"
    default_message = "Malformed binary payload"


class TruncatedBuffer(CodecError):
    kind = "TruncatedBuffer"
    default_message = "Buffer ends before the declared length"


class RecordTypeMismatch(CodecError):
    kind = "RecordTypeMismatch"
    default_message = "Account data does not hold a delegation record"


class UnknownInstruction(CodecError):
    kind = "UnknownInstruction"
    default_message = "Instruction discriminator is not recognised"


class InvalidUtf8(CodecError):
    kind = "InvalidUtf8"
    default_message = "String field is not valid UTF-8"
