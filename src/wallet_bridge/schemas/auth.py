"""Wallet login Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field


class NonceRequest(BaseModel):
    """Request to obtain a wallet sign-in challenge."""

    address: str = Field(..., description="Base58-encoded Ed25519 public key (32 bytes)")


class NonceResponse(BaseModel):
    """Challenge returned to clients before wallet login."""

    nonce: str = Field(..., description="Hex-encoded single-use nonce")
    message: str = Field(..., description="Exact UTF-8 text the wallet must sign")
    expires_in_seconds: int = Field(..., description="Seconds until the nonce expires")


class LoginFlow(BaseModel):
    """One supported login type."""

    type: str


class LoginFlowsResponse(BaseModel):
    """Login types advertised by this server."""

    flows: list[LoginFlow]


class WalletLoginRequest(BaseModel):
    """Login submission for the wallet signature login type.

    Unknown fields are tolerated because Matrix clients send extras such as
    ``identifier`` or ``refresh_token``.
    """

    type: str = Field(..., description="Login type tag")
    address: str | None = Field(None, description="Base58-encoded wallet address")
    signature: str | None = Field(None, description="Base58-encoded 64-byte signature")
    nonce: str | None = Field(None, description="Nonce that was signed")
    device_id: str | None = Field(None, description="Existing device to reuse")
    initial_device_display_name: str | None = Field(
        None,
        description="Display name for a newly created device",
    )

    model_config = ConfigDict(extra="allow")


class LoginResponse(BaseModel):
    """Session credential returned after a successful wallet login."""

    access_token: str = Field(..., description="Opaque access token")
    user_id: str = Field(..., description="Fully qualified user ID (@localpart:server)")
    device_id: str = Field(..., description="Device the token is bound to")
    home_server: str = Field(..., description="Server name that issued the session")
