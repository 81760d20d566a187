"""Delegation directory Pydantic schemas."""

from pydantic import BaseModel, Field


class RecordAddressResponse(BaseModel):
    """Where a wallet's delegation record lives and what sequence to sign next."""

    owner: str = Field(..., description="Base58 owner address")
    record_address: str = Field(..., description="Base58 program-derived record address")
    bump: int = Field(..., description="Bump seed used in the derivation")
    sequence: int = Field(..., description="Sequence number the next transaction must carry")


class DelegationResponse(BaseModel):
    """A decoded delegation record."""

    owner: str
    endpoint: str
    updated_at: int = Field(..., description="Unix timestamp of the last write")
    bump: int
    record_address: str


class TransactionRequest(BaseModel):
    """A directory transaction signed by the owning wallet."""

    signer: str = Field(..., description="Base58 signer address")
    record_address: str = Field(..., description="Base58 target record address")
    sequence: int = Field(..., ge=0, description="Signer's next sequence number")
    instruction: str = Field(..., description="Base64-encoded instruction data")
    signature: str = Field(..., description="Base58 signature over the transaction message")


class TransactionResponse(BaseModel):
    """Receipt for an applied transaction."""

    transaction_id: int


class FaucetRequest(BaseModel):
    """Request to fund a wallet so it can pay record rent."""

    address: str = Field(..., description="Base58 wallet address to fund")


class FaucetResponse(BaseModel):
    """Outcome of a faucet request."""

    address: str
    credited: int = Field(..., description="Lamports added by this request")
    balance: int = Field(..., description="Wallet balance after the top-up")
