"""Delegation directory RPC endpoints."""

from __future__ import annotations

import base64
import binascii

import base58
from fastapi import APIRouter

from wallet_bridge.api.v1.dependencies import DelegationProgramDep, LedgerDep
from wallet_bridge.core.errors import CodecError, FeatureDisabled, InvalidSignature
from wallet_bridge.core.settings import settings
from wallet_bridge.directory.ledger import Transaction
from wallet_bridge.identity.encoding import decode_address, encode_address, is_base58
from wallet_bridge.schemas.directory import (
    DelegationResponse,
    FaucetRequest,
    FaucetResponse,
    RecordAddressResponse,
    TransactionRequest,
    TransactionResponse,
)

router = APIRouter(prefix="/directory", tags=["directory"])


def _decode_b64(field: str, data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    try:
        return base64.b64decode(data + padding, validate=True)
    except (binascii.Error, ValueError) as err:
        raise CodecError(f"Invalid base64 encoding for {field}") from err


def _decode_signature(data: str) -> bytes:
    if not is_base58(data):
        raise InvalidSignature("Invalid base58 signature")
    try:
        return base58.b58decode(data)
    except ValueError as err:
        raise InvalidSignature("Invalid base58 signature") from err


@router.get(
    "/address/{owner}",
    summary="Derive a wallet's record address",
    response_model=RecordAddressResponse,
)
async def get_record_address(
    owner: str,
    program: DelegationProgramDep,
    ledger: LedgerDep,
) -> RecordAddressResponse:
    owner_bytes = decode_address(owner)
    address, bump = program.record_address(owner_bytes)
    return RecordAddressResponse(
        owner=encode_address(owner_bytes),
        record_address=encode_address(address),
        bump=bump,
        sequence=ledger.next_sequence(owner_bytes),
    )


@router.get(
    "/records/{owner}",
    summary="Look up a wallet's homeserver delegation",
    response_model=DelegationResponse,
)
async def get_delegation(owner: str, program: DelegationProgramDep) -> DelegationResponse:
    """Read the delegation record for ``owner``; no signature required."""
    record = program.fetch(owner)
    address, _ = program.record_address(record.owner)
    return DelegationResponse(
        owner=encode_address(record.owner),
        endpoint=record.endpoint,
        updated_at=record.updated_at,
        bump=record.bump,
        record_address=encode_address(address),
    )


@router.post(
    "/transactions",
    summary="Submit a signed register or unregister transaction",
    response_model=TransactionResponse,
)
async def submit_transaction(
    payload: TransactionRequest,
    program: DelegationProgramDep,
    ledger: LedgerDep,
) -> TransactionResponse:
    transaction = Transaction(
        program_id=program.program_id,
        signer=decode_address(payload.signer),
        account=decode_address(payload.record_address),
        instruction=_decode_b64("instruction", payload.instruction),
        sequence=payload.sequence,
        signature=_decode_signature(payload.signature),
    )
    transaction_id = ledger.submit(transaction)
    return TransactionResponse(transaction_id=transaction_id)


@router.post(
    "/airdrop",
    summary="Top a wallet up so it can pay record rent",
    response_model=FaucetResponse,
)
async def request_airdrop(payload: FaucetRequest, ledger: LedgerDep) -> FaucetResponse:
    """Credit the wallet up to ``LEDGER_FAUCET_LAMPORTS``; 404 when the faucet is off."""
    if settings.ledger_faucet_lamports <= 0:
        raise FeatureDisabled("The ledger faucet is not enabled on this server")
    owner = decode_address(payload.address)
    credited, balance = ledger.top_up(owner, settings.ledger_faucet_lamports)
    return FaucetResponse(address=encode_address(owner), credited=credited, balance=balance)
