"""Wallet login endpoints.

``POST /_wallet/auth/nonce`` hands out a challenge; the client signs the
returned ``message`` and submits it to the Matrix-compatible login endpoint
under the custom wallet login type.
"""

from __future__ import annotations

from fastapi import APIRouter, status

from wallet_bridge.api.v1.dependencies import LoginOrchestratorDep
from wallet_bridge.core.errors import MissingParam, UnsupportedLoginType
from wallet_bridge.core.settings import settings
from wallet_bridge.schemas.auth import (
    LoginFlow,
    LoginFlowsResponse,
    LoginResponse,
    NonceRequest,
    NonceResponse,
    WalletLoginRequest,
)

PASSWORD_LOGIN_TYPE = "m.login.password"

nonce_router = APIRouter(prefix="/_wallet/auth", tags=["wallet-auth"])
login_router = APIRouter(prefix="/_matrix/client/v3", tags=["login"])


def _require(payload: WalletLoginRequest, field: str) -> str:
    value = getattr(payload, field)
    if not value:
        raise MissingParam(f"Missing required wallet auth field: {field}")
    return str(value)


@nonce_router.post(
    "/nonce",
    summary="Issue a wallet sign-in challenge",
    response_model=NonceResponse,
)
async def request_nonce(
    payload: NonceRequest,
    orchestrator: LoginOrchestratorDep,
) -> NonceResponse:
    """Return a fresh nonce and the exact message the wallet must sign."""
    grant = orchestrator.request_challenge(payload.address)
    return NonceResponse(
        nonce=grant.nonce,
        message=grant.message,
        expires_in_seconds=grant.expires_in_seconds,
    )


@login_router.get(
    "/login",
    summary="List supported login types",
    response_model=LoginFlowsResponse,
)
async def get_login_types(orchestrator: LoginOrchestratorDep) -> LoginFlowsResponse:
    """Advertise the wallet login type when wallet auth is enabled."""
    flows = [LoginFlow(type=PASSWORD_LOGIN_TYPE)]
    if orchestrator.enabled:
        flows.append(LoginFlow(type=settings.wallet_login_type))
    return LoginFlowsResponse(flows=flows)


@login_router.post(
    "/login",
    summary="Authenticate with a wallet signature",
    status_code=status.HTTP_200_OK,
    response_model=LoginResponse,
)
async def login(
    payload: WalletLoginRequest,
    orchestrator: LoginOrchestratorDep,
) -> LoginResponse:
    """Verify a signed challenge and return a session for the wallet's user."""
    if payload.type != settings.wallet_login_type:
        raise UnsupportedLoginType(f"Unsupported login type: {payload.type}")

    grant = await orchestrator.login(
        _require(payload, "address"),
        _require(payload, "signature"),
        _require(payload, "nonce"),
        device_id=payload.device_id,
        initial_device_display_name=payload.initial_device_display_name,
    )
    return LoginResponse(
        access_token=grant.access_token,
        user_id=grant.user_id,
        device_id=grant.device_id,
        home_server=grant.home_server,
    )
