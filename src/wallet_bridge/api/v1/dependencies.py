"""Shared API dependencies: process-wide service instances built from settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

import base58
from fastapi import Depends

from wallet_bridge.core.settings import settings
from wallet_bridge.db.session import SessionLocal
from wallet_bridge.directory.ledger import Ledger
from wallet_bridge.directory.program import DelegationProgram
from wallet_bridge.services.homeserver import SessionProvider, get_session_provider
from wallet_bridge.services.login import LoginOrchestrator
from wallet_bridge.services.nonce_store import NonceStore


@lru_cache(maxsize=1)
def get_nonce_store() -> NonceStore:
    """Return the nonce store shared by every request in this process."""
    return NonceStore(
        settings.server_name,
        ttl_seconds=settings.nonce_ttl_seconds,
        max_entries=settings.nonce_max_entries,
    )


def get_session_provider_dep() -> SessionProvider:
    return get_session_provider()


NonceStoreDep = Annotated[NonceStore, Depends(get_nonce_store)]
SessionProviderDep = Annotated[SessionProvider, Depends(get_session_provider_dep)]


def get_login_orchestrator(
    nonce_store: NonceStoreDep,
    session_provider: SessionProviderDep,
) -> LoginOrchestrator:
    """Build the (stateless) orchestrator around the shared store and provider."""
    return LoginOrchestrator(
        nonce_store,
        session_provider,
        enabled=settings.wallet_auth_enabled,
    )


@lru_cache(maxsize=1)
def get_ledger() -> Ledger:
    return Ledger(SessionLocal, lamports_per_byte_year=settings.ledger_lamports_per_byte_year)


@lru_cache(maxsize=1)
def _program_for(ledger: Ledger) -> DelegationProgram:
    # Construction registers the program with the ledger, so build it once per ledger.
    return DelegationProgram(base58.b58decode(settings.directory_program_id), ledger)


def get_delegation_program(ledger: Annotated[Ledger, Depends(get_ledger)]) -> DelegationProgram:
    return _program_for(ledger)


LoginOrchestratorDep = Annotated[LoginOrchestrator, Depends(get_login_orchestrator)]
LedgerDep = Annotated[Ledger, Depends(get_ledger)]
DelegationProgramDep = Annotated[DelegationProgram, Depends(get_delegation_program)]
