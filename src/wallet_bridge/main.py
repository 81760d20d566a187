# src/wallet_bridge/main.py
"""Main entry point for the Wallet Bridge application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wallet_bridge import __version__
from wallet_bridge.api.v1 import directory_router, login_router, nonce_router
from wallet_bridge.core.errors import WalletBridgeError
from wallet_bridge.core.settings import settings
from wallet_bridge.db.session import create_tables
from wallet_bridge.services.homeserver import HomeserverClient, get_session_provider

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Wallet signature login and homeserver delegation directory",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include API routers
app.include_router(nonce_router)
app.include_router(login_router)
app.include_router(directory_router)


@app.exception_handler(WalletBridgeError)
async def wallet_bridge_error_handler(request: Request, exc: WalletBridgeError) -> JSONResponse:
    """Render domain errors as ``{"errcode", "error", "kind"}``."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
async def on_startup() -> None:
    create_tables()
    if settings.wallet_auto_join_room:
        logger.info(
            "WALLET_AUTO_JOIN_ROOM=%s is reserved and currently has no effect",
            settings.wallet_auto_join_room,
        )
    logger.info(
        "Wallet auth %s for %s",
        "enabled" if settings.wallet_auth_enabled else "disabled",
        settings.server_name,
    )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    provider = get_session_provider()
    if isinstance(provider, HomeserverClient):
        await provider.close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "server_name": settings.server_name,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("wallet_bridge.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
