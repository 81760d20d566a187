# src/wallet_bridge/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import directory_router, login_router, nonce_router

__all__ = ["directory_router", "login_router", "nonce_router"]
