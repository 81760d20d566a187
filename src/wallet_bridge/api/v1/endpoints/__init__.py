# src/wallet_bridge/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import login_router, nonce_router
from .directory import router as directory_router

__all__ = ["directory_router", "login_router", "nonce_router"]
