"""Wallet Bridge: wallet signature login and homeserver delegation directory."""

__version__ = "0.1.0"
