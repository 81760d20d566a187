"""HTTP API for Wallet Bridge."""
