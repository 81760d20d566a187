"""Wallet identity helpers."""

from .encoding import (
    LOCALPART_NAMESPACE,
    address_to_localpart,
    decode_address,
    encode_address,
    is_base58,
    localpart_to_address,
    user_id_for,
)

__all__ = [
    "LOCALPART_NAMESPACE",
    "address_to_localpart",
    "decode_address",
    "encode_address",
    "is_base58",
    "localpart_to_address",
    "user_id_for",
]
