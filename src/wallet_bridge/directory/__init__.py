"""On-ledger homeserver delegation directory."""

from .address import delegation_address, find_program_address
from .client import DirectoryClient, KeypairWallet, WalletSigner
from .codec import DelegationRecord, decode_record, encode_record
from .ledger import Ledger, Transaction
from .program import DelegationProgram, validate_endpoint

__all__ = [
    "DelegationProgram",
    "DelegationRecord",
    "DirectoryClient",
    "KeypairWallet",
    "Ledger",
    "Transaction",
    "WalletSigner",
    "decode_record",
    "delegation_address",
    "encode_record",
    "find_program_address",
    "validate_endpoint",
]
