"""Homeserver delegation program.

Each wallet owns at most one record, stored at the address derived from
``("delegation", owner)``. ``register`` creates or overwrites it,
``unregister`` closes it and refunds the rent, and anyone can read it back
with :meth:`DelegationProgram.lookup`.
"""

from __future__ import annotations

import logging
import re

from wallet_bridge.core.errors import EmptyEndpoint, InvalidEndpoint, NotFound, Unauthorized
from wallet_bridge.directory.address import delegation_address
from wallet_bridge.directory.codec import (
    MAX_ENDPOINT_LENGTH,
    DelegationRecord,
    decode_instruction,
    decode_record,
    encode_record,
    record_space,
)
from wallet_bridge.directory.ledger import InstructionContext, Ledger
from wallet_bridge.identity.encoding import decode_address, encode_address

logger = logging.getLogger(__name__)

_SCHEME_PREFIX = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_KNOWN_SCHEMES = ("http:", "https:", "matrix:", "ws:", "wss:")


def _is_hostname_char(character: str) -> bool:
    return character.isascii() and (character.isalnum() or character in ".-:")


def validate_endpoint(endpoint: str) -> str:
    """Check that ``endpoint`` is a bare hostname with an optional port.

    Raises:
        EmptyEndpoint: ``endpoint`` is empty
        InvalidEndpoint: Any other shape violation
    """
    if endpoint == "":
        raise EmptyEndpoint()
    if len(endpoint.encode("utf-8")) > MAX_ENDPOINT_LENGTH:
        raise InvalidEndpoint(
            f"Homeserver endpoint exceeds {MAX_ENDPOINT_LENGTH} bytes (max DNS name length)"
        )
    if any(character.isspace() for character in endpoint):
        raise InvalidEndpoint("Homeserver endpoint must not contain whitespace")
    lowered = endpoint.lower()
    if _SCHEME_PREFIX.match(endpoint) or "://" in endpoint or lowered.startswith(_KNOWN_SCHEMES):
        raise InvalidEndpoint("Homeserver endpoint must not carry a protocol prefix")
    if "." not in endpoint:
        raise InvalidEndpoint("Homeserver endpoint must contain a dot")
    if not all(_is_hostname_char(character) for character in endpoint):
        raise InvalidEndpoint("Homeserver endpoint contains characters not valid in a hostname")
    return endpoint


class DelegationProgram:
    """Instruction handlers and read helpers for delegation records."""

    def __init__(self, program_id: bytes, ledger: Ledger | None = None) -> None:
        self.program_id = bytes(program_id)
        self.ledger = ledger
        if ledger is not None:
            ledger.register_program(self.program_id, self)

    def record_address(self, owner: bytes) -> tuple[bytes, int]:
        return delegation_address(owner, self.program_id)

    def process(self, ctx: InstructionContext, instruction: bytes) -> str:
        name, args = decode_instruction(instruction)
        if name == "register":
            self.register(ctx, args["endpoint"])
        else:
            self.unregister(ctx)
        return name

    def _check_target(self, ctx: InstructionContext) -> int:
        """Ensure the transaction targets the signer's own record; return the bump."""
        expected, bump = self.record_address(ctx.signer)
        if ctx.account_address != expected:
            raise Unauthorized("Record address is not derived from the signing wallet")
        return bump

    def register(self, ctx: InstructionContext, endpoint: str) -> DelegationRecord:
        validate_endpoint(endpoint)
        bump = self._check_target(ctx)

        account = ctx.load_account()
        record = DelegationRecord(
            owner=ctx.signer,
            endpoint=endpoint,
            updated_at=ctx.now,
            bump=bump,
        )
        if account is None:
            ctx.create_account(encode_record(record), record_space())
            logger.info(
                "Registered delegation %s -> %s", encode_address(ctx.signer), endpoint
            )
            return record

        existing = decode_record(account.data)
        if existing.owner != ctx.signer:
            raise Unauthorized()
        ctx.write_account(account, encode_record(record))
        logger.info(
            "Updated delegation %s: %s -> %s",
            encode_address(ctx.signer),
            existing.endpoint,
            endpoint,
        )
        return record

    def unregister(self, ctx: InstructionContext) -> int:
        self._check_target(ctx)
        account = ctx.load_account()
        if account is None:
            raise NotFound()
        existing = decode_record(account.data)
        if existing.owner != ctx.signer:
            raise Unauthorized()
        refund = ctx.close_account(account, existing.owner)
        logger.info(
            "Removed delegation for %s, refunded %d lamports",
            encode_address(ctx.signer),
            refund,
        )
        return refund

    def fetch(self, owner_address: str) -> DelegationRecord:
        """Read the record for a base58 owner address.

        Raises:
            NotFound: No record exists for this owner
        """
        if self.ledger is None:
            raise RuntimeError("DelegationProgram has no ledger to read from")
        owner = decode_address(owner_address)
        address, _ = self.record_address(owner)
        account = self.ledger.get_account(address)
        if account is None or account.program_id != self.program_id:
            raise NotFound()
        return decode_record(account.data)

    def lookup(self, owner_address: str) -> str:
        """Return the endpoint a wallet has delegated to."""
        return self.fetch(owner_address).endpoint
