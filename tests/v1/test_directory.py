# tests/v1/test_directory.py
"""Tests for the delegation program running on the ledger."""

from __future__ import annotations

import pytest

from wallet_bridge.core.errors import (
    EmptyEndpoint,
    InsufficientFunds,
    InvalidEndpoint,
    InvalidSignature,
    NotFound,
    StaleTransaction,
    Unauthorized,
    UnknownInstruction,
)
from wallet_bridge.directory import (
    DelegationProgram,
    DirectoryClient,
    KeypairWallet,
    Ledger,
    Transaction,
    validate_endpoint,
)
from wallet_bridge.directory.codec import (
    encode_register_instruction,
    encode_unregister_instruction,
    record_space,
)
from tests.conftest import PROGRAM_ID, STARTING_LAMPORTS, TEST_LEDGER_TIME


def _rent(ledger: Ledger) -> int:
    return ledger.minimum_balance(record_space())


@pytest.mark.parametrize(
    "endpoint",
    ["matrix.org", "matrix.org:8448", "synapse.example.com", "a-b.c", "10.0.0.1:8008"],
)
def test_valid_endpoints(endpoint: str) -> None:
    assert validate_endpoint(endpoint) == endpoint


def test_empty_endpoint() -> None:
    with pytest.raises(EmptyEndpoint):
        validate_endpoint("")


@pytest.mark.parametrize(
    "endpoint",
    [
        "localhost",
        "https://matrix.org",
        "https://chat.example.com",
        "http:matrix.org",
        "matrix://matrix.org",
        "matrix .org",
        "matrix.org\n",
        "matrix.org/path",
        "user@matrix.org",
        "mätrix.org",
        "a" * 250 + ".org",
    ],
)
def test_invalid_endpoints(endpoint: str) -> None:
    with pytest.raises(InvalidEndpoint):
        validate_endpoint(endpoint)


def test_longest_endpoint_is_accepted() -> None:
    endpoint = "a" * 249 + ".org"
    assert len(endpoint) == 253
    assert validate_endpoint(endpoint) == endpoint


def test_rent_formula(ledger: Ledger) -> None:
    assert ledger.minimum_balance(306) == (128 + 306) * 3480 * 2


def test_register_and_lookup(
    directory: DirectoryClient,
    ledger: Ledger,
    wallet: KeypairWallet,
) -> None:
    directory.register(wallet, "matrix.org")

    assert directory.lookup(wallet.address) == "matrix.org"
    record = directory.fetch(wallet.address)
    assert record.owner == wallet.public_key
    assert record.updated_at == TEST_LEDGER_TIME
    _, bump = directory.program.record_address(wallet.public_key)
    assert record.bump == bump

    account = ledger.get_account(directory.record_address(wallet.public_key))
    assert account is not None
    assert len(account.data) == record_space()
    assert account.lamports == _rent(ledger)
    assert ledger.balance(wallet.public_key) == STARTING_LAMPORTS - _rent(ledger)
    assert ledger.next_sequence(wallet.public_key) == 1


def test_register_overwrites_in_place(
    directory: DirectoryClient,
    ledger: Ledger,
    wallet: KeypairWallet,
) -> None:
    directory.register(wallet, "first.example.com")
    directory.register(wallet, "second.example.com:8448")

    assert directory.lookup(wallet.address) == "second.example.com:8448"
    assert ledger.balance(wallet.public_key) == STARTING_LAMPORTS - _rent(ledger)
    assert ledger.next_sequence(wallet.public_key) == 2


def test_records_are_per_owner(
    directory: DirectoryClient,
    wallet: KeypairWallet,
    other_wallet: KeypairWallet,
) -> None:
    directory.register(wallet, "one.example.com")
    directory.register(other_wallet, "two.example.com")

    assert directory.lookup(wallet.address) == "one.example.com"
    assert directory.lookup(other_wallet.address) == "two.example.com"


def test_lookup_missing_record(directory: DirectoryClient, wallet: KeypairWallet) -> None:
    with pytest.raises(NotFound):
        directory.lookup(wallet.address)


def test_register_invalid_endpoint_on_ledger(
    directory: DirectoryClient,
    ledger: Ledger,
    wallet: KeypairWallet,
) -> None:
    transaction = directory.build_transaction(
        wallet.public_key, encode_register_instruction("https://matrix.org")
    )

    with pytest.raises(InvalidEndpoint):
        wallet.sign_and_submit(ledger, transaction)
    assert ledger.next_sequence(wallet.public_key) == 0
    assert ledger.balance(wallet.public_key) == STARTING_LAMPORTS


def test_cannot_write_other_owners_record(
    directory: DirectoryClient,
    ledger: Ledger,
    wallet: KeypairWallet,
    other_wallet: KeypairWallet,
) -> None:
    directory.register(wallet, "matrix.org")
    transaction = Transaction(
        program_id=directory.program.program_id,
        signer=other_wallet.public_key,
        account=directory.record_address(wallet.public_key),
        instruction=encode_register_instruction("evil.example.com"),
        sequence=ledger.next_sequence(other_wallet.public_key),
    )

    with pytest.raises(Unauthorized):
        other_wallet.sign_and_submit(ledger, transaction)
    assert directory.lookup(wallet.address) == "matrix.org"


def test_cannot_unregister_other_owners_record(
    directory: DirectoryClient,
    ledger: Ledger,
    wallet: KeypairWallet,
    other_wallet: KeypairWallet,
) -> None:
    directory.register(wallet, "matrix.org")
    transaction = Transaction(
        program_id=directory.program.program_id,
        signer=other_wallet.public_key,
        account=directory.record_address(wallet.public_key),
        instruction=encode_unregister_instruction(),
        sequence=ledger.next_sequence(other_wallet.public_key),
    )

    with pytest.raises(Unauthorized):
        other_wallet.sign_and_submit(ledger, transaction)
    assert directory.lookup(wallet.address) == "matrix.org"


def test_unregister_refunds_rent(
    directory: DirectoryClient,
    ledger: Ledger,
    wallet: KeypairWallet,
) -> None:
    directory.register(wallet, "matrix.org")
    directory.unregister(wallet)

    assert ledger.balance(wallet.public_key) == STARTING_LAMPORTS
    assert ledger.get_account(directory.record_address(wallet.public_key)) is None
    with pytest.raises(NotFound):
        directory.lookup(wallet.address)


def test_unregister_missing_record(
    directory: DirectoryClient,
    ledger: Ledger,
    wallet: KeypairWallet,
) -> None:
    with pytest.raises(NotFound):
        directory.unregister(wallet)
    assert ledger.next_sequence(wallet.public_key) == 0


def test_register_again_after_unregister(
    directory: DirectoryClient,
    wallet: KeypairWallet,
) -> None:
    directory.register(wallet, "old.example.com")
    directory.unregister(wallet)
    directory.register(wallet, "new.example.com")

    assert directory.lookup(wallet.address) == "new.example.com"


def test_replayed_transaction_is_stale(
    directory: DirectoryClient,
    ledger: Ledger,
    wallet: KeypairWallet,
) -> None:
    transaction = directory.build_transaction(
        wallet.public_key, encode_register_instruction("matrix.org")
    )
    signed = transaction.with_signature(wallet.sign_message(transaction.message()))

    ledger.submit(signed)
    with pytest.raises(StaleTransaction):
        ledger.submit(signed)


def test_future_sequence_is_rejected(
    directory: DirectoryClient,
    ledger: Ledger,
    wallet: KeypairWallet,
) -> None:
    transaction = Transaction(
        program_id=directory.program.program_id,
        signer=wallet.public_key,
        account=directory.record_address(wallet.public_key),
        instruction=encode_register_instruction("matrix.org"),
        sequence=5,
    )

    with pytest.raises(StaleTransaction):
        wallet.sign_and_submit(ledger, transaction)


def test_signature_by_wrong_key(
    directory: DirectoryClient,
    ledger: Ledger,
    wallet: KeypairWallet,
    other_wallet: KeypairWallet,
) -> None:
    transaction = directory.build_transaction(
        wallet.public_key, encode_register_instruction("matrix.org")
    )
    forged = transaction.with_signature(other_wallet.sign_message(transaction.message()))

    with pytest.raises(InvalidSignature):
        ledger.submit(forged)


def test_unfunded_wallet_cannot_register(
    directory: DirectoryClient,
    ledger: Ledger,
) -> None:
    pauper = KeypairWallet.generate()
    ledger.airdrop(pauper.public_key, _rent(ledger) - 1)

    with pytest.raises(InsufficientFunds):
        directory.register(pauper, "matrix.org")
    assert ledger.get_account(directory.record_address(pauper.public_key)) is None
    assert ledger.balance(pauper.public_key) == _rent(ledger) - 1


def test_unknown_instruction(
    directory: DirectoryClient,
    ledger: Ledger,
    wallet: KeypairWallet,
) -> None:
    transaction = directory.build_transaction(wallet.public_key, b"\x07" * 8)

    with pytest.raises(UnknownInstruction):
        wallet.sign_and_submit(ledger, transaction)


def test_unknown_program(ledger: Ledger, wallet: KeypairWallet) -> None:
    transaction = Transaction(
        program_id=bytes(32),
        signer=wallet.public_key,
        account=bytes(32),
        instruction=encode_register_instruction("matrix.org"),
        sequence=0,
    )

    with pytest.raises(NotFound):
        wallet.sign_and_submit(ledger, transaction)


def test_programs_do_not_share_records(
    ledger: Ledger,
    program: DelegationProgram,
    wallet: KeypairWallet,
) -> None:
    second_program = DelegationProgram(b"\x09" * 32, ledger)
    DirectoryClient(ledger, program).register(wallet, "one.example.com")
    DirectoryClient(ledger, second_program).register(wallet, "two.example.com")

    assert program.lookup(wallet.address) == "one.example.com"
    assert second_program.lookup(wallet.address) == "two.example.com"


def test_airdrop_rejects_negative(ledger: Ledger, wallet: KeypairWallet) -> None:
    with pytest.raises(ValueError):
        ledger.airdrop(wallet.public_key, -1)


def test_overwrite_refreshes_timestamp(session_factory) -> None:
    ticks = iter([1_000, 2_000])
    ledger = Ledger(session_factory, clock=lambda: next(ticks))
    client = DirectoryClient(ledger, DelegationProgram(PROGRAM_ID, ledger))
    owner = KeypairWallet.generate()
    ledger.airdrop(owner.public_key, STARTING_LAMPORTS)

    client.register(owner, "chat.example.com:8448")
    assert client.fetch(owner.address).updated_at == 1_000

    client.register(owner, "chat.example.org")
    record = client.fetch(owner.address)
    assert record.endpoint == "chat.example.org"
    assert record.updated_at == 2_000


def test_top_up_credits_only_the_shortfall(ledger: Ledger) -> None:
    fresh = KeypairWallet.generate()
    ledger.airdrop(fresh.public_key, 400)

    assert ledger.top_up(fresh.public_key, 1_000) == (600, 1_000)
    assert ledger.top_up(fresh.public_key, 1_000) == (0, 1_000)
    assert ledger.top_up(fresh.public_key, 10) == (0, 1_000)


def test_top_up_rejects_negative_target(ledger: Ledger, wallet: KeypairWallet) -> None:
    with pytest.raises(ValueError):
        ledger.top_up(wallet.public_key, -1)


def test_balance_row_creates_empty_row(session_factory) -> None:
    address = KeypairWallet.generate().public_key
    with session_factory() as session:
        row = Ledger.balance_row(session, address)
        assert (row.lamports, row.sequence) == (0, 0)
        assert Ledger.balance_row(session, address) is row
