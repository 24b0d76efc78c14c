import asyncio
import re

import pytest

from conftest import DESTINATION, REP, SEED, StubRPC
from nanowallet.config import WalletConfig
from nanowallet.constants import ZERO_FRONTIER
from nanowallet.errors import (
    AccountError,
    AccountNotFoundError,
    CryptographicError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidSeedError,
    MissingConfigurationError,
    NetworkError,
    TransactionFailedError,
)
from nanowallet.models import PendingTransaction
from nanowallet.signer import ReceiveBlock, SendBlock
from nanowallet.wallet import Wallet

NOT_FOUND = {"error": "Account not found"}


def test_missing_urls_is_a_configuration_error(signer):
    with pytest.raises(MissingConfigurationError) as exc_info:
        Wallet(WalletConfig(rpc_urls=["http://rpc"]), signer, rpc=StubRPC())
    assert exc_info.value.code == "MISSING_CONFIG"


@pytest.mark.parametrize("seed", ["A" * 63, "G" * 64, "A" * 65, ""])
def test_bad_seed_rejected_at_construction(signer, seed):
    with pytest.raises(InvalidSeedError):
        Wallet(WalletConfig(rpc_urls=["r"], work_urls=["w"], seed=seed), signer, rpc=StubRPC())


def test_seed_is_case_insensitive(signer):
    Wallet(WalletConfig(rpc_urls=["r"], work_urls=["w"], seed="aB" * 32), signer, rpc=StubRPC())


async def test_generate_wallet(signer, rpc):
    wallet = Wallet(WalletConfig(rpc_urls=["r"], work_urls=["w"]), signer, rpc=rpc)

    result = await wallet.generate_wallet()

    assert re.fullmatch(r"[0-9A-F]{64}", result["seed"])
    assert result["address"].startswith("nano_")
    assert wallet.addresses == [result["address"]]
    assert signer.derive_calls == [(result["seed"], 0, 1)]


async def test_generate_accounts_requires_seed(signer, rpc):
    wallet = Wallet(WalletConfig(rpc_urls=["r"], work_urls=["w"]), signer, rpc=rpc)
    with pytest.raises(MissingConfigurationError):
        await wallet.generate_accounts(1)


async def test_derivation_index_is_contiguous(wallet, signer):
    first = await wallet.generate_accounts(3)
    assert len(set(first)) == 3
    assert wallet.last_index == 3

    second = await wallet.generate_accounts(2)
    assert wallet.last_index == 5
    assert signer.derive_calls == [(SEED, 0, 3), (SEED, 3, 5)]
    assert not set(first) & set(second)
    assert wallet.addresses == first + second


@pytest.mark.parametrize("count", [0, -1, 101])
async def test_invalid_account_count(wallet, count):
    with pytest.raises(AccountError, match="Invalid account count"):
        await wallet.generate_accounts(count)
    assert wallet.last_index == 0


async def test_address_prefix_override(signer, rpc):
    cfg = WalletConfig(rpc_urls=["r"], work_urls=["w"], seed=SEED, address_prefix="xdg_")
    wallet = Wallet(cfg, signer, rpc=rpc)

    [address] = await wallet.generate_accounts(1)

    assert address.startswith("xdg_")
    assert wallet.accounts[address].private_key == "PRIV0"


async def test_send_funds(wallet, rpc, signer):
    [source] = await wallet.generate_accounts(1)

    tx_hash = await wallet.send_funds(source, DESTINATION, "100")

    assert tx_hash == "TX1"
    assert rpc.actions() == ["account_info", "work_generate", "process"]
    assert rpc.calls[1] == ("work_generate", "F" * 64)
    assert rpc.calls[2][2] == "send"

    kind, block, key = signer.signed[0]
    assert kind == "send"
    assert key == "PRIV0"
    assert block == SendBlock(
        wallet_balance_raw="1000",
        from_address=source,
        to_address=DESTINATION,
        representative_address=REP,
        frontier="F" * 64,
        amount_raw="100",
        work="W",
    )


async def test_send_from_unopened_account_keeps_ledger_message(wallet, rpc):
    [source] = await wallet.generate_accounts(1)
    rpc.info = NOT_FOUND

    with pytest.raises(AccountError) as exc_info:
        await wallet.send_funds(source, DESTINATION, "100")

    assert str(exc_info.value) == "Account not found"
    assert rpc.actions() == ["account_info"]


async def test_send_without_hash_fails(wallet, rpc):
    [source] = await wallet.generate_accounts(1)
    rpc.process_result = {"error": "Fork"}

    with pytest.raises(TransactionFailedError) as exc_info:
        await wallet.send_funds(source, DESTINATION, "100")

    assert exc_info.value.code == "TX_FAILED"
    assert "Fork" in exc_info.value.message
    assert rpc.actions().count("process") == 1


@pytest.mark.parametrize("source,destination,amount,error", [
    ("xrb_1abc", DESTINATION, "100", InvalidAddressError),
    (None, "ban_1abc", "100", InvalidAddressError),
    (None, DESTINATION, "1.5", InvalidAmountError),
    (None, DESTINATION, "-1", InvalidAmountError),
    (None, DESTINATION, "", InvalidAmountError),
])
async def test_send_validation_happens_before_network(wallet, rpc, source, destination, amount, error):
    [ours] = await wallet.generate_accounts(1)
    with pytest.raises(error):
        await wallet.send_funds(source or ours, destination, amount)
    assert rpc.calls == []


@pytest.mark.parametrize("amount", ["abc", "1.5", ""])
async def test_receive_rejects_malformed_amount_before_network(wallet, rpc, signer, amount):
    [address] = await wallet.generate_accounts(1)

    with pytest.raises(InvalidAmountError):
        await wallet.receive_funds(address, PendingTransaction(hash="B" * 64, amount=amount))

    assert rpc.calls == []
    assert signer.signed == []


async def test_send_from_unmanaged_account(wallet, rpc):
    with pytest.raises(AccountNotFoundError) as exc_info:
        await wallet.send_funds(DESTINATION, DESTINATION, "1")
    assert exc_info.value.code == "ACCOUNT_NOT_FOUND"
    assert rpc.calls == []


async def test_signer_failure_is_cryptographic_error(wallet, rpc, signer):
    [source] = await wallet.generate_accounts(1)

    def broken(block, private_key):
        raise RuntimeError("bad key")

    signer.sign_send = broken

    with pytest.raises(CryptographicError) as exc_info:
        await wallet.send_funds(source, DESTINATION, "100")

    assert exc_info.value.code == "CRYPTO_ERROR"
    assert isinstance(exc_info.value.original_error, RuntimeError)
    assert "process" not in rpc.actions()
    assert not wallet.gate.is_busy(source)


async def test_derivation_failure_keeps_index(wallet, signer):
    def broken(seed, start, end):
        raise ValueError("unsupported seed")

    signer.derive_accounts = broken

    with pytest.raises(CryptographicError):
        await wallet.generate_accounts(2)
    assert wallet.last_index == 0
    assert wallet.accounts == {}


async def test_receive_into_existing_account(wallet, rpc, signer, pending):
    [address] = await wallet.generate_accounts(1)
    rpc.process_result = {"hash": "RX1"}

    assert await wallet.receive_funds(address, pending) == "RX1"

    kind, block, _ = signer.signed[0]
    assert kind == "receive"
    assert block == ReceiveBlock(
        wallet_balance_raw="1000",
        to_address=address,
        representative_address=REP,
        frontier="F" * 64,
        transaction_hash=pending.hash,
        amount_raw=pending.amount,
        work="W",
    )
    assert rpc.calls[1] == ("work_generate", "F" * 64)
    assert rpc.calls[2][2] == "receive"


async def test_receive_new_account_without_default_rep(wallet, rpc, pending):
    [address] = await wallet.generate_accounts(1)
    rpc.info = NOT_FOUND

    with pytest.raises(MissingConfigurationError) as exc_info:
        await wallet.receive_funds(address, pending)

    assert not isinstance(exc_info.value, (NetworkError, TransactionFailedError))
    assert "default_rep" in exc_info.value.message
    assert rpc.actions() == ["account_info"]


async def test_receive_opens_new_account(signer, pending):
    rpc = StubRPC(account_info=NOT_FOUND, process={"hash": "OPEN1"})
    cfg = WalletConfig(rpc_urls=["r"], work_urls=["w"], seed=SEED, default_rep=REP)
    wallet = Wallet(cfg, signer, rpc=rpc)
    [address] = await wallet.generate_accounts(1)

    assert await wallet.receive_funds(address, pending) == "OPEN1"

    _, block, _ = signer.signed[0]
    assert block.frontier == ZERO_FRONTIER
    assert block.wallet_balance_raw == "0"
    assert block.representative_address == REP
    # work is keyed on the public key when there is no previous block
    assert rpc.calls[1] == ("work_generate", wallet.accounts[address].public_key)


async def test_any_account_info_error_counts_as_new_account(signer, pending):
    rpc = StubRPC(account_info={"error": "Internal error"}, process={"hash": "OPEN1"})
    cfg = WalletConfig(rpc_urls=["r"], work_urls=["w"], seed=SEED, default_rep=REP)
    wallet = Wallet(cfg, signer, rpc=rpc)
    [address] = await wallet.generate_accounts(1)

    await wallet.receive_funds(address, pending)
    assert signer.signed[0][1].frontier == ZERO_FRONTIER


async def test_receive_unmanaged_account(wallet, pending):
    with pytest.raises(AccountNotFoundError):
        await wallet.receive_funds(DESTINATION, pending)


async def test_receive_all(wallet, rpc):
    [address] = await wallet.generate_accounts(1)
    rpc.pending = [PendingTransaction("H1", "1"), PendingTransaction("H2", "2")]
    rpc.process_result = lambda block, subtype: {"hash": "R-" + block["transaction_hash"]}

    assert await wallet.receive_all(address) == ["R-H1", "R-H2"]


async def test_same_account_operations_do_not_interleave(wallet, rpc):
    [source] = await wallet.generate_accounts(1)
    rpc.delay = 0.005
    counter = iter(range(100))
    rpc.process_result = lambda block, subtype: {"hash": f"TX{next(counter)}"}

    results = await asyncio.gather(*(wallet.send_funds(source, DESTINATION, str(n)) for n in (1, 2, 3)))

    assert results == ["TX0", "TX1", "TX2"]
    # each operation's read, work and submit appear back to back
    assert rpc.actions() == ["account_info", "work_generate", "process"] * 3
    submitted = [c[1]["amount_raw"] for c in rpc.calls if c[0] == "process"]
    assert submitted == ["1", "2", "3"]


async def test_distinct_accounts_interleave(wallet, rpc):
    a, b = await wallet.generate_accounts(2)
    rpc.delay = 0.005

    await asyncio.gather(wallet.send_funds(a, DESTINATION, "1"), wallet.send_funds(b, DESTINATION, "1"))

    assert rpc.actions()[:2] == ["account_info", "account_info"]


async def test_shutdown_clears_state(wallet, rpc):
    await wallet.generate_accounts(2)
    await wallet.shutdown()
    assert wallet.addresses == []
    # The wallet did not create the RPC client, so it leaves it open
    assert ("aclose",) not in rpc.calls


async def test_owned_rpc_is_closed(signer, config, monkeypatch):
    wallet = Wallet(config, signer)
    closed = []

    async def aclose():
        closed.append(True)

    monkeypatch.setattr(wallet.rpc, "aclose", aclose)
    async with wallet:
        pass
    assert closed == [True]


async def test_feed_watches_new_accounts(signer, rpc):
    cfg = WalletConfig(rpc_urls=["r"], work_urls=["w"], seed=SEED, ws_url="ws://127.0.0.1:9")
    wallet = Wallet(cfg, signer, rpc=rpc)

    addresses = await wallet.generate_accounts(2)

    # not connected yet, so the watch is only recorded for the next subscribe
    assert wallet.feed.subscriptions == addresses
    assert wallet.processor.enabled is True
    assert wallet.feed.subscription_message()["options"] == {"accounts": addresses}
