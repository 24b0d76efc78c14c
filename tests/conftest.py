import asyncio
import dataclasses

import pytest

from nanowallet.config import WalletConfig
from nanowallet.models import Account, PendingTransaction
from nanowallet.wallet import Wallet

SEED = "A" * 64
REP = "nano_1rm7exnpws53gjii1t57fjp8ya5nf3kq6sb31118cum6ejiqara1rwwzykki"
DESTINATION = "nano_34aywqqfop7fcdy9a8xsxsysa68peb3dhmcnicegzbapwtnj63dq5t7groun"


class FakeSigner:
    """Deterministic stand-in for the Nano crypto library."""

    def __init__(self):
        self.derive_calls: list[tuple[str, int, int]] = []
        self.signed: list[tuple[str, object, str]] = []

    def derive_accounts(self, seed, start, end):
        self.derive_calls.append((seed, start, end))
        return [
            Account(address=f"nano_{seed[:4].lower()}{i:060d}", public_key=f"PUB{i:061d}", private_key=f"PRIV{i}")
            for i in range(start, end)
        ]

    def sign_send(self, block, private_key):
        self.signed.append(("send", block, private_key))
        return {"type": "state", **dataclasses.asdict(block), "signature": f"SIG({private_key})"}

    def sign_receive(self, block, private_key):
        self.signed.append(("receive", block, private_key))
        return {"type": "state", **dataclasses.asdict(block), "signature": f"SIG({private_key})"}


class StubRPC:
    """In-memory ledger node. Every call yields to the loop once, like real I/O."""

    def __init__(self, *, account_info=None, work="W", process=None, receivable=None):
        self.info = account_info if account_info is not None else {
            "balance": "1000",
            "representative": REP,
            "frontier": "F" * 64,
        }
        self.work = work
        self.process_result = process if process is not None else {"hash": "TX1"}
        self.pending = receivable or []
        self.calls: list[tuple] = []
        self.delay = 0.0

    async def _io(self):
        await asyncio.sleep(self.delay)

    async def account_info(self, account):
        self.calls.append(("account_info", account))
        await self._io()
        info = self.info(account) if callable(self.info) else self.info
        return dict(info)

    async def work_generate(self, block_hash):
        self.calls.append(("work_generate", block_hash))
        await self._io()
        return self.work

    async def receivable(self, account):
        self.calls.append(("receivable", account))
        await self._io()
        return list(self.pending)

    async def process(self, block, subtype):
        self.calls.append(("process", block, str(subtype)))
        await self._io()
        result = self.process_result(block, subtype) if callable(self.process_result) else self.process_result
        return dict(result)

    async def aclose(self):
        self.calls.append(("aclose",))

    def actions(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def signer():
    return FakeSigner()


@pytest.fixture
def rpc():
    return StubRPC()


@pytest.fixture
def config():
    return WalletConfig(rpc_urls=["http://rpc"], work_urls=["http://work"], seed=SEED)


@pytest.fixture
def wallet(config, signer, rpc):
    return Wallet(config, signer, rpc=rpc)


@pytest.fixture
def pending():
    return PendingTransaction(hash="B" * 64, amount="500")
