import asyncio
import dataclasses
import logging
import re
import secrets

import nanowallet.constants as C
from nanowallet.assembler import TransactionAssembler
from nanowallet.config import WalletConfig, validate_seed
from nanowallet.errors import (
    AccountError,
    AccountNotFoundError,
    InvalidAddressError,
    InvalidAmountError,
    MissingConfigurationError,
)
from nanowallet.gate import AccountGate
from nanowallet.models import Account, PendingTransaction
from nanowallet.rpc import FailoverRPC
from nanowallet.signer import Signer, signer_errors
from nanowallet.tools import Tools
from nanowallet.ws import ConfirmationFeed
from nanowallet.ws_processor import ConfirmationProcessor

log = logging.getLogger("nanowallet.wallet")


class Wallet:
    def __init__(self, config: WalletConfig, signer: Signer, *, rpc: FailoverRPC | None = None):
        config.validate_required()
        self.config = config
        self.signer = signer

        self._owns_rpc = rpc is None
        self.rpc = rpc or FailoverRPC(config.rpc_urls, config.work_urls, headers=config.custom_headers)

        self._seed = config.seed
        self.accounts: dict[str, Account] = {}
        self.last_index = 0

        self.gate = AccountGate(config.max_pending)
        self.assembler = TransactionAssembler(self.rpc, signer, default_rep=config.default_rep)
        self.tools = Tools(config.decimal_places)

        self.feed: ConfirmationFeed | None = None
        self.processor: ConfirmationProcessor | None = None
        self._events: asyncio.Queue | None = None
        self._stop = asyncio.Event()
        self._tasks: list[asyncio.Task] = []
        if config.ws_url:
            self._events = asyncio.Queue(maxsize=C.FEED_QUEUE_SIZE)
            self.feed = ConfirmationFeed(config.ws_url, self._events, subscribe_all=config.subscribe_all)
            self.processor = ConfirmationProcessor(
                self.receive_funds,
                self.accounts,
                enabled=config.auto_receive_enabled,
            )

    @property
    def prefix(self) -> str:
        return self.config.address_prefix

    @property
    def addresses(self) -> list[str]:
        return list(self.accounts)

    async def __aenter__(self) -> "Wallet":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.shutdown()

    async def start(self) -> None:
        if self.feed is None or self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self.feed.run(), name="ws_listener"),
            asyncio.create_task(self.processor.run(self._events, self._stop), name="ws_processor"),
        ]
        log.info("Live feed started: %s (auto-receive %s)", self.config.ws_url,
                 "on" if self.processor.enabled else "off")

    # ============================================== #
    # ============== Account Management ============ #
    # ============================================== #

    async def generate_wallet(self) -> dict[str, str]:
        """Start over from a fresh random seed and derive its first account.

        The derivation index is not reset: the new seed continues from the
        current ``last_index``.
        """
        seed = secrets.token_hex(32).upper()
        self._seed = seed
        addresses = await self.generate_accounts(1)
        return {"seed": seed, "address": addresses[0]}

    async def generate_accounts(self, count: int) -> list[str]:
        if not self._seed:
            raise MissingConfigurationError("Wallet not initialized")
        validate_seed(self._seed)
        if not C.MIN_ACCOUNT_COUNT <= count <= C.MAX_ACCOUNT_COUNT:
            raise AccountError("Invalid account count")

        start, end = self.last_index, self.last_index + count
        with signer_errors("derive accounts"):
            derived = [self._format_account(acc) for acc in self.signer.derive_accounts(self._seed, start, end)]

        self.last_index = end
        for acc in derived:
            self.accounts[acc.address] = acc
        log.info("Derived accounts %d..%d", start, end - 1)

        addresses = [acc.address for acc in derived]
        if self.feed is not None:
            await self.feed.watch(addresses)
        return addresses

    def _format_account(self, account: Account) -> Account:
        if self.prefix == C.DEFAULT_PREFIX:
            return account
        return dataclasses.replace(account, address=account.address.replace(C.DEFAULT_PREFIX, self.prefix, 1))

    def _account_for(self, address: str) -> Account:
        account = self.accounts.get(address)
        if account is None:
            raise AccountNotFoundError(address)
        return account

    # ============================================== #
    # ================ Transactions ================ #
    # ============================================== #

    async def send_funds(self, source: str, destination: str, amount: str) -> str:
        self._validate_address(source)
        self._validate_address(destination)
        self._validate_raw_amount(amount)
        account = self._account_for(source)

        async with self.gate.hold(source):
            return await self.assembler.send(account, destination, amount)

    async def receive_funds(self, account: str, transaction: PendingTransaction) -> str:
        self._validate_address(account)
        self._validate_raw_amount(transaction.amount)
        acc = self._account_for(account)

        async with self.gate.hold(account):
            return await self.assembler.receive(acc, transaction)

    async def receivable(self, account: str) -> list[PendingTransaction]:
        self._validate_address(account)
        return await self.rpc.receivable(account)

    async def receive_all(self, account: str) -> list[str]:
        """Receive every receivable block of a managed account, oldest listing first."""
        self._account_for(account)
        hashes = []
        for pending in await self.receivable(account):
            hashes.append(await self.receive_funds(account, pending))
        return hashes

    # ============================================== #
    # ================= Validation ================= #
    # ============================================== #

    def _validate_address(self, address: str) -> None:
        if not isinstance(address, str) or not address.startswith(self.prefix):
            raise InvalidAddressError(address)

    def _validate_raw_amount(self, amount: str) -> None:
        if not isinstance(amount, str) or not re.fullmatch(C.RAW_AMOUNT_PATTERN, amount):
            raise InvalidAmountError(str(amount))

    # ============================================== #
    # =================== Cleanup ================== #
    # ============================================== #

    async def shutdown(self) -> None:
        log.info("Shutting down wallet...")
        self._stop.set()
        if self.feed is not None:
            await self.feed.close()
        if self.processor is not None:
            await self.processor.drain()

        for t in self._tasks:
            t.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        self.accounts.clear()
        if self.feed is not None:
            self.feed.clear()
        if self._owns_rpc:
            await self.rpc.aclose()
        log.info("Shutdown complete")
