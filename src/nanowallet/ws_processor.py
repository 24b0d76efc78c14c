# nanowallet/ws_processor.py
"""
Confirmation processor that consumes raw frames from the WS listener queue
and turns confirmed sends to our accounts into receive blocks.

This is the bridge between the passive WS listener and the wallet's receive
path. Nothing waits on the outcome of an auto-receive, so every failure past
the dedup step is logged and dropped here.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping

import nanowallet.constants as C
from nanowallet.cache import ProcessedHashCache
from nanowallet.errors import WebSocketMessageError
from nanowallet.models import Account, PendingTransaction, parse_confirmation

log = logging.getLogger("nanowallet.ws_processor")

ReceiveFn = Callable[[str, PendingTransaction], Awaitable[str]]


class ConfirmationProcessor:
    def __init__(
        self,
        receive: ReceiveFn,
        accounts: Mapping[str, Account],
        *,
        enabled: bool = True,
        cache: ProcessedHashCache | None = None,
    ) -> None:
        self.receive = receive
        self.accounts = accounts
        self.enabled = enabled
        self.cache = cache or ProcessedHashCache()
        self._tasks: set[asyncio.Task] = set()
        self.processed_count = 0

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def handle(self, raw: str | bytes) -> asyncio.Task | None:
        """Filter one frame and schedule an auto-receive for it if it qualifies.

        Runs without suspending, so the dedup check and insert cannot
        interleave with another frame. Raises ``WebSocketMessageError`` for
        frames that are not a JSON object of the expected shape.
        """
        # Expire before parsing so garbage frames still keep the cache bounded
        self.cache.purge()

        msg = parse_confirmation(raw)
        if msg.topic != C.Topic.CONFIRMATION or msg.message is None:
            log.debug("WS non-confirmation frame ignored")
            return None

        body = msg.message
        if body.block.subtype != C.Subtype.SEND:
            return None

        if not self.enabled:
            return None

        if not self.cache.add(body.hash):
            log.debug("WS duplicate confirmation %s ignored", body.hash)
            return None

        account = self.accounts.get(body.block.link_as_account or "")
        if account is None:
            return None

        pending = PendingTransaction(hash=body.hash, amount=body.amount)
        task = asyncio.create_task(self._auto_receive(account.address, pending), name=f"receive-{body.hash[:8]}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _auto_receive(self, address: str, pending: PendingTransaction) -> None:
        try:
            tx_hash = await self.receive(address, pending)
            self.processed_count += 1
            log.info("Auto-received %s into %s: %s", pending.hash, address, tx_hash)
        except Exception as e:
            log.error("Auto-receive failed for %s: %s", address, e)

    async def run(self, queue: asyncio.Queue, stop: asyncio.Event) -> None:
        """Consume frames from the listener queue until ``stop`` is set."""
        log.info("WS confirmation processor starting")
        try:
            while not stop.is_set():
                try:
                    # Wait with timeout so we can check stop signal
                    raw = await asyncio.wait_for(queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue

                try:
                    self.handle(raw)
                except WebSocketMessageError as e:
                    log.warning("Error handling WebSocket message: %s", e)
                except Exception as e:
                    log.error("Error processing WS frame: %s", e, exc_info=True)
        except asyncio.CancelledError:
            log.info("WS confirmation processor cancelled")
            raise
        finally:
            log.info("WS confirmation processor stopped (%d auto-receives)", self.processed_count)

    async def drain(self) -> None:
        """Wait for in-flight auto-receives; they are never cancelled midway."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
