# nanowallet/ws.py
"""
WebSocket listener that:
1. Maintains a connection to the node's confirmation feed
2. Subscribes the full set of watched accounts every time the socket opens
3. Publishes raw frames to a queue for the confirmation processor
4. Handles reconnection with bounded exponential backoff, giving up after
   a fixed number of consecutive failures
"""
import asyncio
import json
import logging
from collections.abc import Iterable

import websockets
from websockets.exceptions import ConnectionClosed

import nanowallet.constants as C

log = logging.getLogger("nanowallet.ws")


class ConfirmationFeed:
    def __init__(
        self,
        url: str,
        queue: asyncio.Queue,
        *,
        subscribe_all: bool = False,
        max_retries: int = C.RECONNECT_RETRIES,
        min_delay: float = C.RECONNECT_MIN,
        max_delay: float = C.RECONNECT_MAX,
        min_uptime: float = C.RECONNECT_MIN_UPTIME,
    ) -> None:
        self.url = url
        self.queue = queue
        self.subscribe_all = subscribe_all
        self.max_retries = max_retries
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.min_uptime = min_uptime

        self.state = C.FeedState.DISCONNECTED
        # dict keeps subscription order stable across resends
        self._subscriptions: dict[str, None] = {}
        self._ws = None
        self._stop = asyncio.Event()

    @property
    def subscriptions(self) -> list[str]:
        return list(self._subscriptions)

    @property
    def is_open(self) -> bool:
        return self.state is C.FeedState.OPEN and self._ws is not None

    def subscription_message(self) -> dict:
        msg = {
            "action": "subscribe",
            "topic": C.Topic.CONFIRMATION,
            "ack": True,
        }
        if not self.subscribe_all:
            msg["options"] = {"accounts": self.subscriptions}
        return msg

    async def watch(self, addresses: Iterable[str]) -> None:
        """Add addresses to the subscription set.

        Sent right away when the socket is open, otherwise picked up by the
        full resend on the next connect.
        """
        for address in addresses:
            self._subscriptions[address] = None
        if self.is_open:
            await self._send_subscription()

    def clear(self) -> None:
        self._subscriptions.clear()

    async def _send_subscription(self) -> None:
        msg = self.subscription_message()
        log.info("Subscribing to confirmations for %d accounts", len(self._subscriptions))
        try:
            await self._ws.send(json.dumps(msg))
        except ConnectionClosed as e:
            # The run loop notices the close and resends everything on reconnect
            log.warning("Subscription not sent, connection closed: %s", e)

    async def run(self) -> None:
        """Connect, subscribe and forward frames until ``close()`` or retries run out."""
        loop = asyncio.get_running_loop()
        failures = 0
        delay = self.min_delay

        while not self._stop.is_set():
            self.state = C.FeedState.CONNECTING
            opened_at = None
            try:
                async with websockets.connect(
                    self.url,
                    ping_interval=20,
                    ping_timeout=20,
                    close_timeout=1,
                ) as ws:
                    self._ws = ws
                    if self._stop.is_set():
                        continue
                    self.state = C.FeedState.OPEN
                    log.info("WS connected: %s", self.url)
                    opened_at = loop.time()

                    await self._send_subscription()

                    async for raw in ws:
                        await self.queue.put(raw)

                    log.info("WS connection closed by peer")
            except asyncio.CancelledError:
                log.info("WS listener cancelled")
                raise
            except Exception as e:
                log.error("WS connection error: %s", e)
            finally:
                self._ws = None
                self.state = C.FeedState.DISCONNECTED

            # Don't reconnect if we're stopping
            if self._stop.is_set():
                break

            # Reset backoff only after a connection that stayed up
            if opened_at is not None and loop.time() - opened_at >= self.min_uptime:
                failures = 0
                delay = self.min_delay

            failures += 1
            if failures > self.max_retries:
                log.error("WS gave up after %d reconnect attempts", self.max_retries)
                break

            log.info("WS reconnecting in %.1fs (attempt %d/%d)", delay, failures, self.max_retries)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
            delay = min(delay * 2, self.max_delay)

        log.info("WS listener stopped")

    async def close(self) -> None:
        self._stop.set()
        ws = self._ws
        if ws is not None:
            await ws.close()
