# nanowallet/rpc.py
"""
JSON RPC client for a ledger node with ordered endpoint failover.

Two endpoint lists are kept: one for general actions and one for
work_generate, which is often served by dedicated work peers. A request is
tried against each endpoint of its list in order, once; the first response
that arrives over HTTP with a JSON body wins, whatever it says.
"""
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

import nanowallet.constants as C
from nanowallet.errors import NetworkError, WorkGenerationError
from nanowallet.models import PendingTransaction

log = logging.getLogger("nanowallet.rpc")


def _as_list(urls: str | Sequence[str] | None) -> list[str]:
    if urls is None:
        return []
    if isinstance(urls, str):
        return [urls]
    return list(urls)


def _exception_text(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    text = str(exc).strip()
    return text if text else repr(exc)


class FailoverRPC:
    def __init__(
        self,
        rpc_urls: str | Sequence[str],
        work_urls: str | Sequence[str],
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float = C.RPC_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.rpc_urls = _as_list(rpc_urls)
        self.work_urls = _as_list(work_urls)
        self._http = httpx.AsyncClient(headers=dict(headers or {}), timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "FailoverRPC":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def account_info(self, account: str) -> dict:
        """Balance, representative and frontier of ``account``.

        An unknown account comes back as ``{"error": ...}``; that is data, not a
        failure.
        """
        return await self.execute({
            "action": C.Action.ACCOUNT_INFO,
            "account": account,
            "representative": "true",
        })

    async def work_generate(self, block_hash: str) -> str:
        r = await self.execute({"action": C.Action.WORK_GENERATE, "hash": block_hash})
        work = r.get("work") if isinstance(r, dict) else None
        if work is None:
            raise WorkGenerationError(json.dumps(r))
        return work

    async def receivable(self, account: str) -> list[PendingTransaction]:
        r = await self.execute({
            "action": C.Action.PENDING,
            "account": account,
            "threshold": C.RECEIVABLE_THRESHOLD,
        })
        blocks = r.get("blocks") if isinstance(r, dict) else None
        # The node answers with "" instead of {} when nothing is pending
        if not blocks or not isinstance(blocks, dict):
            if isinstance(r, dict) and "error" in r:
                log.debug("receivable for %s returned error: %s", account, r["error"])
            return []
        return [PendingTransaction(hash=h, amount=str(amount)) for h, amount in blocks.items()]

    async def process(self, block: dict, subtype: C.Subtype | str) -> dict:
        return await self.execute({
            "action": C.Action.PROCESS,
            "json_block": "true",
            "subtype": str(subtype),
            "block": block,
        })

    async def execute(self, params: dict[str, Any]) -> Any:
        is_work = params.get("action") == C.Action.WORK_GENERATE
        urls = self.work_urls if is_work else self.rpc_urls
        last_error: BaseException | None = None

        for url in urls:
            try:
                resp = await self._http.post(url, json=params)
                resp.raise_for_status()
                return resp.json()
            except (httpx.HTTPError, ValueError) as e:
                last_error = e
                log.warning("Request to %s failed: %s", url, _exception_text(e))

        kind = "work" if is_work else "RPC"
        reason = _exception_text(last_error) if last_error is not None else "Unknown error"
        raise NetworkError(f"All {kind} servers failed. Last error: {reason}", original_error=last_error)
