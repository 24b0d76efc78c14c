"""Build, sign and submit send/receive blocks from fresh ledger state.

Callers are expected to hold the account's gate for the whole call: the
frontier read here is only valid until the block built on it is processed.
"""
import json
import logging

import nanowallet.constants as C
from nanowallet.errors import AccountError, MissingConfigurationError, TransactionFailedError
from nanowallet.models import Account, AccountState, PendingTransaction
from nanowallet.rpc import FailoverRPC
from nanowallet.signer import ReceiveBlock, SendBlock, Signer, signer_errors

log = logging.getLogger("nanowallet.assembler")


class TransactionAssembler:
    def __init__(self, rpc: FailoverRPC, signer: Signer, *, default_rep: str | None = None):
        self.rpc = rpc
        self.signer = signer
        self.default_rep = default_rep

    async def send(self, account: Account, destination: str, amount: str) -> str:
        info = await self.rpc.account_info(account.address)
        # Sending needs an opened, funded account; there is no "new account" branch here
        if "error" in info:
            raise AccountError(str(info["error"]))

        state = AccountState.from_account_info(info)
        block = SendBlock(
            wallet_balance_raw=state.balance,
            from_address=account.address,
            to_address=destination,
            representative_address=state.representative,
            frontier=state.frontier,
            amount_raw=amount,
            work=await self.rpc.work_generate(state.frontier),
        )
        with signer_errors("sign send block"):
            signed = self.signer.sign_send(block, account.private_key)
        tx_hash = await self._submit(signed, C.Subtype.SEND)
        log.info("Sent %s raw %s -> %s: %s", amount, account.address, destination, tx_hash)
        return tx_hash

    async def receive(self, account: Account, pending: PendingTransaction) -> str:
        info = await self.rpc.account_info(account.address)
        block = await self.prepare_receive(account, pending, info)
        with signer_errors("sign receive block"):
            signed = self.signer.sign_receive(block, account.private_key)
        tx_hash = await self._submit(signed, C.Subtype.RECEIVE)
        log.info("Received %s raw into %s from %s: %s", pending.amount, account.address, pending.hash, tx_hash)
        return tx_hash

    async def prepare_receive(self, account: Account, pending: PendingTransaction, info: dict) -> ReceiveBlock:
        # NOTE: any error from account_info is read as "not opened yet", not only
        # "Account not found". An unrelated node error would take the open-block
        # path and be rejected by the ledger at process time.
        if "error" in info:
            if not self.default_rep:
                raise MissingConfigurationError("default_rep")
            log.debug("Opening %s with representative %s", account.address, self.default_rep)
            return ReceiveBlock(
                wallet_balance_raw="0",
                to_address=account.address,
                representative_address=self.default_rep,
                frontier=C.ZERO_FRONTIER,
                transaction_hash=pending.hash,
                amount_raw=pending.amount,
                # No previous block to key work against
                work=await self.rpc.work_generate(account.public_key),
            )

        state = AccountState.from_account_info(info)
        return ReceiveBlock(
            wallet_balance_raw=state.balance,
            to_address=account.address,
            representative_address=state.representative,
            frontier=state.frontier,
            transaction_hash=pending.hash,
            amount_raw=pending.amount,
            work=await self.rpc.work_generate(state.frontier),
        )

    async def _submit(self, signed: dict, subtype: C.Subtype) -> str:
        result = await self.rpc.process(signed, subtype)
        tx_hash = result.get("hash") if isinstance(result, dict) else None
        if not tx_hash:
            raise TransactionFailedError(json.dumps(result))
        return tx_hash
