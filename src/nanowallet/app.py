import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

import nanowallet.constants as C
from nanowallet.config import load_config
from nanowallet.errors import (
    AccountNotFoundError,
    CapacityError,
    ConfigurationError,
    CryptographicError,
    NetworkError,
    TransactionError,
    ValidationError,
    WalletError,
)
from nanowallet.logging_config import setup_logging
from nanowallet.models import PendingTransaction
from nanowallet.signer import load_signer
from nanowallet.wallet import Wallet

log = logging.getLogger("nanowallet.app")

# Most specific first
ERROR_STATUS: list[tuple[type[WalletError], int]] = [
    (AccountNotFoundError, 404),
    (ValidationError, 422),
    (ConfigurationError, 400),
    (CapacityError, 503),
    (NetworkError, 502),
    (TransactionError, 409),
    (CryptographicError, 500),
]


def status_for(exc: WalletError) -> int:
    for cls, status in ERROR_STATUS:
        if isinstance(exc, cls):
            return status
    return 400


def build_wallet() -> Wallet:
    cfg = load_config()
    return Wallet(cfg, load_signer(cfg.signer))


r_wallet = APIRouter(tags=["Wallet"])
r_accounts = APIRouter(prefix="/accounts", tags=["Accounts"])
r_tx = APIRouter(tags=["Transactions"])


class GenerateAccountsReq(BaseModel):
    count: int = Field(default=1, ge=C.MIN_ACCOUNT_COUNT, le=C.MAX_ACCOUNT_COUNT)


class SendReq(BaseModel):
    source: str
    destination: str
    amount: str  # raw


class ReceiveReq(BaseModel):
    account: str
    hash: str
    amount: str  # raw


class TxResp(BaseModel):
    hash: str


def _wallet(request: Request) -> Wallet:
    return request.app.state.wallet


@r_wallet.get("/health")
def health():
    return {"status": "ok"}


@r_wallet.post("/wallet")
async def generate_wallet(request: Request):
    return await _wallet(request).generate_wallet()


@r_accounts.get("")
async def list_accounts(request: Request) -> list[str]:
    return _wallet(request).addresses


@r_accounts.post("")
async def generate_accounts(req: GenerateAccountsReq, request: Request) -> list[str]:
    return await _wallet(request).generate_accounts(req.count)


@r_accounts.get("/{address}/receivable")
async def receivable(address: str, request: Request):
    pending = await _wallet(request).receivable(address)
    return [{"hash": p.hash, "amount": p.amount} for p in pending]


@r_accounts.post("/{address}/receive")
async def receive_all(address: str, request: Request) -> list[str]:
    return await _wallet(request).receive_all(address)


@r_tx.post("/payment", response_model=TxResp)
async def send_payment(req: SendReq, request: Request):
    tx_hash = await _wallet(request).send_funds(req.source, req.destination, req.amount)
    return {"hash": tx_hash}


@r_tx.post("/receive", response_model=TxResp)
async def receive_payment(req: ReceiveReq, request: Request):
    pending = PendingTransaction(hash=req.hash, amount=req.amount)
    tx_hash = await _wallet(request).receive_funds(req.account, pending)
    return {"hash": tx_hash}


async def wallet_error_handler(request: Request, exc: WalletError) -> JSONResponse:
    log.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_for(exc), content={"error": exc.code, "detail": exc.message})


def create_app(wallet: Wallet | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if wallet is None:
            setup_logging()
            app.state.wallet = build_wallet()
        else:
            app.state.wallet = wallet
        await app.state.wallet.start()
        log.info("Wallet service ready")
        try:
            yield
        finally:
            await app.state.wallet.shutdown()

    app = FastAPI(title="Nano Wallet", lifespan=lifespan)
    app.add_exception_handler(WalletError, wallet_error_handler)
    app.include_router(r_wallet)
    app.include_router(r_accounts)
    app.include_router(r_tx)
    return app


app = create_app()
