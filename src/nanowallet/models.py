"""Wallet domain data structures.

``AccountState.from_account_info`` keeps the node's string fields as strings
(raw amounts do not fit in a float). The pydantic models validate frames
from the confirmation feed.
"""
import json
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from nanowallet.errors import WebSocketMessageError


@dataclass(frozen=True, slots=True)
class Account:
    address: str
    public_key: str
    private_key: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    hash: str
    amount: str


@dataclass(frozen=True, slots=True)
class AccountState:
    """Ledger view of one account, authoritative only at the time it was fetched."""

    balance: str
    representative: str
    frontier: str

    @classmethod
    def from_account_info(cls, result: dict) -> "AccountState":
        return cls(
            balance=str(result["balance"]),
            representative=str(result["representative"]),
            frontier=str(result["frontier"]),
        )


class ConfirmationBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subtype: str | None = None
    link_as_account: str | None = None


class ConfirmationBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    block: ConfirmationBlock
    hash: str
    amount: str


class ConfirmationMessage(BaseModel):
    """Inbound feed frame.

    Acks and other control frames carry no ``topic``/``message``, so both are
    optional; they are filtered out after parsing.
    """

    model_config = ConfigDict(extra="ignore")

    topic: str | None = None
    message: ConfirmationBody | None = None


def parse_confirmation(raw: str | bytes) -> ConfirmationMessage:
    try:
        return ConfirmationMessage.model_validate(json.loads(raw))
    except (ValueError, PydanticValidationError) as e:
        raise WebSocketMessageError() from e
