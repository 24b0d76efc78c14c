"""Contract for the external key derivation and block signing library.

The wallet never touches signature material. It hands a logical block
description and a private key to a ``Signer`` and submits whatever comes
back. Implementations wrap a Nano crypto library and are plugged in by the
embedding application.
"""
import importlib
import inspect
from collections.abc import Iterable
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from nanowallet.errors import ConfigurationError, CryptographicError, MissingConfigurationError, WalletError
from nanowallet.models import Account


@dataclass(frozen=True, slots=True)
class SendBlock:
    wallet_balance_raw: str
    from_address: str
    to_address: str
    representative_address: str
    frontier: str
    amount_raw: str
    work: str


@dataclass(frozen=True, slots=True)
class ReceiveBlock:
    wallet_balance_raw: str
    to_address: str
    representative_address: str
    frontier: str
    transaction_hash: str
    amount_raw: str
    work: str


@runtime_checkable
class Signer(Protocol):
    def derive_accounts(self, seed: str, start: int, end: int) -> Iterable[Account]: ...
    def sign_send(self, block: SendBlock, private_key: str) -> dict: ...
    def sign_receive(self, block: ReceiveBlock, private_key: str) -> dict: ...


@contextmanager
def signer_errors(operation: str):
    """Re-raise anything the signer library throws as ``CryptographicError``."""
    try:
        yield
    except WalletError:
        raise
    except Exception as e:
        raise CryptographicError(f"Signer failed to {operation}: {e}", original_error=e) from e


def load_signer(path: str | None) -> Signer:
    """Import a signer from ``"package.module:attr"``.

    A class or factory function is called with no arguments; any other object
    is used as the signer itself.
    """
    if not path:
        raise MissingConfigurationError("signer")
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ConfigurationError(f"Signer must look like 'module:attr', got {path!r}")

    try:
        target = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load signer {path!r}: {e}") from e

    signer = target() if inspect.isclass(target) or inspect.isfunction(target) else target
    if not isinstance(signer, Signer):
        raise ConfigurationError(f"{path!r} does not implement derive_accounts/sign_send/sign_receive")
    return signer
