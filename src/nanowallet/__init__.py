from nanowallet import errors
from nanowallet.config import WalletConfig, load_config
from nanowallet.models import Account, AccountState, PendingTransaction
from nanowallet.rpc import FailoverRPC
from nanowallet.signer import ReceiveBlock, SendBlock, Signer
from nanowallet.tools import Tools
from nanowallet.wallet import Wallet

__all__ = [
    "Account",
    "AccountState",
    "FailoverRPC",
    "PendingTransaction",
    "ReceiveBlock",
    "SendBlock",
    "Signer",
    "Tools",
    "Wallet",
    "WalletConfig",
    "errors",
    "load_config",
]
