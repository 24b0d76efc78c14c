"""Wallet error taxonomy.

Every error carries a short machine-readable ``code`` next to its message so
callers can branch on the failure kind without matching strings.
"""


class WalletError(Exception):
    def __init__(self, message: str, code: str, original_error: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.original_error = original_error

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ConfigurationError(WalletError):
    def __init__(self, message: str, code: str = "CONFIG_ERROR"):
        super().__init__(message, code)


class AccountError(WalletError):
    def __init__(self, message: str, code: str = "ACCOUNT_ERROR"):
        super().__init__(message, code)


class TransactionError(WalletError):
    def __init__(self, message: str, code: str = "TX_ERROR"):
        super().__init__(message, code)


class NetworkError(WalletError):
    def __init__(self, message: str, code: str = "NETWORK_ERROR", original_error: BaseException | None = None):
        super().__init__(message, code, original_error)


class ValidationError(WalletError):
    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        super().__init__(message, code)


class WebSocketError(WalletError):
    def __init__(self, message: str, code: str = "WS_ERROR"):
        super().__init__(message, code)


class CryptographicError(WalletError):
    def __init__(self, message: str, code: str = "CRYPTO_ERROR", original_error: BaseException | None = None):
        super().__init__(message, code, original_error)


class CapacityError(WalletError):
    def __init__(self, message: str, code: str = "TOO_MANY_PENDING"):
        super().__init__(message, code)


class InvalidSeedError(ConfigurationError):
    def __init__(self):
        super().__init__("Invalid seed format - must be 64-character hex string", "INVALID_SEED")


class MissingConfigurationError(ConfigurationError):
    def __init__(self, missing_field: str):
        super().__init__(f"Missing required configuration: {missing_field}", "MISSING_CONFIG")


class AccountNotFoundError(AccountError):
    def __init__(self, address: str):
        super().__init__(f"Account not found: {address}", "ACCOUNT_NOT_FOUND")


class InvalidAddressError(ValidationError):
    def __init__(self, address: str):
        super().__init__(f"Invalid address format: {address}", "INVALID_ADDRESS")


class InvalidAmountError(ValidationError):
    def __init__(self, amount: str):
        super().__init__(f"Invalid amount format: {amount}", "INVALID_AMOUNT")


class TransactionFailedError(TransactionError):
    def __init__(self, details: str):
        super().__init__(f"Transaction failed: {details}", "TX_FAILED")


class WebSocketMessageError(WebSocketError):
    def __init__(self):
        super().__init__("Invalid WebSocket message format", "WS_INVALID_MESSAGE")


class WorkGenerationError(NetworkError):
    def __init__(self, details: str):
        super().__init__(f"Work generation failed: {details}", "WORK_GENERATION_FAILED")


__all__ = [
    "AccountError",
    "AccountNotFoundError",
    "CapacityError",
    "ConfigurationError",
    "CryptographicError",
    "InvalidAddressError",
    "InvalidAmountError",
    "InvalidSeedError",
    "MissingConfigurationError",
    "NetworkError",
    "TransactionError",
    "TransactionFailedError",
    "ValidationError",
    "WalletError",
    "WebSocketError",
    "WebSocketMessageError",
    "WorkGenerationError",
]
