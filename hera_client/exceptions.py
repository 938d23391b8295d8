"""
Exceptions for the Hera client.
"""
from enum import IntEnum
from typing import Optional


class CommitStatus(IntEnum):
    """
    Result codes reported by the node when committing a transaction.

    These match the CommitStatus enum of the node's RPC schema.
    """
    TX_OK = 0
    TX_NONCE_TOO_LOW = 1
    TX_ALREADY_EXISTS = 2
    TX_INVALID_HASH = 3
    TX_INVALID_SIGN = 4
    TX_INVALID_FORMAT = 5
    TX_INSUFFICIENT_BALANCE = 6
    TX_HAS_SAME_NONCE = 7
    TX_INTERNAL_ERROR = 9


def error_message_for_code(code: Optional[int]) -> str:
    """
    Look up the human-readable name of a commit status code.

    Args:
        code: Numeric commit status

    Returns:
        The status name, or "UNDEFINED_ERROR" for unknown codes
    """
    try:
        return CommitStatus(code).name
    except ValueError:
        return "UNDEFINED_ERROR"


class HeraError(Exception):
    """Base exception for all client errors."""
    pass


class ValidationError(HeraError, ValueError):
    """Raised when caller input is malformed, before any network access."""
    pass


class TransportError(HeraError):
    """Raised when a remote procedure call or stream read fails."""

    def __init__(self, message: str, code=None, details: Optional[str] = None):
        self.code = code
        self.details = details
        super().__init__(message)

    @classmethod
    def from_rpc_error(cls, error: Exception) -> "TransportError":
        """
        Build a TransportError from a grpc.RpcError (or anything shaped like one).

        Args:
            error: The error raised by the stub

        Returns:
            TransportError carrying the status code and details
        """
        code = None
        details = str(error)
        code_method = getattr(error, "code", None)
        if callable(code_method):
            code = code_method()
        details_method = getattr(error, "details", None)
        if callable(details_method):
            details = details_method() or details
        return cls(f"RPC failed: {code} - {details}", code=code, details=details)


class DecodingError(HeraError):
    """Raised when a value or response cannot be decoded."""
    pass


class NotFoundError(HeraError):
    """Raised when the node proves that a queried entity does not exist."""
    pass


class TransactionError(HeraError):
    """Raised when a submitted transaction is rejected or cannot be delivered."""

    def __init__(self, message: str, code: Optional[int] = None, detail: Optional[str] = None):
        self.code = code
        self.detail = detail
        super().__init__(message)
