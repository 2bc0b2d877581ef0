"""
ArangoDB client exceptions.

Validation errors are raised locally before anything is sent, transport
errors mean no HTTP response was ever received, and application errors mean
the server processed the request and rejected it.
"""
from typing import Any, Dict, Optional

DOCUMENT_NOT_FOUND = 1202
COLLECTION_NOT_FOUND = 1203
TRANSACTION_NOT_FOUND = 1655


class ArangoClientError(Exception):
    """
    Base exception for ArangoDB client errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (endpoint,
                 transaction id, ...)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ValidationError(ArangoClientError):
    """Malformed selector, handle or request descriptor."""
    pass


class TransportError(ArangoClientError):
    """
    The connection never completed (refused, timed out, DNS failure).

    Attributes:
        attempts: Number of endpoints tried before giving up
        cause: The last underlying transport exception
    """

    def __init__(
        self,
        message: str,
        attempts: int = 1,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.attempts = attempts
        self.cause = cause


class ApplicationError(ArangoClientError):
    """
    The server understood the request and rejected it.

    Attributes:
        code: HTTP status code of the response
        error_num: ArangoDB error number, None when the response carried no
                   error envelope
    """

    error_num: Optional[int] = None

    def __init__(
        self,
        message: str,
        code: int,
        error_num: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.code = code
        self.error_num = error_num


class ArangoError(ApplicationError):
    """Error reported by the server through its error envelope."""

    def __init__(
        self,
        error_num: int,
        code: int,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code, error_num=error_num, context=context)

    def __repr__(self) -> str:
        return f"ArangoError(error_num={self.error_num}, code={self.code}, message={self.message!r})"


class HttpError(ApplicationError):
    """Non-2xx response without an ArangoDB error envelope."""

    def __init__(self, code: int, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message or f"HTTP {code}", code=code, context=context)


class StateError(ArangoClientError):
    """Operation invalid given the current local state."""
    pass


class AmbiguousOutcomeError(ArangoClientError):
    """
    A commit or abort failed in transport; the server-side outcome is unknown.

    Call ``Transaction.status()`` to find out what actually happened.
    """

    def __init__(
        self,
        message: str,
        transaction_id: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, context={"transaction_id": transaction_id})
        self.transaction_id = transaction_id
        self.cause = cause
