"""
Request descriptors, responses and results exchanged with the dispatcher.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Generic, Mapping, Optional, TypeVar

from .exceptions import ApplicationError, ArangoClientError, ValidationError

T = TypeVar("T")
U = TypeVar("U")

METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"})

IF_MATCH_HEADER = "if-match"
DIRTY_READ_HEADER = "x-arango-allow-dirty-read"
TRANSACTION_HEADER = "x-arango-trx-id"


def _empty() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class RequestDescriptor:
    """
    One logical request, immutable once built.

    Use ``RequestDescriptor.build`` rather than the constructor: it normalizes
    the method, drops ``None`` query parameters and rejects invalid
    combinations.
    """

    method: str
    path: str
    params: Mapping[str, Any] = field(default_factory=_empty)
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=_empty)
    rev: Optional[str] = None
    allow_dirty_read: Optional[bool] = None
    timeout: Optional[float] = None
    transaction_id: Optional[str] = None

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        rev: Optional[str] = None,
        allow_dirty_read: Optional[bool] = None,
        timeout: Optional[float] = None,
        transaction_id: Optional[str] = None,
    ) -> "RequestDescriptor":
        """
        Build a validated descriptor.

        Raises:
            ValidationError: On an unknown method, a relative path, a body on
                             GET/HEAD, or a header override clashing with a
                             managed header
        """
        method = (method or "").upper()
        if method not in METHODS:
            raise ValidationError(f"Unsupported HTTP method: {method!r}")
        if not path or not path.startswith("/"):
            raise ValidationError(f"Request path must start with '/': {path!r}")
        if body is not None and method in ("GET", "HEAD"):
            raise ValidationError(f"{method} requests cannot carry a body")
        if timeout is not None and timeout <= 0:
            raise ValidationError("Request timeout must be positive")

        header_names = {name.lower() for name in (headers or {})}
        managed = (
            (IF_MATCH_HEADER, rev is not None),
            (DIRTY_READ_HEADER, allow_dirty_read is not None),
            (TRANSACTION_HEADER, transaction_id is not None),
        )
        for name, is_set in managed:
            if is_set and name in header_names:
                raise ValidationError(f"Header {name!r} is set both explicitly and through its option")

        clean_params = {k: v for k, v in (params or {}).items() if v is not None}
        return cls(
            method=method,
            path=path,
            params=MappingProxyType(clean_params),
            body=body,
            headers=MappingProxyType(dict(headers or {})),
            rev=rev,
            allow_dirty_read=allow_dirty_read,
            timeout=timeout,
            transaction_id=transaction_id,
        )


@dataclass(frozen=True)
class ArangoResponse:
    """
    A received HTTP response.

    Attributes:
        status_code: HTTP status code
        headers: Response headers
        body: Parsed JSON body, text, or None for empty bodies
        endpoint: Base URL of the server that answered
        found: False only for a HEAD request answered with 404
    """

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    endpoint: Optional[str] = None
    found: bool = True

    def result(self, key: str = "result", default: Any = None) -> Any:
        """Return ``body[key]`` for JSON object bodies."""
        if isinstance(self.body, dict):
            return self.body.get(key, default)
        return default


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Either a value or a classified error, never both.

    Example:
        >>> doc = connection.dispatch(descriptor).recover(DOCUMENT_NOT_FOUND).unwrap()
    """

    value: Optional[T] = None
    error: Optional[ArangoClientError] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ArangoClientError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        if self.error is not None:
            return Result(error=self.error)
        return Result(value=fn(self.value))

    def recover(self, *error_nums: int, default: Any = None) -> "Result[Any]":
        """
        Turn application errors with one of ``error_nums`` into ``default``.

        Any other error, including transport errors, is kept as is.
        """
        if isinstance(self.error, ApplicationError) and self.error.error_num in error_nums:
            return Result(value=default)
        return self
