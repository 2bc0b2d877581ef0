"""
Stream transactions.

The coordinator opens, commits and aborts server-side transactions and tags
requests issued inside ``Transaction.run`` with the transaction id. It holds
no locks: isolation between transactions is provided by the server.
"""
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar, Union

from .connection import Connection
from .exceptions import AmbiguousOutcomeError, StateError, TransportError, ValidationError
from .request import RequestDescriptor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionState(str, enum.Enum):
    RUNNING = "running"
    COMMITTED = "committed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionState.RUNNING


@dataclass(frozen=True)
class TransactionInfo:
    """Server-reported ``{id, status}`` of a transaction."""

    id: str
    status: TransactionState

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "TransactionInfo":
        result = body.get("result", body) if isinstance(body, Mapping) else {}
        status = result.get("status") or result.get("state")
        try:
            return cls(id=str(result["id"]), status=TransactionState(status))
        except (KeyError, ValueError) as e:
            raise ValidationError(f"Unexpected transaction payload: {body!r}") from e


def _collection_names(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or hasattr(value, "name"):
        value = [value]
    names = []
    for item in value:
        name = item if isinstance(item, str) else getattr(item, "name", None)
        if not name:
            raise ValidationError(f"Not a collection: {item!r}")
        names.append(name)
    return tuple(names)


@dataclass(frozen=True)
class TransactionCollections:
    """
    Collections a transaction declares, by access mode.

    Example:
        >>> TransactionCollections(read=('users',), write=('orders',))
    """

    read: Tuple[str, ...] = ()
    write: Tuple[str, ...] = ()
    exclusive: Tuple[str, ...] = ()

    @classmethod
    def from_value(cls, value: Any) -> "TransactionCollections":
        """
        Coerce names, collection objects, lists, or a read/write/exclusive
        mapping. Anything that is not a mapping is declared for writing.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            unknown = set(value) - {"read", "write", "exclusive"}
            if unknown:
                raise ValidationError(f"Unknown transaction access modes: {sorted(unknown)}")
            return cls(
                read=_collection_names(value.get("read")),
                write=_collection_names(value.get("write")),
                exclusive=_collection_names(value.get("exclusive")),
            )
        return cls(write=_collection_names(value))

    def to_body(self) -> Dict[str, List[str]]:
        body = {}
        for mode in ("read", "write", "exclusive"):
            names = getattr(self, mode)
            if names:
                body[mode] = list(names)
        return body


@dataclass(frozen=True)
class TransactionOptions:
    """Options accepted when beginning a stream transaction."""

    allow_implicit: Optional[bool] = None
    lock_timeout: Optional[float] = None
    max_transaction_size: Optional[int] = None
    wait_for_sync: Optional[bool] = None

    def to_body(self) -> Dict[str, Any]:
        body = {
            "allowImplicit": self.allow_implicit,
            "lockTimeout": self.lock_timeout,
            "maxTransactionSize": self.max_transaction_size,
            "waitForSync": self.wait_for_sync,
        }
        return {k: v for k, v in body.items() if v is not None}


class Transaction:
    """
    Handle on one server-side stream transaction.

    Example:
        >>> trx = client.begin_transaction('users')
        >>> trx.run(users.save, {'_key': 'alice'})
        >>> trx.commit()
    """

    def __init__(self, connection: Connection, transaction_id: str, state: TransactionState = TransactionState.RUNNING):
        self._connection = connection
        self.id = transaction_id
        self._state = state
        self._lock = threading.Lock()
        self._finishing: Optional[str] = None

    @property
    def state(self) -> TransactionState:
        """Locally known state; see ``status()`` for the server's view."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state.is_terminal

    def _path(self) -> str:
        return f"/_api/transaction/{self.id}"

    def _update(self, info: TransactionInfo) -> None:
        with self._lock:
            if not self._state.is_terminal:
                self._state = info.status

    def _ensure_running(self, action: str) -> None:
        if self._state.is_terminal:
            raise StateError(
                f"Cannot {action} transaction {self.id}: already {self._state.value}",
                context={"transaction_id": self.id},
            )

    def status(self) -> TransactionInfo:
        """Fetch the transaction's status from the server."""
        response = self._connection.request(RequestDescriptor.build("GET", self._path()))
        info = TransactionInfo.from_body(response.body)
        self._update(info)
        return info

    def run(self, operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Call ``operation`` with every request it makes tagged with this
        transaction's id.

        The tag follows the calling thread or asyncio task only; threads
        started by ``operation`` must copy the context to inherit it.
        Exceptions raised by ``operation`` propagate unchanged.

        Raises:
            StateError: If the transaction is already committed or aborted
        """
        self._ensure_running("run operations in")
        with self._connection.transaction_scope(self.id):
            return operation(*args, **kwargs)

    def _finish(self, method: str, action: str) -> TransactionInfo:
        with self._lock:
            self._ensure_running(action)
            if self._finishing is not None:
                raise StateError(
                    f"Cannot {action} transaction {self.id}: {self._finishing} already in progress",
                    context={"transaction_id": self.id},
                )
            self._finishing = action
        logger.debug("Transaction %s: %s", self.id, action)

        try:
            result = self._connection.dispatch(RequestDescriptor.build(method, self._path()))
            if isinstance(result.error, TransportError):
                logger.error("Outcome of %s for transaction %s is unknown: %s", action, self.id, result.error)
                raise AmbiguousOutcomeError(
                    f"Transport failure during {action} of transaction {self.id}; server-side state unknown",
                    transaction_id=self.id,
                    cause=result.error,
                ) from result.error

            info = TransactionInfo.from_body(result.unwrap().body)
            self._update(info)
        finally:
            with self._lock:
                self._finishing = None
        logger.debug("Transaction %s is %s", self.id, info.status.value)
        return info

    def commit(self) -> TransactionInfo:
        """
        Commit the transaction.

        Raises:
            StateError: If the transaction is already committed or aborted, or
                        another commit or abort is in flight
            AmbiguousOutcomeError: If the commit request never got a response
        """
        return self._finish("PUT", "commit")

    def abort(self) -> TransactionInfo:
        """
        Abort the transaction.

        Raises:
            StateError: If the transaction is already committed or aborted
            AmbiguousOutcomeError: If the abort request never got a response
        """
        return self._finish("DELETE", "abort")

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.is_terminal:
            return
        if exc_type is None:
            self.commit()
        else:
            self.abort()

    def __repr__(self) -> str:
        return f"Transaction(id='{self.id}', state='{self._state.value}')"


class TransactionCoordinator:
    """
    Opens and looks up stream transactions on one connection.

    Args:
        connection: Connection used for every transaction request
    """

    def __init__(self, connection: Connection):
        self._connection = connection

    def begin(
        self,
        collections: Union[TransactionCollections, Mapping[str, Any], Iterable[Any], str, Any],
        options: Optional[TransactionOptions] = None,
    ) -> Transaction:
        """
        Begin a stream transaction.

        Args:
            collections: Collections to declare (see
                         ``TransactionCollections.from_value``)
            options: Transaction options

        Returns:
            Running transaction
        """
        declared = TransactionCollections.from_value(collections)
        body = dict((options or TransactionOptions()).to_body())
        body["collections"] = declared.to_body()

        response = self._connection.request(
            RequestDescriptor.build("POST", "/_api/transaction/begin", body=body)
        )
        info = TransactionInfo.from_body(response.body)
        logger.debug("Began transaction %s on %s", info.id, body["collections"])
        return Transaction(self._connection, info.id, info.status)

    def transaction(self, transaction_id: str) -> Transaction:
        """Attach to an existing transaction by id."""
        if not transaction_id:
            raise ValidationError("Transaction id must not be empty")
        return Transaction(self._connection, transaction_id)

    def list(self) -> List[TransactionInfo]:
        """List the transactions currently running on the server."""
        response = self._connection.request(RequestDescriptor.build("GET", "/_api/transaction"))
        return [TransactionInfo.from_body(entry) for entry in response.result("transactions", [])]

    def execute(
        self,
        collections: Any,
        action: str,
        params: Any = None,
        lock_timeout: Optional[float] = None,
        wait_for_sync: Optional[bool] = None,
    ) -> Any:
        """
        Run a JavaScript transaction in a single request.

        Args:
            collections: Collections to declare
            action: JavaScript function source
            params: Value passed to the function

        Returns:
            The function's return value
        """
        body = {
            "collections": TransactionCollections.from_value(collections).to_body(),
            "action": action,
            "params": params,
            "lockTimeout": lock_timeout,
            "waitForSync": wait_for_sync,
        }
        response = self._connection.request(
            RequestDescriptor.build(
                "POST", "/_api/transaction", body={k: v for k, v in body.items() if v is not None}
            )
        )
        return response.result()
