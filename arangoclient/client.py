"""
ArangoDB Client - Main entry point for interacting with an ArangoDB deployment
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from .collection import Collection
from .config import ClientConfig
from .connection import Connection
from .exceptions import ArangoClientError, ValidationError
from .request import RequestDescriptor
from .transaction import Transaction, TransactionCoordinator, TransactionInfo, TransactionOptions

logger = logging.getLogger(__name__)


class Client:
    """
    ArangoDB Client for one database on one or more coordinators.

    Args:
        hosts: Endpoint URL or list of URLs (default: 'http://localhost:8529')
        database: Database name (default: '_system')
        username: Basic auth username
        password: Basic auth password
        timeout: Request timeout in seconds (default: 30)
        max_retries: Maximum number of endpoints tried per request
        allow_dirty_read: Allow reads from followers by default
        max_connections: Maximum number of connections in the pool (default: 10)
        config: Complete configuration, instead of the arguments above
        session: Transport to use instead of a fresh ``requests.Session``

    Example:
        >>> client = Client(hosts='http://localhost:8529', database='shop')
        >>> client.ping()
        True
    """

    def __init__(
        self,
        hosts: Any = None,
        database: str = "_system",
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: Optional[int] = None,
        allow_dirty_read: bool = False,
        max_connections: int = 10,
        config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        if config is None:
            config = ClientConfig(
                hosts=hosts if hosts is not None else ["http://localhost:8529"],
                database=database,
                username=username,
                password=password,
                timeout=timeout,
                max_retries=max_retries,
                allow_dirty_read=allow_dirty_read,
                max_connections=max_connections,
            )
        self.config = config
        self._connection = Connection(config, session=session)
        self._transactions = TransactionCoordinator(self._connection)

    @classmethod
    def cluster(cls, nodes: List[str], **kwargs: Any) -> "Client":
        """
        Create a client for several coordinators.

        Args:
            nodes: Coordinator URLs, or "host:port" strings
            **kwargs: Additional client configuration options

        Returns:
            Client routing across all nodes
        """
        if not nodes:
            raise ValidationError("At least one node must be specified")
        hosts = [node if "://" in node else f"http://{node}" for node in nodes]
        return cls(hosts=hosts, **kwargs)

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def database(self) -> str:
        return self.config.database

    def _request(self, method: str, path: str, **kwargs):
        return self._connection.request(RequestDescriptor.build(method, path, **kwargs))

    def ping(self) -> bool:
        """
        Check if the server is reachable and responding.

        Returns:
            True if server is reachable, False otherwise
        """
        try:
            self.version()
            return True
        except ArangoClientError as e:
            logger.debug("Ping failed: %s", e)
            return False

    def version(self, details: bool = False) -> Dict[str, Any]:
        """
        Get the server version.

        Example:
            >>> client.version()['version']
            '3.11.0'
        """
        return self._request("GET", "/_api/version", params={"details": details or None}).body

    def list_collections(self, exclude_system: bool = True) -> List[str]:
        """
        List all collections in the database.

        Returns:
            List of collection names
        """
        response = self._request("GET", "/_api/collection", params={"excludeSystem": exclude_system})
        return [info["name"] for info in response.result(default=[])]

    def create_collection(self, name: str, **properties: Any) -> Collection:
        """
        Create a new collection.

        Args:
            name: Collection name
            **properties: Collection properties

        Returns:
            The new collection
        """
        collection = self.collection(name)
        collection.create(**properties)
        return collection

    def drop_collection(self, name: str) -> bool:
        """
        Drop (delete) a collection.

        Returns:
            True if successful
        """
        self.collection(name).drop()
        return True

    def collection(self, name: str) -> Collection:
        """
        Get a collection object for performing operations.

        Example:
            >>> users = client.collection('users')
            >>> users.save({'name': 'Alice'})
        """
        return Collection(self._connection, name)

    # Transactions

    def begin_transaction(self, collections: Any, options: Optional[TransactionOptions] = None) -> Transaction:
        """
        Begin a stream transaction.

        Args:
            collections: Collection name(s), Collection object(s), a
                         read/write/exclusive mapping, or
                         TransactionCollections
            options: Transaction options

        Example:
            >>> with client.begin_transaction('users') as trx:
            ...     trx.run(users.save, {'_key': 'alice'})
        """
        return self._transactions.begin(collections, options)

    def transaction(self, transaction_id: str) -> Transaction:
        """Get a handle on an existing stream transaction."""
        return self._transactions.transaction(transaction_id)

    def list_transactions(self) -> List[TransactionInfo]:
        """List running stream transactions."""
        return self._transactions.list()

    def execute_transaction(self, collections: Any, action: str, params: Any = None, **options: Any) -> Any:
        """
        Execute a JavaScript transaction on the server.

        Example:
            >>> client.execute_transaction([], 'function (params) { return params; }', 'test')
            'test'
        """
        return self._transactions.execute(collections, action, params, **options)

    def acquire_host_list(self) -> List[str]:
        """Discover the cluster's coordinators and route across them."""
        return self._connection.acquire_host_list()

    def close(self):
        """
        Close the client and release resources.
        """
        self._connection.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def __repr__(self) -> str:
        """String representation of the client."""
        return f"Client(hosts={self.config.hosts}, database='{self.database}')"
