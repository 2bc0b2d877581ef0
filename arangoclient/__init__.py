"""
ArangoDB Python Client

A Python client library for ArangoDB with multi-coordinator failover and
stream transactions.
"""

from .client import Client
from .collection import Collection
from .config import ClientConfig
from .connection import Connection
from .exceptions import (
    COLLECTION_NOT_FOUND,
    DOCUMENT_NOT_FOUND,
    TRANSACTION_NOT_FOUND,
    AmbiguousOutcomeError,
    ApplicationError,
    ArangoClientError,
    ArangoError,
    HttpError,
    StateError,
    TransportError,
    ValidationError,
)
from .handles import DocumentSelector, ReadDocumentOptions, document_handle
from .request import ArangoResponse, RequestDescriptor, Result
from .transaction import (
    Transaction,
    TransactionCollections,
    TransactionInfo,
    TransactionOptions,
    TransactionState,
)

__version__ = "1.0.0"
__all__ = [
    "Client",
    "ClientConfig",
    "Collection",
    "Connection",
    "RequestDescriptor",
    "ArangoResponse",
    "Result",
    "DocumentSelector",
    "ReadDocumentOptions",
    "document_handle",
    "Transaction",
    "TransactionCollections",
    "TransactionInfo",
    "TransactionOptions",
    "TransactionState",
    "ArangoClientError",
    "ValidationError",
    "TransportError",
    "ApplicationError",
    "ArangoError",
    "HttpError",
    "StateError",
    "AmbiguousOutcomeError",
    "DOCUMENT_NOT_FOUND",
    "COLLECTION_NOT_FOUND",
    "TRANSACTION_NOT_FOUND",
]


def create_client(hosts="http://localhost:8529", database="_system", **kwargs):
    """
    Create a new ArangoDB client with default configuration.

    Args:
        hosts: Endpoint URL or list of URLs (default: 'http://localhost:8529')
        database: Database name (default: '_system')
        **kwargs: Additional client configuration options

    Returns:
        Client: ArangoDB client instance

    Example:
        >>> client = create_client(hosts=['http://db1:8529', 'http://db2:8529'])
        >>> users = client.collection('users')
    """
    return Client(hosts=hosts, database=database, **kwargs)
