"""
Connection - request dispatch with host failover
"""
import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional
from urllib.parse import quote

import requests

from .classifier import classify, failed_before_response
from .config import ClientConfig
from .exceptions import TransportError
from .request import (
    DIRTY_READ_HEADER,
    IF_MATCH_HEADER,
    TRANSACTION_HEADER,
    ArangoResponse,
    RequestDescriptor,
    Result,
)
from .router import HostRouter

logger = logging.getLogger(__name__)

READ_METHODS = frozenset({"GET", "HEAD"})

# Transaction id per connection, scoped to the current thread or task.
_transaction_scopes: ContextVar[Mapping[int, str]] = ContextVar(
    "arango_transaction_scopes", default=MappingProxyType({})
)


class Connection:
    """
    Sends logical requests to one of the configured ArangoDB coordinators.

    A transport failure raised before any response arrived moves the request
    to the next endpoint. A received response is never retried, whatever its
    status, and neither is one whose body broke off mid-read.

    Args:
        config: Client configuration
        session: Transport to use instead of a fresh ``requests.Session``

    Example:
        >>> conn = Connection(ClientConfig(hosts=['http://localhost:8529']))
        >>> conn.request(RequestDescriptor.build('GET', '/_api/version')).body
    """

    def __init__(self, config: ClientConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.router = HostRouter(config.hosts, max_attempts=config.max_retries)
        self._db_prefix = f"/_db/{quote(config.database, safe='')}"

        if session is None:
            # Create session with connection pooling
            session = requests.Session()
            adapter = requests.adapters.HTTPAdapter(
                pool_connections=config.max_connections,
                pool_maxsize=config.max_connections,
                max_retries=0,
            )
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": "ArangoDB-Python-Client/1.0.0",
        })
        self.session.headers.update(config.headers)
        if config.username is not None:
            self.session.auth = (config.username, config.password or "")

    @property
    def database(self) -> str:
        return self.config.database

    @property
    def transaction_id(self) -> Optional[str]:
        """Transaction id scoped to the current thread or task, if any."""
        return _transaction_scopes.get().get(id(self))

    @contextmanager
    def transaction_scope(self, transaction_id: str) -> Iterator[str]:
        """
        Tag every request issued in this execution context with a transaction id.

        Scopes nest; leaving the block restores the previous id.
        """
        scopes = dict(_transaction_scopes.get())
        scopes[id(self)] = transaction_id
        token = _transaction_scopes.set(MappingProxyType(scopes))
        try:
            yield transaction_id
        finally:
            _transaction_scopes.reset(token)

    def _headers(self, descriptor: RequestDescriptor) -> Dict[str, str]:
        headers = dict(descriptor.headers)
        if descriptor.rev is not None:
            headers[IF_MATCH_HEADER] = descriptor.rev

        allow_dirty_read = descriptor.allow_dirty_read
        if allow_dirty_read is None and descriptor.method in READ_METHODS:
            allow_dirty_read = self.config.allow_dirty_read
        if allow_dirty_read:
            headers[DIRTY_READ_HEADER] = "true"

        transaction_id = descriptor.transaction_id or self.transaction_id
        if transaction_id:
            headers[TRANSACTION_HEADER] = transaction_id
        return headers

    @staticmethod
    def _encode_body(body: Any, headers: Dict[str, str]) -> Optional[bytes]:
        if body is None:
            return None
        names = {name.lower() for name in headers}
        if isinstance(body, bytes):
            if "content-type" not in names:
                headers["Content-Type"] = "application/octet-stream"
            return body
        if isinstance(body, str):
            if "content-type" not in names:
                headers["Content-Type"] = "text/plain"
            return body.encode("utf-8")
        if "content-type" not in names:
            headers["Content-Type"] = "application/json"
        return json.dumps(body).encode("utf-8")

    def _url(self, base_url: str, path: str) -> str:
        if path.startswith("/_db/"):
            return base_url + path
        return base_url + self._db_prefix + path

    def dispatch(self, descriptor: RequestDescriptor) -> Result[ArangoResponse]:
        """
        Send one logical request.

        Args:
            descriptor: Request to send

        Returns:
            Result carrying the response, an ApplicationError, or a terminal
            TransportError once every endpoint failed or a response broke off
        """
        headers = self._headers(descriptor)
        data = self._encode_body(descriptor.body, headers)
        timeout = descriptor.timeout or self.config.timeout

        attempt = self.router.attempt()
        endpoint = attempt.current()
        while True:
            url = self._url(endpoint.url, descriptor.path)
            logger.debug("%s %s", descriptor.method, url)
            try:
                response = self.session.request(
                    method=descriptor.method,
                    url=url,
                    params=dict(descriptor.params) or None,
                    data=data,
                    headers=headers,
                    timeout=timeout,
                )
            except requests.exceptions.RequestException as e:
                failure = classify(descriptor.method, e, endpoint.url)
                if not isinstance(failure.error, TransportError):
                    return failure
                if not failed_before_response(e):
                    logger.error(
                        "%s %s broke off after reaching %s, not retrying: %s",
                        descriptor.method, descriptor.path, endpoint.url, e,
                    )
                    failure.error.__cause__ = e
                    return failure
                next_endpoint = attempt.rotate()
                if next_endpoint is None:
                    attempts = len(attempt.attempted)
                    logger.error(
                        "%s %s failed on all %d endpoint(s): %s",
                        descriptor.method, descriptor.path, attempts, e,
                    )
                    error = TransportError(
                        f"HTTP request failed after {attempts} attempt(s): {e}",
                        attempts=attempts,
                        cause=e,
                        context={"endpoints": ", ".join(ep.url for ep in attempt.attempted)},
                    )
                    error.__cause__ = e
                    return Result.failure(error)
                logger.warning(
                    "%s, retrying on %s", failure.error, next_endpoint.url,
                )
                endpoint = next_endpoint
                continue

            return classify(descriptor.method, response, endpoint.url)

    def request(self, descriptor: RequestDescriptor) -> ArangoResponse:
        """Dispatch a request and raise its classified error, if any."""
        return self.dispatch(descriptor).unwrap()

    def acquire_host_list(self) -> List[str]:
        """
        Add the cluster's coordinator endpoints to the router.

        Returns:
            URLs that were not known before
        """
        response = self.request(RequestDescriptor.build("GET", "/_api/cluster/endpoints"))
        urls = [entry["endpoint"] for entry in response.result("endpoints", []) if entry.get("endpoint")]
        return [endpoint.url for endpoint in self.router.add_endpoints(urls)]

    def close(self) -> None:
        """Close the underlying session."""
        self.session.close()

    def __repr__(self) -> str:
        return f"Connection(database='{self.database}', endpoints={[e.url for e in self.router.endpoints]})"
