"""
Host routing with failover across the configured coordinators.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .exceptions import ValidationError

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Strip trailing slashes and translate ``tcp://``/``ssl://`` schemes."""
    url = (url or "").strip()
    if url.startswith("tcp://"):
        url = "http://" + url[len("tcp://"):]
    elif url.startswith("ssl://"):
        url = "https://" + url[len("ssl://"):]
    if not url.startswith(("http://", "https://")):
        raise ValidationError(f"Invalid endpoint URL: {url!r}")
    return url.rstrip("/")


@dataclass(frozen=True)
class Endpoint:
    """A server base URL."""

    url: str


class RouteAttempt:
    """
    Request-scoped walk over the router's endpoints.

    Tracks which endpoints this logical request already tried; nothing here is
    shared with other requests.
    """

    def __init__(self, router: "HostRouter", endpoints: Tuple[Endpoint, ...], start: int, limit: int):
        self._router = router
        self._endpoints = endpoints
        self._index = start
        self._limit = limit
        self.attempted: List[Endpoint] = []

    def current(self) -> Endpoint:
        return self._endpoints[self._index]

    def rotate(self) -> Optional[Endpoint]:
        """
        Mark the current endpoint as attempted and move to the next one.

        Returns:
            The next endpoint, or None once every endpoint has been tried
        """
        failed = self.current()
        self.attempted.append(failed)
        self._router._advance_from(failed)
        if len(self.attempted) >= self._limit:
            return None
        self._index = (self._index + 1) % len(self._endpoints)
        return self.current()


class HostRouter:
    """
    Ordered list of endpoints plus the currently preferred one.

    Args:
        urls: Endpoint base URLs, in preference order
        max_attempts: Upper bound on endpoints tried per request (default:
                      number of endpoints)
    """

    def __init__(self, urls: Iterable[str], max_attempts: Optional[int] = None):
        endpoints = []
        for url in urls:
            endpoint = Endpoint(normalize_url(url))
            if endpoint not in endpoints:
                endpoints.append(endpoint)
        if not endpoints:
            raise ValidationError("At least one endpoint must be configured")
        if max_attempts is not None and max_attempts < 1:
            raise ValidationError("max_attempts must be at least 1")

        self._endpoints: Tuple[Endpoint, ...] = tuple(endpoints)
        self._preferred = 0
        self._max_attempts = max_attempts
        self._lock = threading.Lock()

    @property
    def endpoints(self) -> Tuple[Endpoint, ...]:
        return self._endpoints

    def current(self) -> Endpoint:
        with self._lock:
            return self._endpoints[self._preferred]

    def attempt(self) -> RouteAttempt:
        """Start a request-scoped attempt at the preferred endpoint."""
        with self._lock:
            endpoints = self._endpoints
            start = self._preferred
        limit = len(endpoints)
        if self._max_attempts is not None:
            limit = min(limit, self._max_attempts)
        return RouteAttempt(self, endpoints, start, limit)

    def _advance_from(self, failed: Endpoint) -> None:
        # Only advance if no other request already moved past the failed host.
        with self._lock:
            if self._endpoints[self._preferred] == failed:
                self._preferred = (self._preferred + 1) % len(self._endpoints)
                logger.debug("Preferred endpoint is now %s", self._endpoints[self._preferred].url)

    def add_endpoints(self, urls: Iterable[str]) -> List[Endpoint]:
        """
        Append endpoints that are not known yet.

        Returns:
            The endpoints that were added
        """
        added = []
        with self._lock:
            known = list(self._endpoints)
            for url in urls:
                endpoint = Endpoint(normalize_url(url))
                if endpoint not in known:
                    known.append(endpoint)
                    added.append(endpoint)
            self._endpoints = tuple(known)
        if added:
            logger.info("Added %d endpoint(s): %s", len(added), ", ".join(e.url for e in added))
        return added

    def __len__(self) -> int:
        return len(self._endpoints)

    def __repr__(self) -> str:
        return f"HostRouter(endpoints={[e.url for e in self._endpoints]})"
