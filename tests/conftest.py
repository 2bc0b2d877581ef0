"""
Shared fixtures: an in-memory ArangoDB server plugged in as the HTTP session.

The fake server implements just enough of the HTTP API (collections,
documents, stream transactions) to exercise routing, classification and
transaction isolation without a live deployment.
"""
import itertools
import json
import threading
from typing import Any, Dict, List, Optional, Set
from urllib.parse import urlsplit

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from arangoclient import Client

DELETED = object()


def make_response(status: int, body: Any = None, url: Optional[str] = None) -> requests.Response:
    """Build a real ``requests.Response`` carrying a JSON body."""
    response = requests.Response()
    response.status_code = status
    response.url = url
    if body is None:
        response._content = b""
    else:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json; charset=utf-8"
    return response


def error_body(code: int, error_num: int, message: str) -> Dict[str, Any]:
    return {"error": True, "code": code, "errorNum": error_num, "errorMessage": message}


class FakeTransaction:
    def __init__(self, trx_id: str, collections: Dict[str, List[str]]):
        self.id = trx_id
        self.status = "running"
        self.collections = collections
        self.writes: Dict[str, Dict[str, Any]] = {}


class FakeArangoServer:
    """Minimal ArangoDB HTTP API with stream transaction isolation."""

    def __init__(self, cluster_endpoints: Optional[List[str]] = None):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.transactions: Dict[str, FakeTransaction] = {}
        self.cluster_endpoints = cluster_endpoints or []
        self._ids = itertools.count(1)
        self._revs = itertools.count(1)
        self._lock = threading.Lock()

    # Storage views

    def _lookup(self, trx: Optional[FakeTransaction], collection: str, key: str) -> Optional[Dict[str, Any]]:
        if trx is not None:
            pending = trx.writes.get(collection, {})
            if key in pending:
                value = pending[key]
                return None if value is DELETED else value
        return self.collections[collection].get(key)

    def _store(self, trx: Optional[FakeTransaction], collection: str, key: str, value: Any) -> None:
        if trx is not None:
            trx.writes.setdefault(collection, {})[key] = value
        elif value is DELETED:
            self.collections[collection].pop(key, None)
        else:
            self.collections[collection][key] = value

    def _visible_keys(self, trx: Optional[FakeTransaction], collection: str) -> Set[str]:
        keys = set(self.collections[collection])
        if trx is not None:
            for key, value in trx.writes.get(collection, {}).items():
                if value is DELETED:
                    keys.discard(key)
                else:
                    keys.add(key)
        return keys

    def _new_doc(self, collection: str, key: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = {k: v for k, v in data.items() if k not in ("_id", "_key", "_rev")}
        doc.update({"_key": key, "_id": f"{collection}/{key}", "_rev": str(next(self._revs))})
        return doc

    @staticmethod
    def _meta(doc: Dict[str, Any]) -> Dict[str, Any]:
        return {"_id": doc["_id"], "_key": doc["_key"], "_rev": doc["_rev"]}

    # Request handling

    def handle(self, method: str, url: str, headers: Any, params: Any, data: Optional[bytes]) -> requests.Response:
        with self._lock:
            headers = CaseInsensitiveDict(headers or {})
            body = json.loads(data.decode("utf-8")) if data else None
            path = urlsplit(url).path
            parts = [p for p in path.split("/") if p]
            if len(parts) >= 2 and parts[0] == "_db":
                parts = parts[2:]
            status, payload = self._route(method, parts, headers, params or {}, body)
            return make_response(status, payload, url)

    def _route(self, method, parts, headers, params, body):
        if parts[:2] == ["_api", "version"]:
            return 200, {"server": "arango", "version": "3.11.0", "license": "community"}
        if parts[:3] == ["_api", "cluster", "endpoints"]:
            return 200, {"error": False, "code": 200, "endpoints": [{"endpoint": e} for e in self.cluster_endpoints]}
        if parts[:2] == ["_api", "transaction"]:
            return self._transaction(method, parts[2:], body)

        trx = None
        trx_id = headers.get("x-arango-trx-id")
        if trx_id is not None:
            trx = self.transactions.get(trx_id)
            if trx is None or trx.status != "running":
                return 404, error_body(404, 1655, "transaction not found")

        if parts[:2] == ["_api", "collection"]:
            return self._collection(method, parts[2:], trx, body)
        if parts[:2] == ["_api", "document"]:
            return self._document(method, parts[2:], trx, headers, body)
        return 404, error_body(404, 404, "unknown path")

    def _transaction(self, method, rest, body):
        if method == "POST" and rest == ["begin"]:
            declared = body.get("collections", {})
            for names in declared.values():
                for name in names:
                    if name not in self.collections:
                        return 404, error_body(404, 1203, f"collection or view not found: {name}")
            trx = FakeTransaction(str(next(self._ids)), declared)
            self.transactions[trx.id] = trx
            return 201, {"error": False, "code": 201, "result": {"id": trx.id, "status": trx.status}}
        if method == "POST" and not rest:
            return 200, {"error": False, "code": 200, "result": body.get("params")}
        if method == "GET" and not rest:
            running = [{"id": t.id, "state": t.status} for t in self.transactions.values() if t.status == "running"]
            return 200, {"error": False, "code": 200, "transactions": running}

        trx = self.transactions.get(rest[0]) if rest else None
        if trx is None:
            return 404, error_body(404, 1655, "transaction not found")
        if method == "PUT":
            if trx.status == "aborted":
                return 409, error_body(409, 1653, "transaction aborted")
            if trx.status == "running":
                for collection, writes in trx.writes.items():
                    for key, value in writes.items():
                        self._store(None, collection, key, value)
                trx.status = "committed"
        elif method == "DELETE":
            if trx.status == "committed":
                return 409, error_body(409, 1652, "transaction committed")
            trx.status = "aborted"
            trx.writes.clear()
        return 200, {"error": False, "code": 200, "result": {"id": trx.id, "status": trx.status}}

    def _collection(self, method, rest, trx, body):
        if not rest:
            if method == "GET":
                return 200, {"error": False, "code": 200, "result": [{"name": n} for n in sorted(self.collections)]}
            name = body["name"]
            if name in self.collections:
                return 409, error_body(409, 1207, "duplicate name")
            self.collections[name] = {}
            return 200, {"error": False, "code": 200, "name": name, "type": 2}
        name = rest[0]
        if name not in self.collections:
            return 404, error_body(404, 1203, "collection or view not found")
        if len(rest) == 1 and method == "GET":
            return 200, {"error": False, "code": 200, "name": name, "status": 3}
        if len(rest) == 1 and method == "DELETE":
            del self.collections[name]
            return 200, {"error": False, "code": 200, "id": name}
        if rest[1:] == ["count"]:
            return 200, {"error": False, "code": 200, "name": name, "count": len(self._visible_keys(trx, name))}
        if rest[1:] == ["truncate"]:
            for key in self._visible_keys(trx, name):
                self._store(trx, name, key, DELETED)
            return 200, {"error": False, "code": 200, "name": name}
        return 404, error_body(404, 404, "unknown path")

    def _document(self, method, rest, trx, headers, body):
        collection = rest[0]
        if collection not in self.collections:
            return 404, error_body(404, 1203, "collection or view not found")

        if len(rest) == 1 and method == "POST":
            key = body.get("_key") or str(next(self._ids))
            if self._lookup(trx, collection, key) is not None:
                return 409, error_body(409, 1210, "unique constraint violated")
            doc = self._new_doc(collection, key, body)
            self._store(trx, collection, key, doc)
            return 202, self._meta(doc)
        if len(rest) == 1 and method == "DELETE":
            results = []
            for handle in body:
                key = handle.split("/", 1)[1]
                doc = self._lookup(trx, collection, key)
                if doc is not None:
                    self._store(trx, collection, key, DELETED)
                    results.append(self._meta(doc))
            return 200, results

        key = rest[1]
        doc = self._lookup(trx, collection, key)
        if doc is None:
            if method == "HEAD":
                return 404, None
            return 404, error_body(404, 1202, "document not found")
        if method == "HEAD":
            return 200, None
        if method == "GET":
            return 200, doc

        expected = headers.get("if-match")
        if expected is not None and expected != doc["_rev"]:
            return 412, error_body(412, 1200, "conflict, _rev values do not match")
        if method == "DELETE":
            self._store(trx, collection, key, DELETED)
            return 200, self._meta(doc)
        if method == "PUT":
            new_doc = self._new_doc(collection, key, body)
        else:
            merged = dict(doc)
            merged.update(body)
            new_doc = self._new_doc(collection, key, merged)
        self._store(trx, collection, key, new_doc)
        result = self._meta(new_doc)
        result["_oldRev"] = doc["_rev"]
        return 202, result


class FakeSession(requests.Session):
    """
    HTTP session answering from a FakeArangoServer.

    Requests to a base URL listed in ``down`` fail with a connection error
    before any response is produced.
    """

    def __init__(self, server: FakeArangoServer, down: Optional[Set[str]] = None):
        super().__init__()
        self.server = server
        self.down: Set[str] = set(down or ())
        self.calls: List[Dict[str, Any]] = []
        self._calls_lock = threading.Lock()

    def request(self, method, url, params=None, data=None, headers=None, timeout=None, **kwargs):
        with self._calls_lock:
            self.calls.append(
                {
                    "method": method,
                    "url": url,
                    "params": params,
                    "data": data,
                    "headers": dict(headers or {}),
                    "timeout": timeout,
                }
            )
        base = "{0.scheme}://{0.netloc}".format(urlsplit(url))
        if base in self.down:
            raise requests.exceptions.ConnectionError(f"Connection refused: {base}")
        return self.server.handle(method, url, headers, params, data)


@pytest.fixture
def server():
    """Create an empty fake server with a 'users' collection."""
    fake = FakeArangoServer()
    fake.collections["users"] = {}
    return fake


@pytest.fixture
def session(server):
    """Create a session answering from the fake server."""
    return FakeSession(server)


@pytest.fixture
def client(session):
    """Create a client on two coordinators backed by the fake server."""
    with Client(hosts=["http://coord1:8529", "http://coord2:8529"], database="test", session=session) as c:
        yield c


@pytest.fixture
def users(client):
    """Get the 'users' collection."""
    return client.collection("users")
