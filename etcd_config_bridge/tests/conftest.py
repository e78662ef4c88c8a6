"""Shared fixtures: an in-memory etcd v2 keys API behind httpx.MockTransport."""

from typing import Dict, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from etcd_config_bridge import EtcdAccessor

SERVER_URL = "http://etcd.test:4001"


class FakeEtcd:
    """Just enough of the etcd v2 keys API for the accessor."""

    def __init__(self):
        self.store: Dict[str, dict] = {}
        self.index = 0
        self.requests = []

    def put(self, key: str, value: str, ttl: Optional[int] = None) -> dict:
        self.index += 1
        prev = self.store.get(key)
        node = {
            "key": key,
            "value": value,
            "createdIndex": prev["createdIndex"] if prev else self.index,
            "modifiedIndex": self.index,
        }
        if ttl is not None:
            node["ttl"] = ttl
            node["expiration"] = "2026-10-17T12:00:00.000000000Z"
        self.store[key] = node
        return prev

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/version":
            return httpx.Response(
                200, text='{"etcdserver":"2.3.8","etcdcluster":"2.3.0"}'
            )
        if not path.startswith("/v2/keys"):
            return httpx.Response(404, text="404 page not found")

        key = "/" + path[len("/v2/keys/"):].strip("/")
        if request.method == "GET":
            return self._get(key, request.url.params.get("recursive") == "true")
        if request.method == "PUT":
            form = parse_qs(request.content.decode())
            ttl = form.get("ttl")
            prev = self.put(key, form["value"][0], int(ttl[0]) if ttl else None)
            body = {"action": "set", "node": dict(self.store[key])}
            if prev is not None:
                body["prevNode"] = prev
            return httpx.Response(200 if prev is not None else 201, json=body)
        if request.method == "DELETE":
            prev = self.store.pop(key, None)
            if prev is None:
                return self._not_found(key)
            self.index += 1
            node = {
                "key": key,
                "createdIndex": prev["createdIndex"],
                "modifiedIndex": self.index,
            }
            return httpx.Response(
                200, json={"action": "delete", "node": node, "prevNode": prev}
            )
        return httpx.Response(405)

    def _get(self, key: str, recursive: bool) -> httpx.Response:
        if key in self.store:
            return httpx.Response(
                200, json={"action": "get", "node": dict(self.store[key])}
            )
        prefix = key.rstrip("/")
        if key != "/" and not any(k.startswith(prefix + "/") for k in self.store):
            return self._not_found(key)
        return httpx.Response(
            200, json={"action": "get", "node": self._dir_node(prefix, recursive)}
        )

    def _dir_node(self, prefix: str, recursive: bool) -> dict:
        children = []
        for key in sorted(self.store):
            if key.startswith(prefix + "/"):
                head = key[len(prefix) + 1:].split("/", 1)[0]
                child = f"{prefix}/{head}"
                if child not in children:
                    children.append(child)
        nodes = []
        for child in children:
            if child in self.store:
                nodes.append(dict(self.store[child]))
            elif recursive:
                nodes.append(self._dir_node(child, True))
            else:
                nodes.append({"key": child, "dir": True})
        return {"key": prefix or "/", "dir": True, "nodes": nodes}

    def _not_found(self, key: str) -> httpx.Response:
        return httpx.Response(
            404,
            json={
                "errorCode": 100,
                "message": "Key not found",
                "cause": key,
                "index": self.index,
            },
        )


@pytest.fixture
def server_url():
    return SERVER_URL


@pytest.fixture
def fake_etcd():
    return FakeEtcd()


@pytest.fixture
def accessor(fake_etcd):
    client = httpx.Client(transport=httpx.MockTransport(fake_etcd))
    with EtcdAccessor(SERVER_URL, client=client) as acc:
        yield acc
    client.close()


@pytest.fixture
def make_accessor():
    """Accessor whose transport answers with the given handler."""
    clients = []

    def _make(handler, **kwargs) -> EtcdAccessor:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return EtcdAccessor(SERVER_URL, client=client, **kwargs)

    yield _make
    for client in clients:
        client.close()
