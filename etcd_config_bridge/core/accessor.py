"""Accessor for reading/writing an etcd v2 endpoint over HTTP."""

import json
import logging
import threading
from typing import Any, Callable, Dict, Optional, Union
from urllib.parse import quote

import httpx

from .errors import EtcdAccessError, InvalidConfiguration, NetworkError, ParseError
from .result import SUCCESS_STATUSES, EtcdResult, meta_key
from .settings import DEFAULT_ETCD_URL, DEFAULT_TIMEOUT_SECONDS
from .settings import get_server_url, get_timeout_seconds

TimeoutType = Union[float, httpx.Timeout]

# Errors raised by the client before or instead of a response; InvalidURL and
# the closed-client RuntimeError are not httpx.HTTPError subclasses.
REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL, RuntimeError)

VERSION_ERROR = "<ERROR>"
NODE_FIELDS = ("createdIndex", "modifiedIndex", "expiration", "ttl")


class EtcdAccessor:
    """Maps etcd v2 key operations onto flat ``str -> str`` maps.

    A response like::

        {"action": "get",
         "node": {"key": "/message", "value": "Hello world",
                  "createdIndex": 2, "modifiedIndex": 2}}

    for ``get("message")`` becomes::

        message=Hello world
        _message.source=[etcd]http://127.0.0.1:4001
        _message.createdIndex=2
        _message.modifiedIndex=2

    Failed calls never raise; they come back with ``_message.error`` next to
    the source marker. The ``read``/``write``/``remove``/``read_tree`` methods
    return the underlying ``EtcdResult`` for callers that want to fail fast.

    One pooled ``httpx.Client`` is shared by all calls, so an accessor can be
    used from several threads at once. Bodies are parsed with the stdlib
    ``json`` module; comment-tolerant parsing is not supported since etcd
    never emits comments.
    """

    def __init__(
        self,
        server_url: str = DEFAULT_ETCD_URL,
        timeout: Optional[TimeoutType] = None,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize the accessor.

        Args:
            server_url: etcd base url, e.g. ``http://127.0.0.1:4001``
            timeout: default per-request timeout in seconds (or an
                ``httpx.Timeout``); each call may override it
            client: externally managed ``httpx.Client``; when omitted the
                accessor creates and owns one
        """
        self._logger = logging.getLogger("etcd_config_bridge.accessor")
        self._server_url = self._normalize_url(server_url)
        self._timeout = self._validate_timeout(
            DEFAULT_TIMEOUT_SECONDS if timeout is None else timeout
        )
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(
            timeout=self._timeout
        )

    @classmethod
    def from_env(cls, client: Optional[httpx.Client] = None) -> "EtcdAccessor":
        """Create an accessor from EtcdSettings__Url / EtcdSettings__TimeoutSeconds."""
        return cls(get_server_url(), timeout=get_timeout_seconds(), client=client)

    @staticmethod
    def _normalize_url(server_url: str) -> str:
        if not server_url or not isinstance(server_url, str):
            raise InvalidConfiguration(f"Invalid etcd server url: {server_url!r}")
        if server_url.endswith("/"):
            server_url = server_url[:-1]
        try:
            parsed = httpx.URL(server_url)
        except httpx.InvalidURL as e:
            raise InvalidConfiguration(
                f"Invalid etcd server url: {server_url!r}", cause=e
            )
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise InvalidConfiguration(f"Invalid etcd server url: {server_url!r}")
        return server_url

    @staticmethod
    def _validate_timeout(timeout: TimeoutType) -> TimeoutType:
        if isinstance(timeout, httpx.Timeout):
            return timeout
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise InvalidConfiguration(f"Invalid timeout: {timeout!r}")
        if timeout <= 0:
            raise InvalidConfiguration(f"Timeout must be positive, got {timeout}")
        return float(timeout)

    @property
    def server_url(self) -> str:
        return self._server_url

    @property
    def source(self) -> str:
        """Value of the ``_key.source`` marker."""
        return f"[etcd]{self._server_url}"

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "EtcdAccessor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get_version(self, timeout: Optional[TimeoutType] = None) -> str:
        """Get the etcd server version, ``"<ERROR>"`` if it cannot be read."""
        url = f"{self._server_url}/version"
        try:
            response = self._client.get(url, timeout=self._timeout_for(timeout))
        except REQUEST_ERRORS:
            self._logger.warning(
                "etcd_version_request_failed",
                extra={
                    "event": {"category": ["config"], "action": "version_failed"},
                    "etcd": {"url": url},
                },
                exc_info=True,
            )
            return VERSION_ERROR
        if response.status_code != httpx.codes.OK:
            self._logger.warning(
                "etcd_version_unexpected_status",
                extra={"etcd": {"url": url, "status": response.status_code}},
            )
            return VERSION_ERROR
        return response.text

    # Typed API

    def read(self, key: str, timeout: Optional[TimeoutType] = None) -> EtcdResult:
        """Read a single key."""

        def _handle(result: EtcdResult, document: Dict[str, Any]) -> None:
            node = self._require_node(document, "node", key)
            self._add_value(result.entries, key, node)
            self._add_node_fields(result.entries, key, node)

        return self._call("GET", key, _handle, timeout=timeout)

    def write(
        self,
        key: str,
        value: str,
        ttl_seconds: Optional[int] = None,
        timeout: Optional[TimeoutType] = None,
    ) -> EtcdResult:
        """Create or update a key, optionally expiring after ``ttl_seconds``."""
        form = {"value": value}
        if ttl_seconds is not None:
            form["ttl"] = str(ttl_seconds)

        def _handle(result: EtcdResult, document: Dict[str, Any]) -> None:
            node = self._require_node(document, "node", key)
            self._add_value(result.entries, key, node)
            self._add_node_fields(result.entries, key, node)
            self._add_prev_node(result.entries, key, document)

        return self._call("PUT", key, _handle, data=form, timeout=timeout)

    def remove(self, key: str, timeout: Optional[TimeoutType] = None) -> EtcdResult:
        """Delete a key; the deleted node's value is reported via prevNode only."""

        def _handle(result: EtcdResult, document: Dict[str, Any]) -> None:
            node = self._require_node(document, "node", key)
            self._add_node_fields(result.entries, key, node)
            self._add_prev_node(result.entries, key, document)

        return self._call("DELETE", key, _handle, timeout=timeout)

    def read_tree(
        self,
        directory: str,
        recursive: bool = True,
        timeout: Optional[TimeoutType] = None,
    ) -> EtcdResult:
        """Read every leaf below ``directory``.

        Leaf keys are reported with their leading ``/`` removed, e.g. the
        listing of ``/a`` yields ``a/b=1`` and ``a/c/d=2``.
        """

        def _handle(result: EtcdResult, document: Dict[str, Any]) -> None:
            node = document.get("node")
            if node is None:
                return
            if not isinstance(node, dict):
                raise ParseError("'node' is not an object", key=directory)
            self._add_nodes(result.entries, node)

        params = {"recursive": "true" if recursive else "false"}
        return self._call("GET", directory, _handle, params=params, timeout=timeout)

    # Flat map API

    def get(self, key: str, timeout: Optional[TimeoutType] = None) -> Dict[str, str]:
        return self.read(key, timeout=timeout).to_map()

    def set(
        self,
        key: str,
        value: str,
        ttl_seconds: Optional[int] = None,
        timeout: Optional[TimeoutType] = None,
    ) -> Dict[str, str]:
        return self.write(key, value, ttl_seconds, timeout=timeout).to_map()

    def delete(
        self, key: str, timeout: Optional[TimeoutType] = None
    ) -> Dict[str, str]:
        return self.remove(key, timeout=timeout).to_map()

    def get_properties(
        self,
        directory: str,
        recursive: bool = True,
        timeout: Optional[TimeoutType] = None,
    ) -> Dict[str, str]:
        return self.read_tree(directory, recursive, timeout=timeout).to_map()

    # Internals

    def _timeout_for(self, timeout: Optional[TimeoutType]) -> TimeoutType:
        if timeout is None:
            return self._timeout
        return self._validate_timeout(timeout)

    def _keys_url(self, key: str) -> str:
        # each segment is percent-encoded so "#", "?" and "%" stay in the key
        path = "/".join(quote(part, safe="") for part in key.lstrip("/").split("/"))
        return f"{self._server_url}/v2/keys/{path}"

    def _call(
        self,
        method: str,
        key: str,
        handle: Callable[[EtcdResult, Dict[str, Any]], None],
        params: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, str]] = None,
        timeout: Optional[TimeoutType] = None,
    ) -> EtcdResult:
        result = EtcdResult(key=key, source=self.source)
        url = self._keys_url(key)
        try:
            response = self._client.request(
                method,
                url,
                params=params,
                data=data,
                timeout=self._timeout_for(timeout),
            )
        except REQUEST_ERRORS as e:
            result.error = NetworkError(f"{method} {url} failed", key=key, cause=e)
            self._logger.warning(
                "etcd_request_failed",
                extra={
                    "event": {"category": ["config"], "action": "request_failed"},
                    "etcd": {"method": method, "key": key, "url": url},
                },
                exc_info=True,
            )
            return result

        result.status_code = response.status_code
        if response.status_code not in SUCCESS_STATUSES:
            self._logger.debug(
                "etcd_request_not_ok",
                extra={
                    "etcd": {
                        "method": method,
                        "key": key,
                        "status": response.status_code,
                    }
                },
            )
            return result

        try:
            handle(result, self._parse_document(response, key))
        except EtcdAccessError as e:
            result.error = e
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            result.error = ParseError(
                f"Unexpected etcd response for {key!r}", key=key, cause=e
            )
        if result.error is not None:
            result.entries.clear()
            self._logger.warning(
                "etcd_response_parse_failed",
                extra={
                    "event": {"category": ["config"], "action": "parse_failed"},
                    "etcd": {"method": method, "key": key},
                    "error": {
                        "message": str(result.error),
                        "type": type(result.error).__name__,
                    },
                },
            )
            return result

        self._logger.debug(
            "etcd_request_completed",
            extra={
                "etcd": {
                    "method": method,
                    "key": key,
                    "entries": len(result.entries),
                }
            },
        )
        return result

    @staticmethod
    def _parse_document(response: httpx.Response, key: str) -> Dict[str, Any]:
        try:
            document = json.loads(response.text)
        except ValueError as e:
            raise ParseError(
                f"etcd returned invalid JSON for {key!r}", key=key, cause=e
            )
        if not isinstance(document, dict):
            raise ParseError(f"etcd returned a non-object body for {key!r}", key=key)
        return document

    @staticmethod
    def _require_node(
        document: Dict[str, Any], name: str, key: str
    ) -> Dict[str, Any]:
        node = document.get(name)
        if not isinstance(node, dict):
            raise ParseError(f"etcd response has no {name!r} object", key=key)
        return node

    @staticmethod
    def _add_value(entries: Dict[str, str], key: str, node: Dict[str, Any]) -> None:
        if "value" in node:
            entries[key] = str(node["value"])

    @staticmethod
    def _add_node_fields(
        entries: Dict[str, str], key: str, node: Dict[str, Any], prefix: str = ""
    ) -> None:
        for name in NODE_FIELDS:
            if name in node:
                entries[meta_key(key, prefix + name)] = str(node[name])

    def _add_prev_node(
        self, entries: Dict[str, str], key: str, document: Dict[str, Any]
    ) -> None:
        prev = document.get("prevNode")
        if prev is None:
            return
        if not isinstance(prev, dict):
            raise ParseError("'prevNode' is not an object", key=key)
        self._add_node_fields(entries, key, prev, prefix="prevNode.")
        if "value" in prev:
            entries[meta_key(key, "prevNode.value")] = str(prev["value"])

    def _add_nodes(self, entries: Dict[str, str], node: Dict[str, Any]) -> None:
        # directories only contribute their children
        if node.get("dir", False):
            for child in node.get("nodes") or ():
                if not isinstance(child, dict):
                    raise ParseError("'nodes' entry is not an object")
                self._add_nodes(entries, child)
            return

        key = node["key"]
        if key.startswith("/"):
            key = key[1:]
        self._add_value(entries, key, node)
        self._add_node_fields(entries, key, node)
        entries[meta_key(key, "source")] = self.source


_default_accessor: Optional[EtcdAccessor] = None
_default_lock = threading.Lock()


def get_default_accessor() -> EtcdAccessor:
    """Return the process-wide accessor built from the environment."""
    global _default_accessor
    with _default_lock:
        if _default_accessor is None:
            _default_accessor = EtcdAccessor.from_env()
        return _default_accessor


__all__ = ["EtcdAccessor", "VERSION_ERROR", "get_default_accessor"]
