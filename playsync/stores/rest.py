"""
REST store clients.

Talks to the management API of an existing deployment, preserving its
path conventions:

    servicesNS/{owner}/{app}/saved/searches[/{name}]
    servicesNS/{owner}/{app}/saved/searches/{name}/acl
    servicesNS/{owner}/{app}/saved/searches/{name}/history
    servicesNS/{owner}/{app}/saved/searches/{name}/dispatch
    servicesNS/{owner}/{app}/storage/collections/data/{collection}[/{_key}]

Error classification:
- Timeout / connection failure -> TransientError (safe to retry)
- HTTP 429 and 5xx -> TransientError
- HTTP 404 -> NotFoundError
- Other HTTP 4xx, undecodable bodies, other request failures -> PermanentError

Reads are retried on TransientError; writes are sent once.

Authentication is the caller's concern: pass a requests.Session that already
carries credentials.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional
from urllib.parse import quote

import requests

from playsync.errors import NotFoundError, PermanentError, RemoteError, TransientError
from playsync.models import KEY_FIELD, AccessControl, PlayDefinition
from playsync.result import Err, Ok, StoreResult
from playsync.utils import retry_with_backoff, sanitize_error_message

logger = logging.getLogger(__name__)

SAVED_SEARCHES = "saved/searches"
COLLECTION_DATA = "storage/collections/data"


def _form(values: dict[str, Any]) -> dict[str, Any]:
    """Encode values the way the management API parses form bodies."""
    encoded = {}
    for key, value in values.items():
        if isinstance(value, bool):
            encoded[key] = "1" if value else "0"
        elif isinstance(value, (list, tuple)):
            encoded[key] = ",".join(str(v) for v in value)
        else:
            encoded[key] = value
    return encoded


def _error_text(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    messages = body.get("messages") if isinstance(body, dict) else None
    if messages:
        return "; ".join(m.get("text", "") for m in messages)
    return response.text[:200]


class RestTransport:
    """
    Namespaced JSON requests against the management API.

    Args:
        base_url: https://host:port of the management endpoint
        owner: Namespace owner
        app: Namespace app
        session: Pre-authenticated session; a bare one is created otherwise
        timeout: Per-request timeout in seconds
        verify_ssl: Verify the server certificate
        read_retries: Attempts for GET requests that fail transiently
    """

    def __init__(
        self,
        base_url: str,
        owner: str,
        app: str,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        read_retries: int = 3,
    ):
        self.base_url = base_url.rstrip("/")
        self.owner = owner
        self.app = app
        self.session = session or requests.Session()
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.read_retries = read_retries

    def url(self, path: str) -> str:
        return f"{self.base_url}/servicesNS/{quote(self.owner, safe='')}/{quote(self.app, safe='')}/{path}"

    def request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: Optional[dict[str, Any]] = None,
        data: Optional[dict[str, Any]] = None,
        json_body: Any = None,
    ) -> Any:
        """
        Send one request and decode the JSON response.

        Returns:
            Decoded body, or None for an empty body

        Raises:
            TransientError: Timeout, connection failure, 429 or 5xx
            NotFoundError: 404
            PermanentError: Any other failure
        """
        query = {"output_mode": "json"}
        if params:
            query.update(params)

        try:
            response = self.session.request(
                method,
                self.url(path),
                params=query,
                data=data,
                json=json_body,
                timeout=self.timeout,
                verify=self.verify_ssl,
            )
        except requests.exceptions.Timeout as e:
            raise TransientError(f"{operation} timed out: {e}", operation=operation) from e
        except requests.exceptions.ConnectionError as e:
            raise TransientError(f"{operation} connection failed: {e}", operation=operation) from e
        except requests.exceptions.RequestException as e:
            raise PermanentError(f"{operation} request failed: {e}", operation=operation) from e

        status = response.status_code
        if status == 404:
            raise NotFoundError(f"{operation}: {_error_text(response)}", operation=operation, status=status)
        if status == 429 or status >= 500:
            raise TransientError(f"{operation}: HTTP {status} {_error_text(response)}", operation=operation, status=status)
        if status >= 400:
            raise PermanentError(f"{operation}: HTTP {status} {_error_text(response)}", operation=operation, status=status)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise PermanentError(f"{operation}: response is not JSON", operation=operation, status=status) from e

    def get(self, path: str, operation: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET with retries on transient failures."""
        return retry_with_backoff(
            lambda: self.request("GET", path, operation, params=params),
            max_attempts=self.read_retries,
            logger=logger,
        )


def _call(operation: str, func: Callable[[], Any]) -> StoreResult[Any]:
    try:
        return Ok(func())
    except RemoteError as e:
        logger.debug("%s failed: %s", operation, sanitize_error_message(e))
        return Err(e)
    except (KeyError, ValueError, TypeError) as e:
        error = PermanentError(f"{operation}: malformed response: {e}", operation=operation)
        error.__cause__ = e
        return Err(error)


def _entries(body: Any, operation: str) -> list[dict[str, Any]]:
    if not isinstance(body, dict) or not isinstance(body.get("entry"), list):
        raise PermanentError(f"{operation}: response has no entry list", operation=operation)
    return body["entry"]


def _first_entry(body: Any, operation: str) -> dict[str, Any]:
    entries = _entries(body, operation)
    if not entries:
        raise PermanentError(f"{operation}: response entry list is empty", operation=operation)
    return entries[0]


def _definition_from_entry(entry: dict[str, Any]) -> PlayDefinition:
    acl = entry.get("acl")
    return PlayDefinition(
        name=entry["name"],
        properties=dict(entry.get("content") or {}),
        acl=AccessControl.from_payload(acl) if acl else None,
    )


class RestConfigStore:
    """ConfigStoreClient over saved/searches."""

    def __init__(self, transport: RestTransport):
        self.transport = transport

    @staticmethod
    def _path(name: str, *suffix: str) -> str:
        return "/".join([SAVED_SEARCHES, quote(name, safe="")] + list(suffix))

    def list(self) -> StoreResult[list[PlayDefinition]]:
        def _list():
            body = self.transport.get(SAVED_SEARCHES, "config.list", params={"count": 0})
            return [_definition_from_entry(e) for e in _entries(body, "config.list")]

        return _call("config.list", _list)

    def get(self, name: str) -> StoreResult[PlayDefinition]:
        def _get():
            body = self.transport.get(self._path(name), "config.get")
            return _definition_from_entry(_first_entry(body, "config.get"))

        return _call("config.get", _get)

    def create(self, properties: dict[str, Any]) -> StoreResult[PlayDefinition]:
        def _create():
            body = self.transport.request("POST", SAVED_SEARCHES, "config.create", data=_form(properties))
            return _definition_from_entry(_first_entry(body, "config.create"))

        return _call("config.create", _create)

    def update(self, name: str, properties: dict[str, Any]) -> StoreResult[PlayDefinition]:
        props = {k: v for k, v in properties.items() if k != "name"}

        def _update():
            body = self.transport.request("POST", self._path(name), "config.update", data=_form(props))
            return _definition_from_entry(_first_entry(body, "config.update"))

        return _call("config.update", _update)

    def delete(self, name: str) -> StoreResult[bool]:
        def _delete():
            self.transport.request("DELETE", self._path(name), "config.delete")
            return True

        return _call("config.delete", _delete)

    def get_acl(self, name: str) -> StoreResult[AccessControl]:
        def _get_acl():
            body = self.transport.get(self._path(name, "acl"), "config.get_acl")
            return AccessControl.from_payload(_first_entry(body, "config.get_acl").get("acl") or {})

        return _call("config.get_acl", _get_acl)

    def set_acl(self, name: str, acl_payload: dict[str, Any]) -> StoreResult[AccessControl]:
        def _set_acl():
            body = self.transport.request("POST", self._path(name, "acl"), "config.set_acl", data=_form(acl_payload))
            entries = _entries(body, "config.set_acl") if body else []
            if entries and entries[0].get("acl"):
                return AccessControl.from_payload(entries[0]["acl"])
            return AccessControl.from_payload(acl_payload)

        return _call("config.set_acl", _set_acl)

    def history(self, name: str) -> StoreResult[list[dict[str, Any]]]:
        def _history():
            body = self.transport.get(self._path(name, "history"), "config.history")
            return _entries(body, "config.history")

        return _call("config.history", _history)

    def dispatch(self, name: str, options: dict[str, Any]) -> StoreResult[str]:
        def _dispatch():
            body = self.transport.request("POST", self._path(name, "dispatch"), "config.dispatch", data=_form(options))
            if not isinstance(body, dict) or "sid" not in body:
                raise PermanentError("config.dispatch: response has no sid", operation="config.dispatch")
            return body["sid"]

        return _call("config.dispatch", _dispatch)


class RestDocumentStore:
    """DocumentStoreClient over storage/collections/data/{collection}."""

    def __init__(self, transport: RestTransport, collection: str):
        self.transport = transport
        self.collection = collection

    @property
    def path(self) -> str:
        return f"{COLLECTION_DATA}/{quote(self.collection, safe='')}"

    def query(self, filters: dict[str, Any]) -> StoreResult[list[dict[str, Any]]]:
        def _query():
            body = self.transport.get(self.path, "documents.query", params={"query": json.dumps(filters)})
            if not isinstance(body, list):
                raise PermanentError("documents.query: response is not a list", operation="documents.query")
            return body

        return _call("documents.query", _query)

    def upsert(self, document: dict[str, Any]) -> StoreResult[str]:
        def _upsert():
            key = document.get(KEY_FIELD)
            if key:
                try:
                    self.transport.request(
                        "POST", f"{self.path}/{quote(key, safe='')}", "documents.upsert", json_body=document,
                    )
                    return key
                except NotFoundError:
                    # Keyed writes only replace; a new key is inserted through the collection
                    pass
            body = self.transport.request("POST", self.path, "documents.upsert", json_body=document)
            if not isinstance(body, dict) or KEY_FIELD not in body:
                raise PermanentError("documents.upsert: response has no _key", operation="documents.upsert")
            return body[KEY_FIELD]

        return _call("documents.upsert", _upsert)

    def delete(self, key: str) -> StoreResult[bool]:
        def _delete():
            self.transport.request("DELETE", f"{self.path}/{quote(key, safe='')}", "documents.delete")
            return True

        return _call("documents.delete", _delete)
