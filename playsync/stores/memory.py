"""
In-memory store clients.

Behave like the remote stores for the operations the orchestrator uses:
- Definition names are unique; create of a taken name fails
- Update merges properties; the name cannot change
- Document upsert replaces the whole document
- Dispatch records a history entry

Used for tests and offline use. Values are deep-copied on the way in and
out so callers cannot mutate stored state by reference.
"""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from playsync.errors import NotFoundError, PermanentError
from playsync.models import AccessControl, KEY_FIELD, PlayDefinition, validate_play_name
from playsync.result import Err, Ok, StoreResult


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryConfigStore:
    """ConfigStoreClient backed by a dict of definitions."""

    def __init__(
        self,
        definitions: Optional[list[PlayDefinition]] = None,
        default_acl: Optional[AccessControl] = None,
    ):
        self._definitions: dict[str, PlayDefinition] = {}
        self._history: dict[str, list[dict[str, Any]]] = {}
        self._default_acl = default_acl or AccessControl(read=["*"], write=["admin"])
        for definition in definitions or []:
            self._definitions[definition.name] = copy.deepcopy(definition)

    def _lookup(self, name: str, operation: str) -> StoreResult[PlayDefinition]:
        definition = self._definitions.get(name)
        if definition is None:
            return Err(NotFoundError(f"Definition not found: {name}", operation=operation, status=404))
        return Ok(definition)

    def list(self) -> StoreResult[list[PlayDefinition]]:
        return Ok([copy.deepcopy(d) for d in self._definitions.values()])

    def get(self, name: str) -> StoreResult[PlayDefinition]:
        result = self._lookup(name, "config.get")
        if isinstance(result, Err):
            return result
        return Ok(copy.deepcopy(result.value))

    def create(self, properties: dict[str, Any]) -> StoreResult[PlayDefinition]:
        name = properties.get("name")
        reason = validate_play_name(name)
        if reason:
            return Err(PermanentError(reason, operation="config.create", status=400))
        if name in self._definitions:
            return Err(PermanentError(
                f"A definition named {name} already exists", operation="config.create", status=409,
            ))

        props = {k: copy.deepcopy(v) for k, v in properties.items() if k != "name"}
        definition = PlayDefinition(name=name, properties=props, acl=copy.deepcopy(self._default_acl))
        self._definitions[name] = definition
        return Ok(copy.deepcopy(definition))

    def update(self, name: str, properties: dict[str, Any]) -> StoreResult[PlayDefinition]:
        if "name" in properties and properties["name"] != name:
            return Err(PermanentError(
                "The name of a definition cannot be updated", operation="config.update", status=400,
            ))
        result = self._lookup(name, "config.update")
        if isinstance(result, Err):
            return result
        definition = result.value
        definition.properties.update(
            {k: copy.deepcopy(v) for k, v in properties.items() if k != "name"}
        )
        return Ok(copy.deepcopy(definition))

    def delete(self, name: str) -> StoreResult[bool]:
        result = self._lookup(name, "config.delete")
        if isinstance(result, Err):
            return result
        del self._definitions[name]
        self._history.pop(name, None)
        return Ok(True)

    def get_acl(self, name: str) -> StoreResult[AccessControl]:
        result = self._lookup(name, "config.get_acl")
        if isinstance(result, Err):
            return result
        return Ok(copy.deepcopy(result.value.acl))

    def set_acl(self, name: str, acl_payload: dict[str, Any]) -> StoreResult[AccessControl]:
        result = self._lookup(name, "config.set_acl")
        if isinstance(result, Err):
            return result
        if not acl_payload.get("owner") or not acl_payload.get("sharing"):
            return Err(PermanentError(
                "ACL update requires owner and sharing", operation="config.set_acl", status=400,
            ))
        try:
            acl = AccessControl.from_payload(acl_payload)
        except ValueError as e:
            return Err(PermanentError(str(e), operation="config.set_acl", status=400))
        result.value.acl = acl
        return Ok(copy.deepcopy(acl))

    def history(self, name: str) -> StoreResult[list[dict[str, Any]]]:
        result = self._lookup(name, "config.history")
        if isinstance(result, Err):
            return result
        return Ok(copy.deepcopy(self._history.get(name, [])))

    def dispatch(self, name: str, options: dict[str, Any]) -> StoreResult[str]:
        result = self._lookup(name, "config.dispatch")
        if isinstance(result, Err):
            return result
        sid = f"scheduler__{name}__{uuid.uuid4().hex[:12]}"
        self._history.setdefault(name, []).append({
            "name": sid,
            "published": _utcnow_iso(),
            "options": dict(options),
        })
        return Ok(sid)


class InMemoryDocumentStore:
    """DocumentStoreClient backed by a dict of documents keyed by _key."""

    def __init__(self, documents: Optional[list[dict[str, Any]]] = None):
        self._documents: dict[str, dict[str, Any]] = {}
        for document in documents or []:
            self.upsert(document)

    def query(self, filters: dict[str, Any]) -> StoreResult[list[dict[str, Any]]]:
        matches = [
            copy.deepcopy(doc)
            for doc in self._documents.values()
            if all(doc.get(field) == value for field, value in filters.items())
        ]
        return Ok(matches)

    def upsert(self, document: dict[str, Any]) -> StoreResult[str]:
        key = document.get(KEY_FIELD) or uuid.uuid4().hex
        stored = copy.deepcopy(document)
        stored[KEY_FIELD] = key
        self._documents[key] = stored
        return Ok(key)

    def delete(self, key: str) -> StoreResult[bool]:
        if key not in self._documents:
            return Err(NotFoundError(f"Document not found: {key}", operation="documents.delete", status=404))
        del self._documents[key]
        return Ok(True)

    def __len__(self) -> int:
        return len(self._documents)
