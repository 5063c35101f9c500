"""
Store client interfaces for play definitions and play documents.

This module defines the protocols any store client must implement, so the
PlayOrchestrator stays decoupled from the transport.

Implementations:
- InMemoryConfigStore / InMemoryDocumentStore: For testing and offline use
- RestConfigStore / RestDocumentStore: Real implementation over the REST API

Every method returns a StoreResult (Ok or Err). Implementations may also
raise; the orchestrator normalises raised exceptions to Err.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from playsync.models import PlayDefinition
from playsync.result import StoreResult


@runtime_checkable
class ConfigStoreClient(Protocol):
    """
    Protocol for the authoritative store of named search definitions.
    """

    # -------------------------------------------------------------------------
    # Definitions
    # -------------------------------------------------------------------------

    def list(self) -> StoreResult[list[PlayDefinition]]:
        """
        List all definitions visible in the configured namespace.

        Returns:
            Ok with every PlayDefinition, ACL included
        """
        ...

    def get(self, name: str) -> StoreResult[PlayDefinition]:
        """
        Fetch one definition.

        Returns:
            Ok with the PlayDefinition, or Err(NotFoundError)
        """
        ...

    def create(self, properties: dict[str, Any]) -> StoreResult[PlayDefinition]:
        """
        Create a definition. properties must contain "name".

        Returns:
            Ok with the created PlayDefinition, or Err if the name is taken
        """
        ...

    def update(self, name: str, properties: dict[str, Any]) -> StoreResult[PlayDefinition]:
        """
        Update properties of an existing definition.

        Only the supplied properties change; the name cannot be updated.
        """
        ...

    def delete(self, name: str) -> StoreResult[bool]:
        """
        Delete a definition.

        Returns:
            Ok(True) once deleted, or Err(NotFoundError)
        """
        ...

    # -------------------------------------------------------------------------
    # Access control
    # -------------------------------------------------------------------------

    def get_acl(self, name: str) -> StoreResult[Any]:
        """
        Read the ACL of a definition.

        Returns:
            Ok with an AccessControl
        """
        ...

    def set_acl(self, name: str, acl_payload: dict[str, Any]) -> StoreResult[Any]:
        """
        Replace the ACL of a definition.

        Args:
            name: Definition name
            acl_payload: {"owner", "sharing", "perms.read", "perms.write"}

        Returns:
            Ok with the resulting AccessControl
        """
        ...

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def history(self, name: str) -> StoreResult[list[dict[str, Any]]]:
        """
        Raw dispatch-history entries for a definition.

        Returns:
            Ok with entries carrying at least "name" and "published"
        """
        ...

    def dispatch(self, name: str, options: dict[str, Any]) -> StoreResult[str]:
        """
        Dispatch a run of the definition.

        Args:
            name: Definition name
            options: Dispatch arguments (force_dispatch, trigger_actions, ...)

        Returns:
            Ok with the job handle (search id)
        """
        ...


@runtime_checkable
class DocumentStoreClient(Protocol):
    """
    Protocol for the schema-less store of play documents.
    """

    def query(self, filters: dict[str, Any]) -> StoreResult[list[dict[str, Any]]]:
        """
        Documents whose fields equal every value in filters.
        """
        ...

    def upsert(self, document: dict[str, Any]) -> StoreResult[str]:
        """
        Insert or fully replace a document.

        A document with "_key" replaces the stored document of that key in
        full; fields missing from document are dropped. Without "_key" the
        store assigns one.

        Returns:
            Ok with the stored document's key
        """
        ...

    def delete(self, key: str) -> StoreResult[bool]:
        """
        Delete a document by key.

        Returns:
            Ok(True) once deleted, or Err(NotFoundError)
        """
        ...
