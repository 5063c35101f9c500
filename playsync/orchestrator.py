"""
PlayOrchestrator - keeps a play consistent across its two stores.

A play is a named definition in the ConfigStore plus a runtime document in
the DocumentStore. Neither store offers cross-store transactions, so every
multi-step operation follows the same order:

1. Read current state from the cached definition set
2. Write the ConfigStore first (it is authoritative for existence and naming)
3. Write the DocumentStore second
4. Refresh the cached definition set

Document writes do not gate the flow unless strict_document_writes is set;
a failed document write is logged and kept on last_document_write.

Error handling contract:
- Store calls are normalised to Ok/Err (result.capture)
- Internal helpers raise PlaysyncError subclasses
- Public operations catch PlaysyncError at their boundary and return it as a
  value; callers tell success from failure by the returned value's type
"""

import copy
import functools
import logging
from typing import Any, Optional

from playsync.consistency import ConsistencyReport, check_consistency, prune_orphans
from playsync.diff import comparable_perms, perms_changed, property_changes
from playsync.errors import NotFoundError, PermanentError, PlaysyncError, RemoteError, ValidationError
from playsync.models import (
    DEFAULT_HIDDEN_PROPERTIES,
    KEY_FIELD,
    PID_FIELD,
    AccessControl,
    HistoryEntry,
    PlayDefinition,
    Sharing,
    missing_definition,
    validate_play_name,
)
from playsync.result import Err, Ok, StoreResult, capture
from playsync.stores.base import ConfigStoreClient, DocumentStoreClient
from playsync.utils import sanitize_error_message

logger = logging.getLogger(__name__)

DISPATCH_OPTIONS = {"force_dispatch": True, "trigger_actions": True}


def _boundary(method):
    """Return PlaysyncError raised by a public operation instead of raising it."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except PlaysyncError as e:
            logger.error(
                "%s failed for play %s: %s",
                method.__name__,
                self.current_play_name,
                sanitize_error_message(e),
            )
            return e

    return wrapper


def _require_mapping(value: Any, label: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValidationError(f"{label} must be a mapping, got {type(value).__name__}")
    return value


class PlayOrchestrator:
    """
    High-level operations on the current play.

    Attributes:
        current_play_name: Name every operation without an explicit name targets
        last_document_snapshot: Document cached by the last fetch_document()
        last_document_write: Result of the last document upsert
    """

    def __init__(
        self,
        config_store: ConfigStoreClient,
        document_store: DocumentStoreClient,
        play_name: Optional[str] = None,
        *,
        correlation_field: str = "play",
        hidden_properties: tuple[str, ...] = DEFAULT_HIDDEN_PROPERTIES,
        strict_document_writes: bool = False,
        default_owner: str = "nobody",
        default_sharing: Sharing = Sharing.GLOBAL,
    ):
        self.config_store = config_store
        self.document_store = document_store
        self.current_play_name = play_name
        self.correlation_field = correlation_field
        self.hidden_properties = tuple(hidden_properties)
        self.strict_document_writes = strict_document_writes
        self.default_owner = default_owner
        self.default_sharing = default_sharing

        self.last_document_snapshot: Optional[dict[str, Any]] = None
        self.last_document_write: Optional[StoreResult[str]] = None
        self._definitions: dict[str, PlayDefinition] = {}

        try:
            self._reload()
        except RemoteError as e:
            logger.warning("Initial definition fetch failed: %s", sanitize_error_message(e))

    @classmethod
    def from_config(cls, config, session=None, play_name: Optional[str] = None) -> "PlayOrchestrator":
        """
        Build an orchestrator talking to the REST stores described by config.

        Args:
            config: PlaysyncConfig
            session: Pre-authenticated requests.Session
            play_name: Initial current play
        """
        from playsync.stores.rest import RestConfigStore, RestDocumentStore, RestTransport

        transport = RestTransport(
            config.base_url,
            owner=config.owner,
            app=config.app,
            session=session,
            timeout=config.timeout,
            verify_ssl=config.verify_ssl,
            read_retries=config.read_retries,
        )
        return cls(
            RestConfigStore(transport),
            RestDocumentStore(transport, config.collection),
            play_name,
            correlation_field=config.correlation_field,
            hidden_properties=tuple(config.hidden_properties),
            strict_document_writes=config.strict_document_writes,
            default_owner=config.owner,
            default_sharing=config.sharing,
        )

    # -------------------------------------------------------------------------
    # State and read accessors
    # -------------------------------------------------------------------------

    def switch_play(self, name: str) -> str:
        """Make name the current play. No I/O and no validation."""
        self.current_play_name = name
        return name

    @property
    def cached_definitions(self) -> dict[str, PlayDefinition]:
        """Snapshot of the definition set as of the last refresh."""
        return copy.deepcopy(self._definitions)

    def current_definition(self) -> Optional[PlayDefinition]:
        definition = self._definitions.get(self.current_play_name)
        return copy.deepcopy(definition) if definition is not None else None

    def current_properties(self) -> dict[str, Any]:
        """
        Properties of the current definition.

        A document may exist without a definition (for instance mid-creation),
        so a missing definition yields a placeholder naming the play rather
        than an error.
        """
        definition = self._definitions.get(self.current_play_name)
        if definition is None:
            return missing_definition(self.current_play_name)
        return copy.deepcopy(definition.visible_properties(self.hidden_properties))

    def current_acl(self) -> Optional[AccessControl]:
        definition = self._definitions.get(self.current_play_name)
        if definition is None or definition.acl is None:
            return None
        return copy.deepcopy(definition.acl)

    # -------------------------------------------------------------------------
    # High-level operations
    # -------------------------------------------------------------------------

    @_boundary
    def refresh(self) -> bool:
        """Re-fetch the cached definition set."""
        self._reload()
        return True

    @_boundary
    def set_enabled(self, enabled: bool) -> bool:
        """Enable or disable the current play."""
        self._edit({"disabled": not enabled})
        self._reload()
        logger.info("Play %s %s", self.current_play_name, "enabled" if enabled else "disabled")
        return True

    @_boundary
    def create_play(
        self,
        definition_props: dict[str, Any],
        document_payload: dict[str, Any],
        acl_payload: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Create a play: definition, then document, then ACL.

        Args:
            definition_props: Definition properties; must contain "name"
            document_payload: Full document; must contain a non-empty "pid"
            acl_payload: ACL to apply once the definition exists

        Returns:
            True, or the error that stopped the sequence
        """
        definition_props = _require_mapping(definition_props, "definition_props")
        document_payload = _require_mapping(document_payload, "document_payload")

        name = definition_props.get("name")
        reason = validate_play_name(name)
        if reason:
            raise ValidationError(f"Invalid PID or Play Name: {reason}")
        if not document_payload.get(PID_FIELD):
            raise ValidationError("Invalid PID or Play Name: pid is required")
        if acl_payload is not None:
            comparable_perms(acl_payload)

        created = capture("config.create", self.config_store.create, definition_props)
        if isinstance(created, Err):
            raise created.error
        logger.info("Created definition %s", name)

        written = self._upsert_document(document_payload, name)
        if self.strict_document_writes and isinstance(written, Err):
            self._discard_definition(name)
            raise written.error

        self._reload()
        self.current_play_name = name
        if acl_payload:
            self._change_perms(acl_payload)
        return True

    @_boundary
    def update_search(
        self,
        new_props: dict[str, Any],
        new_document_payload: Optional[dict[str, Any]] = None,
        new_acl_payload: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Bring the current play in line with the requested state.

        Runs three checks in order, writing only where state differs:
        permissions, name (rename), properties (with the document).

        Returns:
            True if anything was written, False if nothing needed changing,
            or the error from the first failing step (later steps skipped)
        """
        new_props = _require_mapping(new_props, "new_props")
        if new_acl_payload is not None:
            _require_mapping(new_acl_payload, "new_acl_payload")
        did_write = False

        if perms_changed(new_acl_payload, self.current_acl()):
            self._change_perms(new_acl_payload)
            did_write = True
        else:
            logger.debug("Permissions of %s unchanged", self.current_play_name)

        new_name = new_props.get("name", self.current_play_name)
        if new_name != self.current_play_name:
            reason = validate_play_name(new_name)
            if reason:
                raise ValidationError(reason)
            if not self._rename(new_props, new_document_payload):
                # The requested properties belong to the new name; leave the old play untouched
                return did_write
            did_write = True

        self._reload()
        definition = self._definitions.get(self.current_play_name)
        changes = property_changes(new_props, definition.properties if definition else {})
        if changes:
            self._edit(changes)
            if new_document_payload:
                self._upsert_document(new_document_payload, self.current_play_name)
            self._reload()
            did_write = True
        else:
            logger.debug("Properties of %s unchanged", self.current_play_name)

        return did_write

    @_boundary
    def delete_play(
        self,
        name: Optional[str] = None,
        document_payload: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Delete a play's definition and, once that is confirmed, its document.

        Args:
            name: Play to delete; defaults to the current play
            document_payload: Document to delete (by "_key"); without one every
                document correlated to the name is deleted
        """
        target = name or self.current_play_name
        if not target:
            raise ValidationError("No play selected for deletion")

        self._delete_definition(target)

        try:
            self._delete_documents(target, document_payload)
        finally:
            self._reload()
        return True

    @_boundary
    def fetch_document(self) -> Optional[dict[str, Any]]:
        """
        Fetch the document correlated to the current play.

        Returns:
            The document, or None when the play has no document yet
        """
        result = capture(
            "documents.query",
            self.document_store.query,
            {self.correlation_field: self.current_play_name},
        )
        if isinstance(result, Err):
            raise result.error

        documents = result.value
        if not documents:
            self.last_document_snapshot = None
            return None
        if len(documents) > 1:
            logger.warning(
                "%d documents correlate to %s; using the first",
                len(documents),
                self.current_play_name,
            )
        self.last_document_snapshot = documents[0]
        return copy.deepcopy(documents[0])

    @_boundary
    def fetch_history(self) -> Optional[list[dict[str, str]]]:
        """Dispatch history of the current play as {name, published} entries."""
        result = capture("config.history", self.config_store.history, self.current_play_name)
        if isinstance(result, Err):
            raise result.error
        if not result.value:
            return None
        return [HistoryEntry.from_raw(entry).to_dict() for entry in result.value]

    @_boundary
    def force_run(self) -> str:
        """Dispatch the current play now, triggering its actions."""
        result = capture(
            "config.dispatch",
            self.config_store.dispatch,
            self.current_play_name,
            dict(DISPATCH_OPTIONS),
        )
        if isinstance(result, Err):
            raise result.error
        logger.info("Dispatched %s as %s", self.current_play_name, result.value)
        return result.value

    @_boundary
    def check_consistency(self) -> ConsistencyReport:
        """Report definitions and documents that break the one-to-one pairing."""
        return check_consistency(self.config_store, self.document_store, self.correlation_field)

    @_boundary
    def prune_orphans(self, dry_run: bool = True) -> list[str]:
        """Delete documents whose correlation names no definition."""
        report = check_consistency(self.config_store, self.document_store, self.correlation_field)
        return prune_orphans(report, self.document_store, dry_run=dry_run)

    # -------------------------------------------------------------------------
    # Primitives (raise PlaysyncError)
    # -------------------------------------------------------------------------

    def _reload(self) -> None:
        result = capture("config.list", self.config_store.list)
        if isinstance(result, Err):
            raise result.error
        self._definitions = {definition.name: definition for definition in result.value}

    def _edit(self, props: dict[str, Any]) -> PlayDefinition:
        result = capture("config.update", self.config_store.update, self.current_play_name, props)
        if isinstance(result, Err):
            raise result.error
        logger.info("Updated %s: %s", self.current_play_name, sorted(props))
        return result.value

    def _change_perms(self, acl_payload: dict[str, Any]) -> AccessControl:
        payload = dict(_require_mapping(acl_payload, "acl_payload"))
        payload.setdefault("owner", self.default_owner)
        payload.setdefault("sharing", self.default_sharing.value)
        comparable_perms(payload)

        result = capture("config.set_acl", self.config_store.set_acl, self.current_play_name, payload)
        if isinstance(result, Err):
            raise result.error
        logger.info("Changed permissions of %s", self.current_play_name)
        self._reload()
        return result.value

    def _rename(self, new_props: dict[str, Any], document_payload: Optional[dict[str, Any]]) -> bool:
        """
        Rename the current play by copy-then-delete.

        Creates the definition under the new name (with the old ACL), writes
        the supplied document under the new correlation, deletes the old
        definition and then any documents still correlated to the old name.

        Returns:
            False if the new definition could not be created (nothing
            changed), True once the rename completed

        Raises:
            RemoteError: A step after the create failed
        """
        old_name = self.current_play_name
        new_name = new_props["name"]

        created = capture("config.create", self.config_store.create, new_props)
        if isinstance(created, Err):
            logger.warning(
                "Rename of %s to %s skipped: %s", old_name, new_name, sanitize_error_message(created.error)
            )
            return False

        old_definition = self._definitions.get(old_name)
        if old_definition is not None and old_definition.acl is not None:
            copied = capture(
                "config.set_acl", self.config_store.set_acl, new_name, old_definition.acl.to_payload()
            )
            if isinstance(copied, Err):
                self._discard_definition(new_name)
                raise copied.error

        keep_key = None
        if document_payload:
            written = self._upsert_document(document_payload, new_name)
            if isinstance(written, Ok):
                keep_key = written.value
            elif self.strict_document_writes:
                self._discard_definition(new_name)
                raise written.error

        self._delete_definition(old_name)

        try:
            self._delete_documents(old_name, keep_key=keep_key)
        except RemoteError as e:
            logger.warning("Documents of %s left behind: %s", old_name, sanitize_error_message(e))

        self.current_play_name = new_name
        logger.info("Renamed %s to %s", old_name, new_name)
        return True

    def _upsert_document(self, document_payload: dict[str, Any], name: str) -> StoreResult[str]:
        """
        Write the full document, stamped with its correlation to name.

        The store replaces documents wholesale, so document_payload must carry
        every field to keep. The caller's dict is not modified.
        """
        document = dict(_require_mapping(document_payload, "document_payload"))
        document[self.correlation_field] = name

        result = capture("documents.upsert", self.document_store.upsert, document)
        self.last_document_write = result
        if isinstance(result, Err):
            logger.warning("Document write for %s failed: %s", name, sanitize_error_message(result.error))
        else:
            logger.info("Wrote document %s for %s", result.value, name)
        return result

    def _delete_documents(
        self,
        name: str,
        document_payload: Optional[dict[str, Any]] = None,
        keep_key: Optional[str] = None,
    ) -> int:
        """
        Delete the documents of name: the keyed payload if given, otherwise
        every document correlated to name except keep_key.

        Returns:
            Number of documents deleted
        """
        if document_payload and document_payload.get(KEY_FIELD):
            keys = [document_payload[KEY_FIELD]]
        else:
            found = capture("documents.query", self.document_store.query, {self.correlation_field: name})
            if isinstance(found, Err):
                raise found.error
            keys = [doc[KEY_FIELD] for doc in found.value if doc.get(KEY_FIELD)]

        count = 0
        for key in keys:
            if key == keep_key:
                continue
            deleted = capture("documents.delete", self.document_store.delete, key)
            if isinstance(deleted, Err):
                if isinstance(deleted.error, NotFoundError):
                    continue
                raise deleted.error
            count += 1
        if count:
            logger.info("Deleted %d document(s) of %s", count, name)
        return count

    def _delete_definition(self, name: str) -> None:
        """
        Delete a definition, requiring the store to confirm it.

        Raises:
            RemoteError: The delete failed or was not confirmed
        """
        deleted = capture("config.delete", self.config_store.delete, name)
        if isinstance(deleted, Err):
            raise deleted.error
        if deleted.value is False:
            raise PermanentError(f"Delete of definition {name} not confirmed", operation="config.delete")
        logger.info("Deleted definition %s", name)

    def _discard_definition(self, name: str) -> None:
        """Best-effort removal of a definition created earlier in a failed sequence."""
        try:
            self._delete_definition(name)
        except RemoteError as e:
            logger.error("Could not roll back definition %s: %s", name, sanitize_error_message(e))
        else:
            logger.info("Rolled back definition %s", name)
