"""
Cross-store consistency checks.

Every definition should have exactly one document whose correlation field
names it. Because writes to the two stores are not atomic, an interrupted
create, rename or delete can leave:

- a definition with no document (document write failed, or a rename
  crashed after creating the new definition)
- an orphan document naming no definition (definition deleted, document
  delete failed)
- several documents correlated to the same definition

check_consistency() reports all three. prune_orphans() removes orphan
documents; definitions are never deleted automatically.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from playsync.errors import NotFoundError
from playsync.models import KEY_FIELD
from playsync.result import Err, capture

logger = logging.getLogger(__name__)


@dataclass
class ConsistencyReport:
    """Outcome of a consistency check."""
    definitions_checked: int = 0
    documents_checked: int = 0
    missing_documents: list[str] = field(default_factory=list)
    orphan_documents: list[dict[str, Any]] = field(default_factory=list)
    duplicate_documents: dict[str, list[str]] = field(default_factory=dict)

    @property
    def is_consistent(self) -> bool:
        return not (self.missing_documents or self.orphan_documents or self.duplicate_documents)

    def to_dict(self) -> dict[str, Any]:
        return {
            "consistent": self.is_consistent,
            "definitions_checked": self.definitions_checked,
            "documents_checked": self.documents_checked,
            "missing_documents": list(self.missing_documents),
            "orphan_documents": [doc.get(KEY_FIELD) for doc in self.orphan_documents],
            "duplicate_documents": {k: list(v) for k, v in self.duplicate_documents.items()},
        }


def check_consistency(config_store, document_store, correlation_field: str = "play") -> ConsistencyReport:
    """
    Compare the definition set with the documents' correlation fields.

    Args:
        config_store: ConfigStoreClient
        document_store: DocumentStoreClient
        correlation_field: Document field naming the owning definition

    Returns:
        ConsistencyReport

    Raises:
        RemoteError: If either store could not be read
    """
    definitions = capture("config.list", config_store.list)
    if isinstance(definitions, Err):
        raise definitions.error
    documents = capture("documents.query", document_store.query, {})
    if isinstance(documents, Err):
        raise documents.error

    names = {definition.name for definition in definitions.value}
    by_name: dict[str, list[str]] = {}
    report = ConsistencyReport(
        definitions_checked=len(names),
        documents_checked=len(documents.value),
    )

    for document in documents.value:
        owner = document.get(correlation_field)
        if owner in names:
            by_name.setdefault(owner, []).append(document.get(KEY_FIELD))
        else:
            report.orphan_documents.append(document)

    report.missing_documents = sorted(names - set(by_name))
    report.duplicate_documents = {name: keys for name, keys in sorted(by_name.items()) if len(keys) > 1}

    if report.is_consistent:
        logger.info("Stores consistent: %d definitions, %d documents", len(names), len(documents.value))
    else:
        logger.warning(
            "Stores inconsistent: %d missing, %d orphaned, %d duplicated",
            len(report.missing_documents),
            len(report.orphan_documents),
            len(report.duplicate_documents),
        )
    return report


def prune_orphans(report: ConsistencyReport, document_store, dry_run: bool = True) -> list[str]:
    """
    Delete the orphan documents found by check_consistency().

    Args:
        report: Report from check_consistency()
        document_store: DocumentStoreClient to delete from
        dry_run: Only log what would be deleted

    Returns:
        Keys deleted (or that would be deleted in dry-run mode)

    Raises:
        RemoteError: If a delete fails for any reason other than the
            document already being gone
    """
    keys = [doc[KEY_FIELD] for doc in report.orphan_documents if doc.get(KEY_FIELD)]
    if dry_run:
        for key in keys:
            logger.info("[DRY-RUN] Would delete orphan document %s", key)
        return keys

    deleted = []
    for key in keys:
        result = capture("documents.delete", document_store.delete, key)
        if isinstance(result, Err):
            if isinstance(result.error, NotFoundError):
                continue
            raise result.error
        deleted.append(key)
    logger.info("Deleted %d orphan document(s)", len(deleted))
    return deleted
