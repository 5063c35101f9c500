"""
Store clients for play definitions (ConfigStore) and play documents
(DocumentStore).

Usage:
    from playsync.stores import RestTransport, RestConfigStore, RestDocumentStore

    transport = RestTransport("https://splunk:8089", owner="nobody", app="playbooks", session=session)
    config_store = RestConfigStore(transport)
    document_store = RestDocumentStore(transport, collection="plays")

    # Or in memory for tests
    config_store, document_store = InMemoryConfigStore(), InMemoryDocumentStore()
"""

from playsync.stores.base import ConfigStoreClient, DocumentStoreClient
from playsync.stores.memory import InMemoryConfigStore, InMemoryDocumentStore
from playsync.stores.rest import RestConfigStore, RestDocumentStore, RestTransport

__all__ = [
    "ConfigStoreClient",
    "DocumentStoreClient",
    "InMemoryConfigStore",
    "InMemoryDocumentStore",
    "RestConfigStore",
    "RestDocumentStore",
    "RestTransport",
]
