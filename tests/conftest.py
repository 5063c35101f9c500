import pytest
from unittest.mock import MagicMock

from playsync.models import AccessControl, PlayDefinition, Sharing
from playsync.orchestrator import PlayOrchestrator
from playsync.stores import InMemoryConfigStore, InMemoryDocumentStore


@pytest.fixture
def alpha_definition():
    return PlayDefinition(
        name="alpha",
        properties={
            "search": "index=main sourcetype=syslog",
            "cron_schedule": "*/5 * * * *",
            "disabled": False,
            "schedule_priority": "default",
        },
        acl=AccessControl(owner="admin", sharing=Sharing.GLOBAL, read=["admin"], write=["admin"]),
    )


@pytest.fixture
def alpha_document():
    return {"_key": "k-alpha", "play": "alpha", "pid": "alpha", "status": "new"}


@pytest.fixture
def config_store(alpha_definition):
    return InMemoryConfigStore([alpha_definition])


@pytest.fixture
def document_store(alpha_document):
    return InMemoryDocumentStore([alpha_document])


@pytest.fixture
def orchestrator(config_store, document_store):
    return PlayOrchestrator(config_store, document_store, "alpha")


@pytest.fixture
def spied(config_store, document_store):
    """Orchestrator over store spies; calls made during construction are cleared."""
    config_spy = MagicMock(wraps=config_store)
    document_spy = MagicMock(wraps=document_store)
    orch = PlayOrchestrator(config_spy, document_spy, "alpha")
    config_spy.reset_mock()
    document_spy.reset_mock()
    return orch, config_spy, document_spy
