"""
playsync - Keep plays consistent across a configuration store and a
document store.

A play is a named search definition (ConfigStore) plus a runtime document
(DocumentStore). PlayOrchestrator sequences creates, renames, updates and
deletes across both stores.
"""

__version__ = "0.1.0"

__all__ = [
    "PlayOrchestrator",
    "PlaysyncConfig",
    "load_config",
    "get_playsync_home",
    "PlaysyncError",
    "ValidationError",
    "RemoteError",
]

from .config import PlaysyncConfig, get_playsync_home, load_config
from .errors import PlaysyncError, RemoteError, ValidationError
from .orchestrator import PlayOrchestrator
