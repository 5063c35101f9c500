"""
Data model for a play.

A play is one logical entity spread over two stores:
- PlayDefinition: the named search definition held by the ConfigStore
- PlayDocument: the runtime document held by the DocumentStore (a plain dict)

The DocumentStore is schema-less, so documents stay dicts. Only the fields
the orchestrator reasons about are named here.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

# Name characters rejected by the ConfigStore path layout
INVALID_NAME_PATTERN = re.compile(r"[/\\]")

KEY_FIELD = "_key"
PID_FIELD = "pid"

# Properties the ConfigStore reports but callers never edit
DEFAULT_HIDDEN_PROPERTIES = (
    "embed.enabled",
    "schedule_priority",
    "triggered_alert_count",
)


class Sharing(str, Enum):
    """Sharing scope of a definition."""
    PRIVATE = "private"
    APP = "app"
    GLOBAL = "global"

    @classmethod
    def _missing_(cls, value):
        # The store reports private sharing as "user"
        if value == "user":
            return cls.PRIVATE
        return None


def parse_principals(value: Any) -> list[str]:
    """
    Normalise a principal list.

    The ACL endpoint takes comma-separated strings ("*,admin") while reads
    return lists (["*", "admin"]); both shapes are accepted.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    return [str(p) for p in value]


@dataclass
class AccessControl:
    """Access-control record attached to a PlayDefinition."""
    owner: str = "nobody"
    sharing: Sharing = Sharing.GLOBAL
    read: list[str] = field(default_factory=list)
    write: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AccessControl":
        """
        Build from either a caller ACL payload or a store ACL record.

        Caller payloads use flat keys ("perms.read"); store records nest
        principals under "perms": {"read": [...], "write": [...]}.
        """
        perms = payload.get("perms") or {}
        read = payload.get("perms.read", perms.get("read", payload.get("read")))
        write = payload.get("perms.write", perms.get("write", payload.get("write")))
        return cls(
            owner=payload.get("owner", "nobody"),
            sharing=Sharing(payload.get("sharing", Sharing.GLOBAL.value)),
            read=parse_principals(read),
            write=parse_principals(write),
        )

    def to_payload(self) -> dict[str, str]:
        """Render the form body the ACL endpoint expects."""
        return {
            "owner": self.owner,
            "sharing": self.sharing.value,
            "perms.read": ",".join(self.read),
            "perms.write": ",".join(self.write),
        }

    @property
    def perms(self) -> dict[str, list[str]]:
        return {"read": list(self.read), "write": list(self.write)}


@dataclass
class PlayDefinition:
    """A named search definition as held by the ConfigStore."""
    name: str
    properties: dict[str, Any] = field(default_factory=dict)
    acl: Optional[AccessControl] = None

    @property
    def disabled(self) -> bool:
        value = self.properties.get("disabled", False)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes")
        return bool(value)

    def visible_properties(self, hidden: Iterable[str] = DEFAULT_HIDDEN_PROPERTIES) -> dict[str, Any]:
        """Copy of the properties without store-managed bookkeeping fields."""
        hidden = set(hidden)
        return {k: v for k, v in self.properties.items() if k not in hidden}


@dataclass(frozen=True)
class HistoryEntry:
    """One dispatch-history entry, projected to the fields the UI shows."""
    name: str
    published: str

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "HistoryEntry":
        return cls(name=raw.get("name", ""), published=raw.get("published", ""))

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "published": self.published}


def missing_definition(name: Optional[str]) -> dict[str, Any]:
    """Placeholder returned in place of properties for an unknown name."""
    return {
        "feedback": (
            f"{name} does not exist in the configuration store. \n"
            "Fields containing values represent play data stored in the document store."
        ),
        "play_name": name,
    }


def validate_play_name(name: Any) -> Optional[str]:
    """Return a reason the name is unusable, or None when it is valid."""
    if not isinstance(name, str) or not name.strip():
        return "Play name is required"
    if INVALID_NAME_PATTERN.search(name):
        return f"Invalid character in play name: {name!r}"
    return None
