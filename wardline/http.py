"""
HTTP value objects.

Narrow contracts between the dispatch pipeline and the host runtime:
``Request`` carries what the router needs to pick a controller,
``Action`` carries the named arguments of an action call and ``Reply``
is what controllers return. Parsing real HTTP traffic is the host's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional


@dataclass(frozen=True)
class Principal:
    """Requesting user and the capability grants it holds."""

    id: str
    capabilities: FrozenSet[str] = frozenset()

    @classmethod
    def of(cls, id: str, capabilities: Iterable[str] = ()) -> "Principal":
        return cls(id=id, capabilities=frozenset(capabilities))

    def can(self, capability: str) -> bool:
        return capability in self.capabilities


@dataclass
class Action:
    """
    Named action call parsed from a request body.

    ``name`` is None when the body could not be parsed into an action.
    """

    name: Optional[str]
    args: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_bad_request(self) -> bool:
        return not self.name

    def get(self, argument: str, default: Any = None) -> Any:
        return self.args.get(argument, default)

    def add(self, argument: str, value: Any) -> "Action":
        self.args[argument] = value
        return self

    def remove(self, argument: str) -> "Action":
        self.args.pop(argument, None)
        return self

    def merge(self, data: Dict[str, Any]) -> "Action":
        self.args = {**self.args, **data}
        return self


@dataclass
class Request:
    """
    Request as seen by the dispatcher.

    Attributes:
        method: HTTP method
        path: Request path
        object_id: Id of the queried object, if any
        object_type: Type name of the queried object or archive
        not_found: Whether the host already decided this is a 404
        action: Parsed action for action calls
        principal: Authenticated principal, if any
        headers: Lower-cased request headers
        state: Free-form per-request state
    """

    method: str = "GET"
    path: str = "/"
    object_id: Optional[str] = None
    object_type: Optional[str] = None
    not_found: bool = False
    action: Optional[Action] = None
    principal: Optional[Principal] = None
    headers: Dict[str, str] = field(default_factory=dict)
    state: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    @property
    def is_get(self) -> bool:
        return self.method == "GET"

    @property
    def is_post(self) -> bool:
        return self.method == "POST"

    @property
    def is_action(self) -> bool:
        return self.action is not None

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)


@dataclass
class Reply:
    """Controller reply, serializable so guards can cache it."""

    status: int = 200
    body: Any = ""
    content_type: str = "text/html"
    headers: Dict[str, str] = field(default_factory=dict)

    def code(self, status: int) -> "Reply":
        self.status = status
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "body": self.body,
            "content_type": self.content_type,
            "headers": dict(self.headers),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reply":
        """Rebuild a reply; raises ValueError on malformed data."""
        if not isinstance(data, dict) or "status" not in data:
            raise ValueError("Not a serialized reply")
        return cls(
            status=int(data["status"]),
            body=data.get("body", ""),
            content_type=data.get("content_type", "text/html"),
            headers=dict(data.get("headers") or {}),
        )
