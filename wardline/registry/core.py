"""
Core registry types.
"""

from typing import Any, Dict, List, Optional, Union
from enum import Enum

from ..controller.base import ControllerType
from ..controller.metadata import ControllerDescriptor

# Keeps numeric-looking handles ("42") from ever being treated as positions.
HANDLE_PREFIX = "c_"


class RegistryMode(str, Enum):
    """Registry operational modes."""
    DEV = "dev"        # Freshness-checked on every boot
    PROD = "prod"      # Trusted while the schema version matches


def registry_key(handle: Union[str, int]) -> str:
    return f"{HANDLE_PREFIX}{handle}"


class Registry:
    """
    In-memory controller index: ``(type, handle) -> identity``.

    Later registrations of the same ``(type, handle)`` replace earlier ones.
    The default and not-found controllers are tracked separately so the
    resolver can hand them out without a lookup.
    """

    __slots__ = (
        "schema_version",
        "generated_at",
        "default_identity",
        "not_found_identity",
        "_entries",
        "_descriptors",
    )

    def __init__(
        self,
        schema_version: Optional[str] = None,
        generated_at: Optional[str] = None,
    ):
        self.schema_version = schema_version
        self.generated_at = generated_at
        self.default_identity: Optional[str] = None
        self.not_found_identity: Optional[str] = None
        self._entries: Dict[ControllerType, Dict[str, str]] = {t: {} for t in ControllerType}
        self._descriptors: Dict[str, ControllerDescriptor] = {}

    def register(
        self,
        type: Union[ControllerType, str],
        handle: Union[str, int],
        identity: str,
    ) -> None:
        ctype = ControllerType.coerce(type)
        self._entries[ctype][registry_key(handle)] = identity
        if ctype is ControllerType.DEFAULT:
            self.default_identity = identity
        elif ctype is ControllerType.NOT_FOUND:
            self.not_found_identity = identity

    def add(self, descriptor: ControllerDescriptor) -> None:
        """Register a descriptor and keep it for action lookups."""
        self._descriptors[descriptor.identity] = descriptor
        self.register(descriptor.type, descriptor.handle, descriptor.identity)

    def lookup(self, type: Union[ControllerType, str], key: str) -> Optional[str]:
        """Look up an already prefixed key."""
        return self._entries[ControllerType.coerce(type)].get(key)

    def descriptor(self, identity: str) -> Optional[ControllerDescriptor]:
        return self._descriptors.get(identity)

    def descriptors(self) -> List[ControllerDescriptor]:
        return list(self._descriptors.values())

    def handles(self, type: Union[ControllerType, str]) -> Dict[str, str]:
        """Unprefixed ``handle -> identity`` map for one namespace."""
        return {
            key[len(HANDLE_PREFIX):]: identity
            for key, identity in self._entries[ControllerType.coerce(type)].items()
        }

    @property
    def total_count(self) -> int:
        return sum(len(entries) for entries in self._entries.values())

    def __len__(self) -> int:
        return self.total_count

    def inspect(self) -> Dict[str, Any]:
        """Diagnostics used by ``wardline inspect``."""
        return {
            "schema_version": self.schema_version,
            "generated_at": self.generated_at,
            "count": self.total_count,
            "default": self.default_identity,
            "not_found": self.not_found_identity,
            "controllers": {
                ctype.value: self.handles(ctype)
                for ctype in ControllerType
                if self._entries[ctype]
            },
        }
