"""
Controller Base Classes

Provides the lifecycle base every routed controller descends from, the
marker mixins that change how a controller is classified, and the
controller type taxonomy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, TYPE_CHECKING

if TYPE_CHECKING:
    from wardline.http import Reply, Request


DEFAULT_HANDLE = "_default"
NOT_FOUND_HANDLE = "_404"

# Lifecycle names that are never callable as actions.
RESERVED_ACTIONS = frozenset({"handle", "serve", "init", "configure"})


class ControllerType(str, Enum):
    """Registry namespaces."""
    VIEW = "view"
    ADMIN = "admin"
    WIDGET = "widget"          # reserved; never assigned by classification
    DEFAULT = "default"
    NOT_FOUND = "not_found"

    @classmethod
    def coerce(cls, value: "ControllerType | str") -> "ControllerType":
        if isinstance(value, cls):
            return value
        return cls(str(value).lower())


class Controller(ABC):
    """
    Base Controller class.

    A controller services every request routed to its ``handle``:

    - a numeric object id (``"42"``)
    - a type name (``"product"``)
    - an archive name (``"archive_product"``)
    - ``"_default"`` or ``"_404"`` for the reserved fallbacks

    ``handle`` must be a class attribute. Public methods other than the
    lifecycle ones become callable actions.

    Example:
        class ProductController(Controller):
            handle = "product"

            async def serve(self, request):
                return Reply(body="product page")

            @require_capabilities("edit_products")
            async def rename(self, request, action):
                ...
    """

    handle: str

    def init(self) -> None:
        """Called once, right after the instance is constructed."""
        pass

    @abstractmethod
    async def serve(self, request: "Request") -> "Reply":
        """Handle a routed request and return a reply."""
        ...


class AdminController(ABC):
    """
    Marker mixin for admin screens.

    Admin controllers live in their own registry namespace and describe
    their menu placement through ``configure()``.
    """

    @abstractmethod
    def configure(self) -> Dict[str, Any]:
        """Menu placement consumed by the host's admin menu."""
        ...


class WidgetController(ABC):
    """Marker mixin for widgets."""

    @abstractmethod
    def configure(self) -> Dict[str, Any]:
        """Widget settings consumed by the host."""
        ...


# Classes whose own declarations are never exposed as actions.
CORE_BASES = (Controller, AdminController, WidgetController)
