"""
Controller Resolver

Answers ``(type, handle) -> identity`` against a compiled Registry and
hands out the reserved default and not-found controllers.
"""

from typing import Callable, List, Optional, Set, Type, Union
import logging

from ..faults import RegistrationError
from ..registry.core import Registry, registry_key
from .base import ControllerType

logger = logging.getLogger("wardline.controller.resolver")

Rewriter = Callable[[str, ControllerType], str]


class ControllerResolver:
    """
    Resolves handles to controller identities.

    Rewriters run in registration order before the lookup, which lets a
    host map alternate id schemes (slugs, translated ids) onto registered
    handles. The ``autoload`` collaborator is called once per identity,
    on the first successful resolution.

    Example:
        >>> resolver = ControllerResolver(registry, autoload=factory.load_class)
        >>> resolver.add_rewriter(lambda handle, ctype: handle.lstrip("0"))
        >>> resolver.resolve("view", "042")
        'handlers.product:ProductPage'
    """

    def __init__(
        self,
        registry: Registry,
        autoload: Optional[Callable[[str], Type]] = None,
    ):
        self.registry = registry
        self.autoload = autoload
        self._rewriters: List[Rewriter] = []
        self._loaded: Set[str] = set()

    def add_rewriter(self, rewriter: Rewriter) -> None:
        self._rewriters.append(rewriter)

    def resolve(
        self,
        type: Union[ControllerType, str],
        handle: Union[str, int],
    ) -> Optional[str]:
        """Return the identity registered for ``handle``, or None."""
        ctype = ControllerType.coerce(type)
        value = str(handle)
        for rewriter in self._rewriters:
            value = str(rewriter(value, ctype))

        identity = self.registry.lookup(ctype, registry_key(value))
        if identity is not None:
            self._ensure_loaded(identity)
        return identity

    def resolve_class(
        self,
        type: Union[ControllerType, str],
        handle: Union[str, int],
    ) -> Optional[Type]:
        identity = self.resolve(type, handle)
        if identity is None or self.autoload is None:
            return None
        return self.autoload(identity)

    def get_default_controller(self) -> str:
        if self.registry.default_identity is None:
            raise RegistrationError(
                "No default controller registered.",
                suggestion='Add a controller with handle = "_default".',
            )
        self._ensure_loaded(self.registry.default_identity)
        return self.registry.default_identity

    def get_not_found_controller(self) -> str:
        if self.registry.not_found_identity is None:
            raise RegistrationError(
                "No not-found controller registered.",
                suggestion='Add a controller with handle = "_404".',
            )
        self._ensure_loaded(self.registry.not_found_identity)
        return self.registry.not_found_identity

    def _ensure_loaded(self, identity: str) -> None:
        if identity in self._loaded:
            return
        if self.autoload is not None:
            self.autoload(identity)
            logger.debug("Autoloaded controller %s", identity)
        self._loaded.add(identity)
