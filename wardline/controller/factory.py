"""
Controller Factory

Loads controller classes from their registry identity and keeps one
instance per identity. The factory is passed explicitly to whoever needs
controllers; there is no process-wide singleton.
"""

from typing import Any, Dict, Optional, Type
import importlib
import logging

from ..faults import RegistrationError

logger = logging.getLogger("wardline.controller.factory")


def split_identity(identity: str) -> tuple:
    """``"pkg.module:Class"`` -> ``("pkg.module", "Class")``."""
    module_name, sep, qualname = identity.partition(":")
    if not sep or not module_name or not qualname:
        raise RegistrationError(
            f"Invalid controller identity '{identity}'.",
            identity=identity,
            suggestion="Identities have the form 'package.module:ClassName'.",
        )
    return module_name, qualname


def import_identity(identity: str) -> Type:
    """
    Import the class named by ``identity``.

    Raises:
        RegistrationError: If the module or the class cannot be found
    """
    module_name, qualname = split_identity(identity)
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise RegistrationError(
            f"Cannot import module '{module_name}' for controller {identity}: {exc}",
            identity=identity,
        ) from exc

    target: Any = module
    for part in qualname.split("."):
        target = getattr(target, part, None)
        if target is None:
            raise RegistrationError(
                f"Controller class {identity} does not exist.",
                identity=identity,
                source=getattr(module, "__file__", None),
            )
    return target


class ControllerFactory:
    """
    Instance registry for controllers.

    Handles:
    - Class loading by identity (the resolver's autoload hook)
    - One cached instance per identity, with ``init()`` called once
    - Pre-registered instances for tests and hosts that build their own
    """

    def __init__(self, instances: Optional[Dict[str, Any]] = None):
        self._classes: Dict[str, Type] = {}
        self._instances: Dict[str, Any] = instances if instances is not None else {}

    def load_class(self, identity: str) -> Type:
        cls = self._classes.get(identity)
        if cls is None:
            cls = import_identity(identity)
            self._classes[identity] = cls
            logger.debug("Loaded controller class %s", identity)
        return cls

    def get(self, identity: str) -> Any:
        """Return the instance for ``identity``, creating it on first use."""
        instance = self._instances.get(identity)
        if instance is not None:
            return instance

        cls = self.load_class(identity)
        instance = cls()
        instance.init()
        self._instances[identity] = instance
        return instance

    def provide(self, identity: str, instance: Any) -> None:
        self._instances[identity] = instance

    def has_instance(self, identity: str) -> bool:
        return identity in self._instances

    def clear(self) -> None:
        self._classes.clear()
        self._instances.clear()
