"""
Controller Metadata Extraction

Validates controller classes and turns them into ControllerDescriptors:
class identity, handle, registry type, callable actions and mixins.
Used by the scanner at compile time; nothing here instantiates a
controller.
"""

from __future__ import annotations

from abc import ABC
import inspect
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

from ..faults import RegistrationError
from .base import (
    CORE_BASES,
    DEFAULT_HANDLE,
    NOT_FOUND_HANDLE,
    RESERVED_ACTIONS,
    AdminController,
    Controller,
    ControllerType,
)


@dataclass
class ControllerDescriptor:
    """
    Compiled description of one controller class.

    Attributes:
        identity: Import identity, ``"package.module:ClassName"``
        handle: Routing handle
        type: Registry namespace
        actions: Callable action names, in declaration order
        mixins: Identities of non-controller bases
        source_file_path: File the class was loaded from
        source_file_modified_at: That file's mtime at scan time
    """
    identity: str
    handle: str
    type: ControllerType
    actions: List[str] = field(default_factory=list)
    mixins: List[str] = field(default_factory=list)
    source_file_path: str = ""
    source_file_modified_at: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "handle": self.handle,
            "mixins": list(self.mixins),
            "actions": list(self.actions),
            "source_file_path": self.source_file_path,
            "source_file_modified_at": self.source_file_modified_at,
        }

    @classmethod
    def from_dict(cls, identity: str, data: Dict[str, Any]) -> "ControllerDescriptor":
        """Rebuild from a document entry; raises ValueError on bad shape."""
        if not isinstance(data, dict):
            raise ValueError(f"entry for {identity!r} is not an object")
        handle = data.get("handle")
        if not isinstance(handle, str) or not handle:
            raise ValueError(f"entry for {identity!r} has no handle")
        actions = data.get("actions", [])
        mixins = data.get("mixins", [])
        if not isinstance(actions, list) or not isinstance(mixins, list):
            raise ValueError(f"entry for {identity!r} has malformed actions or mixins")
        return cls(
            identity=identity,
            handle=handle,
            type=ControllerType(data.get("type")),
            actions=[str(a) for a in actions],
            mixins=[str(m) for m in mixins],
            source_file_path=str(data.get("source_file_path", "")),
            source_file_modified_at=float(data.get("source_file_modified_at", 0.0)),
        )


def class_identity(cls: Type) -> str:
    """``module:QualName`` identity used across the registry."""
    return f"{cls.__module__}:{cls.__qualname__}"


def is_handler_candidate(obj: Any) -> bool:
    """Concrete class exposing the ``serve(request)`` capability."""
    return (
        inspect.isclass(obj)
        and not inspect.isabstract(obj)
        and callable(getattr(obj, "serve", None))
    )


def validate_controller_class(cls: Type, source: Optional[str] = None) -> str:
    """
    Check a handler candidate and return its handle.

    Raises:
        RegistrationError: If ``handle`` is missing, instance-scoped, not a
            plain value, or if the class is outside the Controller base
    """
    identity = class_identity(cls)

    if not issubclass(cls, Controller):
        raise RegistrationError(
            f"Controller {identity} must descend from wardline.Controller.",
            identity=identity,
            source=source,
            suggestion="Inherit from Controller to join the controller lifecycle.",
        )

    declared = None
    for klass in cls.__mro__:
        if "handle" in vars(klass):
            declared = vars(klass)["handle"]
            break

    if declared is None:
        raise RegistrationError(
            f"Controller {identity} must have a public class-level `handle`.",
            identity=identity,
            source=source,
            suggestion='Declare it on the class body, e.g. handle = "product".',
        )

    if isinstance(declared, (staticmethod, classmethod, property)) or inspect.isroutine(declared):
        raise RegistrationError(
            f"Controller {identity} declares `handle` as a callable; it must be a plain value.",
            identity=identity,
            source=source,
        )

    if isinstance(declared, bool) or not isinstance(declared, (str, int)):
        raise RegistrationError(
            f"Controller {identity} `handle` must be a string, got {type(declared).__name__}.",
            identity=identity,
            source=source,
        )

    handle = str(declared)
    if not handle:
        raise RegistrationError(
            f"Controller {identity} has an empty `handle`.",
            identity=identity,
            source=source,
        )
    return handle


def classify(cls: Type, handle: str) -> ControllerType:
    if handle == DEFAULT_HANDLE:
        return ControllerType.DEFAULT
    if handle == NOT_FOUND_HANDLE:
        return ControllerType.NOT_FOUND
    if issubclass(cls, AdminController):
        return ControllerType.ADMIN
    return ControllerType.VIEW


def _core_names() -> set:
    names = set()
    for base in CORE_BASES:
        names.update(vars(base))
    return names


def extract_actions(cls: Type) -> List[str]:
    """
    Public instance methods callable as actions.

    Walks the MRO from the most derived class, keeping declaration order
    and the first occurrence of each name.
    """
    excluded = _core_names() | RESERVED_ACTIONS
    actions: List[str] = []
    seen = set()

    for klass in cls.__mro__:
        if klass is object or klass in CORE_BASES:
            continue
        for name, member in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            if name.startswith("_") or name in excluded:
                continue
            if isinstance(member, (staticmethod, classmethod, property)):
                continue
            if not inspect.isfunction(member):
                continue
            actions.append(name)

    return actions


def extract_mixins(cls: Type) -> List[str]:
    return [
        class_identity(base)
        for base in cls.__mro__[1:]
        if base is not object
        and base is not ABC
        and not issubclass(base, Controller)
    ]


def extract_descriptor(cls: Type, source_file: Optional[str] = None) -> ControllerDescriptor:
    """
    Validate and describe a controller class.

    Args:
        cls: Controller class
        source_file: File the class was loaded from (defaults to
            ``inspect.getsourcefile``)
    """
    if source_file is None:
        try:
            source_file = inspect.getsourcefile(cls)
        except TypeError:
            source_file = None

    handle = validate_controller_class(cls, source_file)
    mtime = 0.0
    if source_file and os.path.exists(source_file):
        mtime = os.stat(source_file).st_mtime

    return ControllerDescriptor(
        identity=class_identity(cls),
        handle=handle,
        type=classify(cls, handle),
        actions=extract_actions(cls),
        mixins=extract_mixins(cls),
        source_file_path=source_file or "",
        source_file_modified_at=mtime,
    )

