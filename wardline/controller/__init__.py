"""
Wardline controller layer.

Controllers are plain classes with a class-level ``handle`` and an
``async serve(request)`` method. Their public methods become actions
that run behind the guard pipeline.

The resolver lives in ``wardline.controller.resolver``; it depends on the
registry, which in turn depends on this package.
"""

from .base import (
    Controller,
    AdminController,
    WidgetController,
    ControllerType,
    DEFAULT_HANDLE,
    NOT_FOUND_HANDLE,
    RESERVED_ACTIONS,
)
from .metadata import (
    ControllerDescriptor,
    class_identity,
    extract_descriptor,
    extract_actions,
    extract_mixins,
    classify,
    validate_controller_class,
)
from .factory import ControllerFactory, import_identity

__all__ = [
    "Controller",
    "AdminController",
    "WidgetController",
    "ControllerType",
    "DEFAULT_HANDLE",
    "NOT_FOUND_HANDLE",
    "RESERVED_ACTIONS",
    "ControllerDescriptor",
    "class_identity",
    "extract_descriptor",
    "extract_actions",
    "extract_mixins",
    "classify",
    "validate_controller_class",
    "ControllerFactory",
    "import_identity",
]
