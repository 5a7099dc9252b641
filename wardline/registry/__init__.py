"""
Wardline registry - compiled controller index.

Pipeline:
    ControllerScanner -> RegistryCompiler -> registry document
    registry document -> RegistryLoader -> Registry
"""

from .core import Registry, RegistryMode, HANDLE_PREFIX, registry_key
from .scanner import ControllerScanner, walk_handler_tree
from .compiler import RegistryCompiler, framework_version
from .loader import RegistryLoader

__all__ = [
    "Registry",
    "RegistryMode",
    "HANDLE_PREFIX",
    "registry_key",
    "ControllerScanner",
    "walk_handler_tree",
    "RegistryCompiler",
    "framework_version",
    "RegistryLoader",
]
