"""
Registry Loader - validates the persisted document or signals a rescan.

``load()`` never raises for a bad document. A corrupt or outdated
document is discarded and ``None`` is returned, which tells the caller to
run the scanner and compiler again.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from ..controller.base import ControllerType
from ..controller.factory import import_identity
from ..controller.metadata import ControllerDescriptor
from ..faults import RegistrationError, RegistryCorruptionFault
from .compiler import framework_version
from .core import Registry, RegistryMode
from .scanner import walk_handler_tree

logger = logging.getLogger("wardline.registry.loader")

_CONTROLLER_KEYS = {
    "type": str,
    "handle": str,
    "mixins": list,
    "actions": list,
    "source_file_path": str,
    "source_file_modified_at": (int, float),
}


class RegistryLoader:
    """
    Loads the registry document under a mode-specific freshness policy.

    - prod: a readable document with the current schema version is used
      as is; the handler tree is never touched.
    - dev: critical framework files, then every handler file and directory,
      are compared against the document's mtime. Once fresh, every class
      identity is imported again to confirm it still exists.
    """

    def __init__(
        self,
        path: Union[str, Path],
        mode: Union[RegistryMode, str] = RegistryMode.DEV,
        handlers_root: Optional[Union[str, Path]] = None,
        critical_files: Iterable[Union[str, Path]] = (),
        schema_version: Optional[str] = None,
    ):
        self.path = Path(path)
        self.mode = RegistryMode(mode)
        self.handlers_root = Path(handlers_root) if handlers_root is not None else None
        self.critical_files = [Path(p) for p in critical_files]
        self.schema_version = schema_version or framework_version()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Returns:
            The validated document, or None if a rescan is required
        """
        document = self._read()
        if document is None:
            return None

        if self.mode is RegistryMode.PROD:
            return document

        reason = self.stale_reason()
        if reason:
            logger.info("Registry document %s is stale: %s", self.path, reason)
            return None

        for identity in document["controllers"]:
            try:
                import_identity(identity)
            except RegistrationError as exc:
                return self._discard(f"controller {identity} is gone ({exc.message})")

        return document

    def _read(self) -> Optional[Dict[str, Any]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            return self._discard(f"unreadable ({exc})")

        try:
            document = json.loads(raw)
        except ValueError as exc:
            return self._discard(f"invalid JSON ({exc})")

        problem = self.structure_problem(document)
        if problem:
            return self._discard(problem)

        version = document["metadata"]["schema_version"]
        if version != self.schema_version:
            return self._discard(
                f"schema version {version} does not match {self.schema_version}"
            )
        return document

    @staticmethod
    def structure_problem(document: Any) -> Optional[str]:
        """Describe the first structural defect, or None."""
        if not isinstance(document, dict):
            return "document is not an object"

        metadata = document.get("metadata")
        if not isinstance(metadata, dict):
            return "missing metadata"
        for key in ("generated_at", "schema_version"):
            if not isinstance(metadata.get(key), str):
                return f"metadata.{key} missing or not a string"
        if not isinstance(metadata.get("count"), int):
            return "metadata.count missing or not an integer"

        controllers = document.get("controllers")
        if not isinstance(controllers, dict):
            return "missing controllers"
        if metadata["count"] != len(controllers):
            return "metadata.count does not match controllers"

        types = {t.value for t in ControllerType}
        for identity, entry in controllers.items():
            if not isinstance(entry, dict):
                return f"entry {identity} is not an object"
            for key, expected in _CONTROLLER_KEYS.items():
                if not isinstance(entry.get(key), expected):
                    return f"entry {identity} has a missing or mistyped '{key}'"
            if entry["type"] not in types:
                return f"entry {identity} has unknown type '{entry['type']}'"
        return None

    def _discard(self, reason: str) -> None:
        fault = RegistryCorruptionFault(str(self.path), reason)
        logger.warning("%s", fault, extra={"fault": fault.to_dict()})
        if self.path.exists() and os.access(self.path, os.W_OK):
            try:
                self.path.unlink()
            except OSError as exc:
                logger.warning("Could not delete registry document %s: %s", self.path, exc)
        return None

    # ------------------------------------------------------------------
    # Freshness
    # ------------------------------------------------------------------

    def stale_reason(self) -> Optional[str]:
        """
        Why the document is older than its inputs, or None if it is fresh.

        Stage one checks the critical framework files. Stage two walks the
        handler tree and stops at the first newer file or directory.
        """
        try:
            generated = os.stat(self.path).st_mtime
        except OSError:
            return "document missing"

        for critical in self.critical_files:
            try:
                if os.stat(critical).st_mtime > generated:
                    return f"critical file {critical} changed"
            except FileNotFoundError:
                continue

        if self.handlers_root is None:
            return None
        if not self.handlers_root.is_dir():
            return f"handler directory {self.handlers_root} is missing"

        for path, _is_dir in walk_handler_tree(self.handlers_root):
            if os.stat(path).st_mtime > generated:
                return f"{path} changed"
        return None

    # ------------------------------------------------------------------
    # Applying
    # ------------------------------------------------------------------

    @staticmethod
    def apply(document: Dict[str, Any], registry: Optional[Registry] = None) -> Registry:
        """Feed the document's descriptors into a Registry."""
        metadata = document["metadata"]
        if registry is None:
            registry = Registry()
        registry.schema_version = metadata["schema_version"]
        registry.generated_at = metadata["generated_at"]

        for identity in sorted(document["controllers"]):
            registry.add(ControllerDescriptor.from_dict(identity, document["controllers"][identity]))
        return registry
