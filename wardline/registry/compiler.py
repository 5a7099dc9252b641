"""
Registry Compiler - descriptors to a durable, versioned document.

The document is a deterministic function of the descriptor set apart from
``metadata.generated_at``: controllers are keyed by identity and written
with sorted keys, so rescanning an unchanged tree reproduces it byte for
byte.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ..controller.metadata import ControllerDescriptor
from ..faults import RegistryStoreFault

logger = logging.getLogger("wardline.registry.compiler")


def framework_version() -> str:
    from wardline import __version__
    return __version__


class RegistryCompiler:
    """
    Builds and writes the registry document.

    Example:
        >>> compiler = RegistryCompiler(".wardline/registry.json")
        >>> document = compiler.compile(scanner.scan())
        >>> compiler.write(document)
    """

    def __init__(self, path: str | Path, schema_version: Optional[str] = None):
        self.path = Path(path)
        self.schema_version = schema_version or framework_version()

    def compile(self, descriptors: Iterable[ControllerDescriptor]) -> Dict[str, Any]:
        controllers = {desc.identity: desc.to_dict() for desc in descriptors}
        return {
            "metadata": {
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "schema_version": self.schema_version,
                "count": len(controllers),
            },
            "controllers": controllers,
        }

    @staticmethod
    def render(document: Dict[str, Any]) -> str:
        return json.dumps(document, indent=2, sort_keys=True) + "\n"

    def write(self, document: Dict[str, Any]) -> Path:
        """
        Replace the document atomically.

        Readers see either the previous document or the new one, never a
        partial write. Concurrent writers each use their own temp file; the
        last ``os.replace`` wins.

        Raises:
            RegistryStoreFault: If the directory or file cannot be written
        """
        payload = self.render(document)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as exc:
            raise RegistryStoreFault(str(self.path), "write", str(exc)) from exc

        logger.info(
            "Wrote registry document %s (%d controllers)",
            self.path,
            document["metadata"]["count"],
        )
        return self.path
