"""
Wardline - boot orchestration.

``Wardline.boot()`` loads the registry document (or rescans and rewrites
it), then wires resolver, controller factory, cache, guard pipeline and
dispatcher around the resulting Registry.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from .cache import FileDurableBackend, TwoTierCache
from .config import WardlineConfig
from .controller.factory import ControllerFactory
from .controller.resolver import ControllerResolver
from .dispatch import Dispatcher
from .guards import (
    CapabilityGuard,
    GuardPipeline,
    ResponseCacheGuard,
    TokenGuard,
    TokenSigner,
)
from .registry import (
    ControllerScanner,
    Registry,
    RegistryCompiler,
    RegistryLoader,
    RegistryMode,
)
from .registry.scanner import ManifestEntry

logger = logging.getLogger("wardline.app")


class Wardline:
    """
    Application wiring.

    Example:
        >>> app = Wardline(ConfigLoader.load().to_config())
        >>> app.boot()
        >>> reply = await app.dispatcher.dispatch(Request(object_type="product"))
    """

    def __init__(
        self,
        config: Optional[WardlineConfig] = None,
        *,
        manifest: Sequence[ManifestEntry] = (),
        cache: Optional[TwoTierCache] = None,
        signer: Optional[TokenSigner] = None,
    ):
        self.config = config or WardlineConfig()
        self.manifest = list(manifest)
        self.cache = cache or TwoTierCache(
            FileDurableBackend(self.config.cache_path),
            default_ttl=self.config.default_ttl,
        )
        self.signer = signer or TokenSigner(
            self.config.token_secret or None, ttl=self.config.token_ttl
        )

        self.registry: Optional[Registry] = None
        self.rescanned = False
        self.factory = ControllerFactory()
        self.resolver: Optional[ControllerResolver] = None
        self.pipeline: Optional[GuardPipeline] = None
        self.dispatcher: Optional[Dispatcher] = None

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    @property
    def mode(self) -> RegistryMode:
        return RegistryMode(self.config.mode)

    @property
    def handlers_root(self) -> Optional[Path]:
        root = Path(self.config.handlers_dir)
        if self.manifest and not root.is_dir():
            return None
        return root

    def scanner(self) -> ControllerScanner:
        return ControllerScanner(
            self.handlers_root,
            package=self.config.handlers_package,
            manifest=self.manifest,
        )

    def compiler(self) -> RegistryCompiler:
        return RegistryCompiler(self.config.registry_path)

    def loader(self) -> RegistryLoader:
        return RegistryLoader(
            self.config.registry_path,
            mode=self.mode,
            handlers_root=self.handlers_root,
            critical_files=self.config.critical_files,
        )

    def compile(self) -> dict:
        """Rescan and rewrite the registry document."""
        compiler = self.compiler()
        document = compiler.compile(self.scanner().scan())
        compiler.write(document)
        return document

    def load_registry(self) -> Registry:
        document = self.loader().load()
        self.rescanned = document is None
        if document is None:
            logger.info("Rebuilding registry document %s", self.config.registry_path)
            document = self.compile()
        return RegistryLoader.apply(document, Registry())

    # ------------------------------------------------------------------
    # Boot
    # ------------------------------------------------------------------

    def build_pipeline(self) -> GuardPipeline:
        if not self.config.token_secret:
            logger.warning("No token secret configured; tokens will not survive a restart")
        bypass = self.config.is_dev and not self.config.cache_replies_in_dev
        return GuardPipeline(
            [
                TokenGuard(self.signer, self.cache, field=self.config.token_field),
                CapabilityGuard(),
                ResponseCacheGuard(self.cache, bypass=bypass, default_ttl=self.config.reply_ttl),
            ],
            unknown_policy=self.config.unknown_guard_policy,
        )

    def boot(self) -> "Wardline":
        """
        Build every runtime component.

        Raises:
            RegistrationError: On malformed controllers or a registry
                without default or not-found controller
        """
        self.registry = self.load_registry()
        self.resolver = ControllerResolver(self.registry, autoload=self.factory.load_class)
        self.pipeline = self.build_pipeline()
        self.dispatcher = Dispatcher(self.resolver, self.factory, self.pipeline, self.cache)

        self.resolver.get_default_controller()
        self.resolver.get_not_found_controller()
        return self
