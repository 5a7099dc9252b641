"""
Request dispatch.

Picks the controller for a request, runs GET requests through
``serve()`` and action calls through the guard pipeline, and flushes the
cache once when the request is over.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .cache import TwoTierCache
from .controller.base import RESERVED_ACTIONS, ControllerType
from .controller.factory import ControllerFactory
from .controller.metadata import extract_actions
from .controller.resolver import ControllerResolver
from .faults import ActionFault, CacheFault, ValidationAggregateError
from .guards.pipeline import GuardPipeline
from .http import Reply, Request

logger = logging.getLogger("wardline.dispatch")

# Object types that always fall through to the default controller.
FALLBACK_TYPES = frozenset({"page"})


class Dispatcher:
    """
    Routes requests to controllers.

    Resolution order:

    1. ``request.not_found`` -> the not-found controller, status 404
    2. ``request.object_id`` -> view controller registered for that id
    3. ``request.object_type`` -> view controller registered for that type
    4. the default controller
    """

    def __init__(
        self,
        resolver: ControllerResolver,
        factory: ControllerFactory,
        pipeline: GuardPipeline,
        cache: Optional[TwoTierCache] = None,
    ):
        self.resolver = resolver
        self.factory = factory
        self.pipeline = pipeline
        self.cache = cache

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def dispatch(self, request: Request) -> Reply:
        try:
            if request.not_found:
                identity = self.resolver.get_not_found_controller()
                reply = await self._serve(identity, request)
                return reply.code(404)

            identity = self.route(request)
            if request.is_post and request.is_action:
                return await self.run_action(identity, request)
            return await self._serve(identity, request)
        finally:
            self._end_request()

    async def dispatch_admin(self, handle: str, request: Request) -> Reply:
        """Serve the admin screen registered for ``handle``."""
        try:
            identity = self.resolver.resolve(ControllerType.ADMIN, handle)
            if identity is None:
                return _rejection(404, f"No admin screen '{handle}'")
            if request.is_post and request.is_action:
                return await self.run_action(identity, request)
            return await self._serve(identity, request)
        finally:
            self._end_request()

    def admin_menu(self) -> List[Dict[str, Any]]:
        """``configure()`` maps of every admin controller, tagged with its handle."""
        menu = []
        for handle, identity in self.resolver.registry.handles(ControllerType.ADMIN).items():
            entry = dict(self.factory.get(identity).configure())
            entry.setdefault("handle", handle)
            menu.append(entry)
        return menu

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def route(self, request: Request) -> str:
        if request.object_id is not None:
            identity = self.resolver.resolve(ControllerType.VIEW, request.object_id)
            if identity is not None:
                return identity

        object_type = request.object_type
        if object_type and object_type not in FALLBACK_TYPES:
            identity = self.resolver.resolve(ControllerType.VIEW, object_type)
            if identity is not None:
                return identity

        return self.resolver.get_default_controller()

    async def _serve(self, identity: str, request: Request) -> Reply:
        controller = self.factory.get(identity)
        return _as_reply(await controller.serve(request))

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def callable_actions(self, identity: str) -> List[str]:
        descriptor = self.resolver.registry.descriptor(identity)
        if descriptor is not None:
            return descriptor.actions
        return extract_actions(self.factory.load_class(identity))

    def _check_action(self, identity: str, request: Request) -> str:
        action = request.action
        if action is None or action.is_bad_request:
            raise ActionFault("Bad request: no action given")

        name = action.name
        if name in RESERVED_ACTIONS or name.startswith("_"):
            raise ActionFault(f"Action '{name}' cannot be called", action=name)
        if name not in self.callable_actions(identity):
            raise ActionFault(f"Unknown action '{name}'", status=404, action=name)
        return name

    async def run_action(self, identity: str, request: Request) -> Reply:
        try:
            name = self._check_action(identity, request)
            controller = self.factory.get(identity)
            result = await self.pipeline.run(controller, name, request, request, request.action)
        except ActionFault as fault:
            return _rejection(fault.status, fault.message)
        except ValidationAggregateError as err:
            logger.info("%s", err)
            return _rejection(err.status, err.message)
        except Exception:
            logger.exception("Action failed on %s", identity)
            return _rejection(500, "Internal error")
        return _as_reply(result)

    def _end_request(self) -> None:
        if self.cache is None:
            return
        try:
            self.cache.end_request()
        except CacheFault as fault:
            logger.warning("Cache flush failed: %s", fault)


def _rejection(status: int, message: str) -> Reply:
    return Reply(status=status, body={"error": message}, content_type="application/json")


def _as_reply(result: Any) -> Reply:
    if isinstance(result, Reply):
        return result
    if isinstance(result, (dict, list)):
        return Reply(body=result, content_type="application/json")
    return Reply(body="" if result is None else str(result))
