"""
Guard Pipeline - evaluate-all validation in front of action methods.

Every marker on a method is checked, even after one fails, so the caller
gets a single error listing every reason. A ShortCircuit result replaces
the call instead of approving it.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type, Union

from ..controller.metadata import class_identity
from ..faults import ValidationAggregateError
from .core import (
    Fail,
    GuardContext,
    GuardDescriptor,
    GuardHandler,
    GuardOutcome,
    Proceed,
    ShortCircuit,
)

logger = logging.getLogger("wardline.guards")

UNKNOWN_POLICIES = ("ignore", "warn", "error")


class GuardPipeline:
    """
    Runs guard markers through their registered handlers.

    Markers come from two places, in this order:

    1. ``@guard``-style decorators on the method (source order)
    2. descriptors attached with ``attach()`` at registration time

    Example:
        >>> pipeline = GuardPipeline([CapabilityGuard(), TokenGuard(signer, cache)])
        >>> pipeline.attach(ProductController, "rename", GuardDescriptor.of("token", purpose="rename"))
        >>> result = await pipeline.run(controller, "rename", request, request, action)
    """

    def __init__(
        self,
        handlers: Optional[Union[Iterable[GuardHandler], Mapping[str, GuardHandler]]] = None,
        unknown_policy: str = "warn",
    ):
        if unknown_policy not in UNKNOWN_POLICIES:
            raise ValueError(
                f"unknown_policy must be one of {', '.join(UNKNOWN_POLICIES)}, got {unknown_policy!r}"
            )
        self.unknown_policy = unknown_policy
        self._handlers: Dict[str, GuardHandler] = {}
        self._attached: Dict[Tuple[str, str], List[GuardDescriptor]] = {}

        if isinstance(handlers, Mapping):
            for rule_type, handler in handlers.items():
                self.register(rule_type, handler)
        else:
            for handler in handlers or ():
                self.register(handler.rule_type, handler)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, rule_type: str, handler: GuardHandler) -> "GuardPipeline":
        if not isinstance(handler, GuardHandler):
            raise TypeError(
                f"Guard handler for '{rule_type}' must be a GuardHandler, "
                f"got {type(handler).__name__}"
            )
        if not rule_type:
            raise ValueError("Guard handler needs a rule type")
        self._handlers[rule_type] = handler
        return self

    def handler_for(self, rule_type: str) -> Optional[GuardHandler]:
        return self._handlers.get(rule_type)

    def attach(
        self,
        controller_cls: Type,
        method_name: str,
        *descriptors: GuardDescriptor,
    ) -> "GuardPipeline":
        key = (class_identity(controller_cls), method_name)
        self._attached.setdefault(key, []).extend(descriptors)
        return self

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def markers_for(self, instance: Any, method_name: str) -> List[GuardDescriptor]:
        cls = type(instance)
        identity = class_identity(cls)

        func = inspect.getattr_static(cls, method_name, None)
        func = getattr(func, "__func__", func)
        markers = list(getattr(func, "__guard_markers__", ()))

        for klass in cls.__mro__:
            markers.extend(self._attached.get((class_identity(klass), method_name), ()))

        return [marker.bind(identity, method_name) for marker in markers]

    async def check(self, instance: Any, method_name: str, request: Any) -> GuardOutcome:
        """Evaluate every marker; never stops at the first failure."""
        outcome = GuardOutcome()

        for descriptor in self.markers_for(instance, method_name):
            handler = self._handlers.get(descriptor.rule_type)
            if handler is None:
                self._unknown(descriptor, outcome)
                continue

            context = GuardContext(
                descriptor=descriptor,
                instance=instance,
                method_name=method_name,
                request=request,
            )
            result = await handler.check(context)

            if isinstance(result, Fail):
                outcome.failures.append(result.reason)
            elif isinstance(result, ShortCircuit):
                if outcome.short_circuit is None:
                    outcome.short_circuit = result
            elif not isinstance(result, Proceed):
                raise TypeError(
                    f"Guard handler '{descriptor.rule_type}' returned "
                    f"{type(result).__name__}, expected Proceed, Fail or ShortCircuit"
                )
            outcome.evaluated.append((handler, context))

        return outcome

    def _unknown(self, descriptor: GuardDescriptor, outcome: GuardOutcome) -> None:
        if self.unknown_policy == "ignore":
            return
        where = f"{descriptor.identity}.{descriptor.method_name}"
        if self.unknown_policy == "warn":
            logger.warning(
                "No guard handler for rule '%s' on %s; marker passes",
                descriptor.rule_type,
                where,
            )
            return
        outcome.failures.append(f"Unknown guard rule '{descriptor.rule_type}'")

    async def run(
        self,
        instance: Any,
        method_name: str,
        request: Any,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """
        Check guards, then call the method.

        Raises:
            ValidationAggregateError: If any guard failed
        """
        outcome = await self.check(instance, method_name, request)

        if outcome.failures:
            raise ValidationAggregateError(
                class_identity(type(instance)), method_name, outcome.failures
            )

        if outcome.short_circuit is not None:
            logger.debug("Guard short-circuited %s.%s", type(instance).__qualname__, method_name)
            return outcome.short_circuit.result

        result = getattr(instance, method_name)(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result

        for handler, context in outcome.evaluated:
            await handler.after(context, result)

        return result
