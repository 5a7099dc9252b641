"""
Wardline guards - Core types.

A guard marker (GuardDescriptor) names a rule type and its parameters.
The GuardHandler registered for that rule type decides, per request,
whether the action may run:

- ``Proceed()``: no objection
- ``Fail(reason)``: reject; the reason is reported with every other one
- ``ShortCircuit(result)``: skip the action and use ``result`` instead
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from wardline.http import Action, Principal, Request


# ============================================================================
# Guard results
# ============================================================================

@dataclass(frozen=True)
class Proceed:
    """Guard has no objection."""
    pass


@dataclass(frozen=True)
class Fail:
    """Guard rejects the call."""
    reason: str


@dataclass(frozen=True)
class ShortCircuit:
    """
    Guard replaces the call's outcome.

    The wrapped method does not run; ``result`` is returned as if it had.
    """
    result: Any


GuardResult = Proceed | Fail | ShortCircuit


# ============================================================================
# Descriptors and context
# ============================================================================

@dataclass(frozen=True)
class GuardDescriptor:
    """
    One guard marker on one action method.

    ``params`` keeps declaration order. ``identity`` and ``method_name``
    are filled in when the pipeline binds the marker to a controller.
    """
    rule_type: str
    params: Tuple[Tuple[str, Any], ...] = ()
    identity: Optional[str] = None
    method_name: Optional[str] = None

    @classmethod
    def of(cls, rule_type: str, **params: Any) -> "GuardDescriptor":
        return cls(rule_type=rule_type, params=tuple(
            (name, tuple(value) if isinstance(value, list) else value)
            for name, value in params.items()
        ))

    def param(self, name: str, default: Any = None) -> Any:
        for key, value in self.params:
            if key == name:
                return value
        return default

    @property
    def params_dict(self) -> Dict[str, Any]:
        return dict(self.params)

    def bind(self, identity: str, method_name: str) -> "GuardDescriptor":
        return replace(self, identity=identity, method_name=method_name)


@dataclass
class GuardContext:
    """Everything a handler sees when checking one marker."""
    descriptor: GuardDescriptor
    instance: Any
    method_name: str
    request: "Request"

    @property
    def identity(self) -> str:
        return self.descriptor.identity or ""

    @property
    def action(self) -> Optional["Action"]:
        return getattr(self.request, "action", None)

    @property
    def principal(self) -> Optional["Principal"]:
        return getattr(self.request, "principal", None)


@dataclass
class GuardOutcome:
    """Result of evaluating every marker of one method."""
    failures: List[str] = field(default_factory=list)
    short_circuit: Optional[ShortCircuit] = None
    evaluated: List[Tuple["GuardHandler", GuardContext]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


# ============================================================================
# Handler base
# ============================================================================

class GuardHandler:
    """
    Base guard handler.

    Subclasses implement ``check``; ``after`` runs once the guarded method
    has produced a result (it is skipped on failure or short-circuit).
    """

    rule_type: str = ""

    async def check(self, context: GuardContext) -> GuardResult:
        raise NotImplementedError

    async def after(self, context: GuardContext, result: Any) -> None:
        return None
