"""
Wardline faults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- REGISTRY faults (registration, corrupt documents, store I/O)
- GUARD faults (aggregated guard failures)
- FLOW faults (bad or unknown actions)
- CACHE faults (store I/O, memoization)
- CONFIG faults
"""

from typing import Any, Dict, List, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigError(Fault):
    """Configuration validation failed."""

    domain = FaultDomain.CONFIG
    code = "CONFIG_INVALID"

    def __init__(self, message: str, *, key: Optional[str] = None):
        super().__init__(message=message, metadata={"key": key} if key else {})
        self.key = key


# ============================================================================
# REGISTRY Faults
# ============================================================================

class RegistryFault(Fault):
    """Base class for controller registry faults."""

    domain = FaultDomain.REGISTRY


class RegistrationError(RegistryFault):
    """
    Malformed controller or unusable registry.

    Raised at boot and never retried: a controller without a class-level
    ``handle``, a controller outside the ``Controller`` lifecycle base, a
    duplicate handle within one scan, or a missing default/not-found
    controller.
    """

    code = "REGISTRATION_FAILED"
    severity = Severity.FATAL

    def __init__(
        self,
        message: str,
        *,
        identity: Optional[str] = None,
        source: Optional[str] = None,
        suggestion: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        metadata = dict(details or {})
        if identity:
            metadata["identity"] = identity
        if source:
            metadata["source"] = source
        super().__init__(message=message, metadata=metadata)
        self.identity = identity
        self.source = source
        self.suggestion = suggestion

    def format_error(self) -> str:
        """Format error with diagnostics."""
        lines = [f"{self.__class__.__name__}: {self.message}"]
        if self.source:
            lines.append(f"   at {self.source}")
        if self.suggestion:
            lines.append(f"   Suggestion: {self.suggestion}")
        return "\n".join(lines)


class RegistryCorruptionFault(RegistryFault):
    """
    Persisted registry document is unusable.

    Never raised to callers: the loader discards the document, logs this
    fault and falls back to a full rescan.
    """

    code = "REGISTRY_CORRUPT"
    severity = Severity.WARN

    def __init__(self, path: str, reason: str):
        super().__init__(
            message=f"Registry document '{path}' discarded: {reason}",
            metadata={"path": path, "reason": reason},
        )
        self.path = path
        self.reason = reason


class RegistryStoreFault(RegistryFault):
    """Registry document could not be read or written."""

    code = "REGISTRY_STORE_FAILED"
    domain = FaultDomain.IO

    def __init__(self, path: str, operation: str, reason: str):
        super().__init__(
            message=f"Registry store {operation} failed for '{path}': {reason}",
            metadata={"path": path, "operation": operation, "reason": reason},
        )


# ============================================================================
# GUARD Faults
# ============================================================================

class ValidationAggregateError(Fault):
    """
    One or more guards rejected an action.

    Carries every failing reason, not just the first. Callers map it to a
    client-visible 403 rejection.
    """

    domain = FaultDomain.GUARD
    code = "GUARD_VALIDATION_FAILED"
    public = True
    status = 403

    def __init__(self, controller: str, method: str, reasons: List[str]):
        self.controller = controller
        self.method = method
        self.reasons = list(reasons)
        super().__init__(
            message=(
                f"Validation failed for method {controller}.{method} - "
                + ", ".join(self.reasons)
            ),
            metadata={"controller": controller, "method": method, "reasons": self.reasons},
        )


# ============================================================================
# FLOW Faults
# ============================================================================

class ActionFault(Fault):
    """Action request cannot be executed (bad, reserved or unknown action)."""

    domain = FaultDomain.FLOW
    code = "ACTION_REJECTED"
    public = True

    def __init__(self, message: str, *, status: int = 400, action: Optional[str] = None):
        super().__init__(message=message, metadata={"action": action, "status": status})
        self.status = status
        self.action = action


# ============================================================================
# CACHE Faults
# ============================================================================

class CacheFault(Fault):
    """Base class for all cache faults."""

    domain = FaultDomain.CACHE


class CacheStoreFault(CacheFault):
    """Durable cache store could not be read or written."""

    code = "CACHE_STORE_FAILED"
    domain = FaultDomain.IO

    def __init__(self, backend: str, operation: str, reason: str):
        super().__init__(
            message=f"Cache backend '{backend}' error during {operation}: {reason}",
            metadata={"backend": backend, "operation": operation, "reason": reason},
        )


class MemoizationFault(CacheFault):
    """A memoized callable raised while computing its value."""

    code = "MEMOIZED_CALL_FAILED"
    severity = Severity.ERROR
    retryable = False

    def __init__(self, target: str, reason: str):
        super().__init__(
            message=f"Failed to execute memoized callback {target}: {reason}",
            metadata={"target": target, "reason": reason},
        )
