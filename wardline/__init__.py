"""
Wardline - controller registry and guard dispatch pipeline.

Complete integration of:
- Registry: scan handler classes, compile a versioned document, reload it
  under a dev/prod freshness policy
- Resolver: ``(type, handle) -> controller`` with default/not-found fallbacks
- Guards: evaluate-all checks with short-circuit support in front of actions
- Cache: two-tier cache with dirty-gated, once-per-request persistence
- Faults: structured error handling with fault domains
"""

__version__ = "0.1.0"

# ============================================================================
# Core
# ============================================================================

from .http import Action, Principal, Reply, Request
from .config import ConfigLoader, WardlineConfig

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    ConfigError,
    RegistrationError,
    RegistryCorruptionFault,
    RegistryStoreFault,
    ValidationAggregateError,
    ActionFault,
    CacheFault,
    CacheStoreFault,
    MemoizationFault,
)

# ============================================================================
# Controllers & Registry
# ============================================================================

from .controller import (
    Controller,
    AdminController,
    WidgetController,
    ControllerType,
    ControllerDescriptor,
    ControllerFactory,
)
from .controller.resolver import ControllerResolver
from .registry import (
    Registry,
    RegistryMode,
    ControllerScanner,
    RegistryCompiler,
    RegistryLoader,
)

# ============================================================================
# Guards & Cache
# ============================================================================

from .guards import (
    Proceed,
    Fail,
    ShortCircuit,
    GuardDescriptor,
    GuardContext,
    GuardHandler,
    GuardPipeline,
    TokenGuard,
    TokenSigner,
    CapabilityGuard,
    ResponseCacheGuard,
    guard,
    token,
    require_capabilities,
    cache_reply,
)
from .cache import TwoTierCache, MemoryDurableBackend, FileDurableBackend

from .dispatch import Dispatcher
from .app import Wardline

__all__ = [
    "__version__",
    # Core
    "Action",
    "Principal",
    "Reply",
    "Request",
    "ConfigLoader",
    "WardlineConfig",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigError",
    "RegistrationError",
    "RegistryCorruptionFault",
    "RegistryStoreFault",
    "ValidationAggregateError",
    "ActionFault",
    "CacheFault",
    "CacheStoreFault",
    "MemoizationFault",
    # Controllers & Registry
    "Controller",
    "AdminController",
    "WidgetController",
    "ControllerType",
    "ControllerDescriptor",
    "ControllerFactory",
    "ControllerResolver",
    "Registry",
    "RegistryMode",
    "ControllerScanner",
    "RegistryCompiler",
    "RegistryLoader",
    # Guards & Cache
    "Proceed",
    "Fail",
    "ShortCircuit",
    "GuardDescriptor",
    "GuardContext",
    "GuardHandler",
    "GuardPipeline",
    "TokenGuard",
    "TokenSigner",
    "CapabilityGuard",
    "ResponseCacheGuard",
    "guard",
    "token",
    "require_capabilities",
    "cache_reply",
    "TwoTierCache",
    "MemoryDurableBackend",
    "FileDurableBackend",
    # Runtime
    "Dispatcher",
    "Wardline",
]
