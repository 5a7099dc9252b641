"""
Wardline faults - typed fault signals.

Every framework error is a ``Fault``: a stable code, a domain, a severity
and a public flag that decides whether the message may reach clients.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigError,
    RegistryFault,
    RegistrationError,
    RegistryCorruptionFault,
    RegistryStoreFault,
    ValidationAggregateError,
    ActionFault,
    CacheFault,
    CacheStoreFault,
    MemoizationFault,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",

    # Domain faults
    "ConfigError",
    "RegistryFault",
    "RegistrationError",
    "RegistryCorruptionFault",
    "RegistryStoreFault",
    "ValidationAggregateError",
    "ActionFault",
    "CacheFault",
    "CacheStoreFault",
    "MemoizationFault",
]
