"""
Service dependency graph ("system map").

Declared services and their `depends_on` relationships, with cycle-safe
traversal for dependencies, dependents and blast radius.
"""

from tracepulse.services.system_map.models import (
    DependencyGraph,
    ImpactResult,
    ServiceNode,
)
from tracepulse.services.system_map.loader import (
    SYSTEM_MAP_CACHE_KEY,
    SystemMapError,
    SystemMapStore,
    get_default_system_map,
    load_system_map,
    parse_system_map,
)

__all__ = [
    # Models
    "DependencyGraph",
    "ImpactResult",
    "ServiceNode",
    # Loading
    "SYSTEM_MAP_CACHE_KEY",
    "SystemMapError",
    "SystemMapStore",
    "get_default_system_map",
    "load_system_map",
    "parse_system_map",
]
