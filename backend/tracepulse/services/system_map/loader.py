"""
System map loading and snapshot management.

The system map is a YAML (or JSON) document declaring services and their
dependencies. It is validated with pydantic, turned into an immutable
DependencyGraph and cached. Reloading swaps the whole snapshot, so callers
holding a graph reference never observe a partially updated map.
"""

import threading
import time
import structlog
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from tracepulse.services.cache import BaseCache, NullCache
from tracepulse.services.system_map.models import DependencyGraph

logger = structlog.get_logger()

SYSTEM_MAP_CACHE_KEY = "system_map:current"
DEFAULT_TTL_SECONDS = 300


class SystemMapError(ValueError):
    """Raised when a system map document is structurally invalid."""


class ServiceSpec(BaseModel):
    """Schema for one service entry in the system map document."""
    model_config = ConfigDict(extra="ignore")

    depends_on: Optional[Union[str, List[str]]] = None
    file: Optional[str] = None
    functions: Optional[List[str]] = None
    endpoints: Optional[List[str]] = None
    description: Optional[str] = None


class SystemMapDocument(BaseModel):
    """Schema for the whole system map document."""
    model_config = ConfigDict(extra="ignore")

    services: Dict[str, ServiceSpec]
    version: Optional[Union[str, float, int]] = None
    updated_at: Optional[Union[str, datetime]] = None


def parse_system_map(document: Any) -> DependencyGraph:
    """
    Validate a decoded system map document and build a DependencyGraph.

    Raises:
        SystemMapError: If the document has no `services` mapping or an
            entry has the wrong shape.
    """
    if not isinstance(document, dict) or not isinstance(document.get("services"), dict):
        raise SystemMapError("Invalid system map: missing services")

    # Entries such as `Redis:` with no body decode to None
    raw_services = {
        name: (spec if spec is not None else {})
        for name, spec in document["services"].items()
    }
    try:
        parsed = SystemMapDocument.model_validate({**document, "services": raw_services})
    except ValidationError as e:
        raise SystemMapError(f"Invalid system map: {e}") from e

    updated_at = parsed.updated_at
    if isinstance(updated_at, datetime):
        updated_at = updated_at.isoformat()

    return DependencyGraph.from_document({
        "services": {
            name: spec.model_dump() for name, spec in parsed.services.items()
        },
        "version": parsed.version,
        "updated_at": updated_at,
    })


def get_default_system_map() -> DependencyGraph:
    """Built-in map used when no system map file is available."""
    return DependencyGraph.from_document({
        "version": "1.0",
        "updated_at": datetime.utcnow().isoformat(),
        "services": {
            "TracePulse": {
                "description": "Event correlation and hypothesis engine",
                "file": "backend/tracepulse/main.py",
                "functions": ["process_events", "analyze"],
                "depends_on": ["Redis", "GitHub", "OpenAI"],
            },
            "EventEmitter": {
                "description": "Producer-side event queue client",
                "file": "backend/tracepulse/emitter/queue.py",
                "functions": ["send", "flush"],
                "depends_on": ["TracePulse"],
            },
        },
    })


def load_system_map(path: Union[str, Path]) -> DependencyGraph:
    """
    Load the system map from a YAML file.

    A missing, unreadable or invalid file is logged and replaced with the
    default map; loading never fails the caller.
    """
    map_path = Path(path)
    if not map_path.exists():
        logger.warning("System map not found", path=str(map_path))
        return get_default_system_map()

    try:
        document = yaml.safe_load(map_path.read_text(encoding="utf-8"))
        graph = parse_system_map(document)
    except (OSError, yaml.YAMLError, SystemMapError) as e:
        logger.error("System map load failed", path=str(map_path), error=str(e))
        return get_default_system_map()

    logger.info("System map loaded", path=str(map_path), service_count=len(graph))
    return graph


class SystemMapStore:
    """
    Holds the current DependencyGraph snapshot.

    `get_graph()` serves the in-process snapshot while it is fresh, then the
    shared cache, then the file. `reload()` always rereads the file. Both
    load without holding the lock and only replace the snapshot reference
    under it.
    """

    def __init__(
        self,
        path: Union[str, Path],
        cache: Optional[BaseCache] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ):
        self.path = Path(path)
        self.cache = cache or NullCache()
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._graph: Optional[DependencyGraph] = None
        self._loaded_at = 0.0

    def get_graph(self) -> DependencyGraph:
        """Return the current snapshot, refreshing it once it is older than the TTL."""
        with self._lock:
            if self._graph is not None and not self._is_expired():
                return self._graph

        # Cache and file I/O happen outside the lock; only the swap is guarded
        graph = self._from_cache()
        if graph is None:
            graph = load_system_map(self.path)
            self.cache.set_json(SYSTEM_MAP_CACHE_KEY, graph.to_document(), self.ttl_seconds)

        with self._lock:
            self._swap(graph)
        return graph

    def reload(self) -> DependencyGraph:
        """Reread the system map file and replace the snapshot."""
        graph = load_system_map(self.path)
        self.cache.set_json(SYSTEM_MAP_CACHE_KEY, graph.to_document(), self.ttl_seconds)
        with self._lock:
            self._swap(graph)
        logger.info("System map reloaded", service_count=len(graph), version=graph.version)
        return graph

    def _from_cache(self) -> Optional[DependencyGraph]:
        document = self.cache.get_json(SYSTEM_MAP_CACHE_KEY)
        if not document:
            return None
        try:
            return parse_system_map(document)
        except SystemMapError as e:
            logger.warning("Cached system map invalid", error=str(e))
            self.cache.delete(SYSTEM_MAP_CACHE_KEY)
            return None

    def _is_expired(self) -> bool:
        return time.monotonic() - self._loaded_at >= self.ttl_seconds

    def _swap(self, graph: DependencyGraph) -> None:
        self._graph = graph
        self._loaded_at = time.monotonic()
