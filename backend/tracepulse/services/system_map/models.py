"""
Data models for the service dependency graph ("system map").

A DependencyGraph is an immutable snapshot of declared service
relationships. Services may reference dependencies that are not declared
themselves; those are treated as leaves with no further edges.

All traversals are iterative and guarded by visited sets, so cyclic or very
deep graphs terminate without growing the call stack.
"""

from collections import deque
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


def _unique(names: Iterable[str]) -> Tuple[str, ...]:
    """De-duplicate names preserving first-seen order."""
    seen = set()
    ordered = []
    for name in names:
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return tuple(ordered)


def _as_str_tuple(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value if v is not None)


@dataclass(frozen=True)
class ServiceNode:
    """A declared service in the system map."""
    name: str
    depends_on: Tuple[str, ...] = ()
    file: Optional[str] = None
    functions: Tuple[str, ...] = ()
    endpoints: Tuple[str, ...] = ()
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, name: str, data: Optional[Mapping[str, Any]]) -> "ServiceNode":
        """Build a node from its document form, tolerating missing fields."""
        data = data or {}
        return cls(
            name=name,
            depends_on=_unique(_as_str_tuple(data.get("depends_on"))),
            file=data.get("file"),
            functions=_as_str_tuple(data.get("functions")),
            endpoints=_as_str_tuple(data.get("endpoints")),
            description=data.get("description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the document form, omitting empty optional fields."""
        result: Dict[str, Any] = {"depends_on": list(self.depends_on)}
        if self.file:
            result["file"] = self.file
        if self.functions:
            result["functions"] = list(self.functions)
        if self.endpoints:
            result["endpoints"] = list(self.endpoints)
        if self.description:
            result["description"] = self.description
        return result


@dataclass(frozen=True)
class ImpactResult:
    """Blast radius of a failure in one service."""
    service: str
    dependencies: Tuple[str, ...] = ()
    direct_dependents: Tuple[str, ...] = ()
    all_dependents: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "dependencies": list(self.dependencies),
            "direct_dependents": list(self.direct_dependents),
            "all_dependents": list(self.all_dependents),
        }


@dataclass(frozen=True)
class DependencyGraph:
    """
    Immutable mapping of service name to ServiceNode.

    The reverse (dependents) index is computed once at construction. A graph
    is never mutated; reloading the system map produces a new instance.
    """
    services: Mapping[str, ServiceNode] = field(default_factory=dict)
    version: Optional[str] = None
    updated_at: Optional[str] = None

    # name -> names of declared services that directly depend on it
    _dependents: Mapping[str, Tuple[str, ...]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        services = MappingProxyType(dict(self.services))
        reverse: Dict[str, List[str]] = {}
        for name, node in services.items():
            for dep in node.depends_on:
                reverse.setdefault(dep, []).append(name)

        # Frozen dataclass: assign through object.__setattr__
        object.__setattr__(self, "services", services)
        object.__setattr__(
            self,
            "_dependents",
            MappingProxyType({k: tuple(v) for k, v in reverse.items()}),
        )

    @classmethod
    def from_document(cls, document: Optional[Mapping[str, Any]]) -> "DependencyGraph":
        """Build a graph from a `{services: {...}, version?, updated_at?}` document."""
        document = document or {}
        services = document.get("services") or {}
        version = document.get("version")
        updated_at = document.get("updated_at")
        return cls(
            services={
                str(name): ServiceNode.from_dict(str(name), spec)
                for name, spec in services.items()
            },
            version=str(version) if version is not None else None,
            updated_at=str(updated_at) if updated_at is not None else None,
        )

    def to_document(self) -> Dict[str, Any]:
        """Convert the graph back to its document form."""
        document: Dict[str, Any] = {
            "services": {name: node.to_dict() for name, node in self.services.items()}
        }
        if self.version is not None:
            document["version"] = self.version
        if self.updated_at is not None:
            document["updated_at"] = self.updated_at
        return document

    def __contains__(self, name: object) -> bool:
        return name in self.services

    def __len__(self) -> int:
        return len(self.services)

    def get_service(self, name: str) -> Optional[ServiceNode]:
        """Get a declared service by name."""
        return self.services.get(name)

    def direct_dependencies(self, name: str) -> Tuple[str, ...]:
        """Names listed in a service's `depends_on` (empty for undeclared names)."""
        node = self.services.get(name)
        return node.depends_on if node else ()

    def dependencies_of(self, name: str) -> List[str]:
        """
        Transitive closure of `depends_on` starting at `name`.

        Each node is expanded at most once. A node's direct dependencies are
        listed before the expansion of each of them, and `name` itself is
        never part of the result even when a cycle leads back to it.
        """
        visited = {name}
        result: List[str] = []
        emitted = set()

        def emit(node_name: str) -> None:
            for dep in self.direct_dependencies(node_name):
                if dep != name and dep not in emitted:
                    emitted.add(dep)
                    result.append(dep)

        emit(name)
        stack = [iter(self.direct_dependencies(name))]
        while stack:
            dep = next(stack[-1], None)
            if dep is None:
                stack.pop()
                continue
            if dep in visited:
                continue
            visited.add(dep)
            emit(dep)
            stack.append(iter(self.direct_dependencies(dep)))

        return result

    def dependents_of(self, name: str) -> List[str]:
        """Declared services whose `depends_on` directly contains `name`."""
        return list(self._dependents.get(name, ()))

    def impact(self, name: str) -> ImpactResult:
        """
        Compute the blast radius of a failure in `name`.

        Returns direct dependents, every transitive dependent (breadth-first,
        in discovery order) and the transitive dependencies. A name that is
        only referenced in `depends_on` keeps its dependents and has no
        dependencies; a name that appears nowhere yields an empty result.
        """
        direct = [d for d in self.dependents_of(name) if d != name]

        seen = {name}
        seen.update(direct)
        all_dependents = list(direct)
        queue = deque(direct)
        while queue:
            current = queue.popleft()
            for dependent in self.dependents_of(current):
                if dependent not in seen:
                    seen.add(dependent)
                    all_dependents.append(dependent)
                    queue.append(dependent)

        return ImpactResult(
            service=name,
            dependencies=tuple(self.dependencies_of(name)),
            direct_dependents=tuple(direct),
            all_dependents=tuple(all_dependents),
        )
