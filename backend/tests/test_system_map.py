"""
Tests for the service dependency graph and system map loading.

Tests cover:
- Transitive dependencies, dependents and impact computation
- Cycle safety and the self-exclusion guarantee
- Parsing and validating system map documents
- File loading with fallback to the default map
- Snapshot caching and reload in SystemMapStore
"""

import pytest

from tracepulse.services.system_map import (
    SYSTEM_MAP_CACHE_KEY,
    DependencyGraph,
    ImpactResult,
    ServiceNode,
    SystemMapError,
    SystemMapStore,
    get_default_system_map,
    load_system_map,
    parse_system_map,
)


SAMPLE_YAML = """
version: "1.2"
updated_at: "2026-10-01T00:00:00Z"
services:
  Api:
    file: src/api.py
    functions: [handle]
    depends_on: [Db, Queue]
  Worker:
    depends_on: [Queue]
  Db:
  Queue:
"""


class TestServiceNode:
    """Tests for ServiceNode."""

    def test_from_dict_defaults(self):
        """Missing fields become empty."""
        node = ServiceNode.from_dict("Db", None)
        assert node.name == "Db"
        assert node.depends_on == ()
        assert node.file is None

    def test_from_dict_deduplicates_dependencies(self):
        """Repeated dependencies are kept once, in order."""
        node = ServiceNode.from_dict("Api", {"depends_on": ["Db", "Queue", "Db"]})
        assert node.depends_on == ("Db", "Queue")

    def test_to_dict_omits_empty_fields(self):
        """Only populated optional fields are serialized."""
        node = ServiceNode.from_dict("Api", {"depends_on": ["Db"], "file": "api.py"})
        assert node.to_dict() == {"depends_on": ["Db"], "file": "api.py"}


class TestDependencyGraph:
    """Tests for DependencyGraph traversals."""

    def test_dependencies_of_chain(self, chain_graph):
        """Dependencies are transitive."""
        assert chain_graph.dependencies_of("A") == ["B", "C"]
        assert chain_graph.dependencies_of("C") == []

    def test_dependencies_of_lists_direct_before_expansion(self, shop_graph):
        """Direct dependencies come before what they expand to."""
        deps = shop_graph.dependencies_of("Web")
        assert deps[:2] == ["Checkout", "Catalog"]
        assert set(deps) == {"Checkout", "Catalog", "Payments", "Postgres", "Stripe"}
        assert len(deps) == len(set(deps))

    def test_dependencies_of_two_cycle_terminates(self):
        """A two-service cycle yields only the other service."""
        graph = DependencyGraph.from_document({
            "services": {"A": {"depends_on": ["B"]}, "B": {"depends_on": ["A"]}}
        })
        assert graph.dependencies_of("A") == ["B"]
        assert graph.dependencies_of("B") == ["A"]

    def test_dependencies_of_self_loop(self):
        """A service depending on itself is not its own dependency."""
        graph = DependencyGraph.from_document({"services": {"A": {"depends_on": ["A", "B"]}}})
        assert graph.dependencies_of("A") == ["B"]

    def test_dependencies_of_undeclared_dependency_is_leaf(self):
        """Undeclared dependencies are listed but not expanded."""
        graph = DependencyGraph.from_document({"services": {"A": {"depends_on": ["Ghost"]}}})
        assert graph.dependencies_of("A") == ["Ghost"]
        assert graph.dependencies_of("Ghost") == []

    def test_deep_chain_does_not_recurse(self):
        """Very deep graphs are traversed iteratively."""
        depth = 5000
        services = {f"S{i}": {"depends_on": [f"S{i + 1}"]} for i in range(depth)}
        graph = DependencyGraph.from_document({"services": services})

        deps = graph.dependencies_of("S0")

        assert len(deps) == depth
        assert deps[-1] == f"S{depth}"

    def test_dependents_of_declaration_order(self, shop_graph):
        """Direct dependents follow declaration order."""
        assert shop_graph.dependents_of("Checkout") == ["Web", "Mobile"]
        assert shop_graph.dependents_of("Postgres") == ["Checkout", "Catalog"]
        assert shop_graph.dependents_of("Web") == []

    def test_impact_chain(self, chain_graph):
        """Blast radius of the middle service of a chain."""
        impact = chain_graph.impact("B")
        assert impact.dependencies == ("C",)
        assert impact.direct_dependents == ("A",)
        assert impact.all_dependents == ("A",)

    def test_impact_transitive_dependents_breadth_first(self, shop_graph):
        """All dependents are discovered breadth-first without duplicates."""
        impact = shop_graph.impact("Postgres")
        assert impact.direct_dependents == ("Checkout", "Catalog")
        assert impact.all_dependents == ("Checkout", "Catalog", "Web", "Mobile")
        assert impact.dependencies == ()

    def test_impact_never_contains_service(self):
        """The service never appears in its own impact, even through cycles."""
        graph = DependencyGraph.from_document({
            "services": {
                "A": {"depends_on": ["B", "A"]},
                "B": {"depends_on": ["C"]},
                "C": {"depends_on": ["A"]},
            }
        })
        for name in ("A", "B", "C"):
            impact = graph.impact(name)
            assert name not in impact.dependencies
            assert name not in impact.direct_dependents
            assert name not in impact.all_dependents

    def test_impact_referenced_but_undeclared_service(self, shop_graph):
        """A service only named in depends_on still drags its dependents down."""
        impact = shop_graph.impact("Stripe")
        assert impact.dependencies == ()
        assert impact.direct_dependents == ("Payments",)
        assert impact.all_dependents == ("Payments", "Checkout", "Web", "Mobile")
        assert list(impact.direct_dependents) == shop_graph.dependents_of("Stripe")

    def test_impact_infrastructure_in_default_map(self):
        """External dependencies of the default map have a blast radius."""
        impact = get_default_system_map().impact("Redis")
        assert impact.direct_dependents == ("TracePulse",)
        assert impact.all_dependents == ("TracePulse", "EventEmitter")

    def test_impact_unreferenced_service_is_empty(self, shop_graph):
        """A name that appears nowhere in the graph has no topology."""
        impact = shop_graph.impact("Billing")
        assert impact == ImpactResult(service="Billing")
        assert impact.to_dict() == {
            "service": "Billing",
            "dependencies": [],
            "direct_dependents": [],
            "all_dependents": [],
        }

    def test_graph_is_immutable(self, chain_graph):
        """The services mapping cannot be mutated."""
        with pytest.raises(TypeError):
            chain_graph.services["D"] = ServiceNode(name="D")

    def test_document_round_trip_preserves_topology(self, shop_graph):
        """to_document output rebuilds an equivalent graph."""
        rebuilt = DependencyGraph.from_document(shop_graph.to_document())
        assert rebuilt.version == "2.1"
        assert rebuilt.impact("Postgres") == shop_graph.impact("Postgres")


class TestParseSystemMap:
    """Tests for system map document validation."""

    def test_missing_services_rejected(self):
        """A document without a services mapping is invalid."""
        with pytest.raises(SystemMapError):
            parse_system_map({"version": "1"})
        with pytest.raises(SystemMapError):
            parse_system_map(["not", "a", "map"])

    def test_wrong_field_type_rejected(self):
        """Entries with wrongly typed fields are invalid."""
        with pytest.raises(SystemMapError):
            parse_system_map({"services": {"A": {"depends_on": {"B": 1}}}})

    def test_scalar_depends_on_allowed(self):
        """A single dependency may be written without a list."""
        graph = parse_system_map({"services": {"Api": {"depends_on": "Redis"}, "Redis": None}})
        assert graph.direct_dependencies("Api") == ("Redis",)
        assert graph.dependents_of("Redis") == ["Api"]

    def test_null_service_body_allowed(self):
        """A service declared without a body is a leaf."""
        graph = parse_system_map({"services": {"A": {"depends_on": ["B"]}, "B": None}})
        assert "B" in graph
        assert graph.dependents_of("B") == ["A"]

    def test_numeric_version_kept_as_string(self):
        """Versions are normalized to strings."""
        graph = parse_system_map({"version": 2, "services": {}})
        assert graph.version == "2"


class TestLoadSystemMap:
    """Tests for loading the system map from disk."""

    def test_load_yaml(self, tmp_path):
        """A valid YAML file is parsed into a graph."""
        path = tmp_path / "system-map.yaml"
        path.write_text(SAMPLE_YAML)

        graph = load_system_map(path)

        assert len(graph) == 4
        assert graph.version == "1.2"
        assert graph.get_service("Api").file == "src/api.py"
        assert graph.impact("Queue").direct_dependents == ("Api", "Worker")

    def test_scalar_depends_on_keeps_topology(self, tmp_path):
        """One entry with a scalar depends_on does not discard the whole map."""
        path = tmp_path / "system-map.yaml"
        path.write_text("services:\n  Api:\n    depends_on: Redis\n  Worker:\n    depends_on: [Api]\n")

        graph = load_system_map(path)

        assert set(graph.services) == {"Api", "Worker"}
        assert graph.impact("Redis").all_dependents == ("Api", "Worker")

    def test_missing_file_uses_default(self, tmp_path):
        """A missing file falls back to the built-in map."""
        graph = load_system_map(tmp_path / "absent.yaml")
        assert set(graph.services) == set(get_default_system_map().services)

    def test_invalid_yaml_uses_default(self, tmp_path):
        """Unparseable YAML falls back to the built-in map."""
        path = tmp_path / "system-map.yaml"
        path.write_text("services: [unclosed")

        graph = load_system_map(path)

        assert "TracePulse" in graph

    def test_invalid_document_uses_default(self, tmp_path):
        """A document without services falls back to the built-in map."""
        path = tmp_path / "system-map.yaml"
        path.write_text("version: 1\n")

        assert "TracePulse" in load_system_map(path)


class TestSystemMapStore:
    """Tests for SystemMapStore snapshot management."""

    def test_loads_file_and_populates_cache(self, tmp_path, memory_cache):
        """The first read loads the file and writes the cache."""
        path = tmp_path / "system-map.yaml"
        path.write_text(SAMPLE_YAML)
        store = SystemMapStore(path, cache=memory_cache, ttl_seconds=60)

        graph = store.get_graph()

        assert "Api" in graph
        assert memory_cache.get_json(SYSTEM_MAP_CACHE_KEY)["version"] == "1.2"
        assert memory_cache.ttls[SYSTEM_MAP_CACHE_KEY] == 60

    def test_snapshot_reused_while_fresh(self, tmp_path):
        """The same snapshot is served until it expires."""
        path = tmp_path / "system-map.yaml"
        path.write_text(SAMPLE_YAML)
        store = SystemMapStore(path, ttl_seconds=300)

        first = store.get_graph()
        path.write_text("services:\n  Other:\n")

        assert store.get_graph() is first

    def test_cache_preferred_over_file(self, tmp_path, memory_cache):
        """A cached document is used before the file is read."""
        memory_cache.set_json(SYSTEM_MAP_CACHE_KEY, {"services": {"Cached": {"depends_on": []}}})
        store = SystemMapStore(tmp_path / "absent.yaml", cache=memory_cache)

        graph = store.get_graph()

        assert list(graph.services) == ["Cached"]

    def test_invalid_cache_entry_discarded(self, tmp_path, memory_cache):
        """An invalid cached document is deleted and the file is used."""
        memory_cache.set_json(SYSTEM_MAP_CACHE_KEY, {"services": "broken"})
        path = tmp_path / "system-map.yaml"
        path.write_text(SAMPLE_YAML)
        store = SystemMapStore(path, cache=memory_cache)

        graph = store.get_graph()

        assert "Api" in graph
        assert memory_cache.get_json(SYSTEM_MAP_CACHE_KEY)["services"]["Api"]["depends_on"] == ["Db", "Queue"]

    def test_refresh_does_not_hold_lock_during_io(self, tmp_path, memory_cache):
        """Cache reads and writes happen without blocking other readers."""
        path = tmp_path / "system-map.yaml"
        path.write_text(SAMPLE_YAML)
        store = SystemMapStore(path, cache=memory_cache)
        lock_states = []

        get_json, set_json = memory_cache.get_json, memory_cache.set_json

        def recording_get(key):
            lock_states.append(store._lock.locked())
            return get_json(key)

        def recording_set(key, value, ttl=None):
            lock_states.append(store._lock.locked())
            set_json(key, value, ttl)

        memory_cache.get_json = recording_get
        memory_cache.set_json = recording_set

        graph = store.get_graph()

        assert "Api" in graph
        assert lock_states == [False, False]
        assert store.get_graph() is graph

    def test_reload_swaps_snapshot(self, tmp_path):
        """reload rereads the file and replaces the snapshot."""
        path = tmp_path / "system-map.yaml"
        path.write_text(SAMPLE_YAML)
        store = SystemMapStore(path)
        old = store.get_graph()

        path.write_text("services:\n  Other:\n")
        new = store.reload()

        assert new is not old
        assert list(new.services) == ["Other"]
        assert store.get_graph() is new
        # Earlier holders keep a consistent snapshot
        assert "Api" in old
