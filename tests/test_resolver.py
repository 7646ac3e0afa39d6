"""Tests for dependency resolution."""

import pytest
from conftest import component
from kitn_components import ComponentItem
from kitn_components import ComponentNotFoundError
from kitn_components import ComponentType
from kitn_components import resolve_dependencies
from kitn_components.refs import ComponentRef
from kitn_components.resolver import make_registry_lookup


def make_fetch(documents: dict[str, dict], calls: list[str] | None = None):
    """Fetch function over ledger-keyed documents."""

    async def fetch(ref: ComponentRef) -> ComponentItem:
        if calls is not None:
            calls.append(ref.key)
        if ref.key not in documents:
            raise ComponentNotFoundError(f"Component '{ref.name}' not found in {ref.namespace} registry")
        return ComponentItem.model_validate(documents[ref.key])

    return fetch


@pytest.mark.asyncio
async def test_dependencies_come_first():
    """Test every dependency precedes the component declaring it."""
    documents = {
        "weather-agent": component("weather-agent", "agent", registryDependencies=["weather-tool", "core"]),
        "weather-tool": component("weather-tool", "tool", registryDependencies=["core"]),
        "core": component("core", "package"),
    }

    resolved = await resolve_dependencies(["weather-agent"], make_fetch(documents))
    keys = [component.key for component in resolved]

    assert keys.index("core") < keys.index("weather-tool") < keys.index("weather-agent")
    assert len(keys) == 3


@pytest.mark.asyncio
async def test_shared_dependency_fetched_once():
    """Test diamond dependencies appear and are fetched once."""
    documents = {
        "a": component("a", registryDependencies=["b", "c"]),
        "b": component("b", registryDependencies=["d"]),
        "c": component("c", registryDependencies=["d"]),
        "d": component("d"),
    }
    calls: list[str] = []

    resolved = await resolve_dependencies(["a"], make_fetch(documents, calls))

    assert sorted(calls) == ["a", "b", "c", "d"]
    assert [component.key for component in resolved][0] == "d"


@pytest.mark.asyncio
async def test_cycle_terminates():
    """Test a dependency cycle resolves to a finite list."""
    documents = {
        "a": component("a", registryDependencies=["b"]),
        "b": component("b", registryDependencies=["a"]),
    }

    resolved = await resolve_dependencies(["a"], make_fetch(documents))

    assert sorted(component.key for component in resolved) == ["a", "b"]


@pytest.mark.asyncio
async def test_explicit_flag():
    """Test requested components are marked explicit, dependencies are not."""
    documents = {"a": component("a", registryDependencies=["b"]), "b": component("b")}

    resolved = {component.key: component for component in await resolve_dependencies(["a"], make_fetch(documents))}

    assert resolved["a"].explicit
    assert not resolved["b"].explicit


@pytest.mark.asyncio
async def test_namespaced_dependencies():
    """Test "@ns/name" dependencies resolve in their namespace, bare names in @kitn."""
    documents = {
        "@acme/agent": component("agent", "agent", registryDependencies=["@acme/tool", "core"]),
        "@acme/tool": component("tool"),
        "core": component("core", "package"),
    }

    resolved = await resolve_dependencies(["@acme/agent"], make_fetch(documents))

    assert {component.key for component in resolved} == {"@acme/agent", "@acme/tool", "core"}


@pytest.mark.asyncio
async def test_missing_dependency_fails_whole_resolution():
    """Test no partial result when a dependency is missing."""
    documents = {"a": component("a", registryDependencies=["ghost"])}

    with pytest.raises(ComponentNotFoundError, match="ghost"):
        await resolve_dependencies(["a"], make_fetch(documents))


@pytest.mark.asyncio
async def test_registry_lookup_uses_index_type(registry):
    """Test the registry lookup fetches from the indexed type directory."""
    registry.add(component("memory", "storage"))

    async with registry.fetcher() as fetcher:
        resolved = await resolve_dependencies(["memory"], make_registry_lookup(fetcher))

    assert resolved[0].item.type == ComponentType.STORAGE
    assert "https://kitn.test/r/storage/memory.json" in registry.requests


@pytest.mark.asyncio
async def test_registry_lookup_not_found(registry):
    """Test unknown names name the registry in the error."""
    async with registry.fetcher() as fetcher:
        with pytest.raises(ComponentNotFoundError, match="Component 'ghost' not found in @kitn registry"):
            await resolve_dependencies(["ghost"], make_registry_lookup(fetcher))


@pytest.mark.asyncio
async def test_registry_lookup_honours_type_hint(registry):
    """Test a pinned type picks between same-named entries."""
    registry.add(component("memory", "storage"))
    registry.add(component("memory", "tool"))

    async with registry.fetcher() as fetcher:
        lookup = make_registry_lookup(fetcher, {"memory": ComponentType.TOOL})
        resolved = await resolve_dependencies(["memory"], lookup)

    assert resolved[0].item.type == ComponentType.TOOL


@pytest.mark.asyncio
async def test_requested_dependency_listed_once():
    """Test a tool requested directly and as the agent's dependency appears once, first."""
    documents = {
        "weather-agent": component("weather-agent", "agent", registryDependencies=["weather-tool"]),
        "weather-tool": component("weather-tool", "tool"),
    }

    resolved = await resolve_dependencies(["weather-tool", "weather-agent"], make_fetch(documents))

    assert [component.key for component in resolved] == ["weather-tool", "weather-agent"]
    assert all(component.explicit for component in resolved)
