"""Dependency resolver - Expand requested names into an install-ordered closure.

The resolver knows nothing about HTTP: it is handed a fetch function
(ComponentRef -> ComponentItem). make_registry_lookup() builds the usual
one on top of a RegistryFetcher.
"""

import asyncio
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass

from .exceptions import ComponentNotFoundError
from .fetcher import RegistryFetcher
from .refs import ComponentRef
from .refs import installed_key
from .refs import parse_component_ref
from .schema import TYPE_TO_DIR
from .schema import ComponentItem
from .schema import ComponentType

logger = logging.getLogger(__name__)

FetchItem = Callable[[ComponentRef], Awaitable[ComponentItem]]


@dataclass(frozen=True)
class ResolvedComponent:
    """A fetched component together with the reference it was resolved from."""

    ref: ComponentRef
    item: ComponentItem
    explicit: bool = False

    @property
    def namespace(self) -> str:
        return self.ref.namespace

    @property
    def key(self) -> str:
        """Ledger key ("name" or "@ns/name")."""
        return installed_key(self.ref.namespace, self.item.name)


def _as_ref(value: str | ComponentRef) -> ComponentRef:
    return value if isinstance(value, ComponentRef) else parse_component_ref(value)


async def resolve_dependencies(
    names: list[str | ComponentRef],
    fetch_item: FetchItem,
) -> list[ResolvedComponent]:
    """
    Resolve requested components and everything they depend on.

    Breadth-first closure over registryDependencies: each level of not-yet-visited
    references is fetched concurrently, then the result is ordered so every
    dependency appears before the components that declare it.

    Invariants:
    - No two results share a (namespace, name) key
    - Every registry dependency of every result is itself in the result
    - Cycles terminate: a visited reference is never fetched twice

    Bare dependency names resolve in the default namespace.

    Args:
        names: Requested references ("name", "@ns/name@1.0.0") or parsed refs
        fetch_item: Async function fetching one component

    Returns:
        Dependency-first ordered list of resolved components

    Raises:
        ComponentNotFoundError: If any component cannot be found (nothing partial is returned)
        RegistryError: If a registry needed for a required component is unreachable
    """
    requested = [_as_ref(name) for name in names]
    explicit_keys = {ref.key for ref in requested}

    resolved: dict[str, ResolvedComponent] = {}
    edges: dict[str, list[str]] = {}
    visited: set[str] = set()

    frontier = requested
    while frontier:
        batch: list[ComponentRef] = []
        for ref in frontier:
            if ref.key not in visited:
                visited.add(ref.key)
                batch.append(ref)
        if not batch:
            break

        results = await asyncio.gather(*(fetch_item(ref) for ref in batch), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

        frontier = []
        for ref, item in zip(batch, results, strict=True):
            dep_refs = [parse_component_ref(dep) for dep in item.registry_dependencies]
            edges[ref.key] = [dep.key for dep in dep_refs]
            resolved[ref.key] = ResolvedComponent(ref=ref, item=item, explicit=ref.key in explicit_keys)
            frontier.extend(dep_refs)

    ordered: list[ResolvedComponent] = []
    placed: set[str] = set()
    in_progress: set[str] = set()

    def place(key: str) -> None:
        if key in placed or key in in_progress:
            return
        in_progress.add(key)
        for dep_key in edges.get(key, []):
            place(dep_key)
        in_progress.discard(key)
        placed.add(key)
        ordered.append(resolved[key])

    for ref in requested:
        place(ref.key)

    logger.debug(f"Resolved {len(ordered)} component(s) from {len(requested)} request(s)")
    return ordered


def make_registry_lookup(
    fetcher: RegistryFetcher,
    type_hints: dict[str, ComponentType] | None = None,
) -> FetchItem:
    """
    Build a fetch function for resolve_dependencies() backed by a registry.

    Explicitly requested names are pinned to the type chosen during
    disambiguation (type_hints, keyed by ledger key); everything else takes
    the first index entry with a matching name.

    Args:
        fetcher: Registry fetcher
        type_hints: Pre-resolved types for explicit references

    Returns:
        Async function ComponentRef -> ComponentItem
    """
    hints = type_hints or {}

    async def fetch(ref: ComponentRef) -> ComponentItem:
        pinned = hints.get(ref.key)
        index = await fetcher.fetch_index(ref.namespace)
        matches = index.find(ref.name, pinned)
        if not matches:
            label = f"{ref.name} ({pinned})" if pinned else ref.name
            raise ComponentNotFoundError(
                f"Component '{label}' not found in {ref.namespace} registry",
                context={"namespace": ref.namespace, "name": ref.name, "type": pinned},
            )

        component_type = matches[0].type
        return await fetcher.fetch_item(ref.name, TYPE_TO_DIR[component_type], ref.namespace, ref.version)

    return fetch
