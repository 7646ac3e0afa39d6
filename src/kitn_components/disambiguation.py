"""Name disambiguation - Pin each requested name to one (namespace, type).

Resolution order for each requested name:
1. Exact name match in its namespace (default namespace when none given),
   restricted by the --type filter if one is active
2. Otherwise substring match across indexed names (the given namespace, or
   every configured namespace when none was given)

One candidate is selected silently; several go to the Prompter; none is left
for the resolver to report as not found.
"""

import logging
from dataclasses import dataclass
from dataclasses import field

from .exceptions import RegistryError
from .fetcher import RegistryFetcher
from .protocols import Prompter
from .refs import ComponentRef
from .refs import installed_key
from .refs import parse_component_ref
from .schema import ComponentType
from .schema import RegistryIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """One registry entry a requested name could refer to."""

    namespace: str
    name: str
    type: ComponentType
    description: str = ""

    @property
    def key(self) -> str:
        return installed_key(self.namespace, self.name)

    def label(self) -> str:
        return f"{self.key} ({self.type})"


@dataclass
class Disambiguation:
    """Outcome of disambiguation.

    refs: requested references, rewritten to the chosen names
    type_hints: ledger key -> type for every pinned explicit reference
    """

    refs: list[ComponentRef] = field(default_factory=list)
    type_hints: dict[str, ComponentType] = field(default_factory=dict)


async def _index_or_none(fetcher: RegistryFetcher, namespace: str) -> RegistryIndex | None:
    try:
        return await fetcher.fetch_index(namespace)
    except RegistryError as e:
        logger.debug(f"Skipping {namespace} during disambiguation: {e}")
        return None


def _dedupe(candidates: list[Candidate]) -> list[Candidate]:
    seen: set[tuple[str, str, ComponentType]] = set()
    unique = []
    for candidate in candidates:
        marker = (candidate.namespace, candidate.name, candidate.type)
        if marker not in seen:
            seen.add(marker)
            unique.append(candidate)
    return unique


async def find_candidates(
    ref: ComponentRef,
    fetcher: RegistryFetcher,
    namespace_given: bool,
    type_filter: ComponentType | None = None,
) -> list[Candidate]:
    """
    Collect candidates for one requested reference.

    Exact matches in the reference's namespace win; substring matches are
    only consulted when there is no exact match. Unreachable registries are
    skipped.

    Args:
        ref: Requested reference
        fetcher: Registry fetcher
        namespace_given: True if the user wrote "@ns/name"
        type_filter: Restrict matches to one type

    Returns:
        Distinct candidates in registry order
    """
    index = await _index_or_none(fetcher, ref.namespace)
    if index is not None:
        exact = [
            Candidate(ref.namespace, entry.name, entry.type, entry.description)
            for entry in index.find(ref.name, type_filter)
        ]
        if exact:
            return _dedupe(exact)

    namespaces = [ref.namespace] if namespace_given else fetcher.namespaces
    fuzzy: list[Candidate] = []
    for namespace in namespaces:
        ns_index = await _index_or_none(fetcher, namespace)
        if ns_index is None:
            continue
        fuzzy.extend(
            Candidate(namespace, entry.name, entry.type, entry.description)
            for entry in ns_index.items
            if ref.name in entry.name and (type_filter is None or entry.type == type_filter)
        )
    return _dedupe(fuzzy)


async def disambiguate(
    names: list[str],
    fetcher: RegistryFetcher,
    prompter: Prompter,
    type_filter: ComponentType | None = None,
) -> Disambiguation:
    """
    Resolve each requested name to exactly one (namespace, name, type).

    Args:
        names: Requested references as typed by the user
        fetcher: Registry fetcher
        prompter: Decision maker for ambiguous names
        type_filter: Optional --type restriction

    Returns:
        Rewritten references plus type hints for the resolver

    Raises:
        AmbiguousComponentError: If a name is ambiguous and the prompter cannot choose
    """
    result = Disambiguation()

    for name in names:
        ref = parse_component_ref(name)
        candidates = await find_candidates(ref, fetcher, name.startswith("@"), type_filter)

        if not candidates:
            # Resolver reports the standard "not found" error
            if type_filter is not None:
                result.type_hints[ref.key] = type_filter
            result.refs.append(ref)
            continue

        if len(candidates) == 1:
            chosen = candidates[0]
            if chosen.name != ref.name:
                logger.info(f"Resolved '{ref.name}' to {chosen.label()}")
        else:
            chosen = prompter.choose_component(str(ref), candidates)

        pinned = ComponentRef(namespace=chosen.namespace, name=chosen.name, version=ref.version)
        result.refs.append(pinned)
        result.type_hints[pinned.key] = chosen.type

    return result
