"""Registry client - Fetch index and component documents over HTTP.

Each namespace maps to a URL template containing {type} and {name}
placeholders, e.g. "https://kitn-ai.github.io/kitn/r/{type}/{name}.json".
The index lives next to the items: the "{type}/{name}.json" segment is
replaced by "registry.json".
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from .config import DEFAULT_NAMESPACE
from .exceptions import RegistryFetchError
from .exceptions import RegistryNotConfiguredError
from .schema import ComponentItem
from .schema import RegistryIndex

logger = logging.getLogger(__name__)

ITEM_SEGMENT = "{type}/{name}.json"
INDEX_FILE = "registry.json"
DEFAULT_TIMEOUT = 10.0


class RegistryFetcher:
    """
    Fetch registry documents for configured namespaces.

    Documents are cached for the lifetime of the fetcher: an install run
    fetches each item and each index at most once.

    The HTTP client can be injected (tests pass one built on httpx.MockTransport);
    otherwise the fetcher owns a client and closes it in aclose().

    Example:
        >>> async with RegistryFetcher({"@kitn": "https://example.com/r/{type}/{name}.json"}) as fetcher:
        ...     index = await fetcher.fetch_index("@kitn")
    """

    def __init__(self, registries: dict[str, str], client: httpx.AsyncClient | None = None):
        self.registries = registries
        self._client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT, follow_redirects=True)
        self._owns_client = client is None
        self._items: dict[str, ComponentItem] = {}
        self._indexes: dict[str, RegistryIndex] = {}

    async def __aenter__(self) -> "RegistryFetcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def namespaces(self) -> list[str]:
        """Configured namespaces in configuration order."""
        return list(self.registries)

    def _template(self, namespace: str) -> str:
        template = self.registries.get(namespace)
        if not template:
            raise RegistryNotConfiguredError(
                f"No registry configured for {namespace}",
                context={"namespace": namespace},
            )
        return template

    def resolve_url(
        self,
        name: str,
        type_dir: str,
        namespace: str = DEFAULT_NAMESPACE,
        version: str | None = None,
    ) -> str:
        """
        Build the URL of a component document.

        Args:
            name: Component name
            type_dir: Registry type directory ("agents", "tools", ...)
            namespace: Registry namespace
            version: Optional version; requests "<name>@<version>"

        Returns:
            Fully substituted URL

        Raises:
            RegistryNotConfiguredError: If the namespace has no registry
        """
        template = self._template(namespace)
        file_name = f"{name}@{version}" if version else name
        return template.replace("{type}", type_dir).replace("{name}", file_name)

    def index_url(self, namespace: str = DEFAULT_NAMESPACE) -> str:
        """Build the URL of a namespace's registry index."""
        template = self._template(namespace)
        if ITEM_SEGMENT in template:
            return template.replace(ITEM_SEGMENT, INDEX_FILE)
        # Non-standard template: index sits where the {type} segment starts
        prefix, _, _ = template.partition("{type}")
        return prefix + INDEX_FILE

    async def fetch_index(self, namespace: str = DEFAULT_NAMESPACE) -> RegistryIndex:
        """
        Fetch (or return cached) registry index for a namespace.

        Raises:
            RegistryNotConfiguredError: If the namespace has no registry
            RegistryFetchError: On network errors, non-2xx responses or invalid documents
        """
        if namespace in self._indexes:
            return self._indexes[namespace]

        url = self.index_url(namespace)
        data = await self._get_json(url, namespace)
        try:
            index = RegistryIndex.model_validate(data)
        except ValidationError as e:
            raise RegistryFetchError(f"Invalid registry index from {url}: {e}", namespace=namespace, url=url) from e

        logger.debug(f"Fetched index for {namespace}: {len(index.items)} components")
        self._indexes[namespace] = index
        return index

    async def fetch_item(
        self,
        name: str,
        type_dir: str,
        namespace: str = DEFAULT_NAMESPACE,
        version: str | None = None,
    ) -> ComponentItem:
        """
        Fetch (or return cached) component document.

        Raises:
            RegistryNotConfiguredError: If the namespace has no registry
            RegistryFetchError: On network errors, non-2xx responses or invalid documents
        """
        url = self.resolve_url(name, type_dir, namespace, version)
        if url in self._items:
            logger.debug(f"Cache hit: {url}")
            return self._items[url]

        data = await self._get_json(url, namespace)
        try:
            item = ComponentItem.model_validate(data)
        except ValidationError as e:
            raise RegistryFetchError(f"Invalid component document from {url}: {e}", namespace=namespace, url=url) from e

        self._items[url] = item
        return item

    async def _get_json(self, url: str, namespace: str) -> Any:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise RegistryFetchError(
                f"Failed to fetch {url}: {status} {e.response.reason_phrase}",
                namespace=namespace,
                url=url,
                status_code=status,
            ) from e
        except httpx.HTTPError as e:
            raise RegistryFetchError(f"Failed to fetch {url}: {e}", namespace=namespace, url=url) from e
        except ValueError as e:
            raise RegistryFetchError(f"Invalid JSON from {url}: {e}", namespace=namespace, url=url) from e
