"""Component references - Parse "@namespace/name@version" strings."""

from dataclasses import dataclass

from .config import DEFAULT_NAMESPACE
from .exceptions import InvalidComponentRefError
from .schema import ComponentType

# User-facing spellings accepted by --type
TYPE_ALIASES: dict[str, ComponentType] = {
    "agent": ComponentType.AGENT,
    "agents": ComponentType.AGENT,
    "tool": ComponentType.TOOL,
    "tools": ComponentType.TOOL,
    "skill": ComponentType.SKILL,
    "skills": ComponentType.SKILL,
    "storage": ComponentType.STORAGE,
    "storages": ComponentType.STORAGE,
    "package": ComponentType.PACKAGE,
    "packages": ComponentType.PACKAGE,
    "cron": ComponentType.CRON,
    "crons": ComponentType.CRON,
}


@dataclass(frozen=True)
class ComponentRef:
    """Parsed component reference."""

    namespace: str
    name: str
    version: str | None = None

    @property
    def key(self) -> str:
        """Ledger key for this reference."""
        return installed_key(self.namespace, self.name)

    def __str__(self) -> str:
        text = self.name if self.namespace == DEFAULT_NAMESPACE else f"{self.namespace}/{self.name}"
        return f"{text}@{self.version}" if self.version else text


def parse_component_ref(value: str) -> ComponentRef:
    """
    Parse a component reference.

    Accepted forms: "name", "name@1.0.0", "@ns/name", "@ns/name@1.0.0".

    Raises:
        InvalidComponentRefError: If a namespace is given without a name

    Example:
        >>> parse_component_ref("@acme/weather-tool@2.0.0")
        ComponentRef(namespace='@acme', name='weather-tool', version='2.0.0')
    """
    namespace = DEFAULT_NAMESPACE
    rest = value

    if rest.startswith("@"):
        namespace, sep, rest = rest.partition("/")
        if not sep or not rest:
            raise InvalidComponentRefError(
                f"Invalid component reference: {value}. Expected @namespace/name",
                context={"ref": value},
            )

    name, sep, version = rest.partition("@")
    if not name:
        raise InvalidComponentRefError(f"Invalid component reference: {value}", context={"ref": value})
    return ComponentRef(namespace=namespace, name=name, version=version if sep and version else None)


def installed_key(namespace: str, name: str) -> str:
    """Ledger key: bare name for the default namespace, "@ns/name" otherwise."""
    return name if namespace == DEFAULT_NAMESPACE else f"{namespace}/{name}"


def resolve_type_alias(value: str) -> ComponentType | None:
    """Resolve a user-provided type string ("tools", "kitn:tool") to a ComponentType."""
    return TYPE_ALIASES.get(value.lower().removeprefix("kitn:"))
