"""Project configuration - Read and write kitn.json.

The configuration is read-only input for the installer, except for registry
management which adds or removes entries under "registries".
"""

import json
import logging
import posixpath
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator

from .exceptions import ConfigError
from .schema import ComponentType

logger = logging.getLogger(__name__)

CONFIG_FILE = "kitn.json"
LOCK_FILE = "kitn.lock"
CONFIG_SCHEMA_URL = "https://kitn.dev/schema/config.json"

DEFAULT_NAMESPACE = "@kitn"
DEFAULT_REGISTRY_URL = "https://kitn-ai.github.io/kitn/r/{type}/{name}.json"

RUNTIMES = ("bun", "node", "deno")
FRAMEWORKS = ("hono", "hono-openapi", "elysia")
DEFAULT_RUNTIME = "bun"
DEFAULT_FRAMEWORK = "hono"
DEFAULT_BASE = "src/ai"


class RegistryEntry(BaseModel):
    """Configured registry: URL template plus optional display metadata."""

    url: str
    homepage: str | None = None
    description: str | None = None


DEFAULT_REGISTRIES: dict[str, RegistryEntry] = {
    DEFAULT_NAMESPACE: RegistryEntry(
        url=DEFAULT_REGISTRY_URL,
        homepage="https://kitn.ai",
        description="Official kitn AI agent components",
    ),
}


class Aliases(BaseModel):
    """Install directories per component type, relative to the project root."""

    base: str = "src/ai"
    agents: str = "src/ai/agents"
    tools: str = "src/ai/tools"
    skills: str = "src/ai/skills"
    storage: str = "src/ai/storage"
    crons: str | None = None


# Alias attribute per single-file component type
TYPE_TO_ALIAS_KEY: dict[ComponentType, str] = {
    ComponentType.AGENT: "agents",
    ComponentType.TOOL: "tools",
    ComponentType.SKILL: "skills",
    ComponentType.STORAGE: "storage",
    ComponentType.CRON: "crons",
}


class ProjectConfig(BaseModel):
    """Parsed kitn.json.

    Unknown keys (e.g. "$schema", "chatService") are kept and written back unchanged.
    """

    model_config = ConfigDict(extra="allow")

    runtime: str = "bun"
    framework: str | None = None
    aliases: Aliases = Field(default_factory=Aliases)
    registries: dict[str, RegistryEntry] = Field(default_factory=lambda: dict(DEFAULT_REGISTRIES))

    @field_validator("registries", mode="before")
    @classmethod
    def _normalize_registries(cls, value: object) -> object:
        # Older configs map namespace -> plain URL string
        if isinstance(value, dict):
            return {ns: {"url": entry} if isinstance(entry, str) else entry for ns, entry in value.items()}
        return value

    def registry_urls(self) -> dict[str, str]:
        """Map namespace to URL template."""
        return {namespace: entry.url for namespace, entry in self.registries.items()}


def read_config(project_dir: Path) -> ProjectConfig | None:
    """
    Read kitn.json from a project directory.

    Args:
        project_dir: Project root

    Returns:
        Parsed configuration, or None if the file does not exist

    Raises:
        ConfigError: If the file exists but is not valid
    """
    config_path = project_dir / CONFIG_FILE
    if not config_path.exists():
        return None

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        return ProjectConfig.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigError(f"Invalid {CONFIG_FILE}: {e}", context={"path": str(config_path)}) from e


def load_config(project_dir: Path) -> ProjectConfig:
    """Read kitn.json, failing if it is missing."""
    config = read_config(project_dir)
    if config is None:
        raise ConfigError(
            f"No {CONFIG_FILE} found in {project_dir}. Run `kitn init` first.",
            context={"project_dir": str(project_dir)},
        )
    return config


def write_config(project_dir: Path, config: ProjectConfig) -> None:
    """Write kitn.json (pretty-printed, trailing newline)."""
    data = {"$schema": CONFIG_SCHEMA_URL, **config.model_dump(exclude_none=True)}
    (project_dir / CONFIG_FILE).write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    logger.debug(f"Wrote {CONFIG_FILE} with {len(config.registries)} registries")


def alias_dir(aliases: Aliases, component_type: ComponentType) -> str:
    """
    Return the install directory for a component type.

    Packages install under the base alias; crons fall back to <base>/crons
    when no explicit alias is configured.
    """
    if component_type == ComponentType.PACKAGE:
        return aliases.base
    alias_key = TYPE_TO_ALIAS_KEY[component_type]
    configured = getattr(aliases, alias_key)
    return configured or posixpath.join(aliases.base, alias_key)


def get_install_path(
    config: ProjectConfig,
    component_type: ComponentType,
    file_name: str,
    namespace: str | None = None,
) -> str:
    """
    Compute the project-relative install path for a single-file component.

    Files from third-party namespaces go into a namespace subdirectory so they
    cannot collide with same-named files from the default registry.

    Args:
        config: Project configuration
        component_type: Type of the component (not package)
        file_name: Base file name (e.g. "weather.ts")
        namespace: Registry namespace (e.g. "@acme")

    Returns:
        POSIX path relative to the project root

    Example:
        >>> get_install_path(config, ComponentType.TOOL, "weather.ts", "@acme")
        'src/ai/tools/acme/weather.ts'
    """
    base = alias_dir(config.aliases, component_type)
    if namespace and namespace != DEFAULT_NAMESPACE:
        return posixpath.join(base, namespace.removeprefix("@"), file_name)
    return posixpath.join(base, file_name)


def add_registry(
    config: ProjectConfig,
    namespace: str,
    url: str,
    overwrite: bool = False,
    homepage: str | None = None,
    description: str | None = None,
) -> None:
    """
    Add (or replace) a registry in the configuration.

    Args:
        config: Configuration to modify in place
        namespace: Namespace starting with "@"
        url: URL template containing {type} and {name}
        overwrite: Replace an existing registry with the same namespace

    Raises:
        ConfigError: If the namespace or URL template is invalid, or the
            namespace exists and overwrite is not set
    """
    if not namespace.startswith("@"):
        raise ConfigError("Namespace must start with @ (e.g. @myteam)", context={"namespace": namespace})
    for placeholder in ("{type}", "{name}"):
        if placeholder not in url:
            raise ConfigError(f"URL template must include {placeholder} placeholder", context={"url": url})
    if namespace in config.registries and not overwrite:
        raise ConfigError(
            f"Registry '{namespace}' is already configured. Use --overwrite to replace.",
            context={"namespace": namespace},
        )
    config.registries[namespace] = RegistryEntry(url=url, homepage=homepage, description=description)


def remove_registry(config: ProjectConfig, namespace: str, force: bool = False) -> None:
    """
    Remove a registry from the configuration.

    Raises:
        ConfigError: If the namespace is not configured, or is the default
            registry and force is not set
    """
    if namespace not in config.registries:
        raise ConfigError(f"Registry '{namespace}' is not configured.", context={"namespace": namespace})
    if namespace == DEFAULT_NAMESPACE and not force:
        raise ConfigError(
            f"Cannot remove the default {DEFAULT_NAMESPACE} registry. Use --force to override.",
            context={"namespace": namespace},
        )
    del config.registries[namespace]


def new_project_config(
    runtime: str = DEFAULT_RUNTIME,
    framework: str = DEFAULT_FRAMEWORK,
    base: str = DEFAULT_BASE,
) -> ProjectConfig:
    """
    Configuration for a freshly initialized project.

    Every single-file alias lives under base; only the default registry is configured.

    Raises:
        ConfigError: If runtime or framework is not supported
    """
    if runtime not in RUNTIMES:
        raise ConfigError(f"Invalid runtime: {runtime}. Must be one of: {', '.join(RUNTIMES)}")
    if framework not in FRAMEWORKS:
        raise ConfigError(f"Invalid framework: {framework}. Must be one of: {', '.join(FRAMEWORKS)}")

    base = base.rstrip("/") or DEFAULT_BASE
    aliases = Aliases(
        base=base,
        agents=f"{base}/agents",
        tools=f"{base}/tools",
        skills=f"{base}/skills",
        storage=f"{base}/storage",
    )
    return ProjectConfig(runtime=runtime, framework=framework, aliases=aliases)
