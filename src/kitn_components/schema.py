"""Registry document schema - Parse index and component JSON documents.

Registry documents use camelCase keys (registryDependencies, devDependencies,
envVars); models expose snake_case attributes and accept either spelling.
Fetched documents are immutable: they are consumed by an install run, never mutated.
"""

from enum import StrEnum

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

TYPE_PREFIX = "kitn:"


class ComponentType(StrEnum):
    """Kind of installable component."""

    AGENT = "agent"
    TOOL = "tool"
    SKILL = "skill"
    STORAGE = "storage"
    CRON = "cron"
    PACKAGE = "package"

    @classmethod
    def parse(cls, value: "str | ComponentType") -> "ComponentType":
        """Parse a type string, accepting the legacy "kitn:" prefix.

        Example:
            >>> ComponentType.parse("kitn:agent")
            <ComponentType.AGENT: 'agent'>
        """
        if isinstance(value, ComponentType):
            return value
        return cls(value.removeprefix(TYPE_PREFIX))


# Registry directory segment substituted for {type} in URL templates
TYPE_TO_DIR: dict[ComponentType, str] = {
    ComponentType.AGENT: "agents",
    ComponentType.TOOL: "tools",
    ComponentType.SKILL: "skills",
    ComponentType.STORAGE: "storage",
    ComponentType.CRON: "crons",
    ComponentType.PACKAGE: "package",
}


def _parse_type(value: object) -> object:
    if isinstance(value, str):
        return value.removeprefix(TYPE_PREFIX)
    return value


class ComponentFile(BaseModel):
    """One source file shipped by a component."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str


class EnvVarConfig(BaseModel):
    """Environment variable a component needs at runtime."""

    model_config = ConfigDict(frozen=True)

    description: str = ""
    required: bool = True
    secret: bool = True
    url: str | None = None


class ComponentItem(BaseModel):
    """Full component document fetched from a registry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    type: ComponentType
    description: str = ""
    version: str | None = None
    slot: str | None = None
    files: list[ComponentFile] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    dev_dependencies: list[str] = Field(default_factory=list, alias="devDependencies")
    registry_dependencies: list[str] = Field(default_factory=list, alias="registryDependencies")
    env_vars: dict[str, EnvVarConfig] = Field(default_factory=dict, alias="envVars")
    docs: str | None = None
    categories: list[str] = Field(default_factory=list)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: object) -> object:
        return _parse_type(value)

    @property
    def type_dir(self) -> str:
        """Registry directory for this component's type."""
        return TYPE_TO_DIR[self.type]


class RegistryIndexEntry(BaseModel):
    """One component listed in a registry index."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    type: ComponentType
    description: str = ""
    version: str | None = None
    registry_dependencies: list[str] = Field(default_factory=list, alias="registryDependencies")
    categories: list[str] = Field(default_factory=list)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: object) -> object:
        return _parse_type(value)


class RegistryIndex(BaseModel):
    """Registry index document (registry.json)."""

    model_config = ConfigDict(frozen=True)

    version: str = "1.0"
    items: list[RegistryIndexEntry] = Field(default_factory=list)

    def find(self, name: str, component_type: ComponentType | None = None) -> list[RegistryIndexEntry]:
        """Return entries with an exact name match, optionally filtered by type."""
        return [
            item
            for item in self.items
            if item.name == name and (component_type is None or item.type == component_type)
        ]
