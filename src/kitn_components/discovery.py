"""Installed component discovery - Find tools and agents in a project.

Lookup order for a name:
1. Ledger entries whose key is the name (or "<name>-tool" / "<name>-agent"),
   using the recorded file under the type's alias directory
2. Directory scan of the alias directory for "<name>.ts" or the name
   without its "-tool"/"-agent" suffix
"""

import logging
import posixpath
import re
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict

from .config import ProjectConfig
from .config import alias_dir
from .lock import ComponentLock
from .schema import ComponentType
from .utils import relative_import_path

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".ts"

_EXPORT_CONST = re.compile(r"export\s+const\s+(\w+)")
_AGENT_NAME = re.compile(r"""registerAgent\s*\(\s*\{[^}]*name:\s*["']([^"']+)["']""", re.DOTALL)


class ComponentListing(BaseModel):
    """A component source file found on disk (immutable)."""

    model_config = ConfigDict(frozen=True)

    name: str
    file_path: Path


class ResolvedTool(BaseModel):
    """A tool file plus what an agent needs to import it."""

    model_config = ConfigDict(frozen=True)

    file_path: Path
    export_name: str
    import_path: str


class ResolvedAgent(BaseModel):
    """An agent file and its registered name."""

    model_config = ConfigDict(frozen=True)

    file_path: Path
    name: str


def parse_export_name(source: str) -> str | None:
    """First `export const <name>` identifier in a source file."""
    match = _EXPORT_CONST.search(source)
    return match.group(1) if match else None


def parse_agent_name(source: str) -> str | None:
    """Agent name from a `registerAgent({ name: "..." })` call."""
    match = _AGENT_NAME.search(source)
    return match.group(1) if match else None


def _strip_suffix(name: str, suffix: str) -> str:
    return name.removesuffix(f"-{suffix}")


def _candidates(name: str, suffix: str) -> list[str]:
    return list(dict.fromkeys([name, _strip_suffix(name, suffix)]))


def _agent_import_path(project_dir: Path, config: ProjectConfig, tool_file: Path) -> str:
    agents_dir = alias_dir(config.aliases, ComponentType.AGENT)
    tool_rel = tool_file.relative_to(project_dir).as_posix()
    return re.sub(r"\.ts$", ".js", relative_import_path(agents_dir, tool_rel))


def _locked_file(
    name: str,
    suffix: str,
    lock: ComponentLock | None,
    type_dir: str,
) -> tuple[str, str] | None:
    if lock is None:
        return None
    for key, entry in lock.items():
        if key not in (name, f"{name}-{suffix}"):
            continue
        for file in entry.files:
            if posixpath.dirname(file) == type_dir or file.startswith(f"{type_dir}/"):
                return key, file
    return None


def list_components(project_dir: Path, config: ProjectConfig, component_type: ComponentType) -> list[ComponentListing]:
    """
    List source files directly in a type's alias directory.

    Test files (*.test.ts) and declaration files (*.d.ts) are ignored.

    Returns:
        Listings sorted by name; empty if the directory does not exist
    """
    directory = project_dir / alias_dir(config.aliases, component_type)
    if not directory.is_dir():
        return []
    files = [
        path
        for path in directory.glob(f"*{SOURCE_SUFFIX}")
        if path.is_file() and not path.name.endswith((".test.ts", ".d.ts"))
    ]
    return [ComponentListing(name=path.stem, file_path=path) for path in sorted(files)]


def list_tools(project_dir: Path, config: ProjectConfig) -> list[ComponentListing]:
    return list_components(project_dir, config, ComponentType.TOOL)


def list_agents(project_dir: Path, config: ProjectConfig) -> list[ComponentListing]:
    return list_components(project_dir, config, ComponentType.AGENT)


def _find_file(directory: Path, names: list[str]) -> Path | None:
    for name in names:
        path = directory / f"{name}{SOURCE_SUFFIX}"
        if path.is_file():
            return path
    return None


def resolve_tool_by_name(
    name: str,
    project_dir: Path,
    config: ProjectConfig,
    lock: ComponentLock | None = None,
) -> ResolvedTool | None:
    """
    Resolve a tool name to its file, export name and agent-relative import path.

    Args:
        name: Tool name ("weather" or "weather-tool")
        project_dir: Project root
        config: Project configuration
        lock: Ledger to consult first (optional)

    Returns:
        ResolvedTool, or None if no file with an `export const` is found
    """
    tools_dir = alias_dir(config.aliases, ComponentType.TOOL)

    locked = _locked_file(name, "tool", lock, tools_dir)
    if locked:
        file_path = project_dir / locked[1]
        try:
            export_name = parse_export_name(file_path.read_text(encoding="utf-8"))
        except OSError:
            logger.debug(f"Locked file {locked[1]} for {locked[0]} missing, scanning {tools_dir}")
            export_name = None
        if export_name:
            return ResolvedTool(
                file_path=file_path,
                export_name=export_name,
                import_path=_agent_import_path(project_dir, config, file_path),
            )

    file_path = _find_file(project_dir / tools_dir, _candidates(name, "tool"))
    if file_path is None:
        return None
    export_name = parse_export_name(file_path.read_text(encoding="utf-8"))
    if not export_name:
        return None
    return ResolvedTool(
        file_path=file_path,
        export_name=export_name,
        import_path=_agent_import_path(project_dir, config, file_path),
    )


def resolve_agent_by_name(
    name: str,
    project_dir: Path,
    config: ProjectConfig,
    lock: ComponentLock | None = None,
) -> ResolvedAgent | None:
    """
    Resolve an agent name to its file and registered name.

    Returns:
        ResolvedAgent, or None if no matching file exists
    """
    agents_dir = alias_dir(config.aliases, ComponentType.AGENT)

    locked = _locked_file(name, "agent", lock, agents_dir)
    if locked:
        key, file = locked
        file_path = project_dir / file
        if file_path.is_file():
            agent_name = parse_agent_name(file_path.read_text(encoding="utf-8"))
            return ResolvedAgent(file_path=file_path, name=agent_name or key)

    file_path = _find_file(project_dir / agents_dir, _candidates(name, "agent"))
    if file_path is None:
        return None
    agent_name = parse_agent_name(file_path.read_text(encoding="utf-8"))
    return ResolvedAgent(file_path=file_path, name=agent_name or file_path.stem)
