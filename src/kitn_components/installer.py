"""Component installation mechanism.

Library doesn't know WHERE the project is or HOW to ask the user: apps
inject a Project (root, configuration, ledger), a RegistryFetcher and a
Prompter.

Install pipeline:
1. Disambiguate requested names into (namespace, name, type)
2. Resolve the registry dependency closure, dependencies first
3. Settle slot conflicts with the prompter (replace or keep both)
4. Per component: rewrite imports, materialize files, record the ledger entry
5. Add barrel imports for agents, tools and skills
6. Install external packages with the project's package manager
7. Report environment variables the components need
"""

import logging
import posixpath
import subprocess
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

from .barrel import BARREL_FILE
from .barrel import PLUGIN_FILE
from .barrel import add_import_to_barrel
from .barrel import create_barrel_file
from .barrel import create_plugin_file
from .barrel import remove_import_from_barrel
from .config import CONFIG_FILE
from .config import DEFAULT_BASE
from .config import DEFAULT_FRAMEWORK
from .config import DEFAULT_RUNTIME
from .config import LOCK_FILE
from .config import ProjectConfig
from .config import alias_dir
from .config import get_install_path
from .config import load_config
from .config import new_project_config
from .config import read_config
from .config import write_config
from .deps import collect_dependencies
from .deps import detect_package_manager
from .deps import install_dependencies
from .deps import install_dev_dependencies
from .disambiguation import disambiguate
from .discovery import ResolvedAgent
from .discovery import ResolvedTool
from .discovery import list_agents
from .discovery import list_tools
from .discovery import resolve_agent_by_name
from .discovery import resolve_tool_by_name
from .env import collect_env_vars
from .env import missing_env_vars
from .env import update_env_example
from .exceptions import ComponentInstallError
from .exceptions import ComponentNotFoundError
from .exceptions import ConfigError
from .fetcher import RegistryFetcher
from .files import FileOp
from .files import MaterializeResult
from .files import generate_diff
from .files import materialize
from .files import plan_file
from .files import read_existing_file
from .files import write_component_file
from .linker import LinkResult
from .linker import ToolRef
from .linker import link_tool_to_agent
from .linker import unlink_tool_from_agent
from .lock import ComponentLock
from .lock import ComponentLockEntry
from .protocols import Prompter
from .refs import ComponentRef
from .refs import parse_component_ref
from .resolver import ResolvedComponent
from .resolver import make_registry_lookup
from .resolver import resolve_dependencies
from .rewriter import rewrite_kitn_imports
from .schema import TYPE_TO_DIR
from .schema import ComponentItem
from .schema import ComponentType
from .slots import SlotAction
from .slots import detect_slot_conflicts
from .utils import hash_files
from .utils import relative_import_path

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "1.0.0"
ROUTES_ALIAS = "routes"
PROTECTED_DEPENDENCIES = frozenset({"core"})

BARREL_TYPES = frozenset({ComponentType.AGENT, ComponentType.TOOL, ComponentType.SKILL})


@dataclass
class Project:
    """A project on disk: root directory, parsed kitn.json and its ledger."""

    root: Path
    config: ProjectConfig
    lock: ComponentLock

    @classmethod
    def load(cls, root: Path) -> "Project":
        """
        Load kitn.json and kitn.lock from a project root.

        Raises:
            ConfigError: If kitn.json is missing or invalid
        """
        return cls(root=root, config=load_config(root), lock=ComponentLock(root / LOCK_FILE))

    @property
    def barrel_path(self) -> Path:
        return self.root / self.config.aliases.base / BARREL_FILE


@dataclass
class InstallReport:
    """What an install run did, for the app to present."""

    resolved: list[ResolvedComponent] = field(default_factory=list)
    files: MaterializeResult = field(default_factory=MaterializeResult)
    recorded: list[str] = field(default_factory=list)
    replaced: list[str] = field(default_factory=list)
    barrel_created: bool = False
    packages: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    env_added: list[str] = field(default_factory=list)
    env_missing: list[str] = field(default_factory=list)
    docs: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ComponentDiff:
    """Differences between installed files and the registry version."""

    key: str
    diffs: dict[str, str]
    missing: list[str]

    @property
    def up_to_date(self) -> bool:
        return not self.diffs and not self.missing


@dataclass(frozen=True)
class ListedComponent:
    """A registry index entry annotated with its installed state."""

    namespace: str
    key: str
    name: str
    type: ComponentType
    description: str
    version: str
    installed_version: str | None = None

    @property
    def installed(self) -> bool:
        return self.installed_version is not None

    @property
    def update_available(self) -> bool:
        return self.installed and self.installed_version != self.version


@dataclass(frozen=True)
class ComponentInfo:
    """A registry component document with its installed ledger entry, if any."""

    namespace: str
    key: str
    item: ComponentItem
    version: str
    installed: ComponentLockEntry | None = None

    @property
    def update_available(self) -> bool:
        return self.installed is not None and self.installed.version != self.version


def expand_name_aliases(names: list[str], config: ProjectConfig) -> list[str]:
    """Replace "routes" with the project's HTTP framework adapter."""
    framework = config.framework or DEFAULT_FRAMEWORK
    return [framework if name == ROUTES_ALIAS else name for name in names]


def plan_component_files(project: Project, component: ResolvedComponent) -> list[FileOp]:
    """
    Plan where each file of a component goes and with what content.

    Packages keep their directory structure under the base alias. Every
    other type installs flat into its alias directory (plus a namespace
    subdirectory for third-party registries) with imports rewritten.
    """
    item = component.item
    config = project.config
    ops = []

    for file in item.files:
        if item.type == ComponentType.PACKAGE:
            display_path = posixpath.join(config.aliases.base, file.path)
            content = file.content
        else:
            file_name = posixpath.basename(file.path)
            display_path = get_install_path(config, item.type, file_name, component.namespace)
            content = rewrite_kitn_imports(file.content, item.type, file_name, config.aliases, component.namespace)
        ops.append(plan_file(project.root / display_path, display_path, content))

    return ops


def _barrel_import(config: ProjectConfig, display_path: str) -> str:
    return relative_import_path(config.aliases.base, display_path)


def _update_barrel(project: Project, import_paths: list[str]) -> bool:
    """Add imports to the barrel, creating it if needed. Returns True if created."""
    if not import_paths:
        return False

    existing = read_existing_file(project.barrel_path)
    content = existing if existing is not None else create_barrel_file()
    for import_path in import_paths:
        content = add_import_to_barrel(content, import_path)

    if content != existing:
        write_component_file(project.barrel_path, content)
        logger.debug(f"Updated barrel with {len(import_paths)} import(s)")
    return existing is None


def _install_packages(project: Project, items: list[ComponentItem], report: InstallReport) -> None:
    runtime, dev = collect_dependencies(items)
    if not runtime and not dev:
        return

    manager = detect_package_manager(project.root)
    if manager is None:
        report.warnings.append(f"No lockfile found; install manually: {' '.join(runtime + dev)}")
        return

    try:
        install_dependencies(manager, runtime, project.root)
        install_dev_dependencies(manager, dev, project.root)
        report.packages.extend(runtime + dev)
    except (subprocess.CalledProcessError, OSError) as e:
        message = f"Some dependencies failed to install with {manager}: {e}"
        logger.warning(message)
        report.warnings.append(message)


async def _install(
    refs: list[ComponentRef],
    type_hints: dict[str, ComponentType],
    project: Project,
    fetcher: RegistryFetcher,
    prompter: Prompter,
    overwrite: bool,
    install_packages: bool,
) -> InstallReport:
    report = InstallReport()
    report.resolved = await resolve_dependencies(refs, make_registry_lookup(fetcher, type_hints))

    for conflict in detect_slot_conflicts(report.resolved, project.lock):
        if conflict.existing_key in report.replaced:
            continue
        action = prompter.resolve_slot_conflict(conflict)
        if action == SlotAction.REPLACE and project.lock.is_installed(conflict.existing_key):
            uninstall_component(project, conflict.existing_key)
            report.replaced.append(conflict.existing_key)

    barrel_imports: list[str] = []
    for component in report.resolved:
        item = component.item
        ops = plan_component_files(project, component)
        try:
            result = materialize(ops, prompter, overwrite=overwrite)
        except OSError as e:
            raise ComponentInstallError(
                f"Failed to write files for {component.key}: {e}",
                context={"component": component.key},
            ) from e
        report.files.extend(result)

        entry = ComponentLockEntry(
            registry=component.namespace,
            type=item.type.value,
            slot=item.slot,
            version=item.version or DEFAULT_VERSION,
            files=[op.display_path for op in ops],
            hash=hash_files([op.new_content for op in ops]),
            registry_dependencies=list(item.registry_dependencies),
        )
        previous = project.lock.get(component.key)
        if previous is None or not previous.same_content(entry):
            project.lock.record(component.key, entry)
            report.recorded.append(component.key)
            logger.info(f"Installed {component.key} ({len(ops)} file(s))")

        if item.type in BARREL_TYPES:
            barrel_imports.extend(_barrel_import(project.config, op.display_path) for op in ops)
        if item.docs:
            report.docs[component.key] = item.docs

    report.barrel_created = _update_barrel(project, barrel_imports)

    items = [component.item for component in report.resolved]
    if install_packages:
        _install_packages(project, items, report)

    env_vars = collect_env_vars(items)
    if env_vars:
        report.env_added = update_env_example(project.root, env_vars)
        report.env_missing = missing_env_vars(project.root, env_vars)

    return report


async def install_components(
    names: list[str],
    project: Project,
    fetcher: RegistryFetcher,
    prompter: Prompter,
    type_filter: ComponentType | None = None,
    overwrite: bool = False,
    install_packages: bool = True,
) -> InstallReport:
    """
    Install components and their registry dependencies into a project.

    Re-running with the same inputs is a no-op: identical files are skipped
    and unchanged ledger entries are not rewritten.

    Args:
        names: Requested references ("weather-agent", "@acme/tool@1.2.0", "routes")
        project: Target project
        fetcher: Registry fetcher for the project's registries
        prompter: Decision maker for ambiguity, modified files and slot conflicts
        type_filter: Only consider components of this type when matching names
        overwrite: Overwrite locally modified files without asking
        install_packages: Run the package manager for external dependencies

    Returns:
        InstallReport describing every file, ledger and package change

    Raises:
        ComponentNotFoundError: If a requested or dependent component does not exist
        AmbiguousComponentError: If a name is ambiguous and the prompter cannot choose
        RegistryError: If a required registry is not configured or unreachable
        ComponentInstallError: If files cannot be written

    Example:
        >>> project = Project.load(Path.cwd())
        >>> async with RegistryFetcher(project.config.registry_urls()) as fetcher:
        ...     report = await install_components(["weather-agent"], project, fetcher, ClickPrompter())
    """
    names = expand_name_aliases(names, project.config)
    selection = await disambiguate(names, fetcher, prompter, type_filter)
    return await _install(
        selection.refs, selection.type_hints, project, fetcher, prompter, overwrite, install_packages
    )


async def update_components(
    keys: list[str],
    project: Project,
    fetcher: RegistryFetcher,
    prompter: Prompter,
    install_packages: bool = True,
) -> InstallReport:
    """
    Reinstall components from their registries, overwriting local files.

    Args:
        keys: Installed keys to update; empty means every installed component

    Returns:
        InstallReport (empty when nothing is installed)
    """
    keys = expand_name_aliases(keys, project.config) or project.lock.keys()
    if not keys:
        return InstallReport()

    refs = [parse_component_ref(key) for key in keys]
    type_hints = {}
    for ref in refs:
        entry = project.lock.get(ref.key)
        if entry is not None and entry.type:
            type_hints[ref.key] = ComponentType.parse(entry.type)

    return await _install(refs, type_hints, project, fetcher, prompter, True, install_packages)


def uninstall_component(project: Project, key: str) -> list[str]:
    """
    Remove an installed component: delete its files, drop barrel imports, forget it.

    Files that are already gone are logged and skipped.

    Args:
        project: Target project
        key: Installed key ("weather-tool" or "@acme/weather-tool")

    Returns:
        Project-relative paths that were deleted

    Raises:
        ComponentNotFoundError: If the component is not installed
    """
    entry = project.lock.get(key)
    if entry is None:
        raise ComponentNotFoundError(f"Component '{key}' is not installed", context={"key": key})

    deleted = []
    for file in entry.files:
        try:
            (project.root / file).unlink()
            deleted.append(file)
        except OSError as e:
            logger.warning(f"Could not delete {file} (may have been moved or renamed): {e}")

    aliases = project.config.aliases
    barrel_dirs = {alias_dir(aliases, component_type) for component_type in BARREL_TYPES}
    barrel = read_existing_file(project.barrel_path)
    if barrel is not None:
        updated = barrel
        for file in deleted:
            if any(file.startswith(f"{directory}/") for directory in barrel_dirs):
                updated = remove_import_from_barrel(updated, _barrel_import(project.config, file))
        if updated != barrel:
            write_component_file(project.barrel_path, updated)

    project.lock.remove(key)
    logger.info(f"Removed {key} ({len(deleted)} file(s))")
    return deleted


def find_orphaned_dependencies(project: Project, removed_dependencies: list[str]) -> list[str]:
    """
    Registry dependencies of removed components that nothing installed still needs.

    "core" is never reported.

    Args:
        project: Project whose ledger already reflects the removal
        removed_dependencies: registryDependencies of the removed components

    Returns:
        Installed keys, in first-seen order
    """
    needed = {
        parse_component_ref(dep).key
        for entry in project.lock.list_entries()
        for dep in entry.registry_dependencies
    }
    orphans = []
    for dep in removed_dependencies:
        key = parse_component_ref(dep).key
        if key in PROTECTED_DEPENDENCIES or key in needed or key in orphans:
            continue
        if project.lock.is_installed(key):
            orphans.append(key)
    return orphans


async def diff_component(project: Project, fetcher: RegistryFetcher, name: str) -> ComponentDiff:
    """
    Compare an installed component with the registry version.

    Registry content goes through the same import rewriting as an install,
    so an untouched install diffs clean.

    Raises:
        ComponentNotFoundError: If the component is not installed or no longer in its registry
    """
    ref = parse_component_ref(expand_name_aliases([name], project.config)[0])
    entry = project.lock.get(ref.key)
    if entry is None:
        raise ComponentNotFoundError(f"Component '{ref.key}' is not installed", context={"key": ref.key})

    hints = {ref.key: ComponentType.parse(entry.type)} if entry.type else {}
    item = await make_registry_lookup(fetcher, hints)(ref)
    component = ResolvedComponent(ref=ref, item=item)

    diffs = {}
    missing = []
    for op in plan_component_files(project, component):
        local = read_existing_file(op.target_path)
        if local is None:
            missing.append(op.display_path)
        elif local != op.new_content:
            diffs[op.display_path] = generate_diff(op.display_path, local, op.new_content)

    return ComponentDiff(key=ref.key, diffs=diffs, missing=missing)


async def list_registry_components(
    project: Project,
    fetcher: RegistryFetcher,
    namespace: str | None = None,
    type_filter: ComponentType | None = None,
    installed_only: bool = False,
) -> list[ListedComponent]:
    """
    List registry components annotated with installed state.

    Args:
        namespace: Only this registry (default: every configured registry)
        type_filter: Only components of this type
        installed_only: Only components present in the ledger

    Raises:
        RegistryError: If a registry index cannot be fetched
    """
    listed = []
    for ns in [namespace] if namespace else fetcher.namespaces:
        index = await fetcher.fetch_index(ns)
        for entry in index.items:
            if type_filter is not None and entry.type != type_filter:
                continue
            key = ComponentRef(namespace=ns, name=entry.name).key
            lock_entry = project.lock.get(key)
            if installed_only and lock_entry is None:
                continue
            listed.append(
                ListedComponent(
                    namespace=ns,
                    key=key,
                    name=entry.name,
                    type=entry.type,
                    description=entry.description,
                    version=entry.version or DEFAULT_VERSION,
                    installed_version=lock_entry.version if lock_entry else None,
                )
            )
    return listed


def init_project(
    root: Path,
    runtime: str = DEFAULT_RUNTIME,
    framework: str = DEFAULT_FRAMEWORK,
    base: str = DEFAULT_BASE,
    overwrite: bool = False,
) -> tuple[Project, list[str]]:
    """
    Create kitn.json plus the barrel and plugin files under base.

    Existing barrel and plugin files are kept, so re-initializing does not
    drop the imports of installed components.

    Args:
        root: Project root
        runtime: bun, node or deno
        framework: HTTP framework adapter, also what "routes" installs
        base: Directory components install under
        overwrite: Replace an existing kitn.json

    Returns:
        The loaded project and the files created, relative to root

    Raises:
        ConfigError: If kitn.json exists and overwrite is False, or an option is invalid
    """
    config = new_project_config(runtime, framework, base)
    if read_config(root) is not None and not overwrite:
        raise ConfigError(f"{CONFIG_FILE} already exists in {root}", context={"project_dir": str(root)})

    write_config(root, config)
    created = [CONFIG_FILE]

    base_dir = root / config.aliases.base
    scaffold = {BARREL_FILE: create_barrel_file(), PLUGIN_FILE: create_plugin_file(framework)}
    for file_name, content in scaffold.items():
        path = base_dir / file_name
        if path.exists():
            logger.debug(f"Keeping existing {path}")
            continue
        write_component_file(path, content)
        created.append(posixpath.join(config.aliases.base, file_name))

    logger.info(f"Initialized kitn project in {root} ({runtime}, {framework})")
    return Project.load(root), created


async def component_info(project: Project, fetcher: RegistryFetcher, name: str) -> ComponentInfo:
    """
    Describe a registry component and its installed state.

    Args:
        name: Reference as typed, "[@namespace/]name[@version]"

    Raises:
        ComponentNotFoundError: If the namespace index has no such component
        RegistryError: If the registry cannot be fetched
    """
    ref = parse_component_ref(expand_name_aliases([name], project.config)[0])
    index = await fetcher.fetch_index(ref.namespace)
    entries = index.find(ref.name)
    if not entries:
        raise ComponentNotFoundError(
            f"Component '{ref.name}' not found in {ref.namespace} registry",
            context={"namespace": ref.namespace, "name": ref.name},
        )
    entry = entries[0]
    item = await fetcher.fetch_item(ref.name, TYPE_TO_DIR[entry.type], ref.namespace, ref.version)
    return ComponentInfo(
        namespace=ref.namespace,
        key=ref.key,
        item=item,
        version=item.version or entry.version or DEFAULT_VERSION,
        installed=project.lock.get(ref.key),
    )


def _available_suffix(names: list[str]) -> str:
    return f". Available: {', '.join(names)}" if names else ""


def _resolve_link_targets(project: Project, tool_name: str, agent_name: str) -> tuple[ResolvedTool, ResolvedAgent]:
    tool = resolve_tool_by_name(tool_name, project.root, project.config, project.lock)
    if tool is None:
        available = [listing.name for listing in list_tools(project.root, project.config)]
        raise ComponentNotFoundError(
            f"Tool '{tool_name}' not found{_available_suffix(available)}",
            context={"tool": tool_name, "available": available},
        )
    agent = resolve_agent_by_name(agent_name, project.root, project.config, project.lock)
    if agent is None:
        available = [listing.name for listing in list_agents(project.root, project.config)]
        raise ComponentNotFoundError(
            f"Agent '{agent_name}' not found{_available_suffix(available)}",
            context={"agent": agent_name, "available": available},
        )
    return tool, agent


def link_tool(project: Project, tool_name: str, agent_name: str, key: str | None = None) -> LinkResult:
    """
    Wire an installed tool into an agent file (import + tools entry).

    The agent file is only written when its content changed.

    Raises:
        ComponentNotFoundError: If the tool or agent cannot be found
    """
    tool, agent = _resolve_link_targets(project, tool_name, agent_name)
    content = agent.file_path.read_text(encoding="utf-8")
    result = link_tool_to_agent(content, ToolRef(tool.export_name, tool.import_path), key)
    if result.changed:
        agent.file_path.write_text(result.content, encoding="utf-8")
        logger.info(f"Linked {tool.export_name} into {agent.file_path.name}")
    return result


def unlink_tool(project: Project, tool_name: str, agent_name: str, key: str | None = None) -> LinkResult:
    """
    Remove a tool from an agent file, dropping its import when unused.

    Raises:
        ComponentNotFoundError: If the tool or agent cannot be found
    """
    tool, agent = _resolve_link_targets(project, tool_name, agent_name)
    content = agent.file_path.read_text(encoding="utf-8")
    result = unlink_tool_from_agent(content, ToolRef(tool.export_name, tool.import_path), key)
    if result.changed:
        agent.file_path.write_text(result.content, encoding="utf-8")
        logger.info(f"Unlinked {tool.export_name} from {agent.file_path.name}")
    return result
