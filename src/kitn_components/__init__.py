"""kitn-components - Install AI agent components from registries into a project.

Library mechanism first: apps inject the project root, registries and a
Prompter; the bundled `kitn` CLI is one such app.
"""

from .barrel import add_import_to_barrel
from .barrel import create_barrel_file
from .barrel import parse_barrel_file
from .barrel import remove_import_from_barrel
from .config import Aliases
from .config import ProjectConfig
from .config import RegistryEntry
from .config import get_install_path
from .config import read_config
from .config import write_config
from .disambiguation import Candidate
from .disambiguation import disambiguate
from .exceptions import AmbiguousComponentError
from .exceptions import ComponentError
from .exceptions import ComponentInstallError
from .exceptions import ComponentNotFoundError
from .exceptions import ConfigError
from .exceptions import InvalidComponentRefError
from .exceptions import RegistryError
from .exceptions import RegistryFetchError
from .exceptions import RegistryNotConfiguredError
from .fetcher import RegistryFetcher
from .files import FileStatus
from .files import check_file_status
from .files import generate_diff
from .files import materialize
from .installer import ComponentInfo
from .installer import InstallReport
from .installer import Project
from .installer import component_info
from .installer import diff_component
from .installer import find_orphaned_dependencies
from .installer import init_project
from .installer import install_components
from .installer import link_tool
from .installer import list_registry_components
from .installer import uninstall_component
from .installer import unlink_tool
from .installer import update_components
from .linker import LinkResult
from .linker import RegexToolsBlockEditor
from .linker import ToolRef
from .linker import link_tool_to_agent
from .linker import unlink_tool_from_agent
from .lock import ComponentLock
from .lock import ComponentLockEntry
from .protocols import Prompter
from .protocols import ToolsBlockEditor
from .refs import ComponentRef
from .refs import parse_component_ref
from .resolver import ResolvedComponent
from .resolver import resolve_dependencies
from .rewriter import rewrite_kitn_imports
from .schema import ComponentItem
from .schema import ComponentType
from .schema import RegistryIndex
from .slots import SlotAction
from .slots import SlotConflict
from .slots import detect_slot_conflicts

__all__ = [
    # Registry documents
    "ComponentItem",
    "ComponentType",
    "RegistryIndex",
    # Configuration
    "Aliases",
    "ProjectConfig",
    "RegistryEntry",
    "read_config",
    "write_config",
    "get_install_path",
    # References and resolution
    "ComponentRef",
    "parse_component_ref",
    "RegistryFetcher",
    "Candidate",
    "disambiguate",
    "ResolvedComponent",
    "resolve_dependencies",
    "SlotAction",
    "SlotConflict",
    "detect_slot_conflicts",
    # Files and text transforms
    "FileStatus",
    "check_file_status",
    "generate_diff",
    "materialize",
    "rewrite_kitn_imports",
    "create_barrel_file",
    "add_import_to_barrel",
    "remove_import_from_barrel",
    "parse_barrel_file",
    "ToolRef",
    "LinkResult",
    "link_tool_to_agent",
    "unlink_tool_from_agent",
    "RegexToolsBlockEditor",
    # Installation
    "Project",
    "InstallReport",
    "ComponentInfo",
    "init_project",
    "component_info",
    "install_components",
    "update_components",
    "uninstall_component",
    "find_orphaned_dependencies",
    "diff_component",
    "link_tool",
    "list_registry_components",
    "unlink_tool",
    "Prompter",
    "ToolsBlockEditor",
    # Lock file
    "ComponentLock",
    "ComponentLockEntry",
    # Exceptions
    "ComponentError",
    "ConfigError",
    "InvalidComponentRefError",
    "RegistryError",
    "RegistryNotConfiguredError",
    "RegistryFetchError",
    "ComponentNotFoundError",
    "AmbiguousComponentError",
    "ComponentInstallError",
]

__version__ = "0.1.0"
