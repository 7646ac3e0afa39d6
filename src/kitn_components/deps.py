"""External package installation through the project's package manager.

The package manager is detected from the lockfile in the project root.
Commands are run with check=True; callers decide whether a failure is fatal
(the installer turns it into a warning).
"""

import logging
import subprocess
from collections.abc import Iterable
from pathlib import Path

from .schema import ComponentItem

logger = logging.getLogger(__name__)

# Checked in order: the first lockfile present wins
LOCKFILE_MAP: list[tuple[str, str]] = [
    ("bun.lock", "bun"),
    ("bun.lockb", "bun"),
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
]

ADD_COMMANDS: dict[str, list[str]] = {
    "bun": ["bun", "add"],
    "pnpm": ["pnpm", "add"],
    "yarn": ["yarn", "add"],
    "npm": ["npm", "install"],
}

DEV_FLAGS: dict[str, str] = {
    "bun": "-d",
    "pnpm": "-D",
    "yarn": "-D",
    "npm": "-D",
}


def detect_package_manager(project_dir: Path) -> str | None:
    """
    Detect the package manager from the lockfile in a project.

    Returns:
        "bun", "pnpm", "yarn" or "npm"; None if no known lockfile exists
    """
    for lockfile, manager in LOCKFILE_MAP:
        if (project_dir / lockfile).exists():
            return manager
    return None


def collect_dependencies(items: Iterable[ComponentItem]) -> tuple[list[str], list[str]]:
    """
    Collect external packages across components, first-seen order, no duplicates.

    Returns:
        (runtime dependencies, dev dependencies not already in runtime)
    """
    runtime: list[str] = []
    dev: list[str] = []
    for item in items:
        runtime.extend(dep for dep in item.dependencies if dep not in runtime)
        dev.extend(dep for dep in item.dev_dependencies if dep not in dev)
    return runtime, [dep for dep in dev if dep not in runtime]


def install_command(manager: str, packages: list[str], dev: bool = False) -> list[str]:
    """Build the argv that adds packages with a package manager."""
    command = list(ADD_COMMANDS[manager])
    if dev:
        command.append(DEV_FLAGS[manager])
    return command + packages


def install_dependencies(manager: str, packages: list[str], project_dir: Path) -> None:
    """
    Install runtime packages.

    Raises:
        subprocess.CalledProcessError: If the package manager exits non-zero
        FileNotFoundError: If the package manager executable is missing
    """
    if not packages:
        return
    logger.debug(f"Installing {len(packages)} package(s) with {manager}")
    subprocess.run(install_command(manager, packages), cwd=project_dir, capture_output=True, check=True)


def install_dev_dependencies(manager: str, packages: list[str], project_dir: Path) -> None:
    """Install dev packages (same failure behaviour as install_dependencies())."""
    if not packages:
        return
    logger.debug(f"Installing {len(packages)} dev package(s) with {manager}")
    subprocess.run(install_command(manager, packages, dev=True), cwd=project_dir, capture_output=True, check=True)
