"""File materialization - Diff component files against the project and write them.

Each file is decided on its own: a "keep local" answer for one file never
affects its siblings. Writes are sequential so every status check sees the
current disk state.
"""

import difflib
import logging
from dataclasses import dataclass
from dataclasses import field
from enum import StrEnum
from pathlib import Path

from .protocols import Prompter

logger = logging.getLogger(__name__)


class FileStatus(StrEnum):
    """Status of a target file relative to the content about to be written."""

    NEW = "new"
    IDENTICAL = "identical"
    DIFFERENT = "different"


@dataclass(frozen=True)
class FileOp:
    """One planned file write.

    target_path: absolute path on disk
    display_path: project-relative POSIX path used in messages and the ledger
    """

    target_path: Path
    display_path: str
    new_content: str
    status: FileStatus


@dataclass
class MaterializeResult:
    """Project-relative paths by outcome."""

    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def extend(self, other: "MaterializeResult") -> None:
        self.created.extend(other.created)
        self.updated.extend(other.updated)
        self.skipped.extend(other.skipped)

    @property
    def written(self) -> int:
        return len(self.created) + len(self.updated)


def read_existing_file(path: Path) -> str | None:
    """Read a text file, or return None if it does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def check_file_status(path: Path, new_content: str) -> FileStatus:
    """
    Compare a target file against new content.

    Args:
        path: Target file
        new_content: Content that would be written

    Returns:
        NEW if the file is absent, IDENTICAL if byte-equal, DIFFERENT otherwise
    """
    existing = read_existing_file(path)
    if existing is None:
        return FileStatus.NEW
    return FileStatus.IDENTICAL if existing == new_content else FileStatus.DIFFERENT


def plan_file(target_path: Path, display_path: str, new_content: str) -> FileOp:
    """Build a FileOp with its current status."""
    return FileOp(
        target_path=target_path,
        display_path=display_path,
        new_content=new_content,
        status=check_file_status(target_path, new_content),
    )


def write_component_file(path: Path, content: str) -> None:
    """Write a file, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def generate_diff(display_path: str, old_content: str, new_content: str) -> str:
    """Unified diff from the local file to the registry version."""
    return "".join(
        difflib.unified_diff(
            old_content.splitlines(keepends=True),
            new_content.splitlines(keepends=True),
            fromfile=f"{display_path} (local)",
            tofile=f"{display_path} (registry)",
        )
    )


def materialize(ops: list[FileOp], prompter: Prompter, overwrite: bool = False) -> MaterializeResult:
    """
    Apply planned file writes under the overwrite policy.

    - NEW: written immediately
    - IDENTICAL: skipped, already current
    - DIFFERENT: written if overwrite is set, otherwise the prompter is shown
      a diff and decides; declining keeps the local file

    Args:
        ops: Planned writes (status computed at planning time)
        prompter: Decision maker for modified files
        overwrite: Overwrite modified files without asking

    Returns:
        Paths grouped by outcome
    """
    result = MaterializeResult()

    for op in ops:
        # Re-check: an earlier op in this run may have touched the same tree
        status = check_file_status(op.target_path, op.new_content)

        if status == FileStatus.NEW:
            write_component_file(op.target_path, op.new_content)
            result.created.append(op.display_path)
            continue

        if status == FileStatus.IDENTICAL:
            logger.debug(f"Skipping {op.display_path}: already current")
            result.skipped.append(op.display_path)
            continue

        if not overwrite:
            existing = read_existing_file(op.target_path) or ""
            diff = generate_diff(op.display_path, existing, op.new_content)
            if not prompter.confirm_overwrite(op.display_path, diff):
                logger.debug(f"Keeping local version of {op.display_path}")
                result.skipped.append(op.display_path)
                continue

        write_component_file(op.target_path, op.new_content)
        result.updated.append(op.display_path)

    return result
