"""Protocols for installer collaborators.

The installer never talks to a terminal or a parser directly: apps inject a
Prompter for decision points, and text surgery on agent files goes through a
ToolsBlockEditor so a stricter backend can replace the regex one.
"""

from typing import TYPE_CHECKING
from typing import Protocol

if TYPE_CHECKING:
    from .disambiguation import Candidate
    from .linker import ToolsBlock
    from .slots import SlotAction
    from .slots import SlotConflict


class Prompter(Protocol):
    """Decision points of an install run.

    Interactive implementations block on user input. Non-interactive ones
    must decide deterministically or raise an actionable error.
    """

    def choose_component(self, requested: str, candidates: "list[Candidate]") -> "Candidate":
        """Pick one candidate for an ambiguous requested name.

        Raises:
            AmbiguousComponentError: If no choice can be made
        """
        ...

    def confirm_overwrite(self, display_path: str, diff: str) -> bool:
        """Return True to overwrite a locally modified file, False to keep it."""
        ...

    def resolve_slot_conflict(self, conflict: "SlotConflict") -> "SlotAction":
        """Decide whether a new component replaces or joins the slot's current holder."""
        ...

    def select_orphans(self, orphans: list[str]) -> list[str]:
        """Return the subset of no-longer-needed dependencies to remove."""
        ...


class ToolsBlockEditor(Protocol):
    """Structural edits on the `tools: { ... }` literal of an agent file."""

    def locate_block(self, content: str) -> "ToolsBlock | None":
        """Find the tools block, or None if the file has no recognisable one."""
        ...

    def insert_entry(self, content: str, entry: str) -> str | None:
        """Insert an entry ("key" or "key: value"); None if the block cannot be located."""
        ...

    def remove_entry(self, content: str, key: str) -> str | None:
        """Remove the entry with the given key; None if the block cannot be located."""
        ...
