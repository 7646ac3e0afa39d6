"""Prompter implementations for the CLI.

ClickPrompter asks on the terminal. NonInteractivePrompter never blocks:
it picks the option that preserves local state, or raises when there is no
safe default.
"""

import logging

import click

from .disambiguation import Candidate
from .exceptions import AmbiguousComponentError
from .slots import SlotAction
from .slots import SlotConflict

logger = logging.getLogger(__name__)


class ClickPrompter:
    """Prompter that asks the user through click."""

    def choose_component(self, requested: str, candidates: list[Candidate]) -> Candidate:
        click.echo(f"Multiple components match '{requested}':")
        for number, candidate in enumerate(candidates, start=1):
            description = f" - {candidate.description}" if candidate.description else ""
            click.echo(f"  {number}. {candidate.label()}{description}")
        choice = click.prompt(
            "Select a component",
            type=click.IntRange(1, len(candidates)),
            default=1,
        )
        return candidates[choice - 1]

    def confirm_overwrite(self, display_path: str, diff: str) -> bool:
        click.secho(f"{display_path} differs from the registry version:", fg="yellow")
        click.echo(diff)
        return click.confirm(f"Overwrite {display_path}?", default=False)

    def resolve_slot_conflict(self, conflict: SlotConflict) -> SlotAction:
        click.secho(conflict.describe(), fg="yellow")
        answer = click.prompt(
            f"Replace {conflict.existing_key} or keep both?",
            type=click.Choice([action.value for action in SlotAction]),
            default=SlotAction.REPLACE.value,
        )
        return SlotAction(answer)

    def select_orphans(self, orphans: list[str]) -> list[str]:
        click.echo("These dependencies are no longer needed by any installed component:")
        return [name for name in orphans if click.confirm(f"  Remove {name}?", default=True)]


class NonInteractivePrompter:
    """Prompter for --no-input runs and CI."""

    def choose_component(self, requested: str, candidates: list[Candidate]) -> Candidate:
        labels = ", ".join(candidate.label() for candidate in candidates)
        raise AmbiguousComponentError(
            f"'{requested}' matches multiple components: {labels}. Use a namespace or --type to pick one.",
            candidates=[candidate.label() for candidate in candidates],
        )

    def confirm_overwrite(self, display_path: str, diff: str) -> bool:
        logger.debug(f"Keeping local {display_path} (non-interactive)")
        return False

    def resolve_slot_conflict(self, conflict: SlotConflict) -> SlotAction:
        logger.warning(f"{conflict.describe()}; keeping both")
        return SlotAction.ADD

    def select_orphans(self, orphans: list[str]) -> list[str]:
        return []
