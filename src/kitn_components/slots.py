"""Slot conflict detection.

A slot is an exclusive functional role ("storage", "memory"). Installing a
second component into an occupied slot is a decision point, not an error:
the caller either replaces the current holder or keeps both.
"""

from dataclasses import dataclass
from enum import StrEnum

from .lock import ComponentLock
from .lock import ComponentLockEntry
from .resolver import ResolvedComponent


class SlotAction(StrEnum):
    """What to do with a slot's current holder."""

    REPLACE = "replace"
    ADD = "add"


@dataclass(frozen=True)
class SlotConflict:
    """A resolved component colliding with an installed one on the same slot."""

    slot: str
    incoming: ResolvedComponent
    existing_key: str
    existing: ComponentLockEntry

    def describe(self) -> str:
        return f"{self.incoming.key} and installed {self.existing_key} both fill the '{self.slot}' slot"


def detect_slot_conflicts(resolved: list[ResolvedComponent], lock: ComponentLock) -> list[SlotConflict]:
    """
    Find installed components sharing a slot with newly resolved ones.

    Installed components that are themselves being (re)installed in this run
    never conflict, so an update of two holders kept side by side asks nothing.

    Args:
        resolved: Components about to be installed
        lock: Current ledger

    Returns:
        One conflict per (incoming, installed) pair, in resolution order
    """
    incoming_keys = {component.key for component in resolved}
    conflicts = []
    for component in resolved:
        slot = component.item.slot
        if not slot:
            continue
        for existing_key, entry in lock.find_by_slot(slot, exclude=component.key):
            if existing_key in incoming_keys:
                continue
            conflicts.append(
                SlotConflict(slot=slot, incoming=component, existing_key=existing_key, existing=entry)
            )
    return conflicts
