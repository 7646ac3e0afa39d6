"""Component lock file management.

Tracks installed components with content hashes so later runs can tell
"already current" from "locally modified" and know which slot each
installed component occupies.

The lock path is injected by the app; passing None gives an in-memory
ledger (nothing is persisted), which is what tests use.
"""

import json
import logging
from dataclasses import dataclass
from dataclasses import field
from datetime import UTC
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class ComponentLockEntry:
    """Entry in the component lock file."""

    registry: str
    version: str
    files: list[str]
    hash: str
    installed_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    type: str | None = None
    slot: str | None = None
    registry_dependencies: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization (camelCase keys)."""
        data = {
            "registry": self.registry,
            "type": self.type,
            "slot": self.slot,
            "version": self.version,
            "installedAt": self.installed_at,
            "files": list(self.files),
            "hash": self.hash,
            "registryDependencies": list(self.registry_dependencies),
        }
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: dict) -> "ComponentLockEntry":
        """Create from dictionary."""
        return cls(
            registry=data.get("registry", "@kitn"),
            type=data.get("type"),
            slot=data.get("slot"),
            version=data.get("version", "1.0.0"),
            installed_at=data.get("installedAt", ""),
            files=list(data.get("files", [])),
            hash=data.get("hash", ""),
            registry_dependencies=list(data.get("registryDependencies", [])),
        )

    def same_content(self, other: "ComponentLockEntry") -> bool:
        """True if both entries describe the same installed content (ignores installed_at)."""
        return (
            self.hash == other.hash
            and self.version == other.version
            and self.files == other.files
            and self.slot == other.slot
            and self.registry_dependencies == other.registry_dependencies
        )


class ComponentLock:
    """
    Component lock file manager (with injected lock path).

    Lock format (JSON, keyed by installed key):
    {
      "weather-tool": {
        "registry": "@kitn",
        "type": "tool",
        "version": "1.0.0",
        "installedAt": "2025-10-26T12:00:00+00:00",
        "files": ["src/ai/tools/weather.ts"],
        "hash": "3f2a9c1e",
        "registryDependencies": []
      },
      "@acme/weather-tool": {...}
    }

    The file is deleted when the last entry is removed.
    """

    def __init__(self, lock_path: Path | None = None):
        """Initialize lock manager with app-provided lock path.

        Args:
            lock_path: Path to lock file, or None for an in-memory ledger

        Example:
            >>> lock = ComponentLock(lock_path=Path.cwd() / "kitn.lock")
        """
        self.lock_path = lock_path
        self._data: dict[str, ComponentLockEntry] = {}
        self._load()

    def _load(self) -> None:
        """Load lock file if it exists."""
        if self.lock_path is None or not self.lock_path.exists():
            self._data = {}
            return

        try:
            with open(self.lock_path, encoding="utf-8") as f:
                data = json.load(f)

            self._data = {key: ComponentLockEntry.from_dict(entry) for key, entry in data.items()}
            logger.debug(f"Loaded {len(self._data)} components from lock file")

        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to load lock file {self.lock_path}: {e}")
            self._data = {}

    def _save(self) -> None:
        """Save lock file (or delete it when empty)."""
        if self.lock_path is None:
            return

        if not self._data:
            self.lock_path.unlink(missing_ok=True)
            logger.debug("Lock file empty, removed")
            return

        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        data = {key: entry.to_dict() for key, entry in self._data.items()}
        with open(self.lock_path, "w", encoding="utf-8") as f:
            f.write(json.dumps(data, indent=2) + "\n")
        logger.debug(f"Saved lock file with {len(self._data)} components")

    def record(self, key: str, entry: ComponentLockEntry) -> None:
        """
        Add or replace the entry for an installed component.

        Args:
            key: Installed key ("name" or "@ns/name")
            entry: Lock entry to store
        """
        self._data[key] = entry
        self._save()
        logger.debug(f"Recorded {key} in lock file")

    def remove(self, key: str) -> None:
        """
        Remove a component from the lock file.

        Args:
            key: Installed key
        """
        if key in self._data:
            del self._data[key]
            self._save()
            logger.debug(f"Removed {key} from lock file")

    def get(self, key: str) -> ComponentLockEntry | None:
        """
        Get lock entry for a component.

        Args:
            key: Installed key

        Returns:
            Lock entry or None if not installed
        """
        return self._data.get(key)

    def keys(self) -> list[str]:
        """Installed keys in insertion order."""
        return list(self._data)

    def items(self) -> list[tuple[str, ComponentLockEntry]]:
        """(key, entry) pairs in insertion order."""
        return list(self._data.items())

    def list_entries(self) -> list[ComponentLockEntry]:
        """
        List all installed components.

        Returns:
            List of lock entries
        """
        return list(self._data.values())

    def is_installed(self, key: str) -> bool:
        """
        Check if a component is in the lock file.

        Args:
            key: Installed key

        Returns:
            True if component is tracked
        """
        return key in self._data

    def find_by_slot(self, slot: str, exclude: str | None = None) -> list[tuple[str, ComponentLockEntry]]:
        """
        Find installed components occupying a slot.

        Args:
            slot: Slot value (e.g. "storage")
            exclude: Installed key to ignore (the component being installed)

        Returns:
            (key, entry) pairs with a matching slot
        """
        return [(key, entry) for key, entry in self._data.items() if entry.slot == slot and key != exclude]
