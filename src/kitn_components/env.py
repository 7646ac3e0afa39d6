"""Environment variable bookkeeping for installed components.

Components declare the variables they read at runtime. After an install,
.env.example gains any declared key it lacks, and keys that are set neither
in .env nor in the process environment are reported back to the caller.
"""

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from .schema import ComponentItem
from .schema import EnvVarConfig

logger = logging.getLogger(__name__)

ENV_FILE = ".env"
ENV_EXAMPLE_FILE = ".env.example"


def collect_env_vars(items: Iterable[ComponentItem]) -> dict[str, EnvVarConfig]:
    """Merge declared variables across components; later components win on the same key."""
    merged: dict[str, EnvVarConfig] = {}
    for item in items:
        merged.update(item.env_vars)
    return merged


def parse_env_keys(content: str) -> set[str]:
    """Variable names defined in dotenv content (comments and blank lines ignored)."""
    keys = set()
    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, _ = stripped.partition("=")
        if sep and key.strip():
            keys.add(key.strip())
    return keys


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""


def update_env_example(project_dir: Path, env_vars: dict[str, EnvVarConfig]) -> list[str]:
    """
    Append declared variables missing from .env.example.

    Each key is written as a comment line ("# description (url)") followed
    by "KEY=". The file is created if needed and left untouched when
    nothing is missing.

    Args:
        project_dir: Project root
        env_vars: Declared variables

    Returns:
        Keys that were appended
    """
    path = project_dir / ENV_EXAMPLE_FILE
    existing = _read(path)
    present = parse_env_keys(existing)
    missing = [key for key in env_vars if key not in present]
    if not missing:
        return []

    lines = []
    if existing and not existing.endswith("\n"):
        lines.append("")
    for key in missing:
        config = env_vars[key]
        comment = f"# {config.description}"
        if config.url:
            comment += f" ({config.url})"
        lines.append(comment)
        lines.append(f"{key}=")

    path.write_text(existing + "\n".join(lines) + "\n", encoding="utf-8")
    logger.info(f"Updated {ENV_EXAMPLE_FILE} with {len(missing)} variable(s)")
    return missing


def missing_env_vars(project_dir: Path, env_vars: dict[str, EnvVarConfig]) -> list[str]:
    """Declared keys set neither in .env nor in the process environment."""
    defined = parse_env_keys(_read(project_dir / ENV_FILE))
    return [key for key in env_vars if key not in defined and key not in os.environ]
