"""Tests for external package installation."""

import subprocess
from pathlib import Path

import pytest
from conftest import component
from kitn_components import ComponentItem
from kitn_components.deps import collect_dependencies
from kitn_components.deps import detect_package_manager
from kitn_components.deps import install_command
from kitn_components.deps import install_dependencies
from kitn_components.deps import install_dev_dependencies


@pytest.mark.parametrize(
    ("lockfile", "manager"),
    [
        ("bun.lock", "bun"),
        ("bun.lockb", "bun"),
        ("pnpm-lock.yaml", "pnpm"),
        ("yarn.lock", "yarn"),
        ("package-lock.json", "npm"),
    ],
)
def test_detect_package_manager(tmp_path: Path, lockfile, manager):
    """Test detection from each lockfile."""
    (tmp_path / lockfile).write_text("")

    assert detect_package_manager(tmp_path) == manager


def test_detect_prefers_bun(tmp_path: Path):
    """Test lockfile precedence when several exist."""
    (tmp_path / "package-lock.json").write_text("")
    (tmp_path / "bun.lock").write_text("")

    assert detect_package_manager(tmp_path) == "bun"


def test_detect_without_lockfile(tmp_path: Path):
    """Test projects without a lockfile."""
    assert detect_package_manager(tmp_path) is None


def test_install_command():
    """Test argv per manager."""
    assert install_command("npm", ["zod"]) == ["npm", "install", "zod"]
    assert install_command("bun", ["zod"], dev=True) == ["bun", "add", "-d", "zod"]
    assert install_command("pnpm", ["a", "b"], dev=True) == ["pnpm", "add", "-D", "a", "b"]


def test_collect_dependencies_dedupes():
    """Test first-seen order and dev packages already needed at runtime dropped."""
    items = [
        ComponentItem.model_validate(component("a", dependencies=["zod", "ai"], devDependencies=["vitest"])),
        ComponentItem.model_validate(component("b", dependencies=["zod", "vitest"], devDependencies=["tsx"])),
    ]

    runtime, dev = collect_dependencies(items)

    assert runtime == ["zod", "ai", "vitest"]
    assert dev == ["tsx"]


def test_install_dependencies_runs_manager(tmp_path: Path, monkeypatch):
    """Test the package manager is invoked in the project directory."""
    calls = []

    def fake_run(command, **kwargs):
        calls.append((command, kwargs["cwd"]))
        return subprocess.CompletedProcess(command, 0)

    monkeypatch.setattr(subprocess, "run", fake_run)

    install_dependencies("yarn", ["zod"], tmp_path)
    install_dev_dependencies("yarn", ["tsx"], tmp_path)
    install_dependencies("yarn", [], tmp_path)

    assert calls == [(["yarn", "add", "zod"], tmp_path), (["yarn", "add", "-D", "tsx"], tmp_path)]
