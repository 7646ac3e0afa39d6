"""Tests for file status checks and materialization."""

from pathlib import Path

from kitn_components import FileStatus
from kitn_components import check_file_status
from kitn_components import generate_diff
from kitn_components import materialize
from kitn_components.files import plan_file
from kitn_components.files import read_existing_file


def test_check_file_status(tmp_path: Path):
    """Test NEW, IDENTICAL and DIFFERENT."""
    target = tmp_path / "weather.ts"

    assert check_file_status(target, "a") == FileStatus.NEW

    target.write_text("a")
    assert check_file_status(target, "a") == FileStatus.IDENTICAL
    assert check_file_status(target, "b") == FileStatus.DIFFERENT


def test_read_existing_file_missing(tmp_path: Path):
    """Test missing files read as None."""
    assert read_existing_file(tmp_path / "nope.ts") is None


def test_generate_diff_labels():
    """Test diff headers mark local and registry sides."""
    diff = generate_diff("src/ai/tools/weather.ts", "const a = 1;\n", "const a = 2;\n")

    assert "--- src/ai/tools/weather.ts (local)" in diff
    assert "+++ src/ai/tools/weather.ts (registry)" in diff
    assert "-const a = 1;" in diff
    assert "+const a = 2;" in diff


def test_materialize_creates_missing_directories(tmp_path: Path, prompter):
    """Test new files are written with parent directories."""
    target = tmp_path / "src" / "ai" / "tools" / "weather.ts"

    result = materialize([plan_file(target, "src/ai/tools/weather.ts", "x")], prompter)

    assert target.read_text() == "x"
    assert result.created == ["src/ai/tools/weather.ts"]
    assert result.written == 1


def test_identical_file_skipped_without_prompt(tmp_path: Path, prompter):
    """Test identical files are skipped silently."""
    target = tmp_path / "weather.ts"
    target.write_text("x")

    result = materialize([plan_file(target, "weather.ts", "x")], prompter)

    assert result.skipped == ["weather.ts"]
    assert prompter.overwrite_questions == []


def test_modified_file_kept_when_declined(tmp_path: Path, prompter):
    """Test declining keeps the local edit."""
    target = tmp_path / "weather.ts"
    target.write_text("local edit")

    result = materialize([plan_file(target, "weather.ts", "registry")], prompter)

    assert target.read_text() == "local edit"
    assert result.skipped == ["weather.ts"]
    assert prompter.overwrite_questions == ["weather.ts"]


def test_modified_file_overwritten_when_confirmed(tmp_path: Path, prompter):
    """Test confirming replaces the file."""
    target = tmp_path / "weather.ts"
    target.write_text("local edit")
    prompter.overwrite = True

    result = materialize([plan_file(target, "weather.ts", "registry")], prompter)

    assert target.read_text() == "registry"
    assert result.updated == ["weather.ts"]


def test_overwrite_flag_skips_prompt(tmp_path: Path, prompter):
    """Test overwrite=True never asks."""
    target = tmp_path / "weather.ts"
    target.write_text("local edit")

    result = materialize([plan_file(target, "weather.ts", "registry")], prompter, overwrite=True)

    assert target.read_text() == "registry"
    assert result.updated == ["weather.ts"]
    assert prompter.overwrite_questions == []


def test_decisions_are_per_file(tmp_path: Path, prompter):
    """Test keeping one file does not stop its siblings."""
    modified = tmp_path / "a.ts"
    modified.write_text("local")
    ops = [
        plan_file(modified, "a.ts", "registry"),
        plan_file(tmp_path / "b.ts", "b.ts", "new"),
    ]

    result = materialize(ops, prompter)

    assert result.skipped == ["a.ts"]
    assert result.created == ["b.ts"]
