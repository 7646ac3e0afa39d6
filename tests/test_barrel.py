"""Tests for barrel file management."""

from kitn_components import add_import_to_barrel
from kitn_components import create_barrel_file
from kitn_components import parse_barrel_file
from kitn_components import remove_import_from_barrel
from kitn_components.barrel import EXPORT_LINE


def test_create_barrel_file():
    """Test the initial barrel has the export line and no imports."""
    content = create_barrel_file()

    assert EXPORT_LINE in content
    assert parse_barrel_file(content) == []


def test_add_import_goes_before_export():
    """Test imports are inserted right above the export line."""
    content = add_import_to_barrel(create_barrel_file(), "./agents/weather-agent.ts")
    content = add_import_to_barrel(content, "./tools/weather.ts")
    lines = content.splitlines()

    assert lines.index('import "./tools/weather.ts";') == lines.index(EXPORT_LINE) - 1
    assert parse_barrel_file(content) == ["./agents/weather-agent.ts", "./tools/weather.ts"]


def test_add_import_is_idempotent():
    """Test adding the same import twice changes nothing."""
    once = add_import_to_barrel(create_barrel_file(), "./tools/weather.ts")

    assert add_import_to_barrel(once, "./tools/weather.ts") == once


def test_add_then_remove_restores_content():
    """Test remove undoes add, with and without an export line."""
    for original in (create_barrel_file(), "// custom barrel\n", "", "// no newline"):
        added = add_import_to_barrel(original, "./tools/weather.ts")

        assert remove_import_from_barrel(added, "./tools/weather.ts") == original


def test_remove_missing_import_is_noop():
    """Test removing an absent import leaves content unchanged."""
    content = add_import_to_barrel(create_barrel_file(), "./tools/weather.ts")

    assert remove_import_from_barrel(content, "./tools/other.ts") == content


def test_parse_barrel_accepts_single_quotes():
    """Test hand-edited barrels with single quotes and no semicolons."""
    content = "import './agents/a.ts'\nimport \"./tools/b.ts\";\nconst x = 1;\n"

    assert parse_barrel_file(content) == ["./agents/a.ts", "./tools/b.ts"]
