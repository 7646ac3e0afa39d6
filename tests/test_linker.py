"""Tests for linking tools into agent files."""

from kitn_components import RegexToolsBlockEditor
from kitn_components import ToolRef
from kitn_components import link_tool_to_agent
from kitn_components import unlink_tool_from_agent
from kitn_components.linker import remove_import

WEATHER = ToolRef("weatherTool", "../tools/weather.js")
SEARCH = ToolRef("searchTool", "../tools/search.js")

AGENT_EMPTY = """import { registerAgent } from "@kitn/core";

registerAgent({
  name: "weather-agent",
  tools: {},
});
"""

AGENT_MULTILINE = """import { registerAgent } from "@kitn/core";
import { searchTool } from "../tools/search.js";

registerAgent({
  name: "weather-agent",
  tools: {
    searchTool,
  },
});
"""


def test_link_into_empty_tools():
    """Test linking adds the import and the entry."""
    result = link_tool_to_agent(AGENT_EMPTY, WEATHER)

    assert result.changed
    assert result.error is None
    assert 'import { weatherTool } from "../tools/weather.js";' in result.content
    assert "tools: { weatherTool }" in result.content


def test_import_goes_after_last_import():
    """Test the new import lands below existing imports."""
    lines = link_tool_to_agent(AGENT_EMPTY, WEATHER).content.splitlines()

    assert lines[0] == 'import { registerAgent } from "@kitn/core";'
    assert lines[1] == 'import { weatherTool } from "../tools/weather.js";'


def test_link_into_single_line_tools():
    """Test appending to an inline tools object."""
    content = AGENT_EMPTY.replace("tools: {}", "tools: { searchTool }")

    result = link_tool_to_agent(content, WEATHER)

    assert "tools: { searchTool, weatherTool }" in result.content


def test_link_into_multiline_tools():
    """Test appending to a multi-line tools object keeps its layout."""
    result = link_tool_to_agent(AGENT_MULTILINE, WEATHER)

    assert "  tools: {\n    searchTool,\n    weatherTool,\n  }," in result.content


def test_link_with_custom_key():
    """Test --as style keys."""
    result = link_tool_to_agent(AGENT_EMPTY, WEATHER, tool_key="getWeather")

    assert "tools: { getWeather: weatherTool }" in result.content


def test_link_is_idempotent():
    """Test linking twice changes nothing the second time."""
    once = link_tool_to_agent(AGENT_EMPTY, WEATHER).content
    twice = link_tool_to_agent(once, WEATHER)

    assert not twice.changed
    assert twice.content == once


def test_link_without_tools_block_reports_manual_steps():
    """Test an agent without a tools object is left untouched."""
    content = 'registerAgent({ name: "x" });\n'

    result = link_tool_to_agent(content, WEATHER)

    assert not result.changed
    assert result.content == content
    assert result.error.startswith("Could not auto-modify the agent file. Add manually:")


def test_link_then_unlink_restores_original():
    """Test unlink undoes link on an empty tools object."""
    linked = link_tool_to_agent(AGENT_EMPTY, WEATHER).content

    result = unlink_tool_from_agent(linked, WEATHER)

    assert result.changed
    assert result.content == AGENT_EMPTY


def test_unlink_from_multiline_keeps_others():
    """Test unlinking one of several multi-line entries."""
    linked = link_tool_to_agent(AGENT_MULTILINE, WEATHER).content

    result = unlink_tool_from_agent(linked, WEATHER)

    assert result.content == AGENT_MULTILINE


def test_unlink_last_multiline_entry_collapses_block():
    """Test a tools object emptied by unlink becomes tools: {}."""
    result = unlink_tool_from_agent(AGENT_MULTILINE, SEARCH)

    assert "tools: {}" in result.content
    assert "searchTool" not in result.content


def test_unlink_keeps_import_still_in_use():
    """Test the import stays when the export is used elsewhere."""
    content = AGENT_MULTILINE.replace("});\n", "});\nsearchTool.describe();\n")

    result = unlink_tool_from_agent(content, SEARCH)

    assert 'import { searchTool } from "../tools/search.js";' in result.content


def test_unlink_not_linked_is_noop():
    """Test unlinking an absent tool reports no change."""
    result = unlink_tool_from_agent(AGENT_EMPTY, WEATHER)

    assert not result.changed
    assert result.error is None


def test_unlink_without_tools_block_reports_manual_steps():
    """Test manual instructions when the block cannot be found."""
    result = unlink_tool_from_agent("export {};\n", WEATHER)

    assert result.error.startswith("Could not auto-modify the agent file. Remove manually:")


def test_remove_import_from_multiline_statement():
    """Test removing one name from a multi-line import."""
    content = 'import {\n  a,\n  b,\n  c,\n} from "./x.js";\nuse(a);\n'

    result = remove_import(content, "b", "./x.js")

    assert result == 'import { a, c } from "./x.js";\nuse(a);\n'


def test_locate_nested_block():
    """Test the editor finds a tools object containing nested braces."""
    content = "tools: {\n  a: wrap({ retries: 2 }),\n},\n"

    block = RegexToolsBlockEditor().locate_block(content)

    assert block is not None
    assert block.inner == "\n  a: wrap({ retries: 2 }),\n"


def test_unlink_multiline_entry_with_nested_braces():
    """Test an entry spanning several lines is removed as a whole."""
    content = AGENT_MULTILINE.replace(
        'import { searchTool } from "../tools/search.js";\n',
        'import { searchTool } from "../tools/search.js";\nimport { weatherTool } from "../tools/weather.js";\n',
    ).replace(
        "  tools: {\n    searchTool,",
        "  tools: {\n    weatherTool: wrap(weatherTool, {\n      retries: 2,\n    }),\n    searchTool,",
    )

    result = unlink_tool_from_agent(content, WEATHER)

    assert result.changed
    assert result.content == AGENT_MULTILINE


def test_unlink_single_line_entry_with_nested_braces():
    """Test commas inside a nested call do not split entries."""
    content = AGENT_EMPTY.replace(
        "tools: {}", "tools: { weatherTool: wrap(weatherTool, { retries: 2, strict: true }), searchTool }"
    )

    result = unlink_tool_from_agent(content, WEATHER)

    assert "tools: { searchTool }" in result.content
    assert "retries" not in result.content


def test_nested_keys_are_not_tool_entries():
    """Test a key inside a nested object is not treated as a linked tool."""
    content = AGENT_EMPTY.replace("tools: {}", "tools: { weatherTool: wrap(weatherTool, { retries: 2 }) }")

    result = unlink_tool_from_agent(content, ToolRef("retries", "../tools/retries.js"))

    assert not result.changed
    assert result.content == content
