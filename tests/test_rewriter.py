"""Tests for self-referential import rewriting."""

from kitn_components import Aliases
from kitn_components import ComponentType
from kitn_components import rewrite_kitn_imports


def test_agent_importing_tool():
    """Test the canonical agent -> tool rewrite."""
    source = 'import { weatherTool } from "@kitn/tools/weather.js";\n'

    result = rewrite_kitn_imports(source, ComponentType.AGENT, "weather-agent.ts", Aliases())

    assert result == 'import { weatherTool } from "../tools/weather.js";\n'


def test_same_directory_import():
    """Test imports within one type directory start with ./"""
    source = "import { helper } from '@kitn/tools/helper.js';"

    result = rewrite_kitn_imports(source, ComponentType.TOOL, "weather.ts", Aliases())

    assert result == "import { helper } from './helper.js';"


def test_other_kitn_packages_untouched():
    """Test @kitn/core and unknown directories are left alone."""
    source = (
        'import { registerAgent } from "@kitn/core";\n'
        'import { x } from "@kitn/server/index.js";\n'
        'import { y } from "@kitn/routes/hono.js";\n'
    )

    assert rewrite_kitn_imports(source, ComponentType.AGENT, "a.ts", Aliases()) == source


def test_multiline_import_and_export():
    """Test closing lines of multi-line imports and re-exports."""
    source = 'import {\n  a,\n  b,\n} from "@kitn/storage/memory.js";\nexport { c } from "@kitn/skills/s.js";\n'

    result = rewrite_kitn_imports(source, ComponentType.TOOL, "t.ts", Aliases())

    assert '} from "../storage/memory.js";' in result
    assert 'export { c } from "../skills/s.js";' in result


def test_custom_aliases():
    """Test targets follow the configured alias directories."""
    aliases = Aliases(agents="lib/agents", tools="src/shared/tools")
    source = 'import { w } from "@kitn/tools/weather.js";'

    result = rewrite_kitn_imports(source, ComponentType.AGENT, "a.ts", aliases)

    assert result == 'import { w } from "../../src/shared/tools/weather.js";'


def test_namespaced_source_one_level_deeper():
    """Test third-party files install into a namespace subdirectory."""
    source = 'import { w } from "@kitn/tools/weather.js";'

    result = rewrite_kitn_imports(source, ComponentType.AGENT, "a.ts", Aliases(), "@acme")

    assert result == 'import { w } from "../../tools/weather.js";'


def test_packages_unchanged():
    """Test package files keep their imports."""
    source = 'import { w } from "@kitn/tools/weather.js";'

    assert rewrite_kitn_imports(source, ComponentType.PACKAGE, "index.ts", Aliases()) == source
