"""Barrel file management - Side-effect imports of installed components.

The barrel (<base>/index.ts) is a list of `import "<path>";` lines followed
by one fixed export line. Membership is a set; order is first-add order.
All functions work on content strings; callers do the file I/O.
"""

import re

EXPORT_LINE = 'export { registerWithPlugin } from "@kitnai/core";'
BARREL_COMMENT = "// Managed by kitn CLI - components auto-imported below"
BARREL_FILE = "index.ts"
PLUGIN_FILE = "plugin.ts"

_IMPORT_LINE = re.compile(r"""^import\s+["'](.+)["'];?\s*$""")


def _import_line(import_path: str) -> str:
    return f'import "{import_path}";'


def create_barrel_file() -> str:
    """Initial barrel content."""
    return f"{BARREL_COMMENT}\n{EXPORT_LINE}\n"


def add_import_to_barrel(content: str, import_path: str) -> str:
    """
    Add a side-effect import (idempotent).

    The import goes on its own line right before the export line. Without
    an export line it is appended, so remove_import_from_barrel() always
    restores the original content.

    Args:
        content: Current barrel content
        import_path: Import specifier, e.g. "./agents/weather-agent.ts"

    Returns:
        Updated content (unchanged if the import is already present)
    """
    line = _import_line(import_path)
    lines = content.split("\n")
    if any(existing.strip() == line for existing in lines):
        return content

    for index, existing in enumerate(lines):
        if existing.strip() == EXPORT_LINE:
            lines.insert(index, line)
            return "\n".join(lines)

    if content == "":
        return f"{line}\n"
    if content.endswith("\n"):
        return f"{content}{line}\n"
    return f"{content}\n{line}"


def remove_import_from_barrel(content: str, import_path: str) -> str:
    """Remove every line importing import_path."""
    line = _import_line(import_path)
    return "\n".join(existing for existing in content.split("\n") if existing.strip() != line)


def parse_barrel_file(content: str) -> list[str]:
    """Import paths in the barrel, in file order."""
    imports = []
    for line in content.split("\n"):
        match = _IMPORT_LINE.match(line)
        if match:
            imports.append(match.group(1))
    return imports


def create_plugin_file(framework: str) -> str:
    """Starter <base>/plugin.ts: builds the AI plugin and flushes the barrel into it."""
    return f"""import {{ createAIPlugin }} from "@kitn/adapters/{framework}";
import {{ registerWithPlugin }} from "./index.js";

export const ai = createAIPlugin({{
  // To enable agent chat, add an AI provider:
  // https://sdk.vercel.ai/providers/ai-sdk-providers
  //
  // Example with OpenAI:
  //   import {{ openai }} from "@ai-sdk/openai";
  //   model: (id) => openai(id ?? "gpt-4o-mini"),
}});

// Flush all auto-registered components into the plugin
registerWithPlugin(ai);
"""
