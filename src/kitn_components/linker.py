"""Tool wiring - Link and unlink tools in agent source files.

Agent files are edited as text, without a TypeScript parser: find the
`tools: { ... }` literal, splice an entry in or out, and keep the import
lines in step. Structural edits go through a ToolsBlockEditor; the regex
editor here is the default.

If the tools block cannot be found, nothing is edited and the result
carries manual instructions instead.
"""

import re
from dataclasses import dataclass

from .protocols import ToolsBlockEditor

_SINGLE_BLOCK = re.compile(r"^([ \t]*)tools\s*:\s*\{([^}]*)\}", re.MULTILINE)
_BLOCK_START = re.compile(r"^([ \t]*)tools\s*:\s*\{", re.MULTILINE)
_IMPORT_START = re.compile(r"^import\b")
_NAMED_IMPORT = re.compile(r"""^import\s*\{([^}]+)\}\s*from\s*["'](.+?)["']\s*;?\s*$""")
_FROM_SPECIFIER = re.compile(r"""from\s*["'](.+?)["']""")


@dataclass(frozen=True)
class ToolRef:
    """A tool export and the path an agent imports it from."""

    export_name: str
    import_path: str


@dataclass(frozen=True)
class LinkResult:
    """Outcome of a link/unlink: new content, whether it changed, or why it could not."""

    content: str
    changed: bool
    error: str | None = None


@dataclass(frozen=True)
class ToolsBlock:
    """Location of a `tools: { ... }` literal.

    start/end: slice of the content covering "tools: { ... }"
    inner: text between the braces
    indent: leading whitespace of the "tools:" line
    """

    start: int
    end: int
    inner: str
    indent: str

    @property
    def multiline(self) -> bool:
        return "\n" in self.inner


def _replace_block(content: str, block: ToolsBlock, replacement: str) -> str:
    return content[: block.start + len(block.indent)] + replacement + content[block.end :]


def _entry_key(entry: str) -> str:
    return entry.partition(":")[0].strip()


def _split_entries(inner: str) -> list[tuple[int, int]]:
    """Spans of the top-level comma-separated entries of an object body.

    Commas nested in brackets or string literals do not split.
    """
    spans = []
    depth = 0
    quote: str | None = None
    start = 0
    for index, char in enumerate(inner):
        if quote:
            if char == quote and inner[index - 1] != "\\":
                quote = None
        elif char in "\"'`":
            quote = char
        elif char in "{([":
            depth += 1
        elif char in "})]":
            depth -= 1
        elif char == "," and depth == 0:
            spans.append((start, index))
            start = index + 1
    spans.append((start, len(inner)))
    return spans


class RegexToolsBlockEditor:
    """ToolsBlockEditor based on regular expressions and a brace scan."""

    def locate_block(self, content: str) -> ToolsBlock | None:
        match = _SINGLE_BLOCK.search(content)
        if match and "{" not in match.group(2):
            return ToolsBlock(start=match.start(), end=match.end(), inner=match.group(2), indent=match.group(1))

        match = _BLOCK_START.search(content)
        if not match:
            return None

        # Nested braces: scan to the matching close brace
        depth = 1
        index = match.end()
        while index < len(content) and depth > 0:
            if content[index] == "{":
                depth += 1
            elif content[index] == "}":
                depth -= 1
            index += 1
        if depth != 0:
            return None
        return ToolsBlock(start=match.start(), end=index, inner=content[match.end() : index - 1], indent=match.group(1))

    def insert_entry(self, content: str, entry: str) -> str | None:
        block = self.locate_block(content)
        if block is None:
            return None

        trimmed = block.inner.strip()
        if not trimmed:
            replacement = f"tools: {{ {entry} }}"
        elif not block.multiline:
            existing = re.sub(r",?\s*$", "", trimmed)
            replacement = f"tools: {{ {existing}, {entry} }}"
        else:
            existing = block.inner.rstrip().lstrip("\r\n")
            if not existing.endswith(","):
                existing += ","
            replacement = f"tools: {{\n{existing}\n{block.indent}  {entry},\n{block.indent}}}"

        return _replace_block(content, block, replacement)

    def remove_entry(self, content: str, key: str) -> str | None:
        block = self.locate_block(content)
        if block is None:
            return None

        inner = block.inner
        spans = [span for span in _split_entries(inner) if inner[span[0] : span[1]].strip()]
        target = next((span for span in spans if _entry_key(inner[span[0] : span[1]]) == key), None)
        if target is None:
            return None

        if not block.multiline:
            remaining = [inner[start:end].strip() for start, end in spans if (start, end) != target]
            body = f" {', '.join(remaining)} " if remaining else ""
            return _replace_block(content, block, f"tools: {{{body}}}")

        # Drop the whole entry span with its separator and, when it sits on its own lines, those lines
        text = inner[target[0] : target[1]]
        lead = target[0] + len(text) - len(text.lstrip())
        tail = lead + len(text.strip())
        cut_start = inner.rfind("\n", 0, lead) + 1
        cut_end = tail
        if cut_end < len(inner) and inner[cut_end] == ",":
            cut_end += 1
        while cut_end < len(inner) and inner[cut_end] in " \t":
            cut_end += 1
        if cut_start >= target[0] and cut_end < len(inner) and inner[cut_end] == "\n":
            cut_end += 1
        else:
            cut_start = lead

        remaining = inner[:cut_start] + inner[cut_end:]
        if not remaining.strip():
            return _replace_block(content, block, "tools: {}")
        return _replace_block(content, block, f"tools: {{{remaining}}}")


DEFAULT_EDITOR = RegexToolsBlockEditor()


def has_tool_entry(content: str, key: str, editor: ToolsBlockEditor = DEFAULT_EDITOR) -> bool:
    """Check whether the tools block already has an entry with this key."""
    block = editor.locate_block(content)
    if block is None:
        return False
    return any(_entry_key(block.inner[start:end]) == key for start, end in _split_entries(block.inner))


def _import_statements(lines: list[str]) -> list[tuple[int, int]]:
    """(first, last) line index of every top-level import statement."""
    spans = []
    index = 0
    while index < len(lines):
        line = lines[index]
        if _IMPORT_START.match(line):
            last = index
            if "{" in line and "}" not in line:
                while last + 1 < len(lines) and "}" not in lines[last]:
                    last += 1
            spans.append((index, last))
            index = last + 1
        else:
            index += 1
    return spans


def _insert_import(content: str, import_line: str) -> str:
    lines = content.split("\n")
    if any(line.strip() == import_line for line in lines):
        return content
    spans = _import_statements(lines)
    if not spans:
        return f"{import_line}\n{content}"
    lines.insert(spans[-1][1] + 1, import_line)
    return "\n".join(lines)


def is_export_name_referenced(content: str, export_name: str) -> bool:
    """True if export_name appears as a word anywhere outside import statements."""
    lines = content.split("\n")
    import_lines = {index for first, last in _import_statements(lines) for index in range(first, last + 1)}
    word = re.compile(rf"\b{re.escape(export_name)}\b")
    return any(word.search(line) for index, line in enumerate(lines) if index not in import_lines)


def _format_import(names: list[str], import_path: str) -> list[str]:
    if len(names) <= 2:
        return [f'import {{ {", ".join(names)} }} from "{import_path}";']
    body = [f"  {name}," for name in names]
    body[-1] = body[-1].rstrip(",")
    return ["import {", *body, f'}} from "{import_path}";']


def remove_import(content: str, export_name: str, import_path: str) -> str:
    """
    Remove export_name from named imports of import_path.

    Handles single-line and multi-line import statements; an import left
    with no names is dropped entirely, along with a blank line that would
    otherwise double up.
    """
    lines = content.split("\n")
    result: list[str] = []
    index = 0

    while index < len(lines):
        line = lines[index]
        last = index
        statement: str | None = None

        match = _NAMED_IMPORT.match(line)
        if match and match.group(2) == import_path:
            statement = line
        elif re.match(r"^import\s*\{", line) and "}" not in line:
            while last + 1 < len(lines) and "}" not in lines[last]:
                last += 1
            joined = "\n".join(lines[index : last + 1])
            source = _FROM_SPECIFIER.search(joined)
            if source and source.group(1) == import_path:
                statement = joined

        if statement is None:
            result.append(line)
            index += 1
            continue

        names_match = re.search(r"\{([^}]+)\}", statement)
        names = [name.strip() for name in names_match.group(1).split(",") if name.strip()] if names_match else []
        remaining = [name for name in names if name != export_name]

        if remaining:
            result.extend(_format_import(remaining, import_path))
        elif last + 1 < len(lines) and not lines[last + 1].strip() and (not result or not result[-1].strip()):
            last += 1
        index = last + 1

    return "\n".join(result)


def link_tool_to_agent(
    content: str,
    tool: ToolRef,
    tool_key: str | None = None,
    editor: ToolsBlockEditor = DEFAULT_EDITOR,
) -> LinkResult:
    """
    Link a tool into an agent file: import it and add it to `tools: { ... }`.

    Idempotent: if the key is already in the tools block nothing changes.

    Args:
        content: Agent source
        tool: Tool export and import path
        tool_key: Key in the tools object (defaults to the export name)
        editor: Structural editor for the tools block

    Returns:
        LinkResult; on failure content is unchanged and error holds manual steps

    Example:
        >>> result = link_tool_to_agent(source, ToolRef("weatherTool", "../tools/weather.js"))
        >>> "tools: { weatherTool }" in result.content
        True
    """
    key = tool_key or tool.export_name
    entry = key if key == tool.export_name else f"{key}: {tool.export_name}"
    import_line = f'import {{ {tool.export_name} }} from "{tool.import_path}";'

    if has_tool_entry(content, key, editor):
        return LinkResult(content=content, changed=False)

    updated = editor.insert_entry(_insert_import(content, import_line), entry)
    if updated is None:
        return LinkResult(
            content=content,
            changed=False,
            error=(
                "Could not auto-modify the agent file. Add manually:\n"
                f"  1. Import: {import_line}\n"
                f"  2. Add to tools: {{ {entry} }}"
            ),
        )
    return LinkResult(content=updated, changed=True)


def unlink_tool_from_agent(
    content: str,
    tool: ToolRef,
    tool_key: str | None = None,
    editor: ToolsBlockEditor = DEFAULT_EDITOR,
) -> LinkResult:
    """
    Unlink a tool from an agent file.

    Removes the entry from the tools block (collapsing it to `tools: {}` when
    it empties), then drops the import if the export is no longer used.

    Args:
        content: Agent source
        tool: Tool export and import path
        tool_key: Key in the tools object (defaults to the export name)
        editor: Structural editor for the tools block

    Returns:
        LinkResult; unchanged when the tool was not linked
    """
    key = tool_key or tool.export_name
    entry = key if key == tool.export_name else f"{key}: {tool.export_name}"
    manual = (
        "Could not auto-modify the agent file. Remove manually:\n"
        f"  1. Remove from tools: {entry}\n"
        f'  2. Remove import if unused: import {{ {tool.export_name} }} from "{tool.import_path}";'
    )

    if editor.locate_block(content) is None:
        return LinkResult(content=content, changed=False, error=manual)
    if not has_tool_entry(content, key, editor):
        return LinkResult(content=content, changed=False)

    updated = editor.remove_entry(content, key)
    if updated is None:
        return LinkResult(content=content, changed=False, error=manual)

    if not is_export_name_referenced(updated, tool.export_name):
        updated = remove_import(updated, tool.export_name, tool.import_path)
    return LinkResult(content=updated, changed=True)
