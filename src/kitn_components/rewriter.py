"""Import rewriting - Point "@kitn/<type>/<path>" imports at installed files.

Registry sources import each other through the self-referential specifier
"@kitn/tools/weather.js". Once installed, that specifier has to become a
relative path from the importing file's directory to wherever the project's
aliases put the target type.

Only "from"/"import" specifiers naming a known type directory are touched;
"@kitn/core", "@kitn/server" and every other import stay byte-for-byte.
"""

import posixpath
import re

from .config import DEFAULT_NAMESPACE
from .config import Aliases
from .config import alias_dir
from .schema import ComponentType
from .utils import relative_import_path

# Type directory in "@kitn/<dir>/..." -> component type owning that directory
KNOWN_TYPE_DIRS: dict[str, ComponentType] = {
    "agents": ComponentType.AGENT,
    "tools": ComponentType.TOOL,
    "skills": ComponentType.SKILL,
    "storage": ComponentType.STORAGE,
    "crons": ComponentType.CRON,
}

# Covers `import x from "..."`, `export { x } from "..."`, the closing line of a
# multi-line import (`} from "..."`) and side-effect imports (`import "..."`)
KITN_SPECIFIER = re.compile(r"""(\b(?:from|import)\s*["'])@kitn/([\w-]+)/([^"']+)(["'])""")


def rewrite_kitn_imports(
    content: str,
    component_type: ComponentType,
    file_name: str,
    aliases: Aliases,
    namespace: str | None = None,
) -> str:
    """
    Rewrite self-referential imports in a component file.

    Args:
        content: Raw file content from the registry
        component_type: Type of the component the file belongs to
        file_name: Base name of the file (used only to locate its directory)
        aliases: Project alias configuration
        namespace: Registry namespace; third-party files live one directory deeper

    Returns:
        Content with "@kitn/<type>/<path>" specifiers made relative

    Example:
        >>> rewrite_kitn_imports('import { w } from "@kitn/tools/weather.js";', ComponentType.AGENT,
        ...                      "weather-agent.ts", Aliases())
        'import { w } from "../tools/weather.js";'
    """
    if component_type == ComponentType.PACKAGE:
        return content

    source_dir = alias_dir(aliases, component_type)
    if namespace and namespace != DEFAULT_NAMESPACE:
        source_dir = posixpath.join(source_dir, namespace.removeprefix("@"))
    source_dir = posixpath.dirname(posixpath.join(source_dir, file_name))

    def replace(match: re.Match) -> str:
        prefix, type_dir, target_path, quote = match.groups()
        target_type = KNOWN_TYPE_DIRS.get(type_dir)
        if target_type is None:
            return match.group(0)
        target_file = posixpath.join(alias_dir(aliases, target_type), target_path)
        return f"{prefix}{relative_import_path(source_dir, target_file)}{quote}"

    return KITN_SPECIFIER.sub(replace, content)
