"""Small shared helpers: content hashing and path arithmetic."""

import hashlib
import posixpath

HASH_LENGTH = 8


def content_hash(content: str) -> str:
    """Short SHA-256 hex digest of text content.

    Example:
        >>> len(content_hash("export const x = 1;"))
        8
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def hash_files(contents: list[str]) -> str:
    """Hash of several files, joined with newlines in install order."""
    return content_hash("\n".join(contents))


def relative_import_path(from_dir: str, to_file: str) -> str:
    """POSIX relative specifier from a directory to a file, always starting with "./" or "../"."""
    rel = posixpath.relpath(to_file, from_dir)
    return rel if rel.startswith("../") else f"./{rel}"