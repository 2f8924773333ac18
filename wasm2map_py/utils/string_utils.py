"""
String utility functions.
"""

import posixpath
import re
from typing import Optional

# Escape sequences for the characters JSON does not allow verbatim
_JSON_SHORT_ESCAPES = {
    '"': '\\"',
    '\\': '\\\\',
    '\b': '\\b',
    '\t': '\\t',
    '\n': '\\n',
    '\f': '\\f',
    '\r': '\\r',
}

_JSON_ESCAPE_RE = re.compile(r'["\\\x00-\x1f]')

# "C:/..." style drive prefix
_DRIVE_RE = re.compile(r'^[A-Za-z]:/')

_LEADING_SLASHES_RE = re.compile(r'^/{2,}')

# "name:" prefix naming a library root, e.g. "std:src/lib.rs"
_LIBRARY_ROOT_RE = re.compile(r'^[A-Za-z0-9_.+-]{2,}:(?!//)')


def _escape_char(match: 're.Match[str]') -> str:
    char = match.group(0)
    escaped = _JSON_SHORT_ESCAPES.get(char)
    if escaped is None:
        escaped = f'\\u{ord(char):04x}'
    return escaped


def escape_json(s: str) -> str:
    """
    Escape a string for inclusion between double quotes in JSON output.

    Control characters get their short form (\\b \\t \\n \\f \\r) or a
    \\u00XX escape; quote and backslash are backslash-escaped. Everything
    else, including non-ASCII text, passes through unchanged.

    Args:
        s: Input string

    Returns:
        Escaped string
    """
    return _JSON_ESCAPE_RE.sub(_escape_char, s)


def is_absolute_path(path: str) -> bool:
    """Check for a POSIX root or a drive prefix, after slash normalization."""
    path = path.replace('\\', '/')
    return path.startswith('/') or bool(_DRIVE_RE.match(path))


def normalize_path(path: str) -> str:
    """
    Normalize a source path.

    Backslashes become forward slashes and ``.``/``..`` components are
    collapsed without touching the file system.
    """
    path = path.replace('\\', '/')
    if not path:
        return path
    # normpath keeps a leading "//", which only happens here by joining
    return _LEADING_SLASHES_RE.sub('/', posixpath.normpath(path))


def join_source_path(
    name: str,
    directory: Optional[str] = None,
    comp_dir: Optional[str] = None
) -> str:
    """
    Build the path of a line program file entry.

    The compilation directory is prepended only when the declared directory
    is relative, and neither is used for an absolute file name.
    """
    if is_absolute_path(name):
        return normalize_path(name)

    parts = []
    if comp_dir and not (directory and is_absolute_path(directory)):
        parts.append(comp_dir)
    if directory:
        parts.append(directory)
    parts.append(name)
    return normalize_path('/'.join(parts))


def strip_library_root(path: str) -> str:
    """Remove a ``name:`` library-root prefix; drive letters and URLs are kept."""
    return _LIBRARY_ROOT_RE.sub('', path, count=1)
