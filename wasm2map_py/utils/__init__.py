"""
Utility functions.
"""

from .string_utils import escape_json, join_source_path, normalize_path, strip_library_root

__all__ = ['escape_json', 'join_source_path', 'normalize_path', 'strip_library_root']
