"""
DWARF access for WebAssembly modules.
"""

from .relocate import RelocationMap, resolve_relocations
from .reader import DwarfReader, FileEntry

__all__ = ['RelocationMap', 'resolve_relocations', 'DwarfReader', 'FileEntry']
