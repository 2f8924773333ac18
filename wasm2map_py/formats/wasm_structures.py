"""
WebAssembly format structure definitions.

Covers the module sections plus the ``linking`` and ``reloc.*`` custom
sections defined by the WebAssembly tool conventions for object files.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional


# WebAssembly Magic and version
WASM_MAGIC = 0x6D736100  # "\0asm"
WASM_VERSION = 1

# Version of the "linking" custom section understood here
WASM_LINKING_VERSION = 2

# Name of the custom section referencing the source map
SOURCE_MAPPING_URL = "sourceMappingURL"


class WasmSectionId(IntEnum):
    """WebAssembly section IDs."""
    CUSTOM = 0
    TYPE = 1
    IMPORT = 2
    FUNCTION = 3
    TABLE = 4
    MEMORY = 5
    GLOBAL = 6
    EXPORT = 7
    START = 8
    ELEMENT = 9
    CODE = 10
    DATA = 11
    DATA_COUNT = 12
    TAG = 13


class WasmExternalKind(IntEnum):
    """Import/export descriptor kinds."""
    FUNCTION = 0
    TABLE = 1
    MEMORY = 2
    GLOBAL = 3
    TAG = 4


class WasmLinkingSubsection(IntEnum):
    """Subsection types of the "linking" custom section."""
    SEGMENT_INFO = 5
    INIT_FUNCS = 6
    COMDAT_INFO = 7
    SYMBOL_TABLE = 8


class WasmSymbolKind(IntEnum):
    """Symbol kinds in the linking symbol table."""
    FUNCTION = 0
    DATA = 1
    GLOBAL = 2
    SECTION = 3
    TAG = 4
    TABLE = 5


# Symbol flags
WASM_SYM_UNDEFINED = 0x10
WASM_SYM_EXPLICIT_NAME = 0x40


class WasmRelocationType(IntEnum):
    """R_WASM_* relocation types."""
    FUNCTION_INDEX_LEB = 0
    TABLE_INDEX_SLEB = 1
    TABLE_INDEX_I32 = 2
    MEMORY_ADDR_LEB = 3
    MEMORY_ADDR_SLEB = 4
    MEMORY_ADDR_I32 = 5
    TYPE_INDEX_LEB = 6
    GLOBAL_INDEX_LEB = 7
    FUNCTION_OFFSET_I32 = 8
    SECTION_OFFSET_I32 = 9
    TAG_INDEX_LEB = 10
    MEMORY_ADDR_REL_SLEB = 11
    TABLE_INDEX_REL_SLEB = 12
    GLOBAL_INDEX_I32 = 13
    MEMORY_ADDR_LEB64 = 14
    MEMORY_ADDR_SLEB64 = 15
    MEMORY_ADDR_I64 = 16
    MEMORY_ADDR_REL_SLEB64 = 17
    TABLE_INDEX_SLEB64 = 18
    TABLE_INDEX_I64 = 19
    TABLE_NUMBER_LEB = 20
    MEMORY_ADDR_TLS_SLEB = 21
    FUNCTION_OFFSET_I64 = 22
    MEMORY_ADDR_LOCREL_I32 = 23
    TABLE_INDEX_REL_SLEB64 = 24
    MEMORY_ADDR_TLS_SLEB64 = 25
    FUNCTION_INDEX_I32 = 26


# Relocation types that carry an explicit addend
RELOCATION_TYPES_WITH_ADDEND = frozenset({
    WasmRelocationType.MEMORY_ADDR_LEB,
    WasmRelocationType.MEMORY_ADDR_SLEB,
    WasmRelocationType.MEMORY_ADDR_I32,
    WasmRelocationType.FUNCTION_OFFSET_I32,
    WasmRelocationType.SECTION_OFFSET_I32,
    WasmRelocationType.MEMORY_ADDR_REL_SLEB,
    WasmRelocationType.MEMORY_ADDR_LEB64,
    WasmRelocationType.MEMORY_ADDR_SLEB64,
    WasmRelocationType.MEMORY_ADDR_I64,
    WasmRelocationType.MEMORY_ADDR_REL_SLEB64,
    WasmRelocationType.MEMORY_ADDR_TLS_SLEB,
    WasmRelocationType.FUNCTION_OFFSET_I64,
    WasmRelocationType.MEMORY_ADDR_LOCREL_I32,
    WasmRelocationType.MEMORY_ADDR_TLS_SLEB64,
})

# Plain little-endian address values and their width in bytes
ABSOLUTE_RELOCATION_SIZES = {
    WasmRelocationType.MEMORY_ADDR_I32: 4,
    WasmRelocationType.FUNCTION_OFFSET_I32: 4,
    WasmRelocationType.SECTION_OFFSET_I32: 4,
    WasmRelocationType.MEMORY_ADDR_I64: 8,
    WasmRelocationType.FUNCTION_OFFSET_I64: 8,
}


class RelocationKind(Enum):
    """Relocation kinds as seen by the relocation resolver."""
    ABSOLUTE = "absolute"
    OTHER = "other"


@dataclass
class WasmSection:
    """WebAssembly section."""
    id: int = 0
    size: int = 0
    offset: int = 0  # File offset where section content starts
    header_offset: int = 0  # File offset of the section id byte
    name: str = ""   # For custom sections
    data_offset: int = 0  # File offset of the payload after a custom section name

    @property
    def end(self) -> int:
        """File offset just past the section."""
        return self.offset + self.size

    @property
    def total_size(self) -> int:
        """On-disk size including the id byte and the length prefix."""
        return self.end - self.header_offset


@dataclass
class WasmDataSegment:
    """WebAssembly data segment."""
    memory_index: int = 0
    offset: int = 0  # Memory offset (evaluated from init expr)
    size: int = 0
    data_offset: int = 0  # File offset where data starts


@dataclass
class WasmSymbol:
    """Entry of the linking symbol table."""
    kind: int = 0
    flags: int = 0
    name: str = ""
    index: int = 0  # Function/global/tag/table/section index, or data segment
    offset: int = 0  # DATA only: offset within the segment
    size: int = 0    # DATA only
    address: int = 0

    @property
    def is_undefined(self) -> bool:
        return bool(self.flags & WASM_SYM_UNDEFINED)


@dataclass
class RelocationEntry:
    """A relocation applying to one section."""
    offset: int = 0  # Offset within the section data
    type: int = 0
    kind: RelocationKind = RelocationKind.OTHER
    symbol: Optional[int] = None
    addend: int = 0
    size: int = 0


@dataclass
class WasmRelocationSection:
    """Parsed ``reloc.*`` custom section."""
    target_index: int = 0
    entries: List[RelocationEntry] = field(default_factory=list)
