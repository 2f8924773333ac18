"""
WebAssembly (WASM) container parser.

Reads the section layout of a module together with the parts of the object
file conventions needed to relocate debug information: the imported function
count, the function bodies of the code section, the data segments, the
``linking`` symbol table and the ``reloc.*`` custom sections.
"""

from typing import Dict, List, Optional, Union

from ..errors import MalformedContainerError, MissingRequiredSectionError
from ..io.binary_stream import BinaryStream
from .wasm_structures import (
    WasmSection, WasmDataSegment, WasmSymbol, WasmRelocationSection, RelocationEntry,
    RelocationKind, WasmSectionId, WasmExternalKind, WasmLinkingSubsection, WasmSymbolKind,
    WASM_MAGIC, WASM_VERSION, WASM_LINKING_VERSION, WASM_SYM_EXPLICIT_NAME,
    RELOCATION_TYPES_WITH_ADDEND, ABSOLUTE_RELOCATION_SIZES,
)


class WebAssembly(BinaryStream):
    """
    WebAssembly module parser.

    Attributes:
        sections: All sections in file order (index = section index)
        code_section: The code section, if present
        symbols: The linking symbol table, empty for linked modules
        relocations: Relocation sections keyed by target section index
    """

    def __init__(self, data: Union[bytes, bytearray, memoryview]):
        super().__init__(data)
        self.sections: List[WasmSection] = []
        self.code_section: Optional[WasmSection] = None
        self.data_section: Optional[WasmSection] = None
        self.symbols: List[WasmSymbol] = []
        self.relocations: Dict[int, WasmRelocationSection] = {}
        self._data_segments: List[WasmDataSegment] = []
        self._function_offsets: List[int] = []
        self._imported_functions = 0
        try:
            self._load()
        except EOFError as e:
            raise MalformedContainerError(f"Truncated WebAssembly module: {e}") from e

    def _load(self) -> None:
        """Load WebAssembly structures."""
        self.position = 0

        if self.length < 8:
            raise MalformedContainerError("Data is too short to be a WebAssembly module")

        # Read magic
        magic = self.read_uint32()
        if magic != WASM_MAGIC:
            raise MalformedContainerError(f"Invalid WebAssembly magic: 0x{magic:08X}")

        # Read version
        version = self.read_uint32()
        if version != WASM_VERSION:
            raise MalformedContainerError(f"Unsupported WebAssembly version: {version}")

        # Parse sections
        while self.position < self.length:
            section = self._read_section()
            self.sections.append(section)

            if section.id == WasmSectionId.IMPORT:
                self._parse_import_section(section)
            elif section.id == WasmSectionId.CODE:
                self.code_section = section
                self._parse_code_section(section)
            elif section.id == WasmSectionId.DATA:
                self.data_section = section
                self._parse_data_section(section)

        # Symbols refer to code and data, relocations refer to symbols
        linking = self.section_by_name("linking")
        if linking is not None:
            self._parse_linking_section(linking)

        for section in self.sections:
            if section.id == WasmSectionId.CUSTOM and section.name.startswith("reloc."):
                self._parse_relocation_section(section)

    def _read_section(self) -> WasmSection:
        """Read a WebAssembly section header and skip its payload."""
        section = WasmSection()
        section.header_offset = self.position
        section.id = self.read_byte()
        section.size = self.read_uleb128()
        section.offset = self.position
        section.data_offset = section.offset

        if section.end > self.length:
            raise MalformedContainerError(
                f"Section {section.id} at offset 0x{section.header_offset:x} "
                f"extends past the end of the module"
            )

        # For custom sections, read the name
        if section.id == WasmSectionId.CUSTOM:
            name_len = self.read_uleb128()
            name_bytes = self.read_bytes(name_len)
            section.name = name_bytes.decode('utf-8', errors='replace')
            section.data_offset = self.position
            if section.data_offset > section.end:
                raise MalformedContainerError(
                    f"Custom section name at offset 0x{section.offset:x} overruns the section"
                )

        self.position = section.end
        return section

    def _parse_import_section(self, section: WasmSection) -> None:
        """Count imported functions, which precede defined ones in the index space."""
        saved_pos = self.position
        self.position = section.offset

        count = self.read_uleb128()
        for _ in range(count):
            self.read_name()  # module
            self.read_name()  # field
            kind = self.read_byte()
            if kind == WasmExternalKind.FUNCTION:
                self.read_uleb128()  # type index
                self._imported_functions += 1
            elif kind == WasmExternalKind.TABLE:
                self.read_byte()  # reference type
                self._read_limits()
            elif kind == WasmExternalKind.MEMORY:
                self._read_limits()
            elif kind == WasmExternalKind.GLOBAL:
                self.read_byte()  # value type
                self.read_byte()  # mutability
            elif kind == WasmExternalKind.TAG:
                self.read_byte()  # attribute
                self.read_uleb128()  # type index
            else:
                raise MalformedContainerError(f"Unknown import kind {kind}")

        self.position = saved_pos

    def _read_limits(self) -> None:
        flags = self.read_uleb128()
        self.read_uleb128()  # minimum
        if flags & 1:
            self.read_uleb128()  # maximum

    def _parse_code_section(self, section: WasmSection) -> None:
        """Record where each function body starts, relative to the section content."""
        saved_pos = self.position
        self.position = section.offset

        count = self.read_uleb128()
        for _ in range(count):
            body_start = self.position
            body_size = self.read_uleb128()
            self._function_offsets.append(body_start - section.offset)
            self.position += body_size

        self.position = saved_pos

    def _parse_data_section(self, section: WasmSection) -> None:
        """Parse the data section to find data segments."""
        saved_pos = self.position
        self.position = section.offset

        num_segments = self.read_uleb128()

        for _ in range(num_segments):
            segment = WasmDataSegment()

            # Read segment type (flags)
            flags = self.read_uleb128()

            if flags == 1:
                # Passive segment
                segment.memory_index = 0
                segment.offset = 0
            else:
                # Active segment, memory index is explicit for flags == 2
                segment.memory_index = self.read_uleb128() if flags == 2 else 0
                segment.offset = self._read_init_expr()

            # Read data
            segment.size = self.read_uleb128()
            segment.data_offset = self.position
            self.position += segment.size

            self._data_segments.append(segment)

        self.position = saved_pos

    def _read_init_expr(self) -> int:
        """Evaluate a constant offset expression (i32.const / i64.const ... end)."""
        opcode = self.read_byte()
        value = 0
        if opcode in (0x41, 0x42):  # i32.const, i64.const
            value = self.read_sleb128()
        elif opcode == 0x23:  # global.get
            self.read_uleb128()
        end = self.read_byte()
        if end != 0x0B:
            raise MalformedContainerError(f"Unsupported segment offset expression 0x{opcode:02x}")
        return value

    def _parse_linking_section(self, section: WasmSection) -> None:
        """Parse the symbol table of the "linking" custom section."""
        saved_pos = self.position
        self.position = section.data_offset

        version = self.read_uleb128()
        if version != WASM_LINKING_VERSION:
            raise MalformedContainerError(f"Unsupported linking section version: {version}")
        while self.position < section.end:
            subsection_type = self.read_byte()
            subsection_size = self.read_uleb128()
            subsection_end = self.position + subsection_size
            if subsection_type == WasmLinkingSubsection.SYMBOL_TABLE:
                count = self.read_uleb128()
                self.symbols = self.read_array(self._read_symbol, count)
            self.position = subsection_end

        self.position = saved_pos

    def _read_symbol(self) -> WasmSymbol:
        symbol = WasmSymbol()
        symbol.kind = self.read_byte()
        symbol.flags = self.read_uleb128()

        if symbol.kind == WasmSymbolKind.DATA:
            symbol.name = self.read_name()
            if not symbol.is_undefined:
                symbol.index = self.read_uleb128()
                symbol.offset = self.read_uleb128()
                symbol.size = self.read_uleb128()
        elif symbol.kind == WasmSymbolKind.SECTION:
            symbol.index = self.read_uleb128()
        else:
            symbol.index = self.read_uleb128()
            if not symbol.is_undefined or symbol.flags & WASM_SYM_EXPLICIT_NAME:
                symbol.name = self.read_name()

        symbol.address = self._symbol_address(symbol)
        return symbol

    def _symbol_address(self, symbol: WasmSymbol) -> int:
        """Address of a symbol as used by debug information."""
        if symbol.is_undefined:
            return 0
        if symbol.kind == WasmSymbolKind.FUNCTION:
            defined = symbol.index - self._imported_functions
            if 0 <= defined < len(self._function_offsets):
                return self._function_offsets[defined]
        elif symbol.kind == WasmSymbolKind.DATA:
            if symbol.index < len(self._data_segments):
                return self._data_segments[symbol.index].offset + symbol.offset
        # Section symbols resolve to the start of their section
        return 0

    def _parse_relocation_section(self, section: WasmSection) -> None:
        """Parse a ``reloc.*`` custom section."""
        saved_pos = self.position
        self.position = section.data_offset

        relocations = WasmRelocationSection()
        relocations.target_index = self.read_uleb128()
        if relocations.target_index >= len(self.sections):
            raise MalformedContainerError(
                f"Relocation section {section.name} targets unknown section "
                f"{relocations.target_index}"
            )
        target = self.sections[relocations.target_index]
        # Relocation offsets count from the section content, which for a
        # custom section starts with its name
        name_size = target.data_offset - target.offset

        count = self.read_uleb128()
        for _ in range(count):
            entry = RelocationEntry()
            entry.type = self.read_byte()
            entry.offset = self.read_uleb128() - name_size
            entry.symbol = self.read_uleb128()
            if entry.type in RELOCATION_TYPES_WITH_ADDEND:
                entry.addend = self.read_sleb128()
            if entry.type in ABSOLUTE_RELOCATION_SIZES:
                entry.kind = RelocationKind.ABSOLUTE
                entry.size = ABSOLUTE_RELOCATION_SIZES[entry.type]
            if entry.offset < 0:
                raise MalformedContainerError(
                    f"Relocation in {section.name} points into the name of its target section"
                )
            relocations.entries.append(entry)

        self.relocations[relocations.target_index] = relocations
        self.position = saved_pos

    # ========== Object-file reader interface ==========

    def section_by_name(self, name: str) -> Optional[WasmSection]:
        """Find a custom section by name."""
        for section in self.sections:
            if section.id == WasmSectionId.CUSTOM and section.name == name:
                return section
        return None

    def section_index(self, section: WasmSection) -> int:
        """Index of a section in file order."""
        return self.sections.index(section)

    def section_data(self, section: WasmSection) -> bytes:
        """Payload of a section; for custom sections the bytes after the name."""
        self.position = section.data_offset
        return self.read_bytes(section.end - section.data_offset)

    def section_relocations(self, section: WasmSection) -> List[RelocationEntry]:
        """Relocations applying to a section, with offsets relative to its payload."""
        relocations = self.relocations.get(self.section_index(section))
        return relocations.entries if relocations is not None else []

    @property
    def code_offset(self) -> int:
        """File offset of the code section content.

        Raises:
            MissingRequiredSectionError: If the module has no code section
        """
        if self.code_section is None:
            raise MissingRequiredSectionError("The WASM file does not contain a code section")
        return self.code_section.offset

    @property
    def function_count(self) -> int:
        """Number of function bodies in the code section."""
        return len(self._function_offsets)
