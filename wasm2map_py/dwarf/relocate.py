"""
Relocation resolution for debug sections.

Debug sections of an object that was not fully linked contain placeholder
values. The ``reloc.*`` sections describe which symbol (plus addend) each
placeholder stands for. The resolver turns them into a per-section map of
byte offset to final value, which then overrides the raw bytes.
"""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import (
    DuplicateRelocationError, UnresolvedSymbolError, UnsupportedRelocationError,
)
from ..formats.wasm_structures import RelocationEntry, RelocationKind, WasmSymbol

U64_MASK = (1 << 64) - 1


class RelocationMap:
    """
    Resolved relocations of one section.

    Maps a byte offset within the section to the value that replaces the
    raw bytes stored there. Built once and read-only afterwards.
    """

    def __init__(self, section_name: str = ""):
        self.section_name = section_name
        self._values: Dict[int, int] = {}
        self._sizes: Dict[int, int] = {}

    def insert(self, offset: int, value: int, size: int) -> None:
        """
        Record a resolved value.

        Raises:
            DuplicateRelocationError: If the offset already has a value
        """
        if offset in self._values:
            raise DuplicateRelocationError(
                f"Multiple relocations for section {self.section_name} at offset 0x{offset:08x}"
            )
        self._values[offset] = value & U64_MASK
        self._sizes[offset] = size

    def get(self, offset: int) -> Optional[int]:
        return self._values.get(offset)

    def relocate(self, offset: int, value: int) -> int:
        """Return the resolved value for ``offset``, or ``value`` when there is none."""
        return self._values.get(offset, value)

    def apply(self, data: bytes) -> bytes:
        """
        Write every resolved value over the section bytes.

        Values are stored little-endian and truncated to the width of the
        relocated field.

        Args:
            data: Raw section payload

        Returns:
            A relocated copy of the payload
        """
        if not self._values:
            return data

        patched = bytearray(data)
        for offset, value in self._values.items():
            size = self._sizes[offset]
            if offset + size > len(patched):
                raise UnsupportedRelocationError(
                    f"Relocation for section {self.section_name} at offset 0x{offset:08x} "
                    f"lies outside the section"
                )
            mask = (1 << (size * 8)) - 1
            patched[offset:offset + size] = (value & mask).to_bytes(size, 'little')
        return bytes(patched)

    def items(self) -> Iterator[Tuple[int, int]]:
        return iter(sorted(self._values.items()))

    def __contains__(self, offset: int) -> bool:
        return offset in self._values

    def __len__(self) -> int:
        return len(self._values)


def resolve_relocations(
    section_name: str,
    entries: Iterable[RelocationEntry],
    symbols: List[WasmSymbol],
) -> RelocationMap:
    """
    Build the relocation map of a section.

    Args:
        section_name: Section name, used in error messages
        entries: Raw relocation entries of the section
        symbols: Symbol table of the owning object

    Returns:
        The resolved RelocationMap

    Raises:
        UnsupportedRelocationError: For any non-absolute relocation
        UnresolvedSymbolError: For a symbol index outside the table
        DuplicateRelocationError: For a second relocation at one offset
    """
    relocations = RelocationMap(section_name)

    for entry in entries:
        if entry.kind != RelocationKind.ABSOLUTE:
            raise UnsupportedRelocationError(
                f"Unsupported relocation for section {section_name} at offset 0x{entry.offset:08x}"
            )

        value = entry.addend
        if entry.symbol is not None:
            if not 0 <= entry.symbol < len(symbols):
                raise UnresolvedSymbolError(
                    f"Relocation with invalid symbol for section {section_name} "
                    f"at offset 0x{entry.offset:08x}"
                )
            value = symbols[entry.symbol].address + entry.addend

        relocations.insert(entry.offset, value, entry.size)

    return relocations
