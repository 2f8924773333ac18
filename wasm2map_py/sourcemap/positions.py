"""
Position table construction.

Walks the line number program of every compilation unit and collects one
code point per code address: the source file, line and column the
instruction at that address came from.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from elftools.dwarf.lineprogram import LineProgram

from ..dwarf.reader import DECODE_ERRORS, DwarfReader
from ..errors import IntegerOverflowError
from ..utils.string_utils import join_source_path

# Addresses, lines and columns are stored as unsigned 32-bit values
U32_MAX = 0xFFFFFFFF


@dataclass(frozen=True)
class CodePoint:
    """
    Source position of one code address.

    Attributes:
        source_path: Normalized forward-slash path, None if unknown
        address: File offset of the instruction
        line: 1-based line, 0 when the code has no source line
        column: 1-based column, 0 for the left edge of the line
        end_sequence: Whether the point closes an instruction sequence
    """
    source_path: Optional[str]
    address: int
    line: int
    column: int
    end_sequence: bool = False

    @property
    def has_source(self) -> bool:
        return self.line != 0


class PositionTable:
    """
    Code points ordered by address.

    Inserting a point at an address that is already present replaces the
    earlier point.
    """

    def __init__(self):
        self._points: Dict[int, CodePoint] = {}

    def insert(self, point: CodePoint) -> None:
        self._points[point.address] = point

    def get(self, address: int) -> Optional[CodePoint]:
        return self._points.get(address)

    def addresses(self) -> List[int]:
        return sorted(self._points)

    def __iter__(self) -> Iterator[CodePoint]:
        for address in sorted(self._points):
            yield self._points[address]

    def __contains__(self, address: int) -> bool:
        return address in self._points

    def __len__(self) -> int:
        return len(self._points)


def _check_u32(value: int, what: str) -> int:
    if not 0 <= value <= U32_MAX:
        raise IntegerOverflowError(f"{what} {value} does not fit in 32 bits")
    return value


class PositionTableBuilder:
    """
    Builds the PositionTable of a module.

    Args:
        reader: Relocation-aware DWARF reader
        code_offset: File offset of the code section content, added to every
            DWARF address so positions are file relative
    """

    def __init__(self, reader: DwarfReader, code_offset: int):
        self.reader = reader
        self.code_offset = code_offset

    def build(self) -> PositionTable:
        """
        Collect the code points of every compilation unit.

        A unit whose line program cannot be decoded is skipped with a warning.

        Raises:
            IntegerOverflowError: If an address, line or column exceeds 32 bits
            DebugInfoParseError: If the unit list itself cannot be read
        """
        table = PositionTable()

        for unit in self.reader.units():
            try:
                points = self._unit_points(unit)
            except DECODE_ERRORS as e:
                print(f"WARNING: Skipping compilation unit at offset 0x{unit.cu_offset:x}: {e}")
                continue

            for point in points:
                table.insert(point)

        return table

    def _unit_points(self, unit) -> List[CodePoint]:
        """Decode all rows of a unit before any of them reach the table."""
        program = self.reader.line_program(unit)
        if program is None:
            return []

        comp_dir = self.reader.comp_dir(unit)
        paths: Dict[int, Optional[str]] = {}
        points = []

        for entry in program.get_entries():
            state = entry.state
            if state is None:
                continue

            address = _check_u32(state.address + self.code_offset, "Address")
            line = _check_u32(state.line, "Line")
            column = _check_u32(state.column, "Column")

            if state.file not in paths:
                paths[state.file] = self._file_path(program, state.file, comp_dir)
            source_path = paths[state.file]
            if source_path is None:
                line = 0

            # The end of a sequence addresses the first byte after it; move it
            # back onto the last instruction
            if state.end_sequence and address > 0:
                address -= 1

            points.append(CodePoint(
                source_path=source_path,
                address=address,
                line=line,
                column=column,
                end_sequence=state.end_sequence,
            ))

        return points

    def _file_path(self, program: LineProgram, index: int, comp_dir: Optional[str]) -> Optional[str]:
        entry = self.reader.file_entry(program, index)
        if entry is None:
            return None
        return join_source_path(entry.name, entry.directory, comp_dir)

