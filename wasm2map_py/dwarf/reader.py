"""
DWARF reader for WebAssembly modules.

WebAssembly stores DWARF sections as custom sections named ``.debug_*``.
This module extracts them, applies resolved relocations and hands them to
pyelftools as a DWARFInfo, optionally linked to a split-DWARF parent and a
supplementary file.
"""

from dataclasses import dataclass
from io import BytesIO
from typing import Dict, Iterator, Optional

from elftools.common.exceptions import DWARFError, ELFParseError
from elftools.construct.core import ConstructError
from elftools.dwarf.compileunit import CompileUnit
from elftools.dwarf.dwarfinfo import DebugSectionDescriptor, DWARFInfo, DwarfConfig
from elftools.dwarf.lineprogram import LineProgram

from ..errors import DebugInfoParseError
from ..formats.wasm import WebAssembly
from .relocate import RelocationMap, resolve_relocations

# Errors pyelftools raises for undecodable or unsupported data, e.g.
# NotImplementedError for strx-form paths in a DWARF 5 line table header
DECODE_ERRORS = (
    DWARFError, ELFParseError, ConstructError, NotImplementedError,
    KeyError, IndexError, ValueError, EOFError,
)

# DWARFInfo argument -> section name
DWARF_SECTIONS = {
    'debug_info_sec': '.debug_info',
    'debug_aranges_sec': '.debug_aranges',
    'debug_abbrev_sec': '.debug_abbrev',
    'debug_frame_sec': '.debug_frame',
    'eh_frame_sec': '.eh_frame',
    'debug_str_sec': '.debug_str',
    'debug_loc_sec': '.debug_loc',
    'debug_ranges_sec': '.debug_ranges',
    'debug_line_sec': '.debug_line',
    'debug_pubtypes_sec': '.debug_pubtypes',
    'debug_pubnames_sec': '.debug_pubnames',
    'debug_addr_sec': '.debug_addr',
    'debug_str_offsets_sec': '.debug_str_offsets',
    'debug_line_str_sec': '.debug_line_str',
    'debug_loclists_sec': '.debug_loclists',
    'debug_rnglists_sec': '.debug_rnglists',
    'debug_sup_sec': '.debug_sup',
    'gnu_debugaltlink_sec': '.gnu_debugaltlink',
    'debug_types_sec': '.debug_types',
}

# Sections that exist in split DWARF objects
DWO_SECTIONS = frozenset({
    'debug_info_sec', 'debug_abbrev_sec', 'debug_line_sec', 'debug_loc_sec',
    'debug_loclists_sec', 'debug_rnglists_sec', 'debug_str_sec',
    'debug_str_offsets_sec', 'debug_types_sec',
})

# Sections a split object takes from its skeleton parent
PARENT_SECTIONS = ('debug_addr_sec', 'debug_ranges_sec', 'debug_rnglists_sec')


@dataclass
class FileEntry:
    """Directory and name of a line program file entry."""
    name: str
    directory: Optional[str] = None


def _to_str(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return str(value)


class DwarfReader:
    """
    Relocation-aware view of the DWARF data of a module.

    The DWARFInfo is built once, at construction, and never modified.

    Attributes:
        dwarf: The pyelftools DWARFInfo
        relocation_maps: Resolved relocations of the module, keyed by section name
    """

    def __init__(
        self,
        binary: WebAssembly,
        dwo_parent: Optional[WebAssembly] = None,
        sup_file: Optional[WebAssembly] = None,
    ):
        self.relocation_maps: Dict[str, RelocationMap] = {}
        try:
            self.dwarf = self._load(binary, dwo_parent, sup_file)
        except DECODE_ERRORS as e:
            raise DebugInfoParseError(f"Cannot load DWARF sections: {e}") from e

    def _load(
        self,
        binary: WebAssembly,
        dwo_parent: Optional[WebAssembly],
        sup_file: Optional[WebAssembly],
    ) -> DWARFInfo:
        # If the debug info is a split DWARF object (DWO), the module holds the
        # .dwo sections and the parent holds what the skeleton units refer to
        is_dwo = dwo_parent is not None
        sections = self._load_sections(binary, is_dwo, self.relocation_maps)

        if dwo_parent is not None:
            parent_sections = self._load_sections(dwo_parent, False, {})
            for key in PARENT_SECTIONS:
                if sections[key] is None:
                    sections[key] = parent_sections[key]

        dwarf = self._make_dwarf_info(sections)

        # Only the string sections are needed, but all are loaded
        if sup_file is not None:
            dwarf.supplementary_dwarfinfo = self._make_dwarf_info(
                self._load_sections(sup_file, False, {})
            )

        return dwarf

    @staticmethod
    def _make_dwarf_info(sections: Dict[str, Optional[DebugSectionDescriptor]]) -> DWARFInfo:
        config = DwarfConfig(
            little_endian=True,
            machine_arch='wasm32',
            default_address_size=4,
        )
        return DWARFInfo(config=config, **sections)

    @staticmethod
    def _load_sections(
        obj: WebAssembly,
        is_dwo: bool,
        relocation_maps: Dict[str, RelocationMap],
    ) -> Dict[str, Optional[DebugSectionDescriptor]]:
        """Read every DWARF section of ``obj``, relocated unless it is a split object."""
        sections: Dict[str, Optional[DebugSectionDescriptor]] = {}

        for key, name in DWARF_SECTIONS.items():
            sections[key] = None
            if is_dwo:
                if key not in DWO_SECTIONS:
                    continue
                name += '.dwo'

            section = obj.section_by_name(name)
            if section is None:
                continue

            data = obj.section_data(section)
            # DWO sections never have relocations
            if not is_dwo:
                relocations = resolve_relocations(
                    name, obj.section_relocations(section), obj.symbols
                )
                relocation_maps[name] = relocations
                data = relocations.apply(data)

            sections[key] = DebugSectionDescriptor(
                stream=BytesIO(data),
                name=name,
                global_offset=section.data_offset,
                size=len(data),
                address=0,
            )

        return sections

    # ========== Debug-info reader interface ==========

    def units(self) -> Iterator[CompileUnit]:
        """
        Iterate over the compilation units.

        Raises:
            DebugInfoParseError: If the unit headers cannot be read
        """
        if self.dwarf.debug_info_sec is None or self.dwarf.debug_info_sec.size == 0:
            return

        units = self.dwarf.iter_CUs()
        while True:
            try:
                unit = next(units)
            except StopIteration:
                return
            except DECODE_ERRORS as e:
                raise DebugInfoParseError(f"Cannot read compilation unit header: {e}") from e
            yield unit

    def line_program(self, unit: CompileUnit) -> Optional[LineProgram]:
        """Line program of a unit, or None if it has none."""
        if self.dwarf.debug_line_sec is None:
            return None
        return self.dwarf.line_program_for_CU(unit)

    def comp_dir(self, unit: CompileUnit) -> Optional[str]:
        """The DW_AT_comp_dir of a unit."""
        attribute = unit.get_top_DIE().attributes.get('DW_AT_comp_dir')
        if attribute is None:
            return None
        return _to_str(attribute.value)

    def file_entry(self, program: LineProgram, index: int) -> Optional[FileEntry]:
        """
        Resolve the file index of a line program row.

        DWARF 5 indexes files and directories from 0, where directory 0 is the
        compilation directory. Earlier versions index files from 1 and use
        directory 0 for the compilation directory.
        """
        files = program['file_entry']
        directories = program['include_directory']

        if program['version'] >= 5:
            file_index = index
        else:
            file_index = index - 1
        if not 0 <= file_index < len(files):
            return None

        entry = files[file_index]
        dir_index = entry.dir_index
        if program['version'] < 5:
            dir_index -= 1

        directory = None
        if 0 <= dir_index < len(directories):
            directory = _to_str(directories[dir_index])

        return FileEntry(name=_to_str(entry.name) or '', directory=directory)
