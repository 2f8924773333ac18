"""
Source map session for one WebAssembly module.

Ties the pipeline together: container parsing, relocation-aware DWARF
reading, position table construction, source map encoding and patching.
"""

from pathlib import Path
from typing import Optional, Union

from ..errors import FileIoError, MalformedContainerError
from ..dwarf.reader import DwarfReader
from ..formats.wasm import WebAssembly
from ..formats.wasm_structures import SOURCE_MAPPING_URL
from ..io.loader import WasmLoader
from ..output.patcher import WasmPatcher
from ..output.source_map_json import SourceMapArtifact
from ..sourcemap.encoder import SourcemapEncoder
from ..sourcemap.positions import PositionTable, PositionTableBuilder


def _parse_companion(data: Optional[bytes], what: str) -> Optional[WebAssembly]:
    if data is None:
        return None
    try:
        return WebAssembly(data)
    except MalformedContainerError as e:
        raise MalformedContainerError(f"{what} is not a WASM file: {e}") from e


class Wasm2Map:
    """
    Source map generator for a module.

    The DWARF view is built when the session is created and stays unchanged
    for its lifetime. A session must not be shared with another process
    working on the same file.

    Attributes:
        module: The parsed module
        offset: File offset of the code section content
        dwarf: Relocation-aware DWARF reader
        patcher: Patch session, if the module was loaded from a file
    """

    def __init__(
        self,
        binary: Union[bytes, bytearray, memoryview],
        dwo_parent: Optional[bytes] = None,
        sup_file: Optional[bytes] = None,
        path: Optional[Union[str, Path]] = None,
        section_name: str = SOURCE_MAPPING_URL,
    ):
        """
        Initialize a session.

        Args:
            binary: The module bytes
            dwo_parent: Bytes of the skeleton module when ``binary`` holds split DWARF
            sup_file: Bytes of a supplementary DWARF module
            path: File the module was read from, needed for patching

        Raises:
            MalformedContainerError: If an input is not a WebAssembly module
            MissingRequiredSectionError: If the module has no code section
            Wasm2MapError: If relocations or DWARF data cannot be processed
        """
        self.module = WebAssembly(binary)
        self.offset = self.module.code_offset
        self.dwarf = DwarfReader(
            self.module,
            _parse_companion(dwo_parent, "DWO parent file"),
            _parse_companion(sup_file, "Supplemental file"),
        )
        self.path = Path(path) if path is not None else None
        self.patcher: Optional[WasmPatcher] = None
        if self.path is not None:
            self.patcher = WasmPatcher.open(self.path, self.module, section_name)

    @classmethod
    def load(
        cls,
        path: Union[str, Path],
        dwo_parent: Optional[Union[str, Path]] = None,
        sup_file: Optional[Union[str, Path]] = None,
        use_mmap: bool = False,
        section_name: str = SOURCE_MAPPING_URL,
    ) -> 'Wasm2Map':
        """Open a module (and its companion files) from disk."""
        loaders = []
        try:
            for file_path in (path, dwo_parent, sup_file):
                loaders.append(WasmLoader.from_optional_path(file_path, use_mmap))
            binary, parent, sup = (
                loader.data if loader is not None else None for loader in loaders
            )
            return cls(binary, parent, sup, path=path, section_name=section_name)
        finally:
            for loader in loaders:
                if loader is not None:
                    loader.close()

    def position_table(self) -> PositionTable:
        """Build the address ordered table of code positions."""
        return PositionTableBuilder(self.dwarf, self.offset).build()

    def build_artifact(self, bundle_sources: bool = False, name: Optional[str] = None) -> SourceMapArtifact:
        """
        Build the source map.

        Args:
            bundle_sources: Embed source file contents
            name: Value of the ``file`` key
        """
        encoder = SourcemapEncoder(bundle_sources=bundle_sources, file=name)
        return encoder.encode(self.position_table())

    def build(self, bundle_sources: bool = False, name: Optional[str] = None) -> str:
        """Build the source map as JSON text."""
        return self.build_artifact(bundle_sources, name).to_json()

    def patch(self, url: str) -> None:
        """
        Point the module at its source map.

        Raises:
            FileIoError: If the session has no file or writing fails
        """
        if self.patcher is None:
            raise FileIoError("The module was not loaded from a file and cannot be patched")
        self.patcher.patch(url)
