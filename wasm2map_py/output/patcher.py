"""
sourceMappingURL section patcher.

Appends a custom section naming the source map URL to the end of a module,
replacing the section written by an earlier patch of the same session.

Limitation: replacement truncates the file by the length of the previous
section, so it is only correct while that section is the last one in the
file. Sections appended after it by other tools would be cut off.
"""

import os
from pathlib import Path
from typing import Optional, Union

from ..errors import FileIoError, MalformedContainerError
from ..formats.wasm import WebAssembly
from ..formats.wasm_structures import SOURCE_MAPPING_URL, WasmSectionId
from ..sourcemap.vlq import encode_uint_var


def build_url_section(url: str, name: str = SOURCE_MAPPING_URL) -> bytes:
    """
    Encode the custom section carrying ``url``.

    Layout: id 0, varint payload length, varint name length, name,
    varint url length, url.
    """
    name_bytes = name.encode('utf-8')
    url_bytes = url.encode('utf-8')
    payload = (
        encode_uint_var(len(name_bytes)) + name_bytes
        + encode_uint_var(len(url_bytes)) + url_bytes
    )
    return bytes([WasmSectionId.CUSTOM]) + encode_uint_var(len(payload)) + payload


class WasmPatcher:
    """
    Patch session against one module file.

    Attributes:
        path: The module file
        appended_length: On-disk length of the URL section currently at the
            end of the file, or None if there is none
        section_name: Name of the custom section
    """

    def __init__(
        self,
        path: Union[str, Path],
        appended_length: Optional[int] = None,
        section_name: str = SOURCE_MAPPING_URL,
    ):
        self.path = Path(path)
        self.appended_length = appended_length
        self.section_name = section_name

    @classmethod
    def open(
        cls,
        path: Union[str, Path],
        module: Optional[WebAssembly] = None,
        section_name: str = SOURCE_MAPPING_URL,
    ) -> 'WasmPatcher':
        """
        Start a session, remembering an existing URL section.

        Args:
            path: Module file
            module: Already parsed module of ``path``, parsed from disk if None
            section_name: Name of the custom section

        Raises:
            FileIoError: If the file cannot be read
            MalformedContainerError: If it is not a WebAssembly module
        """
        if module is None:
            try:
                module = WebAssembly(Path(path).read_bytes())
            except OSError as e:
                raise FileIoError(f"Cannot read {path}: {e}") from e

        appended_length = None
        section = module.section_by_name(section_name)
        if section is not None:
            appended_length = section.total_size
            if section is not module.sections[-1]:
                print(f"WARNING: {section_name} is not the last section of {path}, "
                      f"patching will truncate the sections after it")

        return cls(path, appended_length, section_name)

    def patch(self, url: str) -> None:
        """
        Write the URL section, replacing the previous one.

        The file is opened without creating it, so a missing file leaves
        nothing behind. If writing fails after truncation the previous tail
        is restored.

        Raises:
            FileIoError: On any file system failure
        """
        section = build_url_section(url, self.section_name)

        try:
            f = open(self.path, 'r+b')
        except OSError as e:
            raise FileIoError(f"Cannot open {self.path} for patching: {e}") from e

        with f:
            try:
                size = f.seek(0, os.SEEK_END)
                cut = size - (self.appended_length or 0)
                if cut < 8:
                    raise MalformedContainerError(
                        f"{self.path} is too small to hold the recorded "
                        f"{self.section_name} section"
                    )
                f.seek(cut)
                previous_tail = f.read()
            except OSError as e:
                raise FileIoError(f"Cannot read {self.path}: {e}") from e

            try:
                f.truncate(cut)
                f.seek(cut)
                f.write(section)
                f.flush()
                os.fsync(f.fileno())
            except OSError as e:
                self._restore(f, cut, previous_tail)
                raise FileIoError(f"Cannot patch {self.path}: {e}") from e

        self.appended_length = len(section)

    def _restore(self, f, cut: int, previous_tail: bytes) -> None:
        """Put the previous tail back after a failed patch."""
        try:
            f.truncate(cut)
            f.seek(cut)
            f.write(previous_tail)
            f.flush()
        except OSError as e:
            print(f"ERROR: Could not restore {self.path} after a failed patch: {e}")
