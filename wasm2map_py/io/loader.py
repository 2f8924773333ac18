"""
Module file loading.

A WebAssembly module can either be read into memory in one call or
memory-mapped read-only. Both strategies expose the same ``data`` buffer.
"""

import mmap
from pathlib import Path
from typing import Optional, Union

from ..errors import FileIoError


class WasmLoader:
    """
    Loads the bytes of a module file.

    Attributes:
        path: Path of the loaded file
        data: The file content (bytes, or an mmap when memory-mapped)
    """

    def __init__(self, path: Path, data: Union[bytes, mmap.mmap], mapped: bool = False):
        self.path = path
        self.data = data
        self.mapped = mapped

    @classmethod
    def from_path(cls, path: Union[str, Path], use_mmap: bool = False) -> 'WasmLoader':
        """
        Load a file from disk.

        Args:
            path: File to load
            use_mmap: Memory-map the file instead of reading it

        Raises:
            FileIoError: If the file cannot be opened or read
        """
        path = Path(path)
        try:
            if not use_mmap:
                return cls(path, path.read_bytes())

            with open(path, 'rb') as f:
                if f.seek(0, 2) == 0:
                    # Empty files cannot be mapped
                    return cls(path, b'')
                mapped = mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ)
            return cls(path, mapped, mapped=True)
        except OSError as e:
            raise FileIoError(f"Cannot read {path}: {e}") from e

    @classmethod
    def from_optional_path(
        cls,
        path: Optional[Union[str, Path]],
        use_mmap: bool = False
    ) -> Optional['WasmLoader']:
        """Load a file when a path is given, otherwise return None."""
        if path is None:
            return None
        return cls.from_path(path, use_mmap)

    def __len__(self) -> int:
        return len(self.data)

    def close(self) -> None:
        """Release the mapping, if any."""
        if self.mapped:
            self.data.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
