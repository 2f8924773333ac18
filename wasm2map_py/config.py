"""
Configuration handling for wasm2map.
"""

from dataclasses import dataclass, fields as dataclass_fields
from typing import Optional
import json
import re
from pathlib import Path

from .errors import FileIoError
from .formats.wasm_structures import SOURCE_MAPPING_URL


_CAMEL_BOUNDARY_RE = re.compile(r'(?<!^)(?=[A-Z])')


@dataclass
class Config:
    """Configuration options for wasm2map."""

    # Output options
    bundle_sources: bool = False
    source_map_suffix: str = '.map'
    dump_mappings: bool = False

    # Patch options
    section_name: str = SOURCE_MAPPING_URL

    # Input options
    use_mmap: bool = False

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'Config':
        """
        Load configuration from a JSON file.

        Keys are camelCase. A missing file gives the defaults and unknown
        keys are ignored.
        """
        if path is None:
            path = Path(__file__).parent / 'config.json'

        if not path.exists():
            return cls()

        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise FileIoError(f"Cannot read config {path}: {e}") from e

        converted = {_CAMEL_BOUNDARY_RE.sub('_', key).lower(): value for key, value in data.items()}

        valid_fields = {f.name for f in dataclass_fields(cls)}
        filtered = {k: v for k, v in converted.items() if k in valid_fields}

        return cls(**filtered)

    def save(self, path: Path) -> None:
        """Save configuration to a JSON file."""
        data = {}
        for key, value in self.__dict__.items():
            camel_key = ''.join(
                word.capitalize() if i > 0 else word
                for i, word in enumerate(key.split('_'))
            )
            data[camel_key] = value

        try:
            with open(path, 'w') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise FileIoError(f"Cannot write config {path}: {e}") from e
