"""
Source Map v3 output structure.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import FileIoError

SOURCE_MAP_VERSION = 3


@dataclass
class SourceMapArtifact:
    """
    Source map JSON object.

    ``sources_content`` is None unless sources are bundled; an entry of None
    stands for a source that could not be read.
    """
    sources: List[str] = field(default_factory=list)
    mappings: str = ""
    file: Optional[str] = None
    sources_content: Optional[List[Optional[str]]] = None
    version: int = SOURCE_MAP_VERSION
    source_root: str = ""
    names: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"version": self.version}
        if self.file is not None:
            data["file"] = self.file
        data["sourceRoot"] = self.source_root
        data["names"] = list(self.names)
        data["sources"] = list(self.sources)
        if self.sources_content is not None:
            data["sourcesContent"] = list(self.sources_content)
        data["mappings"] = self.mappings
        return data

    def to_json(self) -> str:
        """Convert to compact JSON text."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(',', ':'))

    def save(self, path: str) -> None:
        """Save to file."""
        text = self.to_json()
        try:
            with open(path, 'w', encoding='utf-8', newline='') as f:
                f.write(text)
        except OSError as e:
            raise FileIoError(f"Cannot write source map {path}: {e}") from e
