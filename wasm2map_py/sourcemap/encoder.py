"""
Source map encoder.

Turns a PositionTable into a Source Map v3 artifact. The whole code section
is modelled as a single generated line whose columns are file offsets, so
every mapping segment lives on line 0 and no ``;`` separator is emitted.
"""

from pathlib import Path
from typing import Dict, List, Optional

from ..output.source_map_json import SourceMapArtifact
from ..utils.string_utils import strip_library_root
from . import vlq
from .positions import PositionTable


class SourceTable:
    """Distinct source paths in first-seen order; the index is the source id."""

    def __init__(self):
        self.paths: List[str] = []
        self._ids: Dict[str, int] = {}

    def add(self, path: str) -> int:
        """Return the id of ``path``, assigning the next one if it is new."""
        source_id = self._ids.get(path)
        if source_id is None:
            source_id = len(self.paths)
            self._ids[path] = source_id
            self.paths.append(path)
        return source_id

    def __len__(self) -> int:
        return len(self.paths)


def read_source(path: str) -> Optional[str]:
    """Read a source file for bundling; None when it cannot be read."""
    try:
        return Path(path).read_bytes().decode('utf-8', errors='replace')
    except OSError:
        return None


class SourcemapEncoder:
    """
    Encodes position tables as source maps.

    Args:
        bundle_sources: Embed the text of every source file
        file: Value of the artifact's ``file`` key
    """

    def __init__(self, bundle_sources: bool = False, file: Optional[str] = None):
        self.bundle_sources = bundle_sources
        self.file = file

    def encode(self, table: PositionTable) -> SourceMapArtifact:
        """
        Build the artifact for ``table``.

        Points without a source line are left out entirely; they neither
        produce a segment nor move the delta baseline.
        """
        sources = SourceTable()
        segments = []

        last_address, last_source, last_line, last_column = 0, 0, 1, 1

        for point in table:
            if not point.has_source:
                continue

            source_id = sources.add(point.source_path)
            segments.append(
                vlq.encode(point.address - last_address)
                + vlq.encode(source_id - last_source)
                + vlq.encode(point.line - last_line)
                + vlq.encode(point.column - last_column)
            )

            last_address, last_source, last_line, last_column = (
                point.address, source_id, point.line, point.column
            )

        artifact = SourceMapArtifact(
            sources=[strip_library_root(path) for path in sources.paths],
            mappings=','.join(segments),
            file=self.file,
        )
        if self.bundle_sources:
            artifact.sources_content = [read_source(path) for path in sources.paths]

        return artifact
