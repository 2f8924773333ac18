"""
Mappings decoder for diagnostics.

Expands the delta encoded ``mappings`` string of a source map back into
absolute positions, e.g. to check a generated map by eye:

    0x1a3 => src/lib.rs 12:5
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from . import vlq


@dataclass
class Mapping:
    """One decoded mapping segment with absolute values."""
    generated_line: int
    address: int
    source: Optional[str]
    line: int
    column: int


def decode_mappings(mappings: str, sources: List[str]) -> List[Mapping]:
    """
    Decode a mappings string.

    Lines and columns come out 1-based; ``address`` is the 0-based
    generated column, which for a WebAssembly map is the code file offset.

    Raises:
        ValueError: On malformed VLQ data
    """
    result = []
    # address, source, line, column
    state = [0, 0, 1, 1]

    for generated_line, line_text in enumerate(mappings.split(';')):
        state[0] = 0
        for segment in line_text.split(','):
            if not segment:
                continue
            values = vlq.decode(segment)
            for i, value in enumerate(values[:4]):
                state[i] += value
            if len(values) < 4:
                # Generated position only, no source
                continue

            source_id = state[1]
            source = sources[source_id] if 0 <= source_id < len(sources) else None
            result.append(Mapping(generated_line, state[0], source, state[2], state[3]))

    return result


def format_mappings(source_map: Dict[str, Any]) -> List[str]:
    """Render the mappings of a parsed source map as text lines."""
    lines = []
    for mapping in decode_mappings(source_map.get("mappings", ""), source_map.get("sources", [])):
        lines.append(f"0x{mapping.address:x} => {mapping.source} {mapping.line}:{mapping.column}")
    return lines


def format_mappings_json(text: str) -> List[str]:
    """Parse source map JSON text and render its mappings."""
    return format_mappings(json.loads(text))
