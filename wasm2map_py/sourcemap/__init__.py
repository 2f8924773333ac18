"""
Source map generation: position tables, VLQ encoding and the encoder.
"""

from .positions import CodePoint, PositionTable, PositionTableBuilder
from .encoder import SourcemapEncoder, SourceTable
from .decode import decode_mappings, format_mappings, format_mappings_json

__all__ = [
    'CodePoint', 'PositionTable', 'PositionTableBuilder',
    'SourcemapEncoder', 'SourceTable',
    'decode_mappings', 'format_mappings', 'format_mappings_json',
]
