"""
Output generation module.
"""

from .source_map_json import SourceMapArtifact
from .patcher import WasmPatcher, build_url_section

__all__ = ['SourceMapArtifact', 'WasmPatcher', 'build_url_section']
