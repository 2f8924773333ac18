"""
IO module for binary stream handling and file loading.
"""

from .binary_stream import BinaryStream
from .loader import WasmLoader

__all__ = ['BinaryStream', 'WasmLoader']
