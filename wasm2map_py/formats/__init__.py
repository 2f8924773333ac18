"""
Executable format parsers.

Supports:
- WebAssembly modules and relocatable objects
"""

from .wasm import WebAssembly
from .wasm_structures import *

__all__ = ['WebAssembly']
