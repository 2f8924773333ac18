"""
wasm2map - Python
A tool for generating Source Map v3 files from the DWARF debug information
of WebAssembly modules.
"""

__version__ = "0.1.0"
__author__ = "wasm2map contributors"

from .config import Config
from .errors import Wasm2MapError
from .executor.wasm2map import Wasm2Map

__all__ = ['Config', 'Wasm2Map', 'Wasm2MapError', '__version__']
