"""
Source map generation session.
"""

from .wasm2map import Wasm2Map

__all__ = ['Wasm2Map']
