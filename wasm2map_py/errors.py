"""
Error types raised while building source maps and patching modules.

Every error derives from Wasm2MapError so callers can report any failure of
the pipeline with a single except clause.
"""


class Wasm2MapError(Exception):
    """Base class for all wasm2map errors."""


class MalformedContainerError(Wasm2MapError):
    """The input is not a well-formed WebAssembly module."""


class MissingRequiredSectionError(Wasm2MapError):
    """A section needed for source map generation is absent."""


class UnsupportedRelocationError(Wasm2MapError):
    """A debug section carries a relocation kind other than absolute."""


class DuplicateRelocationError(Wasm2MapError):
    """Two relocations target the same offset of one section."""


class UnresolvedSymbolError(Wasm2MapError):
    """A relocation references a symbol index outside the symbol table."""


class DebugInfoParseError(Wasm2MapError):
    """The DWARF data could not be read."""


class IntegerOverflowError(Wasm2MapError):
    """A value does not fit the numeric width used by the source map."""


class FileIoError(Wasm2MapError):
    """Reading, seeking, writing or truncating a file failed."""
