import pytest

from wasm2map_py.dwarf.relocate import RelocationMap, resolve_relocations
from wasm2map_py.errors import (
    DuplicateRelocationError, UnresolvedSymbolError, UnsupportedRelocationError,
)
from wasm2map_py.formats import RelocationEntry, RelocationKind, WasmSymbol


def absolute(offset, symbol=None, addend=0, size=4):
    return RelocationEntry(
        offset=offset, type=8, kind=RelocationKind.ABSOLUTE,
        symbol=symbol, addend=addend, size=size,
    )


@pytest.fixture
def symbols():
    return [WasmSymbol(name="f", address=0x100), WasmSymbol(name="g", address=0x200)]


def test_symbol_address_plus_addend(symbols):
    relocations = resolve_relocations(".debug_info", [absolute(4, 1, 8)], symbols)
    assert relocations.get(4) == 0x208
    assert 4 in relocations
    assert len(relocations) == 1


def test_addend_only_without_symbol(symbols):
    relocations = resolve_relocations(".debug_info", [absolute(0, None, 42)], symbols)
    assert relocations.get(0) == 42


def test_relocate_falls_back_to_raw_value(symbols):
    relocations = resolve_relocations(".debug_line", [absolute(0, 0)], symbols)
    assert relocations.relocate(0, 7) == 0x100
    assert relocations.relocate(4, 7) == 7


def test_non_absolute_relocation_is_rejected(symbols):
    entry = RelocationEntry(offset=0x10, type=0, kind=RelocationKind.OTHER, symbol=0)
    with pytest.raises(UnsupportedRelocationError) as excinfo:
        resolve_relocations(".debug_info", [entry], symbols)
    assert str(excinfo.value) == (
        "Unsupported relocation for section .debug_info at offset 0x00000010"
    )


def test_invalid_symbol_index(symbols):
    with pytest.raises(UnresolvedSymbolError):
        resolve_relocations(".debug_info", [absolute(0, 2)], symbols)


def test_duplicate_offset(symbols):
    with pytest.raises(DuplicateRelocationError) as excinfo:
        resolve_relocations(".debug_info", [absolute(8, 0), absolute(8, 1)], symbols)
    assert "Multiple relocations for section .debug_info at offset 0x00000008" in str(excinfo.value)


def test_values_wrap_to_64_bits():
    relocations = RelocationMap(".debug_info")
    relocations.insert(0, -1, 8)
    assert relocations.get(0) == 0xFFFFFFFFFFFFFFFF


def test_apply_writes_little_endian_by_width():
    relocations = RelocationMap(".debug_info")
    relocations.insert(0, 0x1_0000_0001, 4)
    relocations.insert(4, 0x0102030405060708, 8)
    data = relocations.apply(bytes(14))
    assert data[:4] == b"\x01\x00\x00\x00"
    assert data[4:12] == bytes([8, 7, 6, 5, 4, 3, 2, 1])
    assert data[12:] == b"\x00\x00"


def test_apply_without_relocations_returns_input():
    data = b"\x01\x02"
    assert RelocationMap().apply(data) is data


def test_apply_out_of_bounds():
    relocations = RelocationMap(".debug_line")
    relocations.insert(2, 1, 4)
    with pytest.raises(UnsupportedRelocationError):
        relocations.apply(bytes(4))


def test_items_are_sorted():
    relocations = RelocationMap()
    relocations.insert(8, 1, 4)
    relocations.insert(0, 2, 4)
    assert list(relocations.items()) == [(0, 2), (8, 1)]
