import pytest

from wasm2map_py.errors import MalformedContainerError, MissingRequiredSectionError
from wasm2map_py.formats import (
    RelocationKind, WasmRelocationType, WasmSectionId, WebAssembly,
)
from tests.wasm_builder import (
    ModuleBuilder, NOP, R_WASM_FUNCTION_INDEX_LEB, R_WASM_FUNCTION_OFFSET_I32,
    WASM_HEADER, function_symbol, sample_module, section_symbol,
)


def test_sections_and_code_offset():
    module = WebAssembly(sample_module())

    ids = [section.id for section in module.sections]
    assert ids[:3] == [WasmSectionId.TYPE, WasmSectionId.FUNCTION, WasmSectionId.CODE]
    # header (8) + type section (6) + function section (4) + code header (2)
    assert module.code_offset == 20
    assert module.function_count == 1
    assert module.section_by_name(".debug_line") is not None
    assert module.section_by_name(".debug_ranges") is None


def test_custom_section_payload_excludes_name():
    builder = ModuleBuilder()
    builder.add_custom("hello", b"world")
    module = WebAssembly(builder.build())

    section = module.section_by_name("hello")
    assert section.data_offset == section.offset + 6
    assert module.section_data(section) == b"world"


@pytest.mark.parametrize("data", [
    b"",
    b"\x00asm",
    b"\x7fELF\x02\x01\x01\x00" + b"\x00" * 8,
    b"\x00asm\x02\x00\x00\x00",
])
def test_rejects_non_wasm(data):
    with pytest.raises(MalformedContainerError):
        WebAssembly(data)


def test_rejects_truncated_section():
    data = sample_module()
    with pytest.raises(MalformedContainerError):
        WebAssembly(data[:-3])


def test_rejects_overlong_custom_name():
    # Section of 2 bytes whose name claims 10
    with pytest.raises(MalformedContainerError):
        WebAssembly(WASM_HEADER + bytes([0, 2, 10, ord("a")]))


def test_missing_code_section():
    builder = ModuleBuilder()
    builder.add_custom(".debug_info", b"")
    module = WebAssembly(builder.build())
    with pytest.raises(MissingRequiredSectionError):
        module.code_offset


def test_symbols_and_relocations():
    builder = ModuleBuilder()
    builder.add_functions([bytes([NOP]), bytes([NOP, NOP])])
    info = builder.add_custom(".debug_info", b"\x00" * 16)
    builder.add_linking([function_symbol(0, "a"), function_symbol(1, "b"), section_symbol(info)])
    builder.add_relocations(info, [
        (R_WASM_FUNCTION_OFFSET_I32, 4, 1, 3),
        (R_WASM_FUNCTION_INDEX_LEB, 8, 0, None),
    ])
    module = WebAssembly(builder.build())

    # Bodies: count at 0, first body size at 1 (3 bytes), second at 5
    assert [symbol.address for symbol in module.symbols] == [1, 5, 0]
    assert [symbol.name for symbol in module.symbols[:2]] == ["a", "b"]

    entries = module.section_relocations(module.section_by_name(".debug_info"))
    assert len(entries) == 2
    first, second = entries
    assert first.offset == 4
    assert first.type == WasmRelocationType.FUNCTION_OFFSET_I32
    assert first.kind == RelocationKind.ABSOLUTE
    assert first.size == 4
    assert first.addend == 3
    assert second.kind == RelocationKind.OTHER
    assert second.addend == 0


def test_imported_functions_shift_symbol_indices():
    builder = ModuleBuilder()
    # One imported function "env.f" of type 0
    builder.add_section(2, b"\x01\x03env\x01f\x00\x00")
    builder.add_functions([bytes([NOP])])
    builder.add_linking([function_symbol(1, "local")])
    module = WebAssembly(builder.build())

    assert module.symbols[0].address == 1


def test_relocation_section_with_unknown_target():
    builder = ModuleBuilder()
    builder.add_functions([bytes([NOP])])
    builder.add_custom("reloc.bogus", b"\x09\x00")
    with pytest.raises(MalformedContainerError):
        WebAssembly(builder.build())


def test_unsupported_linking_version():
    builder = ModuleBuilder()
    builder.add_functions([bytes([NOP])])
    builder.add_custom("linking", b"\x01")
    with pytest.raises(MalformedContainerError) as excinfo:
        WebAssembly(builder.build())
    assert "linking section version: 1" in str(excinfo.value)
