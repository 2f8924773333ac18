import pytest

from wasm2map_py.errors import FileIoError, MalformedContainerError
from wasm2map_py.formats import SOURCE_MAPPING_URL, WasmSectionId, WebAssembly
from wasm2map_py.output import WasmPatcher, build_url_section
from wasm2map_py.sourcemap.vlq import decode_uint_var
from tests.wasm_builder import ModuleBuilder, sample_module


@pytest.fixture
def wasm_file(tmp_path):
    path = tmp_path / "app.wasm"
    path.write_bytes(sample_module())
    return path


def url_sections(path):
    module = WebAssembly(path.read_bytes())
    found = []
    for section in module.sections:
        if section.id == WasmSectionId.CUSTOM and section.name == SOURCE_MAPPING_URL:
            data = module.section_data(section)
            length, pos = decode_uint_var(data)
            found.append((section, data[pos:pos + length].decode("utf-8")))
    return module, found


def test_build_url_section():
    section = build_url_section("http://x/a.map")
    name = SOURCE_MAPPING_URL.encode()
    payload = bytes([len(name)]) + name + bytes([14]) + b"http://x/a.map"
    assert section == bytes([0, len(payload)]) + payload


def test_patch_appends_section(wasm_file):
    original = wasm_file.read_bytes()

    patcher = WasmPatcher.open(wasm_file)
    assert patcher.appended_length is None
    patcher.patch("http://localhost/app.wasm.map")

    data = wasm_file.read_bytes()
    assert data.startswith(original)
    module, found = url_sections(wasm_file)
    assert [url for _, url in found] == ["http://localhost/app.wasm.map"]
    assert found[0][0] is module.sections[-1]


def test_patch_twice_keeps_one_section(wasm_file):
    original_size = wasm_file.stat().st_size

    patcher = WasmPatcher.open(wasm_file)
    patcher.patch("http://first.example/app.wasm.map")
    patcher.patch("http://second/a.map")

    module, found = url_sections(wasm_file)
    assert [url for _, url in found] == ["http://second/a.map"]
    assert found[0][0] is module.sections[-1]
    assert wasm_file.stat().st_size == original_size + len(build_url_section("http://second/a.map"))


def test_reopen_replaces_existing_section(wasm_file):
    WasmPatcher.open(wasm_file).patch("http://old/app.wasm.map")

    patcher = WasmPatcher.open(wasm_file)
    assert patcher.appended_length == len(build_url_section("http://old/app.wasm.map"))
    patcher.patch("http://new/app.wasm.map")

    _, found = url_sections(wasm_file)
    assert [url for _, url in found] == ["http://new/app.wasm.map"]


def test_patch_deleted_file(wasm_file):
    patcher = WasmPatcher.open(wasm_file)
    wasm_file.unlink()

    with pytest.raises(FileIoError):
        patcher.patch("http://localhost/app.wasm.map")
    assert not wasm_file.exists()


def test_open_missing_file(tmp_path):
    with pytest.raises(FileIoError):
        WasmPatcher.open(tmp_path / "nothing.wasm")


def test_section_not_last_warns(tmp_path, capsys):
    builder = ModuleBuilder()
    builder.add_custom(SOURCE_MAPPING_URL, b"\x01x")
    builder.add_custom("name", b"")
    path = tmp_path / "odd.wasm"
    path.write_bytes(builder.build())

    WasmPatcher.open(path)
    assert "WARNING: sourceMappingURL is not the last section" in capsys.readouterr().out


def test_file_shrunk_below_recorded_section(tmp_path):
    path = tmp_path / "small.wasm"
    path.write_bytes(ModuleBuilder().build())

    patcher = WasmPatcher(path, appended_length=64)
    with pytest.raises(MalformedContainerError):
        patcher.patch("http://localhost/a.map")
    assert path.read_bytes() == ModuleBuilder().build()
