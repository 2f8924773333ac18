import json

from wasm2map_py.output import SourceMapArtifact
from wasm2map_py.utils import escape_json
from wasm2map_py.sourcemap import (
    vlq, CodePoint, PositionTable, SourcemapEncoder, SourceTable, decode_mappings, format_mappings,
    format_mappings_json,
)


def table_of(*points):
    table = PositionTable()
    for point in points:
        table.insert(point)
    return table


def test_source_table_first_seen_ids():
    sources = SourceTable()
    assert sources.add("b.c") == 0
    assert sources.add("a.c") == 1
    assert sources.add("b.c") == 0
    assert len(sources) == 2


def test_encode_segments():
    table = table_of(
        CodePoint("/work/src/main.c", 23, 10, 1),
        CodePoint("/work/src/main.c", 25, 11, 5),
        CodePoint("/work/util.h", 26, 4, 2),
        CodePoint("/work/util.h", 27, 4, 2, end_sequence=True),
    )
    artifact = SourcemapEncoder().encode(table)

    assert artifact.mappings == "uBASA,EACI,CCPH,CAAA"
    assert artifact.sources == ["/work/src/main.c", "/work/util.h"]
    assert artifact.names == []
    assert ";" not in artifact.mappings


def test_line_zero_points_are_skipped():
    table = table_of(
        CodePoint(None, 5, 0, 0),
        CodePoint("x.c", 10, 1, 1),
        CodePoint("y.c", 12, 0, 3),
    )
    artifact = SourcemapEncoder().encode(table)

    # Baseline starts at address 0, line 1, column 1 and is not moved by skipped points
    assert artifact.mappings == "UAAA"
    assert artifact.sources == ["x.c"]


def test_sources_ordered_by_first_address():
    table = table_of(
        CodePoint("late.c", 30, 1, 1),
        CodePoint("early.c", 10, 1, 1),
    )
    assert SourcemapEncoder().encode(table).sources == ["early.c", "late.c"]


def test_left_edge_column_is_encoded_verbatim():
    artifact = SourcemapEncoder().encode(table_of(CodePoint("a.c", 0, 3, 0)))
    assert artifact.mappings == "AAED"
    assert vlq.decode(artifact.mappings) == [0, 0, 2, -1]


def test_left_edge_and_first_column_stay_distinct():
    artifact = SourcemapEncoder().encode(table_of(
        CodePoint("a.c", 10, 3, 0),
        CodePoint("a.c", 12, 3, 1),
    ))
    segments = [vlq.decode(segment) for segment in artifact.mappings.split(",")]
    assert segments == [[10, 0, 2, -1], [2, 0, 0, 1]]


def test_library_roots_are_stripped():
    artifact = SourcemapEncoder().encode(table_of(CodePoint("std:alloc/vec.rs", 1, 1, 1)))
    assert artifact.sources == ["alloc/vec.rs"]


def test_decoded_mappings_match_table():
    table = table_of(
        CodePoint("a.c", 100, 7, 3),
        CodePoint("b.c", 140, 2, 9),
        CodePoint("a.c", 141, 8, 1),
    )
    artifact = SourcemapEncoder().encode(table)

    decoded = decode_mappings(artifact.mappings, artifact.sources)
    assert [(m.address, m.source, m.line, m.column) for m in decoded] == [
        (100, "a.c", 7, 3), (140, "b.c", 2, 9), (141, "a.c", 8, 1),
    ]
    assert format_mappings(artifact.to_dict())[1] == "0x8c => b.c 2:9"


def test_bundle_sources(tmp_path):
    present = tmp_path / "present.c"
    present.write_text('int main() { return "\\n"; }\n')
    missing = tmp_path / "missing.c"
    table = table_of(CodePoint(str(present), 1, 1, 1), CodePoint(str(missing), 2, 1, 1))

    artifact = SourcemapEncoder(bundle_sources=True, file="app.wasm").encode(table)
    data = json.loads(artifact.to_json())

    assert data["sourcesContent"] == ['int main() { return "\\n"; }\n', None]
    assert data["file"] == "app.wasm"


def test_artifact_key_order():
    artifact = SourceMapArtifact(sources=["a.c"], mappings="AAAA", file="m.wasm", sources_content=[None])
    assert artifact.to_json() == (
        '{"version":3,"file":"m.wasm","sourceRoot":"","names":[],'
        '"sources":["a.c"],"sourcesContent":[null],"mappings":"AAAA"}'
    )


def test_artifact_without_optional_keys():
    text = SourceMapArtifact(sources=[], mappings="").to_json()
    assert text == '{"version":3,"sourceRoot":"","names":[],"sources":[],"mappings":""}'
    assert list(json.loads(text)) == ["version", "sourceRoot", "names", "sources", "mappings"]


def test_artifact_save(tmp_path):
    path = tmp_path / "out.map"
    SourceMapArtifact(sources=["a\tb.c"], mappings="AAAA").save(path)
    assert json.loads(path.read_text())["sources"] == ["a\tb.c"]


def test_format_mappings_json():
    text = SourceMapArtifact(sources=["a.c"], mappings="UAAA").to_json()
    assert format_mappings_json(text) == ["0xa => a.c 1:1"]


def test_artifact_strings_use_canonical_escapes():
    source = "dir\x01/" + "".join(chr(c) for c in range(32)) + '"\\é.c'
    text = SourceMapArtifact(sources=[source], mappings="AAAA").to_json()
    assert f'"sources":["{escape_json(source)}"]' in text
    assert json.loads(text)["sources"] == [source]
