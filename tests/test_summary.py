import io
from pathlib import Path

import pytest

import gl_typed_gen


def _summary(**overrides: object) -> gl_typed_gen.GenerationSummary:
    fields: dict[str, object] = {
        "target_label": "gl 4.5 (core)",
        "output_label": "src/gl.rs",
        "commands": 657,
        "commands_with_fallbacks": 88,
        "constants": 1342,
        "groups": 312,
        "bitmask_groups": 41,
        "group_constants": 4120,
        "line_count": 12345,
        "byte_count": 987654,
    }
    fields.update(overrides)
    return gl_typed_gen.GenerationSummary(**fields)  # type: ignore[arg-type]


def test_format_generation_summary_layout() -> None:
    text = gl_typed_gen.format_generation_summary(_summary())

    assert text.splitlines() == [
        "gl 4.5 (core) bindings generated:",
        "",
        "  Output:     src/gl.rs",
        "",
        "    Commands:      657  (88 with fallbacks)",
        "    Constants:    1342",
        "    Groups:        312  (41 bitmask, 4120 typed constants)",
        "",
        "  Written: 12,345 lines, 987,654 bytes",
    ]


def test_print_generation_summary_goes_to_stderr(
    capsys: pytest.CaptureFixture[str],
) -> None:
    gl_typed_gen.print_generation_summary(_summary())

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "bindings generated:" in captured.err


def test_build_generation_summary_counts_fixture(
    fixture_registry: gl_typed_gen.Registry,
) -> None:
    result = gl_typed_gen.write_bindings(fixture_registry, io.StringIO())

    summary = gl_typed_gen.build_generation_summary(fixture_registry, result, None)

    assert summary.target_label == "gl 3.2 (core)"
    assert summary.output_label == "<stdout>"
    assert summary.commands == 7
    assert summary.commands_with_fallbacks == 2
    assert summary.constants == 14
    assert summary.groups == 9
    assert summary.bitmask_groups == 1
    assert summary.line_count == result.line_count


def test_format_groups_table(fixture_registry: gl_typed_gen.Registry) -> None:
    text = gl_typed_gen.format_groups_table(fixture_registry)
    lines = text.splitlines()

    assert lines[0] == "9 groups in gl 3.2 (core):"
    rows = {line.split()[0]: line.split()[1:3] for line in lines[2:]}
    assert rows["ClearBufferMask"] == ["bitmask", "2"]
    assert rows["PrimitiveType"] == ["plain", "3"]
    assert rows["TextureUnit"] == ["plain", "1"]


def test_format_probe_report(fixture_registry: gl_typed_gen.Registry) -> None:
    exported = {"glClear": 1, "glActiveTextureARB": 2}
    table = gl_typed_gen.load_fn_ptrs(fixture_registry, exported.get)

    text = gl_typed_gen.format_probe_report(fixture_registry, table, "libGL.so.1")

    assert text.startswith("Probe of libGL.so.1 for gl 3.2 (core):")
    assert "  Loaded:  2 / 7" in text
    assert "  Via fallback (1):\n    ActiveTexture -> glActiveTextureARB" in text
    assert "  Missing (5):" in text
    assert "    GetError" in text


def test_run_discovery_lists_groups(
    capsys: pytest.CaptureFixture[str], fixture_xml: Path
) -> None:
    selection = gl_typed_gen.RegistrySelection(
        "gl", gl_typed_gen.ApiVersion(3, 2), "core", "all", frozenset(), fixture_xml
    )

    gl_typed_gen.run_discovery(
        gl_typed_gen.DiscoveryConfig("list-groups", selection, None)
    )

    assert capsys.readouterr().out.startswith("9 groups in gl 3.2 (core):")


def test_run_discovery_probes_library(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    fixture_xml: Path,
) -> None:
    opened: list[str] = []

    def _fake_loader(library: str) -> gl_typed_gen.LoadFn:
        opened.append(library)
        return {"glClear": 0x10}.get

    monkeypatch.setattr(gl_typed_gen, "library_loader", _fake_loader)
    selection = gl_typed_gen.RegistrySelection(
        "gl", gl_typed_gen.ApiVersion(3, 2), "core", "all", frozenset(), fixture_xml
    )

    gl_typed_gen.run_discovery(
        gl_typed_gen.DiscoveryConfig("probe", selection, "libGL.so.1")
    )

    assert opened == ["libGL.so.1"]
    assert "  Loaded:  1 / 7" in capsys.readouterr().out


def test_run_generate_writes_output_file(
    capsys: pytest.CaptureFixture[str], fixture_xml: Path, tmp_path: Path
) -> None:
    output = tmp_path / "nested" / "gl.rs"
    selection = gl_typed_gen.RegistrySelection(
        "gl", gl_typed_gen.ApiVersion(3, 2), "core", "all", frozenset(), fixture_xml
    )

    summary = gl_typed_gen.run_generate(
        gl_typed_gen.GenerateConfig(selection, "bitmask-ops", output)
    )

    written = output.read_text(encoding="utf-8")
    assert "impl ::std::ops::BitOr for $Name {" in written
    assert summary.output_label == str(output)
    assert summary.byte_count == len(written.encode("utf-8"))
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Parsing:" in captured.err
