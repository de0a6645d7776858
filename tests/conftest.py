import argparse
import sys
import xml.etree.ElementTree as ET
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import gl_typed_gen  # noqa: E402

FIXTURE_XML = GENERATOR_DIR / "tests" / "fixtures" / "gl_minimal.xml"


@pytest.fixture
def fixture_xml() -> Path:
    return FIXTURE_XML


@pytest.fixture
def existing_paths(tmp_path: Path) -> dict[str, Path]:
    registry_xml = tmp_path / "gl.xml"
    registry_xml.write_text("<registry />\n", encoding="utf-8")
    return {
        "registry_xml": registry_xml,
        "output": tmp_path / "out" / "bindings.rs",
    }


@pytest.fixture
def missing_path(tmp_path: Path) -> Path:
    return tmp_path / "missing"


@pytest.fixture
def make_args(existing_paths: dict[str, Path]) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "api": "gl",
            "version": "4.5",
            "profile": "core",
            "fallbacks": "all",
            "ext": None,
            "hooks": "macro",
            "registry_xml": existing_paths["registry_xml"],
            "output": None,
            "list_groups": False,
            "probe": None,
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args


@pytest.fixture
def make_registry_root() -> Callable[[str], ET.Element]:
    def _make_registry_root(inner_xml: str) -> ET.Element:
        return ET.fromstring(f"<registry>{inner_xml}</registry>")

    return _make_registry_root


@pytest.fixture
def fixture_root() -> ET.Element:
    return ET.parse(FIXTURE_XML).getroot()


@pytest.fixture
def fixture_registry(fixture_root: ET.Element) -> gl_typed_gen.Registry:
    return gl_typed_gen.parse_registry(
        fixture_root, "gl", gl_typed_gen.ApiVersion(3, 2), "core"
    )


@pytest.fixture
def make_command() -> Callable[..., gl_typed_gen.CommandDef]:
    def _make_command(
        ident: str,
        params: list[tuple[str, str, str | None]] | None = None,
        return_type: str = "()",
    ) -> gl_typed_gen.CommandDef:
        return gl_typed_gen.CommandDef(
            ident=ident,
            return_type=return_type,
            params=tuple(
                gl_typed_gen.CommandParam(ident=name, ty=ty, group=group)
                for name, ty, group in (params or [])
            ),
        )

    return _make_command


@pytest.fixture
def make_registry() -> Callable[..., gl_typed_gen.Registry]:
    def _make_registry(
        *,
        api: str = "gl",
        version: tuple[int, int] = (4, 5),
        enums: list[gl_typed_gen.EnumDef] | None = None,
        cmds: list[gl_typed_gen.CommandDef] | None = None,
        aliases: dict[str, tuple[str, ...]] | None = None,
        groups: list[gl_typed_gen.GroupDef] | None = None,
        fallbacks: str = "all",
    ) -> gl_typed_gen.Registry:
        return gl_typed_gen.Registry(
            api=gl_typed_gen.ApiIdentity(
                api=api,
                version=gl_typed_gen.ApiVersion(*version),
                profile="core",
                fallbacks=fallbacks,
            ),
            enums=tuple(enums or []),
            cmds=tuple(cmds or []),
            aliases=dict(aliases or {}),
            groups={group.ident: group for group in (groups or [])},
        )

    return _make_registry
