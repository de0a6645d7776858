from collections.abc import Callable

import pytest

import gl_typed_gen

Projection = gl_typed_gen.ParamProjection


@pytest.fixture
def clear_registry(
    make_registry: Callable[..., gl_typed_gen.Registry],
    make_command: Callable[..., gl_typed_gen.CommandDef],
) -> gl_typed_gen.Registry:
    return make_registry(
        cmds=[
            make_command(
                "Clear", [("mask", "types::GLbitfield", "ClearBufferMask")]
            ),
            make_command(
                "DrawBuffers",
                [
                    ("n", "types::GLsizei", None),
                    ("bufs", "*const types::GLenum", "DrawBufferMode"),
                ],
            ),
            make_command("Hint", [("target", "types::GLenum", "UnknownGroup")]),
        ],
        groups=[
            gl_typed_gen.GroupDef("ClearBufferMask", (), gl_typed_gen.FLAVOR_BITMASK),
            gl_typed_gen.GroupDef("DrawBufferMode", ()),
        ],
    )


def test_grouped_param_renders_wrapper_type(
    clear_registry: gl_typed_gen.Registry,
) -> None:
    clear = clear_registry.cmds[0]

    assert gl_typed_gen.render_parameters(
        clear, clear_registry, Projection.IDENT_AND_TYPE
    ) == ["mask: enums::ClearBufferMask"]
    assert gl_typed_gen.render_parameters(
        clear, clear_registry, Projection.TYPE_ONLY
    ) == ["enums::ClearBufferMask"]
    assert gl_typed_gen.render_parameters(
        clear, clear_registry, Projection.IDENT_ONLY
    ) == ["mask"]


def test_unknown_group_falls_back_to_raw_type(
    clear_registry: gl_typed_gen.Registry,
) -> None:
    hint = clear_registry.cmds[2]

    assert gl_typed_gen.render_parameters(
        hint, clear_registry, Projection.TYPE_ONLY
    ) == ["types::GLenum"]


def test_pointer_param_keeps_pointer_levels(
    clear_registry: gl_typed_gen.Registry,
) -> None:
    draw_buffers = clear_registry.cmds[1]

    assert gl_typed_gen.render_parameters(
        draw_buffers, clear_registry, Projection.IDENT_AND_TYPE
    ) == ["n: types::GLsizei", "bufs: *const enums::DrawBufferMode"]


def test_no_params_renders_empty_list(
    make_registry: Callable[..., gl_typed_gen.Registry],
    make_command: Callable[..., gl_typed_gen.CommandDef],
) -> None:
    registry = make_registry(cmds=[make_command("Finish")])

    for projection in Projection:
        assert gl_typed_gen.render_parameters(registry.cmds[0], registry, projection) == []


@pytest.mark.parametrize(
    ("decl", "expected"),
    [
        ("void", "()"),
        ("GLenum", "types::GLenum"),
        ("const GLubyte *", "*const types::GLubyte"),
        ("void *", "*mut __gl_imports::raw::c_void"),
        ("const void *", "*const __gl_imports::raw::c_void"),
        ("const GLchar *const*", "*const *const types::GLchar"),
        ("GLchar **", "*mut *mut types::GLchar"),
        ("struct _cl_context *", "*mut types::_cl_context"),
        ("int", "__gl_imports::raw::c_int"),
        ("unsigned long", "__gl_imports::raw::c_ulong"),
        ("int64_t *", "*mut i64"),
        ("GLvoid", "()"),
    ],
)
def test_c_to_rust_type(decl: str, expected: str) -> None:
    assert gl_typed_gen.c_to_rust_type(decl) == expected
