import pytest

import gl_typed_gen


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1.0", gl_typed_gen.ApiVersion(1, 0)),
        ("4.5", gl_typed_gen.ApiVersion(4, 5)),
        ("10.12", gl_typed_gen.ApiVersion(10, 12)),
    ],
)
def test_parse_version_accepts_major_minor(
    raw: str, expected: gl_typed_gen.ApiVersion
) -> None:
    assert gl_typed_gen.parse_version(raw) == expected


@pytest.mark.parametrize("raw", ["", "4", "4.5.1", "four.five", " 4.5"])
def test_parse_version_rejects_other_shapes(raw: str) -> None:
    with pytest.raises(gl_typed_gen.ConfigError) as exc_info:
        gl_typed_gen.parse_version(raw)

    assert exc_info.value.code == "INVALID_VERSION"


def test_api_version_orders_numerically_and_prints() -> None:
    assert gl_typed_gen.ApiVersion(3, 10) > gl_typed_gen.ApiVersion(3, 2)
    assert str(gl_typed_gen.ApiVersion(4, 6)) == "4.6"


def test_parse_feature_number_skips_malformed() -> None:
    assert gl_typed_gen.parse_feature_number("3.2") == gl_typed_gen.ApiVersion(3, 2)
    assert gl_typed_gen.parse_feature_number("") is None
    assert gl_typed_gen.parse_feature_number("1.x") is None


def test_api_identity_str_includes_profile_when_set() -> None:
    version = gl_typed_gen.ApiVersion(4, 5)

    assert str(gl_typed_gen.ApiIdentity("gl", version, "core")) == "gl 4.5 (core)"
    assert str(gl_typed_gen.ApiIdentity("egl", version, None)) == "egl 4.5"
