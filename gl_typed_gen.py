"""Typed OpenGL-family bindings generator for Rust.

Generates a Rust bindings module from a Khronos-style registry (gl.xml,
egl.xml, glx.xml, wgl.xml): a function-pointer table resolved at runtime with
per-command fallback names, plus one strongly-typed wrapper struct per enum
group in place of the flat constant space.

Usage:
    python gl_typed_gen.py --api gl --version 4.5 --profile core \\
        --registry-xml gl.xml --output src/gl_bindings.rs
"""

import argparse
import ctypes
import enum
import io
import re
import sys
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple, TextIO

GENERATOR_NAME = "gl-typed-gen"


# ===--- CLI config contracts ---=== #


class ApiVersion(NamedTuple):
    major: int
    minor: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


@dataclass(frozen=True)
class RegistrySelection:
    """Which slice of the registry file a run operates on."""

    api: str
    version: ApiVersion
    profile: str | None
    fallbacks: str
    extensions: frozenset[str]
    registry_xml: Path


@dataclass(frozen=True)
class GenerateConfig:
    selection: RegistrySelection
    hooks: str
    output: Path | None


@dataclass(frozen=True)
class DiscoveryConfig:
    command: str
    selection: RegistrySelection
    library: str | None


VALID_ERROR_CODES = {
    "INVALID_VERSION",
    "MISSING_VERSION",
    "INVALID_API",
    "INVALID_EXTENSION_NAME",
    "CONFLICT_GENERATE_DISCOVERY",
    "PATH_NOT_FOUND",
}
VALID_APIS = ("gl", "glcore", "gles1", "gles2", "glsc2", "glx", "wgl", "egl")
VALID_PROFILES = ("core", "compatibility")
VALID_FALLBACKS = ("all", "none")
VALID_HOOKS = ("macro", "bitmask-ops")
_VERSION_RE = re.compile(r"^(\d+)\.(\d+)$")
_EXT_NAME_RE = re.compile(r"^(GL|GLX|WGL|EGL)_[A-Za-z0-9]+_[A-Za-z0-9_]+$")


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


def parse_version(raw: str) -> ApiVersion:
    match = _VERSION_RE.match(raw)
    if match is None:
        raise ConfigError(
            "INVALID_VERSION",
            f"Unsupported API version: {raw}",
            "Use <major>.<minor>, for example 4.5 or 3.2.",
        )
    return ApiVersion(int(match.group(1)), int(match.group(2)))


def validate_api(name: str) -> str:
    if name in VALID_APIS:
        return name
    raise ConfigError(
        "INVALID_API",
        f"Unknown API: {name}",
        f"Use one of: {', '.join(VALID_APIS)}.",
    )


def validate_extension_name(name: str) -> str:
    if _EXT_NAME_RE.match(name):
        return name
    raise ConfigError(
        "INVALID_EXTENSION_NAME",
        f"Invalid extension name: {name}",
        "Extension names must match GL_<VENDOR>_<name> (for example GL_ARB_debug_output).",
    )


def validate_path_exists(
    path: Path | None, flag: str, suggestion: str | None = None
) -> Path:
    if path is None:
        raise ConfigError(
            "PATH_NOT_FOUND",
            f"{flag} is required: no path provided.",
            suggestion or f"Pass the path explicitly: {flag} /path/to/resource",
        )
    if path.exists():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Path for {flag} does not exist: {path}",
        suggestion or "Provide an existing path for this flag.",
    )


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate typed OpenGL-family bindings for Rust"
    )

    parser.add_argument("--api", type=str, default="gl")
    parser.add_argument("--version", type=str, default=None)
    parser.add_argument("--profile", choices=VALID_PROFILES, default="core")
    parser.add_argument("--fallbacks", choices=VALID_FALLBACKS, default="all")
    parser.add_argument("--ext", action="append", nargs="+", default=None)
    parser.add_argument("--hooks", choices=VALID_HOOKS, default="macro")
    parser.add_argument("--registry-xml", type=Path, default=None)
    parser.add_argument("--output", type=Path, default=None)

    discovery_group = parser.add_mutually_exclusive_group()
    discovery_group.add_argument("--list-groups", action="store_true", default=False)
    discovery_group.add_argument("--probe", type=str, default=None)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def normalize_extensions(raw_extensions: object) -> tuple[str, ...]:
    if raw_extensions is None:
        return tuple()
    if not isinstance(raw_extensions, list):
        raise ConfigError(
            "INVALID_EXTENSION_NAME",
            f"Invalid --ext value type: {type(raw_extensions).__name__}",
            "Pass extension names as --ext GL_VENDOR_name.",
        )

    normalized: list[str] = []
    for entry in raw_extensions:
        names = entry if isinstance(entry, list) else [entry]
        for name in names:
            if not isinstance(name, str):
                raise ConfigError(
                    "INVALID_EXTENSION_NAME",
                    f"Invalid extension name type: {type(name).__name__}",
                    "Pass extension names as --ext GL_VENDOR_name.",
                )
            normalized.append(name)

    return tuple(normalized)


def validate_config(args: argparse.Namespace) -> GenerateConfig | DiscoveryConfig:
    has_discovery_command = bool(args.list_groups or args.probe)

    if has_discovery_command and args.output is not None:
        raise ConfigError(
            "CONFLICT_GENERATE_DISCOVERY",
            "--output cannot be combined with discovery flags.",
            "Choose either generate mode or one discovery command.",
        )

    api = validate_api(args.api)
    if args.version is None:
        raise ConfigError(
            "MISSING_VERSION",
            "A registry version is required (--version).",
            "Pass --version with the API version to select, for example --version 4.5.",
        )
    version = parse_version(args.version)
    registry_xml = validate_path_exists(
        args.registry_xml,
        "--registry-xml",
        "Download the registry from the Khronos OpenGL-Registry repository:\n"
        "  https://github.com/KhronosGroup/OpenGL-Registry/blob/main/xml/gl.xml\n"
        "Or pass a custom path: --registry-xml /your/path/to/gl.xml",
    )
    extensions = frozenset(
        validate_extension_name(name) for name in normalize_extensions(args.ext)
    )
    selection = RegistrySelection(
        api=api,
        version=version,
        profile=args.profile,
        fallbacks=args.fallbacks,
        extensions=extensions,
        registry_xml=registry_xml,
    )

    if has_discovery_command:
        command = "list-groups" if args.list_groups else "probe"
        return DiscoveryConfig(
            command=command, selection=selection, library=args.probe
        )

    return GenerateConfig(selection=selection, hooks=args.hooks, output=args.output)


def build_config(argv: list[str] | None = None) -> GenerateConfig | DiscoveryConfig:
    return validate_config(parse_args(argv))


# ===--- Constants ---=== #

GL_FAMILY = {"gl", "glcore", "gles1", "gles2", "glsc2"}

SYMBOL_PREFIXES = {
    "gl": "gl",
    "glcore": "gl",
    "gles1": "gl",
    "gles2": "gl",
    "glsc2": "gl",
    "glx": "glX",
    "wgl": "wgl",
    "egl": "egl",
}

STRUCT_NAMES = {
    "gl": "Gl",
    "glcore": "GlCore",
    "gles1": "Gles1",
    "gles2": "Gles2",
    "glsc2": "Glsc2",
    "glx": "Glx",
    "wgl": "Wgl",
    "egl": "Egl",
}

ENUM_PREFIXES = {
    "glx": "GLX_",
    "wgl": "WGL_",
    "egl": "EGL_",
}

# glcore shares the desktop GL feature blocks; the profile does the filtering.
FEATURE_APIS = {"glcore": "gl"}

RUST_RESERVED = {
    "as", "box", "break", "const", "continue", "crate", "else", "enum", "extern",
    "false", "fn", "for", "if", "impl", "in", "let", "loop", "match", "mod",
    "move", "mut", "pub", "ref", "return", "self", "static", "struct", "super",
    "trait", "true", "type", "unsafe", "use", "where", "while", "yield",
}

RAW = "__gl_imports::raw"

C_TO_RUST = {
    "char": f"{RAW}::c_char",
    "unsigned char": f"{RAW}::c_uchar",
    "short": f"{RAW}::c_short",
    "unsigned short": f"{RAW}::c_ushort",
    "int": f"{RAW}::c_int",
    "unsigned int": f"{RAW}::c_uint",
    "long": f"{RAW}::c_long",
    "unsigned long": f"{RAW}::c_ulong",
    "float": f"{RAW}::c_float",
    "double": f"{RAW}::c_double",
    "int32_t": "i32",
    "int64_t": "i64",
    "uint32_t": "u32",
    "uint64_t": "u64",
    "ptrdiff_t": "isize",
    "size_t": "usize",
}

INTEGER_TYPES = {
    "GLenum", "GLboolean", "GLbitfield", "GLbyte", "GLshort", "GLint", "GLubyte",
    "GLushort", "GLuint", "GLsizei", "GLfixed", "GLint64", "GLuint64",
    "GLintptr", "GLsizeiptr", "EGLint", "EGLenum", "EGLBoolean", "EGLAttrib",
    "EGLuint64KHR", "EGLTime", "EGLTimeKHR", "EGLnsecsANDROID",
}

BOOLEAN_GROUP = "Boolean"
GROUP_NAMESPACE = "enums"
FLAVOR_PLAIN = "plain"
FLAVOR_BITMASK = "bitmask"


# ===--- Registry model ---=== #


@dataclass(frozen=True)
class ApiIdentity:
    api: str
    version: ApiVersion
    profile: str | None = None
    fallbacks: str = "all"

    def __str__(self) -> str:
        if self.profile:
            return f"{self.api} {self.version} ({self.profile})"
        return f"{self.api} {self.version}"


@dataclass(frozen=True)
class EnumDef:
    ident: str
    value: str
    ty: str
    cast: bool = False


@dataclass(frozen=True)
class CommandParam:
    ident: str
    ty: str
    group: str | None = None


@dataclass(frozen=True)
class CommandDef:
    ident: str
    return_type: str
    params: tuple[CommandParam, ...]


@dataclass(frozen=True)
class GroupDef:
    ident: str
    enums: tuple[str, ...]
    flavor: str | None = None

    @property
    def is_bitmask(self) -> bool:
        return self.flavor == FLAVOR_BITMASK


@dataclass(frozen=True)
class Registry:
    """Everything one generation run needs, already filtered to one API slice.

    Attributes:
        api: API identity the bindings are generated for.
        enums: Flat constants in registry order. Identifiers are unique.
        cmds: Commands in registry order. Identifiers are unique.
        aliases: Command identifier -> fallback command identifiers, in the
            order they are tried. Targets need not be commands of this registry.
        groups: Group identifier -> group, in registry order.
    """

    api: ApiIdentity
    enums: tuple[EnumDef, ...]
    cmds: tuple[CommandDef, ...]
    aliases: dict[str, tuple[str, ...]]
    groups: dict[str, GroupDef]


# ===--- Symbol naming ---=== #


def _api_name(api: "ApiIdentity | str") -> str:
    return api.api if isinstance(api, ApiIdentity) else api


def symbol_name(api: "ApiIdentity | str", ident: str) -> str:
    """Exported symbol for a command of the given API, e.g. Clear -> glClear.

    Unknown APIs get the identifier back unchanged.
    """
    return SYMBOL_PREFIXES.get(_api_name(api), "") + ident


def struct_name(api: "ApiIdentity | str") -> str:
    name = _api_name(api)
    if name in STRUCT_NAMES:
        return STRUCT_NAMES[name]
    parts = re.findall(r"[A-Za-z0-9]+", name)
    return "".join(part[:1].upper() + part[1:] for part in parts) or "Api"


# ===--- Basic emitter ---=== #

_HEADER_BORDER = "// x-------------------------------------------x //"

GL_TYPES = (
    "// Common types from OpenGL 1.1",
    "pub type GLenum = super::{raw}::c_uint;",
    "pub type GLboolean = super::{raw}::c_uchar;",
    "pub type GLbitfield = super::{raw}::c_uint;",
    "pub type GLvoid = super::{raw}::c_void;",
    "pub type GLbyte = super::{raw}::c_char;",
    "pub type GLshort = super::{raw}::c_short;",
    "pub type GLint = super::{raw}::c_int;",
    "pub type GLclampx = super::{raw}::c_int;",
    "pub type GLubyte = super::{raw}::c_uchar;",
    "pub type GLushort = super::{raw}::c_ushort;",
    "pub type GLuint = super::{raw}::c_uint;",
    "pub type GLsizei = super::{raw}::c_int;",
    "pub type GLfloat = super::{raw}::c_float;",
    "pub type GLclampf = super::{raw}::c_float;",
    "pub type GLdouble = super::{raw}::c_double;",
    "pub type GLclampd = super::{raw}::c_double;",
    "pub type GLeglImageOES = *const super::{raw}::c_void;",
    "pub type GLchar = super::{raw}::c_char;",
    "pub type GLcharARB = super::{raw}::c_char;",
    '#[cfg(target_os = "macos")]',
    "pub type GLhandleARB = *const super::{raw}::c_void;",
    '#[cfg(not(target_os = "macos"))]',
    "pub type GLhandleARB = super::{raw}::c_uint;",
    "pub type GLhalfARB = super::{raw}::c_ushort;",
    "pub type GLhalf = super::{raw}::c_ushort;",
    "// Must be 32 bits",
    "pub type GLfixed = GLint;",
    "pub type GLintptr = isize;",
    "pub type GLsizeiptr = isize;",
    "pub type GLint64 = i64;",
    "pub type GLuint64 = u64;",
    "pub type GLintptrARB = isize;",
    "pub type GLsizeiptrARB = isize;",
    "pub type GLint64EXT = i64;",
    "pub type GLuint64EXT = u64;",
    "pub type GLhalfNV = super::{raw}::c_ushort;",
    "pub type GLvdpauSurfaceNV = GLintptr;",
    "pub enum __GLsync {}",
    "pub type GLsync = *const __GLsync;",
    "// compatible with OpenCL cl_context",
    "pub enum _cl_context {}",
    "pub enum _cl_event {}",
    'pub type GLDEBUGPROC = Option<extern "system" fn(source: GLenum, gltype: GLenum, id: GLuint, severity: GLenum, length: GLsizei, message: *const GLchar, userParam: *mut super::{raw}::c_void)>;',
    'pub type GLDEBUGPROCARB = Option<extern "system" fn(source: GLenum, gltype: GLenum, id: GLuint, severity: GLenum, length: GLsizei, message: *const GLchar, userParam: *mut super::{raw}::c_void)>;',
    'pub type GLDEBUGPROCKHR = Option<extern "system" fn(source: GLenum, gltype: GLenum, id: GLuint, severity: GLenum, length: GLsizei, message: *const GLchar, userParam: *mut super::{raw}::c_void)>;',
    'pub type GLDEBUGPROCAMD = Option<extern "system" fn(id: GLuint, category: GLenum, severity: GLenum, length: GLsizei, message: *const GLchar, userParam: *mut super::{raw}::c_void)>;',
    'pub type GLVULKANPROCNV = Option<extern "system" fn()>;',
)

GLX_TYPES = (
    "pub type XID = super::{raw}::c_ulong;",
    "pub type Bool = super::{raw}::c_int;",
    "pub type Status = super::{raw}::c_int;",
    "pub enum Display {}",
    "pub enum Visual {}",
    "pub enum XVisualInfo {}",
    "pub type VisualID = super::{raw}::c_ulong;",
    "pub type Font = XID;",
    "pub type Pixmap = XID;",
    "pub type Window = XID;",
    "pub type Colormap = XID;",
    "pub type GLXFBConfig = *const super::{raw}::c_void;",
    "pub type GLXFBConfigSGIX = *const super::{raw}::c_void;",
    "pub type GLXContext = *const super::{raw}::c_void;",
    "pub type GLXContextID = XID;",
    "pub type GLXDrawable = XID;",
    "pub type GLXPixmap = XID;",
    "pub type GLXWindow = XID;",
    "pub type GLXPbuffer = XID;",
    "pub type GLXPbufferSGIX = XID;",
    "pub type GLXVideoCaptureDeviceNV = XID;",
    "pub type GLXVideoDeviceNV = super::{raw}::c_uint;",
    "pub type GLXVideoSourceSGIX = XID;",
    "pub type GLXHyperpipeNetworkSGIX = super::{raw}::c_void;",
    "pub type GLXHyperpipeConfigSGIX = super::{raw}::c_void;",
    "pub enum __GLXextFuncPtr_fn {}",
    "pub type __GLXextFuncPtr = *mut __GLXextFuncPtr_fn;",
)

WGL_TYPES = (
    "pub type BOOL = super::{raw}::c_int;",
    "pub type BYTE = super::{raw}::c_uchar;",
    "pub type DWORD = super::{raw}::c_ulong;",
    "pub type FLOAT = super::{raw}::c_float;",
    "pub type INT = super::{raw}::c_int;",
    "pub type INT32 = i32;",
    "pub type INT64 = i64;",
    "pub type UINT = super::{raw}::c_uint;",
    "pub type USHORT = super::{raw}::c_ushort;",
    "pub type VOID = ();",
    "pub type COLORREF = DWORD;",
    "pub type HANDLE = *const super::{raw}::c_void;",
    "pub type HDC = HANDLE;",
    "pub type HENHMETAFILE = HANDLE;",
    "pub type HGLRC = *const super::{raw}::c_void;",
    "pub type HGPUNV = HANDLE;",
    "pub type HPBUFFERARB = HANDLE;",
    "pub type HPBUFFEREXT = HANDLE;",
    "pub type HPVIDEODEV = HANDLE;",
    "pub type HVIDEOINPUTDEVICENV = HANDLE;",
    "pub type HVIDEOOUTPUTDEVICENV = HANDLE;",
    "pub type LPCSTR = *const super::{raw}::c_char;",
    "pub type LPVOID = *const super::{raw}::c_void;",
    "pub type PROC = HANDLE;",
    "pub enum PIXELFORMATDESCRIPTOR {}",
    "pub enum LAYERPLANEDESCRIPTOR {}",
    "pub enum GLYPHMETRICSFLOAT {}",
    "pub enum POINTFLOAT {}",
    "pub enum RECT {}",
    "pub enum _GPU_DEVICE {}",
    "pub type PGPU_DEVICE = *mut _GPU_DEVICE;",
)

EGL_TYPES = (
    "pub type khronos_utime_nanoseconds_t = u64;",
    "pub type khronos_uint64_t = u64;",
    "pub type khronos_ssize_t = isize;",
    "pub type EGLint = i32;",
    "pub type EGLBoolean = super::{raw}::c_uint;",
    "pub type EGLenum = super::{raw}::c_uint;",
    "pub type EGLAttrib = isize;",
    "pub type EGLAttribKHR = isize;",
    "pub type EGLNativeDisplayType = *const super::{raw}::c_void;",
    "pub type EGLNativePixmapType = *const super::{raw}::c_void;",
    "pub type EGLNativeWindowType = *const super::{raw}::c_void;",
    "pub type NativeDisplayType = EGLNativeDisplayType;",
    "pub type NativePixmapType = EGLNativePixmapType;",
    "pub type NativeWindowType = EGLNativeWindowType;",
    "pub type EGLConfig = *const super::{raw}::c_void;",
    "pub type EGLContext = *const super::{raw}::c_void;",
    "pub type EGLDisplay = *const super::{raw}::c_void;",
    "pub type EGLSurface = *const super::{raw}::c_void;",
    "pub type EGLClientBuffer = *const super::{raw}::c_void;",
    "pub type EGLImage = *const super::{raw}::c_void;",
    "pub type EGLImageKHR = *const super::{raw}::c_void;",
    "pub type EGLSync = *const super::{raw}::c_void;",
    "pub type EGLSyncKHR = *const super::{raw}::c_void;",
    "pub type EGLSyncNV = *const super::{raw}::c_void;",
    "pub type EGLStreamKHR = *const super::{raw}::c_void;",
    "pub type EGLDeviceEXT = *const super::{raw}::c_void;",
    "pub type EGLOutputLayerEXT = *const super::{raw}::c_void;",
    "pub type EGLOutputPortEXT = *const super::{raw}::c_void;",
    "pub type EGLLabelKHR = *const super::{raw}::c_void;",
    "pub type EGLObjectKHR = *const super::{raw}::c_void;",
    "pub type EGLTime = khronos_utime_nanoseconds_t;",
    "pub type EGLTimeKHR = khronos_utime_nanoseconds_t;",
    "pub type EGLTimeNV = khronos_utime_nanoseconds_t;",
    "pub type EGLuint64KHR = khronos_uint64_t;",
    "pub type EGLuint64NV = khronos_utime_nanoseconds_t;",
    "pub type EGLnsecsANDROID = i64;",
    "pub type EGLsizeiANDROID = khronos_ssize_t;",
    "pub type EGLNativeFileDescriptorKHR = super::{raw}::c_int;",
    'pub type __eglMustCastToProperFunctionPointerType = extern "system" fn() -> ();',
    'pub type EGLDEBUGPROCKHR = Option<extern "system" fn(error: EGLenum, command: *const super::{raw}::c_char, messageType: EGLint, threadLabel: EGLLabelKHR, objectLabel: EGLLabelKHR, message: *const super::{raw}::c_char)>;',
)

API_TYPES = {
    "glx": GL_TYPES + GLX_TYPES,
    "wgl": GL_TYPES + WGL_TYPES,
    "egl": EGL_TYPES,
}


def enum_repr_types(api: "ApiIdentity | str") -> tuple[str, str]:
    """(enumeration, boolean) representation type names for an API."""
    if _api_name(api) == "egl":
        return "EGLenum", "EGLBoolean"
    return "GLenum", "GLboolean"


def generate_header(registry: Registry) -> list[str]:
    api = registry.api
    return [
        _HEADER_BORDER,
        f"// | {struct_name(api)} {api.version} bindings for Rust",
        f"// | Generated by {GENERATOR_NAME}",
        f"// | API: {api}",
        f"// | Fallbacks: {api.fallbacks}",
        _HEADER_BORDER,
        "",
        "mod __gl_imports {",
        "    pub use std::mem;",
        "    pub use std::marker::Send;",
        "    pub use std::os::raw;",
        "}",
    ]


def gen_types(api: "ApiIdentity | str") -> list[str]:
    templates = API_TYPES.get(_api_name(api), GL_TYPES)
    return [line.replace("{raw}", RAW) for line in templates]


def generate_type_aliases(registry: Registry) -> list[str]:
    lines = [
        "pub mod types {",
        "    #![allow(non_camel_case_types, non_snake_case, dead_code, missing_copy_implementations)]",
        "",
    ]
    lines.extend(f"    {line}" for line in gen_types(registry.api))
    lines.append("}")
    return lines


def gen_enum_item(enm: EnumDef, types_prefix: str) -> str:
    cast_suffix = f" as {types_prefix}{enm.ty}" if enm.cast else ""
    return (
        f"#[allow(dead_code, non_upper_case_globals)] "
        f"pub const {enm.ident}: {types_prefix}{enm.ty} = {enm.value}{cast_suffix};"
    )


def generate_enums(registry: Registry) -> list[str]:
    return [gen_enum_item(enm, "types::") for enm in registry.enums]


# ===--- Group partitioning ---=== #


def partition_group(
    group: GroupDef, enum_values: dict[str, str]
) -> tuple[tuple[str, str], ...]:
    """Return the constants a group exposes, as (ident, value) pairs.

    Members are kept in declaration order. A member is dropped when it was
    already seen in this group or when the registry has no enum by that name.
    Distinct identifiers that share a value are both kept.
    """
    seen: set[str] = set()
    constants: list[tuple[str, str]] = []
    for ident in group.enums:
        if ident in seen:
            continue
        seen.add(ident)
        if ident not in enum_values:
            continue
        constants.append((ident, enum_values[ident]))
    return tuple(constants)


def partition_groups(registry: Registry) -> dict[str, tuple[tuple[str, str], ...]]:
    enum_values = {enm.ident: enm.value for enm in registry.enums}
    return {
        group.ident: partition_group(group, enum_values)
        for group in registry.groups.values()
    }


# ===--- Group type emission ---=== #


class GroupHooks:
    """Extension point for traits implemented on generated group types.

    The group emitter calls `enum_traits` for every group and `bitmask_traits`
    for every bitmask group, splicing the returned Rust lines into the `enums`
    module right after the group's Debug impl. `definitions` is emitted once,
    before the `enums` module. Override per group name to specialize.
    """

    def definitions(self) -> list[str]:
        return []

    def enum_traits(self, type_name: str) -> list[str]:
        return []

    def bitmask_traits(self, type_name: str) -> list[str]:
        return []


class MacroHooks(GroupHooks):
    """Emit each hook as a `macro_rules!` invocation with an empty body."""

    enum_macro = "impl_enum_traits"
    bitmask_macro = "impl_enum_bitmask_traits"

    def enum_macro_body(self) -> list[str]:
        return []

    def bitmask_macro_body(self) -> list[str]:
        return []

    def definitions(self) -> list[str]:
        lines: list[str] = []
        for macro, body in (
            (self.enum_macro, self.enum_macro_body()),
            (self.bitmask_macro, self.bitmask_macro_body()),
        ):
            lines.append(f"macro_rules! {macro} {{")
            lines.append("    ($Name:ident) => {")
            lines.extend(f"        {line}" if line else "" for line in body)
            lines.append("    };")
            lines.append("}")
            lines.append("")
        return lines

    def enum_traits(self, type_name: str) -> list[str]:
        return [f"{self.enum_macro}!({type_name});"]

    def bitmask_traits(self, type_name: str) -> list[str]:
        return [f"{self.bitmask_macro}!({type_name});"]


_BITMASK_OPERATORS = (
    ("BitOr", "bitor", "|"),
    ("BitAnd", "bitand", "&"),
    ("BitXor", "bitxor", "^"),
)

_BITMASK_ASSIGN_OPERATORS = (
    ("BitOrAssign", "bitor_assign", "|="),
    ("BitAndAssign", "bitand_assign", "&="),
    ("BitXorAssign", "bitxor_assign", "^="),
)


class BitmaskOperatorHooks(MacroHooks):
    """MacroHooks whose bitmask hook implements the bitwise operators."""

    def bitmask_macro_body(self) -> list[str]:
        lines: list[str] = []
        for trait, method, op in _BITMASK_OPERATORS:
            lines.extend(
                [
                    f"impl ::std::ops::{trait} for $Name {{",
                    "    type Output = $Name;",
                    "    #[inline]",
                    f"    fn {method}(self, rhs: $Name) -> $Name {{",
                    f"        $Name(self.0 {op} rhs.0)",
                    "    }",
                    "}",
                ]
            )
        for trait, method, op in _BITMASK_ASSIGN_OPERATORS:
            lines.extend(
                [
                    f"impl ::std::ops::{trait} for $Name {{",
                    "    #[inline]",
                    f"    fn {method}(&mut self, rhs: $Name) {{",
                    f"        self.0 {op} rhs.0;",
                    "    }",
                    "}",
                ]
            )
        lines.extend(
            [
                "impl ::std::ops::Not for $Name {",
                "    type Output = $Name;",
                "    #[inline]",
                "    fn not(self) -> $Name {",
                "        $Name(!self.0)",
                "    }",
                "}",
                "impl $Name {",
                "    #[inline]",
                "    pub fn contains(self, other: $Name) -> bool {",
                "        self.0 & other.0 == other.0",
                "    }",
                "    #[inline]",
                "    pub fn is_empty(self) -> bool {",
                "        self.0 == 0",
                "    }",
                "}",
            ]
        )
        return lines


HOOKS: dict[str, Callable[[], GroupHooks]] = {
    "macro": MacroHooks,
    "bitmask-ops": BitmaskOperatorHooks,
}


def group_repr_type(api: "ApiIdentity | str", group: GroupDef) -> str:
    enum_type, boolean_type = enum_repr_types(api)
    return boolean_type if group.ident == BOOLEAN_GROUP else enum_type


def group_constant_value(ident: str, enm: EnumDef | None, repr_type: str) -> str:
    """Rust expression for one typed group constant.

    A flat constant declared as a pointer (e.g. `EGL_CAST(EGLContext,0)`)
    cannot be cast to an integer in a const, so its raw literal is used.
    """
    if enm is None or enm.ty == repr_type:
        return f"super::{ident}"
    if enm.cast and enm.ty not in INTEGER_TYPES:
        return f"{enm.value} as types::{repr_type}"
    return f"super::{ident} as types::{repr_type}"


def generate_group_type(
    group: GroupDef,
    constants: tuple[tuple[str, str], ...],
    repr_type: str,
    enum_defs: dict[str, EnumDef],
    hooks: GroupHooks,
) -> list[str]:
    name = group.ident
    lines = [
        "#[repr(transparent)]",
        "#[derive(Copy, Clone, PartialEq, Eq, Hash)]",
        f"pub struct {name}(pub types::{repr_type});",
        "",
        f"impl {name} {{",
    ]
    for ident, _value in constants:
        value = group_constant_value(ident, enum_defs.get(ident), repr_type)
        lines.append(f"    pub const {ident}: {name} = {name}({value});")
    if group.is_bitmask:
        lines.append(f"    pub const Empty: {name} = {name}(0);")
    lines.append("}")
    lines.append("")

    # Aliased values make later arms unreachable; the first declared name wins.
    lines.append(f"impl ::std::fmt::Debug for {name} {{")
    lines.append(
        "    fn fmt(&self, fmt: &mut ::std::fmt::Formatter) -> ::std::fmt::Result {"
    )
    lines.append("        match *self {")
    for ident, _value in constants:
        lines.append(f'            {name}::{ident} => write!(fmt, "{name}({ident})"),')
    lines.append(f'            _ => write!(fmt, "{name}({{}})", self.0),')
    lines.append("        }")
    lines.append("    }")
    lines.append("}")
    lines.append("")

    lines.extend(hooks.enum_traits(name))
    if group.is_bitmask:
        lines.extend(hooks.bitmask_traits(name))
    lines.append("")
    return lines


def generate_enum_groups(
    registry: Registry, hooks: GroupHooks | None = None
) -> list[str]:
    if hooks is None:
        hooks = MacroHooks()
    enum_defs = {enm.ident: enm for enm in registry.enums}
    constant_sets = partition_groups(registry)

    lines = list(hooks.definitions())
    lines.append(f"pub mod {GROUP_NAMESPACE} {{")
    # unreachable_patterns: aliased values share a match arm value.
    lines.append(
        "    #![allow(non_camel_case_types, non_upper_case_globals, non_snake_case, "
        "dead_code, unreachable_patterns)]"
    )
    lines.append("")
    lines.append("    use super::types;")
    lines.append("")
    for group in registry.groups.values():
        body = generate_group_type(
            group,
            constant_sets[group.ident],
            group_repr_type(registry.api, group),
            enum_defs,
            hooks,
        )
        lines.extend(f"    {line}" if line else "" for line in body)
    lines.append("}")
    return lines


# ===--- Command signatures ---=== #


class ParamProjection(enum.Enum):
    IDENT_AND_TYPE = "ident_and_type"
    TYPE_ONLY = "type_only"
    IDENT_ONLY = "ident_only"


_POINTER_PREFIX_RE = re.compile(r"^((?:\*(?:const|mut) )*)")


def render_param_type(param: CommandParam, registry: Registry) -> str:
    """Rust type of a parameter, with group-typed parameters made typed.

    A pointer parameter keeps its pointer levels; only the pointee becomes the
    group wrapper.
    """
    if param.group is None or param.group not in registry.groups:
        return param.ty
    pointers = _POINTER_PREFIX_RE.match(param.ty).group(1)
    return f"{pointers}{GROUP_NAMESPACE}::{registry.groups[param.group].ident}"


def render_parameters(
    cmd: CommandDef, registry: Registry, projection: ParamProjection
) -> list[str]:
    rendered = []
    for param in cmd.params:
        ty = render_param_type(param, registry)
        if projection is ParamProjection.IDENT_AND_TYPE:
            rendered.append(f"{param.ident}: {ty}")
        elif projection is ParamProjection.TYPE_ONLY:
            rendered.append(ty)
        else:
            rendered.append(param.ident)
    return rendered


# ===--- Loader emission ---=== #


@dataclass(frozen=True)
class LoadEntry:
    """One table slot: the command, its primary symbol and fallback symbols."""

    ident: str
    symbol: str
    fallbacks: tuple[str, ...]


def build_load_plan(registry: Registry) -> tuple[LoadEntry, ...]:
    return tuple(
        LoadEntry(
            ident=cmd.ident,
            symbol=symbol_name(registry.api, cmd.ident),
            fallbacks=tuple(
                symbol_name(registry.api, alias)
                for alias in registry.aliases.get(cmd.ident, ())
            ),
        )
        for cmd in registry.cmds
    )


def generate_fnptr_struct_def() -> list[str]:
    """The `FnPtr` slot type, including the single address-to-callable cast."""
    return [
        "#[allow(dead_code, missing_copy_implementations)]",
        "#[derive(Clone)]",
        "pub struct FnPtr {",
        "    /// The function pointer that will be used when calling the function.",
        f"    f: *const {RAW}::c_void,",
        "    /// True if the pointer points to a real function, false if points to a `panic!` fn.",
        "    is_loaded: bool,",
        "}",
        "",
        "impl FnPtr {",
        "    /// Creates a `FnPtr` from a load attempt.",
        f"    fn new(ptr: *const {RAW}::c_void) -> FnPtr {{",
        "        if ptr.is_null() {",
        "            FnPtr {",
        f"                f: missing_fn_panic as *const {RAW}::c_void,",
        "                is_loaded: false,",
        "            }",
        "        } else {",
        "            FnPtr { f: ptr, is_loaded: true }",
        "        }",
        "    }",
        "",
        "    /// Returns `true` if the function has been successfully loaded.",
        "    ///",
        "    /// If it returns `false`, calling the corresponding function will fail.",
        "    #[inline]",
        "    #[allow(dead_code)]",
        "    pub fn is_loaded(&self) -> bool {",
        "        self.is_loaded",
        "    }",
        "",
        "    /// Reinterprets the stored address as a callable of type `F`.",
        "    ///",
        "    /// Every generated method goes through here. `F` must be the",
        '    /// `extern "system" fn` type matching the C prototype exactly.',
        "    #[inline(always)]",
        "    unsafe fn as_fn<F: Copy>(&self) -> F {",
        "        debug_assert_eq!(",
        "            __gl_imports::mem::size_of::<F>(),",
        f"            __gl_imports::mem::size_of::<*const {RAW}::c_void>()",
        "        );",
        f"        unsafe {{ __gl_imports::mem::transmute_copy::<*const {RAW}::c_void, F>(&self.f) }}",
        "    }",
        "}",
    ]


def generate_missing_fn(registry: Registry) -> list[str]:
    # Unwinding out of an extern "system" fn aborts the process.
    return [
        "#[inline(never)]",
        'extern "system" fn missing_fn_panic() -> ! {',
        f'    panic!("{registry.api.api} function was not loaded")',
        "}",
    ]


def generate_struct(registry: Registry) -> list[str]:
    name = struct_name(registry.api)
    lines = [
        "#[allow(non_camel_case_types, non_snake_case, dead_code)]",
        "#[derive(Clone)]",
        f"pub struct {name}FnPtrs {{",
    ]
    for cmd in registry.cmds:
        fallbacks = registry.aliases.get(cmd.ident)
        if fallbacks:
            lines.append(f"    /// Fallbacks: {', '.join(fallbacks)}")
        lines.append(f"    pub {cmd.ident}: FnPtr,")
    lines.append("}")
    lines.append("")
    lines.extend(
        [
            "#[allow(non_camel_case_types, non_snake_case, dead_code)]",
            "#[derive(Clone)]",
            f"pub struct {name} {{",
            f"    pub ptrs: {name}FnPtrs,",
            "    _priv: (),",
            "}",
        ]
    )
    return lines


def _quote(symbol: str) -> str:
    return f'"{symbol}"'


def generate_wrapper_fn(cmd: CommandDef, registry: Registry) -> list[str]:
    params = render_parameters(cmd, registry, ParamProjection.IDENT_AND_TYPE)
    typed_params = render_parameters(cmd, registry, ParamProjection.TYPE_ONLY)
    idents = render_parameters(cmd, registry, ParamProjection.IDENT_ONLY)
    signature = f'extern "system" fn({", ".join(typed_params)}) -> {cmd.return_type}'
    self_params = ", ".join(["&self", *params])
    return [
        "    #[allow(non_snake_case, unused_variables, dead_code)]",
        "    #[inline]",
        f"    pub unsafe fn {cmd.ident}({self_params}) -> {cmd.return_type} {{",
        f"        unsafe {{ self.ptrs.{cmd.ident}.as_fn::<{signature}>()({', '.join(idents)}) }}",
        "    }",
    ]


def generate_impl(registry: Registry) -> list[str]:
    name = struct_name(registry.api)
    lines = [
        f"impl {name} {{",
        "    /// Load each symbol using a custom load function. This allows for the",
        "    /// use of functions like `glfwGetProcAddress` or `SDL_GL_GetProcAddress`.",
        "    ///",
        "    /// Every entry is resolved once, eagerly: the primary name first, then",
        "    /// each fallback in order until one resolves. Call this before any other",
        "    /// method, and never concurrently with them.",
        "    ///",
        "    /// ~~~ignore",
        f"    /// let gl = {name}::load_with(|s| glfw.get_proc_address(s));",
        "    /// ~~~",
        "    #[allow(dead_code, unused_variables)]",
        f"    pub fn load_with<F>(mut loadfn: F) -> {name}",
        "    where",
        f"        F: FnMut(&'static str) -> *const {RAW}::c_void,",
        "    {",
        "        #[inline(never)]",
        "        fn do_metaloadfn(",
        f"            loadfn: &mut dyn FnMut(&'static str) -> *const {RAW}::c_void,",
        "            symbol: &'static str,",
        "            symbols: &[&'static str],",
        f"        ) -> *const {RAW}::c_void {{",
        "            let mut ptr = loadfn(symbol);",
        "            if ptr.is_null() {",
        "                for &sym in symbols {",
        "                    ptr = loadfn(sym);",
        "                    if !ptr.is_null() {",
        "                        break;",
        "                    }",
        "                }",
        "            }",
        "            ptr",
        "        }",
        "        let mut metaloadfn = |symbol: &'static str, symbols: &[&'static str]| {",
        "            do_metaloadfn(&mut loadfn, symbol, symbols)",
        "        };",
        f"        {name}::load_with_metaloadfn(&mut metaloadfn)",
        "    }",
        "",
        "    #[inline(never)]",
        "    fn load_with_metaloadfn(",
        f"        metaloadfn: &mut dyn FnMut(&'static str, &[&'static str]) -> *const {RAW}::c_void,",
        f"    ) -> {name} {{",
        f"        {name} {{",
        f"            ptrs: {name}FnPtrs {{",
    ]
    for entry in build_load_plan(registry):
        fallbacks = ", ".join(_quote(symbol) for symbol in entry.fallbacks)
        lines.append(
            f"                {entry.ident}: FnPtr::new(metaloadfn({_quote(entry.symbol)}, &[{fallbacks}])),"
        )
    lines.extend(
        [
            "            },",
            "            _priv: (),",
            "        }",
            "    }",
        ]
    )
    for cmd in registry.cmds:
        lines.append("")
        lines.extend(generate_wrapper_fn(cmd, registry))
    lines.extend(
        [
            "}",
            "",
            f"unsafe impl __gl_imports::Send for {name} {{}}",
        ]
    )
    return lines


# ===--- Runtime resolution model ---=== #


class MissingFunctionError(RuntimeError):
    """Raised when a command that failed to resolve is bound for a call."""


@dataclass(frozen=True)
class FnPtr:
    """Python counterpart of one generated table slot.

    Attributes:
        name: Command identifier.
        address: Resolved address, or None when every name failed.
        symbol: The symbol name that resolved, or None.
    """

    name: str
    address: int | None
    symbol: str | None = None

    @property
    def is_loaded(self) -> bool:
        return self.address is not None

    def bind(self, prototype: Callable[[int], Callable[..., object]]) -> Callable[..., object]:
        """Turn the address into a callable with an exact prototype.

        `prototype` is a ctypes function type such as
        `ctypes.CFUNCTYPE(None, ctypes.c_uint)`.

        Raises:
            MissingFunctionError: If the slot was never resolved.
        """
        if self.address is None:
            raise MissingFunctionError(f"{self.name} function was not loaded")
        return prototype(self.address)


LoadFn = Callable[[str], int | None]


def resolve_address(
    loadfn: LoadFn, symbol: str, fallbacks: Iterable[str]
) -> tuple[int | None, str | None]:
    """Try `symbol`, then each fallback in order. First non-null address wins.

    Each name is passed to `loadfn` at most once and no name after the first
    success is queried.
    """
    for candidate in (symbol, *fallbacks):
        address = loadfn(candidate)
        if address:
            return address, candidate
    return None, None


def load_fn_ptrs(registry: Registry, loadfn: LoadFn) -> dict[str, FnPtr]:
    table: dict[str, FnPtr] = {}
    for entry in build_load_plan(registry):
        address, resolved = resolve_address(loadfn, entry.symbol, entry.fallbacks)
        table[entry.ident] = FnPtr(name=entry.ident, address=address, symbol=resolved)
    return table


def library_loader(library: str | Path) -> LoadFn:
    """Address lookup over a shared library opened with ctypes.

    Raises:
        OSError: If the library cannot be loaded.
    """
    handle = ctypes.CDLL(str(library))

    def _load(symbol: str) -> int | None:
        try:
            func = getattr(handle, symbol)
        except AttributeError:
            return None
        return ctypes.cast(func, ctypes.c_void_p).value

    return _load


# ===--- Generator facade ---=== #

EMISSION_STAGES: tuple[str, ...] = (
    "header",
    "type_aliases",
    "enums",
    "enum_groups",
    "fnptr_struct_def",
    "missing_fn",
    "struct",
    "impl",
)
"""Emission order of the generated module.

Group types come before the table and impl that name them, and the hook
definitions (macros) come before the `enums` module that invokes them."""


@dataclass(frozen=True)
class BindingsWriteResult:
    stages: tuple[str, ...]
    line_count: int
    byte_count: int


StageEmitter = Callable[[Registry], list[str]]


def build_stages(hooks: GroupHooks) -> tuple[tuple[str, StageEmitter], ...]:
    """(stage name, emitter) pairs in EMISSION_STAGES order."""
    emitters: dict[str, StageEmitter] = {
        "header": generate_header,
        "type_aliases": generate_type_aliases,
        "enums": generate_enums,
        "enum_groups": lambda registry: generate_enum_groups(registry, hooks),
        "fnptr_struct_def": lambda _registry: generate_fnptr_struct_def(),
        "missing_fn": generate_missing_fn,
        "struct": generate_struct,
        "impl": generate_impl,
    }
    return tuple((stage, emitters[stage]) for stage in EMISSION_STAGES)


def write_bindings(
    registry: Registry, dest: TextIO, hooks: GroupHooks | None = None
) -> BindingsWriteResult:
    """Write the complete bindings module for `registry` to `dest`.

    Each stage in EMISSION_STAGES is rendered and written in turn, separated
    by one blank line. Nothing is buffered across stages.

    Args:
        registry: Registry slice to generate for. Never mutated.
        dest: Writable text sink (file, StringIO, stdout).
        hooks: Group trait hooks. Defaults to MacroHooks.

    Returns:
        BindingsWriteResult with the stages written and the line/byte totals.

    Raises:
        OSError: Propagated directly from the sink; emission stops at the
            failing write.
    """
    if hooks is None:
        hooks = MacroHooks()
    line_count = 0
    byte_count = 0
    for index, (_stage, emit) in enumerate(build_stages(hooks)):
        text = "\n".join(emit(registry)) + "\n"
        if index:
            text = "\n" + text
        dest.write(text)
        line_count += text.count("\n")
        byte_count += len(text.encode("utf-8"))
    return BindingsWriteResult(
        stages=EMISSION_STAGES, line_count=line_count, byte_count=byte_count
    )


def generate_bindings(registry: Registry, hooks: GroupHooks | None = None) -> str:
    dest = io.StringIO()
    write_bindings(registry, dest, hooks)
    return dest.getvalue()


# ===--- Registry parsing ---=== #

_ENUM_VALUE_RE = re.compile(r"^(-?(?:0[xX][0-9a-fA-F]+|\d+))([uU][lL]{0,2})?$")
_EGL_CAST_RE = re.compile(r"^EGL_CAST\(\s*(\w+)\s*,\s*(.+?)\s*\)$")


def parse_feature_number(raw: str) -> ApiVersion | None:
    match = _VERSION_RE.match(raw.strip())
    if match is None:
        return None
    return ApiVersion(int(match.group(1)), int(match.group(2)))


def strip_enum_prefix(api: str, name: str) -> str:
    prefix = ENUM_PREFIXES.get(api, "GL_")
    ident = name.removeprefix(prefix)
    if ident[:1].isdigit():
        ident = "_" + ident
    return ident


def strip_command_prefix(api: str, name: str) -> str:
    return name.removeprefix(SYMBOL_PREFIXES.get(api, ""))


def rust_ident(name: str) -> str:
    if name in RUST_RESERVED:
        return name + "_"
    return name


def _rust_base_type(base: str, is_pointee: bool) -> str:
    if base in ("void", "GLvoid"):
        if is_pointee:
            return f"{RAW}::c_void" if base == "void" else "types::GLvoid"
        return "()"
    if base in C_TO_RUST:
        return C_TO_RUST[base]
    return f"types::{base}"


def c_to_rust_type(decl: str) -> str:
    """Convert a C declaration type (`const GLchar *const*`) to Rust.

    Pointer constness is taken per level: the `const` left of each `*`
    qualifies what that pointer points at.
    """
    decl = decl.replace("struct ", "").strip()
    segments = decl.split("*")
    base_tokens = [token for token in segments[0].split() if token != "const"]
    base = " ".join(base_tokens) or "void"
    if len(segments) == 1:
        return _rust_base_type(base, is_pointee=False)
    ty = _rust_base_type(base, is_pointee=True)
    for segment in segments[:-1]:
        qualifier = "*const " if "const" in segment.split() else "*mut "
        ty = qualifier + ty
    return ty


def _decl_text(elem: ET.Element) -> tuple[str, str]:
    """Split a <proto>/<param> element into (C type text, name)."""
    parts = [elem.text or ""]
    name = ""
    for child in elem:
        if child.tag == "name":
            name = child.text or ""
            if "[" in (child.tail or ""):
                parts.append("*")
            break
        parts.append(child.text or "")
        parts.append(child.tail or "")
    return "".join(parts).strip(), name


def parse_enum_value(api: str, ident: str, elem: ET.Element) -> EnumDef | None:
    raw = elem.get("value")
    if raw is None:
        return None
    raw = raw.strip()
    enum_type, boolean_type = enum_repr_types(api)
    if ident in ("TRUE", "FALSE"):
        ty = boolean_type
    elif elem.get("type") == "ull":
        ty = "EGLuint64KHR" if api == "egl" else "GLuint64"
    elif elem.get("type") == "u":
        ty = "EGLint" if api == "egl" else "GLuint"
    else:
        ty = enum_type

    cast_match = _EGL_CAST_RE.match(raw)
    if cast_match:
        return EnumDef(ident, cast_match.group(2), cast_match.group(1), cast=True)
    value_match = _ENUM_VALUE_RE.match(raw)
    if value_match:
        literal = value_match.group(1)
        if literal.startswith("-"):
            ty = "EGLint" if api == "egl" else "GLint"
        return EnumDef(ident, literal, ty)
    return EnumDef(ident, raw, ty)


def _matches(elem: ET.Element, attr: str, wanted: str | None) -> bool:
    value = elem.get(attr)
    return value is None or value == wanted


def _supports_api(elem: ET.Element, api: str) -> bool:
    value = elem.get("api")
    return value is None or api in value.split("|") or FEATURE_APIS.get(api) == value


def collect_requirements(
    root: ET.Element,
    api: str,
    version: ApiVersion,
    profile: str | None,
    extensions: frozenset[str],
) -> tuple[set[str], set[str]]:
    """Names of the enums and commands selected by features and extensions.

    Requirements of every feature up to `version` are added first, then the
    matching `<remove>` blocks are applied, then the requested extensions.
    """
    enum_names: set[str] = set()
    command_names: set[str] = set()
    feature_api = FEATURE_APIS.get(api, api)

    def _require(block: ET.Element) -> None:
        for item in block.findall("enum"):
            enum_names.add(item.get("name", ""))
        for item in block.findall("command"):
            command_names.add(item.get("name", ""))

    features = []
    for feature in root.findall("feature"):
        if feature.get("api") != feature_api:
            continue
        number = parse_feature_number(feature.get("number", ""))
        if number is None or number > version:
            continue
        features.append(feature)

    for feature in features:
        for req in feature.findall("require"):
            if _matches(req, "profile", profile) and _supports_api(req, api):
                _require(req)
    for feature in features:
        for rem in feature.findall("remove"):
            if not _matches(rem, "profile", profile):
                continue
            for item in rem.findall("enum"):
                enum_names.discard(item.get("name", ""))
            for item in rem.findall("command"):
                command_names.discard(item.get("name", ""))

    for ext in root.findall("extensions/extension"):
        if ext.get("name") not in extensions:
            continue
        if api not in ext.get("supported", "").split("|"):
            continue
        for req in ext.findall("require"):
            if _matches(req, "profile", profile) and _supports_api(req, api):
                _require(req)

    return enum_names, command_names


def collect_enums(
    root: ET.Element, api: str, selected: set[str]
) -> tuple[EnumDef, ...]:
    enums: list[EnumDef] = []
    seen: set[str] = set()
    for elem in root.findall("enums/enum"):
        name = elem.get("name")
        if not name or name not in selected or not _supports_api(elem, api):
            continue
        ident = strip_enum_prefix(api, name)
        if ident in seen:
            continue
        parsed = parse_enum_value(api, ident, elem)
        if parsed is None:
            continue
        enums.append(parsed)
        seen.add(ident)
    return tuple(enums)


def collect_groups(root: ET.Element, api: str) -> dict[str, GroupDef]:
    """Gather groups from a <groups> section and from `group` attributes.

    Membership keeps document order and may hold duplicates or names that
    are not selected; the partitioner filters those at emission time.
    """
    members: dict[str, list[str]] = {}
    flavors: dict[str, str | None] = {}

    def _add(group_name: str, enum_name: str, flavor: str | None) -> None:
        group_name = group_name.strip()
        if not group_name:
            return
        members.setdefault(group_name, []).append(strip_enum_prefix(api, enum_name))
        if flavors.get(group_name) is None:
            flavors[group_name] = flavor

    for group in root.findall("groups/group"):
        group_name = group.get("name", "")
        flavor = group.get("type")
        members.setdefault(group_name, [])
        flavors.setdefault(group_name, flavor)
        for item in group.findall("enum"):
            _add(group_name, item.get("name", ""), flavor)

    for block in root.findall("enums"):
        block_flavor = FLAVOR_BITMASK if block.get("type") == FLAVOR_BITMASK else None
        block_group = block.get("group")
        for item in block.findall("enum"):
            name = item.get("name")
            if not name:
                continue
            if block_group:
                _add(block_group, name, block_flavor)
            for group_name in (item.get("group") or "").split(","):
                _add(group_name, name, block_flavor)

    return {
        name: GroupDef(ident=name, enums=tuple(enums), flavor=flavors.get(name))
        for name, enums in members.items()
        if name
    }


def parse_command(api: str, elem: ET.Element) -> CommandDef | None:
    proto = elem.find("proto")
    if proto is None:
        return None
    ret_decl, name = _decl_text(proto)
    if not name:
        return None
    params = []
    for param in elem.findall("param"):
        if not _supports_api(param, api):
            continue
        decl, param_name = _decl_text(param)
        params.append(
            CommandParam(
                ident=rust_ident(param_name),
                ty=c_to_rust_type(decl),
                group=param.get("group"),
            )
        )
    return CommandDef(
        ident=strip_command_prefix(api, name),
        return_type=c_to_rust_type(ret_decl),
        params=tuple(params),
    )


def collect_commands(
    root: ET.Element, api: str, selected: set[str]
) -> tuple[tuple[CommandDef, ...], list[tuple[str, str]]]:
    """Selected commands in registry order, plus every (alias, target) link."""
    commands: list[CommandDef] = []
    links: list[tuple[str, str]] = []
    seen: set[str] = set()
    for elem in root.findall("commands/command"):
        proto_name = elem.find("proto/name")
        if proto_name is None or not proto_name.text:
            continue
        name = proto_name.text
        alias = elem.find("alias")
        if alias is not None and alias.get("name"):
            links.append(
                (
                    strip_command_prefix(api, name),
                    strip_command_prefix(api, alias.get("name", "")),
                )
            )
        if name not in selected or not _supports_api(elem, api):
            continue
        parsed = parse_command(api, elem)
        if parsed is None or parsed.ident in seen:
            continue
        commands.append(parsed)
        seen.add(parsed.ident)
    return tuple(commands), links


def build_fallbacks(
    links: list[tuple[str, str]], selected: set[str]
) -> dict[str, tuple[str, ...]]:
    """Two-way fallback lists for the selected commands.

    An alias link `a -> t` makes `a` a fallback of `t` and `t` a fallback of
    `a`. Lists keep link order, skip repeats and never contain the key.
    """
    fallbacks: dict[str, list[str]] = {}

    def _add(key: str, value: str) -> None:
        if key == value or key not in selected:
            return
        entries = fallbacks.setdefault(key, [])
        if value not in entries:
            entries.append(value)

    for alias_name, target in links:
        _add(target, alias_name)
        _add(alias_name, target)
    return {key: tuple(values) for key, values in fallbacks.items()}


def parse_registry(
    root: ET.Element,
    api: str,
    version: ApiVersion,
    profile: str | None = "core",
    extensions: frozenset[str] = frozenset(),
    fallbacks: str = "all",
) -> Registry:
    enum_names, command_names = collect_requirements(
        root, api, version, profile, extensions
    )
    enums = collect_enums(root, api, enum_names)
    commands, links = collect_commands(root, api, command_names)
    aliases = (
        build_fallbacks(links, {cmd.ident for cmd in commands})
        if fallbacks == "all"
        else {}
    )
    return Registry(
        api=ApiIdentity(api=api, version=version, profile=profile, fallbacks=fallbacks),
        enums=enums,
        cmds=commands,
        aliases=aliases,
        groups=collect_groups(root, api),
    )


def load_registry(selection: RegistrySelection) -> Registry:
    """Parse the registry file named by `selection`.

    Raises:
        OSError: The file cannot be read.
        ET.ParseError: The file is not well-formed XML.
    """
    root = ET.parse(selection.registry_xml).getroot()
    return parse_registry(
        root,
        selection.api,
        selection.version,
        selection.profile,
        selection.extensions,
        selection.fallbacks,
    )


# ===--- Discovery ---=== #


def format_groups_table(registry: Registry) -> str:
    """Return the --list-groups output: one row per group, registry order."""
    constant_sets = partition_groups(registry)
    groups = list(registry.groups.values())
    lines = [f"{len(groups)} groups in {registry.api}:", ""]
    name_width = max((len(group.ident) for group in groups), default=0)
    for group in groups:
        flavor = group.flavor or FLAVOR_PLAIN
        count = len(constant_sets[group.ident])
        lines.append(f"  {group.ident.ljust(name_width)}  {flavor:<8} {count:>5} constants")
    lines.append("")
    return "\n".join(lines)


def format_probe_report(
    registry: Registry, table: dict[str, FnPtr], library: str
) -> str:
    """Return the --probe output for a loaded table.

    Output format:

        Probe of libGL.so.1 for gl 4.5 (core):

          Loaded:  2 / 3
          Via fallback (1):
            ActiveTexture -> glActiveTextureARB
          Missing (1):
            DrawArrays
    """
    primary = {entry.ident: entry.symbol for entry in build_load_plan(registry)}
    loaded = [ptr for ptr in table.values() if ptr.is_loaded]
    via_fallback = [ptr for ptr in loaded if ptr.symbol != primary.get(ptr.name)]
    missing = [ptr for ptr in table.values() if not ptr.is_loaded]

    lines = [f"Probe of {library} for {registry.api}:", ""]
    lines.append(f"  Loaded:  {len(loaded)} / {len(table)}")
    if via_fallback:
        lines.append(f"  Via fallback ({len(via_fallback)}):")
        for ptr in via_fallback:
            lines.append(f"    {ptr.name} -> {ptr.symbol}")
    if missing:
        lines.append(f"  Missing ({len(missing)}):")
        for ptr in missing:
            lines.append(f"    {ptr.name}")
    lines.append("")
    return "\n".join(lines)


def run_discovery(config: DiscoveryConfig) -> None:
    registry = load_registry(config.selection)

    if config.command == "list-groups":
        print(format_groups_table(registry), end="")

    elif config.command == "probe":
        assert config.library is not None  # validate_config guarantees this
        table = load_fn_ptrs(registry, library_loader(config.library))
        print(format_probe_report(registry, table, config.library), end="")


# ===--- Generation summary ---=== #


@dataclass(frozen=True)
class GenerationSummary:
    """Counts reported after a generation run.

    Attributes:
        target_label: e.g. "gl 4.5 (core)".
        output_label: Output path, or "<stdout>".
        commands: Number of table entries.
        commands_with_fallbacks: Entries that carry at least one fallback name.
        constants: Flat constants emitted.
        groups: Group types emitted.
        bitmask_groups: Group types with bitmask flavor.
        group_constants: Typed constants across all groups.
        line_count: Lines written.
        byte_count: UTF-8 bytes written.
    """

    target_label: str
    output_label: str
    commands: int
    commands_with_fallbacks: int
    constants: int
    groups: int
    bitmask_groups: int
    group_constants: int
    line_count: int
    byte_count: int


def build_generation_summary(
    registry: Registry, result: BindingsWriteResult, output: Path | None
) -> GenerationSummary:
    constant_sets = partition_groups(registry)
    return GenerationSummary(
        target_label=str(registry.api),
        output_label=str(output) if output is not None else "<stdout>",
        commands=len(registry.cmds),
        commands_with_fallbacks=sum(
            1 for cmd in registry.cmds if registry.aliases.get(cmd.ident)
        ),
        constants=len(registry.enums),
        groups=len(registry.groups),
        bitmask_groups=sum(1 for group in registry.groups.values() if group.is_bitmask),
        group_constants=sum(len(constants) for constants in constant_sets.values()),
        line_count=result.line_count,
        byte_count=result.byte_count,
    )


def format_generation_summary(summary: GenerationSummary) -> str:
    lines = [
        f"{summary.target_label} bindings generated:",
        "",
        f"  Output:     {summary.output_label}",
        "",
        f"    Commands:   {summary.commands:>6}  ({summary.commands_with_fallbacks} with fallbacks)",
        f"    Constants:  {summary.constants:>6}",
        f"    Groups:     {summary.groups:>6}  ({summary.bitmask_groups} bitmask, "
        f"{summary.group_constants} typed constants)",
        "",
        f"  Written: {summary.line_count:,} lines, {summary.byte_count:,} bytes",
        "",
    ]
    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="", file=sys.stderr)


# ===--- Main generation ---=== #


def run_generate(config: GenerateConfig) -> GenerationSummary:
    """Parse the registry, write the bindings and report what was written.

    Raises:
        OSError: Registry not readable, or the output write failed.
        ET.ParseError: Malformed registry XML.
    """
    selection = config.selection
    print(f"Parsing: {selection.registry_xml}", file=sys.stderr)
    registry = load_registry(selection)
    print(
        f"  Registry: {len(registry.cmds)} commands, {len(registry.enums)} enums, "
        f"{len(registry.groups)} groups",
        file=sys.stderr,
    )

    hooks = HOOKS[config.hooks]()
    if config.output is None:
        result = write_bindings(registry, sys.stdout, hooks)
    else:
        config.output.parent.mkdir(parents=True, exist_ok=True)
        with config.output.open("w", encoding="utf-8") as dest:
            result = write_bindings(registry, dest, hooks)

    summary = build_generation_summary(registry, result, config.output)
    print_generation_summary(summary)
    return summary


def main(argv: list[str] | None = None) -> None:
    try:
        config = build_config(argv)
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}", file=sys.stderr)
        if err.suggestion:
            print(f"Hint: {err.suggestion}", file=sys.stderr)
        raise SystemExit(1) from err

    try:
        if isinstance(config, DiscoveryConfig):
            run_discovery(config)
        else:
            run_generate(config)
    except (OSError, ET.ParseError) as err:
        print(f"Error: {err}", file=sys.stderr)
        raise SystemExit(1) from err
    except (RuntimeError, ValueError) as err:
        print(f"Internal error: {err}", file=sys.stderr)
        raise SystemExit(1) from err


if __name__ == "__main__":
    main()
