from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

# Local imports
from dissect.pdbinfo.exception import MissingDependency, Unsupported
from dissect.pdbinfo.helpers.c_pdb import CPU_TYPES, LANGUAGES, c_pdb
from dissect.pdbinfo.helpers.tpi import BuildInfoRecord, StringIdRecord, StringListRecord
from dissect.pdbinfo.helpers.utils import decode_name
from dissect.pdbinfo.resolve import resolve_id

if TYPE_CHECKING:
    from dissect.cstruct import Structure

    from dissect.pdbinfo.helpers.dbi import SymbolRecord
    from dissect.pdbinfo.helpers.tpi import ItemFinder

SYM = c_pdb.SYM_ENUM_e


@dataclass(frozen=True)
class CompileFlags:
    """The compile flags of a compiland, a direct copy of the `CV_COMPILE_FLAGS` bits."""

    edit_and_continue: bool
    no_debug_info: bool
    link_time_codegen: bool
    no_data_align: bool
    managed: bool
    security_checks: bool
    hot_patch: bool
    cvtcil: bool
    msil_module: bool
    sdl: bool
    pgo: bool
    exp_module: bool

    @classmethod
    def from_raw(cls, flags: Structure) -> CompileFlags:
        return cls(
            edit_and_continue=bool(flags.fEC),
            no_debug_info=bool(flags.fNoDbgInfo),
            link_time_codegen=bool(flags.fLTCG),
            no_data_align=bool(flags.fNoDataAlign),
            managed=bool(flags.fManagedPresent),
            security_checks=bool(flags.fSecurityChecks),
            hot_patch=bool(flags.fHotPatch),
            cvtcil=bool(flags.fCVTCIL),
            msil_module=bool(flags.fMSILModule),
            sdl=bool(flags.fSdl),
            pgo=bool(flags.fPGO),
            exp_module=bool(flags.fExp),
        )


@dataclass(frozen=True)
class CompilerVersion:
    major: int
    minor: int
    build: int
    qfe: Optional[int] = None

    @classmethod
    def from_raw(cls, version: Structure) -> CompilerVersion:
        """Copy a `CV_VERSION2` or `CV_VERSION3` structure, only the latter carries a QFE number."""
        return cls(major=version.major, minor=version.minor, build=version.build, qfe=getattr(version, "qfe", None))


def _lookup(names: dict[int, str], code: int) -> str:
    return names.get(code, f"Unknown(0x{code:x})")


@dataclass(frozen=True)
class CompilerInfo:
    language: str
    flags: CompileFlags
    cpu_type: str
    frontend_version: CompilerVersion
    backend_version: CompilerVersion
    version_string: str

    @classmethod
    def from_raw(cls, symbol: SymbolRecord) -> CompilerInfo:
        """Convert an `S_COMPILE3` or `S_COMPILE2` symbol record.

        Raises:
            Unsupported if the record is of any other kind.
        """

        if symbol.kind not in (SYM.S_COMPILE3, SYM.S_COMPILE2) or symbol.data is None:
            raise Unsupported(f"compile flags in symbol 0x{symbol.kind:04x}")

        compile_symbol = symbol.data
        return cls(
            language=_lookup(LANGUAGES, compile_symbol.flags.iLanguage),
            flags=CompileFlags.from_raw(compile_symbol.flags),
            cpu_type=_lookup(CPU_TYPES, compile_symbol.machine),
            frontend_version=CompilerVersion.from_raw(compile_symbol.frontend),
            backend_version=CompilerVersion.from_raw(compile_symbol.backend),
            version_string=decode_name(compile_symbol.version),
        )


def _resolve_argument(finder: ItemFinder, index: int) -> str:
    """Resolve a build info argument to its text.

    A string id that refers to a substring list is the concatenation of those substrings, followed by its own text.
    Long command lines are split up this way.
    """

    if index == 0:
        return ""

    record = resolve_id(finder, index)
    if not isinstance(record, StringIdRecord):
        raise Unsupported(f"build info argument of kind {type(record).__name__}")

    if not record.substrings:
        return record.name

    substrings = resolve_id(finder, record.substrings)
    if not isinstance(substrings, StringListRecord):
        raise Unsupported(f"substring list of kind {type(substrings).__name__}")

    parts = [_resolve_argument(finder, substring) for substring in substrings.strings]
    return "".join(parts) + record.name


@dataclass(frozen=True)
class BuildInfo:
    """The arguments of the compiler invocation, in the order of the `LF_BUILDINFO` record.

    These are the current directory, the build tool, the source file, the program database and the command line.
    """

    arguments: Tuple[str, ...]

    @classmethod
    def from_raw(cls, symbol: SymbolRecord, id_finder: Optional[ItemFinder] = None) -> BuildInfo:
        """Convert an `S_BUILDINFO` symbol record.

        Args:
            symbol: The `S_BUILDINFO` symbol record.
            id_finder: The `ItemFinder` of the IPI stream.

        Raises:
            MissingDependency if no id finder is given.
            Unsupported if one of the referenced id records is of an unexpected kind.
            ReaderError if one of the referenced id records can not be read.
        """

        if id_finder is None:
            raise MissingDependency("IdFinder")

        if symbol.kind != SYM.S_BUILDINFO or symbol.data is None:
            raise Unsupported(f"build info in symbol 0x{symbol.kind:04x}")

        record = resolve_id(id_finder, symbol.data.id)
        if not isinstance(record, BuildInfoRecord):
            raise Unsupported(f"build info of kind {type(record).__name__}")

        return cls(arguments=tuple(_resolve_argument(id_finder, argument) for argument in record.arguments))


@dataclass(frozen=True)
class AssemblyInfo:
    build_info: Optional[BuildInfo] = None
    compiler_info: Optional[CompilerInfo] = None
