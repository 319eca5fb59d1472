from dissect.pdbinfo.address import (
    AddressContext,
    CollectingReporter,
    LogReporter,
    Reporter,
    WarningEvent,
    resolve_address,
)
from dissect.pdbinfo.exception import (
    Error,
    ExtractionError,
    MissingDependency,
    ReaderError,
    Unsupported,
)
from dissect.pdbinfo.extract import Extractor, extract
from dissect.pdbinfo.metadata import (
    AssemblyInfo,
    BuildInfo,
    CompileFlags,
    CompilerInfo,
    CompilerVersion,
)
from dissect.pdbinfo.modules import Checksum, ChecksumKind, DebugModule, FileInfo
from dissect.pdbinfo.parsed import ParsedPdb
from dissect.pdbinfo.pdb import PDB
from dissect.pdbinfo.resolve import TypeContext, resolve_id, resolve_string, resolve_type
from dissect.pdbinfo.symbols import Data, Procedure, PublicSymbol
from dissect.pdbinfo.typeinfo import Type, TypeArena

__all__ = [
    "PDB",
    "AddressContext",
    "AssemblyInfo",
    "BuildInfo",
    "Checksum",
    "ChecksumKind",
    "CollectingReporter",
    "CompileFlags",
    "CompilerInfo",
    "CompilerVersion",
    "Data",
    "DebugModule",
    "Error",
    "ExtractionError",
    "Extractor",
    "FileInfo",
    "LogReporter",
    "MissingDependency",
    "ParsedPdb",
    "Procedure",
    "PublicSymbol",
    "ReaderError",
    "Reporter",
    "Type",
    "TypeArena",
    "TypeContext",
    "Unsupported",
    "WarningEvent",
    "extract",
    "resolve_address",
    "resolve_id",
    "resolve_string",
    "resolve_type",
]
