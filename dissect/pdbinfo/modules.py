from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

# Local imports
from dissect.pdbinfo.exception import ReaderError, Unsupported
from dissect.pdbinfo.helpers.c_pdb import c_pdb
from dissect.pdbinfo.resolve import resolve_string

if TYPE_CHECKING:
    from dissect.pdbinfo.helpers.dbi import ModuleDescriptor
    from dissect.pdbinfo.helpers.module import ModuleInfo
    from dissect.pdbinfo.helpers.strings import StringTable

log = logging.getLogger(__name__)

CHKSUM = c_pdb.CV_SourceChksum_t


class ChecksumKind(Enum):
    NONE = "None"
    MD5 = "Md5"
    SHA1 = "Sha1"
    SHA256 = "Sha256"


CHECKSUM_KINDS = {
    CHKSUM.CHKSUM_TYPE_NONE.value: ChecksumKind.NONE,
    CHKSUM.CHKSUM_TYPE_MD5.value: ChecksumKind.MD5,
    CHKSUM.CHKSUM_TYPE_SHA1.value: ChecksumKind.SHA1,
    CHKSUM.CHKSUM_TYPE_SHA_256.value: ChecksumKind.SHA256,
}


@dataclass(frozen=True)
class Checksum:
    """The checksum of a source file as recorded by the compiler.

    The checksum bytes are kept as they are stored, their length is not validated against the algorithm.
    """

    kind: ChecksumKind
    data: bytes = b""

    @classmethod
    def from_raw(cls, kind: int, data: bytes) -> Checksum:
        """Classify a raw `CHKSUM_TYPE_*` code and its checksum bytes.

        Raises:
            Unsupported if the checksum kind is unknown.
        """

        try:
            checksum_kind = CHECKSUM_KINDS[kind]
        except KeyError:
            raise Unsupported(f"checksum kind {kind}")

        if checksum_kind is ChecksumKind.NONE:
            return cls(kind=checksum_kind)
        return cls(kind=checksum_kind, data=bytes(data))


@dataclass(frozen=True)
class FileInfo:
    name: str
    checksum: Checksum


def _source_files(info: ModuleInfo, string_table: Optional[StringTable]) -> Optional[tuple[FileInfo, ...]]:
    try:
        program = info.line_program()
        if program is None:
            return None
        entries = [
            (entry.name_offset, Checksum.from_raw(entry.checksum_kind, entry.checksum)) for entry in program.files()
        ]
    except (ReaderError, Unsupported) as e:
        log.debug("Failed to parse the line information of module %r: %s", info.descriptor.module_name, e)
        return None

    # A file name that can not be resolved means the module is corrupt, this is not recovered from
    return tuple(FileInfo(name=resolve_string(string_table, offset), checksum=checksum) for offset, checksum in entries)


@dataclass(frozen=True)
class DebugModule:
    name: str
    object_file_name: str
    source_files: Optional[Tuple[FileInfo, ...]] = None

    @classmethod
    def from_raw(
        cls, module: ModuleDescriptor, info: Optional[ModuleInfo], string_table: Optional[StringTable]
    ) -> DebugModule:
        """Convert a module and its line information.

        Args:
            module: The `ModuleDescriptor` from the DBI stream.
            info: The `ModuleInfo` of the module stream, `None` if the module has no stream.
            string_table: The `/names` string table that the source file names refer to.

        Returns:
            The `DebugModule`, of which `source_files` is `None` if the module has no line information or the line
            information can not be parsed.

        Raises:
            ReaderError if the name of a source file can not be resolved.
            MissingDependency if the module has source files but the PDB has no string table.
        """

        return cls(
            name=module.module_name,
            object_file_name=module.object_file_name,
            source_files=_source_files(info, string_table) if info is not None else None,
        )
