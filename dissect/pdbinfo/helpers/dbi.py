from __future__ import annotations

from io import BytesIO
from typing import TYPE_CHECKING, BinaryIO, Iterator

# Local imports
from dissect.pdbinfo.exception import ReaderError
from dissect.pdbinfo.helpers.c_pdb import DBI_STREAM, c_pdb
from dissect.pdbinfo.helpers.utils import align, decode_name, retain_file_offset

if TYPE_CHECKING:
    from dissect.cstruct import Structure

    from dissect.pdbinfo.helpers.pagestream import PageStream

SYM = c_pdb.SYM_ENUM_e


class SymbolRecord:
    """A symbol record as found in the global symbol stream or in a module stream.

    Args:
        kind: The `SYM_ENUM_e` kind of the record.
        offset: The offset of the record within its stream.
        data: The parsed record, `None` if the record kind is not parsed.
    """

    def __init__(self, kind: int, offset: int, data: Structure | None):
        self.kind = kind
        self.offset = offset
        self.data = data

    def __repr__(self) -> str:
        name = getattr(self.data, "name", None)
        name = f" name={decode_name(name)!r}" if name else ""
        return f"<SymbolRecord kind=0x{self.kind:04x} offset=0x{self.offset:x}{name}>"


SYMBOL_STRUCTS = {
    # PublicSymbol
    SYM.S_PUB32.value: c_pdb.PublicSymbol,
    # DataSymbol
    SYM.S_GDATA32.value: c_pdb.DataSymbol,
    SYM.S_LDATA32.value: c_pdb.DataSymbol,
    SYM.S_GMANDATA.value: c_pdb.DataSymbol,
    SYM.S_LMANDATA.value: c_pdb.DataSymbol,
    # ProcedureSymbol
    SYM.S_GPROC32.value: c_pdb.ProcedureSymbol,
    SYM.S_LPROC32.value: c_pdb.ProcedureSymbol,
    SYM.S_LPROC32_DPC.value: c_pdb.ProcedureSymbol,
    SYM.S_GPROC32_ID.value: c_pdb.ProcedureSymbol,
    SYM.S_LPROC32_ID.value: c_pdb.ProcedureSymbol,
    SYM.S_LPROC32_DPC_ID.value: c_pdb.ProcedureSymbol,
    # CompileSymbol
    SYM.S_COMPILE2.value: c_pdb.CompileSymbol2,
    SYM.S_COMPILE3.value: c_pdb.CompileSymbol3,
    # BuildInfoSymbol
    SYM.S_BUILDINFO.value: c_pdb.BuildInfoSymbol,
}


def iter_symbols(stream: BinaryIO, offset: int, end: int) -> Iterator[SymbolRecord]:
    """Iterate over the symbol records between `offset` and `end` of the given stream.

    Records of a kind that is not listed in `SYMBOL_STRUCTS` are yielded without data.

    Args:
        stream: The stream containing the symbol records.
        offset: The offset of the first record.
        end: The offset at which the symbol records end.

    Yields:
        The symbol records as `SymbolRecord` objects.

    Raises:
        ReaderError if a record is truncated.
    """

    with retain_file_offset(fobj=stream, offset=offset):
        while offset < end:
            try:
                # Read the symbol record header to establish the right struct to use
                header = c_pdb.SymbolRecordHeader(stream)
            except EOFError:
                raise ReaderError(f"truncated symbol record header at offset 0x{offset:x}")

            if header.length < 2:
                raise ReaderError(f"invalid symbol record length at offset 0x{offset:x}")

            # Read the symbol data, compensate for the kind field in the header
            data = stream.read(header.length - 2)
            if len(data) != header.length - 2:
                raise ReaderError(f"truncated symbol record at offset 0x{offset:x}")

            symbol_struct = SYMBOL_STRUCTS.get(header.kind)
            try:
                symbol = symbol_struct(BytesIO(data)) if symbol_struct else None
            except EOFError:
                raise ReaderError(f"truncated symbol record at offset 0x{offset:x}")

            yield SymbolRecord(kind=header.kind, offset=offset, data=symbol)

            offset += 2 + header.length
            stream.seek(offset)


class ModuleDescriptor:
    """A module (compiland) as described in the module info substream of the DBI stream.

    Args:
        info: The `DbiModuleInfoBase` structure of the module.
    """

    def __init__(self, info: Structure):
        self.info = info

    def __repr__(self) -> str:
        return f"<ModuleDescriptor name={self.module_name!r} stream={self.stream}>"

    @property
    def module_name(self) -> str:
        return decode_name(self.info.module_name)

    @property
    def object_file_name(self) -> str:
        return decode_name(self.info.object_name)

    @property
    def stream(self) -> int | None:
        """The index of the module stream, `None` if the module has no stream."""
        return None if self.info.stream == -1 else self.info.stream


class DBI:
    """Class for parsing the DBI stream of a PDB file.

    Args:
        streams: The list with `PageStream` entries for this PDB.
    """

    def __init__(self, streams: list[PageStream]):
        self.streams = streams
        self.stream = streams[DBI_STREAM]
        self.stream.seek(0)
        self.header = c_pdb.DbiHeader(self.stream)

        self.modules: list[ModuleDescriptor] = []
        self.debug_header = None

    @property
    def symbol_stream(self) -> PageStream:
        return self.streams[self.header.snSymRecs]

    @property
    def machine(self) -> int:
        return self.header.wMachine

    def parse_info(self) -> None:
        """Parse the module information and the optional debug header."""

        module_info_offset = c_pdb.DbiHeader.size
        self._parse_module_info(offset=module_info_offset, dbi_stream=self.stream)

        debug_header_offset = (
            c_pdb.DbiHeader.size
            + self.header.cbGpModi
            + self.header.cbSC
            + self.header.cbSecMap
            + self.header.cbFileInfo
            + self.header.cbTSMap
            + self.header.cbECInfo
        )
        self._parse_debug_header(offset=debug_header_offset, dbi_stream=self.stream)

    def _parse_module_info(self, offset: int, dbi_stream: BinaryIO) -> None:
        """Function to parse the module information, this structure contains the module names and objects.

        Args:
            offset: The offset from which to start reading the module information structures.
            dbi_stream: A file-like object of the DBI stream to be parsed.
        """

        module_info_end = offset + self.header.cbGpModi

        dbi_stream.seek(offset)
        while offset < module_info_end:
            try:
                module_info = c_pdb.DbiModuleInfoBase(dbi_stream)
            except EOFError:
                raise ReaderError(f"truncated module info at offset 0x{offset:x}")

            self.modules.append(ModuleDescriptor(module_info))

            # Every module info structure is padded to a multiple of 4
            offset = align(dbi_stream.tell())
            dbi_stream.seek(offset)

    def _parse_debug_header(self, offset: int, dbi_stream: BinaryIO) -> None:
        """Parse the optional debug header, which holds the stream indices of the section headers and OMAP."""

        if not self.header.cbDbgHdr:
            return

        dbi_stream.seek(offset)
        data = dbi_stream.read(min(self.header.cbDbgHdr, c_pdb.DbiDbgHeader.size))
        # Older PDBs write fewer stream indices, the missing ones are absent streams
        self.debug_header = c_pdb.DbiDbgHeader(data.ljust(c_pdb.DbiDbgHeader.size, b"\xff"))

    def debug_stream(self, name: str) -> PageStream | None:
        """Return the stream referenced by the debug header field `name`, or `None` if it is absent."""

        if self.debug_header is None:
            return None

        index = getattr(self.debug_header, name)
        if index < 0 or index >= len(self.streams):
            return None

        return self.streams[index]

    def symbols(self) -> Iterator[SymbolRecord]:
        """Iterate over the records of the global symbol stream.

        Yields:
            The symbols that were found as `SymbolRecord` objects.
        """

        stream = self.symbol_stream
        yield from iter_symbols(stream, offset=0, end=stream.size)
