from __future__ import annotations

from io import BytesIO
from typing import TYPE_CHECKING, BinaryIO, Iterator

# Local imports
from dissect.pdbinfo.exception import ReaderError
from dissect.pdbinfo.helpers.c_pdb import c_pdb
from dissect.pdbinfo.helpers.dbi import SymbolRecord, iter_symbols
from dissect.pdbinfo.helpers.utils import align

if TYPE_CHECKING:
    from dissect.cstruct import Structure

    from dissect.pdbinfo.helpers.dbi import ModuleDescriptor

SUBSECTION = c_pdb.DEBUG_S_SUBSECTION_TYPE


class LineProgram:
    """The C13 line information of a module, a sequence of debug subsections.

    Only the file checksum subsection is interpreted, it lists the source files that contributed to the module.

    Args:
        data: The raw C13 line information of the module.
    """

    def __init__(self, data: bytes):
        self.data = data

    def subsections(self) -> Iterator[tuple[int, bytes]]:
        """Iterate over the debug subsections of the line information.

        Yields:
            Tuples with the subsection kind and the subsection data.

        Raises:
            ReaderError if a subsection extends beyond the end of the line information.
        """

        offset = 0
        end = len(self.data)
        stream = BytesIO(self.data)

        while offset + c_pdb.DebugSubsectionHeader.size <= end:
            stream.seek(offset)
            header = c_pdb.DebugSubsectionHeader(stream)

            data_offset = offset + c_pdb.DebugSubsectionHeader.size
            if data_offset + header.length > end:
                raise ReaderError(f"debug subsection 0x{header.kind:x} at offset 0x{offset:x} is truncated")

            if not header.kind & SUBSECTION.DEBUG_S_IGNORE:
                yield header.kind, self.data[data_offset : data_offset + header.length]

            # Subsections are aligned on a 4 byte boundary
            offset = align(data_offset + header.length)

    def files(self) -> Iterator[Structure]:
        """Iterate over the entries of the file checksum subsection.

        Yields:
            `FileChecksumEntry` structures, in the order they are stored.

        Raises:
            ReaderError if an entry is truncated.
        """

        for kind, data in self.subsections():
            if kind != SUBSECTION.DEBUG_S_FILECHKSMS:
                continue

            offset = 0
            stream = BytesIO(data)
            while offset < len(data):
                stream.seek(offset)
                try:
                    entry = c_pdb.FileChecksumEntry(stream)
                except EOFError:
                    raise ReaderError(f"truncated file checksum entry at offset 0x{offset:x}")

                yield entry
                offset = align(stream.tell())


class ModuleInfo:
    """Class for parsing the stream of a single module.

    A module stream starts with the symbols of the module, followed by the old style (C11) and the C13 line
    information.

    Args:
        stream: The module stream.
        descriptor: The `ModuleDescriptor` of the module, which holds the sizes of the substreams.
    """

    def __init__(self, stream: BinaryIO, descriptor: ModuleDescriptor):
        self.stream = stream
        self.descriptor = descriptor

        info = descriptor.info
        self.symbol_bytes = info.symbol_bytes
        self.old_lines_bytes = info.old_lines_bytes
        self.lines_bytes = info.lines_bytes

    def __repr__(self) -> str:
        return f"<ModuleInfo name={self.descriptor.module_name!r} symbol_bytes={self.symbol_bytes}>"

    def symbols(self) -> Iterator[SymbolRecord]:
        """Iterate over the symbol records of the module, which follow the 4 byte signature."""

        if self.symbol_bytes <= 4:
            return

        yield from iter_symbols(self.stream, offset=4, end=self.symbol_bytes)

    def line_program(self) -> LineProgram | None:
        """Return the C13 line information of the module.

        Returns:
            A `LineProgram`, or `None` if the module carries no C13 line information.

        Raises:
            ReaderError if the line information is truncated.
        """

        if not self.lines_bytes:
            return None

        self.stream.seek(self.symbol_bytes + self.old_lines_bytes)
        data = self.stream.read(self.lines_bytes)
        if len(data) != self.lines_bytes:
            raise ReaderError(f"truncated line information in module {self.descriptor.module_name!r}")

        return LineProgram(data)
