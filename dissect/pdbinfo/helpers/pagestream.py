from __future__ import annotations

import math
from typing import BinaryIO, Iterable

# External imports
from dissect.util.stream import AlignedStream


def pages(size: int, page_size: int) -> int:
    """Return the number of pages within a page stream.

    Args:
        size: The size of the stream.
        page_size: The size of a single page.

    Returns:
        The number of pages as an `int` type.
    """

    return math.ceil(size / page_size)


class PageStream(AlignedStream):
    """Class to read the streams within a PDB file. A PDB file is basically a file that
    contains multiple other files in the form of streams.

    PDB layout (from: https://github.com/microsoft/microsoft-pdb)

    STREAM 1        = Pdb Header                  - Version information, and the named stream map (e.g. /names)
    STREAM 2        = Tpi (Type Manager)          - All the types used in the executable.
    STREAM 3        = Dbi (Debug Manager)         - Holds section contributions, and list of 'Mods'
    STREAM 4        = Ipi (Id Manager)            - Function ids, build info and string ids
    STREAM 5-(n+5)  = n Mod's(Module Information) - Each Mod stream holds symbols and line numbers for one compiland
    STREAM n+5      = Global Symbol Hash          - An index that allows searching in global symbols by name
    STREAM n+6      = Public Symbol Hash          - An index that allows searching in public symbols by addresses
    STREAM n+7      = Symbol Records              - Actual symbol records of global and public symbols

    Args:
        fh: A file handle to a PDB file.
        pages: A list with the page numbers that make up this stream.
        size: Size of the stream.
        page_size: Size of a page.
    """

    def __init__(self, fh: BinaryIO, pages: list[int], size: int, page_size: int) -> None:
        super().__init__(size=size, align=page_size)
        self.fh = fh
        self.pages = pages
        self.page_size = page_size

    def _read(self, offset: int, length: int) -> bytes:
        page_num_start, offset_in_page = divmod(offset, self.page_size)
        page_num_end = (offset + length) // self.page_size
        page_data = self._read_pages(self.pages[page_num_start : page_num_end + 1])

        return page_data[offset_in_page:][:length]

    def _read_pages(self, pages: Iterable[int]) -> bytes:
        """Read the given pages of the underlying PDB file.

        Args:
            pages: The page numbers to read.

        Returns:
            The concatenated `bytes` of the pages.
        """

        result = []

        for page_number in pages:
            self.fh.seek(page_number * self.page_size)
            result.append(self.fh.read(self.page_size))

        return b"".join(result)
