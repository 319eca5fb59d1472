from __future__ import annotations

import io
from typing import BinaryIO

from dissect.pdbinfo.exception import InvalidIndex, InvalidSignatureError
from dissect.pdbinfo.helpers.c_pdb import (
    NAME_TABLE_MAGIC,
    PDB_FEATURE_VC110,
    PDB_FEATURE_VC140,
    c_pdb,
)
from dissect.pdbinfo.helpers.utils import decode_name


def _read_bitvector(stream: BinaryIO) -> list[int]:
    """Read a serialized bit vector of the PDB hash tables and return the indices of the set bits."""

    words = c_pdb.uint32[c_pdb.uint32(stream)](stream)
    return [idx * 32 + bit for idx, word in enumerate(words) for bit in range(32) if word & (1 << bit)]


class PdbInfo:
    """Class for parsing the PDB info stream (stream 1).

    Besides the version information of the PDB, this stream contains the named stream map that is used to find
    streams that do not have a fixed index, such as the `/names` string table.

    Args:
        stream: The PDB info stream.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.stream.seek(0)

        self.header = c_pdb.PdbStreamHeader(self.stream)
        self.guid = None
        self.named_streams = {}
        self.features = []

        if self.header.version >= c_pdb.PDBIMPV.PDBImpvVC70:
            self.stream.seek(0)
            self.header = c_pdb.PdbStreamHeader70(self.stream)
            self.guid = self.header.guid

        self._parse_named_streams()
        self._parse_features()

    @property
    def age(self) -> int:
        return self.header.age

    def _parse_named_streams(self) -> None:
        """Parse the serialized hash table mapping stream names to stream indices."""

        names = self.stream.read(c_pdb.uint32(self.stream))

        c_pdb.uint32(self.stream)  # number of entries
        capacity = c_pdb.uint32(self.stream)
        present = _read_bitvector(self.stream)
        _read_bitvector(self.stream)  # deleted entries

        for bucket in present:
            if bucket >= capacity:
                break

            name_offset = c_pdb.uint32(self.stream)
            stream_index = c_pdb.uint32(self.stream)

            name = names[name_offset:].split(b"\x00", 1)[0]
            self.named_streams[decode_name(name)] = stream_index

    def _parse_features(self) -> None:
        """Parse the feature signatures that fill the remainder of the stream."""

        offset = self.stream.tell()
        end = self.stream.seek(0, io.SEEK_END)
        self.stream.seek(offset)

        count = (end - offset) // 4
        self.features = list(c_pdb.uint32[count](self.stream))

    @property
    def has_ipi(self) -> bool:
        """Whether the PDB was written with an IPI (id) stream."""
        return PDB_FEATURE_VC110 in self.features or PDB_FEATURE_VC140 in self.features


class StringTable:
    """Class for parsing the `/names` string table of a PDB file.

    File names in the module line information refer to this table by offset.

    Args:
        stream: The `/names` stream.

    Raises:
        InvalidSignatureError if the stream does not start with the string table magic.
    """

    def __init__(self, stream: BinaryIO):
        stream.seek(0)
        self.header = c_pdb.NameTableHeader(stream)
        if self.header.magic != NAME_TABLE_MAGIC:
            raise InvalidSignatureError(f"Invalid string table magic: 0x{self.header.magic:08x}")

        self.buffer = stream.read(self.header.cbStrings)

    def get(self, offset: int) -> str:
        """Return the string at the given offset of the string table.

        Args:
            offset: The offset into the string buffer.

        Returns:
            The decoded string.

        Raises:
            InvalidIndex if the offset is outside of the string buffer or the string is not terminated.
        """

        if offset >= len(self.buffer):
            raise InvalidIndex(f"string table offset out of bounds: 0x{offset:x}")

        end = self.buffer.find(b"\x00", offset)
        if end == -1:
            raise InvalidIndex(f"unterminated string at string table offset: 0x{offset:x}")

        return decode_name(self.buffer[offset:end])
