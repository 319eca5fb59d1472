from __future__ import annotations

import threading
from dataclasses import dataclass
from io import BytesIO
from typing import BinaryIO, Iterator, Optional, Tuple, Union

# Local imports
from dissect.pdbinfo.exception import InvalidIndex, ReaderError, Unsupported
from dissect.pdbinfo.helpers.c_pdb import NUMERIC_LEAVES, c_pdb
from dissect.pdbinfo.helpers.utils import decode_name

LEAF = c_pdb.LEAF_ENUM_e


@dataclass(frozen=True)
class ModifierRecord:
    underlying: int
    const: bool
    volatile: bool
    unaligned: bool


@dataclass(frozen=True)
class PointerRecord:
    underlying: int
    mode: int
    size: int
    const: bool
    volatile: bool


@dataclass(frozen=True)
class ProcedureRecord:
    return_type: int
    argument_list: int
    parameter_count: int
    class_type: Optional[int] = None
    this_type: Optional[int] = None


@dataclass(frozen=True)
class ArgumentListRecord:
    arguments: Tuple[int, ...]


@dataclass(frozen=True)
class MemberRecord:
    name: str
    type_index: int
    offset: int


@dataclass(frozen=True)
class FieldListRecord:
    members: Tuple[MemberRecord, ...]
    enumerates: Tuple[Tuple[str, int], ...]
    continuation: Optional[int] = None


@dataclass(frozen=True)
class BitfieldRecord:
    underlying: int
    length: int
    position: int


@dataclass(frozen=True)
class ArrayRecord:
    element_type: int
    index_type: int
    size: int
    name: str


@dataclass(frozen=True)
class ClassRecord:
    """LF_CLASS, LF_STRUCTURE, LF_INTERFACE and LF_UNION records."""

    kind: int
    name: str
    unique_name: Optional[str]
    fields: int
    size: int
    count: int
    forward_reference: bool


@dataclass(frozen=True)
class EnumRecord:
    name: str
    unique_name: Optional[str]
    underlying: int
    fields: int
    count: int
    forward_reference: bool


@dataclass(frozen=True)
class FunctionIdRecord:
    """LF_FUNC_ID and LF_MFUNC_ID records, `parent` is only set for member functions."""

    name: str
    function_type: int
    scope: int = 0
    parent: Optional[int] = None


@dataclass(frozen=True)
class BuildInfoRecord:
    arguments: Tuple[int, ...]


@dataclass(frozen=True)
class StringListRecord:
    strings: Tuple[int, ...]


@dataclass(frozen=True)
class StringIdRecord:
    name: str
    substrings: int


TypeRecord = Union[
    ModifierRecord,
    PointerRecord,
    ProcedureRecord,
    ArgumentListRecord,
    FieldListRecord,
    BitfieldRecord,
    ArrayRecord,
    ClassRecord,
    EnumRecord,
    FunctionIdRecord,
    BuildInfoRecord,
    StringListRecord,
    StringIdRecord,
]


def read_numeric(data: BinaryIO) -> int:
    """Read a numeric leaf, used for sizes, offsets and enumerate values within type records.

    Values below `LF_NUMERIC` are stored directly, larger values are prefixed with the leaf that describes their
    type.

    Args:
        data: The type record data as a file-like object.

    Returns:
        The value as an `int`.

    Raises:
        Unsupported if the numeric leaf is not an integer leaf.
    """

    leaf = c_pdb.uint16(data)
    if leaf < LEAF.LF_NUMERIC:
        return int(leaf)

    try:
        return int(NUMERIC_LEAVES[leaf](data))
    except KeyError:
        raise Unsupported(f"numeric leaf 0x{leaf:04x}")


def read_name(data: BinaryIO) -> str:
    """Read a zero terminated name from the type record data."""
    return decode_name(c_pdb.char[None](data))


def _skip_padding(data: BinaryIO) -> None:
    """Skip the LF_PAD bytes that align the entries within a field list."""

    offset = data.tell()
    peek = data.read(1)
    if peek and peek[0] > 0xF0:
        data.seek(offset + (peek[0] & 0x0F))
    else:
        data.seek(offset)


def _parse_modifier(data: BinaryIO) -> ModifierRecord:
    modifier = c_pdb.LF_MODIFIER(data)
    return ModifierRecord(
        underlying=modifier.modified_type,
        const=bool(modifier.attr.MOD_const),
        volatile=bool(modifier.attr.MOD_volatile),
        unaligned=bool(modifier.attr.MOD_unaligned),
    )


def _parse_pointer(data: BinaryIO) -> PointerRecord:
    ptr = c_pdb.LF_POINTER(data)
    return PointerRecord(
        underlying=ptr.utype,
        mode=(ptr.attr >> 5) & 0x7,
        size=(ptr.attr >> 13) & 0x3F,
        const=bool(ptr.attr & (1 << 10)),
        volatile=bool(ptr.attr & (1 << 9)),
    )


def _parse_procedure(data: BinaryIO) -> ProcedureRecord:
    proc = c_pdb.LF_PROCEDURE(data)
    return ProcedureRecord(return_type=proc.rvtype, argument_list=proc.arglist, parameter_count=proc.parmcount)


def _parse_mfunction(data: BinaryIO) -> ProcedureRecord:
    proc = c_pdb.LF_MFUNCTION(data)
    return ProcedureRecord(
        return_type=proc.rvtype,
        argument_list=proc.arglist,
        parameter_count=proc.parmcount,
        class_type=proc.classtype,
        this_type=proc.thistype,
    )


def _parse_arglist(data: BinaryIO) -> ArgumentListRecord:
    return ArgumentListRecord(arguments=tuple(c_pdb.LF_ARGLIST(data).arg))


def _parse_bitfield(data: BinaryIO) -> BitfieldRecord:
    bitfield = c_pdb.LF_BITFIELD(data)
    return BitfieldRecord(underlying=bitfield.base_type, length=bitfield.bits, position=bitfield.position)


def _parse_array(data: BinaryIO) -> ArrayRecord:
    array = c_pdb.LF_ARRAY(data)
    size = read_numeric(data)
    return ArrayRecord(element_type=array.elemtype, index_type=array.idxtype, size=size, name=read_name(data))


def _parse_class(data: BinaryIO, kind: int) -> ClassRecord:
    if kind == LEAF.LF_UNION:
        lf_class = c_pdb.LF_UNION(data)
    else:
        lf_class = c_pdb.LF_CLASS(data)

    size = read_numeric(data)
    name = read_name(data)
    unique_name = read_name(data) if lf_class.property.hasuniquename else None

    return ClassRecord(
        kind=kind,
        name=name,
        unique_name=unique_name,
        fields=lf_class.field,
        size=size,
        count=lf_class.count,
        forward_reference=bool(lf_class.property.fwdref),
    )


def _parse_enum(data: BinaryIO) -> EnumRecord:
    lf_enum = c_pdb.LF_ENUM(data)
    name = read_name(data)
    unique_name = read_name(data) if lf_enum.property.hasuniquename else None

    return EnumRecord(
        name=name,
        unique_name=unique_name,
        underlying=lf_enum.utype,
        fields=lf_enum.field,
        count=lf_enum.count,
        forward_reference=bool(lf_enum.property.fwdref),
    )


def _parse_fieldlist(data: BinaryIO) -> FieldListRecord:
    """Parser for the LF_FIELDLIST leaf type.

    Only the data members and enumerates are kept, the other entries (methods, base classes, nested types) are
    skipped. A field list that was too large for a single record ends with an LF_INDEX entry pointing to the
    continuation.

    Raises:
        Unsupported if an entry is encountered of which the length is unknown.
    """

    end = len(data.getbuffer())
    members = []
    enumerates = []
    continuation = None

    while data.tell() < end:
        _skip_padding(data)
        if data.tell() >= end:
            break

        leaf = c_pdb.uint16(data)

        if leaf == LEAF.LF_MEMBER:
            member = c_pdb.LF_MEMBER(data)
            offset = read_numeric(data)
            members.append(MemberRecord(name=read_name(data), type_index=member.index, offset=offset))
        elif leaf == LEAF.LF_ENUMERATE:
            c_pdb.CV_fldattr_t(data)
            value = read_numeric(data)
            enumerates.append((read_name(data), value))
        elif leaf == LEAF.LF_STMEMBER:
            c_pdb.LF_MEMBER(data)
            read_name(data)
        elif leaf == LEAF.LF_METHOD:
            data.seek(6, 1)  # count, method list
            read_name(data)
        elif leaf == LEAF.LF_ONEMETHOD:
            method = c_pdb.LF_ONEMETHOD(data)
            if method.attr.mprop in (c_pdb.CV_methodprop_e.CV_MTintro, c_pdb.CV_methodprop_e.CV_MTpureintro):
                c_pdb.uint32(data)  # vtable offset
            read_name(data)
        elif leaf in (LEAF.LF_BCLASS, LEAF.LF_BINTERFACE):
            data.seek(6, 1)  # attributes, base class
            read_numeric(data)
        elif leaf in (LEAF.LF_VBCLASS, LEAF.LF_IVBCLASS):
            data.seek(10, 1)  # attributes, base class, base pointer
            read_numeric(data)
            read_numeric(data)
        elif leaf in (LEAF.LF_VFUNCTAB, LEAF.LF_FRIENDCLS):
            data.seek(6, 1)
        elif leaf in (LEAF.LF_NESTTYPE, LEAF.LF_NESTTYPEEX, LEAF.LF_FRIENDFCN):
            data.seek(6, 1)
            read_name(data)
        elif leaf == LEAF.LF_VFUNCOFF:
            data.seek(10, 1)
        elif leaf == LEAF.LF_INDEX:
            c_pdb.uint16(data)
            continuation = int(c_pdb.uint32(data))
        else:
            raise Unsupported(f"field list entry 0x{leaf:04x}")

    return FieldListRecord(members=tuple(members), enumerates=tuple(enumerates), continuation=continuation)


def _parse_func_id(data: BinaryIO) -> FunctionIdRecord:
    func_id = c_pdb.LF_FUNC_ID(data)
    return FunctionIdRecord(name=decode_name(func_id.name), function_type=func_id.func_type, scope=func_id.scope)


def _parse_mfunc_id(data: BinaryIO) -> FunctionIdRecord:
    func_id = c_pdb.LF_MFUNC_ID(data)
    return FunctionIdRecord(name=decode_name(func_id.name), function_type=func_id.func_type, parent=func_id.parent)


def _parse_buildinfo(data: BinaryIO) -> BuildInfoRecord:
    return BuildInfoRecord(arguments=tuple(c_pdb.LF_BUILDINFO(data).arg))


def _parse_substr_list(data: BinaryIO) -> StringListRecord:
    return StringListRecord(strings=tuple(c_pdb.LF_SUBSTR_LIST(data).arg))


def _parse_string_id(data: BinaryIO) -> StringIdRecord:
    string_id = c_pdb.LF_STRING_ID(data)
    return StringIdRecord(name=decode_name(string_id.name), substrings=string_id.substrings)


RECORD_PARSERS = {
    LEAF.LF_MODIFIER.value: _parse_modifier,
    LEAF.LF_POINTER.value: _parse_pointer,
    LEAF.LF_PROCEDURE.value: _parse_procedure,
    LEAF.LF_MFUNCTION.value: _parse_mfunction,
    LEAF.LF_ARGLIST.value: _parse_arglist,
    LEAF.LF_FIELDLIST.value: _parse_fieldlist,
    LEAF.LF_BITFIELD.value: _parse_bitfield,
    LEAF.LF_ARRAY.value: _parse_array,
    LEAF.LF_ENUM.value: _parse_enum,
    # LF_FUNC_ID, LF_MFUNC_ID, LF_BUILDINFO, LF_SUBSTR_LIST and LF_STRING_ID only occur in the IPI stream
    LEAF.LF_FUNC_ID.value: _parse_func_id,
    LEAF.LF_MFUNC_ID.value: _parse_mfunc_id,
    LEAF.LF_BUILDINFO.value: _parse_buildinfo,
    LEAF.LF_SUBSTR_LIST.value: _parse_substr_list,
    LEAF.LF_STRING_ID.value: _parse_string_id,
}

CLASS_LEAVES = (LEAF.LF_CLASS, LEAF.LF_STRUCTURE, LEAF.LF_INTERFACE, LEAF.LF_UNION)


class Item:
    """A single, not yet parsed, record of the TPI or IPI stream.

    Args:
        index: The type or id index of the record.
        leaf: The leaf kind of the record.
        data: The record data following the leaf kind.
    """

    def __init__(self, index: int, leaf: int, data: bytes):
        self.index = index
        self.leaf = leaf
        self.data = data

    def __repr__(self) -> str:
        return f"<Item index=0x{self.index:x} leaf=0x{self.leaf:04x} size={len(self.data)}>"

    def parse(self) -> TypeRecord:
        """Parse the record data into one of the record classes.

        Raises:
            Unsupported if the leaf kind of the record is not supported.
            ReaderError if the record data is truncated.
        """

        data = BytesIO(self.data)
        try:
            if self.leaf in CLASS_LEAVES:
                return _parse_class(data, self.leaf)

            try:
                parser = RECORD_PARSERS[self.leaf]
            except KeyError:
                raise Unsupported(f"leaf 0x{self.leaf:04x}")

            return parser(data)
        except EOFError as e:
            raise ReaderError(f"truncated record 0x{self.index:x}: {e}")


class ItemStream:
    """Class for parsing the TPI (types) and IPI (ids) streams of a PDB file.

    Both streams share the same layout: a header describing the range of indices, followed by the records in index
    order.

    Args:
        stream: The TPI or IPI stream.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.stream.seek(0)
        self.header = c_pdb.TpiHeader(self.stream)

    @property
    def index_min(self) -> int:
        return self.header.tiMin

    @property
    def index_max(self) -> int:
        return self.header.tiMax

    def __len__(self) -> int:
        return self.header.tiMax - self.header.tiMin

    def __iter__(self) -> Iterator[Item]:
        finder = self.finder()
        for index in range(self.header.tiMin, self.header.tiMax):
            yield finder.find(index)

    def finder(self) -> ItemFinder:
        """Return an `ItemFinder` to look up the records of this stream by index."""
        return ItemFinder(self)


class ItemFinder:
    """Look up the records of a TPI or IPI stream by their index.

    The offsets of the records are only gathered on the first lookup. Lookups are serialized so a finder can be
    shared between threads.

    Args:
        item_stream: The `ItemStream` to look up records in.
    """

    def __init__(self, item_stream: ItemStream):
        self.item_stream = item_stream
        self.stream = item_stream.stream
        self.header = item_stream.header
        self._offsets = None
        self._lock = threading.Lock()

    def _scan(self) -> list[int]:
        """Gather the offset of every record in the stream."""

        offsets = []
        offset = self.header.cbHdr
        end = self.header.cbHdr + self.header.cbGprec

        self.stream.seek(offset)
        for index in range(self.header.tiMin, self.header.tiMax):
            if offset >= end:
                raise ReaderError(f"record 0x{index:x} is located beyond the end of the record data")

            try:
                length = c_pdb.uint16(self.stream)
            except EOFError:
                raise ReaderError(f"truncated record header at offset 0x{offset:x}")

            offsets.append(offset)
            offset += 2 + length
            self.stream.seek(offset)

        return offsets

    def find(self, index: int) -> Item:
        """Return the record with the given index.

        Args:
            index: The type or id index to look up.

        Returns:
            The `Item` for the record, which can be parsed with `Item.parse`.

        Raises:
            InvalidIndex if the index is not part of this stream.
            ReaderError if the record can not be read.
        """

        if not self.header.tiMin <= index < self.header.tiMax:
            raise InvalidIndex(
                f"index 0x{index:x} is outside of the range 0x{self.header.tiMin:x}-0x{self.header.tiMax:x}"
            )

        with self._lock:
            if self._offsets is None:
                self._offsets = self._scan()

            self.stream.seek(self._offsets[index - self.header.tiMin])
            try:
                record = c_pdb.TpiRecordHeader(self.stream)
            except EOFError:
                raise ReaderError(f"truncated record 0x{index:x}")

            data = self.stream.read(record.length - 2)

        if len(data) != record.length - 2:
            raise ReaderError(f"truncated record 0x{index:x}")

        return Item(index=index, leaf=record.leaf, data=data)
