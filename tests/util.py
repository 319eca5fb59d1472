"""Helpers to assemble synthetic PDB content for the tests.

Everything is written with `struct` so the tests do not depend on the structure definitions they verify.
"""

from __future__ import annotations

import struct
from io import BytesIO
from typing import Optional

from dissect.pdbinfo.helpers.c_pdb import PDB7_SIGNATURE, c_pdb
from dissect.pdbinfo.helpers.dbi import ModuleDescriptor, SymbolRecord, iter_symbols
from dissect.pdbinfo.helpers.pagestream import PageStream
from dissect.pdbinfo.helpers.tpi import ItemStream

PAGE_SIZE = 512

# Leaf kinds
LF_MODIFIER = 0x1001
LF_POINTER = 0x1002
LF_PROCEDURE = 0x1008
LF_MFUNCTION = 0x1009
LF_ARGLIST = 0x1201
LF_FIELDLIST = 0x1203
LF_BITFIELD = 0x1205
LF_ENUMERATE = 0x1502
LF_ARRAY = 0x1503
LF_CLASS = 0x1504
LF_STRUCTURE = 0x1505
LF_UNION = 0x1506
LF_ENUM = 0x1507
LF_MEMBER = 0x150D
LF_VTSHAPE = 0x000A
LF_FUNC_ID = 0x1601
LF_MFUNC_ID = 0x1602
LF_BUILDINFO = 0x1603
LF_SUBSTR_LIST = 0x1604
LF_STRING_ID = 0x1605

# Symbol kinds
S_END = 0x0006
S_LDATA32 = 0x110C
S_GDATA32 = 0x110D
S_PUB32 = 0x110E
S_LPROC32 = 0x110F
S_GPROC32 = 0x1110
S_COMPILE2 = 0x1116
S_COMPILE3 = 0x113C
S_LPROC32_ID = 0x1146
S_GPROC32_ID = 0x1147
S_BUILDINFO = 0x114C
S_LPROC32_DPC = 0x1155
S_LPROC32_DPC_ID = 0x1156

# Primitive type indices
T_VOID = 0x0003
T_CHAR = 0x0070
T_INT4 = 0x0074
T_UINT4 = 0x0075
T_64PVOID = 0x0603

DEBUG_S_FILECHKSMS = 0xF4
DEBUG_S_LINES = 0xF2


def cstring(value: str) -> bytes:
    return value.encode() + b"\x00"


def numeric(value: int) -> bytes:
    if value < 0x8000:
        return struct.pack("<H", value)
    return struct.pack("<HI", 0x8004, value)


def leaf_padding(length: int) -> bytes:
    """The LF_PAD bytes that align a type record or field list entry of the given length to 4 bytes."""
    count = -length % 4
    return bytes(0xF0 + idx for idx in range(count, 0, -1))


# Type and id records


def type_record(leaf: int, body: bytes) -> bytes:
    body += leaf_padding(4 + len(body))
    return struct.pack("<HH", 2 + len(body), leaf) + body


def lf_modifier(underlying: int, const: bool = True, volatile: bool = False) -> bytes:
    return type_record(LF_MODIFIER, struct.pack("<IH", underlying, int(const) | int(volatile) << 1))


def lf_pointer(underlying: int, size: int = 8, mode: int = 0, const: bool = False) -> bytes:
    attr = 0x0C | mode << 5 | int(const) << 10 | size << 13
    return type_record(LF_POINTER, struct.pack("<II", underlying, attr))


def lf_arglist(*arguments: int) -> bytes:
    return type_record(LF_ARGLIST, struct.pack(f"<I{len(arguments)}I", len(arguments), *arguments))


def lf_procedure(return_type: int, arglist: int, count: int) -> bytes:
    return type_record(LF_PROCEDURE, struct.pack("<IBBHI", return_type, 0, 0, count, arglist))


def lf_mfunction(return_type: int, class_type: int, this_type: int, arglist: int, count: int) -> bytes:
    body = struct.pack("<IIIBBHIi", return_type, class_type, this_type, 0, 0, count, arglist, 0)
    return type_record(LF_MFUNCTION, body)


def member(name: str, type_index: int, offset: int) -> bytes:
    entry = struct.pack("<HHI", LF_MEMBER, 3, type_index) + numeric(offset) + cstring(name)
    return entry + leaf_padding(len(entry))


def enumerate_(name: str, value: int) -> bytes:
    entry = struct.pack("<HH", LF_ENUMERATE, 3) + numeric(value) + cstring(name)
    return entry + leaf_padding(len(entry))


def lf_fieldlist(*entries: bytes) -> bytes:
    return type_record(LF_FIELDLIST, b"".join(entries))


def lf_structure(
    name: str,
    fields: int,
    size: int,
    count: int = 0,
    forward_reference: bool = False,
    unique_name: Optional[str] = None,
    leaf: int = LF_STRUCTURE,
) -> bytes:
    prop = int(forward_reference) << 7 | int(unique_name is not None) << 9
    body = struct.pack("<HHIII", count, prop, fields, 0, 0) + numeric(size) + cstring(name)
    if unique_name is not None:
        body += cstring(unique_name)
    return type_record(leaf, body)


def lf_union(name: str, fields: int, size: int, count: int = 0) -> bytes:
    body = struct.pack("<HHI", count, 0, fields) + numeric(size) + cstring(name)
    return type_record(LF_UNION, body)


def lf_enum(name: str, underlying: int, fields: int, count: int = 0) -> bytes:
    return type_record(LF_ENUM, struct.pack("<HHII", count, 0, underlying, fields) + cstring(name))


def lf_array(element_type: int, size: int, index_type: int = 0x0023) -> bytes:
    return type_record(LF_ARRAY, struct.pack("<II", element_type, index_type) + numeric(size) + cstring(""))


def lf_bitfield(underlying: int, length: int, position: int) -> bytes:
    return type_record(LF_BITFIELD, struct.pack("<IBB", underlying, length, position))


def lf_func_id(name: str, function_type: int, scope: int = 0) -> bytes:
    return type_record(LF_FUNC_ID, struct.pack("<II", scope, function_type) + cstring(name))


def lf_mfunc_id(name: str, function_type: int, parent: int) -> bytes:
    return type_record(LF_MFUNC_ID, struct.pack("<II", parent, function_type) + cstring(name))


def lf_buildinfo(*arguments: int) -> bytes:
    return type_record(LF_BUILDINFO, struct.pack(f"<H{len(arguments)}I", len(arguments), *arguments))


def lf_substr_list(*strings: int) -> bytes:
    return type_record(LF_SUBSTR_LIST, struct.pack(f"<I{len(strings)}I", len(strings), *strings))


def lf_string_id(value: str, substrings: int = 0) -> bytes:
    return type_record(LF_STRING_ID, struct.pack("<I", substrings) + cstring(value))


def item_stream(*records: bytes, index_min: int = 0x1000) -> bytes:
    data = b"".join(records)
    header = struct.pack("<IIIII", 20040203, 56, index_min, index_min + len(records), len(data))
    header += struct.pack("<HHII", 0xFFFF, 0xFFFF, 4, 0) + bytes(24)
    return header + data


def item_finder(*records: bytes, index_min: int = 0x1000):
    return ItemStream(BytesIO(item_stream(*records, index_min=index_min))).finder()


# Symbol records


def symbol_record(kind: int, body: bytes) -> bytes:
    body += bytes(-(4 + len(body)) % 4)
    return struct.pack("<HH", 2 + len(body), kind) + body


def s_pub32(name: str, section: int, offset: int, flags: int = 0) -> bytes:
    return symbol_record(S_PUB32, struct.pack("<IIH", flags, offset, section) + cstring(name))


def s_data(name: str, type_index: int, section: int, offset: int, kind: int = S_GDATA32) -> bytes:
    return symbol_record(kind, struct.pack("<IIH", type_index, offset, section) + cstring(name))


def s_proc(
    name: str,
    type_index: int,
    section: int,
    offset: int,
    length: int = 0x20,
    debug_start: int = 4,
    debug_end: int = 0x1C,
    kind: int = S_GPROC32,
) -> bytes:
    body = struct.pack("<IIIIIIIIHB", 0, 0, 0, length, debug_start, debug_end, type_index, offset, section, 0)
    return symbol_record(kind, body + cstring(name))


def s_compile3(
    flags: int = 0x01,
    machine: int = 0xD0,
    frontend: tuple[int, int, int, int] = (19, 29, 30139, 0),
    backend: tuple[int, int, int, int] = (19, 29, 30139, 0),
    version: str = "Microsoft (R) Optimizing Compiler",
) -> bytes:
    body = struct.pack("<IH", flags, machine) + struct.pack("<4H", *frontend) + struct.pack("<4H", *backend)
    return symbol_record(S_COMPILE3, body + cstring(version))


def s_compile2(
    flags: int = 0x00,
    machine: int = 0x03,
    frontend: tuple[int, int, int] = (13, 10, 4035),
    backend: tuple[int, int, int] = (13, 10, 4035),
    version: str = "Microsoft (R) Optimizing Compiler",
) -> bytes:
    body = struct.pack("<IH", flags, machine) + struct.pack("<3H", *frontend) + struct.pack("<3H", *backend)
    return symbol_record(S_COMPILE2, body + cstring(version))


def s_buildinfo(id_index: int) -> bytes:
    return symbol_record(S_BUILDINFO, struct.pack("<I", id_index))


def s_end() -> bytes:
    return symbol_record(S_END, b"")


def parse_symbol(data: bytes) -> SymbolRecord:
    return next(iter_symbols(BytesIO(data), offset=0, end=len(data)))


# Module streams


def file_checksum(name_offset: int, kind: int, checksum: bytes) -> bytes:
    entry = struct.pack("<IBB", name_offset, len(checksum), kind) + checksum
    return entry + bytes(-len(entry) % 4)


def subsection(kind: int, data: bytes) -> bytes:
    return struct.pack("<II", kind, len(data)) + data + bytes(-len(data) % 4)


def module_info(
    module_name: str,
    object_name: str,
    stream: int = -1,
    symbol_bytes: int = 0,
    lines_bytes: int = 0,
    old_lines_bytes: int = 0,
) -> bytes:
    section_contribution = struct.pack("<hhiiIhhII", 1, 0, 0, 0, 0, 0, 0, 0, 0)
    body = struct.pack("<I", 0) + section_contribution
    body += struct.pack("<HhIIIhHIII", 0, stream, symbol_bytes, old_lines_bytes, lines_bytes, 0, 0, 0, 0, 0)
    body += cstring(module_name) + cstring(object_name)
    return body + bytes(-len(body) % 4)


def module_stream(symbols: bytes = b"", lines: bytes = b"") -> tuple[bytes, int, int]:
    """Return the module stream data, the size of the symbols and the size of the line information."""

    symbol_data = struct.pack("<I", 4) + symbols
    return symbol_data + lines, len(symbol_data), len(lines)


def module_descriptor(module_name: str, object_name: str, **kwargs) -> ModuleDescriptor:
    return ModuleDescriptor(c_pdb.DbiModuleInfoBase(module_info(module_name, object_name, **kwargs)))


# Streams and containers


class StringTableBuilder:
    """Assemble a `/names` string table, the first string is the empty string at offset 0."""

    def __init__(self):
        self.buffer = b"\x00"

    def add(self, value: str) -> int:
        offset = len(self.buffer)
        self.buffer += cstring(value)
        return offset

    def build(self) -> bytes:
        return struct.pack("<III", 0xEFFEEFFE, 1, len(self.buffer)) + self.buffer


def section_header(name: bytes, virtual_address: int, virtual_size: int = 0x1000) -> bytes:
    return struct.pack("<8sIIIIIIHHI", name, virtual_size, virtual_address, virtual_size, 0x400, 0, 0, 0, 0, 0)


def pdb_info(named_streams: dict[str, int], features: tuple[int, ...] = (20140508,), age: int = 1) -> bytes:
    names = b""
    entries = b""
    for name, index in named_streams.items():
        entries += struct.pack("<II", len(names), index)
        names += cstring(name)

    count = len(named_streams)
    present = (1 << count) - 1
    data = struct.pack("<III", 20000404, 0x5F000000, age) + bytes(range(16))
    data += struct.pack("<I", len(names)) + names
    data += struct.pack("<II", count, max(count, 1))
    data += struct.pack("<II", 1, present) + struct.pack("<I", 0)
    data += entries
    return data + b"".join(struct.pack("<I", feature) for feature in features)


def debug_header(section_headers: int = -1, omap_from_source: int = -1, original_section_headers: int = -1) -> bytes:
    indices = [-1] * 11
    indices[4] = omap_from_source
    indices[5] = section_headers
    indices[10] = original_section_headers
    return struct.pack("<11h", *indices)


def dbi_stream(modules: bytes, symbol_stream: int, debug: bytes = b"", machine: int = 0x8664) -> bytes:
    header = struct.pack(
        "<iIIHHHHHHIIIIIIIIHHI",
        -1,
        19990903,
        1,
        0xFFFF,
        0,
        0xFFFF,
        0,
        symbol_stream,
        0,
        len(modules),
        0,
        0,
        0,
        0,
        0,
        len(debug),
        0,
        0,
        machine,
        0,
    )
    return header + modules + debug


def page_stream(data: bytes) -> PageStream:
    """Wrap data in a `PageStream` that reads it as consecutive pages."""

    count = max(1, -(-len(data) // PAGE_SIZE))
    fh = BytesIO(data.ljust(count * PAGE_SIZE, b"\x00"))
    return PageStream(fh=fh, pages=list(range(count)), size=len(data), page_size=PAGE_SIZE)


def build_msf(streams: list[bytes], page_size: int = PAGE_SIZE) -> bytes:
    """Assemble an MSF 7.00 container holding the given streams."""

    pages = [b""]
    stream_pages = []
    for data in streams:
        indices = []
        for offset in range(0, len(data), page_size):
            indices.append(len(pages))
            pages.append(data[offset : offset + page_size])
        stream_pages.append(indices)

    directory = struct.pack("<I", len(streams))
    directory += b"".join(struct.pack("<I", len(data)) for data in streams)
    directory += b"".join(struct.pack("<I", page) for indices in stream_pages for page in indices)

    directory_pages = []
    for offset in range(0, len(directory), page_size):
        directory_pages.append(len(pages))
        pages.append(directory[offset : offset + page_size])

    block_map_page = len(pages)
    pages.append(b"".join(struct.pack("<I", page) for page in directory_pages))

    pages[0] = PDB7_SIGNATURE + struct.pack("<IIIIII", page_size, 1, len(pages), len(directory), 0, block_map_page)
    return b"".join(page.ljust(page_size, b"\x00") for page in pages)


class ModuleSpec:
    def __init__(self, name: str, object_name: str, symbols: bytes = b"", lines: bytes = b"", stream: bool = True):
        self.name = name
        self.object_name = object_name
        self.symbols = symbols
        self.lines = lines
        self.stream = stream


class PdbBuilder:
    """Assemble a complete PDB file.

    The streams are laid out as follows: 0 (empty), 1 PDB info, 2 TPI, 3 DBI, 4 IPI, 5 `/names`, 6 symbol records,
    7 section headers, followed by the optional OMAP streams and the module streams.
    """

    def __init__(self):
        self.types: list[bytes] = []
        self.ids: list[bytes] = []
        self.strings = StringTableBuilder()
        self.global_symbols: list[bytes] = []
        self.sections: list[bytes] = [section_header(b".text", 0x1000), section_header(b".data", 0x3000)]
        self.original_sections: Optional[list[bytes]] = None
        self.omap: Optional[list[tuple[int, int]]] = None
        self.modules: list[ModuleSpec] = []
        self.with_ipi = True

    def add_type(self, record: bytes) -> int:
        self.types.append(record)
        return 0x1000 + len(self.types) - 1

    def add_id(self, record: bytes) -> int:
        self.ids.append(record)
        return 0x1000 + len(self.ids) - 1

    def add_module(self, *args, **kwargs) -> ModuleSpec:
        module = ModuleSpec(*args, **kwargs)
        self.modules.append(module)
        return module

    def build(self) -> bytes:
        streams = [
            b"",
            pdb_info({"/names": 5}, features=(20140508,) if self.with_ipi else ()),
            item_stream(*self.types),
            b"",  # DBI, assembled below
            item_stream(*self.ids) if self.with_ipi else b"",
            self.strings.build(),
            b"".join(self.global_symbols),
            b"".join(self.sections),
        ]

        original_sections = omap = -1
        if self.original_sections is not None:
            original_sections = len(streams)
            streams.append(b"".join(self.original_sections))
        if self.omap is not None:
            omap = len(streams)
            streams.append(b"".join(struct.pack("<II", source, target) for source, target in self.omap))

        modules = b""
        for module in self.modules:
            if not module.stream:
                modules += module_info(module.name, module.object_name)
                continue

            data, symbol_bytes, lines_bytes = module_stream(module.symbols, module.lines)
            modules += module_info(
                module.name,
                module.object_name,
                stream=len(streams),
                symbol_bytes=symbol_bytes,
                lines_bytes=lines_bytes,
            )
            streams.append(data)

        debug = debug_header(section_headers=7, omap_from_source=omap, original_section_headers=original_sections)
        streams[3] = dbi_stream(modules, symbol_stream=6, debug=debug)
        return build_msf(streams)

    def build_file(self) -> BytesIO:
        return BytesIO(self.build())


S_PROCREF = 0x1125

MD5 = bytes(range(16))


def sample_builder() -> PdbBuilder:
    """A PDB with two compilands and the linker module.

    The first compiland defines `main` and carries the compiler and build information, the second one defines the
    static function `helper`. The global symbols describe a linked list `g_head`.
    """

    builder = PdbBuilder()
    arglist = builder.add_type(lf_arglist(T_INT4))  # 0x1000
    main_type = builder.add_type(lf_procedure(T_INT4, arglist, 1))  # 0x1001
    forward = builder.add_type(lf_structure("Node", 0, 0, forward_reference=True))  # 0x1002
    pointer = builder.add_type(lf_pointer(forward))  # 0x1003
    fields = builder.add_type(lf_fieldlist(member("next", pointer, 0), member("value", T_INT4, 8)))  # 0x1004
    node = builder.add_type(lf_structure("Node", fields, 16, count=2))  # 0x1005
    builder.add_type(type_record(LF_VTSHAPE, struct.pack("<HB", 1, 0)))  # 0x1006

    main_id = builder.add_id(lf_func_id("main", main_type))  # 0x1000
    directory = builder.add_id(lf_string_id("C:\\src"))  # 0x1001
    compiler = builder.add_id(lf_string_id("C:\\VS\\bin\\cl.exe"))  # 0x1002
    build_info = builder.add_id(lf_buildinfo(directory, compiler))  # 0x1003

    main_c = builder.strings.add("C:\\src\\main.c")
    util_c = builder.strings.add("C:\\src\\util.c")

    builder.global_symbols = [
        s_pub32("main", 1, 0x10, flags=0x2),
        s_pub32("__guard_flags", 0, 0x100),
        symbol_record(S_PROCREF, struct.pack("<IIH", 0, 0x40, 1) + cstring("main")),
        s_data("g_head", node, 2, 0x8),
    ]

    builder.add_module(
        "C:\\src\\main.obj",
        "C:\\src\\main.obj",
        symbols=s_compile3() + s_buildinfo(build_info) + s_proc("main", main_id, 1, 0x10, kind=S_GPROC32_ID) + s_end(),
        lines=subsection(DEBUG_S_LINES, bytes(12)) + subsection(DEBUG_S_FILECHKSMS, file_checksum(main_c, 1, MD5)),
    )
    builder.add_module(
        "C:\\src\\util.obj",
        "C:\\src\\util.lib",
        symbols=s_compile3(version="Other compiler") + s_proc("helper", main_type, 1, 0x40, kind=S_LPROC32) + s_end(),
        lines=subsection(DEBUG_S_FILECHKSMS, file_checksum(util_c, 0, b"")),
    )
    builder.add_module("* Linker *", "", stream=False)
    return builder
