import struct
from io import BytesIO
from pathlib import Path

import pytest

from dissect.pdbinfo.exception import InvalidIndex, InvalidSignatureError, ReaderError
from dissect.pdbinfo.helpers.c_pdb import PDB7_SIGNATURE
from dissect.pdbinfo.helpers.dbi import DBI
from dissect.pdbinfo.helpers.module import ModuleInfo
from dissect.pdbinfo.pdb import PDB

from .util import (
    PAGE_SIZE,
    S_BUILDINFO,
    S_COMPILE3,
    S_END,
    S_GPROC32_ID,
    T_INT4,
    PdbBuilder,
    dbi_stream,
    lf_pointer,
    page_stream,
    sample_builder,
    section_header,
)


def test_pdb7_header() -> None:
    pdb = PDB(sample_builder().build_file())

    assert pdb.header.signature == PDB7_SIGNATURE
    assert pdb.header.page_size == PAGE_SIZE
    assert pdb.path is None
    # 8 fixed streams and two module streams
    assert len(pdb.streams) == 10


def test_pdb_invalid_signature() -> None:
    with pytest.raises(InvalidSignatureError):
        PDB(BytesIO(b"Microsoft C/C++ MSF 6.00\r\n" + bytes(512)))


def test_pdb_info_stream() -> None:
    pdb = PDB(sample_builder().build_file())

    assert pdb.info.named_streams == {"/names": 5}
    assert pdb.info.has_ipi
    assert pdb.info.age == 1


def test_pdb_dbi() -> None:
    pdb = PDB(sample_builder().build_file())

    assert pdb.dbi.machine == 0x8664
    assert pdb.dbi.header.snSymRecs == 6
    assert [module.module_name for module in pdb.dbi.modules] == [
        "C:\\src\\main.obj",
        "C:\\src\\util.obj",
        "* Linker *",
    ]
    assert [module.object_file_name for module in pdb.dbi.modules] == ["C:\\src\\main.obj", "C:\\src\\util.lib", ""]
    assert [module.stream for module in pdb.dbi.modules] == [8, 9, None]


def test_pdb_global_symbols() -> None:
    pdb = PDB(sample_builder().build_file())

    symbols = list(pdb.dbi.symbols())
    assert [symbol.kind for symbol in symbols] == [0x110E, 0x110E, 0x1125, 0x110D]
    # Record kinds that are not converted carry no data
    assert symbols[2].data is None
    assert symbols[3].data.name == b"g_head"


def test_pdb_item_streams() -> None:
    pdb = PDB(sample_builder().build_file())

    assert len(pdb.tpi) == 7
    assert len(pdb.ipi) == 4
    assert pdb.tpi.finder().find(0x1005).parse().name == "Node"
    assert pdb.ipi.finder().find(0x1000).parse().name == "main"


def test_pdb_without_ipi() -> None:
    builder = sample_builder()
    builder.with_ipi = False
    pdb = PDB(builder.build_file())

    assert not pdb.info.has_ipi
    assert pdb.ipi is None


def test_pdb_string_table() -> None:
    pdb = PDB(sample_builder().build_file())

    assert pdb.string_table.get(1) == "C:\\src\\main.c"
    assert pdb.string_table is pdb.string_table


def test_pdb_address_map() -> None:
    pdb = PDB(sample_builder().build_file())

    assert pdb.address_map.to_rva(1, 0x10) == 0x1010
    assert pdb.address_map.to_rva(2, 0) == 0x3000
    assert pdb.address_map.to_rva(3, 0) is None


def test_pdb_address_map_omap() -> None:
    builder = sample_builder()
    builder.original_sections = [section_header(b".text", 0x1000), section_header(b".data", 0x2000)]
    builder.omap = [(0x1000, 0x6000), (0x2000, 0x3000)]
    pdb = PDB(builder.build_file())

    assert pdb.address_map.to_rva(1, 0x10) == 0x6010
    assert pdb.address_map.to_rva(2, 0x8) == 0x3008
    # The OMAP streams precede the module streams
    assert [module.stream for module in pdb.dbi.modules] == [10, 11, None]


def test_pdb_modules() -> None:
    pdb = PDB(sample_builder().build_file())

    modules = list(pdb.modules())
    assert len(modules) == 3

    descriptor, info = modules[0]
    assert descriptor.module_name == "C:\\src\\main.obj"
    assert isinstance(info, ModuleInfo)
    assert [symbol.kind for symbol in info.symbols()] == [S_COMPILE3, S_BUILDINFO, S_GPROC32_ID, S_END]
    assert info.line_program() is not None

    descriptor, info = modules[2]
    assert descriptor.module_name == "* Linker *"
    assert info is None


def test_pdb_stream_out_of_range() -> None:
    pdb = PDB(sample_builder().build_file())

    with pytest.raises(InvalidIndex):
        pdb.stream(10)


def test_pdb_multi_page_streams() -> None:
    builder = PdbBuilder()
    for _ in range(200):
        builder.add_type(lf_pointer(T_INT4))
    pdb = PDB(builder.build_file())

    assert pdb.stream(2).size > 3 * PAGE_SIZE
    assert len(pdb.tpi) == 200
    assert pdb.tpi.finder().find(0x10C7).parse().underlying == T_INT4


def test_pdb_from_path(tmp_path: Path) -> None:
    path = tmp_path / "sample.pdb"
    path.write_bytes(sample_builder().build())

    with PDB(path) as pdb:
        assert pdb.path == path
        assert len(pdb.dbi.modules) == 3

    assert pdb.fh.closed


@pytest.mark.parametrize(
    "data, exception",
    [
        (PDB7_SIGNATURE + b"\x00\x10\x00\x00", ReaderError),
        (PDB7_SIGNATURE + struct.pack("<IIIIII", PAGE_SIZE, 1, 4, 64, 0, 3), ReaderError),
        (b"MZ" + bytes(1024), InvalidSignatureError),
    ],
)
def test_pdb_from_path_closes_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, data: bytes, exception: type[Exception]
) -> None:
    path = tmp_path / "sample.pdb"
    path.write_bytes(data)

    opened = []
    path_open = Path.open

    def tracking_open(self, *args, **kwargs):
        fh = path_open(self, *args, **kwargs)
        opened.append(fh)
        return fh

    monkeypatch.setattr(Path, "open", tracking_open)

    with pytest.raises(exception):
        PDB(path)

    assert len(opened) == 1
    assert opened[0].closed


def test_dbi_short_debug_header() -> None:
    # Only the stream indices up to snSectionHdr are present
    debug = struct.pack("<6h", -1, -1, -1, -1, -1, 4)
    streams = [page_stream(b"")] * 3 + [page_stream(dbi_stream(b"", symbol_stream=4, debug=debug))]
    streams.append(page_stream(section_header(b".text", 0x1000)))

    dbi = DBI(streams)
    dbi.parse_info()

    assert dbi.modules == []
    assert dbi.debug_header.snSectionHdr == 4
    assert dbi.debug_header.snSectionHdrOrig == -1
    assert dbi.debug_stream("snSectionHdr") is streams[4]
    assert dbi.debug_stream("snSectionHdrOrig") is None


def test_dbi_without_debug_header() -> None:
    streams = [page_stream(b"")] * 3 + [page_stream(dbi_stream(b"", symbol_stream=0))]

    dbi = DBI(streams)
    dbi.parse_info()

    assert dbi.debug_header is None
    assert dbi.debug_stream("snSectionHdr") is None
