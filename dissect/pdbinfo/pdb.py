from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

# Local imports
from dissect.pdbinfo.exception import Error, InvalidIndex, InvalidSignatureError, ReaderError
from dissect.pdbinfo.helpers.c_pdb import (
    IPI_STREAM,
    PDB2_SIGNATURE,
    PDB7_SIGNATURE,
    PDB_STREAM,
    TPI_STREAM,
    c_pdb,
)
from dissect.pdbinfo.helpers.dbi import DBI, ModuleDescriptor
from dissect.pdbinfo.helpers.module import ModuleInfo
from dissect.pdbinfo.helpers.pagestream import PageStream, pages
from dissect.pdbinfo.helpers.sections import AddressMap, parse_omap, parse_section_headers
from dissect.pdbinfo.helpers.strings import PdbInfo, StringTable
from dissect.pdbinfo.helpers.tpi import ItemStream

log = logging.getLogger(__name__)

NIL_STREAM_SIZE = 0xFFFFFFFF


class PDBParser:
    """Base class for parsing PDB files.

    Args:
        fh: A file like object of a PDB file.
    """

    def __init__(self, fh: BinaryIO):
        self.fh = fh
        self.streams: list[PageStream] = []
        self.info = None
        self.dbi = None
        self.tpi = None
        self.ipi = None
        self.machine = None

        self._string_table = None
        self._address_map = None

    def parse_streams(self) -> None:
        """Parse the streams within the PDB file.

        The root stream is parsed so a list of streams can be build which consist of the different stream types that
        are present within PDB files. See the `PageStream` class for a list with entry types.
        """

        self.root = self.root_def(self.root_stream)
        for stream_length in self.root.streamLengths:
            # Deleted streams are marked with a size of -1
            size = 0 if stream_length.stream_size == NIL_STREAM_SIZE else stream_length.stream_size
            pagecount = pages(size=size, page_size=self.header.page_size)
            self.streams.append(
                PageStream(
                    fh=self.fh,
                    pages=self.pagecount_sizetype[pagecount](self.root_stream),
                    size=size,
                    page_size=self.header.page_size,
                )
            )

        self._parse_info()
        self._parse_dbi()
        self._parse_tpi()
        self._parse_ipi()

    def stream(self, index: int) -> PageStream:
        """Return the stream with the given index.

        Raises:
            InvalidIndex if the PDB has no stream with that index.
        """

        if not 0 <= index < len(self.streams):
            raise InvalidIndex(f"stream index out of range: {index}")
        return self.streams[index]

    def _parse_info(self) -> None:
        self.info = PdbInfo(self.stream(PDB_STREAM))

    def _parse_dbi(self) -> None:
        """Parse the DBI stream within the PDB file.

        Some information that is present within the DBI stream is used throughout the rest of the PDB parsing.
        """

        self.dbi = DBI(streams=self.streams)
        self.machine = self.dbi.machine

        # Parse the information within the DBI stream
        self.dbi.parse_info()

    def _parse_tpi(self) -> None:
        self.tpi = ItemStream(self.stream(TPI_STREAM))

    def _parse_ipi(self) -> None:
        """Parse the IPI stream, which is only present in PDB files written by newer toolchains."""

        if not self.info.has_ipi or len(self.streams) <= IPI_STREAM or not self.streams[IPI_STREAM].size:
            log.debug("PDB file does not contain an IPI stream")
            return

        self.ipi = ItemStream(self.streams[IPI_STREAM])

    @property
    def string_table(self) -> Optional[StringTable]:
        """Return the `/names` string table, or `None` if the PDB has none."""

        if self._string_table is None:
            index = self.info.named_streams.get("/names")
            if index is None:
                return None
            self._string_table = StringTable(self.stream(index))

        return self._string_table

    @property
    def address_map(self) -> AddressMap:
        """Return the `AddressMap` to translate section relative addresses of this PDB."""

        if self._address_map is None:
            sections = self.dbi.debug_stream("snSectionHdr")
            original_sections = self.dbi.debug_stream("snSectionHdrOrig")
            omap = self.dbi.debug_stream("snOmapFromSrc")

            if sections is None:
                log.warning("PDB file does not contain section headers, addresses can not be resolved")

            self._address_map = AddressMap(
                sections=parse_section_headers(sections) if sections is not None else [],
                original_sections=parse_section_headers(original_sections) if original_sections is not None else None,
                omap=parse_omap(omap) if omap is not None else None,
            )

        return self._address_map

    def modules(self) -> Iterator[tuple[ModuleDescriptor, Optional[ModuleInfo]]]:
        """Iterate over the modules of the PDB.

        Yields:
            Tuples with the `ModuleDescriptor` and the `ModuleInfo` of every module, the latter is `None` for modules
            without a module stream.
        """

        for descriptor in self.dbi.modules:
            if descriptor.stream is None:
                yield descriptor, None
            else:
                yield descriptor, ModuleInfo(self.stream(descriptor.stream), descriptor)


class PDB2(PDBParser):
    """Class for parsing PDBv2 files.

    Args:
        fh: A file like object of a PDB file.
    """

    def __init__(self, fh: BinaryIO):
        super().__init__(fh=fh)
        self.header = c_pdb.PDB2_HEADER(self.fh)
        self.root_def = c_pdb.ROOT_STREAM_V2
        self.pagecount_sizetype = c_pdb.uint16

        # Retrieve the number of root pages
        root_pages = pages(size=self.header.root_size, page_size=self.header.page_size)

        # Parse the root stream, its page numbers directly follow the header
        root_pages = c_pdb.uint16[root_pages](self.fh)
        self.root_stream = PageStream(
            fh=self.fh, pages=root_pages, size=self.header.root_size, page_size=self.header.page_size
        )
        self.parse_streams()


class PDB7(PDBParser):
    """Class for parsing PDBv7 files.

    Args:
        fh: A file like object of a PDB file.
    """

    def __init__(self, fh: BinaryIO):
        super().__init__(fh=fh)
        self.header = c_pdb.PDB7_HEADER(self.fh)
        self.root_def = c_pdb.ROOT_STREAM_V7
        self.pagecount_sizetype = c_pdb.uint32

        # Retrieve the number of root pages
        root_pages = pages(size=self.header.root_size, page_size=self.header.page_size)
        # The page numbers of the root stream are stored at root_page_index * page_size
        offset = self.header.root_page_index * self.header.page_size
        self.fh.seek(offset)

        # Parse the root stream
        root_pages = c_pdb.uint32[root_pages](self.fh)
        self.root_stream = PageStream(
            fh=self.fh, pages=root_pages, size=self.header.root_size, page_size=self.header.page_size
        )
        self.parse_streams()


class PDB:
    """Class for parsing PDB files.

    Depending on the PDB version the right PDB structures will be used to parse the PDB file.

    Args:
        fh: The location of the PDB file to parse, or a file-like object of a PDB file.

    Raises:
        InvalidSignatureError if the file is not a PDB file.
        ReaderError if the file is truncated.
    """

    def __init__(self, fh: Union[BinaryIO, str, Path]):
        self.path = None
        self._close_fh = False

        if isinstance(fh, (str, Path)):
            self.path = Path(fh)
            fh = self.path.open("rb")
            self._close_fh = True

        self.fh = fh
        try:
            self._check_pdb_version()
        except BaseException:
            self.close()
            raise

    def __enter__(self) -> PDB:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        if self._close_fh:
            self.fh.close()

    def _check_pdb_version(self) -> None:
        """Pick the right PDB parser depending on the version."""

        signature = self.fh.read(64)

        self.fh.seek(0)
        # Check the PDB signature to see with which version we're dealing
        if signature[: len(PDB7_SIGNATURE)] == PDB7_SIGNATURE:
            parser = PDB7
        elif signature[: len(PDB2_SIGNATURE)] == PDB2_SIGNATURE:
            parser = PDB2
        else:
            raise InvalidSignatureError(f"Unsupported PDB signature: {signature[:32]!r}")

        try:
            self.pdb = parser(fh=self.fh)
        except EOFError as e:
            raise ReaderError(f"Truncated PDB file, the {parser.__name__} structures can not be read") from e

        self.header = self.pdb.header
        log.debug("Parsed PDB with %d streams using %s", len(self.pdb.streams), type(self.pdb).__name__)

    @property
    def streams(self) -> list[PageStream]:
        return self.pdb.streams

    def stream(self, index: int) -> PageStream:
        return self.pdb.stream(index)

    @property
    def info(self) -> PdbInfo:
        return self.pdb.info

    @property
    def dbi(self) -> DBI:
        return self.pdb.dbi

    @property
    def tpi(self) -> ItemStream:
        return self.pdb.tpi

    @property
    def ipi(self) -> Optional[ItemStream]:
        return self.pdb.ipi

    @property
    def string_table(self) -> Optional[StringTable]:
        return self.pdb.string_table

    @property
    def address_map(self) -> AddressMap:
        return self.pdb.address_map

    def modules(self) -> Iterator[tuple[ModuleDescriptor, Optional[ModuleInfo]]]:
        return self.pdb.modules()


def _log_level(verbose: int) -> int:
    if verbose:
        return logging.DEBUG if verbose > 1 else logging.INFO

    level = os.environ.get("DISSECT_LOG_PDBINFO", "WARNING").upper()
    return getattr(logging, level, logging.WARNING)


def main() -> None:
    # Imported here, the extraction driver itself depends on this module
    from dissect.pdbinfo.extract import Extractor

    parser = argparse.ArgumentParser(description="Extract the debug information of a PDB file as a JSON document.")
    parser.add_argument("-p", "--pdb", required=True, help="PDB file to parse.")
    parser.add_argument(
        "-b",
        "--base-address",
        type=lambda value: int(value, 0),
        default=0,
        help="Base address that is added to every resolved address (e.g. 0x140000000).",
    )
    parser.add_argument("-o", "--output", help="File to write the JSON document to, stdout if omitted.")
    parser.add_argument("--indent", type=int, default=2, help="Indentation of the JSON document.")
    parser.add_argument(
        "--skip-errors", action="store_true", help="Report and skip records that can not be converted."
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase the log verbosity.")

    args = parser.parse_args()
    logging.basicConfig(level=_log_level(args.verbose), format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    if args.base_address < 0:
        parser.error("the base address can not be negative")

    log.info("Parsing PDB: %s", args.pdb)
    try:
        with PDB(args.pdb) as pdb:
            parsed = Extractor(pdb, base_address=args.base_address, skip_errors=args.skip_errors).extract()
    except Error as e:
        parser.exit(1, f"Failed to extract {args.pdb}: {e}\n")

    document = parsed.dumps(indent=args.indent)
    if args.output:
        Path(args.output).write_text(document + "\n")
    else:
        sys.stdout.write(document + "\n")


if __name__ == "__main__":
    main()
