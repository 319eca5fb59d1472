from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Callable, Iterator, Optional, Union

# Local imports
from dissect.pdbinfo.address import AddressContext, LogReporter, Reporter
from dissect.pdbinfo.exception import Error, ExtractionError
from dissect.pdbinfo.helpers.c_pdb import c_pdb
from dissect.pdbinfo.metadata import AssemblyInfo, BuildInfo, CompilerInfo
from dissect.pdbinfo.modules import DebugModule
from dissect.pdbinfo.parsed import ParsedPdb
from dissect.pdbinfo.pdb import PDB
from dissect.pdbinfo.resolve import TypeContext
from dissect.pdbinfo.symbols import DATA_KINDS, PROCEDURE_KINDS, Data, Procedure, PublicSymbol
from dissect.pdbinfo.typeinfo import TypeArena

if TYPE_CHECKING:
    from dissect.pdbinfo.helpers.dbi import SymbolRecord

log = logging.getLogger(__name__)

SYM = c_pdb.SYM_ENUM_e

COMPILE_KINDS = (SYM.S_COMPILE3, SYM.S_COMPILE2)


class Extractor:
    """Convert the contents of an opened PDB file into a `ParsedPdb`.

    By default the first record that can not be converted aborts the extraction with an `ExtractionError`. With
    `skip_errors` such records are reported and left out, and the remainder of the file is still extracted.

    Args:
        pdb: The opened `PDB` file.
        base_address: The address that is added to every resolved RVA.
        reporter: Receives the warnings that are emitted during the extraction, they are logged if omitted.
        skip_errors: Whether to skip records that can not be converted.
    """

    def __init__(
        self, pdb: PDB, base_address: int = 0, reporter: Optional[Reporter] = None, skip_errors: bool = False
    ):
        self.pdb = pdb
        self.reporter = reporter if reporter is not None else LogReporter()
        self.skip_errors = skip_errors

        self.address = AddressContext(address_map=pdb.address_map, base_address=base_address, reporter=self.reporter)

        finder = pdb.tpi.finder()
        id_finder = pdb.ipi.finder() if pdb.ipi is not None else None
        self.types = TypeContext(finder=finder, id_finder=id_finder, arena=TypeArena(finder))

    def _convert(self, record: str, convert: Callable[..., Any], *args) -> Any:
        """Run a single conversion, failures either abort the extraction or are reported and result in `None`."""

        try:
            return convert(*args)
        except Error as e:
            if not self.skip_errors:
                raise ExtractionError(record, str(e)) from e

            self.reporter.warn(f"Skipping record that can not be converted: {e}", record)
            return None

    def _iter(self, description: str, records: Iterator) -> Iterator:
        """Iterate over the records of a stream, a stream that can not be read further is handled like a record."""

        try:
            yield from records
        except Error as e:
            if not self.skip_errors:
                raise ExtractionError(description, str(e)) from e

            self.reporter.warn(f"Stopped reading {description}: {e}")

    def extract(self) -> ParsedPdb:
        """Extract the PDB.

        Raises:
            ExtractionError if a record can not be converted and errors are not skipped.
        """

        public_symbols = []
        global_data = []

        for symbol in self._iter("global symbol stream", self.pdb.dbi.symbols()):
            if symbol.kind == SYM.S_PUB32:
                converted = self._convert(repr(symbol), PublicSymbol.from_raw, symbol, self.address)
                target = public_symbols
            elif symbol.kind in DATA_KINDS:
                converted = self._convert(repr(symbol), Data.from_raw, symbol, self.types)
                target = global_data
            else:
                continue

            if converted is not None:
                target.append(converted)

        string_table = self._convert("string table", lambda: self.pdb.string_table)

        compiler_info = None
        build_info = None
        build_info_seen = False
        procedures = []
        debug_modules = []

        for descriptor, info in self._iter("module list", self.pdb.modules()):
            module = self._convert(
                f"module {descriptor.module_name!r}", DebugModule.from_raw, descriptor, info, string_table
            )
            if module is not None:
                debug_modules.append(module)

            if info is None:
                continue

            for symbol in self._iter(f"symbols of module {descriptor.module_name!r}", info.symbols()):
                if symbol.kind in PROCEDURE_KINDS:
                    procedure = self._convert(repr(symbol), Procedure.from_raw, symbol, self.address, self.types)
                    if procedure is not None:
                        procedures.append(procedure)
                elif symbol.kind in COMPILE_KINDS and compiler_info is None:
                    compiler_info = self._convert(repr(symbol), CompilerInfo.from_raw, symbol)
                elif symbol.kind == SYM.S_BUILDINFO and not build_info_seen:
                    build_info_seen = True
                    build_info = self._build_info(symbol)

        log.info(
            "Extracted %d public symbols, %d procedures, %d global data symbols and %d modules",
            len(public_symbols),
            len(procedures),
            len(global_data),
            len(debug_modules),
        )

        return ParsedPdb(
            path=self.pdb.path,
            assembly_info=AssemblyInfo(build_info=build_info, compiler_info=compiler_info),
            public_symbols=tuple(public_symbols),
            types=self.types.arena.types,
            procedures=tuple(procedures),
            global_data=tuple(global_data),
            debug_modules=tuple(debug_modules),
        )

    def _build_info(self, symbol: SymbolRecord) -> Optional[BuildInfo]:
        if self.types.id_finder is None:
            self.reporter.warn("PDB file has no IPI stream, the build information can not be resolved", repr(symbol))
            return None

        return self._convert(repr(symbol), BuildInfo.from_raw, symbol, self.types.id_finder)


def extract(path: Union[str, Path, BinaryIO], **kwargs) -> ParsedPdb:
    """Open a PDB file and extract it, the keyword arguments are passed to `Extractor`."""

    with PDB(path) as pdb:
        return Extractor(pdb, **kwargs).extract()
