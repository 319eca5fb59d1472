from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

# Local imports
from dissect.pdbinfo.address import AddressContext, resolve_address
from dissect.pdbinfo.exception import Error, MissingDependency, Unsupported
from dissect.pdbinfo.helpers.c_pdb import c_pdb
from dissect.pdbinfo.helpers.tpi import FunctionIdRecord
from dissect.pdbinfo.helpers.utils import decode_name
from dissect.pdbinfo.resolve import TypeContext, resolve_id, resolve_type
from dissect.pdbinfo.typeinfo import render_signature

if TYPE_CHECKING:
    from dissect.pdbinfo.helpers.dbi import SymbolRecord

log = logging.getLogger(__name__)

SYM = c_pdb.SYM_ENUM_e
CVPSF = c_pdb.CVPSF

PROCEDURE_KINDS = {
    # kind: (is_global, is_dpc, refers to an id)
    SYM.S_GPROC32.value: (True, False, False),
    SYM.S_LPROC32.value: (False, False, False),
    SYM.S_LPROC32_DPC.value: (False, True, False),
    SYM.S_GPROC32_ID.value: (True, False, True),
    SYM.S_LPROC32_ID.value: (False, False, True),
    SYM.S_LPROC32_DPC_ID.value: (False, True, True),
}

DATA_KINDS = (SYM.S_GDATA32, SYM.S_LDATA32, SYM.S_GMANDATA, SYM.S_LMANDATA)


def _check_kind(symbol: SymbolRecord, kinds: tuple[int, ...], what: str) -> None:
    if symbol.kind not in kinds or symbol.data is None:
        raise Unsupported(f"{what} in symbol 0x{symbol.kind:04x}")


@dataclass(frozen=True)
class PublicSymbol:
    name: str
    is_code: bool
    is_function: bool
    is_managed: bool
    is_msil: bool
    offset: Optional[int] = None

    @classmethod
    def from_raw(cls, symbol: SymbolRecord, address: AddressContext) -> PublicSymbol:
        """Convert an `S_PUB32` symbol record.

        An address that can not be resolved results in an `offset` of `None`.

        Raises:
            Unsupported if the record is not an `S_PUB32` record.
        """

        _check_kind(symbol, (SYM.S_PUB32,), "public symbol")

        public = symbol.data
        return cls(
            name=decode_name(public.name),
            is_code=bool(public.cvpsf_flags & CVPSF.CVPSF_CODE),
            is_function=bool(public.cvpsf_flags & CVPSF.CVPSF_FUNCTION),
            is_managed=bool(public.cvpsf_flags & CVPSF.CVPSF_MANAGED),
            is_msil=bool(public.cvpsf_flags & CVPSF.CVPSF_MSIL),
            offset=resolve_address(public.section, public.offset, address, record=symbol),
        )


def _signature(symbol: SymbolRecord, refers_to_id: bool, types: TypeContext) -> Optional[str]:
    """Render the signature of a procedure, `None` if it can not be resolved."""

    try:
        type_index = symbol.data.type_index
        if refers_to_id:
            function_id = resolve_id(types.id_finder, type_index)
            if not isinstance(function_id, FunctionIdRecord):
                raise Unsupported(f"function id of kind {type(function_id).__name__}")
            type_index = function_id.function_type

        return render_signature(types.finder, resolve_type(types.finder, type_index))
    except Error as e:
        log.debug("Failed to resolve the signature of %r: %s", symbol, e)
        return None


@dataclass(frozen=True)
class Procedure:
    name: str
    signature: Optional[str]
    offset: Optional[int]
    len: int
    is_global: bool
    is_dpc: bool
    prologue_end: int
    epilogue_start: int

    @classmethod
    def from_raw(cls, symbol: SymbolRecord, address: AddressContext, types: TypeContext) -> Procedure:
        """Convert a procedure symbol record (`S_GPROC32`, `S_LPROC32`, `S_LPROC32_DPC` and their `_ID` variants).

        The address and the signature degrade to `None` if they can not be resolved.

        Args:
            symbol: The procedure symbol record.
            address: The `AddressContext` to resolve the address of the procedure with.
            types: The `TypeContext` to resolve the signature of the procedure with.

        Raises:
            Unsupported if the record is not a procedure record.
        """

        _check_kind(symbol, tuple(PROCEDURE_KINDS), "procedure")
        is_global, is_dpc, refers_to_id = PROCEDURE_KINDS[symbol.kind]

        procedure = symbol.data
        return cls(
            name=decode_name(procedure.name),
            signature=_signature(symbol, refers_to_id, types),
            offset=resolve_address(procedure.section, procedure.offset, address, record=symbol),
            len=procedure.length,
            is_global=is_global,
            is_dpc=is_dpc,
            prologue_end=procedure.debug_start_offset,
            epilogue_start=procedure.debug_end_offset,
        )


@dataclass(frozen=True)
class Data:
    """A global data symbol.

    Args:
        name: The name of the symbol.
        typ: The handle of the type of the symbol in the `TypeArena`.
        offset: The offset of the symbol within its section.
    """

    name: str
    typ: int
    offset: int

    @classmethod
    def from_raw(cls, symbol: SymbolRecord, types: TypeContext) -> Data:
        """Convert a data symbol record (`S_GDATA32`, `S_LDATA32`, `S_GMANDATA` or `S_LMANDATA`).

        Raises:
            Unsupported if the record is not a data record, or its type can not be converted.
            MissingDependency if the type context has no type arena.
            ReaderError if the type of the symbol can not be read.
        """

        _check_kind(symbol, DATA_KINDS, "data")

        if types.arena is None:
            raise MissingDependency("TypeArena")

        data = symbol.data
        return cls(name=decode_name(data.name), typ=types.arena.handle(data.type_index), offset=data.offset)
