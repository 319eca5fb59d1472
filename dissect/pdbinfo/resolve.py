from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

# Local imports
from dissect.pdbinfo.exception import MissingDependency

if TYPE_CHECKING:
    from dissect.pdbinfo.helpers.strings import StringTable
    from dissect.pdbinfo.helpers.tpi import ItemFinder, TypeRecord
    from dissect.pdbinfo.typeinfo import TypeArena


@dataclass(frozen=True)
class TypeContext:
    """The tables needed for conversions that refer to type or id records.

    Args:
        finder: Looks up records of the TPI stream.
        id_finder: Looks up records of the IPI stream, `None` if the PDB has no IPI stream.
        arena: The `TypeArena` that type references are materialized in.
    """

    finder: ItemFinder
    id_finder: Optional[ItemFinder] = None
    arena: Optional[TypeArena] = None


def resolve_type(finder: ItemFinder, index: int) -> TypeRecord:
    """Look up a type record and parse it.

    Raises:
        ReaderError if the index does not point to a readable record.
        Unsupported if the record is of a kind that can not be parsed.
    """

    return finder.find(index).parse()


def resolve_id(finder: Optional[ItemFinder], index: int) -> TypeRecord:
    """Look up an id record and parse it.

    Raises:
        MissingDependency if no id finder is available.
        ReaderError if the index does not point to a readable record.
        Unsupported if the record is of a kind that can not be parsed.
    """

    if finder is None:
        raise MissingDependency("IdFinder")

    return finder.find(index).parse()


def resolve_string(string_table: Optional[StringTable], offset: int) -> str:
    """Look up a string in the `/names` string table.

    Raises:
        MissingDependency if the PDB has no string table.
        ReaderError if the offset does not point to a string.
    """

    if string_table is None:
        raise MissingDependency("StringTable")

    return string_table.get(offset)
