from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from pathlib import PurePath
from typing import Any, Optional, Tuple

# Local imports
from dissect.pdbinfo.metadata import AssemblyInfo
from dissect.pdbinfo.modules import Checksum, ChecksumKind, DebugModule
from dissect.pdbinfo.symbols import Data, Procedure, PublicSymbol
from dissect.pdbinfo.typeinfo import Type


def _encode(value: Any) -> Any:
    """Turn a value of the domain model into plain JSON compatible values.

    Structures become objects keyed by their field names and sequences become arrays. A `Checksum` becomes the
    string `"None"`, or an object with the algorithm as key and the checksum bytes as an array of integers.
    """

    if isinstance(value, Checksum):
        if value.kind is ChecksumKind.NONE:
            return value.kind.value
        return {value.kind.value: list(value.data)}

    if is_dataclass(value):
        return {item.name: _encode(getattr(value, item.name)) for item in fields(value)}

    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]

    if isinstance(value, bytes):
        return list(value)

    if isinstance(value, Enum):
        return value.value

    if isinstance(value, PurePath):
        return str(value)

    return value


@dataclass(frozen=True)
class ParsedPdb:
    """The normalized debug information of a PDB file.

    Args:
        path: The location of the PDB file, `None` if it was read from a file-like object.
        assembly_info: The build and compiler information.
        public_symbols: The public symbols, in the order of the global symbol stream.
        types: The type universe, `Data.typ` and the fields of a `Type` are handles into this sequence.
        procedures: The procedures of all modules, in module order.
        global_data: The data symbols of the global symbol stream.
        debug_modules: The modules (compilands), in the order of the DBI stream.
    """

    path: Optional[PurePath] = None
    assembly_info: AssemblyInfo = field(default_factory=AssemblyInfo)
    public_symbols: Tuple[PublicSymbol, ...] = ()
    types: Tuple[Type, ...] = ()
    procedures: Tuple[Procedure, ...] = ()
    global_data: Tuple[Data, ...] = ()
    debug_modules: Tuple[DebugModule, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return _encode(self)

    def dumps(self, indent: Optional[int] = 2) -> str:
        """Serialize to a JSON document, the field names are stable between runs."""
        return json.dumps(self.to_dict(), indent=indent)
