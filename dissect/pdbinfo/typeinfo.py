from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, Optional, Tuple

# Local imports
from dissect.pdbinfo.exception import Unsupported
from dissect.pdbinfo.helpers.c_pdb import (
    PRIMITIVE_POINTER_SIZES,
    PRIMITIVE_TYPES,
    TI_FIRST_NONPRIMITIVE,
    c_pdb,
)
from dissect.pdbinfo.helpers.tpi import (
    CLASS_LEAVES,
    ArgumentListRecord,
    ArrayRecord,
    BitfieldRecord,
    ClassRecord,
    EnumRecord,
    FieldListRecord,
    ModifierRecord,
    PointerRecord,
    ProcedureRecord,
)
from dissect.pdbinfo.resolve import resolve_type

if TYPE_CHECKING:
    from dissect.pdbinfo.helpers.tpi import ItemFinder

LEAF = c_pdb.LEAF_ENUM_e
PTR_MODE = c_pdb.CV_ptrmode_e

REFERENCE_SUFFIXES = {
    PTR_MODE.CV_PTR_MODE_LVREF.value: "&",
    PTR_MODE.CV_PTR_MODE_RVREF.value: "&&",
}


@dataclass(frozen=True)
class Type:
    """A type definition within the type universe of a PDB.

    Args:
        name: The C-like name of the type.
        fields: The members of the type as (name, handle) pairs. Pointers, modifiers, arrays, bitfields and enums have
                a single unnamed field referring to their underlying type.
        len: The size of the type in bits.
    """

    name: str
    fields: Tuple[Tuple[str, int], ...]
    len: int


def _primitive(index: int) -> tuple[str, int]:
    """Return the name and size in bytes of a primitive type index."""

    mode = (index >> 8) & 0xF
    kind = index & 0xFF
    name, size = PRIMITIVE_TYPES.get(kind, (f"<primitive 0x{kind:02x}>", 0))

    if mode:
        return f"{name}*", PRIMITIVE_POINTER_SIZES.get(mode, 0)
    return name, size


class ForwardReferences:
    """Resolve forward references of classes, structures, unions and enums to their full definition.

    Definitions are matched on their unique (decorated) name, or on their name if they have none. The definitions
    are gathered by scanning the complete type stream on first use.

    Args:
        finder: The `ItemFinder` of the TPI stream.
    """

    def __init__(self, finder: ItemFinder):
        self.finder = finder
        self._definitions = None
        self._lock = threading.Lock()

    def _scan(self) -> dict[str, int]:
        definitions = {}
        header = self.finder.header

        for index in range(header.tiMin, header.tiMax):
            item = self.finder.find(index)
            if item.leaf not in CLASS_LEAVES and item.leaf != LEAF.LF_ENUM:
                continue

            record = item.parse()
            if not record.forward_reference:
                definitions.setdefault(record.unique_name or record.name, index)

        return definitions

    def resolve(self, index: int) -> int:
        """Return the index of the definition of a forward reference, or the given index for any other type."""

        if index < TI_FIRST_NONPRIMITIVE:
            return index

        record = resolve_type(self.finder, index)
        if not isinstance(record, (ClassRecord, EnumRecord)) or not record.forward_reference:
            return index

        with self._lock:
            if self._definitions is None:
                self._definitions = self._scan()

        return self._definitions.get(record.unique_name or record.name, index)


def type_size(finder: ItemFinder, index: int, forward_references: Optional[ForwardReferences] = None) -> int:
    """Return the size in bytes of the given type, 0 if the type has no size (e.g. procedures)."""

    if index < TI_FIRST_NONPRIMITIVE:
        return _primitive(index)[1]

    if forward_references is not None:
        index = forward_references.resolve(index)

    record = resolve_type(finder, index)
    if isinstance(record, (ModifierRecord, EnumRecord, BitfieldRecord)):
        return type_size(finder, record.underlying, forward_references)
    if isinstance(record, (PointerRecord, ArrayRecord, ClassRecord)):
        return record.size
    return 0


def _argument_names(finder: ItemFinder, index: int) -> list[str]:
    if index < TI_FIRST_NONPRIMITIVE:
        return []

    record = resolve_type(finder, index)
    if not isinstance(record, ArgumentListRecord):
        raise Unsupported(f"argument list of kind {type(record).__name__}")

    return [type_name(finder, argument) for argument in record.arguments]


def render_signature(finder: ItemFinder, record: ProcedureRecord) -> str:
    """Render the signature of a procedure type record.

    Member functions are rendered as `ret Class::(args)`, any other procedure as `ret (args)`.

    Raises:
        Unsupported if the record is not a procedure record.
        ReaderError if one of the referenced types can not be read.
    """

    if not isinstance(record, ProcedureRecord):
        raise Unsupported(f"signature of {type(record).__name__}")

    return_type = type_name(finder, record.return_type)
    arguments = ", ".join(_argument_names(finder, record.argument_list))

    if record.class_type:
        return f"{return_type} {type_name(finder, record.class_type)}::({arguments})"
    return f"{return_type} ({arguments})"


def type_name(finder: ItemFinder, index: int, forward_references: Optional[ForwardReferences] = None) -> str:
    """Render the C-like name of a type.

    Args:
        finder: The `ItemFinder` of the TPI stream.
        index: The type index.
        forward_references: Used to find the element size of arrays of forward declared types.

    Returns:
        The name of the type, e.g. `const char*`, `_LIST_ENTRY` or `int (void*, unsigned long)`.

    Raises:
        Unsupported if the index refers to a record that is not a type (e.g. a field list).
        ReaderError if the index can not be read.
    """

    if index < TI_FIRST_NONPRIMITIVE:
        return _primitive(index)[0]

    record = resolve_type(finder, index)

    if isinstance(record, ModifierRecord):
        qualifiers = [
            qualifier
            for qualifier, present in (
                ("const", record.const),
                ("volatile", record.volatile),
                ("__unaligned", record.unaligned),
            )
            if present
        ]
        return " ".join([*qualifiers, type_name(finder, record.underlying, forward_references)])

    if isinstance(record, PointerRecord):
        suffix = REFERENCE_SUFFIXES.get(record.mode, "*")

        pointee = resolve_type(finder, record.underlying) if record.underlying >= TI_FIRST_NONPRIMITIVE else None
        if isinstance(pointee, ProcedureRecord):
            arguments = ", ".join(_argument_names(finder, pointee.argument_list))
            name = f"{type_name(finder, pointee.return_type)} ({suffix})({arguments})"
        else:
            name = f"{type_name(finder, record.underlying, forward_references)}{suffix}"

        if record.const:
            name += " const"
        if record.volatile:
            name += " volatile"
        return name

    if isinstance(record, ArrayRecord):
        element_size = type_size(finder, record.element_type, forward_references)
        count = record.size // element_size if element_size else 0
        return f"{type_name(finder, record.element_type, forward_references)}[{count}]"

    if isinstance(record, (ClassRecord, EnumRecord)):
        return record.name

    if isinstance(record, BitfieldRecord):
        return f"{type_name(finder, record.underlying, forward_references)} : {record.length}"

    if isinstance(record, ProcedureRecord):
        return render_signature(finder, record)

    raise Unsupported(f"type name of {type(record).__name__}")


@dataclass
class _PendingType:
    """A type of which the handle is allocated, but not all referenced types are materialized yet."""

    handle: int
    name: str
    len: int
    references: Iterator[Tuple[str, int]]
    fields: list[Tuple[str, int]] = field(default_factory=list)


class TypeArena:
    """The shared universe of type definitions, addressed by integer handles.

    A type index is materialized into a `Type` the first time a handle is requested for it. Forward references share
    the handle of their definition. The handle of a type is allocated before its members are materialized, so types
    that refer to themselves (e.g. through a pointer member) are represented by a cycle of handles.

    Materialization is serialized, and a failed materialization leaves no entries behind.

    Args:
        finder: The `ItemFinder` of the TPI stream.
        forward_references: Resolves forward references, created from the finder if omitted.
    """

    def __init__(self, finder: ItemFinder, forward_references: Optional[ForwardReferences] = None):
        self.finder = finder
        self.forward_references = forward_references or ForwardReferences(finder)

        self._types: list[Optional[Type]] = []
        self._handles: dict[int, int] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._types)

    def __getitem__(self, handle: int) -> Type:
        return self._types[handle]

    @property
    def types(self) -> tuple[Type, ...]:
        """All materialized types, in handle order."""

        with self._lock:
            return tuple(self._types)

    def handle(self, index: int) -> int:
        """Return the handle of the type with the given type index, materializing it if needed.

        Raises:
            Unsupported if the index, or one of the types it refers to, is not a type record that can be converted.
            ReaderError if one of the records can not be read.
        """

        with self._lock:
            if index in self._handles:
                return self._handles[index]

            start = len(self._types)
            try:
                return self._materialize(index)
            except Exception:
                self._rollback(start)
                raise

    def _rollback(self, start: int) -> None:
        del self._types[start:]
        for index in [index for index, handle in self._handles.items() if handle >= start]:
            del self._handles[index]

    def _allocate(self, index: int) -> tuple[int, Optional[int]]:
        """Return the handle of a type index and the index of the definition to build, ``None`` if already known."""

        if index in self._handles:
            return self._handles[index], None

        definition = self.forward_references.resolve(index)
        if definition in self._handles:
            self._handles[index] = self._handles[definition]
            return self._handles[index], None

        handle = len(self._types)
        self._types.append(None)
        self._handles[index] = handle
        self._handles[definition] = handle
        return handle, definition

    def _materialize(self, index: int) -> int:
        handle, definition = self._allocate(index)
        if definition is None:
            return handle

        # Depth first with an explicit stack, type graphs can be far deeper than the interpreter's recursion limit
        stack = [self._pending(handle, definition)]
        while stack:
            pending = stack[-1]
            for name, reference in pending.references:
                child, definition = self._allocate(reference)
                pending.fields.append((name, child))
                if definition is not None:
                    stack.append(self._pending(child, definition))
                    break
            else:
                stack.pop()
                self._types[pending.handle] = Type(name=pending.name, fields=tuple(pending.fields), len=pending.len)

        return handle

    def _pending(self, handle: int, index: int) -> _PendingType:
        name = type_name(self.finder, index, self.forward_references)
        length = type_size(self.finder, index, self.forward_references) * 8

        record = resolve_type(self.finder, index) if index >= TI_FIRST_NONPRIMITIVE else None
        if isinstance(record, BitfieldRecord):
            length = record.length

        return _PendingType(handle, name, length, self._references(index, record))

    def _references(self, index: int, record) -> Iterator[tuple[str, int]]:
        """Yield the (name, type index) pairs of the types a type refers to."""

        if index < TI_FIRST_NONPRIMITIVE:
            # Primitive pointers refer to the primitive type they point to
            if (index >> 8) & 0xF:
                yield "", index & 0xFF
        elif isinstance(record, ClassRecord):
            yield from self._members(record.fields)
        elif isinstance(record, (ModifierRecord, PointerRecord, EnumRecord, BitfieldRecord)):
            yield "", record.underlying
        elif isinstance(record, ArrayRecord):
            yield "", record.element_type

    def _members(self, index: int) -> Iterator[tuple[str, int]]:
        """Yield the data members of a field list and its continuations."""

        seen = set()

        while index >= TI_FIRST_NONPRIMITIVE and index not in seen:
            seen.add(index)

            record = resolve_type(self.finder, index)
            if not isinstance(record, FieldListRecord):
                raise Unsupported(f"field list of kind {type(record).__name__}")

            for member in record.members:
                yield member.name, member.type_index
            index = record.continuation or 0
