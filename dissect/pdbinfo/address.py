from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

log = logging.getLogger(__name__)


class AddressMapping(Protocol):
    def to_rva(self, section: int, offset: int) -> Optional[int]: ...


@dataclass(frozen=True)
class WarningEvent:
    """A non-fatal condition that was encountered while converting a record."""

    message: str
    record: Any = None


class Reporter:
    """Receives the warnings that are emitted while converting records.

    Subclasses decide where the warnings go, the default implementation drops them.
    """

    def warn(self, message: str, record: Any = None) -> None:
        pass


class LogReporter(Reporter):
    """Reporter that forwards warnings to the logging facility."""

    def __init__(self, logger: logging.Logger = log):
        self.logger = logger

    def warn(self, message: str, record: Any = None) -> None:
        if record is None:
            self.logger.warning(message)
        else:
            self.logger.warning("%s: %r", message, record)


class CollectingReporter(Reporter):
    """Reporter that keeps the warnings as `WarningEvent` objects."""

    def __init__(self):
        self.events: list[WarningEvent] = []

    def warn(self, message: str, record: Any = None) -> None:
        self.events.append(WarningEvent(message=message, record=record))


@dataclass(frozen=True)
class AddressContext:
    """Everything needed to turn a section relative address into an absolute address.

    Args:
        address_map: Translates a section index and offset into an RVA.
        base_address: The address the image is assumed to be loaded at.
        reporter: Receives the warnings about addresses that can not be resolved.
    """

    address_map: AddressMapping
    base_address: int = 0
    reporter: Reporter = field(default_factory=LogReporter)

    def __post_init__(self):
        if self.base_address < 0:
            raise ValueError(f"Invalid base address: {self.base_address:#x}")


def resolve_address(section: int, offset: int, context: AddressContext, record: Any = None) -> Optional[int]:
    """Resolve a section relative address to an absolute address.

    Section index 0 is never a valid location for a symbol. Such addresses are reported through the reporter of the
    context and are not looked up.

    Args:
        section: The one based section index as recorded in the symbol.
        offset: The offset within the section.
        context: The `AddressContext` to resolve the address with.
        record: The record the address belongs to, used to identify it in the warning.

    Returns:
        The base address plus the RVA, or `None` if the address could not be resolved.
    """

    if section == 0:
        context.reporter.warn("symbol has an invalid section index and its address can not be resolved", record)
        return None

    rva = context.address_map.to_rva(section, offset)
    if rva is None:
        return None

    return context.base_address + rva
