from __future__ import annotations

from bisect import bisect_right
from typing import TYPE_CHECKING, BinaryIO

from dissect.pdbinfo.helpers.c_pdb import c_pdb

if TYPE_CHECKING:
    from dissect.cstruct import Structure


def parse_section_headers(stream: BinaryIO) -> list[Structure]:
    """Parse a stream consisting of consecutive `IMAGE_SECTION_HEADER` structures.

    Args:
        stream: The section header stream referenced from the DBI debug header.

    Returns:
        A list with the section headers in section order.
    """

    stream.seek(0)
    count = stream.size // c_pdb.IMAGE_SECTION_HEADER.size
    return list(c_pdb.IMAGE_SECTION_HEADER[count](stream))


def parse_omap(stream: BinaryIO) -> list[tuple[int, int]]:
    """Parse an OMAP stream into a list of (source, target) address pairs sorted by source address."""

    stream.seek(0)
    count = stream.size // c_pdb.OMAP_DATA.size
    return sorted((entry.rva, entry.rvaTo) for entry in c_pdb.OMAP_DATA[count](stream))


class AddressMap:
    """Translate section relative addresses of a PDB into relative virtual addresses (RVA) of the image.

    When the image was rewritten after linking (e.g. by BBT or another post-link optimizer), the PDB carries the
    original section headers together with an OMAP that translates original addresses into the addresses of the
    final image.

    Args:
        sections: The section headers of the image.
        original_sections: The section headers of the image before it was rewritten, if any.
        omap: The (source, target) pairs that translate original addresses, if any.
    """

    def __init__(
        self,
        sections: list[Structure],
        original_sections: list[Structure] | None = None,
        omap: list[tuple[int, int]] | None = None,
    ):
        self.sections = sections
        self.original_sections = original_sections
        self.omap = omap
        self._omap_sources = [source for source, _ in omap] if omap else []

    def to_rva(self, section: int, offset: int) -> int | None:
        """Translate a section index and the offset within that section to an RVA.

        Args:
            section: The one based section index as recorded in the symbol records.
            offset: The offset within the section.

        Returns:
            The RVA, or `None` if the address can not be mapped.
        """

        if self.omap is not None and self.original_sections is not None:
            rva = self._section_rva(self.original_sections, section, offset)
            return None if rva is None else self._translate(rva)

        return self._section_rva(self.sections, section, offset)

    @staticmethod
    def _section_rva(sections: list[Structure], section: int, offset: int) -> int | None:
        if not 0 < section <= len(sections):
            return None
        return sections[section - 1].VirtualAddress + offset

    def _translate(self, rva: int) -> int | None:
        """Translate an original RVA using the OMAP, using the closest source address below the given RVA."""

        pos = bisect_right(self._omap_sources, rva) - 1
        if pos < 0:
            return None

        source, target = self.omap[pos]
        if target == 0:
            return None

        return target + (rva - source)
