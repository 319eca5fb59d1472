from __future__ import annotations

import io
from contextlib import contextmanager
from typing import BinaryIO, Generator


@contextmanager
def retain_file_offset(
    fobj: BinaryIO, offset: int = None, whence: int = io.SEEK_SET
) -> Generator[BinaryIO, None, None]:
    """Function to retain the file offset while reading a structure somewhere else in the binary object.

    Args:
        fobj: The file-like object we're reading from.
        offset: The offset to seek to before yielding.
        whence: The type of action we perform the seek operation with.

    Yields:
        The file-like object.
    """

    try:
        pos = fobj.tell()
        if offset is not None:
            fobj.seek(offset, whence)
        yield fobj
    finally:
        fobj.seek(pos)


def align(value: int, blocksize: int = 4) -> int:
    """Align an offset to the given blocksize.

    Args:
        value: The offset that needs to be aligned.
        blocksize: The alignment to adhere to.

    Returns:
        The aligned offset, or the offset itself if it was already aligned.
    """

    needs_alignment = value % blocksize
    return value if not needs_alignment else value + (blocksize - needs_alignment)


def decode_name(name: bytes) -> str:
    """Decode a raw name as found in the PDB records, replacing invalid UTF-8 sequences."""
    return name.decode("utf-8", errors="replace")
