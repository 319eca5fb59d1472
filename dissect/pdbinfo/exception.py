class Error(Exception):
    """Base exception for this module."""


class InvalidSignatureError(Error):
    """Exception that occurs if the magic in a header does not match."""


class ReaderError(Error):
    """Exception that occurs if a record could not be read from the underlying PDB streams."""


class InvalidIndex(ReaderError):
    """Exception that occurs if a type, id or string index does not point to a record."""


class MissingDependency(Error):
    """Exception that occurs if a conversion needs a table that was not supplied."""

    def __init__(self, resource: str):
        super().__init__(f"missing dependency: {resource}")
        self.resource = resource


class Unsupported(Error):
    """Exception that occurs if a record kind is encountered that can not be converted."""

    def __init__(self, kind: str):
        super().__init__(f"unsupported record: {kind}")
        self.kind = kind


class ExtractionError(Error):
    """Exception that occurs if a record could not be converted while extracting a PDB."""

    def __init__(self, record: str, message: str):
        super().__init__(f"{record}: {message}")
        self.record = record
