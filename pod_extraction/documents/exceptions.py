class DocumentError(Exception):
    """Base exception for all document-related errors."""


class DocumentNotFoundError(DocumentError):
    """Raised when a document cannot be found in the database."""


class ExtractionInProgressError(DocumentError):
    """Raised when an extraction is started for a document that is already PROCESSING."""


class InvalidUploadError(DocumentError):
    """Raised when upload metadata or content is rejected."""


class UnsupportedFileTypeError(InvalidUploadError):
    """Raised when uploaded content is not a PDF."""


class InvalidRequestError(DocumentError):
    """Raised when query arguments are out of range."""


class UnsupportedStorageError(DocumentError):
    """Raised when a document file URL uses an unsupported storage scheme."""


class FileReadError(DocumentError):
    """Raised when a stored document file cannot be read."""
