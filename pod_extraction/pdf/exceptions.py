class PdfReadError(Exception):
    """Raised when a PDF cannot be opened or inspected."""
