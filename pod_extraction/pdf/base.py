from abc import ABC, abstractmethod


class BasePdfReader(ABC):
    """Contract for all PDF inspection adapters."""

    @abstractmethod
    def count_pages(self, pdf_bytes: bytes) -> int:
        """Return the number of pages in a PDF.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Page count, always at least 1.

        Raises:
            PdfReadError: if the bytes cannot be read as a PDF or it has no pages.
        """
