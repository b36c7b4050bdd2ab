import pymupdf

from pod_extraction.pdf.base import BasePdfReader
from pod_extraction.pdf.exceptions import PdfReadError


class PyMuPdfAdapter(BasePdfReader):
    """Counts PDF pages using PyMuPDF."""

    def count_pages(self, pdf_bytes: bytes) -> int:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                page_count = doc.page_count
        except Exception as exc:
            raise PdfReadError(f"pymupdf could not read PDF: {exc}") from exc
        if page_count < 1:
            raise PdfReadError("PDF has no pages")
        return page_count
