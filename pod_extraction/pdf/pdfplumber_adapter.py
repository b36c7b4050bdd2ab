import io

import pdfplumber

from pod_extraction.pdf.base import BasePdfReader
from pod_extraction.pdf.exceptions import PdfReadError


class PdfPlumberAdapter(BasePdfReader):
    """Counts PDF pages using pdfplumber."""

    def count_pages(self, pdf_bytes: bytes) -> int:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                page_count = len(pdf.pages)
        except Exception as exc:
            raise PdfReadError(f"pdfplumber could not read PDF: {exc}") from exc
        if page_count < 1:
            raise PdfReadError("PDF has no pages")
        return page_count
