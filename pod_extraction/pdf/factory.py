from pod_extraction.config.settings import Settings
from pod_extraction.pdf.base import BasePdfReader
from pod_extraction.pdf.pdfplumber_adapter import PdfPlumberAdapter
from pod_extraction.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfReaderFactory:
    """Creates the correct PDF reader based on settings."""

    ADAPTERS: dict[str, type[BasePdfReader]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfReader:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
