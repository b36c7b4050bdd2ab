import uuid
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from pod_extraction.config.settings import Settings
from pod_extraction.database.models import ExtractedPageRecord, ExtractionStatus
from pod_extraction.database.repositories.documents_repository import DocumentsRepository
from pod_extraction.database.repositories.extracted_pages_repository import (
    ExtractedPagesRepository,
)
from pod_extraction.database.repositories.token_usage_repository import TokenUsageRepository
from pod_extraction.extraction.factory import ExtractorFactory
from pod_extraction.extraction.page_extractor import PageExtractor
from pod_extraction.logging.logger import Log
from pod_extraction.pdf.base import BasePdfReader
from pod_extraction.pdf.factory import PdfReaderFactory

Heartbeat = Callable[[str], None]


def _no_heartbeat(_run_id: str) -> None:
    return None


class Orchestrator:
    """Drives one extraction run of a document.

    Run: PROCESSING -> count pages -> extract each page -> COMPLETED.
    A failing page becomes a placeholder row and never aborts the run; any
    other failure marks the document FAILED and is re-raised.
    """

    def __init__(
        self,
        *,
        doc_repo: DocumentsRepository,
        pages_repo: ExtractedPagesRepository,
        page_extractor: PageExtractor,
        pdf_reader: BasePdfReader,
        page_concurrency: int = 1,
    ) -> None:
        self._doc_repo = doc_repo
        self._pages_repo = pages_repo
        self._page_extractor = page_extractor
        self._pdf_reader = pdf_reader
        self._page_concurrency = max(1, page_concurrency)

    def run(
        self,
        document_id: str,
        file_bytes: bytes,
        *,
        takeover_run_id: str | None = None,
        heartbeat: Heartbeat | None = None,
    ) -> None:
        """Extract every page of a document and advance its status.

        Args:
            document_id: Target document.
            file_bytes: The document's PDF content.
            takeover_run_id: Run id of a stalled attempt this run may replace.
            heartbeat: Called with the run id once the run owns the document
                and again before each page.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            ExtractionInProgressError: if another run owns the document.
            Exception: any orchestration-level failure, after FAILED is set.
        """
        beat = heartbeat or _no_heartbeat
        run_id = str(uuid.uuid4())
        self._doc_repo.begin_extraction(document_id, run_id, takeover_run_id=takeover_run_id)
        Log.info("Extraction run started", document_id=document_id, run_id=run_id)

        try:
            beat(run_id)
            page_count = self._pdf_reader.count_pages(file_bytes)
            Log.info(f"Document {document_id} has {page_count} pages")
            failed_pages = self._extract_pages(document_id, file_bytes, page_count, run_id, beat)
            self._finish(document_id, run_id, ExtractionStatus.COMPLETED)
        except Exception as exc:
            Log.error(f"Extraction run failed: {exc}", document_id=document_id, run_id=run_id)
            self._finish(document_id, run_id, ExtractionStatus.FAILED)
            raise

        Log.info(
            f"Extraction run {run_id} completed for document {document_id}: "
            f"{page_count - failed_pages}/{page_count} pages extracted"
        )

    def abort(
        self,
        document_id: str,
        reason: str,
        *,
        takeover_run_id: str | None = None,
    ) -> None:
        """Record a run that failed before any page work, e.g. an unreadable file."""
        run_id = str(uuid.uuid4())
        self._doc_repo.begin_extraction(document_id, run_id, takeover_run_id=takeover_run_id)
        Log.error(f"Extraction run {run_id} for document {document_id} aborted: {reason}")
        self._finish(document_id, run_id, ExtractionStatus.FAILED)

    def _extract_pages(
        self,
        document_id: str,
        file_bytes: bytes,
        page_count: int,
        run_id: str,
        beat: Heartbeat,
    ) -> int:
        """Attempt every page and return how many became placeholders."""
        page_numbers = range(1, page_count + 1)
        outcomes: list[bool] = []

        if self._page_concurrency == 1:
            for page_number in page_numbers:
                beat(run_id)
                outcomes.append(self._extract_or_placeholder(file_bytes, page_number, document_id))
            return outcomes.count(False)

        with ThreadPoolExecutor(max_workers=self._page_concurrency) as pool:
            futures: list[Future[bool]] = [
                pool.submit(self._extract_or_placeholder, file_bytes, page_number, document_id)
                for page_number in page_numbers
            ]
            try:
                for future in futures:
                    outcomes.append(future.result())
                    beat(run_id)
            except Exception:
                for future in futures:
                    future.cancel()
                raise
        return outcomes.count(False)

    def _extract_or_placeholder(
        self,
        file_bytes: bytes,
        page_number: int,
        document_id: str,
    ) -> bool:
        try:
            self._page_extractor.extract_page(file_bytes, page_number, document_id)
            return True
        except Exception as exc:
            Log.warning(
                f"Page {page_number} of document {document_id} failed, "
                f"storing placeholder: {exc}"
            )
        self._pages_repo.insert(ExtractedPageRecord.placeholder(document_id, page_number))
        return False

    def _finish(self, document_id: str, run_id: str, status: ExtractionStatus) -> None:
        if self._doc_repo.finish_extraction(document_id, run_id, status):
            Log.info(f"Document {document_id} marked as {status.value}")
        else:
            Log.warning(
                f"Run {run_id} no longer owns document {document_id}; "
                f"{status.value} not recorded"
            )


def build_orchestrator(settings: Settings) -> Orchestrator:
    """Build an Orchestrator with all required adapters."""
    doc_repo = DocumentsRepository()
    pages_repo = ExtractedPagesRepository()
    usage_repo = TokenUsageRepository()
    page_extractor = ExtractorFactory.create(
        settings,
        pages_repo=pages_repo,
        usage_repo=usage_repo,
    )
    return Orchestrator(
        doc_repo=doc_repo,
        pages_repo=pages_repo,
        page_extractor=page_extractor,
        pdf_reader=PdfReaderFactory.create(settings),
        page_concurrency=settings.page_concurrency,
    )
