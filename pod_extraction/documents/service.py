import uuid
from pathlib import Path

from pod_extraction.config.settings import Settings
from pod_extraction.database.connection import get_connection
from pod_extraction.database.models import (
    DocumentRecord,
    ExtractedPageRecord,
    ExtractionStatus,
    ExtractionStatusView,
    JobRecord,
    TokenUsageRecord,
    TokenUsageSummary,
)
from pod_extraction.database.repositories.documents_repository import DocumentsRepository
from pod_extraction.database.repositories.extracted_pages_repository import (
    ExtractedPagesRepository,
)
from pod_extraction.database.repositories.job_repository import JobRepository
from pod_extraction.database.repositories.token_usage_repository import TokenUsageRepository
from pod_extraction.documents.exceptions import (
    ExtractionInProgressError,
    InvalidRequestError,
    InvalidUploadError,
    UnsupportedFileTypeError,
)
from pod_extraction.documents.file_store import FileStore
from pod_extraction.documents.models import UploadRequest, UploadResult
from pod_extraction.logging.logger import Log

PDF_MIME_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF-"

DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100


class DocumentService:
    """Upload, status and retrieval operations for POD documents.

    Upload only records the document and enqueues an extraction job; the
    worker process performs the extraction later.
    """

    def __init__(
        self,
        *,
        doc_repo: DocumentsRepository,
        pages_repo: ExtractedPagesRepository,
        usage_repo: TokenUsageRepository,
        job_repo: JobRepository,
        file_store: FileStore,
        max_upload_size_bytes: int,
    ) -> None:
        self._doc_repo = doc_repo
        self._pages_repo = pages_repo
        self._usage_repo = usage_repo
        self._job_repo = job_repo
        self._file_store = file_store
        self._max_upload_size_bytes = max_upload_size_bytes

    def upload(self, request: UploadRequest) -> UploadResult:
        """Store a PDF, create its document row and enqueue extraction.

        Raises:
            UnsupportedFileTypeError: if the content is not a PDF.
            InvalidUploadError: if metadata is missing or malformed.
        """
        self._validate_upload(request)
        document_id = str(uuid.uuid4())
        file_url = self._file_store.save(request.user_id, document_id, request.content)

        try:
            with get_connection() as conn:
                document = self._doc_repo.insert(
                    conn,
                    DocumentRecord(
                        id=document_id,
                        user_id=request.user_id,
                        instruction_number=request.instruction_number.strip(),
                        document_name=request.document_name.strip(),
                        file_url=file_url,
                        file_size_in_bytes=len(request.content),
                        company_id=request.company_id,
                        branch_id=request.branch_id,
                    ),
                )
                job = self._job_repo.enqueue(conn, document.id)
                conn.commit()
        except Exception:
            self._file_store.delete(file_url)
            raise

        Log.info(
            f"Uploaded document {document.id} ({len(request.content)} bytes), "
            f"extraction job {job.id} enqueued"
        )
        return UploadResult(
            document_id=document.id,
            extraction_status=document.extraction_status,
            job_id=job.id,
        )

    def request_extraction(self, document_id: str) -> JobRecord:
        """Enqueue a new extraction attempt for an existing document.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            ExtractionInProgressError: if the document is PROCESSING.
        """
        document_id = _require_uuid(document_id, "document_id", InvalidRequestError)
        status = self._doc_repo.find_extraction_status(document_id)
        if status.status == ExtractionStatus.PROCESSING:
            raise ExtractionInProgressError(
                f"Document {document_id} is already being processed"
            )
        with get_connection() as conn:
            job = self._job_repo.enqueue(conn, document_id)
            conn.commit()
        Log.info(f"Extraction job {job.id} enqueued for document {document_id}")
        return job

    def get_document(self, document_id: str) -> DocumentRecord:
        document_id = _require_uuid(document_id, "document_id", InvalidRequestError)
        return self._doc_repo.find_by_id(document_id)

    def get_extraction_status(self, document_id: str) -> ExtractionStatusView:
        document_id = _require_uuid(document_id, "document_id", InvalidRequestError)
        return self._doc_repo.find_extraction_status(document_id)

    def get_extracted_data(self, document_id: str) -> list[ExtractedPageRecord]:
        """Page rows ordered by page number. A running extraction shows a prefix."""
        document_id = _require_uuid(document_id, "document_id", InvalidRequestError)
        self._doc_repo.find_extraction_status(document_id)
        return self._pages_repo.list_by_document(document_id)

    def list_documents(
        self,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> list[DocumentRecord]:
        """List documents newest first.

        Raises:
            InvalidRequestError: if limit is outside 1..100 or offset is negative.
        """
        if not 1 <= limit <= MAX_LIST_LIMIT:
            raise InvalidRequestError(f"limit must be between 1 and {MAX_LIST_LIMIT}")
        if offset < 0:
            raise InvalidRequestError("offset must be non-negative")
        return self._doc_repo.list_documents(limit=limit, offset=offset)

    def list_documents_by_user(self, user_id: str) -> list[DocumentRecord]:
        return self._doc_repo.list_by_user(_require_uuid(user_id, "user_id", InvalidRequestError))

    def get_token_usage(self, document_id: str) -> list[TokenUsageRecord]:
        document_id = _require_uuid(document_id, "document_id", InvalidRequestError)
        self._doc_repo.find_extraction_status(document_id)
        return self._usage_repo.list_by_document(document_id)

    def get_token_usage_summary(self, document_id: str) -> TokenUsageSummary:
        document_id = _require_uuid(document_id, "document_id", InvalidRequestError)
        self._doc_repo.find_extraction_status(document_id)
        return self._usage_repo.summarize_by_document(document_id)

    def _validate_upload(self, request: UploadRequest) -> None:
        if request.mime_type.lower() != PDF_MIME_TYPE:
            raise UnsupportedFileTypeError(
                f"Only PDF files are accepted, got '{request.mime_type}'"
            )
        if not request.content:
            raise InvalidUploadError("Uploaded file is empty")
        if not request.content.startswith(PDF_MAGIC):
            raise UnsupportedFileTypeError("Uploaded content is not a PDF document")
        if len(request.content) > self._max_upload_size_bytes:
            raise InvalidUploadError(
                f"Uploaded file exceeds {self._max_upload_size_bytes} bytes"
            )
        if not request.instruction_number.strip():
            raise InvalidUploadError("instruction_number must not be empty")
        if not request.document_name.strip():
            raise InvalidUploadError("document_name must not be empty")
        _require_uuid(request.user_id, "user_id", InvalidUploadError)
        if request.company_id is not None:
            _require_uuid(request.company_id, "company_id", InvalidUploadError)
        if request.branch_id is not None:
            _require_uuid(request.branch_id, "branch_id", InvalidUploadError)


def _require_uuid(value: str, name: str, error: type[Exception]) -> str:
    try:
        return str(uuid.UUID(value))
    except (TypeError, ValueError) as exc:
        raise error(f"{name} must be a UUID, got {value!r}") from exc


def build_document_service(settings: Settings, files_root: Path | None = None) -> DocumentService:
    """Build a DocumentService with all required repositories."""
    return DocumentService(
        doc_repo=DocumentsRepository(),
        pages_repo=ExtractedPagesRepository(),
        usage_repo=TokenUsageRepository(),
        job_repo=JobRepository(settings.max_job_attempts, settings.job_lease_seconds),
        file_store=FileStore(files_root=files_root or Path(settings.files_root)),
        max_upload_size_bytes=settings.max_upload_size_bytes,
    )
