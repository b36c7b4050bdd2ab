from dataclasses import dataclass

from pod_extraction.database.models import ExtractionStatus


@dataclass(frozen=True)
class UploadRequest:
    """Input of the upload operation."""

    user_id: str
    instruction_number: str
    document_name: str
    content: bytes
    mime_type: str = "application/pdf"
    company_id: str | None = None
    branch_id: str | None = None


@dataclass(frozen=True)
class UploadResult:
    """Returned immediately by upload, before any extraction work runs."""

    document_id: str
    extraction_status: ExtractionStatus
    job_id: int
