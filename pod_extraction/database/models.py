from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

ALL_FIELDS_MARKER = "*all*"


class ExtractionStatus(str, Enum):
    """Values of the document_status enum, persisted verbatim."""

    IDEAL = "IDEAL"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class JobRecord:
    """Represents a row from the extraction_jobs table."""

    id: int
    document_id: str
    status: str
    attempts: int
    extraction_run_id: str | None = None
    error_message: str | None = None
    locked_at: datetime | None = None
    heartbeat_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class DocumentRecord:
    """Represents a row from the upload_documents table."""

    id: str
    user_id: str
    instruction_number: str
    document_name: str
    file_url: str
    file_size_in_bytes: int
    extraction_status: ExtractionStatus = ExtractionStatus.IDEAL
    extraction_id: str | None = None
    company_id: str | None = None
    branch_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ExtractionStatusView:
    """Status projection of a document returned by the status query."""

    document_id: str
    status: ExtractionStatus
    extraction_id: str | None = None


@dataclass
class ExtractedPageRecord:
    """Represents a row from the extracted_page_data table.

    The three container lists are parallel: index i describes the same
    container in each of them. Elements may be None when unreadable.
    """

    document_id: str
    page_number: int
    container_numbers: list[str | None] = field(default_factory=list)
    container_sizes: list[str | None] = field(default_factory=list)
    full_empty_statuses: list[str | None] = field(default_factory=list)
    page_date: str | None = None
    instruction_number: str | None = None
    vehicle_number: str | None = None
    collected_from: str | None = None
    delivered_to: str | None = None
    unsure_fields: list[str] = field(default_factory=list)
    id: str | None = None
    created_at: datetime | None = None

    @classmethod
    def placeholder(cls, document_id: str, page_number: int) -> "ExtractedPageRecord":
        """Empty record marking every field of the page as uncertain."""
        return cls(
            document_id=document_id,
            page_number=page_number,
            unsure_fields=[ALL_FIELDS_MARKER],
        )

    @property
    def is_placeholder(self) -> bool:
        return ALL_FIELDS_MARKER in self.unsure_fields


@dataclass
class TokenUsageRecord:
    """Represents a row from the document_token_usage table."""

    document_id: str
    request_id: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    duration_ms: int
    page_number: int | None = None
    tool_use_prompt_tokens: int = 0
    cached_content_tokens: int = 0
    candidates_tokens: int = 0
    thoughts_tokens: int = 0
    id: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class TokenUsageSummary:
    """Token usage summed over every model call made for a document."""

    document_id: str
    request_count: int = 0
    input_tokens: int = 0
    tool_use_prompt_tokens: int = 0
    cached_content_tokens: int = 0
    candidates_tokens: int = 0
    thoughts_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    duration_ms: int = 0
