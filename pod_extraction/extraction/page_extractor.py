"""AI-powered extraction of one POD receipt page."""

import json
import time
import uuid
from pathlib import Path

from pod_extraction.database.models import ExtractedPageRecord, TokenUsageRecord
from pod_extraction.database.repositories.extracted_pages_repository import (
    ExtractedPagesRepository,
)
from pod_extraction.database.repositories.token_usage_repository import TokenUsageRepository
from pod_extraction.extraction.client_base import BaseExtractionClient
from pod_extraction.extraction.exceptions import ExtractionError
from pod_extraction.extraction.models import ModelUsage
from pod_extraction.extraction.prompt_loader import load_json_schema, load_prompt_template
from pod_extraction.extraction.validator import validate_and_build
from pod_extraction.logging.logger import Log

PDF_MIME_TYPE = "application/pdf"

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert at reading handwritten shipping documents. "
    "You answer only with JSON that matches the requested schema."
)


class PageExtractor:
    """Extracts and persists the structured data of a single PDF page.

    The whole PDF is sent on every call; the prompt names the page to read.
    """

    def __init__(
        self,
        *,
        client: BaseExtractionClient,
        model: str,
        pages_repo: ExtractedPagesRepository,
        usage_repo: TokenUsageRepository,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self._client = client
        self._model = model
        self._pages_repo = pages_repo
        self._usage_repo = usage_repo
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt
        self._prompt_template = load_prompt_template(prompt_template_path)
        schema_str = load_json_schema(json_schema_path)
        self._json_schema = schema_str
        self._json_schema_dict = json.loads(schema_str)

    def extract_page(
        self,
        file_bytes: bytes,
        page_number: int,
        document_id: str,
    ) -> ExtractedPageRecord:
        """Call the model for one page, validate the answer and persist it.

        Raises:
            ExtractionError: on provider, parsing or validation failures.
            psycopg.Error: when a row cannot be written.
        """
        started = time.monotonic()
        prompt = self._build_prompt(page_number)

        response = self._client.create_extraction(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._json_schema_dict,
            document_bytes=file_bytes,
            mime_type=PDF_MIME_TYPE,
            filename=f"{document_id}.pdf",
        )
        if response.usage is not None:
            self._record_usage(document_id, page_number, response.usage, started)
        Log.debug(
            f"AI raw response:\n{response.content}",
            document_id=document_id,
            page=page_number,
        )

        extraction = validate_and_build(self._parse_json(response.content))
        page = ExtractedPageRecord(
            document_id=document_id,
            page_number=page_number,
            container_numbers=extraction.container_numbers,
            container_sizes=extraction.container_sizes,
            full_empty_statuses=extraction.full_empty_statuses,
            page_date=extraction.page_date,
            instruction_number=extraction.instruction_number,
            vehicle_number=extraction.vehicle_number,
            collected_from=extraction.collected_from,
            delivered_to=extraction.delivered_to,
            unsure_fields=extraction.unsure_fields,
        )
        self._pages_repo.insert(page)

        Log.info(
            f"Page {page_number} of document {document_id} extracted: "
            f"{len(page.container_numbers)} containers, "
            f"{len(page.unsure_fields)} unsure fields"
        )
        return page

    def _build_prompt(self, page_number: int) -> str:
        return self._prompt_template.format(
            page_number=page_number,
            json_schema=self._json_schema,
        )

    def _record_usage(
        self,
        document_id: str,
        page_number: int,
        usage: ModelUsage,
        started: float,
    ) -> None:
        self._usage_repo.insert(
            TokenUsageRecord(
                document_id=document_id,
                request_id=str(uuid.uuid4()),
                page_number=page_number,
                input_tokens=usage.input_tokens,
                tool_use_prompt_tokens=usage.tool_use_prompt_tokens,
                cached_content_tokens=usage.cached_content_tokens,
                candidates_tokens=usage.candidates_tokens,
                thoughts_tokens=usage.thoughts_tokens,
                output_tokens=usage.output_tokens,
                total_tokens=usage.total_tokens,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
        )

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ExtractionError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ExtractionError("JSON response must be an object")
        return parsed
