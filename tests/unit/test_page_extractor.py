import json
from typing import Any
from unittest.mock import MagicMock

import pytest

from pod_extraction.database.models import ExtractedPageRecord, TokenUsageRecord
from pod_extraction.extraction.exceptions import ExtractionError, ExtractionValidationError
from pod_extraction.extraction.models import ModelResponse, ModelUsage
from pod_extraction.extraction.page_extractor import PageExtractor

DOCUMENT_ID = "0b6f5f9e-7f57-4a7e-9f33-1b1f1c2d3e4f"


def _payload(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "containerNumbers": ["MSCU1234567"],
        "containerSizes": ["40HC"],
        "fullEmptyStatuses": ["FULL"],
        "pageDate": "2024-03-18",
        "instructionNumber": "INS-001",
        "vehicleNumber": "KA01AB1234",
        "collectedFrom": "Terminal 3",
        "deliveredTo": "Depot North",
        "unsureFields": ["vehicleNumber"],
    }
    data.update(overrides)
    return data


def _make_extractor(
    content: str,
    usage: ModelUsage | None = None,
) -> tuple[PageExtractor, MagicMock, MagicMock, MagicMock]:
    client = MagicMock()
    client.create_extraction.return_value = ModelResponse(content=content, usage=usage)
    pages_repo = MagicMock()
    usage_repo = MagicMock()
    extractor = PageExtractor(
        client=client,
        model="test-model",
        pages_repo=pages_repo,
        usage_repo=usage_repo,
    )
    return extractor, client, pages_repo, usage_repo


class TestExtractPage:
    def test_persists_validated_page(self) -> None:
        extractor, _client, pages_repo, _usage = _make_extractor(json.dumps(_payload()))

        page = extractor.extract_page(b"%PDF-1.4", 2, DOCUMENT_ID)

        pages_repo.insert.assert_called_once_with(page)
        assert isinstance(page, ExtractedPageRecord)
        assert page.document_id == DOCUMENT_ID
        assert page.page_number == 2
        assert page.container_numbers == ["MSCU1234567"]
        assert page.full_empty_statuses == ["FULL"]
        assert page.unsure_fields == ["vehicleNumber"]
        assert not page.is_placeholder

    def test_prompt_names_the_page(self) -> None:
        extractor, client, _pages, _usage = _make_extractor(json.dumps(_payload()))

        extractor.extract_page(b"%PDF-1.4", 3, DOCUMENT_ID)

        kwargs = client.create_extraction.call_args.kwargs
        assert "3" in kwargs["user_prompt"]
        assert kwargs["document_bytes"] == b"%PDF-1.4"
        assert kwargs["mime_type"] == "application/pdf"
        assert kwargs["filename"] == f"{DOCUMENT_ID}.pdf"
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0.0

    def test_accepts_fenced_json(self) -> None:
        fenced = "```json\n" + json.dumps(_payload()) + "\n```"
        extractor, _client, pages_repo, _usage = _make_extractor(fenced)

        extractor.extract_page(b"%PDF-1.4", 1, DOCUMENT_ID)

        pages_repo.insert.assert_called_once()


class TestUsageRecording:
    def test_records_usage_with_page_number(self) -> None:
        usage = ModelUsage(input_tokens=80, output_tokens=20, total_tokens=100)
        extractor, _client, _pages, usage_repo = _make_extractor(json.dumps(_payload()), usage)

        extractor.extract_page(b"%PDF-1.4", 4, DOCUMENT_ID)

        record = usage_repo.insert.call_args.args[0]
        assert isinstance(record, TokenUsageRecord)
        assert record.document_id == DOCUMENT_ID
        assert record.page_number == 4
        assert record.total_tokens == 100
        assert record.input_tokens == 80
        assert record.duration_ms >= 0
        assert record.request_id

    def test_no_usage_reported_records_nothing(self) -> None:
        extractor, _client, _pages, usage_repo = _make_extractor(json.dumps(_payload()))

        extractor.extract_page(b"%PDF-1.4", 1, DOCUMENT_ID)

        usage_repo.insert.assert_not_called()

    def test_usage_is_recorded_even_when_validation_fails(self) -> None:
        usage = ModelUsage(total_tokens=50)
        extractor, _client, pages_repo, usage_repo = _make_extractor("not json", usage)

        with pytest.raises(ExtractionError):
            extractor.extract_page(b"%PDF-1.4", 1, DOCUMENT_ID)

        usage_repo.insert.assert_called_once()
        pages_repo.insert.assert_not_called()


class TestInvalidResponses:
    def test_invalid_json_raises(self) -> None:
        extractor, _client, _pages, _usage = _make_extractor("{broken")
        with pytest.raises(ExtractionError, match="Invalid JSON response"):
            extractor.extract_page(b"%PDF-1.4", 1, DOCUMENT_ID)

    def test_non_object_json_raises(self) -> None:
        extractor, _client, _pages, _usage = _make_extractor("[1, 2]")
        with pytest.raises(ExtractionError, match="must be an object"):
            extractor.extract_page(b"%PDF-1.4", 1, DOCUMENT_ID)

    def test_schema_violation_raises_validation_error(self) -> None:
        payload = _payload()
        del payload["containerNumbers"]
        extractor, _client, pages_repo, _usage = _make_extractor(json.dumps(payload))

        with pytest.raises(ExtractionValidationError):
            extractor.extract_page(b"%PDF-1.4", 1, DOCUMENT_ID)
        pages_repo.insert.assert_not_called()

    def test_client_error_propagates(self) -> None:
        extractor, client, _pages, usage_repo = _make_extractor("{}")
        client.create_extraction.side_effect = ExtractionError("provider down")

        with pytest.raises(ExtractionError, match="provider down"):
            extractor.extract_page(b"%PDF-1.4", 1, DOCUMENT_ID)
        usage_repo.insert.assert_not_called()
