"""Tests for prompt template and JSON schema loading."""

import json
from pathlib import Path

import pytest

from pod_extraction.extraction.exceptions import ExtractionError
from pod_extraction.extraction.prompt_loader import load_json_schema, load_prompt_template


class TestLoadPromptTemplate:
    def test_loads_default_template(self) -> None:
        template = load_prompt_template()
        assert "{page_number}" in template
        assert "{json_schema}" in template

    def test_default_template_formats_cleanly(self) -> None:
        rendered = load_prompt_template().format(page_number=2, json_schema="{}")
        assert "{page_number}" not in rendered

    def test_loads_custom_template(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom.txt"
        custom.write_text("Read page {page_number}")
        assert load_prompt_template(custom) == "Read page {page_number}"

    def test_missing_file_raises_error(self) -> None:
        with pytest.raises(ExtractionError, match="Failed to load prompt"):
            load_prompt_template(Path("/nonexistent/file.txt"))


class TestLoadJsonSchema:
    def test_default_schema_requires_every_field(self) -> None:
        schema = json.loads(load_json_schema())
        assert set(schema["required"]) == {
            "containerNumbers",
            "containerSizes",
            "fullEmptyStatuses",
            "pageDate",
            "instructionNumber",
            "vehicleNumber",
            "collectedFrom",
            "deliveredTo",
            "unsureFields",
        }
        assert schema["additionalProperties"] is False

    def test_loads_custom_schema(self, tmp_path: Path) -> None:
        custom = tmp_path / "schema.json"
        custom.write_text('{"type": "object"}')
        assert load_json_schema(custom) == '{"type": "object"}'

    def test_missing_file_raises_error(self) -> None:
        with pytest.raises(ExtractionError, match="Failed to load JSON schema"):
            load_json_schema(Path("/nonexistent/schema.json"))
