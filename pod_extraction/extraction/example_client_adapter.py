"""Example extraction client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseExtractionClient and register the provider in ExtractorFactory.
"""

import json
from typing import ClassVar

from pod_extraction.extraction.client_base import BaseExtractionClient
from pod_extraction.extraction.models import ModelResponse


class ExampleClientAdapter(BaseExtractionClient):
    """Example adapter that returns a fixed valid page extraction.

    No network calls and no usage reported. Useful for local development,
    tests, and as a template for building real provider adapters.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "containerNumbers": [],
        "containerSizes": [],
        "fullEmptyStatuses": [],
        "pageDate": None,
        "instructionNumber": None,
        "vehicleNumber": None,
        "collectedFrom": None,
        "deliveredTo": None,
        "unsureFields": [],
    }

    def create_extraction(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
        document_bytes: bytes,
        mime_type: str,
        filename: str,
    ) -> ModelResponse:
        _ = model, temperature, system_prompt, user_prompt, json_schema
        _ = document_bytes, mime_type, filename
        return ModelResponse(content=json.dumps(self.DEFAULT_RESPONSE))
