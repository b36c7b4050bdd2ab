import base64
from typing import Any

import httpx
import openai

from pod_extraction.extraction.client_base import BaseExtractionClient
from pod_extraction.extraction.exceptions import ExtractionError, ExtractionNetworkError
from pod_extraction.extraction.models import ModelResponse, ModelUsage


class OpenAIClientAdapter(BaseExtractionClient):
    """Extraction client adapter built on the OpenAI-compatible chat API.

    The PDF travels as a base64 ``file`` content part next to the prompt.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

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
        encoded = base64.b64encode(document_bytes).decode("ascii")
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "pod_page_extraction",
                        "strict": True,
                        "schema": json_schema,
                    },
                },
                messages=[
                    {"role": "system", "content": system_prompt},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": user_prompt},
                            {
                                "type": "file",
                                "file": {
                                    "filename": filename,
                                    "file_data": f"data:{mime_type};base64,{encoded}",
                                },
                            },
                        ],
                    },
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ExtractionNetworkError(
                f"AI provider network error: {exc}"
            ) from exc
        except openai.APIError as exc:
            raise ExtractionNetworkError(
                f"AI provider API error: {exc}"
            ) from exc

        if not response.choices:
            raise ExtractionError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ExtractionError("AI returned empty response")
        return ModelResponse(content=content, usage=self._to_usage(response.usage))

    @staticmethod
    def _to_usage(usage: Any) -> ModelUsage | None:
        if usage is None:
            return None
        prompt_details = getattr(usage, "prompt_tokens_details", None)
        completion_details = getattr(usage, "completion_tokens_details", None)
        cached = getattr(prompt_details, "cached_tokens", None) or 0
        reasoning = getattr(completion_details, "reasoning_tokens", None) or 0
        completion = usage.completion_tokens or 0
        return ModelUsage(
            input_tokens=usage.prompt_tokens or 0,
            cached_content_tokens=cached,
            candidates_tokens=max(completion - reasoning, 0),
            thoughts_tokens=reasoning,
            output_tokens=completion,
            total_tokens=usage.total_tokens or 0,
        )
