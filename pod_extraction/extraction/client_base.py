from abc import ABC, abstractmethod

from pod_extraction.extraction.models import ModelResponse


class BaseExtractionClient(ABC):
    """Contract for provider-specific multimodal extraction clients."""

    @abstractmethod
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
        """Send the document with the prompt and return the provider's answer.

        Raises:
            ExtractionNetworkError: on transport or provider-side failures.
            ExtractionError: when the provider returns no usable content.
        """
