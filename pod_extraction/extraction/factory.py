from typing import ClassVar

from pod_extraction.config.settings import Settings
from pod_extraction.database.repositories.extracted_pages_repository import (
    ExtractedPagesRepository,
)
from pod_extraction.database.repositories.token_usage_repository import TokenUsageRepository
from pod_extraction.extraction.example_client_adapter import ExampleClientAdapter
from pod_extraction.extraction.openai_client_adapter import OpenAIClientAdapter
from pod_extraction.extraction.page_extractor import PageExtractor


class ExtractorFactory:
    """Creates the page extractor for the configured provider."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "gemini": "https://generativelanguage.googleapis.com/v1beta/openai/",
        "openrouter": "https://openrouter.ai/api/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(
        cls,
        settings: Settings,
        *,
        pages_repo: ExtractedPagesRepository,
        usage_repo: TokenUsageRepository,
    ) -> PageExtractor:
        """Create a configured page extractor from application settings."""
        provider = settings.extraction_provider.lower()
        if provider == "example":
            return PageExtractor(
                client=ExampleClientAdapter(),
                model="example",
                pages_repo=pages_repo,
                usage_repo=usage_repo,
            )
        client = OpenAIClientAdapter(
            api_key=cls._resolve_api_key(provider, settings),
            timeout_seconds=cls._resolve_timeout_seconds(provider, settings),
            base_url=cls._resolve_base_url(provider, settings),
        )
        return PageExtractor(
            client=client,
            model=cls._resolve_model_name(provider, settings),
            temperature=cls._resolve_temperature(provider, settings),
            pages_repo=pages_repo,
            usage_repo=usage_repo,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.extraction_openai_compatible_base_url or "").strip()
            if not url:
                raise ValueError(
                    "extraction_openai_compatible_base_url is required for "
                    "extraction_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown extraction provider '{provider}'. Choose from: {supported}"
        )

    @classmethod
    def _resolve_api_key(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.extraction_openai_api_key,
            "openai_compatible": settings.extraction_openai_compatible_api_key,
            "gemini": settings.extraction_gemini_api_key,
            "openrouter": settings.extraction_openrouter_api_key,
            "ollama": settings.extraction_ollama_api_key,
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_model_name(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.extraction_openai_model_name,
            "openai_compatible": settings.extraction_openai_compatible_model_name,
            "gemini": settings.extraction_gemini_model_name,
            "openrouter": settings.extraction_openrouter_model_name,
            "ollama": settings.extraction_ollama_model_name,
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_timeout_seconds(cls, provider: str, settings: Settings) -> int:
        key_map = {
            "openai": settings.extraction_openai_timeout_seconds,
            "openai_compatible": settings.extraction_openai_compatible_timeout_seconds,
            "gemini": settings.extraction_gemini_timeout_seconds,
            "openrouter": settings.extraction_openrouter_timeout_seconds,
            "ollama": settings.extraction_ollama_timeout_seconds,
        }
        return key_map.get(provider, 60) or 60

    @classmethod
    def _resolve_temperature(cls, provider: str, settings: Settings) -> float:
        if provider == "openai":
            return settings.extraction_openai_temperature
        return 0.0
