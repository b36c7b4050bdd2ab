from dataclasses import dataclass, field

FULL_EMPTY_VALUES = frozenset({"FULL", "EMPTY"})


@dataclass(frozen=True)
class ModelUsage:
    """Token counts reported by the provider for one call."""

    input_tokens: int = 0
    tool_use_prompt_tokens: int = 0
    cached_content_tokens: int = 0
    candidates_tokens: int = 0
    thoughts_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class ModelResponse:
    """Raw text answer of the model plus usage, if the provider reported it."""

    content: str
    usage: ModelUsage | None = None


@dataclass
class PageExtraction:
    """Validated output of the model for one page."""

    container_numbers: list[str | None] = field(default_factory=list)
    container_sizes: list[str | None] = field(default_factory=list)
    full_empty_statuses: list[str | None] = field(default_factory=list)
    page_date: str | None = None
    instruction_number: str | None = None
    vehicle_number: str | None = None
    collected_from: str | None = None
    delivered_to: str | None = None
    unsure_fields: list[str] = field(default_factory=list)
