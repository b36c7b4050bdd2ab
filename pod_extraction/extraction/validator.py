"""Validates the model's parsed JSON against the page extraction schema."""

from typing import Any

from pod_extraction.extraction.exceptions import ExtractionValidationError
from pod_extraction.extraction.models import FULL_EMPTY_VALUES, PageExtraction

_CONTAINER_FIELDS = ("containerNumbers", "containerSizes", "fullEmptyStatuses")
_OPTIONAL_TEXT_FIELDS = (
    "pageDate",
    "instructionNumber",
    "vehicleNumber",
    "collectedFrom",
    "deliveredTo",
)


def validate_and_build(data: dict[str, Any]) -> PageExtraction:
    """Validate raw parsed JSON and build a PageExtraction.

    The three container lists are required. Optional text fields and
    unsureFields may be absent. When the container lists differ in length the
    shorter ones are padded with None and reported in unsure_fields.

    Raises:
        ExtractionValidationError: on any validation failure.
    """
    for name in _CONTAINER_FIELDS:
        if name not in data:
            raise ExtractionValidationError(f"Missing required field: {name}")

    container_numbers = _build_text_list(data["containerNumbers"], "containerNumbers")
    container_sizes = _build_text_list(data["containerSizes"], "containerSizes")
    full_empty_statuses = _build_status_list(data["fullEmptyStatuses"])
    unsure_fields = _build_unsure_fields(data.get("unsureFields"))
    optional = {name: _build_optional_text(data.get(name), name) for name in _OPTIONAL_TEXT_FIELDS}

    lists = {
        "containerNumbers": container_numbers,
        "containerSizes": container_sizes,
        "fullEmptyStatuses": full_empty_statuses,
    }
    _pad_to_equal_length(lists, unsure_fields)

    return PageExtraction(
        container_numbers=container_numbers,
        container_sizes=container_sizes,
        full_empty_statuses=full_empty_statuses,
        page_date=optional["pageDate"],
        instruction_number=optional["instructionNumber"],
        vehicle_number=optional["vehicleNumber"],
        collected_from=optional["collectedFrom"],
        delivered_to=optional["deliveredTo"],
        unsure_fields=unsure_fields,
    )


def _build_text_list(raw: Any, name: str) -> list[str | None]:
    if not isinstance(raw, list):
        raise ExtractionValidationError(f"'{name}' must be a list")
    for i, item in enumerate(raw):
        if item is not None and not isinstance(item, str):
            raise ExtractionValidationError(
                f"'{name}' item at index {i} must be a string or null"
            )
    return list(raw)


def _build_status_list(raw: Any) -> list[str | None]:
    values = _build_text_list(raw, "fullEmptyStatuses")
    statuses: list[str | None] = []
    for i, value in enumerate(values):
        if value is None:
            statuses.append(None)
            continue
        normalized = value.strip().upper()
        if normalized not in FULL_EMPTY_VALUES:
            raise ExtractionValidationError(
                f"'fullEmptyStatuses' item at index {i} must be one of "
                f"{sorted(FULL_EMPTY_VALUES)} or null, got {value!r}"
            )
        statuses.append(normalized)
    return statuses


def _build_optional_text(raw: Any, name: str) -> str | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ExtractionValidationError(f"'{name}' must be a string or null")
    return raw


def _build_unsure_fields(raw: Any) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise ExtractionValidationError("'unsureFields' must be a list of strings")
    return list(raw)


def _pad_to_equal_length(
    lists: dict[str, list[str | None]],
    unsure_fields: list[str],
) -> None:
    longest = max(len(values) for values in lists.values())
    for name, values in lists.items():
        if len(values) < longest:
            values.extend([None] * (longest - len(values)))
            if name not in unsure_fields:
                unsure_fields.append(name)
