class ExtractionError(Exception):
    """Raised when page extraction fails."""


class ExtractionValidationError(ExtractionError):
    """Raised when the model output does not match the extraction schema."""


class ExtractionNetworkError(ExtractionError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
