import logging
import sys

_NOISY_LOGGERS = ("httpx", "openai", "pdfminer")


class _ContextFormatter(logging.Formatter):
    """Appends the key=value context passed to Log calls to the message."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "context", None)
        if not context:
            return message
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{message} [{pairs}]"


class Log:
    """Centralized logging with structured format.

    Keyword arguments become context, e.g.
    ``Log.info("Page extracted", document_id=doc_id, page=2)``.
    """

    _logger: logging.Logger = logging.getLogger("pod_extraction")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Configure the logger with the specified level and stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                _ContextFormatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)
        # Provider SDKs log every HTTP request at INFO.
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._logger.info(message, extra={"context": kwargs})

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._logger.error(message, extra={"context": kwargs})

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        cls._logger.warning(message, extra={"context": kwargs})

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._logger.debug(message, extra={"context": kwargs})

    @classmethod
    def exception(cls, message: str, **kwargs: object) -> None:
        """Log an error with the traceback of the exception being handled."""
        cls._logger.exception(message, extra={"context": kwargs})
