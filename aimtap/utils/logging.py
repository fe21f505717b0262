"""
Logging configuration for aimtap.

Structured logging on top of structlog with correlation IDs, operation
context and run timings. Console output goes through Rich, batch output can
be switched to JSON lines.
"""

import contextvars
import logging
import time
import uuid
from typing import Any

import structlog
from rich.logging import RichHandler

# Context variables for the current run
correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)
operation_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "operation_context"
)
operation_start_time: contextvars.ContextVar[float] = contextvars.ContextVar(
    "operation_start_time", default=0.0
)


class CorrelationIDProcessor:
    """Processor to add the run correlation ID to log records."""

    def __call__(
        self, logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        correlation_id_value = correlation_id.get("")
        if correlation_id_value:
            event_dict.setdefault("correlation_id", correlation_id_value)
        return event_dict


class OperationContextProcessor:
    """Processor to add operation context to log records."""

    def __call__(
        self, logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        context = operation_context.get({})
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict


class ElapsedProcessor:
    """Processor to add time spent in the current operation."""

    def __call__(
        self, logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        start_time = operation_start_time.get(0.0)
        if start_time > 0 and "duration_ms" not in event_dict:
            event_dict["elapsed_ms"] = round((time.time() - start_time) * 1000, 2)
        return event_dict


class StructuredLogger:
    """Thin wrapper around a structlog logger with error and metric helpers."""

    def __init__(self, logger_name: str):
        self.logger = structlog.get_logger(logger_name)
        self._logger_name = logger_name

    def with_correlation_id(
        self, correlation_id_value: str | None = None
    ) -> "StructuredLogger":
        """Bind a correlation ID to the current context."""
        if correlation_id_value is None:
            correlation_id_value = generate_correlation_id()

        correlation_id.set(correlation_id_value)
        return self

    def info(self, message: str, **kwargs: Any) -> None:
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.logger.warning(message, **kwargs)

    def error(
        self, message: str, error: Exception | None = None, **kwargs: Any
    ) -> None:
        """Log an error, flattening the exception into structured fields."""
        if error:
            kwargs.update(
                {
                    "error": str(error),
                    "error_type": type(error).__name__,
                }
            )
        self.logger.error(message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.logger.debug(message, **kwargs)

    def performance(self, message: str, duration_ms: float, **kwargs: Any) -> None:
        """Log a timing metric."""
        kwargs["duration_ms"] = round(duration_ms, 2)
        kwargs["performance_metric"] = True
        self.logger.info(message, **kwargs)

    def audit(self, action: str, **kwargs: Any) -> None:
        """Log a change made to the user's databases."""
        kwargs.update(
            {
                "audit": True,
                "action": action,
                "timestamp": time.time(),
            }
        )
        self.logger.info(f"AUDIT: {action}", **kwargs)


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    json_logs: bool = False,
    log_file: str | None = None,
    level_name: str = "INFO",
) -> None:
    """Configure structlog and the stdlib root logger."""

    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, level_name.upper(), logging.INFO)

    base_processors = [
        CorrelationIDProcessor(),
        OperationContextProcessor(),
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        ElapsedProcessor(),
    ]

    if json_logs:
        processors = [
            *base_processors,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
        if log_file:
            logging.basicConfig(
                format="%(message)s",
                level=level,
                filename=log_file,
                encoding="utf-8",
                force=True,
            )
        else:
            logging.basicConfig(format="%(message)s", level=level, force=True)
    else:
        processors = [
            *base_processors,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ]

        rich_handler = RichHandler(
            show_time=False,  # structlog stamps the time
            show_path=False,
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=verbose,
        )
        handlers: list[logging.Handler] = [rich_handler]

        if log_file:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            handlers.append(file_handler)

        logging.basicConfig(
            level=level, format="%(message)s", handlers=handlers, force=True
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name)


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


class LoggingContextManager:
    """Context manager that scopes log records to a named operation."""

    def __init__(
        self,
        logger: StructuredLogger,
        operation: str,
        correlation_id_value: str | None = None,
        **context: Any,
    ):
        self.logger = logger
        self.operation = operation
        self.correlation_id_value = correlation_id_value or generate_correlation_id()
        self.context = context
        self._tokens: list[tuple[contextvars.ContextVar, contextvars.Token]] = []
        self._start_time = 0.0

    def __enter__(self) -> StructuredLogger:
        self._start_time = time.time()
        self._tokens = [
            (correlation_id, correlation_id.set(self.correlation_id_value)),
            (
                operation_context,
                operation_context.set({"operation": self.operation, **self.context}),
            ),
            (operation_start_time, operation_start_time.set(self._start_time)),
        ]

        self.logger.info(f"Starting operation: {self.operation}")
        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = round((time.time() - self._start_time) * 1000, 2)

        if exc_type:
            self.logger.error(
                f"Operation failed: {self.operation}",
                error=exc_val,
                duration_ms=duration_ms,
            )
        else:
            self.logger.info(
                f"Operation completed: {self.operation}",
                duration_ms=duration_ms,
            )

        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens = []


def operation_logger(
    operation_name: str, correlation_id_value: str | None = None, **context: Any
) -> LoggingContextManager:
    """Create a logging context manager for an operation."""
    logger = get_logger(__name__)
    return LoggingContextManager(
        logger, operation_name, correlation_id_value, **context
    )
