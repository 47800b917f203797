"""
LEDGERMART Observability

Structured logging with correlation ids for marketplace operations.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                 AssetMarketplace operations              │
    │  log.operation("buy-asset", ms, success, asset_id=7)    │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                      MarketLogger                        │
    │  component tag, correlation id, structured context      │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │            stdlib logging ("ledgermart.*")               │
    │        StructuredHandler (json) │ StreamHandler (text)   │
    └─────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ledgermart.config import LedgerMartConfig, get_config

ROOT_LOGGER_NAME = "ledgermart"

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


class Component(Enum):
    """Marketplace components for log categorization."""
    REGISTRY = "registry"
    MARKETPLACE = "marketplace"
    ADMIN = "admin"
    HOST = "host"
    EVENTS = "events"
    AUDIT = "audit"
    CONFIG = "config"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    component: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs one JSON object per line."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def format_event(self, record: logging.LogRecord) -> LogEvent:
        event = LogEvent(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            level=record.levelname.lower(),
            logger=record.name,
            message=record.getMessage(),
            correlation_id=getattr(record, "correlation_id", "") or correlation_id_var.get(),
            component=getattr(record, "component", ""),
            operation=getattr(record, "operation", ""),
            duration_ms=getattr(record, "duration_ms", None),
            error_code=getattr(record, "error_code", ""),
            context=getattr(record, "context", {}),
        )
        if record.exc_info:
            event.exception = "".join(traceback.format_exception(*record.exc_info))
        return event

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(self.format_event(record).to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


_configure_lock = threading.Lock()
_configured = False


def configure_logging(config: Optional[LedgerMartConfig] = None, stream: Any = None, force: bool = False) -> logging.Logger:
    """Attach the configured handler to the ``ledgermart`` logger once."""
    global _configured
    config = config or get_config()
    root = logging.getLogger(ROOT_LOGGER_NAME)

    with _configure_lock:
        if _configured and not force:
            return root

        for handler in list(root.handlers):
            if isinstance(handler, (StructuredHandler, _TextHandler)):
                root.removeHandler(handler)

        if config.observability.log_format.get() == "json":
            handler: logging.Handler = StructuredHandler(stream)
        else:
            handler = _TextHandler(stream or sys.stderr)
            handler.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s: %(message)s"
            ))
        root.addHandler(handler)
        root.setLevel(getattr(logging, config.observability.log_level.get().upper()))
        _configured = True
    return root


class _TextHandler(logging.StreamHandler):
    pass


class MarketLogger:
    """
    Structured logger for marketplace components.

    Includes the component tag and correlation id in every record.
    """

    def __init__(self, name: str, component: Component):
        self.name = name
        self.component = component
        configure_logging()
        self._logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component.value}.{name}")

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        extra = {
            "component": self.component.value,
            "correlation_id": correlation_id_var.get(),
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        error_code: str = "",
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.INFO if success else logging.WARNING
        status = "completed" if success else "rejected"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            error_code=error_code,
            duration_ms=round(duration_ms, 3),
            **context,
        )


def generate_correlation_id() -> str:
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """Set the correlation ID for the current context."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID, creating one if unset."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def get_logger(name: str, component: Component) -> MarketLogger:
    """Get a logger for a marketplace component."""
    return MarketLogger(name, component)
