"""
Structured error hierarchy for lokisink.

Every failure raised by the sink carries a category, a severity and a small
context record so callers can decide whether to retry a flush.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx


class ErrorCategory(str, Enum):
    SERIALIZATION = "serialization"
    NETWORK = "network"
    CONFIG = "config"
    SYSTEM = "system"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Diagnostic context attached to a `LokiSinkError`."""

    category: ErrorCategory
    severity: ErrorSeverity
    timestamp: float = field(default_factory=time.time)
    component: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp,
            "component": self.component,
            "details": dict(self.details),
        }


def create_error_context(
    category: ErrorCategory,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    *,
    component: str | None = None,
    **details: Any,
) -> ErrorContext:
    return ErrorContext(
        category=category,
        severity=severity,
        component=component,
        details=details,
    )


class LokiSinkError(Exception):
    """Base class for all lokisink errors."""

    default_category = ErrorCategory.SYSTEM
    default_severity = ErrorSeverity.MEDIUM

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        severity: ErrorSeverity | None = None,
        error_context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.severity = severity or self.default_severity
        self.error_context = error_context or create_error_context(
            self.category, self.severity
        )
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "context": self.error_context.to_dict(),
        }
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return data


class ConfigurationError(LokiSinkError):
    default_category = ErrorCategory.CONFIG
    default_severity = ErrorSeverity.HIGH


class SerializationError(LokiSinkError):
    """Encoding or compressing a push payload failed; nothing was sent."""

    default_category = ErrorCategory.SERIALIZATION
    default_severity = ErrorSeverity.HIGH


class SinkWriteError(LokiSinkError):
    """A flush could not be delivered; buffered entries are retained."""

    default_category = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str,
        *,
        sink_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.sink_name = sink_name


class DeliveryError(SinkWriteError):
    """Transport-level failure (DNS, connect, timeout)."""


class PushRejectedError(SinkWriteError):
    """Loki answered the push with something other than 204 No Content."""

    def __init__(
        self,
        status_code: int,
        body: str,
        **kwargs: Any,
    ) -> None:
        self.status_code = status_code
        self.body = body
        reason = httpx.codes.get_reason_phrase(status_code)
        super().__init__(
            f"pushToLoki: Expected HTTP 204 No Content, got {status_code} "
            f"{reason} with body: \n{body}",
            **kwargs,
        )


class SinkClosedError(LokiSinkError):
    """The sink was closed before or while a flush ran."""

    default_category = ErrorCategory.SYSTEM
    default_severity = ErrorSeverity.LOW


__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "LokiSinkError",
    "PushRejectedError",
    "SerializationError",
    "SinkClosedError",
    "SinkWriteError",
    "create_error_context",
]
