"""Configuration for trace storage.

This module provides immutable storage configuration, loaded from
environment variables with validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import ClassVar

# Environment variable names
ENV_VAR_STRICT_TRACE_ID: str = "STRICT_TRACE_ID"
ENV_VAR_MAX_SPANS: str = "MEM_MAX_SPANS"

_TRUTHY_VALUES: frozenset = frozenset(("true", "1", "yes", "on"))


def _parse_bool(value: str) -> bool:
    """Return True if ``value`` is in the truthy set (case-insensitive)."""
    return value.strip().lower() in _TRUTHY_VALUES


@dataclass(frozen=True)
class StorageConfig:
    """
    Immutable configuration for a storage component.

    Attributes:
        strict_trace_id: When True, reads re-check results so 128-bit traces
            that share their low 64 bits are never mixed
        max_span_count: Upper bound on spans kept in memory; the oldest
            traces are evicted beyond it
    """

    strict_trace_id: bool = True
    max_span_count: int = 500_000

    DEFAULT_STRICT_TRACE_ID: ClassVar[bool] = True
    DEFAULT_MAX_SPAN_COUNT: ClassVar[int] = 500_000

    def __post_init__(self) -> None:
        if self.max_span_count <= 0:
            raise ValueError("max_span_count must be positive")

    @classmethod
    def from_environment(cls) -> "StorageConfig":
        """
        Load configuration from environment variables.

        Returns:
            Immutable configuration instance

        Raises:
            ValueError: If MEM_MAX_SPANS is not a positive integer

        Environment Variables:
            STRICT_TRACE_ID: Enable/disable strict trace ID matching
            MEM_MAX_SPANS: Maximum spans retained by in-memory storage
        """
        strict_str = os.environ.get(ENV_VAR_STRICT_TRACE_ID, str(cls.DEFAULT_STRICT_TRACE_ID))
        max_spans_str = os.environ.get(ENV_VAR_MAX_SPANS, str(cls.DEFAULT_MAX_SPAN_COUNT))
        try:
            max_span_count = int(max_spans_str)
        except ValueError:
            raise ValueError(f"{ENV_VAR_MAX_SPANS} must be an integer: {max_spans_str!r}") from None

        return cls(
            strict_trace_id=_parse_bool(strict_str),
            max_span_count=max_span_count,
        )
