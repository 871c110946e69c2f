"""Typed results returned to producers instead of raised errors."""
from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

from search_telemetry.core.errors import TelemetryError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Success carries ``value``; failure carries ``error``.

    ``warnings`` holds diagnostic signals (e.g. orphan clicks) that never
    turn a success into a failure. ``skipped`` marks an event that was
    intentionally not logged.
    """

    value: Optional[T] = None
    error: Optional[TelemetryError] = None
    warnings: List[Warning] = field(default_factory=list)
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None, warnings: Optional[List[Warning]] = None, skipped: bool = False) -> "Result[T]":
        return cls(value=value, warnings=list(warnings or []), skipped=skipped)

    @classmethod
    def failure(cls, error: TelemetryError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value
