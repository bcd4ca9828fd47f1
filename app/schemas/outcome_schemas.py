"""
Outcome values returned by every external adapter call.

Adapters never raise into the search pipeline; they hand back the value they
managed to produce together with the reason they degraded, if any.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class DegradedReason(str, Enum):
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    UPSTREAM_ERROR = "upstream_error"
    PARSE_ERROR = "parse_error"
    DISABLED = "disabled"


@dataclass
class Outcome(Generic[T]):
    value: T
    degraded: Optional[DegradedReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.degraded is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, value: T, reason: DegradedReason, detail: str = "") -> "Outcome[T]":
        return cls(value=value, degraded=reason, detail=detail)
