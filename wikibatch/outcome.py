"""Classified result of one API call."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OutcomeKind(Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(frozen=True)
class ActionOutcome:
    """
    What happened to one call.

    RETRYABLE outcomes are worth sending again later (rate limits, timeouts,
    server errors). FATAL outcomes will fail the same way every time.
    """

    kind: OutcomeKind
    cause: str = ""
    code: Optional[str] = None
    data: Optional[dict] = None
    retry_after: Optional[float] = None

    @classmethod
    def success(cls, data: Optional[dict] = None) -> "ActionOutcome":
        return cls(OutcomeKind.SUCCESS, data=data)

    @classmethod
    def retryable(
        cls, cause: str, code: Optional[str] = None, retry_after: Optional[float] = None
    ) -> "ActionOutcome":
        return cls(OutcomeKind.RETRYABLE, cause=cause, code=code, retry_after=retry_after)

    @classmethod
    def fatal(cls, cause: str, code: Optional[str] = None) -> "ActionOutcome":
        return cls(OutcomeKind.FATAL, cause=cause, code=code)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def is_retryable(self) -> bool:
        return self.kind is OutcomeKind.RETRYABLE

    @property
    def is_fatal(self) -> bool:
        return self.kind is OutcomeKind.FATAL
