"""Error taxonomy and the tagged result returned by pipeline entry points."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Iterable, Literal, TypeVar

ErrorCode = Literal[
    "INVALID_JOB_DESCRIPTION",
    "COMPANY_NOT_FOUND",
    "GENERATION_FAILED",
    "SCORING_FAILED",
    "RATE_LIMITED",
    "INTERNAL_ERROR",
]

T = TypeVar("T")


class AssessmentError(Exception):
    """Base error carrying a machine-readable code."""

    code: ErrorCode = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.code}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ResearchError(AssessmentError):
    """Company or role facts could not be gathered."""

    code: ErrorCode = "COMPANY_NOT_FOUND"


class CompileError(AssessmentError):
    """No usable assessment structure came back from generation."""

    code: ErrorCode = "GENERATION_FAILED"


class ScoringError(AssessmentError):
    """A single response could not be scored."""

    code: ErrorCode = "SCORING_FAILED"


class CompletionError(AssessmentError):
    """Transport-level failure of the completion capability."""

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        retryable: bool = True,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.retryable = retryable
        self.retry_after = retry_after


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Success/failure wrapper used instead of raising for expected failures."""

    data: T | None = None
    error: AssessmentError | None = None
    warnings: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T, warnings: Iterable[str] = ()) -> "Result[T]":
        return cls(data=data, warnings=tuple(warnings))

    @classmethod
    def failure(cls, error: AssessmentError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the payload or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.data  # type: ignore[return-value]


__all__ = [
    "AssessmentError",
    "CompileError",
    "CompletionError",
    "ErrorCode",
    "ResearchError",
    "Result",
    "ScoringError",
]
