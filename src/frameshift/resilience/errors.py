"""Exception hierarchy and error classification.

Classifies exceptions raised inside the transform pipeline so the
orchestrator can label a fallback and decide whether to re-raise.
Only unreadable input escapes ``transform``; everything else becomes
a fallback with a recorded reason.
"""

from __future__ import annotations

from enum import Enum


class FrameshiftError(Exception):
    """Base class for engine errors."""


class UnsafeTransformError(FrameshiftError):
    """A stage produced output that cannot be trusted."""

    def __init__(self, stage: str, reason: str) -> None:
        super().__init__(f"{stage}: {reason}")
        self.stage = stage
        self.reason = reason


class UnreadableArtifactError(FrameshiftError):
    """Input bytes are not valid UTF-8 text."""


class GrammarUnavailableError(FrameshiftError):
    """A tree-sitter grammar package could not be loaded."""


class ErrorClass(Enum):
    PARSE = "parse"  # artifact could not be parsed or repaired
    UNSAFE = "unsafe"  # a stage refused or broke the output
    UNREADABLE = "unreadable"  # input is not text, hard failure
    ENVIRONMENT = "environment"  # missing grammar, hard failure
    INTERNAL = "internal"  # unexpected bug inside a stage


def classify_error(error: Exception) -> ErrorClass:
    """Classify an error raised inside the pipeline."""
    if isinstance(error, UnsafeTransformError):
        return ErrorClass.UNSAFE
    if isinstance(error, UnreadableArtifactError):
        return ErrorClass.UNREADABLE
    if isinstance(error, (GrammarUnavailableError, ImportError)):
        return ErrorClass.ENVIRONMENT
    if isinstance(error, (SyntaxError, UnicodeError)):
        return ErrorClass.PARSE
    return ErrorClass.INTERNAL


_HARD_FAILURES = frozenset({
    ErrorClass.UNREADABLE,
    ErrorClass.ENVIRONMENT,
})


def is_fallback_safe(error: Exception) -> bool:
    """Return True if the error can be absorbed by emitting the input verbatim."""
    return classify_error(error) not in _HARD_FAILURES
