"""Tests for error classification."""

from __future__ import annotations

from frameshift.resilience.errors import (
    ErrorClass,
    GrammarUnavailableError,
    UnreadableArtifactError,
    UnsafeTransformError,
    classify_error,
    is_fallback_safe,
)

# ── classify_error ───────────────────────────────────────────


def test_classify_unsafe_transform() -> None:
    """UnsafeTransformError → UNSAFE."""
    err = UnsafeTransformError("rewrite", "edited source no longer parses")
    assert classify_error(err) == ErrorClass.UNSAFE


def test_unsafe_transform_message_carries_stage() -> None:
    err = UnsafeTransformError("normalize", "overlapping edits")
    assert str(err) == "normalize: overlapping edits"
    assert err.stage == "normalize"
    assert err.reason == "overlapping edits"


def test_classify_unreadable_artifact() -> None:
    """UnreadableArtifactError → UNREADABLE."""
    assert classify_error(UnreadableArtifactError("bad bytes")) == ErrorClass.UNREADABLE


def test_classify_missing_grammar() -> None:
    """GrammarUnavailableError and ImportError → ENVIRONMENT."""
    assert classify_error(GrammarUnavailableError("no tsx")) == ErrorClass.ENVIRONMENT
    assert classify_error(ImportError("tree_sitter_typescript")) == ErrorClass.ENVIRONMENT


def test_classify_syntax_and_unicode_as_parse() -> None:
    assert classify_error(SyntaxError("bad")) == ErrorClass.PARSE
    err = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
    assert classify_error(err) == ErrorClass.PARSE


def test_classify_unknown_as_internal() -> None:
    """Any other exception is an INTERNAL bug."""
    assert classify_error(KeyError("missing")) == ErrorClass.INTERNAL
    assert classify_error(RuntimeError("boom")) == ErrorClass.INTERNAL


# ── is_fallback_safe ─────────────────────────────────────────


def test_unsafe_and_internal_fall_back() -> None:
    assert is_fallback_safe(UnsafeTransformError("validate", "unbalanced"))
    assert is_fallback_safe(ValueError("unexpected"))


def test_hard_failures_do_not_fall_back() -> None:
    """Unreadable input and missing grammars propagate to the caller."""
    assert not is_fallback_safe(UnreadableArtifactError("not utf-8"))
    assert not is_fallback_safe(GrammarUnavailableError("missing"))
