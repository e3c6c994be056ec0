"""Artifact analysis — parse, classify, resolve state bindings."""

from frameshift.analysis.classifier import classify
from frameshift.analysis.parser import (
    Edit,
    SyntaxTree,
    detect_dialect,
    parse_artifact,
    parse_source,
)
from frameshift.analysis.resolver import Resolution, resolve, resolve_bindings
from frameshift.analysis.schemas import (
    ClassificationProfile,
    Finding,
    KnownShape,
    OpaqueShape,
    ParseFailure,
    SourceArtifact,
    StateBinding,
)

__all__ = [
    "ClassificationProfile",
    "Edit",
    "Finding",
    "KnownShape",
    "OpaqueShape",
    "ParseFailure",
    "Resolution",
    "SourceArtifact",
    "StateBinding",
    "SyntaxTree",
    "classify",
    "detect_dialect",
    "parse_artifact",
    "parse_source",
    "resolve",
    "resolve_bindings",
]
