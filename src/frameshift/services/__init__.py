"""Orchestration — the stage runner and the public transform entry point."""

from frameshift.services.transform_service import (
    TransformOptions,
    TransformResult,
    classify_source,
    transform,
)

__all__ = ["TransformOptions", "TransformResult", "classify_source", "transform"]
