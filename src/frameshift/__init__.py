"""frameshift — rewrite browser animation artifacts into frame-indexed form."""

from frameshift.services.transform_service import (
    TransformOptions,
    TransformResult,
    transform,
)

__version__ = "0.1.0"

__all__ = ["TransformOptions", "TransformResult", "__version__", "transform"]
