"""Environment-based configuration and grammar tables."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

from frameshift.constants import Dialect

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and FRAMESHIFT_* environment variables."""

    # Composition
    fps: int = 30
    width: int = 1920
    height: int = 1080

    # Navigation (frames each slide stays on screen)
    slide_frames: int = 90

    # Classification
    tie_margin: int = 10

    # Enhancement
    enhancement_threshold: int = 60

    # Rewriting
    strict_shapes: bool = False
    promote_root: bool = True

    # Corruption guard
    max_repair_attempts: int = 3

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    @field_validator("fps", "width", "height", "slide_frames")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("enhancement_threshold", "tie_margin")
    @classmethod
    def _percentage(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("must be within 0..100")
        return v

    @field_validator("max_repair_attempts")
    @classmethod
    def _bounded_attempts(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_repair_attempts cannot be negative")
        if v > 10:
            logger.warning(
                "max_repair_attempts=%d is unusually high; repairs"
                " rarely need more than a few rounds",
                v,
            )
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "FRAMESHIFT_",
        "extra": "ignore",
    }


# File extension → dialect mapping
EXTENSION_MAP: dict[str, Dialect] = {
    ".tsx": Dialect.TSX,
    ".ts": Dialect.TSX,
    ".mts": Dialect.TSX,
    ".jsx": Dialect.JSX,
    ".js": Dialect.JSX,
    ".mjs": Dialect.JSX,
    ".cjs": Dialect.JSX,
}

# Dialect → (grammar module, language factory) for tree-sitter grammars
GRAMMAR_MODULES: dict[Dialect, tuple[str, str]] = {
    Dialect.TSX: ("tree_sitter_typescript", "language_tsx"),
    Dialect.JSX: ("tree_sitter_javascript", "language"),
}
