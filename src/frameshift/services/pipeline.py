"""Stage runner: named stages with timing and error isolation."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from frameshift.constants import ERROR_TRUNCATION_CHARS, STAGE_LABELS, StageOutcome

logger = logging.getLogger(__name__)


@dataclass
class StageResult[TOutput]:
    """Outcome of a single pipeline stage execution."""

    stage_name: str
    output: TOutput | None
    duration_ms: float
    status: StageOutcome
    error: str | None = None
    exception: Exception | None = field(default=None, repr=False)

    @property
    def label(self) -> str:
        return STAGE_LABELS.get(self.stage_name, self.stage_name)

    @property
    def ok(self) -> bool:
        return self.status == StageOutcome.COMPLETED


@dataclass
class PipelineStage[TInput, TOutput]:
    """A named, typed pipeline stage with error isolation."""

    name: str
    execute: Callable[[TInput], TOutput]

    def run(self, input_data: TInput) -> StageResult[TOutput]:
        """Execute the stage, capturing timing and errors."""
        start = time.monotonic()
        try:
            output = self.execute(input_data)
            elapsed = (time.monotonic() - start) * 1000
            return StageResult(
                stage_name=self.name,
                output=output,
                duration_ms=elapsed,
                status=StageOutcome.COMPLETED,
            )
        except Exception as exc:
            elapsed = (time.monotonic() - start) * 1000
            logger.warning(
                "event=stage_failed stage=%s error=%s", self.name, exc
            )
            return StageResult(
                stage_name=self.name,
                output=None,
                duration_ms=elapsed,
                status=StageOutcome.FAILED,
                error=str(exc)[:ERROR_TRUNCATION_CHARS],
                exception=exc,
            )


def skipped(name: str) -> StageResult[None]:
    """Record for a stage the orchestrator chose not to run."""
    return StageResult(
        stage_name=name,
        output=None,
        duration_ms=0.0,
        status=StageOutcome.SKIPPED,
    )
