"""Structured JSON audit logger for transform runs."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from frameshift.constants import ERROR_TRUNCATION_CHARS
from frameshift.logging_config import LOG_DATEFMT, LOG_FORMAT
from frameshift.services.transform_service import TransformResult

__all__ = ["AuditLogger", "LOG_FORMAT", "LOG_DATEFMT"]


class AuditLogger:
    """Structured JSON logger with run_id correlation."""

    def __init__(self, log_dir: Path, level: str = "INFO") -> None:
        self._log_dir = log_dir
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._logger = logging.getLogger("frameshift.audit")
        self._logger.setLevel(getattr(logging, level.upper()))
        self._logger.propagate = False

        target = str((log_dir / "transform.log").resolve())
        if not any(
            getattr(h, "baseFilename", None) == target
            for h in self._logger.handlers
        ):
            handler = logging.FileHandler(log_dir / "transform.log")
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)

    @property
    def path(self) -> Path:
        return self._log_dir / "transform.log"

    def log_transform(
        self,
        run_id: str,
        source_name: str,
        result: TransformResult,
        duration_ms: float,
    ) -> None:
        profile = result.profile
        self._logger.info(
            json.dumps({
                "type": "transform",
                "timestamp": datetime.now(UTC).isoformat(),
                "run_id": run_id,
                "source": source_name,
                "category": profile.primary_category if profile else None,
                "confidence": profile.confidence_score if profile else None,
                "used_fallback": result.used_fallback,
                "fallback_reason": result.fallback_reason,
                "rewritten": list(result.rewritten_bindings),
                "enhancements": len(result.applied_enhancements),
                "corruption_findings": len(result.corruption_findings),
                "findings": [f.kind for f in result.findings],
                "duration_ms": duration_ms,
            })
        )
        for stage in result.stages:
            self.log_stage(
                run_id,
                stage.stage_name,
                stage.status,
                stage.duration_ms,
                stage.error,
            )

    def log_stage(
        self,
        run_id: str,
        stage_name: str,
        status: str,
        duration_ms: float,
        error: str | None = None,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "stage",
                "timestamp": datetime.now(UTC).isoformat(),
                "run_id": run_id,
                "stage": stage_name,
                "status": status,
                "duration_ms": duration_ms,
                "error": error,
            })
        )

    def log_error(
        self,
        run_id: str,
        component: str,
        error: str,
    ) -> None:
        self._logger.error(
            json.dumps({
                "type": "error",
                "timestamp": datetime.now(UTC).isoformat(),
                "run_id": run_id,
                "component": component,
                "error": error[:ERROR_TRUNCATION_CHARS],
            })
        )
