"""Safety orchestrator — runs every stage and guarantees a usable result.

States advance ``parsing → classifying → transforming → validating →
done``; any stage can divert to ``fallback``, which returns the input
text verbatim together with the reason. Only undecodable input and a
missing grammar escape as exceptions.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

from frameshift.analysis.classifier import classify
from frameshift.analysis.parser import SyntaxTree, detect_dialect, parse_source
from frameshift.analysis.resolver import Resolution, resolve
from frameshift.analysis.schemas import ClassificationProfile, Finding, ParseFailure
from frameshift.config import Settings
from frameshift.constants import (
    Category,
    Dialect,
    FindingKind,
    Severity,
    TransformState,
)
from frameshift.quality.corruption_guard import guard, is_balanced, new_findings, scan
from frameshift.quality.schemas import CorruptionFinding, GuardReport
from frameshift.resilience.errors import (
    ErrorClass,
    UnreadableArtifactError,
    UnsafeTransformError,
    classify_error,
    is_fallback_safe,
)
from frameshift.services.pipeline import PipelineStage, StageResult, skipped
from frameshift.transform.enhancer import AppliedEnhancement, EnhanceOutcome, enhance
from frameshift.transform.normalizer import NormalizeOutcome, normalize_styles
from frameshift.transform.rewriter import RewriteOutcome, rewrite

logger = logging.getLogger(__name__)


class TransformOptions(BaseModel):
    """Per-call switches; everything else comes from :class:`Settings`."""

    model_config = ConfigDict(frozen=True)

    force_category: Category | None = None
    enable_enhancement: bool = True
    max_repair_attempts: int = Field(default=3, ge=0)
    dialect: Dialect | None = None
    filename: str | None = None


@dataclass(frozen=True)
class TransformResult:
    """Everything one ``transform`` call produced."""

    output_text: str
    used_fallback: bool = False
    applied_enhancements: tuple[AppliedEnhancement, ...] = ()
    corruption_findings: tuple[CorruptionFinding, ...] = ()
    findings: tuple[Finding, ...] = ()
    profile: ClassificationProfile | None = None
    fallback_reason: str | None = None
    rewritten_bindings: tuple[str, ...] = ()
    stages: tuple[StageResult, ...] = field(default=(), repr=False)
    states: tuple[TransformState, ...] = ()

    @property
    def final_state(self) -> TransformState | None:
        return self.states[-1] if self.states else None


class _Fallback(Exception):
    """Abandon the run and return the input."""

    def __init__(self, error_class: ErrorClass, detail: str) -> None:
        super().__init__(f"{error_class.value}: {detail}")
        self.error_class = error_class
        self.detail = detail


def decode_source(source: str | bytes) -> str:
    if isinstance(source, str):
        return source
    try:
        return source.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise UnreadableArtifactError(
            f"artifact is not valid UTF-8 (byte {exc.start})"
        ) from exc


def parse_with_retry(
    text: str, dialect: Dialect | None, filename: str | None = None
) -> SyntaxTree | ParseFailure:
    """Parse with the requested or detected dialect, then the other one.

    An explicit dialect is never second-guessed.
    """
    chosen = dialect or detect_dialect(text, filename)
    result = parse_source(text, chosen)
    if isinstance(result, SyntaxTree) or dialect is not None:
        return result
    other = Dialect.JSX if chosen == Dialect.TSX else Dialect.TSX
    retry = parse_source(text, other)
    if isinstance(retry, SyntaxTree):
        logger.debug("event=dialect_retry_succeeded dialect=%s", other)
        return retry
    return result


class TransformRun:
    """One pass of the state machine over one artifact."""

    def __init__(
        self, text: str, options: TransformOptions, settings: Settings
    ) -> None:
        self.source = text
        self.working = text
        self.options = options
        self.settings = settings
        self.states: list[TransformState] = []
        self.stages: list[StageResult] = []
        self.findings: list[Finding] = []
        self.corruption: list[CorruptionFinding] = []
        self.enhancements: tuple[AppliedEnhancement, ...] = ()
        self.rewritten: tuple[str, ...] = ()
        self.profile: ClassificationProfile | None = None

    def execute(self) -> TransformResult:
        try:
            self._enter(TransformState.PARSING)
            tree = self._parse()

            self._enter(TransformState.CLASSIFYING)
            self.profile = self._stage(
                "classify",
                lambda t: classify(t, self.settings, self.options.force_category),
                tree,
            )

            self._enter(TransformState.TRANSFORMING)
            tree = self._transform(tree, self.profile)

            self._enter(TransformState.VALIDATING)
            output = self._stage("validate", self._validate, tree)
        except _Fallback as fallback:
            return self._fallback(fallback)

        self._enter(TransformState.DONE)
        logger.info(
            "event=transform_complete category=%s rewritten=%d enhancements=%d findings=%d",
            self.profile.primary_category,
            len(self.rewritten),
            len(self.enhancements),
            len(self.findings),
        )
        return TransformResult(
            output_text=output,
            applied_enhancements=self.enhancements,
            corruption_findings=tuple(self.corruption),
            findings=tuple(self.findings),
            profile=self.profile,
            rewritten_bindings=self.rewritten,
            stages=tuple(self.stages),
            states=tuple(self.states),
        )

    # ── Stages ───────────────────────────────────────────

    def _stage[TIn, TOut](
        self, name: str, execute: Callable[[TIn], TOut], input_data: TIn
    ) -> TOut:
        result = PipelineStage(name, execute).run(input_data)
        self.stages.append(result)
        if result.exception is not None:
            if not is_fallback_safe(result.exception):
                raise result.exception
            raise _Fallback(classify_error(result.exception), str(result.exception))
        return result.output  # type: ignore[return-value]

    def _parse(self) -> SyntaxTree:
        parsed = self._stage(
            "parse",
            lambda text: parse_with_retry(text, self.options.dialect, self.options.filename),
            self.source,
        )
        if isinstance(parsed, SyntaxTree):
            return parsed

        report: GuardReport = self._stage(
            "repair",
            lambda text: guard(text, self.options.max_repair_attempts),
            self.source,
        )
        if report.repaired:
            repaired = parse_with_retry(
                report.text, self.options.dialect, self.options.filename
            )
            if isinstance(repaired, SyntaxTree):
                logger.info(
                    "event=artifact_repaired repairs=%d", len(report.repaired)
                )
                self.working = report.text
                self.corruption.extend(report.repaired)
                return repaired
        self.corruption.extend(scan(self.source))
        raise _Fallback(
            ErrorClass.PARSE,
            f"line {parsed.line}, column {parsed.column}: {parsed.message}",
        )

    def _transform(
        self, tree: SyntaxTree, profile: ClassificationProfile
    ) -> SyntaxTree:
        resolution: Resolution = self._stage("resolve", resolve, tree)
        rewritten: RewriteOutcome = self._stage(
            "rewrite",
            lambda r: rewrite(tree, r, profile, self.settings),
            resolution,
        )
        self.findings.extend(rewritten.findings)
        self.rewritten = rewritten.rewritten

        normalized: NormalizeOutcome = self._stage(
            "normalize",
            lambda t: normalize_styles(t, profile, self.settings),
            rewritten.tree,
        )
        self.findings.extend(normalized.findings)

        if not self.options.enable_enhancement:
            self.stages.append(skipped("enhance"))
            return normalized.tree
        enhanced: EnhanceOutcome = self._stage(
            "enhance",
            lambda t: enhance(
                t,
                profile,
                self.settings.enhancement_threshold,
                normalized.enhancement_targets,
            ),
            normalized.tree,
        )
        self.enhancements = enhanced.applied
        return enhanced.tree

    def _validate(self, tree: SyntaxTree) -> str:
        report = guard(tree.text, self.options.max_repair_attempts)
        candidate = report.text
        reparsed = parse_source(candidate, tree.dialect)
        if isinstance(reparsed, ParseFailure):
            raise UnsafeTransformError(
                "validate",
                f"output does not parse at line {reparsed.line}: {reparsed.message}",
            )
        if is_balanced(self.working) and not is_balanced(candidate):
            raise UnsafeTransformError("validate", "output has unbalanced delimiters")
        introduced = new_findings(self.working, candidate)
        if introduced:
            first = introduced[0]
            raise UnsafeTransformError(
                "validate",
                f"output introduces {first.signature} at line {first.line}",
            )
        self.corruption.extend(report.repaired)
        return candidate

    # ── State ────────────────────────────────────────────

    def _enter(self, state: TransformState) -> None:
        self.states.append(state)
        logger.debug("event=state_entered state=%s", state)

    def _fallback(self, fallback: _Fallback) -> TransformResult:
        self._enter(TransformState.FALLBACK)
        kind = (
            FindingKind.PARSE_ERROR
            if fallback.error_class == ErrorClass.PARSE
            else FindingKind.UNSAFE_TRANSFORM
        )
        reason = str(fallback)
        self.findings.append(
            Finding(kind=kind, severity=Severity.ERROR, message=reason)
        )
        logger.warning("event=transform_fallback reason=%s", reason)
        return TransformResult(
            output_text=self.source,
            used_fallback=True,
            corruption_findings=tuple(self.corruption),
            findings=tuple(self.findings),
            profile=self.profile,
            fallback_reason=reason,
            stages=tuple(self.stages),
            states=tuple(self.states),
        )


def transform(
    source: str | bytes,
    options: TransformOptions | None = None,
    *,
    settings: Settings | None = None,
) -> TransformResult:
    """Rewrite an animation artifact into frame-indexed form.

    Never raises for malformed input: the result then carries the input
    text with ``used_fallback`` set. Raises
    :class:`UnreadableArtifactError` for bytes that are not UTF-8.
    """
    text = decode_source(source)
    run = TransformRun(text, options or TransformOptions(), settings or Settings())
    return run.execute()


def classify_source(
    source: str | bytes,
    options: TransformOptions | None = None,
    *,
    settings: Settings | None = None,
) -> ClassificationProfile | ParseFailure:
    """Profile an artifact without rewriting it."""
    options = options or TransformOptions()
    parsed = parse_with_retry(decode_source(source), options.dialect, options.filename)
    if isinstance(parsed, ParseFailure):
        return parsed
    return classify(parsed, settings or Settings(), options.force_category)
