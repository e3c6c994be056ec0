"""Pydantic models for artifact analysis output."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from frameshift.constants import (
    ArgumentKind,
    Category,
    Dialect,
    FindingKind,
    MutationContext,
    Severity,
    ValueKind,
)


class SourceArtifact(BaseModel):
    """Immutable input text with its dialect."""

    model_config = ConfigDict(frozen=True)

    text: str
    dialect: Dialect = Dialect.TSX

    @property
    def size(self) -> int:
        return len(self.text.encode("utf-8"))


class ParseFailure(BaseModel):
    """Typed parse error positioned at the first damaged node."""

    model_config = ConfigDict(frozen=True)

    message: str
    line: int
    column: int
    offset: int


class PropertySpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    kind: ValueKind = ValueKind.UNKNOWN


class KnownShape(BaseModel):
    """Structural shape read from a literal or a statically walked generator."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["known"] = "known"
    properties: tuple[PropertySpec, ...] = ()
    value_kind: ValueKind = ValueKind.OBJECT
    collection: bool = False
    element_count: int | None = None

    @property
    def property_names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.properties)


class OpaqueShape(BaseModel):
    """Shape that could not be determined without executing code."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["opaque"] = "opaque"
    reason: str


type Shape = Annotated[KnownShape | OpaqueShape, Field(discriminator="kind")]


class MutationSite(BaseModel):
    """A call to a binding's setter."""

    model_config = ConfigDict(frozen=True)

    context: MutationContext
    argument_kind: ArgumentKind
    line: int
    start_byte: int
    end_byte: int
    interval_ms: float | None = None
    read_properties: tuple[str, ...] = ()


class UsageSite(BaseModel):
    """A read of a binding outside its setter calls."""

    model_config = ConfigDict(frozen=True)

    line: int
    start_byte: int
    end_byte: int
    via: Literal["direct", "member", "subscript", "iterator", "escape"]
    properties: tuple[str, ...] = ()


class StateBinding(BaseModel):
    """A reactive state variable and everything the tree says about it."""

    model_config = ConfigDict(frozen=True)

    name: str
    setter: str | None
    shape: Shape
    declaration_start: int
    declaration_end: int
    line: int
    mutation_sites: tuple[MutationSite, ...] = ()
    usage_sites: tuple[UsageSite, ...] = ()
    missing_properties: tuple[str, ...] = ()

    @property
    def shape_incomplete(self) -> bool:
        return bool(self.missing_properties)

    @property
    def time_driven(self) -> bool:
        return any(
            s.context in (
                MutationContext.INTERVAL,
                MutationContext.TIMEOUT,
                MutationContext.FRAME_LOOP,
            )
            for s in self.mutation_sites
        )

    @property
    def read_properties(self) -> tuple[str, ...]:
        """Every property read at usage or mutation sites, first-seen order."""
        seen: dict[str, None] = {}
        for site in self.usage_sites:
            for prop in site.properties:
                seen.setdefault(prop, None)
        for mutation in self.mutation_sites:
            for prop in mutation.read_properties:
                seen.setdefault(prop, None)
        return tuple(seen)


class ClassificationProfile(BaseModel):
    """Categorical profile of an artifact; derived once, never mutated."""

    model_config = ConfigDict(frozen=True)

    primary_category: Category
    confidence_score: int = Field(ge=0, le=100)
    matched_signals: tuple[str, ...] = ()
    content_score: int = 0
    effect_score: int = 0
    signals: dict[str, int] = Field(default_factory=lambda: dict[str, int]())


class Finding(BaseModel):
    """One entry in the transform audit trail."""

    model_config = ConfigDict(frozen=True)

    kind: FindingKind
    severity: Severity
    message: str
    binding: str | None = None
    line: int | None = None
    resolved: bool = False
