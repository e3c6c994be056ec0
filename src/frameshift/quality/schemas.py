"""Pydantic models for corruption guard output."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from frameshift.constants import CorruptionSignature


class CorruptionFinding(BaseModel):
    """One piece of textual damage, repaired or not."""

    model_config = ConfigDict(frozen=True)

    signature: CorruptionSignature
    message: str
    offset: int
    line: int
    column: int
    excerpt: str = ""
    repaired: bool = False
    replacement: str | None = None


class GuardReport(BaseModel):
    """Text after repairs plus everything the guard noticed."""

    model_config = ConfigDict(frozen=True)

    text: str
    findings: tuple[CorruptionFinding, ...] = ()

    @property
    def repaired(self) -> tuple[CorruptionFinding, ...]:
        return tuple(f for f in self.findings if f.repaired)

    @property
    def unresolved(self) -> tuple[CorruptionFinding, ...]:
        return tuple(f for f in self.findings if not f.repaired)

    @property
    def clean(self) -> bool:
        return not self.unresolved
