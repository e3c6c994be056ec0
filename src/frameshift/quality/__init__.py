"""Output quality — corruption detection and repair."""

from frameshift.quality.corruption_guard import guard, is_balanced, new_findings, scan
from frameshift.quality.schemas import CorruptionFinding, GuardReport

__all__ = [
    "CorruptionFinding",
    "GuardReport",
    "guard",
    "is_balanced",
    "new_findings",
    "scan",
]
