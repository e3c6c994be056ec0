"""Source rewriting — frame-time state, inline styles, design prism."""

from frameshift.transform.enhancer import AppliedEnhancement, EnhanceOutcome, enhance
from frameshift.transform.normalizer import NormalizeOutcome, normalize_styles
from frameshift.transform.rewriter import RewriteOutcome, rewrite

__all__ = [
    "AppliedEnhancement",
    "EnhanceOutcome",
    "NormalizeOutcome",
    "RewriteOutcome",
    "enhance",
    "normalize_styles",
    "rewrite",
]
