"""Speculative apply & rollback — the only code that touches the upstream copy."""

from mirrorbot.engines.speculative_apply.engine import (
    APPLY_POLICY,
    LINT_POLICY,
    REVIEW_POLICY,
    ApplyReport,
    SpeculativeApplyEngine,
)

__all__ = [
    "APPLY_POLICY",
    "LINT_POLICY",
    "REVIEW_POLICY",
    "ApplyReport",
    "SpeculativeApplyEngine",
]
