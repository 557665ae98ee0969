"""Human-readable output for substitutions."""

from .notify import (
    format_substitution,
    format_day_summary,
    format_teacher_digest,
)

__all__ = [
    "format_substitution",
    "format_day_summary",
    "format_teacher_digest",
]
