"""Output layer - Render detection results.

This layer formats chord candidates for people and programs:
- Plain-text candidate lists
- JSON-ready dicts and strings with optional diagnostics
- Detection statistics
"""

from .formatter import (
    candidate_to_dict,
    result_to_dict,
    result_to_json,
    format_candidates,
    statistics_to_dict,
)

__all__ = [
    "candidate_to_dict",
    "result_to_dict",
    "result_to_json",
    "format_candidates",
    "statistics_to_dict",
]
