"""Checks that a produced layout can actually be cut."""

from .layout_validator import (
    ValidationResult,
    validate_layout,
    find_overlapping_pairs,
    find_out_of_bounds
)
