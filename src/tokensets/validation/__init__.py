# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Structural, referential, theme and round-trip checks for modular token trees."""

from tokensets.validation.checks import (
    DEFAULT_EXPECTED_SETS,
    DEFAULT_RECOMMENDED_SETS,
    DEFAULT_REQUIRED_SETS,
    validate_references,
    validate_roundtrip,
    validate_structure,
    validate_themes,
    validate_tree,
)

__all__ = [
    "DEFAULT_EXPECTED_SETS",
    "DEFAULT_RECOMMENDED_SETS",
    "DEFAULT_REQUIRED_SETS",
    "validate_references",
    "validate_roundtrip",
    "validate_structure",
    "validate_themes",
    "validate_tree",
]
