# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Semantic model for tokensets (tokens, sets, themes, reports)."""

from tokensets.model.reports import Issue, IssueKind, Result, Severity, ValidationReport
from tokensets.model.tokens import (
    BorderToken,
    ColorToken,
    DimensionToken,
    GenericToken,
    Group,
    ShadowToken,
    Token,
    TokenType,
    TokenValue,
    TypographyToken,
    is_token,
    make_token,
)
from tokensets.model.tree import (
    METADATA_FILE,
    METADATA_KEY,
    THEMES_FILE,
    THEMES_KEY,
    Metadata,
    ModularTree,
    Theme,
    TokenSetStatus,
)

__all__ = [
    # Reports
    "Issue",
    "IssueKind",
    "Result",
    "Severity",
    "ValidationReport",
    # Tokens
    "BorderToken",
    "ColorToken",
    "DimensionToken",
    "GenericToken",
    "Group",
    "ShadowToken",
    "Token",
    "TokenType",
    "TokenValue",
    "TypographyToken",
    "is_token",
    "make_token",
    # Tree
    "METADATA_FILE",
    "METADATA_KEY",
    "THEMES_FILE",
    "THEMES_KEY",
    "Metadata",
    "ModularTree",
    "Theme",
    "TokenSetStatus",
]
