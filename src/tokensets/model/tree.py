# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Metadata, theme and modular tree models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ###############
# Public Interface
# ###############

METADATA_FILE = "$metadata.json"
THEMES_FILE = "$themes.json"
METADATA_KEY = "$metadata"
THEMES_KEY = "$themes"


class TokenSetStatus(Enum):
    """How a theme uses a token set."""

    SOURCE = "source"
    ENABLED = "enabled"
    DISABLED = "disabled"

    @property
    def active(self) -> bool:
        return self is not TokenSetStatus.DISABLED


class Metadata(BaseModel):
    """Contents of ``$metadata.json``. Unknown keys are kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    token_set_order: list[str] = Field(alias="tokenSetOrder", default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class Theme(BaseModel):
    """One entry of ``$themes.json``.

    Third-party keys such as ``$figmaStyleReferences`` are opaque and are
    written back exactly as read.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str
    selected_token_sets: dict[str, TokenSetStatus] = Field(alias="selectedTokenSets", default_factory=dict)

    @property
    def style_references(self) -> dict[str, Any] | None:
        """Return the Figma style references, whichever key spelling is used."""
        extra = self.model_extra or {}
        for key in ("$figmaStyleReferences", "figmaStyleReferences"):
            if key in extra:
                return extra[key]
        return None

    def active_sets(self) -> list[str]:
        """Return the names of sets marked ``source`` or ``enabled``."""
        return [name for name, status in self.selected_token_sets.items() if status.active]

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


@dataclass
class ModularTree:
    """The multi-file representation: metadata, themes and raw token sets.

    Attributes:
        metadata: Parsed ``$metadata.json``.
        themes: Parsed ``$themes.json``.
        sets: Raw JSON content per set name, in ``tokenSetOrder`` order.
    """

    metadata: Metadata = field(default_factory=Metadata)
    themes: list[Theme] = field(default_factory=list)
    sets: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def order(self) -> list[str]:
        return list(self.metadata.token_set_order)

    def ordered_sets(self) -> list[tuple[str, dict[str, Any]]]:
        """Return ``(name, content)`` pairs following ``tokenSetOrder``."""
        return [(name, self.sets[name]) for name in self.order if name in self.sets]

    def themes_json(self) -> list[dict[str, Any]]:
        return [theme.to_json() for theme in self.themes]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModularTree):
            return NotImplemented
        return (
            self.metadata.to_json() == other.metadata.to_json()
            and self.themes_json() == other.themes_json()
            and self.ordered_sets() == other.ordered_sets()
        )
