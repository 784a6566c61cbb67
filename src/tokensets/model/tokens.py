# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Token representations for the tokensets semantic model."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict

# ###############
# Public Interface
# ###############


class TokenType(Enum):
    """Token types that receive a dedicated model.

    Any other type string is carried by :class:`GenericToken`.
    """

    COLOR = "color"
    DIMENSION = "dimension"
    TYPOGRAPHY = "typography"
    BOX_SHADOW = "boxShadow"
    BORDER = "border"


# A token value: a scalar, a composite mapping of sub-properties, or a list of
# composites (layered shadows).
TokenValue = Union[str, int, float, bool, dict[str, Any], list[Any]]


class _BaseToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: TokenValue
    description: str | None = None
    extensions: dict[str, Any] | None = None


class ColorToken(_BaseToken):
    """A color value such as ``#112233`` or ``rgba(0, 0, 0, 0.5)``."""

    type: Literal["color"] = "color"


class DimensionToken(_BaseToken):
    """A size, spacing or radius value such as ``16px`` or ``1.5rem``."""

    type: Literal["dimension"] = "dimension"


class TypographyToken(_BaseToken):
    """A composite text style (``fontFamily``, ``fontSize``, ...)."""

    type: Literal["typography"] = "typography"


class ShadowToken(_BaseToken):
    """A single shadow or a list of layered shadows."""

    type: Literal["boxShadow"] = "boxShadow"


class BorderToken(_BaseToken):
    """A composite border (``width``, ``style``, ``color``)."""

    type: Literal["border"] = "border"


class GenericToken(_BaseToken):
    """A token of any other type, e.g. ``fontWeights`` or ``opacity``."""

    type: str


Token = Union[ColorToken, DimensionToken, TypographyToken, ShadowToken, BorderToken, GenericToken]

# A group maps keys to tokens or nested groups. Keys starting with ``$`` hold
# group-level properties (``$type``, ``$description``) and are kept verbatim.
Group = dict[str, Any]

_TOKEN_CLASSES: dict[str, type[_BaseToken]] = {
    TokenType.COLOR.value: ColorToken,
    TokenType.DIMENSION.value: DimensionToken,
    TokenType.TYPOGRAPHY.value: TypographyToken,
    TokenType.BOX_SHADOW.value: ShadowToken,
    TokenType.BORDER.value: BorderToken,
}


def make_token(
    type_name: str,
    value: TokenValue,
    *,
    description: str | None = None,
    extensions: dict[str, Any] | None = None,
) -> Token:
    """Build the tagged-union member matching *type_name*.

    Args:
        type_name: The non-empty token type string.
        value: The token value.
        description: Optional human description.
        extensions: Optional vendor extension mapping.

    Returns:
        A frozen token model.

    Raises:
        ValueError: If *type_name* is empty.
    """
    if not type_name:
        raise ValueError("token type must be a non-empty string")
    cls = _TOKEN_CLASSES.get(type_name)
    if cls is None:
        return GenericToken(type=type_name, value=value, description=description, extensions=extensions)
    return cls(value=value, description=description, extensions=extensions)  # type: ignore[return-value]


def is_token(node: object) -> bool:
    """Return True if *node* is a normalized token model."""
    return isinstance(node, _BaseToken)
