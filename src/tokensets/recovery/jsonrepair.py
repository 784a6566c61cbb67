# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Repair of common JSON syntax faults.

Repair is a fixed list of strategies applied in order, each at most once and
each on top of the previous one, until the text parses. Every strategy scans
the text once and is aware of string literals, so content inside strings is
never altered. There is no open-ended heuristic parsing: if the listed
strategies do not produce valid JSON, the repair fails.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

# ###############
# Public Interface
# ###############


@dataclass
class JsonRepair:
    """A successful repair.

    Attributes:
        data: The parsed document.
        text: The repaired text.
        applied: Names of the strategies that changed the text, in order.
    """

    data: Any
    text: str
    applied: list[str] = field(default_factory=list)


def strip_trailing_commas(text: str) -> str:
    """Remove commas directly followed (ignoring whitespace) by ``}`` or ``]``."""
    out: list[str] = []
    in_string = False
    escaped = False
    length = len(text)
    for position, char in enumerate(text):
        if in_string:
            out.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == ",":
            following = position + 1
            while following < length and text[following] in " \t\r\n":
                following += 1
            if following < length and text[following] in "}]":
                continue
        out.append(char)
    return "".join(out)


def normalize_quotes(text: str) -> str:
    """Turn single-quoted and typographically quoted strings into JSON strings.

    Only quotes that delimit a string are replaced; apostrophes and quotes
    inside a string are kept, with ``"`` escaped where needed.
    """
    out: list[str] = []
    closers: str | None = None
    single = False
    escaped = False
    for char in text:
        if closers is None:
            if char in _OPENERS:
                closers = _OPENERS[char]
                single = "'" in closers
                out.append('"')
            else:
                out.append(char)
            continue
        if escaped:
            escaped = False
            if single and char == "'":
                out[-1] = "'"
            else:
                out.append(char)
            continue
        if char == "\\":
            escaped = True
            out.append(char)
        elif char in closers:
            closers = None
            out.append('"')
        elif char == '"':
            out.append('\\"')
        else:
            out.append(char)
    return "".join(out)


def balance_brackets(text: str) -> str:
    """Fix mismatched closers, drop stray ones and close what is left open."""
    out: list[str] = []
    stack: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            out.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
            out.append(char)
        elif char in _CLOSER_FOR:
            stack.append(_CLOSER_FOR[char])
            out.append(char)
        elif char in "}]":
            if not stack:
                continue
            out.append(stack.pop())
        else:
            out.append(char)
    if in_string:
        out.append('"')
    result = "".join(out).rstrip()
    if stack:
        result = result.rstrip(",").rstrip()
        result += "".join(reversed(stack))
    return result + ("\n" if text.endswith("\n") else "")


STRATEGIES: tuple[tuple[str, Callable[[str], str]], ...] = (
    ("strip_trailing_commas", strip_trailing_commas),
    ("normalize_quotes", normalize_quotes),
    ("balance_brackets", balance_brackets),
)


def repair_json(text: str) -> JsonRepair | None:
    """Try the repair strategies in order until *text* parses.

    Returns:
        The repair, with an empty ``applied`` list if *text* was already
        valid, or ``None`` if no combination of the strategies helps.
    """
    try:
        return JsonRepair(data=json.loads(text), text=text)
    except json.JSONDecodeError:
        pass

    current = text
    applied: list[str] = []
    for name, strategy in STRATEGIES:
        candidate = strategy(current)
        if candidate == current:
            continue
        current = candidate
        applied.append(name)
        try:
            return JsonRepair(data=json.loads(current), text=current, applied=applied)
        except json.JSONDecodeError:
            continue
    return None


# ################
# Implementation
# ################

_OPENERS = {
    '"': '"',
    "'": "'",
    "“": "”“\"",
    "„": "”“\"",
    "‘": "’‘'",
}
_CLOSER_FOR = {"{": "}", "[": "]"}
