# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Codec between raw token JSON and the normalized Studio token shape."""

from tokensets.codec.studio import (
    FALLBACK_TYPE,
    CodecError,
    denormalize,
    denormalize_set,
    infer_type,
    is_token_node,
    iter_raw_tokens,
    iter_tokens,
    normalize,
    normalize_set,
    raw_type,
    raw_value,
)

__all__ = [
    "FALLBACK_TYPE",
    "CodecError",
    "denormalize",
    "denormalize_set",
    "infer_type",
    "is_token_node",
    "iter_raw_tokens",
    "iter_tokens",
    "normalize",
    "normalize_set",
    "raw_type",
    "raw_value",
]
