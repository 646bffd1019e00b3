# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Structural helpers: clone, merge and property walking.

These work on plain ``dict``/``list`` trees and know nothing about
observation. The tree builder uses them as black boxes.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Mapping


def is_composite(value: Any) -> bool:
    """True if value is a dict or a list (the only wrappable shapes)."""
    return isinstance(value, (dict, list))


def clone(value: Any, transform: Callable[[Any], Any] | None = None) -> Any:
    """Deep copy value, optionally transforming every node first.

    The transform is applied to each value before it is copied, so it can
    replace a node with something else (e.g. unwrap a facade) and the result
    is then cloned recursively.

    Args:
        value: The value to copy.
        transform: Optional callable applied to every node.

    Returns:
        A copy sharing no mutable state with the original.

    Example:
        >>> clone({'a': [1, 2]})
        {'a': [1, 2]}
        >>> clone([1, 2], lambda x: x * 10 if isinstance(x, int) else x)
        [10, 20]
    """
    if transform is not None:
        value = transform(value)
    if isinstance(value, dict):
        return {k: clone(v, transform) for k, v in value.items()}
    if isinstance(value, list):
        return [clone(v, transform) for v in value]
    if isinstance(value, tuple):
        return tuple(clone(v, transform) for v in value)
    return copy.deepcopy(value)


def merge(defaults: Mapping[str, Any], overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge overrides onto defaults, returning a new dict.

    Keys present in both where both values are mappings are merged
    recursively; any other key in overrides replaces the default.

    Example:
        >>> merge({'a': 1, 'b': {'x': 1, 'y': 2}}, {'b': {'y': 3}})
        {'a': 1, 'b': {'x': 1, 'y': 3}}
    """
    result = dict(defaults)
    if not overrides:
        return result
    for key, value in overrides.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = merge(current, value)
        else:
            result[key] = value
    return result


def walk_properties(
    value: Any,
    transform: Callable[[Any], Any],
    clone_first: bool = False,
) -> Any:
    """Apply transform to every key of a dict or every element of a list.

    The value is modified in place (or its clone, with ``clone_first``)
    and returned. Non-composite values are returned untouched.
    """
    if clone_first:
        value = clone(value)
    if isinstance(value, dict):
        for key in list(value):
            value[key] = transform(value[key])
    elif isinstance(value, list):
        for i, item in enumerate(value):
            value[i] = transform(item)
    return value
