# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Path pattern matching for subscriptions.

Patterns are dotted paths with two wildcards:
    - ``*``: any run of characters, dots included (strict mode: no dots)
    - ``?``: any run of characters within a single segment

The empty pattern and ``*`` match every path.

Example:
    >>> compile_pattern('a.*').test('a.b.c')
    True
    >>> compile_pattern('a.?').test('a.b.c')
    False
"""

from __future__ import annotations

import re
from functools import lru_cache

MATCH_ALL = ('', '*')


class PathMatcher:
    """Compiled subscription pattern.

    Instances are immutable; ``test`` is pure.
    """

    __slots__ = ('pattern', 'strict', 'regex')

    def __init__(self, pattern: str, strict: bool = False) -> None:
        self.pattern = pattern
        self.strict = strict
        self.regex = re.compile(_translate(pattern, strict))

    def __repr__(self) -> str:
        return f"PathMatcher({self.pattern!r}, strict={self.strict})"

    def test(self, path: str) -> bool:
        """True if the whole path matches the pattern."""
        return self.regex.fullmatch(path) is not None

    __call__ = test


def _translate(pattern: str, strict: bool) -> str:
    if pattern in MATCH_ALL:
        return '.*'
    star = '[^.]*' if strict else '.*'
    parts = []
    for char in pattern:
        if char == '*':
            parts.append(star)
        elif char == '?':
            parts.append('[^.]*')
        else:
            parts.append(re.escape(char))
    return ''.join(parts)


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str, strict: bool = False) -> PathMatcher:
    """Compile a subscription pattern into a PathMatcher.

    Args:
        pattern: Dotted pattern, possibly with ``*`` and ``?``.
        strict: If True, ``*`` does not match across dots.

    Returns:
        A (cached) PathMatcher.
    """
    if not isinstance(pattern, str):
        raise TypeError(f"pattern must be str, not {type(pattern).__name__}")
    return PathMatcher(pattern, strict)
