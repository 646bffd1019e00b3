# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""ActiveTree exceptions."""

from __future__ import annotations

from typing import Any, Callable


class ActiveTreeError(Exception):
    """Base exception for ActiveTree errors."""

    pass


class ReservedNameViolation(ActiveTreeError, AttributeError):
    """Raised when a reserved control name is written as a data key."""

    def __init__(self, name: str) -> None:
        super().__init__(f"'{name}' is a reserved name and cannot be assigned")
        self.name = name


class PathResolutionError(ActiveTreeError):
    """Raised when a node cannot be located among its parent's values."""

    pass


class SubscriptionCallbackError(ActiveTreeError):
    """Raised when a subscriber callback fails during dispatch.

    The original exception is available as ``original`` and is chained
    as ``__cause__``.
    """

    def __init__(
        self,
        path: str,
        callback: Callable[..., Any],
        original: BaseException,
    ) -> None:
        name = getattr(callback, '__qualname__', repr(callback))
        super().__init__(
            f"Subscriber {name} failed on '{path}': {original!r}"
        )
        self.path = path
        self.callback = callback
        self.original = original


class CyclicAssignmentError(ActiveTreeError, ValueError):
    """Raised when a node would become a descendant of itself."""

    pass
