# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Subscription registry: pattern -> ordered callbacks.

Each node owns a SubscriptionRegistry. At dispatch time the registries
of a node and of its ancestors are merged with merge_subscriptions():
inner keys come first, and an identical pattern string registered at an
inner level shadows the outer one. Distinct patterns all coexist.

A process-wide registry is also provided for nodes configured with
``scope='process'``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator

from .matcher import PathMatcher, compile_pattern

logger = logging.getLogger(__name__)

SubscriberCallback = Callable[[Any], Any]


@dataclass
class SubscriberEntry:
    """A callback registered for a pattern."""

    callback: SubscriberCallback
    autocancel: bool = False


@dataclass
class Subscription:
    """All callbacks registered for one pattern string on one node."""

    pattern: str
    matcher: PathMatcher
    callbacks: list[SubscriberEntry] = field(default_factory=list)

    def matches(self, path: str) -> bool:
        return self.matcher.test(path)


def _as_patterns(patterns: str | Iterable[str]) -> list[str]:
    if isinstance(patterns, str):
        return [patterns]
    return list(patterns)


class SubscriptionRegistry:
    """Mapping of pattern string to Subscription, in registration order.

    Example:
        >>> registry = SubscriptionRegistry()
        >>> registry.register(['a.b', 'a.*'], print)
        >>> registry.patterns()
        ['a.b', 'a.*']
    """

    __slots__ = ('_entries',)

    def __init__(self) -> None:
        self._entries: dict[str, Subscription] = {}

    def __repr__(self) -> str:
        return f"SubscriptionRegistry({self.patterns()})"

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, pattern: str) -> bool:
        return pattern in self._entries

    def __iter__(self) -> Iterator[Subscription]:
        return iter(list(self._entries.values()))

    def get(self, pattern: str) -> Subscription | None:
        return self._entries.get(pattern)

    def patterns(self) -> list[str]:
        """Return registered pattern strings in registration order."""
        return list(self._entries)

    def as_dict(self) -> dict[str, Subscription]:
        """Return a shallow copy of the pattern -> Subscription mapping."""
        return dict(self._entries)

    def register(
        self,
        patterns: str | Iterable[str],
        callback: SubscriberCallback,
        autocancel: bool = False,
        strict: bool = False,
    ) -> None:
        """Register callback for one or many patterns.

        The first registration of a pattern compiles it; later ones
        append to the existing callback list.

        Args:
            patterns: A pattern string or an iterable of them.
            callback: Called with a Notification when a path matches.
            autocancel: Cancel the event right after the callback runs.
            strict: Compile new patterns in strict wildcard mode.

        Raises:
            TypeError: If callback is not callable.
        """
        if not callable(callback):
            raise TypeError(f"callback must be callable, not {type(callback).__name__}")
        for pattern in _as_patterns(patterns):
            if pattern == '':
                pattern = '*'
            subscription = self._entries.get(pattern)
            if subscription is None:
                subscription = Subscription(pattern, compile_pattern(pattern, strict))
                self._entries[pattern] = subscription
            subscription.callbacks.append(SubscriberEntry(callback, autocancel))
            logger.debug(f"Subscribed {callback!r} to '{pattern}'")

    def unregister(
        self,
        pattern: str,
        callback: SubscriberCallback | None = None,
    ) -> None:
        """Remove callback from pattern, or every callback if None.

        Unknown patterns are ignored. A pattern left without callbacks
        is dropped, so it no longer shadows the same pattern on an
        ancestor.
        """
        if pattern == '':
            pattern = '*'
        subscription = self._entries.get(pattern)
        if subscription is None:
            return
        if callback is None:
            subscription.callbacks.clear()
        else:
            subscription.callbacks[:] = [
                entry for entry in subscription.callbacks if entry.callback != callback
            ]
        if not subscription.callbacks:
            del self._entries[pattern]
        logger.debug(f"Unsubscribed {callback!r} from '{pattern}'")

    def clear(self) -> None:
        """Remove every subscription."""
        self._entries.clear()


def merge_subscriptions(
    registries: Iterable[SubscriptionRegistry],
) -> dict[str, Subscription]:
    """Merge registries ordered from innermost to outermost.

    Innermost patterns iterate first; an outer pattern identical to an
    inner one is shadowed.
    """
    merged: dict[str, Subscription] = {}
    for registry in registries:
        for subscription in registry:
            merged.setdefault(subscription.pattern, subscription)
    return merged


process_registry = SubscriptionRegistry()
