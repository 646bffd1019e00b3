# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Broadcast channel for change events.

A Broadcaster is a minimal typed event dispatcher. Every WatchController
is one, and ``ambient`` is a process-wide instance that trees can list in
their ``broadcast_targets`` to reach application-wide listeners.

Example:
    >>> from genro_activetree import wrap, ambient
    >>> tree = wrap({'a': 1}, broadcast_targets=[ambient])
    >>> ambient.add_listener('watch', lambda e: print(e.path, e.value))
    >>> tree.a = 2
    a 2
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

EventHandler = Callable[['BroadcastEvent'], Any]


@dataclass
class BroadcastEvent:
    """Event sent on the broadcast channel for a mutation.

    Attributes:
        type: The event type tag (settings.event_type).
        path: Fully-qualified path of the mutated value.
        name: Last segment of the path.
        value: The new value (None for deletions).
        source: The node where the mutation happened.
        kind: 'change' or 'delete'.
        cancelled: Set by stop_propagation().
    """

    type: str
    path: str
    name: str
    value: Any = None
    source: Any = None
    kind: str = 'change'
    cancelled: bool = False

    def stop_propagation(self) -> None:
        """Stop delivery to further sinks and cancel subscriptions."""
        self.cancelled = True


class Broadcaster:
    """Typed listener list with add/remove/dispatch."""

    def __init__(self) -> None:
        self._listeners: list[tuple[str, EventHandler]] = []

    def add_listener(self, event_type: str, handler: EventHandler) -> None:
        """Call handler for every dispatched event of event_type."""
        self._listeners.append((event_type, handler))

    def remove_listener(self, event_type: str, handler: EventHandler) -> None:
        """Remove handler for event_type (no-op if absent)."""
        self._listeners = [
            (etype, h) for etype, h in self._listeners
            if etype != event_type or h != handler
        ]

    def has_listeners(self) -> bool:
        return bool(self._listeners)

    def clear_listeners(self) -> None:
        self._listeners.clear()

    def dispatch(self, event: BroadcastEvent) -> bool:
        """Deliver event to matching listeners in order.

        Returns:
            False if the event is (or becomes) cancelled, True otherwise.
        """
        for event_type, handler in list(self._listeners):
            if event.cancelled:
                break
            if event_type == event.type:
                handler(event)
        return not event.cancelled


ambient = Broadcaster()
