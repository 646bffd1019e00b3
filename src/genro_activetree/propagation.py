# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Notification propagation.

A mutation on a node goes through these steps, synchronously:

1. **Path resolution**: resolve_frames() climbs the parent links and
   returns one PropagationFrame per level, root first. Paths are never
   cached, since list positions and parents change over time.
2. **Dispatch**: a ChangeEvent is created once for the mutation and the
   merged subscriptions of the mutated node are matched against the full
   path; matching callbacks receive a Notification.
3. **Bubble**: with ``propagate`` enabled, dispatch is repeated at each
   ancestor with the ancestor's own path (``a.b.c`` -> ``a.b`` -> ``a``).

Cancelling the event (Notification.cancel() or an autocancel
subscription) skips every remaining callback at this and outer levels.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

from .exceptions import PathResolutionError, SubscriptionCallbackError

if TYPE_CHECKING:
    from .node import ActiveNode
    from .settings import ActiveSettings

logger = logging.getLogger(__name__)


@dataclass
class PropagationFrame:
    """One level of a mutation path: the node and the key inside it."""

    node: ActiveNode
    name: str
    value: Any = None


@dataclass
class ChangeEvent:
    """Envelope shared by every notification of one mutation."""

    source: ActiveNode
    from_path: str
    kind: str = 'change'
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class Notification:
    """What a subscriber callback receives.

    Attributes:
        path: Fully-qualified path at the level being notified.
        name: Last segment of path.
        value: Value held at path (None for a deleted key).
        event: The shared ChangeEvent.
        node: The node being notified at this level.
    """

    path: str
    name: str
    value: Any
    event: ChangeEvent = field(repr=False)
    node: ActiveNode = field(repr=False)

    @property
    def property_name(self) -> str:
        """Alias of name."""
        return self.name

    @property
    def kind(self) -> str:
        return self.event.kind

    @property
    def cancelled(self) -> bool:
        return self.event.cancelled

    def cancel(self) -> None:
        """Stop propagation of this mutation."""
        self.event.cancel()


def join_path(frames: list[PropagationFrame]) -> str:
    return '.'.join(frame.name for frame in frames)


def resolve_frames(node: ActiveNode, name: Any, value: Any) -> list[PropagationFrame]:
    """Build the frames from the root down to ``node[name]``.

    Raises:
        PathResolutionError: If an ancestor no longer holds its child,
            or the parent links loop.
    """
    frames = [PropagationFrame(node, str(name), value)]
    seen = {id(node)}
    current = node
    parent = current.watcher.parent
    while parent is not None:
        if id(parent) in seen:
            raise PathResolutionError("Parent links form a cycle")
        seen.add(id(parent))
        key = parent.watcher.locate(current)
        frames.append(PropagationFrame(parent, str(key), current))
        current = parent
        parent = current.watcher.parent
    frames.reverse()
    return frames


def dispatch_level(frames: list[PropagationFrame], event: ChangeEvent) -> None:
    """Notify the subscriptions visible from the last frame's node.

    Raises:
        SubscriptionCallbackError: If a callback fails; the remaining
            callbacks of this level are skipped.
    """
    frame = frames[-1]
    path = join_path(frames)
    logger.debug(f"Dispatching '{path}' ({event.kind}) from '{event.from_path}'")
    notification = Notification(path, frame.name, frame.value, event, frame.node)
    for subscription in frame.node.watcher.merged_subscriptions().values():
        if event.cancelled:
            return
        if not subscription.matches(path):
            continue
        for entry in list(subscription.callbacks):
            if event.cancelled:
                return
            try:
                entry.callback(notification)
            except Exception as exc:
                raise SubscriptionCallbackError(path, entry.callback, exc) from exc
            if entry.autocancel:
                event.cancel()


def propagate(
    frames: list[PropagationFrame],
    event: ChangeEvent,
    settings: ActiveSettings,
) -> None:
    """Dispatch at the mutated level, then bubble if enabled.

    Only this call walks the ancestors; each ancestor level is
    dispatched with the existing event.
    """
    levels = [frames]
    if settings.propagate:
        levels.extend(frames[:i] for i in range(len(frames) - 1, 0, -1))

    first_error: SubscriptionCallbackError | None = None
    for level in levels:
        if event.cancelled:
            break
        try:
            dispatch_level(level, event)
        except SubscriptionCallbackError as err:
            if settings.on_callback_error == 'bubble':
                raise
            if first_error is None:
                first_error = err
            else:
                logger.warning(f"Additional subscriber failure during bubble: {err}")
    if first_error is not None:
        raise first_error
