# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""WatchController - the control side of an ActiveNode.

Every ActiveNode owns one WatchController, reachable as ``node.watcher``.
The controller keeps what the facade must not expose as data: settings,
subscriptions, broadcast listeners and weak links to the holding nodes.
It also turns a raw write into notifications.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Iterable, TYPE_CHECKING

from .broadcast import BroadcastEvent, Broadcaster
from .exceptions import PathResolutionError
from .propagation import ChangeEvent, join_path, propagate, resolve_frames
from .settings import ActiveSettings
from .subscription import (
    SubscriberCallback,
    Subscription,
    SubscriptionRegistry,
    merge_subscriptions,
    process_registry,
)

if TYPE_CHECKING:
    from .node import ActiveNode

logger = logging.getLogger(__name__)


class WatchController(Broadcaster):
    """Subscriptions, settings and parent tracking for one node.

    Attributes:
        settings: The node's ActiveSettings.
        registry: The node's own SubscriptionRegistry.
    """

    def __init__(self, node: ActiveNode, settings: ActiveSettings) -> None:
        super().__init__()
        self._node_ref = weakref.ref(node)
        self._holder_refs: list[weakref.ref[ActiveNode]] = []
        self._key_hint: Any = None
        self.settings = settings
        self.registry = SubscriptionRegistry()

    def __repr__(self) -> str:
        return f"WatchController(patterns={self.registry.patterns()})"

    # ==================== Parent tracking ====================

    @property
    def node(self) -> ActiveNode:
        node = self._node_ref()
        if node is None:
            raise ReferenceError("The observed node no longer exists")
        return node

    @property
    def parent(self) -> ActiveNode | None:
        """The latest live holder of this node, or None for a root."""
        for ref in reversed(self._holder_refs):
            holder = ref()
            if holder is not None:
                return holder
        return None

    def _holders_except(self, parent: ActiveNode) -> list[weakref.ref[ActiveNode]]:
        return [
            ref for ref in self._holder_refs
            if ref() is not None and ref() is not parent
        ]

    def attach(self, parent: ActiveNode, key: Any = None) -> None:
        """Record parent as the latest holder of this node (under key, if known)."""
        self._holder_refs = self._holders_except(parent)
        self._holder_refs.append(weakref.ref(parent))
        self._key_hint = key

    def detach(self, parent: ActiveNode | None = None) -> None:
        """Forget parent as a holder, or every holder if parent is None.

        A node held by several parents falls back to the previous holder
        still on record.
        """
        if parent is None:
            self._holder_refs = []
        else:
            current = self.parent
            self._holder_refs = self._holders_except(parent)
            if current is not parent:
                return
        self._key_hint = None

    def ancestors(self) -> Iterable[ActiveNode]:
        """Yield parent, grandparent, ... up to the root."""
        seen = set()
        parent = self.parent
        while parent is not None and id(parent) not in seen:
            seen.add(id(parent))
            yield parent
            parent = parent.watcher.parent

    def locate(self, child: ActiveNode) -> Any:
        """Return the key under which this node's target holds child.

        Raises:
            PathResolutionError: If child is not among the values.
        """
        target = self.node.unwrap()
        hint = child.watcher._key_hint
        if hint is not None:
            try:
                if target[hint] is child:
                    return hint
            except (KeyError, IndexError, TypeError):
                pass
        items = target.items() if isinstance(target, dict) else enumerate(target)
        for key, value in items:
            if value is child:
                child.watcher._key_hint = key
                return key
        raise PathResolutionError(
            f"Could not find the child node among the values of {self.node!r}"
        )

    # ==================== Subscriptions ====================

    def _registry(self) -> SubscriptionRegistry:
        if self.settings.scope == 'process':
            return process_registry
        return self.registry

    def subscribe(
        self,
        patterns: str | Iterable[str],
        callback: SubscriberCallback,
        autocancel: bool = False,
    ) -> None:
        """Call callback for changes whose path matches any pattern.

        Args:
            patterns: One pattern or an iterable of patterns.
            callback: Receives a Notification.
            autocancel: Cancel the event once callback has run.
        """
        self._registry().register(
            patterns, callback, autocancel, strict=self.settings.strict_wildcards
        )

    def unsubscribe(self, pattern: str, callback: SubscriberCallback | None = None) -> None:
        """Remove callback (or every callback) registered for pattern."""
        self._registry().unregister(pattern, callback)

    def merged_subscriptions(self) -> dict[str, Subscription]:
        """Own subscriptions merged with every ancestor's.

        Inner levels come first and shadow identical outer patterns.
        """
        registries = [self.registry]
        registries.extend(ancestor.watcher.registry for ancestor in self.ancestors())
        if self.settings.scope == 'process':
            registries.append(process_registry)
        return merge_subscriptions(registries)

    # ==================== Settings ====================

    def set_settings(self, settings: ActiveSettings) -> None:
        self.settings = settings
        logger.debug(f"Reconfigured {self!r}: {settings}")

    # ==================== Notification ====================

    def fire(self, name: Any, value: Any, kind: str = 'change') -> None:
        """Notify a write (or deletion) of ``name`` on this node.

        Every data key notifies; the node's own bookkeeping (settings,
        subscriptions, parent link) lives here and never goes through it.
        """
        node = self.node
        frames = resolve_frames(node, name, value)
        event = ChangeEvent(node, join_path(frames), kind)
        if self.has_listeners() or self.settings.broadcast_targets:
            self._broadcast(frames, event)
        propagate(frames, event, self.settings)

    def _broadcast(self, frames: list, event: ChangeEvent) -> None:
        frame = frames[-1]
        broadcast_event = BroadcastEvent(
            type=self.settings.event_type,
            path=event.from_path,
            name=frame.name,
            value=frame.value,
            source=event.source,
            kind=event.kind,
        )
        self.dispatch(broadcast_event)
        for target in self.settings.broadcast_targets:
            if broadcast_event.cancelled:
                break
            target.dispatch(broadcast_event)
        if broadcast_event.cancelled:
            event.cancel()
