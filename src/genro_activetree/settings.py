# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Per-node settings for active trees."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

from .utils import merge

UNLIMITED = -1

CALLBACK_ERROR_POLICIES = ('level', 'bubble')
SCOPES = ('tree', 'process')

# Long option names accepted in place of the field names.
OPTION_ALIASES = {
    'propagate_to_ancestors': 'propagate',
    'event_type_tag': 'event_type',
}


@dataclass(frozen=True)
class ActiveSettings:
    """Immutable configuration snapshot of an ActiveNode.

    Attributes:
        max_depth: How many levels below this node are wrapped.
            -1 means unlimited, 0 means only this node.
        clone_on_wrap: Deep-copy values before wrapping them, so the
            caller's original object cannot desynchronize the tree.
        propagate: After notifying the mutated path, also notify each
            ancestor path (a.b.c, then a.b, then a).
        broadcast_targets: Extra sinks (objects with ``dispatch(event)``)
            that receive a BroadcastEvent for every mutation.
        event_type: Type tag of the broadcast events.
        strict_wildcards: If True, ``*`` in patterns does not cross dots.
        on_callback_error: 'level' aborts only the level where a
            callback failed and raises after the bubble; 'bubble'
            raises immediately.
        scope: 'tree' keeps subscriptions on the node; 'process' stores
            them in the process-wide registry.

    merged() also accepts the long names in OPTION_ALIASES
    (``propagate_to_ancestors``, ``event_type_tag``).
    """

    max_depth: int = UNLIMITED
    clone_on_wrap: bool = False
    propagate: bool = False
    broadcast_targets: tuple[Any, ...] = ()
    event_type: str = 'watch'
    strict_wildcards: bool = False
    on_callback_error: str = 'level'
    scope: str = 'tree'

    def __post_init__(self) -> None:
        if not isinstance(self.max_depth, int) or isinstance(self.max_depth, bool):
            raise ValueError(f"max_depth must be an int, not {self.max_depth!r}")
        if self.on_callback_error not in CALLBACK_ERROR_POLICIES:
            raise ValueError(
                f"on_callback_error must be one of {CALLBACK_ERROR_POLICIES}, "
                f"not {self.on_callback_error!r}"
            )
        if self.scope not in SCOPES:
            raise ValueError(f"scope must be one of {SCOPES}, not {self.scope!r}")
        targets = self.broadcast_targets
        if targets is None:
            targets = ()
        elif hasattr(targets, 'dispatch'):
            targets = (targets,)
        object.__setattr__(self, 'broadcast_targets', tuple(targets))

    @property
    def unlimited(self) -> bool:
        """True if max_depth does not limit wrapping."""
        return self.max_depth < 0

    @property
    def propagate_to_ancestors(self) -> bool:
        return self.propagate

    @property
    def event_type_tag(self) -> str:
        return self.event_type

    def merged(
        self,
        options: Mapping[str, Any] | ActiveSettings | None = None,
        **kwargs: Any,
    ) -> ActiveSettings:
        """Return new settings with options merged onto these ones.

        Raises:
            TypeError: If an option name is unknown.
            ValueError: If an option value is invalid.
        """
        if isinstance(options, ActiveSettings):
            options = options.as_dict()
        overrides = {
            OPTION_ALIASES.get(key, key): value
            for key, value in merge(options or {}, kwargs).items()
        }
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown option(s): {', '.join(sorted(unknown))}")
        if not overrides:
            return self
        return ActiveSettings(**merge(self.as_dict(), overrides))

    def for_child(self) -> ActiveSettings:
        """Settings for the children of a node with these settings."""
        if self.max_depth > 0:
            return replace(self, max_depth=self.max_depth - 1)
        return self

    def as_dict(self) -> dict[str, Any]:
        """Return a plain dict copy of the settings."""
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        result['broadcast_targets'] = list(self.broadcast_targets)
        return result


DEFAULT_SETTINGS = ActiveSettings()

