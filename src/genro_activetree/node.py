# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""ActiveNode - observed facade over a dict or a list.

wrap() turns a nested structure of dicts and lists into a tree of
ActiveNode instances. Reads are forwarded to the underlying value;
writes store the (wrapped) value and notify subscribers with the
fully-qualified path of the change.

Access:
    - Item syntax: ``node['a']``, ``node[0]``
    - Attribute syntax for dict keys: ``node.a.b = 2``
    - Explicit accessors: get(), set(), has(), delete()

Control surface (reserved names, never usable as data keys):
    is_observed, watcher, snapshot, unwrap, reconfigure,
    current_settings, subscribe, unsubscribe

Example:
    >>> tree = wrap({'a': {'b': 1}})
    >>> tree.subscribe('a.b', lambda n: print(n.path, n.value))
    >>> tree.a.b = 2
    a.b 2
    >>> tree.snapshot()
    {'a': {'b': 2}}
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator, Mapping

from .controller import WatchController
from .exceptions import CyclicAssignmentError, ReservedNameViolation
from .settings import DEFAULT_SETTINGS, ActiveSettings
from .utils import clone, is_composite, walk_properties

RESERVED_NAMES = frozenset({
    'is_observed',
    'watcher',
    'snapshot',
    'unwrap',
    'reconfigure',
    'current_settings',
    'subscribe',
    'unsubscribe',
})

# Members of the wrapped type that would mutate it behind our back.
_UNTRACKED_MUTATORS = frozenset({'sort', 'reverse', 'popitem'})

_MISSING = object()


class ActiveNode:
    """Observed facade over a dict or a list.

    Do not instantiate directly: use wrap(), which also wraps the
    nested values and wires the parent links.
    """

    __slots__ = ('_target', '_watcher', '__weakref__')

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, target: dict | list, settings: ActiveSettings = DEFAULT_SETTINGS) -> None:
        object.__setattr__(self, '_target', target)
        object.__setattr__(self, '_watcher', WatchController(self, settings))

    # ==================== Control surface ====================

    @property
    def is_observed(self) -> bool:
        """Always True; use the module-level is_observed() on any value."""
        return True

    @property
    def watcher(self) -> WatchController:
        """The controller holding subscriptions, settings and listeners."""
        return self._watcher

    def snapshot(self) -> Any:
        """Return a deep plain copy of the subtree, with no nodes left."""
        return clone(self._target, _unwrap_observed)

    def unwrap(self) -> dict | list:
        """Return the raw value of this node (children stay wrapped)."""
        return self._target

    def reconfigure(
        self,
        options: Mapping[str, Any] | None = None,
        cascade: bool = True,
        **kwargs: Any,
    ) -> None:
        """Merge options into the settings of this node.

        Args:
            options: Mapping of settings to change.
            cascade: Apply the same options to every wrapped child.
            **kwargs: Settings as keyword arguments.
        """
        self._watcher.set_settings(self._watcher.settings.merged(options, **kwargs))
        if cascade:
            for child in self._child_nodes():
                child.reconfigure(options, cascade, **kwargs)

    def current_settings(self) -> dict[str, Any]:
        """Return a copy of the active settings as a dict."""
        return self._watcher.settings.as_dict()

    def subscribe(
        self,
        patterns: str | Iterable[str],
        callback: Callable[[Any], Any],
        autocancel: bool = False,
    ) -> None:
        """Subscribe callback to one or many path patterns.

        See WatchController.subscribe().
        """
        self._watcher.subscribe(patterns, callback, autocancel)

    def unsubscribe(self, pattern: str, callback: Callable[[Any], Any] | None = None) -> None:
        """Remove callback (or every callback) from pattern."""
        self._watcher.unsubscribe(pattern, callback)

    # ==================== Accessors ====================

    def get(self, key: Any, default: Any = None) -> Any:
        """Return the value under key, or default if missing."""
        try:
            return self._target[key]
        except (KeyError, IndexError, TypeError):
            return default

    def has(self, key: Any) -> bool:
        """True if key is a key (dict) or a valid index (list)."""
        target = self._target
        if isinstance(target, dict):
            return key in target
        return isinstance(key, int) and -len(target) <= key < len(target)

    def set(self, key: Any, value: Any) -> Any:
        """Store value under key and notify subscribers.

        Composite values are wrapped with the child settings, an existing
        ActiveNode is re-parented to this node.

        Args:
            key: Dict key or list index.
            value: The value to store.

        Returns:
            The stored value (the ActiveNode, for composites).

        Raises:
            ReservedNameViolation: If key is a reserved name.
            CyclicAssignmentError: If value is this node or an ancestor.
            IndexError: If key is out of range for a list.
        """
        self._check_key(key)
        target = self._target
        if isinstance(target, list):
            key = self._index(key)
            old = target[key]
        else:
            old = target.get(key, _MISSING)
        stored = self._adopt(key, value)
        target[key] = stored
        self._release(old)
        self._watcher.fire(key, stored)
        return stored

    def delete(self, key: Any) -> None:
        """Remove key (or index) and notify a 'delete' change.

        Raises:
            KeyError: If key is missing (dict).
            IndexError: If index is out of range (list).
        """
        target = self._target
        if isinstance(target, list):
            key = self._index(key)
        old = target[key]
        del target[key]
        self._release(old)
        self._watcher.fire(key, None, kind='delete')

    # ==================== Mapping / sequence protocol ====================

    def __getitem__(self, key: Any) -> Any:
        return self._target[key]

    def __setitem__(self, key: Any, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: Any) -> None:
        self.delete(key)

    def __len__(self) -> int:
        return len(self._target)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._target)

    def __contains__(self, item: Any) -> bool:
        return item in self._target

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, ActiveNode):
            other = other._target
        return self._target == other

    def __repr__(self) -> str:
        return f"ActiveNode({self._target!r})"

    def __deepcopy__(self, memo: dict | None = None) -> ActiveNode:
        # Copies are detached trees without subscriptions.
        return _build(self.snapshot(), self._watcher.settings, cloned=True)

    __copy__ = __deepcopy__

    # ==================== Attribute access ====================

    def __getattr__(self, name: str) -> Any:
        """Resolve dict keys as attributes, then forward to the target.

        Members that would mutate the target untracked are refused.
        """
        if name.startswith('_'):
            raise AttributeError(
                f"'{type(self).__name__}' object has no attribute '{name}'"
            )
        target = self._target
        if isinstance(target, dict) and name in target:
            return target[name]
        if name in _UNTRACKED_MUTATORS:
            raise AttributeError(
                f"'{name}' would bypass change tracking; use unwrap() for raw access"
            )
        try:
            return getattr(target, name)
        except AttributeError:
            raise AttributeError(
                f"'{type(self).__name__}' object has no attribute or key '{name}'"
            ) from None

    def __setattr__(self, name: str, value: Any) -> None:
        if name in RESERVED_NAMES:
            raise ReservedNameViolation(name)
        if name.startswith('_'):
            raise AttributeError(f"Cannot set private attribute '{name}'")
        if not isinstance(self._target, dict):
            raise AttributeError(
                "Attribute assignment needs a dict-backed node, use item syntax for lists"
            )
        self.set(name, value)

    def __delattr__(self, name: str) -> None:
        try:
            self.delete(name)
        except KeyError:
            raise AttributeError(name) from None

    # ==================== Tracked mutators ====================

    def append(self, value: Any) -> Any:
        """Append value to a list-backed node, notifying its index."""
        return self.insert(len(self._require(list)), value)

    def extend(self, values: Iterable[Any]) -> None:
        """Append every value, one notification each."""
        for value in list(values):
            self.append(value)

    def insert(self, index: int, value: Any) -> Any:
        """Insert value before index (list.insert semantics) and notify."""
        target = self._require(list)
        size = len(target)
        if index < 0:
            index = max(size + index, 0)
        index = min(index, size)
        stored = self._adopt(index, value)
        target.insert(index, stored)
        self._watcher.fire(index, stored)
        return stored

    def remove(self, value: Any) -> None:
        """Remove the first occurrence of value from a list-backed node."""
        self.delete(self._require(list).index(value))

    def pop(self, key: Any = _MISSING, default: Any = _MISSING) -> Any:
        """Remove and return an item.

        Lists: ``pop(index=-1)``. Dicts: ``pop(key[, default])``.
        """
        target = self._target
        if isinstance(target, list):
            if key is _MISSING:
                key = -1
            value = target[key]
            self.delete(key)
            return value
        if key is _MISSING:
            raise TypeError("pop expected at least 1 argument, got 0")
        if key not in target:
            if default is _MISSING:
                raise KeyError(key)
            return default
        value = target[key]
        self.delete(key)
        return value

    def clear(self) -> None:
        """Delete every item, one notification each."""
        target = self._target
        if isinstance(target, list):
            for index in reversed(range(len(target))):
                self.delete(index)
        else:
            for key in list(target):
                self.delete(key)

    def update(self, other: Mapping[str, Any] | Iterable = (), **kwargs: Any) -> None:
        """dict.update() through set()."""
        self._require(dict)
        for key, value in dict(other, **kwargs).items():
            self.set(key, value)

    def setdefault(self, key: Any, default: Any = None) -> Any:
        """dict.setdefault() through set()."""
        target = self._require(dict)
        if key in target:
            return target[key]
        return self.set(key, default)

    # ==================== Internals ====================

    def _require(self, kind: type) -> Any:
        target = self._target
        if not isinstance(target, kind):
            raise AttributeError(
                f"Operation needs a {kind.__name__}-backed node, "
                f"not {type(target).__name__}"
            )
        return target

    def _check_key(self, key: Any) -> None:
        if isinstance(key, str) and key in RESERVED_NAMES:
            raise ReservedNameViolation(key)

    def _index(self, key: Any) -> int:
        if isinstance(key, bool) or not isinstance(key, int):
            raise TypeError(f"list indices must be integers, not {type(key).__name__}")
        size = len(self._target)
        if key < 0:
            key += size
        if not 0 <= key < size:
            raise IndexError("list index out of range")
        return key

    def _child_nodes(self) -> list[ActiveNode]:
        target = self._target
        values = target.values() if isinstance(target, dict) else target
        return [value for value in values if isinstance(value, ActiveNode)]

    def _adopt(self, key: Any, value: Any) -> Any:
        """Prepare value for storage under key in this node."""
        settings = self._watcher.settings
        if isinstance(value, ActiveNode):
            if settings.max_depth == 0:
                return value.snapshot()
            if settings.clone_on_wrap:
                value = _build(value.snapshot(), settings.for_child(), cloned=True)
            elif value is self or any(a is value for a in self._watcher.ancestors()):
                raise CyclicAssignmentError(
                    "Cannot store a node inside itself or one of its descendants"
                )
            elif settings.max_depth > 0:
                _fit_depth(value, settings.max_depth - 1)
        elif is_composite(value):
            if settings.max_depth == 0:
                return value
            value = _build(value, settings.for_child())
        else:
            return value
        value.watcher.attach(self, key)
        return value

    def _release(self, old: Any) -> None:
        """Detach a displaced child unless this node still holds it."""
        if not isinstance(old, ActiveNode):
            return
        target = self._target
        values = target.values() if isinstance(target, dict) else target
        if any(value is old for value in values):
            return
        old.watcher.detach(self)


def _unwrap_observed(value: Any) -> Any:
    if isinstance(value, ActiveNode):
        return value.unwrap()
    return value


def _fit_depth(node: ActiveNode, max_depth: int) -> None:
    """Tighten the depth limit of an adopted node and of its subtree.

    Children that end up below the limit are replaced by plain snapshots,
    as they would have been had the node been built under its new parent.
    """
    settings = node.watcher.settings
    if not settings.unlimited and settings.max_depth <= max_depth:
        return
    node.watcher.set_settings(settings.merged(max_depth=max_depth))
    target = node.unwrap()
    keys = target.keys() if isinstance(target, dict) else range(len(target))
    for key in list(keys):
        child = target[key]
        if not isinstance(child, ActiveNode):
            continue
        if max_depth == 0:
            target[key] = child.snapshot()
            node._release(child)
        else:
            _fit_depth(child, max_depth - 1)


def _build(
    value: dict | list,
    settings: ActiveSettings,
    cloned: bool = False,
    memo: dict[int, ActiveNode | None] | None = None,
) -> ActiveNode:
    """Wrap value and, within max_depth, its nested composites.

    A composite reachable from several places is wrapped once and the
    same node is stored at each of them. Parent links of the children are
    set only once the node exists, so no child can notify through a
    half-built parent.

    Raises:
        ReservedNameViolation: If a dict uses a reserved name as key.
        CyclicAssignmentError: If value contains itself.
    """
    if settings.clone_on_wrap and not cloned:
        value = clone(value, _unwrap_observed)
    if isinstance(value, dict):
        for key in value:
            if isinstance(key, str) and key in RESERVED_NAMES:
                raise ReservedNameViolation(key)
    if memo is None:
        memo = {}
    # None marks a composite whose node is still being built.
    memo[id(value)] = None

    children: list[ActiveNode] = []
    if settings.max_depth != 0:
        child_settings = settings.for_child()

        def convert(item: Any) -> Any:
            if isinstance(item, ActiveNode):
                if not child_settings.unlimited:
                    _fit_depth(item, child_settings.max_depth)
                children.append(item)
            elif is_composite(item):
                known = memo.get(id(item), _MISSING)
                if known is None:
                    raise CyclicAssignmentError("Cannot wrap a value that contains itself")
                if known is _MISSING:
                    known = _build(item, child_settings, cloned=True, memo=memo)
                item = known
                children.append(item)
            return item
    else:
        def convert(item: Any) -> Any:
            if isinstance(item, ActiveNode):
                return item.snapshot()
            return item

    walk_properties(value, convert)
    node = ActiveNode(value, settings)
    memo[id(value)] = node
    for child in children:
        child.watcher.attach(node)
    return node


def wrap(
    value: Any,
    options: Mapping[str, Any] | ActiveSettings | None = None,
    **kwargs: Any,
) -> Any:
    """Wrap a dict or list into an observed tree.

    Non-composite values are returned unchanged. An ActiveNode is
    returned as is, reconfigured if options are given.

    Args:
        value: The value to observe.
        options: Settings mapping (see ActiveSettings).
        **kwargs: Settings as keyword arguments.

    Returns:
        An ActiveNode, or value itself if it cannot be wrapped.

    Example:
        >>> tree = wrap({'items': [1, 2]}, propagate=True)
        >>> tree['items'].append(3)
        >>> tree.snapshot()
        {'items': [1, 2, 3]}
    """
    if isinstance(value, ActiveNode):
        if options or kwargs:
            value.reconfigure(options, **kwargs)
        return value
    if not is_composite(value):
        return value
    return _build(value, DEFAULT_SETTINGS.merged(options, **kwargs))


def is_observed(value: Any) -> bool:
    """True if value is an ActiveNode."""
    return isinstance(value, ActiveNode)
