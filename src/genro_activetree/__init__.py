# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Genro-ActiveTree - Observed hierarchical data with path subscriptions.

A lightweight, zero-dependency library that wraps nested dicts and lists
so that every write is attributed a dotted path (``a.b.2.c``) and
delivered to subscribers of matching path patterns.
"""

__version__ = "0.1.0"

from .broadcast import BroadcastEvent, Broadcaster, ambient
from .controller import WatchController
from .exceptions import (
    ActiveTreeError,
    CyclicAssignmentError,
    PathResolutionError,
    ReservedNameViolation,
    SubscriptionCallbackError,
)
from .matcher import PathMatcher, compile_pattern
from .node import RESERVED_NAMES, ActiveNode, is_observed, wrap
from .propagation import ChangeEvent, Notification
from .settings import ActiveSettings
from .subscription import SubscriptionRegistry, merge_subscriptions, process_registry
from .utils import clone, merge, walk_properties

__all__ = [
    # Core
    "wrap",
    "is_observed",
    "ActiveNode",
    "WatchController",
    "ActiveSettings",
    "RESERVED_NAMES",
    # Matching and subscriptions
    "PathMatcher",
    "compile_pattern",
    "SubscriptionRegistry",
    "merge_subscriptions",
    "process_registry",
    # Events
    "ChangeEvent",
    "Notification",
    "BroadcastEvent",
    "Broadcaster",
    "ambient",
    # Helpers
    "clone",
    "merge",
    "walk_properties",
    # Exceptions
    "ActiveTreeError",
    "ReservedNameViolation",
    "PathResolutionError",
    "SubscriptionCallbackError",
    "CyclicAssignmentError",
]
