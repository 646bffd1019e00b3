# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Shared fixtures for ActiveTree tests."""

import pytest

from genro_activetree import ambient, process_registry


@pytest.fixture(autouse=True)
def clean_process_state():
    """Isolate the process-wide registry and broadcaster."""
    process_registry.clear()
    ambient.clear_listeners()
    yield
    process_registry.clear()
    ambient.clear_listeners()


@pytest.fixture
def recorder():
    """A callback that records the notifications it receives."""

    class Recorder:
        def __init__(self):
            self.calls = []

        def __call__(self, notification):
            self.calls.append(notification)

        @property
        def paths(self):
            return [n.path for n in self.calls]

        @property
        def values(self):
            return [n.value for n in self.calls]

    return Recorder()
