# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tests for the broadcast channel and process-scope subscriptions."""

from genro_activetree import (
    BroadcastEvent,
    Broadcaster,
    ambient,
    process_registry,
    wrap,
)


class TestBroadcaster:
    """Tests for Broadcaster itself."""

    def test_dispatch_by_type(self):
        """Test only listeners of the event type are called."""
        bus = Broadcaster()
        seen = []
        bus.add_listener('watch', seen.append)
        bus.add_listener('other', lambda e: seen.append('other'))
        event = BroadcastEvent(type='watch', path='a', name='a', value=1)
        assert bus.dispatch(event) is True
        assert seen == [event]

    def test_stop_propagation(self):
        """Test later listeners are skipped once stopped."""
        bus = Broadcaster()
        seen = []
        bus.add_listener('watch', lambda e: e.stop_propagation())
        bus.add_listener('watch', seen.append)
        event = BroadcastEvent(type='watch', path='a', name='a')
        assert bus.dispatch(event) is False
        assert seen == []

    def test_remove_listener(self):
        """Test removed handlers are no longer called."""
        bus = Broadcaster()
        seen = []
        bus.add_listener('watch', seen.append)
        bus.remove_listener('watch', seen.append)
        assert not bus.has_listeners()
        bus.dispatch(BroadcastEvent(type='watch', path='a', name='a'))
        assert seen == []


class TestTreeBroadcast:
    """Tests for broadcast events emitted by writes."""

    def test_own_listener(self):
        """Test the mutated node's own listeners receive the event."""
        tree = wrap({'a': {'b': 0}})
        events = []
        tree.a.watcher.add_listener('watch', events.append)
        tree.a.b = 1
        assert len(events) == 1
        event = events[0]
        assert event.type == 'watch'
        assert event.path == 'a.b'
        assert event.name == 'b'
        assert event.value == 1
        assert event.source is tree.a
        assert event.kind == 'change'

    def test_root_listener_not_reached_by_child_write(self):
        """Test listeners belong to the originating node only."""
        tree = wrap({'a': {'b': 0}}, propagate=True)
        events = []
        tree.watcher.add_listener('watch', events.append)
        tree.a.b = 1
        assert events == []
        tree.c = 2
        assert [e.path for e in events] == ['c']

    def test_ambient_target(self):
        """Test broadcast_targets reach the process-wide broadcaster once."""
        tree = wrap({'a': {'b': 0}}, broadcast_targets=[ambient], propagate=True)
        events = []
        ambient.add_listener('watch', events.append)
        tree.a.b = 1
        del tree.a.b
        assert [(e.path, e.kind) for e in events] == [('a.b', 'change'), ('a.b', 'delete')]

    def test_single_target(self):
        """Test a single broadcaster is accepted as target."""
        sink = Broadcaster()
        events = []
        sink.add_listener('watch', events.append)
        tree = wrap({'a': 0}, broadcast_targets=sink)
        tree.a = 1
        assert [e.value for e in events] == [1]

    def test_custom_event_type(self):
        """Test event_type tags the broadcast events."""
        tree = wrap({'a': 0}, broadcast_targets=[ambient], event_type='model')
        watch, model = [], []
        ambient.add_listener('watch', watch.append)
        ambient.add_listener('model', model.append)
        tree.a = 1
        assert watch == []
        assert [e.type for e in model] == ['model']

    def test_stop_propagation_cancels_subscriptions(self, recorder):
        """Test a stopped broadcast skips later sinks and subscribers."""
        second = Broadcaster()
        late = []
        second.add_listener('watch', late.append)
        tree = wrap({'a': 0}, broadcast_targets=[ambient, second])
        ambient.add_listener('watch', lambda e: e.stop_propagation())
        tree.subscribe('*', recorder)
        tree.a = 1
        assert late == []
        assert recorder.calls == []
        assert tree.a == 1

    def test_broadcast_before_subscribers(self, recorder):
        """Test listeners run before the subscription dispatch."""
        order = []
        tree = wrap({'a': 0}, broadcast_targets=[ambient])
        ambient.add_listener('watch', lambda e: order.append('broadcast'))
        tree.subscribe('a', lambda n: order.append('subscriber'))
        tree.a = 1
        assert order == ['broadcast', 'subscriber']

    def test_targets_inherited_by_children(self):
        """Test nested nodes share the root's broadcast targets."""
        tree = wrap({'a': {'b': {'c': 0}}}, broadcast_targets=[ambient])
        events = []
        ambient.add_listener('watch', events.append)
        tree.a.b.c = 1
        tree.a.x = {'y': 0}
        tree.a.x.y = 1
        assert [e.path for e in events] == ['a.b.c', 'a.x', 'a.x.y']


class TestProcessScope:
    """Tests for scope='process' subscriptions."""

    def test_shared_between_trees(self, recorder):
        """Test a subscription on one tree sees writes on another."""
        first = wrap({'a': 0}, scope='process')
        second = wrap({'a': 0}, scope='process')
        first.subscribe('a', recorder)
        second.a = 1
        assert recorder.paths == ['a']
        assert recorder.calls[0].node is second
        assert process_registry.patterns() == ['a']

    def test_tree_scope_not_reached(self, recorder):
        """Test trees with the default scope ignore the shared table."""
        shared = wrap({'a': 0}, scope='process')
        local = wrap({'a': 0})
        shared.subscribe('a', recorder)
        local.a = 1
        assert recorder.calls == []
        assert 'a' not in local.watcher.registry

    def test_nested_nodes_use_shared_table(self, recorder):
        """Test children inherit the process scope."""
        tree = wrap({'a': {'b': 0}}, scope='process')
        tree.a.subscribe('a.b', recorder)
        tree.a.b = 1
        assert recorder.paths == ['a.b']
        assert len(tree.a.watcher.registry) == 0

    def test_unsubscribe(self, recorder):
        """Test unsubscribe removes from the shared table."""
        tree = wrap({'a': 0}, scope='process')
        tree.subscribe('a', recorder)
        tree.unsubscribe('a', recorder)
        tree.a = 1
        assert recorder.calls == []
        assert len(process_registry) == 0
