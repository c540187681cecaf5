"""
Tests for DeviceRegistry: lifecycle, polling, fan-out and live configuration.
"""

import errno
from functools import partial

import pytest
from evdev import ecodes

from conftest import scripted_reads
from scroll_ring.config.settings import RegistryConfig
from scroll_ring.core.registry import DeviceRegistry
from scroll_ring.device.reader import ScrollingRingReader, pack_event
from scroll_ring.errors import DeviceOpenFailed
from scroll_ring.gestures.gesture_detector import ScrollDirection

POLL = 0.05


@pytest.fixture
def registry(loop, clock):
    registry = DeviceRegistry(
        RegistryConfig(), poll_interval=POLL, loop=loop,
        reader_factory=partial(ScrollingRingReader, clock=clock),
    )
    yield registry
    registry.close_all()


@pytest.fixture
def ring_a(make_fifo):
    return make_fifo("event3")


@pytest.fixture
def ring_b(make_fifo):
    return make_fifo("event4")


def open_ring(registry, identity, fifo):
    reader = registry.open_device(identity, fifo.path)
    fifo.connect()
    return reader


class TestLifecycle:

    def test_polling_follows_readers(self, registry, ring_a, ring_b):
        assert not registry.is_polling

        open_ring(registry, "A", ring_a)
        assert registry.is_polling

        registry.close_device("A")
        assert not registry.is_polling
        assert not registry.has_readers()

        open_ring(registry, "B", ring_b)
        assert registry.is_polling

    def test_single_scheduled_tick(self, registry, loop, ring_a, ring_b):
        open_ring(registry, "A", ring_a)
        open_ring(registry, "B", ring_b)
        assert len(loop.pending()) == 1

    def test_failed_open_leaves_registry_untouched(self, registry, tmp_path):
        opened = []
        registry.register_device_open_callback(lambda address, path: opened.append(address))

        with pytest.raises(DeviceOpenFailed):
            registry.open_device("A", str(tmp_path / "missing"))
        with pytest.raises(DeviceOpenFailed):
            registry.open_device("A", None)

        assert registry.get_reader("A") is None
        assert not registry.is_polling
        assert opened == []

    def test_open_outside_event_loop_leaves_registry_untouched(self, ring_a):
        registry = DeviceRegistry()
        opened = []
        registry.register_device_open_callback(lambda address, path: opened.append(address))

        with pytest.raises(RuntimeError):
            registry.open_device("A", ring_a.path)

        assert registry.get_reader("A") is None
        assert not registry.has_readers()
        assert not registry.is_polling
        assert opened == []

    def test_open_same_identity_keeps_reader(self, registry, ring_a, ring_b):
        first = open_ring(registry, "A", ring_a)
        second = registry.open_device("A", ring_b.path)
        assert first is second
        assert first.device_path == ring_a.path
        assert registry.identities() == ["A"]

    def test_open_and_close_callbacks(self, registry, ring_a):
        events = []
        registry.register_device_open_callback(lambda a, p: events.append(("open", a, p)))
        registry.register_device_close_callback(lambda a, p: events.append(("close", a, p)))

        open_ring(registry, "A", ring_a)
        registry.close_device("A")
        registry.close_device("A")

        assert events == [("open", "A", ring_a.path), ("close", "A", ring_a.path)]

    def test_failing_callback_is_isolated(self, registry, ring_a):
        called = []

        def broken(address, path):
            raise RuntimeError("boom")

        registry.register_device_open_callback(broken)
        registry.register_device_open_callback(lambda a, p: called.append(a))

        reader = open_ring(registry, "A", ring_a)
        assert reader.is_open
        assert called == ["A"]
        assert registry.is_polling

    def test_close_all(self, registry, ring_a, ring_b):
        closed = []
        registry.register_device_close_callback(lambda a, p: closed.append(a))
        a = open_ring(registry, "A", ring_a)
        b = open_ring(registry, "B", ring_b)

        registry.close_all()

        assert not a.is_open and not b.is_open
        assert sorted(closed) == ["A", "B"]
        assert not registry.is_polling
        assert registry.identities() == []


class TestPolling:

    def test_tick_delivers_scrolls(self, registry, loop, ring_a):
        scrolls = []
        registry.register_scroll_callback(scrolls.append)
        open_ring(registry, "A", ring_a)

        ring_a.write_touch(500, 900)
        loop.advance(POLL)

        assert [(d.device_identity, d.direction) for d in scrolls] == [("A", ScrollDirection.UP)]

    def test_scrolls_reach_every_subscriber(self, registry, loop, ring_a):
        seen = []

        def broken(decision):
            raise RuntimeError("boom")

        registry.register_scroll_callback(broken)
        registry.register_scroll_callback(lambda d: seen.append(("first", d.direction)))
        registry.register_scroll_callback(lambda d: seen.append(("second", d.direction)))
        open_ring(registry, "A", ring_a)

        ring_a.write_touch(900, 500)
        loop.advance(POLL)

        assert seen == [("first", ScrollDirection.DOWN), ("second", ScrollDirection.DOWN)]

    def test_nothing_before_first_tick(self, registry, loop, ring_a):
        scrolls = []
        registry.register_scroll_callback(scrolls.append)
        open_ring(registry, "A", ring_a)
        ring_a.write_touch(500, 900)

        loop.advance(POLL / 2)
        assert scrolls == []
        loop.advance(POLL / 2)
        assert len(scrolls) == 1

    def test_key_presses_fan_out(self, registry, loop, ring_a):
        keys = []
        registry.register_key_callback(lambda address, event: keys.append((address, event.code)))
        open_ring(registry, "A", ring_a)

        ring_a.write(pack_event(1, 0, ecodes.EV_KEY, ecodes.KEY_ENTER, 1),
                     pack_event(1, 0, ecodes.EV_KEY, ecodes.KEY_ENTER, 0))
        loop.advance(POLL)

        assert keys == [("A", ecodes.KEY_ENTER)]

    def test_removed_device_does_not_disturb_others(self, registry, loop, ring_a, ring_b,
                                                    monkeypatch, clock):
        scrolls = []
        closed = []
        registry.register_scroll_callback(scrolls.append)
        registry.register_device_close_callback(lambda a, p: closed.append(a))
        reader_a = open_ring(registry, "A", ring_a)
        open_ring(registry, "B", ring_b)

        scripted_reads(reader_a, monkeypatch, [errno.ENODEV])
        ring_b.write_touch(500, 900)
        loop.advance(POLL)

        assert closed == ["A"]
        assert registry.identities() == ["B"]
        assert [d.device_identity for d in scrolls] == ["B"]
        assert registry.is_polling

        clock.advance(1)
        ring_b.write_touch(900, 500)
        loop.advance(POLL)
        assert [(d.device_identity, d.direction) for d in scrolls] == [
            ("B", ScrollDirection.UP), ("B", ScrollDirection.DOWN)]

    def test_read_error_keeps_reader(self, registry, loop, ring_a, monkeypatch):
        reader = open_ring(registry, "A", ring_a)
        scripted_reads(reader, monkeypatch, [errno.EIO])

        loop.advance(POLL)

        assert reader.is_open
        assert registry.identities() == ["A"]
        assert registry.is_polling

    def test_poll_task_stops_when_last_reader_removed(self, registry, loop, ring_a, ring_b,
                                                      monkeypatch):
        reader = open_ring(registry, "A", ring_a)
        scripted_reads(reader, monkeypatch, [errno.ENODEV])

        loop.advance(POLL)

        assert not registry.has_readers()
        assert not registry.is_polling
        assert loop.pending() == []

        open_ring(registry, "B", ring_b)
        assert registry.is_polling

    def test_stop_polling_is_idempotent(self, registry, loop, ring_a):
        open_ring(registry, "A", ring_a)
        registry.stop_polling()
        registry.stop_polling()
        assert not registry.is_polling
        assert loop.pending() == []


class TestConfiguration:

    def test_update_reaches_open_readers(self, registry, ring_a):
        reader = open_ring(registry, "A", ring_a)

        registry.update_configuration(threshold=450, debounce_interval=0.5, invert=True)

        assert (reader.threshold, reader.debounce_interval, reader.invert) == (450, 0.5, True)
        assert registry.config.threshold == 450

    def test_partial_update(self, registry, ring_a):
        reader = open_ring(registry, "A", ring_a)
        registry.update_configuration(invert=True)
        assert reader.invert is True
        assert reader.threshold == 300
        assert reader.debounce_interval == 0.15

    def test_threshold_clamped(self, registry):
        registry.update_configuration(threshold=5000)
        assert registry.config.threshold == 800
        registry.update_configuration(threshold=10)
        assert registry.config.threshold == 100

    def test_readers_do_not_share_config(self, registry, ring_a, ring_b):
        a = open_ring(registry, "A", ring_a)
        b = open_ring(registry, "B", ring_b)

        a.threshold = 700

        assert b.threshold == 300
        assert registry.config.threshold == 300

    def test_new_readers_get_current_defaults(self, registry, ring_a):
        registry.update_configuration(threshold=600)
        reader = open_ring(registry, "A", ring_a)
        assert reader.threshold == 600

    def test_registry_copies_given_config(self, loop):
        config = RegistryConfig(threshold=350)
        registry = DeviceRegistry(config, loop=loop)
        registry.update_configuration(threshold=500)
        assert config.threshold == 350
