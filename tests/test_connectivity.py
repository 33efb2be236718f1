"""Tests for the connectivity monitor and the debounce timer."""

import asyncio
import socket

import pytest

from smartspend.sync import ConnectivityMonitor, DebounceTimer

from conftest import ManualScheduler


class TestConnectivityMonitor:
    """Tests for edge-triggered online/offline events."""

    def test_initial_value(self):
        assert ConnectivityMonitor(initially_online=False).online is False

    def test_fires_only_on_transitions(self):
        """Test repeated reports of the same value are not events."""
        monitor = ConnectivityMonitor(initially_online=True)
        events = []
        monitor.on_became_online(lambda: events.append("online"))
        monitor.on_became_offline(lambda: events.append("offline"))

        monitor.report(True)
        monitor.report(False)
        monitor.report(False)
        monitor.report(True)

        assert events == ["offline", "online"]
        assert monitor.online is True

    def test_unsubscribe(self):
        monitor = ConnectivityMonitor(initially_online=False)
        events = []
        unsubscribe = monitor.on_became_online(lambda: events.append("online"))
        unsubscribe()
        monitor.report(True)
        assert events == []

    def test_failing_listener_does_not_block_others(self):
        monitor = ConnectivityMonitor(initially_online=False)
        events = []

        def explode():
            raise RuntimeError("boom")

        monitor.on_became_online(explode)
        monitor.on_became_online(lambda: events.append("online"))
        monitor.report(True)
        assert events == ["online"]

    def test_probe_reachable(self, monkeypatch):
        class FakeConnection:
            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

        monkeypatch.setattr(socket, "create_connection", lambda address, timeout: FakeConnection())
        assert ConnectivityMonitor.probe("example.com").online is True

    def test_probe_unreachable(self, monkeypatch):
        def refuse(address, timeout):
            raise OSError("network is unreachable")

        monkeypatch.setattr(socket, "create_connection", refuse)
        assert ConnectivityMonitor.probe("example.com").online is False


class TestDebounceTimer:
    """Tests for DebounceTimer."""

    def test_fires_after_quiet_period(self):
        scheduler = ManualScheduler()
        fired = []
        timer = DebounceTimer(2.0, lambda: fired.append(scheduler.now), scheduler)

        timer.arm()
        scheduler.advance(1.9)
        assert fired == []
        scheduler.advance(0.1)
        assert fired == [pytest.approx(2.0)]
        assert timer.armed is False

    def test_rearm_cancels_previous(self):
        """Test a burst of arms produces exactly one firing, from the last arm."""
        scheduler = ManualScheduler()
        fired = []
        timer = DebounceTimer(2.0, lambda: fired.append(scheduler.now), scheduler)

        timer.arm()
        scheduler.advance(0.1)
        timer.arm()
        scheduler.advance(5.0)

        assert fired == [pytest.approx(2.1)]

    def test_cancel(self):
        scheduler = ManualScheduler()
        fired = []
        timer = DebounceTimer(1.0, lambda: fired.append(True), scheduler)
        timer.arm()
        timer.cancel()
        scheduler.advance(10)
        assert fired == []
        assert timer.armed is False

    def test_stale_callback_is_ignored(self):
        """Test a firing that escaped cancellation still does nothing."""

        class LeakyScheduler(ManualScheduler):
            # Handles ignore cancel(), like a callback the loop already dequeued
            def call_later(self, delay, callback):
                handle = super().call_later(delay, callback)
                handle.cancel = lambda: None
                return handle

        scheduler = LeakyScheduler()
        fired = []
        timer = DebounceTimer(1.0, lambda: fired.append(scheduler.now), scheduler)
        timer.arm()
        scheduler.advance(0.5)
        timer.arm()
        scheduler.advance(5)
        assert fired == [pytest.approx(1.5)]

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            DebounceTimer(-1, lambda: None, ManualScheduler())

    @pytest.mark.asyncio
    async def test_default_scheduler_uses_running_loop(self):
        fired = asyncio.Event()
        timer = DebounceTimer(0.01, fired.set)
        timer.arm()
        await asyncio.wait_for(fired.wait(), timeout=1)
