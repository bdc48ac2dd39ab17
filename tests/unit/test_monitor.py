#!/usr/bin/env python3
# Copyright 2025 icecake0141
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review required for correctness, security, and licensing.

"""
Unit tests for pingwatch.monitor module.

Probes are replaced with a fake so the engine can be driven without running
the system ping utility.
"""

import itertools
import os
import sys
import threading
import time
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from pingwatch.chart import Background, Polyline  # noqa: E402
from pingwatch.config import MonitorConfig  # noqa: E402
from pingwatch.monitor import PingMonitor, samples_per_display_refresh  # noqa: E402
from pingwatch.pinger import FAILED_OUTCOME, ProbeOutcome  # noqa: E402
from pingwatch.thresholds import BAND_LOW, BAND_MEDIUM, INITIAL_DISPLAY_STATE  # noqa: E402

# Long enough that no cycle fires during a test; outcomes are posted directly.
IDLE_INTERVAL_MS = 60000


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class FakeProbe:
    """Records probe requests; completes them immediately unless told to hold."""

    def __init__(self, latency=12.0, hold=False):
        self.latency = latency
        self.hold = hold
        self.calls = []
        self.pending = []
        self._lock = threading.Lock()

    def __call__(self, host, timeout, callback):
        with self._lock:
            self.calls.append((host, timeout))
            if self.hold:
                self.pending.append(callback)
                return
        callback(ProbeOutcome(True, self.latency))


class MonitorTestCase(unittest.TestCase):
    """Base class that always stops the engine under test."""

    def setUp(self):
        self.displays = []
        self.probe = FakeProbe()
        self.monitor = self._make_monitor(MonitorConfig(ping_interval_ms=IDLE_INTERVAL_MS))

    def tearDown(self):
        self.monitor.stop()

    def _make_monitor(self, config):
        # Each handled outcome takes one tick, so the n-th posted outcome is stamped n.
        self.ticks = itertools.count(1)
        self.posted = 0
        return PingMonitor(config, probe=self.probe, clock=lambda: float(next(self.ticks)), on_display=self.displays.append)

    def _post(self, *latencies):
        """Deliver outcomes through the scheduler loop and wait for the last one to land."""
        self.posted += len(latencies)
        expected = float(self.posted)
        callback = self.monitor._completion_callback()
        for latency in latencies:
            callback(FAILED_OUTCOME if latency is None else ProbeOutcome(True, latency))

        def landed():
            sample = self.monitor.history.latest()
            return sample is not None and sample.timestamp == expected

        self.assertTrue(_wait_for(landed))


class TestDisplayRefreshCadence(unittest.TestCase):
    """Tests for samples_per_display_refresh."""

    def test_default_is_every_fifth_sample(self):
        self.assertEqual(samples_per_display_refresh(MonitorConfig()), 5)

    def test_rounds_to_nearest(self):
        self.assertEqual(samples_per_display_refresh(MonitorConfig(ping_interval_ms=300, display_interval_ms=1000)), 3)

    def test_never_below_one(self):
        self.assertEqual(samples_per_display_refresh(MonitorConfig(ping_interval_ms=1000, display_interval_ms=400)), 1)


class TestLifecycle(MonitorTestCase):
    """Tests for start/stop behaviour."""

    def test_initial_state(self):
        self.assertFalse(self.monitor.is_running)
        self.assertIs(self.monitor.current_display(), INITIAL_DISPLAY_STATE)
        self.assertIsNone(self.monitor.summary())
        self.assertEqual(self.monitor.summary_line(), "No data yet")

    def test_cycles_probe_configured_host(self):
        config = MonitorConfig(target_host="192.0.2.7", ping_interval_ms=20, ping_timeout=3)
        self.monitor = self._make_monitor(config)
        self.monitor.start()
        self.assertTrue(_wait_for(lambda: len(self.monitor.snapshot()) >= 2))
        self.assertEqual(self.probe.calls[0], ("192.0.2.7", 3))
        self.assertTrue(all(s.latency == 12.0 for s in self.monitor.snapshot()))

    def test_start_twice_is_noop(self):
        self.monitor.start()
        self._post(10.0)
        self.monitor.start()
        self.assertEqual(len(self.monitor.snapshot()), 1)

    def test_stop_clears_history_and_display(self):
        self.monitor.start()
        self._post(10.0, 20.0)
        self.monitor.stop()
        self.assertFalse(self.monitor.is_running)
        self.assertEqual(self.monitor.snapshot(), ())
        self.assertIs(self.monitor.current_display(), INITIAL_DISPLAY_STATE)

    def test_stop_when_not_running(self):
        self.monitor.stop()
        self.assertFalse(self.monitor.is_running)

    def test_late_completion_after_stop_is_discarded(self):
        self.probe.hold = True
        self.monitor = self._make_monitor(MonitorConfig(ping_interval_ms=20))
        self.monitor.start()
        self.assertTrue(_wait_for(lambda: self.probe.pending))
        self.monitor.stop()

        for callback in list(self.probe.pending):
            callback(ProbeOutcome(True, 5.0))
        time.sleep(0.05)

        self.assertEqual(self.monitor.snapshot(), ())
        self.assertIs(self.monitor.current_display(), INITIAL_DISPLAY_STATE)
        self.assertFalse(self.monitor.is_running)

    def test_completion_from_previous_session_is_discarded(self):
        """A probe launched before stop() never lands in the next session."""
        self.probe.hold = True
        self.monitor = self._make_monitor(MonitorConfig(ping_interval_ms=20))
        self.monitor.start()
        self.assertTrue(_wait_for(lambda: self.probe.pending))
        self.monitor.stop()
        stale = list(self.probe.pending)
        self.monitor.start()

        for callback in stale:
            callback(ProbeOutcome(True, 999.0))
        time.sleep(0.05)

        self.assertEqual(self.monitor.snapshot(), ())
        self.assertIs(self.monitor.current_display(), INITIAL_DISPLAY_STATE)

    def test_completion_from_current_session_is_recorded_after_restart(self):
        self.probe.hold = True
        self.monitor = self._make_monitor(MonitorConfig(ping_interval_ms=20))
        self.monitor.start()
        self.assertTrue(_wait_for(lambda: self.probe.pending))
        self.monitor.stop()
        stale_count = len(self.probe.pending)
        self.monitor.start()
        self.assertTrue(_wait_for(lambda: len(self.probe.pending) > stale_count))

        self.probe.pending[stale_count](ProbeOutcome(True, 7.0))

        self.assertTrue(_wait_for(lambda: [s.latency for s in self.monitor.snapshot()] == [7.0]))

    def test_restart_starts_fresh(self):
        self.monitor.start()
        self._post(10.0)
        self.monitor.stop()
        self.monitor.start()
        self.assertEqual(self.monitor.snapshot(), ())
        self._post(30.0)
        self.assertEqual([s.latency for s in self.monitor.snapshot()], [30.0])


class TestResultHandling(MonitorTestCase):
    """Tests for sample recording and the compact label."""

    def test_samples_recorded_in_order(self):
        self.monitor.start()
        self._post(10.0, None, 30.0)
        snapshot = self.monitor.snapshot()
        self.assertEqual([s.success for s in snapshot], [True, False, True])
        self.assertEqual([s.timestamp for s in snapshot], [1.0, 2.0, 3.0])
        self.assertIsNone(snapshot[1].latency)

    def test_first_sample_refreshes_display(self):
        self.monitor.start()
        self._post(42.4)
        self.assertEqual(self.monitor.current_display().text, "42ms")
        self.assertEqual(self.monitor.current_display().band, BAND_LOW)
        self.assertTrue(_wait_for(lambda: len(self.displays) == 1))

    def test_display_refreshes_on_cadence(self):
        self.monitor = self._make_monitor(MonitorConfig(ping_interval_ms=IDLE_INTERVAL_MS, display_interval_ms=3 * IDLE_INTERVAL_MS))
        self.monitor.start()
        self._post(10.0, 20.0, 30.0, 40.0, 50.0)
        self.assertEqual([state.text for state in self.displays], ["10ms", "40ms"])
        self.assertEqual(self.monitor.current_display().text, "40ms")

    def test_history_is_bounded(self):
        self.monitor = self._make_monitor(MonitorConfig(ping_interval_ms=IDLE_INTERVAL_MS, history_length=3))
        self.monitor.start()
        self._post(1.0, 2.0, 3.0, 4.0)
        self.assertEqual([s.latency for s in self.monitor.snapshot()], [2.0, 3.0, 4.0])

    def test_summary_line(self):
        self.monitor.start()
        self._post(42.0, None)
        self.assertEqual(self.monitor.summary()["success_rate"], 50.0)
        self.assertEqual(self.monitor.summary_line(), "Success: 50.0% | Avg: 42.0ms | Min: 42.0ms | Max: 42.0ms")


class TestApplyConfig(MonitorTestCase):
    """Tests for live configuration changes."""

    def test_shrinking_history_keeps_newest(self):
        self.monitor.start()
        self._post(10.0, 20.0, 30.0, 40.0)
        self.monitor.apply_config(self.monitor.config.with_changes(history_length=2))
        self.assertEqual(self.monitor.history.capacity, 2)
        self.assertEqual([s.latency for s in self.monitor.snapshot()], [30.0, 40.0])

    def test_threshold_change_restyles_display(self):
        self.monitor.start()
        self._post(75.0)
        self.assertEqual(self.monitor.current_display().band, BAND_MEDIUM)
        self.monitor.apply_config(self.monitor.config.with_changes(threshold_low=100, threshold_medium=150))
        self.assertEqual(self.monitor.current_display().band, BAND_LOW)

    def test_interval_change_while_running_restarts(self):
        self.monitor.start()
        self.monitor.apply_config(self.monitor.config.with_changes(ping_interval_ms=20))
        self.assertTrue(self.monitor.scheduler.is_running)
        self.assertEqual(self.monitor.scheduler.interval, 0.02)
        self.assertTrue(_wait_for(lambda: len(self.probe.calls) >= 2))

    def test_interval_change_while_stopped(self):
        self.monitor.apply_config(self.monitor.config.with_changes(ping_interval_ms=250))
        self.assertFalse(self.monitor.scheduler.is_running)
        self.assertEqual(self.monitor.scheduler.interval, 0.25)

    def test_interval_change_keeps_queued_results(self):
        """Outcomes waiting in the loop when the interval changes are all recorded."""
        release = threading.Event()

        def slow_display(state):
            self.displays.append(state)
            release.wait(2.0)

        self.monitor.on_display = slow_display
        self.monitor.start()
        callback = self.monitor._completion_callback()
        for latency in (1.0, 2.0, 3.0):
            callback(ProbeOutcome(True, latency))
        self.assertTrue(_wait_for(lambda: self.displays))

        changer = threading.Thread(
            target=self.monitor.apply_config,
            args=(self.monitor.config.with_changes(ping_interval_ms=30000),),
        )
        changer.start()
        time.sleep(0.05)
        release.set()
        changer.join(2.0)

        self.assertFalse(changer.is_alive())
        self.assertTrue(_wait_for(lambda: len(self.monitor.snapshot()) == 3))
        self.assertEqual([s.latency for s in self.monitor.snapshot()], [1.0, 2.0, 3.0])
        self.assertEqual(self.monitor.scheduler.interval, 30.0)
        self.assertTrue(self.monitor.scheduler.is_running)

    def test_invalid_history_length_leaves_engine_unchanged(self):
        self.monitor.start()
        self._post(10.0)
        original = self.monitor.config

        with self.assertRaises(ValueError):
            self.monitor.apply_config(original.with_changes(history_length=0))

        self.assertIs(self.monitor.config, original)
        self.assertEqual(self.monitor.history.capacity, original.history_length)
        self.assertEqual([s.latency for s in self.monitor.snapshot()], [10.0])

    def test_invalid_interval_leaves_engine_unchanged(self):
        self.monitor.start()
        original = self.monitor.config

        with self.assertRaises(ValueError):
            self.monitor.apply_config(original.with_changes(ping_interval_ms=0, history_length=5))

        self.assertIs(self.monitor.config, original)
        self.assertEqual(self.monitor.history.capacity, original.history_length)
        self.assertTrue(self.monitor.scheduler.is_running)

    def test_host_change_used_by_next_cycle(self):
        self.monitor = self._make_monitor(MonitorConfig(ping_interval_ms=20))
        self.monitor.start()
        self.monitor.apply_config(self.monitor.config.with_changes(target_host="example.net"))
        self.assertTrue(_wait_for(lambda: any(host == "example.net" for host, _ in self.probe.calls)))


class TestRenderChart(MonitorTestCase):
    """Tests for chart rendering through the engine."""

    def test_empty_history(self):
        self.assertEqual(self.monitor.render_chart(300, 200), (Background(0.0, 0.0, 300.0, 200.0),))

    def test_lines_after_samples(self):
        self.monitor.start()
        self._post(10.0, 20.0, 30.0)
        lines = [c for c in self.monitor.render_chart(300, 200) if isinstance(c, Polyline)]
        self.assertEqual(len(lines), 1)
        self.assertIsNone(lines[0].band)

    def test_color_by_band(self):
        self.monitor.start()
        self._post(10.0, 20.0, 150.0)
        lines = [c for c in self.monitor.render_chart(300, 200, color_by_band=True) if isinstance(c, Polyline)]
        self.assertEqual(len(lines), 2)


if __name__ == "__main__":
    unittest.main()
