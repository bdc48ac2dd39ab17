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
# Review for correctness and security.

"""
Ping monitoring engine for PingWatch.

This module wires the scheduler, probe executor, history buffer, classifier,
statistics and chart renderer into one engine that a host UI can embed. The
host pushes configuration in and pulls (or is pushed) display state, summary
text and chart drawing commands out.
"""

import functools
import logging
import threading
import time
from typing import Callable, Optional, Tuple

from pingwatch import chart, pinger
from pingwatch.config import DEFAULT_CONFIG, MonitorConfig
from pingwatch.history import HistoryBuffer, Sample
from pingwatch.pinger import ProbeOutcome
from pingwatch.scheduler import Scheduler
from pingwatch.stats import build_summary_line, summarize
from pingwatch.thresholds import INITIAL_DISPLAY_STATE, DisplayState, build_display_state

logger = logging.getLogger(__name__)

ProbeFunction = Callable[[str, int, Callable[[ProbeOutcome], None]], None]


def samples_per_display_refresh(config: MonitorConfig) -> int:
    """Number of probe completions between compact-label refreshes (at least 1)."""
    return max(1, int(round(config.display_interval_ms / config.ping_interval_ms)))


class PingMonitor:
    """
    Latency monitoring engine for a single target host.

    Probes run on short-lived background threads and post their outcomes back
    to the scheduler's loop thread, which is the only thread that appends to
    the history buffer. Every probe carries the session number it was launched
    in; start() and stop() each begin a new session, so completions from an
    earlier session are discarded even if the engine has been restarted since.
    """

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        probe: ProbeFunction = pinger.probe,
        clock: Callable[[], float] = time.time,
        on_display: Optional[Callable[[DisplayState], None]] = None,
    ) -> None:
        """
        Initialize the engine without starting it.

        Args:
            config: Settings snapshot (defaults to MonitorConfig())
            probe: Asynchronous probe function ``probe(host, timeout, callback)``
            clock: Wall-clock source used to timestamp samples
            on_display: Optional callback receiving each refreshed DisplayState
        """
        self.config = config or DEFAULT_CONFIG
        self.probe = probe
        self.clock = clock
        self.on_display = on_display
        self.history = HistoryBuffer(self.config.history_length)
        self.scheduler = Scheduler(self._run_cycle, self._handle_outcome, interval=self.config.ping_interval)
        self._alive = threading.Event()
        self._state_lock = threading.Lock()
        self._session = 0
        self._display_state = INITIAL_DISPLAY_STATE
        self._display_sample: Optional[Sample] = None
        self._samples_since_refresh = 0

    @property
    def is_running(self) -> bool:
        """Whether the engine is started and accepting probe results."""
        return self._alive.is_set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """
        Start probing on the configured interval.

        Calling start() while running is a no-op.

        Raises:
            RuntimeError: If the scheduler thread cannot be started
        """
        if self._alive.is_set():
            return
        with self._state_lock:
            self._session += 1
            self.history = HistoryBuffer(self.config.history_length)
            self._reset_display()
        self._alive.set()
        try:
            self.scheduler.start(self.config.ping_interval)
        except Exception:
            self._alive.clear()
            raise
        logger.info("Monitoring %s every %dms", self.config.target_host, self.config.ping_interval_ms)

    def stop(self) -> None:
        """Stop probing and drop all history. Safe to call when not running."""
        was_running = self._alive.is_set()
        self._alive.clear()
        self.scheduler.stop()
        with self._state_lock:
            self._session += 1
            self.history.clear()
            self._reset_display()
        if was_running:
            logger.info("Stopped monitoring %s", self.config.target_host)

    def apply_config(self, config: MonitorConfig) -> None:
        """
        Apply a new settings snapshot while running or stopped.

        A changed probe interval restarts the scheduler; a changed history length
        keeps the newest samples; host, thresholds and chart options take effect
        on the next probe cycle or render. An invalid config raises ValueError
        and leaves the engine unchanged.
        """
        if config.ping_interval_ms <= 0:
            raise ValueError("ping_interval_ms must be a positive integer.")
        with self._state_lock:
            previous = self.config
            history = self.history
            if config.history_length != history.capacity:
                history = history.resized(config.history_length)
            self.config = config
            self.history = history
            if config.thresholds != previous.thresholds and self._display_sample is not None:
                self._display_state = build_display_state(self._display_sample, config.thresholds)

        if config.target_host != previous.target_host:
            logger.info("Target host changed from %s to %s", previous.target_host, config.target_host)
        if config.ping_interval_ms != previous.ping_interval_ms:
            if self._alive.is_set():
                self.scheduler.restart(config.ping_interval)
            else:
                self.scheduler.interval = config.ping_interval

    # ------------------------------------------------------------------
    # Probe cycle
    # ------------------------------------------------------------------

    def _run_cycle(self) -> None:
        if not self._alive.is_set():
            return
        config = self.config
        self.probe(config.target_host, config.ping_timeout, self._completion_callback())

    def _completion_callback(self) -> Callable[[ProbeOutcome], None]:
        """Callback bound to the current session."""
        return functools.partial(self._on_probe_complete, self._session)

    def _on_probe_complete(self, session: int, outcome: ProbeOutcome) -> None:
        # Runs on the probe thread.
        if session != self._session or not self._alive.is_set():
            return
        self.scheduler.post((session, outcome))

    def _handle_outcome(self, item: Tuple[int, ProbeOutcome]) -> None:
        # Runs on the scheduler loop thread.
        session, outcome = item
        if session != self._session or not self._alive.is_set():
            return
        timestamp = self.clock()
        if outcome.success and outcome.latency is not None:
            sample = Sample.succeeded(outcome.latency, timestamp)
        else:
            sample = Sample.failed(timestamp)

        refreshed = None
        with self._state_lock:
            if session != self._session:
                return
            self.history.append(sample)
            self._samples_since_refresh += 1
            if self._display_sample is None or self._samples_since_refresh >= samples_per_display_refresh(self.config):
                self._display_sample = sample
                self._display_state = build_display_state(sample, self.config.thresholds)
                self._samples_since_refresh = 0
                refreshed = self._display_state

        if refreshed is not None and self.on_display is not None:
            self.on_display(refreshed)

    def _reset_display(self) -> None:
        self._display_state = INITIAL_DISPLAY_STATE
        self._display_sample = None
        self._samples_since_refresh = 0

    # ------------------------------------------------------------------
    # Presentation pulls
    # ------------------------------------------------------------------

    def current_display(self) -> DisplayState:
        """Latest compact-label state."""
        with self._state_lock:
            return self._display_state

    def snapshot(self) -> Tuple[Sample, ...]:
        """Immutable copy of the current history."""
        return self.history.snapshot()

    def summary(self):
        """Statistics over the current history, or None when there is no data."""
        return summarize(self.snapshot())

    def summary_line(self) -> str:
        """One-line statistics text for the chart footer."""
        return build_summary_line(self.summary())

    def render_chart(self, width: float, height: float, color_by_band: bool = False) -> Tuple[chart.DrawCommand, ...]:
        """
        Render the current history into chart drawing commands.

        Args:
            width: Viewport width in pixels
            height: Viewport height in pixels
            color_by_band: Colour line segments by latency band
        """
        config = self.config
        history = self.history
        return chart.render(
            history.snapshot(),
            width,
            height,
            show_axis_labels=config.show_axis_labels,
            capacity=history.capacity,
            thresholds=config.thresholds if color_by_band else None,
        )
