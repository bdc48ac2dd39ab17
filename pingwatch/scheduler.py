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
Scheduler module for PingWatch.

This module provides a Scheduler class that fires a probe cycle on a fixed
interval and doubles as the owning event loop for probe completions. Probe
threads post their results into the loop with ``post()``; the loop thread hands
them to ``on_result`` so that all state mutation happens on one thread.
"""

import logging
import queue
import threading
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# Upper bound on how long stop() waits for the loop thread to finish.
STOP_JOIN_TIMEOUT = 2.0

_WAKE = object()
# Marks the end of an outgoing loop's share of the inbox during restart().
_HANDOVER = object()


class Scheduler:
    """
    Interval-driven cycle timer with an attached completion inbox.

    Each cycle calls ``on_cycle`` without waiting for any work it starts, so
    cycles may overlap with outstanding probes. Ticks follow a fixed grid
    anchored at start time to avoid drift; after a stall longer than one
    interval the grid is re-anchored instead of firing a burst of late cycles.
    """

    def __init__(
        self,
        on_cycle: Callable[[], None],
        on_result: Optional[Callable[[Any], None]] = None,
        interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the Scheduler.

        Args:
            on_cycle: Called on the loop thread once per interval
            on_result: Called on the loop thread for every posted item
            interval: Time in seconds between cycles (default: 1.0)
            clock: Monotonic time source in seconds
        """
        self.on_cycle = on_cycle
        self.on_result = on_result
        self.interval = interval
        self.clock = clock
        self.cycle_count = 0
        self.start_time: Optional[float] = None
        self._lock = threading.Lock()
        # Serializes start/stop/restart; post() only takes _lock.
        self._lifecycle_lock = threading.RLock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._inbox: Optional["queue.Queue[Any]"] = None

    @property
    def is_running(self) -> bool:
        """Whether a loop thread is currently active."""
        with self._lock:
            return self._thread is not None

    def start(self, interval: Optional[float] = None) -> None:
        """
        Start firing cycles every ``interval`` seconds.

        Calling start() on a running scheduler is a no-op. Failure to create the
        loop thread propagates to the caller.

        Args:
            interval: Optional new interval in seconds

        Raises:
            ValueError: If the interval is not positive
            RuntimeError: If the loop thread cannot be started
        """
        with self._lifecycle_lock, self._lock:
            if self._thread is not None:
                return
            if interval is not None:
                self.interval = interval
            if self.interval <= 0:
                raise ValueError("interval must be a positive number of seconds.")

            stop_event = threading.Event()
            inbox: "queue.Queue[Any]" = queue.Queue()
            loop_thread = self._make_loop_thread(stop_event, inbox, self.interval)
            loop_thread.start()
            self._thread = loop_thread
            self._stop_event = stop_event
            self._inbox = inbox
        logger.debug("Scheduler started with interval %.3fs", self.interval)

    def stop(self) -> None:
        """
        Stop firing cycles and discard results not yet delivered.

        Calling stop() when not started is a no-op.
        """
        with self._lifecycle_lock:
            with self._lock:
                loop_thread = self._thread
                if loop_thread is None:
                    return
                if self._stop_event is not None:
                    self._stop_event.set()
                if self._inbox is not None:
                    self._inbox.put(_WAKE)
                self._thread = None
                self._stop_event = None
                self._inbox = None
                self.start_time = None

            if loop_thread is not threading.current_thread():
                loop_thread.join(timeout=STOP_JOIN_TIMEOUT)
        logger.debug("Scheduler stopped")

    def restart(self, interval: Optional[float] = None) -> None:
        """
        Replace the timer loop with one running at a new interval.

        Results posted before or during the restart are not dropped: the
        outgoing loop delivers everything queued ahead of the handover marker,
        and the new loop picks up the same inbox. When not running this is
        the same as start().

        Args:
            interval: Optional new interval in seconds

        Raises:
            ValueError: If the interval is not positive
            RuntimeError: If the new loop thread cannot be started
        """
        new_interval = self.interval if interval is None else interval
        if new_interval <= 0:
            raise ValueError("interval must be a positive number of seconds.")

        with self._lifecycle_lock:
            with self._lock:
                old_thread = self._thread
                inbox = self._inbox
            if old_thread is None or inbox is None:
                self.start(new_interval)
                return
            if old_thread is threading.current_thread():
                # The loop cannot wait for its own handover.
                self.stop()
                self.start(new_interval)
                return

            inbox.put(_HANDOVER)
            old_thread.join()

            stop_event = threading.Event()
            loop_thread = self._make_loop_thread(stop_event, inbox, new_interval)
            with self._lock:
                self.interval = new_interval
                try:
                    loop_thread.start()
                except RuntimeError:
                    self._thread = None
                    self._stop_event = None
                    self._inbox = None
                    raise
                self._thread = loop_thread
                self._stop_event = stop_event
        logger.debug("Scheduler restarted with interval %.3fs", new_interval)

    def _make_loop_thread(self, stop_event: threading.Event, inbox: "queue.Queue[Any]", interval: float) -> threading.Thread:
        return threading.Thread(
            target=self._run,
            args=(stop_event, inbox, interval),
            name="pingwatch-scheduler",
            daemon=True,
        )

    def post(self, item: Any) -> bool:
        """
        Deliver an item to the loop thread.

        Args:
            item: Passed to ``on_result`` on the loop thread

        Returns:
            True if the item was queued, False if the scheduler is stopped
        """
        with self._lock:
            inbox = self._inbox
            if inbox is None:
                return False
            inbox.put(item)
            return True

    def compute_next_fire_time(self, last_fire_time: float, interval: float, current_time: float) -> float:
        """
        Compute when the next cycle should fire.

        Args:
            last_fire_time: Scheduled time of the cycle that just fired
            interval: Cycle interval in seconds
            current_time: The current clock reading

        Returns:
            The next scheduled fire time on the clock's timeline
        """
        next_time = last_fire_time + interval
        # Re-anchor after a stall instead of firing the missed cycles back to back.
        if next_time <= current_time:
            next_time = current_time + interval
        return next_time

    def _run(self, stop_event: threading.Event, inbox: "queue.Queue[Any]", interval: float) -> None:
        self.start_time = self.clock()
        next_fire = self.start_time + interval

        while not stop_event.is_set():
            current_time = self.clock()
            remaining = next_fire - current_time
            if remaining <= 0:
                self._fire_cycle()
                next_fire = self.compute_next_fire_time(next_fire, interval, current_time)
                continue

            try:
                item = inbox.get(timeout=remaining)
            except queue.Empty:
                continue
            if item is _HANDOVER:
                return
            if item is _WAKE or stop_event.is_set():
                continue
            self._deliver(item)

    def _fire_cycle(self) -> None:
        self.cycle_count += 1
        try:
            self.on_cycle()
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Probe cycle %d raised", self.cycle_count)

    def _deliver(self, item: Any) -> None:
        if self.on_result is None:
            return
        try:
            self.on_result(item)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Result handler raised for %r", item)
