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
History management for PingWatch.

This module provides the Sample record and a fixed-capacity buffer that keeps
the most recent samples in capture order and hands out immutable snapshots for
statistics and chart rendering.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

# 5 minutes of history at one probe per second
DEFAULT_HISTORY_LENGTH = 300


@dataclass(frozen=True)
class Sample:
    """
    One probe outcome.

    Attributes:
        timestamp: Wall-clock capture time in seconds
        latency: Round-trip time in milliseconds, None unless the probe succeeded
        success: Whether the probe produced a parseable reply
    """

    timestamp: float
    latency: Optional[float]
    success: bool

    def __post_init__(self) -> None:
        if not self.success and self.latency is not None:
            raise ValueError("A failed sample cannot carry a latency.")
        if self.success and self.latency is None:
            raise ValueError("A successful sample must carry a latency.")

    @classmethod
    def succeeded(cls, latency: float, timestamp: Optional[float] = None) -> "Sample":
        """Build a successful sample, stamped now unless a timestamp is given."""
        return cls(time.time() if timestamp is None else timestamp, float(latency), True)

    @classmethod
    def failed(cls, timestamp: Optional[float] = None) -> "Sample":
        """Build a failed sample, stamped now unless a timestamp is given."""
        return cls(time.time() if timestamp is None else timestamp, None, False)


class HistoryBuffer:
    """
    Fixed-capacity FIFO store of recent samples, oldest first.

    Appending at capacity evicts the oldest sample. Snapshots are taken under
    the same lock as appends so a reader never sees a half-applied eviction.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_LENGTH, samples: Iterable[Sample] = ()) -> None:
        """
        Initialize the buffer.

        Args:
            capacity: Maximum number of samples retained (must be positive)
            samples: Optional initial samples; only the newest ``capacity`` are kept
        """
        if capacity <= 0:
            raise ValueError("History capacity must be a positive integer.")
        self._samples: "deque[Sample]" = deque(samples, maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        """Maximum number of samples the buffer can hold."""
        return self._samples.maxlen or 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def append(self, sample: Sample) -> None:
        """Add a sample, evicting the oldest one when the buffer is full."""
        with self._lock:
            self._samples.append(sample)

    def snapshot(self) -> Tuple[Sample, ...]:
        """Return an immutable point-in-time copy of the buffer contents."""
        with self._lock:
            return tuple(self._samples)

    def latest(self) -> Optional[Sample]:
        """Return the most recently appended sample, or None if empty."""
        with self._lock:
            if not self._samples:
                return None
            return self._samples[-1]

    def clear(self) -> None:
        """Drop all samples."""
        with self._lock:
            self._samples.clear()

    def resized(self, capacity: int) -> "HistoryBuffer":
        """Return a new buffer of the given capacity holding the newest samples."""
        return HistoryBuffer(capacity, self.snapshot())
