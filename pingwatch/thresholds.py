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
Latency classification for PingWatch.

This module maps a latency (or its absence) onto a severity band and builds the
immutable display state shown in the compact always-visible label.
"""

import math
from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional, Tuple

from pingwatch.history import Sample

BAND_LOW = "low"
BAND_MEDIUM = "medium"
BAND_HIGH = "high"
BAND_FAILED = "failed"

# Severity order for classified latencies; "failed" sits outside this ordering.
BAND_ORDER: Tuple[str, ...] = (BAND_LOW, BAND_MEDIUM, BAND_HIGH)

BAND_STYLES: Dict[str, str] = {
    BAND_LOW: "ping-low ping-panel-label",
    BAND_MEDIUM: "ping-medium ping-panel-label",
    BAND_HIGH: "ping-high ping-panel-label",
    BAND_FAILED: "ping-failed ping-panel-label",
}

BAND_COLORS: Dict[str, Tuple[float, float, float, float]] = {
    BAND_LOW: (1.0, 1.0, 1.0, 1.0),  # White
    BAND_MEDIUM: (1.0, 0.65, 0.0, 1.0),  # Orange
    BAND_HIGH: (1.0, 0.27, 0.21, 1.0),  # Red
    BAND_FAILED: (1.0, 0.27, 0.21, 1.0),  # Red
}

NO_DATA_TEXT = "-- ms"
FAILED_TEXT = "-"


class Thresholds(NamedTuple):
    """Latency cut-points in milliseconds. No ordering between them is enforced."""

    low: float = 50
    medium: float = 100
    high: float = 200


def classify(latency: Optional[float], thresholds: Thresholds) -> str:
    """
    Classify a latency into a severity band.

    Rules are evaluated in order: missing latency is failed, then low, then
    medium; anything above medium is high. ``thresholds.high`` does not gate a
    further band.

    Args:
        latency: Round-trip time in milliseconds, or None
        thresholds: Configured cut-points

    Returns:
        One of "low", "medium", "high", "failed"
    """
    if latency is None:
        return BAND_FAILED
    if latency <= thresholds.low:
        return BAND_LOW
    if latency <= thresholds.medium:
        return BAND_MEDIUM
    return BAND_HIGH


def band_rank(band: str) -> int:
    """Position of a band in BAND_ORDER; failed ranks above high."""
    if band in BAND_ORDER:
        return BAND_ORDER.index(band)
    return len(BAND_ORDER)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def format_live_value(latency: Optional[float]) -> str:
    """Format a latency for the compact label: whole milliseconds, or a dash."""
    if latency is None:
        return FAILED_TEXT
    return f"{round_half_up(latency)}ms"


@dataclass(frozen=True)
class DisplayState:
    """Immutable snapshot of what the compact label should show."""

    text: str
    band: Optional[str]
    style_class: str
    latency: Optional[float] = None
    timestamp: Optional[float] = None


INITIAL_DISPLAY_STATE = DisplayState(text=NO_DATA_TEXT, band=None, style_class="panel-button")


def build_display_state(sample: Optional[Sample], thresholds: Thresholds) -> DisplayState:
    """
    Build the compact label state for the latest sample.

    Args:
        sample: Latest sample, or None before any probe has completed
        thresholds: Configured cut-points

    Returns:
        DisplayState with text, band and style class
    """
    if sample is None:
        return INITIAL_DISPLAY_STATE
    latency = sample.latency if sample.success else None
    band = classify(latency, thresholds)
    return DisplayState(
        text=format_live_value(latency),
        band=band,
        style_class=BAND_STYLES[band],
        latency=latency,
        timestamp=sample.timestamp,
    )
