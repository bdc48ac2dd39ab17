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
PingWatch Chart Rendering Module

This module turns a history snapshot into a list of drawing primitives for the
latency chart: background, grid, optional axis labels, latency polylines and
failure markers. Rendering is a pure function of its inputs; the host toolkit
is responsible for painting the returned commands.
"""

import math
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union

from pingwatch.history import DEFAULT_HISTORY_LENGTH, Sample
from pingwatch.thresholds import BAND_COLORS, Thresholds, classify, round_half_up

Color = Tuple[float, float, float, float]
Point = Tuple[float, float]

BACKGROUND_COLOR: Color = (0.16, 0.16, 0.16, 1.0)
GRID_COLOR: Color = (0.4, 0.4, 0.4, 0.5)
LABEL_COLOR: Color = (0.8, 0.8, 0.8, 1.0)
LINE_COLOR: Color = (0.3, 0.7, 1.0, 1.0)  # Light blue
FAILED_COLOR: Color = (1.0, 0.27, 0.21, 1.0)  # Red

GRID_LINE_WIDTH = 0.5
LINE_WIDTH = 2.0
LABEL_FONT_SIZE = 10
LABEL_GAP = 5
MARKER_RADIUS = 3.0

LABELED_LEFT_MARGIN = 50
PLAIN_LEFT_MARGIN = 10
RIGHT_MARGIN = 10
VERTICAL_MARGIN = 10

HORIZONTAL_DIVISIONS = 5
VERTICAL_DIVISIONS = 10

MIN_LATENCY_SPAN = 10.0
RANGE_PADDING_RATIO = 0.1


class Background(NamedTuple):
    """Filled rectangle behind the chart."""

    x: float
    y: float
    width: float
    height: float
    color: Color = BACKGROUND_COLOR


class GridLine(NamedTuple):
    """Straight grid line from (x1, y1) to (x2, y2)."""

    x1: float
    y1: float
    x2: float
    y2: float
    color: Color = GRID_COLOR
    line_width: float = GRID_LINE_WIDTH


class AxisLabel(NamedTuple):
    """Latency label; (x, y) is the right-hand anchor, vertically centred."""

    text: str
    x: float
    y: float
    value: float
    color: Color = LABEL_COLOR
    font_size: int = LABEL_FONT_SIZE
    anchor: str = "right"


class Polyline(NamedTuple):
    """Connected line through consecutive successful samples."""

    points: Tuple[Point, ...]
    color: Color = LINE_COLOR
    line_width: float = LINE_WIDTH
    band: Optional[str] = None


class Marker(NamedTuple):
    """Filled circle marking a failed sample."""

    x: float
    y: float
    radius: float = MARKER_RADIUS
    color: Color = FAILED_COLOR


DrawCommand = Union[Background, GridLine, AxisLabel, Polyline, Marker]


class ChartRect(NamedTuple):
    """Plot area inside the viewport margins."""

    x: float
    y: float
    width: float
    height: float


# ============================================================================
# Geometry
# ============================================================================


def compute_chart_range(latencies: Sequence[float]) -> Tuple[float, float]:
    """
    Compute the visible latency range for vertical scaling.

    Args:
        latencies: Latencies of successful samples (must be non-empty)

    Returns:
        Tuple of (chart_min, chart_max)
    """
    # Algorithm overview:
    # - Spans narrower than MIN_LATENCY_SPAN are widened around their midpoint.
    # - RANGE_PADDING_RATIO of the span is added above and below.
    # - The lower bound never goes below zero.
    raw_min = min(latencies)
    raw_max = max(latencies)
    low, high = raw_min, raw_max
    if high - low < MIN_LATENCY_SPAN:
        middle = (low + high) / 2
        low = middle - MIN_LATENCY_SPAN / 2
        high = middle + MIN_LATENCY_SPAN / 2
    padding = (high - low) * RANGE_PADDING_RATIO
    return max(0.0, low - padding), high + padding


def compute_chart_rect(width: float, height: float, show_axis_labels: bool) -> ChartRect:
    """Compute the plot rectangle, reserving a wider left margin for labels."""
    left_margin = LABELED_LEFT_MARGIN if show_axis_labels else PLAIN_LEFT_MARGIN
    chart_width = max(0.0, width - left_margin - RIGHT_MARGIN)
    chart_height = max(0.0, height - 2 * VERTICAL_MARGIN)
    return ChartRect(float(left_margin), float(VERTICAL_MARGIN), chart_width, chart_height)


def slot_x(index: int, capacity: int, rect: ChartRect) -> float:
    """Map a buffer slot index onto the horizontal axis of the full-capacity window."""
    last_slot = max(capacity - 1, 1)
    return rect.x + (index / last_slot) * rect.width


def latency_y(latency: float, chart_min: float, chart_max: float, rect: ChartRect) -> float:
    """Map a latency onto the vertical axis; higher latency draws nearer the top."""
    span = chart_max - chart_min
    if span > 0 and math.isfinite(span):
        normalized = (latency - chart_min) / span
    else:
        normalized = 0.5
    return rect.y + rect.height - normalized * rect.height


# ============================================================================
# Command builders
# ============================================================================


def build_grid(rect: ChartRect) -> List[GridLine]:
    """Build the fixed grid: horizontal division lines first, then vertical ones."""
    lines = []
    for i in range(HORIZONTAL_DIVISIONS + 1):
        y = rect.y + rect.height * i / HORIZONTAL_DIVISIONS
        lines.append(GridLine(rect.x, y, rect.x + rect.width, y))
    for i in range(VERTICAL_DIVISIONS + 1):
        x = rect.x + rect.width * i / VERTICAL_DIVISIONS
        lines.append(GridLine(x, rect.y, x, rect.y + rect.height))
    return lines


def build_axis_labels(rect: ChartRect, chart_min: float, chart_max: float) -> List[AxisLabel]:
    """Build evenly spaced latency labels from chart_max at the top to chart_min at the bottom."""
    labels = []
    for i in range(HORIZONTAL_DIVISIONS + 1):
        value = chart_max - i * (chart_max - chart_min) / HORIZONTAL_DIVISIONS
        y = rect.y + rect.height * i / HORIZONTAL_DIVISIONS
        labels.append(AxisLabel(f"{round_half_up(value)}ms", rect.x - LABEL_GAP, y, value))
    return labels


def _split_by_band(run: Sequence[Tuple[Point, float]], thresholds: Thresholds) -> List[Polyline]:
    """Split one run of points into polylines whose segments share a band."""
    polylines = []
    current_band = None
    current_points: List[Point] = []
    for (start, _), (end, end_latency) in zip(run, run[1:]):
        band = classify(end_latency, thresholds)
        if band != current_band:
            if len(current_points) >= 2:
                polylines.append(Polyline(tuple(current_points), BAND_COLORS[current_band], band=current_band))
            current_band = band
            current_points = [start]
        current_points.append(end)
    if len(current_points) >= 2:
        polylines.append(Polyline(tuple(current_points), BAND_COLORS[current_band], band=current_band))
    return polylines


def build_polylines(
    snapshot: Sequence[Sample],
    capacity: int,
    rect: ChartRect,
    chart_min: float,
    chart_max: float,
    thresholds: Optional[Thresholds] = None,
) -> List[Polyline]:
    """
    Build line commands over successful samples.

    Failed samples end the current line; the next success starts a new one.
    A run holding a single success produces no line.
    """
    runs: List[List[Tuple[Point, float]]] = []
    current: List[Tuple[Point, float]] = []
    for index, sample in enumerate(snapshot):
        if not sample.success:
            if current:
                runs.append(current)
                current = []
            continue
        point = (slot_x(index, capacity, rect), latency_y(sample.latency, chart_min, chart_max, rect))
        current.append((point, sample.latency))
    if current:
        runs.append(current)

    polylines = []
    for run in runs:
        if len(run) < 2:
            continue
        if thresholds is None:
            polylines.append(Polyline(tuple(point for point, _ in run)))
        else:
            polylines.extend(_split_by_band(run, thresholds))
    return polylines


def build_failure_markers(snapshot: Sequence[Sample], capacity: int, rect: ChartRect) -> List[Marker]:
    """Build a marker at the vertical centre for every failed sample."""
    center_y = rect.y + rect.height / 2
    return [Marker(slot_x(index, capacity, rect), center_y) for index, sample in enumerate(snapshot) if not sample.success]


def render(
    snapshot: Sequence[Sample],
    width: float,
    height: float,
    show_axis_labels: bool = True,
    capacity: int = DEFAULT_HISTORY_LENGTH,
    thresholds: Optional[Thresholds] = None,
) -> Tuple[DrawCommand, ...]:
    """
    Render a history snapshot into drawing commands.

    Args:
        snapshot: Samples, oldest first
        width: Viewport width in pixels
        height: Viewport height in pixels
        show_axis_labels: Whether to reserve a margin and draw latency labels
        capacity: Full history capacity; x positions are tied to slot index
            within this window, not to the snapshot length
        thresholds: When given, line segments are coloured by latency band

    Returns:
        Tuple of commands in paint order. With fewer than two samples, or fewer
        than two successful samples, only the background is returned.
    """
    commands: List[DrawCommand] = [Background(0.0, 0.0, float(width), float(height))]

    latencies = [sample.latency for sample in snapshot if sample.success]
    if len(snapshot) < 2 or len(latencies) < 2:
        return tuple(commands)

    # A snapshot longer than the stated capacity would run off the right edge.
    capacity = max(capacity, len(snapshot))
    chart_min, chart_max = compute_chart_range(latencies)
    rect = compute_chart_rect(width, height, show_axis_labels)

    commands.extend(build_grid(rect))
    if show_axis_labels:
        commands.extend(build_axis_labels(rect, chart_min, chart_max))
    commands.extend(build_polylines(snapshot, capacity, rect, chart_min, chart_max, thresholds))
    commands.extend(build_failure_markers(snapshot, capacity, rect))
    return tuple(commands)
