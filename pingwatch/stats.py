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
Statistics computation for PingWatch.

This module derives success rate and latency figures from a history snapshot.
Everything is recomputed from the snapshot on each call; no running totals are
kept between calls.
"""

NO_DATA_TEXT = "No data yet"


def compute_fail_streak(samples):
    """
    Compute the current consecutive failure streak.

    Args:
        samples: Sequence of Sample objects, oldest first

    Returns:
        Number of consecutive failures at the end of the sequence
    """
    streak = 0
    for sample in reversed(samples):
        if sample.success:
            break
        streak += 1
    return streak


def compute_jitter(latencies):
    """
    Compute jitter as the mean absolute difference of consecutive latencies.

    Args:
        latencies: Sequence of latencies in milliseconds

    Returns:
        Jitter in milliseconds, or None with fewer than two values
    """
    if len(latencies) < 2:
        return None
    diffs = [abs(current - previous) for previous, current in zip(latencies, latencies[1:])]
    return sum(diffs) / len(diffs)


def summarize(snapshot):
    """
    Summarize a history snapshot.

    Args:
        snapshot: Sequence of Sample objects

    Returns:
        None for an empty snapshot (the "no data" state), otherwise a dict with
        total, success_count, success_rate, loss_rate, has_successes, avg_ms,
        min_ms, max_ms, jitter_ms and fail_streak. Rates are percentages and all
        floats are rounded to one decimal place. The latency figures are None
        when there are no successes.
    """
    total = len(snapshot)
    if total == 0:
        return None

    latencies = [sample.latency for sample in snapshot if sample.success]
    success_count = len(latencies)
    success_rate = success_count / total * 100
    has_successes = success_count > 0

    avg_ms = min_ms = max_ms = jitter_ms = None
    if has_successes:
        avg_ms = round(sum(latencies) / success_count, 1)
        min_ms = round(min(latencies), 1)
        max_ms = round(max(latencies), 1)
        jitter = compute_jitter(latencies)
        if jitter is not None:
            jitter_ms = round(jitter, 1)

    return {
        "total": total,
        "success_count": success_count,
        "success_rate": round(success_rate, 1),
        "loss_rate": round(100.0 - success_rate, 1),
        "has_successes": has_successes,
        "avg_ms": avg_ms,
        "min_ms": min_ms,
        "max_ms": max_ms,
        "jitter_ms": jitter_ms,
        "fail_streak": compute_fail_streak(snapshot),
    }


def build_summary_line(stats):
    """
    Build the one-line stats text shown under the chart.

    Args:
        stats: Result of summarize(), or None

    Returns:
        Formatted summary string
    """
    if stats is None:
        return NO_DATA_TEXT
    success = f"Success: {stats['success_rate']:.1f}%"
    if not stats["has_successes"]:
        return f"{success} | No successful pings"
    parts = [
        success,
        f"Avg: {stats['avg_ms']:.1f}ms",
        f"Min: {stats['min_ms']:.1f}ms",
        f"Max: {stats['max_ms']:.1f}ms",
    ]
    return " | ".join(parts)


def build_detail_line(stats):
    """
    Build a secondary line with loss, jitter and failure streak.

    Args:
        stats: Result of summarize(), or None

    Returns:
        Formatted string, or an empty string when there is no data
    """
    if stats is None:
        return ""
    jitter = f"{stats['jitter_ms']:.1f}ms" if stats.get("jitter_ms") is not None else "n/a"
    streak = f"F{stats['fail_streak']}" if stats["fail_streak"] else "-"
    return f"Loss: {stats['loss_rate']:.1f}% | Jitter: {jitter} | Fail streak: {streak}"
