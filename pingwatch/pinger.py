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
Probe execution for PingWatch.

This module takes one latency measurement off the calling thread and reports the
outcome through a callback. The callback fires exactly once per accepted probe,
whatever path the measurement takes (reply, no reply, unparseable output, launch
failure), so the caller can treat every probe as a single completion event.
"""

import logging
import threading
from typing import Callable, NamedTuple, Optional

from pingwatch.ping_wrapper import PingCommandError, ping_once

logger = logging.getLogger(__name__)


class ProbeOutcome(NamedTuple):
    """Result of a single probe: success flag and latency in milliseconds."""

    success: bool
    latency: Optional[float] = None


FAILED_OUTCOME = ProbeOutcome(success=False, latency=None)


def measure(host: str, timeout: int, ping_command: str = "ping") -> ProbeOutcome:
    """
    Take one blocking latency measurement and fold every failure into an outcome.

    Args:
        host: The hostname or IP address to probe
        timeout: Reply deadline in seconds
        ping_command: Name or path of the ping binary

    Returns:
        ProbeOutcome with success=True and the latency, or FAILED_OUTCOME
    """
    try:
        rtt_ms = ping_once(host, timeout=timeout, ping_command=ping_command)
    except (OSError, PingCommandError, ValueError) as e:
        logger.warning("Error pinging %s: %s", host, e)
        return FAILED_OUTCOME

    if rtt_ms is None:
        logger.debug("No reply from %s", host)
        return FAILED_OUTCOME
    logger.debug("Reply from %s: time=%.3fms", host, rtt_ms)
    return ProbeOutcome(success=True, latency=rtt_ms)


def probe(
    host: str,
    timeout: int,
    callback: Callable[[ProbeOutcome], None],
    ping_command: str = "ping",
) -> None:
    """
    Launch a latency measurement in a background thread.

    The call returns immediately. ``callback`` is invoked exactly once from the
    probe thread with the outcome; if the thread cannot be created it is invoked
    synchronously with a failed outcome instead.

    Args:
        host: The hostname or IP address to probe
        timeout: Reply deadline in seconds
        callback: Receives the ProbeOutcome
        ping_command: Name or path of the ping binary
    """

    def execute_probe() -> None:
        outcome = FAILED_OUTCOME
        try:
            outcome = measure(host, timeout, ping_command)
        finally:
            callback(outcome)

    probe_thread = threading.Thread(target=execute_probe, name=f"probe-{host}", daemon=True)
    try:
        probe_thread.start()
    except RuntimeError as e:
        logger.warning("Could not start probe thread for %s: %s", host, e)
        callback(FAILED_OUTCOME)
