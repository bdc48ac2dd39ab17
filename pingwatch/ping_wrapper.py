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
Python wrapper for the system ``ping`` command.

This module runs a single ICMP echo round trip through the platform ``ping``
binary and extracts the reported round-trip time. Only the ``time=<ms>`` figure
is used; all other output is discarded.

Exit status handling follows iputils ``ping``:
  - Exit 0: a reply was received; stdout carries ``time=<value> ms``
  - Exit 1: no reply within the deadline (normal, not an error)
  - Exit 2 and above: other errors (unknown host, permission problems)
"""

import logging
import re
import subprocess
from typing import List, Optional

logger = logging.getLogger(__name__)

PING_TIME_RE = re.compile(r"time=([0-9.]+)")
NO_REPLY_RETURNCODE = 1


class PingCommandError(RuntimeError):
    """Raised when the ping command cannot run or reports an error."""

    def __init__(self, message, returncode=None, stderr=None):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def build_ping_command(host: str, timeout: int, ping_command: str = "ping") -> List[str]:
    """Build the argument vector for one echo request bounded by ``timeout`` seconds."""
    return [ping_command, "-c", "1", "-W", str(timeout), host]


def parse_ping_time(output: Optional[str]) -> Optional[float]:
    """
    Extract the round-trip time in milliseconds from ping output.

    Args:
        output: Text printed by the ping command on stdout

    Returns:
        The first ``time=`` figure as a float, or None if the output does not
        carry a parseable value
    """
    if not output:
        return None
    match = PING_TIME_RE.search(output)
    if match is None:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def ping_once(host, timeout=2, ping_command="ping"):
    """
    Ping a host once using the system ping command.

    Args:
        host: The hostname or IP address to ping
        timeout: Reply deadline in whole seconds (default: 2)
        ping_command: Name or path of the ping binary (default: ping)

    Returns:
        float | None: RTT in milliseconds on success; None when no reply arrived,
        the process overran its deadline, or the reply could not be parsed

    Raises:
        PingCommandError: If the command could not be launched or exited with an
            error status (2 or above)
        ValueError: If timeout is not positive or host is empty

    Examples:
        >>> rtt_ms = ping_once("1.1.1.1", 2)
        >>> assert rtt_ms is None or rtt_ms >= 0
    """
    if timeout <= 0:
        raise ValueError("timeout must be a positive number of seconds.")
    if not host:
        raise ValueError("host must be a non-empty string.")

    cmd_args = build_ping_command(host, int(timeout), ping_command)
    try:
        result = subprocess.run(
            cmd_args,
            capture_output=True,
            text=True,
            timeout=timeout + 1.0,  # Add 1 second buffer
            check=False,  # We handle non-zero exit codes ourselves
        )
    except subprocess.TimeoutExpired:
        logger.debug("ping to %s overran its %ss deadline", host, timeout)
        return None
    except OSError as exc:
        raise PingCommandError(f"Could not launch '{ping_command}': {exc}") from exc

    if result.returncode == 0:
        rtt_ms = parse_ping_time(result.stdout)
        if rtt_ms is None:
            logger.debug("ping to %s succeeded but output had no round-trip time", host)
        return rtt_ms

    if result.returncode == NO_REPLY_RETURNCODE:
        return None

    stderr = result.stderr.strip() if result.stderr else ""
    details = f"ping failed with return code {result.returncode}"
    if stderr:
        details = f"{details}: {stderr}"
    raise PingCommandError(details, returncode=result.returncode, stderr=stderr)
