"""
ICMP echo probe.

Raw ICMP sockets need privileges, so the probe runs the system ``ping``
command and parses its summary lines. Both the iputils (Linux) and BSD/macOS
output formats are understood.
"""

import logging
import re
import threading
from typing import List, Optional, Tuple

from ..system import run_command
from .base import AbstractProbe, ProbeError

logger = logging.getLogger(__name__)

PING_EXECUTABLE = "ping"

_COUNTS_RE = re.compile(r"(\d+) packets transmitted, (\d+) (?:packets )?received")
_RTT_RE = re.compile(r"min/avg/max/(?:mdev|stddev) = ([\d.]+)/([\d.]+)/([\d.]+)")


def parse_ping_output(output: str) -> Tuple[int, int, Optional[Tuple[float, float, float]]]:
    """
    Parse the summary of a ``ping`` run.

    Returns:
        (transmitted, received, rtt) where rtt is (min, avg, max) in
        milliseconds, or None when no reply arrived.

    Raises:
        ProbeError: If the output has no packet statistics line.
    """
    counts = _COUNTS_RE.search(output)
    if counts is None:
        raise ProbeError(f"unexpected ping output: {output.strip()[:200]!r}")
    transmitted, received = int(counts.group(1)), int(counts.group(2))

    rtt = None
    match = _RTT_RE.search(output)
    if match is not None:
        rtt = (float(match.group(1)), float(match.group(2)), float(match.group(3)))
    return transmitted, received, rtt


class PingProbe(AbstractProbe):
    """Send ``count`` echo requests to ``address`` and report loss and RTT."""

    def __init__(self, host, address: str, count: int = 3, timeout: float = 1.0,
                 metric_key_prefix: str = "ping"):
        super().__init__(host)
        self.address = address
        self.count = count
        self.timeout = timeout
        self.metric_key_prefix = metric_key_prefix

    def describe(self) -> str:
        return f"ping address:{self.address} count:{self.count} timeout:{self.timeout}s"

    def run(self, cancel_event: threading.Event) -> List:
        self._check_cancelled(cancel_event)
        argv = [
            PING_EXECUTABLE, "-n",
            "-c", str(self.count),
            "-W", f"{self.timeout:g}",
            self.address,
        ]
        try:
            result = run_command(
                argv,
                timeout=self.count * (self.timeout + 1.0) + 1.0,
                cancel_event=cancel_event,
            )
        except OSError as e:
            raise ProbeError(f"cannot execute {PING_EXECUTABLE}: {e}") from e

        if result.cancelled:
            raise ProbeError("cancelled")
        transmitted, received, rtt = parse_ping_output(result.stdout)

        prefix = self.metric_key_prefix
        samples = [
            self._sample(f"{prefix}.count.success", received),
            self._sample(f"{prefix}.count.failure", transmitted - received),
        ]
        if received > 0 and rtt is not None:
            rtt_min, rtt_avg, rtt_max = rtt
            samples.extend([
                self._sample(f"{prefix}.rtt.min", rtt_min / 1000.0),
                self._sample(f"{prefix}.rtt.max", rtt_max / 1000.0),
                self._sample(f"{prefix}.rtt.avg", rtt_avg / 1000.0),
            ])
        logger.debug(f"{self.describe()}: {received}/{transmitted} replies")
        return samples
