"""
External command probe.

Runs a shell command and reads metrics from its standard output in the
Mackerel plugin format, one metric per line::

    name<TAB>value<TAB>epoch
"""

import logging
import math
import threading
from typing import List

from ..models.metrics import MetricSample
from ..system import run_command
from .base import AbstractProbe, ProbeError

logger = logging.getLogger(__name__)


class CommandProbe(AbstractProbe):
    """Run ``command`` through the shell and collect the metrics it prints."""

    def __init__(self, host, command: str, timeout: float = 15.0):
        super().__init__(host)
        self.command = command
        self.timeout = timeout

    def describe(self) -> str:
        return f"command {self.command!r} timeout:{self.timeout}s"

    def run(self, cancel_event: threading.Event) -> List[MetricSample]:
        self._check_cancelled(cancel_event)
        try:
            result = run_command(
                self.command, timeout=self.timeout, cancel_event=cancel_event, shell=True
            )
        except OSError as e:
            raise ProbeError(f"cannot execute command: {e}") from e

        if result.cancelled:
            raise ProbeError("cancelled")
        if result.timed_out:
            raise ProbeError(f"timed out after {self.timeout}s")
        if result.returncode != 0:
            raise ProbeError(
                f"exited with status {result.returncode}: {result.stderr.strip()[:200]}"
            )

        return self.parse_output(result.stdout)

    def parse_output(self, output: str) -> List[MetricSample]:
        """
        Parse plugin output into samples; malformed lines are logged and skipped.
        """
        samples = []
        for line_no, line in enumerate(output.splitlines(), start=1):
            if not line.strip():
                continue
            fields = line.split("\t")
            if len(fields) != 3:
                logger.warning(f"{self.describe()}: ignoring malformed line {line_no}: {line!r}")
                continue
            name, value, timestamp = fields
            try:
                value, timestamp = float(value), float(timestamp)
            except ValueError:
                logger.warning(f"{self.describe()}: ignoring non-numeric line {line_no}: {line!r}")
                continue
            if not (math.isfinite(value) and math.isfinite(timestamp)):
                logger.warning(f"{self.describe()}: ignoring non-finite line {line_no}: {line!r}")
                continue
            samples.append(self._sample(name.strip(), value, timestamp))
        return samples
