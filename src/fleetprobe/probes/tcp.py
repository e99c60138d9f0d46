"""
TCP connect probe.

Connects to ``host:port`` (optionally over TLS), optionally sends a payload,
waits for a response matching ``expect_pattern`` and sends a quit string.
"""

import logging
import re
import socket
import ssl
import threading
import time
from typing import List

from .base import AbstractProbe, ProbeError

logger = logging.getLogger(__name__)

RECV_BUFFER_SIZE = 4096
# Upper bound on one blocking recv(), so cancellation is noticed.
RECV_POLL_INTERVAL = 0.5


class TcpProbe(AbstractProbe):
    """Check that a TCP service accepts connections and answers as expected."""

    def __init__(self, host, address: str, port: str, timeout: float = 5.0,
                 send: str = "", quit: str = "", expect_pattern: str = "",
                 tls: bool = False, no_check_certificate: bool = False,
                 metric_key_prefix: str = "tcp"):
        super().__init__(host)
        self.address = address
        self.port = port
        self.timeout = timeout
        self.send = send
        self.quit = quit
        self.expect_pattern = re.compile(expect_pattern) if expect_pattern else None
        self.tls = tls
        self.no_check_certificate = no_check_certificate
        self.metric_key_prefix = metric_key_prefix

    def describe(self) -> str:
        scheme = "tls" if self.tls else "tcp"
        return f"{scheme} address:{self.address}:{self.port} timeout:{self.timeout}s"

    def run(self, cancel_event: threading.Event) -> List:
        self._check_cancelled(cancel_event)
        try:
            port = int(self.port)
        except ValueError:
            raise ProbeError(f"invalid port {self.port!r}")

        started = time.monotonic()
        try:
            self._exchange(port, started + self.timeout, cancel_event)
            ok = 1
        except OSError as e:
            logger.debug(f"{self.describe()} check failed: {e}")
            ok = 0
        elapsed = time.monotonic() - started

        self._check_cancelled(cancel_event)
        prefix = self.metric_key_prefix
        return [
            self._sample(f"{prefix}.check.ok", ok),
            self._sample(f"{prefix}.elapsed.seconds", elapsed),
        ]

    def _exchange(self, port: int, deadline: float, cancel_event: threading.Event) -> None:
        sock = socket.create_connection((self.address, port), timeout=self.timeout)
        try:
            if self.tls:
                context = ssl.create_default_context()
                if self.no_check_certificate:
                    context.check_hostname = False
                    context.verify_mode = ssl.CERT_NONE
                sock = context.wrap_socket(sock, server_hostname=self.address)
            if self.send:
                sock.sendall(self.send.encode())
            if self.expect_pattern is not None:
                self._expect(sock, deadline, cancel_event)
            if self.quit:
                sock.sendall(self.quit.encode())
        finally:
            sock.close()

    def _expect(self, sock: socket.socket, deadline: float, cancel_event: threading.Event) -> None:
        received = b""
        while True:
            if cancel_event.is_set():
                raise ProbeError("cancelled")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError(f"response did not match {self.expect_pattern.pattern!r}")
            sock.settimeout(min(remaining, RECV_POLL_INTERVAL))
            try:
                chunk = sock.recv(RECV_BUFFER_SIZE)
            except TimeoutError:
                continue
            if not chunk:
                raise ConnectionError(
                    f"connection closed before response matched {self.expect_pattern.pattern!r}"
                )
            received += chunk
            if self.expect_pattern.search(received.decode("utf-8", errors="replace")):
                return
