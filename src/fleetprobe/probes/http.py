"""
HTTP request probe.

Sends one request with httpx and reports the status code, response time,
content length, and whether the response was acceptable.
"""

import logging
import re
import threading
import time
from typing import List, Optional, Sequence, Tuple

import httpx

from .base import AbstractProbe, ProbeError

logger = logging.getLogger(__name__)


class HttpProbe(AbstractProbe):
    """
    Request ``url`` and check the response.

    The check passes when the status code is below 400 and, if
    ``expect_pattern`` is set, the body matches it. Transport failures
    (refused connection, timeout, TLS error) are reported as a failed check.
    """

    def __init__(self, host, url: str, method: str = "GET",
                 headers: Sequence[Tuple[str, str]] = (), body: str = "",
                 expect_pattern: str = "", timeout: float = 15.0,
                 no_check_certificate: bool = False, metric_key_prefix: str = "http",
                 transport: Optional[httpx.BaseTransport] = None):
        super().__init__(host)
        self.url = url
        self.method = method
        self.headers = list(headers)
        self.body = body
        self.expect_pattern = re.compile(expect_pattern) if expect_pattern else None
        self.timeout = timeout
        self.no_check_certificate = no_check_certificate
        self.metric_key_prefix = metric_key_prefix
        self.transport = transport

    def describe(self) -> str:
        return f"http {self.method} {self.url} timeout:{self.timeout}s"

    def run(self, cancel_event: threading.Event) -> List:
        self._check_cancelled(cancel_event)
        prefix = self.metric_key_prefix

        started = time.monotonic()
        try:
            with httpx.Client(
                timeout=self.timeout,
                verify=not self.no_check_certificate,
                transport=self.transport,
            ) as client:
                response = client.request(
                    self.method,
                    self.url,
                    headers=self.headers,
                    content=self.body.encode() if self.body else None,
                )
        except httpx.InvalidURL as e:
            raise ProbeError(f"invalid url {self.url!r}: {e}") from e
        except httpx.HTTPError as e:
            elapsed = time.monotonic() - started
            logger.debug(f"{self.describe()} request failed: {e}")
            self._check_cancelled(cancel_event)
            return [
                self._sample(f"{prefix}.check.ok", 0),
                self._sample(f"{prefix}.response_time.seconds", elapsed),
            ]
        elapsed = time.monotonic() - started

        ok = response.status_code < 400
        if ok and self.expect_pattern is not None:
            ok = self.expect_pattern.search(response.text) is not None
            if not ok:
                logger.debug(
                    f"{self.describe()} body did not match {self.expect_pattern.pattern!r}"
                )

        return [
            self._sample(f"{prefix}.check.ok", 1 if ok else 0),
            self._sample(f"{prefix}.status.code", response.status_code),
            self._sample(f"{prefix}.response_time.seconds", elapsed),
            self._sample(f"{prefix}.content.length", len(response.content)),
        ]
