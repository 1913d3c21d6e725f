#!/usr/bin/env python3
"""
Pattern Transport

Delivers rendered Life 1.05 patterns to the Life server with one HTTP POST
per pattern (content type text/plain). The response body is read in full
and discarded; any response that can be read counts as delivered.

Failures (connection refused, timeout, broken response body) are returned
as a SendResult with an error instead of raised, so one bad delivery does
not stop a playback run.
"""

import logging
from typing import Optional, Union

import requests

from .models import DEFAULT_TIMEOUT_SECONDS, ErrorKind, ErrorReport, SendResult
from .protocol import CONTENT_TYPE, Pattern


class PatternSender:
    """
    HTTP client for the Life server.

    Keeps one requests.Session for the whole run so connections can be
    reused between patterns.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.url = f"http://{host}:{port}"
        self.logger = logging.getLogger("PatternSender")
        self._session = session
        self._owns_session = session is None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def send(self, pattern: Union[Pattern, str], line_number: int = 0) -> SendResult:
        """
        POST one pattern to the server.

        Args:
            pattern: Pattern object or an already encoded document.
            line_number: Input line the pattern came from, for error reports.

        Returns:
            SendResult, ok=False with a TRANSPORT error on failure.
        """
        body = pattern.encode() if isinstance(pattern, Pattern) else pattern

        try:
            response = self.session.post(
                self.url,
                data=body.encode("utf-8"),
                headers={"Content-Type": CONTENT_TYPE},
                timeout=self.timeout,
            )
            # Read the whole body so the request completes cleanly
            _ = response.content
            response.close()
        except requests.RequestException as e:
            return SendResult(
                ok=False,
                error=ErrorReport(
                    kind=ErrorKind.TRANSPORT,
                    message=f"POST {self.url} failed: {e}",
                    line_number=line_number,
                ),
            )

        self.logger.debug(f"POST {self.url} -> {response.status_code}")
        return SendResult(ok=True, status_code=response.status_code)

    def close(self):
        """Close the HTTP session if this sender created it."""
        if self._session is not None and self._owns_session:
            self._session.close()
            self._session = None


def send_pattern(
    host: str,
    port: int,
    pattern: Union[Pattern, str],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> SendResult:
    """Send a single pattern with a throwaway sender."""
    sender = PatternSender(host, port, timeout=timeout)
    try:
        return sender.send(pattern)
    finally:
        sender.close()
