"""Fetches the raw nginx status document over HTTP.

One GET per scrape, no retries: Prometheus scrapes again on its next
interval, which is all the retrying an exporter needs.  A fresh
httpx.Client is opened per fetch so concurrent scrapes share nothing.

TIMEOUTS
---------
httpx timeouts apply per operation: connect, each socket read, each
write.  An nginx that trickles its body a few bytes at a time never
trips any of them.  The scrape timeout is a deadline for the whole
exchange instead (redirects, headers and body), checked while the
body streams in.

Redirects are followed (``/status`` → ``/status/`` is common); only the
final response has to be 2xx.
"""

from __future__ import annotations

import time

import httpx

from nginx_plus_exporter.services.errors import FetchError

DEFAULT_TIMEOUT = 2.0


class StatusFetcher:
    def __init__(
        self,
        uri: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.uri = uri
        self.timeout = timeout
        self.verify = verify
        # Tests inject httpx.MockTransport here instead of a live nginx.
        self._transport = transport

    def _timed_out(self) -> FetchError:
        return FetchError(self.uri, f"GET {self.uri} timed out after {self.timeout:g}s")

    def fetch(self) -> bytes:
        """Return the response body, or raise FetchError."""
        deadline = time.monotonic() + self.timeout
        try:
            with httpx.Client(
                timeout=self.timeout,
                verify=self.verify,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                with client.stream("GET", self.uri) as resp:
                    if not resp.is_success:
                        raise FetchError(
                            self.uri,
                            f"GET {self.uri} returned HTTP status {resp.status_code}",
                            status_code=resp.status_code,
                        )
                    chunks = []
                    for chunk in resp.iter_bytes():
                        if time.monotonic() > deadline:
                            raise self._timed_out()
                        chunks.append(chunk)
        except httpx.TimeoutException as exc:
            raise self._timed_out() from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(self.uri, f"GET {self.uri} failed: {exc!r}") from exc

        if time.monotonic() > deadline:
            raise self._timed_out()
        return b"".join(chunks)
