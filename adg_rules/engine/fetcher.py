"""Fetch transport for remote and local rule lists."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import httpx
import structlog

from ..errors import FetchError
from ..logging_conf import get_logger

DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class Transport(Protocol):
    def fetch_remote(self, url: str) -> str:
        ...

    def read_local(self, path: str) -> str:
        ...


def decode_content(location: str, payload: bytes) -> str:
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise FetchError(location, f"content is not valid UTF-8 ({exc.reason})") from exc


class Fetcher:
    """HTTP GET with a bounded timeout plus direct disk reads.

    A single ``httpx.Client`` is shared by every worker thread. There is no
    retry: a failed source simply contributes nothing to the run.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str | None = None,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.timeout = timeout
        self.logger = logger or get_logger("fetcher")
        self._client = httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers={"User-Agent": user_agent or DEFAULT_USER_AGENT},
            transport=transport,
        )

    def fetch_remote(self, url: str) -> str:
        try:
            response = self._client.get(url)
        except httpx.HTTPError as exc:
            raise FetchError(url, f"{type(exc).__name__}: {exc}") from exc
        if not response.is_success:
            raise FetchError(url, f"Unexpected status {response.status_code}")
        self.logger.debug("remote_fetched", url=url, size=len(response.content))
        return decode_content(url, response.content)

    def read_local(self, path: str) -> str:
        target = Path(path)
        try:
            payload = target.read_bytes()
        except OSError as exc:
            raise FetchError(path, exc.strerror or str(exc)) from exc
        return decode_content(path, payload)

    def close(self) -> None:
        self._client.close()


__all__ = ["DEFAULT_TIMEOUT", "FetchError", "Fetcher", "Transport", "decode_content"]
