# leadgenie/adapters/clients/http_resilience.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import certifi
import httpx

from ...config import AcquisitionConfig
from ..acquisition.errors import FetchFailure
from .session import RequestKind, SessionContext

log = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class Deadline:
    """Absolute monotonic deadline; `at=None` means no limit."""

    at: float | None = None

    @classmethod
    def after(cls, seconds: float | None) -> "Deadline":
        if seconds is None:
            return cls(None)
        return cls(time.monotonic() + max(0.0, float(seconds)))

    def remaining(self) -> float | None:
        if self.at is None:
            return None
        return max(0.0, self.at - time.monotonic())

    @property
    def expired(self) -> bool:
        rem = self.remaining()
        return rem is not None and rem <= 0

    def clamp(self, timeout_s: float) -> float:
        rem = self.remaining()
        if rem is None:
            return timeout_s
        return min(timeout_s, rem)


def http_verify(config: AcquisitionConfig) -> bool | str:
    """
    httpx 'verify' can be:
      - True/False
      - path to CA bundle
    """
    if not config.verify_ssl:
        return False
    if config.ca_bundle:
        return config.ca_bundle
    return certifi.where()


def build_client(config: AcquisitionConfig, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    # cookies live in SessionContext, not in the client jar
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_s),
        follow_redirects=True,
        verify=http_verify(config),
        transport=transport,
    )


@dataclass
class ListingHttp:
    """
    Request helper bound to one acquisition call.

    - browser-like headers + accumulated cookies from SessionContext
    - polite gap between requests (per instance, no process-wide state)
    - timeout clamped to the caller's deadline
    - non-2xx and transport errors surface as FetchFailure
    """

    client: httpx.AsyncClient
    session: SessionContext
    config: AcquisitionConfig
    deadline: Deadline = field(default_factory=Deadline)
    sleep: SleepFn = asyncio.sleep
    requests_made: int = 0
    _last_ts: float = 0.0

    async def _polite_gap(self) -> None:
        gap = float(self.config.http_sleep_s)
        if gap <= 0 or not self._last_ts:
            return
        wait = (self._last_ts + gap) - time.monotonic()
        if wait > 0:
            rem = self.deadline.remaining()
            await self.sleep(wait if rem is None else min(wait, rem))

    async def get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        kind: RequestKind = "html",
        referer: str | None = None,
    ) -> httpx.Response:
        full_url = self.session.url(url)
        if self.deadline.expired:
            raise FetchFailure("deadline exceeded before request", url=full_url)

        await self._polite_gap()
        timeout = self.deadline.clamp(float(self.config.http_timeout_s))
        if timeout <= 0:
            raise FetchFailure("deadline exceeded before request", url=full_url)

        self.requests_made += 1
        try:
            resp = await self.client.get(
                full_url,
                params=params,
                headers=self.session.headers(kind, referer),
                timeout=httpx.Timeout(timeout),
            )
        except httpx.HTTPError as e:
            raise FetchFailure(f"transport error: {e!r}", url=full_url) from e
        finally:
            self._last_ts = time.monotonic()

        self.session.absorb(resp)

        if not resp.is_success:
            raise FetchFailure(
                f"HTTP {resp.status_code} for {full_url}",
                url=full_url,
                status_code=resp.status_code,
            )
        return resp

    async def get_text(self, url: str, **kw: Any) -> tuple[str, str]:
        """(body, final_url) after redirects."""
        resp = await self.get(url, **kw)
        return resp.text, str(resp.url)
