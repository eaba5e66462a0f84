# leadgenie/adapters/clients/session.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

import httpx

from ...config import AcquisitionConfig

RequestKind = Literal["html", "xhr"]

_ACCEPT = {
    "html": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "xhr": "*/*",
}


@dataclass(frozen=True)
class SessionContext:
    """
    Browser-like request headers plus a cookie accumulator.

    One instance per top-level acquisition call; never shared between callers.
    The header template is fixed at construction, only the cookie jar grows.
    """

    base_url: str
    user_agent: str
    accept_language: str = "en-US,en;q=0.9"
    cookies: httpx.Cookies = field(default_factory=httpx.Cookies)

    @classmethod
    def fresh(cls, config: AcquisitionConfig) -> "SessionContext":
        return cls(base_url=config.base_url.rstrip("/"), user_agent=config.user_agent)

    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def headers(self, kind: RequestKind = "html", referer: str | None = None) -> dict[str, str]:
        h = {
            "User-Agent": self.user_agent,
            "Accept": _ACCEPT[kind],
            "Accept-Language": self.accept_language,
            "Referer": referer or f"{self.base_url}/",
        }
        if kind == "xhr":
            h["X-Requested-With"] = "XMLHttpRequest"
        cookie = self.cookie_header()
        if cookie:
            h["Cookie"] = cookie
        return h

    def cookie_header(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items())

    def absorb(self, response: httpx.Response) -> None:
        """Keep any Set-Cookie values for the rest of this call."""
        for name, value in response.cookies.items():
            self.cookies.set(name, value)
