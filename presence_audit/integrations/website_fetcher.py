"""Fetch a business website's HTML for consistency checks.

Fetching is best-effort: every failure (timeout, HTTP error, blocked page,
unusable body) yields ``None`` and is logged, never raised.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

# Relay services tried after the direct request, as URL templates.
DEFAULT_PROXIES: tuple[str, ...] = (
    "https://api.allorigins.win/get?url={url}",
    "https://corsproxy.io/?{url}",
)
MIN_HTML_LENGTH = 100


class WebsiteTextFetcher(ABC):
    @abstractmethod
    async def fetch(self, url: str) -> Optional[str]:
        """Return the page HTML, or ``None`` when it cannot be retrieved."""


def _unwrap(body: str) -> Optional[str]:
    """Relays such as allorigins wrap the page as ``{"contents": "<html>..."}``.

    A JSON object without string ``contents`` is a relay error envelope, not a
    page, and yields ``None``.
    """
    stripped = body.lstrip()
    if not stripped.startswith("{"):
        return body
    try:
        data = json.loads(stripped)
    except ValueError:
        return body
    if not isinstance(data, dict):
        return body
    contents = data.get("contents")
    return contents if isinstance(contents, str) and contents else None


class ProxyTextFetcher(WebsiteTextFetcher):
    """Try the site directly, then each relay in turn.

    Usage::

        fetcher = ProxyTextFetcher(timeout=8)
        html = await fetcher.fetch("https://acmeplumbing.example")
    """

    def __init__(
        self,
        proxies: Sequence[str] = DEFAULT_PROXIES,
        timeout: float = 8.0,
        min_length: int = MIN_HTML_LENGTH,
        direct: bool = True,
        user_agent: str = (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
        ),
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._proxies = tuple(proxies)
        self._timeout = timeout
        self._min_length = min_length
        self._direct = direct
        self._user_agent = user_agent
        self._transport = transport

    def candidates(self, url: str) -> list[str]:
        out = [url] if self._direct else []
        encoded = quote(url, safe="")
        out.extend(template.format(url=encoded) for template in self._proxies)
        return out

    async def fetch(self, url: str) -> Optional[str]:
        if not url:
            return None
        async with httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            headers={"User-Agent": self._user_agent},
            transport=self._transport,
        ) as client:
            for candidate in self.candidates(url):
                try:
                    resp = await client.get(candidate)
                except (httpx.HTTPError, httpx.InvalidURL) as exc:
                    logger.warning("Website fetch via %s failed: %s", candidate, exc)
                    continue
                if resp.status_code != 200:
                    logger.warning("Website fetch via %s: HTTP %d", candidate, resp.status_code)
                    continue
                html = _unwrap(resp.text)
                if html is None:
                    logger.warning("Website fetch via %s: relay returned no page contents", candidate)
                    continue
                if len(html) > self._min_length:
                    return html
                logger.debug("Website fetch via %s: body too short", candidate)
        logger.warning("Could not retrieve %s directly or through any relay", url)
        return None
