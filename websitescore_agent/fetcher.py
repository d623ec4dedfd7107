from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx

from .errors import FetchError
from .models import AuxiliaryFiles

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "user-agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "accept-language": "en-US,en;q=0.5",
}

BOT_HEADERS = {"user-agent": "Mozilla/5.0 (compatible; WebsiteScoreBot/1.0)"}

AUXILIARY_PATHS = {
    "robots_txt": "/robots.txt",
    "sitemap": "/sitemap.xml",
    "llms_txt": "/llms.txt",
}


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


def fetch_timeout_s() -> float:
    return _env_float("WEBSITESCORE_FETCH_TIMEOUT_S", 30.0)


def aux_timeout_s() -> float:
    return _env_float("WEBSITESCORE_AUX_TIMEOUT_S", 5.0)


def max_redirects() -> int:
    return int(_env_float("WEBSITESCORE_MAX_REDIRECTS", 5))


@dataclass(frozen=True)
class FetchedPage:
    url: str
    final_url: str
    status_code: int
    html: str
    headers: dict[str, str]
    elapsed_ms: int


def origin_of(url: str) -> str:
    p = urlparse(url)
    return f"{p.scheme}://{p.netloc}"


def fetch_page(
    url: str,
    timeout: float | None = None,
    transport: httpx.BaseTransport | None = None,
) -> FetchedPage:
    """GET the page under analysis. Only 5xx and transport failures are fatal."""
    timeout = timeout or fetch_timeout_s()
    redirects = max_redirects()
    start = time.perf_counter()
    try:
        with httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=redirects,
            transport=transport,
        ) as client:
            res = client.get(url, headers=BROWSER_HEADERS)
            html = res.text
    except httpx.TimeoutException as e:
        raise FetchError(f"Timeout after {timeout:g}s") from e
    except httpx.TooManyRedirects as e:
        raise FetchError(f"Maximum number of redirects ({redirects}) exceeded") from e
    except httpx.HTTPError as e:
        raise FetchError(str(e) or e.__class__.__name__) from e

    if res.status_code >= 500:
        raise FetchError(f"Request failed with status code {res.status_code}")

    return FetchedPage(
        url=url,
        final_url=str(res.url),
        status_code=res.status_code,
        html=html,
        headers={k.lower(): v for k, v in res.headers.items()},
        elapsed_ms=int((time.perf_counter() - start) * 1000),
    )


def fetch_text_if_exists(
    url: str,
    timeout: float | None = None,
    transport: httpx.BaseTransport | None = None,
) -> str | None:
    timeout = timeout or aux_timeout_s()
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True, transport=transport) as client:
            res = client.get(url, headers=BOT_HEADERS)
    except Exception as e:
        logger.debug("%s absent: %s", url, e)
        return None
    if res.status_code != 200:
        logger.debug("%s absent: HTTP %s", url, res.status_code)
        return None
    if not res.text:
        logger.debug("%s absent: empty body", url)
        return None
    return res.text


def fetch_auxiliary_files(
    base_url: str,
    timeout: float | None = None,
    transport: httpx.BaseTransport | None = None,
) -> AuxiliaryFiles:
    """robots.txt, sitemap.xml and llms.txt fetched side by side; failures read as absent."""
    origin = origin_of(base_url)
    with ThreadPoolExecutor(max_workers=len(AUXILIARY_PATHS)) as pool:
        futures = {
            field: pool.submit(fetch_text_if_exists, origin + path, timeout, transport)
            for field, path in AUXILIARY_PATHS.items()
        }
        found = {field: fut.result() for field, fut in futures.items()}
    return AuxiliaryFiles(**found)
