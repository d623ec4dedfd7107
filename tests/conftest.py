from __future__ import annotations

import httpx
import pytest

from websitescore_agent.models import AuxiliaryFiles, PageInputs

TITLE_45 = "Acme Widgets " + "a" * 32
DESC_140 = "d" * 140

WELL_BUILT_HTML = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{TITLE_45}</title>
  <meta name="description" content="{DESC_140}">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <link rel="icon" href="/favicon.ico">
  <link rel="canonical" href="https://example.com/">
  <meta property="og:title" content="Acme">
  <meta property="og:description" content="Tools">
  <meta property="og:image" content="https://example.com/og.png">
  <meta name="twitter:card" content="summary">
  <meta name="twitter:title" content="Acme">
  <meta name="twitter:description" content="Tools">
  <meta name="twitter:image" content="https://example.com/tw.png">
  <script type="application/ld+json">{{"@type": "Organization", "name": "Acme"}}</script>
  <script src="/app.js" defer></script>
</head>
<body>
  <main>
    <h1>Acme Widgets</h1>
    <h2>Our tools</h2>
    <p>{"word " * 320}</p>
    <picture>
      <source type="image/webp" srcset="/hero.webp">
      <img src="/hero.webp" alt="Hero" width="800" height="400">
    </picture>
    <ul><li><a href="/about">About the workshop</a></li></ul>
    <button>Buy now</button>
  </main>
</body>
</html>
"""


@pytest.fixture
def make_page():
    def _make(
        html: str = "",
        url: str = "https://example.com/",
        headers: dict[str, str] | None = None,
        elapsed_ms: int = 500,
        aux: AuxiliaryFiles | None = None,
    ) -> PageInputs:
        return PageInputs(
            url=url,
            html=html,
            headers=headers or {},
            elapsed_ms=elapsed_ms,
            aux=aux or AuxiliaryFiles(),
        )

    return _make


@pytest.fixture
def site_transport():
    """Mock network for example.com: page, robots.txt present, sitemap 404, llms.txt unreachable."""
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.path == "/robots.txt":
            return httpx.Response(200, text="User-agent: *\nAllow: /\n")
        if request.url.path == "/sitemap.xml":
            return httpx.Response(404, text="not found")
        if request.url.path == "/llms.txt":
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(
            200,
            text=WELL_BUILT_HTML,
            headers={
                "content-type": "text/html; charset=utf-8",
                "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
                "Server": "cloudflare",
                "CF-Ray": "8a1b2c3d4e5f-AMS",
            },
        )

    transport = httpx.MockTransport(handler)
    transport.calls = calls
    return transport


@pytest.fixture
def well_built_html() -> str:
    return WELL_BUILT_HTML
