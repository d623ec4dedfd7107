from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from websitescore_agent.analyzer import analyze, score_page, validate_url
from websitescore_agent.errors import FetchError, InputValidationError
from websitescore_agent.fetcher import fetch_auxiliary_files, fetch_page, origin_of
from websitescore_agent.models import AnalyzeRequest


def _counting_transport(handler):
    calls: list[str] = []

    def wrapped(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return handler(request)

    transport = httpx.MockTransport(wrapped)
    transport.calls = calls
    return transport


def test_happy_path(site_transport):
    result = analyze(AnalyzeRequest(url="https://example.com/"), transport=site_transport)

    assert result.url == "https://example.com/"
    assert result.load_time.endswith("s")
    assert 0 <= result.overall_score <= 100

    crawl = result.sections.website_quality.categories["crawlability"].checks
    assert crawl["robotsTxt"].score == 4
    assert crawl["sitemap"].score == 0
    assert crawl["llmsTxt"].score == 0

    security = result.sections.trust_security.categories
    assert security["securityHeaders"].checks["hsts"].score == 10
    assert security["infrastructure"].checks["provider"].value == "Cloudflare"
    assert sorted(site_transport.calls) == ["/", "/llms.txt", "/robots.txt", "/sitemap.xml"]


def test_section_names(site_transport):
    sections = analyze(AnalyzeRequest(url="https://example.com/"), transport=site_transport).sections
    assert sections.website_quality.name == "Website Quality"
    assert sections.trust_security.name == "Trust & Security"
    assert sections.page_speed.name == "PageSpeed"
    assert sections.page_speed.max_score == 100


def test_client_errors_are_still_analyzed():
    def handler(request):
        if request.url.path == "/":
            return httpx.Response(404, text="<title>Not here</title>")
        return httpx.Response(404)

    result = analyze(AnalyzeRequest(url="https://example.com/"), transport=httpx.MockTransport(handler))
    assert result.sections.website_quality.categories["siteQuality"].checks["title"].value == "Not here"


def test_server_error_is_a_fetch_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    with pytest.raises(FetchError) as info:
        fetch_page("https://example.com/", transport=transport)
    assert info.value.details == "Request failed with status code 503"
    assert info.value.message == "Could not fetch the website"


def test_timeout_skips_auxiliary_fetches():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    transport = _counting_transport(handler)
    with pytest.raises(FetchError) as info:
        analyze(AnalyzeRequest(url="https://example.com/", timeout_ms=2000), transport=transport)
    assert info.value.details == "Timeout after 2s"
    assert transport.calls == ["https://example.com/"]


def test_redirect_loop():
    def handler(request):
        return httpx.Response(302, headers={"location": "https://example.com/loop"})

    with pytest.raises(FetchError) as info:
        fetch_page("https://example.com/", transport=httpx.MockTransport(handler))
    assert "redirects" in info.value.details


def test_connection_refused():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError) as info:
        fetch_page("https://example.com/", transport=httpx.MockTransport(handler))
    assert info.value.details == "connection refused"


def test_headers_are_lowercased():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, headers={"X-Frame-Options": "DENY"}))
    page = fetch_page("https://example.com/", transport=transport)
    assert page.headers["x-frame-options"] == "DENY"
    assert page.status_code == 200


@pytest.mark.parametrize(
    "url",
    [
        "ftp://example.com/",
        "example.com",
        "https://",
        "javascript:alert(1)",
        "https://example.com:99999/",
        "https://example.com:http/",
        "http://exa mple.com/",
        "http://exa<mple.com/",
    ],
)
def test_invalid_urls_make_no_requests(url):
    transport = _counting_transport(lambda request: httpx.Response(200))
    with pytest.raises(InputValidationError) as info:
        analyze(AnalyzeRequest(url=url), transport=transport)
    assert info.value.message == "Invalid URL format"
    assert transport.calls == []


@pytest.mark.parametrize("url", [None, "", "   "])
def test_missing_url(url):
    with pytest.raises(InputValidationError) as info:
        validate_url(url)
    assert info.value.message == "URL is required"


def test_validate_url_trims():
    assert validate_url("  https://example.com/a  ") == "https://example.com/a"


def test_auxiliary_files_are_fetched_from_origin():
    seen: list[str] = []

    def handler(request):
        seen.append(str(request.url))
        if request.url.path == "/llms.txt":
            return httpx.Response(200, text="# Example\n")
        return httpx.Response(404)

    aux = fetch_auxiliary_files("https://example.com/deep/page?q=1", transport=httpx.MockTransport(handler))
    assert aux.llms_txt == "# Example\n"
    assert aux.robots_txt is None
    assert aux.sitemap is None
    assert sorted(seen) == [
        "https://example.com/llms.txt",
        "https://example.com/robots.txt",
        "https://example.com/sitemap.xml",
    ]


def test_origin_keeps_port():
    assert origin_of("http://localhost:8080/x?y") == "http://localhost:8080"


def test_score_page_is_deterministic(make_page, well_built_html):
    page = make_page(well_built_html, elapsed_ms=1234)
    at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    first = score_page(page, analyzed_at=at)
    assert first == score_page(page, analyzed_at=at)
    assert first.load_time == "1.23s"
    assert first.analyzed_at == at.isoformat()


def test_empty_side_files_are_absent():
    def handler(request):
        if request.url.path == "/":
            return httpx.Response(200, text="<title>Home</title>")
        return httpx.Response(200, text="")

    result = analyze(AnalyzeRequest(url="https://example.com/"), transport=httpx.MockTransport(handler))
    crawl = result.sections.website_quality.categories["crawlability"].checks
    assert {key: c.score for key, c in crawl.items()} == {"robotsTxt": 0, "sitemap": 0, "llmsTxt": 0}


@pytest.mark.parametrize("url", ["https://example.com:8443/", "http://[::1]:8080/", "https://my_host.local/"])
def test_valid_hosts_and_ports(url):
    assert validate_url(url) == url
