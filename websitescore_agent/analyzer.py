from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from urllib.parse import urlparse

import httpx

from .document import Document
from .errors import FetchError, InputValidationError
from .fetcher import fetch_auxiliary_files, fetch_page
from .models import (
    AnalysisResult,
    AnalyzeRequest,
    AnalyzerReport,
    AuxiliaryFiles,
    PageInputs,
    PageSpeedReport,
    PageSpeedSection,
    Section,
    Sections,
)
from .pagespeed import analyze_page_speed
from .quality import analyze_quality
from .scoring import overall_score
from .security import analyze_security

logger = logging.getLogger(__name__)

# Colons and % only appear in IPv6 literals.
_HOST_RE = re.compile(r"[\w.\-:%]+")


def validate_url(raw: str | None) -> str:
    value = (raw or "").strip()
    if not value:
        raise InputValidationError("URL is required")

    try:
        parsed = urlparse(value)
        # Parsed lazily; raises for non-numeric or out-of-range ports.
        parsed.port
    except ValueError as e:
        raise InputValidationError("Invalid URL format", str(e)) from e
    if parsed.scheme not in ("http", "https"):
        raise InputValidationError("Invalid URL format", "Only http(s) URLs can be analyzed.")
    if not parsed.hostname:
        raise InputValidationError("Invalid URL format", "URL has no host.")
    if not _HOST_RE.fullmatch(parsed.hostname):
        raise InputValidationError("Invalid URL format", f"Invalid host: {parsed.hostname!r}")
    return value


def _section(name: str, report: AnalyzerReport) -> Section:
    return Section(name=name, score=report.score, categories=report.categories)


def _page_speed_section(report: PageSpeedReport) -> PageSpeedSection:
    return PageSpeedSection(
        name="PageSpeed",
        score=report.score,
        categories=report.categories,
        performance_score=report.performance_score,
        seo_score=report.seo_score,
        best_practices_score=report.best_practices_score,
        accessibility_score=report.accessibility_score,
    )


def score_page(page: PageInputs, analyzed_at: datetime | None = None) -> AnalysisResult:
    """Run the three analyzers over already-fetched inputs and combine them."""
    doc = Document(page.html)
    quality = analyze_quality(page, doc)
    security = analyze_security(page)
    pagespeed = analyze_page_speed(page, doc)

    analyzed_at = analyzed_at or datetime.now(timezone.utc)
    return AnalysisResult(
        url=page.url,
        analyzed_at=analyzed_at.isoformat(),
        load_time=f"{page.elapsed_ms / 1000:.2f}s",
        overall_score=overall_score(quality, security, pagespeed),
        sections=Sections(
            website_quality=_section("Website Quality", quality),
            trust_security=_section("Trust & Security", security),
            page_speed=_page_speed_section(pagespeed),
        ),
    )


def analyze(req: AnalyzeRequest, transport: httpx.BaseTransport | None = None) -> AnalysisResult:
    url = validate_url(req.url)
    logger.info("Analyzing: %s", url)

    timeout = req.timeout_ms / 1000 if req.timeout_ms else None
    try:
        fetched = fetch_page(url, timeout=timeout, transport=transport)
    except FetchError as e:
        logger.warning("Fetch failed for %s: %s", url, e.details)
        raise
    if fetched.final_url != url:
        logger.debug("%s redirected to %s", url, fetched.final_url)
    aux: AuxiliaryFiles = fetch_auxiliary_files(url, transport=transport)

    page = PageInputs(
        url=url,
        html=fetched.html,
        headers=fetched.headers,
        elapsed_ms=fetched.elapsed_ms,
        status_code=fetched.status_code,
        aux=aux,
    )
    result = score_page(page)
    logger.info("Analyzed %s: overall %s in %s", url, result.overall_score, result.load_time)
    return result
