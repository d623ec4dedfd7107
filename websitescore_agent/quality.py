"""Website quality: markup, meta/social tags and crawlability side files."""
from __future__ import annotations

from .document import Document
from .models import AnalyzerReport, Check, PageInputs
from .scoring import build_category, check, flat_score, presence_check, ratio_points


def title_check(doc: Document, page: PageInputs) -> Check:
    title = doc.title
    n = len(title)
    if 30 <= n <= 60:
        score, status = 20, "good"
    elif 0 < n < 30:
        score, status = 16, "warning"
    elif n > 60:
        score, status = 12, "warning"
    else:
        score, status = 0, "error"
    return check("Title", title or "Missing", score, 20, status, f"{n} chars (ideal 30-60)")


def meta_description_check(doc: Document, page: PageInputs) -> Check:
    desc = doc.meta_content("description") or ""
    n = len(desc)
    if 120 <= n <= 160:
        score, status = 15, "good"
    elif 0 < n < 120:
        score, status = 10, "warning"
    elif n > 160:
        score, status = 8, "warning"
    else:
        score, status = 0, "error"
    return check("Meta Description", desc or "Missing", score, 15, status, f"{n} chars (ideal 120-160)")


def favicon_check(doc: Document, page: PageInputs) -> Check:
    href = doc.favicon
    return presence_check(
        "Favicon", href, 5, "error", value="Present", details=href or "No favicon found"
    )


def viewport_check(doc: Document, page: PageInputs) -> Check:
    content = doc.meta_content("viewport")
    return presence_check(
        "Viewport Meta", content, 5, "error", value="Present", details=content or "No viewport meta tag"
    )


def headings_check(doc: Document, page: PageInputs) -> Check:
    h1_count = doc.count("h1")
    if h1_count == 1:
        score, status, details = 5, "good", "Good - single H1"
    elif h1_count > 1:
        score, status, details = 3, "warning", "Multiple H1 tags (not recommended)"
    else:
        score, status, details = 0, "warning", "Missing H1 tag"
    return check("Headings", f"{h1_count} H1 tag(s)", score, 5, status, details)


def word_count_check(doc: Document, page: PageInputs) -> Check:
    words = doc.body_words()
    if words >= 300:
        score, status = 5, "good"
    elif words >= 100:
        score, status = 3, "warning"
    else:
        score, status = 0, "warning"
    details = "Good content length" if words >= 300 else "Consider adding more content (300+ words recommended)"
    return check("Content Length", f"{words} words", score, 5, status, details)


def image_optimization_check(doc: Document, page: PageInputs) -> Check:
    total = doc.count("img")
    modern = doc.count('img[src*=".webp"], source[type="image/webp"]') + doc.count("picture")
    score = ratio_points(modern, total, 4)
    # <picture> plus its webp <source> can exceed the <img> count.
    score = min(score, 4)
    status = "good" if score >= 3 else "warning" if score >= 1 else "error"
    return check(
        "Image Optimization",
        f"{modern}/{total} optimized",
        score,
        4,
        status,
        "WebP format and picture elements for responsive images",
    )


def _meta_rule(name: str, max_score: int, *, meta_name: str | None = None, prop: str | None = None):
    def rule(doc: Document, page: PageInputs) -> Check:
        return presence_check(name, doc.meta_content(meta_name, prop=prop), max_score)

    return rule


def canonical_check(doc: Document, page: PageInputs) -> Check:
    return presence_check("Canonical URL", doc.attr('link[rel="canonical"]', "href"), 5)


def html_lang_check(doc: Document, page: PageInputs) -> Check:
    return presence_check("HTML Lang", doc.lang, 3)


def charset_check(doc: Document, page: PageInputs) -> Check:
    return presence_check("Character Encoding", doc.charset, 3)


def json_ld_check(doc: Document, page: PageInputs) -> Check:
    found = doc.exists('script[type="application/ld+json"]')
    return presence_check("Schema.org JSON-LD", "Present" if found else None, 4)


def _side_file_rule(name: str, attr: str, max_score: int, missing_status: str, found: str, missing: str):
    def rule(doc: Document, page: PageInputs) -> Check:
        has_file = bool(getattr(page.aux, attr))
        return check(
            name,
            "Present" if has_file else "Missing",
            max_score if has_file else 0,
            max_score,
            "good" if has_file else missing_status,
            found if has_file else missing,
        )

    return rule


CATEGORIES = {
    "siteQuality": ("Site Quality", [
        ("title", title_check),
        ("metaDescription", meta_description_check),
        ("favicon", favicon_check),
        ("viewport", viewport_check),
        ("headings", headings_check),
    ]),
    "contentQuality": ("Content Quality", [
        ("wordCount", word_count_check),
        ("imageOptimization", image_optimization_check),
    ]),
    "openGraph": ("Open Graph", [
        ("ogTitle", _meta_rule("OG Title", 5, prop="og:title")),
        ("ogDescription", _meta_rule("OG Description", 5, prop="og:description")),
        ("ogImage", _meta_rule("OG Image", 5, prop="og:image")),
    ]),
    "twitterCards": ("Twitter Cards", [
        ("cardType", _meta_rule("Card Type", 3, meta_name="twitter:card")),
        ("twitterTitle", _meta_rule("Twitter Title", 3, meta_name="twitter:title")),
        ("twitterDescription", _meta_rule("Twitter Description", 2, meta_name="twitter:description")),
        ("twitterImage", _meta_rule("Twitter Image", 2, meta_name="twitter:image")),
    ]),
    "technicalSeo": ("Technical SEO", [
        ("canonical", canonical_check),
        ("htmlLang", html_lang_check),
        ("charset", charset_check),
        ("schemaJsonLd", json_ld_check),
    ]),
    "crawlability": ("Crawlability", [
        ("robotsTxt", _side_file_rule(
            "robots.txt", "robots_txt", 4, "warning", "robots.txt file found", "No robots.txt file found")),
        ("sitemap", _side_file_rule(
            "Sitemap", "sitemap", 4, "warning", "sitemap.xml found", "No sitemap.xml found")),
        ("llmsTxt", _side_file_rule(
            "llms.txt", "llms_txt", 3, "error", "LLM usage policy found", "Add llms.txt to describe LLM usage policies")),
    ]),
}


def analyze_quality(page: PageInputs, doc: Document | None = None) -> AnalyzerReport:
    doc = doc or Document(page.html)
    categories = {
        key: build_category(name, rules, doc, page) for key, (name, rules) in CATEGORIES.items()
    }
    return AnalyzerReport(score=flat_score(categories.values()), categories=categories)
