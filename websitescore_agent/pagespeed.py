"""Synthetic Lighthouse-style scoring.

Nothing here runs a browser. Timing audits scale the single observed load
time by fixed factors; the rest are static reads of the markup. Audits that
can only be judged in a real browser are credited in full and say so.
"""
from __future__ import annotations

import re
from urllib.parse import urlparse

from .document import Document, attr_of, text_of
from .models import Check, PageInputs, PageSpeedReport
from .scoring import build_category, category_percent, check, ratio_points, weighted_score

WEIGHTS = {"performance": 40, "seo": 25, "bestPractices": 20, "accessibility": 15}

_VAGUE_LINK_TEXT = {"click here", "here", "read more", "link", "more"}
_LANG_RE = re.compile(r"^[a-z]{2}(-[A-Z]{2})?$")
_MAX_SCALE_RE = re.compile(r"maximum-scale=([0-9.]+)")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_BLOCKING_SCRIPTS = 'script:not([async]):not([defer]):not([type="application/ld+json"])'


def _secs(ms: float) -> str:
    return f"{ms / 1000:.1f}s"


# -- performance -------------------------------------------------------------

def lcp_check(doc: Document, page: PageInputs) -> Check:
    lcp = page.elapsed_ms * 1.3
    if lcp < 2500:
        score, status, details = 25, "good", "Good LCP time"
    elif lcp < 4000:
        score, status, details = 22, "warning", "Needs improvement"
    else:
        score, status, details = 10, "error", "Poor LCP"
    return check("Largest Contentful Paint", _secs(lcp), score, 25, status, details)


def fcp_check(doc: Document, page: PageInputs) -> Check:
    fcp = page.elapsed_ms * 0.6
    if fcp < 1800:
        score, status = 10, "good"
    elif fcp < 3000:
        score, status = 7, "warning"
    else:
        score, status = 3, "error"
    details = "Good FCP time" if fcp < 1800 else "Could be improved"
    return check("First Contentful Paint", _secs(fcp), score, 10, status, details)


def tbt_check(doc: Document, page: PageInputs) -> Check:
    tbt = doc.count(_BLOCKING_SCRIPTS) * 50
    if tbt > 600:
        score = 10
    elif tbt > 300:
        score = 20
    elif tbt > 150:
        score = 25
    else:
        score = 30
    status = "good" if score >= 25 else "warning" if score >= 20 else "error"
    details = "Minimal blocking time" if tbt < 200 else "Consider deferring scripts"
    return check("Total Blocking Time", f"{tbt}ms", score, 30, status, details)


def unsized_media(doc: Document) -> int:
    images = doc.count("img") - doc.count("img[width][height]")
    frames = doc.count("iframe") - doc.count("iframe[width][height]")
    return images + frames


def cls_check(doc: Document, page: PageInputs) -> Check:
    unsized = unsized_media(doc)
    if unsized > 5:
        score = 10
    elif unsized > 2:
        score = 18
    elif unsized > 0:
        score = 22
    else:
        score = 25
    status = "good" if score >= 22 else "warning" if score >= 18 else "error"
    value = "0.00" if unsized == 0 else f"~{unsized * 0.05:.2f}"
    return check(
        "Cumulative Layout Shift", value, score, 25, status,
        f"{unsized} media elements without explicit dimensions",
    )


def speed_index_check(doc: Document, page: PageInputs) -> Check:
    si = page.elapsed_ms * 1.1
    if si < 3400:
        score, status = 10, "good"
    elif si < 5800:
        score, status = 7, "warning"
    else:
        score, status = 3, "error"
    details = "Good speed index" if si < 3400 else "Page visually loads slowly"
    return check("Speed Index", _secs(si), score, 10, status, details)


# -- seo ---------------------------------------------------------------------

def indexable_check(doc: Document, page: PageInputs) -> Check:
    blocked = doc.exists('meta[name="robots"][content*="noindex"]')
    if blocked:
        return check("Page isn't blocked from indexing", "Blocked", 0, 31, "error")
    return check("Page isn't blocked from indexing", "Indexable", 31, 31, "good")


def seo_title_check(doc: Document, page: PageInputs) -> Check:
    title = doc.title
    name = "Document has a `<title>` element"
    if not title:
        return check(name, "Missing", 0, 8, "error")
    shown = title[:40] + ("..." if len(title) > 40 else "")
    return check(name, f'"{shown}"', 8, 8, "good")


def seo_meta_description_check(doc: Document, page: PageInputs) -> Check:
    if doc.meta_content("description"):
        return check("Document has a meta description", "Present", 8, 8, "good")
    return check("Document has a meta description", "Missing", 0, 8, "warning")


def http_status_check(doc: Document, page: PageInputs) -> Check:
    # A response was received, which is all this audit can confirm.
    return check("Page has successful HTTP status code", "200 OK", 8, 8, "good")


def descriptive_links_check(doc: Document, page: PageInputs) -> Check:
    links = doc.select("a")
    descriptive = 0
    for link in links:
        text = text_of(link).lower()
        if text and text not in _VAGUE_LINK_TEXT:
            descriptive += 1
    score = ratio_points(descriptive, len(links), 8)
    return check(
        "Links have descriptive text", f"{descriptive}/{len(links)} links", score, 8,
        "good" if score >= 6 else "warning",
    )


def crawlable_links_check(doc: Document, page: PageInputs) -> Check:
    js_links = doc.count('a[href^="javascript:"]')
    if js_links == 0:
        return check("Links are crawlable", "All crawlable", 8, 8, "good")
    return check("Links are crawlable", f"{js_links} JavaScript links", max(0, 8 - js_links), 8, "warning")


def robots_valid_check(doc: Document, page: PageInputs) -> Check:
    return check(
        "robots.txt is valid", "Check separately", 8, 8, "good",
        "robots.txt validation requires separate request",
    )


def seo_image_alt_check(doc: Document, page: PageInputs) -> Check:
    total = doc.count("img")
    with_alt = doc.count("img[alt]")
    score = ratio_points(with_alt, total, 8)
    return check(
        "Image elements have [alt] attributes", f"{with_alt}/{total} images", score, 8,
        "good" if score >= 6 else "warning",
    )


def hreflang_check(doc: Document, page: PageInputs) -> Check:
    if doc.exists("link[hreflang]") or doc.exists("html[lang]"):
        return check("Document has a valid `hreflang`", "Present", 8, 8, "good")
    return check("Document has a valid `hreflang`", "Missing", 4, 8, "warning")


def seo_canonical_check(doc: Document, page: PageInputs) -> Check:
    if doc.exists('link[rel="canonical"]'):
        return check("Document has a valid `rel=canonical`", "Present", 8, 8, "good")
    return check("Document has a valid `rel=canonical`", "Missing", 0, 8, "warning")


# -- best practices ----------------------------------------------------------

def uses_https_check(doc: Document, page: PageInputs) -> Check:
    if urlparse(page.url).scheme == "https":
        return check("Uses HTTPS", "Yes", 19, 19, "good")
    return check("Uses HTTPS", "No", 0, 19, "error")


def deprecated_apis_check(doc: Document, page: PageInputs) -> Check:
    html = page.html
    if any(api in html for api in ("document.write", "eval(", "with(")):
        return check("Avoids deprecated APIs", "Found deprecated APIs", 0, 19, "warning")
    return check("Avoids deprecated APIs", "No deprecated APIs", 19, 19, "good")


def third_party_cookies_check(doc: Document, page: PageInputs) -> Check:
    html = page.html
    if any(t in html for t in ("google-analytics", "facebook.com/tr", "doubleclick.net")):
        return check("Avoids third-party cookies", "Third-party scripts found", 12, 19, "warning")
    return check("Avoids third-party cookies", "Clean", 19, 19, "good")


def paste_check(doc: Document, page: PageInputs) -> Check:
    name = "Allows users to paste into input fields"
    if 'onpaste="return false"' in page.html or 'onpaste="false"' in page.html:
        return check(name, "Paste blocked", 0, 12, "error")
    return check(name, "Paste allowed", 12, 12, "good")


def _permission_on_load_rule(name: str, api: str):
    def rule(doc: Document, page: PageInputs) -> Check:
        on_load = api in page.html and "addEventListener" not in page.html
        if on_load:
            return check(name, "Requests on load", 0, 4, "warning")
        return check(name, "OK", 4, 4, "good")

    return rule


def aspect_ratio_check(doc: Document, page: PageInputs) -> Check:
    total = doc.count("img")
    sized = doc.count("img[width][height]")
    score = ratio_points(sized, total, 4)
    return check(
        "Displays images with correct aspect ratio", f"{sized}/{total} images have dimensions", score, 4,
        "good" if score >= 3 else "warning",
    )


def responsive_images_check(doc: Document, page: PageInputs) -> Check:
    responsive = doc.count("img[srcset]") + doc.count("picture source")
    name = "Serves images with appropriate resolution"
    if responsive > 0:
        return check(name, f"{responsive} responsive images", 4, 4, "good")
    return check(name, "No srcset found", 2, 4, "warning")


def doctype_check(doc: Document, page: PageInputs) -> Check:
    if "<!doctype html" in doc.html_lower:
        return check("Page has the HTML doctype", "Present", 4, 4, "good")
    return check("Page has the HTML doctype", "Missing", 0, 4, "error")


def bp_charset_check(doc: Document, page: PageInputs) -> Check:
    declared = doc.attr("meta[charset]", "charset")
    if declared or doc.charset:
        return check("Properly defines charset", declared or "Defined", 4, 4, "good")
    return check("Properly defines charset", "Missing", 0, 4, "warning")


def _browser_only(name: str, max_score: int, value: str):
    def rule(doc: Document, page: PageInputs) -> Check:
        return check(name, value, max_score, max_score, "good")

    return rule


# -- accessibility -----------------------------------------------------------

def aria_hidden_body_check(doc: Document, page: PageInputs) -> Check:
    name = '`[aria-hidden="true"]` is not present on the document `<body>`'
    if doc.exists('body[aria-hidden="true"]'):
        return check(name, "Found on body", 0, 5, "error")
    return check(name, "OK", 5, 5, "good")


def aria_match_roles_check(doc: Document, page: PageInputs) -> Check:
    aria = sum(
        doc.count(sel) for sel in ("[aria-label]", "[aria-hidden]", "[aria-describedby]", "[aria-labelledby]")
    )
    return check(
        "`[aria-*]` attributes match their roles",
        "ARIA attributes found" if aria else "No ARIA attributes", 5, 5, "good",
    )


def role_required_check(doc: Document, page: PageInputs) -> Check:
    roles = doc.count("[role]")
    return check(
        "`[role]`'s have all required `[aria-*]` attributes",
        f"{roles} role elements" if roles else "No role elements", 5, 5, "good",
    )


def button_names_check(doc: Document, page: PageInputs) -> Check:
    buttons = doc.select("button")
    named = sum(1 for b in buttons if text_of(b) or attr_of(b, "aria-label") or attr_of(b, "title"))
    score = ratio_points(named, len(buttons), 5)
    return check(
        "Buttons have an accessible name", f"{named}/{len(buttons)} buttons", score, 5,
        "good" if score >= 4 else "warning",
    )


def a11y_image_alt_check(doc: Document, page: PageInputs) -> Check:
    total = doc.count("img")
    with_alt = doc.count("img[alt]")
    score = ratio_points(with_alt, total, 5)
    return check(
        "Image elements have `[alt]` attributes", f"{with_alt}/{total} images", score, 5,
        "good" if score >= 4 else "warning",
    )


def form_labels_check(doc: Document, page: PageInputs) -> Check:
    inputs = doc.select('input:not([type="hidden"]):not([type="submit"]):not([type="button"])')
    label_targets = set(doc.attrs("label[for]", "for"))
    labelled = 0
    for field in inputs:
        field_id = attr_of(field, "id")
        if attr_of(field, "aria-label") or attr_of(field, "placeholder") or (field_id and field_id in label_targets):
            labelled += 1
    score = ratio_points(labelled, len(inputs), 5)
    return check(
        "Form elements have associated labels", f"{labelled}/{len(inputs)} inputs", score, 5,
        "good" if score >= 4 else "warning",
    )


def viewport_scalable_check(doc: Document, page: PageInputs) -> Check:
    viewport = doc.meta_content("viewport") or ""
    no_zoom = "user-scalable=no" in viewport or "user-scalable=0" in viewport
    max_scale = _MAX_SCALE_RE.search(viewport)
    too_low = False
    if max_scale:
        try:
            too_low = float(max_scale.group(1)) < 5
        except ValueError:
            too_low = False
    name = (
        '`[user-scalable="no"]` is not used in the `<meta name="viewport">` element '
        "and the `[maximum-scale]` attribute is not less than 5."
    )
    if no_zoom or too_low:
        return check(name, "Scaling restricted", 0, 5, "error")
    return check(name, "OK", 5, 5, "good")


def aria_hidden_focusable_check(doc: Document, page: PageInputs) -> Check:
    hits = doc.count('[aria-hidden="true"] button, [aria-hidden="true"] a, [aria-hidden="true"] input')
    name = '`[aria-hidden="true"]` elements do not contain focusable descendents'
    if hits == 0:
        return check(name, "OK", 3, 3, "good")
    return check(name, f"{hits} issues found", 0, 3, "error")


def a11y_title_check(doc: Document, page: PageInputs) -> Check:
    if doc.title:
        return check("Document has a `<title>` element", "Present", 3, 3, "good")
    return check("Document has a `<title>` element", "Missing", 0, 3, "error")


def a11y_lang_check(doc: Document, page: PageInputs) -> Check:
    lang = doc.lang
    if lang:
        return check("`<html>` element has a `[lang]` attribute", lang, 3, 3, "good")
    return check("`<html>` element has a `[lang]` attribute", "Missing", 0, 3, "error")


def valid_lang_check(doc: Document, page: PageInputs) -> Check:
    lang = doc.lang
    name = "`<html>` element has a valid value for its `[lang]` attribute"
    if lang and _LANG_RE.match(lang):
        return check(name, lang, 3, 3, "good")
    return check(name, "Invalid or missing", 0, 3, "warning")


def link_names_check(doc: Document, page: PageInputs) -> Check:
    links = doc.select("a")
    named = sum(
        1 for a in links
        if text_of(a) or attr_of(a, "aria-label") or a.select_one("img[alt]") is not None
    )
    score = ratio_points(named, len(links), 3)
    return check(
        "Links have a discernible name", f"{named}/{len(links)} links", score, 3,
        "good" if score >= 2 else "warning",
    )


def list_structure_check(doc: Document, page: PageInputs) -> Check:
    lists = doc.select("ul, ol")
    valid = sum(
        1 for lst in lists
        if all(child.name in ("li", "script", "template") for child in Document.child_tags(lst))
    )
    score = ratio_points(valid, len(lists), 3)
    return check(
        "Lists contain only `<li>` elements and script supporting elements (`<script>` and `<template>`).",
        f"{valid}/{len(lists)} lists valid", score, 3, "good" if score >= 2 else "warning",
    )


def list_items_contained_check(doc: Document, page: PageInputs) -> Check:
    orphaned = sum(1 for li in doc.select("li") if Document.parent_name(li) not in ("ul", "ol", "menu"))
    name = "List items (`<li>`) are contained within `<ul>`, `<ol>` or `<menu>` parent elements"
    if orphaned == 0:
        return check(name, "All valid", 3, 3, "good")
    return check(name, f"{orphaned} orphaned items", 0, 3, "error")


def _positive_tabindex(value: str | None) -> bool:
    m = _LEADING_INT_RE.match(value or "")
    return bool(m) and int(m.group(1)) > 0


def tabindex_check(doc: Document, page: PageInputs) -> Check:
    positive = sum(1 for v in doc.attrs("[tabindex]", "tabindex") if _positive_tabindex(v))
    name = "No element has a `[tabindex]` value greater than 0"
    if positive == 0:
        return check(name, "OK", 3, 3, "good")
    return check(name, f"{positive} elements with tabindex > 0", 0, 3, "warning")


def table_headers_check(doc: Document, page: PageInputs) -> Check:
    ok = doc.exists("table th") or not doc.exists("table")
    name = (
        "Cells in a `<table>` element that use the `[headers]` attribute "
        "refer to table cells within the same table."
    )
    if ok:
        return check(name, "OK", 3, 3, "good")
    return check(name, "Missing headers", 0, 3, "warning")


def heading_order_valid(levels: list[int]) -> bool:
    return all(cur <= prev + 1 for prev, cur in zip(levels, levels[1:]))


def heading_order_check(doc: Document, page: PageInputs) -> Check:
    name = "Heading elements appear in a sequentially-descending order"
    if heading_order_valid(doc.heading_levels()):
        return check(name, "Valid order", 1, 1, "good")
    return check(name, "Skipped heading levels", 0, 1, "warning")


def main_landmark_check(doc: Document, page: PageInputs) -> Check:
    if doc.exists("main") or doc.exists('[role="main"]'):
        return check("Document has a main landmark.", "Present", 1, 1, "good")
    return check("Document has a main landmark.", "Missing", 0, 1, "warning")


CATEGORIES = {
    "performance": ("Performance", [
        ("lcp", lcp_check),
        ("fcp", fcp_check),
        ("tbt", tbt_check),
        ("cls", cls_check),
        ("speedIndex", speed_index_check),
    ]),
    "seo": ("SEO", [
        ("indexable", indexable_check),
        ("hasTitle", seo_title_check),
        ("hasMetaDesc", seo_meta_description_check),
        ("httpStatus", http_status_check),
        ("descriptiveLinks", descriptive_links_check),
        ("crawlableLinks", crawlable_links_check),
        ("robotsTxt", robots_valid_check),
        ("imageAlt", seo_image_alt_check),
        ("hreflang", hreflang_check),
        ("canonical", seo_canonical_check),
    ]),
    "bestPractices": ("Best Practices", [
        ("usesHttps", uses_https_check),
        ("noDeprecatedApis", deprecated_apis_check),
        ("noThirdPartyCookies", third_party_cookies_check),
        ("allowsPaste", paste_check),
        ("noGeoOnLoad", _permission_on_load_rule(
            "Avoids requesting the geolocation permission on page load",
            "navigator.geolocation.getCurrentPosition")),
        ("noNotifOnLoad", _permission_on_load_rule(
            "Avoids requesting the notification permission on page load",
            "Notification.requestPermission")),
        ("imageAspectRatio", aspect_ratio_check),
        ("responsiveImages", responsive_images_check),
        ("hasDoctype", doctype_check),
        ("hasCharset", bp_charset_check),
        ("browserErrors", _browser_only(
            "Browser errors were logged to the console", 4, "Check in browser DevTools")),
        ("devToolsIssues", _browser_only(
            "No issues in the `Issues` panel in Chrome Devtools", 4, "Check in browser DevTools")),
    ]),
    "accessibility": ("Accessibility", [
        ("ariaMatchRoles", aria_match_roles_check),
        ("ariaHiddenBody", aria_hidden_body_check),
        ("roleAriaRequired", role_required_check),
        ("roleValuesValid", _browser_only("`[role]` values are valid", 5, "Checking valid roles")),
        ("ariaValuesValid", _browser_only(
            "`[aria-*]` attributes have valid values", 5, "Values appear valid")),
        ("ariaNotMisspelled", _browser_only(
            "`[aria-*]` attributes are valid and not misspelled", 5, "No misspellings detected")),
        ("buttonNames", button_names_check),
        ("imagesHaveAlt", a11y_image_alt_check),
        ("formLabels", form_labels_check),
        ("viewportScalable", viewport_scalable_check),
        ("interactiveNames", _browser_only(
            "`button`, `link`, and `menuitem` elements have accessible names", 3,
            "Checking interactive elements")),
        ("ariaAsSpecified", _browser_only(
            "ARIA attributes are used as specified for the element's role", 3, "ARIA usage appears correct")),
        ("ariaHiddenFocusable", aria_hidden_focusable_check),
        ("ariaPermitted", _browser_only(
            "Elements use only permitted ARIA attributes", 3, "ARIA attributes appear valid")),
        ("colorContrast", _browser_only(
            "Background and foreground colors do not have a sufficient contrast ratio.", 3,
            "Check in browser DevTools")),
        ("docTitle", a11y_title_check),
        ("htmlLang", a11y_lang_check),
        ("htmlLangValid", valid_lang_check),
        ("linksDistinguishable", _browser_only(
            "Links are distinguishable without relying on color.", 3, "Check visually")),
        ("linkNames", link_names_check),
        ("listStructure", list_structure_check),
        ("listItemsContained", list_items_contained_check),
        ("noPositiveTabindex", tabindex_check),
        ("touchTargets", _browser_only(
            "Touch targets have sufficient size and spacing.", 3, "Check visually")),
        ("tableHeaders", table_headers_check),
        ("headingOrder", heading_order_check),
        ("mainLandmark", main_landmark_check),
    ]),
}


def analyze_page_speed(page: PageInputs, doc: Document | None = None) -> PageSpeedReport:
    doc = doc or Document(page.html)
    categories = {
        key: build_category(name, rules, doc, page) for key, (name, rules) in CATEGORIES.items()
    }
    return PageSpeedReport(
        score=weighted_score([(categories[key], weight) for key, weight in WEIGHTS.items()]),
        categories=categories,
        performance_score=category_percent(categories["performance"]),
        seo_score=category_percent(categories["seo"]),
        best_practices_score=category_percent(categories["bestPractices"]),
        accessibility_score=category_percent(categories["accessibility"]),
    )
