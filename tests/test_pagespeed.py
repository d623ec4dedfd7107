from __future__ import annotations

import pytest

from websitescore_agent.pagespeed import (
    CATEGORIES,
    WEIGHTS,
    _positive_tabindex,
    analyze_page_speed,
    heading_order_valid,
)


def _check(report, category, key):
    return report.categories[category].checks[key]


@pytest.mark.parametrize(
    "elapsed_ms,lcp,fcp,si",
    [(500, 25, 10, 10), (2000, 22, 10, 10), (4000, 10, 7, 7), (6000, 10, 3, 3)],
)
def test_timing_audits_scale_load_time(make_page, elapsed_ms, lcp, fcp, si):
    report = analyze_page_speed(make_page(elapsed_ms=elapsed_ms))
    assert _check(report, "performance", "lcp").score == lcp
    assert _check(report, "performance", "fcp").score == fcp
    assert _check(report, "performance", "speedIndex").score == si


def test_lcp_value_is_formatted_in_seconds(make_page):
    report = analyze_page_speed(make_page(elapsed_ms=1000))
    assert _check(report, "performance", "lcp").value == "1.3s"
    assert _check(report, "performance", "fcp").value == "0.6s"


def test_non_blocking_scripts_do_not_count(make_page):
    html = (
        '<script async src="a.js"></script><script defer src="b.js"></script>'
        '<script type="application/ld+json">{}</script>'
    )
    tbt = _check(analyze_page_speed(make_page(html)), "performance", "tbt")
    assert tbt.value == "0ms"
    assert tbt.score == 30


@pytest.mark.parametrize("scripts,score", [(3, 30), (4, 25), (7, 20), (13, 10)])
def test_blocking_scripts(make_page, scripts, score):
    html = '<script src="x.js"></script>' * scripts
    tbt = _check(analyze_page_speed(make_page(html)), "performance", "tbt")
    assert tbt.score == score
    assert tbt.value == f"{scripts * 50}ms"


def test_unsized_media_shift_layout(make_page):
    html = '<img src="a.png"><img src="b.png" width="10"><iframe src="/x"></iframe><img src="c" width="1" height="1">'
    cls = _check(analyze_page_speed(make_page(html)), "performance", "cls")
    assert cls.score == 18
    assert cls.value == "~0.15"
    assert cls.details == "3 media elements without explicit dimensions"


def test_noindex_blocks_the_page(make_page):
    html = '<meta name="robots" content="noindex, nofollow">'
    indexable = _check(analyze_page_speed(make_page(html)), "seo", "indexable")
    assert (indexable.score, indexable.max_score, indexable.status) == (0, 31, "error")


def test_descriptive_links(make_page):
    html = '<a href="/pricing">Pricing plans</a><a href="/x">Click here</a>'
    links = _check(analyze_page_speed(make_page(html)), "seo", "descriptiveLinks")
    assert links.value == "1/2 links"
    assert links.score == 4
    assert links.status == "warning"


def test_javascript_links_lose_a_point_each(make_page):
    html = '<a href="javascript:void(0)">a</a>' * 3
    crawlable = _check(analyze_page_speed(make_page(html)), "seo", "crawlableLinks")
    assert crawlable.score == 5
    assert crawlable.value == "3 JavaScript links"


def test_hreflang_partial_credit(make_page):
    assert _check(analyze_page_speed(make_page("<p>x</p>")), "seo", "hreflang").score == 4
    assert _check(analyze_page_speed(make_page('<html lang="en"></html>')), "seo", "hreflang").score == 8


def test_third_party_trackers(make_page):
    html = '<script src="https://www.google-analytics.com/analytics.js"></script>'
    cookies = _check(analyze_page_speed(make_page(html)), "bestPractices", "noThirdPartyCookies")
    assert cookies.score == 12


def test_http_page_fails_uses_https(make_page):
    report = analyze_page_speed(make_page(url="http://example.com/"))
    assert _check(report, "bestPractices", "usesHttps").score == 0


def test_geolocation_on_load(make_page):
    html = "<script>navigator.geolocation.getCurrentPosition(cb)</script>"
    report = analyze_page_speed(make_page(html))
    assert _check(report, "bestPractices", "noGeoOnLoad").score == 0
    wired = html + "<script>btn.addEventListener('click', go)</script>"
    assert _check(analyze_page_speed(make_page(wired)), "bestPractices", "noGeoOnLoad").score == 4


def test_orphan_list_item(make_page):
    report = analyze_page_speed(make_page("<div><li>orphan</li></div><ul><li>ok</li><script></script></ul>"))
    assert _check(report, "accessibility", "listItemsContained").score == 0
    assert _check(report, "accessibility", "listItemsContained").value == "1 orphaned items"
    assert _check(report, "accessibility", "listStructure").score == 3


@pytest.mark.parametrize(
    "levels,valid",
    [([], True), ([1, 2, 3, 2, 3], True), ([2, 1], True), ([1, 3], False), ([1, 2, 3, 2, 4], False)],
)
def test_heading_order(levels, valid):
    assert heading_order_valid(levels) is valid


@pytest.mark.parametrize(
    "lang,score", [("en", 3), ("en-US", 3), ("EN", 0), ("english", 0), ("en-us", 0)]
)
def test_lang_value(make_page, lang, score):
    report = analyze_page_speed(make_page(f'<html lang="{lang}"><body></body></html>'))
    assert _check(report, "accessibility", "htmlLangValid").score == score
    assert _check(report, "accessibility", "htmlLang").score == 3


@pytest.mark.parametrize(
    "value,positive",
    [("1", True), ("0", False), ("-1", False), ("2abc", True), (" 3", True), ("abc", False), (None, False)],
)
def test_positive_tabindex_parsing(value, positive):
    assert _positive_tabindex(value) is positive


def test_restricted_zoom(make_page):
    html = '<meta name="viewport" content="width=device-width, maximum-scale=1">'
    report = analyze_page_speed(make_page(html))
    assert _check(report, "accessibility", "viewportScalable").score == 0


def test_form_labels(make_page):
    html = (
        '<label for="email">Email</label><input id="email">'
        '<input placeholder="Name"><input type="hidden"><input type="text">'
    )
    labels = _check(analyze_page_speed(make_page(html)), "accessibility", "formLabels")
    assert labels.value == "2/3 inputs"
    assert labels.score == 3


def test_accessibility_category_shape(make_page, well_built_html):
    a11y = analyze_page_speed(make_page(well_built_html)).categories["accessibility"]
    assert len(a11y.checks) == 27
    assert a11y.max_score == 97
    assert len(CATEGORIES["bestPractices"][1]) == 12


def test_well_built_page(make_page, well_built_html):
    report = analyze_page_speed(make_page(well_built_html))
    assert report.performance_score == 100
    assert report.accessibility_score == 100
    assert _check(report, "bestPractices", "hasDoctype").score == 4
    assert _check(report, "bestPractices", "responsiveImages").score == 4


def test_score_is_category_weighted(make_page):
    # performance 71/100, seo 75/103, best practices 72/101, accessibility 87/97
    # 0.71*40 + 75/103*25 + 72/101*20 + 87/97*15 = 74.3
    report = analyze_page_speed(make_page("<p>plain</p>", url="http://example.com/", elapsed_ms=6000))
    sums = {key: (cat.score, cat.max_score) for key, cat in report.categories.items()}
    assert sums == {
        "performance": (71, 100),
        "seo": (75, 103),
        "bestPractices": (72, 101),
        "accessibility": (87, 97),
    }
    assert report.score == 74
    assert (report.performance_score, report.seo_score) == (71, 73)
    assert (report.best_practices_score, report.accessibility_score) == (71, 90)
    assert sum(WEIGHTS.values()) == 100


def test_empty_document(make_page):
    report = analyze_page_speed(make_page(""))
    assert 0 <= report.score <= 100
    assert report.performance_score == 100
    assert _check(report, "seo", "imageAlt").score == 8
    assert _check(report, "accessibility", "imagesHaveAlt").score == 5
    assert _check(report, "bestPractices", "imageAspectRatio").score == 4
    assert _check(report, "accessibility", "buttonNames").score == 5
    dumped = report.model_dump(by_alias=True)
    assert {"performanceScore", "seoScore", "bestPracticesScore", "accessibilityScore"} <= set(dumped)
