"""Trust & security: response headers, hosting fingerprints, page trust signals.

Also home to :func:`inspect_ssl`, a certificate probe that is exposed on its
own route and deliberately kept out of the security score.
"""
from __future__ import annotations

import logging
import math
import re
import socket
import ssl
from datetime import datetime, timezone
from typing import Callable
from urllib.parse import urlparse

from cryptography import x509
from cryptography.x509.oid import NameOID

from .errors import SSLInspectionError
from .models import AnalyzerReport, Category, Check, PageInputs, SSLInfo, SSLReport
from .scoring import build_category, check, flat_score

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"[\d.]+")
_ZIP_RE = re.compile(r"\d{5}")

# First match wins: a CDN edge is reported ahead of the origin server behind it.
_PROVIDERS: tuple[tuple[str, Callable[[dict[str, str]], bool]], ...] = (
    ("Cloudflare", lambda h: bool(h.get("cf-ray"))),
    ("Vercel", lambda h: bool(h.get("x-vercel-id"))),
    ("AWS CloudFront", lambda h: bool(h.get("x-amz-cf-id")) or "cloudfront" in h.get("x-cache", "")),
    ("Nginx", lambda h: "nginx" in h.get("server", "").lower()),
    ("Apache", lambda h: "apache" in h.get("server", "").lower()),
    ("Netlify", lambda h: "netlify" in h.get("server", "").lower()),
    ("Google Cloud", lambda h: "google" in h.get("via", "")),
    ("Microsoft IIS", lambda h: any(k in h.get("server", "").lower() for k in ("microsoft", "iis"))),
)


def _header_check(
    name: str,
    header: str,
    max_score: int,
    present_value: str,
    present_details: str,
    missing_details: str,
):
    def rule(page: PageInputs) -> Check:
        value = page.headers.get(header)
        if value:
            return check(name, present_value.format(value=value), max_score, max_score, "good", present_details)
        return check(name, "Missing", 0, max_score, "warning", missing_details)

    return rule


def https_check(page: PageInputs) -> Check:
    if urlparse(page.url).scheme == "https":
        return check("HTTPS", "Secure connection enabled", 20, 20, "good")
    return check("HTTPS", "Not using HTTPS", 0, 20, "error")


def hsts_check(page: PageInputs) -> Check:
    hsts = page.headers.get("strict-transport-security")
    if not hsts:
        return check("HTTP Strict Transport Security", "Missing", 0, 10, "warning", "Missing")
    score = 10
    if "includeSubDomains" not in hsts:
        score = 7
    if "preload" not in hsts:
        score = min(score, 8)
    shown = hsts[:60] + ("..." if len(hsts) > 60 else "")
    return check("HTTP Strict Transport Security", f"HSTS: {shown}", score, 10, "good", hsts)


def csp_check(page: PageInputs) -> Check:
    csp = page.headers.get("content-security-policy")
    if csp:
        return check("Content Security Policy", "CSP configured", 10, 10, "good", csp[:100] + "...")
    return check("Content Security Policy", "Missing", 0, 10, "warning", "No CSP header found - vulnerable to XSS")


def permissions_policy_check(page: PageInputs) -> Check:
    policy = page.headers.get("permissions-policy") or page.headers.get("feature-policy")
    if policy:
        return check("Permissions Policy", "Configured", 5, 5, "good", "Browser features restricted")
    return check("Permissions Policy", "Missing", 0, 5, "warning", "No restrictions on browser features")


def secure_cache_check(page: PageInputs) -> Check:
    cache_control = page.headers.get("cache-control", "")
    secure = "no-store" in cache_control or "private" in cache_control
    return check(
        "Secure Caching",
        cache_control or "Not configured",
        3 if secure else 1,
        3,
        "good" if secure else "warning",
        "Sensitive data not cached publicly" if secure else "Check if sensitive pages need no-store",
    )


def cross_origin_check(page: PageInputs) -> Check:
    coep = page.headers.get("cross-origin-embedder-policy")
    coop = page.headers.get("cross-origin-opener-policy")
    corp = page.headers.get("cross-origin-resource-policy")
    count = sum(1 for v in (coep, coop, corp) if v)
    return check(
        "Cross-Origin Isolation",
        f"{count}/3 policies set" if count else "Not configured",
        min(4, count * 2),
        4,
        "good" if count >= 2 else "warning",
        f"COEP: {coep or 'missing'}, COOP: {coop or 'missing'}, CORP: {corp or 'missing'}",
    )


def _unavailable(name: str, max_score: int, value: str, details: str):
    def rule(page: PageInputs) -> Check:
        return check(name, value, 0, max_score, "warning", details)

    return rule


def detect_provider(headers: dict[str, str]) -> str:
    for provider, matches in _PROVIDERS:
        if matches(headers):
            return provider
    return "Unknown"


def provider_check(page: PageInputs) -> Check:
    provider = detect_provider(page.headers)
    known = provider != "Unknown"
    return check(
        "Hosting Provider",
        provider,
        0,
        0,
        "good" if known else "warning",
        f"Hosted on {provider}" if known else "Could not detect hosting provider",
    )


def cdn_check(page: PageInputs) -> Check:
    h = page.headers
    x_cache = h.get("x-cache", "")
    via = h.get("via", "")
    has_cdn = (
        bool(h.get("cf-ray"))
        or bool(h.get("x-amz-cf-id"))
        or "HIT" in x_cache
        or "cloudfront" in x_cache
        or any(edge in via for edge in ("cloudflare", "akamai", "fastly"))
    )
    if has_cdn:
        return check("CDN Usage", "CDN detected", 5, 5, "good", "Content delivered via CDN for better performance")
    return check("CDN Usage", "No CDN detected", 0, 5, "warning", "Consider using a CDN")


def server_exposure_check(page: PageInputs) -> Check:
    server = page.headers.get("server", "")
    powered_by = page.headers.get("x-powered-by", "")
    if _VERSION_RE.search(server) or _VERSION_RE.search(powered_by):
        return check(
            "Server Version Hidden", "Version exposed", 0, 3, "warning",
            f"Server header reveals: {server or powered_by}",
        )
    return check("Server Version Hidden", "Version hidden", 3, 3, "good", "Server version not exposed")


def powered_by_check(page: PageInputs) -> Check:
    powered_by = page.headers.get("x-powered-by")
    if powered_by:
        return check(
            "X-Powered-By Hidden", f"Exposed: {powered_by}", 0, 2, "warning",
            "Technology stack exposed - remove this header",
        )
    return check("X-Powered-By Hidden", "Hidden", 2, 2, "good", "Technology stack not revealed")


def waf_check(page: PageInputs) -> Check:
    h = page.headers
    server = h.get("server", "").lower()
    has_waf = (
        bool(h.get("cf-ray"))
        or bool(h.get("x-sucuri-id"))
        or bool(h.get("x-cdn"))
        or "cloudflare" in server
        or "sucuri" in server
    )
    if has_waf:
        return check("Web Application Firewall", "WAF detected", 0, 0, "good", "Protected by web application firewall")
    return check("Web Application Firewall", "No WAF detected", 0, 0, "warning", "Consider adding WAF protection")


def _has_cookie_consent(html: str) -> bool:
    return "cookie" in html and any(k in html for k in ("consent", "accept", "policy", "banner"))


def _has_address(html: str) -> bool:
    return any(k in html for k in ("address", "street", "suite", "floor")) or bool(_ZIP_RE.search(html))


# (key, name, points, found value, missing value, found details, missing details, matcher)
_TRUST_SIGNALS = (
    ("privacyPolicy", "Privacy Policy", 4, "Found", "Not detected",
     "Privacy policy link detected", "Required for GDPR/CCPA compliance",
     ("privacy policy", "privacy-policy", "/privacy", "datenschutz")),
    ("termsOfService", "Terms of Service", 3, "Found", "Not detected",
     "Terms of service link detected", "Consider adding terms of service",
     ("terms of service", "terms-of-service", "terms and conditions", "/terms", "tos")),
    ("contactInfo", "Contact Information", 3, "Found", "Not detected",
     "Contact information available", "Add contact info for trust",
     ("contact us", "contact-us", "/contact", "mailto:", "tel:", "support@", "info@")),
    ("cookieConsent", "Cookie Notice", 3, "Detected", "Not detected",
     "Cookie consent mechanism found", "Required for GDPR compliance",
     _has_cookie_consent),
    ("aboutSection", "About Section", 2, "Found", "Not detected",
     "About information available", "Add about section for credibility",
     ("about us", "about-us", "/about", "our team", "our story", "who we are")),
    ("physicalAddress", "Physical Address", 2, "Detected", "Not found",
     "Physical address information found", "Consider adding business address",
     _has_address),
    ("socialMedia", "Social Media Presence", 2, "Links found", "Not detected",
     "Social media links present", "Add social proof for credibility",
     ("twitter.com", "facebook.com", "linkedin.com", "instagram.com", "youtube.com", "x.com")),
    ("trustBadges", "Trust Indicators", 2, "Found", "Not detected",
     "Trust badges/seals detected", "Consider adding trust badges",
     ("ssl", "secure", "verified", "certified", "trust", "norton", "mcafee", "bbb")),
    ("gdprCompliance", "GDPR Compliance", 2, "Indicators found", "Not detected",
     "GDPR compliance information present", "Consider GDPR compliance if serving EU",
     ("gdpr", "data protection", "data subject", "right to be forgotten", "data controller")),
)


def _trust_rule(name, points, found_value, missing_value, found_details, missing_details, matcher):
    def rule(page: PageInputs) -> Check:
        lower = (page.html or "").lower()
        if callable(matcher):
            found = matcher(lower)
        else:
            found = any(needle in lower for needle in matcher)
        if found:
            return check(name, found_value, points, points, "good", found_details)
        return check(name, missing_value, 0, points, "warning", missing_details)

    return rule


CATEGORIES = {
    "securityHeaders": ("Security Headers", [
        ("https", https_check),
        ("hsts", hsts_check),
        ("csp", csp_check),
        ("frameProtection", _header_check(
            "Clickjacking Protection", "x-frame-options", 5, "X-Frame-Options: {value}",
            "Protected against clickjacking", "Vulnerable to clickjacking attacks")),
        ("mimeProtection", _header_check(
            "MIME Sniffing Protection", "x-content-type-options", 5, "X-Content-Type-Options: {value}",
            "MIME sniffing prevented", "Browser may interpret files incorrectly")),
        ("xssProtection", _header_check(
            "XSS Protection Header", "x-xss-protection", 3, "X-XSS-Protection: {value}",
            "Legacy XSS filter enabled", "Legacy browser protection missing")),
        ("referrerPolicy", _header_check(
            "Referrer Policy", "referrer-policy", 5, "Referrer-Policy: {value}",
            "Controls referrer information sent", "May leak sensitive URL data")),
        ("permissionsPolicy", permissions_policy_check),
        ("secureCache", secure_cache_check),
        ("crossOrigin", cross_origin_check),
    ]),
    # Needs WHOIS / backlink data this service does not have.
    "domainTrust": ("Domain Trust", [
        ("domainRating", _unavailable(
            "Domain Rating", 25, "Not available",
            "Third-party API required (Ahrefs, Moz). Connect API for accurate DR score.")),
        ("domainAge", _unavailable(
            "Domain Age", 5, "Could not determine", "WHOIS lookup required for accurate data")),
        ("registrar", _unavailable("Registrar", 0, "Could not determine", "WHOIS lookup required")),
        ("country", _unavailable("Country", 0, "Could not determine", "WHOIS lookup required")),
    ]),
    "infrastructure": ("Infrastructure", [
        ("provider", provider_check),
        ("cdn", cdn_check),
        ("serverExposure", server_exposure_check),
        ("poweredBy", powered_by_check),
        ("waf", waf_check),
    ]),
    "trustIndicators": ("Trust Indicators", [
        (key, _trust_rule(*rest)) for key, *rest in _TRUST_SIGNALS
    ]),
}


def analyze_security(page: PageInputs) -> AnalyzerReport:
    categories = {key: build_category(name, rules, page) for key, (name, rules) in CATEGORIES.items()}
    return AnalyzerReport(score=flat_score(categories.values()), categories=categories)


def _chain_verifies(hostname: str, port: int, timeout: float) -> bool:
    ctx = ssl.create_default_context()
    try:
        with socket.create_connection((hostname, port), timeout=timeout) as sock:
            with ctx.wrap_socket(sock, server_hostname=hostname):
                return True
    except OSError:
        return False


def _probe_certificate(hostname: str, port: int = 443, timeout: float = 5.0) -> SSLInfo:
    """Read the peer certificate without trusting it, then check the chain.

    Raises :class:`SSLInspectionError` when no handshake can be completed.
    """
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    try:
        with socket.create_connection((hostname, port), timeout=timeout) as sock:
            with ctx.wrap_socket(sock, server_hostname=hostname) as ssock:
                der = ssock.getpeercert(binary_form=True)
    except OSError as e:
        raise SSLInspectionError("Could not verify", str(e)) from e

    if not der:
        return SSLInfo(valid=False)
    return certificate_info(der, valid=_chain_verifies(hostname, port, timeout))


def certificate_info(der: bytes, valid: bool, now: datetime | None = None) -> SSLInfo:
    """Issuer organization and validity window of a DER-encoded certificate."""
    cert = x509.load_der_x509_certificate(der)
    orgs = cert.issuer.get_attributes_for_oid(NameOID.ORGANIZATION_NAME)
    not_before = cert.not_valid_before_utc
    not_after = cert.not_valid_after_utc
    now = now or datetime.now(timezone.utc)
    days = math.ceil((not_after - now).total_seconds() / 86400)

    return SSLInfo(
        valid=valid,
        issuer=str(orgs[0].value) if orgs else "Unknown",
        days_remaining=days,
        valid_from=not_before.isoformat(),
        valid_to=not_after.isoformat(),
    )


def ssl_checks(info: SSLInfo) -> dict[str, Check]:
    valid = check(
        "Valid SSL Certificate",
        "Valid" if info.valid else "Invalid",
        10 if info.valid else 0,
        10,
        "good" if info.valid else "error",
        info.issuer or "Could not verify",
    )
    days = info.days_remaining
    if days > 30:
        expiry_score, expiry_status = 5, "good"
    elif days > 7:
        expiry_score, expiry_status = 3, "warning"
    else:
        expiry_score, expiry_status = 0, "error"
    expiry = check("SSL Expiry", f"{days} days remaining", expiry_score, 5, expiry_status)
    return {"validSsl": valid, "sslExpiry": expiry}


def inspect_ssl(url: str, timeout: float = 5.0) -> SSLReport:
    """Certificate validity and expiry for ``url``'s host (15 points).

    Never raises for network problems; those come back in ``SSLReport.error``.
    """
    parsed = urlparse(url)
    if parsed.scheme != "https" or not parsed.hostname:
        checks = {
            "validSsl": check("Valid SSL Certificate", "Not applicable (HTTP)", 0, 10, "error"),
            "sslExpiry": check("SSL Expiry", "Not applicable", 0, 5, "error"),
        }
        return SSLReport(url=url, category=Category(name="SSL/TLS", checks=checks))

    try:
        info = _probe_certificate(parsed.hostname, parsed.port or 443, timeout)
    except SSLInspectionError as e:
        logger.debug("SSL inspection of %s failed: %s", parsed.hostname, e.details)
        checks = {
            "validSsl": check("Valid SSL Certificate", "Could not verify", 0, 10, "warning"),
            "sslExpiry": check("SSL Expiry", "Could not verify", 0, 5, "warning"),
        }
        return SSLReport(
            url=url, category=Category(name="SSL/TLS", checks=checks), error=e.details or e.message
        )

    return SSLReport(url=url, category=Category(name="SSL/TLS", checks=ssl_checks(info)), info=info)
