"""
Request fingerprinting helpers for visit tracking.

Derives device type / browser / OS from the User-Agent when the client
does not send them, classifies the traffic source from the referrer, and
resolves the client IP behind a reverse proxy.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from urllib.parse import parse_qs, urlparse

from fastapi import Request
from user_agents import parse as parse_ua
from user_agents.parsers import UserAgent

from blogpress.core.config import settings


class DeviceType(str, Enum):
    """Device type classification."""
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"


class TrafficSource(str, Enum):
    """Session acquisition channel. No referrer → stored as NULL, shown as 'direct'."""
    DIRECT = "direct"
    ORGANIC = "organic"
    SOCIAL = "social"
    REFERRAL = "referral"


# user_agents reports unrecognised families as "Other"
_UNKNOWN_FAMILIES = frozenset({"Other", ""})

_SEARCH_ENGINES = ("google.", "bing.com", "duckduckgo.com", "yahoo.", "yandex.", "baidu.com", "ecosia.org")
_SOCIAL_NETWORKS = (
    "facebook.com", "fb.com", "t.co", "twitter.com", "x.com", "linkedin.com",
    "instagram.com", "reddit.com", "pinterest.com", "youtube.com", "tiktok.com",
)


@lru_cache(maxsize=1024)
def _parse(user_agent: str) -> UserAgent:
    return parse_ua(user_agent)


def _family(name: str | None) -> str:
    return "Unknown" if not name or name in _UNKNOWN_FAMILIES else name


def detect_device_type(user_agent: str | None) -> DeviceType:
    if not user_agent:
        return DeviceType.DESKTOP
    ua = _parse(user_agent)
    # Tablet first: some Android tablets also report as mobile
    if ua.is_tablet:
        return DeviceType.TABLET
    if ua.is_mobile:
        return DeviceType.MOBILE
    return DeviceType.DESKTOP


def detect_browser(user_agent: str | None) -> str:
    """Browser family, e.g. "Chrome", "Mobile Safari", "Chrome Mobile iOS"."""
    if not user_agent:
        return "Unknown"
    return _family(_parse(user_agent).browser.family)


def detect_os(user_agent: str | None) -> str:
    """OS family, e.g. "Windows", "Mac OS X", "iOS", "Chrome OS"."""
    if not user_agent:
        return "Unknown"
    return _family(_parse(user_agent).os.family)


def extract_referrer_domain(referrer: str | None) -> str | None:
    """
    Extract the domain from a referrer URL.

    Returns e.g. "google.com" (www. stripped) or None.
    """
    if not referrer:
        return None
    domain = urlparse(referrer).netloc.lower()
    if domain.startswith("www."):
        domain = domain[4:]
    return domain[:255] or None


def classify_source(referrer: str | None, site_host: str | None = None) -> str | None:
    """
    Map a referrer to a traffic source.

    Returns None for direct traffic (no referrer, or an internal
    navigation on the same host) so the stored column stays empty and
    the dashboard labels it "direct".
    """
    domain = extract_referrer_domain(referrer)
    if domain is None:
        return None
    if site_host and domain == site_host.lower().removeprefix("www."):
        return None
    if any(domain.startswith(e) or f".{e}" in f".{domain}" for e in _SEARCH_ENGINES):
        return TrafficSource.ORGANIC.value
    if any(domain == s or domain.endswith(f".{s}") for s in _SOCIAL_NETWORKS):
        return TrafficSource.SOCIAL.value
    return TrafficSource.REFERRAL.value


def extract_campaign(url: str) -> str | None:
    """utm_campaign query parameter of the landing URL, if any."""
    values = parse_qs(urlparse(url).query).get("utm_campaign")
    return values[0][:255] if values else None


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request, handling proxies.

    X-Forwarded-For may list several hops; the first one is the client.
    """
    if settings.TRUST_PROXY_HEADERS:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"
