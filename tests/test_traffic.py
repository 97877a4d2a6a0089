"""Test User-Agent, referrer and client IP helpers."""

from __future__ import annotations

import pytest
from starlette.requests import Request

from blogpress.services import traffic
from blogpress.services.traffic import (
    DeviceType,
    classify_source,
    detect_browser,
    detect_device_type,
    detect_os,
    extract_campaign,
    extract_referrer_domain,
    get_client_ip,
)

CHROME_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_WIN = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
)
FIREFOX_WIN = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:120.0) Gecko/20100101 Firefox/120.0"
IPAD = (
    "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
ANDROID_PHONE = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
IPHONE_CHROME = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) CriOS/120.0.6099.119 Mobile/15E148 Safari/604.1"
)
CHROMEBOOK = (
    "Mozilla/5.0 (X11; CrOS x86_64 15633.69.0) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _request(headers: dict[str, str], client: tuple[str, int] | None = ("10.0.0.5", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


@pytest.fixture
def trusted_proxy(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(traffic.settings, "TRUST_PROXY_HEADERS", True)


@pytest.mark.parametrize(
    "ua, device, browser, os_name",
    [
        (CHROME_MAC, DeviceType.DESKTOP, "Chrome", "Mac OS X"),
        (EDGE_WIN, DeviceType.DESKTOP, "Edge", "Windows"),
        (FIREFOX_WIN, DeviceType.DESKTOP, "Firefox", "Windows"),
        (CHROMEBOOK, DeviceType.DESKTOP, "Chrome", "Chrome OS"),
        (None, DeviceType.DESKTOP, "Unknown", "Unknown"),
    ],
)
def test_user_agent_parsing(ua, device, browser, os_name):
    assert detect_device_type(ua) is device
    assert detect_browser(ua) == browser
    assert detect_os(ua) == os_name


def test_mobile_user_agents():
    assert detect_device_type(ANDROID_PHONE) is DeviceType.MOBILE
    assert detect_os(ANDROID_PHONE) == "Android"
    assert detect_browser(ANDROID_PHONE).startswith("Chrome")

    assert detect_device_type(IPAD) is DeviceType.TABLET
    assert detect_os(IPAD) == "iOS"


def test_chrome_on_iphone_is_not_reported_as_safari():
    assert detect_device_type(IPHONE_CHROME) is DeviceType.MOBILE
    assert detect_os(IPHONE_CHROME) == "iOS"
    assert detect_browser(IPHONE_CHROME).startswith("Chrome")


def test_unrecognised_user_agent_is_unknown():
    assert detect_browser("curl-like-thing") == "Unknown"
    assert detect_os("curl-like-thing") == "Unknown"


@pytest.mark.parametrize(
    "referrer, expected",
    [
        (None, None),
        ("", None),
        ("https://www.google.com/search?q=blog", "organic"),
        ("https://duckduckgo.com/", "organic"),
        ("https://t.co/abc", "social"),
        ("https://m.facebook.com/story", "social"),
        ("https://news.ycombinator.com/item?id=1", "referral"),
    ],
)
def test_classify_source(referrer, expected):
    assert classify_source(referrer) == expected


def test_same_host_referrer_is_direct():
    assert classify_source("https://www.blog.example.com/a", "blog.example.com") is None


def test_referrer_domain_strips_www():
    assert extract_referrer_domain("https://www.Example.com/path") == "example.com"


def test_extract_campaign():
    assert extract_campaign("/post?utm_source=x&utm_campaign=spring") == "spring"
    assert extract_campaign("/post") is None


def test_client_ip_prefers_first_forwarded_hop(trusted_proxy):
    request = _request({"X-Forwarded-For": "1.2.3.4, 10.0.0.1", "X-Real-IP": "9.9.9.9"})
    assert get_client_ip(request) == "1.2.3.4"


def test_client_ip_falls_back_to_real_ip_then_peer(trusted_proxy):
    assert get_client_ip(_request({"X-Real-IP": "9.9.9.9"})) == "9.9.9.9"
    assert get_client_ip(_request({})) == "10.0.0.5"
    assert get_client_ip(_request({}, client=None)) == "unknown"


def test_proxy_headers_ignored_by_default():
    assert get_client_ip(_request({"X-Forwarded-For": "1.2.3.4", "X-Real-IP": "9.9.9.9"})) == "10.0.0.5"
