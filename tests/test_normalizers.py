"""Tests for the dimension normalizers."""

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from app.core.normalizers import (
    DIRECT_REFERER,
    INVALID_REFERER,
    UNKNOWN,
    DimensionKey,
    UserAgentClass,
    build_dimension_key,
    classify_user_agent,
    normalize_country,
    normalize_referer,
)

from conftest import CHROME_WINDOWS, FIREFOX_LINUX, SAFARI_IPHONE


class TestClassifyUserAgent:
    """Test User-Agent classification."""

    @pytest.mark.parametrize(
        "user_agent, expected",
        [
            (CHROME_WINDOWS, ("Chrome", "Windows 10/11")),
            (SAFARI_IPHONE, ("Safari", "iOS")),
            (FIREFOX_LINUX, ("Firefox", "Linux")),
            (
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
                ("Edge", "Windows 10/11"),
            ),
            (
                "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/120.0.0.0 Mobile Safari/537.36",
                ("Chrome", "Android"),
            ),
            (
                "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/120.0.0.0 Safari/537.36",
                ("Chrome", "macOS"),
            ),
            (
                "Mozilla/5.0 (Windows NT 6.1; Trident/7.0; rv:11.0) like Gecko",
                ("Internet Explorer", "Windows 7"),
            ),
        ],
    )
    def test_known_agents(self, user_agent, expected):
        """Test common browsers and systems are recognised."""
        assert classify_user_agent(user_agent) == expected

    @pytest.mark.parametrize("user_agent", [None, "", "   ", "未知", "N/A"])
    def test_missing_agent_is_unknown(self, user_agent):
        """Test absent or placeholder agents are fully unknown."""
        assert classify_user_agent(user_agent) == UserAgentClass(UNKNOWN, UNKNOWN)

    def test_unrecognised_parts_are_unknown(self):
        """Test browser and system are classified independently."""
        assert classify_user_agent("curl/8.4.0") == (UNKNOWN, UNKNOWN)
        # OS known, browser not
        assert classify_user_agent("SomeBot/1.0 (Windows NT 10.0)") == (UNKNOWN, "Windows 10/11")

    def test_deterministic(self):
        """Test the same agent always classifies the same way."""
        for raw in (CHROME_WINDOWS, SAFARI_IPHONE, "", "garbage"):
            assert classify_user_agent(raw) == classify_user_agent(raw)


class TestNormalizeReferer:
    """Test referer host extraction."""

    def test_host_is_extracted(self):
        """Test the lower-cased host is kept and path, query and scheme are dropped."""
        assert normalize_referer("https://m.weibo.cn/abc") == "m.weibo.cn"
        assert normalize_referer("https://WWW.Google.com/search?q=x") == "www.google.com"
        assert normalize_referer("android-app://com.google.android.gm/") == "com.google.android.gm"

    def test_ports_and_ip_hosts_are_accepted(self):
        """Test valid ports and IP literals still yield a host."""
        assert normalize_referer("http://example.com:8080/x") == "example.com"
        assert normalize_referer("http://192.168.0.1/") == "192.168.0.1"
        assert normalize_referer("http://[2001:db8::1]:443/") == "2001:db8::1"
        assert normalize_referer("https://my_site.example.com./") == "my_site.example.com."

    @pytest.mark.parametrize("raw", [None, "", "  ", "直接访问", "未知", "unknown", "Unknown"])
    def test_direct_visits(self, raw):
        """Test missing referers and direct-visit markers."""
        assert normalize_referer(raw) == DIRECT_REFERER

    @pytest.mark.parametrize(
        "raw",
        [
            "not a url",
            "www.google.com/search",
            "http://",
            "http://[::1",
            "https://exa mple.com/",
            "http://example.com:99999/",
            "http://example.com:http/",
            "https://<script>/x",
            "http://-bad-.example.com/",
        ],
    )
    def test_unparseable_referers(self, raw):
        """Test values that are not URLs with a valid host and port are flagged invalid."""
        assert normalize_referer(raw) == INVALID_REFERER

    def test_deterministic(self):
        """Test the same referer always normalizes the same way."""
        for raw in ("https://m.weibo.cn/abc", "", "not a url"):
            assert normalize_referer(raw) == normalize_referer(raw)


class TestNormalizeCountry:
    """Test country normalization."""

    @pytest.mark.parametrize("raw", [None, "", "未知", "unknown", "XX"])
    def test_unknown(self, raw):
        """Test missing or placeholder countries become unknown."""
        assert normalize_country(raw) == UNKNOWN

    def test_codes_are_upper_cased(self):
        """Test codes are trimmed and upper-cased."""
        assert normalize_country("us") == "US"
        assert normalize_country(" CA ") == "CA"


class TestBuildDimensionKey:
    """Test classification of a whole visit."""

    def test_build_dimension_key(self):
        """Test every dimension of a visit is normalized into its key."""
        event = SimpleNamespace(
            redirect_id=7,
            timestamp=datetime(2024, 1, 1, 23, 59, 59),
            user_agent=SAFARI_IPHONE,
            referer="https://m.weibo.cn/abc",
            country=None,
        )

        assert build_dimension_key(event) == DimensionKey(
            date=date(2024, 1, 1),
            redirect_id=7,
            country=UNKNOWN,
            referer_domain="m.weibo.cn",
            browser="Safari",
            os="iOS",
        )
