"""
Dimension Normalizers

Pure functions that map raw visit attributes onto the stable dimension
values stored in daily summaries:

- classify_user_agent: raw User-Agent -> (browser, os)
- normalize_referer: raw Referer -> referring host or a sentinel
- normalize_country: raw country header -> ISO code or "Unknown"

Every function is total: malformed input degrades to a sentinel value
instead of raising. The rollup job and the raw-event fallback queries both
classify through this module, so the same raw row always lands in the same
summary bucket.
"""

import ipaddress
import re
from datetime import date
from typing import NamedTuple, Optional
from urllib.parse import urlsplit

# Sentinel values. They are part of the summary uniqueness key and of the
# exclusion filters, so they must never change.
UNKNOWN = "Unknown"
DIRECT_REFERER = "Direct/Unknown"
INVALID_REFERER = "Invalid Referer"

# Values the redirect handler records when no Referer header was sent
DIRECT_REFERER_VALUES = frozenset({"", "直接访问", "未知", "unknown", "direct", "n/a", "-"})

UNKNOWN_COUNTRY_VALUES = frozenset({"", "未知", "UNKNOWN", "XX", "N/A"})

# One DNS label; \w keeps internationalized hosts
HOST_LABEL = re.compile(r"^(?!-)[\w-]{1,63}(?<!-)$")


class UserAgentClass(NamedTuple):
    """Browser family and operating system of a visitor."""
    browser: str
    os: str


# Order matters: specific browsers are checked before the ones they imitate
# (Edge and Opera both claim to be Chrome, Chrome claims to be Safari).
BROWSER_PATTERNS = [
    (re.compile(r"Edg(?:e|A|iOS)?/", re.IGNORECASE), "Edge"),
    (re.compile(r"OPR/|Opera", re.IGNORECASE), "Opera"),
    (re.compile(r"SamsungBrowser/", re.IGNORECASE), "Samsung Internet"),
    (re.compile(r"UCBrowser/", re.IGNORECASE), "UC Browser"),
    (re.compile(r"Firefox/|FxiOS/", re.IGNORECASE), "Firefox"),
    (re.compile(r"Chromium/", re.IGNORECASE), "Chromium"),
    (re.compile(r"Chrome/|CriOS/", re.IGNORECASE), "Chrome"),
    (re.compile(r"Safari/", re.IGNORECASE), "Safari"),
    (re.compile(r"MSIE |Trident/", re.IGNORECASE), "Internet Explorer"),
]

# iOS user agents contain "like Mac OS X" and Android ones contain "Linux",
# so the mobile systems are matched first.
OS_PATTERNS = [
    (re.compile(r"iPhone|iPod", re.IGNORECASE), "iOS"),
    (re.compile(r"iPad", re.IGNORECASE), "iPadOS"),
    (re.compile(r"Android", re.IGNORECASE), "Android"),
    (re.compile(r"Windows NT 10\.0", re.IGNORECASE), "Windows 10/11"),
    (re.compile(r"Windows NT 6\.3", re.IGNORECASE), "Windows 8.1"),
    (re.compile(r"Windows NT 6\.2", re.IGNORECASE), "Windows 8"),
    (re.compile(r"Windows NT 6\.1", re.IGNORECASE), "Windows 7"),
    (re.compile(r"Windows", re.IGNORECASE), "Windows"),
    (re.compile(r"Macintosh|Mac OS X", re.IGNORECASE), "macOS"),
    (re.compile(r"CrOS", re.IGNORECASE), "Chrome OS"),
    (re.compile(r"Linux", re.IGNORECASE), "Linux"),
]


def _first_match(patterns, value: str) -> str:
    for pattern, name in patterns:
        if pattern.search(value):
            return name
    return UNKNOWN


def classify_user_agent(raw: Optional[str]) -> UserAgentClass:
    """
    Classify a User-Agent string into (browser, os).

    Args:
        raw: The User-Agent header value as recorded at redirect time

    Returns:
        UserAgentClass; either field is "Unknown" when no pattern matches

    Examples:
        >>> classify_user_agent("Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0 Safari/537.36")
        UserAgentClass(browser='Chrome', os='Windows 10/11')
        >>> classify_user_agent("")
        UserAgentClass(browser='Unknown', os='Unknown')
    """
    if not raw or not raw.strip():
        return UserAgentClass(UNKNOWN, UNKNOWN)

    return UserAgentClass(
        browser=_first_match(BROWSER_PATTERNS, raw),
        os=_first_match(OS_PATTERNS, raw),
    )


def _is_valid_host(host: str) -> bool:
    """True for a DNS name or an IP literal (urlsplit strips IPv6 brackets)."""
    if ":" in host:
        try:
            ipaddress.IPv6Address(host)
        except ValueError:
            return False
        return True

    labels = host[:-1].split(".") if host.endswith(".") else host.split(".")
    return all(HOST_LABEL.match(label) for label in labels)


def normalize_referer(raw: Optional[str]) -> str:
    """
    Reduce a Referer header to the host that sent the visitor.

    Returns:
        - "Direct/Unknown" for a missing referer or a recorded direct-visit marker
        - "Invalid Referer" when the value is not an absolute URL with a host
        - the lower-cased host otherwise ("https://m.weibo.cn/abc" -> "m.weibo.cn")
    """
    if raw is None:
        return DIRECT_REFERER

    value = raw.strip()
    if value.casefold() in DIRECT_REFERER_VALUES:
        return DIRECT_REFERER

    try:
        parts = urlsplit(value)
        host = parts.hostname
        # raises on a non-numeric or out-of-range port
        parts.port
    except ValueError:
        # e.g. unbalanced IPv6 brackets
        return INVALID_REFERER

    if not parts.scheme or not host or not _is_valid_host(host):
        return INVALID_REFERER

    return host


def normalize_country(raw: Optional[str]) -> str:
    """Return an upper-cased country code, or "Unknown" when none was recorded."""
    if raw is None:
        return UNKNOWN

    value = raw.strip().upper()
    if value in UNKNOWN_COUNTRY_VALUES:
        return UNKNOWN
    return value


class DimensionKey(NamedTuple):
    """
    Uniqueness key of a daily summary row.

    Field names match the columns of daily_visit_summaries so grouping code
    can address either representation by column name.
    """
    date: date
    redirect_id: int
    country: str
    referer_domain: str
    browser: str
    os: str


def build_dimension_key(event) -> DimensionKey:
    """
    Classify one raw visit into its summary bucket.

    ``event`` is anything exposing timestamp, redirect_id, user_agent,
    referer and country (a VisitEvent row in practice). The rollup job and
    the raw-event fallback queries both go through here.
    """
    agent = classify_user_agent(event.user_agent)
    return DimensionKey(
        date=event.timestamp.date(),
        redirect_id=event.redirect_id,
        country=normalize_country(event.country),
        referer_domain=normalize_referer(event.referer),
        browser=agent.browser,
        os=agent.os,
    )
