from __future__ import annotations

import ipaddress
import re
from datetime import datetime, timedelta
from urllib.parse import urlparse, urlunparse

import tldextract

from .errors import InvalidUrlError

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z\d+.-]*://")
_IPV4_RE = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")

# Bundled public-suffix snapshot only: no network fetch, no disk cache.
_extract = tldextract.TLDExtract(cache_dir=None, suffix_list_urls=())


def _with_scheme(raw: str) -> str:
    value = raw.strip()
    if not _SCHEME_RE.match(value):
        value = "https://" + value
    return value


def normalize_scan_url(raw: str) -> str:
    value = (raw or "").strip()
    if not value:
        raise InvalidUrlError("Please provide a URL.")

    value = _with_scheme(value)
    try:
        parsed = urlparse(value)
        hostname = parsed.hostname
        parsed.port  # raises ValueError on a malformed port
    except ValueError:
        raise InvalidUrlError("Invalid URL format.")

    if parsed.scheme.lower() not in ("http", "https"):
        raise InvalidUrlError("Please use an http(s) website URL.")
    if not hostname or "." not in hostname or any(ch.isspace() for ch in hostname):
        raise InvalidUrlError("Please enter a valid website domain.")

    return urlunparse(parsed._replace(fragment=""))


def normalize_domain_for_cooldown(url: str) -> str | None:
    """Reduce a URL to the key used for scan cooldowns.

    `https://www.shop.example.co.uk/x` and `example.co.uk` give the same key,
    so varying subdomain, path or protocol does not reset a cooldown.
    """
    try:
        parsed = urlparse(_with_scheme(url or ""))
        hostname = parsed.hostname
    except ValueError:
        return None

    if parsed.scheme.lower() not in ("http", "https"):
        return None
    if not hostname:
        return None

    hostname = hostname.lower().rstrip(".")
    if not hostname or any(ch.isspace() for ch in hostname):
        return None

    if _IPV4_RE.match(hostname):
        return hostname
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        ip = None
    if ip is not None:
        return f"[{hostname}]" if ip.version == 6 else hostname

    if hostname == "localhost" or hostname.endswith(".localhost"):
        return hostname

    ext = _extract(hostname)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return hostname


def is_on_cooldown(last_scan_at: datetime | None, now: datetime, window: timedelta) -> bool:
    if last_scan_at is None:
        return False
    return now - last_scan_at < window
