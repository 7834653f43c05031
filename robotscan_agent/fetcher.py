from __future__ import annotations

import json
import logging
import socket
import ssl
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import urlparse

import httpx

from .bots import BOT_ROSTER, get_bot_user_agent, looks_like_crawler
from .config import ScannerConfig
from .domain import normalize_scan_url
from .errors import LlmsParseError, RobotsParseError, ScanConnectivityError
from .llms_parser import parse_llms_txt
from .models import FILE_LABELS, BotAccessResult, ScanResult
from .robots_parser import ParsedRobotsTxt, parse_robots_txt

logger = logging.getLogger(__name__)


def _check_sitemap(body: str) -> str | None:
    if "<?xml" in body or "<urlset" in body or "<sitemapindex" in body:
        return None
    return "sitemap.xml was served but does not look like an XML sitemap"


def _check_security(body: str) -> str | None:
    if "contact:" in body.lower():
        return None
    return "security.txt was served but has no Contact field (required by RFC 9116)"


def _check_manifest(body: str) -> str | None:
    try:
        data = json.loads(body)
    except ValueError:
        return "manifest.json was served but is not valid JSON"
    if not isinstance(data, dict):
        return "manifest.json was served but is not a JSON object"
    return None


def _check_ads(body: str) -> str | None:
    for line in body.splitlines():
        line = line.split("#", 1)[0].strip()
        if line.count(",") >= 2:
            return None
    return "ads.txt was served but contains no seller records"


@dataclass(frozen=True)
class TechnicalFile:
    key: str
    paths: tuple[str, ...]
    accept: str = "text/plain,*/*;q=0.8"
    fallback_paths: tuple[str, ...] = ()
    scoped_to_base_path: bool = False
    check: Callable[[str], str | None] | None = None

    @property
    def label(self) -> str:
        return FILE_LABELS[self.key]


TECHNICAL_FILES: tuple[TechnicalFile, ...] = (
    TechnicalFile("robots_txt", ("/robots.txt",)),
    TechnicalFile("llms_txt", ("/llms.txt",), accept="text/markdown,text/plain,*/*;q=0.8", scoped_to_base_path=True),
    TechnicalFile("sitemap_xml", ("/sitemap.xml",), accept="application/xml,text/xml;q=0.9,*/*;q=0.8", check=_check_sitemap),
    TechnicalFile("security_txt", ("/.well-known/security.txt",), fallback_paths=("/security.txt",), check=_check_security),
    TechnicalFile(
        "manifest_json",
        ("/manifest.json",),
        accept="application/manifest+json,application/json;q=0.9,*/*;q=0.8",
        fallback_paths=("/site.webmanifest", "/manifest.webmanifest"),
        check=_check_manifest,
    ),
    TechnicalFile("ads_txt", ("/ads.txt",), check=_check_ads),
    TechnicalFile("humans_txt", ("/humans.txt",)),
    TechnicalFile("ai_txt", ("/ai.txt",)),
)


@dataclass
class FileFetch:
    key: str
    found: bool = False
    content: str | None = None
    source_url: str | None = None
    warnings: list[str] = field(default_factory=list)


_DNS_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "no address associated",
    "getaddrinfo",
    "name resolution",
    "dns",
)
_TLS_HINTS = ("certificate", "ssl", "tls", "unable to verify")
_NETWORK_HINTS = ("network", "unreachable", "connection reset", "fetch failed")


def _exception_chain(exc: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def classify_fetch_error(exc: BaseException) -> tuple[str, str]:
    """Map a request failure to (kind, user-facing message).

    Message prefixes are matched downstream; keep them stable.
    """
    chain = _exception_chain(exc)
    text = " ".join(f"{type(e).__name__} {e}" for e in chain).lower()

    if any(isinstance(e, socket.gaierror) for e in chain) or any(h in text for h in _DNS_HINTS):
        return "dns", "DNS resolution failed: Unable to resolve the domain name. Please check if the website URL is correct."

    if any(isinstance(e, (httpx.TimeoutException, TimeoutError)) for e in chain) or "timed out" in text or "timeout" in text:
        return "timeout", "Connection timeout: The website did not respond within the time limit. The server may be down or unreachable."

    if any(isinstance(e, ConnectionRefusedError) for e in chain) or "refused" in text:
        return "refused", "Connection refused: The website server is not accepting connections. The server may be down or blocking requests."

    if any(isinstance(e, ssl.SSLError) for e in chain) or any(h in text for h in _TLS_HINTS):
        return "tls", "SSL/TLS certificate error: Unable to establish a secure connection. The website's certificate may be invalid or expired."

    if any(isinstance(e, httpx.NetworkError) for e in chain) or any(h in text for h in _NETWORK_HINTS):
        return "network", "Network error: Unable to reach the website. Please check your internet connection and try again."

    return "unknown", f"Connection failed: {exc}"


def _base_path(path: str) -> str:
    """`/docs/` -> `/docs`, `/` -> ``, `/docs/index.html` -> `/docs`."""
    p = (path or "").rstrip("/")
    last = p.rsplit("/", 1)[-1]
    if "." in last:
        p = p[: -len(last)].rstrip("/")
    return p


def _candidate_urls(tech: TechnicalFile, origin: str, base_path: str, with_fallbacks: bool) -> list[str]:
    paths: list[str] = []
    if tech.scoped_to_base_path and base_path:
        paths.extend(f"{base_path}{p}" for p in tech.paths)
    paths.extend(tech.paths)
    if with_fallbacks:
        paths.extend(tech.fallback_paths)

    out: list[str] = []
    for p in paths:
        u = f"{origin}{p}"
        if u not in out:
            out.append(u)
    return out


def _get_before(client: httpx.Client, url: str, headers: dict[str, str], deadline: float) -> tuple[httpx.Response, str | None]:
    """GET `url`, giving up at the monotonic `deadline` even on a slow-dripping body.

    Returns the response and its decoded body, or None for a non-2xx status.
    """
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise httpx.ConnectTimeout("Per-file deadline exceeded", request=client.build_request("GET", url))

    with client.stream("GET", url, headers=headers, timeout=remaining) as res:
        if not res.is_success:
            return res, None
        chunks: list[bytes] = []
        for chunk in res.iter_bytes():
            chunks.append(chunk)
            if time.monotonic() > deadline:
                raise httpx.ReadTimeout("Per-file deadline exceeded while reading the body", request=res.request)
        return res, b"".join(chunks).decode(res.encoding or "utf-8", errors="replace")


def _fetch_file(client: httpx.Client, tech: TechnicalFile, origin: str, base_path: str, config: ScannerConfig) -> FileFetch:
    result = FileFetch(key=tech.key)
    failures: list[str] = []
    headers = {"user-agent": config.user_agent, "accept": tech.accept}
    # One budget shared by every candidate path.
    deadline = time.monotonic() + config.file_timeout_s

    for url in _candidate_urls(tech, origin, base_path, config.try_fallback_paths):
        try:
            res, body = _get_before(client, url, headers, deadline)
        except httpx.HTTPError as e:
            kind, message = classify_fetch_error(e)
            logger.warning("Fetching %s failed (%s): %s", url, kind, e)
            failures.append(f"Could not fetch {urlparse(url).path}: {message}")
            if time.monotonic() >= deadline:
                break
            continue

        if body is None:
            logger.info("%s not found at %s (%s)", tech.label, url, res.status_code)
            continue

        if not body.strip():
            logger.info("%s at %s is empty", tech.label, url)
            continue

        result.found = True
        result.content = body
        result.source_url = str(res.url)
        if tech.check is not None:
            note = tech.check(body)
            if note:
                result.warnings.append(note)
        logger.info("%s found at %s", tech.label, result.source_url)
        return result

    result.warnings.extend(failures)
    return result


def _detect_canonical_url(client: httpx.Client, url: str, config: ScannerConfig, warnings: list[str]) -> str:
    """Primary request. Connection-level failure here aborts the whole scan."""
    try:
        res = client.get(
            url,
            headers={
                "user-agent": config.user_agent,
                "accept": "text/html,application/xhtml+xml,*/*;q=0.8",
            },
            timeout=config.primary_timeout_s,
        )
    except httpx.HTTPError as e:
        kind, message = classify_fetch_error(e)
        logger.error("Primary request to %s failed (%s)", url, kind, exc_info=True)
        raise ScanConnectivityError(kind, message) from e

    if res.is_success:
        logger.info("Canonical URL for %s is %s", url, res.url)
        return str(res.url)

    logger.info("Primary request to %s returned %s; using the requested origin", url, res.status_code)
    if res.status_code >= 500:
        warnings.append(f"Website returned server error ({res.status_code}) but scan will continue")
    return url


def build_bot_permissions(parsed: ParsedRobotsTxt | None) -> dict[str, str]:
    permissions: dict[str, str] = {}
    for bot in BOT_ROSTER:
        permissions[bot.name] = parsed.permission_summary(bot.name) if parsed is not None else "Allow"

    if parsed is None:
        return permissions

    known = {name.lower() for name in permissions}
    for ua in parsed.user_agents_found:
        if ua == "*" or ua.lower() in known or not looks_like_crawler(ua):
            continue
        known.add(ua.lower())
        permissions[ua] = parsed.permission_summary(ua)
    return permissions


def _analyze_robots(content: str, warnings: list[str]) -> ParsedRobotsTxt | None:
    try:
        parsed = parse_robots_txt(content)
    except RobotsParseError as e:
        logger.warning("robots.txt could not be parsed: %s", e)
        warnings.append(f"robots.txt could not be parsed ({e}); all bots treated as allowed")
        return None

    if parsed.invalid_lines:
        n = len(parsed.invalid_lines)
        warnings.append(f"robots.txt: ignored {n} line{'s' if n != 1 else ''} that could not be parsed")
    if not parsed.sitemaps:
        warnings.append("robots.txt found but missing sitemap reference")
    return parsed


def _analyze_llms(content: str, warnings: list[str]) -> None:
    try:
        parse_llms_txt(content)
    except LlmsParseError as e:
        logger.warning("llms.txt could not be parsed: %s", e)
        warnings.append(f"llms.txt could not be parsed ({e})")


def scan_website(url: str, config: ScannerConfig | None = None, *, transport: httpx.BaseTransport | None = None) -> ScanResult:
    config = config or ScannerConfig()
    normalized_url = normalize_scan_url(url)

    errors: list[str] = []
    warnings: list[str] = []
    timings: dict[str, int] = {}

    def timed(name: str, fn):
        start = time.perf_counter()
        try:
            return fn()
        finally:
            timings[name] = int((time.perf_counter() - start) * 1000)

    with httpx.Client(timeout=httpx.Timeout(config.file_timeout_s), follow_redirects=True, transport=transport) as client:
        final_url = timed("primary", lambda: _detect_canonical_url(client, normalized_url, config, warnings))

        parsed_url = urlparse(final_url)
        origin = f"{parsed_url.scheme}://{parsed_url.netloc}"
        base_path = _base_path(parsed_url.path)

        fetched: dict[str, FileFetch] = {}

        def fan_out():
            with ThreadPoolExecutor(max_workers=min(config.max_workers, len(TECHNICAL_FILES))) as pool:
                futures = {
                    pool.submit(_fetch_file, client, tech, origin, base_path, config): tech.key
                    for tech in TECHNICAL_FILES
                }
                for fut in as_completed(futures):
                    key = futures[fut]
                    try:
                        fetched[key] = fut.result()
                    except Exception as e:
                        logger.exception("Unexpected failure fetching %s", FILE_LABELS[key])
                        fetched[key] = FileFetch(key=key, warnings=[f"Could not fetch {FILE_LABELS[key]}: {e}"])

        timed("files", fan_out)

    fields: dict[str, object] = {}
    failed = 0
    for tech in TECHNICAL_FILES:
        f = fetched[tech.key]
        fields[f"{tech.key}_found"] = f.found
        fields[f"{tech.key}_content"] = f.content if f.found else None
        warnings.extend(f.warnings)
        if not f.found and any(w.startswith("Could not fetch") for w in f.warnings):
            failed += 1

    if failed == len(TECHNICAL_FILES):
        errors.append("Every technical file request failed even though the website responded; results may be incomplete")

    parsed_robots: ParsedRobotsTxt | None = None
    robots_content = fields["robots_txt_content"]
    if isinstance(robots_content, str):
        parsed_robots = _analyze_robots(robots_content, warnings)

    llms_content = fields["llms_txt_content"]
    if isinstance(llms_content, str):
        _analyze_llms(llms_content, warnings)

    return ScanResult(
        **fields,
        bot_permissions=build_bot_permissions(parsed_robots),
        errors=errors,
        warnings=warnings,
        final_url=final_url,
        timings_ms=timings,
    )


def probe_bot_access(
    url: str,
    bot_name: str,
    config: ScannerConfig | None = None,
    *,
    transport: httpx.BaseTransport | None = None,
) -> BotAccessResult:
    """HEAD the URL while presenting as `bot_name`."""
    config = config or ScannerConfig()
    normalized_url = normalize_scan_url(url)
    user_agent = get_bot_user_agent(bot_name)

    try:
        with httpx.Client(timeout=config.primary_timeout_s, follow_redirects=True, transport=transport) as client:
            res = client.head(normalized_url, headers={"user-agent": user_agent})
    except httpx.HTTPError as e:
        kind, message = classify_fetch_error(e)
        logger.warning("Bot access probe for %s as %s failed (%s)", normalized_url, bot_name, kind)
        return BotAccessResult(
            bot=bot_name,
            user_agent=user_agent,
            status=0,
            accessible=False,
            status_text="Connection failed",
            error=message,
        )

    return BotAccessResult(
        bot=bot_name,
        user_agent=user_agent,
        status=res.status_code,
        accessible=res.is_success,
        status_text=res.reason_phrase,
    )
