from __future__ import annotations

import re
from dataclasses import dataclass

from .bots import is_ai_bot
from .errors import LlmsParseError, RobotsParseError
from .llms_parser import ParsedLLMsTxt, parse_llms_txt
from .models import ScanResult
from .robots_parser import ParsedRobotsTxt, parse_robots_txt, permission_level

_MD_HEADER_RE = re.compile(r"^\s*#{1,6}\s", re.MULTILINE)
_MD_LINK_RE = re.compile(r"\[[^\]]+\]\([^)]+\)|https?://\S+")


@dataclass(frozen=True)
class ScanFacts:
    """Derived view of a scan shared by the scorer and the recommendation rules.

    Rebuilt from stored content alone, so old snapshots re-derive identically.
    """

    robots: ParsedRobotsTxt | None
    llms: ParsedLLMsTxt | None
    listed_ai_bots: tuple[str, ...]
    blocked_ai_bots: tuple[str, ...]
    llms_length: int
    llms_has_headers: bool
    llms_has_links: bool

    @property
    def all_ai_blocked(self) -> bool:
        return bool(self.listed_ai_bots) and len(self.blocked_ai_bots) == len(self.listed_ai_bots)

    @property
    def robots_declares_sitemap(self) -> bool:
        return self.robots is not None and bool(self.robots.sitemaps)

    @property
    def blocks_everyone(self) -> bool:
        return self.robots is not None and self.robots.blocks_everyone


def collect_facts(scan: ScanResult) -> ScanFacts:
    robots: ParsedRobotsTxt | None = None
    if scan.robots_txt_found and scan.robots_txt_content:
        try:
            robots = parse_robots_txt(scan.robots_txt_content)
        except RobotsParseError:
            robots = None

    llms: ParsedLLMsTxt | None = None
    llms_text = scan.llms_txt_content if scan.llms_txt_found else None
    if llms_text:
        try:
            llms = parse_llms_txt(llms_text)
        except LlmsParseError:
            llms = None

    listed = tuple(name for name in scan.bot_permissions if is_ai_bot(name))
    blocked = tuple(name for name in listed if permission_level(scan.bot_permissions[name]) == "block")

    text = llms_text or ""
    return ScanFacts(
        robots=robots,
        llms=llms,
        listed_ai_bots=listed,
        blocked_ai_bots=blocked,
        llms_length=len(text.strip()),
        llms_has_headers=bool(_MD_HEADER_RE.search(text)),
        llms_has_links=bool(_MD_LINK_RE.search(text)),
    )
