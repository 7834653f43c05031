"""robots.txt tokenizer and permission lookup.

Groups follow RFC 9309: consecutive ``User-agent`` lines share the rules that
follow them, a crawler uses the group(s) naming its product token and falls
back to ``*``, and the longest matching rule wins with ``Allow`` winning ties.
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from .errors import RobotsParseError

PermissionLevel = Literal["allow", "partial", "block", "unknown"]

_HTML_RE = re.compile(r"<\s*(!doctype\s+html|html|head|body)\b", re.IGNORECASE)

_KNOWN_IGNORED_DIRECTIVES = {"host", "clean-param", "request-rate", "visit-time", "noindex", "content-signal"}


class RobotsRule(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    directive: Literal["allow", "disallow"]
    path: str


class RobotsGroup(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_agents: list[str] = Field(default_factory=list)
    rules: list[RobotsRule] = Field(default_factory=list)
    crawl_delay: float | None = None

    def applies_to(self, agent_token: str) -> bool:
        return any(ua.lower() == agent_token for ua in self.user_agents)

    @property
    def is_wildcard(self) -> bool:
        return any(ua == "*" for ua in self.user_agents)


class ParsedRobotsTxt(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    groups: list[RobotsGroup] = Field(default_factory=list)
    sitemaps: list[str] = Field(default_factory=list)
    invalid_lines: list[int] = Field(default_factory=list)

    # --- lookup -------------------------------------------------------------

    def groups_for(self, agent: str) -> list[RobotsGroup]:
        token = _product_token(agent)
        matched = [g for g in self.groups if token and g.applies_to(token)]
        if matched:
            return matched
        return [g for g in self.groups if g.is_wildcard]

    def rules_for(self, agent: str) -> list[RobotsRule]:
        return [r for g in self.groups_for(agent) for r in g.rules]

    def is_allowed(self, agent: str, path: str = "/") -> bool:
        target = path or "/"
        if not target.startswith("/"):
            target = "/" + target

        best: RobotsRule | None = None
        best_len = -1
        for rule in self.rules_for(agent):
            # Empty Disallow/Allow values carry no restriction.
            if not rule.path:
                continue
            if not _pattern_matches(rule.path, target):
                continue
            length = len(rule.path)
            if length > best_len or (length == best_len and rule.directive == "allow"):
                best = rule
                best_len = length
        return best is None or best.directive == "allow"

    def permission_summary(self, agent: str) -> str:
        rules = self.rules_for(agent)
        # A Disallow overridden by an equal or longer Allow has no effect.
        disallows = _dedupe(
            r.path for r in rules
            if r.directive == "disallow" and r.path and not self.is_allowed(agent, _sample_path(r.path))
        )
        allows = _dedupe(r.path for r in rules if r.directive == "allow" and r.path)

        if not disallows:
            return "Allow"
        if not self.is_allowed(agent, "/"):
            exceptions = [p for p in allows if p != "/"]
            if exceptions:
                return f"Disallow (Allow: {', '.join(exceptions)})"
            return "Disallow"
        return f"Disallow: {', '.join(disallows)}"

    # --- builder-import view -------------------------------------------------

    @computed_field
    @property
    def user_agents_found(self) -> list[str]:
        return _dedupe(ua for g in self.groups for ua in g.user_agents)

    @computed_field
    @property
    def disallowed_paths(self) -> list[str]:
        return _dedupe(r.path for g in self.groups for r in g.rules if r.directive == "disallow" and r.path and r.path != "/")

    @computed_field
    @property
    def allowed_paths(self) -> list[str]:
        return _dedupe(r.path for g in self.groups for r in g.rules if r.directive == "allow" and r.path and r.path != "/")

    @computed_field
    @property
    def total_rules(self) -> int:
        return len(self.disallowed_paths) + len(self.allowed_paths)

    @computed_field
    @property
    def crawl_delay(self) -> float | None:
        for g in self.groups:
            if g.crawl_delay is not None:
                return g.crawl_delay
        return None

    @property
    def blocks_everyone(self) -> bool:
        """``User-agent: *`` is denied the site root."""
        wildcard = [g for g in self.groups if g.is_wildcard]
        if not wildcard:
            return False
        return not self.is_allowed("*", "/")

    @computed_field
    @property
    def default_access(self) -> Literal["allow-all", "block-all", "custom"]:
        if self.blocks_everyone and not self.allowed_paths:
            return "block-all"
        if self.total_rules == 0 and not self.blocks_everyone:
            return "allow-all"
        return "custom"

    def fully_blocked_agents(self) -> list[str]:
        out: list[str] = []
        for ua in self.user_agents_found:
            if ua == "*":
                continue
            if self.permission_summary(ua) == "Disallow":
                out.append(ua)
        return out


def _dedupe(values) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


def _product_token(agent: str) -> str:
    # "GPTBot/1.0" -> "gptbot"
    return (agent or "").strip().split("/", 1)[0].strip().lower()


def _sample_path(pattern: str) -> str:
    # Shortest path the pattern matches: "/*.pdf$" -> "/.pdf"
    body = pattern[:-1] if pattern.endswith("$") else pattern
    return body.replace("*", "")


@lru_cache(maxsize=1024)
def _compile_pattern(pattern: str) -> re.Pattern[str]:
    anchored = pattern.endswith("$")
    body = pattern[:-1] if anchored else pattern
    regex = ".*".join(re.escape(part) for part in body.split("*"))
    return re.compile(regex + ("$" if anchored else ""))


def _pattern_matches(pattern: str, path: str) -> bool:
    return _compile_pattern(pattern).match(path) is not None


def parse_robots_txt(content: str) -> ParsedRobotsTxt:
    parsed = ParsedRobotsTxt()
    text = (content or "").lstrip("\ufeff")
    if not text.strip():
        return parsed

    if _HTML_RE.search(text[:2048]):
        raise RobotsParseError("robots.txt content looks like an HTML page, not a robots.txt file")

    current: RobotsGroup | None = None
    current_has_rules = False
    recognized = 0

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue

        if ":" not in line:
            parsed.invalid_lines.append(lineno)
            continue

        key, value = line.split(":", 1)
        key = key.strip().lower()
        value = value.strip()

        if key in ("user-agent", "useragent"):
            recognized += 1
            if current is None or current_has_rules:
                current = RobotsGroup()
                parsed.groups.append(current)
                current_has_rules = False
            if value:
                current.user_agents.append(value)
        elif key in ("allow", "disallow"):
            if current is None:
                parsed.invalid_lines.append(lineno)
                continue
            recognized += 1
            current.rules.append(RobotsRule(directive=key, path=value))
            current_has_rules = True
        elif key == "crawl-delay":
            if current is None:
                parsed.invalid_lines.append(lineno)
                continue
            try:
                delay = float(value)
            except ValueError:
                parsed.invalid_lines.append(lineno)
                continue
            recognized += 1
            current.crawl_delay = delay
            current_has_rules = True
        elif key == "sitemap":
            recognized += 1
            if value:
                parsed.sitemaps.append(value)
        elif key in _KNOWN_IGNORED_DIRECTIVES:
            recognized += 1
        else:
            parsed.invalid_lines.append(lineno)

    if recognized == 0:
        raise RobotsParseError("robots.txt contains no recognizable directives")

    return parsed


def permission_level(summary: str | None) -> PermissionLevel:
    s = (summary or "").strip().lower()
    if not s or s == "-":
        return "unknown"
    if s in ("allow", "allowed"):
        return "allow"
    if s in ("disallow", "blocked") or s.startswith("disallow ("):
        return "block"
    if s.startswith("disallow:") or s.startswith("restricted"):
        return "partial"
    if "disallow" in s or "block" in s:
        return "partial"
    return "allow"


def summarize_robots_txt_import(parsed: ParsedRobotsTxt) -> str:
    parts: list[str] = []

    groups = len(parsed.groups)
    if groups:
        parts.append(f"{groups} user-agent group{'s' if groups != 1 else ''}")
    if parsed.sitemaps:
        parts.append("Sitemap URL")
    if parsed.crawl_delay is not None:
        parts.append("Crawl Delay")
    if parsed.disallowed_paths:
        parts.append(f"{len(parsed.disallowed_paths)} Disallow rules")
    if parsed.allowed_paths:
        parts.append(f"{len(parsed.allowed_paths)} Allow rules")

    blocked = parsed.fully_blocked_agents()
    if blocked:
        parts.append(f"{len(blocked)} fully blocked agent{'s' if len(blocked) != 1 else ''}")

    if not parts:
        return "Basic robots.txt structure detected"
    return f"Found: {', '.join(parts)}"
