from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .bots import MAJOR_AI_BOTS
from .facts import ScanFacts, collect_facts
from .models import OptimizationRecommendation, ScanResult
from .robots_parser import permission_level

HIGH_CRAWL_DELAY_S = 10


@dataclass(frozen=True)
class Rule:
    key: str
    category: str
    severity: str
    title: str
    description: str | Callable[[ScanResult, ScanFacts], str]
    recommendation: str
    impact: str
    applies: Callable[[ScanResult, ScanFacts], bool]

    def build(self, scan: ScanResult, facts: ScanFacts) -> OptimizationRecommendation:
        description = self.description(scan, facts) if callable(self.description) else self.description
        return OptimizationRecommendation(
            key=self.key,
            category=self.category,
            severity=self.severity,
            title=self.title,
            description=description,
            recommendation=self.recommendation,
            impact=self.impact,
        )


def _max_crawl_delay(facts: ScanFacts) -> float | None:
    if facts.robots is None:
        return None
    delays = [g.crawl_delay for g in facts.robots.groups if g.crawl_delay is not None]
    return max(delays) if delays else None


def _major_bots_without_rules(facts: ScanFacts) -> list[str]:
    if facts.robots is None:
        return []
    return [
        name for name in MAJOR_AI_BOTS
        if not any(g.applies_to(name.lower()) for g in facts.robots.groups)
    ]


def _restricted_ai_bots(scan: ScanResult, facts: ScanFacts) -> list[str]:
    return [
        name for name in facts.listed_ai_bots
        if permission_level(scan.bot_permissions[name]) in ("block", "partial")
    ]


# Output order follows this table.
RULES: tuple[Rule, ...] = (
    Rule(
        key="missing_robots_txt",
        category="robots_txt",
        severity="high",
        title="Missing robots.txt File",
        description="Your website does not have a robots.txt file. This file controls how search engines and AI bots access your content.",
        recommendation='Create a robots.txt file in your website root. Start with "User-agent: *" and an empty "Disallow:" to allow all bots, then tighten as needed.',
        impact="Without robots.txt you have no control over crawling behavior.",
        applies=lambda scan, facts: not scan.robots_txt_found,
    ),
    Rule(
        key="complete_crawl_block",
        category="robots_txt",
        severity="high",
        title="Complete Crawl Blocking",
        description='Your robots.txt blocks every bot from all content with "User-agent: *" and "Disallow: /".',
        recommendation="Unless intentional, remove this rule. Block specific paths with targeted Disallow rules instead.",
        impact="Search engines and AI assistants cannot index the site, so it disappears from results and answers.",
        applies=lambda scan, facts: facts.blocks_everyone,
    ),
    Rule(
        key="all_ai_bots_blocked",
        category="bot_permissions",
        severity="high",
        title="All AI Crawlers Blocked",
        description=lambda scan, facts: f"Every listed AI crawler is blocked ({', '.join(facts.blocked_ai_bots)}).",
        recommendation="If you want to appear in AI answers, allow at least the assistants' retrieval bots such as ChatGPT-User and PerplexityBot.",
        impact="AI assistants cannot cite or summarize your content.",
        applies=lambda scan, facts: facts.all_ai_blocked,
    ),
    Rule(
        key="missing_llms_txt",
        category="llms_txt",
        severity="medium",
        title="Missing llms.txt File",
        description="Your website lacks an llms.txt file. This emerging standard helps AI systems understand what your site is about.",
        recommendation="Create an llms.txt with a title, a short summary and sections linking to your most important pages.",
        impact="AI systems fall back to general robots.txt rules and guesswork about your content.",
        applies=lambda scan, facts: not scan.llms_txt_found,
    ),
    Rule(
        key="robots_missing_sitemap",
        category="robots_txt",
        severity="medium",
        title="No Sitemap Reference",
        description="Your robots.txt file does not include a sitemap reference.",
        recommendation='Add a "Sitemap: https://yoursite.com/sitemap.xml" line so crawlers can discover all your pages.',
        impact="Crawlers may miss important pages.",
        applies=lambda scan, facts: scan.robots_txt_found and not facts.robots_declares_sitemap,
    ),
    Rule(
        key="missing_sitemap_xml",
        category="sitemap_xml",
        severity="medium",
        title="Missing sitemap.xml",
        description="No sitemap.xml was found at the site root.",
        recommendation="Publish an XML sitemap listing your canonical URLs and reference it from robots.txt.",
        impact="New and deep pages are discovered more slowly.",
        applies=lambda scan, facts: not scan.sitemap_xml_found,
    ),
    Rule(
        key="high_crawl_delay",
        category="robots_txt",
        severity="low",
        title="High Crawl Delay",
        description=lambda scan, facts: f"Your robots.txt specifies a crawl delay of {_max_crawl_delay(facts):g} seconds.",
        recommendation="Reduce Crawl-delay to 1-5 seconds or remove it. Modern crawlers rate-limit themselves.",
        impact="Excessive crawl delays slow down indexing.",
        applies=lambda scan, facts: (_max_crawl_delay(facts) or 0) > HIGH_CRAWL_DELAY_S,
    ),
    Rule(
        key="unstructured_llms_txt",
        category="llms_txt",
        severity="low",
        title="Unstructured llms.txt",
        description="Your llms.txt has no top-level title or no ## sections.",
        recommendation='Start with "# Site Name", add a "> summary" line, then group links under "## Section" headings.',
        impact="Poorly structured llms.txt may be ignored by AI systems.",
        applies=lambda scan, facts: scan.llms_txt_found and (facts.llms is None or not facts.llms.is_structured),
    ),
    Rule(
        key="llms_txt_no_links",
        category="llms_txt",
        severity="low",
        title="llms.txt Has No Links",
        description="Your llms.txt does not link to any pages.",
        recommendation='List key pages as Markdown links, e.g. "- [Pricing](https://yoursite.com/pricing): plans and costs".',
        impact="AI systems cannot find the pages you want them to read.",
        applies=lambda scan, facts: scan.llms_txt_found and not facts.llms_has_links,
    ),
    Rule(
        key="missing_major_ai_bot_rules",
        category="bot_permissions",
        severity="low",
        title="Missing Major AI Bot Rules",
        description=lambda scan, facts: (
            "Your robots.txt does not explicitly define rules for some major AI bots: "
            + ", ".join(_major_bots_without_rules(facts))
        ),
        recommendation="Add User-agent groups for the major AI bots so each one gets the access you intend.",
        impact="These bots follow your User-agent: * rules, which may not match your AI content preferences.",
        applies=lambda scan, facts: scan.robots_txt_found and bool(_major_bots_without_rules(facts)),
    ),
    Rule(
        key="ai_restricted_without_llms_txt",
        category="general",
        severity="low",
        title="AI Restrictions Without llms.txt",
        description=lambda scan, facts: (
            f"You restrict AI bots in robots.txt ({', '.join(_restricted_ai_bots(scan, facts))}) "
            "but don't have an llms.txt file."
        ),
        recommendation="Create an llms.txt to describe what AI systems may use and where to find it.",
        impact="robots.txt alone is a blunt tool for AI-specific usage preferences.",
        applies=lambda scan, facts: not scan.llms_txt_found and bool(_restricted_ai_bots(scan, facts)),
    ),
    Rule(
        key="missing_security_txt",
        category="security_txt",
        severity="low",
        title="Missing security.txt",
        description="No security.txt was found at /.well-known/security.txt.",
        recommendation="Publish a security.txt (RFC 9116) with at least a Contact and an Expires field.",
        impact="Security researchers have no documented way to report vulnerabilities.",
        applies=lambda scan, facts: not scan.security_txt_found,
    ),
    Rule(
        key="missing_ai_txt",
        category="ai_txt",
        severity="low",
        title="Missing ai.txt",
        description="No ai.txt was found at the site root.",
        recommendation="Publish an ai.txt stating your preferences for AI training and generation use.",
        impact="AI vendors that honour ai.txt see no explicit policy.",
        applies=lambda scan, facts: not scan.ai_txt_found,
    ),
)


def generate_optimization_recommendations(scan: ScanResult) -> list[OptimizationRecommendation]:
    facts = collect_facts(scan)
    return [rule.build(scan, facts) for rule in RULES if rule.applies(scan, facts)]
