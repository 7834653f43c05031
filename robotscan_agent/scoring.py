from __future__ import annotations

from .config import ScoringWeights
from .facts import ScanFacts, collect_facts
from .models import FILE_LABELS, ScanResult, ScoreBreakdown, ScoreFactor

# Files scored purely on presence, after robots.txt and llms.txt.
_PRESENCE_FILES = ("sitemap_xml", "security_txt", "manifest_json", "ads_txt", "humans_txt", "ai_txt")


def _clamp_score(score: int) -> int:
    return max(0, min(100, int(score)))


def status_for(score: int) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 70:
        return "Good"
    if score >= 50:
        return "Needs Work"
    return "Poor"


def _llms_quality_penalty(facts: ScanFacts, w: ScoringWeights) -> tuple[int, list[str]]:
    penalty = 0
    notes: list[str] = []
    if facts.llms_length < w.llms_min_length:
        penalty += w.llms_too_short
        notes.append(f"shorter than {w.llms_min_length} characters")
    if not facts.llms_has_headers:
        penalty += w.llms_no_headers
        notes.append("no Markdown headers")
    if not facts.llms_has_links:
        penalty += w.llms_no_links
        notes.append("no links")
    return min(penalty, w.llms_quality_max_penalty), notes


def _factors(scan: ScanResult, w: ScoringWeights) -> list[ScoreFactor]:
    facts = collect_facts(scan)
    factors: list[ScoreFactor] = [
        ScoreFactor(key="baseline", label="Baseline", points=w.baseline, detail="Every reachable site starts here"),
    ]

    def add(key: str, label: str, points: int, detail: str):
        factors.append(ScoreFactor(key=key, label=label, points=points, detail=detail))

    if scan.robots_txt_found:
        add("robots_txt", "robots.txt", w.robots_txt, "robots.txt is published")
        if facts.robots_declares_sitemap:
            add("robots_sitemap", "Sitemap in robots.txt", w.robots_sitemap, "robots.txt declares a Sitemap")

    if scan.llms_txt_found:
        add("llms_txt", "llms.txt", w.llms_txt, "llms.txt is published")
        penalty, notes = _llms_quality_penalty(facts, w)
        if penalty:
            add("llms_quality", "llms.txt quality", -penalty, "llms.txt has " + ", ".join(notes))

    for key in _PRESENCE_FILES:
        if scan.file_found(key):
            label = FILE_LABELS[key]
            add(key, label, w.file_points(key), f"{label} is published")

    if not scan.errors:
        add("no_errors", "No scan errors", w.no_errors, "The scan completed without errors")

    if facts.all_ai_blocked:
        n = len(facts.listed_ai_bots)
        add("ai_total_block", "AI crawlers blocked", -w.ai_total_block_penalty, f"All {n} listed AI crawlers are blocked")
    else:
        add("bot_health", "AI crawler access", w.bot_health, "At least one AI crawler may read the site")

    if facts.blocks_everyone:
        add("global_block", "Crawl blocked", -w.global_block_penalty, "robots.txt blocks every crawler from /")

    return factors


def score_breakdown(scan: ScanResult, weights: ScoringWeights | None = None) -> ScoreBreakdown:
    w = weights or ScoringWeights()
    factors = _factors(scan, w)
    score = _clamp_score(sum(f.points for f in factors))
    return ScoreBreakdown(score=score, status=status_for(score), factors=factors)


def calculate_scan_score(scan: ScanResult, weights: ScoringWeights | None = None) -> int:
    """0..100. Pure: depends only on the stored scan fields and the weights."""
    return score_breakdown(scan, weights).score
