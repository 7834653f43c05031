from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Bot:
    name: str
    user_agent: str
    ai: bool


# Order is the order of the bot-permission matrix.
BOT_ROSTER: tuple[Bot, ...] = (
    Bot("GPTBot", "Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; GPTBot/1.0; +https://openai.com/gptbot)", True),
    Bot("ChatGPT-User", "Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; ChatGPT-User/1.0; +https://openai.com/bot)", True),
    Bot("OAI-SearchBot", "Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko); compatible; OAI-SearchBot/1.0; +https://openai.com/searchbot", True),
    Bot("CCBot", "CCBot/2.0 (+https://commoncrawl.org/faq/)", True),
    Bot("anthropic-ai", "anthropic-ai", True),
    Bot("ClaudeBot", "Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; ClaudeBot/1.0; +claudebot@anthropic.com)", True),
    Bot("Claude-Web", "Claude-Web/1.0", True),
    Bot("Google-Extended", "Google-Extended", True),
    Bot("PerplexityBot", "Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; PerplexityBot/1.0; +https://perplexity.ai/perplexitybot)", True),
    Bot("Googlebot", "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)", False),
    Bot("Bingbot", "Mozilla/5.0 (compatible; bingbot/2.0; +http://www.bing.com/bingbot.htm)", False),
    Bot("Slurp", "Mozilla/5.0 (compatible; Yahoo! Slurp; http://help.yahoo.com/help/us/ysearch/slurp)", False),
)

BOT_USER_AGENTS: dict[str, str] = {b.name: b.user_agent for b in BOT_ROSTER}

AI_BOT_NAMES: frozenset[str] = frozenset(b.name.lower() for b in BOT_ROSTER if b.ai)

# Bots whose absence of an explicit robots.txt group is worth a recommendation.
MAJOR_AI_BOTS: tuple[str, ...] = ("GPTBot", "ChatGPT-User", "ClaudeBot", "anthropic-ai", "Google-Extended", "PerplexityBot")

_CRAWLER_HINTS = ("bot", "crawler", "spider")


def get_bot_user_agent(bot_name: str) -> str:
    """Wire-level user agent for a roster bot; unknown names are sent as-is."""
    if bot_name in BOT_USER_AGENTS:
        return BOT_USER_AGENTS[bot_name]
    lowered = bot_name.lower()
    for b in BOT_ROSTER:
        if b.name.lower() == lowered:
            return b.user_agent
    return bot_name


def is_ai_bot(bot_name: str) -> bool:
    return (bot_name or "").lower() in AI_BOT_NAMES


def looks_like_crawler(user_agent: str) -> bool:
    lowered = (user_agent or "").lower()
    return any(h in lowered for h in _CRAWLER_HINTS)
