import pytest

from robotscan_agent.errors import RobotsParseError
from robotscan_agent.robots_parser import parse_robots_txt, permission_level, summarize_robots_txt_import


def test_longest_match_wins():
    parsed = parse_robots_txt("User-agent: *\nDisallow: /a\nAllow: /a/public\n")
    assert parsed.is_allowed("GPTBot", "/a/public/x")
    assert not parsed.is_allowed("GPTBot", "/a/private")


def test_allow_wins_a_tie():
    parsed = parse_robots_txt("User-agent: *\nDisallow: /page\nAllow: /page\n")
    assert parsed.is_allowed("GPTBot", "/page")


def test_overridden_disallow_is_left_out_of_the_summary():
    parsed = parse_robots_txt("User-agent: *\nDisallow: /\nAllow: /\n")
    assert parsed.is_allowed("GPTBot", "/")
    assert parsed.permission_summary("GPTBot") == "Allow"
    assert permission_level(parsed.permission_summary("GPTBot")) == "allow"

    parsed = parse_robots_txt("User-agent: *\nDisallow: /a\nDisallow: /b\nAllow: /b\n")
    assert parsed.permission_summary("GPTBot") == "Disallow: /a"


def test_wildcard_disallow_stays_in_the_summary():
    parsed = parse_robots_txt("User-agent: *\nDisallow: /*.pdf$\n")
    assert parsed.permission_summary("GPTBot") == "Disallow: /*.pdf$"


def test_wildcard_group_is_the_fallback():
    parsed = parse_robots_txt("User-agent: *\nDisallow: /private\n")
    assert parsed.is_allowed("GPTBot", "/")
    assert not parsed.is_allowed("GPTBot", "/private")
    assert parsed.permission_summary("GPTBot") == "Disallow: /private"


def test_named_group_overrides_wildcard():
    parsed = parse_robots_txt(
        "User-agent: GPTBot\nDisallow: /\n\nUser-agent: *\nAllow: /\n"
    )
    assert parsed.permission_summary("GPTBot") == "Disallow"
    assert parsed.permission_summary("gptbot/1.2") == "Disallow"
    assert parsed.permission_summary("Googlebot") == "Allow"


def test_consecutive_user_agents_share_rules():
    parsed = parse_robots_txt("User-agent: GPTBot\nUser-agent: CCBot\nDisallow: /\n")
    assert len(parsed.groups) == 1
    assert parsed.permission_summary("GPTBot") == "Disallow"
    assert parsed.permission_summary("CCBot") == "Disallow"


def test_user_agent_after_rules_starts_a_new_group():
    parsed = parse_robots_txt("User-agent: A\nDisallow: /x\nUser-agent: B\nDisallow: /y\n")
    assert [g.user_agents for g in parsed.groups] == [["A"], ["B"]]


def test_path_wildcards_and_end_anchor():
    parsed = parse_robots_txt("User-agent: *\nDisallow: /*.pdf$\n")
    assert not parsed.is_allowed("GPTBot", "/files/a.pdf")
    assert parsed.is_allowed("GPTBot", "/files/a.pdf?download=1")


def test_empty_disallow_allows_everything():
    parsed = parse_robots_txt("User-agent: *\nDisallow:\n")
    assert parsed.permission_summary("GPTBot") == "Allow"
    assert parsed.default_access == "allow-all"


def test_blocked_root_with_exceptions():
    parsed = parse_robots_txt("User-agent: *\nDisallow: /\nAllow: /public\n")
    assert parsed.blocks_everyone
    assert parsed.permission_summary("GPTBot") == "Disallow (Allow: /public)"
    assert permission_level(parsed.permission_summary("GPTBot")) == "block"


def test_full_block():
    parsed = parse_robots_txt("User-agent: *\nDisallow: /\n")
    assert parsed.blocks_everyone
    assert parsed.default_access == "block-all"


def test_comments_bom_sitemaps_and_crawl_delay():
    parsed = parse_robots_txt(
        "\ufeff# site rules\n"
        "User-agent: *   # everyone\n"
        "Crawl-delay: 5\n"
        "Disallow: /tmp\n"
        "Sitemap: https://example.com/sitemap.xml\n"
    )
    assert parsed.sitemaps == ["https://example.com/sitemap.xml"]
    assert parsed.crawl_delay == 5
    assert parsed.disallowed_paths == ["/tmp"]
    assert parsed.invalid_lines == []


def test_unparseable_lines_are_recorded():
    parsed = parse_robots_txt("User-agent: *\nDisallow: /x\nfoo bar\nUnknown: y\nCrawl-delay: soon\n")
    assert parsed.invalid_lines == [3, 4, 5]
    assert parsed.permission_summary("GPTBot") == "Disallow: /x"


def test_blank_content_is_empty_not_an_error():
    parsed = parse_robots_txt("  \n")
    assert parsed.groups == []
    assert parsed.permission_summary("GPTBot") == "Allow"


def test_html_is_rejected():
    with pytest.raises(RobotsParseError):
        parse_robots_txt("<!DOCTYPE html><html><body>Not here</body></html>")


def test_content_without_directives_is_rejected():
    with pytest.raises(RobotsParseError):
        parse_robots_txt("hello world\nnothing to see\n")


@pytest.mark.parametrize(
    "summary, level",
    [
        ("Allow", "allow"),
        ("Allowed", "allow"),
        ("Disallow", "block"),
        ("Blocked", "block"),
        ("Disallow (Allow: /public)", "block"),
        ("Disallow: /admin", "partial"),
        ("Restricted", "partial"),
        ("-", "unknown"),
        ("", "unknown"),
    ],
)
def test_permission_level(summary, level):
    assert permission_level(summary) == level


def test_import_summary():
    parsed = parse_robots_txt(
        "User-agent: *\nDisallow: /admin\nSitemap: https://h/sitemap.xml\n\n"
        "User-agent: GPTBot\nDisallow: /\n"
    )
    assert summarize_robots_txt_import(parsed) == (
        "Found: 2 user-agent groups, Sitemap URL, 1 Disallow rules, 1 fully blocked agent"
    )
    assert parsed.user_agents_found == ["*", "GPTBot"]


def test_import_summary_for_empty_file():
    assert summarize_robots_txt_import(parse_robots_txt("")) == "Basic robots.txt structure detected"
