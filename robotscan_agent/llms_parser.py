from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from .errors import LlmsParseError

_HTML_RE = re.compile(r"^\s*<\s*(!doctype\s+html|html)\b", re.IGNORECASE)
_H1_RE = re.compile(r"^#\s+(.+?)\s*#*$")
_H2_RE = re.compile(r"^##\s+(.+?)\s*#*$")
_LINK_RE = re.compile(r"\[([^\]]+)\]\((\S+?)\)(?:\s*:\s*(.+))?")
_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_URL_RE = re.compile(r"https?://[^\s)\]>]+")

_NON_SITE_URL_HINTS = (".xml", ".txt", ".md", "linkedin", "twitter", "github", "x.com/")


class LlmsLink(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    url: str
    note: str | None = None


class LlmsSection(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    lines: list[str] = Field(default_factory=list)
    links: list[LlmsLink] = Field(default_factory=list)


class ParsedLLMsTxt(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str | None = None
    summary: str | None = None
    sections: list[LlmsSection] = Field(default_factory=list)
    other: list[str] = Field(default_factory=list)
    contact_email: str | None = None
    website_url: str | None = None

    @computed_field
    @property
    def section_names(self) -> list[str]:
        return [s.name for s in self.sections]

    @computed_field
    @property
    def total_links(self) -> int:
        return sum(len(s.links) for s in self.sections)

    @property
    def is_structured(self) -> bool:
        return bool(self.title) and bool(self.sections)


def _first_site_url(line: str) -> str | None:
    for m in _URL_RE.finditer(line):
        url = m.group(0).rstrip(".,;:")
        if any(hint in url.lower() for hint in _NON_SITE_URL_HINTS):
            continue
        return url
    return None


def parse_llms_txt(content: str) -> ParsedLLMsTxt:
    """Split llms.txt into title, blockquote summary and ``##`` sections.

    Only an HTML document is rejected; anything else parses, possibly empty.
    """
    text = (content or "").lstrip("\ufeff")
    if _HTML_RE.search(text):
        raise LlmsParseError("llms.txt content looks like an HTML page, not Markdown")

    parsed = ParsedLLMsTxt()
    current: LlmsSection | None = None
    summary_lines: list[str] = []
    summary_open = True

    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            if summary_lines:
                summary_open = False
            continue

        if parsed.contact_email is None:
            m = _EMAIL_RE.search(line)
            if m:
                parsed.contact_email = m.group(0)
        if parsed.website_url is None:
            parsed.website_url = _first_site_url(line)

        h2 = _H2_RE.match(line)
        if h2:
            current = LlmsSection(name=h2.group(1).strip())
            parsed.sections.append(current)
            summary_open = False
            continue

        h1 = _H1_RE.match(line)
        if h1 and parsed.title is None and current is None:
            parsed.title = h1.group(1).strip()
            continue

        if current is None and summary_open and line.startswith(">"):
            summary_lines.append(line.lstrip(">").strip())
            continue
        if summary_lines:
            summary_open = False

        if current is None:
            parsed.other.append(line)
            continue

        current.lines.append(line)
        for m in _LINK_RE.finditer(line):
            note = (m.group(3) or "").strip() or None
            current.links.append(LlmsLink(title=m.group(1).strip(), url=m.group(2).strip(), note=note))

    if summary_lines:
        parsed.summary = " ".join(s for s in summary_lines if s) or None

    return parsed


def summarize_llms_txt_import(parsed: ParsedLLMsTxt) -> str:
    parts: list[str] = []
    if parsed.title:
        parts.append("Title")
    if parsed.summary:
        parts.append("Summary")
    if parsed.sections:
        names = ", ".join(parsed.section_names[:5])
        if len(parsed.sections) > 5:
            names += ", …"
        n = len(parsed.sections)
        parts.append(f"{n} section{'s' if n != 1 else ''} ({names})")
    if parsed.total_links:
        n = parsed.total_links
        parts.append(f"{n} link{'s' if n != 1 else ''}")
    if parsed.contact_email:
        parts.append("Contact Email")

    if not parts:
        return "Basic llms.txt structure detected"
    return f"Found: {', '.join(parts)}"
