import pytest

from robotscan_agent.errors import LlmsParseError
from robotscan_agent.llms_parser import parse_llms_txt, summarize_llms_txt_import

ACME = """# Acme Tools
> Hand tools for makers.
> Shipped worldwide.

Some intro text.

## Products
- [Widget](https://acme.test/widget): the classic widget
- [Gadget](https://acme.test/gadget)
### Accessories
- spare parts

## Contact
Email: hello@acme.test
"""


def test_title_summary_and_sections():
    parsed = parse_llms_txt(ACME)
    assert parsed.title == "Acme Tools"
    assert parsed.summary == "Hand tools for makers. Shipped worldwide."
    assert parsed.section_names == ["Products", "Contact"]
    assert parsed.other == ["Some intro text."]
    assert parsed.is_structured


def test_links_and_subheadings_stay_in_their_section():
    products = parse_llms_txt(ACME).sections[0]
    assert [link.title for link in products.links] == ["Widget", "Gadget"]
    assert products.links[0].note == "the classic widget"
    assert products.links[1].note is None
    assert "### Accessories" in products.lines


def test_contact_details():
    parsed = parse_llms_txt(ACME)
    assert parsed.contact_email == "hello@acme.test"
    assert parsed.website_url == "https://acme.test/widget"
    assert parsed.total_links == 2


def test_minimal_file():
    parsed = parse_llms_txt("# Title\n## Products\n- widget")
    assert parsed.title == "Title"
    assert parsed.section_names == ["Products"]
    assert parsed.total_links == 0
    assert parsed.is_structured


def test_plain_text_is_unstructured_but_parses():
    parsed = parse_llms_txt("just some words")
    assert parsed.title is None
    assert not parsed.is_structured
    assert parsed.other == ["just some words"]


def test_html_is_rejected():
    with pytest.raises(LlmsParseError):
        parse_llms_txt("<html><head></head><body>404</body></html>")


def test_import_summary():
    assert summarize_llms_txt_import(parse_llms_txt(ACME)) == (
        "Found: Title, Summary, 2 sections (Products, Contact), 2 links, Contact Email"
    )
    assert summarize_llms_txt_import(parse_llms_txt("")) == "Basic llms.txt structure detected"
