"""Tests for the ``Html`` helper exposed to templates."""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from razor_pages import EngineConfig, ViewEngine


@pytest.fixture
def engine() -> ViewEngine:
    """Return an engine with default settings."""
    return ViewEngine()


def test_markdown_renders_highlighted_fenced_code(engine: ViewEngine) -> None:
    markdown = "# Title\n\nSome *text*.\n\n```python\nprint('hi')\n```\n"
    html = engine.create_and_render("<article>@Html.Markdown(Model.Text)</article>", {"Text": markdown})
    soup = BeautifulSoup(html, "html.parser")
    heading = soup.select_one("article h1")
    assert heading is not None, "expected markdown heading in the article"
    assert heading.get_text() == "Title"
    assert soup.select_one("article em").get_text() == "text"
    block = soup.select_one("div.codehilite")
    assert block is not None, "expected a highlighted code block"
    assert block.get("data-language") == "python", (
        f"expected data-language='python', got {block.get('data-language')!r}"
    )
    assert "print" in block.get_text()


def test_markdown_of_blank_text_is_empty(engine: ViewEngine) -> None:
    assert engine.create_and_render("[@Html.Markdown(Model)]", "  ") == "[]"


def test_code_helper_tags_language(engine: ViewEngine) -> None:
    html = engine.create_and_render('@Html.Code(Model, "rust")', "fn main() {}")
    soup = BeautifulSoup(html, "html.parser")
    block = soup.select_one("div.codehilite")
    assert block is not None, "expected a highlighted code block"
    assert block.get("data-language") == "rust"
    assert block.get_text().strip() == "fn main() {}"


def test_code_helper_falls_back_to_plain_text(engine: ViewEngine) -> None:
    html = engine.create_and_render("@Html.Code(Model)", "<tag>")
    soup = BeautifulSoup(html, "html.parser")
    block = soup.select_one("div.codehilite")
    assert block is not None, "expected a code block for plain text"
    assert block.get("data-language") == "text"
    assert "&lt;tag&gt;" in html


def test_raw_and_encode() -> None:
    escaping = ViewEngine()
    verbatim = ViewEngine(config=EngineConfig(autoescape=False))
    template = "@Html.Raw(Model)|@Html.Encode(Model)|@Model"
    assert escaping.create_and_render(template, "<b>") == "<b>|&lt;b&gt;|&lt;b&gt;"
    assert verbatim.create_and_render(template, "<b>") == "<b>|&lt;b&gt;|<b>"


def test_stylesheet_targets_codehilite(engine: ViewEngine) -> None:
    css = engine.create_and_render("@Html.Stylesheet")
    assert ".codehilite" in css
    assert "&" not in css, "stylesheet must not be escaped"
