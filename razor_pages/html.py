"""The ``Html`` helper exposed to templates.

Templates reach these through ``@Html.Raw(...)``, ``@Html.Markdown(...)`` and
friends. Every helper returns :class:`markupsafe.Markup` so the result is
written without being escaped a second time.
"""

from __future__ import annotations

import re
import typing as typ
from html import escape as escape_attribute

from markdown import Markdown as MarkdownConverter
from markupsafe import Markup, escape
from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

CODE_BLOCK_PATTERN = re.compile(r"```([A-Za-z0-9_+#.-]+)?[^\n]*\n(.*?)```", re.DOTALL)
CODEHILITE_OPEN_TAG = re.compile(r'<div class="codehilite">')


class HtmlHelper:
    """Markup helpers with consistent syntax-highlighting styles."""

    def __init__(self, pygments_style: str = "monokai") -> None:
        """Initialize the helper.

        Parameters
        ----------
        pygments_style : str, optional
            Name of the Pygments style used for highlighted code. Defaults to
            ``"monokai"``.
        """
        self.pygments_style = pygments_style
        self._formatter = HtmlFormatter(style=pygments_style, cssclass="codehilite")

    @property
    def Stylesheet(self) -> Markup:  # noqa: N802 - template-facing name
        """Return the CSS used for highlighted code blocks."""
        return Markup(self._formatter.get_style_defs(".codehilite"))

    @staticmethod
    def Raw(value: typ.Any) -> Markup:  # noqa: N802 - template-facing name
        """Mark ``value`` as safe so it is written without escaping."""
        if value is None:
            return Markup("")
        return Markup(str(value))

    @staticmethod
    def Encode(value: typ.Any) -> Markup:  # noqa: N802 - template-facing name
        """HTML-escape ``value`` regardless of the engine's autoescape setting."""
        if value is None:
            return Markup("")
        return escape(str(value))

    def Markdown(self, text: str | None) -> Markup:  # noqa: N802 - template-facing name
        """Render markdown into HTML with highlighted fenced code blocks."""
        if not text or not text.strip():
            return Markup("")
        md = MarkdownConverter(
            extensions=["fenced_code", "codehilite", "tables", "sane_lists"],
            extension_configs={
                "codehilite": {
                    "linenums": False,
                    "guess_lang": False,
                    "css_class": "codehilite",
                    "pygments_style": self.pygments_style,
                }
            },
        )
        html = md.convert(text)
        return Markup(self._annotate_codehilite(html, text))

    def Code(self, code: str, language: str | None = None) -> Markup:  # noqa: N802 - template-facing name
        """Highlight ``code`` with Pygments.

        An unknown or missing ``language`` falls back to the plain ``text``
        lexer; the requested name is still recorded in ``data-language``.
        """
        requested = language or "text"
        try:
            lexer = get_lexer_by_name(requested)
        except ClassNotFound:
            lexer = get_lexer_by_name("text")
        tag = _language_tag(requested)
        html = highlight(code, lexer, self._formatter)
        return Markup(CODEHILITE_OPEN_TAG.sub(lambda _match: tag, html, 1))

    @staticmethod
    def _annotate_codehilite(html: str, source_markdown: str) -> str:
        """Tag each highlighted block with the language of its source fence."""
        tags = [
            _language_tag(match.group(1) or "text")
            for match in CODE_BLOCK_PATTERN.finditer(source_markdown)
        ]
        if not tags:
            return html
        remaining = iter(tags)
        return CODEHILITE_OPEN_TAG.sub(
            lambda _match: next(remaining, _language_tag("text")), html, len(tags)
        )


def _language_tag(language: str) -> str:
    return f'<div class="codehilite" data-language="{escape_attribute(language, quote=True)}">'


__all__ = ["HtmlHelper"]
