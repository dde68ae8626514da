"""Template compilation pipeline: source text to executable page units."""

from .nodes import Document, Expression
from .page import PageCompiler, PageUnit, Renderer, compile_nodes
from .parser import TemplateParser, parse_template

__all__ = [
    "Document",
    "Expression",
    "PageCompiler",
    "PageUnit",
    "Renderer",
    "TemplateParser",
    "compile_nodes",
    "parse_template",
]
