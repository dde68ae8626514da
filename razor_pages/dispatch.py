"""Thin glue rendering the page named after an inbound operation.

A web layer hands :class:`ViewDispatcher` the request (which names the
operation), a response sink, and the operation's response payload. The
dispatcher renders the page whose logical name matches the operation, using
the payload as the model, and writes the text to the sink.
"""

from __future__ import annotations

import dataclasses as dc
import io
import typing as typ

from .errors import TemplateNotFoundError

if typ.TYPE_CHECKING:
    from .engine import ViewEngine

HTML_CONTENT_TYPE = "text/html; charset=utf-8"


class InboundRequest(typ.Protocol):
    """Request capability consumed by the dispatcher.

    Implementations may also expose ``layout`` to override the page layout,
    for example ``"bare"`` for partial responses.
    """

    operation_name: str


class ResponseSink(typ.Protocol):
    """Response capability the rendered text is written to."""

    content_type: str

    def write(self, text: str) -> None:
        """Append ``text`` to the response body."""
        ...


@dc.dataclass(slots=True)
class ViewRequest:
    """Minimal :class:`InboundRequest` implementation."""

    operation_name: str
    layout: str | None = None


@dc.dataclass(slots=True)
class BufferedResponse:
    """In-memory :class:`ResponseSink` that collects the written body."""

    content_type: str = ""
    _body: io.StringIO = dc.field(default_factory=io.StringIO, repr=False)

    def write(self, text: str) -> None:
        self._body.write(text)

    def read_as_string(self) -> str:
        return self._body.getvalue()


class ViewDispatcher:
    """Render operation responses through a :class:`~razor_pages.engine.ViewEngine`."""

    def __init__(self, engine: ViewEngine) -> None:
        self.engine = engine

    def process_request(
        self, request: InboundRequest, response: ResponseSink, dto: typ.Any
    ) -> str:
        """Render the page named ``request.operation_name`` and write it to ``response``.

        Raises
        ------
        TemplateNotFoundError
            If no page is named after the operation.
        """
        path = self.engine.find_page(request.operation_name)
        if path is None:
            raise TemplateNotFoundError(request.operation_name)
        layout = getattr(request, "layout", None)
        text = self.engine.render(path, dto, layout=layout)
        response.content_type = HTML_CONTENT_TYPE
        response.write(text)
        return text


__all__ = [
    "BufferedResponse",
    "HTML_CONTENT_TYPE",
    "InboundRequest",
    "ResponseSink",
    "ViewDispatcher",
    "ViewRequest",
]
