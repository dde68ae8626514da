"""Cyclopts CLI entrypoint for rendering and checking templates.

The ``razor-pages`` console script renders a single page from a views
directory with a model loaded from JSON or YAML, or precompiles every page to
report template errors (useful in CI).

Examples
--------
Render a page by logical name:

>>> from razor_pages.cli import app
>>> app(["render", "Home", "--views", "views", "--model", "home.yaml"])  # doctest: +SKIP

Check every template compiles:

>>> app(["check", "--views", "views"])  # doctest: +SKIP
"""

from __future__ import annotations

import dataclasses as dc
import json
import logging
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter
from ruamel.yaml import YAML

from .config import EngineConfig, load_engine_config
from .engine import ViewEngine
from .errors import TemplateError, TemplateNotFoundError

app = App(name="razor-pages", config=cyclopts.config.Env("RAZOR_PAGES_", command=False))  # type: ignore[unknown-argument]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _build_engine(views: Path | None, config: Path | None) -> ViewEngine:
    engine_config = load_engine_config(config) if config else EngineConfig()
    if views is not None:
        engine_config = dc.replace(engine_config, views_dir=views)
    if engine_config.views_dir is None:
        msg = "A views directory is required (--views or views_dir in the config)."
        raise ValueError(msg)
    return ViewEngine(config=engine_config)


def _load_model(path: Path | None) -> typ.Any:
    """Read a JSON or YAML model file; ``None`` yields an empty mapping."""
    if path is None:
        return {}
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    return loader.load(text) or {}


@app.command(help="Render one page and print the result.")
def render(
    page: typ.Annotated[str, Parameter(help="Page path or logical name")],
    *,
    views: typ.Annotated[
        Path | None, Parameter(help="Directory holding the templates")
    ] = None,
    model: typ.Annotated[
        Path | None, Parameter(help="JSON or YAML file providing the model")
    ] = None,
    layout: typ.Annotated[
        str | None, Parameter(help="Layout override, e.g. 'none' or 'bare'")
    ] = None,
    config: typ.Annotated[
        Path | None, Parameter(help="Path to the engine config")
    ] = None,
    verbose: bool = False,
) -> None:
    """Render ``page`` with the model file and write the text to stdout.

    Parameters
    ----------
    page : str
        Absolute virtual path (``/views/Home.cshtml``) or a logical page name
        matched against file stems.
    views : Path or None, optional
        Views directory mounted at the template root; overrides ``views_dir``
        from ``config``.
    model : Path or None, optional
        JSON (``.json``) or YAML model file; an empty mapping when omitted.
    layout : str or None, optional
        Layout override passed to the renderer.
    config : Path or None, optional
        YAML engine configuration file.
    verbose : bool, optional
        Emit debug logging to stderr.

    Raises
    ------
    TemplateNotFoundError
        If ``page`` names no known page.
    """
    _configure_logging(verbose)
    engine = _build_engine(views, config)
    path = page if page.startswith("/") else engine.find_page(page)
    if path is None:
        raise TemplateNotFoundError(page)
    print(engine.render(path, _load_model(model), layout=layout), end="")


@app.command(help="Compile every template and report errors.")
def check(
    *,
    views: typ.Annotated[
        Path | None, Parameter(help="Directory holding the templates")
    ] = None,
    config: typ.Annotated[
        Path | None, Parameter(help="Path to the engine config")
    ] = None,
    verbose: bool = False,
) -> None:
    """Precompile all pages, printing one line per failure.

    Exits with status 1 when any template fails to compile.
    """
    _configure_logging(verbose)
    engine = _build_engine(views, config)
    failures: dict[str, TemplateError] = engine.precompile()
    for path in sorted(failures):
        print(f"error {failures[path]}")
    total = len(engine.registry.page_paths())
    print(f"checked {total} templates, {len(failures)} failed")
    if failures:
        raise SystemExit(1)


def main() -> None:
    """Invoke the Cyclopts application behind the ``razor-pages`` console command."""
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
