"""Behaviour tests for cascading directory layouts.

The scenarios in ``layout_cascade.feature`` build an in-memory views tree with
a root ``_Layout.cshtml`` and a nested ``Folder/_Layout.cshtml``, render pages
through :class:`razor_pages.ViewEngine`, and assert on the produced HTML. They
cover the nearest-layout rule, explicit opt-outs, the ``bare`` override, and
concurrent rendering of one cached page.

Usage:
    Run these behaviour tests with pytest, for example:

        pytest tests/bdd/test_layout_cascade.py -v
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from razor_pages import InMemoryFileSystem, ViewEngine

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "layout_cascade.feature"
scenarios(FEATURE_FILE)


@pytest.fixture
def scenario_state() -> dict[str, object]:
    """Return a mutable dict used to share scenario state across BDD steps."""
    return {}


@given("a views tree with a root layout and a nested folder layout")
def given_views_tree(scenario_state: dict[str, object]) -> None:
    """Create an engine over a views tree with two directory-default layouts.

    Parameters
    ----------
    scenario_state : dict[str, object]
        Mutable state dictionary shared across BDD steps; receives the engine
        under the ``engine`` key.
    """
    file_system = InMemoryFileSystem(
        {
            "/views/_Layout.cshtml": (
                '<html><body><div>@RenderSection("Title")</div>@RenderBody()</body></html>'
            ),
            "/views/Folder/_Layout.cshtml": (
                "<html><body class='nested'><div>@RenderSection(\"Title\")</div>"
                "@RenderBody()</body></html>"
            ),
            "/views/Home.cshtml": "@section Title {Home}Hello @Model.Name!",
            "/views/Folder/Nested.cshtml": "Nested, Hello @Model.Name!",
            "/views/Folder/Plain.cshtml": "@{ Layout = none }Plain @Model.Name",
        }
    )
    scenario_state["engine"] = ViewEngine(file_system)


@when(parsers.re(r'I render the page "(?P<page>[^"]+)" for "(?P<name>[^"]+)"$'))
def when_render(scenario_state: dict[str, object], page: str, name: str) -> None:
    """Render ``page`` with a model named ``name``."""
    engine: ViewEngine = scenario_state["engine"]  # type: ignore[assignment]
    scenario_state["output"] = engine.render(page, {"Name": name})


@when(
    parsers.re(
        r'I render the page "(?P<page>[^"]+)" for "(?P<name>[^"]+)" '
        r'with layout "(?P<layout>[^"]+)"$'
    )
)
def when_render_with_layout(
    scenario_state: dict[str, object], page: str, name: str, layout: str
) -> None:
    """Render ``page`` with a render-time layout override."""
    engine: ViewEngine = scenario_state["engine"]  # type: ignore[assignment]
    scenario_state["output"] = engine.render(page, {"Name": name}, layout=layout)


@when(parsers.parse('I render the page "{page}" concurrently for {count:d} models'))
def when_render_concurrently(
    scenario_state: dict[str, object], page: str, count: int
) -> None:
    """Render ``page`` from a thread pool, one distinct model per render."""
    engine: ViewEngine = scenario_state["engine"]  # type: ignore[assignment]
    names = [f"User{index}" for index in range(count)]
    with ThreadPoolExecutor(max_workers=10) as pool:
        outputs = list(pool.map(lambda name: engine.render(page, {"Name": name}), names))
    scenario_state["outputs"] = dict(zip(names, outputs, strict=True))


@then(parsers.parse('the output is "{expected}"'))
def then_output_is(scenario_state: dict[str, object], expected: str) -> None:
    """Verify the rendered output matches ``expected`` exactly."""
    output = scenario_state["output"]
    assert output == expected, f"expected {expected!r}, got {output!r}"


@then("every output names its own model")
def then_outputs_match_models(scenario_state: dict[str, object]) -> None:
    """Verify no concurrent render saw another render's model."""
    outputs: dict[str, str] = scenario_state["outputs"]  # type: ignore[assignment]
    for name, output in outputs.items():
        expected = f"<html><body><div>Home</div>Hello {name}!</body></html>"
        assert output == expected, f"render for {name} produced {output!r}"
