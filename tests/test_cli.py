"""Tests for the ``razor-pages`` command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from razor_pages import TemplateNotFoundError, cli


@pytest.fixture
def views(tmp_path: Path) -> Path:
    """Return a views directory with a layout and two pages."""
    root = tmp_path / "views"
    (root / "Blog").mkdir(parents=True)
    (root / "_Layout.cshtml").write_text(
        '<title>@RenderSection("Title")</title>@RenderBody()', encoding="utf-8"
    )
    (root / "Blog" / "Post.cshtml").write_text(
        "@section Title {@Model.Title}<p>@Model.Body</p>", encoding="utf-8"
    )
    (root / "Home.cshtml").write_text("home", encoding="utf-8")
    return root


def test_render_by_name_with_yaml_model(
    views: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    model = tmp_path / "post.yaml"
    model.write_text("Title: Hello\nBody: 'A & B'\n", encoding="utf-8")

    cli.render("post", views=views, model=model)

    assert capsys.readouterr().out == "<title>Hello</title><p>A &amp; B</p>"


def test_render_by_path_with_json_model_and_layout_override(
    views: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    model = tmp_path / "post.json"
    model.write_text(json.dumps({"Title": "T", "Body": "B"}), encoding="utf-8")

    cli.render("/views/Blog/Post.cshtml", views=views, model=model, layout="none")

    assert capsys.readouterr().out == "<p>B</p>"


def test_render_reads_views_dir_from_config(
    views: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = tmp_path / "razor.yaml"
    config.write_text("engine:\n  views_dir: views\n", encoding="utf-8")

    cli.render("Home", config=config)

    assert capsys.readouterr().out == "<title></title>home"


def test_render_unknown_page(views: Path) -> None:
    with pytest.raises(TemplateNotFoundError):
        cli.render("Missing", views=views)


def test_render_requires_views() -> None:
    with pytest.raises(ValueError, match="A views directory is required"):
        cli.render("Home")


def test_check_passes_for_valid_templates(
    views: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.check(views=views)
    assert capsys.readouterr().out == "checked 3 templates, 0 failed\n"


def test_check_reports_broken_templates(
    views: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (views / "Broken.cshtml").write_text("ok\n@if x {}", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        cli.check(views=views)

    assert excinfo.value.code == 1
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "error /views/Broken.cshtml:2:1: Expected '(' after 'if'.",
        "checked 4 templates, 1 failed",
    ]
