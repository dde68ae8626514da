"""Tests for loading engine configuration from YAML."""

from __future__ import annotations

from pathlib import Path

import pytest

from razor_pages import EngineConfig, EngineConfigError, ViewEngine, load_engine_config
from razor_pages.config import build_engine_config


def _write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "razor.yaml"
    path.write_text(body.strip() + "\n", encoding="utf-8")
    return path


def test_defaults() -> None:
    config = EngineConfig()
    assert config.template_root == "/views"
    assert config.default_layout_file == "_Layout.cshtml"
    assert config.opt_out_file == "_NoLayout.cshtml"
    assert not config.strict_sections
    assert config.autoescape


def test_load_engine_config(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        """
engine:
  strict_sections: true
  live_reload: true
  default_layout_name: _Site
  max_partial_depth: 4
  max_inline_templates: 8
  views_dir: templates
""",
    )
    config = load_engine_config(config_path)
    assert config.strict_sections
    assert config.live_reload
    assert config.default_layout_file == "_Site.cshtml"
    assert config.max_partial_depth == 4
    assert config.max_inline_templates == 8
    assert config.views_dir == tmp_path / "templates"


def test_missing_engine_section_uses_defaults(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, "other: 1")
    assert load_engine_config(config_path) == EngineConfig()


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_engine_config(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ("- a\n- b", "Top-level YAML structure must be a mapping."),
        ("engine: [1, 2]", "The 'engine' section must be a mapping."),
        ("engine:\n  colour: blue", "Unknown engine settings: colour"),
        ("engine:\n  strict_sections: 'yes'", "Setting 'strict_sections' must be of type bool"),
        ("engine:\n  max_partial_depth: true", "Setting 'max_partial_depth' must be an integer."),
        ("engine:\n  extension: 3", "Setting 'extension' must be of type str"),
        ("engine:\n  template_root: views", "template_root must be an absolute virtual path"),
        ("engine:\n  extension: html", "extension must start with '.'"),
        ("engine:\n  max_partial_depth: 0", "max_partial_depth must be at least 1."),
        ("engine:\n  max_inline_templates: 0", "max_inline_templates must be at least 1."),
        ("engine:\n  max_inline_templates: false", "Setting 'max_inline_templates' must be an integer."),
    ],
)
def test_invalid_configuration(tmp_path: Path, body: str, message: str) -> None:
    config_path = _write_config(tmp_path, body)
    with pytest.raises(EngineConfigError) as excinfo:
        load_engine_config(config_path)
    assert message in str(excinfo.value)


def test_absolute_views_dir_is_kept(tmp_path: Path) -> None:
    config = build_engine_config({"views_dir": str(tmp_path)}, base_dir=Path("/elsewhere"))
    assert config.views_dir == tmp_path


def test_engine_from_config_renders_views_dir(tmp_path: Path) -> None:
    views = tmp_path / "templates"
    (views / "Admin").mkdir(parents=True)
    (views / "_Layout.cshtml").write_text("<main>@RenderBody()</main>", encoding="utf-8")
    (views / "Admin" / "Home.cshtml").write_text("Hi @Model.Name", encoding="utf-8")
    config_path = _write_config(tmp_path, "engine:\n  views_dir: templates")

    engine = ViewEngine.from_config(config_path)

    assert engine.find_page("home") == "/views/Admin/Home.cshtml"
    assert engine.render("/views/Admin/Home", {"Name": "Ann"}) == "<main>Hi Ann</main>"
