"""Pytest fixtures for hybrid-asset-builder tests."""

from __future__ import annotations

from unittest import mock

import pytest

from hybrid_asset_builder.conf import BuildOptions

FAKE_TOOLS = {
    "JS_LINTER": "fakes.MarkerLinter",
    "HTML_LINTER": "fakes.MarkerLinter",
    "ANNOTATOR": "fakes.MarkerAnnotator",
}


@pytest.fixture(autouse=True)
def no_node_tools():
    """Pretend no Node CLI tool is installed so results are deterministic."""
    with mock.patch(
        "hybrid_asset_builder.tools.base.shutil.which", return_value=None
    ) as which:
        yield which


@pytest.fixture
def make_options(tmp_path):
    """Build options for a project rooted at ``tmp_path``."""

    def _make(settings=None, **flags):
        return BuildOptions.from_flags(
            flags, tmp_path, {**FAKE_TOOLS, **(settings or {})}
        )

    return _make


@pytest.fixture
def project(tmp_path):
    """A minimal project with an entry document, two scripts and a stylesheet."""
    src = tmp_path / "src"
    (src / "js").mkdir(parents=True)
    (src / "css").mkdir()
    (src / "img").mkdir()
    (src / "views").mkdir()
    (src / "index.html").write_text(
        "<!DOCTYPE html>\n"
        "<html ng-app=\"app\">\n<head>\n"
        "<!--startcss--><link href=\"css/a.css\" rel=\"stylesheet\"><!--endcss-->\n"
        "</head>\n<body>\n"
        "<!--startsrc--><script src=\"js/a.js\"></script>"
        "<script src=\"js/b.js\"></script><!--endsrc-->\n"
        "</body>\n</html>\n",
        encoding="utf-8",
    )
    (src / "js" / "a.js").write_text("var first = 1;\n", encoding="utf-8")
    (src / "js" / "b.js").write_text("var second = 2;\n", encoding="utf-8")
    (src / "css" / "a.css").write_text(
        "body {\n  background: url(../img/bg.png);\n}\n", encoding="utf-8"
    )
    (src / "img" / "bg.png").write_bytes(b"\x89PNG\r\n")
    (src / "views" / "home.html").write_text(
        "<div class=\"home\">\n  <p>Home</p>\n</div>\n", encoding="utf-8"
    )
    return tmp_path
