"""Tests for hybrid_asset_builder.templates module."""

import asyncio
import json
from unittest import mock

import pytest

from hybrid_asset_builder.exceptions import TemplateBuildError
from hybrid_asset_builder.templates import (
    build_template_registry,
    find_templates,
    render_registry,
)

HOME = "<div class=\"home\">\n  <p>Home</p>\n</div>\n"


class TestRenderRegistry:
    def test_registers_every_template(self):
        """One cache entry per template, keyed by relative path.

        Purpose: Verify the generated registry script format.
        Category: Normal case
        Target: render_registry(templates, module_name)
        Technique: Equivalence partitioning
        Test data: Two templates, one containing quotes and a newline
        """
        body = render_registry(
            [("views/a.html", "<p>a</p>"), ("views/b.html", "<p title=\"x\">\n</p>")],
            "templates",
        )

        assert body == (
            "angular.module(\"templates\").run(['$templateCache', function($templateCache) {\n"
            "  $templateCache.put(\"views/a.html\", \"<p>a</p>\");\n"
            "  $templateCache.put(\"views/b.html\", \"<p title=\\\"x\\\">\\n</p>\");\n"
            "}]);\n"
        )

    def test_no_templates(self):
        body = render_registry([], "templates")

        assert "$templateCache.put" not in body
        assert body.startswith("angular.module(\"templates\")")


class TestFindTemplates:
    def test_entry_document_is_excluded(self, project):
        (project / "src" / "views" / "index.html").write_text("<p></p>", encoding="utf-8")

        found = [p.relative_to(project / "src").as_posix() for p in find_templates(project / "src")]

        assert found == ["views/home.html", "views/index.html"]


class TestBuildTemplateRegistry:
    def run(self, options, project):
        return asyncio.run(
            build_template_registry(options, project / "src", project / "tmp")
        )

    def test_development_keeps_markup(self, project, make_options):
        registry = self.run(make_options(), project)

        assert registry.clean is True
        assert f"$templateCache.put(\"views/home.html\", {json.dumps(HOME)});" in registry.body

    def test_production_minifies_templates(self, project, make_options):
        options = make_options({"HTML_MINIFIER": "fakes.UpperMinifier"}, production=True)

        registry = self.run(options, project)

        assert json.dumps(HOME.upper()) in registry.body

    def test_custom_module_name(self, project, make_options):
        registry = self.run(make_options({"TEMPLATE_MODULE": "app.views"}), project)

        assert registry.body.startswith("angular.module(\"app.views\")")

    def test_lint_failure_raises(self, project, make_options):
        """A template with lint errors fails the registry.

        Purpose: Verify failing on lint rejects the template stage.
        Category: Error case
        Target: build_template_registry(options, root, dest)
        Technique: Equivalence partitioning
        Test data: Template containing the lint marker
        """
        (project / "src" / "views" / "bad.html").write_text("<p>LINT_ERROR</p>", encoding="utf-8")

        with pytest.raises(TemplateBuildError, match="HTML hint errors"):
            self.run(make_options(), project)

    def test_lint_failure_tolerated_with_no_fail(self, project, make_options):
        (project / "src" / "views" / "bad.html").write_text("<p>LINT_ERROR</p>", encoding="utf-8")

        registry = self.run(make_options(nf=True), project)

        assert registry.clean is False
        assert "views/bad.html" in registry.body

    def test_skip_lint(self, project, make_options):
        (project / "src" / "views" / "bad.html").write_text("<p>LINT_ERROR</p>", encoding="utf-8")

        registry = self.run(make_options(sl=True), project)

        assert registry.clean is True

    def test_vendor_templates_are_not_linted(self, project, make_options):
        vendor = project / "src" / "bower_components" / "lib"
        vendor.mkdir(parents=True)
        (vendor / "t.html").write_text("<p>LINT_ERROR</p>", encoding="utf-8")

        registry = self.run(make_options(), project)

        assert "bower_components/lib/t.html" in registry.body

    @mock.patch("hybrid_asset_builder.reporting.webbrowser.open")
    def test_extended_report_written_on_failure(self, mock_open, project, make_options):
        (project / "src" / "views" / "bad.html").write_text("<p>LINT_ERROR</p>", encoding="utf-8")

        with pytest.raises(TemplateBuildError):
            self.run(make_options(xr=True), project)

        assert (project / "logs" / "htmllint-report--src.html").exists()
        mock_open.assert_called_once()

    def test_referenced_resources_are_copied(self, project, make_options):
        (project / "src" / "views" / "style.html").write_text(
            "<link href=\"css/a.css\" rel=\"stylesheet\"><p>styled</p>", encoding="utf-8"
        )

        self.run(make_options(), project)

        assert (project / "tmp" / "css" / "a.css").exists()

    def test_malformed_template_raises(self, project, make_options):
        (project / "src" / "views" / "broken.html").write_text("<div><p", encoding="utf-8")

        with pytest.raises(TemplateBuildError, match="Template processing failed"):
            self.run(make_options(), project)

    def test_preprocess_directives_resolved(self, project, make_options):
        (project / "src" / "views" / "env.html").write_text(
            "<p><!-- @if NODE_ENV='production' -->prod<!-- @endif -->always</p>",
            encoding="utf-8",
        )

        registry = self.run(make_options(), project)

        assert json.dumps("<p>always</p>") in registry.body
