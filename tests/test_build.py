"""Tests for hybrid_asset_builder.build module.

## Decision Table: DT-ASSEMBLE

| ID  | scripts stage | styles stage | result                               |
|-----|---------------|--------------|--------------------------------------|
| DT1 | ok            | ok           | published                            |
| DT2 | failed        | ok           | StageFailedError("script")           |
| DT3 | ok            | failed       | StageFailedError("style")            |
| DT4 | failed        | failed       | StageFailedError("both")             |
"""

import asyncio
import re

import pytest

from hybrid_asset_builder.build import (
    StageResult,
    build,
    failure_cause,
    replace_marker_regions,
    stage_result,
)
from hybrid_asset_builder.exceptions import (
    AnnotationError,
    BuildError,
    StageFailedError,
    TemplateBuildError,
)
from hybrid_asset_builder.paths import ProjectPaths


def run_build(options, project):
    return asyncio.run(build(options, ProjectPaths.for_root(project)))


def read(path):
    return path.read_text(encoding="utf-8")


class TestReplaceMarkerRegions:
    def test_regions_become_bundle_tags(self):
        markup = (
            "<head><!--startcss--><link href=\"a.css\"><link href=\"b.css\"><!--endcss--></head>"
            "<body><!--startsrc--><script src=\"a.js\"></script><!--endsrc--></body>"
        )

        result = replace_marker_regions(markup, 42)

        assert result == (
            "<head><link href=\"all.min.css?v=42\" rel=\"stylesheet\"></head>"
            "<body><script src=\"all.min.js?v=42\"></script></body>"
        )

    def test_regions_are_matched_separately(self):
        """Each marker pair is replaced on its own.

        Purpose: Verify content between two regions survives.
        Category: Edge case
        Target: replace_marker_regions(markup, timestamp)
        Technique: Error guessing
        Test data: Two script regions with content between them
        """
        markup = (
            "<!--startsrc--><script src=\"a.js\"></script><!--endsrc-->"
            "<p>keep</p>"
            "<!--startsrc--><script src=\"b.js\"></script><!--endsrc-->"
        )

        result = replace_marker_regions(markup, 1)

        assert "<p>keep</p>" in result
        assert result.count("all.min.js?v=1") == 2

    def test_markup_without_markers_unchanged(self):
        assert replace_marker_regions("<p>x</p>", 1) == "<p>x</p>"


class TestStageResult:
    def test_output(self):
        assert stage_result("code", ["a.js"]) == StageResult("code")

    def test_error_outcome_fails(self):
        error = AnnotationError("x")

        result = stage_result(error, ["a.js"])

        assert result.failed
        assert result.error is error

    def test_empty_output_with_references_fails(self):
        assert stage_result("", ["a.js"]).failed

    def test_empty_output_without_references_is_ok(self):
        assert not stage_result("", []).failed

    def test_unexpected_exception_propagates(self):
        with pytest.raises(KeyError):
            stage_result(KeyError("bug"), ["a.js"])

    @pytest.mark.parametrize(
        "scripts_failed,styles_failed,expected",
        [
            pytest.param(False, False, None, id="DT1"),
            pytest.param(True, False, "script", id="DT2"),
            pytest.param(False, True, "style", id="DT3"),
            pytest.param(True, True, "both", id="DT4"),
        ],
    )
    def test_failure_cause(self, scripts_failed, styles_failed, expected):
        scripts = StageResult(None if scripts_failed else "js")
        styles = StageResult(None if styles_failed else "css")

        assert failure_cause(scripts, styles) == expected


class TestBuild:
    def test_publishes_bundles(self, project, make_options):
        """A clean development build publishes the entry document and bundles.

        Purpose: Verify the full pipeline from src to www (DT1).
        Category: Normal case
        Target: build(options, paths)
        Technique: Equivalence partitioning
        Test data: project fixture
        """
        run_build(make_options(), project)

        www = project / "www"
        index = read(www / "index.html")
        scripts = read(www / "all.min.js")

        assert re.search(r"<script src=\"all\.min\.js\?v=\d+\"></script>", index)
        assert re.search(r"<link href=\"all\.min\.css\?v=\d+\" rel=\"stylesheet\">", index)
        assert index.count("<script") == 1
        assert "js/a.js" not in index
        assert "ng-strict-di=\"true\"" in index
        assert scripts.count("~(function(){") == 3
        assert scripts.index("var first") < scripts.index("var second")
        assert scripts.index("var second") < scripts.index("$templateCache.put")
        assert read(www / "all.min.css") == "body {\n  background: url(img/bg.png);\n}\n"
        assert (www / "img" / "bg.png").read_bytes() == b"\x89PNG\r\n"
        assert not (project / "tmp").exists()

    def test_replaces_stale_output(self, project, make_options):
        (project / "www").mkdir()
        (project / "www" / "stale.txt").write_text("old", encoding="utf-8")

        run_build(make_options(), project)

        assert not (project / "www" / "stale.txt").exists()
        assert (project / "www" / "index.html").exists()

    def test_production_minifies(self, project, make_options):
        settings = {
            "JS_MINIFIER": "fakes.UpperMinifier",
            "CSS_MINIFIER": "fakes.UpperMinifier",
            "HTML_MINIFIER": "fakes.UpperMinifier",
        }

        run_build(make_options(settings, production=True), project)

        www = project / "www"
        assert "VAR FIRST = 1;" in read(www / "all.min.js")
        assert "<DIV CLASS=\\\"HOME\\\">" in read(www / "all.min.js")
        assert "URL(IMG/BG.PNG)" in read(www / "all.min.css")
        assert "ALL.MIN.JS?V=" in read(www / "index.html")

    def test_development_does_not_minify(self, project, make_options):
        settings = {"JS_MINIFIER": "fakes.UpperMinifier", "HTML_MINIFIER": "fakes.UpperMinifier"}

        run_build(make_options(settings), project)

        assert "var first = 1;" in read(project / "www" / "all.min.js")
        assert "<!DOCTYPE html>" in read(project / "www" / "index.html")

    def test_missing_script_still_builds(self, project, make_options):
        (project / "src" / "js" / "a.js").unlink()

        run_build(make_options(), project)

        scripts = read(project / "www" / "all.min.js")
        assert "var first" not in scripts
        assert "var second = 2;" in scripts

    def test_template_lint_failure_rejects_build(self, project, make_options):
        """Template lint errors stop the build before anything is published.

        Purpose: Verify the existing output is left untouched.
        Category: Error case
        Target: build(options, paths)
        Technique: Error guessing
        Test data: Template with a lint marker, stale www
        """
        (project / "src" / "views" / "bad.html").write_text("<p>LINT_ERROR</p>", encoding="utf-8")
        (project / "www").mkdir()
        (project / "www" / "old.txt").write_text("old", encoding="utf-8")

        with pytest.raises(TemplateBuildError):
            run_build(make_options(), project)

        assert [p.name for p in (project / "www").iterdir()] == ["old.txt"]

    @pytest.mark.parametrize(
        "break_scripts,break_styles,cause",
        [
            pytest.param(True, False, "script", id="DT2"),
            pytest.param(False, True, "style", id="DT3"),
            pytest.param(True, True, "both", id="DT4"),
        ],
    )
    def test_stage_failures(self, project, make_options, break_scripts, break_styles, cause):
        """A failed bundle stage names its cause and publishes nothing.

        Purpose: Verify the failure cause for each stage combination.
        Category: Error case
        Target: build(options, paths)
        Technique: Decision table
        Test data: DT-ASSEMBLE rows
        """
        if break_scripts:
            (project / "src" / "js" / "b.js").write_text("ANNOTATE_FAIL\n", encoding="utf-8")
        if break_styles:
            (project / "src" / "css" / "a.css").unlink()

        with pytest.raises(StageFailedError) as exc_info:
            run_build(make_options(), project)

        assert exc_info.value.cause == cause
        assert not (project / "www").exists()

    def test_script_lint_failure_fails_stage(self, project, make_options):
        (project / "src" / "js" / "a.js").write_text("// LINT_ERROR\n", encoding="utf-8")

        with pytest.raises(StageFailedError, match="JS failed"):
            run_build(make_options(), project)

    def test_missing_entry_document(self, project, make_options):
        (project / "src" / "index.html").unlink()

        with pytest.raises(OSError):
            run_build(make_options(), project)

    def test_malformed_entry_document(self, project, make_options):
        (project / "src" / "index.html").write_text("<html><body><div", encoding="utf-8")

        with pytest.raises(BuildError):
            run_build(make_options(), project)

    def test_error_is_logged(self, project, make_options, caplog):
        (project / "src" / "css" / "a.css").unlink()

        with pytest.raises(StageFailedError):
            run_build(make_options(), project)

        assert "There was an error while processing the build: CSS failed" in caplog.text


class TestBuildRepeatability:
    def test_building_twice_gives_the_same_output(self, project, make_options):
        """A second build over unchanged sources publishes identical artifacts.

        Purpose: Verify builds are repeatable apart from the cache-buster.
        Category: Normal case
        Target: build(options, paths)
        Technique: Equivalence partitioning
        Test data: project fixture built twice
        """
        www = project / "www"

        def snapshot():
            files = {
                p.relative_to(www).as_posix(): p.read_bytes()
                for p in www.rglob("*")
                if p.is_file()
            }
            files["index.html"] = re.sub(rb"\?v=\d+", b"?v=", files["index.html"])
            return files

        run_build(make_options(), project)
        first = snapshot()
        run_build(make_options(), project)

        assert snapshot() == first
        assert sorted(first) == ["all.min.css", "all.min.js", "img/bg.png", "index.html"]

    def test_relative_project_root(self, project, make_options, monkeypatch):
        """A project root given relative to the working directory builds fully.

        Purpose: Verify static resources are copied when the project root
            is the current directory.
        Category: Edge case
        Target: build(options, paths)
        Technique: Error guessing
        Test data: project fixture, root "."
        """
        monkeypatch.chdir(project)

        asyncio.run(build(make_options(), ProjectPaths.for_root(".")))

        assert (project / "www" / "img" / "bg.png").read_bytes() == b"\x89PNG\r\n"
        assert (project / "www" / "all.min.js").exists()
