"""
Tests for pageforge.pipeline
============================

This module contains end-to-end tests for the build: collection, data
loading, rendering and writing.

Test Organization
-----------------
- TestBuildSite: Tests for successful builds
- TestBuildFailures: Tests for fail-fast error handling
- TestRenderPage: Tests for rendering a single page
"""

from pathlib import Path

import pytest

from pageforge.exceptions import (
    CollectionError,
    DataLoadError,
    ExtendsResolutionError,
    IncludeResolutionError,
    MacroInvocationError,
    RenderError,
    WriteError,
)
from pageforge.models import BuildConfig, UndefinedPolicy
from pageforge.pipeline import build_site, check_template_roots, render_page


def snapshot(root: Path) -> dict[str, bytes]:
    """Map every file under ``root`` to its bytes."""
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


# =============================================================================
# Successful Build Tests
# =============================================================================

class TestBuildSite:
    """Tests for build_site function."""

    def test_writes_every_page(self, site_config: BuildConfig) -> None:
        """Test each page is written with an .html extension."""
        result = build_site(site_config, verbose=False)

        assert result.success is True
        assert sorted(snapshot(site_config.dest_root)) == [
            "about.html",
            "gallery/index.html",
            "index.html",
        ]

    def test_result_lists_pages_and_files(self, site_config: BuildConfig) -> None:
        """Test the result records pages in collection order."""
        result = build_site(site_config, verbose=False)

        assert result.pages == [
            Path("about.html"),
            Path("gallery/index.njk"),
            Path("index.html"),
        ]
        assert result.files_written == [
            site_config.dest_root / "about.html",
            site_config.dest_root / "gallery" / "index.html",
            site_config.dest_root / "index.html",
        ]
        assert result.errors == []

    def test_gallery_output(self, site_config: BuildConfig) -> None:
        """Test the gallery page contains one img per record, in order."""
        build_site(site_config, verbose=False)

        text = (site_config.dest_root / "gallery" / "index.html").read_text()

        assert text.count("<img") == 2
        assert text.index('src="a.png"') < text.index('src="b.png"')

    def test_idempotent(self, site_config: BuildConfig) -> None:
        """Test a second build writes byte-identical files."""
        build_site(site_config, verbose=False)
        first = snapshot(site_config.dest_root)

        build_site(site_config, verbose=False)

        assert snapshot(site_config.dest_root) == first

    def test_dry_run_writes_nothing(self, site_config: BuildConfig) -> None:
        """Test dry runs render but do not create the destination."""
        result = build_site(site_config, verbose=False, dry_run=True)

        assert result.success is True
        assert len(result.pages) == 3
        assert result.files_written == []
        assert not site_config.dest_root.exists()

    def test_verbose_output(self, site_config: BuildConfig, capsys) -> None:
        """Test verbose builds report progress."""
        build_site(site_config, verbose=True)

        captured = capsys.readouterr()
        assert "Rendering pages" in captured.out
        assert "Rendered 3 page(s)" in captured.out

    def test_without_data_file(self, site_config: BuildConfig) -> None:
        """Test a build without data renders undefined values empty."""
        config = site_config.model_copy(update={"data_file": None})

        build_site(config, verbose=False)

        text = (config.dest_root / "gallery" / "index.html").read_text()
        assert "<img" not in text
        assert "<title></title>" in text

    def test_custom_extension(self, site_config: BuildConfig) -> None:
        """Test the output extension is configurable."""
        config = site_config.model_copy(update={"output_extension": ".htm"})

        build_site(config, verbose=False)

        assert (config.dest_root / "index.htm").is_file()

    def test_no_pages_warns(self, site_config: BuildConfig) -> None:
        """Test an unmatched pattern succeeds with a warning."""
        config = site_config.model_copy(update={"pattern": "**/*.md"})

        result = build_site(config, verbose=False)

        assert result.success is True
        assert result.pages == []
        assert any("No pages matched" in w for w in result.warnings)

    def test_missing_template_root_warns(self, site_config: BuildConfig) -> None:
        """Test a missing extra root is reported but not fatal."""
        missing = site_config.pages_root.parent / "overrides"
        config = site_config.model_copy(
            update={"template_roots": [missing, *site_config.template_roots]}
        )

        result = build_site(config, verbose=False)

        assert result.success is True
        assert result.warnings == [f"Template root does not exist: {missing}"]

    def test_override_root_wins(self, site_config: BuildConfig, write) -> None:
        """Test a root listed earlier overrides a shared partial."""
        overrides = site_config.pages_root.parent / "overrides"
        write(overrides, "partials/header.html", "<header>OVERRIDE</header>")
        config = site_config.model_copy(
            update={"template_roots": [overrides, *site_config.template_roots]}
        )

        build_site(config, verbose=False)

        text = (config.dest_root / "index.html").read_text()
        assert "OVERRIDE" in text
        assert "SITE HEADER" not in text


# =============================================================================
# Failure Tests
# =============================================================================

class TestBuildFailures:
    """Tests for errors aborting the build."""

    def test_missing_pages_root(self, site_config: BuildConfig) -> None:
        """Test a missing pages root raises CollectionError."""
        config = site_config.model_copy(
            update={"pages_root": site_config.pages_root.parent / "nope"}
        )

        with pytest.raises(CollectionError):
            build_site(config, verbose=False)

    def test_bad_data_file(self, site_config: BuildConfig) -> None:
        """Test an unreadable data document raises DataLoadError."""
        site_config.data_file.write_text("{not json")

        with pytest.raises(DataLoadError):
            build_site(site_config, verbose=False)

    def test_missing_layout(self, site_config: BuildConfig) -> None:
        """Test a page extending a missing layout aborts the build."""
        (site_config.template_roots[0] / "layout.html").unlink()

        with pytest.raises(ExtendsResolutionError) as exc_info:
            build_site(site_config, verbose=False)

        assert exc_info.value.template == "about.html"

    def test_missing_partial(self, site_config: BuildConfig) -> None:
        """Test a layout including a missing partial aborts the build."""
        (site_config.template_roots[0] / "partials" / "header.html").unlink()

        with pytest.raises(IncludeResolutionError) as exc_info:
            build_site(site_config, verbose=False)

        assert exc_info.value.template == "layout.html"
        assert exc_info.value.target == "partials/header.html"

    def test_unknown_macro(self, site_config: BuildConfig, write) -> None:
        """Test a call to an undefined macro aborts the build."""
        write(
            site_config.pages_root,
            "broken.html",
            '{% import "macros/navigation.html" as nav %}{{ nav.inactive() }}',
        )

        with pytest.raises(MacroInvocationError):
            build_site(site_config, verbose=False)

    def test_strict_undefined(self, site_config: BuildConfig, write) -> None:
        """Test strict mode fails on an undefined variable."""
        write(site_config.pages_root, "zzz.html", "{{ nobody }}")
        config = site_config.model_copy(update={"undefined": UndefinedPolicy.STRICT})

        with pytest.raises(RenderError) as exc_info:
            build_site(config, verbose=False)

        assert exc_info.value.template == "zzz.html"

    def test_write_failure(self, site_config: BuildConfig) -> None:
        """Test a blocked destination raises WriteError."""
        site_config.dest_root.write_text("a file, not a directory")

        with pytest.raises(WriteError):
            build_site(site_config, verbose=False)

    def test_failure_reported(self, site_config: BuildConfig, capsys) -> None:
        """Test verbose builds print the failing error."""
        (site_config.template_roots[0] / "layout.html").unlink()

        with pytest.raises(ExtendsResolutionError):
            build_site(site_config, verbose=True)

        assert "Build failed" in capsys.readouterr().out

    def test_stops_at_first_error(self, site_config: BuildConfig, write) -> None:
        """Test pages after a failing page are not written."""
        write(site_config.pages_root, "a_broken.html", '{% include "missing.html" %}')

        with pytest.raises(IncludeResolutionError):
            build_site(site_config, verbose=False)

        assert not (site_config.dest_root / "index.html").exists()

    def test_pages_sharing_output_path(self, site_config: BuildConfig, write) -> None:
        """Test index.html and index.njk cannot both be written to index.html."""
        write(site_config.pages_root, "index.njk", "FROM NJK")

        with pytest.raises(CollectionError) as exc_info:
            build_site(site_config, verbose=False)

        message = str(exc_info.value)
        assert "index.html and index.njk" in message
        assert not site_config.dest_root.exists()

    def test_output_collision_in_dry_run(self, site_config: BuildConfig, write) -> None:
        """Test dry runs report colliding pages too."""
        write(site_config.pages_root, "about.njk", "x")

        with pytest.raises(CollectionError):
            build_site(site_config, verbose=False, dry_run=True)

    def test_page_not_utf8(self, site_config: BuildConfig) -> None:
        """Test an undecodable page fails with RenderError."""
        (site_config.pages_root / "bad.html").write_bytes(b"\xff\xfe bad")

        with pytest.raises(RenderError) as exc_info:
            build_site(site_config, verbose=False)

        assert exc_info.value.template == "bad.html"

    def test_failed_result_returned(self, site_config: BuildConfig) -> None:
        """Test raise_errors=False returns the failed result with its error."""
        (site_config.template_roots[0] / "layout.html").unlink()

        result = build_site(site_config, verbose=False, raise_errors=False)

        assert result.success is False
        assert len(result.errors) == 1
        assert "layout.html" in result.errors[0]
        assert result.files_written == []

    def test_failed_result_keeps_progress(self, site_config: BuildConfig, write) -> None:
        """Test pages written before the failure are listed."""
        write(site_config.pages_root, "zzz.html", '{% include "missing.html" %}')

        result = build_site(site_config, verbose=False, raise_errors=False)

        assert result.success is False
        assert len(result.files_written) == 3


# =============================================================================
# Single Page Tests
# =============================================================================

class TestRenderPage:
    """Tests for render_page and check_template_roots."""

    def test_render_page(self, site_config: BuildConfig) -> None:
        """Test one page renders without writing anything."""
        result = render_page(site_config, Path("about.html"))

        assert "<title>About</title>" in result.text
        assert not site_config.dest_root.exists()

    def test_check_template_roots(self, site_config: BuildConfig) -> None:
        """Test existing roots produce no warnings."""
        assert check_template_roots(site_config) == []
