"""Tests for the command line entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from modulizer.core import __version__
from modulizer.main import build_parser, main


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Drop the handlers main() installs on the application logger."""
    yield
    logger = logging.getLogger("modulizer")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


class TestArgumentParsing:
    """Command line options."""

    def test_defaults(self, tmp_path: Path) -> None:
        args = build_parser().parse_args(["a.html", "--out", str(tmp_path)])
        assert args.entries == ["a.html"]
        assert args.root == Path(".")
        assert args.exclude == []
        assert args.log_level == "INFO"
        assert not args.skip_existing

    def test_repeatable_exclude_and_level_case(self, tmp_path: Path) -> None:
        args = build_parser().parse_args(
            ["a.html", "--out", str(tmp_path), "--exclude", "x.html",
             "--exclude", "y.html", "--log-level", "debug"]
        )
        assert args.exclude == ["x.html", "y.html"]
        assert args.log_level == "DEBUG"

    def test_out_is_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["a.html"])

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--version"])
        assert __version__ in capsys.readouterr().out


class TestMain:
    """Full runs against a component tree on disk."""

    def test_converts_and_writes(self, components_dir: Path, tmp_path: Path) -> None:
        out = tmp_path / "out"
        code = main(["case-map/case-map.html", "--root", str(components_dir), "--out", str(out)])

        assert code == 0
        case_map = (out / "case-map" / "case-map.js").read_text(encoding="utf-8")
        assert case_map.startswith("import '../polymer/polymer.js';\n")
        assert "export function dashToCamelCase(dash) {" in case_map
        assert "'use strict'" not in case_map
        assert (out / "polymer" / "polymer.js").is_file()

    def test_exclude_skips_output(self, components_dir: Path, tmp_path: Path) -> None:
        out = tmp_path / "out"
        code = main([
            "case-map/case-map.html", "--root", str(components_dir), "--out", str(out),
            "--exclude", "polymer/polymer.html",
        ])

        assert code == 0
        assert (out / "case-map" / "case-map.js").is_file()
        assert not (out / "polymer" / "polymer.js").exists()

    def test_skip_existing_keeps_files(self, components_dir: Path, tmp_path: Path) -> None:
        out = tmp_path / "out"
        existing = out / "polymer" / "polymer.js"
        existing.parent.mkdir(parents=True)
        existing.write_text("// hand edited\n", encoding="utf-8")

        code = main([
            "case-map/case-map.html", "--root", str(components_dir), "--out", str(out),
            "--skip-existing",
        ])

        assert code == 0
        assert existing.read_text(encoding="utf-8") == "// hand edited\n"

    def test_missing_entry(self, components_dir: Path, tmp_path: Path) -> None:
        code = main(["missing.html", "--root", str(components_dir), "--out", str(tmp_path / "out")])
        assert code == 1
        assert not (tmp_path / "out").exists()

    def test_invalid_config_file(self, components_dir: Path, tmp_path: Path) -> None:
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"module_extension": "js"}), encoding="utf-8")

        code = main([
            "case-map/case-map.html", "--root", str(components_dir),
            "--out", str(tmp_path / "out"), "--config", str(config_file),
        ])
        assert code == 2

    def test_missing_config_file(self, components_dir: Path, tmp_path: Path) -> None:
        code = main([
            "case-map/case-map.html", "--root", str(components_dir),
            "--out", str(tmp_path / "out"), "--config", str(tmp_path / "nope.json"),
        ])
        assert code == 2

    def test_log_file(self, components_dir: Path, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "modulizer.log"
        code = main([
            "case-map/case-map.html", "--root", str(components_dir),
            "--out", str(tmp_path / "out"), "--log-file", str(log_file),
        ])

        assert code == 0
        for handler in logging.getLogger("modulizer").handlers:
            handler.flush()
        assert "starting" in log_file.read_text(encoding="utf-8")
