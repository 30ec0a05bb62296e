"""Tests for the command-line interface."""

import json
from pathlib import Path

import pytest

from composerr.cli import EXIT_DIAGNOSTICS, EXIT_OK, EXIT_TOOL_ERROR, create_parser, main

GOOD = """\
@compose_errors
@errorset(OSError, ValueError)
def load(path) -> Result[str, _]:
    return ""
"""

BAD = """\
@compose_errors
@errorset(OSError)
def load(path) -> str:
    return ""
"""


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestParser:
    """Tests for argument parsing."""

    def test_requires_command(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_expand_options(self):
        args = create_parser().parse_args(["-vv", "expand", "--write", "a.py", "b.py"])

        assert args.verbose == 2
        assert args.write
        assert args.paths == ["a.py", "b.py"]

    def test_log_format_choices(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--log-format", "xml", "check", "a.py"])


class TestExpandCommand:
    """Tests for `composerr expand`."""

    def test_prints_expanded_source(self, workspace: Path, capsys):
        (workspace / "m.py").write_text(GOOD)

        code = main(["expand", "m.py"])

        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert "class LoadError(Exception):" in out
        assert "def load(path) -> Result[str, LoadError]:" in out
        assert (workspace / "m.py").read_text() == GOOD

    def test_multiple_files_have_headers(self, workspace: Path, capsys):
        (workspace / "a.py").write_text(GOOD)
        (workspace / "b.py").write_text("x = 1\n")

        main(["expand", "a.py", "b.py"])

        out = capsys.readouterr().out
        assert "# --- a.py ---" in out
        assert "# --- b.py ---\nx = 1\n" in out

    def test_write(self, workspace: Path, capsys):
        (workspace / "m.py").write_text(GOOD)

        code = main(["expand", "--write", "m.py"])

        assert code == EXIT_OK
        assert "expanded m.py" in capsys.readouterr().err
        assert "class LoadError(Exception):" in (workspace / "m.py").read_text()

    def test_write_skips_failing_file(self, workspace: Path, capsys):
        (workspace / "m.py").write_text(BAD)

        code = main(["expand", "--write", "m.py"])

        err = capsys.readouterr().err
        assert code == EXIT_DIAGNOSTICS
        assert "error[shape-error]" in err
        assert "skipped m.py (errors)" in err
        assert (workspace / "m.py").read_text() == BAD

    def test_json(self, workspace: Path, capsys):
        (workspace / "m.py").write_text(GOOD)

        code = main(["expand", "--json", "m.py"])

        data = json.loads(capsys.readouterr().out)
        assert code == EXIT_OK
        assert data["error_count"] == 0
        (entry,) = data["files"]
        assert entry["changed"] is True
        assert entry["written"] is False
        assert entry["sum_types"] == [{"name": "LoadError", "variants": ["OSError", "ValueError"]}]


class TestCheckCommand:
    """Tests for `composerr check`."""

    def test_clean(self, workspace: Path, capsys):
        (workspace / "m.py").write_text(GOOD)

        code = main(["check", "."])

        assert code == EXIT_OK
        assert "ok: 1 error set(s) in 1 file(s)" in capsys.readouterr().out

    def test_reports_diagnostics(self, workspace: Path, capsys):
        (workspace / "m.py").write_text(BAD)

        code = main(["check", "m.py"])

        out = capsys.readouterr().out
        assert code == EXIT_DIAGNOSTICS
        assert "m.py:3:19: error[shape-error]: `load` must return" in out
        assert "help: Declare the return type as Result[<success>, _]" in out
        assert "1 error(s), 0 warning(s)" in out

    def test_json(self, workspace: Path, capsys):
        (workspace / "m.py").write_text(BAD)

        code = main(["check", "--json", "m.py"])

        data = json.loads(capsys.readouterr().out)
        assert code == EXIT_DIAGNOSTICS
        assert data["diagnostics"][0]["code"] == "shape-error"
        assert data["diagnostics"][0]["declaration"] == "load"

    def test_uses_config_file(self, workspace: Path, capsys):
        (workspace / "composerr.toml").write_text('suffix = "Failure"\n')
        (workspace / "m.py").write_text(GOOD)

        main(["expand", "m.py"])

        assert "class LoadFailure(Exception):" in capsys.readouterr().out


class TestDiffCommand:
    """Tests for `composerr diff`."""

    def test_shows_diff(self, workspace: Path, capsys):
        (workspace / "m.py").write_text(GOOD)

        code = main(["diff", "m.py"])

        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert "+def load(path) -> Result[str, LoadError]:" in out
        assert "-@errorset(OSError, ValueError)" in out


class TestToolErrors:
    """Tests for failures outside any single declaration."""

    def test_missing_path(self, workspace: Path, capsys):
        code = main(["check", "missing.py"])

        assert code == EXIT_TOOL_ERROR
        assert "File not found: missing.py" in capsys.readouterr().err

    def test_bad_config(self, workspace: Path, capsys):
        (workspace / "composerr.toml").write_text("unknown_key = 1\n")
        (workspace / "m.py").write_text(GOOD)

        code = main(["check", "m.py"])

        assert code == EXIT_TOOL_ERROR
        assert "Unknown setting(s): unknown_key" in capsys.readouterr().err

    def test_explicit_config_missing(self, workspace: Path, capsys):
        (workspace / "m.py").write_text(GOOD)

        code = main(["--config", "nope.toml", "check", "m.py"])

        assert code == EXIT_TOOL_ERROR
        assert "Config file not found" in capsys.readouterr().err
