# tests/test_cli.py
"""Tests for the pdfpreview CLI."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import make_pdf


def _json(output: str):
    return json.loads(output[output.index("{"):])


@pytest.fixture
def cli_home(tmp_path, monkeypatch):
    """Point the CLI at an isolated home directory."""
    from pdfpreview.config import get_config

    home = tmp_path / "home"
    monkeypatch.setenv("PDFPREVIEW_HOME_DIR", str(home))
    monkeypatch.setenv("PDFPREVIEW_UPLOAD_URL", "https://example.test/uploads")
    get_config.cache_clear()
    yield home
    get_config.cache_clear()


class TestCLISkeleton:

    def test_cli_group_exists(self):
        from pdfpreview.cli import cli

        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "doctor" in result.output

    @pytest.mark.parametrize(
        "command",
        ["register", "process", "bulk", "info", "delete", "stats", "cleanup", "clear-cache", "doctor", "config"],
    )
    def test_command_registered(self, command):
        from pdfpreview.cli import cli

        result = CliRunner().invoke(cli, [command, "--help"])
        assert result.exit_code == 0

    def test_version_flag(self):
        from pdfpreview import __version__
        from pdfpreview.cli import cli

        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestCLICommands:

    def test_register_and_info(self, cli_home, tmp_path):
        from pdfpreview.cli import cli

        pdf = make_pdf(tmp_path / "report.pdf")
        runner = CliRunner()
        result = runner.invoke(cli, ["register", str(pdf), "--id", "42"])
        assert result.exit_code == 0, result.output
        assert "Registered document 42" in result.output

        result = runner.invoke(cli, ["info", "42", "--json"])
        assert result.exit_code == 0, result.output
        data = _json(result.output)
        assert data["id"] == 42
        assert data["processed"] is True
        assert data["page_count"] == 1
        assert data["preview_url"].startswith("https://example.test/uploads/pdfpreview-cache/42-p1.")
        assert (cli_home / "state.json").is_file()

    def test_info_unknown_document(self, cli_home):
        from pdfpreview.cli import cli

        result = CliRunner().invoke(cli, ["info", "7"])
        assert result.exit_code != 0
        assert "Document 7 not found" in result.output

    def test_process_force(self, cli_home, tmp_path):
        from pdfpreview.cli import cli

        runner = CliRunner()
        runner.invoke(cli, ["register", str(make_pdf(tmp_path / "a.pdf"))])
        result = runner.invoke(cli, ["process", "1", "--force"])
        assert result.exit_code == 0, result.output
        assert "Document 1 processed" in result.output

    def test_process_missing_file_fails(self, cli_home, tmp_path):
        from pdfpreview.cli import cli

        pdf = make_pdf(tmp_path / "a.pdf")
        runner = CliRunner()
        runner.invoke(cli, ["register", str(pdf)])
        pdf.unlink()
        result = runner.invoke(cli, ["process", "1", "--force"])
        assert result.exit_code != 0
        assert "PDF file not found" in result.output

    def test_bulk_all(self, cli_home, tmp_path, monkeypatch):
        from pdfpreview.cli import cli

        monkeypatch.setenv("PDFPREVIEW_GENERATE_ON_UPLOAD", "false")
        runner = CliRunner()
        for i in range(3):
            runner.invoke(cli, ["register", str(make_pdf(tmp_path / f"{i}.pdf"))])

        result = runner.invoke(cli, ["bulk", "--limit", "2", "--all", "--json"])
        assert result.exit_code == 0, result.output
        assert _json(result.output) == {"processed": 3, "failed": 0, "remaining": 0, "batches": 2}

    def test_stats_json(self, cli_home, tmp_path):
        from pdfpreview.cli import cli

        runner = CliRunner()
        runner.invoke(cli, ["register", str(make_pdf(tmp_path / "a.pdf"))])
        result = runner.invoke(cli, ["stats", "--json"])
        assert result.exit_code == 0, result.output
        data = _json(result.output)
        assert data["documents"]["processed"] == 1
        assert data["cache"]["file_count"] == 1

    def test_delete(self, cli_home, tmp_path):
        from pdfpreview.cli import cli

        runner = CliRunner()
        runner.invoke(cli, ["register", str(make_pdf(tmp_path / "a.pdf"))])
        result = runner.invoke(cli, ["delete", "1"])
        assert result.exit_code == 0, result.output
        result = runner.invoke(cli, ["stats", "--json"])
        assert _json(result.output)["cache"]["file_count"] == 0

    def test_cleanup_and_clear_cache(self, cli_home, tmp_path):
        from pdfpreview.cli import cli

        runner = CliRunner()
        runner.invoke(cli, ["register", str(make_pdf(tmp_path / "a.pdf"))])

        result = runner.invoke(cli, ["cleanup"])
        assert result.exit_code == 0
        assert "removed 0 file(s)" in result.output

        result = runner.invoke(cli, ["clear-cache"], input="n\n")
        assert result.exit_code != 0

        result = runner.invoke(cli, ["clear-cache", "--yes"])
        assert result.exit_code == 0
        assert "Deleted 1 cached file(s)" in result.output

    def test_doctor_json(self, cli_home):
        from pdfpreview.cli import cli

        result = CliRunner().invoke(cli, ["doctor", "--refresh", "--json"])
        assert result.exit_code == 0, result.output
        report = _json(result.output)
        assert report["status"] in {"good", "limited", "unavailable"}
        assert {c["name"] for c in report["checks"]} >= {"pdfium", "Pillow"}

    def test_config_show(self, cli_home):
        from pdfpreview.cli import cli

        result = CliRunner().invoke(cli, ["config"])
        assert result.exit_code == 0, result.output
        assert "preview_quality" in result.output
        assert "cache_retention_days" in result.output

    def test_session_log_written(self, cli_home):
        from pdfpreview.cli import cli

        CliRunner().invoke(cli, ["stats"])
        logs = list((cli_home / "logs").glob("pdfpreview_*.log"))
        assert logs
