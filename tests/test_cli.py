"""Tests for the command line interface."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from anisync.cli.main import app
from anisync.ingestion.registry import reset_default_registry

runner = CliRunner()


@pytest.fixture
def checkpoint_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the file checkpoint at a temporary location."""
    config = tmp_path / "anisync.yaml"
    config.write_text("crawl:\n  checkpoint_backend: file\n")
    path = tmp_path / "last_crawled_id.txt"
    monkeypatch.setenv("ANISYNC_CONFIG_PATH", str(config))
    monkeypatch.setenv("CHECKPOINT_PATH", str(path))
    reset_default_registry()
    yield path
    reset_default_registry()


class TestCli:
    """Tests for top-level commands."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "anisync v0.1.0" in result.output

    def test_providers(self, checkpoint_file: Path) -> None:
        """Built-in providers are listed when the file names none."""
        result = runner.invoke(app, ["crawl", "providers"])
        assert result.exit_code == 0
        assert "malsync" in result.output


class TestCheckpointCommands:
    """Tests for `anisync crawl checkpoint`."""

    def test_show_none(self, checkpoint_file: Path) -> None:
        result = runner.invoke(app, ["crawl", "checkpoint", "show"])
        assert result.exit_code == 0
        assert "none" in result.output

    def test_show_value(self, checkpoint_file: Path) -> None:
        checkpoint_file.write_text("16498")
        result = runner.invoke(app, ["crawl", "checkpoint", "show"])
        assert result.exit_code == 0
        assert "16498" in result.output

    def test_reset(self, checkpoint_file: Path) -> None:
        """Reset removes the checkpoint file."""
        checkpoint_file.write_text("16498")
        result = runner.invoke(app, ["crawl", "checkpoint", "reset", "--force"])
        assert result.exit_code == 0
        assert not checkpoint_file.exists()

    def test_reset_cancelled(self, checkpoint_file: Path) -> None:
        checkpoint_file.write_text("16498")
        result = runner.invoke(app, ["crawl", "checkpoint", "reset"], input="n\n")
        assert result.exit_code == 0
        assert checkpoint_file.exists()
