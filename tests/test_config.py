"""Tests for workspace configuration and logging setup."""

from __future__ import annotations

import logging
from datetime import timezone
from pathlib import Path

import pytest

from src import logging_utils
from src.config import WorkspaceConfig, load_config
from src.workflow.exceptions import ConfigError


def write_config(repo: Path, text: str) -> Path:
    path = repo / ".sprintctl" / "config.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("SPRINTCTL_LOG_LEVEL", "SPRINTCTL_TIMEZONE", "SPRINTCTL_LOG_FILE"):
        monkeypatch.delenv(var, raising=False)


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path: Path):
        config = load_config(tmp_path)
        assert config.repo_path == tmp_path
        assert config.timezone == "UTC"
        assert config.default_duration == "2w"
        assert config.include_merge_commits is False

    def test_file_values(self, tmp_path: Path):
        write_config(
            tmp_path,
            "timezone: Europe/Berlin\ndefault_duration: 10d\ninclude_merge_commits: true\n",
        )
        config = load_config(tmp_path)
        assert config.timezone == "Europe/Berlin"
        assert config.default_duration == "10d"
        assert config.include_merge_commits is True

    def test_empty_file(self, tmp_path: Path):
        write_config(tmp_path, "")
        assert load_config(tmp_path).log_level == "info"

    def test_environment_overrides_file(self, tmp_path: Path, monkeypatch):
        write_config(tmp_path, "log_level: debug\n")
        monkeypatch.setenv("SPRINTCTL_LOG_LEVEL", "error")
        assert load_config(tmp_path).log_level == "error"

    def test_explicit_path(self, tmp_path: Path):
        path = tmp_path / "elsewhere.yaml"
        path.write_text("sprint_stem: Iteration-\n")
        assert load_config(tmp_path, path).sprint_stem == "Iteration-"

    @pytest.mark.parametrize(
        "text,message",
        [
            ("colour: blue\n", "Unknown config key"),
            ("- a\n", "must contain a mapping"),
            ("timezone: [\n", "Malformed"),
            ("include_merge_commits: sometimes\n", "true or false"),
            ("timezone: Mars/Olympus\n", "Unknown timezone"),
        ],
    )
    def test_invalid_files(self, tmp_path: Path, text, message):
        write_config(tmp_path, text)
        with pytest.raises(ConfigError, match=message):
            load_config(tmp_path)

    def test_missing_explicit_path(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path, tmp_path / "nope.yaml")

    def test_tzinfo(self):
        assert WorkspaceConfig().tzinfo.utcoffset(None) == timezone.utc.utcoffset(None)


class TestLogging:
    def test_module_names_map_to_namespace(self):
        assert logging_utils.get_logger("src.services.doctor").name == "sprintctl.services.doctor"
        assert logging_utils.get_logger("sprintctl.cli").name == "sprintctl.cli"
        assert logging_utils.get_logger("tui").name == "sprintctl.tui"

    def test_level_from_argument(self):
        logging_utils.configure_logging("debug")
        assert logging.getLogger("sprintctl").level == logging.DEBUG
        logging_utils.configure_logging("warning")
        assert logging.getLogger("sprintctl").level == logging.WARNING

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("SPRINTCTL_LOG_LEVEL", "ERROR")
        logging_utils.configure_logging()
        assert logging.getLogger("sprintctl").level == logging.ERROR

    def test_unknown_level_falls_back_to_info(self):
        logging_utils.configure_logging("chatty")
        assert logging.getLogger("sprintctl").level == logging.INFO

    def test_log_file_sink(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "sprintctl.log"
        logging_utils.configure_logging("info", log_file=str(log_file))
        logging_utils.get_logger("src.tests").info("hello file")
        for handler in logging.getLogger("sprintctl").handlers:
            handler.flush()
        assert "hello file" in log_file.read_text()

    def test_repeated_setup_keeps_one_console_handler(self):
        logging_utils.configure_logging("info")
        logging_utils.configure_logging("debug")
        names = [h.get_name() for h in logging.getLogger("sprintctl").handlers]
        assert names.count(logging_utils.CONSOLE_HANDLER) == 1

    def test_new_log_file_replaces_old_sink(self, tmp_path: Path):
        logging_utils.configure_logging("info", log_file=str(tmp_path / "a.log"))
        logging_utils.configure_logging("info", log_file=str(tmp_path / "b.log"))
        files = [
            Path(h.baseFilename).name
            for h in logging.getLogger("sprintctl").handlers
            if h.get_name() == logging_utils.FILE_HANDLER
        ]
        assert files == ["b.log"]

    @pytest.mark.parametrize(
        "value,expected",
        [("WARN", logging.WARNING), (" debug ", logging.DEBUG), ("15", 15), (40, 40), (None, logging.INFO)],
    )
    def test_parse_level(self, value, expected):
        assert logging_utils.parse_level(value) == expected
