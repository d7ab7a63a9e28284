"""Tests for settings loading and logging setup."""

import logging

import pytest
from pydantic import ValidationError

from hoopsbot.config.logging import ColoredFormatter, get_logger, setup_logging
from hoopsbot.config.settings import ChatSettings, Settings, load_settings


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Run from an empty directory with no HoopsBot variables set."""
    monkeypatch.chdir(tmp_path)
    for prefix in ("LLM", "CHAT", "ESPN", "BOT"):
        for sep in ("_", "__"):
            for name in ("API_KEY", "MODEL", "COOLDOWN_MS", "HISTORY_LIMIT", "TOKEN", "TIMEOUT_SECONDS"):
                monkeypatch.delenv(f"{prefix}{sep}{name}", raising=False)


class TestDefaults:
    def test_defaults(self):
        settings = Settings()

        assert settings.llm.model == "openai/gpt-4-turbo"
        assert settings.llm.max_tokens == 1000
        assert settings.llm.api_key == ""
        assert settings.chat.history_limit == 6
        assert settings.chat.cooldown_ms == 3000
        assert settings.espn.site_api_base.startswith("https://site.api.espn.com/")
        assert settings.bot.allowed_channel_ids == []


class TestEnvironment:
    def test_nested_variables(self, monkeypatch):
        monkeypatch.setenv("LLM__MODEL", "anthropic/claude-3-5-sonnet-20241022")
        monkeypatch.setenv("CHAT__COOLDOWN_MS", "500")
        monkeypatch.setenv("BOT__ALLOWED_CHANNEL_IDS", "[123, 456]")

        settings = Settings()

        assert settings.llm.model == "anthropic/claude-3-5-sonnet-20241022"
        assert settings.chat.cooldown_ms == 500
        assert settings.bot.allowed_channel_ids == [123, 456]

    def test_env_file(self, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("LLM__API_KEY=sk-test\nLOG_LEVEL=DEBUG\n")

        settings = load_settings(env_file=env_file)

        assert settings.llm.api_key == "sk-test"
        assert settings.log_level == "DEBUG"

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            ChatSettings(history_limit=0)
        with pytest.raises(ValidationError):
            ChatSettings(cooldown_ms=-1)


class TestLogging:
    @pytest.fixture
    def restore_root(self):
        root = logging.getLogger("hoopsbot")
        handlers, level, propagate = list(root.handlers), root.level, root.propagate
        yield root
        root.handlers[:] = handlers
        root.setLevel(level)
        root.propagate = propagate

    def test_setup_configures_package_logger(self, restore_root, tmp_path):
        settings = Settings(log_level="WARNING", log_file=tmp_path / "logs" / "bot.log")

        setup_logging(settings)

        assert restore_root.level == logging.WARNING
        assert len(restore_root.handlers) == 2
        assert (tmp_path / "logs").is_dir()

    def test_get_logger_nests_under_package(self):
        assert get_logger("hoopsbot.llm.orchestrator").name == "hoopsbot.llm.orchestrator"
        assert get_logger("scripts.backfill").name == "hoopsbot.scripts.backfill"

    def test_colored_formatter_leaves_record_untouched(self):
        record = logging.LogRecord("hoopsbot", logging.ERROR, __file__, 1, "boom", None, None)

        output = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "\033[31m" in output
        assert record.levelname == "ERROR"
