"""Tests for YAML loading and environment overrides."""

from __future__ import annotations

import pytest
import yaml

from reel_scraper.config import AppConfig, apply_env_overrides, load_config


def _write(tmp_path, data: dict) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), env={})
        assert config.db_path == "reel.db"
        assert config.rendering.mode == "firecrawl_local"
        assert config.retry.max_attempts == 5
        assert config.source("codeforces").rate_limit == 5.0

    def test_yaml_sections(self, tmp_path) -> None:
        path = _write(tmp_path, {
            "db_path": "data/reel.db",
            "auto_resume": False,
            "rendering": {"mode": "flaresolverr", "timeout": 30, "bogus": 1},
            "retry": {"max_attempts": 3},
            "sources": {"hackernews": {"limit": 7, "rate_limit": 2.5}},
        })
        config = load_config(path, env={})

        assert config.db_path == "data/reel.db"
        assert config.auto_resume is False
        assert config.rendering.mode == "flaresolverr"
        assert config.rendering.timeout == 30
        assert config.retry.max_attempts == 3
        assert config.source("hackernews").limit == 7
        assert config.source("hackernews").rate_limit == 2.5


class TestEnvOverrides:
    def test_render_mode_and_paths(self) -> None:
        config = AppConfig()
        apply_env_overrides(config, {
            "RENDER_MODE": "direct",
            "SQLITE_DB_PATH": "/tmp/x.db",
            "SCRAPE_MAX_RETRIES": "2",
            "AUTO_RESUME": "false",
        })
        assert config.rendering.mode == "direct"
        assert config.db_path == "/tmp/x.db"
        assert config.retry.max_attempts == 2
        assert config.auto_resume is False

    def test_legacy_local_flag(self) -> None:
        config = AppConfig()
        apply_env_overrides(config, {"USE_LOCAL_FIRECRAWL": "false", "FIRECRAWL_API_KEY": "k"})
        assert config.rendering.mode == "firecrawl_cloud"

    def test_cloud_without_key_degrades_to_direct(self) -> None:
        config = AppConfig()
        apply_env_overrides(config, {"RENDER_MODE": "firecrawl_cloud"})
        assert config.rendering.mode == "direct"

    def test_unknown_mode(self) -> None:
        with pytest.raises(ValueError):
            apply_env_overrides(AppConfig(), {"RENDER_MODE": "selenium"})

    def test_source_delays_are_clamped(self) -> None:
        config = AppConfig()
        config.source("hackernews").rate_limit = 0.5
        config.source("codeforces").rate_limit = 30.0
        apply_env_overrides(config, {})
        assert config.source("hackernews").rate_limit == 2.0
        assert config.source("codeforces").rate_limit == 5.0

    def test_scrape_delay_applies_to_all_sources(self) -> None:
        config = AppConfig()
        apply_env_overrides(config, {"SCRAPE_DELAY": "1.5"})
        assert config.source("aman_ai").rate_limit == 1.5
        assert config.source("investopedia").rate_limit == 1.5

    def test_cookies_and_headers(self) -> None:
        config = AppConfig()
        apply_env_overrides(config, {
            "CODEFORCES_COOKIES": "JSESSIONID=abc",
            "CODEFORCES_HEADERS": '{"Referer": "https://codeforces.com/"}',
            "AMAN_AI_HEADERS": "not json",
        })
        assert config.source("codeforces").cookies == "JSESSIONID=abc"
        assert config.source("codeforces").headers == {"Referer": "https://codeforces.com/"}
        assert config.source("aman_ai").headers == {}

    def test_notification_settings(self) -> None:
        config = AppConfig()
        apply_env_overrides(config, {
            "WEBHOOK_URL": "https://hooks.test/x",
            "EMAIL_ENABLED": "yes",
            "NOTIFICATION_EMAIL": "ops@example.com",
            "EMAIL_API_KEY": "re_123",
        })
        nc = config.notifications
        assert nc.webhook_url == "https://hooks.test/x"
        assert nc.email_enabled is True
        assert nc.email_to == "ops@example.com"
