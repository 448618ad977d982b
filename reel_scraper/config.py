"""YAML config loader with environment overrides."""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger("reel_scraper")

RENDER_MODES = ("firecrawl_local", "firecrawl_cloud", "flaresolverr", "direct")

MIN_SOURCE_DELAY = 2.0
MAX_SOURCE_DELAY = 5.0


@dataclass
class RenderingConfig:
    mode: str = "firecrawl_local"
    local_url: str = "http://localhost:3002"
    cloud_url: str = "https://api.firecrawl.dev/v1/scrape"
    api_key: str = ""
    flaresolverr_url: str = "http://localhost:8191/v1"
    timeout: int = 60
    user_agent: str = ("Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
                       "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36")


@dataclass
class RetryConfig:
    max_attempts: int = 5
    initial_delay_ms: int = 1000
    max_delay_ms: int = 60000
    multiplier: int = 2
    retryable_status_codes: List[int] = field(default_factory=lambda: [429, 500, 502, 503, 504])
    max_url_failures: int = 3


@dataclass
class TextGenConfig:
    provider: str = "ollama"
    ollama_url: str = "http://localhost:11434/api/generate"
    ollama_model: str = "openbmb/minicpm-o2.6:latest"
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    openai_model: str = "gpt-4o"
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    max_input_chars: int = 6000
    timeout: int = 120


@dataclass
class NotificationConfig:
    webhook_url: str = ""
    email_enabled: bool = False
    email_to: str = ""
    email_api_key: str = ""
    email_from: str = "ContentReel <notifications@contentreel.local>"
    email_api_url: str = "https://api.resend.com/emails"


@dataclass
class SourceConfig:
    enabled: bool = True
    rate_limit: float = 3.0
    limit: int = 50
    description: str = ""
    cookies: str = ""
    headers: Dict[str, str] = field(default_factory=dict)


DEFAULT_SOURCE_DELAYS = {
    "codeforces": 5.0,
    "codeforces_editorials": 5.0,
    "aman_ai": 2.0,
    "hackernews": 2.0,
    "investopedia": 3.0,
    "fourminutebooks": 3.0,
    "producthunt": 3.0,
}


@dataclass
class AppConfig:
    db_path: str = "reel.db"
    log_dir: str = "logs"
    auto_resume: bool = True
    rendering: RenderingConfig = field(default_factory=RenderingConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    textgen: TextGenConfig = field(default_factory=TextGenConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    sources: Dict[str, SourceConfig] = field(default_factory=dict)

    def source(self, name: str) -> SourceConfig:
        if name not in self.sources:
            self.sources[name] = SourceConfig(rate_limit=DEFAULT_SOURCE_DELAYS.get(name, 3.0))
        return self.sources[name]


def _pick(cls, raw: Optional[dict]) -> dict:
    return {k: v for k, v in (raw or {}).items() if k in cls.__dataclass_fields__}


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(config_path: str = "config.yaml", env: Optional[Dict[str, str]] = None) -> AppConfig:
    """Build the config from ``config_path`` (optional) and the environment."""
    raw = {}
    if config_path and os.path.exists(config_path):
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

    sources = {}
    for name, src_raw in (raw.get("sources") or {}).items():
        src = SourceConfig(rate_limit=DEFAULT_SOURCE_DELAYS.get(name, 3.0))
        for key, value in _pick(SourceConfig, src_raw).items():
            setattr(src, key, value)
        sources[name] = src

    config = AppConfig(
        db_path=raw.get("db_path", "reel.db"),
        log_dir=raw.get("log_dir", "logs"),
        auto_resume=raw.get("auto_resume", True),
        rendering=RenderingConfig(**_pick(RenderingConfig, raw.get("rendering"))),
        retry=RetryConfig(**_pick(RetryConfig, raw.get("retry"))),
        textgen=TextGenConfig(**_pick(TextGenConfig, raw.get("textgen"))),
        notifications=NotificationConfig(**_pick(NotificationConfig, raw.get("notifications"))),
        sources=sources,
    )

    if env is None:
        load_dotenv()
        env = dict(os.environ)
    apply_env_overrides(config, env)
    return config


def apply_env_overrides(config: AppConfig, env: Dict[str, str]):
    if env.get("SQLITE_DB_PATH"):
        config.db_path = env["SQLITE_DB_PATH"]
    if env.get("LOG_DIR"):
        config.log_dir = env["LOG_DIR"]
    if env.get("AUTO_RESUME"):
        config.auto_resume = _env_bool(env["AUTO_RESUME"])

    _apply_rendering_env(config.rendering, env)

    if env.get("SCRAPE_MAX_RETRIES"):
        config.retry.max_attempts = max(1, int(env["SCRAPE_MAX_RETRIES"]))

    tg = config.textgen
    if env.get("TEXTGEN_PROVIDER"):
        tg.provider = env["TEXTGEN_PROVIDER"]
    if env.get("OLLAMA_API_URL"):
        tg.ollama_url = env["OLLAMA_API_URL"]
    if env.get("OLLAMA_MODEL"):
        tg.ollama_model = env["OLLAMA_MODEL"]
    if env.get("ANTHROPIC_API_KEY"):
        tg.anthropic_api_key = env["ANTHROPIC_API_KEY"]
    if env.get("OPENAI_API_KEY"):
        tg.openai_api_key = env["OPENAI_API_KEY"]

    nc = config.notifications
    if env.get("WEBHOOK_URL"):
        nc.webhook_url = env["WEBHOOK_URL"]
    if env.get("EMAIL_ENABLED"):
        nc.email_enabled = _env_bool(env["EMAIL_ENABLED"])
    if env.get("NOTIFICATION_EMAIL"):
        nc.email_to = env["NOTIFICATION_EMAIL"]
    if env.get("EMAIL_API_KEY"):
        nc.email_api_key = env["EMAIL_API_KEY"]

    delay = env.get("SCRAPE_DELAY")
    for name in set(DEFAULT_SOURCE_DELAYS) | set(config.sources):
        src = config.source(name)
        prefix = name.upper()
        if env.get(f"{prefix}_COOKIES"):
            src.cookies = env[f"{prefix}_COOKIES"]
        if env.get(f"{prefix}_HEADERS"):
            try:
                src.headers.update(json.loads(env[f"{prefix}_HEADERS"]))
            except ValueError:
                logger.warning(f"[{name}] Ignoring {prefix}_HEADERS: not a JSON object")
        if delay:
            src.rate_limit = float(delay)
        else:
            src.rate_limit = min(max(src.rate_limit, MIN_SOURCE_DELAY), MAX_SOURCE_DELAY)


def _apply_rendering_env(rc: RenderingConfig, env: Dict[str, str]):
    if env.get("FIRECRAWL_LOCAL_URL"):
        rc.local_url = env["FIRECRAWL_LOCAL_URL"]
    if env.get("FIRECRAWL_API_KEY"):
        rc.api_key = env["FIRECRAWL_API_KEY"]
    if env.get("FLARESOLVERR_URL"):
        rc.flaresolverr_url = env["FLARESOLVERR_URL"]
    if env.get("RENDER_TIMEOUT"):
        rc.timeout = int(env["RENDER_TIMEOUT"])

    if env.get("RENDER_MODE"):
        rc.mode = env["RENDER_MODE"]
    elif env.get("USE_LOCAL_FIRECRAWL"):
        rc.mode = "firecrawl_local" if _env_bool(env["USE_LOCAL_FIRECRAWL"]) else "firecrawl_cloud"

    if rc.mode not in RENDER_MODES:
        raise ValueError(f"Unknown rendering mode: {rc.mode}")
    if rc.mode == "firecrawl_cloud" and not rc.api_key:
        logger.warning("FIRECRAWL_API_KEY not set and not using local, falling back to direct fetch")
        rc.mode = "direct"
