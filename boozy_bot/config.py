from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = BASE_DIR / "config.yaml"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    db_path = os.getenv("BOOZY_BOT_DB_PATH")
    if db_path:
        overrides.setdefault("memory", {})["db_path"] = db_path

    bot_name = os.getenv("TELEGRAM_BOT_NAME", "").strip()
    if bot_name:
        overrides.setdefault("telegram", {})["bot_name"] = bot_name

    log_level = os.getenv("BOOZY_BOT_LOG_LEVEL", "").strip()
    if log_level:
        overrides.setdefault("logging", {})["level"] = log_level

    return overrides


def resolve_path(path_value: str, *, base_dir: Optional[Path] = None) -> Path:
    candidate = Path(path_value)
    if not candidate.is_absolute():
        candidate = (base_dir or BASE_DIR) / candidate
    return candidate.resolve()


@lru_cache(maxsize=1)
def load_config() -> Dict[str, Any]:
    # Load .env once through a single interface.
    load_dotenv(dotenv_path=BASE_DIR / ".env")

    config_path = os.getenv("BOOZY_BOT_CONFIG")
    path = resolve_path(config_path, base_dir=Path.cwd()) if config_path else DEFAULT_CONFIG_PATH

    data: Dict[str, Any] = {}
    if path.exists():
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        if isinstance(loaded, dict):
            data = loaded

    return _deep_merge(data, _env_overrides())


def reload_config() -> Dict[str, Any]:
    load_config.cache_clear()
    return load_config()


def get_db_path(config: Optional[Dict[str, Any]] = None) -> Path:
    cfg = config or load_config()
    db_path = str(cfg.get("memory", {}).get("db_path", "data/boozy.db"))
    return resolve_path(db_path)


def get_log_path(config: Optional[Dict[str, Any]] = None) -> Path:
    cfg = config or load_config()
    log_path = str(cfg.get("paths", {}).get("log_file", "logs/boozy-bot.log"))
    return resolve_path(log_path)


def get_secret(section: str, default_env_var: str, config: Optional[Dict[str, Any]] = None) -> str:
    """Read a secret from the environment variable named in ``<section>.<*>_env_var``."""
    cfg = config or load_config()
    section_cfg = cfg.get(section, {}) if isinstance(cfg.get(section, {}), dict) else {}
    env_var = str(section_cfg.get("token_env_var") or section_cfg.get("key_env_var") or default_env_var)
    return os.getenv(env_var.strip(), "").strip()


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name, {})
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class BotSettings:
    bot_name: str = "BoozyBot"
    max_ingredients_per_chat: int = 10
    search_page_size: int = 1
    match_tolerance: int = 1
    inline_page_size: int = 10
    inline_cache_seconds: int = 300
    addb_base_url: str = "https://addb.absolutdrinks.com"
    addb_timeout_seconds: float = 10.0
    queue_max_attempts: int = 5
    queue_backoff_base_seconds: float = 2.0
    queue_backoff_max_seconds: float = 300.0
    queue_job_timeout_seconds: float = 60.0
    queue_poll_interval_seconds: float = 1.0
    queue_cleanup_after_hours: float = 24.0
    poll_timeout_seconds: int = 10

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "BotSettings":
        cfg = config or load_config()
        telegram_cfg = _section(cfg, "telegram")
        bot_cfg = _section(cfg, "bot")
        addb_cfg = _section(cfg, "addb")
        queue_cfg = _section(cfg, "queue")
        defaults = cls()
        return cls(
            bot_name=str(telegram_cfg.get("bot_name", defaults.bot_name)).lstrip("@"),
            max_ingredients_per_chat=int(bot_cfg.get("max_ingredients_per_chat", defaults.max_ingredients_per_chat)),
            search_page_size=max(1, int(bot_cfg.get("search_page_size", defaults.search_page_size))),
            match_tolerance=max(0, int(bot_cfg.get("match_tolerance", defaults.match_tolerance))),
            inline_page_size=max(1, int(bot_cfg.get("inline_page_size", defaults.inline_page_size))),
            inline_cache_seconds=int(bot_cfg.get("inline_cache_seconds", defaults.inline_cache_seconds)),
            addb_base_url=str(addb_cfg.get("base_url", defaults.addb_base_url)).rstrip("/"),
            addb_timeout_seconds=float(addb_cfg.get("timeout_seconds", defaults.addb_timeout_seconds)),
            queue_max_attempts=max(1, int(queue_cfg.get("max_attempts", defaults.queue_max_attempts))),
            queue_backoff_base_seconds=float(queue_cfg.get("backoff_base_seconds", defaults.queue_backoff_base_seconds)),
            queue_backoff_max_seconds=float(queue_cfg.get("backoff_max_seconds", defaults.queue_backoff_max_seconds)),
            queue_job_timeout_seconds=float(queue_cfg.get("job_timeout_seconds", defaults.queue_job_timeout_seconds)),
            queue_poll_interval_seconds=float(
                queue_cfg.get("poll_interval_seconds", defaults.queue_poll_interval_seconds)
            ),
            queue_cleanup_after_hours=float(queue_cfg.get("cleanup_after_hours", defaults.queue_cleanup_after_hours)),
            poll_timeout_seconds=int(telegram_cfg.get("poll_timeout_seconds", defaults.poll_timeout_seconds)),
        )
