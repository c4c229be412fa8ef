from __future__ import annotations

import os
from urllib.parse import urlparse

from .models import Config


DEFAULT_USERS_URL = "http://localhost:8000/users"
DEFAULT_VIDEOS_URL = "http://localhost:8001/videos"
DEFAULT_INDEX_URL = "http://localhost:8002/index"
DEFAULT_HTTP_TIMEOUT_SEC = 5.0


class ConfigError(RuntimeError):
    pass


def _read_required_positive_int(env_name: str) -> int:
    raw = os.getenv(env_name)
    if raw is None or not raw.strip():
        raise ConfigError(f"缺少环境变量 {env_name}")
    try:
        value = int(raw.strip())
    except ValueError:
        raise ConfigError(f"{env_name} 取值非法: {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{env_name} 必须为正整数: {raw!r}")
    return value


def _read_non_negative_int(env_name: str, default: int) -> int:
    raw = os.getenv(env_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ConfigError(f"{env_name} 取值非法: {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{env_name} 不能为负数: {raw!r}")
    return value


def _read_non_negative_float(env_name: str, default: float) -> float:
    raw = os.getenv(env_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        raise ConfigError(f"{env_name} 取值非法: {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{env_name} 不能为负数: {raw!r}")
    return value


def _read_positive_float(env_name: str, default: float) -> float:
    raw = os.getenv(env_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        raise ConfigError(f"{env_name} 取值非法: {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{env_name} 必须为正数: {raw!r}")
    return value


def _read_url(env_name: str, default: str) -> str:
    # 空字符串与未设置同样回退到默认地址
    raw = os.getenv(env_name, "").strip()
    return (raw or default).rstrip("/")


def load_config() -> Config:
    return Config(
        users_url=_read_url("USERS_URL", DEFAULT_USERS_URL),
        videos_url=_read_url("VIDEOS_URL", DEFAULT_VIDEOS_URL),
        index_url=_read_url("INDEX_URL", DEFAULT_INDEX_URL),
        timeout_sec=float(_read_required_positive_int("TIMEOUT")),
        threads=_read_required_positive_int("NUM_THREADS"),
        http_timeout_sec=_read_positive_float("HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SEC),
        max_retry_tasks=_read_non_negative_int("MAX_RETRY_TASKS", 0),
        retry_delay_sec=_read_non_negative_float("RETRY_DELAY_SEC", 0.0),
    )


def _is_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def validate_runtime(config: Config) -> list[str]:
    errors: list[str] = []
    for name, url in (
        ("USERS_URL", config.users_url),
        ("VIDEOS_URL", config.videos_url),
        ("INDEX_URL", config.index_url),
    ):
        if not _is_http_url(url):
            errors.append(f"{name} 非法：仅支持 http/https 地址: {url}")
    if config.threads < 1:
        errors.append(f"线程数必须 >= 1: {config.threads}")
    if config.timeout_sec <= 0:
        errors.append(f"空闲超时必须 > 0: {config.timeout_sec}")
    if config.http_timeout_sec <= 0:
        errors.append(f"HTTP 超时必须 > 0: {config.http_timeout_sec}")
    return errors
