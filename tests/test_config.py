import pytest

from video_indexer.config import (
    DEFAULT_INDEX_URL,
    DEFAULT_USERS_URL,
    DEFAULT_VIDEOS_URL,
    ConfigError,
    load_config,
    validate_runtime,
)
from video_indexer.models import Config


ENV_NAMES = (
    "USERS_URL",
    "VIDEOS_URL",
    "INDEX_URL",
    "TIMEOUT",
    "NUM_THREADS",
    "HTTP_TIMEOUT",
    "MAX_RETRY_TASKS",
    "RETRY_DELAY_SEC",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults_apply_when_urls_are_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TIMEOUT", "3")
    monkeypatch.setenv("NUM_THREADS", "4")

    config = load_config()

    assert config == Config(
        users_url=DEFAULT_USERS_URL,
        videos_url=DEFAULT_VIDEOS_URL,
        index_url=DEFAULT_INDEX_URL,
        timeout_sec=3.0,
        threads=4,
    )
    assert validate_runtime(config) == []


def test_env_overrides_and_optional_knobs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("USERS_URL", "http://users.internal/users/")
    monkeypatch.setenv("VIDEOS_URL", "")
    monkeypatch.setenv("TIMEOUT", "10")
    monkeypatch.setenv("NUM_THREADS", "1")
    monkeypatch.setenv("HTTP_TIMEOUT", "1.5")
    monkeypatch.setenv("MAX_RETRY_TASKS", "8")
    monkeypatch.setenv("RETRY_DELAY_SEC", "0.25")

    config = load_config()

    assert config.users_url == "http://users.internal/users"
    assert config.videos_url == DEFAULT_VIDEOS_URL
    assert config.http_timeout_sec == 1.5
    assert config.max_retry_tasks == 8
    assert config.retry_delay_sec == 0.25


@pytest.mark.parametrize(
    ("timeout", "threads", "message"),
    [
        (None, "2", "缺少环境变量 TIMEOUT"),
        ("3", None, "缺少环境变量 NUM_THREADS"),
        ("abc", "2", "TIMEOUT 取值非法"),
        ("3", "0", "NUM_THREADS 必须为正整数"),
    ],
)
def test_required_values_are_fatal(
    monkeypatch: pytest.MonkeyPatch, timeout: str | None, threads: str | None, message: str
) -> None:
    if timeout is not None:
        monkeypatch.setenv("TIMEOUT", timeout)
    if threads is not None:
        monkeypatch.setenv("NUM_THREADS", threads)

    with pytest.raises(ConfigError, match=message):
        load_config()


def test_negative_retry_knob_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TIMEOUT", "3")
    monkeypatch.setenv("NUM_THREADS", "2")
    monkeypatch.setenv("MAX_RETRY_TASKS", "-1")

    with pytest.raises(ConfigError, match="MAX_RETRY_TASKS 不能为负数"):
        load_config()


def test_validate_runtime_reports_bad_urls() -> None:
    config = Config(
        users_url="ftp://users",
        videos_url="http://videos",
        index_url="index",
        timeout_sec=1.0,
        threads=1,
    )

    errors = validate_runtime(config)

    assert len(errors) == 2
    assert errors[0].startswith("USERS_URL 非法")
    assert errors[1].startswith("INDEX_URL 非法")


@pytest.mark.parametrize("raw", ["0", "-1.5"])
def test_http_timeout_must_be_positive(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("TIMEOUT", "3")
    monkeypatch.setenv("NUM_THREADS", "2")
    monkeypatch.setenv("HTTP_TIMEOUT", raw)

    with pytest.raises(ConfigError, match="HTTP_TIMEOUT 必须为正数"):
        load_config()


def test_validate_runtime_rejects_non_positive_http_timeout() -> None:
    config = Config(
        users_url="http://users",
        videos_url="http://videos",
        index_url="http://index",
        timeout_sec=1.0,
        threads=1,
        http_timeout_sec=0.0,
    )

    assert validate_runtime(config) == ["HTTP 超时必须 > 0: 0.0"]
