from __future__ import annotations

import json
from typing import Any

import requests
from requests.adapters import HTTPAdapter

from .models import Config, JoinedRecord, UserRecord, VideoRecord


class RemoteError(RuntimeError):
    pass


class TransportError(RemoteError):
    pass


class StatusError(RemoteError):
    def __init__(self, url: str, status_code: int, expected: int) -> None:
        super().__init__(f"URL: '{url}' 返回非预期状态码 {status_code}（预期 {expected}）")
        self.url = url
        self.status_code = status_code
        self.expected = expected


class DecodeError(RemoteError):
    pass


def build_session(config: Config) -> requests.Session:
    # 构建后只读，供所有 worker 共享连接池
    session = requests.Session()
    pool_size = max(config.threads, 10)
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"Accept": "application/json", "Accept-Encoding": "gzip"})
    return session


def fetch_record(
    session: requests.Session,
    base_url: str,
    record_id: str,
    timeout_sec: float,
) -> dict[str, Any]:
    url = f"{base_url}/{record_id}"
    try:
        with session.get(url, timeout=timeout_sec) as response:
            if response.status_code != 200:
                raise StatusError(url, response.status_code, expected=200)
            # Content-Encoding: gzip 由 urllib3 在读取 content 时解压
            body = response.content
    except requests.exceptions.ContentDecodingError as exc:
        raise DecodeError(f"URL: '{url}' 响应解压失败: {exc}") from exc
    except requests.RequestException as exc:
        raise TransportError(f"URL: '{url}' 请求失败: {exc}") from exc

    return _decode_envelope(url, body)


def _decode_envelope(url: str, body: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise DecodeError(f"URL: '{url}' 返回的 JSON 无法解析: {exc}") from exc

    if not isinstance(payload, dict):
        raise DecodeError(f"URL: '{url}' 返回的 JSON 不是对象")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise DecodeError(f"URL: '{url}' 返回的 JSON 缺少 data 对象")
    return data


def fetch_user(session: requests.Session, config: Config, user_id: str) -> UserRecord:
    data = fetch_record(session, config.users_url, user_id, config.http_timeout_sec)
    return UserRecord.from_payload(data)


def fetch_video(session: requests.Session, config: Config, video_id: str) -> VideoRecord:
    data = fetch_record(session, config.videos_url, video_id, config.http_timeout_sec)
    return VideoRecord.from_payload(data)


def submit_join(
    session: requests.Session,
    index_url: str,
    record: JoinedRecord,
    timeout_sec: float,
) -> None:
    try:
        with session.post(
            index_url,
            json=record.to_payload(),
            headers={"Content-Type": "application/json"},
            timeout=timeout_sec,
        ) as response:
            if response.status_code != 201:
                raise StatusError(index_url, response.status_code, expected=201)
    except requests.RequestException as exc:
        raise TransportError(f"URL: '{index_url}' 请求失败: {exc}") from exc
