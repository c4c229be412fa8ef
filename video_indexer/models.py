from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Config:
    users_url: str
    videos_url: str
    index_url: str
    timeout_sec: float
    threads: int
    http_timeout_sec: float = 5.0
    max_retry_tasks: int = 0
    retry_delay_sec: float = 0.0


@dataclass(frozen=True)
class WorkItem:
    user_id: str
    video_id: str


@dataclass(frozen=True)
class ParseFailure:
    index: int
    raw: str
    error: str


def _int_field(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def _str_field(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class UserRecord:
    id: int = 0
    full_name: str = ""
    email: str = ""
    country: str = ""
    language: str = ""
    last_ip: str = ""

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> UserRecord:
        return cls(
            id=_int_field(data, "id"),
            full_name=_str_field(data, "fullName"),
            email=_str_field(data, "email"),
            country=_str_field(data, "country"),
            language=_str_field(data, "language"),
            last_ip=_str_field(data, "lastIp"),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "email": self.email,
            "country": self.country,
            "language": self.language,
            "lastIp": self.last_ip,
        }


@dataclass(frozen=True)
class VideoRecord:
    id: int = 0
    title: str = ""
    caption: str = ""
    privacy: str = ""
    frame_rate: str = ""
    video_codec: str = ""
    audio_codec: str = ""
    audio_sample_rate: str = ""

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> VideoRecord:
        return cls(
            id=_int_field(data, "id"),
            title=_str_field(data, "title"),
            caption=_str_field(data, "caption"),
            privacy=_str_field(data, "privacy"),
            frame_rate=_str_field(data, "frameRate"),
            video_codec=_str_field(data, "videoCodec"),
            audio_codec=_str_field(data, "audioCodec"),
            audio_sample_rate=_str_field(data, "audioSampleRate"),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "caption": self.caption,
            "privacy": self.privacy,
            "frameRate": self.frame_rate,
            "videoCodec": self.video_codec,
            "audioCodec": self.audio_codec,
            "audioSampleRate": self.audio_sample_rate,
        }


@dataclass(frozen=True)
class JoinedRecord:
    user: UserRecord
    video: VideoRecord

    def to_payload(self) -> dict[str, Any]:
        return {"user": self.user.to_payload(), "video": self.video.to_payload()}


@dataclass
class WorkerStats:
    # 只由所属 worker 线程写入
    succeeded: int = 0
    failed_attempts: int = 0
    retries_scheduled: int = 0


@dataclass
class RunReport:
    produced: int
    succeeded: int
    failed_attempts: int
    retries_scheduled: int
    elapsed_sec: float
    cancelled: bool = False
