from __future__ import annotations

import re
from io import BytesIO
from pathlib import Path
from typing import Iterable, Iterator

import pandas as pd

from .models import ParseFailure, WorkItem


REQUIRED_COLUMNS = ("user_id", "video_id")
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
_INT_PATTERN = re.compile(r"[+-]?[0-9]+")


def is_valid_id(value: str) -> bool:
    if not _INT_PATTERN.fullmatch(value):
        return False
    return INT32_MIN <= int(value) <= INT32_MAX


def parse_line(line: str) -> WorkItem | None:
    item, _ = _parse_line_with_error(line)
    return item


def iter_work_items(lines: Iterable[str]) -> Iterator[WorkItem]:
    # 惰性读取，非法行直接丢弃
    for line in lines:
        item = parse_line(line)
        if item is not None:
            yield item


def parse_inputs_with_errors(
    text: str,
    upload_file_name: str | None = None,
    upload_bytes: bytes | None = None,
) -> tuple[list[WorkItem], list[ParseFailure]]:
    # 文本框优先：只要有至少一条非空行，就忽略上传文件
    if any(line.strip() for line in text.splitlines()):
        return _parse_text_rows(text)
    if upload_bytes:
        return _parse_uploaded_rows(upload_file_name=upload_file_name, upload_bytes=upload_bytes)
    return [], []


def _parse_line_with_error(line: str) -> tuple[WorkItem | None, str]:
    fields = line.rstrip("\r\n").split(",")
    if len(fields) != 2:
        return None, "输入格式错误：需为 user_id,video_id"
    return _validate_row(fields[0].strip(), fields[1].strip())


def _validate_row(user_id: str, video_id: str) -> tuple[WorkItem | None, str]:
    if not user_id:
        return None, "user_id 不能为空"
    if not video_id:
        return None, "video_id 不能为空"
    if not is_valid_id(user_id):
        return None, f"user_id 非法：需为 32 位整数: {user_id}"
    if not is_valid_id(video_id):
        return None, f"video_id 非法：需为 32 位整数: {video_id}"
    return WorkItem(user_id=user_id, video_id=video_id), ""


def _parse_text_rows(text: str) -> tuple[list[WorkItem], list[ParseFailure]]:
    items: list[WorkItem] = []
    failures: list[ParseFailure] = []

    for index, raw_line in enumerate(text.splitlines()):
        line = raw_line.strip()
        if not line:
            continue
        item, error = _parse_line_with_error(line)
        if item is None:
            failures.append(ParseFailure(index=index, raw=line, error=error))
        else:
            items.append(item)

    return items, failures


def _to_text(value: object) -> str:
    if value is None:
        return ""
    if pd.isna(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _normalize_header(value: object) -> str:
    return "".join(str(value).strip().lower().split())


def _parse_uploaded_rows(
    upload_file_name: str | None,
    upload_bytes: bytes,
) -> tuple[list[WorkItem], list[ParseFailure]]:
    suffix = Path(upload_file_name or "").suffix.lower()
    try:
        if suffix in {".xlsx", ".xlsm"}:
            df = pd.read_excel(BytesIO(upload_bytes), dtype=object)
        elif suffix in {"", ".csv"}:
            df = pd.read_csv(BytesIO(upload_bytes), dtype=str, encoding="utf-8-sig")
        else:
            return [], [
                ParseFailure(
                    index=0,
                    raw="",
                    error=f"不支持的文件类型: {upload_file_name or 'unknown'}",
                )
            ]
    except Exception as exc:  # noqa: BLE001
        return [], [ParseFailure(index=0, raw="", error=f"文件解析失败: {exc}")]

    normalized_headers = {_normalize_header(col): col for col in df.columns}
    if not set(REQUIRED_COLUMNS).issubset(normalized_headers):
        return [], [ParseFailure(index=0, raw="", error="缺少必需列: user_id,video_id")]

    user_col = normalized_headers["user_id"]
    video_col = normalized_headers["video_id"]

    items: list[WorkItem] = []
    failures: list[ParseFailure] = []
    for index, row in enumerate(df[[user_col, video_col]].itertuples(index=False, name=None)):
        user_id = _to_text(row[0])
        video_id = _to_text(row[1])

        # 整行为空则忽略
        if not user_id and not video_id:
            continue

        item, error = _validate_row(user_id, video_id)
        if item is None:
            failures.append(ParseFailure(index=index, raw=f"{user_id},{video_id}", error=error))
        else:
            items.append(item)

    return items, failures
