from io import BytesIO, StringIO

import pandas as pd

from video_indexer.input_parser import (
    is_valid_id,
    iter_work_items,
    parse_inputs_with_errors,
    parse_line,
)
from video_indexer.models import WorkItem


def test_parse_line_accepts_integer_pair() -> None:
    assert parse_line("111111,111111") == WorkItem(user_id="111111", video_id="111111")


def test_parse_line_rejects_invalid_rows() -> None:
    for line in ["99999,", ",99999", "  ,  ", "", "foo,bar", "1,2,3", "12345"]:
        assert parse_line(line) is None, line


def test_parse_line_strips_line_endings() -> None:
    assert parse_line("7,8\r\n") == WorkItem(user_id="7", video_id="8")


def test_ids_must_fit_in_32_bits() -> None:
    assert is_valid_id("2147483647")
    assert is_valid_id("-2147483648")
    assert not is_valid_id("2147483648")
    assert not is_valid_id("1_000")
    assert not is_valid_id("1.5")


def test_iter_work_items_skips_invalid_lines_and_keeps_order() -> None:
    stream = StringIO("333333,333333\n,\n567489,567489\nstring,322222\n\n")

    items = list(iter_work_items(stream))

    assert items == [
        WorkItem(user_id="333333", video_id="333333"),
        WorkItem(user_id="567489", video_id="567489"),
    ]


def test_iter_work_items_is_lazy() -> None:
    consumed: list[str] = []

    def lines():
        for line in ["1,1", "2,2", "3,3"]:
            consumed.append(line)
            yield line

    iterator = iter_work_items(lines())
    assert next(iterator) == WorkItem(user_id="1", video_id="1")
    assert consumed == ["1,1"]


def test_duplicate_pairs_are_kept() -> None:
    items, failures = parse_inputs_with_errors(text="5,5\n5,5\n")

    assert failures == []
    assert items == [WorkItem("5", "5"), WorkItem("5", "5")]


def test_text_input_has_priority_over_upload() -> None:
    csv_bytes = b"user_id,video_id\n9,9\n"

    items, failures = parse_inputs_with_errors(
        text="1,2\n", upload_file_name="pairs.csv", upload_bytes=csv_bytes
    )

    assert items == [WorkItem("1", "2")]
    assert failures == []


def test_invalid_text_rows_are_recorded_but_valid_rows_continue() -> None:
    text = "\n".join(["1,1", "bad_line", "2,", "x,3", "4,4"])

    items, failures = parse_inputs_with_errors(text=text)

    assert items == [WorkItem("1", "1"), WorkItem("4", "4")]
    assert [item.index for item in failures] == [1, 2, 3]
    assert failures[0].error == "输入格式错误：需为 user_id,video_id"
    assert failures[1].error == "video_id 不能为空"


def test_csv_upload_reads_named_columns() -> None:
    csv_bytes = "\ufeffvideo_id,user_id\n10,1\n,\n20,2\n".encode("utf-8")

    items, failures = parse_inputs_with_errors(
        text="", upload_file_name="pairs.csv", upload_bytes=csv_bytes
    )

    assert failures == []
    assert items == [WorkItem("1", "10"), WorkItem("2", "20")]


def test_csv_upload_requires_columns() -> None:
    items, failures = parse_inputs_with_errors(
        text="", upload_file_name="pairs.csv", upload_bytes=b"a,b\n1,2\n"
    )

    assert items == []
    assert len(failures) == 1
    assert failures[0].error == "缺少必需列: user_id,video_id"


def test_excel_upload_parses_integer_cells() -> None:
    df = pd.DataFrame(
        [
            {"user_id": 1001, "video_id": 7},
            {"user_id": None, "video_id": None},
            {"user_id": "abc", "video_id": 8},
        ]
    )
    buffer = BytesIO()
    df.to_excel(buffer, index=False)

    items, failures = parse_inputs_with_errors(
        text="", upload_file_name="pairs.xlsx", upload_bytes=buffer.getvalue()
    )

    assert items == [WorkItem("1001", "7")]
    assert len(failures) == 1
    assert failures[0].raw == "abc,8"


def test_unsupported_upload_type() -> None:
    items, failures = parse_inputs_with_errors(
        text="", upload_file_name="pairs.json", upload_bytes=b"[]"
    )

    assert items == []
    assert failures[0].error == "不支持的文件类型: pairs.json"
