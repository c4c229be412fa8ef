from __future__ import annotations

from datetime import datetime

import pandas as pd
import streamlit as st

from video_indexer.config import ConfigError, load_config, validate_runtime
from video_indexer.engine import index_stream
from video_indexer.input_parser import parse_inputs_with_errors
from video_indexer.models import Config, ParseFailure, RunReport


st.set_page_config(page_title="视频索引工具", layout="wide")
st.title("用户 / 视频合并索引工具")

try:
    env_config: Config | None = load_config()
    config_error = ""
except ConfigError as exc:
    env_config = None
    config_error = str(exc)

if config_error:
    st.info(f"环境变量配置不完整（{config_error}），请在下方填写运行参数。")

with st.expander("运行参数", expanded=env_config is None):
    users_url = st.text_input(
        "用户服务地址", value=env_config.users_url if env_config else "http://localhost:8000/users"
    )
    videos_url = st.text_input(
        "视频服务地址", value=env_config.videos_url if env_config else "http://localhost:8001/videos"
    )
    index_url = st.text_input(
        "索引服务地址", value=env_config.index_url if env_config else "http://localhost:8002/index"
    )
    threads = st.number_input(
        "线程数", min_value=1, value=env_config.threads if env_config else 4, step=1
    )
    timeout_sec = st.number_input(
        "空闲超时（秒）", min_value=1, value=int(env_config.timeout_sec) if env_config else 3, step=1
    )

config = Config(
    users_url=users_url.strip().rstrip("/"),
    videos_url=videos_url.strip().rstrip("/"),
    index_url=index_url.strip().rstrip("/"),
    timeout_sec=float(timeout_sec),
    threads=int(threads),
    http_timeout_sec=env_config.http_timeout_sec if env_config else 5.0,
    max_retry_tasks=env_config.max_retry_tasks if env_config else 0,
    retry_delay_sec=env_config.retry_delay_sec if env_config else 0.0,
)

runtime_errors = validate_runtime(config)
if runtime_errors:
    st.error("运行前置检查未通过：\n- " + "\n- ".join(runtime_errors))

with st.expander("输入说明", expanded=False):
    st.markdown(
        "\n".join(
            [
                "- 每行一条 `user_id,video_id`，两者均需为 32 位整数",
                "- 文本框存在非空行时，会忽略上传文件",
                "- 上传 CSV / Excel 时读取列：`user_id`、`video_id`",
                "- 非法行不会处理，会在结果中列出",
                "- 连续超过空闲超时没有成功提交时，本次运行结束",
            ]
        )
    )

pairs_input = st.text_area("user_id,video_id（每行一条）", height=220, placeholder="1,1\n2,2\n3,5")
uploaded_file = st.file_uploader(
    "可选文件上传（CSV / Excel: user_id,video_id）",
    type=["csv", "xlsx", "xlsm"],
)

if "vi_report" not in st.session_state:
    st.session_state["vi_report"] = None
if "vi_failures" not in st.session_state:
    st.session_state["vi_failures"] = []
if "vi_logs" not in st.session_state:
    st.session_state["vi_logs"] = []


start_clicked = st.button("开始处理", type="primary", disabled=bool(runtime_errors))

if start_clicked:
    st.session_state["vi_report"] = None
    st.session_state["vi_failures"] = []
    st.session_state["vi_logs"] = []

    log_box = st.empty()
    logs: list[str] = []

    def log_cb(message: str) -> None:
        ts = datetime.now().strftime("%H:%M:%S")
        logs.append(f"[{ts}] {message}")

    upload_bytes = uploaded_file.getvalue() if uploaded_file else None
    upload_name = uploaded_file.name if uploaded_file else None
    items, parse_failures = parse_inputs_with_errors(
        text=pairs_input,
        upload_file_name=upload_name,
        upload_bytes=upload_bytes,
    )

    if not items and not parse_failures:
        st.warning("请输入至少一条有效数据。")
    else:
        report: RunReport | None = None
        if items:
            with st.spinner(f"处理中，共 {len(items)} 条……"):
                report = index_stream(items, config, log_cb=log_cb)
            log_box.code("\n".join(logs[-200:]))

        st.session_state["vi_report"] = report
        st.session_state["vi_failures"] = parse_failures
        st.session_state["vi_logs"] = logs

report = st.session_state.get("vi_report")
failures: list[ParseFailure] = st.session_state.get("vi_failures", [])
logs = st.session_state.get("vi_logs", [])

if report is not None:
    st.subheader("运行汇总")
    st.dataframe(
        pd.DataFrame(
            [
                {
                    "produced": report.produced,
                    "succeeded": report.succeeded,
                    "failed_attempts": report.failed_attempts,
                    "retries_scheduled": report.retries_scheduled,
                    "elapsed_sec": round(report.elapsed_sec, 3),
                }
            ]
        ),
        use_container_width=True,
    )

if failures:
    st.subheader("未处理的输入行")
    st.dataframe(
        pd.DataFrame(
            [{"line": item.index + 1, "raw": item.raw, "error": item.error} for item in failures]
        ),
        use_container_width=True,
    )

if report is not None or failures:
    st.subheader("运行日志")
    st.code("\n".join(logs[-500:]) if logs else "(无日志)")
