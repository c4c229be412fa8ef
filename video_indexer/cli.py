from __future__ import annotations

import argparse
import sys
import time
from dataclasses import replace

from .config import ConfigError, load_config, validate_runtime
from .engine import index_stream
from .input_parser import iter_work_items


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="video-indexer",
        description="从 stdin 读取 user_id,video_id，拉取用户与视频信息后合并提交到索引服务",
    )
    p.add_argument("--threads", type=int, default=0, help="覆盖 NUM_THREADS")
    p.add_argument("--timeout", type=float, default=0, help="覆盖 TIMEOUT（空闲超时秒数）")
    p.add_argument("--quiet", action="store_true", help="只输出汇总信息")
    return p


def _stderr_log(message: str) -> None:
    print(message, file=sys.stderr, flush=True)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    started_at = time.monotonic()

    try:
        config = load_config()
    except ConfigError as exc:
        _stderr_log(f"配置错误: {exc}")
        return 2

    # 命令行参数优先于环境变量
    if args.threads > 0:
        config = replace(config, threads=args.threads)
    if args.timeout > 0:
        config = replace(config, timeout_sec=args.timeout)

    errors = validate_runtime(config)
    if errors:
        _stderr_log("运行前置检查未通过：\n- " + "\n- ".join(errors))
        return 2

    print(f"Running on {config.threads} threads with a timeout of {config.timeout_sec:g} seconds")
    report = index_stream(
        iter_work_items(sys.stdin),
        config,
        log_cb=None if args.quiet else _stderr_log,
    )
    print(
        f"Indexed {report.succeeded} of {report.produced} pairs "
        f"({report.failed_attempts} failed attempts)"
    )
    print(f"Elapsed time: {time.monotonic() - started_at:.3f}s")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
