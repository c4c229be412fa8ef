from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Iterable

import requests

from .client import build_session
from .models import Config, RunReport, WorkerStats, WorkItem
from .processor import process_item


LogCallback = Callable[[str], None]
ProcessFn = Callable[[requests.Session, Config, WorkItem], object]

POLL_INTERVAL_SEC = 0.05
SHUTDOWN_GRACE_SEC = 0.1


class WorkQueue:
    """Capacity-1 handoff between the producer, retry tasks and workers.

    ``close()`` is terminal: blocked ``put`` calls give up and return False,
    blocked ``get`` calls return None. Items still buffered are abandoned.
    Blocked callers sleep on conditions and are woken only by a handoff or
    by ``close()``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)
        self._slot: WorkItem | None = None
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def put(self, item: WorkItem) -> bool:
        with self._not_full:
            self._not_full.wait_for(lambda: self._closed.is_set() or self._slot is None)
            if self._closed.is_set():
                return False
            self._slot = item
            self._not_empty.notify()
            return True

    def get(self) -> WorkItem | None:
        with self._not_empty:
            self._not_empty.wait_for(lambda: self._closed.is_set() or self._slot is not None)
            if self._closed.is_set():
                return None
            item, self._slot = self._slot, None
            self._not_full.notify()
            return item

    def wait_closed(self, timeout_sec: float) -> bool:
        return self._closed.wait(timeout_sec)

    def close(self) -> None:
        with self._lock:
            self._closed.set()
            self._not_empty.notify_all()
            self._not_full.notify_all()


class IdleWatchdog:
    """Opens ``finished`` once no pulse arrived for ``timeout_sec`` in a row.

    Single-shot: after FINISHED it never re-arms.
    """

    WAITING = "WAITING"
    FINISHED = "FINISHED"

    def __init__(
        self,
        timeout_sec: float,
        pulse: threading.Event,
        finished: threading.Event,
        stopped: threading.Event,
    ) -> None:
        self.timeout_sec = timeout_sec
        self.state = self.WAITING
        self._pulse = pulse
        self._finished = finished
        self._stopped = stopped

    def run(self) -> None:
        while self.state == self.WAITING:
            if self._stopped.is_set():
                return
            if self._pulse.wait(self.timeout_sec):
                self._pulse.clear()
                continue
            if self._stopped.is_set():
                return
            self.state = self.FINISHED
            self._finished.set()


class _StreamProducer:
    def __init__(self, items: Iterable[WorkItem], work_queue: WorkQueue) -> None:
        self.count = 0
        self._items = items
        self._queue = work_queue

    def run(self) -> None:
        for item in self._items:
            if not self._queue.put(item):
                return
            self.count += 1


class IndexEngine:
    def __init__(
        self,
        config: Config,
        session: requests.Session | None = None,
        process_fn: ProcessFn = process_item,
    ) -> None:
        if config.threads < 1:
            raise ValueError(f"threads 必须 >= 1: {config.threads}")
        self._config = config
        self._session = session if session is not None else build_session(config)
        self._process_fn = process_fn

    @property
    def config(self) -> Config:
        return self._config

    def close(self) -> None:
        self._session.close()

    def execute(
        self,
        items: Iterable[WorkItem],
        cancel_event: threading.Event | None = None,
        log_cb: LogCallback | None = None,
    ) -> RunReport:
        config = self._config
        started_at = time.monotonic()

        work_queue = WorkQueue()
        pulse = threading.Event()
        finished = threading.Event()
        stopped = threading.Event()

        _log(
            log_cb,
            f"引擎启动：{config.threads} 个线程，空闲超时 {config.timeout_sec:g} 秒",
        )

        watchdog = IdleWatchdog(config.timeout_sec, pulse, finished, stopped)
        threading.Thread(target=watchdog.run, name="idle-watchdog", daemon=True).start()

        retry_pool: ThreadPoolExecutor | None = None
        if config.max_retry_tasks > 0:
            retry_pool = ThreadPoolExecutor(
                max_workers=config.max_retry_tasks, thread_name_prefix="index-retry"
            )

        executor = ThreadPoolExecutor(max_workers=config.threads, thread_name_prefix="index-worker")
        stats = [WorkerStats() for _ in range(config.threads)]
        futures: list[Future[WorkerStats]] = [
            executor.submit(
                self._worker_loop,
                work_queue=work_queue,
                pulse=pulse,
                stats=worker_stats,
                retry_pool=retry_pool,
                log_cb=log_cb,
            )
            for worker_stats in stats
        ]

        producer = _StreamProducer(items, work_queue)
        threading.Thread(target=producer.run, name="stream-producer", daemon=True).start()

        cancelled = _wait_for_gate(finished, cancel_event)

        stopped.set()
        pulse.set()
        work_queue.close()
        executor.shutdown(wait=False)
        if retry_pool is not None:
            retry_pool.shutdown(wait=False, cancel_futures=True)

        # 在途请求不再等待，报告按此刻的计数生成
        done, not_done = wait(futures, timeout=SHUTDOWN_GRACE_SEC)
        for future in done:
            if future.exception() is not None:
                _log(log_cb, f"worker 异常退出: {future.exception()}")
        if not_done:
            _log(log_cb, f"{len(not_done)} 个 worker 仍有在途请求，未等待其结束")

        report = RunReport(
            produced=producer.count,
            succeeded=sum(item.succeeded for item in stats),
            failed_attempts=sum(item.failed_attempts for item in stats),
            retries_scheduled=sum(item.retries_scheduled for item in stats),
            elapsed_sec=time.monotonic() - started_at,
            cancelled=cancelled,
        )
        _log(
            log_cb,
            f"{'运行已取消' if cancelled else '运行结束'}：投递 {report.produced} 条，"
            f"成功 {report.succeeded} 条，失败 {report.failed_attempts} 次，"
            f"耗时 {report.elapsed_sec:.3f}s",
        )
        return report

    def _worker_loop(
        self,
        work_queue: WorkQueue,
        pulse: threading.Event,
        stats: WorkerStats,
        retry_pool: ThreadPoolExecutor | None,
        log_cb: LogCallback | None,
    ) -> WorkerStats:
        while True:
            item = work_queue.get()
            if item is None:
                return stats

            try:
                self._process_fn(self._session, self._config, item)
            except Exception as exc:  # noqa: BLE001
                stats.failed_attempts += 1
                _log(
                    log_cb,
                    f"user_id={item.user_id} video_id={item.video_id} 失败，重新入队 -> {exc}",
                )
                if self._schedule_retry(work_queue, retry_pool, item):
                    stats.retries_scheduled += 1
                continue

            stats.succeeded += 1
            pulse.set()

    def _schedule_retry(
        self,
        work_queue: WorkQueue,
        retry_pool: ThreadPoolExecutor | None,
        item: WorkItem,
    ) -> bool:
        if work_queue.closed:
            return False
        if retry_pool is None:
            threading.Thread(
                target=self._requeue,
                args=(work_queue, item),
                name="index-requeue",
                daemon=True,
            ).start()
            return True
        try:
            retry_pool.submit(self._requeue, work_queue, item)
        except RuntimeError:
            # 重试池已随运行结束关闭
            return False
        return True

    def _requeue(self, work_queue: WorkQueue, item: WorkItem) -> None:
        delay = self._config.retry_delay_sec
        if delay > 0 and work_queue.wait_closed(delay):
            return
        work_queue.put(item)


def index_stream(
    items: Iterable[WorkItem],
    config: Config,
    log_cb: LogCallback | None = None,
    cancel_event: threading.Event | None = None,
) -> RunReport:
    engine = IndexEngine(config)
    try:
        return engine.execute(items, cancel_event=cancel_event, log_cb=log_cb)
    finally:
        engine.close()


def _wait_for_gate(finished: threading.Event, cancel_event: threading.Event | None) -> bool:
    if cancel_event is None:
        finished.wait()
        return False
    while not finished.wait(POLL_INTERVAL_SEC):
        if cancel_event.is_set():
            return True
    return False


def _log(log_cb: LogCallback | None, message: str) -> None:
    if log_cb:
        log_cb(message)
