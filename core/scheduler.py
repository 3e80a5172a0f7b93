"""
排程模組

以背景執行緒固定間隔執行工作：啟動時立即執行一次，之後每隔 interval 執行。
工作執行時間超過間隔時，錯過的排程點直接略過，不會補跑。
"""

import logging
import threading
import time
from typing import Callable, Optional


logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MINUTES = 5


def next_run_time(last_scheduled: float, interval_seconds: float, now: float) -> float:
    """
    計算下一個排程時間點

    由上一個排程點往後推 interval，直到超過 now 為止。

    Args:
        last_scheduled: 上一個排程時間點（monotonic 秒）
        interval_seconds: 間隔秒數
        now: 當前時間（monotonic 秒）

    Returns:
        float: 下一個排程時間點，一定大於 now
    """
    next_run = last_scheduled + interval_seconds
    if next_run <= now:
        missed = int((now - next_run) // interval_seconds) + 1
        next_run += missed * interval_seconds
    return next_run


class RecurringScheduler:
    """固定間隔執行工作的背景排程器"""

    def __init__(
        self,
        job: Callable[[], object],
        interval_seconds: float = DEFAULT_INTERVAL_MINUTES * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.job = job
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """啟動背景執行緒"""
        if self.is_alive:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="scrape-scheduler", daemon=True)
        self._thread.start()
        logger.info("Scheduler started, interval %.0fs", self.interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        """要求停止並等待執行緒結束（執行中的工作會先跑完）"""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Scheduler stopped")

    def _run(self) -> None:
        scheduled = self._clock()
        while not self._stop_event.is_set():
            self._run_job()

            now = self._clock()
            upcoming = next_run_time(scheduled, self.interval_seconds, now)
            skipped = int(round((upcoming - scheduled) / self.interval_seconds)) - 1
            if skipped > 0:
                logger.warning("Job overran its interval, skipped %d scheduled run(s)", skipped)
            scheduled = upcoming

            self._stop_event.wait(max(0.0, scheduled - now))

    def _run_job(self) -> None:
        logger.info("Running scheduled job")
        try:
            self.job()
        except Exception:
            # 排程執行緒不可因工作例外而結束
            logger.exception("Scheduled job raised")
