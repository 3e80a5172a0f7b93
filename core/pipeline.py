"""
爬取週期模組

一個週期：開啟瀏覽器 -> 確保登入 -> 解析列表 -> 取代快照 -> 推送高利潤通知。
同一時間只允許一個週期執行。
"""

import logging
import threading
import time
from typing import Callable, List, Optional

from core.browser import BrowserSession
from core.models import Surebet
from core.notifier import TelegramNotifier
from core.session import SessionManager
from core.storage import SurebetSnapshot
from scrapers.surebet.scraper import SurebetScraper


logger = logging.getLogger(__name__)


def filter_surebets_by_threshold(surebets: List[Surebet], threshold: float) -> List[Surebet]:
    """
    依利潤門檻過濾

    Property: 當且僅當 profit_percent >= threshold 時保留，順序不變。
    """
    return [s for s in surebets if s.profit_percent >= threshold]


def process_and_alert(
    surebets: List[Surebet],
    threshold: float,
    notifier: Optional[TelegramNotifier],
) -> List[Surebet]:
    """
    過濾出達到門檻的 surebet 並推送通知

    沒有任何符合門檻的資料時不會呼叫 notifier。

    Returns:
        符合門檻（已交給 notifier）的 surebet 列表
    """
    to_alert = filter_surebets_by_threshold(surebets, threshold)
    logger.info("%d/%d surebets at or above %.2f%%", len(to_alert), len(surebets), threshold)

    if to_alert and notifier is not None:
        notifier.alert_surebets(to_alert)
    return to_alert


class ScrapePipeline:
    """
    爬取週期

    snapshot 由呼叫端建立並同時交給 bot 指令處理器讀取。
    """

    def __init__(
        self,
        snapshot: SurebetSnapshot,
        session_manager: SessionManager,
        notifier: Optional[TelegramNotifier],
        alert_threshold: float,
        scraper: Optional[SurebetScraper] = None,
        browser_factory: Callable[[], BrowserSession] = BrowserSession,
    ):
        self.snapshot = snapshot
        self.session_manager = session_manager
        self.notifier = notifier
        self.alert_threshold = alert_threshold
        self.scraper = scraper or SurebetScraper()
        self.browser_factory = browser_factory
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def run_cycle(self) -> Optional[List[Surebet]]:
        """
        執行一個爬取週期

        週期中任何例外都只記錄：快照維持原狀、不發送通知，
        由下一次排程重新嘗試。

        Returns:
            已推送的 surebet 列表；週期失敗或已有週期在執行時返回 None
        """
        if not self._lock.acquire(blocking=False):
            logger.warning("Previous scrape cycle still running, skipping this one")
            return None

        started = time.monotonic()
        try:
            with self.browser_factory() as session:
                self.session_manager.ensure_session(session)
                surebets = self.scraper.load_surebets(session)

            self.snapshot.replace(surebets)
            logger.info(
                "Fetched %d surebets (%d unique) in %.1fs",
                len(surebets), self.snapshot.size(), time.monotonic() - started,
            )
            return process_and_alert(surebets, self.alert_threshold, self.notifier)
        except Exception:
            logger.exception("Scrape cycle failed")
            return None
        finally:
            self._lock.release()
