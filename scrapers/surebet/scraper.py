"""
Surebet 列表爬蟲模組

繼承 BaseScraper，解析 en.surebet.com/surebets 的結果表格。
表格中每個 tbody 為一筆 surebet，第一個 tbody 是範本列，必須略過。
"""

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional

from core.base_scraper import BaseScraper
from core.models import Surebet


logger = logging.getLogger(__name__)

SUREBETS_URL = "https://en.surebet.com/surebets"

TABLE_SELECTOR = "#surebets-table"
ROW_GROUP_SELECTOR = "tbody"
ROW_ID_PREFIX = "surebet_record_"
PROFIT_SELECTOR = ".profit-box > span:first-child"
TIME_SELECTOR = "td.time > abbr"
EVENT_SELECTOR = ".event > span.minor"
BOOKER_SELECTOR = ".booker"
BOOKER_NAME_SELECTOR = "a"


class SurebetScraper(BaseScraper):
    """
    Surebet 列表爬蟲

    只做盡力而為的解析：缺欄位的列會被略過並記錄，不會拋出例外。
    頁面結構改變時沒有備用方案。
    """

    @property
    def source_name(self) -> str:
        """返回來源名稱"""
        return "surebet_com"

    def get_record_id(self, raw_id: str) -> Optional[str]:
        """
        從 tbody 的 DOM id 提取 surebet ID

        例：surebet_record_123456 -> 123456
        """
        if not raw_id:
            return None
        if raw_id.startswith(ROW_ID_PREFIX):
            raw_id = raw_id[len(ROW_ID_PREFIX):]
        return raw_id or None

    def scrape(self, session) -> List[Surebet]:
        return self.load_surebets(session)

    def load_surebets(self, session) -> List[Surebet]:
        """
        載入列表頁並解析所有 surebet

        Args:
            session: 已登入的 BrowserSession

        Returns:
            Surebet 列表（保持 DOM 順序，不排序、不去重）
        """
        session.navigate(SUREBETS_URL)

        table = session.query_selector(TABLE_SELECTOR)
        if table is None:
            logger.warning("Surebets table %s not found on %s", TABLE_SELECTOR, SUREBETS_URL)
            return []

        # 第一個 tbody 是範本列
        rows = table.query_selector_all(ROW_GROUP_SELECTOR)[1:]

        surebets = []
        for row in rows:
            surebet = self.parse_row(row)
            if surebet is not None:
                surebets.append(surebet)

        logger.info("Parsed %d/%d surebet rows", len(surebets), len(rows))
        return surebets

    def parse_row(self, element) -> Optional[Surebet]:
        """
        解析單一 tbody

        必要欄位：id、profit、time、event name，以及至少一個 booker。
        任一缺少或格式錯誤時返回 None。
        """
        surebet_id = self.get_record_id(element.get_attribute("id") or "")
        profit = self._attribute_of(element, PROFIT_SELECTOR, "data-profit")
        utc_ms = self._attribute_of(element, TIME_SELECTOR, "data-utc")
        event_name = self._text_of(element, EVENT_SELECTOR)
        bookers = self._parse_bookers(element)

        if not surebet_id or not profit or not utc_ms or not event_name or not bookers:
            logger.warning(
                "Missing data in surebet row, skipping: id=%r profit=%r time=%r event=%r bookers=%r",
                surebet_id, profit, utc_ms, event_name, bookers,
            )
            return None

        try:
            profit_percent = self._parse_profit(profit)
            event_time = self._parse_time(utc_ms)
        except ValueError as e:
            logger.warning("Malformed surebet row %s, skipping: %s", surebet_id, e)
            return None

        return Surebet(
            id=surebet_id,
            profit_percent=profit_percent,
            time=event_time,
            event_name=event_name,
            bookers=bookers,
        )

    def _parse_bookers(self, element) -> List[str]:
        """依 DOM 順序讀取 booker 名稱，空白名稱忽略"""
        bookers = []
        for booker in element.query_selector_all(BOOKER_SELECTOR):
            name = self._text_of(booker, BOOKER_NAME_SELECTOR)
            if name:
                bookers.append(name)
        return bookers

    def _parse_profit(self, profit: str) -> float:
        value = float(profit)
        if not math.isfinite(value) or value < 0:
            raise ValueError(f"profit out of range: {profit!r}")
        return value

    def _parse_time(self, utc_ms: str) -> datetime:
        """epoch 毫秒轉為 UTC datetime"""
        try:
            return datetime.fromtimestamp(int(utc_ms) / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"time out of range: {utc_ms!r}") from e
