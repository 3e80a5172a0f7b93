"""
爬蟲基礎類別模組

定義列表頁爬蟲的共用介面：
- 抽象方法定義 (scrape, parse_row, get_record_id)
- 單列元素的屬性/文字讀取輔助函式

瀏覽器的啟動與關閉由 core.browser.BrowserSession 負責，
爬蟲只透過傳入的 session 讀取頁面。
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from core.models import Surebet


class BaseScraper(ABC):
    """
    爬蟲基礎類別

    子類別實作網站特定的列表頁解析邏輯。
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """返回來源名稱"""
        pass

    @abstractmethod
    def scrape(self, session) -> List[Surebet]:
        """
        爬取列表頁

        Args:
            session: 已登入的 BrowserSession

        Returns:
            依 DOM 順序排列的資料列表
        """
        pass

    @abstractmethod
    def parse_row(self, element) -> Optional[Surebet]:
        """
        解析單一列元素

        Returns:
            解析結果，缺少必要欄位時返回 None
        """
        pass

    @abstractmethod
    def get_record_id(self, raw_id: str) -> Optional[str]:
        """從 DOM id 提取資料 ID"""
        pass

    @staticmethod
    def _attribute_of(element, selector: str, name: str) -> Optional[str]:
        """讀取子元素屬性，子元素不存在時返回 None"""
        child = element.query_selector(selector)
        if child is None:
            return None
        return child.get_attribute(name)

    @staticmethod
    def _text_of(element, selector: str) -> Optional[str]:
        """讀取子元素文字（去除前後空白），子元素不存在或為空時返回 None"""
        child = element.query_selector(selector)
        if child is None:
            return None
        text = child.inner_text().strip()
        return text or None
