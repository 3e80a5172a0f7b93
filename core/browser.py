"""
瀏覽器會話模組

以 Playwright（同步 API）包裝單一瀏覽器會話，對外只提供爬蟲需要的窄介面：
- navigate / query_selector / query_selector_all
- fill / submit（登入表單）
- add_cookies / get_cookies（cookie 存取）

每個爬取週期建立一個會話，離開 with 區塊時一定會關閉。
"""

import logging
import random
from typing import Any, Dict, List, Optional
from playwright.sync_api import (
    sync_playwright,
    Page,
    Browser,
    BrowserContext,
    ElementHandle,
    Playwright,
    Error as PlaywrightError,
)

logger = logging.getLogger(__name__)


class BrowserSession:
    """
    Playwright 瀏覽器會話

    以 context manager 使用：
        with BrowserSession(headless=True) as session:
            session.navigate(url)
    """

    # 預設 User-Agent 列表
    DEFAULT_USER_AGENTS = [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    ]

    DEFAULT_TIMEOUT_SECONDS = 60

    def __init__(
        self,
        headless: bool = True,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        user_agents: Optional[List[str]] = None,
    ):
        """
        Args:
            headless: 是否以無頭模式運行瀏覽器
            timeout_seconds: 導航與元素操作的預設逾時（秒）
            user_agents: 自訂 User-Agent 列表
        """
        self.headless = headless
        self.timeout_ms = timeout_seconds * 1000
        self.user_agents = user_agents or self.DEFAULT_USER_AGENTS.copy()

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def page(self) -> Optional[Page]:
        """取得當前頁面實例"""
        return self._page

    def _get_user_agent(self) -> str:
        return random.choice(self.user_agents)

    def open(self) -> None:
        """啟動 Chromium，建立瀏覽器上下文和頁面，並套用預設逾時"""
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(headless=self.headless)
        self._context = self._browser.new_context(user_agent=self._get_user_agent())
        self._context.set_default_timeout(self.timeout_ms)
        self._context.set_default_navigation_timeout(self.timeout_ms)
        self._page = self._context.new_page()

    def close(self) -> None:
        """
        關閉瀏覽器

        依序關閉頁面、上下文、瀏覽器和 Playwright 實例。
        關閉過程的錯誤只記錄，不會蓋掉週期本身的例外。
        """
        for name in ("_page", "_context", "_browser"):
            resource = getattr(self, name)
            if resource is not None:
                try:
                    resource.close()
                except PlaywrightError as e:
                    logger.debug("Failed to close %s: %s", name.lstrip("_"), e)
                setattr(self, name, None)

        if self._playwright is not None:
            try:
                self._playwright.stop()
            except PlaywrightError as e:
                logger.debug("Failed to stop playwright: %s", e)
            self._playwright = None

    def navigate(self, url: str) -> None:
        """導航至指定 URL，失敗時直接拋出例外"""
        logger.debug("Navigating to %s", url)
        self._page.goto(url, wait_until="domcontentloaded")

    def query_selector(self, selector: str) -> Optional[ElementHandle]:
        return self._page.query_selector(selector)

    def query_selector_all(self, selector: str) -> List[ElementHandle]:
        return self._page.query_selector_all(selector)

    def fill(self, selector: str, value: str) -> None:
        self._page.fill(selector, value)

    def submit(self, selector: str) -> None:
        """點擊送出按鈕並等待頁面導航完成"""
        with self._page.expect_navigation():
            self._page.click(selector)

    def add_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        self._context.add_cookies(cookies)

    def get_cookies(self) -> List[Dict[str, Any]]:
        return self._context.cookies()

    def __enter__(self):
        """支援 context manager 用法"""
        try:
            self.open()
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """支援 context manager 用法"""
        self.close()
        return False
