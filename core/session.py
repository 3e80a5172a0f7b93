"""
登入會話管理模組

負責：
- cookie 檔案的讀取與寫入（JSON 陣列）
- 判斷目前瀏覽器會話是否已登入
- 需要時以帳號密碼登入，並在登入後保存 cookie
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional
from playwright.sync_api import Error as PlaywrightError


logger = logging.getLogger(__name__)

DEFAULT_COOKIES_FILE = "data/cookies.json"

SITE_ROOT_URL = "https://en.surebet.com/"
LOGIN_URL = "https://en.surebet.com/users/sign_in"

# 只有登入後才會出現的元素
LOGGED_IN_MARKER = "#current-user-section-dropdown-button"
EMAIL_INPUT = "#user_email"
PASSWORD_INPUT = "#user_password"
SUBMIT_BUTTON = "#sign-in-form-submit-button"


def load_cookies(cookies_file: str = DEFAULT_COOKIES_FILE) -> List[Dict[str, Any]]:
    """
    載入 cookie 檔案

    檔案不存在、無法讀取或內容格式錯誤時返回空列表。

    Args:
        cookies_file: cookie 檔案路徑

    Returns:
        cookie 字典列表
    """
    if not os.path.exists(cookies_file):
        logger.warning("No cookies file found at %s, proceeding without cookies", cookies_file)
        return []

    try:
        with open(cookies_file, "r", encoding="utf-8") as f:
            cookies = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Unreadable cookies file %s (%s), proceeding without cookies", cookies_file, e)
        return []

    if not isinstance(cookies, list):
        logger.warning("Cookies file %s does not contain a list, ignoring it", cookies_file)
        return []
    return cookies


def save_cookies(
    cookies: List[Dict[str, Any]],
    cookies_file: str = DEFAULT_COOKIES_FILE,
) -> None:
    """
    儲存 cookie 檔案

    Args:
        cookies: cookie 字典列表
        cookies_file: cookie 檔案路徑
    """
    # 確保目錄存在
    directory = os.path.dirname(cookies_file)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(cookies_file, "w", encoding="utf-8") as f:
        json.dump(cookies, f, indent=2, ensure_ascii=False)


class SessionManager:
    """
    登入會話管理器

    cookie 檔案在每個程序生命週期只讀取一次，之後保存在記憶體中，
    每個週期的新瀏覽器會話都會先套用這份 cookie。
    """

    def __init__(self, email: str, password: str, cookies_file: str = DEFAULT_COOKIES_FILE):
        self.email = email
        self.password = password
        self.cookies_file = cookies_file
        self._cookies: Optional[List[Dict[str, Any]]] = None

    @property
    def cookies(self) -> List[Dict[str, Any]]:
        """目前快取的 cookie，第一次存取時從檔案載入"""
        if self._cookies is None:
            self._cookies = load_cookies(self.cookies_file)
        return self._cookies

    def apply_cookies(self, session) -> None:
        """將快取的 cookie 套用到瀏覽器會話，被瀏覽器拒絕時視為沒有 cookie"""
        cookies = self.cookies
        if not cookies:
            return
        try:
            session.add_cookies(cookies)
        except PlaywrightError as e:
            logger.warning("Browser rejected stored cookies (%s), proceeding without them", e)
            self._cookies = []

    def is_logged_in(self, session) -> bool:
        """導航至首頁並檢查登入後才有的元素"""
        session.navigate(SITE_ROOT_URL)
        return session.query_selector(LOGGED_IN_MARKER) is not None

    def login(self, session) -> None:
        """
        提交登入表單並保存新的 cookie

        導航或表單操作失敗時直接拋出例外；cookie 寫檔失敗只記錄錯誤。
        """
        logger.info("Logging in as %s", self.email)
        session.navigate(LOGIN_URL)
        session.fill(EMAIL_INPUT, self.email)
        session.fill(PASSWORD_INPUT, self.password)
        session.submit(SUBMIT_BUTTON)

        self._cookies = session.get_cookies()
        try:
            save_cookies(self._cookies, self.cookies_file)
            logger.info("Saved %d cookies to %s", len(self._cookies), self.cookies_file)
        except OSError as e:
            logger.error("Failed to save cookies to %s: %s", self.cookies_file, e)

    def ensure_session(self, session):
        """
        確保瀏覽器會話已登入

        Args:
            session: BrowserSession（或提供相同介面的物件）

        Returns:
            同一個 session，方便串接呼叫
        """
        self.apply_cookies(session)
        if self.is_logged_in(session):
            logger.debug("Existing session is authenticated")
        else:
            self.login(session)
        return session
