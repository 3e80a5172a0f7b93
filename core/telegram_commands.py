import logging
import os
import time
import html
import requests
from collections import OrderedDict
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional, Sequence

from core.models import Surebet

if TYPE_CHECKING:
    from core.storage import SurebetSnapshot

logger = logging.getLogger(__name__)

OFFSET_FILE = "data/telegram_offset.txt"

PAGE_SIZE = 5
NO_SUREBETS_TEXT = "No surebets available at the moment."
ERROR_TEXT = "There was an error executing this command."

NAV_FIRST = "<<"
NAV_PREV = "<"
NAV_NEXT = ">"
NAV_LAST = ">>"

# getUpdates 失敗後的等待秒數
POLL_ERROR_BACKOFF = 5

# 記錄頁碼的訊息數量上限，超過時移除最舊的
MAX_TRACKED_MESSAGES = 500


def _load_offset(offset_file: str = OFFSET_FILE) -> int | None:
    if not os.path.exists(offset_file):
        return None
    try:
        with open(offset_file, "r") as f:
            return int(f.read().strip())
    except (ValueError, OSError):
        return None


def _save_offset(offset: int, offset_file: str = OFFSET_FILE) -> None:
    directory = os.path.dirname(offset_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(offset_file, "w") as f:
        f.write(str(offset))


def max_page(total: int) -> int:
    """最後一頁的索引（從 0 開始）；total 為 0 時為 -1"""
    return (total - 1) // PAGE_SIZE


def page_slice(items: Sequence, page: int) -> list:
    return list(items[page * PAGE_SIZE:(page + 1) * PAGE_SIZE])


def next_page(action: str, current: int, last: int) -> int:
    """依按鈕計算新頁碼，結果限制在 [0, last]"""
    if action == NAV_FIRST:
        page = 0
    elif action == NAV_PREV:
        page = current - 1
    elif action == NAV_NEXT:
        page = current + 1
    elif action == NAV_LAST:
        page = last
    else:
        page = current
    return max(0, min(last, page))


def format_surebet_entry(surebet: Surebet) -> str:
    event_time = surebet.time.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    return (
        f"<b>{html.escape(surebet.event_name)}</b>\n"
        f"Profit: <code>{surebet.profit_label}</code>\n"
        f"Time: {event_time}\n"
        f"Bookers: {html.escape(', '.join(surebet.bookers))}\n"
        f"Url: {html.escape(surebet.calculator_url)}"
    )


def render_surebet_page(surebets: Sequence[Surebet], page: int) -> str:
    """
    產生單頁文字

    Args:
        surebets: 已依利潤排序的完整列表
        page: 頁碼（從 0 開始）
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    entries = [format_surebet_entry(s) for s in page_slice(surebets, page)]
    return (
        f"<b>Surebets — Page {page + 1}</b>\n"
        f"<i>{timestamp}</i>\n\n"
        + "\n\n".join(entries)
    )


def build_navigation_markup(page: int, last: int) -> dict:
    """
    建立翻頁按鈕

    Telegram 的按鈕無法停用，因此第一頁不顯示 << <，最後一頁不顯示 > >>。
    """
    buttons = []
    if page > 0:
        buttons.append({"text": NAV_FIRST, "callback_data": NAV_FIRST})
        buttons.append({"text": NAV_PREV, "callback_data": NAV_PREV})
    if page < last:
        buttons.append({"text": NAV_NEXT, "callback_data": NAV_NEXT})
        buttons.append({"text": NAV_LAST, "callback_data": NAV_LAST})
    return {"inline_keyboard": [buttons] if buttons else []}


class SurebetCommandHandler:
    """
    Telegram /surebets 指令與翻頁處理

    只讀取 snapshot，不會等待進行中的爬取週期。
    只處理來自設定 chat 的訊息。
    """

    def __init__(
        self,
        snapshot: "SurebetSnapshot",
        bot_token: str,
        chat_id: str,
        offset_file: str = OFFSET_FILE,
        poll_timeout: int = 30,
        max_tracked_messages: int = MAX_TRACKED_MESSAGES,
    ):
        self.snapshot = snapshot
        self.bot_token = bot_token
        self.chat_id = str(chat_id)
        self.offset_file = offset_file
        self.poll_timeout = poll_timeout
        self.max_tracked_messages = max_tracked_messages
        self._offset = _load_offset(offset_file)
        # bot 訊息 id -> 目前顯示的頁碼
        self._message_pages: "OrderedDict[int, int]" = OrderedDict()

    def _remember_page(self, message_id: int, page: int) -> None:
        self._message_pages[message_id] = page
        self._message_pages.move_to_end(message_id)
        while len(self._message_pages) > self.max_tracked_messages:
            self._message_pages.popitem(last=False)

    def _api(self, method: str, payload: dict, timeout: float = 10) -> dict:
        url = f"https://api.telegram.org/bot{self.bot_token}/{method}"
        response = requests.post(url, json=payload, timeout=timeout)
        response.raise_for_status()
        return response.json()

    def fetch_updates(self) -> List[dict]:
        url = f"https://api.telegram.org/bot{self.bot_token}/getUpdates"
        params = {"timeout": self.poll_timeout}
        if self._offset is not None:
            params["offset"] = self._offset

        response = requests.get(url, params=params, timeout=self.poll_timeout + 10)
        response.raise_for_status()
        data = response.json()
        if not data.get("ok"):
            logger.warning("Telegram getUpdates returned not ok: %s", data.get("description"))
            return []
        return data.get("result") or []

    def poll_once(self) -> int:
        """
        取得並處理一批 update

        Returns:
            處理的 update 數量
        """
        updates = self.fetch_updates()
        last_update_id = None

        for update in updates:
            last_update_id = update["update_id"]
            self.handle_update(update)

        if last_update_id is not None:
            self._offset = last_update_id + 1
            try:
                _save_offset(self._offset, self.offset_file)
            except OSError as e:
                logger.error("Failed to save Telegram offset: %s", e)
        return len(updates)

    def run_forever(self, stop_event=None) -> None:
        """持續 long polling，直到 stop_event 被設定"""
        logger.info("Listening for Telegram commands")
        while stop_event is None or not stop_event.is_set():
            try:
                self.poll_once()
            except requests.RequestException as e:
                logger.error("Failed to fetch Telegram updates: %s", e)
                time.sleep(POLL_ERROR_BACKOFF)

    def handle_update(self, update: dict) -> None:
        """處理單一 update；任何錯誤都在這裡攔下並回覆通用錯誤訊息"""
        callback = update.get("callback_query")
        message = update.get("message") or update.get("edited_message")

        try:
            if callback:
                self._handle_callback(callback)
            elif message:
                self._handle_message(message)
        except Exception:
            logger.exception("Error handling update %s", update.get("update_id"))
            self._report_error(message, callback)

    def _report_error(self, message: Optional[dict], callback: Optional[dict]) -> None:
        try:
            if callback:
                self._api("answerCallbackQuery", {
                    "callback_query_id": callback["id"],
                    "text": ERROR_TEXT,
                    "show_alert": True,
                })
            elif message:
                self._api("sendMessage", {
                    "chat_id": message["chat"]["id"],
                    "text": ERROR_TEXT,
                    "reply_to_message_id": message.get("message_id"),
                })
        except requests.RequestException as e:
            logger.error("Failed to report command error: %s", e)

    def _handle_message(self, message: dict) -> None:
        if str(message["chat"]["id"]) != self.chat_id:
            return

        text = (message.get("text") or "").strip()
        if not text.startswith("/"):
            return

        command = text.split(maxsplit=1)[0].split("@", 1)[0].lower()
        if command == "/surebets":
            self.send_surebets_page(message["chat"]["id"], 0)

    def send_surebets_page(self, chat_id, page: int) -> None:
        surebets = self.snapshot.sorted_by_profit()
        if not surebets:
            self._api("sendMessage", {"chat_id": chat_id, "text": NO_SUREBETS_TEXT})
            return

        last = max_page(len(surebets))
        page = max(0, min(last, page))
        data = self._api("sendMessage", {
            "chat_id": chat_id,
            "text": render_surebet_page(surebets, page),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
            "reply_markup": build_navigation_markup(page, last),
        })
        message_id = data.get("result", {}).get("message_id")
        if message_id is not None:
            self._remember_page(message_id, page)

    def _handle_callback(self, callback: dict) -> None:
        message = callback.get("message") or {}
        chat = message.get("chat") or {}
        if str(chat.get("id")) != self.chat_id:
            return

        message_id = message.get("message_id")
        current = self._message_pages.get(message_id, 0)
        surebets = self.snapshot.sorted_by_profit()
        last = max_page(len(surebets))

        if not surebets:
            self._api("editMessageText", {
                "chat_id": chat["id"],
                "message_id": message_id,
                "text": NO_SUREBETS_TEXT,
                "reply_markup": {"inline_keyboard": []},
            })
            self._api("answerCallbackQuery", {"callback_query_id": callback["id"]})
            return

        new_page = next_page(callback.get("data", ""), current, last)
        if new_page == current:
            self._api("answerCallbackQuery", {"callback_query_id": callback["id"]})
            return

        self._api("editMessageText", {
            "chat_id": chat["id"],
            "message_id": message_id,
            "text": render_surebet_page(surebets, new_page),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
            "reply_markup": build_navigation_markup(new_page, last),
        })
        self._remember_page(message_id, new_page)
        self._api("answerCallbackQuery", {"callback_query_id": callback["id"]})
