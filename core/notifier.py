"""
通知服務模組

提供 Telegram 通知功能：將高利潤 surebet 分批推送到設定的聊天室。
"""

import html
import logging
import os
import re
import time
import requests
from typing import List, Sequence, Tuple

from core.models import Surebet


logger = logging.getLogger(__name__)

# 每則訊息最多包含的 surebet 數量
ALERT_BATCH_SIZE = 4
# 單則訊息的長度上限（Telegram 以解析 HTML 後的 UTF-16 單位計算，含標題）
MAX_BODY_LENGTH = 4096

ALERT_TITLE = "New Surebet Alerts!"
# Telegram 沒有訊息顏色，以綠色標記代替
ALERT_MARKER = "🟢"

_HTML_TAG = re.compile(r"<[^>]+>")


def telegram_length(text: str) -> int:
    """Telegram 計算的訊息長度：去除 HTML 標籤與實體後的 UTF-16 單位數"""
    visible = html.unescape(_HTML_TAG.sub("", text))
    return len(visible.encode("utf-16-le")) // 2


def chunk_list(items: Sequence, chunk_size: int) -> List[list]:
    """將序列切成固定大小的區塊，最後一塊可能較小"""
    return [list(items[i:i + chunk_size]) for i in range(0, len(items), chunk_size)]


def format_surebet_alert(surebet: Surebet) -> str:
    """
    格式化單筆 surebet 的通知內容

    Args:
        surebet: Surebet 物件

    Returns:
        HTML 格式字串（以空行結尾）
    """
    bookers = html.escape(", ".join(surebet.bookers))
    return (
        f"<b>{html.escape(surebet.event_name)} - ({bookers})</b>\n"
        f"Profit: <code>{surebet.profit_label}</code>\n"
        f"ID: <code>{html.escape(surebet.id)}</code>\n"
        f"URL: {html.escape(surebet.calculator_url)}\n\n"
    )


def build_alert_body(surebets: Sequence[Surebet], max_length: int = MAX_BODY_LENGTH) -> str:
    """
    組合一批 surebet 的訊息內容

    加入後會超過長度上限的項目直接略過（不會移到下一批）。
    長度以 telegram_length 計算。
    """
    body = ""
    length = 0
    for surebet in surebets:
        info = format_surebet_alert(surebet)
        info_length = telegram_length(info)
        if length + info_length > max_length:
            logger.warning("Surebet %s alert exceeds message limit, skipping", surebet.id)
            continue
        body += info
        length += info_length
    return body


class TelegramNotifier:
    """Telegram 通知服務"""

    def __init__(self, bot_token: str = None, chat_id: str = None):
        self.bot_token = bot_token or os.getenv("TELEGRAM_BOT_TOKEN")
        self.chat_id = chat_id or os.getenv("TELEGRAM_CHAT_ID")
        if not self.bot_token or not self.chat_id:
            raise ValueError("TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID must be set")

    def _send_message(self, text: str) -> bool:
        """發送 Telegram 訊息"""
        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        data = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        try:
            response = requests.post(url, json=data, timeout=10)
            response.raise_for_status()
            return True
        except requests.RequestException as e:
            logger.error("Failed to send Telegram message: %s", e)
            return False

    def _alert_header(self) -> str:
        return (
            f"<b>{ALERT_MARKER} {ALERT_TITLE}</b>\n"
            f"<i>{time.strftime('%Y-%m-%d %H:%M:%S')}</i>\n\n"
        )

    def alert_surebets(self, surebets: Sequence[Surebet]) -> Tuple[int, int]:
        """
        分批推送 surebet 通知

        每批最多 ALERT_BATCH_SIZE 筆，各批獨立發送：
        某批失敗不會影響後續批次，也不會重試。

        Args:
            surebets: 要通知的 surebet 列表

        Returns:
            (成功批數, 總批數)
        """
        if not surebets:
            return 0, 0

        batches = chunk_list(surebets, ALERT_BATCH_SIZE)
        success_count = 0

        for index, batch in enumerate(batches, start=1):
            header = self._alert_header()
            body = build_alert_body(batch, MAX_BODY_LENGTH - telegram_length(header))
            if not body:
                logger.warning("Alert batch %d/%d has no content, skipping", index, len(batches))
                continue
            if self._send_message(header + body):
                success_count += 1
            else:
                logger.warning("Alert batch %d/%d failed to send", index, len(batches))

        logger.info("Alert batches sent: %d/%d", success_count, len(batches))
        return success_count, len(batches)
