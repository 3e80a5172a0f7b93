#!/usr/bin/env python3
"""
Surebet 追蹤 bot 主程式

啟動時先爬取一次，之後每隔固定時間重新爬取；
主執行緒負責處理 Telegram /surebets 指令。
"""
import logging
import threading
from functools import partial
from dotenv import load_dotenv

from core.browser import BrowserSession
from core.config import ensure_env, load_settings, Settings
from core.notifier import TelegramNotifier
from core.pipeline import ScrapePipeline
from core.scheduler import RecurringScheduler
from core.session import SessionManager
from core.storage import SurebetSnapshot
from core.telegram_commands import SurebetCommandHandler

# 載入 .env 檔案
load_dotenv()

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_pipeline(settings: Settings, snapshot: SurebetSnapshot) -> ScrapePipeline:
    """依設定組裝爬取週期"""
    session_manager = SessionManager(
        email=settings.email,
        password=settings.password,
        cookies_file=settings.cookies_file,
    )
    notifier = TelegramNotifier(
        bot_token=settings.telegram_bot_token,
        chat_id=settings.telegram_chat_id,
    )
    browser_factory = partial(
        BrowserSession,
        headless=settings.headless,
        timeout_seconds=settings.navigation_timeout_seconds,
    )
    return ScrapePipeline(
        snapshot=snapshot,
        session_manager=session_manager,
        notifier=notifier,
        alert_threshold=settings.alert_threshold,
        browser_factory=browser_factory,
    )


def main():
    """主程式"""
    # 缺少必要設定時直接中止
    ensure_env()
    settings = load_settings()
    setup_logging(settings.log_level)

    snapshot = SurebetSnapshot()
    pipeline = build_pipeline(settings, snapshot)
    scheduler = RecurringScheduler(
        pipeline.run_cycle,
        interval_seconds=settings.scrape_interval_minutes * 60,
    )
    commands = SurebetCommandHandler(
        snapshot,
        bot_token=settings.telegram_bot_token,
        chat_id=settings.telegram_chat_id,
    )

    stop_event = threading.Event()
    scheduler.start()
    try:
        commands.run_forever(stop_event)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        stop_event.set()
        scheduler.stop(timeout=settings.navigation_timeout_seconds)


if __name__ == "__main__":
    main()
