#!/usr/bin/env python3
"""
單次爬取程式

只執行一個爬取週期（登入、解析、通知）後結束，
適合由 cron 等外部排程呼叫。週期失敗時以非零狀態碼結束。
"""
import sys
from dotenv import load_dotenv

from core.config import ensure_env, load_settings
from core.storage import SurebetSnapshot
from main import build_pipeline, setup_logging

# 載入 .env 檔案
load_dotenv()


def main() -> int:
    """主程式：執行一次爬取週期"""
    ensure_env()
    settings = load_settings()
    setup_logging(settings.log_level)

    snapshot = SurebetSnapshot()
    pipeline = build_pipeline(settings, snapshot)

    alerted = pipeline.run_cycle()
    if alerted is None:
        return 1

    print(f"Fetched {snapshot.size()} surebets, alerted {len(alerted)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
