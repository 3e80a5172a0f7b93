"""
設定檔載入模組

從環境變數（.env）載入設定，並以 .env.example 列出的鍵名檢查必要設定。
"""

import os
from typing import Dict, List, Mapping, Optional
from dataclasses import dataclass


DEFAULT_ENV_EXAMPLE = ".env.example"

# 選用設定的預設值
DEFAULT_CONFIG = {
    "COOKIES_FILE": "data/cookies.json",
    "SCRAPE_INTERVAL_MINUTES": "5",
    "NAVIGATION_TIMEOUT_SECONDS": "60",
    "HEADLESS": "true",
    "LOG_LEVEL": "INFO",
}


@dataclass
class Settings:
    """執行設定"""
    email: str
    password: str
    alert_threshold: float
    telegram_bot_token: str
    telegram_chat_id: str
    cookies_file: str = DEFAULT_CONFIG["COOKIES_FILE"]
    scrape_interval_minutes: float = 5
    navigation_timeout_seconds: float = 60
    headless: bool = True
    log_level: str = "INFO"


def read_required_keys(example_path: str = DEFAULT_ENV_EXAMPLE) -> List[str]:
    """
    讀取 .env.example 中列出的必要鍵名

    空行與 # 開頭的註解行會被略過，因此選用設定可用註解方式列出。

    Args:
        example_path: 範本檔路徑

    Returns:
        鍵名列表（保持檔案中的順序）
    """
    with open(example_path, "r", encoding="utf-8") as f:
        lines = [line.strip() for line in f]

    keys = []
    for line in lines:
        if not line or line.startswith("#"):
            continue
        key = line.split("=", 1)[0].strip().replace('"', "")
        if key:
            keys.append(key)
    return keys


def ensure_env(
    example_path: str = DEFAULT_ENV_EXAMPLE,
    environ: Optional[Mapping[str, str]] = None,
) -> None:
    """
    檢查必要環境變數是否都已設定

    Raises:
        ValueError: 有任何必要鍵名缺少時
        FileNotFoundError: 範本檔不存在時
    """
    if environ is None:
        environ = os.environ

    missing = [key for key in read_required_keys(example_path) if key not in environ]
    if missing:
        raise ValueError(f"Missing required environment variables: {', '.join(missing)}")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_number(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be numeric, got {value!r}") from None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    由環境變數建立 Settings

    Args:
        environ: 環境變數映射，預設為 os.environ

    Returns:
        Settings: 設定物件

    Raises:
        ValueError: 必要鍵缺少或數值格式錯誤時
    """
    if environ is None:
        environ = os.environ

    values: Dict[str, str] = {**DEFAULT_CONFIG, **environ}

    required = ["SUREBET_EMAIL", "SUREBET_PASSWORD", "ALERT_THRESHOLD",
                "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID"]
    missing = [key for key in required if not values.get(key)]
    if missing:
        raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

    return Settings(
        email=values["SUREBET_EMAIL"],
        password=values["SUREBET_PASSWORD"],
        alert_threshold=_parse_number("ALERT_THRESHOLD", values["ALERT_THRESHOLD"]),
        telegram_bot_token=values["TELEGRAM_BOT_TOKEN"],
        telegram_chat_id=values["TELEGRAM_CHAT_ID"],
        cookies_file=values["COOKIES_FILE"],
        scrape_interval_minutes=_parse_number(
            "SCRAPE_INTERVAL_MINUTES", values["SCRAPE_INTERVAL_MINUTES"]
        ),
        navigation_timeout_seconds=_parse_number(
            "NAVIGATION_TIMEOUT_SECONDS", values["NAVIGATION_TIMEOUT_SECONDS"]
        ),
        headless=_parse_bool(values["HEADLESS"]),
        log_level=values["LOG_LEVEL"].upper(),
    )
