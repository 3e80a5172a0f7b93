"""
資料模型

Surebet：單一套利機會（一筆 surebet 列表資料）。
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List


CALCULATOR_URL_TEMPLATE = "https://en.surebet.com/calculator/show/{id}?model=surebet"


@dataclass
class Surebet:
    """套利機會"""
    id: str
    profit_percent: float
    time: datetime
    event_name: str
    bookers: List[str] = field(default_factory=list)

    @property
    def calculator_url(self) -> str:
        """由 id 推導出計算機頁面 URL"""
        return CALCULATOR_URL_TEMPLATE.format(id=self.id)

    @property
    def profit_label(self) -> str:
        """利潤百分比文字，整數不顯示小數點（3.0 -> 3%）"""
        value = float(self.profit_percent)
        if value.is_integer():
            return f"{int(value)}%"
        return f"{value}%"
