"""
Snapshot storage for the latest scrape result.

- Kept in memory only, keyed by surebet id
- Each cycle replaces the whole mapping (no incremental merge)
- One writer (the scrape cycle), any number of readers (bot commands)
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from core.models import Surebet


class SurebetSnapshot:
    """目前已知的 surebet 快照"""

    def __init__(self):
        self._surebets: Dict[str, Surebet] = {}
        self.updated_at: Optional[datetime] = None

    def replace(self, surebets: Iterable[Surebet]) -> None:
        """
        以新資料整批取代快照

        先建好新的 dict 再一次換掉參照，讀取端只會看到完整的舊快照或新快照。
        id 重複時以序列中較後面的為準。

        Args:
            surebets: 本次爬取的 surebet 序列
        """
        new_surebets = {surebet.id: surebet for surebet in surebets}
        self._surebets = new_surebets
        self.updated_at = datetime.now(timezone.utc)

    def get(self, surebet_id: str) -> Optional[Surebet]:
        return self._surebets.get(surebet_id)

    def values(self) -> List[Surebet]:
        """返回目前快照的列表副本（保持插入順序）"""
        return list(self._surebets.values())

    def size(self) -> int:
        return len(self._surebets)

    def sorted_by_profit(self) -> List[Surebet]:
        """依利潤由高到低排序"""
        return sorted(self.values(), key=lambda s: s.profit_percent, reverse=True)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, surebet_id: str) -> bool:
        return surebet_id in self._surebets
