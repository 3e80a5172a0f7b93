#!/usr/bin/env python3
"""
測試 SurebetSnapshot 類別
"""
import unittest
from datetime import datetime, timezone

from core.models import Surebet
from core.storage import SurebetSnapshot


def make_surebet(surebet_id, profit=1.0, event="Team A - Team B"):
    return Surebet(
        id=surebet_id,
        profit_percent=profit,
        time=datetime(2025, 1, 14, 12, 0, tzinfo=timezone.utc),
        event_name=event,
        bookers=["Pinnacle", "Bet365"],
    )


class TestSurebetSnapshot(unittest.TestCase):
    def setUp(self):
        self.snapshot = SurebetSnapshot()

    def test_empty_snapshot(self):
        self.assertEqual(self.snapshot.size(), 0)
        self.assertEqual(self.snapshot.values(), [])
        self.assertIsNone(self.snapshot.get("1"))
        self.assertIsNone(self.snapshot.updated_at)

    def test_replace_populates(self):
        """測試取代快照"""
        self.snapshot.replace([make_surebet("1"), make_surebet("2")])

        self.assertEqual(len(self.snapshot), 2)
        self.assertIn("1", self.snapshot)
        self.assertEqual(self.snapshot.get("2").id, "2")
        self.assertIsNotNone(self.snapshot.updated_at)

    def test_replace_discards_previous(self):
        """新週期不會合併舊資料"""
        self.snapshot.replace([make_surebet("1"), make_surebet("2")])
        self.snapshot.replace([make_surebet("3")])

        self.assertEqual([s.id for s in self.snapshot.values()], ["3"])
        self.assertNotIn("1", self.snapshot)

    def test_replace_with_empty_clears(self):
        self.snapshot.replace([make_surebet("1")])
        self.snapshot.replace([])
        self.assertEqual(self.snapshot.size(), 0)

    def test_duplicate_id_later_wins(self):
        self.snapshot.replace([make_surebet("1", profit=1.0), make_surebet("1", profit=4.0)])

        self.assertEqual(self.snapshot.size(), 1)
        self.assertEqual(self.snapshot.get("1").profit_percent, 4.0)

    def test_reader_view_is_unaffected_by_replace(self):
        """讀取端取得的列表不會被後續取代改變"""
        self.snapshot.replace([make_surebet("1")])
        view = self.snapshot.values()

        self.snapshot.replace([make_surebet("2"), make_surebet("3")])

        self.assertEqual([s.id for s in view], ["1"])

    def test_sorted_by_profit(self):
        self.snapshot.replace([
            make_surebet("a", profit=1.5),
            make_surebet("b", profit=7.0),
            make_surebet("c", profit=3.2),
        ])
        self.assertEqual([s.id for s in self.snapshot.sorted_by_profit()], ["b", "c", "a"])

    def test_calculator_url(self):
        self.assertEqual(
            make_surebet("12345").calculator_url,
            "https://en.surebet.com/calculator/show/12345?model=surebet",
        )


if __name__ == "__main__":
    unittest.main()
