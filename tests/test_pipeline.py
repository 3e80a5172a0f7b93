#!/usr/bin/env python3
"""
測試 ScrapePipeline 爬取週期
"""
import os
import shutil
import tempfile
import threading
import unittest
from unittest.mock import MagicMock

from core.pipeline import ScrapePipeline, process_and_alert, filter_surebets_by_threshold
from core.session import SessionManager
from core.storage import SurebetSnapshot
from scrapers.surebet.scraper import SUREBETS_URL
from fake_browser import FakeBrowserSession, make_listing, make_row
from test_storage import make_surebet


class TestProcessAndAlert(unittest.TestCase):
    def test_threshold_partition(self):
        """門檻 5，利潤 [3, 5, 7] -> 通知 [5, 7]"""
        surebets = [make_surebet("a", 3), make_surebet("b", 5), make_surebet("c", 7)]
        notifier = MagicMock()

        alerted = process_and_alert(surebets, 5, notifier)

        self.assertEqual([s.profit_percent for s in alerted], [5, 7])
        notifier.alert_surebets.assert_called_once_with(alerted)

    def test_nothing_qualifies_no_dispatch(self):
        notifier = MagicMock()

        alerted = process_and_alert([make_surebet("a", 1)], 5, notifier)

        self.assertEqual(alerted, [])
        notifier.alert_surebets.assert_not_called()

    def test_filter_keeps_order(self):
        surebets = [make_surebet("a", 9), make_surebet("b", 6), make_surebet("c", 8)]
        self.assertEqual(
            [s.id for s in filter_surebets_by_threshold(surebets, 6)], ["a", "b", "c"]
        )


class TestScrapePipeline(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.snapshot = SurebetSnapshot()
        self.session_manager = SessionManager(
            "user@example.com", "secret", os.path.join(self.temp_dir, "cookies.json")
        )
        self.notifier = MagicMock()
        self.sessions = []

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _pipeline(self, **session_kwargs):
        def factory():
            session = FakeBrowserSession(**session_kwargs)
            self.sessions.append(session)
            return session

        return ScrapePipeline(
            snapshot=self.snapshot,
            session_manager=self.session_manager,
            notifier=self.notifier,
            alert_threshold=5,
            browser_factory=factory,
        )

    def test_cycle_replaces_snapshot_and_alerts(self):
        listing = make_listing([
            make_row(surebet_id="surebet_record_1", profit="3"),
            make_row(surebet_id="surebet_record_2", profit="6.5"),
        ])
        pipeline = self._pipeline(listing=listing)

        alerted = pipeline.run_cycle()

        self.assertEqual([s.id for s in alerted], ["2"])
        self.assertEqual(self.snapshot.size(), 2)
        self.notifier.alert_surebets.assert_called_once()
        self.assertTrue(self.sessions[0].closed)

    def test_cycle_failure_keeps_snapshot(self):
        """週期失敗時快照不變、不發送通知，瀏覽器仍會關閉"""
        self.snapshot.replace([make_surebet("old")])
        pipeline = self._pipeline(fail_urls=[SUREBETS_URL])

        result = pipeline.run_cycle()

        self.assertIsNone(result)
        self.assertEqual([s.id for s in self.snapshot.values()], ["old"])
        self.notifier.alert_surebets.assert_not_called()
        self.assertTrue(self.sessions[0].closed)
        self.assertFalse(pipeline.is_running)

    def test_next_cycle_after_failure_succeeds(self):
        pipeline = self._pipeline(fail_urls=[SUREBETS_URL])
        self.assertIsNone(pipeline.run_cycle())

        pipeline.browser_factory = lambda: FakeBrowserSession(
            listing=make_listing([make_row(profit="1")])
        )
        self.assertEqual(pipeline.run_cycle(), [])
        self.assertEqual(self.snapshot.size(), 1)

    def test_overlapping_cycle_is_skipped(self):
        """已有週期執行時，新的呼叫直接略過"""
        entered = threading.Event()
        release = threading.Event()
        pipeline = self._pipeline()
        original_ensure = self.session_manager.ensure_session

        def slow_ensure(session):
            entered.set()
            release.wait(5)
            return original_ensure(session)

        self.session_manager.ensure_session = slow_ensure

        worker = threading.Thread(target=pipeline.run_cycle)
        worker.start()
        self.assertTrue(entered.wait(5))

        self.assertTrue(pipeline.is_running)
        self.assertIsNone(pipeline.run_cycle())
        self.assertEqual(len(self.sessions), 1)

        release.set()
        worker.join(5)
        self.assertFalse(pipeline.is_running)


if __name__ == "__main__":
    unittest.main()
