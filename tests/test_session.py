#!/usr/bin/env python3
"""
測試 SessionManager 與 cookie 檔案讀寫
"""
import json
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from core.session import (
    SessionManager,
    load_cookies,
    save_cookies,
    EMAIL_INPUT,
    PASSWORD_INPUT,
    SUBMIT_BUTTON,
    LOGIN_URL,
    SITE_ROOT_URL,
)
from fake_browser import FakeBrowserSession, SESSION_COOKIE


class TestCookieFile(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.cookies_file = os.path.join(self.temp_dir, "data", "cookies.json")

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_load_missing_file(self):
        """cookie 檔案不存在時返回空列表"""
        self.assertEqual(load_cookies(self.cookies_file), [])

    def test_load_malformed_file(self):
        os.makedirs(os.path.dirname(self.cookies_file))
        with open(self.cookies_file, "w", encoding="utf-8") as f:
            f.write("{not json")
        self.assertEqual(load_cookies(self.cookies_file), [])

    def test_load_non_list_payload(self):
        os.makedirs(os.path.dirname(self.cookies_file))
        with open(self.cookies_file, "w", encoding="utf-8") as f:
            json.dump({"name": "x"}, f)
        self.assertEqual(load_cookies(self.cookies_file), [])

    def test_save_creates_directory(self):
        save_cookies([SESSION_COOKIE], self.cookies_file)

        with open(self.cookies_file, "r", encoding="utf-8") as f:
            self.assertEqual(json.load(f), [SESSION_COOKIE])
        self.assertEqual(load_cookies(self.cookies_file), [SESSION_COOKIE])


class TestSessionManager(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.cookies_file = os.path.join(self.temp_dir, "data", "cookies.json")
        self.manager = SessionManager("user@example.com", "secret", self.cookies_file)

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_no_cookie_file_requires_login(self):
        """沒有 cookie 檔案時不拋出例外，並執行登入"""
        session = FakeBrowserSession()

        self.assertFalse(self.manager.is_logged_in(session))

        result = self.manager.ensure_session(session)

        self.assertIs(result, session)
        self.assertIn(LOGIN_URL, session.visited)
        self.assertEqual(session.filled, {EMAIL_INPUT: "user@example.com", PASSWORD_INPUT: "secret"})
        self.assertEqual(session.submitted, [SUBMIT_BUTTON])
        self.assertTrue(session.logged_in)

    def test_login_persists_cookies(self):
        self.manager.ensure_session(FakeBrowserSession())

        self.assertEqual(load_cookies(self.cookies_file), [SESSION_COOKIE])

    def test_stored_cookies_skip_login(self):
        save_cookies([SESSION_COOKIE], self.cookies_file)
        session = FakeBrowserSession()

        self.manager.ensure_session(session)

        self.assertEqual(session.visited, [SITE_ROOT_URL])
        self.assertEqual(session.submitted, [])

    def test_cookies_read_once_per_process(self):
        """cookie 檔案只在第一次讀取，之後使用記憶體快取"""
        self.manager.ensure_session(FakeBrowserSession())

        with patch("core.session.load_cookies") as mock_load:
            session = FakeBrowserSession()
            self.manager.ensure_session(session)
            mock_load.assert_not_called()

        self.assertEqual(session.submitted, [])

    def test_rejected_cookies_fall_back_to_login(self):
        save_cookies([{"bogus": True}], self.cookies_file)
        session = FakeBrowserSession(reject_cookies=True)

        self.manager.ensure_session(session)

        self.assertEqual(session.submitted, [SUBMIT_BUTTON])

    def test_save_failure_is_not_fatal(self):
        session = FakeBrowserSession()
        with patch("core.session.save_cookies", side_effect=OSError("read-only")):
            self.manager.ensure_session(session)

        self.assertTrue(session.logged_in)
        self.assertEqual(self.manager.cookies, [SESSION_COOKIE])

    def test_navigation_failure_propagates(self):
        session = FakeBrowserSession(fail_urls=[LOGIN_URL])
        with self.assertRaises(TimeoutError):
            self.manager.ensure_session(session)


if __name__ == "__main__":
    unittest.main()
