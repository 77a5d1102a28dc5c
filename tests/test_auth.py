"""Tests for the device authorization flow."""

import io
import json
import unittest
import urllib.error
from unittest.mock import patch, MagicMock

from a21e.core.auth import (
    DeviceSession,
    poll_device_authorization,
    run_device_flow,
    start_device_authorization,
)
from a21e.core.errors import APIError, DeviceCodeExpired, DeviceFlowTimeout

BASE = "http://localhost:8080"
SESSION = DeviceSession(
    device_code="dev-123", user_code="ABCD-EFGH",
    verification_uri="https://a21e.com/device?code=ABCD-EFGH", expires_in=600,
)


def _ok(body):
    return 200, json.dumps(body).encode()


class TestStartDeviceAuthorization(unittest.TestCase):
    @patch("a21e.core.auth._request")
    def test_start_returns_session(self, mock_req):
        mock_req.return_value = (201, json.dumps({
            "device_code":      "dev-123",
            "user_code":        "ABCD-EFGH",
            "verification_uri": "https://a21e.com/device",
            "expires_in":       600,
        }).encode())

        session = start_device_authorization(BASE + "/")
        self.assertEqual(session.device_code, "dev-123")
        self.assertEqual(session.verification_uri, "https://a21e.com/device")
        self.assertEqual(session.expires_in, 600)
        method, url, body = mock_req.call_args[0]
        self.assertEqual((method, url, body), ("POST", BASE + "/v1/cli/device", b"{}"))

    @patch("a21e.core.auth._request")
    def test_start_error_surfaces_message(self, mock_req):
        mock_req.return_value = (429, b'{"error": "rate limited", "code": "rate_limit"}')
        with self.assertRaises(APIError) as ctx:
            start_device_authorization(BASE)
        self.assertEqual(ctx.exception.status, 429)
        self.assertEqual(str(ctx.exception), "API 429: rate limited")

    @patch("a21e.core.auth._request")
    def test_start_network_failure(self, mock_req):
        mock_req.side_effect = urllib.error.URLError("connection refused")
        with self.assertRaises(APIError):
            start_device_authorization(BASE)


@patch("a21e.core.auth.time")
@patch("a21e.core.auth._request")
class TestPollDeviceAuthorization(unittest.TestCase):
    def test_authorized_returns_key(self, mock_req, mock_time):
        mock_time.monotonic.return_value = 0.0
        mock_req.side_effect = [
            _ok({"status": "pending"}),
            _ok({"status": "authorized", "api_key": "a21e_live_key"}),
        ]
        key = poll_device_authorization(BASE, SESSION, interval=2.0, timeout=300.0)
        self.assertEqual(key, "a21e_live_key")
        self.assertEqual(mock_req.call_count, 2)
        mock_time.sleep.assert_called_with(2.0)
        url = mock_req.call_args[0][1]
        self.assertEqual(url, BASE + "/v1/cli/device?device_code=dev-123")

    def test_authorized_without_key_keeps_polling(self, mock_req, mock_time):
        mock_time.monotonic.return_value = 0.0
        mock_req.side_effect = [
            _ok({"status": "authorized"}),
            _ok({"status": "authorized", "api_key": "k"}),
        ]
        self.assertEqual(poll_device_authorization(BASE, SESSION), "k")

    def test_expired_and_consumed_fail(self, mock_req, mock_time):
        mock_time.monotonic.return_value = 0.0
        for status in ("expired", "consumed"):
            with self.subTest(status=status):
                mock_req.side_effect = [_ok({"status": status})]
                with self.assertRaises(DeviceCodeExpired) as ctx:
                    poll_device_authorization(BASE, SESSION)
                self.assertEqual(str(ctx.exception), "device code expired or already used")

    def test_timeout(self, mock_req, mock_time):
        mock_time.monotonic.side_effect = [0.0, 0.0, 100.0, 200.0, 301.0]
        mock_req.return_value = _ok({"status": "pending"})
        with self.assertRaises(DeviceFlowTimeout) as ctx:
            poll_device_authorization(BASE, SESSION, timeout=300.0)
        self.assertEqual(str(ctx.exception), "timed out waiting for authorization")
        self.assertEqual(mock_req.call_count, 3)

    def test_transient_failures_do_not_stop_polling(self, mock_req, mock_time):
        mock_time.monotonic.return_value = 0.0
        mock_req.side_effect = [
            (200, b"not json"),
            (200, b"[1, 2]"),
            (502, b"bad gateway"),
            urllib.error.URLError("reset"),
            OSError("timed out"),
            _ok({"status": "authorized", "api_key": "k"}),
        ]
        self.assertEqual(poll_device_authorization(BASE, SESSION), "k")
        self.assertEqual(mock_req.call_count, 6)

    def test_persistent_failures_end_in_timeout(self, mock_req, mock_time):
        mock_time.monotonic.side_effect = [0.0, 0.0, 1.0, 5.0]
        mock_req.return_value = (200, b"{")
        with self.assertRaises(DeviceFlowTimeout):
            poll_device_authorization(BASE, SESSION, timeout=5.0)


class TestRunDeviceFlow(unittest.TestCase):
    @patch("a21e.core.auth.poll_device_authorization", return_value="k")
    @patch("a21e.core.auth.start_device_authorization", return_value=SESSION)
    @patch("a21e.core.auth.webbrowser")
    def test_prints_url_and_opens_browser(self, mock_browser, _start, _poll):
        out = io.StringIO()
        self.assertEqual(run_device_flow(BASE, out=out), "k")
        self.assertIn(SESSION.verification_uri, out.getvalue())
        mock_browser.open.assert_called_once_with(SESSION.verification_uri)

    @patch("a21e.core.auth.poll_device_authorization", return_value="k")
    @patch("a21e.core.auth.start_device_authorization", return_value=SESSION)
    @patch("a21e.core.auth.webbrowser")
    def test_browser_failure_is_ignored(self, mock_browser, _start, _poll):
        mock_browser.open.side_effect = RuntimeError("no display")
        self.assertEqual(run_device_flow(BASE, out=io.StringIO()), "k")

    @patch("a21e.core.auth.poll_device_authorization", return_value="k")
    @patch("a21e.core.auth.start_device_authorization", return_value=SESSION)
    @patch("a21e.core.auth.webbrowser", new_callable=MagicMock)
    def test_launch_disabled(self, mock_browser, _start, _poll):
        run_device_flow(BASE, launch=False, out=io.StringIO())
        mock_browser.open.assert_not_called()


if __name__ == "__main__":
    unittest.main()
