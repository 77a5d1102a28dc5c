"""Tests for the HTTP transport and the workspace / CLI-key API."""

import json
import unittest
import urllib.error
from unittest.mock import patch, MagicMock

from a21e.core.api import (
    VALID_TOOL_IDS,
    Tool,
    create_cli_key,
    get_default_workspace,
    is_valid_tool_id,
    list_workspaces,
    suggest_label,
)
from a21e.core.errors import APIError
from a21e.core.transport import _request, error_message, join_url, request_json

BASE = "http://localhost:8080"


def _mock_response(status, body):
    resp = MagicMock()
    resp.status = status
    resp.read.return_value = body
    resp.__enter__ = lambda s: s
    resp.__exit__ = MagicMock(return_value=False)
    return resp


class TestTransport(unittest.TestCase):
    @patch("a21e.core.transport.urllib.request.urlopen")
    def test_request_returns_status_and_body(self, mock_urlopen):
        mock_urlopen.return_value = _mock_response(200, b'{"ok": true}')
        status, data = _request("GET", BASE + "/healthz")
        self.assertEqual((status, data), (200, b'{"ok": true}'))

    @patch("a21e.core.transport.urllib.request.urlopen")
    def test_http_error_is_returned_not_raised(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.HTTPError(
            BASE + "/v1/workspaces", 401, "Unauthorized",
            {}, MagicMock(read=MagicMock(return_value=b'{"error": "invalid key"}')),
        )
        status, data = _request("GET", BASE + "/v1/workspaces")
        self.assertEqual(status, 401)
        self.assertEqual(error_message(data), "invalid key")

    def test_error_message_falls_back_to_raw_body(self):
        self.assertEqual(error_message(b"upstream timeout\n"), "upstream timeout")
        self.assertEqual(error_message(b'{"code": "x"}'), '{"code": "x"}')

    def test_join_url(self):
        self.assertEqual(join_url(BASE + "/", "/v1/x"), BASE + "/v1/x")
        self.assertEqual(join_url(BASE, "/v1/x", {"a": "b c", "n": None}), BASE + "/v1/x?a=b+c")

    @patch("a21e.core.transport.urllib.request.urlopen")
    def test_connection_failure_raises_api_error(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.URLError("connection refused")
        with self.assertRaises(APIError) as ctx:
            request_json("GET", BASE + "/v1/workspaces")
        self.assertEqual(ctx.exception.status, 0)
        self.assertIn("connection refused", str(ctx.exception))

    @patch("a21e.core.transport.urllib.request.urlopen")
    def test_non_json_body_raises_api_error(self, mock_urlopen):
        mock_urlopen.return_value = _mock_response(200, b"<html>gateway</html>")
        with self.assertRaises(APIError) as ctx:
            request_json("GET", BASE + "/v1/workspaces")
        self.assertTrue(str(ctx.exception).startswith("API 200: invalid response"))

    @patch("a21e.core.transport.urllib.request.urlopen")
    def test_non_object_body_raises_api_error(self, mock_urlopen):
        mock_urlopen.return_value = _mock_response(201, b'["ws_1"]')
        with self.assertRaises(APIError):
            request_json("POST", BASE + "/v1/workspaces", body={}, expected=(201,))


@patch("a21e.core.transport._request")
class TestAPI(unittest.TestCase):
    def test_default_workspace(self, mock_req):
        mock_req.return_value = (200, b'{"id": "ws_1", "name": "Personal"}')
        ws = get_default_workspace("key", BASE)
        self.assertEqual((ws.id, ws.name), ("ws_1", "Personal"))
        method, url, body, headers = mock_req.call_args[0]
        self.assertEqual((method, url, body), ("GET", BASE + "/v1/workspaces/default", None))
        self.assertEqual(headers["X-API-Key"], "key")

    def test_list_workspaces(self, mock_req):
        mock_req.return_value = (200, json.dumps({"items": [
            {"id": "ws_1", "name": "A"}, {"id": "ws_2", "name": "B"},
        ]}).encode())
        self.assertEqual([w.id for w in list_workspaces("key", BASE)], ["ws_1", "ws_2"])

    def test_create_cli_key(self, mock_req):
        mock_req.return_value = (201, json.dumps({
            "id": "ck_1", "key": "a21e_cli_secret", "prefix": "a21e_cli",
            "label": "Cursor API key", "tool_id": "cursor", "created_at": "2026-01-01T00:00:00Z",
        }).encode())
        key = create_cli_key("key", BASE, "ws_1", "cursor", label="Cursor API key", scope="workspace")
        self.assertEqual(key.key, "a21e_cli_secret")
        method, url, body, _ = mock_req.call_args[0]
        self.assertEqual((method, url), ("POST", BASE + "/v1/workspaces/ws_1/cli-keys"))
        self.assertEqual(json.loads(body), {
            "tool_id": "cursor", "label": "Cursor API key", "scope": "workspace",
        })

    def test_create_cli_key_with_project(self, mock_req):
        mock_req.return_value = (200, b'{"key": "k"}')
        create_cli_key("key", BASE, "ws_1", "vscode", scope="project", project_id="p_1")
        body = json.loads(mock_req.call_args[0][2])
        self.assertEqual(body["project_id"], "p_1")

    def test_api_error(self, mock_req):
        mock_req.return_value = (403, b'{"error": "forbidden"}')
        with self.assertRaises(APIError) as ctx:
            get_default_workspace("key", BASE)
        self.assertEqual(str(ctx.exception), "API 403: forbidden")


class TestToolIds(unittest.TestCase):
    def test_valid_tool_ids(self):
        self.assertTrue(is_valid_tool_id("openai_cli_custom"))
        self.assertFalse(is_valid_tool_id("emacs"))

    def test_labels(self):
        self.assertEqual(suggest_label("jetbrains"), "JetBrains API key")
        self.assertEqual(suggest_label("unknown"), "CLI API key")

    def test_ids_follow_the_tool_enum(self):
        self.assertEqual(VALID_TOOL_IDS, tuple(t.value for t in Tool))
        for tool in Tool:
            self.assertTrue(is_valid_tool_id(tool.value))
            self.assertNotEqual(suggest_label(tool.value), "CLI API key")


if __name__ == "__main__":
    unittest.main()
