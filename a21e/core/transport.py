"""
HTTP transport helpers.

Thin ``urllib.request`` wrapper that always returns the status code and raw
body, so callers decide what counts as success.  Zero external dependencies.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from .errors import APIError

logger = logging.getLogger("a21e")

_USER_AGENT = "a21e-cli"


def _request(
    method:  str,
    url:     str,
    body:    bytes | None = None,
    headers: dict | None  = None,
    timeout: float        = 15.0,
) -> tuple[int, bytes]:
    """Execute an HTTP request and return ``(status, body)``.

    HTTP error statuses are returned, not raised.  Connection-level failures
    (``URLError``, ``OSError``) propagate to the caller.
    """
    hdrs = dict(headers or {})
    hdrs.setdefault("User-Agent", _USER_AGENT)
    if body is not None:
        hdrs.setdefault("Content-Type", "application/json")

    req = urllib.request.Request(url, data=body, method=method, headers=hdrs)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return resp.status, resp.read()
    except urllib.error.HTTPError as e:
        return e.code, e.read()


def join_url(base_url: str, path: str, params: dict | None = None) -> str:
    url = base_url.rstrip("/") + path
    if params:
        url += "?" + urllib.parse.urlencode(
            {k: v for k, v in params.items() if v is not None}
        )
    return url


def error_message(data: bytes) -> str:
    """Return the ``error`` field of an API error body, or the raw body."""
    try:
        parsed = json.loads(data)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict) and parsed.get("error"):
        return str(parsed["error"])
    return data.decode("utf-8", errors="replace").strip()


def request_json(
    method:   str,
    url:      str,
    *,
    body:     dict | None = None,
    api_key:  str | None  = None,
    expected: tuple[int, ...] = (200,),
) -> Any:
    """Send *body* as JSON and return the parsed response object.

    :raises APIError: If the request cannot be sent, the status is not in
        *expected*, or the body is not a JSON object.
    """
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["X-API-Key"] = api_key
    payload = json.dumps(body).encode() if body is not None else None

    try:
        status, data = _request(method, url, payload, headers)
    except (urllib.error.URLError, OSError) as e:
        raise APIError(0, f"request failed: {e}") from e
    if status not in expected:
        logger.debug("%s %s → HTTP %d", method, url, status)
        raise APIError(status, error_message(data))
    try:
        parsed = json.loads(data)
    except ValueError as e:
        raise APIError(status, f"invalid response: {e}") from e
    if not isinstance(parsed, dict):
        raise APIError(status, "invalid response: expected a JSON object")
    return parsed


def get_json(url: str, *, api_key: str | None = None) -> Any:
    """GET *url* and return parsed JSON. Raises APIError on a non-200 status."""
    return request_json("GET", url, api_key=api_key)


def post_json(url: str, body: dict, *, api_key: str | None = None) -> Any:
    """POST JSON *body* to *url*; accepts 200 and 201. Raises APIError otherwise."""
    return request_json("POST", url, body=body, api_key=api_key, expected=(200, 201))
