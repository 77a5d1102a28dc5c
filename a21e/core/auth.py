"""
Device authorization flow.

Used when no ``A21E_API_KEY`` is available: the CLI asks the API for a device
code, shows the verification URL, and polls until the user approves the
device in a browser.  The resulting key is returned to the caller, which
decides where to persist it.

States::

    Started → Polling → Authorized | Expired/Consumed | TimedOut
"""

from __future__ import annotations

import json
import logging
import sys
import time
import urllib.error
import webbrowser
from dataclasses import dataclass
from typing import TextIO

from .errors import APIError, DeviceCodeExpired, DeviceFlowTimeout
from .transport import _request, error_message, join_url

logger = logging.getLogger("a21e")

POLL_INTERVAL = 2.0     # seconds
POLL_TIMEOUT  = 300.0   # seconds, independent of the server's expires_in

_TERMINAL_FAILURES = ("consumed", "expired")


@dataclass
class DeviceSession:
    """A started device grant.  Lives only in memory for the length of the flow."""
    device_code:      str
    user_code:        str
    verification_uri: str
    expires_in:       int


def start_device_authorization(base_url: str) -> DeviceSession:
    """``POST /v1/cli/device`` and return the new session.

    :raises APIError: On a non-2xx response (the server's ``error`` text is kept verbatim).
    """
    url = join_url(base_url, "/v1/cli/device")
    try:
        status, data = _request("POST", url, b"{}")
    except (urllib.error.URLError, OSError) as e:
        raise APIError(0, f"request failed: {e}") from e

    if status not in (200, 201):
        raise APIError(status, error_message(data))
    try:
        body = json.loads(data)
    except ValueError as e:
        raise APIError(status, f"invalid response: {e}") from e

    return DeviceSession(
        device_code=body.get("device_code", ""),
        user_code=body.get("user_code", ""),
        verification_uri=body.get("verification_uri", ""),
        expires_in=int(body.get("expires_in") or 0),
    )


def _poll_status(base_url: str, device_code: str) -> dict | None:
    """One poll.  Returns the decoded body, or None for any transient failure."""
    url = join_url(base_url, "/v1/cli/device", {"device_code": device_code})
    try:
        status, data = _request("GET", url, timeout=10.0)
    except (urllib.error.URLError, OSError) as e:
        logger.debug("Device poll failed: %s", e)
        return None
    if status != 200:
        logger.debug("Device poll → HTTP %d", status)
        return None
    try:
        body = json.loads(data)
    except ValueError:
        logger.debug("Device poll returned malformed JSON")
        return None
    if not isinstance(body, dict):
        logger.debug("Device poll returned a non-object body")
        return None
    return body


def poll_device_authorization(
    base_url: str,
    session:  DeviceSession,
    *,
    interval: float = POLL_INTERVAL,
    timeout:  float = POLL_TIMEOUT,
) -> str:
    """Poll until the device is authorized and return the issued API key.

    Transient failures (network errors, non-200 responses, malformed bodies)
    are treated as "still pending".

    :raises DeviceCodeExpired: The server reports the code consumed or expired.
    :raises DeviceFlowTimeout: *timeout* seconds passed without a decision.
    """
    deadline = time.monotonic() + timeout
    failures = 0

    while time.monotonic() < deadline:
        time.sleep(interval)

        body = _poll_status(base_url, session.device_code)
        if body is None:
            failures += 1
            continue

        status  = body.get("status")
        api_key = body.get("api_key") or ""
        if status == "authorized" and api_key:
            logger.info("Device authorized")
            return api_key
        if status in _TERMINAL_FAILURES:
            raise DeviceCodeExpired()
        logger.debug("Device authorization pending (status=%s)", status)

    if failures:
        logger.warning("%d device poll(s) failed before timing out", failures)
    raise DeviceFlowTimeout()


def open_browser(url: str) -> None:
    """Best-effort browser launch.  Failure is never an error."""
    try:
        webbrowser.open(url)
    except Exception as e:
        logger.debug("Could not open browser: %s", e)


def run_device_flow(
    base_url: str,
    *,
    interval: float  = POLL_INTERVAL,
    timeout:  float  = POLL_TIMEOUT,
    launch:   bool   = True,
    out:      TextIO | None = None,
) -> str:
    """Start a device grant, show the URL, and wait for the API key."""
    out = out or sys.stderr
    session = start_device_authorization(base_url)

    print("\nOpen this URL to sign in and authorize this device:\n", file=out)
    print(f"  {session.verification_uri}\n", file=out)
    if session.user_code:
        print(f"Confirm the code shown in your browser matches: {session.user_code}\n", file=out)
    if launch:
        open_browser(session.verification_uri)

    return poll_device_authorization(base_url, session, interval=interval, timeout=timeout)
