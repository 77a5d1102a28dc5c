"""
Merge the a21e keys into an editor's ``settings.json``.

Only three reserved keys are ever written; every other key keeps its value
and type.  Output is sorted and indented deterministically so that merging
into our own output is a no-op.
"""

from __future__ import annotations

import json
from typing import Any

from ..config import DEFAULT_MODEL, openai_base_url
from ..core.errors import InvalidSettingsDocument

KEY_API_URL       = "a21e.apiUrl"
KEY_API_KEY       = "a21e.apiKey"
KEY_DEFAULT_MODEL = "a21e.defaultModel"


def reserved_settings(tool_key: str, api_base_url: str) -> dict[str, str]:
    return {
        KEY_API_URL:       openai_base_url(api_base_url).removesuffix("/v1"),
        KEY_API_KEY:       tool_key,
        KEY_DEFAULT_MODEL: DEFAULT_MODEL,
    }


def _set_setting(target: dict[str, Any], key: str, value: str) -> bool:
    current = target.get(key)
    if isinstance(current, str) and current == value:
        return False
    target[key] = value
    return True


def dump_settings(settings: dict[str, Any]) -> bytes:
    return (json.dumps(settings, indent=2, sort_keys=True, ensure_ascii=False) + "\n").encode("utf-8")


def merge_settings(existing: bytes, tool_key: str, api_base_url: str) -> tuple[bytes, bool]:
    """
    Return ``(new_bytes, changed)`` for *existing* settings content.

    Empty or whitespace-only input is treated as ``{}``.

    :raises InvalidSettingsDocument: If non-empty input is not a JSON object.
        Nothing is repaired; the user has to fix the file first.
    """
    settings: dict[str, Any] = {}
    if existing.strip():
        try:
            parsed = json.loads(existing)
        except ValueError as e:
            raise InvalidSettingsDocument(
                "settings JSON is invalid. Back up and fix it, then rerun "
                f"a21e init --apply: {e}"
            ) from e
        if not isinstance(parsed, dict):
            raise InvalidSettingsDocument(
                "settings JSON must be an object. Back up and fix it, then rerun "
                "a21e init --apply"
            )
        settings = parsed

    changed = False
    for key, value in reserved_settings(tool_key, api_base_url).items():
        changed = _set_setting(settings, key, value) or changed

    return dump_settings(settings), changed
