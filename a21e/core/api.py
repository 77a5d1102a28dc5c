"""
a21e service API: workspaces and CLI keys.

Every call authenticates with the caller's ``X-API-Key`` and raises
:class:`~a21e.core.errors.APIError` on a non-2xx response.
"""

from __future__ import annotations

import enum
import logging
import urllib.parse
from dataclasses import dataclass

from .transport import get_json, join_url, post_json

logger = logging.getLogger("a21e")


class Tool(str, enum.Enum):
    """The closed set of tools a CLI key can be issued for."""
    CODEX_CLI         = "codex_cli"
    CLAUDE_CODE_CLI   = "claude_code_cli"
    CURSOR            = "cursor"
    VSCODE            = "vscode"
    JETBRAINS         = "jetbrains"
    OPENAI_CLI_CUSTOM = "openai_cli_custom"


VALID_TOOL_IDS = tuple(t.value for t in Tool)

_LABELS = {
    Tool.CODEX_CLI:         "Codex CLI API key",
    Tool.CLAUDE_CODE_CLI:   "Claude Code API key",
    Tool.CURSOR:            "Cursor API key",
    Tool.VSCODE:            "VS Code API key",
    Tool.JETBRAINS:         "JetBrains API key",
    Tool.OPENAI_CLI_CUSTOM: "OpenAI-compatible CLI API key",
}


@dataclass
class Workspace:
    id:   str
    name: str


@dataclass
class CLIKey:
    """A freshly created CLI key.  ``key`` is only ever returned once."""
    id:         str
    key:        str
    prefix:     str
    label:      str
    tool_id:    str
    created_at: str


def is_valid_tool_id(tool_id: str) -> bool:
    return tool_id in VALID_TOOL_IDS


def suggest_label(tool_id: str) -> str:
    return _LABELS.get(tool_id, "CLI API key")


def get_default_workspace(api_key: str, base_url: str) -> Workspace:
    data = get_json(join_url(base_url, "/v1/workspaces/default"), api_key=api_key)
    return Workspace(id=data.get("id", ""), name=data.get("name", ""))


def list_workspaces(api_key: str, base_url: str) -> list[Workspace]:
    data = get_json(join_url(base_url, "/v1/workspaces"), api_key=api_key)
    return [
        Workspace(id=item.get("id", ""), name=item.get("name", ""))
        for item in data.get("items") or []
    ]


def create_cli_key(
    api_key:      str,
    base_url:     str,
    workspace_id: str,
    tool_id:      str,
    *,
    label:        str = "",
    scope:        str = "",
    project_id:   str = "",
) -> CLIKey:
    """
    Create a CLI key for *tool_id* in *workspace_id*.

    :param scope:      ``"user"`` (server default), ``"workspace"`` or ``"project"``.
    :param project_id: Required by the server when ``scope == "project"``.
    """
    body: dict = {"tool_id": tool_id}
    if label:
        body["label"] = label
    if scope:
        body["scope"] = scope
    if project_id:
        body["project_id"] = project_id

    path = f"/v1/workspaces/{urllib.parse.quote(workspace_id, safe='')}/cli-keys"
    data = post_json(join_url(base_url, path), body, api_key=api_key)
    logger.debug("Created CLI key %s for tool=%s scope=%s", data.get("id"), tool_id, scope or "user")
    return CLIKey(
        id=data.get("id", ""),
        key=data.get("key", ""),
        prefix=data.get("prefix", ""),
        label=data.get("label", ""),
        tool_id=data.get("tool_id", tool_id),
        created_at=data.get("created_at", ""),
    )
