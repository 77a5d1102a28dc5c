"""
Map a tool id to the file that configures it, and reconcile that file.

Two strategies exist:

- ``EDITOR_SETTINGS``: merge the a21e keys into ``<App>/User/settings.json``.
- ``SHELL_ENV``: upsert a managed ``export`` block in the user's shell rc file.

Tools without a strategy (or unknown ids) yield :class:`Unsupported`, which
callers should treat as "show manual instructions", not as a failure.
"""

from __future__ import annotations

import enum
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from ..core.api import Tool
from ..core.errors import ConfigWriteError, UnsupportedPlatform
from .block import managed_block_markers, render_shell_env_block, upsert_managed_block
from .settings import merge_settings
from .writer import read_existing, write_file_with_backup

logger = logging.getLogger("a21e")


class TargetKind(str, enum.Enum):
    STRUCTURED_SETTINGS = "structured-settings"
    MANAGED_TEXT_BLOCK  = "managed-text-block"


@dataclass(frozen=True)
class _Strategy:
    kind:    TargetKind | None
    app:     str = ""   # editor application directory name
    details: str = ""


_STRATEGIES: dict[Tool, _Strategy] = {
    Tool.VSCODE: _Strategy(
        TargetKind.STRUCTURED_SETTINGS, "Code",
        "Updated VS Code user settings for the a21e extension.",
    ),
    Tool.CURSOR: _Strategy(
        TargetKind.STRUCTURED_SETTINGS, "Cursor",
        "Updated Cursor user settings for the a21e extension.",
    ),
    Tool.OPENAI_CLI_CUSTOM: _Strategy(
        TargetKind.MANAGED_TEXT_BLOCK, "",
        "Updated shell profile with OPENAI-compatible a21e environment variables.",
    ),
    Tool.CODEX_CLI:       _Strategy(None),
    Tool.CLAUDE_CODE_CLI: _Strategy(None),
    Tool.JETBRAINS:       _Strategy(None),
}

_missing = set(Tool) - set(_STRATEGIES)
if _missing:
    raise RuntimeError(f"no reconciliation strategy for: {sorted(t.value for t in _missing)}")


@dataclass
class ReconcileTarget:
    path: str
    kind: TargetKind


@dataclass
class ApplySummary:
    """Successful reconciliation.  ``backup_path == ""`` means nothing was replaced."""
    updated_path: str
    backup_path:  str
    details:      str


@dataclass
class Unsupported:
    """Auto-configuration is not available for this tool."""
    tool_id: str


# ── Path resolution ───────────────────────────────────────────────────────────

def _platform() -> str:
    return sys.platform


def _home() -> Path:
    try:
        return Path.home()
    except RuntimeError as e:
        raise ConfigWriteError(f"could not resolve home directory: {e}", "~") from e


def editor_settings_path(app: str) -> str:
    """
    :raises UnsupportedPlatform: Outside macOS and Linux.
    """
    platform = _platform()
    if platform == "darwin":
        return str(_home() / "Library" / "Application Support" / app / "User" / "settings.json")
    if platform.startswith("linux"):
        return str(_home() / ".config" / app / "User" / "settings.json")
    raise UnsupportedPlatform(f"automatic settings patching is not supported on {platform}")


def shell_rc_path() -> str:
    home  = _home()
    shell = os.path.basename(os.environ.get("SHELL", ""))
    if shell == "zsh":
        return str(home / ".zshrc")
    if shell == "bash":
        if _platform() == "darwin":
            return str(home / ".bash_profile")
        return str(home / ".bashrc")
    return str(home / ".profile")


def resolve_target(tool: Tool) -> ReconcileTarget | None:
    strategy = _STRATEGIES[tool]
    if strategy.kind is TargetKind.STRUCTURED_SETTINGS:
        return ReconcileTarget(editor_settings_path(strategy.app), strategy.kind)
    if strategy.kind is TargetKind.MANAGED_TEXT_BLOCK:
        return ReconcileTarget(shell_rc_path(), strategy.kind)
    return None


# ── Reconciliation ────────────────────────────────────────────────────────────

def _reconcile(target: ReconcileTarget, tool: Tool, tool_key: str, api_base_url: str) -> str:
    existing = read_existing(target.path)

    if target.kind is TargetKind.STRUCTURED_SETTINGS:
        updated, changed = merge_settings(existing, tool_key, api_base_url)
    else:
        start, end = managed_block_markers(tool.value)
        block = render_shell_env_block(tool.value, tool_key, api_base_url)
        try:
            text = existing.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ConfigWriteError(f"could not read {target.path}: not UTF-8 text", target.path) from e
        new_text, changed = upsert_managed_block(text, start, end, block)
        updated = new_text.encode("utf-8")

    if not changed:
        logger.info("%s already up to date", target.path)
        return ""
    return write_file_with_backup(target.path, existing, updated, 0o600)


def apply_tool_configuration(
    tool_id:      str,
    tool_key:     str,
    api_base_url: str,
) -> ApplySummary | Unsupported:
    """
    Reconcile *tool_id*'s configuration file with *tool_key*.

    :returns: :class:`ApplySummary`, or :class:`Unsupported` when the tool
        has no auto-configuration.
    :raises ReconcileError: On corrupt files, unsupported platforms, or I/O failures.
    """
    try:
        tool = Tool(tool_id)
    except ValueError:
        return Unsupported(tool_id)

    target = resolve_target(tool)
    if target is None:
        return Unsupported(tool_id)

    logger.debug("Reconciling %s (%s) for tool=%s", target.path, target.kind.value, tool.value)
    backup = _reconcile(target, tool, tool_key, api_base_url)
    return ApplySummary(
        updated_path=target.path,
        backup_path=backup,
        details=_STRATEGIES[tool].details,
    )
