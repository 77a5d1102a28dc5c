"""
Detect the host tool/IDE from the environment so ``a21e init`` works
without ``--tool``.

Detection order:

- ``A21E_TOOL_ID``: explicit override (CI or user), only if valid
- ``TERM_PROGRAM=cursor`` → ``cursor``
- ``TERM_PROGRAM=vscode`` → ``vscode`` (Cursor often reports this too)
- ``TERMINAL_EMULATOR`` containing ``JetBrains`` → ``jetbrains``

``codex_cli``, ``claude_code_cli`` and ``openai_cli_custom`` have no
terminal signature; use ``--tool`` or ``A21E_TOOL_ID`` for those.
"""

from __future__ import annotations

import os
from typing import Mapping

from .api import is_valid_tool_id


def detect_tool_from_environment(environ: Mapping[str, str] | None = None) -> str:
    """Return a tool id, or ``""`` when nothing matches."""
    env = os.environ if environ is None else environ

    override = env.get("A21E_TOOL_ID", "").strip().lower()
    if override and is_valid_tool_id(override):
        return override

    term_program = env.get("TERM_PROGRAM", "")
    if term_program in ("cursor", "vscode"):
        return term_program
    if "JetBrains" in env.get("TERMINAL_EMULATOR", ""):
        return "jetbrains"
    return ""
