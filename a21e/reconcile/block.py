"""
Managed blocks inside user-owned text files (shell profiles).

A managed block is the region between a start and end marker derived from a
tool id, so several tools can each own one block in the same file::

    # >>> a21e openai_cli_custom >>>
    export OPENAI_API_KEY="..."
    # <<< a21e openai_cli_custom <<<

Everything outside the markers is left byte-for-byte untouched.
"""

from __future__ import annotations

from ..config import DEFAULT_MODEL, openai_base_url
from ..core.errors import MalformedManagedBlock


def managed_block_markers(tool_id: str) -> tuple[str, str]:
    return f"# >>> a21e {tool_id} >>>", f"# <<< a21e {tool_id} <<<"


def _shell_quote(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
             .replace('"', '\\"')
             .replace("$", "\\$")
             .replace("`", "\\`")
    )
    return f'"{escaped}"'


def render_shell_env_block(tool_id: str, tool_key: str, api_base_url: str) -> str:
    """The managed block exporting OpenAI-compatible variables for *tool_id*."""
    start, end = managed_block_markers(tool_id)
    url = openai_base_url(api_base_url)
    return "\n".join([
        start,
        f"export OPENAI_API_BASE={_shell_quote(url)}",
        f"export OPENAI_BASE_URL={_shell_quote(url)}",
        f"export OPENAI_API_KEY={_shell_quote(tool_key)}",
        f"export A21E_MODEL={_shell_quote(DEFAULT_MODEL)}",
        end,
    ])


def upsert_managed_block(
    content:      str,
    start_marker: str,
    end_marker:   str,
    block:        str,
) -> tuple[str, bool]:
    """
    Insert or replace the block delimited by *start_marker* / *end_marker*.

    Returns ``(new_content, changed)``.  Calling twice with the same
    arguments returns ``changed=False`` the second time.

    :raises MalformedManagedBlock: If only one marker is present, a marker
        appears more than once, or the end marker precedes the start marker.
    """
    starts = content.count(start_marker)
    ends   = content.count(end_marker)
    if starts and not ends:
        raise MalformedManagedBlock(
            f"found start marker {start_marker!r} without end marker"
        )
    if ends and not starts:
        raise MalformedManagedBlock(
            f"found end marker {end_marker!r} without start marker"
        )
    if starts > 1 or ends > 1:
        raise MalformedManagedBlock(
            f"managed block {start_marker!r} appears more than once"
        )

    if starts:
        start = content.index(start_marker)
        end   = content.index(end_marker)
        if end < start:
            raise MalformedManagedBlock(
                f"end marker {end_marker!r} appears before its start marker"
            )
        end += len(end_marker)
        replaced = content[:start] + block + content[end:]
        return replaced, replaced != content

    if not content.strip():
        return block + "\n", True
    return content.rstrip("\n") + "\n\n" + block + "\n", True
