"""
a21e CLI: provision tool-scoped API keys and wire them into local tools.

Command-line usage::

    a21e init                               # device login, or detect tool
    a21e init --tool cursor --apply         # create a key and patch Cursor settings
    a21e init --non-interactive --tool vscode --workspace ws_123 --yes

Library usage::

    import a21e

    key    = a21e.login("https://api.a21e.com").api_key
    result = a21e.provision(
        api_key  = key,
        base_url = "https://api.a21e.com",
        tool_id  = "openai_cli_custom",
        apply    = True,
    )

    # Reconcile an existing key without creating a new one
    outcome = a21e.apply_tool_configuration("vscode", key, "https://api.a21e.com")
    if isinstance(outcome, a21e.Unsupported):
        ...  # show manual instructions
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config       import get_api_base_url, get_api_key, openai_base_url  # noqa: E402,F401
from .core.errors  import A21EError  # noqa: E402,F401
from .provisioning import login, provision  # noqa: E402,F401
from .reconcile    import ApplySummary, Unsupported, apply_tool_configuration  # noqa: E402,F401
