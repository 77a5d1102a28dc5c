"""
Provisioning: obtain an API key (device login) and exchange it for a
tool-scoped CLI key, optionally writing that key into the tool's config.

Called by :mod:`a21e.cli`; usable on its own::

    from a21e.provisioning import provision

    result = provision(
        api_key  = "a21e_...",
        base_url = "https://api.a21e.com",
        tool_id  = "cursor",
        apply    = True,
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from .config import write_credentials_file
from .core.api import (
    CLIKey, Workspace, VALID_TOOL_IDS,
    create_cli_key, get_default_workspace, is_valid_tool_id, suggest_label,
)
from .core.auth import POLL_INTERVAL, POLL_TIMEOUT, run_device_flow
from .core.errors import A21EError, ReconcileError
from .reconcile.dispatch import ApplySummary, Unsupported, apply_tool_configuration

logger = logging.getLogger("a21e.provisioning")


class UsageError(A21EError):
    """Invalid combination of provisioning options."""


@dataclass
class LoginResult:
    api_key:          str
    credentials_path: Path | None      # None if saving failed
    save_error:       str = ""


@dataclass
class ProvisionResult:
    workspace:   Workspace
    key:         CLIKey
    scope:       str
    applied:     ApplySummary | Unsupported | None = None
    apply_error: ReconcileError | None = None


def login(
    base_url: str,
    *,
    interval: float = POLL_INTERVAL,
    timeout:  float = POLL_TIMEOUT,
    launch:   bool  = True,
    out:      TextIO | None = None,
) -> LoginResult:
    """
    Run the device authorization flow and save the key to the credentials file.

    A failure to save is reported in the result, not raised: the key is
    still shown to the user, who can export it manually.

    :raises DeviceFlowError: If authorization expires or times out.
    :raises APIError: If the device grant cannot be started.
    """
    api_key = run_device_flow(base_url, interval=interval, timeout=timeout, launch=launch, out=out)
    try:
        path = write_credentials_file(api_key)
    except OSError as e:
        logger.warning("Could not save key to credentials file: %s", e)
        return LoginResult(api_key=api_key, credentials_path=None, save_error=str(e))
    logger.info("Key saved to %s", path)
    return LoginResult(api_key=api_key, credentials_path=path)


def key_scope(*, workspace_scoped: bool = False, project_id: str = "") -> str:
    if project_id:
        return "project"
    if workspace_scoped:
        return "workspace"
    return "user"


def provision(
    *,
    api_key:          str,
    base_url:         str,
    tool_id:          str,
    workspace_id:     str | None = None,
    workspace_scoped: bool = False,
    project_id:       str | None = None,
    apply:            bool = False,
) -> ProvisionResult:
    """
    Create a CLI key for *tool_id* and optionally apply it.

    Steps:
    1. Validate options
    2. Resolve the workspace (explicit id, else the account default)
    3. Create the CLI key with the computed scope
    4. If *apply*, reconcile the tool's configuration file

    A reconciliation failure is captured in ``apply_error`` so the newly
    created key, which cannot be fetched again, is never lost.

    :raises UsageError: Invalid tool id, or ``project_id`` without ``workspace_id``.
    :raises APIError:   If workspace lookup or key creation fails.
    """
    # ── Step 1: Validate ──────────────────────────────────────────────────────
    if not is_valid_tool_id(tool_id):
        raise UsageError(f"invalid tool_id {tool_id!r}. Supported: {', '.join(VALID_TOOL_IDS)}")
    if project_id and not workspace_id:
        raise UsageError("--project requires --workspace")

    # ── Step 2: Resolve workspace ─────────────────────────────────────────────
    if workspace_id:
        workspace = Workspace(id=workspace_id, name="")
    else:
        workspace = get_default_workspace(api_key, base_url)
        logger.info("Using default workspace %s (%s)", workspace.name, workspace.id)

    # ── Step 3: Create CLI key ────────────────────────────────────────────────
    scope = key_scope(workspace_scoped=workspace_scoped, project_id=project_id or "")
    key = create_cli_key(
        api_key, base_url, workspace.id, tool_id,
        label=suggest_label(tool_id), scope=scope, project_id=project_id or "",
    )
    logger.info("CLI key created: prefix=%s scope=%s", key.prefix, scope)
    result = ProvisionResult(workspace=workspace, key=key, scope=scope)

    # ── Step 4: Apply tool configuration ──────────────────────────────────────
    if apply:
        try:
            result.applied = apply_tool_configuration(tool_id, key.key, base_url)
        except ReconcileError as e:
            logger.error("Auto-configuration failed: %s", e)
            result.apply_error = e
    return result
