"""
``a21e`` command line: ``a21e version`` and ``a21e init``.

Keys and instructions are printed for the user; diagnostics go through
``logging`` (``--verbose`` or ``A21E_LOG_LEVEL``).
"""

from __future__ import annotations

import argparse
import logging
import sys

from . import __version__
from .config import DEFAULT_MODEL, get_api_base_url, get_api_key, get_log_level, openai_base_url
from .core.api import VALID_TOOL_IDS, get_default_workspace
from .core.detect import detect_tool_from_environment
from .core.errors import A21EError
from .provisioning import ProvisionResult, login, provision
from .reconcile.dispatch import ApplySummary, Unsupported


_SUPPORTED = ", ".join(VALID_TOOL_IDS)

_EPILOG = f"""\
Environment:
  A21E_API_KEY   Your API key (get one at https://a21e.com/api-key)
  A21E_API_URL   API base URL (default https://api.a21e.com)
  A21E_TOOL_ID   Override auto-detected tool (e.g. cursor, vscode, jetbrains)

Supported tool_id: {_SUPPORTED}
"""


def _err(msg: str = "") -> None:
    print(msg, file=sys.stderr)


def _fail(msg: str) -> int:
    _err(f"a21e init: {msg}")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="a21e",
        description="a21e: Agent Performance Layer CLI",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--version", action="version", version=f"a21e {__version__}")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("version", help="Show version")

    init = sub.add_parser(
        "init",
        help="Interactive setup (or use --tool and --workspace)",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    init.add_argument("--tool", default="", help="Tool ID to configure (e.g. claude_code_cli)")
    init.add_argument("--workspace", default="", help="Workspace ID (omit to use default)")
    init.add_argument("--workspace-scoped", action="store_true", help="Bind key to this workspace only")
    init.add_argument("--project", default="", help="Bind key to this project (must be in the given workspace)")
    init.add_argument("--apply", action="store_true", help="Auto-apply configuration where supported")
    init.add_argument("--non-interactive", action="store_true", help="CI/non-interactive mode")
    init.add_argument("--yes", action="store_true", help="Skip confirmations")
    init.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


# ── init ──────────────────────────────────────────────────────────────────────

def _run_login(base_url: str) -> int:
    _err("No API key found. Authorize this device in your browser to get a key.")
    try:
        result = login(base_url)
    except A21EError as e:
        return _fail(str(e))

    if result.credentials_path is None:
        _err(f"a21e init: could not save key to file: {result.save_error}")
        _err("Save the key below and set A21E_API_KEY in your environment.")
    _err()
    if result.credentials_path is not None:
        _err(f"You're all set. Your key has been saved to {result.credentials_path}.")
    _err("To use it in this shell or add to your profile:")
    _err(f"  export A21E_API_KEY={result.api_key}")
    _err()
    _err("To create a tool-specific key (e.g. for Cursor), run: a21e init --tool cursor")
    return 0


def _print_key(result: ProvisionResult, base_url: str) -> None:
    key = result.key.key
    _err()
    _err("Save this key now. You will not be able to view it again.")
    _err()
    print(key)
    _err()
    _err("Add to your environment (e.g. in ~/.zshrc or ~/.bashrc):")
    _err(f"  export A21E_API_KEY={key}")
    _err()
    _err("Tool configuration values:")
    _err(f"  Base URL: {openai_base_url(base_url)}")
    _err(f"  API key:  {key}")
    _err(f"  Model:    {DEFAULT_MODEL}")
    _err()


def _print_apply(result: ProvisionResult) -> None:
    if result.apply_error is not None:
        _err(f"Auto-configuration failed: {result.apply_error}")
        _err("Configure your tool manually with the values above.")
    elif isinstance(result.applied, ApplySummary):
        summary = result.applied
        _err("Auto-configuration applied:")
        _err(f"  {summary.details}")
        _err(f"  Updated: {summary.updated_path}")
        if summary.backup_path:
            _err(f"  Backup:  {summary.backup_path}")
    elif isinstance(result.applied, Unsupported):
        _err("Auto-configuration is not supported for this tool yet.")
        _err("Configure your tool manually with the values above.")
    _err()


def _is_terminal() -> bool:
    try:
        return sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False


def run_init(args: argparse.Namespace) -> int:
    api_key  = get_api_key()
    base_url = get_api_base_url()

    # ── No API key: device login ──────────────────────────────────────────────
    if not api_key:
        if args.non_interactive:
            return _fail(
                "A21E_API_KEY is required in non-interactive mode "
                "(or run without --non-interactive to use device login)"
            )
        return _run_login(base_url)

    # ── Resolve workspace ─────────────────────────────────────────────────────
    tool = args.tool
    if args.workspace:
        workspace_id = args.workspace
    else:
        try:
            ws = get_default_workspace(api_key, base_url)
        except A21EError as e:
            return _fail(str(e))
        workspace_id = ws.id
        if not args.non_interactive and not tool:
            print(f"Using workspace: {ws.name} ({workspace_id})")

    # ── Tool: flag, then environment, else instructions ───────────────────────
    if not tool:
        tool = detect_tool_from_environment()
        if tool and not args.non_interactive:
            _err(f"Detected tool: {tool}")
    if not tool:
        if args.non_interactive:
            return _fail("--tool is required in non-interactive mode (or set A21E_TOOL_ID)")
        print("To create a CLI key for a tool, run:")
        print(f"  a21e init --tool <tool_id> [--workspace {workspace_id}]")
        print(f"Supported tool_id: {_SUPPORTED}")
        print("Or run 'a21e init' from inside Cursor, VS Code, or JetBrains terminal to auto-detect.")
        print("Or complete setup in the dashboard: https://a21e.com")
        return 0

    if args.project and not args.workspace:
        return _fail("--project requires --workspace")

    try:
        result = provision(
            api_key=api_key,
            base_url=base_url,
            tool_id=tool,
            workspace_id=workspace_id,
            workspace_scoped=args.workspace_scoped,
            project_id=args.project or None,
            apply=args.apply,
        )
    except A21EError as e:
        return _fail(str(e))

    _print_key(result, base_url)
    if args.apply:
        _print_apply(result)

    if not args.non_interactive and _is_terminal():
        sys.stderr.write("Press Enter to continue... ")
        sys.stderr.flush()
        sys.stdin.readline()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_log_level(getattr(args, "verbose", False)),
        format="%(levelname)s:%(name)s:%(message)s",
    )

    if args.command == "version":
        print(f"a21e {__version__}")
        return 0
    if args.command == "init":
        return run_init(args)
    parser.print_help(sys.stderr)
    return 0
