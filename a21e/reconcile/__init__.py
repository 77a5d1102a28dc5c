"""Idempotent, backup-safe reconciliation of tool configuration files."""

from .block    import upsert_managed_block, managed_block_markers  # noqa: F401
from .settings import merge_settings  # noqa: F401
from .writer   import write_file_with_backup  # noqa: F401
from .dispatch import (  # noqa: F401
    Tool, ApplySummary, Unsupported, apply_tool_configuration,
)
