"""
Write a configuration file, keeping a timestamped backup of what it replaces.

The backup is written (and closed) before the target is touched.  The pair is
not transactional: a crash in between leaves the backup plus the untouched
previous file, and re-running reconciliation is always safe.
"""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime, timezone

from ..core.errors import ConfigWriteError

logger = logging.getLogger("a21e")

BACKUP_TIME_FORMAT = "%Y%m%dT%H%M%SZ"


def backup_path_for(path: str, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{path}.bak-{now.strftime(BACKUP_TIME_FORMAT)}"


def read_existing(path: str) -> bytes:
    """Current content of *path*, or ``b""`` if it does not exist."""
    try:
        with open(path, "rb") as f:
            return f.read()
    except FileNotFoundError:
        return b""
    except OSError as e:
        raise ConfigWriteError(f"could not read {path}: {e}", path) from e


def _write_backup(path: str, data: bytes) -> str:
    base   = backup_path_for(path)
    target = base
    n      = 0
    while True:
        try:
            fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            break
        except FileExistsError:
            n += 1
            target = f"{base}-{n}"
    with os.fdopen(fd, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    return target


def _write_atomic(path: str, data: bytes, mode: int) -> None:
    directory = os.path.dirname(path) or "."
    fd, tmp_path = tempfile.mkstemp(prefix=f".{os.path.basename(path)}.", dir=directory)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


def write_file_with_backup(
    path:      str,
    old_bytes: bytes,
    new_bytes: bytes,
    mode:      int = 0o600,
) -> str:
    """
    Replace *path* with *new_bytes*, backing up *old_bytes* first.

    A symlinked *path* is written through: the link stays and its target
    receives the new content.  The backup sits next to *path*.

    :returns: The backup path, or ``""`` when *old_bytes* was empty.
    :raises ConfigWriteError: If the directory, backup, or target cannot be
        written.  A failed backup leaves *path* untouched.
    """
    parent = os.path.dirname(path)
    if parent:
        try:
            os.makedirs(parent, mode=0o755, exist_ok=True)
        except OSError as e:
            raise ConfigWriteError(f"could not create directory for {path}: {e}", path) from e

    backup = ""
    if old_bytes:
        try:
            backup = _write_backup(path, old_bytes)
        except OSError as e:
            raise ConfigWriteError(f"could not create backup of {path}: {e}", path) from e
        logger.info("Backed up %s to %s", path, backup)

    target = os.path.realpath(path)
    try:
        os.makedirs(os.path.dirname(target), mode=0o755, exist_ok=True)
        _write_atomic(target, new_bytes, mode)
    except OSError as e:
        raise ConfigWriteError(f"could not write {path}: {e}", path) from e
    logger.info("Wrote %s (%d bytes)", path, len(new_bytes))
    return backup
