"""
Exception hierarchy.

Every failure the CLI can surface derives from :class:`A21EError`, itself a
``RuntimeError`` so callers that only catch ``RuntimeError`` keep working.
"Auto-configuration unsupported" is deliberately *not* here: it is returned
as :class:`~a21e.reconcile.dispatch.Unsupported`.
"""

from __future__ import annotations


class A21EError(RuntimeError):
    """Base class for all a21e errors."""


class APIError(A21EError):
    """An a21e API request failed or returned a response that could not be used."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"API {status}: {message}")
        self.status  = status
        self.message = message


# ── Device authorization ──────────────────────────────────────────────────────

class DeviceFlowError(A21EError):
    """The device authorization flow ended without a key."""


class DeviceCodeExpired(DeviceFlowError):
    def __init__(self) -> None:
        super().__init__("device code expired or already used")


class DeviceFlowTimeout(DeviceFlowError):
    def __init__(self) -> None:
        super().__init__("timed out waiting for authorization")


# ── Reconciliation ────────────────────────────────────────────────────────────

class ReconcileError(A21EError):
    """A tool configuration file could not be reconciled."""


class MalformedManagedBlock(ReconcileError):
    """Managed-block markers are unpaired, duplicated, or out of order."""


class InvalidSettingsDocument(ReconcileError):
    """An existing settings file is not a JSON object."""


class UnsupportedPlatform(ReconcileError):
    """The tool supports auto-configuration, but not on this OS."""


class ConfigWriteError(ReconcileError):
    """Reading, backing up, or writing a configuration file failed."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path
