"""HTTP transport, service API, device authorization, and errors."""

from .errors import (  # noqa: F401
    A21EError, APIError,
    DeviceFlowError, DeviceCodeExpired, DeviceFlowTimeout,
    ReconcileError, MalformedManagedBlock, InvalidSettingsDocument,
    UnsupportedPlatform, ConfigWriteError,
)
