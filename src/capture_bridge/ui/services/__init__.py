"""UI services: Qt collaborators for the broker."""

from capture_bridge.ui.services.qt_platform import (
    QtActionLauncher,
    QtPermissionGate,
    TraySink,
    file_dialog_filter,
)

__all__ = [
    "QtActionLauncher",
    "QtPermissionGate",
    "TraySink",
    "file_dialog_filter",
]
