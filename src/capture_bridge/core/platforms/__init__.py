"""Platform collaborator contracts and in-process sinks"""
from capture_bridge.core.platforms.base_platform import (
    ActionCallback,
    ActionLauncher,
    ListenerSink,
    PermissionCallback,
    PermissionGate,
)
from capture_bridge.core.platforms.sinks import CallbackSink, LoggingSink

__all__ = [
    "ActionCallback",
    "ActionLauncher",
    "ListenerSink",
    "PermissionCallback",
    "PermissionGate",
    "CallbackSink",
    "LoggingSink",
]
