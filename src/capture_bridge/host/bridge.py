"""Collaborators that hand prompts and actions to a remote device client.

The host owns the broker; a device client polls ``/v1/pending`` for work,
performs it, and posts the results back. Listener messages are queued until
the scripting side drains them.
"""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Optional

from capture_bridge.common.models import (
    ActionOutcome,
    Capability,
    PendingAction,
    PendingPrompt,
    Permission,
)
from capture_bridge.core.config import Config
from capture_bridge.core.platforms.base_platform import (
    ActionCallback,
    ActionLauncher,
    ListenerSink,
    PermissionCallback,
    PermissionGate,
)
from capture_bridge.core.storage import as_share_handle

logger = logging.getLogger(__name__)


class RemotePermissionGate(PermissionGate):
    """Grants are remembered in the config once the device reports them."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._pending: dict[str, tuple[PendingPrompt, PermissionCallback]] = {}

    def check_granted(self, permissions: frozenset[Permission]) -> bool:
        return permissions <= self._config.granted_permissions

    def prompt_for(self, permissions: frozenset[Permission], token: str, on_result: PermissionCallback) -> None:
        prompt = PendingPrompt(token=token, permissions=sorted(permissions, key=lambda p: p.value))
        self._pending[token] = (prompt, on_result)
        logger.debug("Queued permission prompt %s", token)

    def pending(self) -> list[PendingPrompt]:
        return [prompt for prompt, _ in self._pending.values()]

    def resolve(self, token: str, grants: dict[Permission, bool]) -> bool:
        """Deliver a device answer; False when no such prompt is waiting."""
        entry = self._pending.pop(token, None)
        if entry is None:
            return False
        granted = {p for p, ok in grants.items() if ok}
        revoked = {p for p, ok in grants.items() if not ok}
        self._config.remember_grants((self._config.granted_permissions - revoked) | granted)
        _, on_result = entry
        on_result(token, grants)
        return True


class RemoteActionLauncher(ActionLauncher):
    def __init__(self) -> None:
        self._pending: dict[str, tuple[PendingAction, ActionCallback]] = {}

    def launch_capture(self, destination: Path, token: str, on_result: ActionCallback) -> None:
        action = PendingAction(token=token, capability=Capability.CAPTURE, destination=as_share_handle(destination))
        self._pending[token] = (action, on_result)
        logger.debug("Queued capture %s -> %s", token, action.destination)

    def launch_picker(self, mime_filter: str, token: str, on_result: ActionCallback) -> None:
        action = PendingAction(token=token, capability=Capability.PICK, mime_filter=mime_filter)
        self._pending[token] = (action, on_result)
        logger.debug("Queued pick %s (%s)", token, mime_filter)

    def pending(self) -> list[PendingAction]:
        return [action for action, _ in self._pending.values()]

    def resolve(self, outcome: ActionOutcome) -> bool:
        entry = self._pending.pop(outcome.token, None)
        if entry is None:
            return False
        _, on_result = entry
        on_result(outcome)
        return True


class QueueSink(ListenerSink):
    """Buffers messages for the scripting side to poll."""

    def __init__(self, maxlen: Optional[int] = 256) -> None:
        self._messages: deque[dict] = deque(maxlen=maxlen)

    def send_message(self, target: str, method: str, message: str) -> None:
        self._messages.append({"target": target, "method": method, "message": message})

    def drain(self) -> list[dict]:
        drained = list(self._messages)
        self._messages.clear()
        return drained


class RemoteBridge:
    """The three remote collaborators, built around one config."""

    def __init__(self, config: Config) -> None:
        self.permissions = RemotePermissionGate(config)
        self.launcher = RemoteActionLauncher()
        self.sink = QueueSink()
