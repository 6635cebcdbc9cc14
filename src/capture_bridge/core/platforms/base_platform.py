"""Abstract base classes for the broker's platform collaborators"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, FrozenSet

from capture_bridge.common.models import ActionOutcome, Permission

PermissionCallback = Callable[[str, Dict[Permission, bool]], None]
ActionCallback = Callable[[ActionOutcome], None]


class PermissionGate(ABC):
    """Checks and requests OS-level grants"""

    @abstractmethod
    def check_granted(self, permissions: FrozenSet[Permission]) -> bool:
        """Return True only if every permission in the set is granted"""
        pass

    @abstractmethod
    def prompt_for(self, permissions: FrozenSet[Permission], token: str, on_result: PermissionCallback) -> None:
        """
        Ask the user for the whole set at once

        Must return immediately and later call ``on_result(token, grants)``
        exactly once.
        """
        pass


class ActionLauncher(ABC):
    """Launches device actions whose results arrive asynchronously"""

    @abstractmethod
    def launch_capture(self, destination: Path, token: str, on_result: ActionCallback) -> None:
        """
        Start a camera capture writing into `destination`

        Raises:
            DispatchUnavailableError: no capture handler exists
        """
        pass

    @abstractmethod
    def launch_picker(self, mime_filter: str, token: str, on_result: ActionCallback) -> None:
        """
        Start a gallery pick filtered by `mime_filter`

        The outcome payload is the picked file path or URI.
        """
        pass


class ListenerSink(ABC):
    """Delivers terminal messages to the host scripting layer"""

    @abstractmethod
    def send_message(self, target: str, method: str, message: str) -> None:
        """Deliver one message to `method` on `target`"""
        pass
