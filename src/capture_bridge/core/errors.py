"""Exceptions raised by the broker and its collaborators"""
from typing import Optional

from capture_bridge.common.models import Request


class CaptureBridgeError(Exception):
    """Base class for capture_bridge errors"""


class BrokerNotInitializedError(CaptureBridgeError):
    """A request was made before a listener was registered"""

    def __init__(self):
        super().__init__("Broker not initialized; call initialize(target, method) first.")


class BrokerBusyError(CaptureBridgeError):
    """A request was made while another one is still in flight"""

    def __init__(self, active: Optional[Request]):
        self.active = active
        token = active.token if active else "?"
        super().__init__(f"Another request is already active (token={token}).")


class DispatchUnavailableError(CaptureBridgeError):
    """No handler exists for the requested device action"""


class ImageDecodeError(CaptureBridgeError):
    """The delivered payload could not be decoded into an image"""
