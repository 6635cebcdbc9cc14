"""Broker core (pure Python, no Qt)"""
from capture_bridge.core.broker import CapabilityBroker
from capture_bridge.core.config import Config
from capture_bridge.core.errors import (
    BrokerBusyError,
    BrokerNotInitializedError,
    CaptureBridgeError,
    DispatchUnavailableError,
    ImageDecodeError,
)
from capture_bridge.core.storage import MediaStorage

__all__ = [
    "CapabilityBroker",
    "Config",
    "MediaStorage",
    "CaptureBridgeError",
    "BrokerBusyError",
    "BrokerNotInitializedError",
    "DispatchUnavailableError",
    "ImageDecodeError",
]
