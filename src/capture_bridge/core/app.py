"""Main application coordinator (pure Python, no Qt)"""
import logging
from pathlib import Path
from typing import Optional

from capture_bridge.core.broker import CapabilityBroker
from capture_bridge.core.config import Config
from capture_bridge.core.platforms.base_platform import ActionLauncher, ListenerSink, PermissionGate

logger = logging.getLogger(__name__)


class App:
    """Builds a configured broker around a set of platform collaborators"""

    def __init__(self, config: Optional[Config] = None, config_dir: Optional[Path] = None):
        """Initialize application"""
        self.config = config or Config(config_dir=config_dir)
        self.broker: Optional[CapabilityBroker] = None

    def create_broker(
        self,
        permissions: PermissionGate,
        launcher: ActionLauncher,
        sink: ListenerSink,
        initialize: bool = True,
    ) -> CapabilityBroker:
        """
        Create the broker and optionally register the configured listener

        Args:
            permissions: Permission gate for this platform
            launcher: Action launcher for this platform
            sink: Where terminal messages are delivered
            initialize: Register listener_target/listener_method from config
        """
        self.broker = CapabilityBroker.from_config(self.config, permissions, launcher, sink)
        if initialize:
            self.broker.initialize(self.config["listener_target"], self.config["listener_method"])
        logger.info("* Broker ready (pictures in %s)", self.config.picture_dir)
        return self.broker

    def get_broker(self) -> CapabilityBroker:
        """Get the current broker"""
        if self.broker is None:
            raise RuntimeError("No broker has been created.")
        return self.broker
