"""In-process listener sinks."""
from __future__ import annotations

import logging
from typing import Callable

from capture_bridge.core.platforms.base_platform import ListenerSink

logger = logging.getLogger(__name__)


class CallbackSink(ListenerSink):
    """Forwards every message to a Python callable."""

    def __init__(self, callback: Callable[[str, str, str], None]) -> None:
        self._callback = callback

    def send_message(self, target: str, method: str, message: str) -> None:
        self._callback(target, method, message)


class LoggingSink(ListenerSink):
    """Writes messages to the log; useful when no host is attached."""

    def send_message(self, target: str, method: str, message: str) -> None:
        logger.info("%s.%s <- %s", target, method, message[:80])
