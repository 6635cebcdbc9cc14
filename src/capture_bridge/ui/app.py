"""Desktop tray application hosting a broker with Qt collaborators"""
import logging
import signal
import sys
from typing import Callable, Optional

from capture_bridge.core.app import App
from capture_bridge.core.errors import CaptureBridgeError

from PySide6.QtWidgets import QApplication, QSystemTrayIcon, QMenu
from PySide6.QtCore import QTimer
from PySide6.QtGui import QColor, QIcon, QPixmap

from capture_bridge.common.models import Request
from capture_bridge.ui.services import QtActionLauncher, QtPermissionGate, TraySink

logger = logging.getLogger(__name__)


class CaptureBridgeApp:
    """Main application coordinator"""

    def __init__(self, core_app: Optional[App] = None):
        self.app = QApplication.instance() or QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)  # Keep running when overlays close

        self.core_app = core_app or App()
        self.setup_system_tray()
        self.broker = self.core_app.create_broker(
            QtPermissionGate(self.core_app.config),
            QtActionLauncher(),
            TraySink(self.tray_icon, forward=self.on_listener_message),
        )

    def setup_system_tray(self):
        """Create system tray icon"""
        pixmap = QPixmap(64, 64)
        pixmap.fill(QColor(0, 120, 215))
        icon = QIcon(pixmap)

        self.tray_icon = QSystemTrayIcon(icon, self.app)
        self.tray_icon.setToolTip("CaptureBridge")

        tray_menu = QMenu()

        capture_action = tray_menu.addAction("Take Picture")
        capture_action.triggered.connect(self.take_picture)

        pick_action = tray_menu.addAction("Pick From Gallery")
        pick_action.triggered.connect(self.pick_image)

        tray_menu.addSeparator()

        quit_action = tray_menu.addAction("Quit")
        quit_action.triggered.connect(self.app.quit)

        self.tray_menu = tray_menu
        self.tray_icon.setContextMenu(tray_menu)
        self.tray_icon.show()

    def take_picture(self):
        self._start(self.broker.request_capture)

    def pick_image(self):
        self._start(self.broker.request_pick)

    def _start(self, start: Callable[[], Request]):
        try:
            request = start()
        except CaptureBridgeError as e:
            logger.warning("Request rejected: %s", e)
            self.tray_icon.showMessage("CaptureBridge", str(e))
            return
        logger.info("Started %s request %s", request.capability.value, request.token)

    def on_listener_message(self, target: str, method: str, message: str):
        """Hook for embedding hosts; the default only logs."""
        logger.debug("%s.%s received %d chars", target, method, len(message))

    def run(self):
        """Start application loop"""
        logger.info("CaptureBridge is running in the system tray. Press Ctrl+C to exit.")
        return self.app.exec()


def main():
    """Main entry point for GUI application"""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    def signal_handler(sig, frame):
        logger.info("Shutting down CaptureBridge...")
        QApplication.quit()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)

    app = CaptureBridgeApp()

    # Allow Ctrl+C to work by processing events periodically
    timer = QTimer()
    timer.timeout.connect(lambda: None)
    timer.start(100)

    sys.exit(app.run())


if __name__ == "__main__":
    main()
