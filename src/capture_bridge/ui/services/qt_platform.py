"""Qt implementations of the broker collaborators.

Every callback is queued with ``QTimer.singleShot(0, ...)`` so it runs on the
GUI thread strictly after the launching call has returned.
"""
import logging
from pathlib import Path
from typing import Callable, Optional

from PIL import Image
from PySide6.QtCore import QTimer
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import QFileDialog, QMessageBox, QSystemTrayIcon

from capture_bridge.common.models import ActionOutcome, Permission
from capture_bridge.core.config import Config
from capture_bridge.core.errors import DispatchUnavailableError
from capture_bridge.core.platforms.base_platform import (
    ActionCallback,
    ActionLauncher,
    ListenerSink,
    PermissionCallback,
    PermissionGate,
)
from capture_bridge.ui.windows.capture_overlay import CaptureOverlay

logger = logging.getLogger(__name__)

PERMISSION_LABELS = {
    Permission.CAMERA: "Capture the screen",
    Permission.READ_MEDIA: "Read your pictures",
    Permission.WRITE_MEDIA: "Save pictures",
}


def file_dialog_filter(mime_filter: str) -> str:
    """Build a QFileDialog name filter from a mime filter such as ``image/*``."""
    major, _, minor = mime_filter.partition("/")
    extensions = sorted(
        ext
        for ext, fmt in Image.registered_extensions().items()
        if (Image.MIME.get(fmt) or "").startswith(f"{major}/")
        and (minor in ("", "*") or Image.MIME.get(fmt) == mime_filter)
    )
    if not extensions:
        return "All files (*)"
    patterns = " ".join(f"*{ext}" for ext in extensions)
    return f"Images ({patterns})"


class QtPermissionGate(PermissionGate):
    """Asks for all grants in one dialog and remembers the answer"""

    def __init__(self, config: Config):
        self.config = config

    def check_granted(self, permissions) -> bool:
        return permissions <= self.config.granted_permissions

    def prompt_for(self, permissions, token: str, on_result: PermissionCallback) -> None:
        QTimer.singleShot(0, lambda: self._ask(permissions, token, on_result))

    def _ask(self, permissions, token: str, on_result: PermissionCallback):
        lines = "\n".join(f"- {PERMISSION_LABELS.get(p, p.value)}" for p in sorted(permissions, key=lambda p: p.value))
        answer = QMessageBox.question(
            None,
            "CaptureBridge",
            f"Allow CaptureBridge to:\n{lines}",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        allowed = answer == QMessageBox.StandardButton.Yes
        if allowed:
            self.config.remember_grants(self.config.granted_permissions | permissions)
        on_result(token, {p: allowed for p in permissions})


class QtActionLauncher(ActionLauncher):
    """Region capture overlay as the camera, file dialog as the gallery"""

    def __init__(self):
        self._overlay: Optional[CaptureOverlay] = None

    def launch_capture(self, destination: Path, token: str, on_result: ActionCallback) -> None:
        if QGuiApplication.primaryScreen() is None:
            raise DispatchUnavailableError("No screen available to capture from.")

        def deliver(ok: bool):
            QTimer.singleShot(0, lambda: on_result(ActionOutcome(token=token, ok=ok, payload=str(destination))))
            self._overlay = None

        overlay = CaptureOverlay(destination)
        overlay.captured.connect(lambda _path: deliver(True))
        overlay.cancelled.connect(lambda: deliver(False))
        # A failed grab leaves the destination empty, which the broker reports as a decode error.
        overlay.failed.connect(lambda _msg: deliver(True))
        self._overlay = overlay
        overlay.showFullScreen()

    def launch_picker(self, mime_filter: str, token: str, on_result: ActionCallback) -> None:
        def pick():
            path, _ = QFileDialog.getOpenFileName(
                None, "Pick an image", str(Path.home()), file_dialog_filter(mime_filter)
            )
            on_result(ActionOutcome(token=token, ok=bool(path), payload=path or None))

        QTimer.singleShot(0, pick)


class TraySink(ListenerSink):
    """Shows terminal messages as tray notifications"""

    def __init__(self, tray_icon: QSystemTrayIcon, forward: Optional[Callable[[str, str, str], None]] = None):
        self.tray_icon = tray_icon
        self.forward = forward

    def send_message(self, target: str, method: str, message: str) -> None:
        tag, sep, body = message.partition(":")
        if sep and tag.endswith("_SUCCESS"):
            text = f"Image received ({len(body) * 3 // 4 // 1024} KB)"
        else:
            text = message
        self.tray_icon.showMessage("CaptureBridge", text)
        if self.forward:
            self.forward(target, method, message)
