"""Region capture overlay window (the desktop "camera")"""
from pathlib import Path

from PySide6.QtWidgets import QWidget
from PySide6.QtCore import Qt, QRect, Signal
from PySide6.QtGui import QPainter, QColor, QPen
from PIL import ImageGrab


class CaptureOverlay(QWidget):
    """Fullscreen transparent overlay that saves the selected region to a file"""
    captured = Signal(str)
    cancelled = Signal()
    failed = Signal(str)

    def __init__(self, destination: Path):
        super().__init__()
        self.destination = Path(destination)
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint |
            Qt.WindowType.WindowStaysOnTopHint |
            Qt.WindowType.Tool
        )
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        self.setCursor(Qt.CursorShape.CrossCursor)

        self.start_pos = None
        self.current_pos = None
        self._done = False

    def paintEvent(self, event):
        """Draw selection rectangle"""
        painter = QPainter(self)

        # Dim background
        painter.fillRect(self.rect(), QColor(0, 0, 0, 100))

        if self.start_pos and self.current_pos:
            rect = QRect(self.start_pos, self.current_pos).normalized()
            painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_Clear)
            painter.fillRect(rect, Qt.GlobalColor.transparent)

            painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_SourceOver)
            painter.setPen(QPen(QColor(0, 120, 215), 3))
            painter.drawRect(rect)

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.start_pos = event.pos()
        elif event.button() == Qt.MouseButton.RightButton:
            self._cancel()

    def mouseMoveEvent(self, event):
        if self.start_pos:
            self.current_pos = event.pos()
            self.update()

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton and self.start_pos and self.current_pos:
            rect = QRect(self.start_pos, self.current_pos).normalized()
            if rect.width() < 2 or rect.height() < 2:
                return
            self.hide()
            try:
                shot = ImageGrab.grab(bbox=(
                    rect.x(),
                    rect.y(),
                    rect.x() + rect.width(),
                    rect.y() + rect.height()
                ))
                shot.convert("RGB").save(self.destination, format="JPEG", quality=95)
            except OSError as e:
                self._done = True
                self.failed.emit(str(e))
                self.close()
                return
            self._done = True
            self.captured.emit(str(self.destination))
            self.close()

    def keyPressEvent(self, event):
        """ESC to cancel"""
        if event.key() == Qt.Key.Key_Escape:
            self._cancel()

    def closeEvent(self, event):
        # Closing without a selection counts as a cancel.
        if not self._done:
            self._done = True
            self.cancelled.emit()
        super().closeEvent(event)

    def _cancel(self):
        self.close()
