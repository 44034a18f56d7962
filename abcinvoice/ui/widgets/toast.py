from __future__ import annotations
from PySide6.QtCore import Qt
from PySide6.QtWidgets import QLabel

STYLES = {
    "success": "background:#16a34a; color:white; padding:10px 16px; border-radius:8px;",
    "error": "background:#dc2626; color:white; padding:10px 16px; border-radius:8px;",
}


class Toast(QLabel):
    """Notification flottante en haut à droite de la fenêtre."""

    def __init__(self, parent):
        super().__init__(parent)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setWordWrap(True)
        self.setMaximumWidth(360)
        self.hide()

    def show_message(self, message: str, kind: str = "success"):
        self.setText(("✓ " if kind == "success" else "⚠ ") + message)
        self.setStyleSheet(STYLES.get(kind, STYLES["success"]))
        self.adjustSize()
        self.reposition()
        self.raise_()
        self.show()

    def reposition(self):
        parent = self.parentWidget()
        if parent is not None:
            self.move(parent.width() - self.width() - 16, 16)
