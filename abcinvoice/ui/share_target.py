from __future__ import annotations
import logging
import tempfile
from pathlib import Path

from PySide6.QtCore import QMimeData, QUrl
from PySide6.QtGui import QGuiApplication

logger = logging.getLogger(__name__)


class ClipboardShareTarget:
    """
    Partage "bureau": le PDF est écrit dans un dossier temporaire et placé dans
    le presse-papiers comme fichier, prêt à être collé dans un mail ou un chat.
    """

    def __init__(self, out_dir: Path | None = None):
        self.out_dir = out_dir or Path(tempfile.gettempdir()) / "abcinvoice-share"

    def available(self) -> bool:
        app = QGuiApplication.instance()
        return app is not None and QGuiApplication.platformName() not in ("offscreen", "minimal")

    def share(self, *, title: str, text: str, filename: str, data: bytes) -> None:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.out_dir / filename
        path.write_bytes(data)
        mime = QMimeData()
        mime.setUrls([QUrl.fromLocalFile(str(path))])
        mime.setText(f"{title}\n{text}")
        QGuiApplication.clipboard().setMimeData(mime)
        logger.info("Shared %s via clipboard (%s)", filename, path)
