from __future__ import annotations
import logging
import os
import sys

from PySide6.QtWidgets import QApplication

from abcinvoice.config import build_store, load_settings
from abcinvoice.ui.main_window import MainWindow

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    logging.basicConfig(
        level=os.environ.get("ABCINVOICE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings()
    store = build_store(settings)
    logger.info("Starting with %s", type(store).__name__)

    app = QApplication(list(argv) if argv is not None else sys.argv)
    win = MainWindow(settings, store)
    win.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
