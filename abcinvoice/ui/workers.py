from __future__ import annotations
import logging
from typing import Any, Callable

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal

from abcinvoice.errors import FormValidationError, PdfRenderError, RemoteStoreError, ShareError, UnsupportedCapabilityError

logger = logging.getLogger(__name__)


class WorkerSignals(QObject):
    succeeded = Signal(object)
    failed = Signal(object)


class RemoteCall(QRunnable):
    """Exécute un appel au stockage hors du thread UI; le résultat revient par signal."""

    def __init__(self, fn: Callable[[], Any]):
        super().__init__()
        self.fn = fn
        self.signals = WorkerSignals()

    def run(self) -> None:
        try:
            result = self.fn()
        except (RemoteStoreError, FormValidationError, PdfRenderError, ShareError, UnsupportedCapabilityError) as e:
            logger.warning("Remote call failed: %s", e)
            self.signals.failed.emit(e)
        except Exception as e:  # frontière de thread: tout échec devient une notification
            logger.exception("Unexpected error in remote call")
            self.signals.failed.emit(e)
        else:
            self.signals.succeeded.emit(result)


def run_remote(
    fn: Callable[[], Any],
    on_success: Callable[[Any], None],
    on_failure: Callable[[Exception], None],
    pool: QThreadPool | None = None,
) -> RemoteCall:
    call = RemoteCall(fn)
    call.signals.succeeded.connect(on_success)
    call.signals.failed.connect(on_failure)
    (pool or QThreadPool.globalInstance()).start(call)
    return call
