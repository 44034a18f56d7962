from __future__ import annotations
import logging
from typing import NamedTuple, Optional, Protocol

from abcinvoice.errors import ShareError, UnsupportedCapabilityError
from abcinvoice.models.invoice import Invoice
from abcinvoice.services.pdf_service import PdfService

logger = logging.getLogger(__name__)

NOT_SUPPORTED = "Sharing not supported. Downloading instead."


class ShareTarget(Protocol):
    def available(self) -> bool: ...

    def share(self, *, title: str, text: str, filename: str, data: bytes) -> None: ...


class SharePayload(NamedTuple):
    title: str
    text: str
    filename: str
    data: bytes


class ShareService:
    """
    Partage en deux temps: `prepare` génère le PDF (long, hors thread UI),
    `deliver` le remet à la cible (presse-papiers: thread UI uniquement).
    """

    def __init__(self, pdf: PdfService, target: Optional[ShareTarget] = None):
        self.pdf = pdf
        self.target = target

    def available(self) -> bool:
        return self.target is not None and self.target.available()

    def prepare(self, inv: Invoice) -> SharePayload:
        if not self.available():
            raise UnsupportedCapabilityError(NOT_SUPPORTED)
        return SharePayload(
            title=f"Invoice {inv.invoice_number}",
            text=f"Invoice from {inv.company.name}",
            filename=inv.pdf_filename,
            data=self.pdf.render(inv),
        )

    def deliver(self, payload: SharePayload) -> None:
        if not self.available():
            raise UnsupportedCapabilityError(NOT_SUPPORTED)
        try:
            self.target.share(**payload._asdict())  # type: ignore[union-attr]
        except OSError as e:
            raise ShareError(f"Could not share {payload.filename}: {e}") from e
        logger.info("%s handed to share target", payload.filename)

    def share(self, inv: Invoice) -> None:
        self.deliver(self.prepare(inv))
