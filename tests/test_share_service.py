import pytest

from abcinvoice.errors import PdfRenderError, ShareError, UnsupportedCapabilityError
from abcinvoice.services.pdf_service import PdfService
from abcinvoice.services.share_service import NOT_SUPPORTED, SharePayload, ShareService


class FakePdf(PdfService):
    def render(self, inv):
        return b"%PDF-fake"


class BrokenPdf(PdfService):
    def render(self, inv):
        raise PdfRenderError("WeasyPrint failed: bad font")


class RecordingTarget:
    def __init__(self, available=True, error=None):
        self._available = available
        self.error = error
        self.shared = []

    def available(self):
        return self._available

    def share(self, *, title, text, filename, data):
        if self.error:
            raise self.error
        self.shared.append((title, text, filename, data))


def test_share_hands_pdf_to_target(make_invoice):
    target = RecordingTarget()
    ShareService(FakePdf(), target).share(make_invoice("INV-5"))
    assert target.shared == [("Invoice INV-5", "Invoice from Acme Studio", "invoice_INV-5.pdf", b"%PDF-fake")]


def test_prepare_renders_without_touching_target(make_invoice):
    target = RecordingTarget()
    payload = ShareService(FakePdf(), target).prepare(make_invoice("INV-6"))
    assert payload == SharePayload("Invoice INV-6", "Invoice from Acme Studio", "invoice_INV-6.pdf", b"%PDF-fake")
    assert target.shared == []


@pytest.mark.parametrize("target", [None, RecordingTarget(available=False)])
def test_unsupported_share_raises(make_invoice, target):
    svc = ShareService(FakePdf(), target)
    assert not svc.available()
    with pytest.raises(UnsupportedCapabilityError) as exc:
        svc.share(make_invoice())
    assert str(exc.value) == NOT_SUPPORTED


def test_render_failure_surfaces_as_render_error(make_invoice):
    target = RecordingTarget()
    with pytest.raises(PdfRenderError):
        ShareService(BrokenPdf(), target).prepare(make_invoice())
    assert target.shared == []


def test_target_io_failure_becomes_share_error(make_invoice):
    svc = ShareService(FakePdf(), RecordingTarget(error=PermissionError("read-only temp dir")))
    payload = svc.prepare(make_invoice("INV-8"))
    with pytest.raises(ShareError) as exc:
        svc.deliver(payload)
    assert "invoice_INV-8.pdf" in str(exc.value)
