from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from PySide6.QtCore import Qt, QTimer, Signal
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QTabWidget, QVBoxLayout, QHBoxLayout, QComboBox,
    QLabel, QPushButton, QFileDialog, QMessageBox, QTableWidget, QLineEdit,
    QTableWidgetItem, QHeaderView, QGroupBox, QTextBrowser, QSplitter,
)

from abcinvoice.config import Settings
from abcinvoice.errors import FormValidationError, ShareError, UnsupportedCapabilityError
from abcinvoice.models.invoice import STATUSES, Invoice, format_money
from abcinvoice.services.directory_service import client_directory, company_directory
from abcinvoice.services.pdf_service import PdfService, render_html
from abcinvoice.services.share_service import NOT_SUPPORTED, SharePayload, ShareService, ShareTarget
from abcinvoice.state import directory as dr
from abcinvoice.state import editor as ed
from abcinvoice.state import ledger as lg
from abcinvoice.state.app import (
    AppState, DirectoryLoadFailed, DismissNotification, EditInvoice, Notify, RemoveInvoice,
    SaveCurrentInvoice, SetTab, SubmitDraft, ViewInvoice, current_invoice, initial_state,
)
from abcinvoice.state.store import Store
from abcinvoice.storage.remote import CLIENTS, COMPANIES, RemoteStore
from abcinvoice.ui.share_target import ClipboardShareTarget
from abcinvoice.ui.widgets.invoice_editor import InvoiceEditor
from abcinvoice.ui.widgets.party_form import PartyForm
from abcinvoice.ui.widgets.toast import Toast
from abcinvoice.ui.workers import RemoteCall, run_remote

logger = logging.getLogger(__name__)

TABS = ("details", "preview", "history")
TITLES = {COMPANIES: "Company", CLIENTS: "Client"}
# actions qui remplacent le brouillon entier: les widgets sont rechargés
RELOADING = (SubmitDraft, EditInvoice, ed.ResetDraft, ed.LoadInvoice)


class MainWindow(QMainWindow):
    # (appel terminé, action) rapatrié sur le thread UI
    delivered = Signal(object)

    def __init__(self, settings: Settings, remote: RemoteStore, share_target: Optional[ShareTarget] = None):
        super().__init__()
        self.setWindowTitle("ABC Invoice")
        self.resize(1280, 800)
        self.settings = settings

        self.services = {COMPANIES: company_directory(remote), CLIENTS: client_directory(remote)}
        self.pdf = PdfService(settings.wkhtmltopdf_path, settings.pdf_engine)
        self.share = ShareService(self.pdf, share_target or ClipboardShareTarget())

        self.store = Store(initial_state(page_size=settings.page_size))
        self._pending: Dict[object, RemoteCall] = {}
        self._forms: Dict[str, PartyForm] = {}
        self._party_widgets: Dict[str, Dict[str, Any]] = {}
        self.delivered.connect(self._on_delivered)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self._sidebar())
        self.tabs = QTabWidget()
        self.editor = InvoiceEditor(self.store.dispatch)
        self.tabs.addTab(self.editor, "Details")
        self.tabs.addTab(self._preview_tab(), "Preview")
        self.tabs.addTab(self._history_tab(), "History")
        self.tabs.currentChanged.connect(self._tab_changed)
        splitter.addWidget(self.tabs)
        splitter.setStretchFactor(1, 1)
        self.setCentralWidget(splitter)

        self.toast = Toast(self)

        self.store.subscribe(self._render)
        self.editor.load(self.store.state.editor.draft)
        self._render(self.store.state, None, None)
        self._load_directories()

    # ==================== APPELS DISTANTS ====================
    def _call(self, fn: Callable[[], Any], ok: Callable[[Any], Any], ko: Callable[[Exception], Any]):
        token = object()
        self._pending[token] = run_remote(
            fn,
            lambda result: self.delivered.emit((token, ok(result))),
            lambda exc: self.delivered.emit((token, ko(exc))),
        )
        return token

    def _on_delivered(self, payload):
        token, action = payload
        self._pending.pop(token, None)
        if callable(action):
            # dernière étape à exécuter sur le thread UI; elle rend l'action finale
            action = action()
        self.store.dispatch(action)

    def _load_directories(self):
        for kind, svc in self.services.items():
            self._call(
                svc.list,
                lambda recs, k=kind: dr.RecordsLoaded(kind=k, records=tuple(recs)),
                lambda exc, k=kind: DirectoryLoadFailed(kind=k),
            )

    # ==================== ANNUAIRES ====================
    def _sidebar(self):
        w = QWidget()
        root = QVBoxLayout(w)
        root.addWidget(self._party_box(COMPANIES))
        root.addWidget(self._party_box(CLIENTS))
        root.addStretch(1)
        w.setMinimumWidth(300)
        return w

    def _party_box(self, kind: str):
        title = TITLES[kind]
        grp = QGroupBox(f"{title} Details")
        lay = QVBoxLayout(grp)
        combo = QComboBox()
        combo.setPlaceholderText(f"Select {title.lower()}")
        details = QLabel()
        details.setWordWrap(True)
        details.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        bar = QHBoxLayout()
        btn_new = QPushButton("New")
        btn_edit = QPushButton("Edit")
        btn_del = QPushButton("Delete")
        for b in (btn_new, btn_edit, btn_del):
            bar.addWidget(b)
        lay.addWidget(combo)
        lay.addWidget(details)
        lay.addLayout(bar)

        combo.activated.connect(lambda i, k=kind: self._select_party(k, i))
        btn_new.clicked.connect(lambda: self._open_form(kind, editing=False))
        btn_edit.clicked.connect(lambda: self._open_form(kind, editing=True))
        btn_del.clicked.connect(lambda: self._delete_party(kind))

        self._party_widgets[kind] = {"combo": combo, "details": details, "edit": btn_edit, "delete": btn_del}
        return grp

    def _select_party(self, kind: str, index: int):
        combo = self._party_widgets[kind]["combo"]
        self.store.dispatch(dr.SelectRecord(kind=kind, record_id=combo.itemData(index)))

    def _open_form(self, kind: str, editing: bool):
        if kind in self._forms:
            return
        rec = self.store.state.directory(kind).selected if editing else None
        if editing and rec is None:
            QMessageBox.information(self, TITLES[kind], f"Select a {TITLES[kind].lower()} first.")
            return
        self.store.dispatch(dr.OpenForm(kind=kind, editing_id=rec.id if rec else None))
        dlg = PartyForm(self, kind=kind, record=rec)
        dlg.submitted.connect(lambda fields, k=kind: self._save_party(k, fields))
        dlg.finished.connect(lambda _r, k=kind: self._form_finished(k))
        self._forms[kind] = dlg
        dlg.open()

    def _form_finished(self, kind: str):
        self._forms.pop(kind, None)
        if self.store.state.directory(kind).form.open:
            self.store.dispatch(dr.CloseForm(kind=kind))

    def _save_party(self, kind: str, fields: Dict[str, Any]):
        state = self.store.state.directory(kind)
        if not state.can_submit():
            return
        svc = self.services[kind]
        try:
            svc.validate(fields)
        except FormValidationError as e:
            QMessageBox.warning(self._forms.get(kind) or self, "Validation", "\n".join(err.message for err in e.errors))
            return
        ticket = state.form.ticket
        editing_id = state.form.editing_id
        self.store.dispatch(dr.SaveStarted(kind=kind))
        if editing_id:
            fn = lambda: svc.update(editing_id, fields)  # noqa: E731
        else:
            fn = lambda: svc.create(fields)  # noqa: E731
        self._call(
            fn,
            lambda rec: dr.SaveSucceeded(kind=kind, ticket=ticket, record=rec),
            lambda exc: dr.SaveFailed(kind=kind, ticket=ticket, message=str(exc)),
        )

    def _delete_party(self, kind: str):
        state = self.store.state.directory(kind)
        rec = state.selected
        if rec is None or state.pending_delete is not None:
            return
        if QMessageBox.question(self, "Delete", f"Delete {rec.name}?") != QMessageBox.Yes:
            return
        self.store.dispatch(dr.DeleteStarted(kind=kind, record_id=rec.id))
        svc = self.services[kind]
        rid = rec.id
        self._call(
            lambda: svc.delete(rid),
            lambda _found: dr.DeleteFinished(kind=kind, record_id=rid),
            lambda exc: dr.DeleteFailed(kind=kind, record_id=rid),
        )

    def _refresh_party(self, kind: str, state: dr.DirectoryState):
        w = self._party_widgets[kind]
        combo: QComboBox = w["combo"]
        combo.blockSignals(True)
        combo.clear()
        for r in state.records:
            combo.addItem(r.name, r.id)
        combo.setCurrentIndex(combo.findData(state.selected_id) if state.selected_id else -1)
        combo.blockSignals(False)

        rec = state.selected
        if rec is None:
            w["details"].setText("")
        else:
            lines = [rec.name, rec.email or "", rec.phone or "", rec.address or ""]
            vat = getattr(rec, "vat", None)
            if vat:
                lines.append(f"VAT: {vat}")
            w["details"].setText("\n".join(l for l in lines if l))
        w["edit"].setEnabled(rec is not None)
        w["delete"].setEnabled(rec is not None and state.pending_delete is None)

        dlg = self._forms.get(kind)
        if dlg is not None:
            if state.form.open:
                dlg.set_busy(state.form.in_flight)
            else:
                self._forms.pop(kind, None)
                dlg.set_busy(False)
                dlg.accept()

    # ==================== APERÇU ====================
    def _preview_tab(self):
        w = QWidget()
        root = QVBoxLayout(w)
        bar = QHBoxLayout()
        self.btn_save_invoice = QPushButton("Save Invoice")
        self.btn_download = QPushButton("Download PDF")
        self.btn_share = QPushButton("Share")
        bar.addStretch(1)
        for b in (self.btn_save_invoice, self.btn_download, self.btn_share):
            bar.addWidget(b)
        root.addLayout(bar)
        self.preview = QTextBrowser()
        root.addWidget(self.preview, 1)

        self.btn_save_invoice.clicked.connect(lambda: self.store.dispatch(SaveCurrentInvoice()))
        self.btn_download.clicked.connect(lambda: self._download())
        self.btn_share.clicked.connect(self._share)
        return w

    def _refresh_preview(self, state: AppState):
        inv = current_invoice(state)
        for b in (self.btn_save_invoice, self.btn_download, self.btn_share):
            b.setEnabled(inv is not None)
        if inv is None:
            self.preview.setHtml("<p style='color:#6b7280'>No invoice yet. Fill in the details and create one.</p>")
        else:
            self.preview.setHtml(render_html(inv))

    def _download(self, inv: Optional[Invoice] = None):
        inv = inv or current_invoice(self.store.state)
        if inv is None:
            return
        path, _ = QFileDialog.getSaveFileName(self, "Download PDF", str(Path.home() / inv.pdf_filename), "PDF (*.pdf)")
        if not path:
            return
        # rendu hors du thread UI, comme les appels au stockage
        self._call(
            lambda: self.pdf.export(inv, path),
            lambda out: Notify(message=f"PDF saved to {out.name}."),
            lambda exc: Notify(message=str(exc) or "Failed to export PDF.", kind="error"),
        )

    def _share(self):
        inv = current_invoice(self.store.state)
        if inv is None:
            return
        if not self.share.available():
            self.store.dispatch(Notify(message=NOT_SUPPORTED, kind="error"))
            self._download(inv)
            return
        self._call(
            lambda: self.share.prepare(inv),
            lambda payload: (lambda: self._deliver_share(payload)),
            lambda exc: Notify(message=str(exc) or "Failed to share invoice.", kind="error"),
        )

    def _deliver_share(self, payload: SharePayload):
        try:
            self.share.deliver(payload)
        except (ShareError, UnsupportedCapabilityError) as e:
            return Notify(message=str(e), kind="error")
        except Exception:
            logger.exception("Unexpected error while sharing %s", payload.filename)
            return Notify(message="Failed to share invoice.", kind="error")
        return Notify(message="Invoice copied to the clipboard, ready to share.")

    # ==================== HISTORIQUE ====================
    def _history_tab(self):
        w = QWidget()
        root = QVBoxLayout(w)
        self.ed_search = QLineEdit()
        self.ed_search.setPlaceholderText("Search by invoice number or client name")
        self.ed_search.textChanged.connect(lambda t: self.store.dispatch(lg.SetSearch(term=t)))
        root.addWidget(self.ed_search)

        self.tbl_invoices = QTableWidget(0, 6)
        self.tbl_invoices.setHorizontalHeaderLabels(["Invoice #", "Client", "Date", "Total", "Status", "ID"])
        self.tbl_invoices.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.tbl_invoices.setSelectionBehavior(self.tbl_invoices.SelectionBehavior.SelectRows)
        self.tbl_invoices.setEditTriggers(self.tbl_invoices.EditTrigger.NoEditTriggers)
        self.tbl_invoices.setColumnHidden(5, True)
        root.addWidget(self.tbl_invoices, 1)

        bar = QHBoxLayout()
        btn_view = QPushButton("View")
        btn_edit = QPushButton("Edit")
        btn_del = QPushButton("Delete")
        for b in (btn_view, btn_edit, btn_del):
            bar.addWidget(b)
        bar.addStretch(1)
        self.btn_prev = QPushButton("Previous")
        self.lab_page = QLabel()
        self.btn_next = QPushButton("Next")
        bar.addWidget(self.btn_prev); bar.addWidget(self.lab_page); bar.addWidget(self.btn_next)
        root.addLayout(bar)

        btn_view.clicked.connect(lambda: self._with_selected_invoice(lambda i: ViewInvoice(invoice_id=i)))
        btn_edit.clicked.connect(lambda: self._with_selected_invoice(lambda i: EditInvoice(invoice_id=i)))
        btn_del.clicked.connect(self._delete_invoice)
        self.btn_prev.clicked.connect(lambda: self.store.dispatch(lg.SetPage(page=self.store.state.ledger.page - 1)))
        self.btn_next.clicked.connect(lambda: self.store.dispatch(lg.SetPage(page=self.store.state.ledger.page + 1)))
        return w

    def _selected_invoice_id(self):
        row = self.tbl_invoices.currentRow()
        if row < 0:
            return None
        return self.tbl_invoices.item(row, 5).text()

    def _with_selected_invoice(self, make_action):
        iid = self._selected_invoice_id()
        if not iid:
            QMessageBox.information(self, "History", "Select an invoice first.")
            return
        self.store.dispatch(make_action(iid))

    def _delete_invoice(self):
        iid = self._selected_invoice_id()
        if not iid:
            QMessageBox.information(self, "History", "Select an invoice first.")
            return
        if QMessageBox.question(self, "Delete", "Delete this invoice?") == QMessageBox.Yes:
            self.store.dispatch(RemoveInvoice(invoice_id=iid))

    def _refresh_history(self, state: AppState):
        ledger = state.ledger
        self.tbl_invoices.setRowCount(0)
        for inv in ledger.visible():
            r = self.tbl_invoices.rowCount(); self.tbl_invoices.insertRow(r)
            self.tbl_invoices.setItem(r, 0, QTableWidgetItem(inv.invoice_number))
            self.tbl_invoices.setItem(r, 1, QTableWidgetItem(inv.client.name))
            self.tbl_invoices.setItem(r, 2, QTableWidgetItem(inv.date.isoformat()))
            self.tbl_invoices.setItem(r, 3, QTableWidgetItem(format_money(inv.total, inv.currency)))
            status = QComboBox()
            for s in STATUSES:
                status.addItem(s.capitalize(), s)
            status.setCurrentIndex(status.findData(inv.status))
            status.activated.connect(
                lambda _i, c=status, iid=inv.id: self.store.dispatch(lg.SetInvoiceStatus(invoice_id=iid, status=c.currentData()))
            )
            self.tbl_invoices.setCellWidget(r, 4, status)
            self.tbl_invoices.setItem(r, 5, QTableWidgetItem(inv.id))
        self.tbl_invoices.resizeRowsToContents()
        count = ledger.page_count()
        self.lab_page.setText(f"Page {ledger.page} of {count}")
        self.btn_prev.setEnabled(ledger.page > 1)
        self.btn_next.setEnabled(ledger.page < count)

    # ==================== RENDU ====================
    def _tab_changed(self, index: int):
        tab = TABS[index]
        if tab != self.store.state.active_tab:
            self.store.dispatch(SetTab(tab=tab))

    def _render(self, state: AppState, prev: Optional[AppState], action: Any):
        first = prev is None

        for kind in (COMPANIES, CLIENTS):
            if first or state.directory(kind) != prev.directory(kind):
                self._refresh_party(kind, state.directory(kind))

        if not first and isinstance(action, RELOADING) and state.editor.draft != prev.editor.draft:
            self.editor.load(state.editor.draft)
        self.editor.refresh(state.editor)

        if first or state.ledger != prev.ledger or state.current_invoice_id != prev.current_invoice_id:
            self._refresh_preview(state)
            self._refresh_history(state)

        index = TABS.index(state.active_tab)
        if self.tabs.currentIndex() != index:
            self.tabs.blockSignals(True)
            self.tabs.setCurrentIndex(index)
            self.tabs.blockSignals(False)

        note = state.notification
        if note is None:
            self.toast.hide()
        elif first or prev.notification is None or prev.notification.seq != note.seq:
            self.toast.show_message(note.message, note.kind)
            QTimer.singleShot(
                self.settings.toast_timeout_ms,
                lambda seq=note.seq: self.store.dispatch(DismissNotification(seq=seq)),
            )

    def resizeEvent(self, event):
        super().resizeEvent(event)
        if self.toast.isVisible():
            self.toast.reposition()
