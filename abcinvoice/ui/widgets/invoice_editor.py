from __future__ import annotations
from decimal import Decimal
from typing import Any, Callable, Dict

from PySide6.QtCore import QDate
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QFormLayout, QComboBox, QTextEdit, QLineEdit,
    QHBoxLayout, QPushButton, QTableWidget, QHeaderView, QSpinBox,
    QDoubleSpinBox, QLabel, QDateEdit,
)

from abcinvoice.models.invoice import CURRENCY_LABELS, InvoiceDraft, format_money
from abcinvoice.state import editor as ed
from abcinvoice.state.app import SubmitDraft

ERROR_CSS = "border: 1px solid #dc2626;"


def _qdate(d) -> QDate:
    return QDate(d.year, d.month, d.day) if d else QDate.currentDate()


class InvoiceEditor(QWidget):
    """Onglet Détails: champs de la facture, lignes et totaux en direct."""

    COLS = ["Description", "Qty", "Rate", "Amount", ""]

    def __init__(self, dispatch: Callable[[Any], Any], parent=None):
        super().__init__(parent)
        self.dispatch = dispatch
        self._loading = False
        self._currency = "USD"

        self.ed_number = QLineEdit()
        self.ed_date = QDateEdit(); self.ed_date.setCalendarPopup(True)
        self.ed_due = QDateEdit(); self.ed_due.setCalendarPopup(True)
        self.cb_currency = QComboBox()
        for code, label in CURRENCY_LABELS.items():
            self.cb_currency.addItem(label, code)
        self.sp_tax = QDoubleSpinBox(); self.sp_tax.setRange(0.0, 100.0); self.sp_tax.setDecimals(2); self.sp_tax.setSuffix(" %")
        self.ed_notes = QTextEdit(); self.ed_notes.setFixedHeight(72)

        top = QFormLayout()
        top.addRow("Invoice Number", self.ed_number)
        top.addRow("Date", self.ed_date)
        top.addRow("Due Date", self.ed_due)
        top.addRow("Currency", self.cb_currency)
        top.addRow("Tax Rate", self.sp_tax)

        self.tbl = QTableWidget(0, len(self.COLS))
        self.tbl.setHorizontalHeaderLabels(self.COLS)
        self.tbl.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        self.tbl.horizontalHeader().setSectionResizeMode(0, QHeaderView.Stretch)

        btn_add = QPushButton("Add Item")
        btn_add.clicked.connect(lambda: self.dispatch(ed.AddItem()))

        self.lab_subtotal = QLabel()
        self.lab_tax = QLabel()
        self.lab_total = QLabel()
        self.lab_total.setStyleSheet("font-weight:bold;")
        totals = QVBoxLayout()
        for lab in (self.lab_subtotal, self.lab_tax, self.lab_total):
            totals.addWidget(lab)

        bar = QHBoxLayout()
        bar.addWidget(btn_add); bar.addStretch(1); bar.addLayout(totals)

        self.lab_errors = QLabel()
        self.lab_errors.setStyleSheet("color:#dc2626;")
        self.lab_errors.setWordWrap(True)

        self.btn_submit = QPushButton("Create Invoice")
        self.btn_submit.clicked.connect(self._submit)

        lay = QVBoxLayout(self)
        lay.addLayout(top)
        lay.addWidget(self.tbl, 1)
        lay.addLayout(bar)
        lay.addWidget(QLabel("Notes"))
        lay.addWidget(self.ed_notes)
        lay.addWidget(self.lab_errors)
        lay.addWidget(self.btn_submit)

        self.ed_number.textEdited.connect(lambda t: self._set("invoice_number", t))
        self.ed_date.dateChanged.connect(lambda d: self._set("date", d.toPython()))
        self.ed_due.dateChanged.connect(lambda d: self._set("due_date", d.toPython()))
        self.cb_currency.currentIndexChanged.connect(lambda _i: self._set("currency", self.cb_currency.currentData()))
        self.sp_tax.valueChanged.connect(lambda v: self._set("tax_rate", Decimal(f"{v:.2f}")))
        self.ed_notes.textChanged.connect(lambda: self._set("notes", self.ed_notes.toPlainText()))

        self._field_widgets: Dict[str, QWidget] = {
            "invoice_number": self.ed_number, "date": self.ed_date, "due_date": self.ed_due,
            "currency": self.cb_currency, "tax_rate": self.sp_tax, "items": self.tbl,
        }

    # -------- Synchronisation état -> widgets --------
    def _set(self, field: str, value: Any):
        if not self._loading:
            self.dispatch(ed.SetDraftField(field=field, value=value))

    def load(self, draft: InvoiceDraft):
        """Recharge tous les champs (nouveau brouillon ou facture à modifier)."""
        self._loading = True
        try:
            self.ed_number.setText(draft.invoice_number)
            self.ed_date.setDate(_qdate(draft.date))
            self.ed_due.setDate(_qdate(draft.due_date))
            self.cb_currency.setCurrentIndex(max(0, self.cb_currency.findData(draft.currency)))
            self.sp_tax.setValue(float(draft.tax_rate or 0))
            self.ed_notes.setPlainText(draft.notes or "")
            self.btn_submit.setText("Update Invoice" if draft.id else "Create Invoice")
            self._rebuild_rows(draft)
        finally:
            self._loading = False

    def _rebuild_rows(self, draft: InvoiceDraft):
        self.tbl.setRowCount(0)
        for it in draft.items:
            r = self.tbl.rowCount()
            self.tbl.insertRow(r)
            desc = QLineEdit(it.description)
            qty = QSpinBox(); qty.setRange(1, 1_000_000); qty.setValue(max(1, int(it.quantity or 1)))
            rate = QDoubleSpinBox(); rate.setRange(0.0, 1e12); rate.setDecimals(2); rate.setValue(float(it.rate or 0))
            amount = QLabel()
            btn_del = QPushButton("Remove")
            item_id = it.id
            desc.textEdited.connect(lambda t, i=item_id: self._update_item(i, description=t))
            qty.valueChanged.connect(lambda v, i=item_id: self._update_item(i, quantity=int(v)))
            rate.valueChanged.connect(lambda v, i=item_id: self._update_item(i, rate=Decimal(f"{v:.2f}")))
            btn_del.clicked.connect(lambda _=False, i=item_id: self.dispatch(ed.RemoveItem(item_id=i)))
            self.tbl.setCellWidget(r, 0, desc)
            self.tbl.setCellWidget(r, 1, qty)
            self.tbl.setCellWidget(r, 2, rate)
            self.tbl.setCellWidget(r, 3, amount)
            self.tbl.setCellWidget(r, 4, btn_del)
        self.tbl.resizeRowsToContents()

    def _update_item(self, item_id: str, **fields):
        if not self._loading:
            self.dispatch(ed.UpdateItem(item_id=item_id, **fields))

    def refresh(self, state: ed.EditorState):
        """Appelé après chaque action: lignes, totaux, erreurs."""
        draft = state.draft
        if self.tbl.rowCount() != len(draft.items):
            self._loading = True
            try:
                self._rebuild_rows(draft)
            finally:
                self._loading = False
        cur = draft.currency
        for r, it in enumerate(draft.items):
            lab = self.tbl.cellWidget(r, 3)
            if isinstance(lab, QLabel):
                lab.setText(format_money(it.total, cur))

        t = ed.totals(state)
        self.lab_subtotal.setText(f"Subtotal: {format_money(t.subtotal, cur)}")
        self.lab_tax.setText(f"Tax ({self.sp_tax.value():g}%): {format_money(t.tax_amount, cur)}")
        self.lab_total.setText(f"Total: {format_money(t.total, cur)}")

        bad = {e.field.split(".", 1)[0] for e in state.errors}
        for name, w in self._field_widgets.items():
            w.setStyleSheet(ERROR_CSS if name in bad else "")
        self.lab_errors.setText("\n".join(e.message for e in state.errors))

    def _submit(self):
        self.dispatch(SubmitDraft())
