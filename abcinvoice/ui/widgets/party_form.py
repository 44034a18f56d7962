from __future__ import annotations
import base64
import mimetypes
from pathlib import Path
from typing import Any, Dict, Optional

from PySide6.QtCore import Qt, Signal, QByteArray
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QFormLayout, QLineEdit, QTextEdit, QDialogButtonBox,
    QHBoxLayout, QLabel, QPushButton, QFileDialog, QMessageBox,
)

from abcinvoice.models.party import Client, Company, Party

MAX_LOGO_BYTES = 10 * 1024 * 1024


def logo_to_data_url(path: Path) -> str:
    mime = mimetypes.guess_type(path.name)[0] or "image/png"
    data = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{data}"


def data_url_pixmap(data_url: str) -> QPixmap:
    pix = QPixmap()
    if data_url and "," in data_url:
        pix.loadFromData(QByteArray(base64.b64decode(data_url.split(",", 1)[1])))
    return pix


class PartyForm(QDialog):
    """
    Formulaire entreprise / client. Ne se ferme pas tout seul sur OK: émet
    `submitted` et attend que la fenêtre principale confirme l'enregistrement.
    """

    submitted = Signal(dict)

    def __init__(self, parent=None, kind: str = "clients", record: Optional[Party] = None):
        super().__init__(parent)
        self.kind = kind
        self.is_company = kind == "companies"
        self.setWindowTitle("Company" if self.is_company else "Client")
        self.setModal(True)
        self._logo: Optional[str] = None
        self._busy = False

        self.ed_name = QLineEdit()
        self.ed_email = QLineEdit()
        self.ed_phone = QLineEdit()
        self.ed_vat = QLineEdit()
        self.ed_address = QTextEdit()
        self.ed_address.setFixedHeight(72)

        form = QFormLayout()
        form.addRow("Name *", self.ed_name)
        form.addRow("Email (optional)", self.ed_email)
        form.addRow("Phone (optional)", self.ed_phone)
        if not self.is_company:
            form.addRow("VAT Number (optional)", self.ed_vat)
        form.addRow("Address (optional)", self.ed_address)

        if self.is_company:
            self.lab_logo = QLabel("No logo")
            self.lab_logo.setFixedSize(64, 64)
            self.lab_logo.setAlignment(Qt.AlignmentFlag.AlignCenter)
            btn_logo = QPushButton("Upload Logo")
            btn_logo.clicked.connect(self._pick_logo)
            row = QHBoxLayout()
            row.addWidget(self.lab_logo)
            row.addWidget(btn_logo)
            row.addStretch(1)
            form.addRow("Company Logo", row)

        self.btns = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        self.btns.accepted.connect(self._submit)
        self.btns.rejected.connect(self.reject)

        lay = QVBoxLayout(self)
        lay.addLayout(form)
        lay.addWidget(self.btns)

        self.ed_name.textChanged.connect(self._update_buttons)
        if record:
            self._fill_from(record)
        self._update_buttons()

    def _fill_from(self, r: Party):
        self.ed_name.setText(r.name or "")
        self.ed_email.setText(r.email or "")
        self.ed_phone.setText(r.phone or "")
        self.ed_address.setPlainText(r.address or "")
        if isinstance(r, Client):
            self.ed_vat.setText(r.vat or "")
        if isinstance(r, Company) and r.logo:
            self._set_logo(r.logo)

    def _set_logo(self, data_url: str):
        self._logo = data_url
        pix = data_url_pixmap(data_url)
        if not pix.isNull():
            self.lab_logo.setPixmap(pix.scaled(64, 64, Qt.AspectRatioMode.KeepAspectRatio))

    def _pick_logo(self):
        path, _ = QFileDialog.getOpenFileName(self, "Company Logo", "", "Images (*.png *.jpg *.jpeg *.svg)")
        if not path:
            return
        p = Path(path)
        if p.stat().st_size > MAX_LOGO_BYTES:
            QMessageBox.warning(self, "Company Logo", "Logo must be 10MB or smaller.")
            return
        self._set_logo(logo_to_data_url(p))

    def _update_buttons(self):
        save = self.btns.button(QDialogButtonBox.Save)
        save.setEnabled(bool(self.ed_name.text().strip()) and not self._busy)
        save.setText("Saving..." if self._busy else "Save")
        self.btns.button(QDialogButtonBox.Cancel).setEnabled(not self._busy)

    def set_busy(self, busy: bool):
        self._busy = busy
        for w in (self.ed_name, self.ed_email, self.ed_phone, self.ed_vat, self.ed_address):
            w.setEnabled(not busy)
        self._update_buttons()

    def reject(self):
        if self._busy:
            return
        super().reject()

    def fields(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.ed_name.text().strip(),
            "email": self.ed_email.text().strip() or None,
            "phone": self.ed_phone.text().strip() or None,
            "address": self.ed_address.toPlainText().strip() or None,
        }
        if self.is_company:
            out["logo"] = self._logo
        else:
            out["vat"] = self.ed_vat.text().strip() or None
        return out

    def _submit(self):
        if not self.ed_name.text().strip():
            self.ed_name.setFocus(Qt.FocusReason.ActiveWindowFocusReason)
            return
        self.submitted.emit(self.fields())
