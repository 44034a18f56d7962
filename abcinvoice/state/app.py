# abcinvoice/state/app.py
"""
État racine de la fenêtre: onglet actif, éditeur, historique, annuaires et
notification courante. `reduce_app` est pur; les appels distants sont faits
ailleurs (ui/) puis rapportés ici sous forme d'actions.
"""
from __future__ import annotations
from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

from abcinvoice.errors import FormValidationError
from abcinvoice.models.invoice import Invoice
from abcinvoice.state import directory as dir_state
from abcinvoice.state import editor as ed
from abcinvoice.state import ledger as lg
from abcinvoice.storage.remote import CLIENTS, COMPANIES

Tab = Literal["details", "preview", "history"]
NoticeKind = Literal["success", "error"]

LABELS = {COMPANIES: "company", CLIENTS: "client"}


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    seq: int
    message: str
    kind: NoticeKind = "success"


class AppState(BaseModel):
    model_config = ConfigDict(frozen=True)

    active_tab: Tab = "details"
    editor: ed.EditorState
    ledger: lg.LedgerState = lg.LedgerState()
    companies: dir_state.DirectoryState = dir_state.DirectoryState()
    clients: dir_state.DirectoryState = dir_state.DirectoryState()
    current_invoice_id: Optional[str] = None
    notification: Optional[Notification] = None
    notice_seq: int = 0

    def directory(self, kind: str) -> dir_state.DirectoryState:
        return self.companies if kind == COMPANIES else self.clients


def initial_state(page_size: int = lg.DEFAULT_PAGE_SIZE, today=None) -> AppState:
    return AppState(editor=ed.initial_editor(today), ledger=lg.LedgerState(page_size=page_size))


def current_invoice(state: AppState) -> Optional[Invoice]:
    """Facture affichée dans l'aperçu: la courante, sinon la plus récente."""
    invoices = state.ledger.invoices
    if state.current_invoice_id:
        found = lg.find(invoices, state.current_invoice_id)
        if found is not None:
            return found
    return invoices[0] if invoices else None


# ---------- Actions propres à la fenêtre ----------

class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class SetTab(_Action):
    tab: Tab


class SubmitDraft(_Action):
    now: Optional[datetime] = None


class SaveCurrentInvoice(_Action):
    pass


class ViewInvoice(_Action):
    invoice_id: str


class EditInvoice(_Action):
    invoice_id: str


class RemoveInvoice(_Action):
    invoice_id: str


class DirectoryLoadFailed(_Action):
    kind: str


class Notify(_Action):
    message: str
    kind: NoticeKind = "success"


class DismissNotification(_Action):
    seq: int


EDITOR_ACTIONS = (
    ed.SetDraftField, ed.AddItem, ed.UpdateItem, ed.RemoveItem,
    ed.SelectCompany, ed.SelectClient, ed.LoadInvoice, ed.ResetDraft,
)
LEDGER_ACTIONS = (lg.SetSearch, lg.SetPage, lg.SetInvoiceStatus)
DIRECTORY_ACTIONS = (
    dir_state.RecordsLoaded, dir_state.SelectRecord, dir_state.OpenForm, dir_state.CloseForm,
    dir_state.SaveStarted, dir_state.SaveSucceeded, dir_state.SaveFailed,
    dir_state.DeleteStarted, dir_state.DeleteFinished, dir_state.DeleteFailed,
)

AppAction = Any


def _notify(state: AppState, message: str, kind: NoticeKind = "success", **update: Any) -> AppState:
    seq = state.notice_seq + 1
    return state.model_copy(update={**update, "notice_seq": seq, "notification": Notification(seq=seq, message=message, kind=kind)})


def _select_in_editor(editor: ed.EditorState, kind: str, record) -> ed.EditorState:
    if kind == COMPANIES:
        return ed.reduce_editor(editor, ed.SelectCompany(company=record))
    return ed.reduce_editor(editor, ed.SelectClient(client=record))


def _editor_selection(editor: ed.EditorState, kind: str):
    return editor.company if kind == COMPANIES else editor.client


def _reduce_directory(state: AppState, action) -> AppState:
    kind = action.kind
    before = state.directory(kind)
    after = dir_state.reduce_directory(before, action)
    field = "companies" if kind == COMPANIES else "clients"
    editor = state.editor
    label = LABELS.get(kind, "record")

    if isinstance(action, dir_state.SelectRecord):
        editor = _select_in_editor(editor, kind, after.selected)
        return state.model_copy(update={field: after, "editor": editor})

    if isinstance(action, dir_state.SaveSucceeded):
        if action.ticket == before.form.ticket:
            editor = _select_in_editor(editor, kind, action.record.model_copy(deep=True))
        return _notify(state, f"{label.capitalize()} saved successfully.", **{field: after, "editor": editor})

    if isinstance(action, dir_state.SaveFailed):
        return _notify(state, f"Failed to save {label}. Please try again.", "error", **{field: after})

    if isinstance(action, dir_state.DeleteFinished):
        selected = _editor_selection(editor, kind)
        if selected is not None and selected.id == action.record_id:
            editor = _select_in_editor(editor, kind, None)
        return _notify(state, f"{label.capitalize()} deleted successfully.", **{field: after, "editor": editor})

    if isinstance(action, dir_state.DeleteFailed):
        return _notify(state, f"Failed to delete {label}.", "error", **{field: after})

    return state.model_copy(update={field: after})


def reduce_app(state: AppState, action: AppAction) -> AppState:
    if isinstance(action, EDITOR_ACTIONS):
        return state.model_copy(update={"editor": ed.reduce_editor(state.editor, action)})

    if isinstance(action, LEDGER_ACTIONS):
        return state.model_copy(update={"ledger": lg.reduce_ledger(state.ledger, action)})

    if isinstance(action, DIRECTORY_ACTIONS):
        return _reduce_directory(state, action)

    if isinstance(action, SetTab):
        return state.model_copy(update={"active_tab": action.tab})

    if isinstance(action, SubmitDraft):
        try:
            editor, invoice = ed.submit_draft(state.editor, now=action.now)
        except FormValidationError as e:
            fields = {err.field for err in e.errors}
            if fields & {"company", "client"}:
                msg = "Please select a company and client before saving the invoice."
            else:
                msg = "Please fix the highlighted fields."
            return _notify(state, msg, "error", editor=ed.with_errors(state.editor, tuple(e.errors)))
        existed = lg.find(state.ledger.invoices, invoice.id) is not None
        ledger = lg.reduce_ledger(state.ledger, lg.SaveInvoice(invoice=invoice))
        msg = "Invoice updated successfully." if existed else "Invoice created successfully."
        return _notify(
            state, msg,
            editor=editor, ledger=ledger, current_invoice_id=invoice.id, active_tab="preview",
        )

    if isinstance(action, SaveCurrentInvoice):
        inv = current_invoice(state)
        if inv is None:
            return _notify(state, "There is no invoice to save yet.", "error")
        ledger = lg.reduce_ledger(state.ledger, lg.SaveInvoice(invoice=inv))
        return _notify(state, "Invoice saved successfully.", ledger=ledger, active_tab="history")

    if isinstance(action, ViewInvoice):
        if lg.find(state.ledger.invoices, action.invoice_id) is None:
            return state
        return state.model_copy(update={"current_invoice_id": action.invoice_id, "active_tab": "preview"})

    if isinstance(action, EditInvoice):
        inv = lg.find(state.ledger.invoices, action.invoice_id)
        if inv is None:
            return state
        editor = ed.reduce_editor(state.editor, ed.LoadInvoice(invoice=inv))
        companies = dir_state.reduce_directory(state.companies, dir_state.SelectRecord(kind=COMPANIES, record_id=inv.company.id))
        clients = dir_state.reduce_directory(state.clients, dir_state.SelectRecord(kind=CLIENTS, record_id=inv.client.id))
        return state.model_copy(update={
            "editor": editor, "companies": companies, "clients": clients, "active_tab": "details",
        })

    if isinstance(action, RemoveInvoice):
        ledger = lg.reduce_ledger(state.ledger, lg.DeleteInvoice(invoice_id=action.invoice_id))
        current = None if state.current_invoice_id == action.invoice_id else state.current_invoice_id
        return _notify(state, "Invoice deleted successfully.", ledger=ledger, current_invoice_id=current)

    if isinstance(action, DirectoryLoadFailed):
        return _notify(state, f"Failed to fetch {action.kind}.", "error")

    if isinstance(action, Notify):
        return _notify(state, action.message, action.kind)

    if isinstance(action, DismissNotification):
        if state.notification is not None and state.notification.seq == action.seq:
            return state.model_copy(update={"notification": None})
        return state

    raise TypeError(f"Unsupported action: {type(action).__name__}")
