# abcinvoice/state/editor.py
"""
Éditeur de brouillon de facture.

L'état est immuable: chaque action produit un nouvel `EditorState` via
`reduce_editor`. Les totaux ne sont jamais stockés, ils sont recalculés par
`totals_service` à chaque lecture.
"""
from __future__ import annotations
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from abcinvoice.errors import FieldError, FormValidationError, field_errors_from
from abcinvoice.models.common import gen_id, utcnow
from abcinvoice.models.invoice import DraftItem, Invoice, InvoiceDraft, InvoiceFields, new_draft
from abcinvoice.models.party import Client, Company
from abcinvoice.services.totals_service import Totals

DRAFT_FIELDS = ("invoice_number", "date", "due_date", "currency", "tax_rate", "notes")

FIELD_MESSAGES = {
    "invoice_number": "Invoice number is required",
    "date": "Date is required",
    "due_date": "Due date is required",
    "currency": "Currency is required",
    "tax_rate": "Tax rate must be between 0 and 100",
    "items": "At least one item is required",
    "rate": "Rate must be a number of at least 0",
    "quantity": "Quantity must be a whole number of at least 1",
}


class EditorState(BaseModel):
    model_config = ConfigDict(frozen=True)

    draft: InvoiceDraft
    company: Optional[Company] = None
    client: Optional[Client] = None
    errors: Tuple[FieldError, ...] = ()


def initial_editor(today: Optional[date] = None) -> EditorState:
    return EditorState(draft=new_draft(today))


# ---------- Actions ----------

class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class SetDraftField(_Action):
    field: str
    value: Any = None


class AddItem(_Action):
    item_id: Optional[str] = None


class UpdateItem(_Action):
    item_id: str
    description: Optional[str] = None
    quantity: Any = None
    rate: Any = None


class RemoveItem(_Action):
    item_id: str


class SelectCompany(_Action):
    company: Optional[Company] = None


class SelectClient(_Action):
    client: Optional[Client] = None


class LoadInvoice(_Action):
    invoice: Invoice


class ResetDraft(_Action):
    today: Optional[date] = None


EditorAction = Union[
    SetDraftField, AddItem, UpdateItem, RemoveItem, SelectCompany, SelectClient, LoadInvoice, ResetDraft
]


# ---------- Réducteur ----------

def _with_draft(state: EditorState, **changes: Any) -> EditorState:
    return state.model_copy(update={"draft": state.draft.model_copy(update=changes)})


def reduce_editor(state: EditorState, action: EditorAction) -> EditorState:
    d = state.draft

    if isinstance(action, SetDraftField):
        if action.field not in DRAFT_FIELDS:
            raise ValueError(f"Unknown draft field: {action.field}")
        return _with_draft(state, **{action.field: action.value})

    if isinstance(action, AddItem):
        item = DraftItem(id=action.item_id or gen_id(), quantity=1, rate=0)
        return _with_draft(state, items=d.items + (item,))

    if isinstance(action, UpdateItem):
        changes: Dict[str, Any] = {
            k: v
            for k, v in (("description", action.description), ("quantity", action.quantity), ("rate", action.rate))
            if v is not None
        }
        items = tuple(it.model_copy(update=changes) if it.id == action.item_id else it for it in d.items)
        return _with_draft(state, items=items)

    if isinstance(action, RemoveItem):
        return _with_draft(state, items=tuple(it for it in d.items if it.id != action.item_id))

    if isinstance(action, SelectCompany):
        return state.model_copy(update={"company": action.company})

    if isinstance(action, SelectClient):
        return state.model_copy(update={"client": action.client})

    if isinstance(action, LoadInvoice):
        inv = action.invoice
        return EditorState(
            draft=InvoiceDraft.from_invoice(inv),
            company=inv.company.model_copy(deep=True),
            client=inv.client.model_copy(deep=True),
        )

    if isinstance(action, ResetDraft):
        # la sélection entreprise / client est conservée entre deux factures
        return EditorState(draft=new_draft(action.today), company=state.company, client=state.client)

    raise TypeError(f"Unsupported editor action: {type(action).__name__}")


def totals(state: EditorState) -> Totals:
    return state.draft.totals()


# ---------- Validation / soumission ----------

def validate_draft(state: EditorState) -> Tuple[FieldError, ...]:
    errors = []
    if state.company is None:
        errors.append(FieldError("company", "Please select a company"))
    if state.client is None:
        errors.append(FieldError("client", "Please select a client"))
    try:
        InvoiceFields.model_validate(state.draft.model_dump(exclude={"id", "status", "created_at"}))
    except ValidationError as e:
        errors.extend(field_errors_from(e, FIELD_MESSAGES))
    return tuple(errors)


def submit_draft(
    state: EditorState,
    now: Optional[datetime] = None,
    id_factory: Callable[[], str] = gen_id,
) -> Tuple[EditorState, Invoice]:
    """
    Valide le brouillon et produit la facture enregistrable.
    Retourne (éditeur réinitialisé, facture); lève FormValidationError sinon.
    """
    errors = validate_draft(state)
    if errors:
        raise FormValidationError(errors)

    d = state.draft
    payload = d.model_dump(exclude={"id", "status", "created_at"})
    invoice = Invoice.model_validate({
        **payload,
        "id": d.id or id_factory(),
        "status": "draft",
        "created_at": d.created_at or now or utcnow(),
        # instantanés: copies profondes, jamais de référence vers l'annuaire
        "client": state.client.model_dump(),  # type: ignore[union-attr]
        "company": state.company.model_dump(),  # type: ignore[union-attr]
    })
    fresh = reduce_editor(state, ResetDraft(today=now.date() if now else None))
    return fresh, invoice


def with_errors(state: EditorState, errors: Tuple[FieldError, ...]) -> EditorState:
    return state.model_copy(update={"errors": tuple(errors)})
