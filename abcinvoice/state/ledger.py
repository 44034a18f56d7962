from __future__ import annotations
import math
from typing import List, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from abcinvoice.models.invoice import Invoice, InvoiceStatus

DEFAULT_PAGE_SIZE = 5


# ---------- Opérations pures sur la liste ----------

def save(invoices: Sequence[Invoice], invoice: Invoice) -> Tuple[Invoice, ...]:
    """Remplace sur place si l'id existe, sinon ajoute en tête. Pas de fusion."""
    for idx, existing in enumerate(invoices):
        if existing.id == invoice.id:
            return tuple(invoices[:idx]) + (invoice,) + tuple(invoices[idx + 1:])
    return (invoice,) + tuple(invoices)


def delete(invoices: Sequence[Invoice], invoice_id: str) -> Tuple[Invoice, ...]:
    return tuple(inv for inv in invoices if inv.id != invoice_id)


def find(invoices: Sequence[Invoice], invoice_id: str) -> Invoice | None:
    return next((inv for inv in invoices if inv.id == invoice_id), None)


def search(invoices: Sequence[Invoice], term: str) -> List[Invoice]:
    needle = (term or "").casefold()
    if not needle:
        return list(invoices)
    return [
        inv for inv in invoices
        if needle in inv.invoice_number.casefold() or needle in inv.client.name.casefold()
    ]


def paginate(invoices: Sequence[Invoice], page: int, page_size: int = DEFAULT_PAGE_SIZE) -> List[Invoice]:
    if page < 1 or page_size < 1:
        return []
    start = (page - 1) * page_size
    return list(invoices[start:start + page_size])


def total_pages(count: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    return max(1, math.ceil(count / page_size)) if page_size > 0 else 1


def set_status(invoices: Sequence[Invoice], invoice_id: str, status: InvoiceStatus) -> Tuple[Invoice, ...]:
    return tuple(inv.model_copy(update={"status": status}) if inv.id == invoice_id else inv for inv in invoices)


# ---------- État de la vue Historique ----------

class LedgerState(BaseModel):
    model_config = ConfigDict(frozen=True)

    invoices: Tuple[Invoice, ...] = ()
    search_term: str = ""
    page: int = 1
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)

    def filtered(self) -> List[Invoice]:
        return search(self.invoices, self.search_term)

    def visible(self) -> List[Invoice]:
        return paginate(self.filtered(), self.page, self.page_size)

    def page_count(self) -> int:
        return total_pages(len(self.filtered()), self.page_size)


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class SaveInvoice(_Action):
    invoice: Invoice


class DeleteInvoice(_Action):
    invoice_id: str


class SetSearch(_Action):
    term: str = ""


class SetPage(_Action):
    page: int


class SetInvoiceStatus(_Action):
    invoice_id: str
    status: InvoiceStatus


LedgerAction = Union[SaveInvoice, DeleteInvoice, SetSearch, SetPage, SetInvoiceStatus]


def _clamp_page(state: LedgerState) -> LedgerState:
    page = min(max(1, state.page), state.page_count())
    return state if page == state.page else state.model_copy(update={"page": page})


def reduce_ledger(state: LedgerState, action: LedgerAction) -> LedgerState:
    if isinstance(action, SaveInvoice):
        return state.model_copy(update={"invoices": save(state.invoices, action.invoice)})
    if isinstance(action, DeleteInvoice):
        return _clamp_page(state.model_copy(update={"invoices": delete(state.invoices, action.invoice_id)}))
    if isinstance(action, SetSearch):
        return state.model_copy(update={"search_term": action.term, "page": 1})
    if isinstance(action, SetPage):
        return _clamp_page(state.model_copy(update={"page": action.page}))
    if isinstance(action, SetInvoiceStatus):
        return state.model_copy(update={"invoices": set_status(state.invoices, action.invoice_id, action.status)})
    raise TypeError(f"Unsupported ledger action: {type(action).__name__}")
