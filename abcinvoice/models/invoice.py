from __future__ import annotations
from datetime import date as Date, datetime, timedelta
from decimal import Decimal
from typing import Any, List, Literal, Optional, Tuple
import random

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from abcinvoice.services.totals_service import Totals, compute_totals, line_total
from .common import gen_id, utcnow
from .party import Client, Company

Currency = Literal["USD", "EUR", "GBP", "PKR"]
InvoiceStatus = Literal["draft", "sent", "paid", "overdue"]

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "PKR": "₨",
}
CURRENCY_LABELS = {
    "USD": "USD - US Dollar ($)",
    "EUR": "EUR - Euro (€)",
    "GBP": "GBP - British Pound (£)",
    "PKR": "PKR - Pakistani Rupee (₨)",
}
STATUSES: Tuple[str, ...] = ("draft", "sent", "paid", "overdue")

DEFAULT_CURRENCY = "USD"
DEFAULT_TERMS_DAYS = 14
DEFAULT_NOTES = "Payment due within 14 days. Thank you for your business!"


def currency_symbol(code: Optional[str]) -> str:
    return CURRENCY_SYMBOLS.get(code or "", "$")


def format_money(amount: Any, currency: Optional[str]) -> str:
    return f"{currency_symbol(currency)} {Decimal(amount):.2f}"


# ---------- Facture enregistrée (validée) ----------

class LineItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=gen_id)
    description: str = ""
    quantity: int = Field(default=1, ge=1)
    rate: Decimal = Field(default=Decimal(0), ge=0)

    @computed_field  # type: ignore[misc]
    @property
    def total(self) -> Decimal:
        return line_total(self.quantity, self.rate)


class InvoiceFields(BaseModel):
    """Champs saisis dans le formulaire; sert aussi à valider un brouillon."""

    model_config = ConfigDict(extra="ignore")

    invoice_number: str = Field(min_length=1)
    date: Date
    due_date: Date
    currency: Currency
    tax_rate: Decimal = Field(ge=0, le=100)
    items: List[LineItem] = Field(min_length=1)
    notes: Optional[str] = None

    @field_validator("invoice_number", mode="before")
    @classmethod
    def _strip_number(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("notes", mode="before")
    @classmethod
    def _blank_notes(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class Invoice(InvoiceFields):
    id: str = Field(default_factory=gen_id)
    status: InvoiceStatus = "draft"
    client: Client
    company: Company
    created_at: datetime = Field(default_factory=utcnow)

    def totals(self) -> Totals:
        return compute_totals(self.items, self.tax_rate)

    @computed_field  # type: ignore[misc]
    @property
    def subtotal(self) -> Decimal:
        return self.totals().subtotal

    @computed_field  # type: ignore[misc]
    @property
    def tax_amount(self) -> Decimal:
        return self.totals().tax_amount

    @computed_field  # type: ignore[misc]
    @property
    def total(self) -> Decimal:
        return self.totals().total

    @property
    def pdf_filename(self) -> str:
        return f"invoice_{self.invoice_number}.pdf"


# ---------- Brouillon (saisie libre, validé à la soumission) ----------

class DraftItem(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(default_factory=gen_id)
    description: str = ""
    quantity: Any = 1
    rate: Any = Decimal(0)

    @property
    def total(self) -> Decimal:
        return line_total(self.quantity, self.rate)


class InvoiceDraft(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: Optional[str] = None
    invoice_number: str = ""
    date: Optional[Date] = None
    due_date: Optional[Date] = None
    status: InvoiceStatus = "draft"
    currency: Optional[str] = DEFAULT_CURRENCY
    tax_rate: Any = Decimal(0)
    items: Tuple[DraftItem, ...] = ()
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def totals(self) -> Totals:
        return compute_totals(self.items, self.tax_rate)

    @classmethod
    def from_invoice(cls, inv: Invoice) -> "InvoiceDraft":
        return cls(
            id=inv.id,
            invoice_number=inv.invoice_number,
            date=inv.date,
            due_date=inv.due_date,
            status=inv.status,
            currency=inv.currency,
            tax_rate=inv.tax_rate,
            items=tuple(
                DraftItem(id=it.id, description=it.description, quantity=it.quantity, rate=it.rate)
                for it in inv.items
            ),
            notes=inv.notes,
            created_at=inv.created_at,
        )


def new_invoice_number(rng: Optional[random.Random] = None) -> str:
    return f"INV-{(rng or random).randrange(10000)}"


def new_draft(today: Optional[Date] = None, rng: Optional[random.Random] = None) -> InvoiceDraft:
    today = today or Date.today()
    return InvoiceDraft(
        invoice_number=new_invoice_number(rng),
        date=today,
        due_date=today + timedelta(days=DEFAULT_TERMS_DAYS),
        currency=DEFAULT_CURRENCY,
        tax_rate=Decimal(0),
        items=(DraftItem(id="1", quantity=1, rate=Decimal(0)),),
        notes=DEFAULT_NOTES,
    )
