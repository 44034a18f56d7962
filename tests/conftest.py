"""Fixtures partagées: entreprises, clients et factures prêtes à l'emploi."""
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from abcinvoice.models.invoice import Invoice, LineItem
from abcinvoice.models.party import Client, Company
from abcinvoice.storage.memory_store import MemoryStore
from abcinvoice.storage.remote import CLIENTS, COMPANIES


@pytest.fixture
def company():
    return Company(id="co-1", name="Acme Studio", email="billing@acme.io", phone="555-0100", address="1 Main St\nSpringfield")


@pytest.fixture
def client():
    return Client(id="cl-1", name="Globex Corp", email="ap@globex.io", vat="GB123")


@pytest.fixture
def make_invoice(company, client):
    """Fabrique de factures: make_invoice("INV-1", rate="100.00", ...)."""

    def _make(number="INV-1", *, inv_id=None, rate="100.00", quantity=1, tax_rate="0", client_name=None, currency="USD"):
        c = client.model_copy(update={"name": client_name}) if client_name else client
        return Invoice(
            id=inv_id or f"id-{number}",
            invoice_number=number,
            date=date(2024, 3, 1),
            due_date=date(2024, 3, 15),
            currency=currency,
            tax_rate=Decimal(tax_rate),
            items=[LineItem(id="1", description="Design work", quantity=quantity, rate=Decimal(rate))],
            client=c,
            company=company,
            created_at=datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def memory_store():
    return MemoryStore({COMPANIES: [], CLIENTS: []})
