import random
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from abcinvoice.models.common import to_decimal
from abcinvoice.models.invoice import (
    DEFAULT_NOTES, InvoiceDraft, LineItem, currency_symbol, format_money, new_draft, new_invoice_number,
)
from abcinvoice.models.party import Client, Company


def test_to_decimal_is_lenient():
    assert to_decimal("12,50") == Decimal("12.50")
    assert to_decimal("$ 3.20") == Decimal("3.20")
    assert to_decimal("") == 0
    assert to_decimal(None) == 0
    assert to_decimal("abc") == 0
    assert to_decimal(float("nan")) == 0


def test_currency_symbols_and_money_format():
    assert currency_symbol("EUR") == "€"
    assert currency_symbol("PKR") == "₨"
    assert currency_symbol("XYZ") == "$"
    assert format_money(Decimal("59.9"), "GBP") == "£ 59.90"


def test_line_item_total_is_derived():
    it = LineItem(quantity=3, rate=Decimal("19.99"))
    assert it.total == Decimal("59.97")
    assert it.model_dump()["total"] == Decimal("59.97")


@pytest.mark.parametrize("quantity,rate", [(0, "1"), (1, "-0.01")])
def test_line_item_rejects_out_of_range(quantity, rate):
    with pytest.raises(ValidationError):
        LineItem(quantity=quantity, rate=Decimal(rate))


def test_party_blank_optionals_become_none():
    c = Client(name="  Globex  ", email="  ", phone="", vat=" ")
    assert c.name == "Globex"
    assert c.email is None
    assert c.phone is None
    assert c.vat is None


def test_party_requires_name_and_valid_email():
    with pytest.raises(ValidationError):
        Company(name="   ")
    with pytest.raises(ValidationError):
        Company(name="Acme", email="not-an-email")


def test_numeric_ids_from_backend_become_text():
    assert Company(id=42, name="Acme").id == "42"


def test_new_draft_defaults():
    d = new_draft(date(2024, 1, 10), random.Random(1))
    assert d.invoice_number.startswith("INV-")
    assert d.due_date == date(2024, 1, 24)
    assert d.currency == "USD"
    assert d.status == "draft"
    assert d.notes == DEFAULT_NOTES
    assert len(d.items) == 1
    assert d.items[0].quantity == 1
    assert d.id is None


def test_invoice_number_range():
    rng = random.Random(7)
    for _ in range(50):
        n = int(new_invoice_number(rng).split("-", 1)[1])
        assert 0 <= n < 10000


def test_invoice_derived_totals_and_filename(make_invoice):
    inv = make_invoice("INV-42", quantity=3, rate="19.99", tax_rate="8.5")
    assert inv.subtotal == Decimal("59.97")
    assert inv.tax_amount == Decimal("5.10")
    assert inv.total == Decimal("65.07")
    assert inv.pdf_filename == "invoice_INV-42.pdf"


def test_draft_round_trips_a_saved_invoice(make_invoice):
    inv = make_invoice("INV-7")
    d = InvoiceDraft.from_invoice(inv)
    assert d.id == inv.id
    assert d.created_at == inv.created_at
    assert d.totals() == inv.totals()


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1e3", Decimal("1000")),
        ("12abc3", Decimal(0)),
        ("1,234.50", Decimal("1234.50")),
        (" € 7 ", Decimal("7")),
        ("--5", Decimal(0)),
        ("1e500", Decimal(0)),
        (float("inf"), Decimal(0)),
    ],
)
def test_to_decimal_parses_whole_input_or_gives_zero(raw, expected):
    assert to_decimal(raw) == expected


def test_large_amounts_serialize(make_invoice):
    inv = make_invoice("INV-BIG", rate="1e30")
    assert inv.model_dump()["total"] == Decimal("1e30")
