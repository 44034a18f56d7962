# abcinvoice/services/totals_service.py
"""
Calcul centralisé des montants d'une facture.

Toute l'arithmétique se fait en Decimal; les montants de ligne sont arrondis au
centime (ROUND_HALF_UP) puis additionnés, la TVA est arrondie une seule fois sur
le sous-total. Une saisie non numérique compte pour 0.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Any, Iterable, NamedTuple

from abcinvoice.models.common import quantize_cents, to_decimal

ZERO = Decimal("0.00")
HUNDRED = Decimal(100)


class Totals(NamedTuple):
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


def line_total(quantity: Any, rate: Any) -> Decimal:
    return quantize_cents(to_decimal(quantity) * to_decimal(rate))


def subtotal_of(items: Iterable[Any]) -> Decimal:
    subtotal = ZERO
    for it in items:
        subtotal += line_total(getattr(it, "quantity", 0), getattr(it, "rate", 0))
    return subtotal


def tax_of(subtotal: Decimal, tax_rate: Any) -> Decimal:
    return quantize_cents(subtotal * to_decimal(tax_rate) / HUNDRED)


def compute_totals(items: Iterable[Any], tax_rate: Any) -> Totals:
    subtotal = subtotal_of(items)
    tax_amount = tax_of(subtotal, tax_rate)
    return Totals(subtotal=subtotal, tax_amount=tax_amount, total=subtotal + tax_amount)
