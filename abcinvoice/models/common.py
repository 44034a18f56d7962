from __future__ import annotations
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any
import re
import uuid

CENT = Decimal("0.01")
# au-delà, une saisie n'est plus un montant: elle compte pour 0
MAX_DIGITS = 100
# symboles monétaires et espaces tolérés autour d'un montant saisi
_NOISE = re.compile(r"[\s$€£₨]")


def gen_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _bounded(d: Decimal) -> Decimal:
    if not d.is_finite() or (d and d.adjusted() > MAX_DIGITS):
        return Decimal(0)
    return d


def to_decimal(val: Any) -> Decimal:
    """Conversion souple vers Decimal; toute saisie invalide vaut 0."""
    if val is None or val == "" or isinstance(val, bool):
        return Decimal(0)
    if isinstance(val, Decimal):
        return _bounded(val)
    s = str(val) if isinstance(val, (int, float)) else _NOISE.sub("", str(val))
    if "," in s:
        # "1,234.50" -> séparateur de milliers; "12,50" -> virgule décimale
        s = s.replace(",", "") if "." in s else s.replace(",", ".")
    try:
        return _bounded(Decimal(s))
    except (InvalidOperation, ValueError):
        return Decimal(0)


def quantize_cents(d: Decimal) -> Decimal:
    with localcontext() as ctx:
        # précision suffisante pour garder tous les chiffres avant la virgule
        ctx.prec = max(ctx.prec, d.adjusted() + 3)
        return d.quantize(CENT, rounding=ROUND_HALF_UP)
