from __future__ import annotations
from typing import Iterable, List, Mapping, NamedTuple, Optional

from pydantic import ValidationError


class FieldError(NamedTuple):
    field: str
    message: str


class FormValidationError(ValueError):
    """Erreur de saisie locale; ne doit jamais atteindre le stockage."""

    def __init__(self, errors: Iterable[FieldError]):
        self.errors: List[FieldError] = list(errors)
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in self.errors))


class RemoteStoreError(RuntimeError):
    """Échec du stockage distant (réseau, contrainte, droits...)."""

    def __init__(self, message: str, *, table: Optional[str] = None):
        self.table = table
        super().__init__(message)


class UnsupportedCapabilityError(RuntimeError):
    pass


class PdfRenderError(RuntimeError):
    pass


class ShareError(RuntimeError):
    """La cible de partage a refusé le fichier (écriture, presse-papiers...)."""


def field_errors_from(exc: ValidationError, messages: Optional[Mapping[str, str]] = None) -> List[FieldError]:
    """
    Convertit une ValidationError pydantic en erreurs par champ ("items.0.rate").
    `messages` remplace le message pydantic selon le dernier segment du chemin.
    """
    messages = messages or {}
    out: List[FieldError] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        path = ".".join(loc) or "__root__"
        leaf = next((p for p in reversed(loc) if not p.isdigit()), path)
        out.append(FieldError(path, messages.get(leaf, err.get("msg", "Invalid value"))))
    return out
