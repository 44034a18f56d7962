from __future__ import annotations
import logging
from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar

from pydantic import ValidationError

from abcinvoice.errors import FormValidationError, field_errors_from
from abcinvoice.models.party import Client, Company, Party
from abcinvoice.storage.remote import CLIENTS, COMPANIES, RemoteStore

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=Party)

FIELD_MESSAGES = {
    "name": "Name is required.",
    "email": "Email address is not valid.",
}


class DirectoryService(Generic[P]):
    """
    CRUD d'un annuaire (entreprises ou clients) au-dessus du stockage injecté.
    Les erreurs du stockage remontent en RemoteStoreError; rien n'est mis en
    cache ici, l'état affiché n'est modifié par l'appelant qu'après succès.
    """

    def __init__(self, store: RemoteStore, table: str, model: Type[P]):
        self.store = store
        self.table = table
        self.model = model

    def validate(self, data: Mapping[str, Any]) -> P:
        try:
            return self.model.model_validate(dict(data))
        except ValidationError as e:
            raise FormValidationError(field_errors_from(e, FIELD_MESSAGES)) from e

    def list(self) -> List[P]:
        out: List[P] = []
        for d in self.store.select(self.table):
            try:
                out.append(self.model.model_validate(d))
            except ValidationError:
                # On ignore les entrées invalides pour ne pas casser l'UI
                logger.warning("Skipping invalid %s record id=%s", self.table, d.get("id"))
                continue
        return out

    def get(self, obj_id: str) -> Optional[P]:
        for rec in self.list():
            if rec.id == str(obj_id):
                return rec
        return None

    def create(self, fields: Mapping[str, Any]) -> P:
        data: Dict[str, Any] = {k: v for k, v in dict(fields).items() if k != "id" or v}
        rec = self.validate(data)
        row = self.store.insert(self.table, rec.model_dump(mode="json"))
        logger.info("Created %s %s", self.table, rec.id)
        return self._merge_row(rec, row)

    def update(self, obj_id: str, fields: Mapping[str, Any]) -> P:
        rec = self.validate({**dict(fields), "id": obj_id})
        # écrasement complet des champs modifiables
        row = self.store.update(self.table, rec.id, rec.model_dump(mode="json", exclude={"id"}))
        logger.info("Updated %s %s", self.table, rec.id)
        return self._merge_row(rec, row)

    def delete(self, obj_id: str) -> bool:
        found = self.store.delete(self.table, str(obj_id))
        if not found:
            logger.info("Delete %s %s: not found", self.table, obj_id)
        return found

    def _merge_row(self, rec: P, row: Mapping[str, Any]) -> P:
        try:
            return self.model.model_validate({**rec.model_dump(), **dict(row)})
        except ValidationError:
            return rec


def company_directory(store: RemoteStore) -> DirectoryService[Company]:
    return DirectoryService(store, COMPANIES, Company)


def client_directory(store: RemoteStore) -> DirectoryService[Client]:
    return DirectoryService(store, CLIENTS, Client)
