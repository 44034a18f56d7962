from __future__ import annotations
from typing import Any, Dict, List, Mapping, Protocol, runtime_checkable

COMPANIES = "companies"
CLIENTS = "clients"

Record = Dict[str, Any]


@runtime_checkable
class RemoteStore(Protocol):
    """
    Capacité CRUD minimale attendue du stockage (une table = une liste de dicts).
    Toute erreur est levée en RemoteStoreError.
    """

    def select(self, table: str) -> List[Record]: ...

    def insert(self, table: str, record: Mapping[str, Any]) -> Record: ...

    def update(self, table: str, obj_id: str, fields: Mapping[str, Any]) -> Record: ...

    def delete(self, table: str, obj_id: str) -> bool: ...
