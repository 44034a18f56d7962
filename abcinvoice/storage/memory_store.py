from __future__ import annotations
import copy
from typing import Any, Dict, List, Mapping, Optional, Set

from abcinvoice.errors import RemoteStoreError
from .remote import Record


class MemoryStore:
    """Stockage en mémoire (tests, démo). `fail_on` simule des pannes par opération."""

    def __init__(self, tables: Optional[Dict[str, List[Record]]] = None, key: str = "id"):
        self.key = key
        self.tables: Dict[str, List[Record]] = {t: [dict(r) for r in rows] for t, rows in (tables or {}).items()}
        self.fail_on: Set[str] = set()
        self.calls: List[tuple] = []

    def _check(self, op: str, table: str) -> None:
        self.calls.append((op, table))
        if op in self.fail_on:
            raise RemoteStoreError(f"{op} on {table} failed", table=table)

    def select(self, table: str) -> List[Record]:
        self._check("select", table)
        return copy.deepcopy(self.tables.get(table, []))

    def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        self._check("insert", table)
        rows = self.tables.setdefault(table, [])
        rec = copy.deepcopy(dict(record))
        if any(str(r.get(self.key)) == str(rec.get(self.key)) for r in rows):
            raise RemoteStoreError(f"{table}: duplicate {self.key}={rec.get(self.key)}", table=table)
        rows.append(rec)
        return copy.deepcopy(rec)

    def update(self, table: str, obj_id: str, fields: Mapping[str, Any]) -> Record:
        self._check("update", table)
        for idx, row in enumerate(self.tables.get(table, [])):
            if str(row.get(self.key)) == str(obj_id):
                merged = {**row, **copy.deepcopy(dict(fields))}
                self.tables[table][idx] = merged
                return copy.deepcopy(merged)
        raise RemoteStoreError(f"{table}: {self.key}={obj_id} not found", table=table)

    def delete(self, table: str, obj_id: str) -> bool:
        self._check("delete", table)
        rows = self.tables.get(table, [])
        kept = [r for r in rows if str(r.get(self.key)) != str(obj_id)]
        self.tables[table] = kept
        return len(kept) != len(rows)
