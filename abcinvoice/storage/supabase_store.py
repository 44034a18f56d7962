from __future__ import annotations
import logging
from typing import Any, List, Mapping

from supabase import Client as SupabaseClient, create_client

from abcinvoice.errors import RemoteStoreError
from .remote import Record

logger = logging.getLogger(__name__)


class SupabaseStore:
    """Tables companies / clients hébergées sur Supabase (PostgREST)."""

    def __init__(self, client: SupabaseClient, key: str = "id"):
        self.client = client
        self.key = key

    @classmethod
    def from_credentials(cls, url: str, api_key: str) -> "SupabaseStore":
        return cls(create_client(url, api_key))

    def _fail(self, op: str, table: str, exc: Exception) -> RemoteStoreError:
        logger.warning("Supabase %s on %s failed: %s", op, table, exc)
        return RemoteStoreError(f"{op} {table}: {exc}", table=table)

    def select(self, table: str) -> List[Record]:
        try:
            res = self.client.table(table).select("*").execute()
        except Exception as e:  # erreurs PostgREST, réseau, auth
            raise self._fail("select", table, e) from e
        return list(res.data or [])

    def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        try:
            res = self.client.table(table).insert(dict(record)).execute()
        except Exception as e:
            raise self._fail("insert", table, e) from e
        rows = res.data or []
        return dict(rows[0]) if rows else dict(record)

    def update(self, table: str, obj_id: str, fields: Mapping[str, Any]) -> Record:
        try:
            res = self.client.table(table).update(dict(fields)).eq(self.key, obj_id).execute()
        except Exception as e:
            raise self._fail("update", table, e) from e
        rows = res.data or []
        if not rows:
            raise RemoteStoreError(f"{table} with {self.key}={obj_id} not found", table=table)
        return dict(rows[0])

    def delete(self, table: str, obj_id: str) -> bool:
        try:
            res = self.client.table(table).delete().eq(self.key, obj_id).execute()
        except Exception as e:
            raise self._fail("delete", table, e) from e
        return bool(res.data)
