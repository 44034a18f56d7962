from __future__ import annotations

import glob
import json
import logging
import shutil
import threading
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Union

from abcinvoice.errors import RemoteStoreError
from .remote import Record

logger = logging.getLogger(__name__)


def _json_default(o: Any) -> Any:
    if isinstance(o, (date, datetime)):
        return o.isoformat()
    if isinstance(o, Decimal):
        return str(o)
    return str(o)


class JsonStore:
    """
    Stockage local: un fichier JSON par table dans `data_dir`.
    Utilisé quand aucun backend distant n'est configuré.
    - Rotation de backups (backup_enabled, backup_keep)
    - N'écrit pas si le contenu ne change pas
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        key: str = "id",
        *,
        backup_enabled: bool = True,
        backup_keep: int = 5,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.key = key
        self._lock = threading.RLock()
        self.backup_enabled = backup_enabled
        self.backup_keep = max(0, int(backup_keep))
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, table: str) -> Path:
        return self.data_dir / f"{table}.json"

    # ---------------- I/O bas niveau ---------------- #

    def _read_raw(self, table: str) -> List[Record]:
        path = self.path_for(table)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, list) else []
        except FileNotFoundError:
            return []
        except json.JSONDecodeError:
            # Fichier corrompu → sauvegarde et repart sur liste vide
            backup = path.with_suffix(".corrupt.json")
            try:
                shutil.copy2(path, backup)
            except OSError as e:
                logger.warning("Cannot back up corrupt %s: %s", path, e)
            logger.warning("Corrupt JSON in %s, starting from an empty table", path)
            return []
        except OSError as e:
            raise RemoteStoreError(f"Cannot read {path}: {e}", table=table) from e

    def _rotate_backups(self, path: Path) -> None:
        if not self.backup_enabled or self.backup_keep <= 0:
            return
        pattern = str(path.with_suffix(".*.bak.json"))
        files = sorted(glob.glob(pattern))
        # garde les plus récents
        if len(files) > self.backup_keep:
            for old in files[: len(files) - self.backup_keep]:
                try:
                    Path(old).unlink(missing_ok=True)
                except OSError as e:
                    logger.warning("Cannot remove old backup %s: %s", old, e)

    def _write_raw(self, table: str, data: Iterable[Mapping[str, Any]]) -> None:
        path = self.path_for(table)
        with self._lock:
            new_dump = json.dumps(list(data), ensure_ascii=False, indent=2, default=_json_default)

            # si contenu identique → ne rien faire
            if path.exists():
                try:
                    if path.read_text(encoding="utf-8") == new_dump:
                        return
                except OSError:
                    pass

            # backup
            if self.backup_enabled and path.exists():
                ts = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
                backup = path.with_suffix(f".{ts}.bak.json")
                try:
                    shutil.copy2(path, backup)
                except OSError as e:
                    logger.warning("Backup of %s failed: %s", path, e)
                self._rotate_backups(path)

            try:
                with path.open("w", encoding="utf-8") as f:
                    f.write(new_dump)
            except OSError as e:
                raise RemoteStoreError(f"Cannot write {path}: {e}", table=table) from e

    # ---------------- CRUD ---------------- #

    # le verrou couvre tout le cycle lecture / modification / écriture

    def select(self, table: str) -> List[Record]:
        with self._lock:
            return self._read_raw(table)

    def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        rec = json.loads(json.dumps(dict(record), default=_json_default))
        k = self.key
        with self._lock:
            data = self._read_raw(table)
            if any(str(d.get(k)) == str(rec.get(k)) for d in data):
                raise RemoteStoreError(f"{table} with {k}={rec.get(k)} already exists", table=table)
            data.append(rec)
            self._write_raw(table, data)
        return rec

    def update(self, table: str, obj_id: str, fields: Mapping[str, Any]) -> Record:
        k = self.key
        patch = json.loads(json.dumps(dict(fields), default=_json_default))
        with self._lock:
            data = self._read_raw(table)
            for idx, existing in enumerate(data):
                if str(existing.get(k)) == str(obj_id):
                    merged = {**existing, **patch}
                    data[idx] = merged
                    self._write_raw(table, data)
                    return merged
        raise RemoteStoreError(f"{table} with {k}={obj_id} not found", table=table)

    def delete(self, table: str, obj_id: str) -> bool:
        k = self.key
        with self._lock:
            data = self._read_raw(table)
            new_data = [d for d in data if str(d.get(k)) != str(obj_id)]
            changed = len(new_data) != len(data)
            if changed:
                self._write_raw(table, new_data)
        return changed
