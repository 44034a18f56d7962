# abcinvoice/config.py
from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, Field

from abcinvoice.storage.json_store import JsonStore
from abcinvoice.storage.remote import RemoteStore

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_DATA_DIR = ROOT_DIR / "data"

PdfEngine = Literal["auto", "wkhtmltopdf", "weasyprint"]


class Settings(BaseModel):
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    data_dir: Path = DEFAULT_DATA_DIR
    wkhtmltopdf_path: Optional[str] = None
    pdf_engine: PdfEngine = "auto"
    page_size: int = Field(default=5, ge=1)
    toast_timeout_ms: int = Field(default=3000, ge=0)

    @property
    def has_remote_backend(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Ordre de priorité:
    - variables d'environnement
    - <data_dir>/settings.json (clés supabase.url/key, pdf.wkhtmltopdf_path, pdf.engine, ...)
    - valeurs par défaut
    """
    env = os.environ if environ is None else environ
    data_dir = Path(env.get("ABCINVOICE_DATA_DIR") or DEFAULT_DATA_DIR)
    s = _load_json(data_dir / "settings.json")
    supa = s.get("supabase", {}) if isinstance(s.get("supabase"), dict) else {}
    pdf = s.get("pdf", {}) if isinstance(s.get("pdf"), dict) else {}
    ui = s.get("ui", {}) if isinstance(s.get("ui"), dict) else {}

    values: Dict[str, Any] = {
        "data_dir": data_dir,
        "supabase_url": env.get("SUPABASE_URL") or supa.get("url"),
        "supabase_key": env.get("SUPABASE_KEY") or supa.get("key"),
        "wkhtmltopdf_path": (
            env.get("WKHTMLTOPDF_PATH") or env.get("WKHTMLTOPDF") or pdf.get("wkhtmltopdf_path")
        ),
        "pdf_engine": env.get("ABCINVOICE_PDF_ENGINE") or pdf.get("engine") or "auto",
    }
    if ui.get("page_size"):
        values["page_size"] = ui["page_size"]
    if ui.get("toast_timeout_ms") is not None:
        values["toast_timeout_ms"] = ui["toast_timeout_ms"]
    return Settings(**values)


def build_store(settings: Settings) -> RemoteStore:
    if settings.has_remote_backend:
        from abcinvoice.storage.supabase_store import SupabaseStore

        logger.info("Using Supabase backend at %s", settings.supabase_url)
        return SupabaseStore.from_credentials(settings.supabase_url, settings.supabase_key)  # type: ignore[arg-type]
    logger.warning("SUPABASE_URL/SUPABASE_KEY not set, storing companies and clients in %s", settings.data_dir)
    return JsonStore(settings.data_dir)
