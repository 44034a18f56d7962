# abcinvoice/services/pdf_service.py
from __future__ import annotations
import logging
import os
from pathlib import Path
from shutil import which
from typing import Any, Optional, Union

import pdfkit
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from abcinvoice.errors import PdfRenderError
from abcinvoice.models.common import to_decimal
from abcinvoice.models.invoice import Invoice, format_money

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

WINDOWS_CANDIDATES = (
    r"C:\Program Files\wkhtmltopdf\bin\wkhtmltopdf.exe",
    r"C:\Program Files (x86)\wkhtmltopdf\bin\wkhtmltopdf.exe",
)


# ---------- Filtres Jinja ----------

def _money(value: Any, currency: Optional[str]) -> str:
    return format_money(to_decimal(value), currency)


def _pct(value: Any) -> str:
    d = to_decimal(value)
    return format(d.normalize(), "f") if d else "0"


def _datefmt(value: Any) -> str:
    return value.isoformat() if hasattr(value, "isoformat") else str(value or "")


def _nl2br(value: Any) -> Markup:
    return Markup("<br>").join(escape(line) for line in str(value or "").splitlines())


def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
    )
    env.filters["money"] = _money
    env.filters["pct"] = _pct
    env.filters["datefmt"] = _datefmt
    env.filters["nl2br"] = _nl2br
    return env


def render_html(inv: Invoice) -> str:
    """HTML de la facture; le même rendu sert à l'aperçu et au PDF."""
    tpl = _environment().get_template("invoice.html")
    return tpl.render(invoice=inv, company=inv.company, client=inv.client, totals=inv.totals())


# ---------- Localisation wkhtmltopdf ----------

def _clean_path(p: str) -> str:
    """Corrige 'C\\:\\Program Files\\...' -> 'C:\\Program Files\\...' et normalise."""
    if not p:
        return ""
    p = p.strip().strip('"').strip("'")
    p = p.replace("\\:", ":")
    return os.path.normpath(p)


def find_wkhtmltopdf(configured: Optional[str] = None) -> Optional[str]:
    """
    Localise wkhtmltopdf :
    - chemin configuré (settings / variables d'env)
    - chemins Windows connus
    - PATH
    """
    if configured:
        path = _clean_path(configured)
        if Path(path).is_file():
            return path
        logger.warning("Configured wkhtmltopdf not found: %s", configured)
    for c in WINDOWS_CANDIDATES:
        if Path(c).is_file():
            return c
    found = which("wkhtmltopdf")
    return _clean_path(found) if found else None


# ---------- Service ----------

class PdfService:
    def __init__(self, wkhtmltopdf_path: Optional[str] = None, engine: str = "auto"):
        self.wkhtmltopdf_path = wkhtmltopdf_path
        self.engine = engine

    def _render_wkhtmltopdf(self, html: str, exe: str) -> bytes:
        config = pdfkit.configuration(wkhtmltopdf=exe)
        options = {
            "enable-local-file-access": None,
            "quiet": "",
            "encoding": "UTF-8",
        }
        return pdfkit.from_string(html, False, options=options, configuration=config)

    def _render_weasyprint(self, html: str) -> bytes:
        try:
            from weasyprint import HTML
        except (ImportError, OSError) as e:
            raise PdfRenderError(
                "No wkhtmltopdf found and WeasyPrint is not usable. "
                "Install wkhtmltopdf or WeasyPrint's system libraries.\n"
                f"Details: {e}"
            ) from e
        try:
            return HTML(string=html, base_url=str(TEMPLATES_DIR)).write_pdf()
        except Exception as e:  # erreurs de mise en page, polices, images
            raise PdfRenderError(f"WeasyPrint failed: {e}") from e

    def render(self, inv: Invoice) -> bytes:
        """
        Génère le PDF en mémoire.
        wkhtmltopdf (pdfkit) en priorité, sinon fallback WeasyPrint.
        """
        html = render_html(inv)

        if self.engine in ("auto", "wkhtmltopdf"):
            exe = find_wkhtmltopdf(self.wkhtmltopdf_path)
            if exe:
                try:
                    return self._render_wkhtmltopdf(html, exe)
                except OSError as e:
                    if self.engine == "wkhtmltopdf":
                        raise PdfRenderError(f"wkhtmltopdf failed: {e}") from e
                    logger.warning("wkhtmltopdf failed (%s). Falling back to WeasyPrint...", e)
            elif self.engine == "wkhtmltopdf":
                raise PdfRenderError("wkhtmltopdf not found. Set WKHTMLTOPDF_PATH or install it.")

        return self._render_weasyprint(html)

    def export(self, inv: Invoice, target: Union[str, Path]) -> Path:
        """Écrit le PDF; `target` est un dossier (nom par défaut) ou un fichier."""
        out = Path(target)
        if out.is_dir():
            out = out / inv.pdf_filename
        out.parent.mkdir(parents=True, exist_ok=True)
        data = self.render(inv)
        out.write_bytes(data)
        logger.info("Invoice %s exported to %s", inv.invoice_number, out)
        return out
