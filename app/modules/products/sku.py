# app/modules/products/sku.py
import re
import unicodedata
from typing import Optional


def _slug(value: Optional[str], length: int) -> str:
    if not value:
        return "GEN"[:length]
    ascii_value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    cleaned = re.sub(r"[^A-Za-z0-9]", "", ascii_value).upper()
    return cleaned[:length] or "GEN"[:length]


def generate_sku(nombre: str, marca: Optional[str], tipo: Optional[str], sequence: int) -> str:
    """
    SKU determinístico: MARCA-TIPO-NOMBRE-SECUENCIA, p. ej. SAM-PAN-GALAXYA-0007
    """
    return f"{_slug(marca, 3)}-{_slug(tipo, 3)}-{_slug(nombre, 8)}-{sequence:04d}"
