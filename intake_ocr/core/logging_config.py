import logging
from typing import Optional

from intake_ocr.core.config import Settings, get_settings


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configura el logging raíz con el nivel y formato de la configuración."""
    settings = settings or get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
    )
    # httpx registra cada request en INFO, incluyendo URLs completas
    logging.getLogger("httpx").setLevel(logging.WARNING)


def mask_key(api_key: Optional[str]) -> str:
    """Enmascara una API key dejando visibles solo los últimos 4 caracteres."""
    if not api_key:
        return "<empty>"
    return "***" + api_key[-4:]
