import logging
import mimetypes
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from intake_ocr.core.config import get_settings
from intake_ocr.core.errors import AllCandidatesExhausted, ConfigIncomplete, IntakeError
from intake_ocr.models.requests import OcrConfig
from intake_ocr.services.analysis_client import AnalysisClient
from intake_ocr.services.endpoint_resolver import (
    CandidateEndpoint, clean_model_id, resolve_analyze_candidates
)

logger = logging.getLogger(__name__)

ALL_PAGES = "1-"


@dataclass(frozen=True)
class OcrOutcome:
    candidate: CandidateEndpoint
    model_id: str
    result: Dict[str, Any]


def guess_content_type(filename: Optional[str], content_type: Optional[str] = None) -> str:
    """Determina el MIME type del archivo, priorizando el declarado por el cliente."""
    if content_type and content_type != "application/octet-stream":
        return content_type

    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or "application/octet-stream"


class OcrOrchestrator:
    """Prueba cada endpoint candidato hasta que uno complete el análisis."""

    def __init__(self, client: Optional[AnalysisClient] = None):
        self.settings = get_settings()
        self.client = client or AnalysisClient()

    async def try_all(
        self,
        candidates: List[CandidateEndpoint],
        payload: bytes,
        content_type: str,
        api_key: str,
        pages: Optional[str] = None,
        model_id: str = ""
    ) -> OcrOutcome:
        """
        Ejecuta submit + poll sobre cada candidato en orden.

        Los fallos de cada candidato se registran y se continúa con el siguiente;
        solo si todos fallan se propaga el último error.
        """
        if not candidates:
            raise ConfigIncomplete("No OCR endpoint candidates could be built from the configuration")

        last_error: Optional[Exception] = None

        for index, candidate in enumerate(candidates, start=1):
            logger.info("Trying OCR endpoint %d/%d: %s", index, len(candidates), candidate.describe())
            try:
                job = await self.client.submit(candidate, payload, content_type, api_key, pages=pages)
                result = await self.client.poll(job, api_key)
            except IntakeError as e:
                logger.warning("OCR endpoint %s failed: %s", candidate.describe(), e)
                last_error = e
                continue

            logger.info("OCR endpoint succeeded: %s", candidate.describe())
            return OcrOutcome(candidate=candidate, model_id=model_id, result=result)

        logger.error("All %d OCR endpoints failed", len(candidates))
        raise AllCandidatesExhausted(last_error)

    async def analyze_document(
        self,
        payload: bytes,
        filename: str,
        config: OcrConfig,
        content_type: Optional[str] = None
    ) -> OcrOutcome:
        """
        Analiza un documento con la configuración indicada.

        Args:
            payload: Bytes del archivo (PDF o imagen)
            filename: Nombre del archivo
            config: Configuración de Azure Document Intelligence
            content_type: MIME type declarado por el cliente (opcional)

        Returns:
            OcrOutcome con el candidato exitoso y el árbol analyzeResult
        """
        config.require_complete()

        model_id = clean_model_id(config.model_id) or self.settings.OCR_DEFAULT_MODEL
        candidates = resolve_analyze_candidates(config.endpoint, model_id)
        mime_type = guess_content_type(filename, content_type)
        pages = ALL_PAGES if "pdf" in mime_type else None

        logger.info(
            "Processing file %s (%s, %d bytes) with model %s",
            filename, mime_type, len(payload), model_id
        )

        return await self.try_all(
            candidates, payload, mime_type, config.api_key, pages=pages, model_id=model_id
        )
