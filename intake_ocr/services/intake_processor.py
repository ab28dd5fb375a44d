import logging
from typing import Dict, Optional

from intake_ocr.core.config import get_settings
from intake_ocr.core.errors import IntakeError
from intake_ocr.models.requests import LlmConfig, OcrConfig
from intake_ocr.services.llm_formatter import LlmFormatter
from intake_ocr.services.ocr_orchestrator import OcrOrchestrator
from intake_ocr.services.text_extractor import extract_text
from intake_ocr.utils.metrics import TimingTracker

logger = logging.getLogger(__name__)


class IntakeProcessor:
    """Orquestador principal: OCR del formulario, extracción de texto y formateo con LLM."""

    def __init__(
        self,
        orchestrator: Optional[OcrOrchestrator] = None,
        formatter: Optional[LlmFormatter] = None
    ):
        self.settings = get_settings()
        self.orchestrator = orchestrator or OcrOrchestrator()
        self.formatter = formatter or LlmFormatter()

    async def run_ocr(
        self,
        payload: bytes,
        filename: str,
        ocr_config: OcrConfig,
        content_type: Optional[str] = None,
        include_raw: bool = False
    ) -> Dict:
        """
        Ejecuta solo el OCR y la extracción de texto.

        Args:
            payload: Bytes del archivo
            filename: Nombre del archivo
            ocr_config: Configuración de Azure Document Intelligence
            content_type: MIME type declarado (opcional)
            include_raw: Incluir el árbol analyzeResult en la respuesta

        Returns:
            Diccionario con el texto extraído y las métricas de tiempo
        """
        timing = TimingTracker()

        with timing.measure("ocr_time_ms"):
            outcome = await self.orchestrator.analyze_document(payload, filename, ocr_config, content_type)

        with timing.measure("extraction_time_ms"):
            extracted_text = extract_text(outcome.result)

        return {
            "success": True,
            "model_id": outcome.model_id,
            "api_url": outcome.candidate.url,
            "api_version": outcome.candidate.api_version,
            "extracted_text": extracted_text,
            "raw_result": outcome.result if include_raw else None,
            "timing": timing.get_timings(),
        }

    async def process_upload(
        self,
        payload: bytes,
        filename: str,
        ocr_config: OcrConfig,
        llm_config: Optional[LlmConfig] = None,
        prompt_template: Optional[str] = None,
        content_type: Optional[str] = None,
        include_raw: bool = False
    ) -> Dict:
        """
        Procesa un formulario subido: OCR y luego formateo con el LLM.

        Un error de OCR se propaga. Un error del LLM se registra en
        'llm_error' y el texto OCR se conserva en la respuesta.
        """
        result = await self.run_ocr(payload, filename, ocr_config, content_type, include_raw)
        result["formatted_text"] = None
        result["llm_error"] = None

        if not result["extracted_text"]:
            logger.info("No text extracted from %s, skipping LLM formatting", filename)
            return result

        if llm_config is None or not llm_config.is_configured:
            logger.info("No LLM configured, returning OCR text only")
            return result

        template = prompt_template or self.settings.DEFAULT_PROMPT_TEMPLATE
        timing = TimingTracker(result["timing"])

        with timing.measure("llm_time_ms"):
            try:
                result["formatted_text"] = await self.formatter.format(
                    result["extracted_text"], template, llm_config
                )
            except IntakeError as e:
                logger.error("LLM formatting failed for %s: %s", filename, e)
                result["llm_error"] = f"LLM processing error: {e.message}"

        result["timing"] = timing.get_timings()
        return result

    async def format_text(self, text: str, llm_config: LlmConfig, prompt_template: Optional[str] = None) -> Dict:
        """Formatea un texto ya extraído (reintento del paso LLM sin repetir el OCR)."""
        timing = TimingTracker()
        with timing.measure("llm_time_ms"):
            formatted = await self.formatter.format(
                text, prompt_template or self.settings.DEFAULT_PROMPT_TEMPLATE, llm_config
            )

        return {
            "success": True,
            "formatted_text": formatted,
            "timing": timing.get_timings(),
        }
