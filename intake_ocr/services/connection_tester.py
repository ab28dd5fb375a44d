import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from intake_ocr.core.config import get_settings
from intake_ocr.core.errors import IntakeError
from intake_ocr.core.logging_config import mask_key
from intake_ocr.models.requests import LlmConfig, OcrConfig
from intake_ocr.models.responses import ModelSummary, OcrConnectionReport
from intake_ocr.services.analysis_client import SUBSCRIPTION_KEY_HEADER
from intake_ocr.services.endpoint_resolver import (
    clean_model_id, resolve_chat_candidates, resolve_model_list_candidates
)
from intake_ocr.services.llm_formatter import LlmFormatter

logger = logging.getLogger(__name__)

MODEL_LIST_KEYS = ("value", "models", "modelList")
LLM_PING_PROMPT = "This is a connection test. Reply with 'OK'."


def _model_id(model: Dict[str, Any]) -> str:
    return str(model.get("modelId") or model.get("id") or "")


def match_model_id(models: List[Dict[str, Any]], requested: str) -> Tuple[Optional[Dict[str, Any]], str]:
    """
    Busca un modelo por ID con una regla determinista.

    Precedencia: coincidencia exacta, luego exacta sin distinguir mayúsculas,
    luego contención de subcadena en cualquier sentido (sin distinguir mayúsculas).
    Dentro de cada nivel gana el primer modelo en el orden del listado.

    Returns:
        Tupla (modelo, tipo de coincidencia: 'exact' | 'case_insensitive' | 'partial' | '')
    """
    if not requested:
        return None, ""

    wanted = requested.lower()
    rules = [
        ("exact", lambda model_id: model_id == requested),
        ("case_insensitive", lambda model_id: model_id.lower() == wanted),
        ("partial", lambda model_id: wanted in model_id.lower() or model_id.lower() in wanted),
    ]

    for kind, rule in rules:
        for model in models:
            model_id = _model_id(model)
            if model_id and rule(model_id):
                return model, kind

    return None, ""


class ConnectionTester:
    """Pruebas de conectividad para los servicios de OCR y LLM."""

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = get_settings()
        self.timeout = self.settings.HTTP_TIMEOUT if timeout is None else timeout
        self.transport = transport

    async def list_models(self, config: OcrConfig) -> Tuple[str, List[Dict[str, Any]]]:
        """
        Lista los modelos del recurso probando cada generación de la API.

        Returns:
            Tupla (versión de API que respondió, lista de modelos)
        """
        config.require_complete()
        last_error = "no endpoint candidates"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for candidate in resolve_model_list_candidates(config.endpoint):
                try:
                    response = await client.get(
                        candidate.url,
                        params={"api-version": candidate.api_version},
                        headers={SUBSCRIPTION_KEY_HEADER: config.api_key}
                    )
                    response.raise_for_status()
                    data = response.json()
                except (httpx.HTTPError, ValueError) as e:
                    logger.info("Model listing failed at %s: %s", candidate.describe(), e)
                    last_error = str(e)
                    continue

                models = []
                if isinstance(data, dict):
                    for key in MODEL_LIST_KEYS:
                        if isinstance(data.get(key), list):
                            models = [m for m in data[key] if isinstance(m, dict)]
                            break

                logger.info("Model listing succeeded at %s (%d models)", candidate.describe(), len(models))
                return candidate.api_version, models

        raise IntakeError(f"Connection to Azure OCR failed: {last_error}")

    async def test_ocr_connection(self, config: OcrConfig) -> OcrConnectionReport:
        """Verifica la conexión y, si se indica, la existencia del modelo custom."""
        try:
            api_version, models = await self.list_models(config)
        except IntakeError as e:
            return OcrConnectionReport(success=False, message=e.message)

        summaries = [
            ModelSummary(
                model_id=_model_id(m),
                description=m.get("description") or m.get("displayName") or "No description"
            )
            for m in models
        ]
        report = OcrConnectionReport(
            success=True,
            api_version=api_version,
            models=summaries,
            message="Connection succeeded."
        )

        requested = clean_model_id(config.model_id)
        if not requested:
            return report

        model, kind = match_model_id(models, requested)
        if model is None:
            report.success = False
            report.message = f"Connection succeeded, but custom model '{requested}' was not found."
            return report

        report.matched_model_id = _model_id(model)
        if kind == "exact":
            report.model_found = True
            report.message = f"Connection succeeded. Custom model '{requested}' was found."
        else:
            report.suggestion = (
                f"'{requested}' does not exactly match any model. "
                f"Did you mean '{report.matched_model_id}'?"
            )
        return report

    async def test_llm_connection(self, config: LlmConfig) -> bool:
        """Envía una solicitud mínima al deployment. Cualquier fallo retorna False."""
        try:
            config.require_complete()
            logger.info(
                "Testing Azure OpenAI connection (endpoint=%s, deployment=%s, key=%s)",
                config.endpoint, config.deployment_name, mask_key(config.api_key)
            )
            formatter = LlmFormatter(max_retries=0, timeout=10.0, transport=self.transport)
            candidates = resolve_chat_candidates(config.endpoint, config.deployment_name)[:1]
            body = {
                "messages": [{"role": "user", "content": LLM_PING_PROMPT}],
                "max_tokens": 20,
                "temperature": 0.0,
            }
            await formatter.post_chat(candidates, body, config.api_key)
        except IntakeError as e:
            logger.warning("Azure OpenAI connection test failed: %s", e)
            return False

        return True
