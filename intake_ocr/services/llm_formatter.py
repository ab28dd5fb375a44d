import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from intake_ocr.core.config import get_settings
from intake_ocr.core.errors import (
    EmptyCompletion, EmptyOcrText, InvalidResponseShape, InvalidTemplate,
    LlmRequestFailed, TransportFailure
)
from intake_ocr.core.logging_config import mask_key
from intake_ocr.models.requests import LlmConfig
from intake_ocr.services.analysis_client import Sleep, describe_http_error
from intake_ocr.services.endpoint_resolver import CandidateEndpoint, resolve_chat_candidates

logger = logging.getLogger(__name__)

PLACEHOLDER = "{{OCR_RESULT}}"
TRUNCATION_MARKER = "\n... [truncated]"


def limit_text(text: str, max_chars: int) -> str:
    """Recorta el texto al máximo de caracteres y agrega una marca de truncado."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def fill_template(prompt_template: str, text: str, max_chars: int = 0) -> str:
    """
    Reemplaza el marcador {{OCR_RESULT}} por el texto OCR.

    Raises:
        InvalidTemplate: si la plantilla no contiene el marcador
    """
    if PLACEHOLDER not in (prompt_template or ""):
        raise InvalidTemplate(f"Prompt template must contain the {PLACEHOLDER} placeholder")
    return prompt_template.replace(PLACEHOLDER, limit_text(text, max_chars), 1)


class LlmFormatter:
    """Cliente de Azure OpenAI que formatea el texto OCR según una plantilla."""

    def __init__(
        self,
        max_input_chars: Optional[int] = None,
        max_retries: Optional[int] = None,
        rate_limit_backoff: Optional[float] = None,
        timeout: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.settings = get_settings()
        self.max_input_chars = self.settings.LLM_MAX_INPUT_CHARS if max_input_chars is None else max_input_chars
        self.max_retries = self.settings.LLM_MAX_RETRIES if max_retries is None else max_retries
        self.rate_limit_backoff = (
            self.settings.LLM_RATE_LIMIT_BACKOFF if rate_limit_backoff is None else rate_limit_backoff
        )
        self.timeout = self.settings.HTTP_TIMEOUT if timeout is None else timeout
        self.sleep = sleep
        self.transport = transport

    def build_request(self, user_content: str, max_tokens: Optional[int] = None) -> Dict[str, Any]:
        return {
            "messages": [
                {"role": "system", "content": self.settings.LLM_SYSTEM_PROMPT},
                {"role": "user", "content": user_content},
            ],
            "temperature": 0.0,
            "max_tokens": max_tokens or self.settings.LLM_MAX_TOKENS,
            "top_p": 0.95,
            "frequency_penalty": 0,
            "presence_penalty": 0,
        }

    async def format(self, text: str, prompt_template: str, config: LlmConfig) -> str:
        """
        Formatea el texto OCR con el modelo desplegado en Azure OpenAI.

        Args:
            text: Texto extraído por OCR
            prompt_template: Plantilla con el marcador {{OCR_RESULT}}
            config: Configuración de Azure OpenAI

        Returns:
            Texto generado por el modelo
        """
        if not text:
            raise EmptyOcrText()

        config.require_complete()
        if len(text) > self.max_input_chars:
            logger.info("OCR text too long, truncating: %d -> %d chars", len(text), self.max_input_chars)
        prompt = fill_template(prompt_template, text, self.max_input_chars)

        candidates = resolve_chat_candidates(config.endpoint, config.deployment_name)
        logger.info(
            "Sending chat completion request (deployment=%s, key=%s)",
            config.deployment_name, mask_key(config.api_key)
        )
        data = await self.post_chat(candidates, self.build_request(prompt), config.api_key)
        return self._first_completion(data)

    async def post_chat(
        self,
        candidates: List[CandidateEndpoint],
        body: Dict[str, Any],
        api_key: str
    ) -> Dict[str, Any]:
        """
        Envía la solicitud de chat. Un 429 se reintenta en el mismo endpoint
        tras la espera configurada; un 404 pasa a la siguiente versión de API;
        cualquier otro error se propaga de inmediato.
        """
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "api-key": api_key,
        }

        response = None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for candidate in candidates:
                retries = 0
                while True:
                    try:
                        response = await client.post(
                            candidate.url,
                            params={"api-version": candidate.api_version},
                            json=body,
                            headers=headers
                        )
                    except httpx.HTTPError as e:
                        raise TransportFailure(
                            f"No response from Azure OpenAI. Check the endpoint and network access: {e}"
                        ) from e

                    if response.status_code == 429 and retries < self.max_retries:
                        retries += 1
                        logger.warning(
                            "Rate limited by Azure OpenAI, waiting %.0fs before retry %d/%d",
                            self.rate_limit_backoff, retries, self.max_retries
                        )
                        await self.sleep(self.rate_limit_backoff)
                        continue
                    break

                if response.status_code == 404:
                    logger.warning("Chat endpoint not found: %s", candidate.describe())
                    continue
                break

        if response is None:
            raise LlmRequestFailed("No Azure OpenAI endpoint could be built from the configuration")

        self._raise_for_status(response)

        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseShape("Azure OpenAI response is not valid JSON") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response):
        if response.is_success:
            return

        status = response.status_code
        if status == 401:
            raise LlmRequestFailed(
                "Azure OpenAI authentication error: the API key may be wrong or expired", status=status
            )
        if status == 404:
            raise LlmRequestFailed(
                "Azure OpenAI endpoint not found: check the endpoint URL and deployment name", status=status
            )
        raise LlmRequestFailed(f"Azure OpenAI error ({status}): {describe_http_error(response)}", status=status)

    @staticmethod
    def _first_completion(data: Any) -> str:
        if not isinstance(data, dict):
            raise InvalidResponseShape("Azure OpenAI response is not a JSON object")

        choices = data.get("choices")
        if not choices:
            raise EmptyCompletion()

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict) or not isinstance(message.get("content"), str):
            raise InvalidResponseShape("Unexpected Azure OpenAI response format: missing message content")

        return message["content"]
