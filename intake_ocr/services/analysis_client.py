import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from intake_ocr.core.config import get_settings
from intake_ocr.core.errors import (
    InvalidResponseShape, MissingJobLocation, PollTimeout,
    RemoteJobFailed, TransportFailure
)
from intake_ocr.services.endpoint_resolver import CandidateEndpoint

logger = logging.getLogger(__name__)

SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"

Sleep = Callable[[float], Awaitable[Any]]


class JobStatus(str, Enum):
    NOT_STARTED = "notStarted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


@dataclass
class AnalysisJob:
    operation_location: str
    status: JobStatus = JobStatus.NOT_STARTED
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


def describe_http_error(response: httpx.Response) -> str:
    """Extrae el mensaje de error más útil de una respuesta de Azure."""
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            inner = error.get("innererror") or error.get("innerError") or {}
            return error.get("message") or inner.get("message") or str(error)
        if isinstance(error, str):
            return error
        if data.get("message"):
            return data["message"]
    return str(data)


class AnalysisClient:
    """Cliente REST de Document Intelligence: envía un documento y espera el resultado."""

    def __init__(
        self,
        poll_interval: Optional[float] = None,
        max_poll_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        settings = get_settings()
        self.poll_interval = settings.OCR_POLL_INTERVAL if poll_interval is None else poll_interval
        self.max_poll_attempts = settings.OCR_MAX_POLL_ATTEMPTS if max_poll_attempts is None else max_poll_attempts
        self.timeout = settings.HTTP_TIMEOUT if timeout is None else timeout
        self.sleep = sleep
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def submit(
        self,
        candidate: CandidateEndpoint,
        payload: bytes,
        content_type: str,
        api_key: str,
        pages: Optional[str] = None
    ) -> AnalysisJob:
        """
        Envía el documento a un endpoint candidato.

        Args:
            candidate: Endpoint y versión de API a usar
            payload: Bytes del archivo
            content_type: MIME type del archivo
            api_key: API key del recurso
            pages: Rango de páginas (ej: '1-') para PDFs

        Returns:
            AnalysisJob con la URL de Operation-Location
        """
        params = {"api-version": candidate.api_version}
        if pages:
            params["pages"] = pages

        headers = {
            SUBSCRIPTION_KEY_HEADER: api_key,
            "Content-Type": content_type or "application/octet-stream",
        }

        async with self._client() as client:
            try:
                response = await client.post(candidate.url, params=params, content=payload, headers=headers)
            except httpx.HTTPError as e:
                raise TransportFailure(f"Request to {candidate.url} failed: {e}") from e

        if not response.is_success:
            raise TransportFailure(
                f"Request to {candidate.url} failed with status {response.status_code}: "
                f"{describe_http_error(response)}",
                status=response.status_code
            )

        operation_location = response.headers.get("operation-location")
        if not operation_location:
            raise MissingJobLocation()

        logger.debug("Operation-Location: %s", operation_location)
        return AnalysisJob(operation_location=operation_location)

    async def poll(self, job: AnalysisJob, api_key: str) -> Dict[str, Any]:
        """
        Consulta el estado del trabajo hasta que termine.

        Args:
            job: Trabajo devuelto por submit
            api_key: API key del recurso

        Returns:
            El árbol analyzeResult del servicio
        """
        if job.status.is_terminal:
            raise RuntimeError(f"Job already finished with status {job.status.value}")

        headers = {SUBSCRIPTION_KEY_HEADER: api_key}

        async with self._client() as client:
            for attempt in range(1, self.max_poll_attempts + 1):
                await self.sleep(self.poll_interval)

                try:
                    response = await client.get(job.operation_location, headers=headers)
                except httpx.HTTPError as e:
                    raise TransportFailure(f"Polling {job.operation_location} failed: {e}") from e

                if not response.is_success:
                    raise TransportFailure(
                        f"Polling failed with status {response.status_code}: {describe_http_error(response)}",
                        status=response.status_code
                    )

                data = self._parse_status_payload(response)
                job.status = JobStatus(data["status"])
                logger.info("Polling status: %s (attempt %d/%d)", job.status.value, attempt, self.max_poll_attempts)

                if job.status == JobStatus.SUCCEEDED:
                    job.result = data.get("analyzeResult") or {}
                    return job.result

                if job.status == JobStatus.FAILED:
                    job.error = self._failure_reason(data)
                    raise RemoteJobFailed(job.error)

        job.status = JobStatus.FAILED
        job.error = "timeout"
        raise PollTimeout(self.max_poll_attempts)

    @staticmethod
    def _parse_status_payload(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseShape("Polling response is not valid JSON") from e

        if not isinstance(data, dict):
            raise InvalidResponseShape("Polling response is not a JSON object")

        status = data.get("status")
        if status not in {s.value for s in JobStatus}:
            raise InvalidResponseShape(f"Unexpected job status in polling response: {status!r}")

        return data

    @staticmethod
    def _failure_reason(data: Dict[str, Any]) -> str:
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        if data.get("errors"):
            return str(data["errors"])
        return "unknown error"
