from fastapi import APIRouter
from datetime import datetime

from intake_ocr.core.config import get_settings
from intake_ocr.models.requests import LlmConfig, OcrConfig
from intake_ocr.models.responses import LlmConnectionResponse, OcrConnectionReport
from intake_ocr.services.connection_tester import ConnectionTester

router = APIRouter(prefix="/connection", tags=["Connection"])

tester = ConnectionTester()


@router.post("/ocr", response_model=OcrConnectionReport)
async def check_ocr_connection(config: OcrConfig):
    """
    Prueba la conexión con Azure Document Intelligence y busca el modelo indicado.

    Los campos vacíos se completan con la configuración del entorno.
    """
    config = OcrConfig.from_form(get_settings(), config.endpoint, config.api_key, config.model_id)
    return await tester.test_ocr_connection(config)


@router.post("/llm", response_model=LlmConnectionResponse)
async def check_llm_connection(config: LlmConfig):
    """Prueba la conexión con el deployment de Azure OpenAI."""
    config = LlmConfig.from_form(get_settings(), config.endpoint, config.api_key, config.deployment_name)
    success = await tester.test_llm_connection(config)

    return LlmConnectionResponse(success=success, timestamp=datetime.now())
