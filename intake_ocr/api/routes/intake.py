from fastapi import APIRouter, UploadFile, File, Form, HTTPException
from typing import Optional
from datetime import datetime

from intake_ocr.core.config import get_settings
from intake_ocr.models.requests import FormatRequest, LlmConfig, OcrConfig
from intake_ocr.models.responses import FormatResponse, OcrResponse, ProcessResponse
from intake_ocr.services.intake_processor import IntakeProcessor

router = APIRouter(prefix="/intake", tags=["Intake"])

processor = IntakeProcessor()

SUPPORTED_EXTENSIONS = (".pdf", ".jpg", ".jpeg", ".png", ".tif", ".tiff", ".bmp", ".heif", ".gif")


async def _read_upload(file: UploadFile) -> bytes:
    if not file.filename or not file.filename.lower().endswith(SUPPORTED_EXTENSIONS):
        raise HTTPException(
            status_code=400,
            detail="Only PDF and image files are supported"
        )

    payload = await file.read()
    if not payload:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    return payload


@router.post("/ocr", response_model=OcrResponse)
async def ocr_document(
    file: UploadFile = File(...),
    ocr_endpoint: Optional[str] = Form(default=None),
    ocr_api_key: Optional[str] = Form(default=None),
    ocr_model_id: Optional[str] = Form(default=None),
    include_raw: bool = Form(default=False)
):
    """
    Ejecuta el OCR de un formulario y retorna el texto extraído.

    - **file**: Archivo PDF o imagen
    - **ocr_endpoint / ocr_api_key / ocr_model_id**: si se omiten, se usan los del entorno
    - **include_raw**: incluir el árbol analyzeResult completo
    """
    payload = await _read_upload(file)
    ocr_config = OcrConfig.from_form(get_settings(), ocr_endpoint, ocr_api_key, ocr_model_id)

    result = await processor.run_ocr(
        payload=payload,
        filename=file.filename,
        ocr_config=ocr_config,
        content_type=file.content_type,
        include_raw=include_raw
    )

    return OcrResponse(**result, timestamp=datetime.now())


@router.post("/process", response_model=ProcessResponse)
async def process_document(
    file: UploadFile = File(...),
    ocr_endpoint: Optional[str] = Form(default=None),
    ocr_api_key: Optional[str] = Form(default=None),
    ocr_model_id: Optional[str] = Form(default=None),
    llm_endpoint: Optional[str] = Form(default=None),
    llm_api_key: Optional[str] = Form(default=None),
    llm_deployment_name: Optional[str] = Form(default=None),
    prompt_template: Optional[str] = Form(default=None),
    include_raw: bool = Form(default=False)
):
    """
    Procesa completamente un formulario: OCR y formateo con Azure OpenAI.

    Si el LLM falla, la respuesta conserva el texto OCR e informa el error en llm_error.
    """
    payload = await _read_upload(file)
    settings = get_settings()

    result = await processor.process_upload(
        payload=payload,
        filename=file.filename,
        ocr_config=OcrConfig.from_form(settings, ocr_endpoint, ocr_api_key, ocr_model_id),
        llm_config=LlmConfig.from_form(settings, llm_endpoint, llm_api_key, llm_deployment_name),
        prompt_template=prompt_template,
        content_type=file.content_type,
        include_raw=include_raw
    )

    return ProcessResponse(**result, timestamp=datetime.now())


@router.post("/format", response_model=FormatResponse)
async def format_text(request: FormatRequest):
    """
    Formatea un texto OCR ya extraído con Azure OpenAI.

    - **text**: texto OCR
    - **prompt_template**: plantilla con {{OCR_RESULT}}; por defecto la del entorno
    - **llm**: configuración de Azure OpenAI; los campos vacíos toman el valor del entorno
    """
    settings = get_settings()
    if request.llm:
        llm_config = LlmConfig.from_form(
            settings, request.llm.endpoint, request.llm.api_key, request.llm.deployment_name
        )
    else:
        llm_config = LlmConfig.from_form(settings)

    result = await processor.format_text(request.text, llm_config, request.prompt_template)

    return FormatResponse(**result, timestamp=datetime.now())
