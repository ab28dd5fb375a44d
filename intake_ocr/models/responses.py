from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict, Optional, Any
from datetime import datetime


class ModelSummary(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str = Field(..., description="ID del modelo")
    description: str = Field(..., description="Descripción del modelo")


class OcrConnectionReport(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    success: bool = Field(..., description="Indica si la conexión (y el modelo, si se indicó) es válida")
    message: str = Field(..., description="Mensaje descriptivo del resultado")
    api_version: Optional[str] = Field(None, description="Versión de API que respondió")
    models: List[ModelSummary] = Field(default_factory=list, description="Modelos disponibles en el recurso")
    model_found: bool = Field(default=False, description="Indica si el modelo indicado existe con ese ID exacto")
    matched_model_id: Optional[str] = Field(None, description="ID del modelo encontrado por la regla de coincidencia")
    suggestion: Optional[str] = Field(None, description="Sugerencia cuando la coincidencia no es exacta")


class LlmConnectionResponse(BaseModel):
    success: bool = Field(..., description="Indica si Azure OpenAI respondió correctamente")
    timestamp: datetime = Field(default_factory=datetime.now, description="Timestamp de la prueba")


class OcrResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    success: bool = Field(..., description="Indica si el OCR fue exitoso")
    model_id: str = Field(..., description="Modelo de Document Intelligence utilizado")
    api_url: str = Field(..., description="Endpoint que completó el análisis")
    api_version: str = Field(..., description="Versión de API que completó el análisis")
    extracted_text: str = Field(..., description="Texto extraído del documento")
    raw_result: Optional[Dict[str, Any]] = Field(None, description="Árbol analyzeResult completo (opcional)")
    timing: Dict[str, float] = Field(..., description="Métricas de tiempo en milisegundos")
    timestamp: datetime = Field(default_factory=datetime.now, description="Timestamp del procesamiento")


class ProcessResponse(OcrResponse):
    formatted_text: Optional[str] = Field(None, description="Texto formateado por el LLM")
    llm_error: Optional[str] = Field(None, description="Error del LLM; el texto OCR se conserva")


class FormatResponse(BaseModel):
    success: bool = Field(..., description="Indica si el formateo fue exitoso")
    formatted_text: str = Field(..., description="Texto generado por el LLM")
    timing: Dict[str, float] = Field(..., description="Métricas de tiempo en milisegundos")
    timestamp: datetime = Field(default_factory=datetime.now, description="Timestamp del formateo")


class ErrorResponse(BaseModel):
    success: bool = Field(default=False, description="Siempre false")
    error: str = Field(..., description="Mensaje de error para mostrar al usuario")
