from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from intake_ocr.core.config import Settings
from intake_ocr.core.errors import ConfigIncomplete


class OcrConfig(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    endpoint: str = Field(default="", description="Endpoint del recurso de Azure Document Intelligence")
    api_key: str = Field(default="", description="API key de Azure Document Intelligence")
    model_id: Optional[str] = Field(None, description="ID del modelo custom. Si no se indica, usa prebuilt-layout")

    def require_complete(self):
        """Valida que existan endpoint y API key antes de cualquier llamada de red."""
        if not self.endpoint.strip() or not self.api_key.strip():
            raise ConfigIncomplete(
                "Azure OCR configuration is incomplete. Please provide the endpoint and API key."
            )

    @classmethod
    def from_form(
        cls,
        settings: Settings,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        model_id: Optional[str] = None
    ) -> "OcrConfig":
        """Combina los valores del formulario con los valores por defecto del entorno."""
        return cls(
            endpoint=endpoint or settings.OCR_ENDPOINT,
            api_key=api_key or settings.OCR_API_KEY,
            model_id=model_id or settings.OCR_MODEL_ID or None
        )


class LlmConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(default="", description="Endpoint del recurso de Azure OpenAI")
    api_key: str = Field(default="", description="API key de Azure OpenAI")
    deployment_name: str = Field(default="", description="Nombre del deployment del modelo")

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint.strip())

    def require_complete(self):
        if not self.endpoint.strip() or not self.api_key.strip() or not self.deployment_name.strip():
            raise ConfigIncomplete(
                "Azure OpenAI configuration is incomplete. Please provide the endpoint, API key and deployment name."
            )

    @classmethod
    def from_form(
        cls,
        settings: Settings,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        deployment_name: Optional[str] = None
    ) -> "LlmConfig":
        return cls(
            endpoint=endpoint or settings.LLM_ENDPOINT,
            api_key=api_key or settings.LLM_API_KEY,
            deployment_name=deployment_name or settings.LLM_DEPLOYMENT_NAME
        )


class FormatRequest(BaseModel):
    text: str = Field(..., description="Texto OCR a formatear")
    prompt_template: Optional[str] = Field(None, description="Plantilla con el marcador {{OCR_RESULT}}")
    llm: Optional[LlmConfig] = Field(None, description="Configuración de Azure OpenAI. Si no se indica, usa el entorno")
