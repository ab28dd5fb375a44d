import re
from dataclasses import dataclass
from typing import List, Optional


DEFAULT_MODEL_ID = "prebuilt-layout"

# Generaciones de la API de Document Intelligence, de la más reciente a la más antigua.
# (ruta base, versión, ruta legacy de modelos custom)
ANALYZE_API_GENERATIONS = [
    ("documentintelligence", "2023-07-31", False),
    ("formrecognizer", "2023-07-31", False),
    ("formrecognizer", "2022-08-31", False),
    ("formrecognizer", "2021-09-30", True),
    ("formrecognizer/v2.1", "2021-09-30", True),
]

CHAT_API_VERSIONS = ["2024-02-01", "2023-05-15"]

ANALYZE_URL = "{endpoint}/{path}/documentModels/{model_id}:analyze"
LEGACY_ANALYZE_URL = "{endpoint}/{path}/custom/models/{model_id}/analyze"
MODEL_LIST_URL = "{endpoint}/{path}/documentModels"
LEGACY_MODEL_LIST_URL = "{endpoint}/{path}/custom/models"
CHAT_COMPLETIONS_URL = "{endpoint}/openai/deployments/{deployment}/chat/completions"


@dataclass(frozen=True)
class CandidateEndpoint:
    url: str
    api_version: str
    is_legacy_path: bool = False

    def describe(self) -> str:
        return f"{self.url}?api-version={self.api_version}"


def normalize_endpoint(endpoint: Optional[str]) -> str:
    """
    Normaliza un endpoint base: agrega https:// si falta el protocolo
    y elimina las barras finales.

    Args:
        endpoint: Endpoint tal como lo ingresó el usuario

    Returns:
        Endpoint normalizado o cadena vacía si no hay endpoint
    """
    endpoint = (endpoint or "").strip()
    if not endpoint:
        return ""

    if not endpoint.startswith(("http://", "https://")):
        endpoint = f"https://{endpoint}"

    return endpoint.rstrip("/")


def clean_model_id(model_id: Optional[str]) -> str:
    """Quita prefijos tipo ruta y parámetros de URL de un ID de modelo."""
    model_id = (model_id or "").strip()
    model_id = re.sub(r"^.*[/\\]", "", model_id)
    return re.sub(r"[?#].*$", "", model_id)


def resolve_analyze_candidates(
    endpoint: Optional[str],
    model_id: Optional[str] = None,
    default_model: str = DEFAULT_MODEL_ID
) -> List[CandidateEndpoint]:
    """
    Construye la lista ordenada de URLs de análisis a probar.

    Args:
        endpoint: Endpoint del recurso de Document Intelligence
        model_id: ID del modelo custom (opcional)
        default_model: Modelo a usar cuando no se indica uno

    Returns:
        Lista de candidatos, la versión de API más reciente primero.
        Vacía si no hay endpoint.
    """
    base = normalize_endpoint(endpoint)
    if not base:
        return []

    model = clean_model_id(model_id) or default_model

    candidates = []
    for path, version, is_legacy in ANALYZE_API_GENERATIONS:
        template = LEGACY_ANALYZE_URL if is_legacy else ANALYZE_URL
        candidates.append(CandidateEndpoint(
            url=template.format(endpoint=base, path=path, model_id=model),
            api_version=version,
            is_legacy_path=is_legacy
        ))

    return candidates


def resolve_model_list_candidates(endpoint: Optional[str]) -> List[CandidateEndpoint]:
    """Construye las URLs de listado de modelos, en el mismo orden que el análisis."""
    base = normalize_endpoint(endpoint)
    if not base:
        return []

    candidates = []
    for path, version, is_legacy in ANALYZE_API_GENERATIONS:
        template = LEGACY_MODEL_LIST_URL if is_legacy else MODEL_LIST_URL
        candidates.append(CandidateEndpoint(
            url=template.format(endpoint=base, path=path),
            api_version=version,
            is_legacy_path=is_legacy
        ))

    return candidates


def resolve_chat_candidates(
    endpoint: Optional[str],
    deployment_name: Optional[str]
) -> List[CandidateEndpoint]:
    """Construye las URLs de chat completions de Azure OpenAI a probar."""
    base = normalize_endpoint(endpoint)
    deployment = (deployment_name or "").strip()
    if not base or not deployment:
        return []

    url = CHAT_COMPLETIONS_URL.format(endpoint=base, deployment=deployment)
    return [CandidateEndpoint(url=url, api_version=version) for version in CHAT_API_VERSIONS]
