from pydantic_settings import BaseSettings
from functools import lru_cache


INTAKE_PROMPT_TEMPLATE = """{{OCR_RESULT}}を電子カルテにコピーできる形に整形してください。
形式としては下記の様にまとめて、それ以外は表記しないでください。また患者の自由記載については要点だけ記載してください。また、空行は作らず、詰めて記載してください。
【主訴】
【現病歴】
【既往歴】
【通院中の医院】
【内服薬】
【アレルギー】
【喫煙歴】
【飲酒歴】
(もしあれば【妊娠可能性】）
【検査についての希望】"""


class Settings(BaseSettings):
    # API Configuration
    API_TITLE: str = "Intake Form OCR Formatter API"
    API_VERSION: str = "1.0.0"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080

    # Azure Document Intelligence Configuration
    OCR_ENDPOINT: str = ""
    OCR_API_KEY: str = ""
    OCR_MODEL_ID: str = ""
    OCR_DEFAULT_MODEL: str = "prebuilt-layout"
    OCR_POLL_INTERVAL: float = 1.0
    OCR_MAX_POLL_ATTEMPTS: int = 60

    # Azure OpenAI Configuration
    LLM_ENDPOINT: str = ""
    LLM_API_KEY: str = ""
    LLM_DEPLOYMENT_NAME: str = ""
    LLM_MAX_INPUT_CHARS: int = 3000
    LLM_MAX_RETRIES: int = 2
    LLM_RATE_LIMIT_BACKOFF: float = 90.0
    LLM_MAX_TOKENS: int = 300
    LLM_SYSTEM_PROMPT: str = "問診票を構造化して名前、症状、既往歴を表形式で整理。簡潔に。"
    DEFAULT_PROMPT_TEMPLATE: str = INTAKE_PROMPT_TEMPLATE

    # HTTP
    HTTP_TIMEOUT: float = 30.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
