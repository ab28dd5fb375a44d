import uvicorn

from intake_ocr.core.config import get_settings


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("intake_ocr.main:app", host=settings.API_HOST, port=settings.API_PORT)
