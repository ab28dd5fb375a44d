from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from dotenv import load_dotenv

from intake_ocr.api.routes import connection, intake
from intake_ocr.core.config import get_settings
from intake_ocr.core.errors import IntakeError
from intake_ocr.core.logging_config import configure_logging
from intake_ocr.models.responses import ErrorResponse

load_dotenv()
configure_logging()

settings = get_settings()

app = FastAPI(title=settings.API_TITLE, version=settings.API_VERSION)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

app.include_router(intake.router)
app.include_router(connection.router)


@app.exception_handler(IntakeError)
async def intake_error_handler(request: Request, exc: IntakeError):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).model_dump()
    )


@app.get("/", response_class=HTMLResponse)
async def home(request: Request):
    return templates.TemplateResponse(
        request,
        "index.html",
        {"default_prompt": settings.DEFAULT_PROMPT_TEMPLATE, "title": settings.API_TITLE}
    )


@app.get("/health")
async def health():
    return {"status": "ok"}
