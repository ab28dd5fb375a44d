import asyncio

import pytest

from intake_ocr.core.errors import AllCandidatesExhausted, LlmRequestFailed
from intake_ocr.models.requests import LlmConfig, OcrConfig
from intake_ocr.services.endpoint_resolver import CandidateEndpoint
from intake_ocr.services.intake_processor import IntakeProcessor
from intake_ocr.services.ocr_orchestrator import OcrOutcome

OCR_CONFIG = OcrConfig(endpoint="res.example.com", api_key="secret")
LLM_CONFIG = LlmConfig(endpoint="my-openai.openai.azure.com", api_key="secret", deployment_name="gpt-4o")
CANDIDATE = CandidateEndpoint(url="https://res.example.com/formrecognizer/documentModels/prebuilt-layout:analyze",
                              api_version="2022-08-31")


class StubOrchestrator:
    def __init__(self, result=None, error=None):
        self.result = {"content": "Name: Taro"} if result is None else result
        self.error = error

    async def analyze_document(self, payload, filename, config, content_type=None):
        if self.error:
            raise self.error
        return OcrOutcome(candidate=CANDIDATE, model_id="prebuilt-layout", result=self.result)


class StubFormatter:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def format(self, text, prompt_template, config):
        self.calls.append((text, prompt_template))
        if self.error:
            raise self.error
        return f"formatted: {text}"


def test_process_upload_formats_text():
    formatter = StubFormatter()
    processor = IntakeProcessor(orchestrator=StubOrchestrator(), formatter=formatter)

    result = asyncio.run(processor.process_upload(
        b"data", "form.pdf", OCR_CONFIG, LLM_CONFIG, prompt_template="{{OCR_RESULT}}"
    ))

    assert result["extracted_text"] == "Name: Taro"
    assert result["formatted_text"] == "formatted: Name: Taro"
    assert result["llm_error"] is None
    assert result["api_version"] == "2022-08-31"
    assert result["raw_result"] is None
    assert formatter.calls == [("Name: Taro", "{{OCR_RESULT}}")]
    assert {"ocr_time_ms", "extraction_time_ms", "llm_time_ms", "total_time_ms"} <= set(result["timing"])
    stages = {k: v for k, v in result["timing"].items() if k != "total_time_ms"}
    assert result["timing"]["total_time_ms"] == sum(stages.values())


def test_llm_failure_keeps_ocr_text():
    error = LlmRequestFailed("Azure OpenAI error (500): boom", status=500)
    processor = IntakeProcessor(orchestrator=StubOrchestrator(), formatter=StubFormatter(error=error))

    result = asyncio.run(processor.process_upload(b"data", "form.pdf", OCR_CONFIG, LLM_CONFIG))

    assert result["extracted_text"] == "Name: Taro"
    assert result["formatted_text"] is None
    assert result["llm_error"] == "LLM processing error: Azure OpenAI error (500): boom"


def test_llm_skipped_without_config_or_text():
    formatter = StubFormatter()

    no_llm = IntakeProcessor(orchestrator=StubOrchestrator(), formatter=formatter)
    result = asyncio.run(no_llm.process_upload(b"data", "form.png", OCR_CONFIG, LlmConfig()))
    assert result["formatted_text"] is None

    no_text = IntakeProcessor(orchestrator=StubOrchestrator(result={}), formatter=formatter)
    result = asyncio.run(no_text.process_upload(b"data", "form.png", OCR_CONFIG, LLM_CONFIG))
    assert result["extracted_text"] == ""

    assert formatter.calls == []


def test_default_prompt_template_used():
    formatter = StubFormatter()
    processor = IntakeProcessor(orchestrator=StubOrchestrator(), formatter=formatter)

    asyncio.run(processor.process_upload(b"data", "form.pdf", OCR_CONFIG, LLM_CONFIG))

    assert "{{OCR_RESULT}}" in formatter.calls[0][1]


def test_ocr_failure_propagates():
    processor = IntakeProcessor(
        orchestrator=StubOrchestrator(error=AllCandidatesExhausted(None)),
        formatter=StubFormatter()
    )

    with pytest.raises(AllCandidatesExhausted):
        asyncio.run(processor.process_upload(b"data", "form.pdf", OCR_CONFIG, LLM_CONFIG))


def test_run_ocr_include_raw():
    processor = IntakeProcessor(orchestrator=StubOrchestrator(), formatter=StubFormatter())

    result = asyncio.run(processor.run_ocr(b"data", "form.pdf", OCR_CONFIG, include_raw=True))

    assert result["raw_result"] == {"content": "Name: Taro"}
    assert result["model_id"] == "prebuilt-layout"
